"""Base source connector."""

import re
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional

from pydantic import BaseModel, Field

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


class SourceConnectionError(Exception):
    """The source could not be reached or rejected the credentials."""


class SourceQueryError(Exception):
    """The source accepted the connection but the query failed."""


class ConnectionTestResult(BaseModel):
    """Outcome of a connection handshake."""

    success: bool
    message: str
    version: Optional[str] = None


class QueryResult(BaseModel):
    """Rows returned by a query, as column-name keyed dicts."""

    rows: List[Dict[str, Any]] = Field(default_factory=list)
    columns: List[str] = Field(default_factory=list)


def render_template(template: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """Substitute `{{name}}` placeholders textually.

    Unknown placeholders are left in place so the database reports them.

    Args:
        template: SQL text with `{{name}}` placeholders
        params: Values to substitute

    Returns:
        Rendered SQL
    """
    if not params:
        return template

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        if name in params:
            return str(params[name])
        return match.group(0)

    return _PLACEHOLDER.sub(_replace, template)


def template_placeholders(template: str) -> set:
    """Names of the `{{name}}` placeholders a template uses."""
    return set(_PLACEHOLDER.findall(template))


class BaseSourceConnector(ABC):
    """Base class for relational source connectors."""

    @abstractmethod
    async def test_connection(self, config: Dict[str, Any]) -> ConnectionTestResult:
        """Open a connection and report the server version.

        Args:
            config: Datasource connection config

        Returns:
            ConnectionTestResult; never raises for connection problems
        """

    @abstractmethod
    async def execute_query(
        self,
        config: Dict[str, Any],
        query_template: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> QueryResult:
        """Render and run a query.

        Args:
            config: Datasource connection config
            query_template: SQL text with `{{name}}` placeholders
            params: Placeholder values

        Returns:
            QueryResult with rows and column names

        Raises:
            SourceConnectionError: The database could not be reached
            SourceQueryError: The query failed
        """

    async def close(self) -> None:
        """Release pooled connections."""
