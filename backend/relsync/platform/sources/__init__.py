"""Relational source connectors."""

from relsync.platform.sources._base import (
    BaseSourceConnector,
    ConnectionTestResult,
    QueryResult,
    SourceConnectionError,
    SourceQueryError,
)
from relsync.platform.sources.sql import SqlSourceConnector, get_source_connector

__all__ = [
    "BaseSourceConnector",
    "ConnectionTestResult",
    "QueryResult",
    "SourceConnectionError",
    "SourceQueryError",
    "SqlSourceConnector",
    "get_source_connector",
]
