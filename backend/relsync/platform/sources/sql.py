"""SQL source connector for SQL Server, MySQL and PostgreSQL.

One SQLAlchemy async engine is kept per distinct connection URL. Queries are
rendered from the datasource's template by textual `{{name}}` substitution and
executed as-is; rows come back as column-name keyed dicts.
"""

import asyncio
from typing import Any, Dict, Mapping, Optional

from sqlalchemy import exc as sa_exc
from sqlalchemy import text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from tenacity import AsyncRetrying

from relsync.core.logging import logger
from relsync.core.shared_models import DatasourceType
from relsync.platform.sources._base import (
    BaseSourceConnector,
    ConnectionTestResult,
    QueryResult,
    SourceConnectionError,
    SourceQueryError,
    render_template,
)
from relsync.platform.sources.retry_helpers import (
    connect_stop,
    connect_wait,
    retry_if_connect_error,
)

_DRIVERS = {
    DatasourceType.MSSQL: "mssql+aioodbc",
    DatasourceType.MYSQL: "mysql+aiomysql",
    DatasourceType.POSTGRESQL: "postgresql+asyncpg",
}

_DEFAULT_PORTS = {
    DatasourceType.MSSQL: 1433,
    DatasourceType.MYSQL: 3306,
    DatasourceType.POSTGRESQL: 5432,
}

_VERSION_QUERIES = {
    "mssql": "SELECT @@VERSION AS version",
    "mysql": "SELECT VERSION() AS version",
    "postgresql": "SELECT version() AS version",
    "sqlite": "SELECT sqlite_version() AS version",
}

CONNECT_TIMEOUT_SECONDS = 30


class SqlSourceConnector(BaseSourceConnector):
    """Connector for one relational engine type."""

    def __init__(self, source_type: DatasourceType):
        """Initialize the connector.

        Args:
            source_type: Engine the datasource points at
        """
        self.source_type = DatasourceType(source_type)
        self._engines: Dict[str, AsyncEngine] = {}
        self._lock = asyncio.Lock()

    def build_url(self, config: Dict[str, Any]) -> URL:
        """Build the SQLAlchemy URL for a connection config.

        A literal `url` key takes precedence over the individual fields.

        Args:
            config: Datasource connection config

        Returns:
            SQLAlchemy URL
        """
        if config.get("url"):
            return make_url(config["url"])

        options = dict(config.get("options") or {})
        query: Dict[str, str] = {}
        if self.source_type == DatasourceType.MSSQL:
            query["driver"] = options.pop("driver", "ODBC Driver 18 for SQL Server")
            query["TrustServerCertificate"] = options.pop("trust_server_certificate", "yes")
        query.update({k: str(v) for k, v in options.items()})

        return URL.create(
            _DRIVERS[self.source_type],
            username=config.get("user"),
            password=config.get("password"),
            host=config.get("host"),
            port=config.get("port") or _DEFAULT_PORTS[self.source_type],
            database=config.get("database"),
            query=query,
        )

    async def _get_engine(self, config: Dict[str, Any]) -> AsyncEngine:
        url = self.build_url(config)
        key = url.render_as_string(hide_password=False)
        async with self._lock:
            engine = self._engines.get(key)
            if engine is None:
                engine = create_async_engine(url, pool_pre_ping=True)
                self._engines[key] = engine
            return engine

    async def _connect(self, engine: AsyncEngine) -> AsyncConnection:
        """Open a connection, retrying transient failures."""
        try:
            async for attempt in AsyncRetrying(
                stop=connect_stop,
                wait=connect_wait,
                retry=retry_if_connect_error,
                reraise=True,
            ):
                with attempt:
                    return await asyncio.wait_for(engine.connect(), CONNECT_TIMEOUT_SECONDS)
        except asyncio.TimeoutError as e:
            raise SourceConnectionError(
                f"Timed out connecting to {engine.url.host or engine.url.database}"
            ) from e
        except Exception as e:
            raise SourceConnectionError(f"Database connection failed: {e}") from e
        raise SourceConnectionError("Database connection failed")

    async def test_connection(self, config: Dict[str, Any]) -> ConnectionTestResult:
        """Open a connection and report the server version."""
        try:
            engine = await self._get_engine(config)
            conn = await self._connect(engine)
        except SourceConnectionError as e:
            return ConnectionTestResult(success=False, message=str(e))
        except Exception as e:
            return ConnectionTestResult(success=False, message=f"Invalid connection config: {e}")

        try:
            version_sql = _VERSION_QUERIES.get(engine.dialect.name, "SELECT 1 AS version")
            result = await conn.execute(text(version_sql))
            version = result.scalar()
            return ConnectionTestResult(
                success=True,
                message="Connection successful",
                version=str(version) if version is not None else None,
            )
        except sa_exc.SQLAlchemyError as e:
            return ConnectionTestResult(success=False, message=f"Version query failed: {e}")
        finally:
            await conn.close()

    async def execute_query(
        self,
        config: Dict[str, Any],
        query_template: str,
        params: Optional[Mapping[str, Any]] = None,
    ) -> QueryResult:
        """Render and run a query against the source."""
        sql = render_template(query_template, params)
        engine = await self._get_engine(config)
        conn = await self._connect(engine)
        try:
            result = await conn.execute(text(sql))
            columns = list(result.keys())
            rows = [dict(row._mapping) for row in result]
            return QueryResult(rows=rows, columns=columns)
        except sa_exc.SQLAlchemyError as e:
            logger.error(f"Source query failed on {self.source_type.value}: {e}")
            raise SourceQueryError(f"Query execution failed: {e}") from e
        finally:
            await conn.close()

    async def close(self) -> None:
        """Dispose every cached engine."""
        async with self._lock:
            engines = list(self._engines.values())
            self._engines.clear()
        for engine in engines:
            await engine.dispose()


_connectors: Dict[DatasourceType, SqlSourceConnector] = {}


def get_source_connector(source_type: str) -> SqlSourceConnector:
    """Return the shared connector for an engine type.

    Args:
        source_type: `mssql`, `mysql` or `postgresql`

    Returns:
        SqlSourceConnector

    Raises:
        ValueError: Unsupported type
    """
    try:
        key = DatasourceType(source_type)
    except ValueError as e:
        raise ValueError(f"Unsupported datasource type: {source_type}") from e
    if key not in _connectors:
        _connectors[key] = SqlSourceConnector(key)
    return _connectors[key]


async def close_source_connectors() -> None:
    """Dispose all shared connectors' engines."""
    for connector in list(_connectors.values()):
        await connector.close()
