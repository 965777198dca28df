"""The asyncpg pool pillbox reads medications, doses and skip dates from.

Pillbox only reads.  Credentials come from the environment, the database name
and optional schema from ``[pillbox.db]`` in ``pillbox.toml``.
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from typing import Any
from urllib.parse import parse_qs, urlparse

import asyncpg

from pillbox.config import DatabaseConfig

logger = logging.getLogger(__name__)

_SSL_MODES = frozenset({"disable", "prefer", "allow", "require", "verify-ca", "verify-full"})
_SCHEMA_NAME = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _ssl_mode(value: str | None) -> str | None:
    mode = (value or "").strip().lower()
    if not mode:
        return None
    if mode not in _SSL_MODES:
        logger.warning("Ignoring invalid PostgreSQL sslmode %r", value)
        return None
    return mode


@dataclass(frozen=True)
class ConnectionParams:
    """Where and as whom to connect; the database name is chosen separately."""

    host: str = "localhost"
    port: int = 5432
    user: str = "pillbox"
    password: str = "pillbox"
    ssl: str | None = None


def db_params_from_env() -> ConnectionParams:
    """Connection settings from ``DATABASE_URL``, else the ``POSTGRES_*`` variables."""
    database_url = os.environ.get("DATABASE_URL")
    if database_url:
        url = urlparse(database_url)
        return ConnectionParams(
            host=url.hostname or "localhost",
            port=url.port or 5432,
            user=url.username or "pillbox",
            password=url.password or "pillbox",
            ssl=_ssl_mode(parse_qs(url.query).get("sslmode", [None])[0]),
        )
    return ConnectionParams(
        host=os.environ.get("POSTGRES_HOST", "localhost"),
        port=int(os.environ.get("POSTGRES_PORT", "5432")),
        user=os.environ.get("POSTGRES_USER", "pillbox"),
        password=os.environ.get("POSTGRES_PASSWORD", "pillbox"),
        ssl=_ssl_mode(os.environ.get("POSTGRES_SSLMODE")),
    )


def schema_search_path(schema: str | None) -> str | None:
    """``search_path`` that finds the medication tables in *schema*, then ``public``."""
    if schema is None or not schema.strip():
        return None
    schema = schema.strip()
    if _SCHEMA_NAME.fullmatch(schema) is None:
        raise ValueError(f"Invalid schema name: {schema!r}. Expected a SQL identifier.")
    return schema if schema == "public" else f"{schema},public"


def should_retry_with_ssl_disable(exc: Exception, configured_ssl: str | None) -> bool:
    """True when asyncpg lost the connection during its opportunistic SSL upgrade.

    Only applies when no sslmode was configured; an explicit mode is honoured.
    """
    return (
        configured_ssl is None
        and isinstance(exc, ConnectionError)
        and "unexpected connection_lost() call" in str(exc)
    )


class Database:
    """Owns the pool for one medication database.

    ``require_pool()`` raises KeyError until ``connect()`` has succeeded; the
    API turns that into 503.
    """

    def __init__(
        self,
        db_name: str,
        schema: str | None = None,
        params: ConnectionParams | None = None,
        max_pool_size: int = 5,
    ) -> None:
        self.db_name = db_name
        self.search_path = schema_search_path(schema)
        self.params = params or ConnectionParams()
        self.max_pool_size = max_pool_size
        self.pool: asyncpg.Pool | None = None

    @property
    def host(self) -> str:
        return self.params.host

    @property
    def port(self) -> int:
        return self.params.port

    def _pool_kwargs(self) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "host": self.params.host,
            "port": self.params.port,
            "user": self.params.user,
            "password": self.params.password,
            "database": self.db_name,
            "min_size": 1,
            "max_size": self.max_pool_size,
        }
        if self.search_path is not None:
            kwargs["server_settings"] = {"search_path": self.search_path}
        if self.params.ssl is not None:
            kwargs["ssl"] = self.params.ssl
        return kwargs

    async def connect(self) -> asyncpg.Pool:
        kwargs = self._pool_kwargs()
        try:
            self.pool = await asyncpg.create_pool(**kwargs)
        except Exception as exc:
            if not should_retry_with_ssl_disable(exc, self.params.ssl):
                raise
            logger.info("SSL upgrade to %s failed; retrying with ssl=disable", self.params.host)
            self.pool = await asyncpg.create_pool(**{**kwargs, "ssl": "disable"})
        logger.info("Connected to medication database %s", self.db_name)
        return self.pool

    def require_pool(self) -> asyncpg.Pool:
        if self.pool is None:
            raise KeyError(f"Database '{self.db_name}' has no active connection pool")
        return self.pool

    async def close(self) -> None:
        if self.pool is not None:
            await self.pool.close()
            self.pool = None
            logger.info("Closed pool for medication database %s", self.db_name)

    @classmethod
    def from_config(cls, config: DatabaseConfig) -> Database:
        """A Database for ``[pillbox.db]`` using credentials from the environment."""
        return cls(config.name, config.schema, db_params_from_env())
