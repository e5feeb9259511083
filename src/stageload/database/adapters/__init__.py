"""Database adapters for different database types."""

from typing import Optional

from .base import BaseAdapter
from .mysql import MySQLAdapter
from .oracle import OracleAdapter
from .postgresql import PostgreSQLAdapter
from .sqlserver import SQLServerAdapter
from ...constants import DB_CONNECT_TIMEOUT, DB_STATEMENT_TIMEOUT, DB_SUPPORTED_PROTOCOLS

__all__ = [
    "BaseAdapter",
    "MySQLAdapter",
    "OracleAdapter",
    "PostgreSQLAdapter",
    "SQLServerAdapter",
    "ADAPTERS",
    "create_adapter",
]

ADAPTERS: dict[str, type[BaseAdapter]] = {
    "postgresql": PostgreSQLAdapter,
    "sqlserver": SQLServerAdapter,
    "oracle": OracleAdapter,
    "mysql": MySQLAdapter,
}

# Accepted spellings of each protocol
PROTOCOL_ALIASES = {
    "postgres": "postgresql",
    "mssql": "sqlserver",
}


def create_adapter(
    protocol: str,
    host: str,
    port: Optional[int] = None,
    database: Optional[str] = None,
    username: Optional[str] = None,
    password: Optional[str] = None,
    connect_timeout: float = DB_CONNECT_TIMEOUT,
    timeout: float = DB_STATEMENT_TIMEOUT,
    **options,
) -> BaseAdapter:
    """Factory function to create appropriate adapter based on protocol.

    Args:
        protocol: Database protocol (postgresql, sqlserver, oracle, mysql)
        host: Database host
        port: Database port (backend default when None)
        database: Database name (service name for Oracle)
        username: Optional username
        password: Optional password, already decrypted
        connect_timeout: Connection timeout in seconds
        timeout: Statement timeout in seconds
        **options: Adapter specific options (e.g. ``server_side`` for PostgreSQL)

    Returns:
        Appropriate database adapter instance (not yet connected)

    Raises:
        ValueError: If protocol is not supported
    """
    protocol = PROTOCOL_ALIASES.get(protocol, protocol)

    if protocol not in ADAPTERS:
        raise ValueError(
            f"Unsupported database protocol: {protocol}\n"
            f"  Supported protocols: {', '.join(DB_SUPPORTED_PROTOCOLS)}"
        )

    return ADAPTERS[protocol](
        host=host,
        port=port,
        database=database,
        username=username,
        password=password,
        connect_timeout=connect_timeout,
        timeout=timeout,
        **options,
    )
