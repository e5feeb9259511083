"""SQL Server database adapter implementation."""

import logging
from pathlib import Path

import pymssql

from .base import BaseAdapter
from ..logging import log_connection, QueryTimer

logger = logging.getLogger(__name__)


class SQLServerAdapter(BaseAdapter):
    """SQL Server adapter using the pymssql driver.

    Staging files are loaded with ``BULK INSERT``, which reads the path on
    the database server; the staging directory must be reachable from there.
    """

    PROTOCOL = "sqlserver"
    DIALECT = "sqlserver"
    PLACEHOLDER = "%s"
    # BULK INSERT keeps an empty field as NULL
    NULL_MARKER = ""
    LIST_DATABASES_QUERY = (
        "SELECT name FROM sys.databases "
        "WHERE name NOT IN ('master','model','msdb','tempdb') ORDER BY name"
    )

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.error_class = pymssql.Error

    def connect(self) -> None:
        """Establish SQL Server connection.

        Raises:
            ConnectionError: If connection fails
        """
        timer = QueryTimer()

        try:
            with timer:
                conn_params = {
                    "server": self.host,
                    "port": str(self.port or 1433),
                    "login_timeout": int(self.connect_timeout),
                    "timeout": int(self.timeout),
                }

                if self.database:
                    conn_params["database"] = self.database
                if self.username:
                    conn_params["user"] = self.username
                if self.password:
                    conn_params["password"] = self.password

                self.connection = pymssql.connect(**conn_params)

            log_connection(self.dsn, success=True, duration=timer.duration)
            logger.info(f"Connected to SQL Server database: {self.database}@{self.host}")

        except pymssql.Error as e:
            log_connection(self.dsn, success=False, error=str(e), duration=timer.duration)
            raise ConnectionError(
                f"Failed to connect to SQL Server\n"
                f"  Error: {e}\n"
                f"  Hint: Check that the server is reachable and credentials are correct"
            ) from e

    def escape_path(self, path: Path) -> str:
        # T-SQL string literals do not treat backslash as an escape
        return str(path).replace("'", "''")

    def build_load_statement(self, path: Path, table: str, column_count: int) -> str:
        return (
            f"BULK INSERT {self.quote(table)} FROM '{self.escape_path(path)}' "
            f"WITH (FIELDTERMINATOR = '\\t', ROWTERMINATOR = '0x0a', KEEPNULLS)"
        )
