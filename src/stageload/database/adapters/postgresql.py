"""PostgreSQL database adapter implementation."""

import logging
from pathlib import Path
from typing import Optional

import psycopg2

from .base import BaseAdapter
from ..logging import log_connection, log_statement_execution, QueryTimer

logger = logging.getLogger(__name__)


class PostgreSQLAdapter(BaseAdapter):
    """PostgreSQL adapter using the psycopg2 driver.

    Staging files are loaded with ``COPY``. By default the file is streamed
    from the client (``COPY ... FROM STDIN``), because a plain ``COPY ... FROM
    '<path>'`` reads the path on the database server and needs server file
    privileges. Pass ``server_side=True`` when the server can see the staging
    directory.
    """

    PROTOCOL = "postgresql"
    DIALECT = "postgresql"
    PLACEHOLDER = "%s"
    NULL_MARKER = "\\N"
    BACKSLASH_ESCAPES = True
    LIST_DATABASES_QUERY = "SELECT datname FROM pg_database WHERE NOT datistemplate ORDER BY datname"

    def __init__(self, *args, sslmode: Optional[str] = "require", server_side: bool = False, **kwargs):
        """Initialize PostgreSQL adapter.

        Args:
            sslmode: libpq sslmode; None leaves the driver default
            server_side: Load staging files with a server-side COPY
        """
        super().__init__(*args, **kwargs)
        self.sslmode = sslmode
        self.server_side = server_side
        self.error_class = psycopg2.Error

    def connect(self) -> None:
        """Establish PostgreSQL connection.

        Raises:
            ConnectionError: If connection fails
        """
        timer = QueryTimer()

        try:
            with timer:
                conn_params = {
                    "host": self.host,
                    "port": self.port or 5432,
                    "connect_timeout": int(self.connect_timeout),
                    "options": f"-c statement_timeout={int(self.timeout * 1000)}",  # milliseconds
                }

                # Only add optional parameters if specified
                if self.database:
                    conn_params["dbname"] = self.database
                if self.username:
                    conn_params["user"] = self.username
                if self.password:
                    conn_params["password"] = self.password
                if self.sslmode:
                    conn_params["sslmode"] = self.sslmode

                self.connection = psycopg2.connect(**conn_params)

            log_connection(self.dsn, success=True, duration=timer.duration)
            logger.info(f"Connected to PostgreSQL database: {self.database}@{self.host}")

        except psycopg2.Error as e:
            log_connection(self.dsn, success=False, error=str(e), duration=timer.duration)
            raise ConnectionError(
                f"Failed to connect to PostgreSQL\n"
                f"  Error: {e}\n"
                f"  Hint: Check that the server is reachable and credentials are correct"
            ) from e

    def escape_path(self, path: Path) -> str:
        # Used inside an E'' literal, where backslash is an escape character
        return str(path).replace("\\", "\\\\").replace("'", "\\'")

    def build_load_statement(self, path: Path, table: str, column_count: int) -> str:
        if self.server_side:
            return f"COPY {self.quote(table)} FROM E'{self.escape_path(path)}'"
        return f"COPY {self.quote(table)} FROM STDIN"

    def load_file(self, path: Path, table: str, column_count: int) -> int:
        """Load a staging file with COPY (text format, tab separated, ``\\N`` nulls)."""
        if self.server_side:
            return super().load_file(path, table, column_count)

        self._require_connection()
        statement = self.build_load_statement(path, table, column_count)

        with QueryTimer() as timer:
            cursor = self.connection.cursor()
            try:
                with open(path, "r", encoding="utf-8") as staging_file:
                    cursor.copy_expert(statement, staging_file)
                row_count = cursor.rowcount
                self.connection.commit()
            except psycopg2.Error as e:
                self._rollback()
                error_msg = f"PostgreSQL error: {e}"
                logger.error(error_msg)
                log_statement_execution(
                    query=statement,
                    dsn=self.dsn,
                    success=False,
                    error=error_msg,
                    duration=timer.duration,
                )
                raise RuntimeError(
                    f"COPY into {table} failed\n"
                    f"  Error: {e}"
                ) from e
            finally:
                cursor.close()

        log_statement_execution(
            query=statement,
            dsn=self.dsn,
            success=True,
            row_count=row_count,
            duration=timer.duration,
        )
        return row_count
