"""MySQL database adapter implementation."""

import logging
from pathlib import Path

import pymysql

from .base import BaseAdapter
from ..logging import log_connection, QueryTimer

logger = logging.getLogger(__name__)


class MySQLAdapter(BaseAdapter):
    """MySQL adapter using the pymysql driver.

    Staging files are loaded with ``LOAD DATA LOCAL INFILE``, so the
    connection is opened with ``local_infile`` enabled and the server must
    allow it.
    """

    PROTOCOL = "mysql"
    DIALECT = "mysql"
    PLACEHOLDER = "%s"
    NULL_MARKER = "\\N"
    BACKSLASH_ESCAPES = True
    LIST_DATABASES_QUERY = "SHOW DATABASES"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.error_class = pymysql.Error

    def connect(self) -> None:
        """Establish MySQL connection.

        Raises:
            ConnectionError: If connection fails
        """
        timer = QueryTimer()

        try:
            with timer:
                connection_params = {
                    "host": self.host,
                    "port": self.port or 3306,
                    "user": self.username,
                    "password": self.password or "",
                    "connect_timeout": int(self.connect_timeout),
                    "read_timeout": int(self.timeout),
                    "write_timeout": int(self.timeout),
                    "charset": "utf8mb4",
                    "local_infile": True,
                }

                # Only add database parameter if specified
                if self.database:
                    connection_params["database"] = self.database

                self.connection = pymysql.connect(**connection_params)

            log_connection(self.dsn, success=True, duration=timer.duration)

        except pymysql.Error as e:
            error_msg = str(e)
            log_connection(self.dsn, success=False, error=error_msg, duration=timer.duration)
            raise ConnectionError(
                f"Failed to connect to MySQL database\n"
                f"  Error: {error_msg}\n"
                f"  Hint: Check that MySQL server is running and credentials are correct"
            ) from e

    def build_load_statement(self, path: Path, table: str, column_count: int) -> str:
        return (
            f"LOAD DATA CONCURRENT LOCAL INFILE '{self.escape_path(path)}' "
            f"INTO TABLE {self.quote(table)}"
        )
