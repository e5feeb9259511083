"""Oracle database adapter implementation."""

import logging
from pathlib import Path

import oracledb

from .base import BaseAdapter
from ..logging import log_connection, log_statement_execution, QueryTimer

logger = logging.getLogger(__name__)

# Rows bound per executemany round trip when loading a staging file
LOAD_BATCH_SIZE = 10_000

# Session formats matching how dates and datetimes are written to staging files
SESSION_SETUP_STATEMENTS = (
    "ALTER SESSION SET NLS_DATE_FORMAT = 'YYYY-MM-DD HH24:MI:SS'",
    "ALTER SESSION SET NLS_TIMESTAMP_FORMAT = 'YYYY-MM-DD HH24:MI:SS.FF6'",
)


class OracleAdapter(BaseAdapter):
    """Oracle adapter using the python-oracledb driver (thin mode).

    Oracle has no statement that reads a client-side file, so a staging file
    is loaded by reading it here and array-binding its rows into a single
    ``INSERT`` executed in batches, committed once at the end.
    """

    PROTOCOL = "oracle"
    DIALECT = "oracle"
    PLACEHOLDER = ":1"
    # Empty strings are NULL in Oracle
    NULL_MARKER = ""
    LIST_DATABASES_QUERY = "SELECT username FROM all_users ORDER BY username"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.error_class = oracledb.Error

    def placeholders(self, count: int) -> list[str]:
        return [f":{index}" for index in range(1, count + 1)]

    def connect(self) -> None:
        """Establish Oracle connection.

        ``database`` is used as the service name.

        Raises:
            ConnectionError: If connection fails
        """
        timer = QueryTimer()

        try:
            with timer:
                dsn = oracledb.makedsn(self.host, self.port or 1521, service_name=self.database)
                self.connection = oracledb.connect(
                    user=self.username,
                    password=self.password,
                    dsn=dsn,
                    tcp_connect_timeout=self.connect_timeout,
                )
                self.connection.call_timeout = int(self.timeout * 1000)  # milliseconds
                self._set_session_formats()

            log_connection(self.dsn, success=True, duration=timer.duration)
            logger.info(f"Connected to Oracle service: {self.database}@{self.host}")

        except oracledb.Error as e:
            log_connection(self.dsn, success=False, error=str(e), duration=timer.duration)
            raise ConnectionError(
                f"Failed to connect to Oracle\n"
                f"  Error: {e}\n"
                f"  Hint: Check host, port and service name"
            ) from e

    def _set_session_formats(self) -> None:
        """Make implicit text to DATE/TIMESTAMP conversion accept staged values."""
        cursor = self.connection.cursor()
        try:
            for statement in SESSION_SETUP_STATEMENTS:
                cursor.execute(statement)
        finally:
            cursor.close()

    def build_load_statement(self, path: Path, table: str, column_count: int) -> str:
        # Columns are bound positionally in table order
        return f"INSERT INTO {self.quote(table)} VALUES ({', '.join(self.placeholders(column_count))})"

    def _read_staging_rows(self, path: Path, column_count: int):
        """Yield staging file rows as value lists, empty fields as None."""
        with open(path, "r", encoding="utf-8") as staging_file:
            for line_number, line in enumerate(staging_file, start=1):
                values = line.rstrip("\n").split("\t")
                if len(values) != column_count:
                    raise RuntimeError(
                        f"Staging file {path} line {line_number} has {len(values)} "
                        f"fields, expected {column_count}"
                    )
                yield [value if value != "" else None for value in values]

    def load_file(self, path: Path, table: str, column_count: int) -> int:
        """Array-insert every staging file row into ``table`` in one transaction."""
        self._require_connection()
        statement = self.build_load_statement(path, table, column_count)
        row_count = 0

        with QueryTimer() as timer:
            cursor = self.connection.cursor()
            try:
                batch = []
                for row in self._read_staging_rows(path, column_count):
                    batch.append(row)
                    if len(batch) >= LOAD_BATCH_SIZE:
                        cursor.executemany(statement, batch)
                        row_count += len(batch)
                        batch = []
                if batch:
                    cursor.executemany(statement, batch)
                    row_count += len(batch)
                self.connection.commit()
            except (oracledb.Error, RuntimeError) as e:
                self._rollback()
                error_msg = f"Oracle error: {e}"
                logger.error(error_msg)
                log_statement_execution(
                    query=statement,
                    dsn=self.dsn,
                    success=False,
                    error=error_msg,
                    duration=timer.duration,
                )
                raise RuntimeError(
                    f"Array insert into {table} failed\n"
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
