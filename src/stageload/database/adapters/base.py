"""Abstract base class for database adapters."""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Optional, Sequence

from ...constants import DB_CONNECT_TIMEOUT, DB_STATEMENT_TIMEOUT
from ...errors import ColumnMismatchError
from ..logging import QueryTimer, log_statement_execution
from ..validation import quote_identifier

logger = logging.getLogger(__name__)


class BaseAdapter(ABC):
    """Abstract base class for database-specific adapters.

    Each backend (PostgreSQL, SQL Server, Oracle, MySQL) implements this
    interface on top of its DB-API driver. Values are always passed as bound
    parameters; table and column names are validated and quoted per dialect.
    """

    PROTOCOL = ""
    DIALECT = "postgresql"
    # Placeholder for one positional bind parameter
    PLACEHOLDER = "%s"
    # How NULL is written into a staging file for this backend's load statement
    NULL_MARKER = "\\N"
    # Whether the load statement reads backslash as an escape in staged text
    BACKSLASH_ESCAPES = False
    LIST_DATABASES_QUERY = ""

    def __init__(
        self,
        host: str,
        port: Optional[int] = None,
        database: Optional[str] = None,
        username: Optional[str] = None,
        password: Optional[str] = None,
        connect_timeout: float = DB_CONNECT_TIMEOUT,
        timeout: float = DB_STATEMENT_TIMEOUT,
    ):
        """Initialize adapter with connection parameters.

        Args:
            host: Database host
            port: Database port
            database: Optional database (or Oracle service) name
            username: Optional username
            password: Optional password (already decrypted)
            connect_timeout: Seconds allowed to establish the connection
            timeout: Statement timeout in seconds
        """
        self.host = host
        self.port = port
        self.database = database
        self.username = username
        self.password = password
        self.connect_timeout = connect_timeout
        self.timeout = timeout
        self.connection: Optional[Any] = None
        # Driver exception base class, caught at the adapter boundary
        self.error_class: type = Exception

    @property
    def dsn(self) -> str:
        """Generate DSN string for logging (password omitted)."""
        user_part = f"{self.username}@" if self.username else ""
        database_part = f"/{self.database}" if self.database else ""
        return f"{self.PROTOCOL}://{user_part}{self.host}:{self.port}{database_part}"

    @abstractmethod
    def connect(self) -> None:
        """Establish database connection.

        Raises:
            ConnectionError: If connection fails
        """
        pass

    @abstractmethod
    def build_load_statement(self, path: Path, table: str, column_count: int) -> str:
        """Build the statement that loads a staging file into a table."""
        pass

    def close(self) -> None:
        """Close database connection."""
        if self.connection:
            try:
                self.connection.close()
                logger.info(f"Closed {self.PROTOCOL} connection to {self.database}@{self.host}")
            except self.error_class as e:
                logger.warning(f"Error closing {self.PROTOCOL} connection: {e}")
            finally:
                self.connection = None

    def quote(self, name: str) -> str:
        """Validate and quote an identifier for this backend."""
        return quote_identifier(name, self.DIALECT)

    def placeholders(self, count: int) -> list[str]:
        """Positional bind placeholders for ``count`` parameters."""
        return [self.PLACEHOLDER] * count

    def escape_path(self, path: Path) -> str:
        """Render a staging path as the body of a SQL string literal.

        Backslashes are doubled for backends that treat them as escapes.
        """
        return str(path).replace("\\", "\\\\").replace("'", "''")

    def _require_connection(self) -> None:
        if not self.connection:
            raise ConnectionError("Not connected to database. Call connect() first.")

    def _rollback(self) -> None:
        try:
            self.connection.rollback()
        except self.error_class as e:
            logger.warning(f"Rollback failed on {self.PROTOCOL} connection: {e}")

    def execute(self, statement: str, params: Optional[Sequence[Any]] = None) -> int:
        """Execute a single statement and commit.

        Args:
            statement: SQL statement with positional placeholders
            params: Bound parameter values

        Returns:
            Number of rows affected (as reported by the driver)

        Raises:
            ConnectionError: If not connected
            RuntimeError: If the driver rejects the statement
        """
        self._require_connection()

        with QueryTimer() as timer:
            cursor = self.connection.cursor()
            try:
                if params is None:
                    cursor.execute(statement)
                else:
                    cursor.execute(statement, list(params))
                row_count = cursor.rowcount
                self.connection.commit()
            except self.error_class as e:
                self._rollback()
                error_msg = f"{self.PROTOCOL} error: {e}"
                logger.error(error_msg)
                log_statement_execution(
                    query=statement,
                    dsn=self.dsn,
                    success=False,
                    error=error_msg,
                    duration=timer.duration,
                )
                raise RuntimeError(
                    f"Statement execution failed\n"
                    f"  Error: {e}\n"
                    f"  Statement: {statement[:100]}{'...' if len(statement) > 100 else ''}"
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

    def executemany(self, statement: str, rows: Sequence[Sequence[Any]]) -> int:
        """Execute a statement once per parameter row in a single transaction.

        Returns:
            Number of rows affected; falls back to ``len(rows)`` when the
            driver does not report a count
        """
        self._require_connection()

        with QueryTimer() as timer:
            cursor = self.connection.cursor()
            try:
                cursor.executemany(statement, [list(row) for row in rows])
                row_count = cursor.rowcount
                self.connection.commit()
            except self.error_class as e:
                self._rollback()
                error_msg = f"{self.PROTOCOL} error: {e}"
                logger.error(error_msg)
                log_statement_execution(
                    query=statement,
                    dsn=self.dsn,
                    success=False,
                    error=error_msg,
                    duration=timer.duration,
                )
                raise RuntimeError(
                    f"Batch execution failed\n"
                    f"  Error: {e}\n"
                    f"  Statement: {statement[:100]}{'...' if len(statement) > 100 else ''}"
                ) from e
            finally:
                cursor.close()

        if row_count is None or row_count < 0:
            row_count = len(rows)

        log_statement_execution(
            query=statement,
            dsn=self.dsn,
            success=True,
            row_count=row_count,
            duration=timer.duration,
        )
        return row_count

    def query(self, statement: str, params: Optional[Sequence[Any]] = None) -> list[tuple]:
        """Run a read statement and return all rows as tuples."""
        self._require_connection()

        cursor = self.connection.cursor()
        try:
            if params is None:
                cursor.execute(statement)
            else:
                cursor.execute(statement, list(params))
            return [tuple(row) for row in cursor.fetchall()]
        except self.error_class as e:
            error_msg = f"{self.PROTOCOL} error: {e}"
            logger.error(error_msg)
            raise RuntimeError(f"Query failed\n  Error: {e}") from e
        finally:
            cursor.close()

    def insert_batch(self, table: str, columns: Sequence[str], rows: Sequence[Sequence[Any]]) -> int:
        """Insert rows with one parameter-bound batch statement.

        Args:
            table: Destination table
            columns: Column names, in row order
            rows: Row values

        Returns:
            Number of rows inserted

        Raises:
            ValueError: If no columns are given
            ColumnMismatchError: If a row's width differs from ``columns``
        """
        if not columns:
            raise ValueError(f"No columns provided for insert into {table}")

        for row in rows:
            if len(row) != len(columns):
                raise ColumnMismatchError(table, len(columns), len(row))

        if not rows:
            return 0

        column_list = ", ".join(self.quote(column) for column in columns)
        statement = (
            f"INSERT INTO {self.quote(table)} ({column_list}) "
            f"VALUES ({', '.join(self.placeholders(len(columns)))})"
        )
        row_count = self.executemany(statement, rows)
        logger.info(f"Batch insert into {table} completed: {row_count} row(s)")
        return row_count

    def update_fields(
        self,
        table: str,
        fields: dict[str, Any],
        conditions: str = "",
        condition_args: Sequence[Any] = (),
    ) -> int:
        """Update columns on rows matching ``conditions``.

        ``conditions`` is a WHERE clause body using this backend's
        placeholders, bound to ``condition_args`` after the field values.

        Raises:
            ValueError: If no fields are given
            RuntimeError: If no rows were updated
        """
        if not fields:
            raise ValueError("No fields provided for update")

        columns = list(fields)
        placeholders = self.placeholders(len(columns) + len(condition_args))
        set_clause = ", ".join(
            f"{self.quote(column)} = {placeholder}"
            for column, placeholder in zip(columns, placeholders)
        )

        statement = f"UPDATE {self.quote(table)} SET {set_clause}"
        if conditions:
            statement += f" WHERE {conditions}"

        args = [fields[column] for column in columns] + list(condition_args)
        row_count = self.execute(statement, args)

        if row_count == 0:
            raise RuntimeError(f"No rows were updated in {table} table")

        logger.info(f"Updated {row_count} row(s) in {table} table")
        return row_count

    def delete_where(self, table: str, conditions: str = "", condition_args: Sequence[Any] = ()) -> int:
        """Delete rows matching ``conditions`` (all rows when empty)."""
        statement = f"DELETE FROM {self.quote(table)}"
        if conditions:
            statement += f" WHERE {conditions}"

        row_count = self.execute(statement, list(condition_args) if condition_args else None)
        logger.info(f"Deleted {row_count} row(s) from {table} table")
        return row_count

    def list_databases(self) -> list[str]:
        """List database (or schema) names visible to this connection."""
        return [row[0] for row in self.query(self.LIST_DATABASES_QUERY)]

    def load_file(self, path: Path, table: str, column_count: int) -> int:
        """Load a staging file into ``table``.

        Raises:
            RuntimeError: If the backend rejects the load statement
        """
        return self.execute(self.build_load_statement(path, table, column_count))

    def __enter__(self):
        """Context manager entry."""
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
