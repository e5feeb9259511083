"""Buffered bulk loading through per-table staging files.

Rows are queued per table in memory. Every ``flush_interval`` queued rows the
buffer is appended to the table's staging file, and ``load_all`` hands the
staging file to the backend's bulk load statement, deleting it once the load
succeeds. A failed load leaves the file in place so the load can be retried
without queuing the rows again.

Queue, flush and load for one table are serialized by a per-table lock;
different tables proceed independently.
"""

import logging
import threading
from pathlib import Path
from typing import Any, Optional

from ..constants import DEFAULT_FLUSH_INTERVAL
from ..database.adapters.base import BaseAdapter
from ..database.logging import QueryTimer, log_bulk_load, log_staging_flush
from ..database.validation import validate_identifier
from ..errors import ColumnMismatchError, ConfigurationError, LoadStatementError
from .staging import StagingFileManager, format_row

logger = logging.getLogger(__name__)


class PendingLoad:
    """Rows queued for one table since its last disk flush."""

    def __init__(self, table: str):
        self.table = table
        self.staging_path: Optional[Path] = None
        self.column_count: Optional[int] = None
        self.pending_count = 0
        # Flattened formatted values, pending_count * column_count long
        self.buffer: list[str] = []
        self.lock = threading.Lock()

    def __repr__(self):
        return (
            f"PendingLoad(table={self.table!r}, column_count={self.column_count}, "
            f"pending_count={self.pending_count})"
        )


class BulkLoadManager:
    """Queues rows per table and bulk loads them through staging files.

    None is staged as the adapter's ``NULL_MARKER``. SQL Server and Oracle
    use an empty field for NULL, so on those backends an empty string and
    None both load as NULL.
    """

    def __init__(
        self,
        adapter: BaseAdapter,
        flush_interval: int = DEFAULT_FLUSH_INTERVAL,
        staging: Optional[StagingFileManager] = None,
    ):
        """Initialize bulk load manager.

        Args:
            adapter: Connected adapter used for the load statement; its
                ``NULL_MARKER`` and ``BACKSLASH_ESCAPES`` decide how
                values are staged
            flush_interval: Queued rows per table that trigger a disk flush
            staging: Staging file manager (defaults to the executable's data dir)

        Raises:
            ConfigurationError: If flush_interval is less than 1
        """
        if flush_interval < 1:
            raise ConfigurationError(f"flush_interval must be at least 1, got {flush_interval}")

        self.adapter = adapter
        self.flush_interval = flush_interval
        self.staging = staging if staging is not None else StagingFileManager()
        self._loads: dict[str, PendingLoad] = {}
        self._loads_lock = threading.Lock()

    def _get_or_create(self, table: str) -> PendingLoad:
        with self._loads_lock:
            if table not in self._loads:
                self._loads[table] = PendingLoad(table)
            return self._loads[table]

    def tables(self) -> list[str]:
        """Tables with queued or staged rows."""
        with self._loads_lock:
            return list(self._loads)

    def pending_count(self, table: str) -> int:
        """Rows queued for ``table`` and not yet flushed to disk."""
        pending = self._loads.get(table)
        return pending.pending_count if pending else 0

    def column_count(self, table: str) -> Optional[int]:
        pending = self._loads.get(table)
        return pending.column_count if pending else None

    def staging_path(self, table: str) -> Optional[Path]:
        pending = self._loads.get(table)
        return pending.staging_path if pending else None

    def queue_row(self, table: str, *values: Any) -> None:
        """Queue one row for ``table``, flushing to disk at the interval.

        The first row queued for a table fixes its column count and resolves
        its staging file.

        Raises:
            ValueError: If the table name is invalid or the row is empty
            ColumnMismatchError: If the row width differs from the table's
            StagingFormatError: If a value cannot be written to the staging file
            ConfigurationError: If the staging directory is unusable
            StagingIOError: If a triggered disk flush fails
        """
        if not values:
            raise ValueError(f"Cannot queue an empty row for table {table}")

        validate_identifier(table)
        pending = self._get_or_create(table)

        with pending.lock:
            if pending.column_count is not None and len(values) != pending.column_count:
                raise ColumnMismatchError(table, pending.column_count, len(values))

            formatted = format_row(values, self.adapter.NULL_MARKER, self.adapter.BACKSLASH_ESCAPES)

            if pending.staging_path is None:
                pending.staging_path = self.staging.resolve_path(table)
                pending.column_count = len(values)

            pending.pending_count += 1
            pending.buffer.extend(formatted)

            if pending.pending_count >= self.flush_interval:
                self._flush_to_disk(pending)

    def flush(self, table: str) -> int:
        """Append any buffered rows for ``table`` to its staging file.

        Returns:
            Number of rows written (0 when nothing was buffered)
        """
        pending = self._loads.get(table)
        if pending is None:
            return 0

        with pending.lock:
            return self._flush_to_disk(pending)

    def _flush_to_disk(self, pending: PendingLoad) -> int:
        """Append the buffer to the staging file; caller holds the table lock."""
        if pending.pending_count == 0:
            return 0

        with QueryTimer() as timer:
            row_count = self.staging.append_rows(
                pending.staging_path, pending.buffer, pending.column_count
            )

        # Reset only after the rows are on disk
        pending.buffer = []
        pending.pending_count = 0

        log_staging_flush(pending.table, str(pending.staging_path), row_count, timer.duration)
        return row_count

    def load_all(self, table: str) -> int:
        """Flush ``table``'s remaining rows and bulk load its staging file.

        Returns:
            Rows loaded as reported by the backend; 0 without touching the
            database when nothing was staged

        Raises:
            StagingIOError: If the final flush or the post-load cleanup fails
            LoadStatementError: If the backend rejects the load; the staging
                file is kept
        """
        pending = self._loads.get(table)
        if pending is None:
            logger.debug(f"Nothing queued for {table}, skipping load")
            return 0

        with pending.lock:
            self._flush_to_disk(pending)

            path = pending.staging_path
            if not self.staging.exists(path):
                logger.debug(f"No staging file for {table}, skipping load")
                return 0

            with QueryTimer() as timer:
                try:
                    row_count = self.adapter.load_file(path, table, pending.column_count)
                except (RuntimeError, ConnectionError, OSError) as e:
                    log_bulk_load(table, str(path), success=False, error=str(e))
                    raise LoadStatementError(table, path, str(e)) from e

            log_bulk_load(table, str(path), success=True, row_count=row_count, duration=timer.duration)
            self.staging.remove(path)
            return row_count

    def load_everything(self) -> dict[str, int]:
        """Run ``load_all`` for every known table.

        Stops at the first failure, leaving later tables staged.

        Returns:
            Rows loaded per table
        """
        return {table: self.load_all(table) for table in self.tables()}
