"""Exception types raised by the bulk load subsystem."""


class BulkLoadError(Exception):
    """Base class for bulk load failures."""


class ConfigurationError(BulkLoadError):
    """Staging directory cannot be created, or the configuration is invalid."""


class StagingIOError(BulkLoadError, OSError):
    """Staging file cannot be opened, written or deleted."""


class StagingFormatError(BulkLoadError, ValueError):
    """A value cannot be represented in the tab separated staging format."""


class ColumnMismatchError(BulkLoadError, ValueError):
    """A row's width differs from the width established for its table."""

    def __init__(self, table: str, expected: int, actual: int):
        self.table = table
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Row for table {table} has {actual} values, expected {expected}"
        )


class LoadStatementError(BulkLoadError):
    """The backend rejected the bulk load statement.

    The staging file is left on disk so the load can be retried.
    """

    def __init__(self, table: str, path, message: str):
        self.table = table
        self.path = path
        super().__init__(
            f"Bulk load into {table} failed\n"
            f"  Error: {message}\n"
            f"  Staging file kept at: {path}"
        )
