"""stageload - buffered bulk loading and data access helpers for relational backends."""

from .bulkload import BulkLoadManager, StagingFileManager
from .constants import VERSION
from .errors import (
    BulkLoadError,
    ColumnMismatchError,
    ConfigurationError,
    LoadStatementError,
    StagingFormatError,
    StagingIOError,
)

__version__ = VERSION

__all__ = [
    "BulkLoadManager",
    "StagingFileManager",
    "BulkLoadError",
    "ColumnMismatchError",
    "ConfigurationError",
    "LoadStatementError",
    "StagingFormatError",
    "StagingIOError",
]
