"""Buffered bulk loading through per-table staging files."""

from .manager import BulkLoadManager, PendingLoad
from .staging import StagingFileManager, format_row, format_value

__all__ = [
    "BulkLoadManager",
    "PendingLoad",
    "StagingFileManager",
    "format_row",
    "format_value",
]
