"""Shared fixtures for the stageload test suite."""

from pathlib import Path
from typing import Optional

import pytest

from stageload.bulkload import BulkLoadManager, StagingFileManager
from stageload.database.adapters.base import BaseAdapter


class RecordingAdapter(BaseAdapter):
    """Adapter that records bulk loads instead of talking to a database."""

    PROTOCOL = "fake"
    NULL_MARKER = "\\N"
    BACKSLASH_ESCAPES = True

    def __init__(self):
        super().__init__(host="localhost", port=0, database="test")
        self.loads: list[dict] = []
        self.fail_with: Optional[Exception] = None

    def connect(self) -> None:
        self.connection = object()

    def close(self) -> None:
        self.connection = None

    def build_load_statement(self, path: Path, table: str, column_count: int) -> str:
        return f"LOAD '{self.escape_path(path)}' INTO {table}"

    def load_file(self, path: Path, table: str, column_count: int) -> int:
        self.loads.append({
            "statement": self.build_load_statement(path, table, column_count),
            "table": table,
            "path": path,
            "column_count": column_count,
            "content": path.read_text(encoding="utf-8"),
        })
        if self.fail_with is not None:
            raise self.fail_with
        return path.read_text(encoding="utf-8").count("\n")


@pytest.fixture
def adapter():
    return RecordingAdapter()


@pytest.fixture
def staging(tmp_path):
    return StagingFileManager(tmp_path)


@pytest.fixture
def make_manager(adapter, staging):
    """Build a manager over the recording adapter and a temp staging dir."""

    def _make(flush_interval: int = 2) -> BulkLoadManager:
        return BulkLoadManager(adapter, flush_interval=flush_interval, staging=staging)

    return _make
