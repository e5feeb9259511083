"""Tests for queuing, flushing and bulk loading through staging files."""

import threading

import pytest

from stageload.bulkload import BulkLoadManager
from stageload.errors import (
    ColumnMismatchError,
    ConfigurationError,
    LoadStatementError,
    StagingFormatError,
    StagingIOError,
)


def read_lines(path):
    return path.read_text(encoding="utf-8").splitlines()


class TestQueueRow:
    """Tests for buffering and threshold flushes."""

    def test_file_appears_at_flush_interval(self, make_manager):
        """Rows reach disk exactly when the interval is hit."""
        manager = make_manager(flush_interval=3)

        manager.queue_row("events", "a", 1)
        manager.queue_row("events", "b", 2)
        path = manager.staging_path("events")
        assert not path.exists()
        assert manager.pending_count("events") == 2

        manager.queue_row("events", "c", 3)
        assert path.exists()
        assert len(read_lines(path)) == 3
        assert manager.pending_count("events") == 0

    def test_exact_file_content(self, make_manager):
        manager = make_manager(flush_interval=2)

        manager.queue_row("events", "a", 1)
        manager.queue_row("events", "b", 2)

        path = manager.staging_path("events")
        assert path.read_bytes() == b"a\t1\nb\t2\n"

    def test_flushes_append(self, make_manager):
        """Two flush cycles keep every row."""
        manager = make_manager(flush_interval=2)

        for index in range(4):
            manager.queue_row("events", f"row{index}", index)

        lines = read_lines(manager.staging_path("events"))
        assert lines == ["row0\t0", "row1\t1", "row2\t2", "row3\t3"]

    def test_staging_path_under_data_dir(self, make_manager, tmp_path):
        manager = make_manager()
        manager.queue_row("events", "a")

        assert manager.staging_path("events") == tmp_path / "data" / "events.dat"
        assert (tmp_path / "data").is_dir()

    def test_column_count_fixed_by_first_row(self, make_manager):
        manager = make_manager(flush_interval=10)
        manager.queue_row("events", "a", 1, True)

        assert manager.column_count("events") == 3

    def test_column_mismatch_rejected(self, make_manager):
        """A row of the wrong width is refused and not buffered."""
        manager = make_manager(flush_interval=10)
        manager.queue_row("events", "a", 1)

        with pytest.raises(ColumnMismatchError) as exc_info:
            manager.queue_row("events", "b", 2, 3)

        assert exc_info.value.expected == 2
        assert exc_info.value.actual == 3
        assert manager.pending_count("events") == 1

    def test_empty_row_rejected(self, make_manager):
        manager = make_manager()

        with pytest.raises(ValueError, match="empty row"):
            manager.queue_row("events")

    def test_invalid_table_name_rejected(self, make_manager):
        manager = make_manager()

        with pytest.raises(ValueError, match="Invalid identifier"):
            manager.queue_row("events; DROP TABLE users", "a")

        assert manager.tables() == []

    def test_unstageable_value_rejected(self, make_manager):
        manager = make_manager(flush_interval=10)

        with pytest.raises(StagingFormatError):
            manager.queue_row("events", "has\ttab", 1)

        assert manager.pending_count("events") == 0

    def test_none_written_as_null_marker(self, make_manager, adapter):
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "a", None)

        assert read_lines(manager.staging_path("events")) == ["a\t\\N"]

    def test_backslashes_escaped_for_escaping_loaders(self, make_manager):
        """A literal backslash or "\\N" string stays text, distinct from NULL."""
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "C:\\temp\\new", "\\N", None)

        path = manager.staging_path("events")
        assert path.read_bytes() == b"C:\\\\temp\\\\new\t\\\\N\t\\N\n"

    def test_backslashes_kept_for_literal_loaders(self, make_manager, adapter):
        adapter.NULL_MARKER = ""
        adapter.BACKSLASH_ESCAPES = False
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "C:\\temp\\new", None)

        path = manager.staging_path("events")
        assert path.read_bytes() == b"C:\\temp\\new\t\n"

    def test_empty_string_and_none_match_for_empty_marker(self, make_manager, adapter):
        """With an empty NULL marker the two are staged identically."""
        adapter.NULL_MARKER = ""
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "", None)

        assert manager.staging_path("events").read_bytes() == b"\t\n"

    def test_data_path_obstructed(self, make_manager, tmp_path):
        (tmp_path / "data").write_text("not a directory")
        manager = make_manager()

        with pytest.raises(ConfigurationError, match="not a directory"):
            manager.queue_row("events", "a")

    def test_flush_interval_must_be_positive(self, adapter, staging):
        with pytest.raises(ConfigurationError):
            BulkLoadManager(adapter, flush_interval=0, staging=staging)

    def test_independent_tables(self, make_manager):
        """Interleaved rows never mix between tables."""
        manager = make_manager(flush_interval=2)

        manager.queue_row("alpha", "a1")
        manager.queue_row("beta", "b1", "x")
        manager.queue_row("alpha", "a2")
        manager.queue_row("beta", "b2", "y")

        assert read_lines(manager.staging_path("alpha")) == ["a1", "a2"]
        assert read_lines(manager.staging_path("beta")) == ["b1\tx", "b2\ty"]
        assert manager.staging_path("alpha") != manager.staging_path("beta")

    def test_concurrent_queue_same_table(self, make_manager):
        """Rows queued from several threads all land in the file."""
        manager = make_manager(flush_interval=7)

        def worker(worker_id):
            for index in range(50):
                manager.queue_row("events", worker_id, index)

        threads = [threading.Thread(target=worker, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        manager.flush("events")
        lines = read_lines(manager.staging_path("events"))
        assert len(lines) == 200
        assert all(len(line.split("\t")) == 2 for line in lines)


class TestFlush:
    """Tests for explicit disk flushes."""

    def test_flush_writes_partial_buffer(self, make_manager):
        manager = make_manager(flush_interval=100)
        manager.queue_row("events", "a", 1)

        assert manager.flush("events") == 1
        assert read_lines(manager.staging_path("events")) == ["a\t1"]
        assert manager.pending_count("events") == 0

    def test_flush_unknown_table(self, make_manager):
        assert make_manager().flush("missing") == 0

    def test_failed_flush_keeps_buffer(self, make_manager, staging, monkeypatch):
        manager = make_manager(flush_interval=100)
        manager.queue_row("events", "a", 1)

        def broken_append(path, values, column_count):
            raise StagingIOError("disk full")

        monkeypatch.setattr(staging, "append_rows", broken_append)

        with pytest.raises(StagingIOError):
            manager.flush("events")

        assert manager.pending_count("events") == 1


class TestLoadAll:
    """Tests for bulk loading staged rows."""

    def test_load_then_cleanup(self, make_manager, adapter):
        manager = make_manager(flush_interval=2)
        manager.queue_row("events", "a", 1)
        manager.queue_row("events", "b", 2)
        path = manager.staging_path("events")

        assert manager.load_all("events") == 2

        assert not path.exists()
        assert manager.pending_count("events") == 0
        assert adapter.loads[0]["table"] == "events"
        assert adapter.loads[0]["content"] == "a\t1\nb\t2\n"
        assert adapter.loads[0]["column_count"] == 2

    def test_load_flushes_buffered_rows_first(self, make_manager, adapter):
        manager = make_manager(flush_interval=2)
        manager.queue_row("events", "a", 1)
        manager.queue_row("events", "b", 2)
        manager.queue_row("events", "c", 3)

        manager.load_all("events")

        assert adapter.loads[0]["content"] == "a\t1\nb\t2\nc\t3\n"

    def test_load_failure_retains_file(self, make_manager, adapter):
        manager = make_manager(flush_interval=2)
        manager.queue_row("events", "a", 1)
        manager.queue_row("events", "b", 2)
        path = manager.staging_path("events")
        before = path.read_bytes()

        adapter.fail_with = RuntimeError("permission denied for table events")

        with pytest.raises(LoadStatementError) as exc_info:
            manager.load_all("events")

        assert "permission denied" in str(exc_info.value)
        assert exc_info.value.path == path
        assert path.read_bytes() == before

    def test_retry_after_failure(self, make_manager, adapter):
        """A retried load uses the retained file without re-queuing."""
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "a", 1)
        adapter.fail_with = RuntimeError("deadlock")

        with pytest.raises(LoadStatementError):
            manager.load_all("events")

        adapter.fail_with = None
        assert manager.load_all("events") == 1
        assert not manager.staging_path("events").exists()

    def test_noop_load_unknown_table(self, make_manager, adapter):
        assert make_manager().load_all("events") == 0
        assert adapter.loads == []

    def test_noop_load_after_previous_load(self, make_manager, adapter):
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "a", 1)
        manager.load_all("events")

        assert manager.load_all("events") == 0
        assert len(adapter.loads) == 1

    def test_table_reusable_after_load(self, make_manager, adapter):
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "a", 1)
        manager.load_all("events")

        manager.queue_row("events", "b", 2)
        manager.load_all("events")

        assert adapter.loads[1]["content"] == "b\t2\n"

    def test_cleanup_failure_raises_io_error(self, make_manager, staging, monkeypatch):
        manager = make_manager(flush_interval=1)
        manager.queue_row("events", "a", 1)

        def broken_remove(path):
            raise StagingIOError("file locked")

        monkeypatch.setattr(staging, "remove", broken_remove)

        with pytest.raises(StagingIOError):
            manager.load_all("events")

    def test_load_everything(self, make_manager, adapter):
        manager = make_manager(flush_interval=10)
        manager.queue_row("alpha", "a")
        manager.queue_row("beta", "b", "c")
        manager.queue_row("beta", "d", "e")

        assert manager.load_everything() == {"alpha": 1, "beta": 2}
        assert sorted(load["table"] for load in adapter.loads) == ["alpha", "beta"]
