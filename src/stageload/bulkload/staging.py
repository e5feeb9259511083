"""Staging file management for bulk loads.

Each target table gets one append-only, tab separated staging file at
``<base_dir>/data/<table>.dat``. Rows are newline terminated and values are
written as plain text with no quoting, so text containing a tab, newline or
carriage return cannot be staged and is rejected up front. For backends whose
loader reads backslash as an escape, backslashes are doubled when staged.
"""

import datetime
import logging
import sys
from pathlib import Path
from typing import Any, Optional, Sequence

from ..constants import (
    DATA_DIR_MODE,
    DATA_DIR_NAME,
    FIELD_SEPARATOR,
    ROW_TERMINATOR,
    STAGING_FILE_SUFFIX,
)
from ..errors import ConfigurationError, StagingFormatError, StagingIOError

logger = logging.getLogger(__name__)

FORBIDDEN_CHARACTERS = ("\t", "\n", "\r")


def executable_dir() -> Path:
    """Directory containing the running program."""
    return Path(sys.argv[0]).resolve().parent


def format_value(value: Any, null_marker: str = "\\N", escape_backslash: bool = False) -> str:
    """Render one value in the staging file's text form.

    Args:
        value: Scalar value
        null_marker: Text written for ``None``
        escape_backslash: Double backslashes, for loaders that read ``\\``
            as an escape (a literal ``\\N`` then stays text, not NULL)

    Returns:
        Text representation of the value

    Raises:
        StagingFormatError: If the text would contain a field or row separator
    """
    if value is None:
        return null_marker

    if isinstance(value, bool):
        return "1" if value else "0"

    if isinstance(value, datetime.datetime):
        text = value.isoformat(sep=" ")
    elif isinstance(value, (datetime.date, datetime.time)):
        text = value.isoformat()
    elif isinstance(value, (bytes, bytearray)):
        raise StagingFormatError("Binary values cannot be written to a staging file")
    else:
        text = str(value)

    for character in FORBIDDEN_CHARACTERS:
        if character in text:
            raise StagingFormatError(
                f"Value contains {character!r}, which the staging format cannot represent: "
                f"{text[:40]!r}"
            )

    if escape_backslash:
        text = text.replace("\\", "\\\\")

    return text


def format_row(values: Sequence[Any], null_marker: str = "\\N", escape_backslash: bool = False) -> list[str]:
    """Render a row of values, validating every field."""
    return [format_value(value, null_marker, escape_backslash) for value in values]


class StagingFileManager:
    """Resolves, appends to and removes per-table staging files."""

    def __init__(self, base_dir: Optional[Path] = None):
        """Initialize staging file manager.

        Args:
            base_dir: Directory holding the ``data`` staging directory.
                Defaults to the directory of the running executable.
        """
        if base_dir is None:
            base_dir = executable_dir()

        self.base_dir = Path(base_dir)

    @property
    def data_dir(self) -> Path:
        return self.base_dir / DATA_DIR_NAME

    def resolve_path(self, table: str) -> Path:
        """Return the staging file path for ``table``, creating the data directory.

        Raises:
            ConfigurationError: If the data directory path is taken by a
                non-directory or cannot be created
        """
        data_dir = self.data_dir

        if data_dir.exists():
            if not data_dir.is_dir():
                raise ConfigurationError(f"{data_dir} exists but it's not a directory")
        else:
            try:
                data_dir.mkdir(mode=DATA_DIR_MODE, parents=True, exist_ok=True)
            except OSError as e:
                raise ConfigurationError(f"Cannot create staging directory {data_dir}: {e}") from e
            logger.info(f"Created staging directory {data_dir}")

        return data_dir / f"{table}{STAGING_FILE_SUFFIX}"

    def append_rows(self, path: Path, values: Sequence[str], column_count: int) -> int:
        """Append flattened, already formatted values as rows.

        Values within a row are joined by tabs and every ``column_count``-th
        value ends its row with a newline. The file is created if missing and
        never truncated.

        Args:
            path: Staging file path
            values: Flat sequence of formatted values
            column_count: Values per row

        Returns:
            Number of rows written

        Raises:
            StagingIOError: If the file cannot be opened or written
        """
        rows = [
            FIELD_SEPARATOR.join(values[start:start + column_count]) + ROW_TERMINATOR
            for start in range(0, len(values), column_count)
        ]

        try:
            with open(path, "a", encoding="utf-8", newline="") as staging_file:
                staging_file.writelines(rows)
        except OSError as e:
            raise StagingIOError(f"Cannot write staging file {path}: {e}") from e

        return len(rows)

    def exists(self, path: Optional[Path]) -> bool:
        return path is not None and path.is_file()

    def count_rows(self, path: Path) -> int:
        """Number of rows currently in a staging file (0 if absent)."""
        if not self.exists(path):
            return 0

        try:
            with open(path, "r", encoding="utf-8", newline="") as staging_file:
                return sum(1 for _ in staging_file)
        except OSError as e:
            raise StagingIOError(f"Cannot read staging file {path}: {e}") from e

    def remove(self, path: Path) -> None:
        """Delete a staging file.

        Raises:
            StagingIOError: If the file cannot be deleted
        """
        try:
            path.unlink()
        except OSError as e:
            raise StagingIOError(f"Cannot remove staging file {path}: {e}") from e
