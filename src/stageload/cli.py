"""stageload command line entry point."""

import logging
import sys
from pathlib import Path
from typing import Optional

from .bulkload import BulkLoadManager, StagingFileManager
from .constants import (
    DB_DEFAULT_PORTS,
    DB_SUPPORTED_PROTOCOLS,
    DEFAULT_FLUSH_INTERVAL,
    EXIT_FAILURE,
    EXIT_SUCCESS,
    MIN_ARGS,
)
from .database.adapters import create_adapter
from .database.connection import parse_connection_string
from .errors import BulkLoadError

logger = logging.getLogger("stageload")

INPUT_NULL = "\\N"


def setup_logging(level: int = logging.INFO) -> None:
    """Send stageload logs to stderr."""
    logger.setLevel(level)
    if logger.handlers:
        return
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(levelname)s: %(message)s"))
    logger.addHandler(handler)


def print_usage() -> None:
    sys.stderr.write("Usage: stageload <protocol> <connection-string> [options]\n")
    sys.stderr.write("\n")
    sys.stderr.write(f"Protocols: {', '.join(DB_SUPPORTED_PROTOCOLS)}\n")
    sys.stderr.write("Connection string: dbconnect=host,port,database,user,password\n")
    sys.stderr.write("  (password may be stored encrypted, base64 encoded)\n")
    sys.stderr.write("\n")
    sys.stderr.write("Options:\n")
    sys.stderr.write("  --test                  - Connect, list databases and exit\n")
    sys.stderr.write("  --load <table> <file>   - Bulk load a tab separated file into a table\n")
    sys.stderr.write("                            (\\N is NULL; empty lines at end of file are ignored)\n")
    sys.stderr.write(f"  --flush-interval <n>    - Rows buffered before writing to disk (default {DEFAULT_FLUSH_INTERVAL})\n")
    sys.stderr.write("  --data-dir <dir>        - Directory holding the data/ staging directory\n")
    sys.stderr.write("  --server-side           - PostgreSQL: COPY from a path on the server\n")
    sys.stderr.write("  --verbose               - Debug logging\n")
    sys.stderr.write("\n")
    sys.stderr.write("Examples:\n")
    sys.stderr.write("  stageload postgresql dbconnect=10.0.0.5,5432,sales,loader,secret --test\n")
    sys.stderr.write("  stageload sqlserver dbconnect=10.0.0.7,1433,sales,sa,c2VjcmV0 --load dbo.orders orders.tsv\n")


def read_rows(path: Path):
    """Yield rows from a tab separated file; ``\\N`` fields become None.

    An empty line is a row holding one empty string. Empty lines at the end
    of the file are ignored.
    """
    blank_lines = 0
    with open(path, "r", encoding="utf-8") as input_file:
        for line in input_file:
            line = line.rstrip("\r\n")
            if not line:
                blank_lines += 1
                continue
            for _ in range(blank_lines):
                yield [""]
            blank_lines = 0
            yield [None if field == INPUT_NULL else field for field in line.split("\t")]


def run_test(adapter) -> bool:
    """Connect and list databases."""
    print(f"Testing {adapter.PROTOCOL} connection to {adapter.dsn}...")
    try:
        with adapter:
            databases = adapter.list_databases()
    except (ConnectionError, RuntimeError) as e:
        print(f"Connection test failed: {e}")
        return False

    print(f"Connected. {len(databases)} database(s):")
    for name in databases:
        print(f"  - {name}")
    return True


def run_load(adapter, table: str, input_path: Path, flush_interval: int, data_dir: Optional[Path]) -> bool:
    """Queue every row of ``input_path`` and bulk load it into ``table``."""
    if not input_path.is_file():
        logger.error(f"Input file not found: {input_path}")
        return False

    staging = StagingFileManager(data_dir)
    queued = 0

    try:
        with adapter:
            manager = BulkLoadManager(adapter, flush_interval=flush_interval, staging=staging)
            for row in read_rows(input_path):
                manager.queue_row(table, *row)
                queued += 1
            loaded = manager.load_all(table)
    except (BulkLoadError, ConnectionError, ValueError, OSError) as e:
        logger.error(f"Load into {table} failed after {queued} queued row(s): {e}")
        return False

    logger.info(f"Loaded {loaded} row(s) into {table} ({queued} queued)")
    return True


def main(argv: Optional[list[str]] = None) -> int:
    """Parse command line arguments and run the requested action."""
    args = list(sys.argv[1:] if argv is None else argv)
    test_mode = False
    server_side = False
    verbose = False
    load_target = None
    flush_interval = DEFAULT_FLUSH_INTERVAL
    data_dir = None

    # Parse optional flags
    i = 0
    while i < len(args):
        if args[i] == "--test":
            test_mode = True
            args.pop(i)
        elif args[i] == "--server-side":
            server_side = True
            args.pop(i)
        elif args[i] == "--verbose":
            verbose = True
            args.pop(i)
        elif args[i] == "--load":
            if i + 2 >= len(args):
                sys.stderr.write("Error: --load requires a table and a file\n")
                return EXIT_FAILURE
            load_target = (args[i + 1], Path(args[i + 2]))
            del args[i:i + 3]
        elif args[i] in ("--flush-interval", "--data-dir"):
            if i + 1 >= len(args):
                sys.stderr.write(f"Error: {args[i]} requires a value\n")
                return EXIT_FAILURE
            if args[i] == "--flush-interval":
                try:
                    flush_interval = int(args[i + 1])
                except ValueError:
                    sys.stderr.write(f"Error: --flush-interval must be an integer, got {args[i + 1]!r}\n")
                    return EXIT_FAILURE
            else:
                data_dir = Path(args[i + 1])
            del args[i:i + 2]
        else:
            i += 1

    if len(args) != MIN_ARGS or not (test_mode or load_target):
        print_usage()
        return EXIT_FAILURE

    setup_logging(logging.DEBUG if verbose else logging.INFO)

    protocol, connection_string = args
    try:
        params = parse_connection_string(connection_string)
        options = {"server_side": server_side} if protocol in ("postgresql", "postgres") else {}
        adapter = create_adapter(
            protocol,
            host=params["host"],
            port=params["port"] or DB_DEFAULT_PORTS.get(protocol),
            database=params["database"],
            username=params["username"],
            password=params["password"],
            **options,
        )
    except ValueError as e:
        sys.stderr.write(f"Error: {e}\n")
        return EXIT_FAILURE

    if test_mode and not run_test(adapter):
        return EXIT_FAILURE

    if load_target:
        table, input_path = load_target
        if not run_load(adapter, table, input_path, flush_interval, data_dir):
            return EXIT_FAILURE

    return EXIT_SUCCESS


def run():
    """Entry point for the stageload command."""
    sys.exit(main())


if __name__ == "__main__":
    run()
