"""Structured logging for database and staging operations."""

import hashlib
import json
import logging
import re
import time
from typing import Optional

# Configure logger for database operations
db_logger = logging.getLogger("stageload.database")


def sanitize_dsn(dsn: str) -> str:
    """Sanitize DSN by removing credentials.

    Args:
        dsn: Database connection string

    Returns:
        DSN with credentials masked
    """
    return re.sub(r'://([^@]+)@', '://***:***@', dsn)


def hash_query(query: str) -> str:
    """Generate hash of statement for logging (deduplication).

    Args:
        query: SQL statement

    Returns:
        SHA256 hash of statement (first 16 characters)
    """
    return hashlib.sha256(query.encode()).hexdigest()[:16]


def log_connection(dsn: str, success: bool, error: Optional[str] = None, duration: float = 0.0) -> None:
    """Log database connection attempt.

    Args:
        dsn: Database connection string (will be sanitized)
        success: Whether connection succeeded
        error: Error message if failed
        duration: Connection time in seconds
    """
    log_data = {
        "event": "database_connection",
        "dsn": sanitize_dsn(dsn),
        "success": success,
        "duration_seconds": round(duration, 3),
    }

    if error:
        log_data["error"] = error

    if success:
        db_logger.info(json.dumps(log_data))
    else:
        db_logger.error(json.dumps(log_data))


def log_statement_execution(
    query: str,
    dsn: str,
    success: bool,
    row_count: int = 0,
    duration: float = 0.0,
    error: Optional[str] = None,
) -> None:
    """Log statement execution with metadata.

    Args:
        query: SQL statement (hashed, with a short preview)
        dsn: Database connection string (will be sanitized)
        success: Whether the statement executed successfully
        row_count: Number of rows affected
        duration: Execution time in seconds
        error: Error message if failed
    """
    log_data = {
        "event": "statement_execution",
        "query_hash": hash_query(query),
        "query_preview": query[:100] + ("..." if len(query) > 100 else ""),
        "dsn": sanitize_dsn(dsn),
        "success": success,
        "row_count": row_count,
        "duration_seconds": round(duration, 3),
        "timestamp": time.time(),
    }

    if error:
        log_data["error"] = error

    if success:
        db_logger.info(json.dumps(log_data))
    else:
        db_logger.error(json.dumps(log_data))


def log_staging_flush(table: str, path: str, row_count: int, duration: float = 0.0) -> None:
    """Log rows appended to a staging file."""
    log_data = {
        "event": "staging_flush",
        "table": table,
        "path": path,
        "row_count": row_count,
        "duration_seconds": round(duration, 3),
    }

    db_logger.debug(json.dumps(log_data))


def log_bulk_load(
    table: str,
    path: str,
    success: bool,
    row_count: int = 0,
    duration: float = 0.0,
    error: Optional[str] = None,
) -> None:
    """Log a bulk load of a staging file into its table.

    A failed load is logged at ERROR level with the retained staging path so
    the file can be inspected or the load retried.
    """
    log_data = {
        "event": "bulk_load",
        "table": table,
        "path": path,
        "success": success,
        "row_count": row_count,
        "duration_seconds": round(duration, 3),
    }

    if error:
        log_data["error"] = error

    if success:
        db_logger.info(json.dumps(log_data))
    else:
        db_logger.error(json.dumps(log_data))


def log_pool_operation(dsn: str, operation: str, pool_size: int, active_connections: int) -> None:
    """Log connection pool operations.

    Args:
        dsn: Database connection string (will be sanitized)
        operation: Operation type (acquire, release, close_all)
        pool_size: Maximum pool size
        active_connections: Current number of active connections
    """
    log_data = {
        "event": "connection_pool",
        "dsn": sanitize_dsn(dsn),
        "operation": operation,
        "pool_size": pool_size,
        "active_connections": active_connections,
    }

    db_logger.debug(json.dumps(log_data))


class QueryTimer:
    """Context manager for timing statement execution."""

    def __init__(self):
        self.start_time: float = 0.0
        self.duration: float = 0.0

    def __enter__(self):
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.duration = time.time() - self.start_time
