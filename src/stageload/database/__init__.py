"""Database integration module for stageload.

Architecture:
- connection.py: connection string / DSN parsing and connection pooling
- secrets.py: decryption of stored passwords
- validation.py: identifier validation and per-dialect quoting
- logging.py: structured logging of connections, statements and loads
- adapters/: backend implementations (PostgreSQL, SQL Server, Oracle, MySQL)
"""

from stageload.database.connection import ConnectionPool, parse_connection_string, parse_dsn
from stageload.database.secrets import PasswordDecrypter, is_base64_encoded
from stageload.database.validation import quote_identifier, validate_identifier

__all__ = [
    "ConnectionPool",
    "parse_connection_string",
    "parse_dsn",
    "PasswordDecrypter",
    "is_base64_encoded",
    "quote_identifier",
    "validate_identifier",
]
