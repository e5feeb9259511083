"""Constants and static configuration for stageload."""

# Bulk load staging
DEFAULT_FLUSH_INTERVAL = 1_000  # Rows queued per table before a disk flush
DATA_DIR_NAME = "data"  # Staging directory, next to the running executable
STAGING_FILE_SUFFIX = ".dat"
DATA_DIR_MODE = 0o755
FIELD_SEPARATOR = "\t"
ROW_TERMINATOR = "\n"

# Application constants
VERSION = "0.3.0"
EXIT_SUCCESS = 0
EXIT_FAILURE = 1
MIN_ARGS = 2  # protocol and connection string

# Connection string
CONNECTION_STRING_PREFIX = "dbconnect="
CONNECTION_STRING_MIN_FIELDS = 5  # host,port,database,user,password

# Secrets
SECRET_KEY_ENV = "STAGELOAD_SECRET_KEY"
SECRET_KEY_DIR = ".stageload"
SECRET_NONCE_SIZE = 12  # 96-bit nonce for GCM

# Database constants
DB_CONNECT_TIMEOUT = 5.0  # Seconds allowed to establish a connection
DB_STATEMENT_TIMEOUT = 300.0  # Bulk loads can run for a while
DB_POOL_SIZE = 5  # Default connection pool size per DSN
DB_SUPPORTED_PROTOCOLS = ["postgresql", "sqlserver", "oracle", "mysql"]
DB_DEFAULT_PORTS = {
    "postgresql": 5432,
    "sqlserver": 1433,
    "oracle": 1521,
    "mysql": 3306,
}
