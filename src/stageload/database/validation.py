"""Identifier validation and per-dialect quoting.

Table and column names are interpolated into statements, so they are checked
against an allow-list pattern before any SQL is built. Values always travel as
bound parameters.
"""

import re

# Plain identifier, optionally qualified by a single schema part
IDENTIFIER_PATTERN = re.compile(r'^[A-Za-z_][A-Za-z0-9_$#]*(\.[A-Za-z_][A-Za-z0-9_$#]*)?$')

MAX_IDENTIFIER_LENGTH = 128

# Quote characters per dialect (open, close)
QUOTE_CHARS = {
    "postgresql": ('"', '"'),
    # Oracle folds unquoted names to upper case; quoting would make them case sensitive
    "oracle": ("", ""),
    "sqlserver": ("[", "]"),
    "mysql": ("`", "`"),
}


def validate_identifier(name: str) -> str:
    """Validate a table or column identifier.

    Args:
        name: Identifier, optionally schema-qualified (``schema.table``)

    Returns:
        The identifier unchanged

    Raises:
        ValueError: If the identifier is empty, too long, or contains
            characters outside the allow-list
    """
    if not name or not name.strip():
        raise ValueError("Identifier cannot be empty")

    if len(name) > MAX_IDENTIFIER_LENGTH:
        raise ValueError(
            f"Identifier too long ({len(name)} > {MAX_IDENTIFIER_LENGTH}): {name[:40]}..."
        )

    if not IDENTIFIER_PATTERN.match(name):
        raise ValueError(
            f"Invalid identifier: {name!r}\n"
            f"  Hint: Use letters, digits, '_', '$' or '#', optionally qualified as schema.table"
        )

    return name


def is_valid_identifier(name: str) -> bool:
    """Quick check if an identifier passes validation."""
    try:
        validate_identifier(name)
    except ValueError:
        return False
    return True


def quote_identifier(name: str, dialect: str = "postgresql") -> str:
    """Validate and quote an identifier for the given dialect.

    Each dot-separated part is quoted separately.

    Examples:
        >>> quote_identifier("public.events")
        '"public"."events"'
        >>> quote_identifier("dbo.events", dialect="sqlserver")
        '[dbo].[events]'
        >>> quote_identifier("events", dialect="mysql")
        '`events`'
    """
    validate_identifier(name)

    if dialect not in QUOTE_CHARS:
        raise ValueError(f"Unsupported dialect for quoting: {dialect}")

    open_char, close_char = QUOTE_CHARS[dialect]
    return ".".join(f"{open_char}{part}{close_char}" for part in name.split("."))
