"""
Input validation utilities for the conformance pipeline.

Guards the few places where user input reaches SQL text or the filesystem:
store schema and table names, source directories and CLI row limits.
"""

import re


class ValidationError(ValueError):
    """Raised when input validation fails."""
    pass


# Basic reserved-word check; psycopg.sql quoting covers the rest
RESERVED_KEYWORDS = {
    "select", "insert", "update", "delete", "drop", "create", "alter",
    "table", "database", "index", "view", "user", "grant", "revoke"
}


def sanitize_sql_identifier(identifier: str, field_name: str = "identifier") -> str:
    """
    Sanitize an SQL identifier (schema name, table name, column name).

    Args:
        identifier: The identifier to sanitize
        field_name: Name of the field (for error messages)

    Returns:
        The validated identifier

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> sanitize_sql_identifier("silver")
        'silver'
        >>> sanitize_sql_identifier("crm_cust_info__staging")
        'crm_cust_info__staging'
        >>> sanitize_sql_identifier("silver; DROP TABLE x;")  # doctest: +SKIP
        ValidationError: identifier contains invalid characters
    """
    if not identifier or not isinstance(identifier, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    identifier = identifier.strip()

    if not re.match(r'^[a-zA-Z_][a-zA-Z0-9_]*$', identifier):
        raise ValidationError(
            f"{field_name} contains invalid characters. "
            "SQL identifiers must start with a letter or underscore and contain only "
            "alphanumeric characters and underscores."
        )

    if len(identifier) > 63:  # PostgreSQL limit
        raise ValidationError(f"{field_name} exceeds PostgreSQL maximum length of 63 characters")

    if identifier.lower() in RESERVED_KEYWORDS:
        raise ValidationError(
            f"{field_name} '{identifier}' is a reserved SQL keyword. "
            "Please use a different name."
        )

    return identifier


def validate_source_dir(source_dir: str, field_name: str = "source_dir") -> str:
    """
    Validate a raw source directory path.

    Args:
        source_dir: Directory path to validate
        field_name: Name of the field (for error messages)

    Returns:
        The validated path (stripped of whitespace)

    Raises:
        ValidationError: If validation fails

    Examples:
        >>> validate_source_dir("/data/datasets")
        '/data/datasets'
        >>> validate_source_dir("/data/*")  # doctest: +SKIP
        ValidationError: source_dir contains wildcards (* or ?)
    """
    if not source_dir or not isinstance(source_dir, str):
        raise ValidationError(f"{field_name} must be a non-empty string")

    source_dir = source_dir.strip()

    if not source_dir:
        raise ValidationError(f"{field_name} cannot be empty or whitespace-only")

    if "\x00" in source_dir:
        raise ValidationError(f"{field_name} contains null bytes")

    if "*" in source_dir or "?" in source_dir:
        raise ValidationError(f"{field_name} contains wildcards (* or ?)")

    if len(source_dir) > 4096:  # Linux PATH_MAX
        raise ValidationError(f"{field_name} exceeds maximum length of 4096 characters")

    return source_dir


def validate_limit(limit: int, field_name: str = "limit", max_limit: int = 10000) -> int:
    """
    Validate a row limit for printed read models.

    Examples:
        >>> validate_limit(20)
        20
        >>> validate_limit(0)  # doctest: +SKIP
        ValidationError: limit must be a positive integer
    """
    if not isinstance(limit, int):
        raise ValidationError(f"{field_name} must be an integer, got {type(limit).__name__}")

    if limit <= 0:
        raise ValidationError(f"{field_name} must be a positive integer, got {limit}")

    if limit > max_limit:
        raise ValidationError(f"{field_name} exceeds maximum of {max_limit}")

    return limit
