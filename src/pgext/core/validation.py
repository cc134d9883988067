"""Input validation utilities.

Provides validation for:
- PostgreSQL major versions given on the command line
- Extension / package names passed to the package manager
- pg_config paths

All validators return the validated value or raise ValidationError.
"""

import re
from pathlib import Path

from pgext.core.exceptions import ValidationError


# Extension and package names: letters, digits and a few separators,
# never starting with a dash so they cannot be parsed as an option
PACKAGE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.+\-]*$")

# Longest name accepted (PostgreSQL NAMEDATALEN - 1)
MAX_NAME_LENGTH = 63


def validate_major_version(value: int) -> int:
    """Validate a PostgreSQL major version.

    Zero means "not specified". Any positive version is accepted as given,
    including ones the catalog does not know.

    Args:
        value: Major version number

    Returns:
        The validated version

    Raises:
        ValidationError: If the version is negative
    """
    if value < 0:
        raise ValidationError(
            f"Invalid PostgreSQL major version: {value}",
            hint="Use a positive major version, e.g. -v 17",
        )

    return value


def validate_package_name(value: str, name_type: str = "extension") -> str:
    """Validate an extension or package name before it reaches apt/dnf.

    Args:
        value: Name to validate
        name_type: Type for error messages

    Returns:
        The validated name

    Raises:
        ValidationError: If validation fails
    """
    if not value:
        raise ValidationError(
            f"{name_type.title()} name cannot be empty",
            hint="Provide a valid name",
        )

    if len(value) > MAX_NAME_LENGTH:
        raise ValidationError(
            f"{name_type.title()} name exceeds maximum length "
            f"({len(value)} > {MAX_NAME_LENGTH})",
            details=[f"Provided: {value[:50]}..."],
        )

    if not PACKAGE_NAME_PATTERN.match(value):
        raise ValidationError(
            f"Invalid {name_type} name: '{value}'",
            hint="Names contain letters, digits, '_', '-', '.', '+' and cannot start with '-'",
        )

    return value


def validate_pg_config_path(value: str) -> Path:
    """Validate a pg_config path given with --path.

    Existence is not checked here: a path that does not resolve to an
    installation is reported by the resolver with its own exit code.

    Args:
        value: Path to pg_config binary or its bin directory

    Returns:
        Expanded path

    Raises:
        ValidationError: If the path is empty or contains NUL bytes
    """
    if not value or not value.strip():
        raise ValidationError(
            "pg_config path cannot be empty",
            hint="Use -p /usr/lib/postgresql/17/bin/pg_config",
        )

    if "\x00" in value:
        raise ValidationError("pg_config path contains a null byte")

    return Path(value.strip()).expanduser()
