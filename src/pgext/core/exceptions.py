"""Custom exceptions for the pgext CLI.

All exceptions provide:
- Clear error messages
- Optional hints for resolution
- Optional details for debugging
- Exit codes for proper shell integration
"""

from typing import Optional


class PgExtError(Exception):
    """Base exception for all pgext errors.

    Attributes:
        message: Human-readable error description
        hint: Suggested action to resolve the error
        details: Additional context for debugging
        exit_code: Shell exit code (1-127)
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or []

    def __str__(self) -> str:
        return self.message


class UsageError(PgExtError):
    """Invalid combination of command line arguments.

    Raised when:
    - Both --version and --path are given
    - More than one search query is given
    """
    exit_code = 1


class ConfigurationError(PgExtError):
    """Configuration file or settings errors.

    Raised when:
    - Config file not found or unreadable
    - Invalid YAML syntax
    - Invalid configuration values
    """
    exit_code = 2


class InstallationNotFoundError(PgExtError):
    """No PostgreSQL installation matches the given selector.

    Fatal when the selector is a pg_config path, since the path names
    a concrete installation. A bare major version may legitimately have
    no local installation, so the resolver treats it as a miss.
    """
    exit_code = 3

    def __init__(
        self,
        message: str,
        *,
        identifier: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, hint=hint, details=details)
        self.identifier = identifier


class ValidationError(PgExtError):
    """Input validation errors.

    Raised when:
    - Major version out of range
    - Extension or package name looks like an option or shell syntax
    - Empty pg_config path
    """
    exit_code = 4


class CatalogError(PgExtError):
    """Extension catalog errors.

    Raised when:
    - Catalog file missing or not a list of entries
    - Duplicate extension names
    - Two extensions share an alias
    - Entry has invalid field values
    """
    exit_code = 5


class ExecutionError(PgExtError):
    """Command execution failures.

    Raised when:
    - Package manager returns non-zero exit code
    - pg_config cannot be executed
    """
    exit_code = 6

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        if not details:
            details = []
        if return_code is not None:
            details.append(f"Exit code: {return_code}")
        if stderr:
            details.append(f"Error output: {stderr}")
        super().__init__(message, hint=hint, details=details)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class PrerequisiteError(PgExtError):
    """Missing prerequisites.

    Raised when:
    - No supported package manager (apt-get, dnf, yum) found
    - Configured package manager not available
    """
    exit_code = 7


class PackageError(PgExtError):
    """Package resolution errors.

    Raised when:
    - None of the requested names map to installable packages
    - No PostgreSQL major version is known for a versioned package
    """
    exit_code = 8
