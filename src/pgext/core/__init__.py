"""Core framework components for the pgext CLI."""

from pgext.core.exceptions import (
    PgExtError,
    UsageError,
    ConfigurationError,
    InstallationNotFoundError,
    ValidationError,
    CatalogError,
    ExecutionError,
    PrerequisiteError,
    PackageError,
)

from pgext.core.context import ExecutionContext, create_context
from pgext.core.output import console, Console, Verbosity, handle_error
from pgext.core.config import AppConfig, MachineConfig
from pgext.core.executor import CommandExecutor, CommandResult

__all__ = [
    # Exceptions
    "PgExtError",
    "UsageError",
    "ConfigurationError",
    "InstallationNotFoundError",
    "ValidationError",
    "CatalogError",
    "ExecutionError",
    "PrerequisiteError",
    "PackageError",
    # Context
    "ExecutionContext",
    "create_context",
    # Output
    "console",
    "Console",
    "Verbosity",
    "handle_error",
    # Config
    "AppConfig",
    "MachineConfig",
    # Executor
    "CommandExecutor",
    "CommandResult",
]
