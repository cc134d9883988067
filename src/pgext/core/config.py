"""Configuration management using Pydantic.

Provides:
- Typed configuration models with validation
- YAML file loading with defaults
- Environment variable overrides
- Configuration initialization and display
"""

import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from pgext.core.exceptions import ConfigurationError


# Default configuration paths
DEFAULT_CONFIG_PATH = Path("/etc/pgext/config.yaml")

# Where pg_config binaries live on common distributions
DEFAULT_SEARCH_PATTERNS: list[str] = [
    "/usr/lib/postgresql/*/bin/pg_config",        # Debian / Ubuntu (PGDG)
    "/usr/pgsql-*/bin/pg_config",                  # EL / Fedora (PGDG)
    "/usr/local/pgsql/bin/pg_config",              # source builds
    "/opt/homebrew/opt/postgresql@*/bin/pg_config",
    "/usr/local/opt/postgresql@*/bin/pg_config",
]

SUPPORTED_MANAGERS = {"auto", "apt", "dnf", "yum"}


class CatalogConfig(BaseModel):
    """Extension catalog configuration."""

    # Custom catalog file; the built-in catalog is used when unset
    path: Optional[Path] = None


class PostgresConfig(BaseModel):
    """PostgreSQL discovery configuration."""

    search_patterns: list[str] = Field(default_factory=lambda: list(DEFAULT_SEARCH_PATTERNS))

    @field_validator("search_patterns")
    @classmethod
    def validate_search_patterns(cls, v: list[str]) -> list[str]:
        patterns = [p.strip() for p in v if p and p.strip()]
        for pattern in patterns:
            if not pattern.startswith("/"):
                raise ValueError(f"search pattern must be an absolute path: {pattern}")
        return patterns


class PackageConfig(BaseModel):
    """Package manager configuration."""

    manager: str = "auto"
    use_sudo: bool = True

    @field_validator("manager")
    @classmethod
    def validate_manager(cls, v: str) -> str:
        if v not in SUPPORTED_MANAGERS:
            raise ValueError(f"Package manager must be one of: {sorted(SUPPORTED_MANAGERS)}")
        return v


class MachineConfig(BaseModel):
    """Root configuration model, loaded from /etc/pgext/config.yaml."""

    catalog: CatalogConfig = Field(default_factory=CatalogConfig)
    postgres: PostgresConfig = Field(default_factory=PostgresConfig)
    packages: PackageConfig = Field(default_factory=PackageConfig)

    @classmethod
    def load(cls, path: Path) -> "MachineConfig":
        """Load configuration from YAML file.

        Args:
            path: Path to configuration file

        Returns:
            Loaded configuration

        Raises:
            ConfigurationError: If file not found or invalid
        """
        if not path.exists():
            raise ConfigurationError(
                f"Configuration file not found: {path}",
                hint="Create it with: pgext config init",
            )

        try:
            with open(path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {path}",
                details=[str(e)],
            ) from e
        except PermissionError:
            raise ConfigurationError(
                f"Cannot read configuration file: {path}",
                hint="Check file permissions or run with sudo",
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Invalid configuration: {path} must contain a mapping",
            )

        # Sections holding only comments load as None
        data = {key: value for key, value in data.items() if value is not None}

        try:
            return cls(**data)
        except Exception as e:
            raise ConfigurationError(
                f"Invalid configuration: {e}",
                details=[str(e)],
            ) from e

    @classmethod
    def load_or_default(cls, path: Optional[Path] = None) -> "MachineConfig":
        """Load configuration, falling back to defaults if file doesn't exist."""
        if path is None:
            path = DEFAULT_CONFIG_PATH

        if path.exists():
            return cls.load(path)
        return cls()

    def to_yaml(self) -> str:
        """Convert configuration to YAML string."""
        data = self.model_dump(mode="json", exclude_none=True)
        return yaml.dump(data, default_flow_style=False, sort_keys=False)


class EnvSettings(BaseSettings):
    """Overrides loaded from environment variables."""

    pgext_config: Optional[Path] = Field(None, alias="PGEXT_CONFIG")
    pgext_catalog: Optional[Path] = Field(None, alias="PGEXT_CATALOG")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"


class AppConfig:
    """Application configuration combining config file and environment.

    This is the main interface for accessing configuration throughout the app.
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config: Optional[MachineConfig] = None,
        env: Optional[EnvSettings] = None,
    ) -> None:
        """Initialize application configuration.

        Args:
            config_path: Path to config file (uses default if None)
            config: Pre-loaded config (skips file loading if provided)
            env: Pre-loaded environment overrides
        """
        self.config_path = config_path or DEFAULT_CONFIG_PATH
        self._config = config or MachineConfig.load_or_default(self.config_path)
        self._env = env or EnvSettings()

    @property
    def config(self) -> MachineConfig:
        """Get the machine configuration."""
        return self._config

    @property
    def env(self) -> EnvSettings:
        """Get the environment overrides."""
        return self._env

    @property
    def postgres(self) -> PostgresConfig:
        """Shortcut to PostgreSQL discovery config."""
        return self._config.postgres

    @property
    def packages(self) -> PackageConfig:
        """Shortcut to package manager config."""
        return self._config.packages

    @property
    def catalog_path(self) -> Optional[Path]:
        """Catalog file to load; PGEXT_CATALOG wins over the config file."""
        return self._env.pgext_catalog or self._config.catalog.path


def resolve_config_path(path: Optional[Path] = None) -> Path:
    """Pick the config file: explicit option, then PGEXT_CONFIG, then default."""
    if path is not None:
        return path
    return EnvSettings().pgext_config or DEFAULT_CONFIG_PATH


def get_example_config() -> str:
    """Generate example configuration file content."""
    return """# pgext configuration

# Extension catalog
catalog:
  # Custom catalog YAML (defaults to the built-in catalog)
  # Can also be set with PGEXT_CATALOG
  # path: /etc/pgext/extensions.yaml

# PostgreSQL discovery
postgres:
  # Glob patterns used to find pg_config binaries
  search_patterns:
    - /usr/lib/postgresql/*/bin/pg_config
    - /usr/pgsql-*/bin/pg_config
    - /usr/local/pgsql/bin/pg_config

# Package manager used for add / rm / update
packages:
  manager: auto  # auto, apt, dnf, yum
  use_sudo: true
"""


def init_config(path: Path, force: bool = False) -> None:
    """Initialize a new configuration file.

    Args:
        path: Path to create config file
        force: Overwrite if exists

    Raises:
        ConfigurationError: If file exists and force is False
    """
    if path.exists() and not force:
        raise ConfigurationError(
            f"Configuration file already exists: {path}",
            hint="Use --force to overwrite",
        )

    path.parent.mkdir(parents=True, exist_ok=True)

    content = get_example_config()
    path.write_text(content)

    os.chmod(path, 0o600)
