"""Unit tests for configuration loading."""

import stat
from pathlib import Path

import pytest

from pgext.core.config import (
    AppConfig,
    DEFAULT_SEARCH_PATTERNS,
    EnvSettings,
    MachineConfig,
    get_example_config,
    init_config,
    resolve_config_path,
)
from pgext.core.exceptions import ConfigurationError


class TestMachineConfig:
    """Tests for MachineConfig."""

    def test_defaults(self):
        """Defaults use the built-in catalog and auto-detected manager."""
        config = MachineConfig()
        assert config.catalog.path is None
        assert config.postgres.search_patterns == DEFAULT_SEARCH_PATTERNS
        assert config.packages.manager == "auto"
        assert config.packages.use_sudo is True

    def test_load(self, tmp_path):
        """Values are read from YAML."""
        path = tmp_path / "config.yaml"
        path.write_text(
            "catalog:\n  path: /srv/catalog.yaml\n"
            "packages:\n  manager: dnf\n  use_sudo: false\n"
        )

        config = MachineConfig.load(path)

        assert config.catalog.path == Path("/srv/catalog.yaml")
        assert config.packages.manager == "dnf"
        assert config.packages.use_sudo is False

    def test_load_missing(self, tmp_path):
        """A missing file is a configuration error."""
        with pytest.raises(ConfigurationError) as exc:
            MachineConfig.load(tmp_path / "missing.yaml")
        assert exc.value.exit_code == 2

    def test_load_invalid_yaml(self, tmp_path):
        """Broken YAML is a configuration error."""
        path = tmp_path / "config.yaml"
        path.write_text("packages: [unclosed\n")
        with pytest.raises(ConfigurationError):
            MachineConfig.load(path)

    def test_load_invalid_manager(self, tmp_path):
        """Unsupported package managers are rejected."""
        path = tmp_path / "config.yaml"
        path.write_text("packages:\n  manager: pacman\n")
        with pytest.raises(ConfigurationError):
            MachineConfig.load(path)

    def test_relative_search_pattern(self, tmp_path):
        """Search patterns must be absolute."""
        path = tmp_path / "config.yaml"
        path.write_text("postgres:\n  search_patterns:\n    - bin/pg_config\n")
        with pytest.raises(ConfigurationError):
            MachineConfig.load(path)

    def test_example_config_loads(self, tmp_path):
        """The example written by config init is valid."""
        path = tmp_path / "config.yaml"
        path.write_text(get_example_config())

        config = MachineConfig.load(path)

        assert config.catalog.path is None
        assert config.packages.manager == "auto"

    def test_load_or_default(self, tmp_path):
        """A missing file gives defaults."""
        assert MachineConfig.load_or_default(tmp_path / "missing.yaml") == MachineConfig()


class TestAppConfig:
    """Tests for AppConfig."""

    def test_catalog_path_from_file(self, tmp_path):
        """The config file names the catalog."""
        config = MachineConfig(catalog={"path": tmp_path / "c.yaml"})
        app_config = AppConfig(config=config, env=EnvSettings())
        assert app_config.catalog_path == tmp_path / "c.yaml"

    def test_catalog_path_env_wins(self, tmp_path, monkeypatch):
        """PGEXT_CATALOG overrides the config file."""
        monkeypatch.setenv("PGEXT_CATALOG", str(tmp_path / "env.yaml"))
        config = MachineConfig(catalog={"path": tmp_path / "c.yaml"})

        app_config = AppConfig(config=config)

        assert app_config.catalog_path == tmp_path / "env.yaml"

    def test_resolve_config_path(self, tmp_path, monkeypatch):
        """Explicit path, then PGEXT_CONFIG, then the default."""
        monkeypatch.setenv("PGEXT_CONFIG", str(tmp_path / "env.yaml"))
        assert resolve_config_path(tmp_path / "cli.yaml") == tmp_path / "cli.yaml"
        assert resolve_config_path() == tmp_path / "env.yaml"


class TestInitConfig:
    """Tests for init_config."""

    def test_creates_private_file(self, tmp_path):
        """The file is created with mode 0600."""
        path = tmp_path / "etc" / "config.yaml"

        init_config(path)

        assert path.read_text() == get_example_config()
        assert stat.S_IMODE(path.stat().st_mode) == 0o600

    def test_refuses_overwrite(self, tmp_path):
        """Existing files are kept without force."""
        path = tmp_path / "config.yaml"
        path.write_text("packages: {}\n")

        with pytest.raises(ConfigurationError):
            init_config(path)

        init_config(path, force=True)
        assert path.read_text() == get_example_config()
