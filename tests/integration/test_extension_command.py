"""Integration tests for the ext command group.

Tests the CLI interface of pgext ext, mocking PostgreSQL discovery so no
local PostgreSQL is needed. The built-in catalog is used unless a test
asserts that no catalog access happens.
"""

import pytest
from typing import Generator
from unittest.mock import MagicMock, patch

from typer.testing import CliRunner

from pgext import __version__
from pgext.cli import app
from pgext.core.exceptions import InstallationNotFoundError


runner = CliRunner()


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch) -> None:
    """Point configuration at an empty temporary location."""
    monkeypatch.setenv("PGEXT_CONFIG", str(tmp_path / "config.yaml"))
    monkeypatch.delenv("PGEXT_CATALOG", raising=False)


@pytest.fixture
def mock_detector() -> Generator[MagicMock, None, None]:
    """Mock PostgresDetector: no active PostgreSQL, nothing installed."""
    with patch("pgext.commands.extension.PostgresDetector") as mock:
        instance = mock.return_value
        instance.detect_active.return_value = None
        instance.get_postgres.side_effect = InstallationNotFoundError("not found")
        instance.list_installations.return_value = []
        yield instance


@pytest.fixture
def mock_load_catalog() -> Generator[MagicMock, None, None]:
    """Mock catalog loading to observe whether it happens."""
    with patch("pgext.commands.extension.load_catalog") as mock:
        yield mock


@pytest.fixture
def apt_host() -> Generator[None, None, None]:
    """Pretend to be root on a Debian host."""
    with patch(
        "pgext.services.packages.shutil.which",
        side_effect=lambda name: "/usr/bin/apt-get" if name == "apt-get" else None,
    ), patch("pgext.services.packages.os.geteuid", return_value=0):
        yield


class TestVersionSelection:
    """Tests for --version / --path handling."""

    def test_both_selectors_rejected(self, mock_detector, mock_load_catalog):
        """--version with --path exits before touching the catalog."""
        result = runner.invoke(
            app,
            ["ext", "info", "postgis", "--version", "16", "--path", "/usr/pg16/bin/pg_config"],
        )

        assert result.exit_code == 1
        assert "Both PostgreSQL version and pg_config path" in result.output
        mock_load_catalog.assert_not_called()

    def test_both_selectors_rejected_for_list(self, mock_detector, mock_load_catalog):
        """list also resolves the version first."""
        result = runner.invoke(app, ["ext", "list", "-v", "16", "-p", "/usr/pg16/bin/pg_config"])

        assert result.exit_code == 1
        mock_load_catalog.assert_not_called()

    def test_bad_path_distinct_exit_code(self, mock_detector, mock_load_catalog):
        """An unresolvable --path exits with its own code and no output."""
        result = runner.invoke(app, ["ext", "list", "-p", "/nonexistent/pg_config"])

        assert result.exit_code == 3
        assert "Failed to get PostgreSQL by pg_config path" in result.output
        assert "Name" not in result.output
        mock_load_catalog.assert_not_called()

    def test_version_kept_as_given(self, mock_detector):
        """Any positive version is used as given, even an old one."""
        result = runner.invoke(app, ["ext", "list", "-v", "9"])

        assert result.exit_code == 0
        assert "PostgreSQL 9" in result.output

    def test_negative_version(self, mock_detector, mock_load_catalog):
        """Negative versions are validation errors."""
        result = runner.invoke(app, ["ext", "list", "--version=-1"])

        assert result.exit_code == 4
        mock_load_catalog.assert_not_called()

    def test_both_selectors_checked_before_version_value(self, mock_detector, mock_load_catalog):
        """Both selectors are a usage error whatever the version value."""
        result = runner.invoke(app, ["ext", "list", "-v", "9", "-p", "/usr/pg16/bin/pg_config"])

        assert result.exit_code == 1
        assert "Both PostgreSQL version and pg_config path" in result.output
        mock_load_catalog.assert_not_called()

    def test_empty_path_is_unset(self, mock_detector):
        """An empty --path is treated as not given."""
        result = runner.invoke(app, ["ext", "list", "-p", ""])
        with_version = runner.invoke(app, ["ext", "list", "-v", "16", "-p", ""])

        assert result.exit_code == 0
        assert "postgis" in result.output
        assert with_version.exit_code == 0
        assert "PostgreSQL 16" in with_version.output
        mock_detector.get_postgres.assert_called_once_with("16")

    def test_both_selectors_checked_before_config(self, tmp_path, mock_detector):
        """A broken configuration file does not hide the selector conflict."""
        (tmp_path / "config.yaml").write_text("catalog: [unclosed\n")

        conflict = runner.invoke(app, ["ext", "list", "-v", "16", "-p", "/usr/pg16/bin/pg_config"])
        broken = runner.invoke(app, ["ext", "list", "-v", "16"])

        assert conflict.exit_code == 1
        assert broken.exit_code == 2


class TestInfo:
    """Tests for pgext ext info."""

    def test_alias_matches_name(self, mock_detector):
        """info by alias prints the same box as info by name."""
        by_name = runner.invoke(app, ["ext", "info", "postgis"])
        by_alias = runner.invoke(app, ["ext", "info", "gis"])

        assert by_name.exit_code == 0
        assert by_alias.exit_code == 0
        assert by_name.output == by_alias.output
        assert "Required By" in by_name.output
        assert "postgis_raster" in by_name.output
        assert "Depend  :  No" in by_name.output

    def test_unknown_names_do_not_abort(self, mock_detector):
        """Unknown names are reported and the rest are still shown."""
        result = runner.invoke(app, ["ext", "info", "nope", "vector"])

        assert result.exit_code == 0
        assert "extension 'nope' not found" in result.output
        assert "vector data type" in result.output

    def test_info_with_unknown_version(self, mock_detector):
        """A version without a local installation still works."""
        result = runner.invoke(app, ["ext", "info", "timescaledb", "-v", "13"])

        assert result.exit_code == 0
        assert "Known Issues" in result.output

    def test_hidden_aliases(self, mock_detector):
        """Short command and group aliases are accepted."""
        assert runner.invoke(app, ["e", "i", "gis"]).exit_code == 0
        assert runner.invoke(app, ["extension", "info", "gis"]).exit_code == 0


class TestList:
    """Tests for pgext ext list."""

    def test_list_all(self, mock_detector):
        """Without a query the whole catalog is listed."""
        result = runner.invoke(app, ["ext", "list"])

        assert result.exit_code == 0
        assert "postgis" in result.output
        assert "hstore" in result.output

    def test_list_for_version(self, mock_detector):
        """With a version the table is scoped to it."""
        result = runner.invoke(app, ["ext", "ls", "gis", "-v", "17"])

        assert result.exit_code == 0
        assert "found 3 extensions matching 'gis'" in result.output
        assert "PostgreSQL 17" in result.output

    def test_no_match_is_not_an_error(self, mock_detector):
        """An empty search result exits 0."""
        result = runner.invoke(app, ["ext", "find", "zzzzzz"])

        assert result.exit_code == 0
        assert "no extensions found matching 'zzzzzz'" in result.output

    def test_too_many_queries(self, mock_detector, mock_load_catalog):
        """Only one query is accepted."""
        result = runner.invoke(app, ["ext", "list", "gis", "olap"])

        assert result.exit_code == 1
        assert "only one search query" in result.output
        mock_load_catalog.assert_not_called()


class TestPackageCommands:
    """Tests for add / rm / update."""

    def test_add_dry_run(self, mock_detector, apt_host):
        """Dry-run shows the package manager command."""
        with patch("pgext.core.executor.subprocess.run") as run:
            result = runner.invoke(app, ["ext", "add", "pgvector", "-v", "16", "--dry-run"])

        assert result.exit_code == 0
        assert "apt-get install postgresql-16-pgvector" in result.output
        run.assert_not_called()

    def test_add_runs_package_manager(self, mock_detector, apt_host):
        """add runs the package manager with -y."""
        with patch("pgext.core.executor.subprocess.run") as run:
            run.return_value = MagicMock(returncode=0, stdout="", stderr="")
            result = runner.invoke(app, ["ext", "add", "vector", "pg_cron", "-v", "16", "-y"])

        assert result.exit_code == 0
        command = run.call_args[0][0]
        assert command == [
            "apt-get", "install", "-y", "postgresql-16-pgvector", "postgresql-16-cron",
        ]

    def test_add_failure_exit_code(self, mock_detector, apt_host):
        """A failing package manager exits with the execution error code."""
        with patch("pgext.core.executor.subprocess.run") as run:
            run.return_value = MagicMock(returncode=100, stdout="", stderr="")
            result = runner.invoke(app, ["ext", "add", "vector", "-v", "16"])

        assert result.exit_code == 6

    def test_add_without_version(self, mock_detector, apt_host):
        """Catalog extensions cannot be installed without a version."""
        result = runner.invoke(app, ["ext", "add", "vector"])

        assert result.exit_code == 8
        assert "without a PostgreSQL version" in result.output

    def test_rm_dry_run(self, mock_detector, apt_host):
        """rm removes the extension packages."""
        result = runner.invoke(app, ["ext", "rm", "gis", "-v", "16", "--dry-run"])

        assert result.exit_code == 0
        assert "apt-get remove postgresql-16-postgis-3" in result.output

    def test_update_without_installation(self, mock_detector, apt_host):
        """update with no names needs an installation."""
        result = runner.invoke(app, ["ext", "update", "-v", "16"])

        assert result.exit_code == 8


class TestStatusAndScan:
    """Tests for status and scan."""

    def test_status_without_installation(self, mock_detector):
        """No installation is a warning."""
        result = runner.invoke(app, ["ext", "status"])

        assert result.exit_code == 0
        assert "no PostgreSQL installation found" in result.output

    def test_status_hides_contrib(self, mock_detector, pg16):
        """Contrib extensions are hidden unless --contrib."""
        pg16.extension_dir.mkdir(parents=True)
        (pg16.extension_dir / "vector.control").write_text("default_version = '0.8.0'\n")
        (pg16.extension_dir / "hstore.control").write_text("default_version = '1.8'\n")
        mock_detector.detect_active.return_value = pg16

        hidden = runner.invoke(app, ["ext", "status"])
        shown = runner.invoke(app, ["ext", "st", "--contrib"])

        assert hidden.exit_code == 0
        assert "1 contrib extensions hidden" in hidden.output
        assert "hstore" not in hidden.output
        assert "hstore" in shown.output

    def test_scan_without_installation(self, mock_detector):
        """scan needs an installation."""
        result = runner.invoke(app, ["ext", "scan"])

        assert result.exit_code == 1
        assert "No PostgreSQL installation to scan" in result.output

    def test_scan(self, mock_detector, pg16):
        """scan lists installations and control files."""
        pg16.extension_dir.mkdir(parents=True)
        (pg16.extension_dir / "vector.control").write_text(
            "comment = 'vector type'\ndefault_version = '0.8.0'\nrelocatable = true\n"
        )
        mock_detector.detect_active.return_value = pg16
        mock_detector.list_installations.return_value = [pg16]

        result = runner.invoke(app, ["ext", "scan"])

        assert result.exit_code == 0
        assert "PostgreSQL Installations" in result.output
        assert "1 extensions found in PostgreSQL 16.4" in result.output


class TestRootCommands:
    """Tests for root options and config commands."""

    def test_version(self):
        """--version prints the tool version."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output

    def test_config_init_and_validate(self, tmp_path):
        """config init writes a file that config validate accepts."""
        path = tmp_path / "pgext.yaml"

        init = runner.invoke(app, ["config", "init", "--config", str(path)])
        again = runner.invoke(app, ["config", "init", "--config", str(path)])
        validate = runner.invoke(app, ["config", "validate", "--config", str(path)])

        assert init.exit_code == 0
        assert path.exists()
        assert again.exit_code == 1
        assert validate.exit_code == 0

    def test_custom_catalog(self, tmp_path, monkeypatch, mock_detector):
        """PGEXT_CATALOG replaces the built-in catalog."""
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text("- name: my_ext\n  alias: mine\n  description: in-house extension\n")
        monkeypatch.setenv("PGEXT_CATALOG", str(catalog))

        result = runner.invoke(app, ["ext", "info", "mine"])

        assert result.exit_code == 0
        assert "in-house extension" in result.output

    def test_broken_catalog(self, tmp_path, monkeypatch, mock_detector):
        """A broken catalog exits with the catalog error code."""
        catalog = tmp_path / "catalog.yaml"
        catalog.write_text("- name: a\n  alias: x\n- name: b\n  alias: x\n")
        monkeypatch.setenv("PGEXT_CATALOG", str(catalog))

        result = runner.invoke(app, ["ext", "list"])

        assert result.exit_code == 5
