"""PostgreSQL installation discovery.

Finds PostgreSQL installations through their pg_config binary, either the
one on PATH (the active installation), one named explicitly, or the ones
matching the configured search patterns.
"""

import glob
import os
import re
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pgext.core.config import DEFAULT_SEARCH_PATTERNS
from pgext.core.context import ExecutionContext
from pgext.core.exceptions import ExecutionError, InstallationNotFoundError
from pgext.core.executor import CommandExecutor


# "PostgreSQL 16.4 (Ubuntu 16.4-1.pgdg22.04+1)", "PostgreSQL 18beta2", "PostgreSQL 9.6.24"
VERSION_PATTERN = re.compile(r"PostgreSQL\s+(\d+)(?:\.(\d+))?")

# key = 'value' lines of an extension control file
CONTROL_LINE_PATTERN = re.compile(r"^\s*([A-Za-z_]+)\s*=\s*(.*?)\s*$")

PG_CONFIG_TIMEOUT = 10


def parse_pg_version(output: str) -> tuple[int, str]:
    """Parse `pg_config --version` output.

    Returns:
        Tuple of (major version, full version string)

    Raises:
        ValueError: If the output is not a PostgreSQL version banner
    """
    match = VERSION_PATTERN.search(output)
    if not match:
        raise ValueError(f"unrecognized version string: {output.strip()!r}")

    version = output.strip().split()[1]
    return int(match.group(1)), version


@dataclass
class InstalledExtension:
    """An extension whose control file is present in an installation."""
    name: str
    default_version: str = ""
    comment: str = ""
    relocatable: bool = False
    requires: list[str] = field(default_factory=list)
    module_pathname: str = ""


def parse_control_file(path: Path) -> InstalledExtension:
    """Parse a `<name>.control` file into an InstalledExtension."""
    values: dict[str, str] = {}
    for line in path.read_text(errors="replace").splitlines():
        if line.lstrip().startswith("#"):
            continue
        match = CONTROL_LINE_PATTERN.match(line)
        if not match:
            continue
        key, raw = match.groups()
        values[key] = raw.strip().strip("'\"")

    requires = [r.strip() for r in values.get("requires", "").split(",") if r.strip()]

    return InstalledExtension(
        name=path.stem,
        default_version=values.get("default_version", ""),
        comment=values.get("comment", ""),
        relocatable=values.get("relocatable", "").lower() in ("true", "t", "on", "yes", "1"),
        requires=requires,
        module_pathname=values.get("module_pathname", ""),
    )


@dataclass(frozen=True)
class PostgresInstallation:
    """A PostgreSQL installation identified by its pg_config binary."""
    pg_config: Path
    major_version: int
    version: str
    bin_dir: Path
    share_dir: Path
    lib_dir: Path

    @property
    def extension_dir(self) -> Path:
        """Directory holding extension control and SQL files."""
        return self.share_dir / "extension"

    def installed_extensions(self) -> list[InstalledExtension]:
        """List extensions with a primary control file, sorted by name."""
        if not self.extension_dir.is_dir():
            return []

        extensions = []
        for path in sorted(self.extension_dir.glob("*.control")):
            # name--1.0.control files are secondary control files
            if "--" in path.stem:
                continue
            extensions.append(parse_control_file(path))
        return extensions


class PostgresDetector:
    """Locates PostgreSQL installations on this host.

    Nothing is cached: each CLI invocation builds a new detector and
    probes the host again.
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        *,
        search_patterns: Optional[list[str]] = None,
    ) -> None:
        """Initialize detector.

        Args:
            ctx: Execution context
            executor: Command executor
            search_patterns: Glob patterns for pg_config binaries
        """
        self.ctx = ctx
        self.executor = executor
        self.search_patterns = (
            list(search_patterns) if search_patterns is not None else list(DEFAULT_SEARCH_PATTERNS)
        )

    def probe(self, pg_config: Path) -> PostgresInstallation:
        """Read an installation's version and directories from pg_config.

        Args:
            pg_config: Path to the pg_config binary or to the directory holding it

        Returns:
            The installation

        Raises:
            InstallationNotFoundError: If pg_config is missing or unusable
        """
        if pg_config.is_dir():
            pg_config = pg_config / "pg_config"

        if not pg_config.is_file():
            raise InstallationNotFoundError(
                f"pg_config not found: {pg_config}",
                identifier=str(pg_config),
                hint="Point --path at a pg_config binary, e.g. /usr/lib/postgresql/17/bin/pg_config",
            )

        try:
            result = self.executor.run(
                [str(pg_config), "--version", "--bindir", "--sharedir", "--pkglibdir"],
                read_only=True,
                timeout=PG_CONFIG_TIMEOUT,
            )
        except ExecutionError as e:
            raise InstallationNotFoundError(
                f"Cannot query {pg_config}",
                identifier=str(pg_config),
                details=[e.message, *e.details],
            ) from e

        lines = result.stdout.strip().splitlines()
        if len(lines) < 4:
            raise InstallationNotFoundError(
                f"Unexpected pg_config output from {pg_config}",
                identifier=str(pg_config),
                details=lines,
            )

        try:
            major, version = parse_pg_version(lines[0])
        except ValueError as e:
            raise InstallationNotFoundError(
                f"Cannot determine PostgreSQL version from {pg_config}",
                identifier=str(pg_config),
                details=[str(e)],
            ) from e

        return PostgresInstallation(
            pg_config=pg_config,
            major_version=major,
            version=version,
            bin_dir=Path(lines[1].strip()),
            share_dir=Path(lines[2].strip()),
            lib_dir=Path(lines[3].strip()),
        )

    def detect_active(self) -> Optional[PostgresInstallation]:
        """Find the installation whose pg_config is first on PATH.

        Returns:
            The active installation, or None if there is none
        """
        path = shutil.which("pg_config")
        if not path:
            self.ctx.console.debug("pg_config not found in PATH")
            return None

        try:
            active = self.probe(Path(path))
        except InstallationNotFoundError as e:
            self.ctx.console.debug(f"ignoring pg_config in PATH: {e.message}")
            return None

        self.ctx.console.debug(f"active PostgreSQL {active.version} at {active.pg_config}")
        return active

    def list_installations(self) -> list[PostgresInstallation]:
        """Probe every pg_config matching the search patterns and on PATH.

        Returns:
            Installations sorted by major version, newest first
        """
        candidates: list[str] = []
        for pattern in self.search_patterns:
            candidates.extend(sorted(glob.glob(pattern)))

        on_path = shutil.which("pg_config")
        if on_path:
            candidates.append(on_path)

        seen: set[str] = set()
        installations = []
        for candidate in candidates:
            real = os.path.realpath(candidate)
            if real in seen:
                continue
            seen.add(real)

            try:
                installation = self.probe(Path(candidate))
            except InstallationNotFoundError as e:
                self.ctx.console.debug(f"skipping {candidate}: {e.message}")
                continue

            self.ctx.console.verbose(f"found PostgreSQL {installation.version} at {candidate}")
            installations.append(installation)

        installations.sort(key=lambda i: i.major_version, reverse=True)
        return installations

    def get_postgres(self, identifier: str) -> PostgresInstallation:
        """Find an installation by major version or pg_config path.

        Args:
            identifier: Major version ("16") or path to pg_config

        Returns:
            The matching installation

        Raises:
            InstallationNotFoundError: If nothing matches
        """
        if identifier.isdigit():
            major = int(identifier)
            for installation in self.list_installations():
                if installation.major_version == major:
                    return installation
            raise InstallationNotFoundError(
                f"PostgreSQL {major} installation not found",
                identifier=identifier,
                hint=f"Install it with: pgext ext add pg{major}",
            )

        return self.probe(Path(identifier).expanduser())
