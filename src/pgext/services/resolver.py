"""PostgreSQL major version resolution.

Every ext command targets one PostgreSQL major version. It comes from,
in order of precedence:

1. --version: a hint. It is used even when no such installation exists,
   so the catalog can be browsed for versions not installed locally.
2. --path: an assertion that a concrete installation lives there.
   If it does not resolve, the command cannot continue.
3. The active installation (pg_config on PATH).
4. Nothing: major version 0, commands fall back to version-agnostic output.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pgext.core.context import ExecutionContext
from pgext.core.exceptions import InstallationNotFoundError, UsageError
from pgext.services.postgres import PostgresDetector, PostgresInstallation


class VersionSource(Enum):
    """Where a resolved major version came from."""
    EXPLICIT_VERSION = "version"
    CONFIG_PATH = "path"
    ACTIVE = "active"
    NONE = "none"


@dataclass(frozen=True)
class Resolution:
    """The PostgreSQL context an ext command operates on."""
    major_version: int = 0
    installation: Optional[PostgresInstallation] = None
    source: VersionSource = VersionSource.NONE

    @property
    def known(self) -> bool:
        """True when a major version is known."""
        return self.major_version != 0


class VersionResolver:
    """Resolves --version / --path / active installation into a Resolution."""

    def __init__(self, ctx: ExecutionContext, detector: PostgresDetector) -> None:
        self.ctx = ctx
        self.detector = detector

    def resolve(self, version: int = 0, pg_config: Optional[str] = None) -> Resolution:
        """Resolve the target PostgreSQL major version.

        Args:
            version: Major version from --version (0 = unset)
            pg_config: pg_config path from --path (None or "" = unset)

        Returns:
            Resolution with major_version 0 when nothing is known

        Raises:
            UsageError: If both version and pg_config are given
            InstallationNotFoundError: If pg_config does not resolve
        """
        active = self.detector.detect_active()

        if version and pg_config:
            raise UsageError(
                "Both PostgreSQL version and pg_config path are specified",
                hint="Use either --version or --path, not both",
            )

        if version:
            try:
                installation = self.detector.get_postgres(str(version))
            except InstallationNotFoundError as e:
                self.ctx.console.debug(f"{e.message}, continuing with version {version}")
                installation = None
            return Resolution(
                major_version=version,
                installation=installation,
                source=VersionSource.EXPLICIT_VERSION,
            )

        if pg_config:
            try:
                installation = self.detector.get_postgres(pg_config)
            except InstallationNotFoundError as e:
                raise InstallationNotFoundError(
                    f"Failed to get PostgreSQL by pg_config path {pg_config}: {e.message}",
                    identifier=pg_config,
                    hint=e.hint,
                    details=e.details,
                ) from e
            return Resolution(
                major_version=installation.major_version,
                installation=installation,
                source=VersionSource.CONFIG_PATH,
            )

        if active is not None:
            self.ctx.console.debug(f"using active PostgreSQL {active.major_version}")
            return Resolution(
                major_version=active.major_version,
                installation=active,
                source=VersionSource.ACTIVE,
            )

        self.ctx.console.debug("no active PostgreSQL found, continuing without a version")
        return Resolution()
