"""Package manager integration for extension install/remove/update.

Translates extension names (or PostgreSQL kernel aliases such as
`pg17-core`) into distribution packages for one major version and hands
them to apt-get, dnf or yum.
"""

import os
import re
import shutil
from enum import Enum
from typing import Optional

from pgext.core.context import ExecutionContext
from pgext.core.exceptions import PackageError, PrerequisiteError
from pgext.core.executor import CommandExecutor
from pgext.core.validation import validate_package_name
from pgext.services.catalog import Catalog, OSFamily
from pgext.services.postgres import PostgresInstallation


# Used by kernel aliases when no major version was given or detected
LATEST_MAJOR_VERSION = 18

PACKAGE_TIMEOUT = 1800


class PackageAction(Enum):
    """Package manager operations."""
    INSTALL = "install"
    REMOVE = "remove"
    UPDATE = "update"


MANAGER_FAMILIES: dict[str, OSFamily] = {
    "apt": OSFamily.DEB,
    "dnf": OSFamily.RPM,
    "yum": OSFamily.RPM,
}

MANAGER_BINARIES: dict[str, str] = {
    "apt": "apt-get",
    "dnf": "dnf",
    "yum": "yum",
}

ACTION_ARGS: dict[str, dict[PackageAction, list[str]]] = {
    "apt": {
        PackageAction.INSTALL: ["install"],
        PackageAction.REMOVE: ["remove"],
        PackageAction.UPDATE: ["install", "--only-upgrade"],
    },
    "dnf": {
        PackageAction.INSTALL: ["install"],
        PackageAction.REMOVE: ["remove"],
        PackageAction.UPDATE: ["upgrade"],
    },
    "yum": {
        PackageAction.INSTALL: ["install"],
        PackageAction.REMOVE: ["remove"],
        PackageAction.UPDATE: ["update"],
    },
}

# PostgreSQL kernel package groups ($v = major version)
KERNEL_PACKAGES: dict[OSFamily, dict[str, str]] = {
    OSFamily.DEB: {
        "pgsql": "postgresql-$v postgresql-client-$v",
        "pgsql-core": "postgresql-$v postgresql-client-$v postgresql-plpython3-$v postgresql-plperl-$v postgresql-pltcl-$v",
        "pgsql-devel": "postgresql-server-dev-$v",
        "pgsql-main": "postgresql-$v postgresql-client-$v postgresql-$v-pgvector postgresql-$v-repack postgresql-$v-wal2json",
        "pgsql-common": "patroni pgbouncer pgbackrest pg-activity",
    },
    OSFamily.RPM: {
        "pgsql": "postgresql$v postgresql$v-server postgresql$v-libs",
        "pgsql-core": "postgresql$v postgresql$v-server postgresql$v-libs postgresql$v-contrib postgresql$v-plperl postgresql$v-plpython3 postgresql$v-pltcl",
        "pgsql-devel": "postgresql$v-devel",
        "pgsql-main": "postgresql$v postgresql$v-server postgresql$v-libs postgresql$v-contrib pgvector_$v pg_repack_$v wal2json_$v",
        "pgsql-common": "patroni pgbouncer pgbackrest pg_activity",
    },
}

# pg17, pg17-core, pg16-devel ...
VERSIONED_KERNEL_PATTERN = re.compile(r"^pg(\d+)(?:-([a-z]+))?$")


def detect_package_manager(preferred: str = "auto") -> str:
    """Pick the package manager to use.

    Args:
        preferred: "apt", "dnf", "yum" or "auto" to probe PATH

    Returns:
        Package manager key

    Raises:
        PrerequisiteError: If no supported package manager is available
    """
    if preferred != "auto":
        if not shutil.which(MANAGER_BINARIES[preferred]):
            raise PrerequisiteError(
                f"Configured package manager '{preferred}' not found",
                hint="Set packages.manager to auto or install it",
            )
        return preferred

    for manager in ("apt", "dnf", "yum"):
        if shutil.which(MANAGER_BINARIES[manager]):
            return manager

    raise PrerequisiteError(
        "No supported package manager found (apt-get, dnf, yum)",
        hint="pgext ext add/rm/update supports Debian, Ubuntu and EL distributions",
    )


def _expand(template: str, major: int) -> list[str]:
    return [pkg.replace("$v", str(major)) for pkg in template.split()]


class PackageService:
    """Resolves extension names to packages and runs the package manager."""

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        catalog: Catalog,
        *,
        manager: str = "auto",
        use_sudo: bool = True,
    ) -> None:
        """Initialize package service.

        Args:
            ctx: Execution context
            executor: Command executor
            catalog: Extension catalog
            manager: Package manager key or "auto"
            use_sudo: Prefix commands with sudo when not running as root
        """
        self.ctx = ctx
        self.executor = executor
        self.catalog = catalog
        self.manager = detect_package_manager(manager)
        self.use_sudo = use_sudo

    @property
    def family(self) -> OSFamily:
        """Packaging family of the package manager."""
        return MANAGER_FAMILIES[self.manager]

    def _kernel_packages(self, name: str, major: int) -> Optional[list[str]]:
        """Packages for a kernel alias, or None if the name is not one."""
        aliases = KERNEL_PACKAGES[self.family]

        match = VERSIONED_KERNEL_PATTERN.match(name)
        if match:
            version, suffix = match.groups()
            key = f"pgsql-{suffix}" if suffix else "pgsql"
            if key not in aliases:
                return None
            return _expand(aliases[key], int(version))

        if name not in aliases:
            return None

        if major == 0:
            self.ctx.console.info(
                f"no PostgreSQL version given, using {LATEST_MAJOR_VERSION} for '{name}'"
            )
            major = LATEST_MAJOR_VERSION
        return _expand(aliases[name], major)

    def resolve_packages(self, major: int, names: list[str]) -> list[str]:
        """Translate names into package names for one major version.

        Unknown names and extensions without a package for this
        distribution family are reported and skipped.

        Raises:
            ValidationError: If a name is not a valid package name
            PackageError: If an extension needs a major version and none is known
        """
        packages: list[str] = []

        for name in names:
            validate_package_name(name)

            kernel = self._kernel_packages(name, major)
            if kernel is not None:
                packages.extend(kernel)
                continue

            result = self.catalog.lookup(name)
            if not result.found:
                self.ctx.console.error(f"extension '{name}' not found")
                continue

            ext = result.extension
            if major == 0:
                raise PackageError(
                    f"Cannot pick packages for '{ext.name}' without a PostgreSQL version",
                    hint="Specify one with -v <major> or -p <pg_config>",
                )

            if ext.pg_ver and not ext.available_for(major):
                self.ctx.console.warn(
                    f"extension '{ext.name}' is not available for PostgreSQL {major}"
                )
                continue

            ext_packages = ext.packages(self.family, major)
            if not ext_packages:
                self.ctx.console.warn(
                    f"extension '{ext.name}' has no {self.family.value} package"
                )
                continue

            self.ctx.console.debug(f"{name} -> {' '.join(ext_packages)}")
            packages.extend(ext_packages)

        return list(dict.fromkeys(packages))

    def build_command(self, action: PackageAction, packages: list[str], yes: bool = False) -> list[str]:
        """Build the package manager command line."""
        command = [MANAGER_BINARIES[self.manager], *ACTION_ARGS[self.manager][action]]
        if yes:
            command.append("-y")
        command.extend(packages)

        if self.use_sudo and os.geteuid() != 0 and shutil.which("sudo"):
            command = ["sudo", *command]

        return command

    def _apply(self, action: PackageAction, major: int, names: list[str], yes: bool) -> None:
        packages = self.resolve_packages(major, names)
        if not packages:
            raise PackageError(
                f"No packages to {action.value}",
                hint="Check the names with: pgext ext list",
            )

        self.ctx.console.step(f"{action.value.title()} packages: {' '.join(packages)}")
        self.executor.run(
            self.build_command(action, packages, yes),
            capture=False,
            timeout=PACKAGE_TIMEOUT,
        )
        if not self.ctx.dry_run:
            self.ctx.console.success(f"{action.value.title()} finished: {len(packages)} package(s)")

    def install(self, major: int, names: list[str], yes: bool = False) -> None:
        """Install extension packages for a PostgreSQL major version."""
        self._apply(PackageAction.INSTALL, major, names, yes)

    def remove(self, major: int, names: list[str], yes: bool = False) -> None:
        """Remove extension packages for a PostgreSQL major version."""
        self._apply(PackageAction.REMOVE, major, names, yes)

    def update(
        self,
        major: int,
        names: list[str],
        yes: bool = False,
        installation: Optional[PostgresInstallation] = None,
    ) -> None:
        """Update extension packages.

        Without names, every non-contrib catalog extension found in the
        installation's extension directory is updated.
        """
        if not names:
            if installation is None:
                raise PackageError(
                    "No extensions given and no PostgreSQL installation found",
                    hint="Name the extensions to update, or use -p <pg_config>",
                )
            names = []
            for installed in installation.installed_extensions():
                result = self.catalog.lookup(installed.name)
                if result.found and not result.extension.is_contrib:
                    names.append(result.extension.name)
            names = list(dict.fromkeys(names))
            if not names:
                self.ctx.console.warn("no updatable extensions installed")
                return

        self._apply(PackageAction.UPDATE, major, names, yes)
