"""PostgreSQL extension management commands.

Commands:
- pgext ext list [query]
- pgext ext info <ext>...
- pgext ext add <ext>...
- pgext ext rm <ext>...
- pgext ext update [ext]...
- pgext ext status
- pgext ext scan
"""

from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.markup import escape
from rich.table import Table

from pgext.core import (
    console,
    ExecutionContext,
    create_context,
    CommandExecutor,
    handle_error,
    PgExtError,
    UsageError,
)
from pgext.core.validation import validate_major_version, validate_pg_config_path
from pgext.services.catalog import Catalog, load_catalog
from pgext.services.packages import PackageService
from pgext.services.postgres import PostgresDetector
from pgext.services.render import render_extension_info, tabulate
from pgext.services.resolver import Resolution, VersionResolver


app = typer.Typer(
    name="ext",
    help="Manage PostgreSQL extensions.",
    no_args_is_help=True,
)


# Shared options
VersionOption = Annotated[
    int,
    typer.Option(
        "--version",
        "-v",
        help="Target a PostgreSQL major version, e.g. 17.",
    ),
]

PathOption = Annotated[
    Optional[str],
    typer.Option(
        "--path",
        "-p",
        help="Target the PostgreSQL installation of this pg_config.",
    ),
]

YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Auto-confirm the package manager.",
        is_flag=True,
    ),
]

DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Show the package manager command without running it.",
        is_flag=True,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        count=True,
        help="Increase output verbosity. Can be repeated.",
    ),
]

NoColorOption = Annotated[
    bool,
    typer.Option(
        "--no-color",
        help="Disable colored output.",
        is_flag=True,
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        help="Path to configuration file.",
        dir_okay=False,
    ),
]


def _check_selectors(version: int, path: Optional[str]) -> Optional[str]:
    """Reject --version together with --path.

    Runs before configuration or PostgreSQL discovery is touched. An
    empty --path counts as not given and comes back as None.
    """
    if path is not None and not path.strip():
        path = None

    if version and path:
        raise UsageError(
            "Both PostgreSQL version and pg_config path are specified",
            hint="Use either --version or --path, not both",
        )

    return path


def _get_services(ctx: ExecutionContext) -> tuple[CommandExecutor, PostgresDetector]:
    """Create service instances."""
    executor = CommandExecutor(ctx)
    detector = PostgresDetector(
        ctx,
        executor,
        search_patterns=ctx.config.postgres.search_patterns,
    )
    return executor, detector


def _resolve(
    ctx: ExecutionContext,
    detector: PostgresDetector,
    version: int,
    path: Optional[str],
) -> Resolution:
    """Validate --version / --path and resolve the target PostgreSQL."""
    validate_major_version(version)
    pg_config = str(validate_pg_config_path(path)) if path else None

    resolution = VersionResolver(ctx, detector).resolve(version=version, pg_config=pg_config)
    console.debug(
        f"using PostgreSQL version: {resolution.major_version} ({resolution.source.value})"
    )
    return resolution


def _get_catalog(ctx: ExecutionContext) -> Catalog:
    """Load the configured extension catalog."""
    return load_catalog(ctx.config.catalog_path)


def _get_package_service(
    ctx: ExecutionContext,
    executor: CommandExecutor,
    catalog: Catalog,
) -> PackageService:
    """Create the package service from configuration."""
    packages = ctx.config.packages
    return PackageService(
        ctx,
        executor,
        catalog,
        manager=packages.manager,
        use_sudo=packages.use_sudo,
    )


@app.command("list")
@app.command("ls", hidden=True)
@app.command("find", hidden=True)
def list_extensions(
    query: Optional[list[str]] = typer.Argument(
        None,
        help="Search by name, alias, description or category.",
        show_default=False,
    ),
    version: VersionOption = 0,
    path: PathOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """List and search available extensions.

    With a known PostgreSQL version the table shows whether each
    extension is available for it.

    Examples:

        pgext ext list

        pgext ext list postgis

        pgext ext ls olap

        pgext ext ls gis -v 16
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        if query and len(query) > 1:
            raise UsageError(
                "Too many arguments, only one search query allowed",
                hint="Quote multi-word queries",
            )

        path = _check_selectors(version, path)
        _, detector = _get_services(ctx)
        resolution = _resolve(ctx, detector, version, path)
        catalog = _get_catalog(ctx)

        if query:
            results = catalog.find(query[0])
            if not results:
                console.warn(f"no extensions found matching '{query[0]}'")
                return
            console.info(f"found {len(results)} extensions matching '{query[0]}':")
        else:
            results = catalog.find()

        if not resolution.known:
            console.debug("no PostgreSQL version known, using version-agnostic table")
        console.print(tabulate(results, resolution.major_version))

    except PgExtError as e:
        handle_error(e)


@app.command("info")
@app.command("i", hidden=True)
def extension_info(
    names: list[str] = typer.Argument(
        ...,
        help="Extension names or aliases.",
        show_default=False,
    ),
    version: VersionOption = 0,
    path: PathOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Show details of one or more extensions.

    Unknown names are reported and skipped.

    Examples:

        pgext ext info postgis

        pgext ext info gis vector timescaledb
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        path = _check_selectors(version, path)
        _, detector = _get_services(ctx)
        _resolve(ctx, detector, version, path)
        catalog = _get_catalog(ctx)

        for name in names:
            result = catalog.lookup(name)
            if not result.found:
                console.error(f"extension '{name}' not found")
                continue

            console.debug(f"'{name}' matched by {result.source.value}")
            console.text(render_extension_info(result.extension))

    except PgExtError as e:
        handle_error(e)


@app.command("add")
@app.command("install", hidden=True)
@app.command("ins", hidden=True)
@app.command("a", hidden=True)
def add_extensions(
    names: list[str] = typer.Argument(
        ...,
        help="Extensions, aliases or kernel packages (pgsql, pg17, pg17-core, ...).",
        show_default=False,
    ),
    version: VersionOption = 0,
    path: PathOption = None,
    yes: YesOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Install extension packages for the target PostgreSQL.

    Examples:

        pgext ext add pg_duckdb

        pgext ext add postgis timescaledb -v 17

        pgext ext add pgvector -y

        pgext ext add pg17-core --dry-run
    """
    ctx = create_context(dry_run=dry_run, yes=yes, verbose=verbose, no_color=no_color, config=config)

    try:
        path = _check_selectors(version, path)
        executor, detector = _get_services(ctx)
        resolution = _resolve(ctx, detector, version, path)
        catalog = _get_catalog(ctx)

        packages = _get_package_service(ctx, executor, catalog)
        packages.install(resolution.major_version, names, yes=yes)

    except PgExtError as e:
        handle_error(e)


@app.command("rm")
@app.command("remove", hidden=True)
def remove_extensions(
    names: list[str] = typer.Argument(
        ...,
        help="Extensions or aliases to remove.",
        show_default=False,
    ),
    version: VersionOption = 0,
    path: PathOption = None,
    yes: YesOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Remove extension packages for the target PostgreSQL.

    Examples:

        pgext ext rm pg_duckdb

        pgext ext rm postgis -v 16 -y
    """
    ctx = create_context(dry_run=dry_run, yes=yes, verbose=verbose, no_color=no_color, config=config)

    try:
        path = _check_selectors(version, path)
        executor, detector = _get_services(ctx)
        resolution = _resolve(ctx, detector, version, path)
        catalog = _get_catalog(ctx)

        packages = _get_package_service(ctx, executor, catalog)
        packages.remove(resolution.major_version, names, yes=yes)

    except PgExtError as e:
        handle_error(e)


@app.command("update")
@app.command("up", hidden=True)
@app.command("upgrade", hidden=True)
def update_extensions(
    names: Optional[list[str]] = typer.Argument(
        None,
        help="Extensions to update. Default: all installed catalog extensions.",
        show_default=False,
    ),
    version: VersionOption = 0,
    path: PathOption = None,
    yes: YesOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Update extension packages for the target PostgreSQL.

    Examples:

        pgext ext update

        pgext ext update postgis timescaledb

        pgext ext up vector -y
    """
    ctx = create_context(dry_run=dry_run, yes=yes, verbose=verbose, no_color=no_color, config=config)

    try:
        path = _check_selectors(version, path)
        executor, detector = _get_services(ctx)
        resolution = _resolve(ctx, detector, version, path)
        catalog = _get_catalog(ctx)

        packages = _get_package_service(ctx, executor, catalog)
        packages.update(
            resolution.major_version,
            names or [],
            yes=yes,
            installation=resolution.installation,
        )

    except PgExtError as e:
        handle_error(e)


@app.command("status")
@app.command("st", hidden=True)
def extension_status(
    contrib: bool = typer.Option(
        False, "--contrib", "-c",
        help="Show contrib extensions too.",
    ),
    version: VersionOption = 0,
    path: PathOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Show the target PostgreSQL and its installed extensions.

    Example:

        pgext ext status --contrib
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        path = _check_selectors(version, path)
        _, detector = _get_services(ctx)
        resolution = _resolve(ctx, detector, version, path)
        installation = resolution.installation

        console.summary(
            "PostgreSQL",
            {
                "Major Version": resolution.major_version or None,
                "Selected By": resolution.source.value,
                "Version": installation.version if installation else None,
                "pg_config": installation.pg_config if installation else None,
                "Extension Dir": installation.extension_dir if installation else None,
            },
        )

        if installation is None:
            console.warn("no PostgreSQL installation found")
            console.hint("Specify one with -p <pg_config> or -v <major>")
            return

        catalog = _get_catalog(ctx)
        installed = installation.installed_extensions()

        table = Table(title="Installed Extensions", show_header=True)
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Version")
        table.add_column("Category")
        table.add_column("Package")
        table.add_column("Description")

        hidden = 0
        for item in installed:
            ext = catalog.lookup(item.name).extension
            if ext is not None and ext.is_contrib and not contrib:
                hidden += 1
                continue
            table.add_row(
                item.name,
                item.default_version,
                ext.category if ext else "",
                (ext.rpm_repo or ext.deb_repo) if ext else "[dim]unknown[/dim]",
                escape(ext.description if ext else item.comment),
            )

        console.print(table)
        console.info(
            f"{len(installed)} extensions installed"
            + (f", {hidden} contrib extensions hidden (use --contrib)" if hidden else "")
        )

    except PgExtError as e:
        handle_error(e)


@app.command("scan")
def scan_extensions(
    version: VersionOption = 0,
    path: PathOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
    config: ConfigOption = None,
) -> None:
    """Scan PostgreSQL installations and the extension files of the target one.

    Example:

        pgext ext scan -v 17
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        path = _check_selectors(version, path)
        _, detector = _get_services(ctx)
        resolution = _resolve(ctx, detector, version, path)

        installations = detector.list_installations()
        selected = resolution.installation

        rows = []
        for inst in installations:
            is_selected = selected is not None and inst.pg_config == selected.pg_config
            rows.append([
                str(inst.major_version),
                inst.version,
                str(inst.pg_config),
                "[green]*[/green]" if is_selected else "",
            ])
        console.table(
            "PostgreSQL Installations",
            ["Major", "Version", "pg_config", "Selected"],
            rows,
        )

        if not resolution.known or selected is None:
            raise PgExtError(
                "No PostgreSQL installation to scan",
                hint="Specify one with -p <pg_config> or -v <major>",
            )

        extensions = selected.installed_extensions()
        table = Table(
            title=f"Extensions in {selected.extension_dir}",
            show_header=True,
        )
        table.add_column("Name", style="cyan", no_wrap=True)
        table.add_column("Version")
        table.add_column("Reloc", justify="center")
        table.add_column("Requires")
        table.add_column("Library")
        table.add_column("Description")
        for item in extensions:
            table.add_row(
                item.name,
                item.default_version,
                "Yes" if item.relocatable else "No",
                ", ".join(item.requires),
                escape(item.module_pathname),
                escape(item.comment),
            )
        console.print(table)
        console.info(f"{len(extensions)} extensions found in PostgreSQL {selected.version}")

    except PgExtError as e:
        handle_error(e)
