"""Main CLI entry point using Typer.

This module defines the root CLI application and global options.
Command groups are registered from submodules.
"""

from pathlib import Path
from typing import Optional, Annotated

import typer
from rich.console import Console

from pgext import __version__
from pgext.core.config import (
    DEFAULT_CONFIG_PATH,
    MachineConfig,
    get_example_config,
    init_config,
)
from pgext.core.context import create_context
from pgext.core.exceptions import PgExtError
from pgext.core.output import handle_error


# Create the main Typer app
app = typer.Typer(
    name="pgext",
    help="PostgreSQL extension manager.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

config_app = typer.Typer(
    name="config",
    help="Configuration management.",
    no_args_is_help=True,
)

# Import sub-commands
from pgext.commands.extension import app as extension_app

# Register command groups
app.add_typer(extension_app, name="ext")
app.add_typer(extension_app, name="extension", hidden=True)
app.add_typer(extension_app, name="e", hidden=True)
app.add_typer(config_app, name="config")


# Type aliases for common options
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
        help=f"Path to configuration file. Default: {DEFAULT_CONFIG_PATH}",
        exists=False,
        file_okay=True,
        dir_okay=False,
    ),
]

ForceOption = Annotated[
    bool,
    typer.Option(
        "--force",
        "-f",
        help="Overwrite an existing configuration file.",
        is_flag=True,
    ),
]


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console = Console()
        console.print(f"pgext version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """PostgreSQL extension manager.

    Search the extension catalog, show extension details and install
    extension packages for the PostgreSQL installations on this host.

    [bold]Examples:[/bold]
        pgext ext list gis
        pgext ext info postgis
        pgext ext add pgvector -v 17
        pgext ext status
        pgext config show
    """
    pass


# ============================================================================
# Config commands
# ============================================================================

@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Show current configuration.

    Displays the loaded configuration and environment overrides.
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        app_config = ctx.config

        ctx.console.print()
        ctx.console.print(f"[bold]Configuration file:[/bold] {ctx.config_path}")
        ctx.console.print(f"[bold]File exists:[/bold] {ctx.config_path.exists()}")
        ctx.console.print()

        ctx.console.yaml(app_config.config.to_yaml(), title="Configuration")

        ctx.console.summary("Environment", {
            "PGEXT_CONFIG": app_config.env.pgext_config,
            "PGEXT_CATALOG": app_config.env.pgext_catalog,
            "Catalog in use": app_config.catalog_path or "built-in",
        })

    except PgExtError as e:
        handle_error(e)


@config_app.command("init")
def config_init(
    config: ConfigOption = None,
    force: ForceOption = False,
    no_color: NoColorOption = False,
) -> None:
    """Initialize a new configuration file.

    Creates a configuration file with defaults and comments.
    """
    ctx = create_context(no_color=no_color, config=config)
    config_path = ctx.config_path

    try:
        if config_path.exists() and not force:
            ctx.console.error(f"Configuration file already exists: {config_path}")
            ctx.console.hint("Use --force to overwrite")
            raise typer.Exit(1)

        init_config(config_path, force=force)
        ctx.console.success(f"Configuration file created: {config_path}")
        ctx.console.info("Edit the file to customize settings, then run commands.")

    except PgExtError as e:
        handle_error(e)


@config_app.command("validate")
def config_validate(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Validate configuration file.

    Checks that the configuration file exists, is valid YAML,
    and all values pass validation.
    """
    ctx = create_context(verbose=verbose, no_color=no_color, config=config)

    try:
        # Raises ConfigurationError if invalid
        machine_config = MachineConfig.load(ctx.config_path)

        ctx.console.success(f"Configuration is valid: {ctx.config_path}")

        if ctx.is_verbose:
            ctx.console.yaml(machine_config.to_yaml())

    except PgExtError as e:
        handle_error(e)


@config_app.command("example")
def config_example(no_color: NoColorOption = False) -> None:
    """Print example configuration file."""
    ctx = create_context(no_color=no_color)
    ctx.console.text(get_example_config())


if __name__ == "__main__":
    app()
