"""Per-invocation state shared by commands and services.

One ExecutionContext is built for each pgext command from its options.
Services read the dry-run flag and the console from it and load the
configuration through it on first use.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from pgext.core.config import AppConfig, DEFAULT_CONFIG_PATH, resolve_config_path
from pgext.core.output import Console, console, Verbosity


@dataclass
class ExecutionContext:
    """Options of one pgext invocation.

    Attributes:
        dry_run: Print package manager commands instead of running them
        yes: Pass -y to the package manager
        verbosity: Console verbosity
        no_color: Disable colored output
        config_path: Configuration file to load
    """

    dry_run: bool = False
    yes: bool = False
    verbosity: Verbosity = Verbosity.NORMAL
    no_color: bool = False
    config_path: Path = DEFAULT_CONFIG_PATH

    _config: Optional[AppConfig] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        console.configure(
            verbosity=self.verbosity,
            dry_run=self.dry_run,
            no_color=self.no_color,
        )

    @property
    def console(self) -> Console:
        """The shared console, configured for this invocation."""
        return console

    @property
    def config(self) -> AppConfig:
        """Configuration, loaded on first access."""
        if self._config is None:
            console.debug(f"loading configuration from {self.config_path}")
            self._config = AppConfig(config_path=self.config_path)
        return self._config

    @property
    def is_verbose(self) -> bool:
        return self.verbosity >= Verbosity.VERBOSE


def create_context(
    *,
    dry_run: bool = False,
    yes: bool = False,
    verbose: int = 0,
    no_color: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Build the context from command options.

    `verbose` counts --verbose flags: one adds verbose lines, two add
    debug output.
    """
    return ExecutionContext(
        dry_run=dry_run,
        yes=yes,
        verbosity=Verbosity(min(Verbosity.NORMAL + verbose, Verbosity.DEBUG)),
        no_color=no_color,
        config_path=resolve_config_path(config),
    )
