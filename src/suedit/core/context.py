"""Per-invocation state shared by commands and services.

An ExecutionContext is built once from the CLI flags. It configures the
global console on creation and loads the configuration file on first
use, so commands that fail validation never read it.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from suedit.core.config import AppConfig, DEFAULT_CONFIG_PATH
from suedit.core.output import Console, console, Verbosity


@dataclass
class ExecutionContext:
    """Flags of one suedit run plus lazily loaded configuration.

    Attributes:
        dry_run: Plan the edit without staging or writing anything
        yes: Answer yes to confirmation prompts
        verbosity: Console verbosity (see Verbosity)
        no_color: Plain output without ANSI colors
        no_sudo: Access the target with the caller's own privileges
        config_path: YAML configuration file
    """

    dry_run: bool = False
    yes: bool = False
    verbosity: int = Verbosity.NORMAL
    no_color: bool = False
    no_sudo: bool = False
    config_path: Path = field(default_factory=lambda: DEFAULT_CONFIG_PATH)

    _config: Optional[AppConfig] = field(default=None, repr=False)
    _console: Console = field(default_factory=lambda: console, repr=False)

    def __post_init__(self) -> None:
        self._console.configure(
            verbosity=self.verbosity,
            dry_run=self.dry_run,
            no_color=self.no_color,
        )

    @property
    def config(self) -> AppConfig:
        """Configuration file merged with environment overrides.

        Raises:
            ConfigurationError: On first access, if the file is invalid
        """
        if self._config is None:
            self._config = AppConfig(config_path=self.config_path)
        return self._config

    @property
    def console(self) -> Console:
        return self._console

    @property
    def is_verbose(self) -> bool:
        return self.verbosity >= Verbosity.VERBOSE

    @property
    def should_confirm(self) -> bool:
        return not self.yes

    @property
    def use_sudo(self) -> bool:
        """False if --no-sudo, SUEDIT_NO_SUDO or `elevation.use_sudo: false`."""
        return not self.no_sudo and self.config.use_sudo


def create_context(
    dry_run: bool = False,
    yes: bool = False,
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    no_sudo: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Build a context from CLI options.

    `quiet` wins over `verbose`; each -v raises verbosity by one level up
    to DEBUG.
    """
    if quiet:
        verbosity = Verbosity.QUIET
    else:
        verbosity = min(Verbosity.NORMAL + verbose, Verbosity.DEBUG)

    return ExecutionContext(
        dry_run=dry_run,
        yes=yes,
        verbosity=verbosity,
        no_color=no_color,
        no_sudo=no_sudo,
        config_path=config or DEFAULT_CONFIG_PATH,
    )
