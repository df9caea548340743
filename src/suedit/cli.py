"""Command line interface for suedit.

Two applications are exposed:
- `suedit`: edit, cleanup and config commands
- `su-edit`: the edit command alone, taking the file as its only argument
"""

from pathlib import Path
from typing import Optional, Annotated

import typer
from rich.console import Console

from suedit import __version__
from suedit.core.context import ExecutionContext, create_context
from suedit.core.output import console as app_console
from suedit.core.config import (
    DEFAULT_CONFIG_PATH,
    AppConfig,
    get_example_config,
    init_config,
)
from suedit.core.exceptions import SuEditError


app = typer.Typer(
    name="suedit",
    help="Edit root-owned files through an unprivileged staging copy.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)

config_app = typer.Typer(
    name="config",
    help="Inspect and create the configuration file.",
    no_args_is_help=True,
)

app.add_typer(config_app, name="config")


# Options shared by several commands
DryRunOption = Annotated[
    bool,
    typer.Option(
        "--dry-run",
        help="Show the steps without staging or writing anything.",
        is_flag=True,
    ),
]

YesOption = Annotated[
    bool,
    typer.Option(
        "--yes",
        "-y",
        help="Skip confirmation prompts.",
        is_flag=True,
    ),
]

VerboseOption = Annotated[
    int,
    typer.Option(
        "--verbose",
        "-v",
        count=True,
        help="Increase output verbosity. Can be repeated (-v, -vv).",
    ),
]

QuietOption = Annotated[
    bool,
    typer.Option(
        "--quiet",
        "-q",
        help="Only print errors (and the staging path).",
        is_flag=True,
    ),
]

NoColorOption = Annotated[
    bool,
    typer.Option(
        "--no-color",
        help="Plain output without colors.",
        is_flag=True,
    ),
]

NoSudoOption = Annotated[
    bool,
    typer.Option(
        "--no-sudo",
        help="Read and write the target with your own privileges.",
        is_flag=True,
    ),
]

ConfigOption = Annotated[
    Optional[Path],
    typer.Option(
        "--config",
        "-c",
        help=f"YAML configuration file (default: {DEFAULT_CONFIG_PATH}).",
        exists=False,
        file_okay=True,
        dir_okay=False,
    ),
]


def version_callback(value: bool) -> None:
    """Eager --version handler."""
    if value:
        console = Console()
        console.print(f"suedit version {__version__}")
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
    """suedit - edit privileged files safely.

    Copies the file into a scratch area, lets you edit the copy with any
    tool, then writes it back with sudo and restores the original
    permissions. The copy is removed however the run ends.

    [bold]Examples:[/bold]
        suedit edit /etc/postgresql/16/main/pg_hba.conf
        suedit edit --edit /etc/hosts
        suedit cleanup --older-than 60
        suedit config show
    """
    pass


def get_context(
    dry_run: bool = False,
    yes: bool = False,
    verbose: int = 0,
    quiet: bool = False,
    no_color: bool = False,
    no_sudo: bool = False,
    config: Optional[Path] = None,
) -> ExecutionContext:
    """Create execution context from CLI options."""
    return create_context(
        dry_run=dry_run,
        yes=yes,
        verbose=verbose,
        quiet=quiet,
        no_color=no_color,
        no_sudo=no_sudo,
        config=config,
    )


def handle_error(error: SuEditError) -> None:
    """Handle an SuEditError by printing formatted error and exiting."""
    app_console.error(error.message)

    for detail in error.details:
        app_console.detail(detail)

    if error.hint:
        app_console.hint(error.hint)

    raise typer.Exit(error.exit_code)


# --- Edit command ---

def edit_cmd(
    paths: Annotated[
        Optional[list[str]],
        typer.Argument(
            help="File to edit (exactly one).",
            show_default=False,
        ),
    ] = None,
    edit: Annotated[
        bool,
        typer.Option(
            "--edit",
            "-e",
            help="Open the editor from config, $VISUAL or $EDITOR instead of waiting for Enter.",
            is_flag=True,
        ),
    ] = False,
    editor: Annotated[
        Optional[str],
        typer.Option(
            "--editor",
            help="Editor command to open the staging copy with (e.g. 'vim', 'code --wait').",
        ),
    ] = None,
    backup: Annotated[
        Optional[bool],
        typer.Option(
            "--backup/--no-backup",
            help="Keep <file>.bak.<timestamp> with the original content. Default from config.",
            show_default=False,
        ),
    ] = None,
    no_sudo: NoSudoOption = False,
    dry_run: DryRunOption = False,
    verbose: VerboseOption = 0,
    quiet: QuietOption = False,
    config: ConfigOption = None,
    no_color: NoColorOption = False,
) -> None:
    """Edit a privileged file through a staging copy.

    Prints the path of a temporary copy of FILE. Edit that copy with any
    tool, then press Enter: the content is written back with sudo and the
    original permission bits are restored.

    [bold]Examples:[/bold]

        # Print the staging path and wait for Enter
        suedit edit /etc/postgresql/16/main/pg_hba.conf

        # Open $EDITOR on the copy and commit when it exits
        suedit edit --edit /etc/hosts

        # Keep a backup of the original
        suedit edit --backup /etc/ssh/sshd_config
    """
    from suedit.commands.edit import run_edit

    ctx = get_context(
        dry_run=dry_run,
        verbose=verbose,
        quiet=quiet,
        no_color=no_color,
        no_sudo=no_sudo,
        config=config,
    )

    try:
        run_edit(ctx, paths, launch_editor=edit, editor=editor, backup=backup)
    except SuEditError as e:
        handle_error(e)
    except KeyboardInterrupt:
        ctx.console.print()
        ctx.console.error("Interrupted; target left unchanged unless the commit had finished")
        raise typer.Exit(130)


app.command("edit")(edit_cmd)


# Single-command application: `su-edit FILE`
edit_app = typer.Typer(
    name="su-edit",
    help="Edit a privileged file through a staging copy.",
    rich_markup_mode="rich",
    pretty_exceptions_enable=True,
    pretty_exceptions_show_locals=False,
)
edit_app.command()(edit_cmd)


# --- Cleanup command ---

@app.command("cleanup")
def cleanup_cmd(
    older_than: Annotated[
        float,
        typer.Option(
            "--older-than",
            help="Only remove staging files unmodified for this many minutes.",
            min=0,
        ),
    ] = 0,
    dry_run: DryRunOption = False,
    yes: YesOption = False,
    verbose: VerboseOption = 0,
    config: ConfigOption = None,
    no_color: NoColorOption = False,
) -> None:
    """Remove staging files left behind by killed runs.

    Only files in the scratch area that carry the staging prefix and
    belong to you are considered.

    [bold]Examples:[/bold]

        suedit cleanup --dry-run
        suedit cleanup --older-than 60 --yes
    """
    from suedit.commands.cleanup import run_cleanup

    ctx = get_context(
        dry_run=dry_run,
        yes=yes,
        verbose=verbose,
        no_color=no_color,
        config=config,
    )

    try:
        run_cleanup(ctx, older_than=older_than)
    except SuEditError as e:
        handle_error(e)


# --- Config commands ---

@config_app.command("show")
def config_show(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Show the configuration file and the effective settings."""
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        app_config = ctx.config

        ctx.console.print()
        ctx.console.print(f"[bold]Configuration file:[/bold] {ctx.config_path}")
        ctx.console.print(f"[bold]File exists:[/bold] {ctx.config_path.exists()}")
        ctx.console.print()

        ctx.console.yaml(app_config.config.to_yaml(), title="Configuration")

        ctx.console.summary("Effective settings", {
            "Scratch directory": app_config.scratch_dir,
            "Use sudo": app_config.use_sudo,
            "Editor": app_config.resolve_editor() or "Not set",
            "Audit log": app_config.audit_log_path if app_config.audit.enabled else "Disabled",
        })

    except SuEditError as e:
        handle_error(e)


@config_app.command("init")
def config_init(
    config: ConfigOption = None,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Overwrite an existing configuration file.",
            is_flag=True,
        ),
    ] = False,
    no_color: NoColorOption = False,
) -> None:
    """Write a commented configuration file with the defaults."""
    ctx = get_context(no_color=no_color, config=config)
    config_path = ctx.config_path

    try:
        init_config(config_path, force=force)
        ctx.console.success(f"Configuration file created: {config_path}")
        ctx.console.info("Edit the file to customize settings.")
    except SuEditError as e:
        handle_error(e)


@config_app.command("validate")
def config_validate(
    config: ConfigOption = None,
    verbose: VerboseOption = 0,
    no_color: NoColorOption = False,
) -> None:
    """Check the configuration file and warn about risky settings."""
    ctx = get_context(verbose=verbose, no_color=no_color, config=config)

    try:
        if not ctx.config_path.exists():
            ctx.console.warn(f"No configuration file at {ctx.config_path}; defaults apply")
            return

        app_config = AppConfig(config_path=ctx.config_path)
        ctx.console.success(f"Configuration is valid: {ctx.config_path}")

        if ctx.is_verbose:
            ctx.console.yaml(app_config.config.to_yaml())

        warnings = []
        if not app_config.scratch_dir.is_dir():
            warnings.append(f"Scratch directory does not exist: {app_config.scratch_dir}")
        if app_config.staging.mode & 0o007:
            warnings.append("Staging copies are world-accessible (staging.mode)")

        for warning in warnings:
            ctx.console.warn(warning)

    except SuEditError as e:
        handle_error(e)


@config_app.command("example")
def config_example(no_color: NoColorOption = False) -> None:
    """Print the example configuration to stdout."""
    ctx = get_context(no_color=no_color)
    ctx.console.print(get_example_config(), markup=False)


if __name__ == "__main__":
    app()
