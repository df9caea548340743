"""Edit command implementation.

Builds the editor from configuration and runs one edit:
- Validates the invocation before touching anything
- Picks sudo or direct access for the target
- Hands the staging copy to a prompt or an editor
- Records the run in the audit log
"""

from typing import Optional, Sequence

from suedit.core.audit import AuditLogger, create_audit_logger
from suedit.core.context import ExecutionContext
from suedit.core.exceptions import SuEditError, UsageError
from suedit.core.executor import CommandExecutor
from suedit.core.validation import validate_arguments, validate_target
from suedit.services.editor import EditResult, PrivilegedFileEditor
from suedit.services.elevated import get_elevated_executor
from suedit.services.handoff import ContinuationChannel, EditorChannel, PromptChannel
from suedit.services.staging import StagingArea


def get_audit_logger(ctx: ExecutionContext) -> AuditLogger:
    """Create the audit logger described by the configuration."""
    app_config = ctx.config
    return create_audit_logger(
        log_path=app_config.audit_log_path,
        enabled=app_config.audit.enabled,
        max_size_mb=app_config.audit.max_size_mb,
        backup_count=app_config.audit.backup_count,
    )


def get_staging_area(ctx: ExecutionContext, audit: Optional[AuditLogger] = None) -> StagingArea:
    """Create the staging area described by the configuration."""
    app_config = ctx.config
    return StagingArea(
        directory=app_config.scratch_dir,
        prefix=app_config.staging.prefix,
        mode=app_config.staging.mode,
        secure_delete=app_config.staging.secure_delete,
        audit=audit,
    )


def get_channel(
    ctx: ExecutionContext,
    launch_editor: bool = False,
    editor: Optional[str] = None,
) -> ContinuationChannel:
    """Pick how the staging copy is handed to the operator.

    An explicit editor command, or --edit with an editor known from the
    config or environment, launches that editor; otherwise the path is
    printed and the run waits for Enter.

    Raises:
        UsageError: If --edit was given but no editor is configured
    """
    if not (launch_editor or editor):
        return PromptChannel(ctx.console)

    command = ctx.config.resolve_editor(editor)
    if not command:
        raise UsageError(
            "No editor configured",
            hint="Pass --editor CMD, set 'editor' in the config, or export VISUAL/EDITOR",
        )
    return EditorChannel(command, CommandExecutor(ctx), ctx.console)


def run_edit(
    ctx: ExecutionContext,
    paths: Optional[Sequence[str]],
    *,
    launch_editor: bool = False,
    editor: Optional[str] = None,
    backup: Optional[bool] = None,
) -> EditResult:
    """Edit a single privileged file.

    Args:
        ctx: Execution context
        paths: Positional arguments; exactly one is required
        launch_editor: Open the configured editor instead of waiting for Enter
        editor: Editor command (implies launch_editor)
        backup: Keep a timestamped backup (config default if None)

    Returns:
        EditResult of the run

    Raises:
        SuEditError: On any validation, privilege or resource failure
    """
    target = validate_target(validate_arguments(paths))

    app_config = ctx.config
    audit = get_audit_logger(ctx)
    audit.log_session_start("edit", [str(target)])

    exit_code = 1
    try:
        editor_service = PrivilegedFileEditor(
            elevated=get_elevated_executor(ctx),
            staging=get_staging_area(ctx, audit),
            channel=get_channel(ctx, launch_editor=launch_editor, editor=editor),
            console=ctx.console,
            audit=audit,
            backup=app_config.config.backup if backup is None else backup,
            dry_run=ctx.dry_run,
        )
        result = editor_service.edit(target)
        exit_code = 0
        return result
    except SuEditError as e:
        exit_code = e.exit_code
        raise
    except KeyboardInterrupt:
        exit_code = 130
        raise
    finally:
        audit.log_session_end(exit_code)
