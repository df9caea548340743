"""Cleanup of stray staging files.

Staging copies are removed at the end of every run, but a run killed
with SIGKILL (or a machine that lost power) leaves its copy behind in
the scratch area. This command finds those copies and removes them.
"""

from suedit.commands.edit import get_audit_logger, get_staging_area
from suedit.core.audit import AuditEventType
from suedit.core.context import ExecutionContext


def run_cleanup(ctx: ExecutionContext, older_than: float = 0) -> int:
    """Remove leftover staging files owned by the current user.

    Args:
        ctx: Execution context
        older_than: Only consider files unmodified for this many minutes

    Returns:
        Number of files removed
    """
    audit = get_audit_logger(ctx)
    staging = get_staging_area(ctx, audit)

    strays = staging.find_strays(min_age_minutes=older_than)
    if not strays:
        ctx.console.info(f"No stray staging files in {staging.directory}")
        return 0

    ctx.console.table(
        title=f"Stray staging files in {staging.directory}",
        columns=["File", "Size", "Age"],
        rows=[
            [s.path.name, f"{s.size} B", f"{s.age_minutes:.0f} min"]
            for s in strays
        ],
    )

    if ctx.dry_run:
        for stray in strays:
            ctx.console.dry_run_msg(f"Delete {stray.path}")
        return 0

    if not ctx.console.confirm(
        f"Delete {len(strays)} staging file(s)?",
        skip_confirm=not ctx.should_confirm,
    ):
        ctx.console.warn("Cleanup cancelled")
        return 0

    removed = 0
    for stray in strays:
        try:
            if staging.release(stray.path, event_type=AuditEventType.CLEANUP_REMOVE):
                removed += 1
                ctx.console.step(f"Removed {stray.path}")
        except OSError as e:
            ctx.console.warn(f"Could not remove {stray.path}: {e}")

    ctx.console.success(f"Removed {removed} of {len(strays)} staging file(s)")
    return removed
