"""Privileged file editing through a staging copy.

The edit runs as a small state machine:

    START -> STAGED -> AWAITING_EDIT -> COMMITTING -> DONE

Any error or interruption moves it to FAILED.

The target is read in STAGED and written only in COMMITTING. Its
permission bits are snapshotted before the staging copy exists and put
back after the write, whatever the editor did to the staging copy.
"""

import time
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Optional, Sequence

from suedit.core.audit import AuditEventType, AuditLogger, AuditResult
from suedit.core.exceptions import ResourceError, SuEditError
from suedit.core.output import Console, console as default_console
from suedit.core.validation import format_mode, validate_arguments, validate_target
from suedit.services.elevated import ElevatedExecutor
from suedit.services.handoff import ContinuationChannel
from suedit.services.staging import StagingArea, termination_guard


# Suffixes .1 .. .N tried when a second edit lands in the same second
MAX_BACKUP_ATTEMPTS = 100


class EditState(Enum):
    """Lifecycle of a single edit."""
    START = "start"
    STAGED = "staged"
    AWAITING_EDIT = "awaiting_edit"
    COMMITTING = "committing"
    DONE = "done"
    FAILED = "failed"


@dataclass
class EditResult:
    """Outcome of an edit."""
    target: Path
    mode: int
    state: EditState
    staging_path: Optional[Path] = None
    bytes_read: int = 0
    bytes_written: int = 0
    backup_path: Optional[Path] = None
    dry_run: bool = False

    @property
    def changed(self) -> bool:
        """True if a write-back happened."""
        return self.state is EditState.DONE and not self.dry_run


class PrivilegedFileEditor:
    """Edits a privileged file through an unprivileged staging copy.

    All collaborators are injected so that tests can swap sudo for
    direct file access and the operator for a scripted channel.
    """

    def __init__(
        self,
        elevated: ElevatedExecutor,
        staging: StagingArea,
        channel: ContinuationChannel,
        *,
        console: Console = default_console,
        audit: Optional[AuditLogger] = None,
        backup: bool = False,
        dry_run: bool = False,
    ) -> None:
        """Initialize the editor.

        Args:
            elevated: Privileged read/write/stat/chmod on the target
            staging: Scratch area for the staging copy
            channel: Hands the staging copy to the operator
            console: Console for output
            audit: Audit logger (disabled if None)
            backup: Keep <target>.bak.<timestamp> of the original content
            dry_run: Show the plan without staging or writing anything
        """
        self.elevated = elevated
        self.staging = staging
        self.channel = channel
        self.console = console
        self.audit = audit or AuditLogger(enabled=False)
        self.backup = backup
        self.dry_run = dry_run
        self.state = EditState.START

    def _transition(self, state: EditState) -> None:
        self.console.debug(f"State: {self.state.name} -> {state.name}")
        self.state = state

    def run(self, args: Optional[Sequence[str]]) -> EditResult:
        """Validate raw arguments, then edit the single target.

        Raises:
            UsageError: Not exactly one argument, or a directory
            NotFoundError: Target does not exist
        """
        target = validate_target(validate_arguments(args))
        return self.edit(target)

    def edit(self, target: Path) -> EditResult:
        """Edit an existing target file.

        Args:
            target: Validated, absolute target path

        Returns:
            EditResult describing what happened

        Raises:
            PrivilegeError: An elevated operation failed
            ResourceError: The staging copy could not be created or read
            EditAbortedError: The operator gave up
            TerminatedError: SIGTERM/SIGHUP arrived during the edit
        """
        self.state = EditState.START

        with self.audit.correlation("edit"):
            try:
                mode = self.elevated.read_mode(target)
                self.console.verbose(f"Original mode of {target}: {format_mode(mode)}")

                if self.dry_run:
                    return self._plan(target, mode)

                self.audit.log_event(
                    AuditEventType.EDIT_START,
                    AuditResult.SUCCESS,
                    target=target,
                    parameters={"mode": format_mode(mode), "elevation": self.elevated.name},
                )
                result = self._edit(target, mode)

            except SuEditError as e:
                self._record_failure(target, AuditResult.FAILURE, e.message)
                raise
            except KeyboardInterrupt:
                self._record_failure(target, AuditResult.ABORTED, "interrupted")
                raise

        self.console.success(f"Updated {target} (mode {format_mode(mode)} kept)")
        return result

    def _edit(self, target: Path, mode: int) -> EditResult:
        with termination_guard():
            with self.staging.staged(target) as staging_path:
                self._transition(EditState.STAGED)
                original = self.elevated.read_content(target)
                self.staging.populate(staging_path, original)

                self._transition(EditState.AWAITING_EDIT)
                self.channel.hand_off(staging_path, target)

                self._transition(EditState.COMMITTING)
                edited = self.staging.read(staging_path)
                backup_path = None
                if self.backup:
                    backup_path = self._write_backup(target, original, mode)
                self.elevated.write_content(target, edited)
                self.elevated.write_mode(target, mode)

        self._transition(EditState.DONE)
        self.audit.log_event(
            AuditEventType.EDIT_COMMIT,
            AuditResult.SUCCESS,
            target=target,
            parameters={
                "mode": format_mode(mode),
                "bytes_before": len(original),
                "bytes_after": len(edited),
            },
        )
        return EditResult(
            target=target,
            mode=mode,
            state=self.state,
            staging_path=staging_path,
            bytes_read=len(original),
            bytes_written=len(edited),
            backup_path=backup_path,
        )

    def _write_backup(self, target: Path, original: bytes, mode: int) -> Path:
        base = f"{target.name}.bak.{time.strftime('%Y%m%d%H%M%S')}"
        for attempt in range(MAX_BACKUP_ATTEMPTS):
            backup_path = target.with_name(base if attempt == 0 else f"{base}.{attempt}")
            try:
                self.elevated.create_file(backup_path, original, mode)
                break
            except FileExistsError:
                self.console.debug(f"Backup name taken: {backup_path}")
        else:
            raise ResourceError(
                f"No free backup name for {target}",
                hint=f"Remove old {base}.* files",
            )

        self.console.step(f"Backed up original to {backup_path}")
        self.audit.log_event(
            AuditEventType.EDIT_BACKUP,
            AuditResult.SUCCESS,
            target=target,
            parameters={"backup_path": str(backup_path)},
        )
        return backup_path

    def _plan(self, target: Path, mode: int) -> EditResult:
        self.console.dry_run_msg(f"Create staging copy in {self.staging.directory} (mode {format_mode(self.staging.mode)})")
        self.console.dry_run_msg(f"Copy {target} into it with {self.elevated.name}")
        self.console.dry_run_msg("Wait for editing to finish")
        if self.backup:
            self.console.dry_run_msg(f"Back up {target} to {target.name}.bak.<timestamp>")
        self.console.dry_run_msg(f"Write the staging copy back to {target}")
        self.console.dry_run_msg(f"Restore mode {format_mode(mode)} on {target}")
        self.console.dry_run_msg("Delete the staging copy")
        self.audit.log_event(
            AuditEventType.EDIT_DRY_RUN,
            AuditResult.DRY_RUN,
            target=target,
            parameters={"mode": format_mode(mode)},
        )
        return EditResult(target=target, mode=mode, state=self.state, dry_run=True)

    def _record_failure(self, target: Path, result: AuditResult, error: str) -> None:
        failed_in = self.state
        self._transition(EditState.FAILED)
        self.audit.log_event(
            AuditEventType.EDIT_FAILURE,
            result,
            target=target,
            parameters={"state": failed_in.value},
            error=error,
        )
