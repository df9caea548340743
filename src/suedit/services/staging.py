"""Staging copies in the scratch area.

A staging copy is the file the operator actually edits. It is created
with a collision-free name, opened up so that an unprivileged editor can
write it, and always removed again: on success, on error, on Ctrl-C and
on SIGTERM/SIGHUP while termination_guard() is active. Those signals
and Ctrl-C are ignored while the copy is being removed.
"""

import contextlib
import os
import signal
import stat
import tempfile
import threading
import time
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Generator, Iterable, Optional

from suedit.core.audit import AuditEventType, AuditLogger, AuditResult
from suedit.core.config import DEFAULT_STAGING_MODE, DEFAULT_STAGING_PREFIX
from suedit.core.exceptions import ResourceError, TerminatedError
from suedit.core.output import console


# Longest part of the target name kept in the staging name
MAX_SUFFIX_LENGTH = 64

# Chunk size for overwriting staging content before unlink
WIPE_CHUNK_SIZE = 64 * 1024

TERMINATION_SIGNALS = (signal.SIGTERM, signal.SIGHUP)

# Held off while a staging file is being removed
CLEANUP_SIGNALS = TERMINATION_SIGNALS + (signal.SIGINT,)


@dataclass
class StrayStagingFile:
    """A staging file left behind by an earlier run."""
    path: Path
    size: int
    modified: datetime

    @property
    def age_minutes(self) -> float:
        """Minutes since last modification."""
        return max(0.0, (datetime.now() - self.modified).total_seconds() / 60)


class StagingArea:
    """Allocates and releases staging copies in a scratch directory."""

    def __init__(
        self,
        directory: Optional[Path] = None,
        prefix: str = DEFAULT_STAGING_PREFIX,
        mode: int = DEFAULT_STAGING_MODE,
        secure_delete: bool = True,
        audit: Optional[AuditLogger] = None,
    ) -> None:
        """Initialize staging area.

        Args:
            directory: Scratch directory (system temp dir if None)
            prefix: File name prefix identifying staging copies
            mode: Permission bits applied to new staging copies
            secure_delete: Overwrite content before unlinking
            audit: Audit logger for create/remove events
        """
        self.directory = Path(directory or tempfile.gettempdir())
        self.prefix = prefix
        self.mode = mode
        self.secure_delete = secure_delete
        self.audit = audit or AuditLogger(enabled=False)

    def _suffix_for(self, target: Optional[Path]) -> str:
        if target is None or not target.name:
            return ""
        return "-" + target.name[-MAX_SUFFIX_LENGTH:]

    def allocate(self, target: Optional[Path] = None) -> Path:
        """Create a new, empty staging file.

        The name is unique within the scratch directory (created with
        O_EXCL), ends with the target's file name so editors pick the
        right syntax, and carries the configured permission bits.

        Args:
            target: File the staging copy shadows

        Returns:
            Path to the staging file

        Raises:
            ResourceError: If the file cannot be created
        """
        try:
            fd, name = tempfile.mkstemp(
                prefix=self.prefix,
                suffix=self._suffix_for(target),
                dir=self.directory,
            )
        except OSError as e:
            raise ResourceError(
                f"Cannot create staging file in {self.directory}: {e.strerror}",
                hint="Check that the scratch directory exists and is writable "
                     "(staging.directory / SUEDIT_SCRATCH_DIR)",
            ) from e
        os.close(fd)

        path = Path(name)
        try:
            os.chmod(path, self.mode)
        except OSError as e:
            self.release(path)
            raise ResourceError(
                f"Cannot set permissions on staging file {path}: {e.strerror}",
            ) from e

        console.debug(f"Staging file created: {path} ({oct(self.mode)})")
        self.audit.log_event(
            AuditEventType.STAGING_CREATE,
            AuditResult.SUCCESS,
            target=target,
            parameters={"staging_path": str(path)},
        )
        return path

    def populate(self, path: Path, data: bytes) -> None:
        """Write the target's content into the staging file.

        Raises:
            ResourceError: If writing fails (e.g. disk full)
        """
        try:
            with open(path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise ResourceError(
                f"Cannot write staging file {path}: {e.strerror}",
            ) from e

    def read(self, path: Path) -> bytes:
        """Read the edited content back.

        Raises:
            ResourceError: If the staging file vanished or is unreadable
        """
        try:
            return path.read_bytes()
        except OSError as e:
            raise ResourceError(
                f"Cannot read staging file {path}: {e.strerror}",
                hint="Edit the staging file in place; do not move or delete it",
            ) from e

    def release(
        self,
        path: Path,
        event_type: AuditEventType = AuditEventType.STAGING_REMOVE,
    ) -> bool:
        """Delete a staging file.

        Regular files are overwritten first when secure_delete is set;
        anything else (e.g. a symlink swapped in by an editor) is only
        unlinked.

        Args:
            path: Staging file path
            event_type: Audit event recorded for the removal

        Returns:
            True if the file was removed, False if it was already gone
        """
        try:
            st = os.lstat(path)
        except FileNotFoundError:
            return False

        if self.secure_delete and stat.S_ISREG(st.st_mode) and st.st_size > 0:
            self._wipe(path, st.st_size)

        try:
            path.unlink()
        except FileNotFoundError:
            return False

        console.debug(f"Staging file removed: {path}")
        self.audit.log_event(
            event_type,
            AuditResult.SUCCESS,
            parameters={"staging_path": str(path)},
        )
        return True

    def _wipe(self, path: Path, size: int) -> None:
        """Overwrite file content with zeros."""
        try:
            fd = os.open(path, os.O_WRONLY | os.O_NOFOLLOW)
        except OSError as e:
            console.debug(f"Cannot open {path} for wiping: {e}")
            return
        with os.fdopen(fd, "wb") as f:
            remaining = size
            block = bytes(WIPE_CHUNK_SIZE)
            while remaining > 0:
                n = min(remaining, WIPE_CHUNK_SIZE)
                f.write(block[:n])
                remaining -= n
            f.flush()
            os.fsync(f.fileno())

    @contextlib.contextmanager
    def staged(self, target: Optional[Path] = None) -> Generator[Path, None, None]:
        """Allocate a staging file and guarantee its removal.

        Usage:
            with staging.staged(target) as path:
                ...  # path is deleted when the block exits, however it exits
        """
        path = self.allocate(target)
        try:
            yield path
        finally:
            try:
                with signals_ignored():
                    self.release(path)
            except OSError as e:
                console.warn(f"Could not remove staging file {path}: {e}")
                console.hint("Remove it manually or run: suedit cleanup")

    def find_strays(self, min_age_minutes: float = 0) -> list[StrayStagingFile]:
        """List leftover staging files owned by the current user.

        Args:
            min_age_minutes: Only report files at least this old

        Returns:
            Stray files, oldest first
        """
        if not self.directory.is_dir():
            return []

        uid = os.getuid()
        now = time.time()
        strays = []
        for path in self.directory.glob(f"{self.prefix}*"):
            try:
                st = os.lstat(path)
            except OSError:
                continue
            if not stat.S_ISREG(st.st_mode) or st.st_uid != uid:
                continue
            if (now - st.st_mtime) / 60 < min_age_minutes:
                continue
            strays.append(StrayStagingFile(
                path=path,
                size=st.st_size,
                modified=datetime.fromtimestamp(st.st_mtime),
            ))

        return sorted(strays, key=lambda s: s.modified)


@contextlib.contextmanager
def _signal_handler(
    signals: Iterable[signal.Signals],
    handler,
) -> Generator[None, None, None]:
    # Handlers can only be installed from the main thread
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    previous = {}
    for sig in signals:
        previous[sig] = signal.signal(sig, handler)
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)


def termination_guard(
    signals: Iterable[signal.Signals] = TERMINATION_SIGNALS,
) -> contextlib.AbstractContextManager:
    """Turn termination signals into TerminatedError for the block.

    The exception unwinds through the enclosing `with` statements, so
    their cleanup runs. Previous handlers are restored on exit. Outside
    the main thread this is a no-op.
    """
    def _raise(signum: int, frame: object) -> None:
        raise TerminatedError(signum, signal.Signals(signum).name)

    return _signal_handler(signals, _raise)


def signals_ignored(
    signals: Iterable[signal.Signals] = CLEANUP_SIGNALS,
) -> contextlib.AbstractContextManager:
    """Ignore signals for the block, e.g. while a staging file is removed."""
    return _signal_handler(signals, signal.SIG_IGN)

