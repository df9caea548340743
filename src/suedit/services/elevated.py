"""Elevated file operations.

The editor needs exactly four privileged capabilities on the target:
read its content, overwrite its content, read its permission bits and
set its permission bits. Each call either fully succeeds or raises:
NotFoundError for a missing target, UsageError for a directory and
PrivilegeError for everything else.

Two implementations are provided:
- SudoExecutor: shells out through sudo (or a configured equivalent)
- DirectExecutor: plain os calls, for root or unprivileged targets
"""

import errno
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from suedit.core.context import ExecutionContext
from suedit.core.exceptions import (
    ExecutionError,
    NotFoundError,
    PrivilegeError,
    UsageError,
)
from suedit.core.executor import CommandExecutor
from suedit.core.validation import MODE_MASK, format_mode, parse_mode


class ElevatedExecutor(ABC):
    """Interface for privileged target access."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short name used in messages."""
        pass

    @abstractmethod
    def read_content(self, path: Path) -> bytes:
        """Return the full content of path."""
        pass

    @abstractmethod
    def write_content(self, path: Path, data: bytes) -> None:
        """Overwrite path in place with data (owner and mode untouched)."""
        pass

    @abstractmethod
    def read_mode(self, path: Path) -> int:
        """Return the permission bits of path (mode & 0o7777)."""
        pass

    @abstractmethod
    def write_mode(self, path: Path, mode: int) -> None:
        """Set the permission bits of path."""
        pass

    @abstractmethod
    def create_file(self, path: Path, data: bytes, mode: int) -> None:
        """Create path with data and mode (used for backups).

        Raises:
            FileExistsError: If path already exists; it is left untouched
        """
        pass


class SudoExecutor(ElevatedExecutor):
    """Privileged access via sudo and coreutils.

    Mirrors the classic shell sequence: `sudo cat`, `sudo tee`,
    `sudo stat -c %a`, `sudo chmod`. Commands run in the C locale so
    that a missing file, a directory and an existing backup can be told
    apart from a refused elevation by their error output.
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        executor: CommandExecutor,
        timeout: Optional[int] = None,
    ) -> None:
        """Initialize sudo executor.

        Args:
            ctx: Execution context
            executor: Command executor carrying the sudo prefix
            timeout: Seconds allowed per elevated call
        """
        self.ctx = ctx
        self.executor = executor
        self.timeout = timeout

    @property
    def name(self) -> str:
        return self.executor.sudo_command[0]

    def _run(self, operation: str, path: Path, command: list[str], **kwargs):
        try:
            return self.executor.run(
                command,
                elevate=True,
                timeout=self.timeout,
                always=True,
                env={"LC_ALL": "C"},
                **kwargs,
            )
        except ExecutionError as e:
            stderr = e.stderr or ""
            if "No such file or directory" in stderr:
                raise NotFoundError(
                    f"File '{path}' does not exist",
                    path=str(path),
                    hint="Check the path, or create the file first",
                    details=e.details,
                ) from e
            if "Is a directory" in stderr:
                raise UsageError(
                    f"'{path}' is a directory",
                    hint="Only regular files can be edited",
                ) from e
            if "File exists" in stderr:
                raise FileExistsError(errno.EEXIST, os.strerror(errno.EEXIST), str(path)) from e
            raise PrivilegeError(
                f"Elevated {operation} failed: {path}",
                operation=operation,
                path=str(path),
                hint=f"Check that you may run {self.name} and that the file is accessible",
                details=e.details,
            ) from e

    def read_content(self, path: Path) -> bytes:
        result = self._run("read", path, ["cat", "--", str(path)], binary=True)
        return result.stdout

    def write_content(self, path: Path, data: bytes) -> None:
        self._run(
            "write",
            path,
            ["tee", "--", str(path)],
            input_data=data,
            discard_output=True,
        )

    def read_mode(self, path: Path) -> int:
        result = self._run("stat", path, ["stat", "-c", "%a", "--", str(path)])
        try:
            return parse_mode(result.stdout.strip())
        except UsageError as e:
            raise PrivilegeError(
                f"Unexpected stat output for {path}: {result.stdout.strip()!r}",
                operation="stat",
                path=str(path),
            ) from e

    def write_mode(self, path: Path, mode: int) -> None:
        self._run("chmod", path, ["chmod", format_mode(mode), "--", str(path)])

    def create_file(self, path: Path, data: bytes, mode: int) -> None:
        # conv=excl refuses an existing file; it stays empty until chmod has run
        self._run(
            "create",
            path,
            ["dd", "if=/dev/null", f"of={path}", "conv=excl", "status=none"],
        )
        self.write_mode(path, mode)
        self.write_content(path, data)


class DirectExecutor(ElevatedExecutor):
    """Target access with the process's own privileges."""

    @property
    def name(self) -> str:
        return "direct"

    def read_content(self, path: Path) -> bytes:
        try:
            return Path(path).read_bytes()
        except IsADirectoryError as e:
            raise UsageError(
                f"'{path}' is a directory",
                hint="Only regular files can be edited",
            ) from e
        except OSError as e:
            raise PrivilegeError(
                f"Cannot read {path}: {e.strerror}",
                operation="read",
                path=str(path),
                hint="Run without --no-sudo, or as a user that can read the file",
            ) from e

    def write_content(self, path: Path, data: bytes) -> None:
        # O_TRUNC without O_CREAT rewrites the existing inode in place
        try:
            fd = os.open(path, os.O_WRONLY | os.O_TRUNC)
        except OSError as e:
            raise PrivilegeError(
                f"Cannot write {path}: {e.strerror}",
                operation="write",
                path=str(path),
                hint="Run without --no-sudo, or as a user that can write the file",
            ) from e
        try:
            with os.fdopen(fd, "wb") as f:
                f.write(data)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise PrivilegeError(
                f"Failed writing {path}: {e.strerror}",
                operation="write",
                path=str(path),
            ) from e

    def read_mode(self, path: Path) -> int:
        try:
            return os.stat(path).st_mode & MODE_MASK
        except FileNotFoundError as e:
            raise NotFoundError(
                f"File '{path}' does not exist",
                path=str(path),
                hint="Check the path, or create the file first",
            ) from e
        except OSError as e:
            raise PrivilegeError(
                f"Cannot stat {path}: {e.strerror}",
                operation="stat",
                path=str(path),
            ) from e

    def write_mode(self, path: Path, mode: int) -> None:
        try:
            os.chmod(path, mode & MODE_MASK)
        except OSError as e:
            raise PrivilegeError(
                f"Cannot chmod {path}: {e.strerror}",
                operation="chmod",
                path=str(path),
            ) from e

    def create_file(self, path: Path, data: bytes, mode: int) -> None:
        try:
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_EXCL, mode & 0o777)
            with os.fdopen(fd, "wb") as f:
                f.write(data)
            os.chmod(path, mode & MODE_MASK)
        except FileExistsError:
            raise
        except OSError as e:
            raise PrivilegeError(
                f"Cannot create {path}: {e.strerror}",
                operation="create",
                path=str(path),
            ) from e


def get_elevated_executor(ctx: ExecutionContext) -> ElevatedExecutor:
    """Pick the executor for this run.

    Root and --no-sudo runs use direct access; everyone else goes
    through the configured sudo command.
    """
    if os.geteuid() == 0 or not ctx.use_sudo:
        ctx.console.debug("Elevation: direct file access")
        return DirectExecutor()

    elevation = ctx.config.elevation
    executor = CommandExecutor(ctx, sudo_command=elevation.sudo_command)
    ctx.console.debug(f"Elevation: {' '.join(elevation.sudo_command)}")
    return SudoExecutor(ctx, executor, timeout=elevation.timeout)
