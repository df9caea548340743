"""Subprocess execution for suedit.

Used for two kinds of commands:
- elevated coreutils calls (`cat`, `tee`, `stat`, `chmod`, `dd`)
  prefixed with the configured sudo command, moving file content as
  bytes over stdin/stdout
- the operator's editor, run with the caller's privileges and the
  terminal left attached
"""

import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Optional, Union

from suedit.core.context import ExecutionContext
from suedit.core.exceptions import ExecutionError


@dataclass
class CommandResult:
    """Exit status and output of a finished command."""
    command: list[str]
    return_code: int
    stdout: Union[str, bytes]
    stderr: str

    @property
    def success(self) -> bool:
        return self.return_code == 0


class CommandExecutor:
    """Runs commands, honouring dry-run and the sudo prefix.

    In dry-run mode commands are announced and skipped unless the caller
    marks them `always` (reads the plan depends on, such as `stat`).
    """

    def __init__(
        self,
        ctx: ExecutionContext,
        sudo_command: Optional[list[str]] = None,
    ) -> None:
        """Initialize executor.

        Args:
            ctx: Execution context (dry-run flag, console)
            sudo_command: Prefix for elevated commands, e.g. ["sudo"] or ["doas"]
        """
        self.ctx = ctx
        self.sudo_command = list(sudo_command or ["sudo"])

    def run(
        self,
        command: list[str],
        *,
        description: Optional[str] = None,
        check: bool = True,
        capture: bool = True,
        discard_output: bool = False,
        elevate: bool = False,
        binary: bool = False,
        input_data: Optional[bytes] = None,
        timeout: Optional[int] = None,
        env: Optional[dict[str, str]] = None,
        always: bool = False,
    ) -> CommandResult:
        """Run a command and wait for it.

        Args:
            command: Program and arguments
            description: Progress line shown before running
            check: Raise ExecutionError on a non-zero exit status
            capture: Collect stdout/stderr; False leaves the terminal attached
            discard_output: Send stdout to /dev/null (stderr is still captured)
            elevate: Prepend the sudo command
            binary: Return stdout as bytes rather than decoded text
            input_data: Bytes written to the command's stdin
            timeout: Seconds before the command is killed
            env: Variables added to the inherited environment
            always: Run even in dry-run mode

        Returns:
            CommandResult (empty output for a skipped dry-run command)

        Raises:
            ExecutionError: Non-zero exit with check, timeout, or missing program
        """
        if elevate:
            command = self.sudo_command + command
        shown = shlex.join(command)

        if description:
            self.ctx.console.step(description)
        self.ctx.console.debug(f"Running: {shown}")

        if self.ctx.dry_run and not always:
            self.ctx.console.dry_run_msg(f"Run: {shown}")
            return CommandResult(command, 0, b"" if binary else "", "")

        run_env = {**os.environ, **env} if env else None
        pipe = subprocess.PIPE if capture else None
        stdout_target = subprocess.DEVNULL if discard_output else pipe

        try:
            proc = subprocess.run(
                command,
                input=input_data,
                stdout=stdout_target,
                stderr=pipe,
                timeout=timeout,
                env=run_env,
            )
        except subprocess.TimeoutExpired as e:
            raise ExecutionError(
                f"Command timed out after {timeout}s: {description or shown}",
                command=shown,
                hint="A sudo password prompt counts against elevation.timeout",
            ) from e
        except FileNotFoundError as e:
            raise ExecutionError(
                f"Command not found: {command[0]}",
                command=shown,
                hint=f"Install {command[0]} or adjust the configuration",
            ) from e

        stdout: Union[str, bytes] = proc.stdout or b""
        if not binary:
            stdout = stdout.decode(errors="replace")
        stderr = (proc.stderr or b"").decode(errors="replace").strip()

        if check and proc.returncode != 0:
            raise ExecutionError(
                f"Command failed: {description or shown}",
                command=shown,
                return_code=proc.returncode,
                stderr=stderr or None,
            )

        return CommandResult(command, proc.returncode, stdout, stderr)
