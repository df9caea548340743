"""Custom exceptions for suedit.

All exceptions provide:
- Clear error messages
- Optional hints for resolution
- Optional details for debugging
- Exit codes for proper shell integration
"""

from typing import Optional


class SuEditError(Exception):
    """Base exception for all suedit errors.

    Attributes:
        message: Human-readable error description
        hint: Suggested action to resolve the error
        details: Additional context for debugging
        exit_code: Shell exit code (1-255)
    """

    exit_code: int = 1

    def __init__(
        self,
        message: str,
        *,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.hint = hint
        self.details = details or []

    def __str__(self) -> str:
        return self.message


class ConfigurationError(SuEditError):
    """Configuration file or settings errors.

    Raised when:
    - Config file unreadable
    - Invalid YAML syntax
    - Invalid configuration values
    """
    exit_code = 2


class UsageError(SuEditError):
    """Bad invocation.

    Raised when:
    - Zero or more than one target path is given
    - The target is a directory
    - A mode string is not valid octal
    """
    exit_code = 3


class NotFoundError(SuEditError):
    """Target file does not exist."""
    exit_code = 4

    def __init__(
        self,
        message: str,
        *,
        path: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, hint=hint, details=details)
        self.path = path


class PrivilegeError(SuEditError):
    """Elevated operation denied or failed.

    Raised when:
    - sudo authentication is refused
    - Elevated read, write, stat or chmod fails
    """
    exit_code = 5

    def __init__(
        self,
        message: str,
        *,
        operation: Optional[str] = None,
        path: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        super().__init__(message, hint=hint, details=details)
        self.operation = operation
        self.path = path


class ResourceError(SuEditError):
    """Staging file could not be allocated or populated.

    Raised when:
    - Scratch directory is missing or not writable
    - Disk is full
    """
    exit_code = 6


class ExecutionError(SuEditError):
    """Command execution failures.

    Raised when:
    - Shell command returns non-zero exit code
    - Command times out
    - Command binary not found
    """
    exit_code = 7

    def __init__(
        self,
        message: str,
        *,
        command: Optional[str] = None,
        return_code: Optional[int] = None,
        stderr: Optional[str] = None,
        hint: Optional[str] = None,
        details: Optional[list[str]] = None,
    ) -> None:
        if not details:
            details = []
        if return_code is not None:
            details.append(f"Exit code: {return_code}")
        if stderr:
            details.append(f"Error output: {stderr}")
        super().__init__(message, hint=hint, details=details)
        self.command = command
        self.return_code = return_code
        self.stderr = stderr


class EditAbortedError(SuEditError):
    """Operator ended the hand-off without confirming.

    Raised when:
    - Standard input is closed while waiting for the continuation signal
    - The editor exits with a non-zero status
    """
    exit_code = 8


class TerminatedError(SuEditError):
    """Process received a termination signal during an edit."""

    def __init__(self, signum: int, signame: Optional[str] = None) -> None:
        name = signame or f"signal {signum}"
        super().__init__(
            f"Terminated by {name}",
            hint="The target was not modified unless the commit had already finished",
        )
        self.signum = signum
        self.exit_code = 128 + signum
