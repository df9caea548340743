"""Audit trail of privileged edits.

Every run appends JSON lines to a private log file: who edited which
file, with which mode, through which elevation, and how it ended. File
content never reaches the log; parameters whose key looks sensitive
(`content`, `data`, `password`, ...) are replaced before writing.

Writing the log is best effort. A log that cannot be written is
reported at debug level and never stops an edit.
"""

import fcntl
import json
import os
import pwd
import uuid
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Generator, Optional

from suedit.core.config import DEFAULT_AUDIT_LOG_PATH
from suedit.core.output import console


DEFAULT_MAX_SIZE_MB = 10
DEFAULT_BACKUP_COUNT = 5

REDACTED = "***REDACTED***"

# Parameter keys containing any of these are redacted
SENSITIVE_KEYS = frozenset({
    "password", "secret", "token", "credential", "content", "data",
})


class AuditEventType(Enum):
    """What happened."""
    SESSION_START = "session.start"
    SESSION_END = "session.end"

    EDIT_START = "edit.start"
    EDIT_COMMIT = "edit.commit"
    EDIT_FAILURE = "edit.failure"
    EDIT_DRY_RUN = "edit.dry_run"
    EDIT_BACKUP = "edit.backup"

    STAGING_CREATE = "staging.create"
    STAGING_REMOVE = "staging.remove"

    CLEANUP_REMOVE = "cleanup.remove"


class AuditResult(Enum):
    """How it ended."""
    SUCCESS = "success"
    FAILURE = "failure"
    ABORTED = "aborted"
    DRY_RUN = "dry_run"


def redact(key: str, value: Any) -> Any:
    """Return value with sensitive entries replaced, recursing into containers."""
    if any(word in key.lower() for word in SENSITIVE_KEYS):
        return REDACTED
    if isinstance(value, dict):
        return {k: redact(k, v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [redact(key, v) for v in value]
    return value


def _username(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


@dataclass
class AuditEvent:
    """One line of the audit log."""
    event_type: AuditEventType
    result: AuditResult
    target_path: Optional[str] = None
    parameters: dict[str, Any] = field(default_factory=dict)
    message: Optional[str] = None
    error: Optional[str] = None

    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    actor_uid: int = field(default_factory=os.getuid)
    # Set when suedit itself runs under sudo
    actor_sudo_user: Optional[str] = field(default_factory=lambda: os.environ.get("SUDO_USER"))

    session_id: Optional[str] = None
    correlation_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "result": self.result.value,
            "actor": {
                "uid": self.actor_uid,
                "username": _username(self.actor_uid),
                "sudo_user": self.actor_sudo_user,
            },
            "target": self.target_path,
            "parameters": {k: redact(k, v) for k, v in self.parameters.items()},
            "message": self.message,
            "error": self.error,
            "session_id": self.session_id,
            "correlation_id": self.correlation_id,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)


class AuditLogger:
    """Appends audit events to a size-rotated JSON-lines file.

    All events of one logger share a session id. Events logged inside
    `correlation()` additionally share a correlation id, which ties the
    staging and commit events of a single edit together.
    """

    def __init__(
        self,
        log_path: Optional[Path] = None,
        max_size_mb: int = DEFAULT_MAX_SIZE_MB,
        backup_count: int = DEFAULT_BACKUP_COUNT,
        enabled: bool = True,
    ) -> None:
        """Initialize audit logger.

        Args:
            log_path: Log file (created 0600 in a 0700 directory)
            max_size_mb: Rotate once the file grows past this size
            backup_count: Rotated files kept as <log>.1 .. <log>.N
            enabled: False turns every call into a no-op
        """
        self.log_path = Path(log_path or DEFAULT_AUDIT_LOG_PATH)
        self.max_size_bytes = max_size_mb * 1024 * 1024
        self.backup_count = backup_count
        self.enabled = enabled

        self.session_id = str(uuid.uuid4())
        self._correlation_ids: list[str] = []

    def log(self, event: AuditEvent) -> None:
        """Stamp event with the session and correlation ids and append it."""
        if not self.enabled:
            return

        event.session_id = self.session_id
        if self._correlation_ids:
            event.correlation_id = self._correlation_ids[-1]

        try:
            self.log_path.parent.mkdir(mode=0o700, parents=True, exist_ok=True)
            self._append(event.to_json() + "\n")
            if self.log_path.stat().st_size > self.max_size_bytes:
                self._rotate()
        except OSError as e:
            console.debug(f"Audit log not written ({self.log_path}): {e}")

    def _append(self, line: str) -> None:
        fd = os.open(self.log_path, os.O_WRONLY | os.O_APPEND | os.O_CREAT, 0o600)
        with os.fdopen(fd, "a") as f:
            # Exclusive lock so lines from concurrent runs never interleave
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            f.write(line)
            f.flush()
            os.fsync(f.fileno())

    def _rotated(self, index: int) -> Path:
        return self.log_path.with_name(f"{self.log_path.name}.{index}")

    def _rotate(self) -> None:
        """audit.log -> audit.log.1 -> ... -> audit.log.N (dropped)."""
        self._rotated(self.backup_count).unlink(missing_ok=True)
        for index in range(self.backup_count - 1, 0, -1):
            if self._rotated(index).exists():
                self._rotated(index).rename(self._rotated(index + 1))
        self.log_path.rename(self._rotated(1))
        self.log_path.touch(mode=0o600)

    @contextmanager
    def correlation(self, operation: str) -> Generator[str, None, None]:
        """Give every event logged in the block the same correlation id."""
        correlation_id = f"{operation}_{uuid.uuid4().hex[:8]}"
        self._correlation_ids.append(correlation_id)
        try:
            yield correlation_id
        finally:
            self._correlation_ids.pop()

    def log_event(
        self,
        event_type: AuditEventType,
        result: AuditResult,
        target: Optional[Path] = None,
        parameters: Optional[dict[str, Any]] = None,
        message: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        self.log(AuditEvent(
            event_type=event_type,
            result=result,
            target_path=str(target) if target is not None else None,
            parameters=parameters or {},
            message=message,
            error=error,
        ))

    def log_session_start(self, command: str, args: list[str]) -> None:
        self.log_event(
            AuditEventType.SESSION_START,
            AuditResult.SUCCESS,
            parameters={"args": args},
            message=command,
        )

    def log_session_end(self, exit_code: int) -> None:
        self.log_event(
            AuditEventType.SESSION_END,
            AuditResult.SUCCESS if exit_code == 0 else AuditResult.FAILURE,
            parameters={"exit_code": exit_code},
        )


def create_audit_logger(
    log_path: Optional[Path] = None,
    enabled: bool = True,
    max_size_mb: int = DEFAULT_MAX_SIZE_MB,
    backup_count: int = DEFAULT_BACKUP_COUNT,
) -> AuditLogger:
    """Create an audit logger from configuration values."""
    return AuditLogger(
        log_path=log_path,
        max_size_mb=max_size_mb,
        backup_count=backup_count,
        enabled=enabled,
    )
