"""Core framework components for suedit."""

from suedit.core.exceptions import (
    SuEditError,
    ConfigurationError,
    UsageError,
    NotFoundError,
    PrivilegeError,
    ResourceError,
    ExecutionError,
    EditAbortedError,
    TerminatedError,
)

from suedit.core.context import ExecutionContext, create_context
from suedit.core.output import console, Console, Verbosity
from suedit.core.config import AppConfig, EditorConfig
from suedit.core.audit import (
    AuditLogger,
    AuditEvent,
    AuditEventType,
    AuditResult,
    create_audit_logger,
)
from suedit.core.executor import CommandExecutor, CommandResult

__all__ = [
    # Exceptions
    "SuEditError",
    "ConfigurationError",
    "UsageError",
    "NotFoundError",
    "PrivilegeError",
    "ResourceError",
    "ExecutionError",
    "EditAbortedError",
    "TerminatedError",
    # Context
    "ExecutionContext",
    "create_context",
    # Output
    "console",
    "Console",
    "Verbosity",
    # Config
    "AppConfig",
    "EditorConfig",
    # Audit
    "AuditLogger",
    "AuditEvent",
    "AuditEventType",
    "AuditResult",
    "create_audit_logger",
    # Executor
    "CommandExecutor",
    "CommandResult",
]
