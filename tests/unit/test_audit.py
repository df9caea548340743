"""Unit tests for audit logging."""

import json
import os
from pathlib import Path

from suedit.core.audit import (
    AuditEvent,
    AuditEventType,
    AuditLogger,
    AuditResult,
    create_audit_logger,
)


def read_events(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().splitlines()]


class TestAuditEvent:
    """Tests for event serialization."""

    def test_to_dict(self):
        event = AuditEvent(
            event_type=AuditEventType.EDIT_COMMIT,
            result=AuditResult.SUCCESS,
            target_path="/etc/hosts",
            parameters={"mode": "644"},
        )
        data = event.to_dict()
        assert data["event_type"] == "edit.commit"
        assert data["result"] == "success"
        assert data["target"] == "/etc/hosts"
        assert data["actor"]["uid"] == os.getuid()
        assert data["parameters"] == {"mode": "644"}

    def test_redacts_sensitive_keys(self):
        event = AuditEvent(
            event_type=AuditEventType.EDIT_START,
            result=AuditResult.SUCCESS,
            parameters={
                "content": b"root:x:0:0",
                "nested": {"password": "hunter2", "mode": "600"},
            },
        )
        params = event.to_dict()["parameters"]
        assert params["content"] == "***REDACTED***"
        assert params["nested"]["password"] == "***REDACTED***"
        assert params["nested"]["mode"] == "600"


class TestAuditLogger:
    """Tests for the log file."""

    def test_writes_json_lines(self, audit_log):
        audit = AuditLogger(log_path=audit_log)
        audit.log_event(AuditEventType.EDIT_START, AuditResult.SUCCESS, target=Path("/etc/hosts"))
        audit.log_event(AuditEventType.EDIT_COMMIT, AuditResult.SUCCESS, target=Path("/etc/hosts"))

        events = read_events(audit_log)
        assert [e["event_type"] for e in events] == ["edit.start", "edit.commit"]
        assert all(e["session_id"] == audit.session_id for e in events)

    def test_private_permissions(self, audit_log):
        AuditLogger(log_path=audit_log).log_session_start("edit", ["/etc/hosts"])
        assert os.stat(audit_log).st_mode & 0o777 == 0o600
        assert os.stat(audit_log.parent).st_mode & 0o777 == 0o700

    def test_disabled(self, audit_log):
        AuditLogger(log_path=audit_log, enabled=False).log_session_start("edit", [])
        assert not audit_log.exists()

    def test_correlation(self, audit_log):
        audit = AuditLogger(log_path=audit_log)
        with audit.correlation("edit") as corr_id:
            audit.log_event(AuditEventType.EDIT_START, AuditResult.SUCCESS)
        audit.log_event(AuditEventType.SESSION_END, AuditResult.SUCCESS)

        first, second = read_events(audit_log)
        assert corr_id.startswith("edit_")
        assert first["correlation_id"] == corr_id
        assert second["correlation_id"] is None

    def test_session_end_result(self, audit_log):
        audit = AuditLogger(log_path=audit_log)
        audit.log_session_end(0)
        audit.log_session_end(5)
        ok, failed = read_events(audit_log)
        assert ok["result"] == "success"
        assert failed["result"] == "failure"
        assert failed["parameters"]["exit_code"] == 5

    def test_unwritable_location_is_ignored(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")
        audit = AuditLogger(log_path=blocker / "audit.log")
        audit.log_session_start("edit", [])

    def test_rotation(self, audit_log):
        audit = create_audit_logger(log_path=audit_log, max_size_mb=1, backup_count=2)
        audit.max_size_bytes = 200

        for _ in range(6):
            audit.log_session_start("edit", ["/etc/hosts"])

        backup_1 = audit_log.with_name("audit.log.1")
        backup_2 = audit_log.with_name("audit.log.2")
        assert backup_1.exists()
        assert backup_2.exists()
        assert not audit_log.with_name("audit.log.3").exists()
