"""Shared fixtures for suedit tests."""

import os
from pathlib import Path
from typing import Callable, Optional

import pytest

from suedit.core.audit import AuditLogger
from suedit.services.editor import PrivilegedFileEditor
from suedit.services.elevated import DirectExecutor
from suedit.services.handoff import ContinuationChannel
from suedit.services.staging import StagingArea


class ScriptedChannel(ContinuationChannel):
    """Continuation channel that plays the operator.

    The action receives the staging path and may edit it, raise, or do
    nothing. What the channel saw is recorded for assertions.
    """

    def __init__(self, action: Optional[Callable[[Path], None]] = None) -> None:
        self.action = action
        self.calls = 0
        self.staging_path: Optional[Path] = None
        self.staging_mode: Optional[int] = None
        self.staging_content: Optional[bytes] = None

    def hand_off(self, staging_path: Path, target: Path) -> None:
        self.calls += 1
        self.staging_path = staging_path
        self.staging_mode = os.stat(staging_path).st_mode & 0o7777
        self.staging_content = staging_path.read_bytes()
        if self.action:
            self.action(staging_path)


def write_with(content: bytes) -> Callable[[Path], None]:
    """Operator action replacing the staging content."""
    def action(path: Path) -> None:
        path.write_bytes(content)
    return action


@pytest.fixture
def scratch_dir(tmp_path: Path) -> Path:
    """Empty scratch directory for staging copies."""
    directory = tmp_path / "scratch"
    directory.mkdir()
    return directory


@pytest.fixture
def target(tmp_path: Path) -> Path:
    """Target file with content A and mode 640."""
    path = tmp_path / "demo.conf"
    path.write_bytes(b"A")
    os.chmod(path, 0o640)
    return path


@pytest.fixture
def audit_log(tmp_path: Path) -> Path:
    """Audit log location inside the test directory."""
    return tmp_path / "state" / "audit.log"


@pytest.fixture
def make_editor(scratch_dir: Path, audit_log: Path):
    """Factory for editors wired to direct file access and a scratch dir."""
    def factory(
        channel: ContinuationChannel,
        elevated: Optional[DirectExecutor] = None,
        staging: Optional[StagingArea] = None,
        **kwargs,
    ) -> PrivilegedFileEditor:
        audit = AuditLogger(log_path=audit_log)
        return PrivilegedFileEditor(
            elevated=elevated or DirectExecutor(),
            staging=staging or StagingArea(directory=scratch_dir, audit=audit),
            channel=channel,
            audit=audit,
            **kwargs,
        )
    return factory


@pytest.fixture
def config_file(tmp_path: Path, scratch_dir: Path, audit_log: Path) -> Path:
    """Config file pointing staging and audit at the test directory."""
    path = tmp_path / "config.yaml"
    path.write_text(
        "staging:\n"
        f"  directory: {scratch_dir}\n"
        "elevation:\n"
        "  use_sudo: false\n"
        "audit:\n"
        f"  log_path: {audit_log}\n"
    )
    return path
