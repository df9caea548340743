"""Unit tests for elevated file operations."""

import os
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from suedit.core.context import ExecutionContext
from suedit.core.exceptions import (
    ExecutionError,
    NotFoundError,
    PrivilegeError,
    UsageError,
)
from suedit.core.executor import CommandExecutor, CommandResult
from suedit.services.elevated import (
    DirectExecutor,
    SudoExecutor,
    get_elevated_executor,
)


running_as_root = pytest.mark.skipif(os.geteuid() == 0, reason="root bypasses permission checks")


def make_result(stdout=b"", return_code=0):
    return CommandResult(command=[], return_code=return_code, stdout=stdout, stderr="")


class TestDirectExecutor:
    """Tests for DirectExecutor."""

    def test_read_content(self, target):
        assert DirectExecutor().read_content(target) == b"A"

    def test_write_content_keeps_inode(self, target):
        """The target is rewritten in place, not replaced."""
        inode = os.stat(target).st_ino
        DirectExecutor().write_content(target, b"B")
        assert target.read_bytes() == b"B"
        assert os.stat(target).st_ino == inode

    def test_write_content_truncates(self, target):
        target.write_bytes(b"a much longer original")
        DirectExecutor().write_content(target, b"short")
        assert target.read_bytes() == b"short"

    def test_write_does_not_create(self, tmp_path):
        with pytest.raises(PrivilegeError):
            DirectExecutor().write_content(tmp_path / "missing", b"x")
        assert not (tmp_path / "missing").exists()

    def test_read_mode(self, target):
        assert DirectExecutor().read_mode(target) == 0o640

    def test_write_mode_with_special_bits(self, target):
        DirectExecutor().write_mode(target, 0o2750)
        assert os.stat(target).st_mode & 0o7777 == 0o2750

    def test_read_mode_missing(self, tmp_path):
        with pytest.raises(NotFoundError) as exc:
            DirectExecutor().read_mode(tmp_path / "missing")
        assert exc.value.exit_code == 4

    def test_read_directory(self, tmp_path):
        with pytest.raises(UsageError):
            DirectExecutor().read_content(tmp_path)

    def test_create_file(self, tmp_path):
        path = tmp_path / "backup"
        DirectExecutor().create_file(path, b"data", 0o640)
        assert path.read_bytes() == b"data"
        assert os.stat(path).st_mode & 0o7777 == 0o640

    def test_create_file_refuses_existing(self, target):
        with pytest.raises(FileExistsError):
            DirectExecutor().create_file(target, b"x", 0o600)
        assert target.read_bytes() == b"A"

    @running_as_root
    def test_read_denied(self, target):
        os.chmod(target, 0o000)
        try:
            with pytest.raises(PrivilegeError) as exc:
                DirectExecutor().read_content(target)
            assert exc.value.operation == "read"
            assert "--no-sudo" in exc.value.hint
        finally:
            os.chmod(target, 0o640)

    @running_as_root
    def test_write_denied(self, target):
        os.chmod(target, 0o440)
        with pytest.raises(PrivilegeError) as exc:
            DirectExecutor().write_content(target, b"B")
        assert exc.value.operation == "write"
        assert target.read_bytes() == b"A"


class TestSudoExecutorCommands:
    """Tests for the commands SudoExecutor issues."""

    @pytest.fixture
    def executor(self):
        mock = MagicMock(spec=CommandExecutor)
        mock.sudo_command = ["sudo"]
        mock.run.return_value = make_result()
        return mock

    @pytest.fixture
    def sudo(self, executor):
        return SudoExecutor(MagicMock(spec=ExecutionContext), executor, timeout=30)

    def test_name(self, sudo):
        assert sudo.name == "sudo"

    def test_read_content(self, sudo, executor):
        executor.run.return_value = make_result(b"A")
        assert sudo.read_content(Path("/etc/demo.conf")) == b"A"

        args, kwargs = executor.run.call_args
        assert args[0] == ["cat", "--", "/etc/demo.conf"]
        assert kwargs["elevate"] is True
        assert kwargs["binary"] is True
        assert kwargs["timeout"] == 30
        assert kwargs["always"] is True

    def test_write_content_pipes_stdin(self, sudo, executor):
        sudo.write_content(Path("/etc/demo.conf"), b"B")

        args, kwargs = executor.run.call_args
        assert args[0] == ["tee", "--", "/etc/demo.conf"]
        assert kwargs["input_data"] == b"B"
        assert kwargs["discard_output"] is True

    def test_read_mode(self, sudo, executor):
        executor.run.return_value = make_result("4755\n")
        assert sudo.read_mode(Path("/usr/bin/tool")) == 0o4755
        assert executor.run.call_args[0][0] == ["stat", "-c", "%a", "--", "/usr/bin/tool"]

    def test_read_mode_garbage(self, sudo, executor):
        executor.run.return_value = make_result("not-a-mode\n")
        with pytest.raises(PrivilegeError) as exc:
            sudo.read_mode(Path("/etc/demo.conf"))
        assert "Unexpected stat output" in str(exc.value)

    def test_write_mode(self, sudo, executor):
        sudo.write_mode(Path("/etc/demo.conf"), 0o640)
        assert executor.run.call_args[0][0] == ["chmod", "640", "--", "/etc/demo.conf"]

    def test_create_file(self, sudo, executor):
        sudo.create_file(Path("/etc/demo.conf.bak"), b"A", 0o600)

        commands = [c[0][0] for c in executor.run.call_args_list]
        assert commands == [
            ["dd", "if=/dev/null", "of=/etc/demo.conf.bak", "conv=excl", "status=none"],
            ["chmod", "600", "--", "/etc/demo.conf.bak"],
            ["tee", "--", "/etc/demo.conf.bak"],
        ]

    def test_failure_becomes_privilege_error(self, sudo, executor):
        executor.run.side_effect = ExecutionError(
            "Command failed", return_code=1, stderr="sudo: a password is required",
        )
        with pytest.raises(PrivilegeError) as exc:
            sudo.read_content(Path("/etc/shadow"))
        assert exc.value.operation == "read"
        assert exc.value.path == "/etc/shadow"
        assert any("password is required" in d for d in exc.value.details)


class TestSudoExecutorEndToEnd:
    """SudoExecutor driven through a real CommandExecutor.

    `env` stands in for sudo: it runs the command unchanged, so the
    coreutils invocations are exercised for real.
    """

    @pytest.fixture
    def sudo(self):
        ctx = ExecutionContext()
        return SudoExecutor(ctx, CommandExecutor(ctx, sudo_command=["env"]))

    def test_read_write_stat_chmod(self, sudo, target):
        assert sudo.read_content(target) == b"A"
        assert sudo.read_mode(target) == 0o640

        sudo.write_content(target, b"B\x00\n")
        sudo.write_mode(target, 0o600)

        assert target.read_bytes() == b"B\x00\n"
        assert os.stat(target).st_mode & 0o7777 == 0o600

    def test_runs_in_dry_run(self, target):
        """Elevated reads still happen in dry-run mode."""
        ctx = ExecutionContext(dry_run=True)
        sudo = SudoExecutor(ctx, CommandExecutor(ctx, sudo_command=["env"]))
        assert sudo.read_mode(target) == 0o640

    def test_missing_file(self, sudo, tmp_path):
        with pytest.raises(NotFoundError) as exc:
            sudo.read_mode(tmp_path / "missing")
        assert exc.value.path == str(tmp_path / "missing")
        with pytest.raises(NotFoundError):
            sudo.read_content(tmp_path / "missing")

    def test_directory(self, sudo, tmp_path):
        with pytest.raises(UsageError):
            sudo.read_content(tmp_path)

    def test_create_file(self, sudo, tmp_path):
        path = tmp_path / "demo.conf.bak"
        sudo.create_file(path, b"A", 0o600)
        assert path.read_bytes() == b"A"
        assert os.stat(path).st_mode & 0o7777 == 0o600

    def test_create_file_refuses_existing(self, sudo, target):
        with pytest.raises(FileExistsError):
            sudo.create_file(target, b"x", 0o600)
        assert target.read_bytes() == b"A"
        assert os.stat(target).st_mode & 0o7777 == 0o640

    def test_other_failure_is_privilege_error(self, tmp_path):
        ctx = ExecutionContext()
        sudo = SudoExecutor(ctx, CommandExecutor(ctx, sudo_command=["false"]))
        with pytest.raises(PrivilegeError):
            sudo.read_mode(tmp_path)


class TestGetElevatedExecutor:
    """Tests for executor selection."""

    def test_no_sudo_gives_direct(self):
        ctx = ExecutionContext(no_sudo=True)
        assert isinstance(get_elevated_executor(ctx), DirectExecutor)

    def test_root_gives_direct(self):
        with patch("suedit.services.elevated.os.geteuid", return_value=0):
            assert isinstance(get_elevated_executor(ExecutionContext()), DirectExecutor)

    def test_configured_sudo_command(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("elevation:\n  sudo_command: [doas]\n  timeout: 5\n")
        ctx = ExecutionContext(config_path=config)

        with patch("suedit.services.elevated.os.geteuid", return_value=1000):
            elevated = get_elevated_executor(ctx)

        assert isinstance(elevated, SudoExecutor)
        assert elevated.name == "doas"
        assert elevated.timeout == 5
