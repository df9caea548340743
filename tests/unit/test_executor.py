"""Unit tests for command execution."""

import pytest

from suedit.core.context import ExecutionContext
from suedit.core.exceptions import ExecutionError
from suedit.core.executor import CommandExecutor


@pytest.fixture
def ctx():
    return ExecutionContext()


class TestCommandExecutor:
    """Tests for CommandExecutor.run."""

    def test_captures_text(self, ctx):
        result = CommandExecutor(ctx).run(["echo", "hello"])
        assert result.success
        assert result.stdout == "hello\n"

    def test_binary_stdin_stdout(self, ctx):
        data = b"\x00\xff\r\nraw"
        result = CommandExecutor(ctx).run(["cat"], input_data=data, binary=True)
        assert result.stdout == data

    def test_discard_output(self, ctx):
        """Output of a command like tee is dropped, not held in memory."""
        result = CommandExecutor(ctx).run(
            ["sh", "-c", "cat; echo note >&2"], input_data=b"large payload", discard_output=True,
        )
        assert result.stdout == ""
        assert result.stderr == "note"

    def test_failure_raises(self, ctx):
        with pytest.raises(ExecutionError) as exc:
            CommandExecutor(ctx).run(["sh", "-c", "echo oops >&2; exit 3"])
        assert exc.value.return_code == 3
        assert exc.value.stderr == "oops"
        assert "Exit code: 3" in exc.value.details

    def test_failure_without_check(self, ctx):
        result = CommandExecutor(ctx).run(["false"], check=False)
        assert result.return_code == 1
        assert not result.success

    def test_missing_binary(self, ctx):
        with pytest.raises(ExecutionError) as exc:
            CommandExecutor(ctx).run(["definitely-not-a-command-xyz"])
        assert "Command not found" in str(exc.value)

    def test_timeout(self, ctx):
        with pytest.raises(ExecutionError) as exc:
            CommandExecutor(ctx).run(["sleep", "5"], timeout=1)
        assert "timed out" in str(exc.value)

    def test_elevate_uses_prefix(self, ctx):
        """The configured sudo command is prepended."""
        result = CommandExecutor(ctx, sudo_command=["env", "SUEDIT_TEST=1"]).run(
            ["sh", "-c", "echo $SUEDIT_TEST"], elevate=True,
        )
        assert result.command[:2] == ["env", "SUEDIT_TEST=1"]
        assert result.stdout.strip() == "1"

    def test_extra_env(self, ctx):
        result = CommandExecutor(ctx).run(["sh", "-c", "echo $FOO"], env={"FOO": "bar"})
        assert result.stdout.strip() == "bar"

    def test_dry_run_skips(self, tmp_path):
        ctx = ExecutionContext(dry_run=True)
        marker = tmp_path / "marker"
        result = CommandExecutor(ctx).run(["touch", str(marker)])
        assert result.success
        assert result.stdout == ""
        assert not marker.exists()

    def test_dry_run_binary_placeholder(self):
        ctx = ExecutionContext(dry_run=True)
        result = CommandExecutor(ctx).run(["cat", "/etc/hostname"], binary=True)
        assert result.stdout == b""

    def test_dry_run_always(self, tmp_path):
        ctx = ExecutionContext(dry_run=True)
        marker = tmp_path / "marker"
        CommandExecutor(ctx).run(["touch", str(marker)], always=True)
        assert marker.exists()
