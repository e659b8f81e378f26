"""
Tests for ProcessExecutor, using real short-lived shell commands.
"""

import io
from unittest.mock import MagicMock, patch

import pytest

from birdnest.core import privilege
from birdnest.core.errors import CommandFailed, SpawnError
from birdnest.core.executor import (
    BUFFERED, LIVE, LIVE_PRIVILEGED, ProcessExecutor, RunOptions, check,
)
from birdnest.core.models import ExecutionResult


class TestRun:
    def test_captures_stdout_and_stderr(self):
        result = ProcessExecutor().run("sh", ["-c", "echo out; echo err >&2"])
        assert result.success
        assert result.stdout == "out\n"
        assert result.stderr == "err\n"
        assert result.argv == ["sh", "-c", "echo out; echo err >&2"]
        assert result.duration >= 0

    def test_nonzero_exit_is_a_result(self):
        result = ProcessExecutor().run("sh", ["-c", "exit 3"])
        assert not result.success
        assert result.exit_code == 3

    def test_missing_executable(self):
        with pytest.raises(SpawnError) as exc:
            ProcessExecutor().run("birdnest-no-such-tool")
        assert exc.value.exit_code == 127
        assert exc.value.command == "birdnest-no-such-tool"

    def test_live_output_is_echoed_and_kept(self):
        out = io.StringIO()
        result = ProcessExecutor(out=out).run("sh", ["-c", "echo one; echo two >&2"], LIVE)
        assert out.getvalue() == result.stdout
        assert "one\n" in result.stdout
        assert "two\n" in result.stdout

    def test_working_dir(self, tmp_path):
        result = ProcessExecutor().run("pwd", options=RunOptions(working_dir=tmp_path))
        assert result.stdout.strip() == str(tmp_path.resolve())


class TestPrivileged:
    def test_privileged_argv_is_escalated(self):
        with patch.object(privilege, "escalate", side_effect=lambda cmd: ["sudo", *cmd]) as esc:
            argv = ProcessExecutor().build_argv("sh", ["-c", "true"], LIVE_PRIVILEGED)
        assert argv == ["sudo", "sh", "-c", "true"]
        esc.assert_called_once_with(["sh", "-c", "true"])

    def test_unprivileged_argv_is_untouched(self):
        with patch.object(privilege, "escalate") as esc:
            argv = ProcessExecutor().build_argv("sh", ["-c", "true"], BUFFERED)
        assert argv == ["sh", "-c", "true"]
        esc.assert_not_called()

    def test_missing_tool_is_reported_before_escalation(self):
        with patch.object(privilege, "escalate") as esc:
            with pytest.raises(SpawnError):
                ProcessExecutor().build_argv("birdnest-no-such-tool", [], LIVE_PRIVILEGED)
        esc.assert_not_called()


class TestCheck:
    def test_success_passes_through(self):
        result = ExecutionResult(argv=["true"])
        assert check(result) is result

    def test_failure_prefers_stderr(self):
        result = ExecutionResult(argv=["apt"], exit_code=100, stdout="noise\n", stderr="E: broken\n")
        with pytest.raises(CommandFailed) as exc:
            check(result)
        assert exc.value.stderr == "E: broken\n"
        assert exc.value.result is result

    def test_failure_falls_back_to_stdout(self):
        result = ExecutionResult(argv=["pikman"], exit_code=2, stdout="merged output\n")
        with pytest.raises(CommandFailed, match="merged output") as exc:
            check(result)
        assert exc.value.exit_code == 1


class TestOutputModes:
    def test_uncaptured_run_inherits_stdio(self):
        with patch("birdnest.core.executor.subprocess.run", return_value=MagicMock(returncode=0)) as run:
            result = ProcessExecutor().run("sh", ["-c", "true"], RunOptions(capture_output=False))
        run.assert_called_once_with(["sh", "-c", "true"], cwd=None)
        assert result.success
        assert result.stdout == ""

    def test_closed_reader_keeps_draining(self):
        out = MagicMock()
        out.write.side_effect = BrokenPipeError()
        result = ProcessExecutor(out=out).run("sh", ["-c", "echo one; echo two"], LIVE)
        assert result.success
        assert result.stdout == "one\ntwo\n"
        out.write.assert_called_once_with("one\n")

    def test_child_is_reaped_when_streaming_is_interrupted(self):
        proc = MagicMock()
        proc.stdout.readline.side_effect = KeyboardInterrupt
        with patch("birdnest.core.executor.subprocess.Popen", return_value=proc):
            with pytest.raises(KeyboardInterrupt):
                ProcessExecutor(out=io.StringIO()).run("sh", ["-c", "true"], LIVE)
        proc.stdout.close.assert_called_once()
        proc.wait.assert_called_once()
