"""Unit tests for shell execution utilities."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from devstrap.utils.shell import (
    CommandResult,
    command_exists,
    pipe_bytes,
    run_command,
    run_interactive,
)


class TestCommandResult:
    """Tests for CommandResult."""

    def test_success(self) -> None:
        """Exit status 0 is success."""
        assert CommandResult(stdout="", stderr="", returncode=0).success is True
        assert CommandResult(stdout="", stderr="", returncode=2).success is False

    def test_error_message_last_line(self) -> None:
        """The last non-blank stderr line is the message."""
        result = CommandResult(
            stdout="", stderr="Reading lists...\nE: Unable to locate package x\n\n", returncode=100
        )
        assert result.error_message == "E: Unable to locate package x"

    def test_error_message_without_stderr(self) -> None:
        """Silent failures get a generic message."""
        result = CommandResult(stdout="", stderr="", returncode=3)
        assert result.error_message == "command exited with status 3"


class TestRunCommand:
    """Tests for run_command."""

    def test_captures_output(self) -> None:
        """stdout and the exit status are returned."""
        result = run_command(["sh", "-c", "echo hello; exit 4"])
        assert result.stdout == "hello\n"
        assert result.returncode == 4

    def test_input_and_env(self) -> None:
        """stdin text and extra variables reach the command."""
        result = run_command(
            ["sh", "-c", 'read line; echo "$line $GREETING"'],
            input_data="hi\n",
            env={"GREETING": "there"},
        )
        assert result.stdout == "hi there\n"

    def test_cwd(self, tmp_path: Path) -> None:
        """The working directory is honored."""
        assert run_command(["pwd"], cwd=str(tmp_path)).stdout.strip() == str(tmp_path.resolve())

    def test_missing_executable(self) -> None:
        """A missing executable raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            run_command(["devstrap-no-such-command"])

    def test_timeout(self) -> None:
        """Long-running commands are stopped."""
        with pytest.raises(subprocess.TimeoutExpired):
            run_command(["sleep", "5"], timeout=0.1)


class TestPipeBytes:
    """Tests for pipe_bytes."""

    def test_bytes_on_stdin(self) -> None:
        """Binary data is streamed and output decoded."""
        result = pipe_bytes(["wc", "-c"], b"\x00\x01\x02")
        assert result.success
        assert result.stdout.strip() == "3"


class TestCommandExists:
    """Tests for command_exists."""

    def test_existing(self) -> None:
        """sh is always on PATH."""
        assert command_exists("sh") is True

    def test_missing(self) -> None:
        """Unknown names are not found."""
        assert command_exists("devstrap-no-such-command") is False


class TestRunInteractive:
    """Tests for run_interactive function."""

    @patch("devstrap.utils.shell.subprocess.run")
    def test_returns_exit_code(self, mock_run: MagicMock) -> None:
        """run_interactive returns the subprocess exit code."""
        mock_run.return_value = MagicMock(returncode=1)

        assert run_interactive(["false"]) == 1

    @patch("devstrap.utils.shell.subprocess.run")
    def test_does_not_capture_output(self, mock_run: MagicMock) -> None:
        """run_interactive does not capture stdout/stderr (inherits TTY)."""
        mock_run.return_value = MagicMock(returncode=0)

        run_interactive(["echo", "hello"])

        call_kwargs = mock_run.call_args
        assert "capture_output" not in call_kwargs.kwargs
        assert "stdout" not in call_kwargs.kwargs
        assert "stderr" not in call_kwargs.kwargs

    @patch("devstrap.utils.shell.subprocess.run")
    def test_merges_env(self, mock_run: MagicMock) -> None:
        """run_interactive merges custom env with current environment."""
        mock_run.return_value = MagicMock(returncode=0)

        run_interactive(["echo"], env={"MY_VAR": "value"})

        call_env = mock_run.call_args.kwargs["env"]
        assert call_env["MY_VAR"] == "value"
        assert "PATH" in call_env

    @patch("devstrap.utils.shell.subprocess.run")
    def test_stdin_path(self, mock_run: MagicMock, tmp_path: Path) -> None:
        """A stdin file is opened and passed to the command."""
        mock_run.return_value = MagicMock(returncode=0)
        device = tmp_path / "tty"
        device.write_bytes(b"")

        run_interactive(["ssh", "box"], stdin_path=str(device))

        assert mock_run.call_args.kwargs["stdin"].name == str(device)

    def test_raises_file_not_found(self) -> None:
        """run_interactive raises FileNotFoundError for missing commands."""
        with pytest.raises(FileNotFoundError):
            run_interactive(["devstrap-no-such-command"])
