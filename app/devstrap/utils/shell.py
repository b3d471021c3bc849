"""Shell execution utilities.

Provides safe subprocess execution with proper error handling.
"""

import os
import shutil
import subprocess
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Result of a shell command execution.

    Attributes:
        stdout: Standard output from the command.
        stderr: Standard error from the command.
        returncode: Exit code of the command.
    """

    stdout: str
    stderr: str
    returncode: int

    @property
    def success(self) -> bool:
        """Check if command executed successfully."""
        return self.returncode == 0

    @property
    def error_message(self) -> str:
        """Last meaningful line of stderr, or a generic message."""
        lines = [line for line in self.stderr.strip().splitlines() if line.strip()]
        if lines:
            return lines[-1].strip()
        return f"command exited with status {self.returncode}"


def run_command(
    args: list[str],
    *,
    check: bool = False,
    timeout: float | None = 60.0,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    input_data: str | None = None,
) -> CommandResult:
    """Execute a shell command and return the result.

    Args:
        args: Command and arguments to execute.
        check: If True, raise CalledProcessError on non-zero exit.
        timeout: Maximum time in seconds to wait for command.
        cwd: Working directory for the command. If None, uses current directory.
        env: Additional environment variables (merged with current env).
        input_data: Text passed to the command on stdin.

    Returns:
        CommandResult with stdout, stderr, and returncode.

    Raises:
        subprocess.CalledProcessError: If check=True and command fails.
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        capture_output=True,
        text=True,
        check=check,
        timeout=timeout,
        cwd=cwd,
        env={**os.environ, **env} if env else None,
        input=input_data,
    )
    return CommandResult(
        stdout=result.stdout,
        stderr=result.stderr,
        returncode=result.returncode,
    )


def pipe_bytes(
    args: list[str],
    data: bytes,
    *,
    timeout: float | None = 300.0,
) -> CommandResult:
    """Execute a command feeding raw bytes on stdin.

    Used to stream binary payloads (zip bundles) through ``ssh``.

    Args:
        args: Command and arguments to execute.
        data: Bytes written to the command's stdin.
        timeout: Maximum time in seconds to wait for command.

    Returns:
        CommandResult with decoded stdout/stderr and returncode.

    Raises:
        subprocess.TimeoutExpired: If command exceeds timeout.
        FileNotFoundError: If command executable is not found.
    """
    result = subprocess.run(
        args,
        input=data,
        capture_output=True,
        check=False,
        timeout=timeout,
    )
    return CommandResult(
        stdout=result.stdout.decode("utf-8", errors="replace"),
        stderr=result.stderr.decode("utf-8", errors="replace"),
        returncode=result.returncode,
    )


def command_exists(name: str) -> bool:
    """Check if a command exists in the system PATH.

    Args:
        name: Command name to check.

    Returns:
        True if command exists, False otherwise.
    """
    return shutil.which(name) is not None


def run_interactive(
    args: list[str],
    *,
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    stdin_path: str | None = None,
    timeout: float | None = None,
) -> int:
    """Execute a command interactively, inheriting the terminal.

    Unlike run_command(), this does NOT capture stdout/stderr,
    allowing the subprocess to interact with the user's terminal
    directly. Suitable for sudo prompts and remote sessions.

    Args:
        args: Command and arguments to execute.
        cwd: Working directory for the command.
        env: Additional environment variables (merged with current env).
        stdin_path: Optional file (e.g. ``/dev/tty``) to use as stdin.
        timeout: Maximum time in seconds to wait for command.

    Returns:
        Exit code of the command.

    Raises:
        FileNotFoundError: If command executable is not found.
        OSError: If command cannot be executed.
        subprocess.TimeoutExpired: If command exceeds timeout.
    """
    full_env = {**os.environ, **(env or {})}
    if stdin_path is None:
        result = subprocess.run(
            args,
            check=False,
            cwd=cwd,
            env=full_env,
            timeout=timeout,
        )
        return result.returncode

    with open(stdin_path, "rb") as stdin:
        result = subprocess.run(
            args,
            check=False,
            cwd=cwd,
            env=full_env,
            stdin=stdin,
            timeout=timeout,
        )
    return result.returncode
