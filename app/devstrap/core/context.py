"""Execution context shared by the strategies of one run.

The context carries everything a strategy may touch: the resolved
configuration, the detected platform, the package manager operator and
the privilege token. Commands and system file writes go through it so
that dry-run, elevation and the per-unit timeout apply uniformly.
"""

import logging
import os
import shlex
from dataclasses import dataclass, field
from pathlib import Path

from devstrap.core.dotfile import DotfileError, read_text, write_atomic
from devstrap.core.privilege import Privilege
from devstrap.models.platform import PlatformProfile
from devstrap.models.resolved import ResolvedConfig
from devstrap.models.unit import Report
from devstrap.operators.base import Operator
from devstrap.utils.formatting import print_dry_run
from devstrap.utils.shell import CommandResult, run_command

logger = logging.getLogger(__name__)


@dataclass
class UnitContext:
    """Everything a strategy needs to converge one unit.

    Attributes:
        config: Resolved configuration of the run.
        profile: Detected platform.
        home: Home directory of the user being configured.
        operator: Package manager operator, or None when there is none.
        privilege: Elevation token, or None when sudo is unavailable.
        dry_run: Print commands and writes instead of performing them.
        user: Login name used for sudoers and the default shell.
        report: Results recorded so far in this run.
    """

    config: ResolvedConfig
    profile: PlatformProfile
    home: Path
    operator: Operator | None = None
    privilege: Privilege | None = None
    dry_run: bool = False
    user: str = ""
    report: Report = field(default_factory=Report)

    @property
    def timeout(self) -> float:
        """Per-command timeout in seconds."""
        return self.config.unit_timeout

    def run(
        self,
        args: list[str],
        *,
        privileged: bool = False,
        env: dict[str, str] | None = None,
        input_data: str | None = None,
        cwd: Path | None = None,
    ) -> CommandResult:
        """Run a command under the run's policies.

        Args:
            args: Command and arguments.
            privileged: Elevate with the privilege token.
            env: Extra environment variables.
            input_data: Text passed on stdin.
            cwd: Working directory.

        Returns:
            The command result (a successful empty result in dry-run mode).

        Raises:
            RuntimeError: If elevation is requested without a privilege token.
            subprocess.TimeoutExpired: If the command exceeds the timeout.
            FileNotFoundError: If the executable does not exist.
        """
        if privileged:
            if self.privilege is None:
                msg = f"Root privileges required for: {shlex.join(args)}"
                raise RuntimeError(msg)
            if env:
                # sudo resets the environment
                args = ["env", *(f"{key}={value}" for key, value in env.items()), *args]
                env = None
            args = self.privilege.wrap(args)

        if self.dry_run:
            print_dry_run(shlex.join(args))
            return CommandResult(stdout="", stderr="", returncode=0)

        logger.debug("Running %s", shlex.join(args))
        return run_command(
            args,
            timeout=self.timeout,
            env=env,
            input_data=input_data,
            cwd=str(cwd) if cwd is not None else None,
        )

    def probe(self, args: list[str]) -> CommandResult:
        """Run a read-only query command, also in dry-run mode.

        A missing executable yields a failed result instead of raising.
        """
        try:
            return run_command(args, timeout=60.0)
        except FileNotFoundError as e:
            return CommandResult(stdout="", stderr=str(e), returncode=127)

    def shell(
        self,
        script: str,
        *,
        privileged: bool = False,
        env: dict[str, str] | None = None,
    ) -> CommandResult:
        """Run a POSIX shell snippet (used for pipes into vendor installers)."""
        return self.run(["sh", "-c", script], privileged=privileged, env=env)

    def write_system_file(self, path: Path, content: str, mode: int) -> bool:
        """Converge a root-owned file to the given content and mode.

        Args:
            path: Absolute path of the file.
            content: Desired content.
            mode: Desired permission bits.

        Returns:
            True if the file was (or would be) written.

        Raises:
            RuntimeError: If no privilege token is available.
            OSError: If the file cannot be written.
        """
        current_mode = _mode_of(path)
        if self._current_content(path) == content and current_mode in (None, mode):
            return False

        if self.dry_run:
            print_dry_run(f"write {path} (mode {mode:o})")
            return True

        if self.privilege is not None and self.privilege.is_root:
            write_atomic(path, content, mode)
            return True

        self._check(self.run(["mkdir", "-p", str(path.parent)], privileged=True))
        self._check(self.run(["tee", str(path)], privileged=True, input_data=content))
        self._check(self.run(["chmod", f"{mode:o}", str(path)], privileged=True))
        return True

    def _current_content(self, path: Path) -> str | None:
        try:
            if not path.exists():
                return None
            return read_text(path)
        except (OSError, DotfileError):
            pass
        # Root-only file such as sudoers (0440)
        if self.privilege is None:
            return None
        result = run_command(self.privilege.wrap(["cat", str(path)]), timeout=30.0)
        return result.stdout if result.success else None

    @staticmethod
    def _check(result: CommandResult) -> None:
        if not result.success:
            raise OSError(result.error_message)


def _mode_of(path: Path) -> int | None:
    """Permission bits of a file, or None when it cannot be stat()ed."""
    try:
        return os.stat(path).st_mode & 0o7777
    except OSError:
        return None
