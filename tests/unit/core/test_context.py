"""Unit tests for the unit execution context."""

import stat
from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from devstrap.core.context import UnitContext
from devstrap.core.privilege import Privilege
from devstrap.models.resolved import ResolvedConfig
from devstrap.utils.shell import CommandResult


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


class TestRun:
    """Tests for UnitContext.run."""

    def test_plain_command(self, make_context: Callable[..., UnitContext]) -> None:
        """Commands run with the configured timeout."""
        ctx = make_context(config=ResolvedConfig(unit_timeout=42.0))
        with patch("devstrap.core.context.run_command", return_value=_ok()) as run:
            ctx.run(["git", "--version"])

        assert run.call_args.args[0] == ["git", "--version"]
        assert run.call_args.kwargs["timeout"] == 42.0

    def test_privileged_command(self, make_context: Callable[..., UnitContext]) -> None:
        """Privileged commands are wrapped with the token's prefix."""
        ctx = make_context()
        with patch("devstrap.core.context.run_command", return_value=_ok()) as run:
            ctx.run(["apt-get", "update"], privileged=True)

        assert run.call_args.args[0] == ["sudo", "-n", "apt-get", "update"]

    def test_privileged_env_is_passed_through_env(
        self, make_context: Callable[..., UnitContext]
    ) -> None:
        """sudo drops the environment, so variables go on the command line."""
        ctx = make_context()
        with patch("devstrap.core.context.run_command", return_value=_ok()) as run:
            ctx.run(["apt-get", "install", "-y", "git"], privileged=True, env={"A": "1"})

        assert run.call_args.args[0][:4] == ["sudo", "-n", "env", "A=1"]
        assert run.call_args.kwargs["env"] is None

    def test_privileged_without_token(self, make_context: Callable[..., UnitContext]) -> None:
        """Elevation without a token is an error."""
        ctx = make_context(privilege=None)
        with pytest.raises(RuntimeError, match="Root privileges required"):
            ctx.run(["ufw", "enable"], privileged=True)

    def test_dry_run(
        self, make_context: Callable[..., UnitContext], capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Dry runs print instead of executing."""
        ctx = make_context(dry_run=True)
        with patch("devstrap.core.context.run_command") as run:
            result = ctx.run(["ufw", "enable"], privileged=True)

        assert result.success
        run.assert_not_called()
        assert "sudo -n ufw enable" in capsys.readouterr().out

    def test_shell(self, make_context: Callable[..., UnitContext]) -> None:
        """Shell snippets run under sh -c."""
        ctx = make_context()
        with patch("devstrap.core.context.run_command", return_value=_ok()) as run:
            ctx.shell("curl -fsSL https://example.org | sh")

        assert run.call_args.args[0] == ["sh", "-c", "curl -fsSL https://example.org | sh"]


class TestProbe:
    """Tests for UnitContext.probe."""

    def test_runs_in_dry_run(self, make_context: Callable[..., UnitContext]) -> None:
        """Read-only queries are not suppressed by dry-run."""
        ctx = make_context(dry_run=True)
        with patch("devstrap.core.context.run_command", return_value=_ok("/bin/zsh")) as run:
            assert ctx.probe(["which", "zsh"]).stdout == "/bin/zsh"
        run.assert_called_once()

    def test_missing_executable(self, make_context: Callable[..., UnitContext]) -> None:
        """A missing executable is a failed result."""
        ctx = make_context()
        with patch(
            "devstrap.core.context.run_command", side_effect=FileNotFoundError("nvidia-smi")
        ):
            result = ctx.probe(["nvidia-smi"])

        assert result.returncode == 127
        assert not result.success


class TestWriteSystemFile:
    """Tests for UnitContext.write_system_file."""

    def test_as_root_writes_directly(
        self, make_context: Callable[..., UnitContext], tmp_path: Path
    ) -> None:
        """Root writes atomically without sudo."""
        ctx = make_context(privilege=Privilege())
        target = tmp_path / "etc" / "profile.d" / "cuda.sh"
        target.parent.mkdir(parents=True)

        assert ctx.write_system_file(target, "export A=1\n", 0o644) is True
        assert target.read_text() == "export A=1\n"
        assert stat.S_IMODE(target.stat().st_mode) == 0o644

        assert ctx.write_system_file(target, "export A=1\n", 0o644) is False

    def test_mode_drift_is_fixed(
        self, make_context: Callable[..., UnitContext], tmp_path: Path
    ) -> None:
        """Same content with the wrong mode is rewritten."""
        ctx = make_context(privilege=Privilege())
        target = tmp_path / "motd"
        target.write_text("hello\n")
        target.chmod(0o600)

        assert ctx.write_system_file(target, "hello\n", 0o755) is True
        assert stat.S_IMODE(target.stat().st_mode) == 0o755

    def test_dry_run_does_not_write(
        self, make_context: Callable[..., UnitContext], tmp_path: Path
    ) -> None:
        """Dry runs report the write but leave the file alone."""
        ctx = make_context(privilege=Privilege(), dry_run=True)
        target = tmp_path / "motd"

        assert ctx.write_system_file(target, "hello\n", 0o755) is True
        assert not target.exists()

    def test_through_sudo(self, make_context: Callable[..., UnitContext], tmp_path: Path) -> None:
        """Non-root writes go through sudo tee."""
        ctx = make_context()
        target = tmp_path / "sudoers.d" / "alice"
        with patch("devstrap.core.context.run_command", return_value=_ok()) as run:
            assert ctx.write_system_file(target, "alice ALL=(ALL) NOPASSWD:ALL\n", 0o440)

        commands = [call.args[0] for call in run.call_args_list]
        assert ["sudo", "-n", "mkdir", "-p", str(target.parent)] in commands
        assert ["sudo", "-n", "tee", str(target)] in commands
        assert ["sudo", "-n", "chmod", "440", str(target)] in commands

    def test_sudo_failure(self, make_context: Callable[..., UnitContext], tmp_path: Path) -> None:
        """A failing elevated write raises OSError."""
        ctx = make_context()
        failed = CommandResult(stdout="", stderr="permission denied", returncode=1)
        with (
            patch("devstrap.core.context.run_command", return_value=failed),
            pytest.raises(OSError, match="permission denied"),
        ):
            ctx.write_system_file(tmp_path / "sudoers.d" / "alice", "x\n", 0o440)
