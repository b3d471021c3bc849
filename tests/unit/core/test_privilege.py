"""Unit tests for privilege elevation."""

import subprocess
from unittest.mock import patch

from devstrap.core.privilege import SUDO_PREFIX, Privilege, acquire_privilege
from devstrap.utils.shell import CommandResult


class TestPrivilege:
    """Tests for the Privilege token."""

    def test_root_token(self) -> None:
        """An empty prefix means the process is root."""
        token = Privilege()
        assert token.is_root is True
        assert token.wrap(["apt-get", "update"]) == ["apt-get", "update"]

    def test_sudo_token(self) -> None:
        """Commands are prefixed with sudo -n."""
        token = Privilege(prefix=SUDO_PREFIX)
        assert token.is_root is False
        assert token.wrap(["ufw", "enable"]) == ["sudo", "-n", "ufw", "enable"]


class TestAcquirePrivilege:
    """Tests for acquire_privilege."""

    def test_root(self) -> None:
        """Root needs no sudo at all."""
        with (
            patch("devstrap.core.privilege.os.geteuid", return_value=0),
            patch("devstrap.core.privilege.command_exists") as exists,
        ):
            assert acquire_privilege(interactive=True) == Privilege()
        exists.assert_not_called()

    def test_sudo_missing(self) -> None:
        """Without sudo there is no token."""
        with (
            patch("devstrap.core.privilege.os.geteuid", return_value=1000),
            patch("devstrap.core.privilege.command_exists", return_value=False),
        ):
            assert acquire_privilege(interactive=True) is None

    def test_dry_run_does_not_invoke_sudo(self) -> None:
        """Dry runs assume sudo works."""
        with (
            patch("devstrap.core.privilege.os.geteuid", return_value=1000),
            patch("devstrap.core.privilege.command_exists", return_value=True),
            patch("devstrap.core.privilege.run_interactive") as interactive,
            patch("devstrap.core.privilege.run_command") as run,
        ):
            assert acquire_privilege(interactive=True, dry_run=True) == Privilege(SUDO_PREFIX)
        interactive.assert_not_called()
        run.assert_not_called()

    def test_interactive_caches_credentials(self) -> None:
        """sudo -v runs attached to the terminal."""
        with (
            patch("devstrap.core.privilege.os.geteuid", return_value=1000),
            patch("devstrap.core.privilege.command_exists", return_value=True),
            patch("devstrap.core.privilege.run_interactive", return_value=0) as interactive,
        ):
            assert acquire_privilege(interactive=True) == Privilege(SUDO_PREFIX)
        interactive.assert_called_once_with(["sudo", "-v"])

    def test_non_interactive_uses_cached_credentials_only(self) -> None:
        """Without a terminal sudo must not prompt."""
        denied = CommandResult(stdout="", stderr="a password is required", returncode=1)
        with (
            patch("devstrap.core.privilege.os.geteuid", return_value=1000),
            patch("devstrap.core.privilege.command_exists", return_value=True),
            patch("devstrap.core.privilege.run_command", return_value=denied) as run,
        ):
            assert acquire_privilege(interactive=False) is None
        assert run.call_args.args[0] == ["sudo", "-n", "-v"]

    def test_timeout_means_no_token(self) -> None:
        """A hanging sudo is treated as a refusal."""
        with (
            patch("devstrap.core.privilege.os.geteuid", return_value=1000),
            patch("devstrap.core.privilege.command_exists", return_value=True),
            patch(
                "devstrap.core.privilege.run_command",
                side_effect=subprocess.TimeoutExpired(["sudo"], 30),
            ),
        ):
            assert acquire_privilege(interactive=False) is None
