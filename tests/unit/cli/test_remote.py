"""Unit tests for remote command.

The transport is patched; the tests check what is resolved locally and
how transport outcomes map to exit codes.
"""

from pathlib import Path
from typing import Any
from unittest.mock import MagicMock, patch

import pytest
from devstrap.cli.main import app
from devstrap.core.prompts import NullPrompter
from devstrap.core.transport import RemoteConnectionError, RemoteTarget, TransportError
from devstrap.models.resolved import ResolvedConfig
from typer.testing import CliRunner

runner = CliRunner()

BASE_ARGS = ["remote", "-H", "203.0.113.7", "-u", "root", "-y", "-k", "skip"]


@pytest.fixture(autouse=True)
def workdir(home: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Working directory without a config file."""
    monkeypatch.chdir(home)
    return home


def _invoke(args: list[str], **run_remote: Any) -> tuple[int, str, MagicMock]:
    with (
        patch("devstrap.cli.commands.remote.open_prompter", return_value=NullPrompter()),
        patch("devstrap.cli.commands.remote.run_remote", **run_remote) as remote,
    ):
        result = runner.invoke(app, args)
    return result.exit_code, result.output, remote


class TestRemoteCommand:
    """Tests for devstrap remote."""

    def test_help(self) -> None:
        """Remote command shows help."""
        result = runner.invoke(app, ["remote", "--help"])
        assert result.exit_code == 0
        assert "--host" in result.output

    def test_success(self) -> None:
        """The resolved configuration and target reach the transport."""
        code, _, remote = _invoke([*BASE_ARGS, "-p", "2222"], return_value=0)

        assert code == 0
        target: RemoteTarget = remote.call_args.args[0]
        config: ResolvedConfig = remote.call_args.args[1]
        assert target == RemoteTarget(host="203.0.113.7", user="root", port=2222)
        assert config.ssh_port == 2222
        assert config.server_address == "203.0.113.7"
        assert remote.call_args.kwargs["interactive"] is False

    def test_server_name_defaults_to_address(self) -> None:
        """The login banner names the remote host."""
        _, _, remote = _invoke(BASE_ARGS, return_value=0)

        assert remote.call_args.args[1].server_name == "203.0.113.7"

    def test_identity(self, tmp_path: Path) -> None:
        """-i selects the key for the connection."""
        identity = tmp_path / "id_ed25519"
        _, _, remote = _invoke([*BASE_ARGS, "-i", str(identity)], return_value=0)

        assert remote.call_args.args[0].identity == identity

    def test_remote_failure_exit_code(self) -> None:
        """The remote exit status is passed through."""
        code, _, _ = _invoke(BASE_ARGS, return_value=3)

        assert code == 3

    def test_unreachable_host(self) -> None:
        """Connection problems exit with status 1."""
        code, output, _ = _invoke(
            BASE_ARGS, side_effect=RemoteConnectionError("Cannot connect to 203.0.113.7")
        )

        assert code == 1
        assert "Cannot connect" in output

    def test_transport_error(self) -> None:
        """Upload problems exit with status 1."""
        code, output, _ = _invoke(BASE_ARGS, side_effect=TransportError("upload failed"))

        assert code == 1
        assert "Remote run failed" in output

    def test_missing_key_fails_before_connecting(self) -> None:
        """Resolution errors stop the run locally."""
        args = ["remote", "-H", "box", "-y", "-k", "add", "--missing-key-policy", "fail"]
        code, _, remote = _invoke(args, return_value=0)

        assert code == 1
        remote.assert_not_called()
