"""Unit tests for the remote transport adapter.

ssh is never invoked: the shell helpers are patched in the transport
module and the calls are inspected.
"""

import io
import zipfile
from pathlib import Path
from unittest.mock import patch

import pytest
from devstrap.core.transport import (
    BUNDLE_NAME,
    PAYLOAD_NAME,
    REMOTE_REQUIREMENTS,
    RemoteConnectionError,
    RemoteTarget,
    TransportError,
    build_bundle,
    remote_script,
    run_remote,
    ssh_command,
)
from devstrap.models.resolved import ResolvedConfig
from devstrap.utils.shell import CommandResult

REMOTE_DIR = "/tmp/tmp.Xy12ab"
TARGET = RemoteTarget(host="203.0.113.7", user="root", port=2222)


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


def _mktemp_ok() -> CommandResult:
    return _ok(f"{REMOTE_DIR}\n")


class TestSshCommand:
    """Tests for ssh_command."""

    def test_basic(self) -> None:
        """Port, host key options and destination are passed."""
        assert ssh_command(TARGET) == [
            "ssh",
            "-p",
            "2222",
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
            "-o",
            "LogLevel=ERROR",
            "root@203.0.113.7",
        ]

    def test_tty_and_identity(self) -> None:
        """-tt and -i are added when requested."""
        target = RemoteTarget(host="box", user="ops", identity=Path("/keys/id"))
        args = ssh_command(target, tty=True)
        assert args[:4] == ["ssh", "-tt", "-p", "22"]
        assert args[4:6] == ["-i", "/keys/id"]

    def test_destination_without_user(self) -> None:
        """An empty user leaves the user to ssh's own config."""
        assert RemoteTarget(host="box", user="").destination == "box"


class TestBuildBundle:
    """Tests for build_bundle."""

    def test_contents(self, tmp_path: Path) -> None:
        """Sources are packaged under devstrap/, caches are left out."""
        package = tmp_path / "devstrap"
        (package / "core").mkdir(parents=True)
        (package / "__pycache__").mkdir()
        (package / "__init__.py").write_text('__version__ = "0"\n')
        (package / "core" / "registry.py").write_text("UNITS = ()\n")
        (package / "__pycache__" / "x.cpython-312.pyc").write_bytes(b"\0")
        (package / "stale.pyc").write_bytes(b"\0")

        data = build_bundle(package)

        with zipfile.ZipFile(io.BytesIO(data)) as bundle:
            names = set(bundle.namelist())
            main = bundle.read("__main__.py").decode()
        assert names == {"devstrap/__init__.py", "devstrap/core/registry.py", "__main__.py"}
        assert "from devstrap.cli.main import app" in main

    def test_running_package(self) -> None:
        """The default bundle contains the CLI and the MCP descriptors."""
        with zipfile.ZipFile(io.BytesIO(build_bundle())) as bundle:
            names = bundle.namelist()
        assert "devstrap/cli/main.py" in names
        assert "devstrap/data/mcp/github.json" in names


class TestRemoteScript:
    """Tests for remote_script."""

    def test_script(self) -> None:
        """The script cleans up on exit and runs apply with the payload."""
        script = remote_script(REMOTE_DIR)

        assert script.startswith(f"trap 'rm -rf {REMOTE_DIR}' EXIT; cd {REMOTE_DIR} && ")
        assert "python3 -m venv venv" in script
        assert f"venv/bin/pip install -q {' '.join(REMOTE_REQUIREMENTS)}" in script
        assert script.endswith(f"venv/bin/python {BUNDLE_NAME} apply --payload {PAYLOAD_NAME}")


class TestRunRemote:
    """Tests for run_remote."""

    def test_happy_path(self) -> None:
        """mktemp, two uploads, then the interactive run."""
        config = ResolvedConfig(server_name="edge", ssh_port=2222)
        with (
            patch("devstrap.core.transport.run_command", return_value=_mktemp_ok()) as run,
            patch("devstrap.core.transport.pipe_bytes", return_value=_ok()) as pipe,
            patch("devstrap.core.transport.run_interactive", return_value=0) as interactive,
        ):
            returncode = run_remote(TARGET, config, interactive=True, bundle=b"zip")

        assert returncode == 0
        assert "mktemp -d" in run.call_args.args[0][-1]

        bundle_call, payload_call = pipe.call_args_list
        assert bundle_call.args[0][-1] == f"cat > {REMOTE_DIR}/{BUNDLE_NAME}"
        assert bundle_call.args[1] == b"zip"
        assert payload_call.args[0][-1] == f"umask 077 && cat > {REMOTE_DIR}/{PAYLOAD_NAME}"
        assert ResolvedConfig.from_payload(payload_call.args[1].decode()) == config

        args = interactive.call_args.args[0]
        assert args[:2] == ["ssh", "-tt"]
        assert args[-1].startswith("sh -c ")
        assert interactive.call_args.kwargs["stdin_path"] == "/dev/tty"

    def test_non_interactive_has_no_tty(self) -> None:
        """Without a terminal no tty is allocated."""
        with (
            patch("devstrap.core.transport.run_command", return_value=_mktemp_ok()),
            patch("devstrap.core.transport.pipe_bytes", return_value=_ok()),
            patch("devstrap.core.transport.run_interactive", return_value=0) as interactive,
        ):
            run_remote(TARGET, ResolvedConfig(), interactive=False, bundle=b"zip")

        assert "-tt" not in interactive.call_args.args[0]
        assert "stdin_path" not in interactive.call_args.kwargs

    def test_remote_exit_status_is_returned(self) -> None:
        """Failures of the remote run are passed through."""
        with (
            patch("devstrap.core.transport.run_command", return_value=_mktemp_ok()),
            patch("devstrap.core.transport.pipe_bytes", return_value=_ok()),
            patch("devstrap.core.transport.run_interactive", return_value=1),
        ):
            assert run_remote(TARGET, ResolvedConfig(), interactive=False, bundle=b"z") == 1

    def test_unreachable_host(self) -> None:
        """ssh's 255 exit status is a connection error."""
        refused = CommandResult(
            stdout="", stderr="ssh: connect to host port 2222: Connection refused", returncode=255
        )
        with (
            patch("devstrap.core.transport.run_command", return_value=refused),
            patch("devstrap.core.transport.pipe_bytes") as pipe,
            pytest.raises(RemoteConnectionError, match="Connection refused"),
        ):
            run_remote(TARGET, ResolvedConfig(), interactive=False, bundle=b"z")
        pipe.assert_not_called()

    def test_connection_lost_during_run(self) -> None:
        """A 255 from the final ssh session is a connection error too."""
        with (
            patch("devstrap.core.transport.run_command", return_value=_mktemp_ok()),
            patch("devstrap.core.transport.pipe_bytes", return_value=_ok()),
            patch("devstrap.core.transport.run_interactive", return_value=255),
            pytest.raises(RemoteConnectionError),
        ):
            run_remote(TARGET, ResolvedConfig(), interactive=False, bundle=b"z")

    def test_upload_failure_cleans_up(self) -> None:
        """The remote directory is removed when an upload fails."""
        failed = CommandResult(stdout="", stderr="No space left on device", returncode=1)
        with (
            patch(
                "devstrap.core.transport.run_command", side_effect=[_mktemp_ok(), _ok()]
            ) as run,
            patch("devstrap.core.transport.pipe_bytes", return_value=failed),
            patch("devstrap.core.transport.run_interactive") as interactive,
            pytest.raises(TransportError, match="No space left"),
        ):
            run_remote(TARGET, ResolvedConfig(), interactive=False, bundle=b"z")

        assert run.call_args.args[0][-1] == f"rm -rf {REMOTE_DIR}"
        interactive.assert_not_called()

    def test_unexpected_mktemp_output(self) -> None:
        """A relative or empty path from mktemp is rejected."""
        with (
            patch("devstrap.core.transport.run_command", return_value=_ok("")),
            pytest.raises(TransportError, match="Unexpected mktemp output"),
        ):
            run_remote(TARGET, ResolvedConfig(), interactive=False, bundle=b"z")
