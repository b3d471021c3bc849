"""Transport adapter for remote runs.

``devstrap remote`` resolves the configuration locally, then ships the
engine and the resolved configuration to the target host and runs
``devstrap apply --payload`` there. Everything lives in a private
``mktemp -d`` directory that is removed when the remote command exits.
"""

import io
import logging
import shlex
import subprocess
import zipfile
from dataclasses import dataclass
from pathlib import Path

import devstrap
from devstrap.models.resolved import ResolvedConfig
from devstrap.utils.formatting import print_step
from devstrap.utils.shell import CommandResult, pipe_bytes, run_command, run_interactive

logger = logging.getLogger(__name__)

# ssh reserves this exit status for its own errors
SSH_CONNECTION_FAILED = 255

BUNDLE_NAME = "devstrap.pyz"
PAYLOAD_NAME = "payload.json"

# Runtime requirements installed into the remote virtual environment
REMOTE_REQUIREMENTS: tuple[str, ...] = ("typer", "rich", "pydantic", "tomli-w")

_BUNDLE_MAIN = """\
from devstrap.cli.main import app

app(prog_name="devstrap")
"""


class TransportError(Exception):
    """Raised when the engine cannot be shipped to or run on the remote host."""


class RemoteConnectionError(TransportError):
    """Raised when ssh cannot reach or authenticate to the remote host."""


@dataclass(frozen=True, slots=True)
class RemoteTarget:
    """Remote host to bootstrap.

    Attributes:
        host: Address or name of the host.
        user: Login user.
        port: SSH port.
        identity: Optional private key passed to ``ssh -i``.
    """

    host: str
    user: str
    port: int = 22
    identity: Path | None = None

    @property
    def destination(self) -> str:
        """``user@host`` as passed to ssh."""
        return f"{self.user}@{self.host}" if self.user else self.host


def ssh_command(target: RemoteTarget, *, tty: bool = False) -> list[str]:
    """Build the ssh invocation for a target, without the remote command.

    Host keys are not pinned: freshly provisioned servers have no known
    key yet.
    """
    args = ["ssh"]
    if tty:
        args.append("-tt")
    args.extend(["-p", str(target.port)])
    if target.identity is not None:
        args.extend(["-i", str(target.identity)])
    args.extend(
        [
            "-o",
            "StrictHostKeyChecking=no",
            "-o",
            "UserKnownHostsFile=/dev/null",
            "-o",
            "LogLevel=ERROR",
            target.destination,
        ]
    )
    return args


def build_bundle(package_dir: Path | None = None) -> bytes:
    """Zip the devstrap package into a runnable Python application.

    Args:
        package_dir: Directory of the ``devstrap`` package. Defaults to
            the running package.

    Returns:
        Bytes of a zip file runnable with ``python3 devstrap.pyz``.
    """
    source = package_dir or Path(devstrap.__file__).parent
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
        for path in sorted(source.rglob("*")):
            if not path.is_file() or "__pycache__" in path.parts or path.suffix == ".pyc":
                continue
            bundle.write(path, f"devstrap/{path.relative_to(source).as_posix()}")
        bundle.writestr("__main__.py", _BUNDLE_MAIN)
    data = buffer.getvalue()
    logger.debug("Built %d byte bundle from %s", len(data), source)
    return data


def remote_script(remote_dir: str) -> str:
    """Shell script run on the remote host inside ``remote_dir``.

    The EXIT trap removes the directory whether the run succeeds or not.
    """
    directory = shlex.quote(remote_dir)
    requirements = " ".join(shlex.quote(r) for r in REMOTE_REQUIREMENTS)
    return (
        f"trap 'rm -rf {directory}' EXIT; "
        f"cd {directory} && "
        "python3 -m venv venv && "
        f"venv/bin/pip install -q {requirements} && "
        f"venv/bin/python {BUNDLE_NAME} apply --payload {PAYLOAD_NAME}"
    )


def _raise_for(result: CommandResult, what: str, target: RemoteTarget) -> None:
    if result.returncode == SSH_CONNECTION_FAILED:
        msg = f"Cannot connect to {target.destination}:{target.port}: {result.error_message}"
        raise RemoteConnectionError(msg)
    if not result.success:
        msg = f"{what} on {target.host} failed: {result.error_message}"
        raise TransportError(msg)


def _make_remote_dir(target: RemoteTarget) -> str:
    script = 'd=$(mktemp -d) && chmod 700 "$d" && echo "$d"'
    result = run_command([*ssh_command(target), script], timeout=120.0)
    _raise_for(result, "Creating a temporary directory", target)
    remote_dir = result.stdout.strip().splitlines()[-1] if result.stdout.strip() else ""
    if not remote_dir.startswith("/"):
        msg = f"Unexpected mktemp output from {target.host}: {result.stdout!r}"
        raise TransportError(msg)
    return remote_dir


def _cleanup(target: RemoteTarget, remote_dir: str) -> None:
    result = run_command(
        [*ssh_command(target), f"rm -rf {shlex.quote(remote_dir)}"], timeout=120.0
    )
    if not result.success:
        logger.warning(
            "Could not remove %s on %s: %s", remote_dir, target.host, result.error_message
        )


def _upload(target: RemoteTarget, remote_dir: str, bundle: bytes, payload: bytes) -> None:
    directory = shlex.quote(remote_dir)
    uploads = (
        (BUNDLE_NAME, bundle, f"cat > {directory}/{BUNDLE_NAME}"),
        (PAYLOAD_NAME, payload, f"umask 077 && cat > {directory}/{PAYLOAD_NAME}"),
    )
    for name, data, command in uploads:
        logger.debug("Uploading %s (%d bytes)", name, len(data))
        result = pipe_bytes([*ssh_command(target), command], data)
        _raise_for(result, f"Uploading {name}", target)


def run_remote(
    target: RemoteTarget,
    config: ResolvedConfig,
    *,
    interactive: bool,
    bundle: bytes | None = None,
) -> int:
    """Ship devstrap to a remote host and run it there.

    Args:
        target: Host to bootstrap.
        config: Configuration resolved locally.
        interactive: Allocate a terminal so sudo can ask for a password.
        bundle: Prebuilt bundle. Defaults to :func:`build_bundle`.

    Returns:
        Exit status of the remote ``devstrap apply``.

    Raises:
        RemoteConnectionError: If ssh cannot reach the host.
        TransportError: If preparing or uploading the run fails.
    """
    bundle = build_bundle() if bundle is None else bundle
    payload = config.to_payload().encode("utf-8")

    print_step(f"Connecting to {target.destination}")
    remote_dir = _make_remote_dir(target)
    try:
        _upload(target, remote_dir, bundle, payload)
    except (TransportError, OSError, subprocess.TimeoutExpired):
        _cleanup(target, remote_dir)
        raise

    print_step(f"Running devstrap on {target.host}")
    command = f"sh -c {shlex.quote(remote_script(remote_dir))}"
    if interactive:
        returncode = run_interactive(
            [*ssh_command(target, tty=True), command], stdin_path="/dev/tty"
        )
    else:
        returncode = run_interactive([*ssh_command(target), command])

    if returncode == SSH_CONNECTION_FAILED:
        msg = f"Connection to {target.destination}:{target.port} failed"
        raise RemoteConnectionError(msg)
    logger.debug("Remote run exited with %d", returncode)
    return returncode
