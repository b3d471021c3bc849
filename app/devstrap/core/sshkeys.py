"""SSH key material.

Key pairs are generated with the external ``ssh-keygen`` tool; devstrap
never handles cryptography itself.
"""

import logging
import re
import socket
import subprocess
from pathlib import Path

from devstrap.core.paths import ensure_keypair_dir, get_keypair_path
from devstrap.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)

_PUBLIC_KEY_PATTERN = re.compile(
    r"^(ssh-(rsa|ed25519|dss)|ecdsa-sha2-nistp\d+"
    r"|sk-(ssh-ed25519|ecdsa-sha2-nistp256)@openssh\.com)"
    r"\s+[A-Za-z0-9+/=]+(\s+.*)?$"
)


class KeyMaterialError(Exception):
    """Raised when a key pair cannot be generated or read."""


def is_public_key(text: str) -> bool:
    """Check whether a line looks like an OpenSSH public key."""
    return _PUBLIC_KEY_PATTERN.match(text.strip()) is not None


def read_public_key(path: Path) -> str:
    """Read the first line of a public key file.

    Raises:
        KeyMaterialError: If the file cannot be read or is empty.
    """
    try:
        content = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        msg = f"Cannot read public key {path}: {e}"
        raise KeyMaterialError(msg) from e
    if not content:
        msg = f"Public key file {path} is empty"
        raise KeyMaterialError(msg)
    return content.splitlines()[0].strip()


def existing_public_key(path: Path | None = None) -> str | None:
    """Public key of an already generated pair, or None when incomplete."""
    private_key = path or get_keypair_path()
    public_key = private_key.with_name(private_key.name + ".pub")
    if private_key.exists() and public_key.exists():
        return read_public_key(public_key)
    return None


def generate_keypair(path: Path | None = None) -> str:
    """Create an ECDSA-521 key pair unless one already exists.

    Args:
        path: Private key location. Defaults to the devstrap data directory.

    Returns:
        The public key line.

    Raises:
        KeyMaterialError: If ssh-keygen is missing or fails.
    """
    private_key = path or get_keypair_path()
    public_key = private_key.with_name(private_key.name + ".pub")

    existing = existing_public_key(private_key)
    if existing is not None:
        logger.debug("Reusing key pair %s", private_key)
        return existing

    if not command_exists("ssh-keygen"):
        msg = "ssh-keygen is not installed; cannot generate a key pair"
        raise KeyMaterialError(msg)

    try:
        if path is None:
            ensure_keypair_dir()
        else:
            private_key.parent.mkdir(parents=True, exist_ok=True)
            private_key.parent.chmod(0o700)
    except (OSError, RuntimeError) as e:
        raise KeyMaterialError(str(e)) from e

    comment = f"devstrap@{socket.gethostname()}"
    args = ["ssh-keygen", "-q", "-t", "ecdsa", "-b", "521", "-N", "", "-C", comment]
    args += ["-f", str(private_key)]
    try:
        result = run_command(args, timeout=60.0, input_data="y\n")
    except (OSError, subprocess.TimeoutExpired) as e:
        msg = f"ssh-keygen failed: {e}"
        raise KeyMaterialError(msg) from e
    if not result.success:
        msg = f"ssh-keygen failed: {result.error_message}"
        raise KeyMaterialError(msg)

    logger.info("Generated key pair %s", private_key)
    return read_public_key(public_key)
