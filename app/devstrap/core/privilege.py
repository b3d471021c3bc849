"""Privilege elevation handling.

sudo credentials are cached once at the start of a run. The outcome is a
Privilege token that is threaded explicitly to every operator and
strategy that needs root; units requiring it are skipped when the token
is absent.
"""

import logging
import os
import subprocess
from dataclasses import dataclass

from devstrap.utils.formatting import print_info, print_warning
from devstrap.utils.shell import command_exists, run_command, run_interactive

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Privilege:
    """Capability token proving elevated commands can run unattended.

    Attributes:
        prefix: Command prefix that elevates (empty when already root).
    """

    prefix: tuple[str, ...] = ()

    @property
    def is_root(self) -> bool:
        """True when the process itself runs as root."""
        return not self.prefix

    def wrap(self, args: list[str]) -> list[str]:
        """Prefix a command so it runs elevated."""
        return [*self.prefix, *args]


SUDO_PREFIX: tuple[str, ...] = ("sudo", "-n")


def acquire_privilege(*, interactive: bool, dry_run: bool = False) -> Privilege | None:
    """Cache sudo credentials and return a privilege token.

    Args:
        interactive: Whether a password prompt can reach the user.
        dry_run: Assume sudo works without invoking it.

    Returns:
        A Privilege token, or None when elevation is unavailable.
    """
    if os.geteuid() == 0:
        return Privilege()

    if not command_exists("sudo"):
        print_warning("sudo is not installed; privileged steps will be skipped.")
        return None

    if dry_run:
        return Privilege(prefix=SUDO_PREFIX)

    print_info("Caching sudo credentials...")
    try:
        if interactive:
            returncode = run_interactive(["sudo", "-v"])
        else:
            returncode = run_command(["sudo", "-n", "-v"], timeout=30.0).returncode
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.warning("sudo -v failed: %s", e)
        returncode = 1

    if returncode != 0:
        print_warning("Could not obtain sudo credentials; privileged steps will be skipped.")
        return None

    logger.debug("sudo credentials cached")
    return Privilege(prefix=SUDO_PREFIX)
