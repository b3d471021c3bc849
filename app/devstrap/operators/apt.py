"""APT package operator implementation.

Refreshes indexes and installs packages using apt-get on Debian and
Ubuntu hosts.
"""

from devstrap.models.platform import PackageManagerKind
from devstrap.operators.base import Operator

# sudo resets the environment, so the frontend is passed through env(1)
_NONINTERACTIVE = ["env", "DEBIAN_FRONTEND=noninteractive"]


class AptOperator(Operator):
    """Operator for APT/dpkg packages."""

    @property
    def kind(self) -> PackageManagerKind:
        """Return APT as the package manager."""
        return PackageManagerKind.APT

    @property
    def binary(self) -> str:
        """apt-get is the scriptable APT front end."""
        return "apt-get"

    def update_commands(self) -> list[list[str]]:
        """apt-get update followed by a full upgrade."""
        return [
            [*_NONINTERACTIVE, "apt-get", "update"],
            [*_NONINTERACTIVE, "apt-get", "upgrade", "-y"],
        ]

    def install_command(self, packages: list[str]) -> list[str]:
        """apt-get install -y."""
        return [*_NONINTERACTIVE, "apt-get", "install", "-y", *packages]
