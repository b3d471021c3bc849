"""DNF and YUM package operator implementations.

Both front ends share the same command shape on RHEL-family hosts; YUM
is only used where DNF is absent.
"""

from devstrap.models.platform import PackageManagerKind
from devstrap.operators.base import Operator


class DnfOperator(Operator):
    """Operator for dnf (Fedora, RHEL 8+)."""

    @property
    def kind(self) -> PackageManagerKind:
        """Return DNF as the package manager."""
        return PackageManagerKind.DNF

    @property
    def binary(self) -> str:
        """The dnf executable."""
        return "dnf"

    def update_commands(self) -> list[list[str]]:
        """Refresh metadata and upgrade in one step."""
        return [[self.binary, "upgrade", "-y", "--refresh"]]

    def install_command(self, packages: list[str]) -> list[str]:
        """dnf install -y."""
        return [self.binary, "install", "-y", *packages]


class YumOperator(DnfOperator):
    """Operator for yum (RHEL/CentOS 7)."""

    @property
    def kind(self) -> PackageManagerKind:
        """Return YUM as the package manager."""
        return PackageManagerKind.YUM

    @property
    def binary(self) -> str:
        """The yum executable."""
        return "yum"

    def update_commands(self) -> list[list[str]]:
        """yum has no --refresh; update refreshes metadata itself."""
        return [[self.binary, "update", "-y"]]
