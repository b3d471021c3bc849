"""opkg package operator implementation for OpenWrt."""

from devstrap.models.platform import PackageManagerKind
from devstrap.operators.base import Operator


class OpkgOperator(Operator):
    """Operator for opkg (OpenWrt).

    OpenWrt images do not upgrade installed packages in place, so the
    update step only refreshes the package lists.
    """

    @property
    def kind(self) -> PackageManagerKind:
        """Return opkg as the package manager."""
        return PackageManagerKind.OPKG

    @property
    def binary(self) -> str:
        """The opkg executable."""
        return "opkg"

    def update_commands(self) -> list[list[str]]:
        """opkg needs /var/lock for its lock file."""
        return [["mkdir", "-p", "/var/lock"], ["opkg", "update"]]

    def install_command(self, packages: list[str]) -> list[str]:
        """opkg install."""
        return ["opkg", "install", *packages]
