"""Homebrew package operator implementation for macOS."""

from devstrap.models.platform import PackageManagerKind
from devstrap.operators.base import Operator


class BrewOperator(Operator):
    """Operator for Homebrew.

    Homebrew refuses to run as root, so commands are never elevated.
    """

    needs_privilege = False

    @property
    def kind(self) -> PackageManagerKind:
        """Return Homebrew as the package manager."""
        return PackageManagerKind.BREW

    @property
    def binary(self) -> str:
        """The brew executable."""
        return "brew"

    def update_commands(self) -> list[list[str]]:
        """brew update followed by brew upgrade."""
        return [["brew", "update"], ["brew", "upgrade"]]

    def install_command(self, packages: list[str]) -> list[str]:
        """brew install."""
        return ["brew", "install", *packages]
