"""Pacman package operator implementation."""

from devstrap.models.platform import PackageManagerKind
from devstrap.operators.base import Operator


class PacmanOperator(Operator):
    """Operator for pacman (Arch Linux and derivatives)."""

    @property
    def kind(self) -> PackageManagerKind:
        """Return pacman as the package manager."""
        return PackageManagerKind.PACMAN

    @property
    def binary(self) -> str:
        """The pacman executable."""
        return "pacman"

    def update_commands(self) -> list[list[str]]:
        """Full system upgrade; partial upgrades are unsupported on Arch."""
        return [["pacman", "-Syu", "--noconfirm"]]

    def install_command(self, packages: list[str]) -> list[str]:
        """pacman -S, skipping packages that are already up to date."""
        return ["pacman", "-S", "--noconfirm", "--needed", *packages]
