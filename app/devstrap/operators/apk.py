"""APK package operator implementation for Alpine Linux."""

from devstrap.models.platform import PackageManagerKind
from devstrap.operators.base import Operator


class ApkOperator(Operator):
    """Operator for apk (Alpine Linux)."""

    @property
    def kind(self) -> PackageManagerKind:
        """Return apk as the package manager."""
        return PackageManagerKind.APK

    @property
    def binary(self) -> str:
        """The apk executable."""
        return "apk"

    def update_commands(self) -> list[list[str]]:
        """apk update followed by apk upgrade."""
        return [["apk", "update"], ["apk", "upgrade"]]

    def install_command(self, packages: list[str]) -> list[str]:
        """apk add is non-interactive by default."""
        return ["apk", "add", *packages]
