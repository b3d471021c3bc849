"""Platform models describing the detected host.

These are produced once by the platform probe at run start and consumed
read-only by the registry and the convergence executor.
"""

from dataclasses import dataclass
from enum import Enum


class OSFamily(Enum):
    """Operating system family of the target host."""

    MACOS = "macos"
    UBUNTU = "ubuntu"
    DEBIAN = "debian"
    RHEL = "rhel"
    FEDORA = "fedora"
    ARCH = "arch"
    ALPINE = "alpine"
    OPENWRT = "openwrt"
    UNKNOWN = "unknown"


class PackageManagerKind(Enum):
    """Native package manager selected for the host.

    NONE is a valid terminal state: it disables every unit that needs a
    package manager and is reported as an error by the caller.
    """

    BREW = "brew"
    APT = "apt"
    DNF = "dnf"
    YUM = "yum"
    PACMAN = "pacman"
    APK = "apk"
    OPKG = "opkg"
    NONE = "none"


# Strategy lookup keys that are not package managers
OPENWRT_KEY = "openwrt"
GENERIC_KEY = "generic"


@dataclass(frozen=True, slots=True)
class PlatformProfile:
    """Detected properties of the host devstrap runs on.

    Attributes:
        family: Operating system family.
        package_manager: First package manager found in probe order.
        architecture: Machine architecture as reported by uname (e.g. x86_64).
        version_id: VERSION_ID from os-release, if available.
    """

    family: OSFamily
    package_manager: PackageManagerKind
    architecture: str = ""
    version_id: str | None = None

    @property
    def is_openwrt(self) -> bool:
        """OpenWrt lacks glibc toolchains and several common packages."""
        return self.family == OSFamily.OPENWRT

    @property
    def is_macos(self) -> bool:
        """macOS has no sudoers.d/update-motd conventions of Linux hosts."""
        return self.family == OSFamily.MACOS

    @property
    def has_package_manager(self) -> bool:
        """Check whether a supported package manager was found."""
        return self.package_manager != PackageManagerKind.NONE

    @property
    def strategy_keys(self) -> tuple[str, ...]:
        """Strategy lookup keys in priority order.

        OpenWrt-specific strategies win over the package manager entry,
        which wins over the generic fallback.
        """
        keys: list[str] = []
        if self.is_openwrt:
            keys.append(OPENWRT_KEY)
        if self.has_package_manager:
            keys.append(self.package_manager.value)
        keys.append(GENERIC_KEY)
        return tuple(keys)

    def describe(self) -> str:
        """Human-readable one-line summary."""
        version = f" {self.version_id}" if self.version_id else ""
        return (
            f"{self.family.value}{version} ({self.architecture or 'unknown arch'}), "
            f"package manager: {self.package_manager.value}"
        )
