"""Platform probe.

Classifies the host once at the start of a run: operating system
family, the single native package manager to use, and the machine
architecture. The probe only reads files and looks up executables.
"""

import logging
import platform
import shlex
import shutil
from collections.abc import Callable
from pathlib import Path

from devstrap.models.platform import OSFamily, PackageManagerKind, PlatformProfile

logger = logging.getLogger(__name__)

# Linux package managers in probe order; the first one found wins
_LINUX_PROBE_ORDER: tuple[tuple[str, PackageManagerKind], ...] = (
    ("apt-get", PackageManagerKind.APT),
    ("dnf", PackageManagerKind.DNF),
    ("yum", PackageManagerKind.YUM),
    ("pacman", PackageManagerKind.PACMAN),
    ("apk", PackageManagerKind.APK),
    ("opkg", PackageManagerKind.OPKG),
)

_FAMILY_BY_ID: dict[str, OSFamily] = {
    "ubuntu": OSFamily.UBUNTU,
    "debian": OSFamily.DEBIAN,
    "raspbian": OSFamily.DEBIAN,
    "rhel": OSFamily.RHEL,
    "centos": OSFamily.RHEL,
    "rocky": OSFamily.RHEL,
    "almalinux": OSFamily.RHEL,
    "ol": OSFamily.RHEL,
    "fedora": OSFamily.FEDORA,
    "arch": OSFamily.ARCH,
    "manjaro": OSFamily.ARCH,
    "endeavouros": OSFamily.ARCH,
    "alpine": OSFamily.ALPINE,
    "openwrt": OSFamily.OPENWRT,
}


class PlatformError(Exception):
    """Raised when the host operating system is not supported at all."""


def parse_os_release(text: str) -> dict[str, str]:
    """Parse the KEY=value lines of an os-release file.

    Args:
        text: File content.

    Returns:
        Mapping of keys to unquoted values. Malformed lines are skipped.
    """
    values: dict[str, str] = {}
    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw_value = line.partition("=")
        try:
            parts = shlex.split(raw_value)
        except ValueError:
            logger.debug("Skipping malformed os-release line: %s", raw_line)
            continue
        values[key.strip()] = parts[0] if parts else ""
    return values


def _read_os_release(root: Path) -> dict[str, str]:
    for candidate in ("etc/os-release", "usr/lib/os-release"):
        path = root / candidate
        try:
            return parse_os_release(path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("Cannot read %s: %s", path, e)
    return {}


def classify_family(os_release: dict[str, str]) -> OSFamily:
    """Map os-release ID (then ID_LIKE) to an OS family."""
    os_id = os_release.get("ID", "").lower()
    if os_id in _FAMILY_BY_ID:
        return _FAMILY_BY_ID[os_id]
    for like in os_release.get("ID_LIKE", "").lower().split():
        if like in _FAMILY_BY_ID:
            return _FAMILY_BY_ID[like]
    return OSFamily.UNKNOWN


def detect(
    root: Path = Path("/"),
    *,
    system: str | None = None,
    machine: str | None = None,
    which: Callable[[str], str | None] = shutil.which,
) -> PlatformProfile:
    """Detect the host platform.

    Args:
        root: Filesystem root holding ``etc/`` (overridable for tests).
        system: Kernel name; defaults to ``platform.system()``.
        machine: Architecture; defaults to ``platform.machine()``.
        which: Executable lookup used to probe package managers.

    Returns:
        The detected PlatformProfile. A host without a supported package
        manager yields ``PackageManagerKind.NONE``.

    Raises:
        PlatformError: If the kernel is neither Linux nor Darwin.
    """
    system = system if system is not None else platform.system()
    machine = machine if machine is not None else platform.machine()

    if system == "Darwin":
        manager = PackageManagerKind.BREW if which("brew") else PackageManagerKind.NONE
        profile = PlatformProfile(
            family=OSFamily.MACOS,
            package_manager=manager,
            architecture=machine,
            version_id=platform.mac_ver()[0] or None,
        )
        logger.debug("Detected %s", profile.describe())
        return profile

    if system != "Linux":
        msg = f"Unsupported operating system: {system or 'unknown'}"
        raise PlatformError(msg)

    os_release = _read_os_release(root)
    if (root / "etc" / "openwrt_release").exists():
        family = OSFamily.OPENWRT
    else:
        family = classify_family(os_release)

    manager = PackageManagerKind.NONE
    for binary, kind in _LINUX_PROBE_ORDER:
        if which(binary):
            manager = kind
            break

    profile = PlatformProfile(
        family=family,
        package_manager=manager,
        architecture=machine,
        version_id=os_release.get("VERSION_ID") or None,
    )
    logger.debug("Detected %s", profile.describe())
    return profile
