"""Package operators for refreshing indexes and installing packages.

This module provides the Operator interface, one implementation per
supported package manager, and the factory that picks the operator for
a detected platform.
"""

from devstrap.core.privilege import Privilege
from devstrap.models.platform import PackageManagerKind, PlatformProfile
from devstrap.operators.apk import ApkOperator
from devstrap.operators.apt import AptOperator
from devstrap.operators.base import Operator
from devstrap.operators.brew import BrewOperator
from devstrap.operators.dnf import DnfOperator, YumOperator
from devstrap.operators.opkg import OpkgOperator
from devstrap.operators.pacman import PacmanOperator

_OPERATORS: dict[PackageManagerKind, type[Operator]] = {
    PackageManagerKind.BREW: BrewOperator,
    PackageManagerKind.APT: AptOperator,
    PackageManagerKind.DNF: DnfOperator,
    PackageManagerKind.YUM: YumOperator,
    PackageManagerKind.PACMAN: PacmanOperator,
    PackageManagerKind.APK: ApkOperator,
    PackageManagerKind.OPKG: OpkgOperator,
}


def get_operator(
    profile: PlatformProfile,
    privilege: Privilege | None = None,
    dry_run: bool = False,
    timeout: float = 1800.0,
) -> Operator | None:
    """Create the operator for the profile's package manager.

    Args:
        profile: Detected platform.
        privilege: Elevation token passed to the operator.
        dry_run: Print commands instead of running them.
        timeout: Per-command timeout in seconds.

    Returns:
        The operator, or None when no package manager was detected.
    """
    operator_cls = _OPERATORS.get(profile.package_manager)
    if operator_cls is None:
        return None
    return operator_cls(privilege=privilege, dry_run=dry_run, timeout=timeout)


__all__ = [
    "ApkOperator",
    "AptOperator",
    "BrewOperator",
    "DnfOperator",
    "OpkgOperator",
    "Operator",
    "PacmanOperator",
    "YumOperator",
    "get_operator",
]
