"""Unit tests for the package manager operators and their factory."""

import pytest
from devstrap.core.privilege import Privilege
from devstrap.models.platform import OSFamily, PackageManagerKind, PlatformProfile
from devstrap.operators import (
    ApkOperator,
    AptOperator,
    BrewOperator,
    DnfOperator,
    OpkgOperator,
    PacmanOperator,
    YumOperator,
    get_operator,
)
from devstrap.operators.base import Operator


class TestGetOperator:
    """Tests for get_operator."""

    @pytest.mark.parametrize(
        ("kind", "expected"),
        [
            (PackageManagerKind.APT, AptOperator),
            (PackageManagerKind.DNF, DnfOperator),
            (PackageManagerKind.YUM, YumOperator),
            (PackageManagerKind.PACMAN, PacmanOperator),
            (PackageManagerKind.APK, ApkOperator),
            (PackageManagerKind.OPKG, OpkgOperator),
            (PackageManagerKind.BREW, BrewOperator),
        ],
    )
    def test_operator_per_manager(
        self, kind: PackageManagerKind, expected: type[Operator]
    ) -> None:
        """Each package manager has its operator."""
        operator = get_operator(PlatformProfile(OSFamily.UNKNOWN, kind))
        assert type(operator) is expected
        assert operator is not None
        assert operator.kind == kind

    def test_no_package_manager(self) -> None:
        """No operator without a package manager."""
        profile = PlatformProfile(OSFamily.UNKNOWN, PackageManagerKind.NONE)
        assert get_operator(profile) is None

    def test_options_are_passed(self) -> None:
        """dry_run and timeout reach the operator."""
        profile = PlatformProfile(OSFamily.UBUNTU, PackageManagerKind.APT)
        operator = get_operator(profile, Privilege(), dry_run=True, timeout=5.0)
        assert operator is not None
        assert operator.dry_run is True
        assert operator.timeout == 5.0


class TestCommandLines:
    """Tests for the command lines of each operator."""

    def test_apt_is_noninteractive(self) -> None:
        """APT commands carry DEBIAN_FRONTEND through env."""
        operator = AptOperator()
        assert operator.install_command(["zsh"]) == [
            "env",
            "DEBIAN_FRONTEND=noninteractive",
            "apt-get",
            "install",
            "-y",
            "zsh",
        ]
        assert [args[2:] for args in operator.update_commands()] == [
            ["apt-get", "update"],
            ["apt-get", "upgrade", "-y"],
        ]

    def test_dnf_and_yum(self) -> None:
        """yum shares the install shape but updates differently."""
        assert DnfOperator().update_commands() == [["dnf", "upgrade", "-y", "--refresh"]]
        assert YumOperator().update_commands() == [["yum", "update", "-y"]]
        assert YumOperator().install_command(["git"]) == ["yum", "install", "-y", "git"]

    def test_pacman_skips_up_to_date(self) -> None:
        """pacman only installs what is missing."""
        assert PacmanOperator().install_command(["git"]) == [
            "pacman",
            "-S",
            "--noconfirm",
            "--needed",
            "git",
        ]

    def test_opkg_creates_lock_dir(self) -> None:
        """opkg needs /var/lock before updating."""
        assert OpkgOperator().update_commands()[0] == ["mkdir", "-p", "/var/lock"]

    def test_apk(self) -> None:
        """apk updates then upgrades."""
        assert ApkOperator().update_commands() == [["apk", "update"], ["apk", "upgrade"]]
        assert ApkOperator().install_command(["zsh"]) == ["apk", "add", "zsh"]

    def test_brew_never_elevates(self) -> None:
        """Homebrew refuses to run as root."""
        assert BrewOperator.needs_privilege is False
        assert AptOperator.needs_privilege is True
        assert BrewOperator().install_command(["eza"]) == ["brew", "install", "eza"]
