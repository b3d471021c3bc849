"""Unit tests for install unit and report models."""

from collections.abc import Callable
from pathlib import Path
from unittest.mock import patch

import pytest
from devstrap.core.context import UnitContext
from devstrap.core.strategies import GitClone, NativePackages, UvTool
from devstrap.models.platform import OSFamily, PackageManagerKind, PlatformProfile
from devstrap.models.unit import (
    InstallUnit,
    PresenceCheck,
    Report,
    UnitResult,
    UnitStatus,
)


class TestPresenceCheck:
    """Tests for PresenceCheck.is_satisfied."""

    def test_all_commands_present(self, make_context: Callable[..., UnitContext]) -> None:
        """Passes when every command is on PATH."""
        check = PresenceCheck(commands=("git", "zsh"))
        with patch("devstrap.models.unit.shutil.which", return_value="/usr/bin/x"):
            assert check.is_satisfied(make_context()) is True

    def test_one_command_missing(self, make_context: Callable[..., UnitContext]) -> None:
        """Fails when any command is missing and nothing else matches."""
        check = PresenceCheck(commands=("git", "zsh"))
        with patch(
            "devstrap.models.unit.shutil.which",
            side_effect=lambda name: "/usr/bin/git" if name == "git" else None,
        ):
            assert check.is_satisfied(make_context()) is False

    def test_home_paths(self, make_context: Callable[..., UnitContext], home: Path) -> None:
        """Passes when every path exists under home."""
        (home / ".cargo" / "bin").mkdir(parents=True)
        (home / ".cargo" / "bin" / "eza").touch()
        check = PresenceCheck(commands=("eza",), home_paths=(".cargo/bin/eza",))
        with patch("devstrap.models.unit.shutil.which", return_value=None):
            assert check.is_satisfied(make_context()) is True

    def test_probe(self, make_context: Callable[..., UnitContext]) -> None:
        """A custom probe decides when nothing else matched."""
        check = PresenceCheck(probe=lambda ctx: ctx.user == "alice")
        assert check.is_satisfied(make_context()) is True

    def test_empty_check_never_passes(self, make_context: Callable[..., UnitContext]) -> None:
        """An empty check is never satisfied."""
        assert PresenceCheck().is_satisfied(make_context()) is False


class TestInstallUnit:
    """Tests for InstallUnit."""

    def test_empty_name_rejected(self) -> None:
        """Units must be named."""
        with pytest.raises(ValueError, match="cannot be empty"):
            InstallUnit(name="", description="x", strategies={})

    def test_depends_on_collects_requirements(self) -> None:
        """depends_on is the union of all strategies' requirements."""
        unit = InstallUnit(
            name="ruff",
            description="Installing ruff",
            strategies={
                "brew": (NativePackages(("ruff",)),),
                "generic": (UvTool("ruff", requires=("uv",)),),
            },
        )
        assert unit.depends_on == frozenset({"uv"})

    def test_strategies_for_prefers_platform_entry(self) -> None:
        """The package manager entry wins over generic."""
        apk_chain = (NativePackages(("nodejs", "npm")),)
        generic_chain = (GitClone("https://example.org/repo.git", "repo"),)
        unit = InstallUnit(
            name="node",
            description="Node",
            strategies={"apk": apk_chain, "generic": generic_chain},
        )
        alpine = PlatformProfile(OSFamily.ALPINE, PackageManagerKind.APK)
        debian = PlatformProfile(OSFamily.DEBIAN, PackageManagerKind.APT)

        assert unit.strategies_for(alpine) == apk_chain
        assert unit.strategies_for(debian) == generic_chain

    def test_strategies_for_missing(self) -> None:
        """None when neither the platform nor generic has an entry."""
        unit = InstallUnit(
            name="cuda",
            description="CUDA",
            strategies={"apt": (NativePackages(("cuda",)),)},
        )
        arch = PlatformProfile(OSFamily.ARCH, PackageManagerKind.PACMAN)
        assert unit.strategies_for(arch) is None


class TestReport:
    """Tests for Report aggregation."""

    def test_grouping(self) -> None:
        """Results are grouped by status."""
        report = Report()
        report.add(UnitResult("a", UnitStatus.SUCCEEDED))
        report.add(UnitResult("b", UnitStatus.UNCHANGED))
        report.add(UnitResult("c", UnitStatus.WARNED, "requires cargo"))
        report.add(UnitResult("d", UnitStatus.FAILED, "boom"))
        report.add(UnitResult("e", UnitStatus.DISABLED))

        assert [r.name for r in report.succeeded] == ["a", "b"]
        assert [r.name for r in report.warned] == ["c"]
        assert [r.name for r in report.failed] == ["d"]
        assert [r.name for r in report.disabled] == ["e"]

    def test_get(self) -> None:
        """get() finds results by unit name."""
        report = Report()
        report.add(UnitResult("cargo", UnitStatus.SUCCEEDED))
        assert report.get("cargo") is not None
        assert report.get("uv") is None
