"""Unit tests for package manager action models."""

import pytest
from devstrap.models.action import Action, ActionResult, ActionType
from devstrap.models.platform import PackageManagerKind


class TestAction:
    """Tests for Action."""

    def test_install_requires_package(self) -> None:
        """Install actions must name a package."""
        with pytest.raises(ValueError, match="cannot be empty"):
            Action(action_type=ActionType.INSTALL, manager=PackageManagerKind.APT)

    def test_update_without_package(self) -> None:
        """Update actions apply to the whole system."""
        action = Action(action_type=ActionType.UPDATE, manager=PackageManagerKind.DNF)
        assert action.is_install is False
        assert action.label == "dnf update"

    def test_install_label(self) -> None:
        """Install labels name the manager and package."""
        action = Action(ActionType.INSTALL, PackageManagerKind.PACMAN, package="zsh")
        assert action.label == "pacman install zsh"


class TestActionResult:
    """Tests for ActionResult."""

    def test_failed_is_inverse_of_success(self) -> None:
        """failed mirrors success."""
        action = Action(ActionType.INSTALL, PackageManagerKind.APK, package="git")
        assert ActionResult(action=action, success=False, error="x").failed is True
        assert ActionResult(action=action, success=True).failed is False
