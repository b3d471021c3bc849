"""Action models for package manager operations.

This module defines data structures for representing package manager
actions (index update, install) and their execution results.
"""

from dataclasses import dataclass
from enum import Enum

from devstrap.models.platform import PackageManagerKind


class ActionType(Enum):
    """Type of package manager action.

    Attributes:
        UPDATE: Refresh package indexes and upgrade installed packages.
        INSTALL: Install a package that is not currently installed.
    """

    UPDATE = "update"
    INSTALL = "install"


@dataclass(frozen=True, slots=True)
class Action:
    """A single package manager action.

    Attributes:
        action_type: The type of action (update or install).
        manager: Package manager that executes the action.
        package: Package to install; empty for updates.
    """

    action_type: ActionType
    manager: PackageManagerKind
    package: str = ""

    def __post_init__(self) -> None:
        """Validate action data after initialization."""
        if self.action_type == ActionType.INSTALL and not self.package:
            msg = "Package name cannot be empty"
            raise ValueError(msg)

    @property
    def is_install(self) -> bool:
        """Check if this is an install action."""
        return self.action_type == ActionType.INSTALL

    @property
    def label(self) -> str:
        """Short description used in log lines."""
        if self.is_install:
            return f"{self.manager.value} install {self.package}"
        return f"{self.manager.value} update"


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Result of executing a package manager action.

    Attributes:
        action: The action that was executed.
        success: Whether the action completed successfully.
        message: Optional success message or additional information.
        error: Optional error message if the action failed.
    """

    action: Action
    success: bool
    message: str | None = None
    error: str | None = None

    @property
    def failed(self) -> bool:
        """Check if the action failed."""
        return not self.success
