"""Data models for devstrap.

This module exports the core data structures used throughout the application.
"""

from devstrap.models.action import Action, ActionResult, ActionType
from devstrap.models.config import ConfigFile, InstallationSection, PromptsSection
from devstrap.models.mcp import HOME_PLACEHOLDER, MCPServerDescriptor
from devstrap.models.platform import OSFamily, PackageManagerKind, PlatformProfile
from devstrap.models.resolved import (
    MissingKeyPolicy,
    ResolvedConfig,
    ShellFramework,
    SshKeyAction,
)
from devstrap.models.unit import InstallUnit, PresenceCheck, Report, UnitResult, UnitStatus

__all__ = [
    "HOME_PLACEHOLDER",
    "Action",
    "ActionResult",
    "ActionType",
    "ConfigFile",
    "InstallUnit",
    "InstallationSection",
    "MCPServerDescriptor",
    "MissingKeyPolicy",
    "OSFamily",
    "PackageManagerKind",
    "PlatformProfile",
    "PresenceCheck",
    "PromptsSection",
    "Report",
    "ResolvedConfig",
    "ShellFramework",
    "SshKeyAction",
    "UnitResult",
    "UnitStatus",
]
