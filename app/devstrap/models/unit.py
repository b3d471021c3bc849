"""Install unit and convergence report models.

An InstallUnit is one entry of the toggle registry: a named, toggleable
piece of desired state with per-platform strategies. A Report collects
the outcome of every unit attempted in a run.
"""

from __future__ import annotations

import shutil
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from devstrap.core.context import UnitContext
    from devstrap.core.strategies import Strategy
    from devstrap.models.platform import PlatformProfile
    from devstrap.models.resolved import ResolvedConfig


class UnitStatus(Enum):
    """Outcome of a single unit.

    Attributes:
        SUCCEEDED: A strategy ran and completed.
        UNCHANGED: The desired state was already present.
        DISABLED: The unit's toggle is off.
        WARNED: The unit was skipped for a reason that needs attention.
        FAILED: Every applicable strategy failed.
    """

    SUCCEEDED = "succeeded"
    UNCHANGED = "unchanged"
    DISABLED = "disabled"
    WARNED = "warned"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class PresenceCheck:
    """Describes how to tell that a unit's target is already in place.

    The check passes when every command is on PATH, when every path
    exists, or when the custom probe returns True.

    Attributes:
        commands: Executables looked up on PATH.
        home_paths: Paths relative to the home directory (absolute paths allowed).
        probe: Optional callable for checks that need the full context.
    """

    commands: tuple[str, ...] = ()
    home_paths: tuple[str, ...] = ()
    probe: Callable[[UnitContext], bool] | None = None

    def is_satisfied(self, ctx: UnitContext) -> bool:
        """Evaluate the check against the current host."""
        if self.commands and all(shutil.which(command) for command in self.commands):
            return True
        if self.home_paths and all((ctx.home / path).exists() for path in self.home_paths):
            return True
        return self.probe is not None and self.probe(ctx)


def _always(_config: ResolvedConfig) -> bool:
    return True


@dataclass(frozen=True, slots=True)
class InstallUnit:
    """One entry in the toggle registry.

    Attributes:
        name: Unique key of the unit.
        description: Text shown while the unit runs.
        strategies: Strategy chains keyed by platform key (package manager
            value, ``openwrt`` or ``generic``). An empty chain means the
            unit deliberately does nothing on that platform.
        toggle: Derives the enabled flag from the resolved configuration.
        check: Presence check used for idempotence.
        needs_package_manager: Skip when no package manager was detected.
        needs_privilege: Skip when elevated privilege is unavailable.
    """

    name: str
    description: str
    strategies: Mapping[str, tuple[Strategy, ...]]
    toggle: Callable[[ResolvedConfig], bool] = _always
    check: PresenceCheck | None = None
    needs_package_manager: bool = True
    needs_privilege: bool = False

    def __post_init__(self) -> None:
        """Validate unit data after initialization."""
        if not self.name:
            msg = "Unit name cannot be empty"
            raise ValueError(msg)

    @property
    def depends_on(self) -> frozenset[str]:
        """Names of units any of this unit's strategies require."""
        return frozenset(
            requirement
            for chain in self.strategies.values()
            for strategy in chain
            for requirement in strategy.requires
        )

    def is_enabled(self, config: ResolvedConfig) -> bool:
        """Evaluate the toggle against the resolved configuration."""
        return self.toggle(config)

    def strategies_for(self, profile: PlatformProfile) -> tuple[Strategy, ...] | None:
        """Select the strategy chain for a platform.

        Returns:
            The first chain found in the profile's key order, or None when
            neither a platform entry nor a generic fallback exists.
        """
        for key in profile.strategy_keys:
            if key in self.strategies:
                return self.strategies[key]
        return None


@dataclass(frozen=True, slots=True)
class UnitResult:
    """Outcome of one unit.

    Attributes:
        name: Unit name.
        status: Outcome category.
        message: Reason or detail shown to the user.
    """

    name: str
    status: UnitStatus
    message: str = ""

    @property
    def ok(self) -> bool:
        """True for succeeded and unchanged units."""
        return self.status in (UnitStatus.SUCCEEDED, UnitStatus.UNCHANGED)


@dataclass
class Report:
    """Aggregated outcome of a convergence run."""

    results: list[UnitResult] = field(default_factory=list)

    def add(self, result: UnitResult) -> None:
        """Record a unit result."""
        self.results.append(result)

    def get(self, name: str) -> UnitResult | None:
        """Look up the result of a unit by name."""
        for result in self.results:
            if result.name == name:
                return result
        return None

    def _with_status(self, *statuses: UnitStatus) -> list[UnitResult]:
        return [r for r in self.results if r.status in statuses]

    @property
    def succeeded(self) -> list[UnitResult]:
        """Units that ran successfully or were already converged."""
        return self._with_status(UnitStatus.SUCCEEDED, UnitStatus.UNCHANGED)

    @property
    def warned(self) -> list[UnitResult]:
        """Units skipped with a warning."""
        return self._with_status(UnitStatus.WARNED)

    @property
    def failed(self) -> list[UnitResult]:
        """Units whose strategies all failed."""
        return self._with_status(UnitStatus.FAILED)

    @property
    def disabled(self) -> list[UnitResult]:
        """Units turned off by configuration."""
        return self._with_status(UnitStatus.DISABLED)
