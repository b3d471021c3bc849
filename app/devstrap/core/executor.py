"""Convergence executor.

Walks the toggle registry in declaration order and converges every
enabled unit with the first strategy that works on the detected platform.
A unit that cannot be converged is recorded and the run moves on; only
the final report decides the exit status.
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from devstrap.core.context import UnitContext
from devstrap.core.dotfile import DotfileError
from devstrap.core.mcp import McpConfigError
from devstrap.core.paths import get_home_dir, get_user_name
from devstrap.core.privilege import acquire_privilege
from devstrap.core.registry import build_registry
from devstrap.core.strategies import StrategyError
from devstrap.models.unit import Report, UnitResult, UnitStatus
from devstrap.operators import get_operator
from devstrap.utils.formatting import print_step, print_warning

if TYPE_CHECKING:
    from devstrap.core.strategies import Strategy
    from devstrap.models.platform import PlatformProfile
    from devstrap.models.resolved import ResolvedConfig
    from devstrap.models.unit import InstallUnit

logger = logging.getLogger(__name__)

# Install locations of user-level toolchains, searched by later units
USER_BIN_DIRS: tuple[str, ...] = (".local/bin", ".cargo/bin", ".fzf/bin")


def extend_path(home: Path) -> None:
    """Append user-level bin directories to PATH for this process."""
    entries = os.environ.get("PATH", "").split(os.pathsep)
    for directory in USER_BIN_DIRS:
        path = str(home / directory)
        if path not in entries:
            entries.append(path)
    os.environ["PATH"] = os.pathsep.join(entry for entry in entries if entry)


def build_context(
    config: ResolvedConfig,
    profile: PlatformProfile,
    *,
    dry_run: bool = False,
    interactive: bool = False,
    home: Path | None = None,
) -> UnitContext:
    """Create the context for a run: privilege token and operator.

    Args:
        config: Resolved configuration.
        profile: Detected platform.
        dry_run: Print commands instead of running them.
        interactive: Whether sudo may ask for a password.
        home: Home directory to configure. Defaults to the current user's.

    Returns:
        A context with an empty report.
    """
    privilege = acquire_privilege(interactive=interactive, dry_run=dry_run)
    operator = get_operator(
        profile, privilege=privilege, dry_run=dry_run, timeout=config.unit_timeout
    )
    return UnitContext(
        config=config,
        profile=profile,
        home=home or get_home_dir(),
        operator=operator,
        privilege=privilege,
        dry_run=dry_run,
        user=get_user_name(),
    )


def _platform_label(profile: PlatformProfile) -> str:
    if profile.is_openwrt or not profile.has_package_manager:
        return profile.family.value
    return profile.package_manager.value


def _needs_privilege(unit: InstallUnit, ctx: UnitContext) -> bool:
    if unit.needs_privilege:
        return True
    return (
        unit.needs_package_manager
        and ctx.operator is not None
        and ctx.operator.needs_privilege
    )


class _Executor:
    """Holds the per-run lookup state while walking the registry."""

    def __init__(self, ctx: UnitContext, units: Sequence[InstallUnit]) -> None:
        self.ctx = ctx
        self.units = {unit.name: unit for unit in units}

    def requirement_met(self, name: str) -> bool:
        """A prerequisite unit converged in this run or is already present."""
        result = self.ctx.report.get(name)
        if result is not None and result.ok:
            return True
        unit = self.units.get(name)
        return unit is not None and unit.check is not None and unit.check.is_satisfied(self.ctx)

    def unmet(self, strategy: Strategy) -> list[str]:
        """Prerequisites of a strategy that are not satisfied."""
        return [name for name in strategy.requires if not self.requirement_met(name)]

    def run_unit(
        self, unit: InstallUnit, config: ResolvedConfig, profile: PlatformProfile
    ) -> UnitResult:
        """Converge one unit and return its result."""
        if not unit.is_enabled(config):
            logger.info("Skipping %s: disabled by configuration", unit.name)
            return UnitResult(unit.name, UnitStatus.DISABLED, "disabled by configuration")

        chain = unit.strategies_for(profile)
        if chain is not None and not chain:
            reason = f"not applicable on {_platform_label(profile)}"
            logger.info("Skipping %s: %s", unit.name, reason)
            return UnitResult(unit.name, UnitStatus.DISABLED, reason)

        if unit.check is not None and unit.check.is_satisfied(self.ctx):
            logger.info("%s is already present", unit.name)
            return UnitResult(unit.name, UnitStatus.UNCHANGED, "already present")

        if unit.needs_package_manager and not profile.has_package_manager:
            return UnitResult(unit.name, UnitStatus.WARNED, "no supported package manager")

        if _needs_privilege(unit, self.ctx) and self.ctx.privilege is None:
            return UnitResult(unit.name, UnitStatus.WARNED, "requires root or sudo")

        if chain is None:
            reason = f"no install method for {_platform_label(profile)}"
            return UnitResult(unit.name, UnitStatus.WARNED, reason)

        print_step(unit.description)
        return self.try_strategies(unit, chain)

    def try_strategies(self, unit: InstallUnit, chain: Sequence[Strategy]) -> UnitResult:
        """Try each strategy in order until one succeeds."""
        errors: list[str] = []
        missing: list[str] = []

        for strategy in chain:
            unmet = self.unmet(strategy)
            if unmet:
                logger.debug("Skipping %s for %s: requires %s", strategy.label, unit.name, unmet)
                missing.extend(name for name in unmet if name not in missing)
                continue

            try:
                applied = strategy.apply(self.ctx)
            except subprocess.TimeoutExpired:
                errors.append(f"{strategy.label}: timed out")
            except (
                StrategyError,
                DotfileError,
                McpConfigError,
                RuntimeError,
                OSError,
                ValueError,
            ) as e:
                errors.append(str(e))
            except Exception as e:
                logger.exception("Unexpected error in %s", strategy.label)
                errors.append(f"{strategy.label}: {e}")
            else:
                status = UnitStatus.SUCCEEDED if applied.changed else UnitStatus.UNCHANGED
                return UnitResult(unit.name, status, applied.message)

            logger.info("%s failed for %s: %s", strategy.label, unit.name, errors[-1])

        if errors:
            return UnitResult(unit.name, UnitStatus.FAILED, "; ".join(errors))
        return UnitResult(unit.name, UnitStatus.WARNED, f"requires {', '.join(missing)}")


def apply(
    config: ResolvedConfig,
    profile: PlatformProfile,
    ctx: UnitContext,
    units: Sequence[InstallUnit] | None = None,
) -> Report:
    """Converge every unit of the registry.

    Args:
        config: Resolved configuration deciding which units are enabled.
        profile: Detected platform selecting the strategy chains.
        ctx: Context the strategies run in; results are recorded in
            ``ctx.report``.
        units: Units to walk. Defaults to :func:`build_registry`.

    Returns:
        The report with one result per unit, in execution order.
    """
    units = build_registry() if units is None else units
    extend_path(ctx.home)
    executor = _Executor(ctx, units)

    for unit in units:
        result = executor.run_unit(unit, config, profile)
        ctx.report.add(result)
        if result.status == UnitStatus.WARNED:
            print_warning(f"{unit.name}: {result.message}")
        elif result.status == UnitStatus.FAILED:
            print_warning(f"{unit.name} failed: {result.message}")
        logger.debug("%s -> %s", unit.name, result.status.value)

    return ctx.report
