"""Shared Rich display functions for platform profiles and run reports.

Provides table builders and summary printers used by the ``apply``,
``detect`` and ``mcp`` commands.
"""

from rich.markup import escape
from rich.table import Table

from devstrap.models.platform import PlatformProfile
from devstrap.models.unit import Report, UnitStatus
from devstrap.utils.formatting import console, print_success

_STATUS_STYLES: dict[UnitStatus, tuple[str, str]] = {
    UnitStatus.SUCCEEDED: ("OK", "success"),
    UnitStatus.UNCHANGED: ("SAME", "unchanged"),
    UnitStatus.DISABLED: ("OFF", "disabled"),
    UnitStatus.WARNED: ("WARN", "warning"),
    UnitStatus.FAILED: ("FAIL", "error"),
}


def create_profile_table(profile: PlatformProfile) -> Table:
    """Create a Rich table describing the detected platform.

    Args:
        profile: Detected platform.

    Returns:
        Two-column key/value table.
    """
    table = Table(
        title="Platform",
        show_header=False,
        border_style="border",
    )
    table.add_column("Property", style="muted")
    table.add_column("Value")

    table.add_row("OS family", profile.family.value)
    table.add_row("Version", profile.version_id or "-")
    table.add_row("Architecture", profile.architecture or "-")
    manager = profile.package_manager.value
    if not profile.has_package_manager:
        manager = f"[error]{manager}[/error]"
    table.add_row("Package manager", manager)
    table.add_row("Strategy keys", ", ".join(profile.strategy_keys))
    return table


def create_report_table(report: Report, *, dry_run: bool = False, verbose: bool = False) -> Table:
    """Create a Rich table with one row per unit.

    Disabled units are left out unless ``verbose`` is set, since most
    runs turn off a good part of the catalog.

    Args:
        report: Report of the run.
        dry_run: Whether this was a dry run (changes the title).
        verbose: Include disabled units.

    Returns:
        Rich Table configured for report display.
    """
    title = "Results (Dry Run)" if dry_run else "Results"

    table = Table(
        title=title,
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Status", width=6, justify="center")
    table.add_column("Unit", no_wrap=True)
    table.add_column("Message")

    for result in report.results:
        if result.status == UnitStatus.DISABLED and not verbose:
            continue
        label, style = _STATUS_STYLES[result.status]
        table.add_row(
            f"[{style}]{label}[/{style}]",
            result.name,
            f"[muted]{escape(result.message)}[/muted]",
        )

    return table


def print_report_summary(report: Report) -> None:
    """Print counts per outcome.

    Args:
        report: Report of the run.
    """
    succeeded = len(report.succeeded)
    warned = len(report.warned)
    failed = len(report.failed)

    if not warned and not failed:
        print_success(f"All {succeeded} unit(s) converged.")
        return

    parts = [f"[success]{succeeded} converged[/success]"]
    if warned:
        parts.append(f"[warning]{warned} skipped with warnings[/warning]")
    if failed:
        parts.append(f"[error]{failed} failed[/error]")
    console.print(f"\nSummary: {', '.join(parts)}")
