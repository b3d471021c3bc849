"""Detect command implementation.

Shows the platform profile that ``apply`` would use.
"""

import typer

from devstrap.cli.display import create_profile_table
from devstrap.core.platform import PlatformError, detect
from devstrap.utils.formatting import console, print_error

app = typer.Typer(
    help="Show the detected platform.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def detect_command(ctx: typer.Context) -> None:
    """Show the detected OS family, architecture and package manager."""
    if ctx.invoked_subcommand is not None:
        return

    try:
        profile = detect()
    except PlatformError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    console.print(create_profile_table(profile))
    if not profile.has_package_manager:
        print_error("No supported package manager found.")
        raise typer.Exit(code=1)
