"""MCP commands.

Rebuilds the merged MCP server configuration without running the rest
of the bootstrap, e.g. after toggling servers in the config file.
"""

from typing import Annotated

import typer
from pydantic import ValidationError

from devstrap.cli.types import EXIT_CONFIG_ERROR, ConfigOption, load_config_or_exit
from devstrap.core.context import UnitContext
from devstrap.core.mcp import McpConfigError
from devstrap.core.paths import get_home_dir, get_mcp_config_path
from devstrap.core.platform import PlatformError, detect
from devstrap.core.resolver import apply_config_file, builtin_defaults
from devstrap.core.strategies import ConfigureMcp
from devstrap.models.resolved import ResolvedConfig
from devstrap.utils.formatting import print_error, print_info, print_success

app = typer.Typer(
    help="Manage the MCP server configuration.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def build(
    config_path: ConfigOption = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be written without making changes."),
    ] = False,
) -> None:
    """Write ~/.config/mcp/mcp.json and link editor configs to it.

    Existing editor config files are left untouched.
    """
    loaded = load_config_or_exit(config_path)
    values, _ = apply_config_file(builtin_defaults(), loaded.config if loaded else None)
    try:
        config = ResolvedConfig.model_validate(values)
    except ValidationError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e

    try:
        profile = detect()
    except PlatformError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    home = get_home_dir()
    ctx = UnitContext(config=config, profile=profile, home=home, dry_run=dry_run)
    try:
        applied = ConfigureMcp().apply(ctx)
    except McpConfigError as e:
        print_error(f"MCP configuration failed: {e}")
        raise typer.Exit(code=1) from e

    path = get_mcp_config_path(home)
    if applied.changed:
        print_success(f"Updated {path}: {applied.message}")
    else:
        print_info(f"{path} is up to date: {applied.message}")
