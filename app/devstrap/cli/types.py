"""Shared types and utilities for CLI commands.

This module provides the option types and config-loading helpers used
by several command modules, so that every command reports config
problems and exits the same way.
"""

from pathlib import Path
from typing import Annotated

import typer

from devstrap.core.config_file import (
    ConfigFileError,
    ConfigFileNotFoundError,
    LoadedConfig,
    find_config_file,
    load_config_file,
)
from devstrap.utils.formatting import print_error, print_warning

# Exit status for unusable configuration (same as click usage errors)
EXIT_CONFIG_ERROR = 2

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Config file (JSON or TOML). Default: ./config.json, then "
        "~/.config/devstrap/config.json.",
        dir_okay=False,
    ),
]

TimeoutOption = Annotated[
    float | None,
    typer.Option(
        "--timeout",
        help="Per-command timeout in seconds.",
        min=1.0,
    ),
]


def load_config_or_exit(path: Path | None) -> LoadedConfig | None:
    """Find and load the config file, translating errors into an exit.

    Args:
        path: Explicit path from ``--config``, or None to search defaults.

    Returns:
        The loaded config, or None when no config file exists.

    Raises:
        typer.Exit: With code 2 when the file is missing or unparseable.
    """
    try:
        found = find_config_file(path)
        if found is None:
            return None
        loaded = load_config_file(found)
    except ConfigFileNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e
    except ConfigFileError as e:
        print_error(f"Failed to load config: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e

    for warning in loaded.warnings:
        print_warning(f"{loaded.path}: {warning}")
    return loaded
