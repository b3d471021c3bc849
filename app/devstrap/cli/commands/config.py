"""Config file commands.

Provides commands to write a starter config file and to show the
effective configuration (defaults merged with the config file).
"""

import json
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from devstrap.cli.types import EXIT_CONFIG_ERROR, ConfigOption, load_config_or_exit
from devstrap.core.config_file import ConfigFileError, write_starter_config
from devstrap.core.paths import CONFIG_FILENAME, get_config_dir
from devstrap.core.resolver import apply_config_file, builtin_defaults
from devstrap.models.resolved import ResolvedConfig
from devstrap.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Create and inspect config files.",
    invoke_without_command=True,
    no_args_is_help=True,
)


@app.command()
def init(
    path: Annotated[
        Path | None,
        typer.Argument(
            help="Where to write the file (.json or .toml). "
            "Default: ~/.config/devstrap/config.json.",
            dir_okay=False,
        ),
    ] = None,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing file."),
    ] = False,
) -> None:
    """Write a starter config file with every setting spelled out."""
    target = path or get_config_dir() / CONFIG_FILENAME
    try:
        written = write_starter_config(target, force=force)
    except ConfigFileError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {written}")
    print_info("Edit it, then run 'devstrap apply -y' to use it without prompts.")


@app.command()
def show(config_path: ConfigOption = None) -> None:
    """Show the effective configuration as JSON.

    Prompts and SSH key generation are not performed; the values shown
    are what ``apply -y`` starts from.
    """
    loaded = load_config_or_exit(config_path)
    if loaded is None:
        print_info("No config file found; showing built-in defaults.")
    else:
        print_info(f"Config file: {loaded.path}")

    values, _ = apply_config_file(builtin_defaults(), loaded.config if loaded else None)
    try:
        effective = ResolvedConfig.model_validate(values)
    except ValidationError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e

    console.print_json(json.dumps(effective.model_dump(mode="json")))
