"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from typing import Annotated

import typer

from devstrap import __version__
from devstrap.cli.commands import apply, config, detect, mcp, remote
from devstrap.utils.formatting import configure_logging

# Create main Typer app
app = typer.Typer(
    name="devstrap",
    help="Bootstrap a workstation or server from a declarative configuration.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"devstrap version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Only show errors in the log output.",
        ),
    ] = False,
) -> None:
    """devstrap - Idempotent workstation and server bootstrap.

    Installs a curated toolset, configures zsh, SSH and MCP editor
    integrations on the local machine or on a remote host over SSH.
    Running it again only changes what is missing.
    """
    configure_logging(verbose=verbose, quiet=quiet)

    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet


# Register commands
app.add_typer(apply.app, name="apply")
app.add_typer(remote.app, name="remote")
app.add_typer(detect.app, name="detect")
app.add_typer(config.app, name="config")
app.add_typer(mcp.app, name="mcp")


if __name__ == "__main__":
    app()
