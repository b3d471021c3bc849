"""Remote command implementation.

Resolves the configuration on this machine, then runs ``devstrap
apply`` on a remote host over SSH with that configuration.
"""

import sys
from pathlib import Path
from typing import Annotated

import typer

from devstrap.cli.types import ConfigOption, TimeoutOption, load_config_or_exit
from devstrap.core.prompts import open_prompter
from devstrap.core.resolver import CliOverrides, ResolveError, builtin_defaults, resolve
from devstrap.core.transport import (
    RemoteConnectionError,
    RemoteTarget,
    TransportError,
    run_remote,
)
from devstrap.models.resolved import MissingKeyPolicy, SshKeyAction
from devstrap.utils.formatting import print_error, print_info

app = typer.Typer(
    help="Bootstrap a remote host over SSH.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def remote_command(
    ctx: typer.Context,
    host: Annotated[
        str | None,
        typer.Option("--host", "-H", help="Address of the host to bootstrap."),
    ] = None,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="SSH port of the host.", min=1, max=65535),
    ] = None,
    user: Annotated[
        str | None,
        typer.Option("--user", "-u", help="Login user on the host."),
    ] = None,
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Server name shown in the login banner."),
    ] = None,
    identity: Annotated[
        Path | None,
        typer.Option("--identity", "-i", help="Private key for the SSH connection."),
    ] = None,
    key_action: Annotated[
        SshKeyAction | None,
        typer.Option(
            "--key-action",
            "-k",
            help="How to obtain the SSH public key: generate, add or skip.",
            case_sensitive=False,
        ),
    ] = None,
    pubkey: Annotated[
        list[str] | None,
        typer.Option("--pubkey", help="Public key to authorize (repeatable)."),
    ] = None,
    yes: Annotated[
        bool,
        typer.Option("--yes", "-y", help="Do not prompt; use configured or default values."),
    ] = False,
    config_path: ConfigOption = None,
    missing_key_policy: Annotated[
        MissingKeyPolicy | None,
        typer.Option(
            "--missing-key-policy",
            help="What to do when --key-action add has no key: prompt, skip or fail.",
            case_sensitive=False,
        ),
    ] = None,
    timeout: TimeoutOption = None,
) -> None:
    """Bootstrap a remote host over SSH.

    The configuration is resolved here (including prompts and key
    generation) and sent to the host together with a copy of devstrap.
    The host needs python3 with the venv module and network access to
    install devstrap's dependencies.

    Examples:
        devstrap remote -H 203.0.113.7 -u ubuntu
        devstrap remote -H box.example.org -p 2222 -i ~/.ssh/id_ed25519 -y
    """
    # Skip if a subcommand is being invoked
    if ctx.invoked_subcommand is not None:
        return

    loaded = load_config_or_exit(config_path)
    overrides = CliOverrides(
        ssh_port=port,
        server_name=name,
        server_address=host,
        ssh_user=user,
        ssh_key_action=key_action,
        ssh_public_keys=tuple(pubkey or ()),
        missing_key_policy=missing_key_policy,
        unit_timeout=timeout,
        assume_yes=yes,
    )
    prompter = open_prompter(enabled=not yes)
    interactive = sys.stdin.isatty() or prompter.interactive
    try:
        config = resolve(
            builtin_defaults(remote=True),
            loaded.config if loaded else None,
            overrides,
            prompter,
            remote=True,
        )
    except ResolveError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    finally:
        prompter.close()

    target = RemoteTarget(
        host=config.server_address,
        user=config.ssh_user,
        port=config.ssh_port,
        identity=identity,
    )

    try:
        returncode = run_remote(target, config, interactive=interactive)
    except RemoteConnectionError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    except (TransportError, OSError) as e:
        print_error(f"Remote run failed: {e}")
        raise typer.Exit(code=1) from e

    if returncode != 0:
        print_error(f"devstrap exited with status {returncode} on {target.host}")
        raise typer.Exit(code=returncode)
    print_info(f"{target.host} is bootstrapped.")
