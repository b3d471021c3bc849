"""Apply command implementation.

Resolves the configuration, detects the platform and converges the
local machine. The same command runs on the remote host during
``devstrap remote``, reading the already resolved configuration from a
payload file instead of asking again.
"""

import sys
from pathlib import Path
from typing import Annotated

import typer
from pydantic import ValidationError

from devstrap.cli.display import create_profile_table, create_report_table, print_report_summary
from devstrap.cli.types import EXIT_CONFIG_ERROR, ConfigOption, TimeoutOption, load_config_or_exit
from devstrap.core.executor import apply as converge
from devstrap.core.executor import build_context
from devstrap.core.platform import PlatformError, detect
from devstrap.core.prompts import open_prompter
from devstrap.core.resolver import CliOverrides, ResolveError, builtin_defaults, resolve
from devstrap.models.resolved import MissingKeyPolicy, ResolvedConfig, SshKeyAction
from devstrap.utils.formatting import console, print_error, print_info

app = typer.Typer(
    help="Bootstrap this machine.",
    invoke_without_command=True,
)


def _load_payload(path: Path) -> ResolvedConfig:
    """Read a configuration resolved on the controlling machine.

    Raises:
        typer.Exit: With code 2 when the payload is unreadable or invalid.
    """
    try:
        return ResolvedConfig.from_payload(path.read_text(encoding="utf-8"))
    except OSError as e:
        print_error(f"Cannot read payload {path}: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e
    except ValidationError as e:
        print_error(f"Invalid payload {path}: {e}")
        raise typer.Exit(code=EXIT_CONFIG_ERROR) from e


@app.callback(invoke_without_command=True)
def apply_command(
    ctx: typer.Context,
    port: Annotated[
        int | None,
        typer.Option("--port", "-p", help="SSH port to open.", min=1, max=65535),
    ] = None,
    name: Annotated[
        str | None,
        typer.Option("--name", "-n", help="Server name shown in the login banner."),
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
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Show what would be done without making changes."),
    ] = False,
    payload: Annotated[
        Path | None,
        typer.Option("--payload", hidden=True, dir_okay=False),
    ] = None,
) -> None:
    """Bootstrap this machine.

    Every step checks what is already in place first, so running apply
    again only installs or edits what is missing. A step that fails is
    reported and the run continues with the next one.

    Examples:
        devstrap apply                  # Ask for port, name and key action
        devstrap apply -y               # Use config file and defaults
        devstrap apply --dry-run -y     # Preview commands and file writes
        devstrap apply -k add --pubkey "ssh-ed25519 AAAA... me@laptop"
    """
    # Skip if a subcommand is being invoked
    if ctx.invoked_subcommand is not None:
        return

    try:
        profile = detect()
    except PlatformError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if payload is not None:
        config = _load_payload(payload)
        interactive = sys.stdin.isatty()
    else:
        loaded = load_config_or_exit(config_path)
        overrides = CliOverrides(
            ssh_port=port,
            server_name=name,
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
                builtin_defaults(),
                loaded.config if loaded else None,
                overrides,
                prompter,
                dry_run=dry_run,
            )
        except ResolveError as e:
            print_error(str(e))
            raise typer.Exit(code=1) from e
        finally:
            prompter.close()

    console.print(create_profile_table(profile))

    verbose = bool(ctx.obj and ctx.obj.get("verbose"))
    unit_ctx = build_context(config, profile, dry_run=dry_run, interactive=interactive)
    report = converge(config, profile, unit_ctx)

    console.print(create_report_table(report, dry_run=dry_run, verbose=verbose))
    print_report_summary(report)

    if dry_run:
        print_info("\nDry-run mode: No changes were made.")

    if not profile.has_package_manager:
        print_error(
            "No supported package manager found (looked for brew, apt-get, dnf, yum, "
            "pacman, apk, opkg); package installs were skipped."
        )
        raise typer.Exit(code=1)
