"""Configuration resolver.

Merges four layers into one immutable ResolvedConfig, lowest first:

1. built-in defaults
2. the config file (only keys that are present and well-formed)
3. interactive answers (prompt shows the value of the layers below)
4. command line flags (always win)

``-y/--yes`` turns prompting off, so the lower layers are kept and only
echoed.
"""

import logging
import socket
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from devstrap.core.paths import get_keypair_path, get_user_name
from devstrap.core.prompts import Prompter
from devstrap.core.sshkeys import (
    KeyMaterialError,
    existing_public_key,
    generate_keypair,
    is_public_key,
)
from devstrap.models.config import ConfigFile
from devstrap.models.resolved import (
    PACKAGE_DEFAULTS,
    MissingKeyPolicy,
    ResolvedConfig,
    SshKeyAction,
    default_cli_tool_toggles,
    default_editor_toggles,
    default_mcp_server_toggles,
)
from devstrap.utils.formatting import print_dry_run, print_warning

logger = logging.getLogger(__name__)


class ResolveError(Exception):
    """Raised when the configuration cannot be resolved."""


@dataclass(frozen=True, slots=True)
class CliOverrides:
    """Values given explicitly on the command line.

    None (or an empty tuple) means "not given".
    """

    ssh_port: int | None = None
    server_name: str | None = None
    server_address: str | None = None
    ssh_user: str | None = None
    ssh_key_action: SshKeyAction | None = None
    ssh_public_keys: tuple[str, ...] = ()
    missing_key_policy: MissingKeyPolicy | None = None
    unit_timeout: float | None = None
    assume_yes: bool = False

    def explicit(self) -> dict[str, Any]:
        """Fields set on the command line, keyed by ResolvedConfig field."""
        values: dict[str, Any] = {}
        for name in (
            "ssh_port",
            "server_name",
            "server_address",
            "ssh_user",
            "ssh_key_action",
            "missing_key_policy",
            "unit_timeout",
        ):
            value = getattr(self, name)
            if value is not None and value != "":
                values[name] = value
        if self.ssh_public_keys:
            values["ssh_public_keys"] = self.ssh_public_keys
        if self.assume_yes:
            values["prompt_for_confirmation"] = False
        return values


@dataclass(frozen=True, slots=True)
class _Question:
    field: str
    label: str
    parse: Callable[[str], Any] = str


def _parse_port(answer: str) -> int:
    port = int(answer)
    if not 1 <= port <= 65535:
        msg = f"port {port} is out of range"
        raise ValueError(msg)
    return port


def _parse_key_action(answer: str) -> SshKeyAction:
    return SshKeyAction(answer.strip().lower())


_LOCAL_QUESTIONS: tuple[_Question, ...] = (
    _Question("ssh_port", "SSH port", _parse_port),
    _Question("server_name", "Server name for the login banner"),
    _Question("ssh_key_action", "SSH key action (generate/add/skip)", _parse_key_action),
)

_REMOTE_QUESTIONS: tuple[_Question, ...] = (
    _Question("server_address", "Server address"),
    _Question("ssh_user", "SSH user"),
    _Question("ssh_port", "SSH port", _parse_port),
    _Question("server_name", "Server name for the login banner"),
    _Question("ssh_key_action", "SSH key action (generate/add/skip)", _parse_key_action),
)


def builtin_defaults(*, remote: bool = False) -> dict[str, Any]:
    """Built-in lowest-precedence values.

    Args:
        remote: Defaults for ``devstrap remote`` instead of a local run.

    Returns:
        Mapping of ResolvedConfig field to default value.
    """
    values = ResolvedConfig().model_dump()
    values["ssh_user"] = get_user_name()
    if not remote:
        values["server_name"] = socket.gethostname() or "localhost"
    values["package_toggles"] = dict(PACKAGE_DEFAULTS)
    values["cli_tool_toggles"] = default_cli_tool_toggles()
    values["mcp_server_toggles"] = default_mcp_server_toggles()
    values["editor_toggles"] = default_editor_toggles()
    return values


def _display(value: Any) -> str:
    if isinstance(value, SshKeyAction | MissingKeyPolicy):
        return value.value
    return str(value)


def _dedupe(keys: list[str]) -> tuple[str, ...]:
    seen: dict[str, None] = {}
    for key in keys:
        stripped = key.strip()
        if stripped:
            seen.setdefault(stripped, None)
    return tuple(seen)


def resolve_public_keys(
    values: dict[str, Any],
    prompter: Prompter,
    *,
    interactive: bool,
    generate: Callable[[], str] = generate_keypair,
    dry_run: bool = False,
) -> tuple[str, ...]:
    """Determine the public keys to register.

    Args:
        values: Merged values; ``ssh_key_action``, ``ssh_public_keys`` and
            ``missing_key_policy`` are read.
        prompter: Channel used when the policy asks for a key.
        interactive: Whether prompting is allowed.
        generate: Produces the public half of the bootstrap key pair.
        dry_run: Reuse an existing pair but never create one.

    Returns:
        Ordered, de-duplicated public keys.

    Raises:
        ResolveError: On key generation failure or a ``fail`` policy.
    """
    action = SshKeyAction(values["ssh_key_action"])

    if action == SshKeyAction.SKIP:
        return ()

    if action == SshKeyAction.GENERATE:
        try:
            if dry_run:
                existing = existing_public_key()
                if existing is not None:
                    return (existing,)
                print_dry_run(f"Would generate key pair {get_keypair_path()}")
                return ()
            return (generate(),)
        except KeyMaterialError as e:
            raise ResolveError(str(e)) from e

    keys = _dedupe(list(values.get("ssh_public_keys") or ()))
    for key in keys:
        if not is_public_key(key):
            print_warning(f"'{key[:40]}' does not look like an SSH public key")
    if keys:
        return keys

    policy = MissingKeyPolicy(values["missing_key_policy"])
    if policy == MissingKeyPolicy.FAIL:
        msg = "SSH key action is 'add' but no public key was provided (use --pubkey)"
        raise ResolveError(msg)
    if policy == MissingKeyPolicy.PROMPT and interactive:
        answer = prompter.ask("SSH public key to authorize (empty to skip)", "")
        if answer:
            return (answer.strip(),)
    print_warning("No SSH public key provided; no key will be registered.")
    return ()


def apply_config_file(
    defaults: dict[str, Any], config_file: ConfigFile | None
) -> tuple[dict[str, Any], dict[str, Any]]:
    """Layer the config file over the built-in defaults.

    Toggle sections are merged key by key so a file listing a single
    tool keeps the defaults of all others.

    Returns:
        The merged values and the scalar settings the file set explicitly.
    """
    values = dict(defaults)
    if config_file is None:
        return values, {}

    file_settings = config_file.explicit_settings()
    values.update(file_settings)
    values["package_toggles"] = {**values["package_toggles"], **config_file.packages}
    values["cli_tool_toggles"] = {**values["cli_tool_toggles"], **config_file.cli_tools}
    values["mcp_server_toggles"] = {**values["mcp_server_toggles"], **config_file.mcp_servers}
    values["editor_toggles"] = {**values["editor_toggles"], **config_file.editors}
    return values, file_settings


def resolve(
    defaults: dict[str, Any],
    config_file: ConfigFile | None,
    cli: CliOverrides,
    prompter: Prompter,
    *,
    remote: bool = False,
    generate: Callable[[], str] = generate_keypair,
    dry_run: bool = False,
) -> ResolvedConfig:
    """Merge all layers into a ResolvedConfig.

    Args:
        defaults: Output of :func:`builtin_defaults`.
        config_file: Parsed config file, if one was found.
        cli: Command line values.
        prompter: Interactive channel (NullPrompter when none).
        remote: Ask the remote-mode questions.
        generate: Key pair generator for the ``generate`` action.
        dry_run: Do not create key material.

    Returns:
        The resolved configuration.

    Raises:
        ResolveError: If the merged values are invalid or a required key
            is missing under the ``fail`` policy.
    """
    values, file_settings = apply_config_file(defaults, config_file)

    cli_values = cli.explicit()
    if cli.assume_yes:
        values["prompt_for_confirmation"] = False

    interactive = bool(values["prompt_for_confirmation"]) and prompter.interactive
    questions = _REMOTE_QUESTIONS if remote else _LOCAL_QUESTIONS

    for question in questions:
        if question.field in cli_values:
            continue
        if question.field == "server_name" and remote and "server_name" not in file_settings:
            # The banner names the host being bootstrapped
            values["server_name"] = cli_values.get("server_address", values["server_address"])

        current = _display(values[question.field])
        if not interactive:
            prompter.announce(question.label, current)
            continue

        answer = prompter.ask(question.label, current)
        try:
            values[question.field] = question.parse(answer)
        except ValueError:
            print_warning(f"Invalid answer '{answer}' for {question.label}; keeping {current}")

    values.update(cli_values)
    values["ssh_public_keys"] = resolve_public_keys(
        values, prompter, interactive=interactive, generate=generate, dry_run=dry_run
    )

    try:
        resolved = ResolvedConfig.model_validate(values)
    except ValidationError as e:
        msg = f"Invalid configuration: {e}"
        raise ResolveError(msg) from e

    logger.debug("Resolved configuration: %s", resolved.model_dump(mode="json"))
    return resolved
