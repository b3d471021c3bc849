"""Configuration file loading.

The config file is the second precedence layer. It is read leniently:
a syntactically broken file is an error, but individual keys with the
wrong type or value are reported and ignored so that the rest of the
file still applies. Older key names are migrated with a deprecation
warning.
"""

import json
import logging
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, TypeVar

import tomli_w
from pydantic import BaseModel, ValidationError

from devstrap.core.dotfile import DotfileError, write_atomic
from devstrap.core.paths import get_default_config_paths
from devstrap.models.config import ConfigFile, InstallationSection, PromptsSection
from devstrap.models.resolved import (
    PACKAGE_DEFAULTS,
    ResolvedConfig,
    ShellFramework,
    default_cli_tool_toggles,
    default_editor_toggles,
    default_mcp_server_toggles,
)

logger = logging.getLogger(__name__)

ConfigFormat = Literal["json", "toml"]

_TOGGLE_SECTIONS = ("packages", "cli_tools", "mcp_servers", "editors")

SectionT = TypeVar("SectionT", bound=BaseModel)


class ConfigFileError(Exception):
    """Base exception for config file operations."""


class ConfigFileNotFoundError(ConfigFileError):
    """Raised when an explicitly requested config file does not exist."""


class ConfigFileParseError(ConfigFileError):
    """Raised when a config file is not valid JSON/TOML or not a mapping."""


@dataclass(frozen=True, slots=True)
class LoadedConfig:
    """A parsed config file together with the problems found in it.

    Attributes:
        path: File the configuration was read from.
        config: The parsed configuration (invalid keys removed).
        warnings: Human-readable descriptions of ignored or migrated keys.
    """

    path: Path
    config: ConfigFile
    warnings: tuple[str, ...] = ()


def find_config_file(explicit: Path | None = None) -> Path | None:
    """Locate the config file to use.

    Args:
        explicit: Path given on the command line, if any.

    Returns:
        The explicit path, else the first default candidate that exists,
        else None.

    Raises:
        ConfigFileNotFoundError: If the explicit path does not exist.
    """
    if explicit is not None:
        if not explicit.is_file():
            msg = f"Config file not found: {explicit}"
            raise ConfigFileNotFoundError(msg)
        return explicit

    for candidate in get_default_config_paths():
        if candidate.is_file():
            logger.debug("Using config file %s", candidate)
            return candidate
    return None


def _read_raw(path: Path) -> dict[str, Any]:
    """Read and decode a JSON or TOML file into a mapping.

    Raises:
        ConfigFileParseError: If the file cannot be read or decoded.
    """
    try:
        if path.suffix == ".toml":
            with open(path, "rb") as f:
                data: object = tomllib.load(f)
        else:
            data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        msg = f"Config file not found: {path}"
        raise ConfigFileNotFoundError(msg) from e
    except (json.JSONDecodeError, tomllib.TOMLDecodeError) as e:
        msg = f"Invalid syntax in {path}: {e}"
        raise ConfigFileParseError(msg) from e
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read {path}: {e}"
        raise ConfigFileParseError(msg) from e

    if not isinstance(data, dict):
        msg = f"Config file {path} must contain an object at the top level"
        raise ConfigFileParseError(msg)
    return data


def _validate_section(
    model_cls: type[SectionT], raw: object, section: str, warnings: list[str]
) -> SectionT:
    """Validate one section, dropping the keys that fail validation."""
    if raw is None:
        return model_cls()
    if not isinstance(raw, dict):
        warnings.append(f"'{section}' must be an object; ignoring it")
        return model_cls()

    data: dict[str, Any] = dict(raw)
    while True:
        try:
            return model_cls.model_validate(data)
        except ValidationError as e:
            removed = False
            for error in e.errors():
                key = error["loc"][0] if error["loc"] else None
                if isinstance(key, str) and key in data:
                    warnings.append(f"{section}.{key}: {error['msg']}; ignoring it")
                    del data[key]
                    removed = True
            if not removed:
                warnings.append(f"'{section}' is invalid; ignoring it")
                return model_cls()


def _toggle_section(raw: object, section: str, warnings: list[str]) -> dict[str, bool]:
    """Keep the boolean entries of a toggle section."""
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        warnings.append(f"'{section}' must be an object; ignoring it")
        return {}

    toggles: dict[str, bool] = {}
    for name, value in raw.items():
        if isinstance(value, bool):
            toggles[str(name)] = value
        else:
            warnings.append(f"{section}.{name}: expected true or false; ignoring it")
    return toggles


def _migrate_installation(installation: InstallationSection, warnings: list[str]) -> None:
    """Fold skip_zinit / skip_oh_my_zsh into skip_shell_framework_setup."""
    if installation.skip_zinit is None and installation.skip_oh_my_zsh is None:
        return

    warnings.append(
        "installation.skip_zinit and installation.skip_oh_my_zsh are deprecated; "
        "use installation.skip_shell_framework_setup"
    )
    if installation.skip_shell_framework_setup is not None:
        return

    if installation.shell_framework == ShellFramework.OH_MY_ZSH:
        legacy = installation.skip_oh_my_zsh
    else:
        legacy = installation.skip_zinit
    if legacy is not None:
        installation.skip_shell_framework_setup = legacy


def _migrate_mcp(raw: object, mcp_servers: dict[str, bool], warnings: list[str]) -> None:
    """Turn the old mcp.disabled_servers list into mcp_servers toggles."""
    if raw is None:
        return
    if not isinstance(raw, dict) or not isinstance(raw.get("disabled_servers"), list):
        warnings.append("'mcp' must contain a 'disabled_servers' list; ignoring it")
        return

    warnings.append("mcp.disabled_servers is deprecated; use the mcp_servers section")
    for name in raw["disabled_servers"]:
        if isinstance(name, str):
            # An explicit mcp_servers entry takes precedence
            mcp_servers.setdefault(name, False)


def _migrate_skip_nvm(
    installation: InstallationSection, packages: dict[str, bool], warnings: list[str]
) -> None:
    """Fold installation.skip_nvm into the nvm package toggle."""
    if installation.skip_nvm is None:
        return
    warnings.append("installation.skip_nvm is deprecated; use packages.nvm")
    # An explicit packages.nvm entry takes precedence
    packages.setdefault("nvm", not installation.skip_nvm)


def parse_config(raw: dict[str, Any]) -> tuple[ConfigFile, list[str]]:
    """Build a ConfigFile from decoded data.

    Args:
        raw: Decoded top-level mapping.

    Returns:
        Tuple of the parsed configuration and the warnings collected.
    """
    warnings: list[str] = []

    prompts = _validate_section(PromptsSection, raw.get("prompts"), "prompts", warnings)
    installation = _validate_section(
        InstallationSection, raw.get("installation"), "installation", warnings
    )
    _migrate_installation(installation, warnings)

    toggles = {
        section: _toggle_section(raw.get(section), section, warnings)
        for section in _TOGGLE_SECTIONS
    }
    _migrate_mcp(raw.get("mcp"), toggles["mcp_servers"], warnings)
    _migrate_skip_nvm(installation, toggles["packages"], warnings)

    known = {"prompts", "installation", "mcp", *_TOGGLE_SECTIONS}
    for section in raw:
        if section not in known:
            logger.debug("Ignoring unknown config section '%s'", section)

    config = ConfigFile(
        prompts=prompts,
        installation=installation,
        packages=toggles["packages"],
        cli_tools=toggles["cli_tools"],
        mcp_servers=toggles["mcp_servers"],
        editors=toggles["editors"],
    )
    return config, warnings


def load_config_file(path: Path) -> LoadedConfig:
    """Load and leniently validate a config file.

    Args:
        path: JSON file, or TOML when the suffix is ``.toml``.

    Returns:
        LoadedConfig with the parsed configuration and warnings.

    Raises:
        ConfigFileNotFoundError: If the file does not exist.
        ConfigFileParseError: If the file is not valid JSON/TOML.
    """
    config, warnings = parse_config(_read_raw(path))
    for warning in warnings:
        logger.info("%s: %s", path, warning)
    return LoadedConfig(path=path, config=config, warnings=tuple(warnings))


def starter_config_data() -> dict[str, Any]:
    """Build the content of a starter config file (all defaults spelled out)."""
    defaults = ResolvedConfig()
    return {
        "prompts": {
            "prompt_for_confirmation": defaults.prompt_for_confirmation,
            "ssh_port": defaults.ssh_port,
            "server_address": "",
            "server_name": "",
            "ssh_user": "",
            "ssh_key_action": defaults.ssh_key_action.value,
            "ssh_public_keys": [],
            "missing_key_policy": defaults.missing_key_policy.value,
        },
        "installation": {
            "skip_package_update": defaults.skip_package_update,
            "skip_shell_framework_setup": defaults.skip_shell_framework_setup,
            "skip_mcp_setup": defaults.skip_mcp_setup,
            "shell_framework": defaults.shell_framework.value,
            "unit_timeout": defaults.unit_timeout,
        },
        "packages": dict(PACKAGE_DEFAULTS),
        "cli_tools": default_cli_tool_toggles(),
        "mcp_servers": default_mcp_server_toggles(),
        "editors": default_editor_toggles(),
    }


def render_starter_config(fmt: ConfigFormat) -> str:
    """Render the starter config as JSON or TOML text."""
    data = starter_config_data()
    if fmt == "toml":
        return tomli_w.dumps(data)
    return json.dumps(data, indent=2) + "\n"


def write_starter_config(path: Path, *, force: bool = False) -> Path:
    """Write a starter config file.

    The format follows the file suffix (``.toml`` or JSON otherwise).

    Args:
        path: Destination file.
        force: Overwrite an existing file.

    Returns:
        The path written.

    Raises:
        ConfigFileError: If the file exists (without force) or cannot be written.
    """
    if path.exists() and not force:
        msg = f"{path} already exists (use --force to overwrite)"
        raise ConfigFileError(msg)

    fmt: ConfigFormat = "toml" if path.suffix == ".toml" else "json"
    try:
        write_atomic(path, render_starter_config(fmt), 0o644)
    except DotfileError as e:
        raise ConfigFileError(str(e)) from e
    return path
