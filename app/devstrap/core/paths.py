"""XDG-compliant path management for devstrap.

This module provides standardized paths following the XDG Base Directory
Specification, plus the well-known locations devstrap writes on the
target host (MCP configuration, system files).

XDG defaults:
- Config: ~/.config/devstrap/
- Data: ~/.local/share/devstrap/
"""

import os
from pathlib import Path

# Application identifier for directory naming
APP_NAME = "devstrap"

CONFIG_FILENAME = "config.json"


def get_home_dir() -> Path:
    """Get the home directory of the invoking user.

    Honors ``HOME`` and falls back to the password database.

    Returns:
        Absolute path of the home directory.
    """
    home = os.environ.get("HOME")
    if home:
        return Path(home)
    return Path.home()


def get_user_name() -> str:
    """Get the name of the invoking user.

    Returns:
        ``USER`` if set, otherwise the login name from the OS.
    """
    user = os.environ.get("USER")
    if user:
        return user
    import getpass

    return getpass.getuser()


def _get_xdg_base(env_var: str, default_subdir: str) -> Path:
    """Get an XDG base directory respecting environment variable override.

    Args:
        env_var: XDG environment variable name (e.g., "XDG_DATA_HOME").
        default_subdir: Default subdirectory under home (e.g., ".local/share").

    Returns:
        Path to the XDG base directory (not application-specific).
    """
    base = os.environ.get(env_var)
    if base:
        return Path(base)
    return get_home_dir() / default_subdir


def get_config_dir() -> Path:
    """Get the configuration directory path.

    Returns:
        Path to ~/.config/devstrap/ (or XDG_CONFIG_HOME/devstrap/).
    """
    return _get_xdg_base("XDG_CONFIG_HOME", ".config") / APP_NAME


def get_data_dir() -> Path:
    """Get the data directory path.

    Returns:
        Path to ~/.local/share/devstrap/ (or XDG_DATA_HOME/devstrap/).
    """
    return _get_xdg_base("XDG_DATA_HOME", ".local/share") / APP_NAME


def get_default_config_paths() -> list[Path]:
    """Get config file candidates in lookup order.

    Returns:
        ``./config.json`` followed by ``~/.config/devstrap/config.json``.
    """
    return [Path.cwd() / CONFIG_FILENAME, get_config_dir() / CONFIG_FILENAME]


def get_keypair_path() -> Path:
    """Get the path of the generated bootstrap SSH private key.

    Returns:
        Path to ~/.local/share/devstrap/keys/bootstrap_ecdsa.
    """
    return get_data_dir() / "keys" / "bootstrap_ecdsa"


def get_zinit_home() -> Path:
    """Get the zinit checkout directory.

    Returns:
        Path to $XDG_DATA_HOME/zinit/zinit.git (default ~/.local/share/...).
    """
    return _get_xdg_base("XDG_DATA_HOME", ".local/share") / "zinit" / "zinit.git"


# =============================================================================
# MCP paths
# =============================================================================

def get_mcp_config_dir(home: Path | None = None) -> Path:
    """Get the shared MCP configuration directory.

    Editors look for this fixed location, so XDG_CONFIG_HOME is not honored.

    Args:
        home: Home directory to resolve against. Defaults to the current user's.

    Returns:
        Path to ~/.config/mcp/.
    """
    return (home if home is not None else get_home_dir()) / ".config" / "mcp"


def get_mcp_config_path(home: Path | None = None) -> Path:
    """Get the merged MCP configuration file path.

    Returns:
        Path to ~/.config/mcp/mcp.json.
    """
    return get_mcp_config_dir(home) / "mcp.json"


def get_mcp_servers_dir(home: Path | None = None) -> Path:
    """Get the per-server MCP descriptor directory.

    Returns:
        Path to ~/.config/mcp/servers/.
    """
    return get_mcp_config_dir(home) / "servers"


def get_editor_mcp_targets(home: Path | None = None) -> dict[str, Path]:
    """Get the editor-specific MCP config locations.

    Args:
        home: Home directory to resolve against. Defaults to the current user's.

    Returns:
        Mapping of editor toggle name to the path the editor reads.
    """
    base = home if home is not None else get_home_dir()
    return {
        "cursor": base / ".cursor" / "mcp.json",
        "codex": base / ".config" / "codex" / "mcp.json",
        "opencode": base / ".config" / "opencode" / "mcp.json",
        "antigravity": base / ".config" / "antigravity" / "mcp.json",
        "claude_desktop": (
            base / "Library" / "Application Support" / "Claude" / "claude_desktop_config.json"
        ),
    }


# =============================================================================
# System paths
# =============================================================================

SUDOERS_DIR = Path("/etc/sudoers.d")
MOTD_PATH = Path("/etc/update-motd.d/01-hello")
CUDA_PROFILE_PATH = Path("/etc/profile.d/cuda.sh")


def _ensure_dir(path: Path, name: str, mode: int | None = None) -> Path:
    """Create directory if it doesn't exist.

    Args:
        path: Directory path to create.
        name: Human-readable name for error messages.
        mode: Optional permission bits applied after creation.

    Returns:
        The created/existing directory path.

    Raises:
        RuntimeError: If directory cannot be created.
    """
    try:
        path.mkdir(parents=True, exist_ok=True)
        if mode is not None:
            path.chmod(mode)
    except PermissionError as e:
        msg = f"Cannot create {name} directory {path}: Permission denied"
        raise RuntimeError(msg) from e
    except OSError as e:
        msg = f"Cannot create {name} directory {path}: {e}"
        raise RuntimeError(msg) from e
    return path


def ensure_keypair_dir() -> Path:
    """Create the key storage directory with mode 0700.

    Returns:
        Path to the directory holding the generated key pair.

    Raises:
        RuntimeError: If the directory cannot be created.
    """
    return _ensure_dir(get_keypair_path().parent, "key", mode=0o700)
