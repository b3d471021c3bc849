"""Resolved configuration for a single devstrap run.

ResolvedConfig is the single immutable value every component receives
explicitly. It is built once by the resolver (or decoded from a remote
payload) and never persisted; only its effects reach the disk.
"""

from enum import Enum
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field


class SshKeyAction(str, Enum):
    """How the SSH public key to register is obtained."""

    GENERATE = "generate"
    ADD = "add"
    SKIP = "skip"


class MissingKeyPolicy(str, Enum):
    """What to do when the key action is ``add`` but no key was supplied.

    Attributes:
        PROMPT: Ask for a key when interactive, otherwise warn and skip.
        SKIP: Warn and register nothing.
        FAIL: Abort the run.
    """

    PROMPT = "prompt"
    SKIP = "skip"
    FAIL = "fail"


class ShellFramework(str, Enum):
    """zsh plugin framework configured in ~/.zshrc."""

    ZINIT = "zinit"
    OH_MY_ZSH = "oh-my-zsh"


# Language toolchains and package-manager-level installs
PACKAGE_DEFAULTS: dict[str, bool] = {
    "nvm": True,
    "uv": True,
    "cargo": True,
    "ruff": True,
    "ty": True,
    "ai_clis": True,
    "cuda": False,
}

CLI_TOOL_NAMES: tuple[str, ...] = (
    "hishtory",
    "fzf",
    "eza",
    "bat",
    "delta",
    "dust",
    "duf",
    "fd",
    "ripgrep",
    "mcfly",
    "sd",
    "choose",
    "cheat",
    "bottom",
    "procs",
    "zoxide",
    "lsd",
    "gping",
    "lazygit",
    "lazydocker",
    "tldr",
    "jq",
    "yq",
    "hyperfine",
    "tokei",
    "broot",
    "atuin",
    "xh",
    "difftastic",
    "zellij",
)

MCP_SERVER_NAMES: tuple[str, ...] = (
    "auggie-context",
    "claude-context",
    "context7",
    "fetch",
    "filesystem",
    "git",
    "github",
    "jupyter",
    "memory",
    "playwright",
    "sequential-thinking",
)

EDITOR_NAMES: tuple[str, ...] = (
    "cursor",
    "codex",
    "opencode",
    "antigravity",
    "claude_desktop",
)


def default_cli_tool_toggles() -> dict[str, bool]:
    """All CLI tools enabled."""
    return dict.fromkeys(CLI_TOOL_NAMES, True)


def default_mcp_server_toggles() -> dict[str, bool]:
    """All known MCP servers enabled."""
    return dict.fromkeys(MCP_SERVER_NAMES, True)


def default_editor_toggles() -> dict[str, bool]:
    """All editor integrations enabled."""
    return dict.fromkeys(EDITOR_NAMES, True)


class ResolvedConfig(BaseModel):
    """Fully merged configuration for one run.

    Attributes:
        prompt_for_confirmation: Whether prompts were allowed for this run.
        server_address: Remote host (remote mode only).
        ssh_user: Remote login user (remote mode only).
        server_name: Name shown in the MOTD banner.
        ssh_port: SSH port opened in the firewall and used for remote runs.
        ssh_key_action: How the public key was obtained.
        ssh_public_keys: Public keys to register in authorized_keys, in order.
        missing_key_policy: Behavior for ``add`` without a key.
        skip_package_update: Skip the package index update/upgrade step.
        skip_shell_framework_setup: Skip zinit/oh-my-zsh installation.
        skip_mcp_setup: Skip MCP configuration entirely.
        shell_framework: zsh plugin framework to configure.
        unit_timeout: Per-command timeout in seconds.
        package_toggles: Toolchain toggles (nvm, uv, cargo, ...).
        cli_tool_toggles: CLI tool toggles.
        mcp_server_toggles: MCP server toggles.
        editor_toggles: Editor integration toggles.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    prompt_for_confirmation: bool = True
    server_address: str = "localhost"
    ssh_user: str = ""
    server_name: str = "localhost"
    ssh_port: Annotated[int, Field(ge=1, le=65535)] = 22
    ssh_key_action: SshKeyAction = SshKeyAction.GENERATE
    ssh_public_keys: tuple[str, ...] = ()
    missing_key_policy: MissingKeyPolicy = MissingKeyPolicy.PROMPT
    skip_package_update: bool = False
    skip_shell_framework_setup: bool = False
    skip_mcp_setup: bool = False
    shell_framework: ShellFramework = ShellFramework.ZINIT
    unit_timeout: Annotated[float, Field(gt=0)] = 1800.0
    package_toggles: dict[str, bool] = Field(default_factory=lambda: dict(PACKAGE_DEFAULTS))
    cli_tool_toggles: dict[str, bool] = Field(default_factory=default_cli_tool_toggles)
    mcp_server_toggles: dict[str, bool] = Field(default_factory=default_mcp_server_toggles)
    editor_toggles: dict[str, bool] = Field(default_factory=default_editor_toggles)

    def package_enabled(self, name: str) -> bool:
        """Check a toolchain toggle, falling back to its built-in default."""
        return self.package_toggles.get(name, PACKAGE_DEFAULTS.get(name, True))

    def cli_tool_enabled(self, name: str) -> bool:
        """Check a CLI tool toggle (tools default to enabled)."""
        return self.cli_tool_toggles.get(name, True)

    def to_payload(self) -> str:
        """Serialize for the remote execution entry point."""
        return self.model_dump_json(indent=2)

    @classmethod
    def from_payload(cls, payload: str) -> "ResolvedConfig":
        """Decode a payload produced by :meth:`to_payload`."""
        return cls.model_validate_json(payload)
