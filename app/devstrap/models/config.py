"""Config file models.

This module defines the Pydantic models representing the JSON (or TOML)
configuration file. Every field is optional: ``None`` means "not set in
the file", so the resolver keeps the value of the lower layer.
"""

from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator

from devstrap.models.resolved import MissingKeyPolicy, ShellFramework, SshKeyAction


class PromptsSection(BaseModel):
    """Values that are otherwise asked for interactively.

    Attributes:
        prompt_for_confirmation: Ask before using defaults.
        ssh_port: SSH port.
        server_address: Remote host for ``devstrap remote``.
        server_name: MOTD banner name.
        ssh_user: Remote login user.
        ssh_key_action: generate, add or skip.
        ssh_public_keys: Keys used when the action is ``add``.
        missing_key_policy: prompt, skip or fail.
    """

    model_config = ConfigDict(extra="ignore")

    prompt_for_confirmation: bool | None = None
    ssh_port: Annotated[int | None, Field(ge=1, le=65535)] = None
    server_address: str | None = None
    server_name: str | None = None
    ssh_user: str | None = None
    ssh_key_action: SshKeyAction | None = None
    ssh_public_keys: list[str] | None = None
    missing_key_policy: MissingKeyPolicy | None = None

    @field_validator("server_address", "server_name", "ssh_user", mode="after")
    @classmethod
    def blank_means_unset(cls, v: str | None) -> str | None:
        """Treat empty strings as absent so they never clobber defaults."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator("ssh_public_keys", mode="after")
    @classmethod
    def drop_blank_keys(cls, v: list[str] | None) -> list[str] | None:
        """Strip keys and drop empty entries."""
        if v is None:
            return None
        return [key.strip() for key in v if key.strip()]


class InstallationSection(BaseModel):
    """Coarse switches for whole phases of the run.

    ``skip_zinit`` and ``skip_oh_my_zsh`` are accepted for older config
    files and folded into ``skip_shell_framework_setup`` by the loader;
    ``skip_nvm`` likewise becomes the ``packages.nvm`` toggle.
    """

    model_config = ConfigDict(extra="ignore")

    skip_package_update: bool | None = None
    skip_shell_framework_setup: bool | None = None
    skip_mcp_setup: bool | None = None
    shell_framework: ShellFramework | None = None
    unit_timeout: Annotated[float | None, Field(gt=0)] = None
    skip_zinit: bool | None = None
    skip_oh_my_zsh: bool | None = None
    skip_nvm: bool | None = None


class ConfigFile(BaseModel):
    """Parsed configuration file.

    Attributes:
        prompts: Prompt-eligible values.
        installation: Phase switches.
        packages: Toolchain toggles.
        cli_tools: CLI tool toggles.
        mcp_servers: MCP server toggles.
        editors: Editor integration toggles.
    """

    model_config = ConfigDict(extra="ignore")

    prompts: PromptsSection = Field(default_factory=PromptsSection)
    installation: InstallationSection = Field(default_factory=InstallationSection)
    packages: dict[str, bool] = Field(default_factory=dict)
    cli_tools: dict[str, bool] = Field(default_factory=dict)
    mcp_servers: dict[str, bool] = Field(default_factory=dict)
    editors: dict[str, bool] = Field(default_factory=dict)

    def explicit_settings(self) -> dict[str, object]:
        """Scalar settings explicitly present in the file.

        Returns:
            Mapping of ResolvedConfig field name to value, only for keys set.
        """
        settings: dict[str, object] = {}
        for section in (self.prompts, self.installation):
            for name, value in section.model_dump(exclude_none=True).items():
                if name in ("skip_zinit", "skip_oh_my_zsh", "skip_nvm"):
                    continue
                if name == "ssh_public_keys":
                    value = tuple(value)
                settings[name] = value
        return settings
