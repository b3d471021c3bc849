"""Unit tests for the resolved configuration model."""

import pytest
from devstrap.models.resolved import (
    CLI_TOOL_NAMES,
    MCP_SERVER_NAMES,
    MissingKeyPolicy,
    ResolvedConfig,
    ShellFramework,
    SshKeyAction,
)
from pydantic import ValidationError


class TestResolvedConfigDefaults:
    """Tests for built-in defaults."""

    def test_scalar_defaults(self) -> None:
        """Defaults match the documented values."""
        config = ResolvedConfig()
        assert config.prompt_for_confirmation is True
        assert config.ssh_port == 22
        assert config.ssh_key_action == SshKeyAction.GENERATE
        assert config.missing_key_policy == MissingKeyPolicy.PROMPT
        assert config.shell_framework == ShellFramework.ZINIT
        assert config.unit_timeout == 1800.0

    def test_cuda_is_opt_in(self) -> None:
        """CUDA is the only toolchain disabled by default."""
        config = ResolvedConfig()
        assert config.package_enabled("cuda") is False
        assert config.package_enabled("nvm") is True
        assert config.package_enabled("ai_clis") is True

    def test_every_cli_tool_enabled(self) -> None:
        """All thirty CLI tools default to enabled."""
        config = ResolvedConfig()
        assert len(CLI_TOOL_NAMES) == 30
        assert all(config.cli_tool_enabled(name) for name in CLI_TOOL_NAMES)

    def test_every_mcp_server_enabled(self) -> None:
        """All bundled MCP servers default to enabled."""
        config = ResolvedConfig()
        assert config.mcp_server_toggles == dict.fromkeys(MCP_SERVER_NAMES, True)


class TestResolvedConfigValidation:
    """Tests for field validation."""

    @pytest.mark.parametrize("port", [0, 65536, -1])
    def test_port_out_of_range(self, port: int) -> None:
        """Ports outside 1..65535 are rejected."""
        with pytest.raises(ValidationError):
            ResolvedConfig(ssh_port=port)

    def test_timeout_must_be_positive(self) -> None:
        """A zero timeout is rejected."""
        with pytest.raises(ValidationError):
            ResolvedConfig(unit_timeout=0)

    def test_is_frozen(self) -> None:
        """The resolved config cannot be mutated."""
        config = ResolvedConfig()
        with pytest.raises(ValidationError):
            config.ssh_port = 2222  # type: ignore[misc]

    def test_unknown_fields_rejected(self) -> None:
        """Typos in payloads are not silently ignored."""
        with pytest.raises(ValidationError):
            ResolvedConfig(ssh_prot=22)  # type: ignore[call-arg]


class TestPayload:
    """Tests for the remote payload encoding."""

    def test_round_trip(self) -> None:
        """Decoding an encoded payload yields an equal config."""
        config = ResolvedConfig(
            server_address="203.0.113.7",
            ssh_user="ubuntu",
            server_name="edge-1",
            ssh_port=2222,
            ssh_key_action=SshKeyAction.ADD,
            ssh_public_keys=("ssh-ed25519 AAAA one", "ssh-rsa AAAA two"),
            shell_framework=ShellFramework.OH_MY_ZSH,
            cli_tool_toggles={"zellij": False},
            mcp_server_toggles={"github": False},
        )

        decoded = ResolvedConfig.from_payload(config.to_payload())

        assert decoded == config
        assert decoded.ssh_public_keys == ("ssh-ed25519 AAAA one", "ssh-rsa AAAA two")

    def test_payload_uses_enum_values(self) -> None:
        """Enums are serialized as their string values."""
        payload = ResolvedConfig(shell_framework=ShellFramework.OH_MY_ZSH).to_payload()
        assert '"shell_framework": "oh-my-zsh"' in payload
