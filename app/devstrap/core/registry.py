"""Toggle registry.

The static catalog of every unit devstrap can converge, in the order
they run: system packages and services first, then language toolchains,
then the tools built with them, and finally the files that reference
those tools (shell rc, MCP config, git settings).
"""

import shutil
from collections.abc import Callable
from pathlib import Path

from devstrap.core.context import UnitContext
from devstrap.core.paths import get_zinit_home
from devstrap.core.strategies import (
    CargoCrate,
    ChangeDefaultShell,
    ConfigureDeltaPager,
    ConfigureMcp,
    ConfigureZshrc,
    CudaAptRepository,
    CudaDnfRepository,
    CudaEnvironment,
    EnableSshService,
    GitClone,
    NativePackages,
    NpmGlobal,
    NvmNode,
    OpenFirewallPort,
    PackageUpdate,
    PasswordlessSudo,
    PipUser,
    RegisterAuthorizedKeys,
    ShellInstaller,
    Strategy,
    UvTool,
    WriteMotd,
)
from devstrap.models.platform import GENERIC_KEY, OPENWRT_KEY, PackageManagerKind
from devstrap.models.resolved import ResolvedConfig, ShellFramework, SshKeyAction
from devstrap.models.unit import InstallUnit, PresenceCheck

APT = PackageManagerKind.APT.value
DNF = PackageManagerKind.DNF.value
YUM = PackageManagerKind.YUM.value
PACMAN = PackageManagerKind.PACMAN.value
APK = PackageManagerKind.APK.value
OPKG = PackageManagerKind.OPKG.value
BREW = PackageManagerKind.BREW.value

# Chain that deliberately does nothing on a platform
NOT_APPLICABLE: tuple[Strategy, ...] = ()

BASE_PACKAGES = ("zsh", "figlet", "screenfetch", "git", "curl", "vim")
CORE_PACKAGES = ("zsh", "git", "curl", "vim")
OPENWRT_PACKAGES = ("zsh", "bash", "git", "git-http", "curl", "vim", "shadow-chsh")

AI_CLI_PACKAGES = ("@anthropic-ai/claude-code", "opencode-ai", "@openai/codex")

Toggle = Callable[[ResolvedConfig], bool]

CARGO = ("cargo",)
UV = ("uv",)
NVM = ("nvm",)


def _cli_tool(name: str) -> Toggle:
    return lambda config: config.cli_tool_enabled(name)


def _package(name: str) -> Toggle:
    return lambda config: config.package_enabled(name)


def _sshd_present(_ctx: UnitContext) -> bool:
    return shutil.which("sshd") is not None or any(
        Path(path).exists() for path in ("/usr/sbin/sshd", "/usr/bin/sshd")
    )


def _nvm_present(ctx: UnitContext) -> bool:
    if (ctx.home / ".nvm" / "nvm.sh").exists():
        return True
    # musl hosts use the system Node.js instead of nvm
    uses_system_node = ctx.profile.is_openwrt or ctx.profile.package_manager in (
        PackageManagerKind.APK,
        PackageManagerKind.OPKG,
    )
    return uses_system_node and shutil.which("npm") is not None


def _cuda_present(_ctx: UnitContext) -> bool:
    return Path("/usr/local/cuda/bin/nvcc").exists()


def _zinit_present(_ctx: UnitContext) -> bool:
    return get_zinit_home().exists()


def _binary_check(command: str) -> PresenceCheck:
    return PresenceCheck(
        commands=(command,),
        home_paths=(f".cargo/bin/{command}",),
    )


def _cargo_tool(
    name: str,
    command: str,
    crate: str | None = None,
    brew: str | None = None,
) -> InstallUnit:
    """A CLI tool built with cargo, preferring Homebrew bottles on macOS."""
    crate_strategy = CargoCrate(crate or name, requires=CARGO)
    return InstallUnit(
        name=name,
        description=f"Installing {name}",
        strategies={
            BREW: (NativePackages((brew or crate or name,)), crate_strategy),
            GENERIC_KEY: (crate_strategy,),
        },
        toggle=_cli_tool(name),
        check=_binary_check(command),
        needs_package_manager=False,
    )


def _native_tool(name: str, command: str | None = None) -> InstallUnit:
    """A CLI tool installed from the native package manager everywhere."""
    return InstallUnit(
        name=name,
        description=f"Installing {name}",
        strategies={GENERIC_KEY: (NativePackages((name,)),)},
        toggle=_cli_tool(name),
        check=PresenceCheck(commands=(command or name,)),
    )


def _shell_framework_units() -> list[InstallUnit]:
    def enabled(framework: ShellFramework) -> Toggle:
        return lambda config: (
            not config.skip_shell_framework_setup and config.shell_framework == framework
        )

    zinit = InstallUnit(
        name="zinit",
        description="Setting up zinit",
        strategies={
            GENERIC_KEY: (
                GitClone("https://github.com/zdharma-continuum/zinit.git", str(get_zinit_home())),
            )
        },
        toggle=enabled(ShellFramework.ZINIT),
        check=PresenceCheck(probe=_zinit_present),
        needs_package_manager=False,
    )
    oh_my_zsh = InstallUnit(
        name="oh-my-zsh",
        description="Setting up oh-my-zsh",
        strategies={
            GENERIC_KEY: (
                ShellInstaller(
                    "https://raw.githubusercontent.com/ohmyzsh/ohmyzsh/master/tools/install.sh",
                    interpreter="sh -s -- --unattended",
                    env=(("RUNZSH", "no"), ("CHSH", "no"), ("KEEP_ZSHRC", "yes")),
                ),
            )
        },
        toggle=enabled(ShellFramework.OH_MY_ZSH),
        check=PresenceCheck(home_paths=(".oh-my-zsh",)),
        needs_package_manager=False,
    )
    plugins = [
        InstallUnit(
            name=f"oh-my-zsh-{plugin}",
            description=f"Installing oh-my-zsh plugin {plugin}",
            strategies={
                GENERIC_KEY: (
                    GitClone(
                        f"https://github.com/zsh-users/{plugin}.git",
                        f".oh-my-zsh/custom/plugins/{plugin}",
                        requires=("oh-my-zsh",),
                    ),
                )
            },
            toggle=enabled(ShellFramework.OH_MY_ZSH),
            check=PresenceCheck(home_paths=(f".oh-my-zsh/custom/plugins/{plugin}",)),
            needs_package_manager=False,
        )
        for plugin in ("zsh-autosuggestions", "zsh-syntax-highlighting")
    ]
    return [zinit, oh_my_zsh, *plugins]


def _keys_to_register(config: ResolvedConfig) -> bool:
    return config.ssh_key_action != SshKeyAction.SKIP and bool(config.ssh_public_keys)


def build_registry() -> tuple[InstallUnit, ...]:
    """Build the unit catalog in execution order.

    Returns:
        Every known unit; enabled flags are evaluated later against the
        resolved configuration.
    """
    system_units = [
        InstallUnit(
            name="package-update",
            description="Updating package indexes",
            strategies={GENERIC_KEY: (PackageUpdate(),)},
            toggle=lambda config: not config.skip_package_update,
        ),
        InstallUnit(
            name="base-packages",
            description="Installing base packages",
            strategies={
                OPENWRT_KEY: (
                    NativePackages(OPENWRT_PACKAGES),
                    NativePackages(CORE_PACKAGES),
                ),
                APK: (NativePackages(("zsh", "figlet", "git", "curl", "vim")),),
                GENERIC_KEY: (NativePackages(BASE_PACKAGES), NativePackages(CORE_PACKAGES)),
            },
            check=PresenceCheck(commands=CORE_PACKAGES),
        ),
        InstallUnit(
            name="build-tools",
            description="Installing build tools",
            strategies={
                OPENWRT_KEY: (NativePackages(("make", "gcc", "tar", "grep")),),
                APT: (NativePackages(("build-essential",)),),
                DNF: (NativePackages(("gcc",)),),
                YUM: (NativePackages(("gcc",)),),
                PACMAN: (NativePackages(("base-devel",)),),
                APK: (NativePackages(("build-base",)),),
                BREW: NOT_APPLICABLE,
            },
            check=PresenceCheck(commands=("make", "cc")),
        ),
        InstallUnit(
            name="openssh-server",
            description="Installing the SSH server",
            strategies={
                OPENWRT_KEY: NOT_APPLICABLE,
                APT: (NativePackages(("openssh-server",)),),
                DNF: (NativePackages(("openssh-server",)),),
                YUM: (NativePackages(("openssh-server",)),),
                PACMAN: (NativePackages(("openssh",)),),
                APK: (NativePackages(("openssh",)),),
                BREW: NOT_APPLICABLE,
            },
            check=PresenceCheck(probe=_sshd_present),
        ),
        InstallUnit(
            name="ssh-service",
            description="Enabling the SSH service",
            strategies={
                OPENWRT_KEY: NOT_APPLICABLE,
                BREW: NOT_APPLICABLE,
                GENERIC_KEY: (EnableSshService(requires=("openssh-server",)),),
            },
            needs_package_manager=False,
            needs_privilege=True,
        ),
        InstallUnit(
            name="firewall",
            description="Opening the SSH port",
            strategies={BREW: NOT_APPLICABLE, GENERIC_KEY: (OpenFirewallPort(),)},
            needs_package_manager=False,
            needs_privilege=True,
        ),
        InstallUnit(
            name="sudoers",
            description="Configuring passwordless sudo",
            strategies={GENERIC_KEY: (PasswordlessSudo(),)},
            needs_package_manager=False,
            needs_privilege=True,
        ),
    ]

    toolchain_units = [
        InstallUnit(
            name="uv",
            description="Installing uv",
            strategies={
                BREW: (NativePackages(("uv",)), ShellInstaller("https://astral.sh/uv/install.sh")),
                GENERIC_KEY: (ShellInstaller("https://astral.sh/uv/install.sh"),),
            },
            toggle=_package("uv"),
            check=PresenceCheck(commands=("uv",), home_paths=(".local/bin/uv",)),
            needs_package_manager=False,
        ),
        InstallUnit(
            name="cargo",
            description="Installing cargo (Rust)",
            strategies={
                OPENWRT_KEY: NOT_APPLICABLE,
                APK: (NativePackages(("cargo",)),),
                GENERIC_KEY: (ShellInstaller("https://sh.rustup.rs", interpreter="sh -s -- -y"),),
            },
            toggle=_package("cargo"),
            check=PresenceCheck(commands=("cargo",), home_paths=(".cargo/bin/cargo",)),
            needs_package_manager=False,
        ),
        InstallUnit(
            name="ruff",
            description="Installing ruff",
            strategies={GENERIC_KEY: (UvTool("ruff", requires=UV),)},
            toggle=_package("ruff"),
            check=PresenceCheck(commands=("ruff",), home_paths=(".local/bin/ruff",)),
            needs_package_manager=False,
        ),
        InstallUnit(
            name="ty",
            description="Installing ty",
            strategies={GENERIC_KEY: (UvTool("ty", requires=UV),)},
            toggle=_package("ty"),
            check=PresenceCheck(commands=("ty",), home_paths=(".local/bin/ty",)),
            needs_package_manager=False,
        ),
    ]

    tool_units = [
        InstallUnit(
            name="fzf",
            description="Installing fzf",
            strategies={
                BREW: (NativePackages(("fzf",)),),
                GENERIC_KEY: (
                    GitClone(
                        "https://github.com/junegunn/fzf.git",
                        ".fzf",
                        post=("{dest}/install", "--all", "--no-bash", "--no-fish"),
                    ),
                ),
            },
            toggle=_cli_tool("fzf"),
            check=PresenceCheck(commands=("fzf",), home_paths=(".fzf/bin/fzf",)),
            needs_package_manager=False,
        ),
        InstallUnit(
            name="hishtory",
            description="Installing hishtory",
            strategies={
                GENERIC_KEY: (
                    ShellInstaller("https://hishtory.dev/install.py", interpreter="python3 -"),
                )
            },
            toggle=_cli_tool("hishtory"),
            check=PresenceCheck(commands=("hishtory",), home_paths=(".hishtory/hishtory",)),
            needs_package_manager=False,
        ),
        _cargo_tool("eza", "eza"),
        _cargo_tool("bat", "bat"),
        _cargo_tool("delta", "delta", crate="git-delta"),
        _cargo_tool("dust", "dust", crate="du-dust", brew="dust"),
        _native_tool("duf"),
        _cargo_tool("fd", "fd", crate="fd-find", brew="fd"),
        _cargo_tool("ripgrep", "rg"),
        _cargo_tool("mcfly", "mcfly"),
        _cargo_tool("sd", "sd"),
        _cargo_tool("choose", "choose", brew="choose-rust"),
        _native_tool("cheat"),
        _cargo_tool("bottom", "btm"),
        _cargo_tool("procs", "procs"),
        _cargo_tool("zoxide", "zoxide"),
        _cargo_tool("lsd", "lsd"),
        _cargo_tool("gping", "gping"),
        _native_tool("lazygit"),
        InstallUnit(
            name="lazydocker",
            description="Installing lazydocker",
            strategies={
                BREW: (NativePackages(("lazydocker",)),),
                GENERIC_KEY: (
                    ShellInstaller(
                        "https://raw.githubusercontent.com/jesseduffield/lazydocker/master/"
                        "scripts/install_update_linux.sh",
                        interpreter="bash",
                    ),
                ),
            },
            toggle=_cli_tool("lazydocker"),
            check=PresenceCheck(commands=("lazydocker",), home_paths=(".local/bin/lazydocker",)),
            needs_package_manager=False,
        ),
        _cargo_tool("tldr", "tldr", crate="tealdeer", brew="tealdeer"),
        _native_tool("jq"),
        InstallUnit(
            name="yq",
            description="Installing yq",
            strategies={GENERIC_KEY: (PipUser("yq"), NativePackages(("yq",)))},
            toggle=_cli_tool("yq"),
            check=PresenceCheck(commands=("yq",), home_paths=(".local/bin/yq",)),
            needs_package_manager=False,
        ),
        _cargo_tool("hyperfine", "hyperfine"),
        _cargo_tool("tokei", "tokei"),
        _cargo_tool("broot", "broot"),
        _cargo_tool("atuin", "atuin"),
        _cargo_tool("xh", "xh"),
        _cargo_tool("difftastic", "difft"),
        _cargo_tool("zellij", "zellij"),
    ]

    shell_units = [
        InstallUnit(
            name="default-shell",
            description="Setting the default shell to zsh",
            strategies={GENERIC_KEY: (ChangeDefaultShell(requires=("base-packages",)),)},
            needs_package_manager=False,
            needs_privilege=True,
        ),
        *_shell_framework_units(),
        InstallUnit(
            name="nvm",
            description="Setting up Node.js",
            strategies={
                OPENWRT_KEY: (
                    NativePackages(("node", "node-npm")),
                    NativePackages(("nodejs", "npm")),
                ),
                APK: (NativePackages(("nodejs", "npm")),),
                GENERIC_KEY: (NvmNode(),),
            },
            toggle=_package("nvm"),
            check=PresenceCheck(probe=_nvm_present),
            needs_package_manager=False,
        ),
        InstallUnit(
            name="ai-clis",
            description="Installing Claude Code, OpenCode and Codex CLIs",
            strategies={
                OPENWRT_KEY: (
                    NpmGlobal(AI_CLI_PACKAGES, use_nvm=False, privileged=True, requires=NVM),
                ),
                APK: (NpmGlobal(AI_CLI_PACKAGES, use_nvm=False, privileged=True, requires=NVM),),
                GENERIC_KEY: (NpmGlobal(AI_CLI_PACKAGES, requires=NVM),),
            },
            toggle=lambda config: (
                config.package_enabled("nvm") and config.package_enabled("ai_clis")
            ),
            check=PresenceCheck(commands=("claude", "opencode", "codex")),
            needs_package_manager=False,
        ),
        InstallUnit(
            name="cuda",
            description="Installing the NVIDIA CUDA toolkit and driver",
            strategies={
                APT: (CudaAptRepository(),),
                DNF: (CudaDnfRepository(),),
            },
            toggle=_package("cuda"),
            check=PresenceCheck(probe=_cuda_present),
            needs_privilege=True,
        ),
        InstallUnit(
            name="cuda-environment",
            description="Adding CUDA to the shell environment",
            strategies={GENERIC_KEY: (CudaEnvironment(requires=("cuda",)),)},
            toggle=_package("cuda"),
            needs_package_manager=False,
            needs_privilege=True,
        ),
    ]

    file_units = [
        InstallUnit(
            name="motd",
            description="Setting up the login banner",
            strategies={BREW: NOT_APPLICABLE, GENERIC_KEY: (WriteMotd(),)},
            needs_package_manager=False,
            needs_privilege=True,
        ),
        InstallUnit(
            name="authorized-keys",
            description="Registering SSH public keys",
            strategies={GENERIC_KEY: (RegisterAuthorizedKeys(),)},
            toggle=_keys_to_register,
            needs_package_manager=False,
        ),
        InstallUnit(
            name="mcp",
            description="Configuring MCP servers",
            strategies={GENERIC_KEY: (ConfigureMcp(),)},
            toggle=lambda config: not config.skip_mcp_setup,
            needs_package_manager=False,
        ),
        InstallUnit(
            name="zshrc",
            description="Configuring zsh settings",
            strategies={GENERIC_KEY: (ConfigureZshrc(),)},
            needs_package_manager=False,
        ),
        InstallUnit(
            name="delta-git-config",
            description="Configuring delta as the git pager",
            strategies={GENERIC_KEY: (ConfigureDeltaPager(requires=("delta",)),)},
            toggle=_cli_tool("delta"),
            needs_package_manager=False,
        ),
    ]

    return (*system_units, *toolchain_units, *tool_units, *shell_units, *file_units)
