"""Install strategies.

A strategy is one way of converging a unit on a platform: installing
packages through the native package manager, piping a vendor installer
into a shell, building a crate, editing a dotfile, and so on. Units list
strategies as fallback chains; the first one that succeeds wins.

Strategies raise StrategyError (or let command errors propagate) when
they cannot do their job, and return an Applied outcome otherwise.
"""

import logging
import pwd
import shlex
import shutil
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from devstrap.core import dotfile
from devstrap.core.context import UnitContext
from devstrap.core.mcp import (
    LinkStatus,
    build_mcp_document,
    editor_targets,
    link_editor_configs,
    load_descriptors,
    select_descriptors,
    write_mcp_config,
    write_server_files,
)
from devstrap.core.paths import (
    CUDA_PROFILE_PATH,
    MOTD_PATH,
    SUDOERS_DIR,
    get_mcp_config_path,
    get_mcp_servers_dir,
)
from devstrap.models.platform import OSFamily
from devstrap.models.resolved import ShellFramework
from devstrap.utils.shell import CommandResult

logger = logging.getLogger(__name__)


class StrategyError(Exception):
    """Raised when a strategy cannot converge its unit."""


@dataclass(frozen=True, slots=True)
class Applied:
    """Outcome of a strategy that completed.

    Attributes:
        changed: False when the desired state was already in place.
        message: Short detail shown in the report.
    """

    changed: bool = True
    message: str = ""


def _check(result: CommandResult, what: str) -> CommandResult:
    """Raise StrategyError for a failed command."""
    if not result.success:
        msg = f"{what} failed: {result.error_message}"
        raise StrategyError(msg)
    return result


def find_tool(ctx: UnitContext, name: str, *home_candidates: str) -> str | None:
    """Locate an executable on PATH or at well-known places under home.

    Freshly installed toolchains (``~/.cargo/bin``, ``~/.local/bin``) are
    not on the PATH of the running process, so those locations are
    checked explicitly.
    """
    found = shutil.which(name)
    if found:
        return found
    for candidate in home_candidates:
        path = ctx.home / candidate
        if path.exists():
            return str(path)
    return None


def _require_tool(ctx: UnitContext, name: str, *home_candidates: str) -> str:
    tool = find_tool(ctx, name, *home_candidates)
    if tool is None:
        msg = f"{name} is not installed"
        raise StrategyError(msg)
    return tool


@dataclass(frozen=True)
class Strategy(ABC):
    """Base class of all strategies.

    Attributes:
        requires: Names of units that must be converged before this
            strategy can run (e.g. ``cargo`` for crate installs).
    """

    requires: tuple[str, ...] = field(default=(), kw_only=True)

    @property
    @abstractmethod
    def label(self) -> str:
        """Short description used in logs."""

    @abstractmethod
    def apply(self, ctx: UnitContext) -> Applied:
        """Converge the unit.

        Raises:
            StrategyError: If the strategy failed.
        """


# =============================================================================
# Package managers and installers
# =============================================================================


@dataclass(frozen=True)
class PackageUpdate(Strategy):
    """Refresh package indexes and upgrade installed packages."""

    @property
    def label(self) -> str:
        """Package index update."""
        return "package update"

    def apply(self, ctx: UnitContext) -> Applied:
        """Run the operator's update commands."""
        if ctx.operator is None:
            msg = "no package manager"
            raise StrategyError(msg)
        result = ctx.operator.update()
        if result.failed:
            msg = f"{result.action.label} failed: {result.error}"
            raise StrategyError(msg)
        return Applied(message=result.message or "")


@dataclass(frozen=True)
class NativePackages(Strategy):
    """Install packages with the native package manager."""

    packages: tuple[str, ...]

    @property
    def label(self) -> str:
        """Packages to install."""
        return f"packages: {' '.join(self.packages)}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Install all packages in one transaction."""
        if ctx.operator is None:
            msg = "no package manager"
            raise StrategyError(msg)
        results = ctx.operator.install(list(self.packages))
        failed = [r for r in results if r.failed]
        if failed:
            msg = f"{ctx.operator.kind.value} install failed: {failed[0].error}"
            raise StrategyError(msg)
        return Applied(message=f"installed {' '.join(self.packages)}")


@dataclass(frozen=True)
class ShellInstaller(Strategy):
    """Pipe a vendor install script into an interpreter.

    Attributes:
        url: Script location.
        interpreter: Command the script is piped into (e.g. ``sh -s -- -y``).
        env: Environment passed to the interpreter; ``{home}`` in values
            is replaced by the home directory.
        privileged: Run the interpreter elevated.
    """

    url: str
    interpreter: str = "sh"
    env: tuple[tuple[str, str], ...] = ()
    privileged: bool = False

    @property
    def label(self) -> str:
        """Installer URL."""
        return f"installer {self.url}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Download and run the script."""
        _require_tool(ctx, "curl")
        env = {key: value.format(home=ctx.home) for key, value in self.env}
        script = f"curl -fsSL {shlex.quote(self.url)} | {self.interpreter}"
        _check(ctx.shell(script, privileged=self.privileged, env=env or None), self.label)
        return Applied(message=f"ran {self.url}")


@dataclass(frozen=True)
class CargoCrate(Strategy):
    """Build and install a crate with ``cargo install``."""

    crate: str

    @property
    def label(self) -> str:
        """Crate name."""
        return f"cargo install {self.crate}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Run cargo install."""
        cargo = _require_tool(ctx, "cargo", ".cargo/bin/cargo")
        _check(ctx.run([cargo, "install", self.crate]), self.label)
        return Applied(message=f"built {self.crate} with cargo")


@dataclass(frozen=True)
class UvTool(Strategy):
    """Install a Python tool with ``uv tool install``."""

    package: str

    @property
    def label(self) -> str:
        """Tool name."""
        return f"uv tool install {self.package}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Run uv tool install."""
        uv = _require_tool(ctx, "uv", ".local/bin/uv", ".cargo/bin/uv")
        _check(ctx.run([uv, "tool", "install", self.package]), self.label)
        return Applied(message=f"installed {self.package} with uv")


@dataclass(frozen=True)
class PipUser(Strategy):
    """Install a Python package into the user site with pip."""

    package: str

    @property
    def label(self) -> str:
        """Package name."""
        return f"pip3 install --user {self.package}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Run pip3 install --user."""
        pip = _require_tool(ctx, "pip3")
        _check(ctx.run([pip, "install", "--user", self.package]), self.label)
        return Applied(message=f"installed {self.package} with pip")


@dataclass(frozen=True)
class GitClone(Strategy):
    """Clone a repository and optionally run a command inside it.

    Attributes:
        url: Repository URL.
        destination: Target directory, relative to home unless absolute.
        post: Command run after cloning; ``{dest}`` is replaced by the
            checkout path.
    """

    url: str
    destination: str
    post: tuple[str, ...] = ()

    @property
    def label(self) -> str:
        """Repository URL."""
        return f"git clone {self.url}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Clone unless the checkout already exists."""
        dest = ctx.home / self.destination
        if dest.exists():
            return Applied(changed=False, message=f"{dest} already exists")

        git = _require_tool(ctx, "git")
        if not ctx.dry_run:
            dest.parent.mkdir(parents=True, exist_ok=True)
        _check(ctx.run([git, "clone", "--depth", "1", self.url, str(dest)]), self.label)
        if self.post:
            post = [arg.format(dest=dest) for arg in self.post]
            _check(ctx.run(post), shlex.join(post))
        return Applied(message=f"cloned into {dest}")


_NVM_INSTALLER = "https://raw.githubusercontent.com/nvm-sh/nvm/master/install.sh"


def _nvm_script(ctx: UnitContext, command: str) -> CommandResult:
    """Run a command in bash with nvm loaded."""
    nvm_dir = str(ctx.home / ".nvm")
    script = f'. "$NVM_DIR/nvm.sh" && {command}'
    return ctx.run(["bash", "-c", script], env={"NVM_DIR": nvm_dir})


@dataclass(frozen=True)
class NvmNode(Strategy):
    """Install nvm and the latest LTS Node.js as the default."""

    @property
    def label(self) -> str:
        """nvm with Node.js LTS."""
        return "nvm + node lts"

    def apply(self, ctx: UnitContext) -> Applied:
        """Install nvm (without touching shell profiles) then Node.js."""
        _require_tool(ctx, "bash")
        _require_tool(ctx, "curl")
        nvm_dir = ctx.home / ".nvm"
        if not (nvm_dir / "nvm.sh").exists():
            env = {"PROFILE": "/dev/null", "NVM_DIR": str(nvm_dir)}
            script = f"curl -fsSL {shlex.quote(_NVM_INSTALLER)} | bash"
            _check(ctx.shell(script, env=env), "nvm installer")
        _check(
            _nvm_script(ctx, "nvm install --lts --latest-npm && nvm alias default 'lts/*'"),
            "nvm install --lts",
        )
        return Applied(message="installed nvm and node LTS")


@dataclass(frozen=True)
class NpmGlobal(Strategy):
    """Install npm packages globally.

    Attributes:
        packages: npm package names.
        use_nvm: Run npm from the nvm-managed Node.js.
        privileged: Run npm elevated (system Node.js).
    """

    packages: tuple[str, ...]
    use_nvm: bool = True
    privileged: bool = False

    @property
    def label(self) -> str:
        """Packages to install."""
        return f"npm install -g {' '.join(self.packages)}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Run npm install -g."""
        if self.use_nvm:
            packages = " ".join(shlex.quote(p) for p in self.packages)
            result = _nvm_script(ctx, f"nvm use --lts >/dev/null && npm install -g {packages}")
        else:
            npm = _require_tool(ctx, "npm")
            result = ctx.run([npm, "install", "-g", *self.packages], privileged=self.privileged)
        _check(result, self.label)
        return Applied(message=f"installed {' '.join(self.packages)}")


# =============================================================================
# System configuration
# =============================================================================


def render_motd(server_name: str) -> str:
    """Render the login banner script."""
    return (
        "#!/bin/bash\n"
        "/usr/bin/screenfetch -d '-disk' -w 80\n"
        f"figlet -t {shlex.quote(server_name)}\n"
    )


@dataclass(frozen=True)
class WriteMotd(Strategy):
    """Install the login banner script."""

    @property
    def label(self) -> str:
        """Banner path."""
        return f"write {MOTD_PATH}"

    def apply(self, ctx: UnitContext) -> Applied:
        """Write the banner with mode 0755."""
        changed = ctx.write_system_file(MOTD_PATH, render_motd(ctx.config.server_name), 0o755)
        return Applied(changed=changed, message=f"banner for {ctx.config.server_name}")


def sudoers_path(user: str) -> Path:
    """sudoers.d entry for a user; sudo skips file names containing dots."""
    return SUDOERS_DIR / user.replace(".", "_")


@dataclass(frozen=True)
class PasswordlessSudo(Strategy):
    """Grant the user passwordless sudo via a sudoers.d entry."""

    @property
    def label(self) -> str:
        """sudoers.d entry."""
        return "sudoers.d entry"

    def apply(self, ctx: UnitContext) -> Applied:
        """Write and validate the sudoers entry."""
        if not ctx.user or ctx.user == "root":
            return Applied(changed=False, message="root needs no sudoers entry")

        path = sudoers_path(ctx.user)
        content = f"{ctx.user} ALL=(ALL:ALL) NOPASSWD: ALL\n"
        changed = ctx.write_system_file(path, content, 0o440)

        if changed and shutil.which("visudo"):
            result = ctx.run(["visudo", "-cf", str(path)], privileged=True)
            if not result.success:
                ctx.run(["rm", "-f", str(path)], privileged=True)
                msg = f"visudo rejected {path}: {result.error_message}"
                raise StrategyError(msg)
        return Applied(changed=changed, message=str(path))


@dataclass(frozen=True)
class OpenFirewallPort(Strategy):
    """Allow the SSH port through the first firewall manager found."""

    @property
    def label(self) -> str:
        """Firewall rule."""
        return "firewall rule"

    def apply(self, ctx: UnitContext) -> Applied:
        """Add the rule with ufw, firewalld or iptables."""
        port = ctx.config.ssh_port

        if shutil.which("ufw"):
            result = _check(ctx.run(["ufw", "allow", f"{port}/tcp"], privileged=True), "ufw")
            changed = "Skipping" not in result.stdout
            return Applied(changed=changed, message=f"ufw allows {port}/tcp")

        if shutil.which("firewall-cmd"):
            if ctx.probe(["firewall-cmd", f"--query-port={port}/tcp"]).success:
                return Applied(changed=False, message=f"firewalld allows {port}/tcp")
            add = ["firewall-cmd", "--permanent", f"--add-port={port}/tcp"]
            _check(ctx.run(add, privileged=True), "firewall-cmd")
            _check(ctx.run(["firewall-cmd", "--reload"], privileged=True), "firewall-cmd")
            return Applied(message=f"firewalld allows {port}/tcp")

        if shutil.which("iptables"):
            rule = ["INPUT", "-p", "tcp", "--dport", str(port), "-j", "ACCEPT"]
            if ctx.run(["iptables", "-C", *rule], privileged=True).success and not ctx.dry_run:
                return Applied(changed=False, message=f"iptables accepts {port}/tcp")
            _check(ctx.run(["iptables", "-A", *rule], privileged=True), "iptables")
            return Applied(message=f"iptables accepts {port}/tcp")

        return Applied(changed=False, message="no firewall manager found")


@dataclass(frozen=True)
class EnableSshService(Strategy):
    """Enable and start the SSH daemon."""

    @property
    def label(self) -> str:
        """Service manager action."""
        return "enable sshd"

    def apply(self, ctx: UnitContext) -> Applied:
        """Use systemd (sshd or ssh unit) or OpenRC."""
        if shutil.which("systemctl"):
            for service in ("sshd", "ssh"):
                enabled = ctx.probe(["systemctl", "is-enabled", "--quiet", service]).success
                active = ctx.probe(["systemctl", "is-active", "--quiet", service]).success
                if enabled and active:
                    return Applied(changed=False, message=f"{service} is running")
            for service in ("sshd", "ssh"):
                result = ctx.run(["systemctl", "enable", "--now", service], privileged=True)
                if result.success:
                    return Applied(message=f"enabled {service}")
            msg = "systemctl could not enable sshd or ssh"
            raise StrategyError(msg)

        if shutil.which("rc-service"):
            _check(ctx.run(["rc-update", "add", "sshd", "default"], privileged=True), "rc-update")
            _check(ctx.run(["rc-service", "sshd", "start"], privileged=True), "rc-service")
            return Applied(message="enabled sshd")

        msg = "no supported service manager"
        raise StrategyError(msg)


@dataclass(frozen=True)
class ChangeDefaultShell(Strategy):
    """Make zsh the user's login shell."""

    @property
    def label(self) -> str:
        """chsh to zsh."""
        return "chsh zsh"

    def apply(self, ctx: UnitContext) -> Applied:
        """Register zsh in /etc/shells and run chsh."""
        zsh = _require_tool(ctx, "zsh")
        try:
            current = pwd.getpwnam(ctx.user).pw_shell
        except KeyError as e:
            msg = f"unknown user {ctx.user}"
            raise StrategyError(msg) from e
        if Path(current).name == "zsh":
            return Applied(changed=False, message=f"login shell is {current}")

        quoted = shlex.quote(zsh)
        register = f"grep -qx {quoted} /etc/shells || echo {quoted} >> /etc/shells"
        _check(ctx.shell(register, privileged=True), "register zsh in /etc/shells")
        _check(ctx.run(["chsh", "-s", zsh, ctx.user], privileged=True), "chsh")
        return Applied(message=f"login shell set to {zsh}")


@dataclass(frozen=True)
class RegisterAuthorizedKeys(Strategy):
    """Append the resolved public keys to ~/.ssh/authorized_keys."""

    @property
    def label(self) -> str:
        """authorized_keys update."""
        return "authorized_keys"

    def apply(self, ctx: UnitContext) -> Applied:
        """Add keys that are not present yet."""
        path = ctx.home / ".ssh" / "authorized_keys"
        added = dotfile.append_unique_lines(
            path, list(ctx.config.ssh_public_keys), dry_run=ctx.dry_run
        )
        if not added:
            return Applied(changed=False, message="keys already registered")
        return Applied(message=f"registered {len(added)} key(s)")


# =============================================================================
# Dotfiles and editor integration
# =============================================================================


@dataclass(frozen=True)
class ConfigureMcp(Strategy):
    """Write the merged MCP config and link editors to it."""

    @property
    def label(self) -> str:
        """MCP configuration."""
        return "mcp config"

    def apply(self, ctx: UnitContext) -> Applied:
        """Build, write and link the MCP configuration."""
        toggles = ctx.config.mcp_server_toggles
        descriptors = load_descriptors()
        selected = select_descriptors(descriptors, toggles, ctx.home)
        document = build_mcp_document(descriptors, toggles, ctx.home)

        mcp_path = get_mcp_config_path(ctx.home)
        changed = write_mcp_config(document, mcp_path, dry_run=ctx.dry_run)
        disabled = {d.name for d in descriptors} - {d.name for d in selected}
        changed |= bool(
            write_server_files(
                selected, get_mcp_servers_dir(ctx.home), disabled=disabled, dry_run=ctx.dry_run
            )
        )

        targets = editor_targets(
            ctx.config.editor_toggles, home=ctx.home, macos=ctx.profile.is_macos
        )
        outcomes = link_editor_configs(targets, mcp_path, dry_run=ctx.dry_run)
        linked = [o.editor for o in outcomes if o.status == LinkStatus.LINKED]
        kept = [o.editor for o in outcomes if o.status == LinkStatus.EXISTS]
        changed |= bool(linked)

        parts = [f"{len(selected)} server(s)"]
        if linked:
            parts.append(f"linked {', '.join(linked)}")
        if kept:
            parts.append(f"kept existing {', '.join(kept)}")
        return Applied(changed=changed, message="; ".join(parts))


P10K_INSTANT_PROMPT = '"${XDG_CACHE_HOME:-$HOME/.cache}/p10k-instant-prompt-${(%):-%n}.zsh"'

# Single-line statements only: ensure_lines dedupes line by line
ZINIT_LINES: tuple[str, ...] = (
    'ZINIT_HOME="${XDG_DATA_HOME:-$HOME/.local/share}/zinit/zinit.git"',
    '[ -f "$ZINIT_HOME/zinit.zsh" ] && source "$ZINIT_HOME/zinit.zsh"',
    "zinit ice depth=1; zinit light romkatv/powerlevel10k",
    "zinit light zsh-users/zsh-autosuggestions",
    "zinit light zsh-users/zsh-syntax-highlighting",
    "# Enable Powerlevel10k instant prompt",
    f"[[ -r {P10K_INSTANT_PROMPT} ]] && source {P10K_INSTANT_PROMPT}",
    "# To customize prompt, run `p10k configure` or edit ~/.p10k.zsh",
    "[[ ! -f ~/.p10k.zsh ]] || source ~/.p10k.zsh",
)

OH_MY_ZSH_PLUGINS: tuple[str, ...] = ("git", "zsh-syntax-highlighting", "zsh-autosuggestions")

OH_MY_ZSH_LINES: tuple[str, ...] = (
    'export ZSH="$HOME/.oh-my-zsh"',
    "source $ZSH/oh-my-zsh.sh",
)

COMMON_LINES: tuple[str, ...] = (
    "HISTFILE=~/.histfile",
    "HISTSIZE=100000",
    "SAVEHIST=100000",
    "setopt autocd",
    "bindkey -e",
    "export HOMEBREW_NO_ANALYTICS=1",
    "DISABLE_UPDATE_PROMPT=true",
    "export EDITOR=vim",
    "export VISUAL=vim",
    "alias nano=vim",
    'export PATH="$HOME/.local/bin:$PATH"',
    'export PATH="$HOME/.cargo/bin:$PATH"',
    'export NVM_DIR="$HOME/.nvm"',
    '[ -s "$NVM_DIR/nvm.sh" ] && . "$NVM_DIR/nvm.sh"',
    '[ -s "$NVM_DIR/bash_completion" ] && . "$NVM_DIR/bash_completion"',
)

# (executable, lines) added only when the executable is installed
TOOL_LINES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("eza", ('alias ls="eza"', 'alias ll="eza -l"', 'alias la="eza -la"')),
    ("bat", ('alias cat="bat"',)),
    ("dust", ('alias du="dust"',)),
    ("duf", ('alias df="duf"',)),
    ("fd", ('alias find="fd"',)),
    ("rg", ('alias grep="rg"',)),
    ("sd", ('alias sed="sd"',)),
    ("choose", ('alias cut="choose"',)),
    ("btm", ('alias top="btm"',)),
    ("procs", ('alias ps="procs"',)),
    ("gping", ('alias ping="gping"',)),
    ("difft", ('alias diff="difft"',)),
    ("xh", ('alias http="xh"',)),
    ("lazygit", ('alias lg="lazygit"',)),
    ("lazydocker", ('alias lzd="lazydocker"',)),
    ("zoxide", ('eval "$(zoxide init zsh)"', 'alias cd="z"')),
    ("mcfly", ('eval "$(mcfly init zsh)"',)),
    ("hishtory", ('eval "$(hishtory init zsh)"',)),
    ("atuin", ('eval "$(atuin init zsh)"',)),
)

# (file under home, line) added only when the file exists
SOURCED_FILES: tuple[tuple[str, str], ...] = (
    (".fzf.zsh", "[ -f ~/.fzf.zsh ] && source ~/.fzf.zsh"),
    (
        ".config/broot/launcher/bash/br",
        "[ -f ~/.config/broot/launcher/bash/br ] && source ~/.config/broot/launcher/bash/br",
    ),
)

_TOOL_HOME_DIRS = (".cargo/bin", ".local/bin", ".hishtory", ".fzf/bin")


def zshrc_lines(ctx: UnitContext) -> list[str]:
    """Lines ~/.zshrc must contain, given the installed tools."""
    lines: list[str] = []
    if not ctx.config.skip_shell_framework_setup:
        if ctx.config.shell_framework == ShellFramework.ZINIT:
            lines.extend(ZINIT_LINES)
        else:
            lines.extend(OH_MY_ZSH_LINES)
    lines.extend(COMMON_LINES)

    for executable, tool_lines in TOOL_LINES:
        candidates = [f"{directory}/{executable}" for directory in _TOOL_HOME_DIRS]
        if find_tool(ctx, executable, *candidates):
            lines.extend(tool_lines)
    for relative, line in SOURCED_FILES:
        if (ctx.home / relative).exists():
            lines.append(line)
    return lines


@dataclass(frozen=True)
class ConfigureZshrc(Strategy):
    """Converge ~/.zshrc on the managed settings."""

    @property
    def label(self) -> str:
        """zshrc edit."""
        return "~/.zshrc"

    def apply(self, ctx: UnitContext) -> Applied:
        """Set framework values and ensure every managed line."""
        path = ctx.home / ".zshrc"
        changed = False
        uses_oh_my_zsh = (
            ctx.config.shell_framework == ShellFramework.OH_MY_ZSH
            and not ctx.config.skip_shell_framework_setup
        )
        if uses_oh_my_zsh:
            # Must precede the oh-my-zsh source line
            changed |= dotfile.set_keyed_value(
                path, "ZSH_THEME", '"agnoster"', dry_run=ctx.dry_run
            )
            changed |= dotfile.set_list_value(
                path, "plugins", list(OH_MY_ZSH_PLUGINS), dry_run=ctx.dry_run
            )
        changed |= dotfile.ensure_lines(path, zshrc_lines(ctx), dry_run=ctx.dry_run)
        return Applied(changed=changed, message=str(path))


DELTA_GIT_SETTINGS: tuple[tuple[str, str], ...] = (
    ("core.pager", "delta"),
    ("interactive.diffFilter", "delta --color-only"),
    ("delta.navigate", "true"),
    ("delta.side-by-side", "true"),
    ("merge.conflictstyle", "diff3"),
    ("diff.colorMoved", "default"),
)


@dataclass(frozen=True)
class ConfigureDeltaPager(Strategy):
    """Use delta as git's pager through the global git config."""

    @property
    def label(self) -> str:
        """git config."""
        return "git config delta"

    def apply(self, ctx: UnitContext) -> Applied:
        """Set each git option that differs."""
        git = _require_tool(ctx, "git")
        changed = False
        for key, value in DELTA_GIT_SETTINGS:
            current = ctx.probe([git, "config", "--global", "--get", key]).stdout.strip()
            if current == value:
                continue
            _check(ctx.run([git, "config", "--global", key, value]), f"git config {key}")
            changed = True
        return Applied(changed=changed, message="delta is the git pager")


# =============================================================================
# CUDA
# =============================================================================

_CUDA_REPO_BASE = "https://developer.download.nvidia.com/compute/cuda/repos"

CUDA_ENV_LINES: tuple[str, ...] = (
    "export PATH=/usr/local/cuda/bin${PATH:+:${PATH}}",
    "export LD_LIBRARY_PATH=/usr/local/cuda/lib64${LD_LIBRARY_PATH:+:${LD_LIBRARY_PATH}}",
)


def cuda_repo_codes(family: OSFamily, version_id: str | None, architecture: str) -> tuple[str, str]:
    """NVIDIA repository distro and architecture codes.

    Returns:
        Tuple such as ``("ubuntu2204", "x86_64")``.

    Raises:
        StrategyError: If the distribution or architecture is unsupported.
    """
    arch_codes = {"x86_64": "x86_64", "amd64": "x86_64", "aarch64": "sbsa", "arm64": "sbsa"}
    if architecture not in arch_codes:
        msg = f"CUDA repositories do not support {architecture or 'this architecture'}"
        raise StrategyError(msg)
    if not version_id:
        msg = "cannot determine the distribution version"
        raise StrategyError(msg)

    major = version_id.split(".")[0]
    codes = {
        OSFamily.UBUNTU: f"ubuntu{version_id.replace('.', '')}",
        OSFamily.DEBIAN: f"debian{major}",
        OSFamily.RHEL: f"rhel{major}",
        OSFamily.FEDORA: f"fedora{major}",
    }
    if family not in codes:
        msg = f"CUDA repositories do not support {family.value}"
        raise StrategyError(msg)
    return codes[family], arch_codes[architecture]


def _install_first(ctx: UnitContext, *candidates: str) -> str:
    """Install the first package of the list that installs successfully."""
    if ctx.operator is None:
        msg = "no package manager"
        raise StrategyError(msg)
    errors: list[str] = []
    for package in candidates:
        results = ctx.operator.install([package])
        if all(r.success for r in results):
            return package
        errors.extend(r.error or "" for r in results if r.failed)
    msg = f"could not install any of {', '.join(candidates)}: {errors[-1] if errors else ''}"
    raise StrategyError(msg)


@dataclass(frozen=True)
class CudaAptRepository(Strategy):
    """Add NVIDIA's apt repository and install the toolkit and open driver."""

    @property
    def label(self) -> str:
        """CUDA via apt."""
        return "cuda (apt)"

    def apply(self, ctx: UnitContext) -> Applied:
        """Install cuda-keyring, then cuda-toolkit and a driver."""
        if ctx.operator is None:
            msg = "no package manager"
            raise StrategyError(msg)
        distro, arch = cuda_repo_codes(
            ctx.profile.family, ctx.profile.version_id, ctx.profile.architecture
        )
        url = f"{_CUDA_REPO_BASE}/{distro}/{arch}/cuda-keyring_1.1-1_all.deb"
        deb = "/tmp/cuda-keyring_1.1-1_all.deb"
        _require_tool(ctx, "curl")
        _check(ctx.run(["curl", "-fsSL", "-o", deb, url]), "download cuda-keyring")
        _check(ctx.run(["dpkg", "-i", deb], privileged=True), "dpkg -i cuda-keyring")
        _check(ctx.run(["apt-get", "update"], privileged=True), "apt-get update")
        _install_first(ctx, "cuda-toolkit")
        driver = _install_first(ctx, "nvidia-driver-open", "cuda-drivers")
        return Applied(message=f"installed cuda-toolkit and {driver} from {distro}")


@dataclass(frozen=True)
class CudaDnfRepository(Strategy):
    """Add NVIDIA's dnf repository and install the toolkit and driver."""

    @property
    def label(self) -> str:
        """CUDA via dnf."""
        return "cuda (dnf)"

    def apply(self, ctx: UnitContext) -> Applied:
        """Register the .repo file, then cuda-toolkit and a driver."""
        if ctx.operator is None:
            msg = "no package manager"
            raise StrategyError(msg)
        distro, arch = cuda_repo_codes(
            ctx.profile.family, ctx.profile.version_id, ctx.profile.architecture
        )
        url = f"{_CUDA_REPO_BASE}/{distro}/{arch}/cuda-{distro}.repo"
        added = ctx.run(["dnf", "config-manager", "--add-repo", url], privileged=True)
        if not added.success:
            # dnf5 syntax
            added = ctx.run(
                ["dnf", "config-manager", "addrepo", f"--from-repofile={url}"], privileged=True
            )
        _check(added, "dnf config-manager")
        _install_first(ctx, "cuda-toolkit")
        driver = _install_first(ctx, "nvidia-driver", "cuda-drivers")
        return Applied(message=f"installed cuda-toolkit and {driver} from {distro}")


@dataclass(frozen=True)
class CudaEnvironment(Strategy):
    """Put the CUDA toolkit on PATH for login shells and zsh."""

    @property
    def label(self) -> str:
        """CUDA environment."""
        return "cuda environment"

    def apply(self, ctx: UnitContext) -> Applied:
        """Write /etc/profile.d/cuda.sh and extend ~/.zshrc."""
        content = "".join(f"{line}\n" for line in CUDA_ENV_LINES)
        changed = ctx.write_system_file(CUDA_PROFILE_PATH, content, 0o644)
        changed |= dotfile.ensure_lines(
            ctx.home / ".zshrc", list(CUDA_ENV_LINES), dry_run=ctx.dry_run
        )
        return Applied(changed=changed, message=str(CUDA_PROFILE_PATH))
