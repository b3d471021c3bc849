"""MCP configuration builder.

Merges the bundled MCP server descriptors into a single
``~/.config/mcp/mcp.json`` document, keeps a per-server copy under
``~/.config/mcp/servers/`` and points editor config locations at the
merged file with symlinks. Existing editor files are never replaced.
"""

import json
import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from importlib import resources
from importlib.resources.abc import Traversable
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from devstrap.core.dotfile import DotfileError, read_text, write_atomic
from devstrap.core.paths import get_editor_mcp_targets
from devstrap.models.mcp import MCPServerDescriptor

logger = logging.getLogger(__name__)

# Editors whose config location only exists on macOS
_MACOS_ONLY_EDITORS = frozenset({"claude_desktop"})


class McpConfigError(Exception):
    """Raised when descriptors cannot be loaded or the config cannot be written."""


class LinkStatus(Enum):
    """Outcome of linking one editor config."""

    LINKED = "linked"
    EXISTS = "exists"


@dataclass(frozen=True, slots=True)
class LinkOutcome:
    """Result of linking one editor to the merged MCP config.

    Attributes:
        editor: Editor toggle name.
        target: Path the editor reads.
        status: Whether a link was created or the path was left alone.
    """

    editor: str
    target: Path
    status: LinkStatus


def _bundled_descriptor_dir() -> Traversable:
    return resources.files("devstrap.data").joinpath("mcp")


def load_descriptors(source: Traversable | Path | None = None) -> list[MCPServerDescriptor]:
    """Load MCP server descriptors from ``<name>.json`` files.

    Args:
        source: Directory to read. Defaults to the descriptors shipped
            with devstrap.

    Returns:
        Descriptors sorted by name.

    Raises:
        McpConfigError: If a descriptor file is unreadable or invalid.
    """
    directory = source if source is not None else _bundled_descriptor_dir()
    descriptors: list[MCPServerDescriptor] = []

    try:
        entries = sorted(directory.iterdir(), key=lambda entry: entry.name)
    except OSError as e:
        msg = f"Cannot list MCP descriptors in {directory}: {e}"
        raise McpConfigError(msg) from e

    for entry in entries:
        if not entry.name.endswith(".json"):
            continue
        name = entry.name.removesuffix(".json")
        try:
            data = json.loads(entry.read_text(encoding="utf-8"))
            if not isinstance(data, dict):
                msg = "descriptor must be an object"
                raise ValueError(msg)
            descriptors.append(MCPServerDescriptor(name=name, **data))
        except (OSError, ValueError, TypeError, ValidationError) as e:
            msg = f"Invalid MCP descriptor {entry.name}: {e}"
            raise McpConfigError(msg) from e

    logger.debug("Loaded %d MCP descriptors", len(descriptors))
    return descriptors


def select_descriptors(
    descriptors: Iterable[MCPServerDescriptor],
    toggles: Mapping[str, bool],
    home_dir: Path | str,
) -> list[MCPServerDescriptor]:
    """Keep enabled descriptors and substitute the home placeholder.

    Servers without a toggle entry are enabled.

    Returns:
        Enabled descriptors sorted by name.
    """
    home = str(home_dir)
    return sorted(
        (d.with_home(home) for d in descriptors if toggles.get(d.name, True)),
        key=lambda d: d.name,
    )


def build_mcp_document(
    descriptors: Iterable[MCPServerDescriptor],
    toggles: Mapping[str, bool],
    home_dir: Path | str,
) -> dict[str, Any]:
    """Build the merged ``{"mcpServers": {...}}`` document.

    Args:
        descriptors: All known descriptors.
        toggles: Per-server enable flags.
        home_dir: Value substituted for the home placeholder.

    Returns:
        The document with servers in name order.
    """
    selected = select_descriptors(descriptors, toggles, home_dir)
    return {"mcpServers": {d.name: d.to_entry() for d in selected}}


def render_document(document: Mapping[str, Any]) -> str:
    """Serialize deterministically: 2-space indent and a trailing newline."""
    return json.dumps(document, indent=2, ensure_ascii=False) + "\n"


def _write_if_changed(path: Path, content: str, *, dry_run: bool) -> bool:
    try:
        if path.exists() and read_text(path) == content:
            return False
        if dry_run:
            logger.info("Would write %s", path)
            return True
        write_atomic(path, content, 0o644)
    except DotfileError as e:
        raise McpConfigError(str(e)) from e
    return True


def write_mcp_config(document: Mapping[str, Any], path: Path, *, dry_run: bool = False) -> bool:
    """Write the merged document atomically.

    Returns:
        True if the file was (or would be) changed.

    Raises:
        McpConfigError: If the file cannot be written.
    """
    return _write_if_changed(path, render_document(document), dry_run=dry_run)


def write_server_files(
    descriptors: Iterable[MCPServerDescriptor],
    directory: Path,
    *,
    disabled: Iterable[str] = (),
    dry_run: bool = False,
) -> list[Path]:
    """Write one standalone document per enabled server.

    Args:
        descriptors: Home-substituted descriptors (see :func:`select_descriptors`).
        directory: Destination directory.
        disabled: Names of known servers that are turned off. Their copies
            are removed; other files in the directory are left alone.
        dry_run: Report without writing.

    Returns:
        Paths that were (or would be) changed or removed.

    Raises:
        McpConfigError: If a file cannot be written or removed.
    """
    changed: list[Path] = []
    for descriptor in descriptors:
        path = directory / f"{descriptor.name}.json"
        document = {"mcpServers": {descriptor.name: descriptor.to_entry()}}
        if _write_if_changed(path, render_document(document), dry_run=dry_run):
            changed.append(path)

    for name in sorted(set(disabled)):
        path = directory / f"{name}.json"
        if not path.is_file():
            continue
        changed.append(path)
        if dry_run:
            logger.info("Would remove %s", path)
            continue
        try:
            path.unlink()
        except OSError as e:
            msg = f"Cannot remove {path}: {e}"
            raise McpConfigError(msg) from e
        logger.debug("Removed %s", path)
    return changed


def editor_targets(
    toggles: Mapping[str, bool], *, home: Path, macos: bool
) -> dict[str, Path]:
    """Editor config locations to link, filtered by toggles and platform."""
    return {
        editor: target
        for editor, target in get_editor_mcp_targets(home).items()
        if toggles.get(editor, True) and (macos or editor not in _MACOS_ONLY_EDITORS)
    }


def link_editor_configs(
    targets: Mapping[str, Path], mcp_path: Path, *, dry_run: bool = False
) -> list[LinkOutcome]:
    """Symlink editor config locations to the merged document.

    A target that already exists (including a dangling symlink) is left
    untouched so user-managed files are never overwritten.

    Args:
        targets: Editor name to config path.
        mcp_path: Merged MCP config file.
        dry_run: Report without creating links.

    Returns:
        One outcome per editor, in the order given.

    Raises:
        McpConfigError: If a link cannot be created.
    """
    outcomes: list[LinkOutcome] = []
    for editor, target in targets.items():
        if target.exists() or target.is_symlink():
            logger.debug("Leaving existing %s config at %s", editor, target)
            outcomes.append(LinkOutcome(editor, target, LinkStatus.EXISTS))
            continue

        if not dry_run:
            try:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.symlink_to(mcp_path)
            except OSError as e:
                msg = f"Cannot link {target} to {mcp_path}: {e}"
                raise McpConfigError(msg) from e
        outcomes.append(LinkOutcome(editor, target, LinkStatus.LINKED))
    return outcomes
