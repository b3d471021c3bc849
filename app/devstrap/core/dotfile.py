"""Idempotent edits of line-oriented text files.

Every function here converges a file towards containing some text and
reports whether the file changed. Files are created when absent, whole
file rewrites go through a temporary file and ``os.replace()``, and lines
that are not the subject of an edit keep their order. Applying the same
edit twice leaves the file byte-identical.
"""

import logging
import os
import re
from pathlib import Path
from tempfile import NamedTemporaryFile

logger = logging.getLogger(__name__)


class DotfileError(Exception):
    """Raised when a managed file cannot be read or written."""


def read_text(path: Path) -> str:
    """Read a file, treating a missing file as empty.

    Raises:
        DotfileError: If the file exists but cannot be read.
    """
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return ""
    except OSError as e:
        msg = f"Cannot read {path}: {e}"
        raise DotfileError(msg) from e


def write_atomic(path: Path, content: str, mode: int | None = None) -> None:
    """Replace a file's content atomically.

    The content is written to a temporary file in the same directory and
    renamed over the target. The temporary file is removed on failure.
    A symlinked path is written through to the file it points at, so the
    link itself stays in place.

    Args:
        path: File to write. Parent directories are created.
        content: New file content.
        mode: Permission bits for the resulting file. When None, an
            existing file keeps its mode and a new file gets 0644.

    Raises:
        DotfileError: If the file cannot be written.
    """
    path = path.resolve()
    if mode is None:
        try:
            mode = path.stat().st_mode & 0o7777
        except FileNotFoundError:
            mode = 0o644
        except OSError as e:
            msg = f"Cannot stat {path}: {e}"
            raise DotfileError(msg) from e

    tmp_path: Path | None = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with NamedTemporaryFile(
            mode="w",
            encoding="utf-8",
            dir=path.parent,
            delete=False,
            prefix=f".{path.name}.",
            suffix=".tmp",
        ) as f:
            tmp_path = Path(f.name)
            f.write(content)
        os.chmod(tmp_path, mode)
        os.replace(str(tmp_path), str(path))
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        msg = f"Failed to write {path}: {e}"
        raise DotfileError(msg) from e


def _converge(path: Path, old: str, new: str, *, mode: int | None, dry_run: bool) -> bool:
    """Write ``new`` when it differs from ``old`` (or when the mode is off)."""
    mode_wrong = False
    if mode is not None and path.exists():
        mode_wrong = (path.stat().st_mode & 0o7777) != mode

    if old == new and path.exists() and not mode_wrong:
        return False
    if dry_run:
        logger.info("Would update %s", path)
        return True
    write_atomic(path, new, mode)
    logger.debug("Updated %s", path)
    return True


def _append(text: str, lines: list[str]) -> str:
    """Append lines to text, adding a separating newline when needed."""
    if not lines:
        return text
    if text and not text.endswith("\n"):
        text += "\n"
    return text + "".join(f"{line}\n" for line in lines)


def _present_lines(text: str) -> set[str]:
    return {line.rstrip() for line in text.splitlines()}


def ensure_line(
    path: Path, line: str, *, mode: int | None = None, dry_run: bool = False
) -> bool:
    """Ensure a file contains a line, appending it when absent.

    Args:
        path: File to edit.
        line: Exact line (without newline) that must be present.
        mode: Optional permission bits enforced on the file.
        dry_run: Report the change without writing.

    Returns:
        True if the file was (or would be) changed.
    """
    return ensure_lines(path, [line], mode=mode, dry_run=dry_run)


def ensure_lines(
    path: Path, lines: list[str], *, mode: int | None = None, dry_run: bool = False
) -> bool:
    """Ensure a file contains every given line, appending missing ones in order.

    Returns:
        True if the file was (or would be) changed.
    """
    text = read_text(path)
    present = _present_lines(text)
    missing: list[str] = []
    for line in lines:
        if line.rstrip() not in present:
            missing.append(line)
            present.add(line.rstrip())
    return _converge(path, text, _append(text, missing), mode=mode, dry_run=dry_run)


def set_keyed_value(
    path: Path, key: str, value: str, *, dry_run: bool = False
) -> bool:
    """Ensure a ``KEY=value`` assignment, replacing an existing one in place.

    The first line assigning ``key`` (optionally prefixed with ``export``)
    is rewritten; if none exists the assignment is appended.

    Args:
        path: File to edit.
        key: Variable name.
        value: Rendered right-hand side, including any quoting.
        dry_run: Report the change without writing.

    Returns:
        True if the file was (or would be) changed.
    """
    pattern = re.compile(rf"^\s*(export\s+)?{re.escape(key)}=")
    text = read_text(path)
    lines = text.splitlines()

    for index, existing in enumerate(lines):
        match = pattern.match(existing)
        if match is None:
            continue
        rendered = f"{match.group(1) or ''}{key}={value}"
        if existing == rendered:
            return False
        lines[index] = rendered
        new_text = "\n".join(lines) + "\n"
        return _converge(path, text, new_text, mode=None, dry_run=dry_run)

    return _converge(path, text, _append(text, [f"{key}={value}"]), mode=None, dry_run=dry_run)


def set_list_value(
    path: Path, key: str, items: list[str], *, dry_run: bool = False
) -> bool:
    """Ensure a shell array assignment such as ``plugins=(git fzf)``.

    Returns:
        True if the file was (or would be) changed.
    """
    return set_keyed_value(path, key, f"({' '.join(items)})", dry_run=dry_run)


def append_unique_lines(
    path: Path,
    lines: list[str],
    *,
    mode: int = 0o600,
    dir_mode: int | None = 0o700,
    dry_run: bool = False,
) -> list[str]:
    """Append lines that are not already present, exact-match.

    Used for ``authorized_keys``: blank entries are ignored, duplicates in
    the input are collapsed, and the file and its parent get strict modes.

    Args:
        path: File to edit.
        lines: Candidate lines in order.
        mode: Permission bits of the file.
        dir_mode: Permission bits of the parent directory, if enforced.
        dry_run: Report the change without writing.

    Returns:
        The lines that were (or would be) added.
    """
    text = read_text(path)
    present = _present_lines(text)
    added: list[str] = []
    for line in lines:
        candidate = line.strip()
        if not candidate or candidate in present:
            continue
        added.append(candidate)
        present.add(candidate)

    if dry_run:
        return added

    if dir_mode is not None:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.parent.chmod(dir_mode)
        except OSError as e:
            msg = f"Cannot prepare {path.parent}: {e}"
            raise DotfileError(msg) from e

    _converge(path, text, _append(text, added), mode=mode, dry_run=False)
    return added
