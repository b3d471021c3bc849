"""Interactive prompt channel.

Prompts go to stdin when it is a terminal, otherwise to ``/dev/tty``
when it can be opened (e.g. ``curl ... | sh`` style invocations). When
neither is available the resolver never blocks: questions are answered
with their default and the value is echoed for transparency.
"""

import logging
import sys
from abc import ABC, abstractmethod
from typing import TextIO

import typer
from rich.markup import escape

from devstrap.utils.formatting import console

logger = logging.getLogger(__name__)


class Prompter(ABC):
    """Answers the questions asked while resolving the configuration."""

    @property
    @abstractmethod
    def interactive(self) -> bool:
        """True when a human can answer."""

    @abstractmethod
    def ask(self, label: str, default: str) -> str:
        """Ask a question.

        Args:
            label: Question text without trailing punctuation.
            default: Value used when the answer is empty.

        Returns:
            The answer, or the default when the answer is empty.
        """

    def announce(self, label: str, value: str) -> None:
        """Show the value used for a question that is not asked."""
        console.print(f"[muted]{escape(label)}:[/] {escape(value)}")

    def close(self) -> None:
        """Release the channel."""


class NullPrompter(Prompter):
    """Non-interactive channel that answers every question with its default."""

    @property
    def interactive(self) -> bool:
        """Never interactive."""
        return False

    def ask(self, label: str, default: str) -> str:
        """Return the default and echo it."""
        self.announce(label, default)
        return default


class StdinPrompter(Prompter):
    """Prompts on the controlling terminal attached to stdin."""

    @property
    def interactive(self) -> bool:
        """Always interactive."""
        return True

    def ask(self, label: str, default: str) -> str:
        """Prompt via Typer; an empty answer keeps the default."""
        answer: str = typer.prompt(label, default=default, show_default=bool(default))
        return answer.strip() or default


class TtyPrompter(Prompter):
    """Prompts on an explicitly opened terminal device."""

    def __init__(self, tty: TextIO) -> None:
        """Initialize with an open read/write terminal stream."""
        self._tty = tty

    @property
    def interactive(self) -> bool:
        """Always interactive."""
        return True

    def ask(self, label: str, default: str) -> str:
        """Write the question to the terminal and read one line."""
        suffix = f" [{default}]" if default else ""
        self._tty.write(f"{label}{suffix}: ")
        self._tty.flush()
        answer = self._tty.readline().strip()
        return answer or default

    def close(self) -> None:
        """Close the terminal stream."""
        self._tty.close()


def open_prompter(enabled: bool = True, tty_path: str = "/dev/tty") -> Prompter:
    """Pick the prompt channel for this run.

    Args:
        enabled: False when prompting is turned off (``-y`` or config).
        tty_path: Terminal device tried when stdin is not a terminal.

    Returns:
        The most direct channel available.
    """
    if not enabled:
        return NullPrompter()
    if sys.stdin.isatty():
        return StdinPrompter()
    try:
        tty = open(tty_path, "r+", encoding="utf-8")  # noqa: SIM115
    except OSError as e:
        logger.debug("No terminal available for prompts: %s", e)
        return NullPrompter()
    return TtyPrompter(tty)
