"""Unit tests for console formatting helpers."""

import logging
from collections.abc import Iterator

import pytest
from devstrap.utils.formatting import (
    configure_logging,
    print_dry_run,
    print_error,
    print_warning,
)
from rich.logging import RichHandler


@pytest.fixture
def devstrap_logger() -> Iterator[logging.Logger]:
    """The devstrap logger with its handlers restored afterwards."""
    logger = logging.getLogger("devstrap")
    handlers = list(logger.handlers)
    level = logger.level
    yield logger
    logger.handlers = handlers
    logger.setLevel(level)


class TestConfigureLogging:
    """Tests for configure_logging."""

    @pytest.mark.parametrize(
        ("verbose", "quiet", "level"),
        [
            (False, False, logging.WARNING),
            (True, False, logging.DEBUG),
            (False, True, logging.ERROR),
            (True, True, logging.DEBUG),
        ],
    )
    def test_levels(
        self, devstrap_logger: logging.Logger, verbose: bool, quiet: bool, level: int
    ) -> None:
        """Verbose wins over quiet."""
        configure_logging(verbose=verbose, quiet=quiet)
        assert devstrap_logger.level == level

    def test_single_handler(self, devstrap_logger: logging.Logger) -> None:
        """Repeated calls do not stack handlers."""
        configure_logging()
        configure_logging()
        handlers = [h for h in devstrap_logger.handlers if isinstance(h, RichHandler)]
        assert len(handlers) == 1


class TestPrintHelpers:
    """Tests for the print helpers."""

    def test_errors_go_to_stderr(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Warnings and errors are written to stderr."""
        print_warning("low disk")
        print_error("broken")
        captured = capsys.readouterr()
        assert captured.out == ""
        assert "Warning: low disk" in captured.err
        assert "Error: broken" in captured.err

    def test_dry_run_escapes_markup(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Commands with brackets are printed literally."""
        print_dry_run("test [ -f x ] && echo y")
        assert "(dry run) test [ -f x ] && echo y" in capsys.readouterr().out
