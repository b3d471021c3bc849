"""Utility modules for devstrap.

This module exports commonly used utility functions.
"""

from devstrap.utils.formatting import (
    configure_logging,
    console,
    err_console,
    print_dry_run,
    print_error,
    print_info,
    print_step,
    print_success,
    print_warning,
)
from devstrap.utils.shell import CommandResult, command_exists, run_command

__all__ = [
    "CommandResult",
    "command_exists",
    "configure_logging",
    "console",
    "err_console",
    "print_dry_run",
    "print_error",
    "print_info",
    "print_step",
    "print_success",
    "print_warning",
    "run_command",
]
