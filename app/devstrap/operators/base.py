"""Abstract base class for package manager operators.

This module defines the Operator interface that every native package
manager implementation must provide.
"""

import logging
import shlex
from abc import ABC, abstractmethod

from devstrap.core.privilege import Privilege
from devstrap.models.action import Action, ActionResult, ActionType
from devstrap.models.platform import PackageManagerKind
from devstrap.utils.formatting import print_dry_run
from devstrap.utils.shell import CommandResult, command_exists, run_command

logger = logging.getLogger(__name__)


class Operator(ABC):
    """Abstract base class for all package manager operators.

    Operators refresh package indexes and install packages for one
    package manager. Subclasses only describe the command lines; running
    them (elevation, dry-run, timeouts) is handled here.

    Attributes:
        dry_run: If True, commands are printed instead of executed.
        timeout: Maximum seconds a single command may run.

    Example:
        >>> operator = AptOperator(privilege=Privilege(), dry_run=True)
        >>> if operator.is_available():
        ...     results = operator.install(["zsh", "git"])
        ...     for result in results:
        ...         print(f"{result.action.package}: {result.success}")
    """

    # Whether commands must run elevated
    needs_privilege: bool = True

    def __init__(
        self,
        privilege: Privilege | None = None,
        dry_run: bool = False,
        timeout: float = 1800.0,
    ) -> None:
        """Initialize the operator.

        Args:
            privilege: Elevation token; required when ``needs_privilege``.
            dry_run: If True, only print commands without executing them.
            timeout: Maximum seconds a single command may run.
        """
        self._privilege = privilege
        self._dry_run = dry_run
        self._timeout = timeout

    @property
    def dry_run(self) -> bool:
        """Check if operator is in dry-run mode."""
        return self._dry_run

    @property
    def timeout(self) -> float:
        """Per-command timeout in seconds."""
        return self._timeout

    @property
    @abstractmethod
    def kind(self) -> PackageManagerKind:
        """Return the package manager this operator drives."""

    @property
    @abstractmethod
    def binary(self) -> str:
        """Executable whose presence means the package manager is installed."""

    @abstractmethod
    def update_commands(self) -> list[list[str]]:
        """Command lines that refresh indexes and upgrade installed packages."""

    @abstractmethod
    def install_command(self, packages: list[str]) -> list[str]:
        """Command line that installs the given packages non-interactively."""

    def is_available(self) -> bool:
        """Check if this package manager is available on the system."""
        return command_exists(self.binary)

    def update(self) -> ActionResult:
        """Refresh package indexes and upgrade installed packages.

        Commands run in order and stop at the first failure.

        Returns:
            ActionResult describing the update.
        """
        action = Action(action_type=ActionType.UPDATE, manager=self.kind)
        for args in self.update_commands():
            result = self._run(args)
            if not result.success:
                return ActionResult(action=action, success=False, error=result.error_message)
        return ActionResult(action=action, success=True, message="Package indexes updated")

    def install(self, packages: list[str]) -> list[ActionResult]:
        """Install one or more packages in a single transaction.

        The whole transaction either succeeds or fails, so every package
        shares the outcome.

        Args:
            packages: List of package names to install.

        Returns:
            List of ActionResult for each package.
        """
        if not packages:
            return []

        logger.info(
            "Installing with %s: %s (dry_run=%s)",
            self.kind.value,
            ", ".join(packages),
            self.dry_run,
        )
        result = self._run(self.install_command(packages))

        results: list[ActionResult] = []
        for package in packages:
            action = Action(action_type=ActionType.INSTALL, manager=self.kind, package=package)
            if result.success:
                results.append(ActionResult(action=action, success=True, message="Installed"))
            else:
                results.append(
                    ActionResult(action=action, success=False, error=result.error_message)
                )
        return results

    def _run(self, args: list[str]) -> CommandResult:
        """Run one package manager command.

        Raises:
            RuntimeError: If elevation is needed but no privilege token exists.
            subprocess.TimeoutExpired: If the command exceeds the timeout.
        """
        if self.needs_privilege:
            if self._privilege is None:
                msg = f"{self.kind.value} requires root privileges"
                raise RuntimeError(msg)
            args = self._privilege.wrap(args)

        if self.dry_run:
            print_dry_run(shlex.join(args))
            return CommandResult(stdout="", stderr="", returncode=0)

        logger.debug("Running %s", shlex.join(args))
        return run_command(args, timeout=self.timeout)
