"""Execution wrapper: the single path for every mutating command."""

import logging
import shlex
import subprocess
from os import PathLike
from pathlib import Path

from .config import Settings
from .dryrun import DryRunCounter
from .output import Output, get_output

logger = logging.getLogger(__name__)


def exit_status(returncode: int) -> int:
    """Convert a subprocess return code to the status a shell would report.

    Children killed by signal N come back as -N; shells report 128 + N.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode


class ExecutionError(Exception):
    """Raised when a wrapped command exits with a non-zero status."""

    def __init__(self, command: str, returncode: int):
        super().__init__(f"Command failed with exit status {returncode}: {command}")
        self.command = command
        self.returncode = returncode


class Runner:
    """Runs commands for real, or reports and counts them in preview mode."""

    def __init__(
        self,
        settings: Settings,
        output: Output | None = None,
        counter: DryRunCounter | None = None,
    ):
        """Initialize the runner.

        Args:
            settings: Run settings (dry_run and verbose are read from here)
            output: Output handler
            counter: Dry-run counter; a disabled one is used if omitted
        """
        self.settings = settings
        self.output = output or get_output()
        if counter is None:
            counter = DryRunCounter(
                settings.tmp_dir / f"{settings.app_name}-dryrun-count.local",
                enabled=False,
            )
        self.counter = counter
        # Changes previewed by this runner, in order
        self.changes: list[str] = []

    @property
    def dry_run(self) -> bool:
        return self.settings.dry_run

    def run(self, command: str, *args: str | PathLike) -> int:
        """Run a mutating command, or preview it.

        Args:
            command: Executable name
            args: Command arguments

        Returns:
            Exit status (always 0; failures raise)

        Raises:
            ExecutionError: If the command exits non-zero or cannot be started
        """
        argv = [command] + [str(arg) for arg in args]
        cmd_str = shlex.join(argv)

        if self.dry_run:
            self._record(cmd_str)
            self.output.dry_run(cmd_str)
            return 0

        if self.settings.verbose:
            self.output.exec(cmd_str)
        else:
            logger.debug("exec: %s", cmd_str)
        return self._call(argv, cmd_str)

    def run_installer(self, script: Path) -> int:
        """Run a topic installer script in either mode.

        The script is not previewed here: it inherits DRY_RUN, VERBOSE and
        the counter file from the environment and previews its own changes.

        Args:
            script: Executable script inside the repository

        Returns:
            Exit status (always 0; failures raise)

        Raises:
            ExecutionError: If the script exits non-zero or cannot be started
        """
        cmd_str = shlex.join([str(script)])
        logger.info("installer: %s", cmd_str)
        # The script writes to the same terminal
        self.output.stream.flush()
        return self._call([str(script)], cmd_str, cwd=self.settings.root)

    def _call(self, argv: list[str], cmd_str: str, cwd: Path | None = None) -> int:
        try:
            result = subprocess.run(argv, cwd=cwd)
        except FileNotFoundError:
            raise ExecutionError(cmd_str, 127)
        except PermissionError:
            raise ExecutionError(cmd_str, 126)

        if result.returncode != 0:
            logger.error("Command exited %d: %s", result.returncode, cmd_str)
            raise ExecutionError(cmd_str, exit_status(result.returncode))
        return result.returncode

    def preview(self, description: str) -> bool:
        """Report a non-command change in preview mode.

        Args:
            description: Human-readable description of the change

        Returns:
            True if the change was previewed (caller must not perform it),
            False in real mode
        """
        if not self.dry_run:
            return False
        self._record(description)
        self.output.dry_run(description)
        return True

    def _record(self, change: str) -> None:
        self.changes.append(change)
        self.counter.record_operation()
