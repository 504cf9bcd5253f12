"""Colored output utilities for dotlink."""

import logging
import os
import sys
from typing import TextIO

logger = logging.getLogger(__name__)


class Output:
    """Handles colored and formatted output.

    Every message is mirrored to the ``dotlink`` logger so the session log
    records what the user saw.
    """

    # ANSI color codes
    RESET = "\033[0m"
    BOLD = "\033[1m"
    RED = "\033[31m"
    GREEN = "\033[32m"
    YELLOW = "\033[33m"
    BLUE = "\033[34m"
    GRAY = "\033[90m"

    def __init__(
        self,
        *,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
        stream: TextIO | None = None,
        err_stream: TextIO | None = None,
    ):
        """Initialize output handler.

        Args:
            no_color: Disable colored output
            quiet: Suppress informational output
            verbose: Show verbose-only detail
            stream: Output stream (default stdout)
            err_stream: Error stream (default stderr)
        """
        self.stream = stream or sys.stdout
        self.err_stream = err_stream or sys.stderr
        self.quiet = quiet
        self.verbose_enabled = verbose

        # Determine if color should be used
        self._use_color = self._should_use_color(no_color)

    def _should_use_color(self, no_color: bool) -> bool:
        """Determine if colored output should be used.

        Args:
            no_color: Explicit flag to disable color

        Returns:
            True if color should be used
        """
        # Explicit flag
        if no_color:
            return False

        # NO_COLOR environment variable
        if os.environ.get("NO_COLOR"):
            return False

        # Check if stdout is a TTY
        if not hasattr(self.stream, "isatty") or not self.stream.isatty():
            return False

        return True

    def _colorize(self, text: str, *codes: str) -> str:
        """Apply color codes to text.

        Args:
            text: Text to colorize
            codes: ANSI codes to apply

        Returns:
            Colorized text (or plain text if color disabled)
        """
        if not self._use_color:
            return text
        return f"{''.join(codes)}{text}{self.RESET}"

    def info(self, message: str) -> None:
        """Print an informational message.

        Args:
            message: Message to print
        """
        logger.info(message)
        if self.quiet:
            return
        print(f"{self._colorize('▸', self.BLUE)} {message}", file=self.stream)

    def success(self, message: str) -> None:
        """Print a success message (green).

        Args:
            message: Message to print
        """
        logger.info("SUCCESS: %s", message)
        if self.quiet:
            return
        print(f"{self._colorize('✓', self.GREEN)} {message}", file=self.stream)

    def warning(self, message: str) -> None:
        """Print a warning message (yellow).

        Args:
            message: Message to print
        """
        logger.warning(message)
        print(self._colorize(f"Warning: {message}", self.YELLOW), file=self.err_stream)

    def error(self, message: str) -> None:
        """Print an error message (red).

        Args:
            message: Message to print
        """
        logger.error(message)
        print(self._colorize(f"Error: {message}", self.RED), file=self.err_stream)

    def verbose(self, message: str) -> None:
        """Print a message only in verbose mode (gray).

        Args:
            message: Message to print
        """
        logger.debug(message)
        if not self.verbose_enabled or self.quiet:
            return
        print(self._colorize(f"  │ {message}", self.GRAY), file=self.stream)

    def section(self, title: str) -> None:
        """Print a section header for a major phase.

        Args:
            title: Section title
        """
        logger.info("SECTION: %s", title)
        if self.quiet:
            return
        print(file=self.stream)
        print(self._colorize(f"━━━ {title} ━━━", self.BOLD), file=self.stream)
        print(file=self.stream)

    def non_idempotent(self, operation: str) -> None:
        """Flag an operation that will differ if re-run.

        Args:
            operation: Description of the operation
        """
        self.warning(f"NON-IDEMPOTENT: {operation}")
        self.verbose("This operation cannot be safely re-run without side effects")

    def dry_run(self, command: str) -> None:
        """Print a command that would run in preview mode.

        Args:
            command: Rendered command line
        """
        logger.debug("[dry-run] %s", command)
        print(f"  {self.dry_run_prefix()} {command}", file=self.stream)

    def exec(self, command: str) -> None:
        """Print a command about to run.

        Args:
            command: Rendered command line
        """
        logger.debug("[exec] %s", command)
        print(f"  {self._colorize('[exec]', self.GRAY)} {command}", file=self.stream)

    def dry_run_prefix(self) -> str:
        """Get prefix for dry-run messages.

        Returns:
            Formatted dry-run prefix
        """
        return self._colorize("[dry-run]", self.GRAY)

    def dry_run_summary(self, count: int) -> None:
        """Print the closing summary of a preview session.

        Args:
            count: Number of operations that would be performed
        """
        logger.info("Dry-run complete: %d operation(s) would be performed", count)
        rule = "═" * 59
        print(file=self.stream)
        print(rule, file=self.stream)
        print(f"  {self._colorize('DRY-RUN COMPLETE', self.BLUE)} - No changes were made", file=self.stream)
        print(rule, file=self.stream)
        print(file=self.stream)
        print(f"  {count} operation(s) would be performed.", file=self.stream)
        print(file=self.stream)
        print(f"  Run without {self._colorize('--dry-run', self.YELLOW)} to apply changes.", file=self.stream)
        print(file=self.stream)


# Global default output instance
_default_output: Output | None = None


def get_output() -> Output:
    """Get the default output instance.

    Returns:
        Default Output instance
    """
    global _default_output
    if _default_output is None:
        _default_output = Output()
    return _default_output


def set_output(output: Output) -> None:
    """Set the default output instance.

    Args:
        output: Output instance to use as default
    """
    global _default_output
    _default_output = output
