"""Dry-run operation counter shared across processes."""

import os
from pathlib import Path
from typing import MutableMapping

from .config import Settings

COUNT_FILE_ENV = "DOTFILES_DRYRUN_COUNT_FILE"


class DryRunCounter:
    """Counts operations that would occur during a preview session.

    The count lives in a file so that child processes of the same top-level
    invocation contribute to one total. Each operation appends one line;
    only the number of lines matters.
    """

    def __init__(self, path: Path, enabled: bool, owner: bool = True):
        self.path = path
        self.enabled = enabled
        # Only the invocation that created the file resets or removes it
        self.owner = owner

    @classmethod
    def for_session(
        cls,
        settings: Settings,
        environ: MutableMapping[str, str] | None = None,
    ) -> "DryRunCounter":
        """Get the counter for the current session.

        Reuses the counter file inherited from a parent invocation, or
        derives one from this process id and exports it for children.
        The effective DRY_RUN and VERBOSE modes are exported alongside it,
        so child processes preview exactly when this one does.

        Args:
            settings: Run settings
            environ: Environment mapping. Defaults to os.environ.

        Returns:
            Counter bound to the session's file
        """
        if environ is None:
            environ = os.environ

        inherited = environ.get(COUNT_FILE_ENV)
        if inherited:
            path = Path(inherited)
        else:
            path = settings.tmp_dir / f"{settings.app_name}-dryrun-count.{os.getpid()}"
            environ[COUNT_FILE_ENV] = str(path)

        environ["DRY_RUN"] = "true" if settings.dry_run else "false"
        environ["VERBOSE"] = "true" if settings.verbose else "false"

        return cls(path, enabled=settings.dry_run, owner=not inherited)

    def init(self) -> None:
        """Start a fresh count, discarding leftovers from an earlier session."""
        if self.enabled and self.owner:
            self.path.unlink(missing_ok=True)

    def record_operation(self) -> None:
        """Record one operation that would mutate state."""
        if not self.enabled:
            return
        # One append per operation; concurrent children never read-modify-write
        with open(self.path, "a", encoding="utf-8") as f:
            f.write("1\n")

    def summarize(self) -> int:
        """Return the recorded count and delete the counter file.

        A counter inherited from a parent reports the running total and
        leaves the file for the parent to summarize.

        Returns:
            Number of recorded operations (0 if none were recorded)
        """
        if not self.path.exists():
            return 0

        with open(self.path, encoding="utf-8") as f:
            count = sum(1 for _ in f)
        if self.owner:
            self.path.unlink(missing_ok=True)
        return count
