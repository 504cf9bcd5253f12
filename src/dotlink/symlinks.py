"""Idempotent symlink and directory helpers."""

import os
from datetime import datetime
from pathlib import Path

from .ledger import Ledger
from .runner import Runner

BACKUP_TIMESTAMP = "%Y%m%d-%H%M%S"


def backup_path(destination: Path, now: datetime | None = None) -> Path:
    """Get a free backup path for a destination.

    Args:
        destination: Path being displaced
        now: Timestamp to embed (default: current time)

    Returns:
        ``<destination>.backup.<YYYYMMDD-HHMMSS>``, with a numeric suffix if
        a backup was already made within the same second
    """
    if now is None:
        now = datetime.now()
    base = destination.with_name(f"{destination.name}.backup.{now.strftime(BACKUP_TIMESTAMP)}")

    candidate = base
    n = 1
    while candidate.exists() or candidate.is_symlink():
        candidate = base.with_name(f"{base.name}.{n}")
        n += 1
    return candidate


def ensure_symlink(source: Path, destination: Path, runner: Runner, ledger: Ledger) -> bool:
    """Make destination a symlink to source, and track it.

    Pre-existing files or directories at destination are moved to a
    timestamped backup. Symlinks pointing elsewhere are replaced.

    Args:
        source: Link target inside the repository
        destination: Link path
        runner: Execution wrapper for all filesystem changes
        ledger: Ledger recording the link

    Returns:
        True if the filesystem was changed (or would be, in preview)

    Raises:
        ExecutionError: If removing, moving or linking fails. Nothing is
            rolled back.
    """
    output = runner.output

    if destination.is_symlink():
        current_target = os.readlink(destination)
        if current_target == str(source):
            output.verbose(f"Already linked: {destination} → {source}")
            # Ensure it's tracked even if already linked
            ledger.track(source, destination)
            return False
        output.verbose(f"Symlink exists but points to: {current_target}")
        runner.run("rm", destination)
    elif destination.exists():
        backup = backup_path(destination)
        output.non_idempotent(f"backup of {destination} is named by timestamp")
        output.warning(f"Backing up existing: {destination} → {backup}")
        runner.run("mv", destination, backup)

    runner.run("ln", "-s", source, destination)
    ledger.track(source, destination)
    if not runner.dry_run:
        output.success(f"Linked: {destination} → {source}")
    return True


def ensure_dir(path: Path, runner: Runner) -> bool:
    """Create a directory (and parents) if it is missing.

    Returns:
        True if the directory was created (or would be, in preview)
    """
    if path.is_dir():
        runner.output.verbose(f"Directory exists: {path}")
        return False
    runner.run("mkdir", "-p", path)
    return True


def would_change(kind: str, *args: Path | str) -> bool:
    """Check whether a path already satisfies a desired state.

    Never touches the filesystem.

    Args:
        kind: ``symlink`` (args: source, destination), ``dir`` or ``file``
            (args: path)
        args: Paths for the check

    Returns:
        True if bringing the path into the desired state needs a change.
        Unknown kinds always report True.
    """
    if kind == "symlink":
        source, destination = args
        destination = Path(destination)
        if destination.is_symlink() and os.readlink(destination) == str(source):
            return False
        return True
    if kind == "dir":
        return not Path(args[0]).is_dir()
    if kind == "file":
        return not Path(args[0]).is_file()
    return True
