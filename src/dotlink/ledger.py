"""Ledger of symlinks created from the repository."""

import os
import tempfile
from pathlib import Path
from typing import Iterator, NamedTuple

from .runner import Runner

LEDGER_HEADER = (
    "# Managed by dotfiles - do not edit manually",
    "# Format: source -> target",
)

SEPARATOR = " -> "


class Link(NamedTuple):
    """A symlink from the repository (source) into home (destination)."""

    source: Path
    destination: Path

    @property
    def entry(self) -> str:
        """Ledger line for this link."""
        return f"{self.source}{SEPARATOR}{self.destination}"

    @classmethod
    def parse(cls, line: str) -> "Link | None":
        """Parse a ledger line, returning None for comments and blanks."""
        line = line.rstrip("\n")
        if not line or line.startswith("#") or SEPARATOR not in line:
            return None
        source, destination = line.split(SEPARATOR, 1)
        return cls(Path(source), Path(destination))


class Ledger:
    """Flat-file record of tracked links.

    The file is read fresh on every call and rewritten atomically on every
    change, holding at most one line per (source, destination) pair.
    """

    def __init__(self, path: Path, runner: Runner):
        self.path = path
        self.runner = runner
        self.output = runner.output

    def track(self, source: Path, destination: Path) -> bool:
        """Record a link.

        Args:
            source: Link target inside the repository
            destination: Link path in home

        Returns:
            True if the ledger changed (or would change in preview)
        """
        link = Link(Path(source), Path(destination))
        links = self._read()

        create = f"Create {self.path}"
        if not self.path.exists() and create not in self.runner.changes:
            if not self.runner.preview(create):
                self._write(links)

        track = f"Track: {link.entry}"
        if link in links or track in self.runner.changes:
            self.output.verbose(f"Already tracked: {link.entry}")
            return False

        if self.runner.preview(track):
            return True

        links.append(link)
        self._write(links)
        self.output.verbose(f"Tracked: {link.entry}")
        return True

    def untrack(self, source: Path, destination: Path) -> bool:
        """Remove a link from the ledger.

        Args:
            source: Link target inside the repository
            destination: Link path in home

        Returns:
            True if the ledger changed (or would change in preview)
        """
        if not self.path.exists():
            return False

        link = Link(Path(source), Path(destination))
        links = self._read()

        if link not in links:
            self.output.verbose(f"Not tracked: {link.entry}")
            return False

        if self.runner.preview(f"Untrack: {link.entry}"):
            return True

        self._write([existing for existing in links if existing != link])
        self.output.verbose(f"Untracked: {link.entry}")
        return True

    def list_tracked(self) -> Iterator[Link]:
        """Yield tracked links, reading the file at iteration time."""
        if not self.path.exists():
            return
        with open(self.path, encoding="utf-8") as f:
            for line in f:
                link = Link.parse(line)
                if link is not None:
                    yield link

    def __iter__(self) -> Iterator[Link]:
        return self.list_tracked()

    def _read(self) -> list[Link]:
        links: list[Link] = []
        for link in self.list_tracked():
            if link not in links:
                links.append(link)
        return links

    def _write(self, links: list[Link]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=f"{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                for line in LEDGER_HEADER:
                    f.write(f"{line}\n")
                for link in links:
                    f.write(f"{link.entry}\n")
            os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


def _is_repo_target(target: Path, root: Path) -> bool:
    return target == root or root in target.parents


def discover_repo_links(home: Path, root: Path) -> list[Link]:
    """Find symlinks in well-known home locations that point into the repo.

    Works without the ledger, so it also finds links created by hand or
    left out of a stale ledger. Read-only.

    Args:
        home: Home directory to scan
        root: Repository root

    Returns:
        Sorted, deduplicated links
    """
    root = Path(os.path.normpath(root))
    candidates: list[Path] = []

    # Hidden files in home
    if home.is_dir():
        candidates.extend(p for p in home.iterdir() if p.name.startswith("."))

    for subdir in (home / ".config", home / ".local" / "bin"):
        if subdir.is_dir():
            candidates.extend(subdir.iterdir())

    found = set()
    for path in candidates:
        if not path.is_symlink():
            continue
        try:
            raw_target = os.readlink(path)
        except OSError:
            continue
        target = Path(os.path.normpath(path.parent / raw_target))
        if _is_repo_target(target, root):
            found.add(Link(target, path))

    return sorted(found)
