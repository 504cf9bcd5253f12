"""Test fixtures for dotlink."""

import io

import pytest

from dotlink.config import Settings
from dotlink.dryrun import DryRunCounter
from dotlink.ledger import Ledger
from dotlink.output import Output
from dotlink.runner import Runner


@pytest.fixture
def home(tmp_path):
    """Empty home directory."""
    path = tmp_path / "home"
    path.mkdir()
    return path


@pytest.fixture
def dotfiles_root(tmp_path):
    """Dotfiles repository with a few files to link."""
    root = tmp_path / "dotfiles"
    (root / "git").mkdir(parents=True)
    (root / "git" / "gitconfig").write_text("[user]\n\tname = Test\n")
    (root / "tmux").mkdir()
    (root / "tmux" / "tmux.conf").write_text("set -g mouse on\n")
    (root / "fish").mkdir()
    (root / "fish" / "config.fish").write_text("set -x EDITOR vim\n")
    return root


@pytest.fixture
def settings(tmp_path, home, dotfiles_root):
    """Real-mode verbose settings rooted in tmp_path."""
    tmp_dir = tmp_path / "tmp"
    tmp_dir.mkdir()
    return Settings(root=dotfiles_root, home=home, tmp_dir=tmp_dir, verbose=True)


@pytest.fixture
def output():
    """Output writing to in-memory streams."""
    return Output(no_color=True, verbose=True, stream=io.StringIO(), err_stream=io.StringIO())


@pytest.fixture
def runner(settings, output):
    """Real-mode runner."""
    return Runner(settings, output)


@pytest.fixture
def ledger(settings, runner):
    """Ledger in the dotfiles repository."""
    return Ledger(settings.ledger_path, runner)


@pytest.fixture
def dry_counter(settings):
    """Enabled dry-run counter in the temp directory."""
    counter = DryRunCounter(settings.tmp_dir / "dotfiles-dryrun-count.test", enabled=True)
    counter.init()
    return counter


@pytest.fixture
def dry_runner(settings, output, dry_counter):
    """Preview-mode runner sharing the dry-run counter."""
    return Runner(settings.replace(dry_run=True), output, dry_counter)


@pytest.fixture
def dry_ledger(settings, dry_runner):
    """Ledger bound to the preview-mode runner."""
    return Ledger(settings.ledger_path, dry_runner)
