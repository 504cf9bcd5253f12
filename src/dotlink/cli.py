"""Command-line interface."""

import argparse
import os
import signal
import sys

from . import __version__
from .config import ConfigError, Settings, load_installers, load_manifest
from .dryrun import DryRunCounter
from .ledger import Ledger, discover_repo_links
from .lock import Lock, LockError
from .log import close_logging, init_logging
from .output import Output, set_output
from .runner import ExecutionError, Runner
from .symlinks import ensure_dir, ensure_symlink


def main(argv: list[str] | None = None) -> int:
    """Main entry point.

    Returns:
        Exit code (0 for success, 1 for error, 2 for warnings, or the
        exit status of a failed command).
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    settings = Settings.from_env()
    if getattr(args, "dry_run", False):
        settings = settings.replace(dry_run=True)
    if getattr(args, "verbose", False):
        settings = settings.replace(verbose=True)

    # Set up output handler
    output = Output(no_color=args.no_color, quiet=args.quiet, verbose=settings.verbose)
    set_output(output)

    if args.command is None:
        parser.print_help()
        return 0

    # Termination must unwind through the lock's release
    signal.signal(signal.SIGTERM, _exit_on_signal)
    signal.signal(signal.SIGHUP, _exit_on_signal)

    handler = init_logging(settings.log_path, [parser.prog] + (argv if argv is not None else sys.argv[1:]))
    try:
        return _dispatch(args, settings, output)
    finally:
        close_logging(handler)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dotlink",
        description="Deploy dotfiles by symlinking them from a managed repository",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Global flags
    parser.add_argument(
        "--no-color",
        action="store_true",
        help="Disable colored output",
    )
    parser.add_argument(
        "--quiet", "-q",
        action="store_true",
        help="Suppress informational output",
    )

    subparsers = parser.add_subparsers(dest="command")

    # install command
    install_parser = subparsers.add_parser("install", help="Create symlinks listed in .dotfiles.yaml")
    _add_mode_flags(install_parser)

    # unlink command
    unlink_parser = subparsers.add_parser("unlink", help="Remove tracked symlinks and untrack them")
    _add_mode_flags(unlink_parser)

    # status command
    status_parser = subparsers.add_parser("status", aliases=["doctor"], help="Check tracked and discovered links")
    status_parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show extra detail",
    )

    # links command
    subparsers.add_parser("links", help="List tracked links")

    return parser


def _add_mode_flags(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--dry-run", "-n",
        action="store_true",
        help="Preview changes without executing",
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Show extra detail",
    )


def _exit_on_signal(signum, frame) -> None:
    raise SystemExit(128 + signum)


def _dispatch(args, settings: Settings, output: Output) -> int:
    handlers = {
        "install": lambda: cmd_install(settings, output),
        "unlink": lambda: cmd_unlink(settings, output),
        "status": lambda: cmd_status(settings, output),
        "doctor": lambda: cmd_status(settings, output),
        "links": lambda: cmd_links(settings, output),
    }

    try:
        return handlers[args.command]()
    except ConfigError as e:
        output.error(str(e))
        return 1
    except LockError as e:
        output.error(str(e))
        return 1
    except ExecutionError as e:
        output.error(str(e))
        return e.returncode


def cmd_install(settings: Settings, output: Output) -> int:
    """Execute the install command."""
    links = load_manifest(settings)
    installers = load_installers(settings)

    counter = DryRunCounter.for_session(settings)
    counter.init()
    runner = Runner(settings, output, counter)
    ledger = Ledger(settings.ledger_path, runner)

    try:
        with Lock(settings.lock_path, output=output):
            output.section("Symlinks")
            for source, destination in links:
                ensure_dir(destination.parent, runner)
                ensure_symlink(source, destination, runner, ledger)

            if installers:
                output.section("Installers")
            for script in installers:
                output.info(f"Running {script.relative_to(settings.root)}")
                runner.run_installer(script)
    finally:
        count = counter.summarize()

    if settings.dry_run:
        output.dry_run_summary(count)
    else:
        output.success(f"{len(links)} link(s) in place.")
    return 0


def cmd_unlink(settings: Settings, output: Output) -> int:
    """Execute the unlink command."""
    counter = DryRunCounter.for_session(settings)
    counter.init()
    runner = Runner(settings, output, counter)
    ledger = Ledger(settings.ledger_path, runner)

    try:
        with Lock(settings.lock_path, output=output):
            output.section("Unlink")
            # Snapshot first; untracking rewrites the file
            for link in list(ledger.list_tracked()):
                destination = link.destination
                if destination.is_symlink() and os.readlink(destination) == str(link.source):
                    runner.run("rm", destination)
                    if not settings.dry_run:
                        output.success(f"Removed: {destination}")
                else:
                    output.verbose(f"Not linked to repository, leaving in place: {destination}")
                ledger.untrack(link.source, link.destination)
    finally:
        count = counter.summarize()

    if settings.dry_run:
        output.dry_run_summary(count)
    return 0


def cmd_status(settings: Settings, output: Output) -> int:
    """Execute the status command (read-only)."""
    runner = Runner(settings, output)
    ledger = Ledger(settings.ledger_path, runner)
    problems = 0

    output.section("Tracked links")
    tracked = list(ledger.list_tracked())
    if not tracked:
        output.info("No tracked links")

    for link in tracked:
        destination = link.destination
        if not destination.is_symlink():
            output.warning(f"Missing: {destination}")
            problems += 1
        elif os.readlink(destination) != str(link.source):
            output.warning(f"Wrong target: {destination} → {os.readlink(destination)} (expected {link.source})")
            problems += 1
        elif not link.source.exists():
            output.warning(f"Broken: {destination} → {link.source}")
            problems += 1
        else:
            output.success(f"{destination} → {link.source}")

    output.section("Untracked repository links")
    untracked = [link for link in discover_repo_links(settings.home, settings.root) if link not in tracked]
    if not untracked:
        output.info("None found")
    for link in untracked:
        output.warning(f"Not in ledger: {link.destination} → {link.source}")
        problems += 1

    return 2 if problems else 0


def cmd_links(settings: Settings, output: Output) -> int:
    """Execute the links command."""
    ledger = Ledger(settings.ledger_path, Runner(settings, output))
    for link in ledger:
        print(link.entry, file=output.stream)
    return 0
