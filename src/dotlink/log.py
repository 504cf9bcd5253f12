"""Session log file setup."""

import logging
from datetime import datetime
from pathlib import Path
from typing import Sequence

LOG_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"

_BANNER = "=" * 40


def init_logging(log_path: Path | None, argv: Sequence[str]) -> logging.Handler | None:
    """Attach a file handler to the package logger and open a session.

    Args:
        log_path: Log file to append to, or None to disable logging
        argv: Command line of this session, recorded in the banner

    Returns:
        The installed handler, or None if logging is disabled
    """
    if log_path is None:
        return None

    log_path.parent.mkdir(parents=True, exist_ok=True)

    # Banner is written raw so it stands out between sessions
    with open(log_path, "a", encoding="utf-8") as f:
        f.write("\n")
        f.write(f"{_BANNER}\n")
        f.write(f"[{datetime.now().astimezone().isoformat(timespec='seconds')}] Session start: {' '.join(argv)}\n")
        f.write(f"{_BANNER}\n")

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z"))

    package_logger = logging.getLogger("dotlink")
    package_logger.addHandler(handler)
    package_logger.setLevel(logging.DEBUG)
    return handler


def close_logging(handler: logging.Handler | None) -> None:
    """Detach and close a handler installed by init_logging."""
    if handler is None:
        return
    logging.getLogger("dotlink").removeHandler(handler)
    handler.close()
