"""Logging helpers for redaction bot runs."""

from __future__ import annotations

from datetime import datetime
import logging
import os
from pathlib import Path

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LATEST_LINK = "latest"


def run_log_name(now: datetime | None = None, pid: int | None = None) -> str:
    stamp = (now or datetime.now()).strftime("%Y%m%dT%H%M%S")
    return f"{stamp}-{pid if pid is not None else os.getpid()}.log"


def update_latest_link(log_dir: Path, log_name: str) -> None:
    link = log_dir / LATEST_LINK
    if link.is_symlink():
        link.unlink()
    try:
        link.symlink_to(log_name)
    except OSError as exc:
        logging.getLogger(__name__).warning("RB: could not update %s link: %s", link, exc)


def configure_run_logging(log_dir: str | Path, *, verbose: bool = False) -> Path:
    """Send DEBUG to a fresh per-run file and warnings (or INFO when verbose) to the console."""
    directory = Path(log_dir)
    directory.mkdir(parents=True, exist_ok=True)
    log_name = run_log_name()
    log_path = directory / log_name

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG)
    console = logging.StreamHandler()
    console.setLevel(logging.INFO if verbose else logging.WARNING)

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    logging.basicConfig(
        level=logging.DEBUG,
        format=LOG_FORMAT,
        datefmt=LOG_DATEFMT,
        handlers=[file_handler, console],
    )
    update_latest_link(directory, log_name)
    if verbose:
        print(f"Logging to {log_path}")
    return log_path
