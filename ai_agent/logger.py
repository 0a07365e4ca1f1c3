from __future__ import annotations

import logging
import traceback
from datetime import datetime, timezone
from pathlib import Path
from typing import List, Optional

from rich.console import Console
from rich.logging import RichHandler

PACKAGE_LOGGER = "ai_agent"

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "error": logging.ERROR,
    "none": logging.CRITICAL + 10,
}


def _iso_now(created: Optional[float] = None) -> str:
    moment = datetime.fromtimestamp(created, tz=timezone.utc) if created else datetime.now(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class LogFileFormatter(logging.Formatter):
    """`<ISO timestamp> [<LEVEL>] <message>`"""

    def format(self, record: logging.LogRecord) -> str:
        level = "WARN" if record.levelno == logging.WARNING else record.levelname
        message = record.getMessage()
        if record.exc_info:
            message = f"{message} | {self.formatException(record.exc_info).splitlines()[-1]}"
        return f"{_iso_now(record.created)} [{level}] {message}"


def level_from_name(name: str) -> int:
    return _LEVELS.get(name.lower(), logging.INFO)


def setup_logging(level: str = "info", log_file: Optional[str] = None, console: Optional[Console] = None) -> logging.Logger:
    """Configure the package logger with a rich console handler and an append-only file."""
    log = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()

    console_handler = RichHandler(
        console=console or Console(stderr=True),
        show_time=False,
        show_path=False,
        markup=False,
        rich_tracebacks=False,
    )
    log.addHandler(console_handler)

    if log_file:
        path = Path(log_file).expanduser()
        path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(path, mode="a", encoding="utf-8")
        file_handler.setFormatter(LogFileFormatter())
        log.addHandler(file_handler)

    log.setLevel(level_from_name(level))
    log.propagate = False
    return log


def set_log_level(level: str) -> None:
    log = logging.getLogger(PACKAGE_LOGGER)
    if level.lower() not in _LEVELS:
        log.warning("Invalid log level: %s. Using current level.", level)
        return
    log.setLevel(_LEVELS[level.lower()])
    log.info("Log level set to %s", level)


def get_log_history(log_file: str, lines: int = 10) -> List[str]:
    path = Path(log_file).expanduser()
    if not path.exists():
        return []
    with open(path, "r", encoding="utf-8", errors="replace") as f:
        entries = [line.rstrip("\n") for line in f if line.strip()]
    return entries[-lines:]


def log_fatal(exc: BaseException, error_log: Path) -> None:
    """Append a fatal error record; failures to write are ignored."""
    details = "".join(traceback.format_exception(type(exc), exc, exc.__traceback__)).strip()
    line = f"{_iso_now()} - Fatal error: {details or exc}\n"
    try:
        error_log.parent.mkdir(parents=True, exist_ok=True)
        with open(error_log, "a", encoding="utf-8") as f:
            f.write(line)
    except OSError:
        pass
