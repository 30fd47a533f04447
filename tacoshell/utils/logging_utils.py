from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Callable, Iterator, TextIO

DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"
DEFAULT_RETENTION_DAYS = 7
RAW_TERMINATOR = "\r\n"
_logger = logging.getLogger("tacoshell.logging")


_now_func: Callable[[], datetime] = datetime.now


def _now() -> datetime:
    return _now_func()


class DailySymlinkFileHandler(logging.FileHandler):
    """Log to ``<stem>-YYYY-MM-DD.log`` beside ``link_path``.

    ``link_path`` is a symlink to the file for the current day. Dated files
    older than ``retention_days`` are removed whenever the day changes.
    """

    def __init__(
        self,
        link_path: Path | str,
        *,
        retention_days: int = DEFAULT_RETENTION_DAYS,
        encoding: str = "utf-8",
    ) -> None:
        self.link_path = Path(link_path).expanduser().absolute()
        self.link_path.parent.mkdir(parents=True, exist_ok=True)
        self.retention_days = max(1, retention_days)
        self._day = _now().date()
        super().__init__(self._file_for(self._day), encoding=encoding)
        self._after_rollover()

    @property
    def current_log_path(self) -> Path:
        return Path(self.baseFilename)

    def _file_for(self, day: date) -> Path:
        return self.link_path.with_name(f"{self.link_path.stem}-{day:%Y-%m-%d}.log")

    def emit(self, record: logging.LogRecord) -> None:
        today = _now().date()
        if today != self._day:
            self._day = today
            if self.stream is not None:
                self.stream.close()
                self.stream = None
            self.baseFilename = str(self._file_for(today))
            self._after_rollover()
        super().emit(record)

    def _after_rollover(self) -> None:
        current = self.current_log_path
        cutoff = self._day - timedelta(days=self.retention_days - 1)
        prefix_len = len(self.link_path.stem) + 1
        for old in self.link_path.parent.glob(f"{self.link_path.stem}-*.log"):
            try:
                day = datetime.strptime(old.stem[prefix_len:], "%Y-%m-%d").date()
            except ValueError:
                continue
            if day < cutoff and old != current:
                old.unlink(missing_ok=True)

        try:
            if self.link_path.is_symlink() or self.link_path.exists():
                self.link_path.unlink()
            self.link_path.symlink_to(current)
        except OSError as exc:
            _logger.warning("Could not point %s at %s: %s", self.link_path, current, exc)


def configure_daily_file_logger(
    log_path: Path | str | None,
    *,
    level: int = logging.INFO,
    fmt: str = DEFAULT_LOG_FORMAT,
    retention_days: int = DEFAULT_RETENTION_DAYS,
    stream: TextIO | None = None,
) -> Path | None:
    """Send log records to stderr (or ``stream``) and, with ``log_path``, a daily file.

    Returns the dated file in use, or None without ``log_path``.
    """
    console = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handlers: list[logging.Handler] = [console]
    daily_file = None
    if log_path:
        file_handler = DailySymlinkFileHandler(log_path, retention_days=retention_days)
        daily_file = file_handler.current_log_path
        handlers.insert(0, file_handler)

    logging.basicConfig(level=level, format=fmt, handlers=handlers, force=True)
    logging.getLogger("paramiko").setLevel(max(level, logging.WARNING))
    return daily_file


@contextmanager
def raw_terminal_logging() -> Iterator[None]:
    """End console records with CRLF while the local terminal is raw."""
    changed: list[tuple[logging.StreamHandler, str]] = []
    for handler in logging.getLogger().handlers:
        if isinstance(handler, logging.StreamHandler) and not isinstance(
            handler, logging.FileHandler
        ):
            changed.append((handler, handler.terminator))
            handler.terminator = RAW_TERMINATOR
    try:
        yield
    finally:
        for handler, terminator in changed:
            handler.terminator = terminator


__all__ = [
    "configure_daily_file_logger",
    "raw_terminal_logging",
    "DEFAULT_LOG_FORMAT",
    "DEFAULT_RETENTION_DAYS",
    "DailySymlinkFileHandler",
]
