from __future__ import annotations

import logging
import os
import signal
import sys
import threading
from contextlib import contextmanager
from typing import Iterator

from tacoshell.errors import SessionError
from tacoshell.models import DEFAULT_TERM, PtyConfig

IS_WINDOWS = sys.platform.startswith("win")
if not IS_WINDOWS:
    import termios
    import tty

logger = logging.getLogger(__name__)

FALLBACK_SIZE = (80, 24)


def _fileno(stream) -> int | None:
    try:
        return stream.fileno()
    except (AttributeError, OSError, ValueError):
        return None


def is_terminal(stream) -> bool:
    fd = _fileno(stream)
    return fd is not None and os.isatty(fd)


def terminal_size(stream) -> tuple[int, int]:
    """Return ``(cols, rows)`` of the terminal behind ``stream``, or 80x24."""
    fd = _fileno(stream)
    if fd is None:
        return FALLBACK_SIZE
    try:
        size = os.get_terminal_size(fd)
    except OSError:
        return FALLBACK_SIZE
    if size.columns <= 0 or size.lines <= 0:
        return FALLBACK_SIZE
    return size.columns, size.lines


def pty_config_for(stream, term: str = DEFAULT_TERM) -> PtyConfig:
    cols, rows = terminal_size(stream)
    return PtyConfig(term=term, cols=cols, rows=rows)


@contextmanager
def raw_mode(stream) -> Iterator[bool]:
    """Put the terminal behind ``stream`` in raw mode for the block.

    Yields False and changes nothing when the stream is not a terminal. The
    previous mode is restored on exit; a failed restore is logged, not raised.
    """
    if IS_WINDOWS or not is_terminal(stream):
        yield False
        return

    fd = stream.fileno()
    try:
        old_attrs = termios.tcgetattr(fd)
    except termios.error as exc:
        logger.warning("Failed to read terminal mode: %s", exc)
        old_attrs = None
    if old_attrs is None:
        yield False
        return

    try:
        try:
            tty.setraw(fd)
        except termios.error as exc:
            raise SessionError(f"Failed to set terminal to raw mode: {exc}") from exc
        yield True
    finally:
        try:
            termios.tcsetattr(fd, termios.TCSADRAIN, old_attrs)
        except termios.error as exc:
            logger.warning("Failed to restore terminal mode: %s", exc)


@contextmanager
def forward_window_changes(channel, stream) -> Iterator[None]:
    """Resize the remote PTY whenever the local terminal is resized."""
    sigwinch = getattr(signal, "SIGWINCH", None)
    if (
        sigwinch is None
        or not is_terminal(stream)
        or threading.current_thread() is not threading.main_thread()
    ):
        yield
        return

    def _on_resize(signum, frame):
        cols, rows = terminal_size(stream)
        try:
            channel.resize_pty(width=cols, height=rows)
        except Exception as exc:
            logger.warning("Failed to resize PTY to %sx%s: %s", cols, rows, exc)
        else:
            logger.debug("Resized PTY to %sx%s", cols, rows)

    previous = signal.signal(sigwinch, _on_resize)
    try:
        yield
    finally:
        signal.signal(sigwinch, previous)
