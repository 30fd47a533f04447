"""Interactive shell and remote command runners built on :class:`SSHSession`."""

from __future__ import annotations

import logging
from contextlib import nullcontext
from typing import BinaryIO, Optional

from tacoshell.models import DEFAULT_TERM
from tacoshell.relay import StreamRelay
from tacoshell.session import SSHSession, close_channel
from tacoshell.terminal import forward_window_changes, pty_config_for, raw_mode
from tacoshell.utils.logging_utils import raw_terminal_logging

logger = logging.getLogger(__name__)


def run_interactive_shell(
    session: SSHSession,
    stdin: BinaryIO,
    stdout: BinaryIO,
    term: str = DEFAULT_TERM,
) -> int:
    """Open a PTY shell, relay the local streams through it and wait for exit.

    Returns the remote exit status (-1 when the server did not send one).
    """
    channel = session.open_channel()
    try:
        pty = pty_config_for(stdin, term)
        session.request_pty(channel, pty)
        relay = StreamRelay(channel, stdin=stdin, stdout=stdout)

        with raw_mode(stdin) as raw:
            with raw_terminal_logging() if raw else nullcontext():
                if raw:
                    logger.info("Terminal mode set to raw")
                else:
                    logger.info("Not a terminal, skipping raw mode")
                session.start_shell(channel)
                with forward_window_changes(channel, stdin):
                    status = relay.run()
    finally:
        close_channel(channel)

    logger.info("Session ended")
    return status


def run_command(
    session: SSHSession,
    command: str,
    stdin: Optional[BinaryIO],
    stdout: BinaryIO,
    stderr: BinaryIO,
    tty: bool = False,
    term: str = DEFAULT_TERM,
) -> int:
    """Execute one command, streaming its output, and return its exit status."""
    pty = pty_config_for(stdin, term) if tty else None
    channel = session.exec(command, pty=pty)
    try:
        # a PTY merges stderr into stdout on the remote side
        relay = StreamRelay(
            channel, stdin=stdin, stdout=stdout, stderr=None if tty else stderr
        )
        with raw_mode(stdin) if tty else nullcontext(False) as raw:
            with raw_terminal_logging() if raw else nullcontext():
                status = relay.run()
    finally:
        close_channel(channel)
    return status
