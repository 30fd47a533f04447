"""Copy bytes between local streams and an SSH channel."""

from __future__ import annotations

import logging
import socket
import threading
from typing import BinaryIO, Callable, Optional

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1024


class StreamRelay:
    """Relay a channel to local binary streams until the remote side closes.

    Local input is forwarded by a daemon thread, so a read blocked on a
    terminal never keeps the process alive. When the input reaches EOF the
    channel's write side is shut down, which the remote end sees as EOF.
    Remote stderr gets its own thread when a ``stderr`` sink is given; a PTY
    channel merges it into stdout.
    """

    def __init__(
        self,
        channel,
        stdin: Optional[BinaryIO] = None,
        stdout: Optional[BinaryIO] = None,
        stderr: Optional[BinaryIO] = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ):
        self.channel = channel
        self.stdin = stdin
        self.stdout = stdout
        self.stderr = stderr
        self.buffer_size = buffer_size
        self._input_thread: Optional[threading.Thread] = None

    def run(self) -> int:
        """Block until the channel closes and return the remote exit status."""
        if self.stdin is not None:
            self._input_thread = threading.Thread(
                target=self._forward_input, name="tacoshell-stdin", daemon=True
            )
            self._input_thread.start()

        stderr_thread = None
        if self.stderr is not None:
            stderr_thread = threading.Thread(
                target=self._copy_output,
                args=(self.channel.recv_stderr, self.stderr),
                name="tacoshell-stderr",
                daemon=True,
            )
            stderr_thread.start()

        self._copy_output(self.channel.recv, self.stdout)
        if stderr_thread is not None:
            stderr_thread.join()

        status = self.channel.recv_exit_status()
        logger.debug("Remote side exited with status %s", status)
        return status

    def _copy_output(self, recv: Callable[[int], bytes], sink: Optional[BinaryIO]) -> None:
        while True:
            try:
                data = recv(self.buffer_size)
            except socket.timeout:
                continue
            except OSError as exc:
                logger.debug("Channel read stopped: %s", exc)
                return
            if not data:
                return
            if sink is None:
                continue
            sink.write(data)
            sink.flush()

    def _forward_input(self) -> None:
        read = getattr(self.stdin, "read1", None) or self.stdin.read
        while True:
            try:
                data = read(self.buffer_size)
            except (OSError, ValueError) as exc:
                logger.debug("Local input closed: %s", exc)
                return
            if self.channel.closed:
                return
            try:
                if not data:
                    self.channel.shutdown_write()
                    return
                self.channel.sendall(data)
            except OSError as exc:
                logger.debug("Channel write stopped: %s", exc)
                return
