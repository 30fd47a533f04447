"""tacoshell package public API."""

from tacoshell.__about__ import __version__
from tacoshell.errors import (
    AuthenticationError,
    ConfigError,
    ConnectError,
    SessionError,
    TacoshellError,
    TransferError,
)
from tacoshell.models import AuthMethod, PtyConfig, Server
from tacoshell.session import SSHSession

__all__ = [
    "AuthMethod",
    "AuthenticationError",
    "ConfigError",
    "ConnectError",
    "PtyConfig",
    "SSHSession",
    "Server",
    "SessionError",
    "TacoshellError",
    "TransferError",
    "__version__",
]
