"""Exception hierarchy raised by tacoshell."""


class TacoshellError(Exception):
    """Base class for every error tacoshell raises on purpose."""


class ConnectError(TacoshellError):
    """TCP dial or SSH handshake failed."""


class HostKeyError(ConnectError):
    """The server host key was rejected."""


class AuthenticationError(TacoshellError):
    pass


class SessionError(TacoshellError):
    """Opening a channel, requesting a PTY, or starting a shell/command failed."""


class TransferError(TacoshellError):
    pass


class ConfigError(TacoshellError):
    """Settings file, ssh config, or a flag value is invalid."""
