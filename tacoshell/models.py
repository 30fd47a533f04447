from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

DEFAULT_USERNAME = "root"
DEFAULT_PORT = 22
DEFAULT_TERM = "xterm-256color"


@dataclass
class Server:
    host: str
    port: int = DEFAULT_PORT
    username: str = DEFAULT_USERNAME
    name: Optional[str] = None

    def __post_init__(self) -> None:
        if self.name is None:
            self.name = self.host

    def address(self) -> str:
        return f"{self.host}:{self.port}"


@dataclass(frozen=True)
class AuthMethod:
    """How to authenticate against a server.

    ``kind`` is one of ``password``, ``private_key`` or ``agent``. For
    ``private_key`` the ``key`` is either a path to a key file or the key text
    itself. Secrets are kept out of ``repr`` so the object is safe to log.
    """

    PASSWORD = "password"
    PRIVATE_KEY = "private_key"
    AGENT = "agent"

    kind: str
    password: Optional[str] = field(default=None, repr=False)
    key: Optional[str] = field(default=None, repr=False)
    passphrase: Optional[str] = field(default=None, repr=False)

    @classmethod
    def with_password(cls, password: str) -> "AuthMethod":
        return cls(cls.PASSWORD, password=password)

    @classmethod
    def with_private_key(cls, key: str, passphrase: Optional[str] = None) -> "AuthMethod":
        return cls(cls.PRIVATE_KEY, key=key, passphrase=passphrase)

    @classmethod
    def with_agent(cls) -> "AuthMethod":
        return cls(cls.AGENT)


@dataclass
class PtyConfig:
    term: str = DEFAULT_TERM
    cols: int = 80
    rows: int = 24
    width_pixels: int = 0
    height_pixels: int = 0


@dataclass
class FileEntry:
    name: str
    path: str
    is_dir: bool
    size: int
    modified: Optional[datetime] = None
    permissions: Optional[int] = None


@dataclass
class CommandResult:
    stdout: bytes
    stderr: bytes
    exit_status: int

    @property
    def ok(self) -> bool:
        return self.exit_status == 0
