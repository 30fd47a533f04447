from __future__ import annotations

import io
import logging
import os
from dataclasses import dataclass
from typing import Callable, Dict, Optional

import paramiko

from tacoshell.errors import (
    AuthenticationError,
    ConnectError,
    HostKeyError,
    SessionError,
)
from tacoshell.models import AuthMethod, CommandResult, PtyConfig, Server
from tacoshell.relay import StreamRelay
from tacoshell.utils.config import Config

logger = logging.getLogger(__name__)

# paramiko dropped DSA keys; these are tried in order for in-memory key text
_KEY_CLASSES = (paramiko.Ed25519Key, paramiko.ECDSAKey, paramiko.RSAKey)
_KEY_TEXT_MARKER = "PRIVATE KEY-----"
_NO_AUTH_METHODS = "No authentication methods available"


@dataclass
class ConnectSettings:
    timeout: float = 10
    keepalive_interval: int = 0
    strict_host_key_checking: bool = False
    known_hosts: Optional[str] = None

    @classmethod
    def from_config(cls, config: Config) -> "ConnectSettings":
        return cls(
            timeout=config.get_int("connect_timeout"),
            keepalive_interval=config.get_int("keepalive_interval"),
            strict_host_key_checking=config.get_bool("strict_host_key_checking"),
            known_hosts=config.get_path("known_hosts"),
        )


def load_private_key(key_text: str, passphrase: Optional[str] = None) -> paramiko.PKey:
    """Parse private key text without writing it to disk."""
    last_error: Optional[Exception] = None
    for key_class in _KEY_CLASSES:
        try:
            return key_class.from_private_key(io.StringIO(key_text), password=passphrase)
        except paramiko.PasswordRequiredException as exc:
            raise AuthenticationError(
                "Private key is encrypted; a passphrase is required"
            ) from exc
        except (paramiko.SSHException, ValueError) as exc:
            last_error = exc
    raise AuthenticationError(f"Unsupported or invalid private key: {last_error}")


def _auth_kwargs(auth: AuthMethod) -> Dict:
    if auth.kind == AuthMethod.PASSWORD:
        return {"password": auth.password if auth.password is not None else ""}
    if auth.kind == AuthMethod.PRIVATE_KEY:
        key = auth.key or ""
        key_path = os.path.expanduser(key)
        if os.path.isfile(key_path):
            return {"key_filename": key_path, "passphrase": auth.passphrase}
        if _KEY_TEXT_MARKER not in key:
            raise AuthenticationError(f"Private key file not found: {key_path}")
        return {"pkey": load_private_key(key, auth.passphrase)}
    if auth.kind == AuthMethod.AGENT:
        return {"allow_agent": True}
    raise AuthenticationError(f"Unknown authentication method: {auth.kind}")


class SSHSession:
    """An authenticated SSH connection to one server."""

    def __init__(self, client: paramiko.SSHClient, server: Server):
        self.client = client
        self.server = server

    @classmethod
    def connect(
        cls,
        server: Server,
        auth: AuthMethod,
        settings: Optional[ConnectSettings] = None,
        client_factory: Callable[[], paramiko.SSHClient] = paramiko.SSHClient,
    ) -> "SSHSession":
        settings = settings or ConnectSettings()
        address = server.address()
        logger.info("Connecting to %s as %s", address, server.username)

        client = client_factory()
        if settings.strict_host_key_checking:
            client.load_system_host_keys()
            if settings.known_hosts and os.path.exists(settings.known_hosts):
                client.load_host_keys(settings.known_hosts)
            client.set_missing_host_key_policy(paramiko.RejectPolicy())
        else:
            client.set_missing_host_key_policy(paramiko.AutoAddPolicy())

        connect_kwargs = {
            "hostname": server.host,
            "port": server.port,
            "username": server.username,
            "timeout": settings.timeout,
            "banner_timeout": settings.timeout,
            "auth_timeout": settings.timeout,
            "allow_agent": False,
            "look_for_keys": False,
        }
        try:
            connect_kwargs.update(_auth_kwargs(auth))
            client.connect(**connect_kwargs)
        except paramiko.BadHostKeyException as exc:
            _close_quietly(client)
            raise HostKeyError(f"Host key verification failed for {address}: {exc}") from exc
        except paramiko.AuthenticationException as exc:
            _close_quietly(client)
            raise AuthenticationError(f"Authentication failed for {server.username}@{address}: {exc}") from exc
        except AuthenticationError:
            _close_quietly(client)
            raise
        except paramiko.SSHException as exc:
            _close_quietly(client)
            if _NO_AUTH_METHODS in str(exc):
                raise AuthenticationError(
                    f"Authentication failed for {server.username}@{address}: {exc}"
                ) from exc
            raise ConnectError(f"SSH handshake with {address} failed: {exc}") from exc
        except OSError as exc:
            _close_quietly(client)
            raise ConnectError(f"Failed to connect to {address}: {exc}") from exc

        if settings.keepalive_interval > 0:
            transport = client.get_transport()
            if transport is not None:
                transport.set_keepalive(settings.keepalive_interval)

        logger.info("Connected to server")
        return cls(client, server)

    @property
    def is_active(self) -> bool:
        transport = self.client.get_transport()
        return bool(transport and transport.is_active() and transport.is_authenticated())

    def open_channel(self) -> paramiko.Channel:
        transport = self.client.get_transport()
        if transport is None or not transport.is_active():
            raise SessionError("Connection is closed")
        try:
            channel = transport.open_session()
        except (paramiko.SSHException, OSError) as exc:
            raise SessionError(f"Failed to create session: {exc}") from exc
        logger.info("Session created")
        return channel

    def request_pty(self, channel: paramiko.Channel, pty: PtyConfig) -> None:
        logger.debug("Requesting PTY: %s %sx%s", pty.term, pty.cols, pty.rows)
        try:
            channel.get_pty(
                term=pty.term,
                width=pty.cols,
                height=pty.rows,
                width_pixels=pty.width_pixels,
                height_pixels=pty.height_pixels,
            )
        except (paramiko.SSHException, OSError) as exc:
            raise SessionError(f"Request for pty failed: {exc}") from exc
        logger.info("PTY requested")

    def start_shell(self, channel: paramiko.Channel) -> None:
        try:
            channel.invoke_shell()
        except (paramiko.SSHException, OSError) as exc:
            raise SessionError(f"Failed to start shell: {exc}") from exc
        logger.info("Shell started")

    def exec(self, command: str, pty: Optional[PtyConfig] = None) -> paramiko.Channel:
        channel = self.open_channel()
        try:
            if pty is not None:
                self.request_pty(channel, pty)
            logger.debug("Executing %r", command)
            channel.exec_command(command)
        except (paramiko.SSHException, OSError) as exc:
            close_channel(channel)
            raise SessionError(f"Failed to execute command: {exc}") from exc
        except SessionError:
            close_channel(channel)
            raise
        return channel

    def run(self, command: str) -> CommandResult:
        """Execute ``command`` and collect its output and exit status."""
        channel = self.exec(command)
        stdout, stderr = io.BytesIO(), io.BytesIO()
        try:
            status = StreamRelay(channel, stdout=stdout, stderr=stderr).run()
        finally:
            close_channel(channel)
        return CommandResult(stdout.getvalue(), stderr.getvalue(), status)

    def sftp(self) -> paramiko.SFTPClient:
        try:
            return self.client.open_sftp()
        except (paramiko.SSHException, OSError) as exc:
            raise SessionError(f"Failed to open SFTP: {exc}") from exc

    def close(self) -> None:
        try:
            self.client.close()
        except Exception as exc:
            logger.warning("Failed to close connection to %s: %s", self.server.address(), exc)
        else:
            logger.debug("Closed connection to %s", self.server.address())

    def __enter__(self) -> "SSHSession":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def close_channel(channel: paramiko.Channel) -> None:
    try:
        channel.close()
    except Exception as exc:
        logger.warning("Failed to close session: %s", exc)


def _close_quietly(client: paramiko.SSHClient) -> None:
    try:
        client.close()
    except Exception as exc:
        logger.debug("Ignoring error while closing failed client: %s", exc)
