import json
import logging
import threading

import pytest


class FakeChannel:
    """Stands in for ``paramiko.Channel``; output is served in small chunks."""

    def __init__(
        self,
        output=b"",
        stderr=b"",
        exit_status=0,
        chunk_size=4,
        wait_for_input=False,
    ):
        self._output = [output[i : i + chunk_size] for i in range(0, len(output), chunk_size)]
        self._stderr = [stderr[i : i + chunk_size] for i in range(0, len(stderr), chunk_size)]
        self.exit_status = exit_status
        self.wait_for_input = wait_for_input
        self.input_closed = threading.Event()
        self.sent = bytearray()
        self.closed = False
        self.pty_requests = []
        self.resizes = []
        self.commands = []
        self.shell_started = False

    def get_pty(self, term="vt100", width=80, height=24, width_pixels=0, height_pixels=0):
        self.pty_requests.append((term, width, height, width_pixels, height_pixels))

    def invoke_shell(self):
        self.shell_started = True

    def exec_command(self, command):
        self.commands.append(command)

    def resize_pty(self, width=80, height=24, width_pixels=0, height_pixels=0):
        self.resizes.append((width, height))

    def recv(self, nbytes):
        if self._output:
            return self._output.pop(0)
        if self.wait_for_input:
            self.input_closed.wait(5)
        return b""

    def recv_stderr(self, nbytes):
        if self._stderr:
            return self._stderr.pop(0)
        return b""

    def sendall(self, data):
        self.sent.extend(data)

    def shutdown_write(self):
        self.input_closed.set()

    def recv_exit_status(self):
        return self.exit_status

    def close(self):
        self.closed = True


class FakeTransport:
    def __init__(self, channel=None, active=True):
        self.channel = channel or FakeChannel()
        self.active = active
        self.keepalive = None

    def is_active(self):
        return self.active

    def is_authenticated(self):
        return self.active

    def open_session(self):
        return self.channel

    def set_keepalive(self, interval):
        self.keepalive = interval


class FakeClient:
    """Stands in for ``paramiko.SSHClient``."""

    def __init__(self, transport=None, connect_error=None, sftp=None):
        self.transport = transport or FakeTransport()
        self.connect_error = connect_error
        self.sftp = sftp
        self.connect_kwargs = None
        self.policy = None
        self.system_host_keys_loaded = False
        self.host_key_files = []
        self.closed = False

    def set_missing_host_key_policy(self, policy):
        self.policy = policy

    def load_system_host_keys(self):
        self.system_host_keys_loaded = True

    def load_host_keys(self, filename):
        self.host_key_files.append(filename)

    def connect(self, **kwargs):
        self.connect_kwargs = kwargs
        if self.connect_error is not None:
            raise self.connect_error

    def get_transport(self):
        return self.transport

    def open_sftp(self):
        return self.sftp

    def close(self):
        self.closed = True


@pytest.fixture
def fake_channel_factory():
    return FakeChannel


@pytest.fixture
def fake_client_factory():
    return FakeClient


@pytest.fixture
def fake_transport_factory():
    return FakeTransport


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep the user's real settings and ssh config out of every test."""
    home = tmp_path / "tacoshell-home"
    home.mkdir()
    (home / "config.json").write_text(
        json.dumps({"ssh_config": "%{TACOSHELL_HOME}/ssh_config"}), encoding="utf-8"
    )
    monkeypatch.setenv("TACOSHELL_HOME", str(home))
    return home


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Drop handlers installed by ``configure_daily_file_logger`` after each test."""
    from tacoshell.utils.logging_utils import DailySymlinkFileHandler

    root = logging.getLogger()
    level = root.level
    paramiko_level = logging.getLogger("paramiko").level
    yield
    for handler in list(root.handlers):
        if isinstance(handler, DailySymlinkFileHandler) or type(handler) is logging.StreamHandler:
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)
    logging.getLogger("paramiko").setLevel(paramiko_level)
