import stat
from datetime import datetime, timezone
from pathlib import Path

import paramiko
import pytest


def _attrs(filename, mode, size=0, mtime=None):
    attrs = paramiko.SFTPAttributes()
    attrs.filename = filename
    attrs.st_mode = mode
    attrs.st_size = size
    attrs.st_mtime = mtime
    return attrs


class FakeSFTP:
    def __init__(self, entries=None, dirs=()):
        self.entries = entries or {}
        self.dirs = set(dirs)
        self.calls = []
        self.closed = False

    def listdir_attr(self, path):
        if path not in self.entries:
            raise FileNotFoundError(2, "No such file")
        return self.entries[path]

    def stat(self, path):
        if path in self.dirs:
            return _attrs(path, stat.S_IFDIR | 0o755)
        if path == "/etc/hosts":
            return _attrs("hosts", stat.S_IFREG | 0o644, size=120, mtime=0)
        raise FileNotFoundError(2, "No such file")

    def get(self, remotepath, localpath, callback=None):
        self.calls.append(("get", remotepath, localpath))
        Path(localpath).write_bytes(b"data")
        if callback:
            callback(4, 4)

    def put(self, localpath, remotepath, callback=None):
        self.calls.append(("put", localpath, remotepath))
        if callback:
            callback(4, 4)

    def mkdir(self, path, mode=0o777):
        self.calls.append(("mkdir", path, mode))

    def remove(self, path):
        if path == "/readonly":
            raise PermissionError(13, "Permission denied")
        self.calls.append(("remove", path))

    def rmdir(self, path):
        self.calls.append(("rmdir", path))

    def close(self):
        self.closed = True


def test_list_dir_sorted_entries():
    from tacoshell.transfer import SFTPTransfer

    sftp = FakeSFTP(
        entries={
            "/srv": [
                _attrs("web.conf", stat.S_IFREG | 0o640, size=512, mtime=1700000000),
                _attrs("app", stat.S_IFDIR | 0o755, size=4096, mtime=1700000000),
            ]
        }
    )
    entries = SFTPTransfer(sftp).list_dir("/srv")

    assert [entry.name for entry in entries] == ["app", "web.conf"]
    app, conf = entries
    assert app.is_dir and app.path == "/srv/app"
    assert not conf.is_dir
    assert conf.size == 512
    assert conf.permissions == 0o640
    assert conf.modified == datetime.fromtimestamp(1700000000, tz=timezone.utc)


def test_list_missing_dir_raises():
    from tacoshell.errors import TransferError
    from tacoshell.transfer import SFTPTransfer

    with pytest.raises(TransferError, match="/nope"):
        SFTPTransfer(FakeSFTP()).list_dir("/nope")


def test_stat_entry():
    from tacoshell.transfer import SFTPTransfer

    entry = SFTPTransfer(FakeSFTP()).stat("/etc/hosts")
    assert entry.name == "hosts"
    assert entry.size == 120
    assert entry.permissions == 0o644


def test_download_defaults_to_remote_name(tmp_path: Path, monkeypatch):
    from tacoshell.transfer import SFTPTransfer

    monkeypatch.chdir(tmp_path)
    sftp = FakeSFTP()
    progress = []
    written = SFTPTransfer(sftp).download(
        "/var/log/app.log", progress=lambda done, total: progress.append((done, total))
    )

    assert written == "app.log"
    assert (tmp_path / "app.log").read_bytes() == b"data"
    assert progress == [(4, 4)]


def test_download_into_local_directory(tmp_path: Path):
    from tacoshell.transfer import SFTPTransfer

    sftp = FakeSFTP()
    written = SFTPTransfer(sftp).download("/var/log/app.log", str(tmp_path))
    assert written == str(tmp_path / "app.log")


def test_upload_into_remote_directory(tmp_path: Path):
    from tacoshell.transfer import SFTPTransfer

    local = tmp_path / "build.tar.gz"
    local.write_bytes(b"archive")
    sftp = FakeSFTP(dirs={"/srv/releases"})
    transfer = SFTPTransfer(sftp)

    assert transfer.upload(str(local), "/srv/releases") == "/srv/releases/build.tar.gz"
    assert transfer.upload(str(local), "/tmp/") == "/tmp/build.tar.gz"
    assert transfer.upload(str(local)) == "build.tar.gz"
    assert transfer.upload(str(local), "/srv/new-name.tgz") == "/srv/new-name.tgz"


def test_upload_missing_local_file(tmp_path: Path):
    from tacoshell.errors import TransferError
    from tacoshell.transfer import SFTPTransfer

    with pytest.raises(TransferError, match="Local file not found"):
        SFTPTransfer(FakeSFTP()).upload(str(tmp_path / "missing"))


def test_mkdir_and_remove():
    from tacoshell.errors import TransferError
    from tacoshell.transfer import SFTPTransfer

    sftp = FakeSFTP()
    transfer = SFTPTransfer(sftp)
    transfer.mkdir("/srv/new")
    transfer.remove_file("/srv/old.txt")
    transfer.remove_dir("/srv/empty")
    transfer.close()

    assert sftp.calls == [
        ("mkdir", "/srv/new", 0o755),
        ("remove", "/srv/old.txt"),
        ("rmdir", "/srv/empty"),
    ]
    assert sftp.closed
    with pytest.raises(TransferError, match="Permission denied"):
        transfer.remove_file("/readonly")
