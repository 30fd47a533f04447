from __future__ import annotations

import logging
import os
import posixpath
import stat
from datetime import datetime, timezone
from typing import Callable, List, Optional

import paramiko

from tacoshell.errors import TransferError
from tacoshell.models import FileEntry

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], None]

DEFAULT_DIR_MODE = 0o755


def _to_entry(name: str, path: str, attrs: paramiko.SFTPAttributes) -> FileEntry:
    mode = attrs.st_mode
    modified = None
    if attrs.st_mtime is not None:
        modified = datetime.fromtimestamp(attrs.st_mtime, tz=timezone.utc)
    return FileEntry(
        name=name,
        path=path,
        is_dir=mode is not None and stat.S_ISDIR(mode),
        size=attrs.st_size or 0,
        modified=modified,
        permissions=stat.S_IMODE(mode) if mode is not None else None,
    )


class SFTPTransfer:
    """File operations over an open SFTP subsystem."""

    def __init__(self, sftp: paramiko.SFTPClient):
        self.sftp = sftp

    def list_dir(self, path: str = ".") -> List[FileEntry]:
        logger.debug("Listing directory: %s", path)
        try:
            attrs_list = self.sftp.listdir_attr(path)
        except (OSError, paramiko.SSHException) as exc:
            raise TransferError(f"Failed to list directory {path}: {exc}") from exc
        entries = [
            _to_entry(attrs.filename, posixpath.join(path, attrs.filename), attrs)
            for attrs in attrs_list
        ]
        entries.sort(key=lambda entry: entry.name)
        return entries

    def stat(self, path: str) -> FileEntry:
        try:
            attrs = self.sftp.stat(path)
        except (OSError, paramiko.SSHException) as exc:
            raise TransferError(f"Failed to stat {path}: {exc}") from exc
        name = posixpath.basename(path.rstrip("/")) or path
        return _to_entry(name, path, attrs)

    def is_dir(self, path: str) -> bool:
        try:
            attrs = self.sftp.stat(path)
        except (OSError, paramiko.SSHException):
            return False
        return attrs.st_mode is not None and stat.S_ISDIR(attrs.st_mode)

    def download(
        self,
        remote_path: str,
        local_path: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Copy a remote file to ``local_path`` and return the path written.

        ``local_path`` defaults to the remote file name in the working
        directory; an existing local directory receives the remote file name.
        """
        name = posixpath.basename(remote_path.rstrip("/"))
        if not local_path:
            local_path = name
        elif os.path.isdir(local_path):
            local_path = os.path.join(local_path, name)
        logger.debug("Downloading %s to %s", remote_path, local_path)
        try:
            self.sftp.get(remote_path, local_path, callback=progress)
        except (OSError, paramiko.SSHException) as exc:
            raise TransferError(f"Failed to download {remote_path}: {exc}") from exc
        return local_path

    def upload(
        self,
        local_path: str,
        remote_path: Optional[str] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> str:
        """Copy a local file to ``remote_path`` and return the remote path written."""
        if not os.path.isfile(local_path):
            raise TransferError(f"Local file not found: {local_path}")
        name = os.path.basename(local_path)
        if not remote_path:
            remote_path = name
        elif remote_path.endswith("/") or self.is_dir(remote_path):
            remote_path = posixpath.join(remote_path, name)
        logger.debug("Uploading %s to %s", local_path, remote_path)
        try:
            self.sftp.put(local_path, remote_path, callback=progress)
        except (OSError, paramiko.SSHException) as exc:
            raise TransferError(f"Failed to upload {local_path}: {exc}") from exc
        return remote_path

    def mkdir(self, path: str, mode: int = DEFAULT_DIR_MODE) -> None:
        logger.debug("Creating directory: %s", path)
        try:
            self.sftp.mkdir(path, mode)
        except (OSError, paramiko.SSHException) as exc:
            raise TransferError(f"Failed to create directory {path}: {exc}") from exc

    def remove_file(self, path: str) -> None:
        logger.debug("Removing file: %s", path)
        try:
            self.sftp.remove(path)
        except (OSError, paramiko.SSHException) as exc:
            raise TransferError(f"Failed to remove file {path}: {exc}") from exc

    def remove_dir(self, path: str) -> None:
        logger.debug("Removing directory: %s", path)
        try:
            self.sftp.rmdir(path)
        except (OSError, paramiko.SSHException) as exc:
            raise TransferError(f"Failed to remove directory {path}: {exc}") from exc

    def close(self) -> None:
        try:
            self.sftp.close()
        except Exception as exc:
            logger.warning("Failed to close SFTP session: %s", exc)
