"""Thin syscall layer used by the provisioning components.

Every method maps onto a single ``os`` call and lets ``OSError`` propagate.
``FileNotFoundError`` is the "not found" condition the callers branch on.
Tests substitute a subclass to observe or fail individual calls.
"""

from __future__ import annotations

import os

EXCLUSIVE_CREATE_FLAGS = os.O_WRONLY | os.O_CREAT | os.O_EXCL


class FsOps:
    def stat(self, path: str) -> os.stat_result:
        return os.stat(path)

    def lstat(self, path: str) -> os.stat_result:
        return os.lstat(path)

    def mkdir(self, path: str, mode: int) -> None:
        os.mkdir(path, mode)

    def chown(self, path: str, uid: int, gid: int) -> None:
        os.chown(path, uid, gid)

    def lchown(self, path: str, uid: int, gid: int) -> None:
        os.lchown(path, uid, gid)

    def chmod(self, path: str, mode: int) -> None:
        os.chmod(path, mode)

    def umask(self, mask: int) -> int:
        return os.umask(mask)

    def open_read(self, path: str) -> int:
        return os.open(path, os.O_RDONLY)

    def open_exclusive(self, path: str, mode: int = 0o600) -> int:
        """Create ``path`` for writing, failing if it already exists."""
        return os.open(path, EXCLUSIVE_CREATE_FLAGS, mode)

    def read(self, fd: int, size: int) -> bytes:
        return os.read(fd, size)

    def write(self, fd: int, data: bytes) -> int:
        return os.write(fd, data)

    def truncate(self, path: str, length: int = 0) -> None:
        os.truncate(path, length)

    def close(self, fd: int) -> None:
        os.close(fd)

    def readlink(self, path: str) -> str:
        return os.readlink(path)

    def symlink(self, target: str, path: str) -> None:
        os.symlink(target, path)

    def listdir(self, path: str) -> list[str]:
        """Entry names of ``path`` in directory order."""
        with os.scandir(path) as it:
            return [entry.name for entry in it]


default_fs = FsOps()
