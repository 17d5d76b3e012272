"""Backend over the host filesystem."""

from __future__ import annotations

import os
import shutil
import tempfile
from typing import IO

from .base import FileInfo
from .flags import flags_to_mode


class OSBackend:
    """Backend delegating straight to the ``os`` module.

    Paths are host paths, used as given. Handles are buffered binary file
    objects whose ``name`` is the path they were opened with.
    """

    def abspath(self, path: str) -> str:
        return os.path.abspath(path)

    def open_file(self, path: str, flags: int, perm: int) -> IO[bytes]:
        def opener(p: str, _flags: int) -> int:
            return os.open(p, flags, perm)

        return open(path, flags_to_mode(flags), opener=opener)

    def stat(self, path: str) -> FileInfo:
        return FileInfo.from_stat(os.path.basename(path) or path, os.stat(path))

    def lstat_if_possible(self, path: str) -> tuple[FileInfo, bool]:
        return FileInfo.from_stat(os.path.basename(path) or path, os.lstat(path)), True

    def makedirs(self, path: str, perm: int) -> None:
        os.makedirs(path, perm, exist_ok=True)

    def rename(self, old: str, new: str) -> None:
        os.replace(old, new)

    def remove(self, path: str) -> None:
        """Remove a file or an empty directory."""
        try:
            os.remove(path)
        except (IsADirectoryError, PermissionError):
            # unlink() on a directory reports EPERM on some platforms
            if not os.path.isdir(path) or os.path.islink(path):
                raise
            os.rmdir(path)

    def remove_all(self, path: str) -> None:
        if not os.path.lexists(path):
            return
        if os.path.isdir(path) and not os.path.islink(path):
            shutil.rmtree(path)
        else:
            os.remove(path)

    def read_dir(self, path: str) -> list[FileInfo]:
        with os.scandir(path) as it:
            entries = sorted(it, key=lambda e: e.name)
        return [
            FileInfo.from_stat(e.name, e.stat(follow_symlinks=False)) for e in entries
        ]

    def temp_file(self, dir: str, prefix: str) -> IO[bytes]:
        fd, name = tempfile.mkstemp(prefix=prefix, dir=dir or None)
        return open(name, "r+b", opener=lambda p, _flags: fd)

    def symlink_if_possible(self, target: str, link: str) -> None:
        os.symlink(target, link)

    def readlink_if_possible(self, link: str) -> str:
        return os.readlink(link)
