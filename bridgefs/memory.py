"""In-memory backend implementation."""

from __future__ import annotations

import errno as _errno
import io
import os
import posixpath
import random
import stat as stat_mod
import threading
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterator

from .base import DEFAULT_DIRECTORY_MODE, FileInfo
from .flags import readable, writable

_MAX_LINK_HOPS = 40
_TEMP_DIR = "/tmp"


def _now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Node:
    mode: int
    mod_time: datetime = field(default_factory=_now)
    data: bytearray = field(default_factory=bytearray)
    target: str = ""

    @property
    def is_dir(self) -> bool:
        return stat_mod.S_ISDIR(self.mode)

    @property
    def is_link(self) -> bool:
        return stat_mod.S_ISLNK(self.mode)

    @property
    def size(self) -> int:
        if self.is_dir:
            return 0
        if self.is_link:
            return len(self.target)
        return len(self.data)


class MemoryFile:
    """File handle over a MemoryBackend entry.

    Reads and writes go straight to the entry's content, so every handle on
    the same file sees the same bytes. Each handle keeps its own position.

    Attributes:
        name: Normalized path the file was opened with.
    """

    def __init__(self, backend: "MemoryBackend", node: _Node, name: str, flags: int):
        self.name = name
        self._backend = backend
        self._node = node
        self._flags = flags
        self._pos = 0
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise ValueError(f"I/O operation on closed file: {self.name}")

    def _check_readable(self) -> None:
        self._check_open()
        if not readable(self._flags):
            raise io.UnsupportedOperation("read")

    def _check_writable(self) -> None:
        self._check_open()
        if not writable(self._flags):
            raise io.UnsupportedOperation("write")

    def read(self, size: int = -1) -> bytes:
        self._check_readable()
        with self._backend._lock:
            data = self._node.data
            end = len(data) if size is None or size < 0 else self._pos + size
            chunk = bytes(data[self._pos : end])
            self._pos += len(chunk)
            return chunk

    def readline(self, size: int = -1) -> bytes:
        self._check_readable()
        with self._backend._lock:
            data = self._node.data
            end = data.find(b"\n", self._pos)
            end = len(data) if end < 0 else end + 1
            if size is not None and size >= 0:
                end = min(end, self._pos + size)
            chunk = bytes(data[self._pos : end])
            self._pos += len(chunk)
            return chunk

    def readlines(self) -> list[bytes]:
        return list(self)

    def __iter__(self) -> Iterator[bytes]:
        while True:
            line = self.readline()
            if not line:
                return
            yield line

    def write(self, data: bytes | bytearray | memoryview) -> int:
        """Write bytes at the current position (or at the end when appending).

        Writing past the end fills the gap with zero bytes.
        """
        self._check_writable()
        data = bytes(data)
        with self._backend._lock:
            content = self._node.data
            if self._flags & os.O_APPEND:
                self._pos = len(content)
            if self._pos > len(content):
                content.extend(b"\x00" * (self._pos - len(content)))
            content[self._pos : self._pos + len(data)] = data
            self._pos += len(data)
            self._node.mod_time = _now()
        return len(data)

    def writelines(self, lines: list[bytes]) -> None:
        for line in lines:
            self.write(line)

    def seek(self, offset: int, whence: int = io.SEEK_SET) -> int:
        self._check_open()
        if whence == io.SEEK_SET:
            pos = offset
        elif whence == io.SEEK_CUR:
            pos = self._pos + offset
        elif whence == io.SEEK_END:
            pos = len(self._node.data) + offset
        else:
            raise ValueError(f"Invalid whence: {whence}")
        if pos < 0:
            raise OSError(_errno.EINVAL, "Invalid argument", self.name)
        self._pos = pos
        return pos

    def tell(self) -> int:
        self._check_open()
        return self._pos

    def truncate(self, size: int | None = None) -> int:
        self._check_writable()
        if size is None:
            size = self._pos
        with self._backend._lock:
            content = self._node.data
            if size < len(content):
                del content[size:]
            else:
                content.extend(b"\x00" * (size - len(content)))
            self._node.mod_time = _now()
        return size

    def flush(self) -> None:
        """Flush is a no-op (writes land in the backend immediately)."""
        self._check_open()

    def close(self) -> None:
        self._closed = True

    @property
    def closed(self) -> bool:
        return self._closed

    def readable(self) -> bool:
        self._check_open()
        return readable(self._flags)

    def writable(self) -> bool:
        self._check_open()
        return writable(self._flags)

    def seekable(self) -> bool:
        self._check_open()
        return True

    def __enter__(self) -> "MemoryFile":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()


class MemoryBackend:
    """Simple in-memory backend.

    Stores every file, directory and symbolic link as a node keyed by its
    normalized absolute path. Follows POSIX rules where they matter to
    callers: creating a file requires its parent directory to exist, removing
    a non-empty directory fails, and symlinks are followed by open and stat
    but not by lstat, readlink, rename or remove.

    A single re-entrant lock guards the node table, so an instance can be
    shared between threads.
    """

    def __init__(self) -> None:
        self.nodes: dict[str, _Node] = {"/": _Node(mode=stat_mod.S_IFDIR | 0o755)}
        self._lock = threading.RLock()

    # -------------------------------------------------------------------------
    # Path resolution
    # -------------------------------------------------------------------------

    @staticmethod
    def abspath(path: str) -> str:
        """Normalize a path to an absolute form with no redundant parts."""
        return posixpath.normpath("/" + path.lstrip("/"))

    def _resolve(self, path: str, follow: bool = True) -> str:
        """Resolve symlinks in ``path``.

        Intermediate symlinks are always followed; the last component only
        when ``follow`` is set.
        """
        queue = [p for p in self.abspath(path).split("/") if p]
        current = "/"
        hops = 0
        while queue:
            part = queue.pop(0)
            candidate = posixpath.join(current, part)
            node = self.nodes.get(candidate)
            if node is not None and node.is_link and (queue or follow):
                hops += 1
                if hops > _MAX_LINK_HOPS:
                    raise OSError(
                        _errno.ELOOP, "Too many levels of symbolic links", path
                    )
                base = posixpath.join(current, node.target)
                queue = [p for p in self.abspath(base).split("/") if p] + queue
                current = "/"
                continue
            current = candidate
        return current

    def _info(self, path: str, node: _Node) -> FileInfo:
        return FileInfo(
            name=posixpath.basename(path) or "/",
            size=node.size,
            mode=node.mode,
            mod_time=node.mod_time,
        )

    def _parent_dir(self, resolved: str, path: str) -> _Node:
        parent = self.nodes.get(posixpath.dirname(resolved))
        if parent is None:
            raise FileNotFoundError(_errno.ENOENT, "No such file or directory", path)
        if not parent.is_dir:
            raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", path)
        return parent

    def _children(self, resolved: str) -> list[str]:
        return sorted(
            p
            for p in self.nodes
            if p != resolved and posixpath.dirname(p) == resolved
        )

    # -------------------------------------------------------------------------
    # Backend primitives
    # -------------------------------------------------------------------------

    def open_file(self, path: str, flags: int, perm: int) -> MemoryFile:
        with self._lock:
            resolved = self._resolve(path)
            node = self.nodes.get(resolved)

            if node is not None and flags & os.O_CREAT and flags & os.O_EXCL:
                raise FileExistsError(_errno.EEXIST, "File exists", path)

            if node is None:
                if not flags & os.O_CREAT:
                    raise FileNotFoundError(
                        _errno.ENOENT, "No such file or directory", path
                    )
                self._parent_dir(resolved, path)
                node = _Node(mode=stat_mod.S_IFREG | (perm & 0o7777))
                self.nodes[resolved] = node
            elif node.is_dir:
                raise IsADirectoryError(_errno.EISDIR, "Is a directory", path)
            elif flags & os.O_TRUNC and writable(flags):
                node.data.clear()
                node.mod_time = _now()

            return MemoryFile(self, node, self.abspath(path), flags)

    def stat(self, path: str) -> FileInfo:
        with self._lock:
            resolved = self._resolve(path)
            node = self.nodes.get(resolved)
            if node is None:
                raise FileNotFoundError(
                    _errno.ENOENT, "No such file or directory", path
                )
            return self._info(self.abspath(path), node)

    def lstat_if_possible(self, path: str) -> tuple[FileInfo, bool]:
        with self._lock:
            resolved = self._resolve(path, follow=False)
            node = self.nodes.get(resolved)
            if node is None:
                raise FileNotFoundError(
                    _errno.ENOENT, "No such file or directory", path
                )
            return self._info(resolved, node), True

    def makedirs(self, path: str, perm: int) -> None:
        with self._lock:
            resolved = self._resolve(path)
            current = "/"
            for part in [p for p in resolved.split("/") if p]:
                current = posixpath.join(current, part)
                node = self.nodes.get(current)
                if node is None:
                    self.nodes[current] = _Node(mode=stat_mod.S_IFDIR | (perm & 0o7777))
                elif not node.is_dir:
                    raise FileExistsError(_errno.EEXIST, "File exists", current)

    def rename(self, old: str, new: str) -> None:
        with self._lock:
            src = self._resolve(old, follow=False)
            dst = self._resolve(new, follow=False)
            node = self.nodes.get(src)
            if node is None:
                raise FileNotFoundError(
                    _errno.ENOENT, "No such file or directory", old
                )
            if src == dst:
                return
            if dst.startswith(src.rstrip("/") + "/"):
                raise OSError(_errno.EINVAL, "Invalid argument", new)
            self._parent_dir(dst, new)

            existing = self.nodes.get(dst)
            if existing is not None:
                if existing.is_dir and not node.is_dir:
                    raise IsADirectoryError(_errno.EISDIR, "Is a directory", new)
                if node.is_dir and not existing.is_dir:
                    raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", new)
                if existing.is_dir and self._children(dst):
                    raise OSError(_errno.ENOTEMPTY, "Directory not empty", new)

            src_prefix = src.rstrip("/") + "/"
            self.nodes[dst] = self.nodes.pop(src)
            for p in [p for p in self.nodes if p.startswith(src_prefix)]:
                self.nodes[dst + p[len(src) :]] = self.nodes.pop(p)

    def remove(self, path: str) -> None:
        with self._lock:
            resolved = self._resolve(path, follow=False)
            node = self.nodes.get(resolved)
            if node is None:
                raise FileNotFoundError(
                    _errno.ENOENT, "No such file or directory", path
                )
            if resolved == "/":
                raise PermissionError(_errno.EPERM, "Operation not permitted", path)
            if node.is_dir and self._children(resolved):
                raise OSError(_errno.ENOTEMPTY, "Directory not empty", path)
            del self.nodes[resolved]

    def remove_all(self, path: str) -> None:
        with self._lock:
            resolved = self._resolve(path, follow=False)
            if resolved not in self.nodes:
                return
            prefix = resolved.rstrip("/") + "/"
            for p in [p for p in self.nodes if p.startswith(prefix)]:
                del self.nodes[p]
            if resolved != "/":
                del self.nodes[resolved]

    def read_dir(self, path: str) -> list[FileInfo]:
        with self._lock:
            resolved = self._resolve(path)
            node = self.nodes.get(resolved)
            if node is None:
                raise FileNotFoundError(
                    _errno.ENOENT, "No such file or directory", path
                )
            if not node.is_dir:
                raise NotADirectoryError(_errno.ENOTDIR, "Not a directory", path)
            return [self._info(p, self.nodes[p]) for p in self._children(resolved)]

    def temp_file(self, dir: str, prefix: str) -> MemoryFile:
        """Create a uniquely named file ``<dir>/<prefix><random digits>``."""
        if not dir:
            dir = _TEMP_DIR
            self.makedirs(dir, DEFAULT_DIRECTORY_MODE)
        flags = os.O_RDWR | os.O_CREAT | os.O_EXCL
        for _ in range(10000):
            name = posixpath.join(dir, f"{prefix}{random.randrange(1 << 32)}")
            try:
                return self.open_file(name, flags, 0o600)
            except FileExistsError:
                continue
        raise FileExistsError(
            _errno.EEXIST, "Could not create a unique temporary file", dir
        )

    def symlink_if_possible(self, target: str, link: str) -> None:
        with self._lock:
            resolved = self._resolve(link, follow=False)
            if resolved in self.nodes:
                raise FileExistsError(_errno.EEXIST, "File exists", link)
            self._parent_dir(resolved, link)
            self.nodes[resolved] = _Node(mode=stat_mod.S_IFLNK | 0o777, target=target)

    def readlink_if_possible(self, link: str) -> str:
        with self._lock:
            resolved = self._resolve(link, follow=False)
            node = self.nodes.get(resolved)
            if node is None:
                raise FileNotFoundError(
                    _errno.ENOENT, "No such file or directory", link
                )
            if not node.is_link:
                raise OSError(_errno.EINVAL, "Invalid argument", link)
            return node.target
