"""Backend view restricted to a subtree of another backend.

Every path is taken relative to a base directory of the wrapped backend, the
way a chroot works. Paths that would escape the base are rejected, and the
names reported back (file handle names, link targets) are expressed
relative to the base again.
"""

from __future__ import annotations

import errno
import posixpath
from typing import Any, Iterator

from .base import Backend, Feature, FileInfo, has_feature
from .errors import UnsupportedOperationError


class BasePathFile:
    """Backend file handle whose name is relative to the base."""

    def __init__(self, handle: Any, name: str):
        self._handle = handle
        self.name = name

    def __getattr__(self, attr: str) -> Any:
        if attr == "_handle":
            raise AttributeError(attr)
        return getattr(self._handle, attr)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._handle)

    def __enter__(self) -> "BasePathFile":
        return self

    def __exit__(self, *args: object) -> None:
        self._handle.close()


class BasePathBackend:
    """Backend restricted to ``base`` within ``source``.

    Security features:
    - Rejects paths outside the base directory
    - Normalizes all path variations (../, ./, //, etc.)
    - Absolute symlink targets are stored as paths inside the base
    - Relative symlink targets must resolve inside the base
    """

    def __init__(self, source: Backend, base: str):
        """Initialize the restricted view.

        Args:
            source: Backend to restrict.
            base: Existing directory of ``source`` that becomes the view's "/".
                Relative bases are made absolute with the source's own
                ``abspath()`` when it has one.

        Raises:
            FileNotFoundError: If base doesn't exist.
            NotADirectoryError: If base is not a directory.
        """
        self.source = source
        abspath = getattr(source, "abspath", None)
        self.base = abspath(base) if abspath is not None else self.abspath(base)

        info = source.stat(self.base)
        if not info.is_dir:
            raise NotADirectoryError(errno.ENOTDIR, "Not a directory", base)

    @staticmethod
    def abspath(path: str) -> str:
        """Absolute form of a view path."""
        return posixpath.normpath("/" + path.lstrip("/"))

    def _real_path(self, path: str) -> str:
        """Translate a view path into a ``source`` path.

        Raises:
            PermissionError: If path escapes the base directory.
        """
        real = posixpath.normpath(posixpath.join(self.base, path.lstrip("/")))
        if real != self.base and not real.startswith(self.base.rstrip("/") + "/"):
            raise PermissionError(
                errno.EPERM, f"Path outside base: {real} (base: {self.base})", path
            )
        return real

    def _strip(self, name: str) -> str:
        """Translate a ``source`` path back into a view path.

        Names outside the base are returned unchanged.
        """
        base = self.base
        if name == base or name.startswith(base.rstrip("/") + "/"):
            return "/" + name[len(base) :].lstrip("/")
        return name

    def _wrap(self, handle: Any) -> BasePathFile:
        return BasePathFile(handle, self._strip(str(handle.name)))

    def supports(self, feature: Feature) -> bool:
        return has_feature(self.source, feature)

    def open_file(self, path: str, flags: int, perm: int) -> BasePathFile:
        return self._wrap(self.source.open_file(self._real_path(path), flags, perm))

    def stat(self, path: str) -> FileInfo:
        return self.source.stat(self._real_path(path))

    def lstat_if_possible(self, path: str) -> tuple[FileInfo, bool]:
        real = self._real_path(path)
        if has_feature(self.source, Feature.LSTAT):
            return self.source.lstat_if_possible(real)
        return self.source.stat(real), False

    def makedirs(self, path: str, perm: int) -> None:
        self.source.makedirs(self._real_path(path), perm)

    def rename(self, old: str, new: str) -> None:
        self.source.rename(self._real_path(old), self._real_path(new))

    def remove(self, path: str) -> None:
        self.source.remove(self._real_path(path))

    def remove_all(self, path: str) -> None:
        self.source.remove_all(self._real_path(path))

    def read_dir(self, path: str) -> list[FileInfo]:
        return self.source.read_dir(self._real_path(path))

    def temp_file(self, dir: str, prefix: str) -> BasePathFile:
        return self._wrap(self.source.temp_file(self._real_path(dir), prefix))

    def symlink_if_possible(self, target: str, link: str) -> None:
        """Create a link; absolute targets are taken relative to the base.

        Relative targets are stored unchanged, so they resolve against the
        link's directory inside the base.

        Raises:
            PermissionError: If link, or target resolved from the link's
                directory, is outside the base.
        """
        if not has_feature(self.source, Feature.SYMLINK):
            raise UnsupportedOperationError("symlink", target, link)
        real_link = self._real_path(link)
        if posixpath.isabs(target):
            target = self._real_path(target)
        else:
            link_dir = posixpath.dirname(self.abspath(link))
            self._real_path(posixpath.join(link_dir, target))
        self.source.symlink_if_possible(target, real_link)

    def readlink_if_possible(self, link: str) -> str:
        if not has_feature(self.source, Feature.READLINK):
            raise UnsupportedOperationError("readlink", link)
        target = self.source.readlink_if_possible(self._real_path(link))
        if posixpath.isabs(target):
            return self._strip(target)
        return target
