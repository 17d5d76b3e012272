"""Filesystem adapter over a pluggable backend.

Implements the ``Filesystem`` contract by delegating to a ``Backend``,
adding the policy the backends don't carry themselves:

- parent directories are created before every operation that creates an
  entry (create, open with ``O_CREAT``, rename, temp_file, symlink);
- file handle names are reported relative to the adapter's root;
- optional backend features (lstat, symlink, readlink) are probed at call
  time, with a defined fallback when missing;
- file handles get an advisory lock.
"""

from __future__ import annotations

import logging
import os
import posixpath
from typing import Any

from .base import (
    DEFAULT_CREATE_MODE,
    DEFAULT_DIRECTORY_MODE,
    Backend,
    Capability,
    Feature,
    FileInfo,
    LinkStat,
    has_feature,
)
from .basepath import BasePathBackend
from .errors import UnsupportedOperationError
from .file import File

log = logging.getLogger(__name__)


class Adapter:
    """Filesystem contract implemented over a backend.

    The adapter stores nothing itself. It holds a reference to the backend
    (shared with the caller) and an immutable root string used to strip
    handle names; ``chroot()`` is the only way to get a different root, and
    it returns a new adapter.

    Every public call is a blocking delegation to the backend. Backend errors
    (``FileNotFoundError``, ``PermissionError``...) are passed through
    unchanged, and nothing is rolled back: directories created for a create
    or rename stay in place if the operation itself then fails.

    Example:
        >>> fs = Adapter(MemoryBackend())
        >>> with fs.create("data/report.txt") as f:
        ...     f.write(b"hello")
        >>> [i.name for i in fs.read_dir("data")]
        ['report.txt']
    """

    def __init__(
        self,
        backend: Backend,
        root: str = "",
        logger: logging.Logger | None = None,
    ):
        """Initialize the adapter.

        Args:
            backend: Backend doing the actual storage.
            root: Path prefix stripped from the names of returned handles.
            logger: Logger receiving a debug record per operation. Defaults
                to this module's logger.
        """
        self._backend = backend
        self._root = root
        self._log = logger or log

    @property
    def backend(self) -> Backend:
        return self._backend

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _create_dir(self, path: str) -> None:
        """Create the parent directories of ``path``."""
        self._log.debug("create_dir %s", path)
        parent = posixpath.dirname(path)
        if parent not in ("", "."):
            self.mkdir_all(parent, DEFAULT_DIRECTORY_MODE)

    def _display_name(self, name: Any) -> str:
        """Backend name in forward-slash form with the root prefix removed."""
        name = str(name).replace(os.sep, "/")
        if self._root and name.startswith(self._root):
            name = name[len(self._root) :]
        return name

    def _wrap(self, handle: Any) -> File:
        return File(handle, self._display_name(handle.name))

    def supports(self, feature: Feature) -> bool:
        """Check whether the backend provides an optional feature.

        Without ``Feature.LSTAT``, ``lstat()`` behaves like ``stat()``;
        without ``Feature.SYMLINK`` / ``Feature.READLINK``, ``symlink()`` /
        ``readlink()`` raise ``UnsupportedOperationError``.
        """
        return has_feature(self._backend, feature)

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def create(self, path: str) -> File:
        """Create or truncate ``path`` and open it for reading and writing.

        Missing parent directories are created first.
        """
        self._log.debug("create %s", path)
        return self.open_file(
            path, os.O_RDWR | os.O_CREAT | os.O_TRUNC, DEFAULT_CREATE_MODE
        )

    def open(self, path: str) -> File:
        """Open ``path`` read-only.

        Raises:
            FileNotFoundError: If path doesn't exist.
        """
        self._log.debug("open %s", path)
        return self.open_file(path, os.O_RDONLY, 0)

    def open_file(self, path: str, flags: int, perm: int) -> File:
        """Open ``path`` with ``os.O_*`` flags and permission bits.

        With ``O_CREAT`` set, missing parent directories are created before
        the backend is called.

        Args:
            path: File path.
            flags: Combination of ``os.O_*`` flags.
            perm: Permission bits for a newly created file.

        Returns:
            File whose name is relative to the adapter's root.
        """
        self._log.debug("open_file %s flags=%#o perm=%#o", path, flags, perm)
        if flags & os.O_CREAT:
            self._create_dir(path)

        return self._wrap(self._backend.open_file(path, flags, perm))

    def temp_file(self, dir: str, prefix: str) -> File:
        """Create and open a uniquely named file in ``dir``.

        ``dir`` is created if missing. Removing the file is up to the
        caller.
        """
        self._log.debug("temp_file %s %s", dir, prefix)
        self._create_dir(dir + "/")

        f = self._wrap(self._backend.temp_file(dir, prefix))
        self._log.debug("temp_file created %s", f.name)
        return f

    # -------------------------------------------------------------------------
    # Directories
    # -------------------------------------------------------------------------

    def read_dir(self, path: str) -> list[FileInfo]:
        """List the entries of a directory sorted by name.

        Raises:
            FileNotFoundError: If path doesn't exist.
            NotADirectoryError: If path is not a directory.
        """
        self._log.debug("read_dir %s", path)
        return sorted(self._backend.read_dir(path), key=lambda i: i.name)

    def mkdir_all(self, path: str, perm: int = DEFAULT_DIRECTORY_MODE) -> None:
        """Create ``path`` and any missing parents.

        Does nothing if ``path`` is already a directory. ``perm`` is
        accepted for interface compatibility but ignored: directories are
        always created with ``DEFAULT_DIRECTORY_MODE``.
        """
        self._log.debug("mkdir_all %s", path)
        if perm != DEFAULT_DIRECTORY_MODE:
            self._log.debug(
                "mkdir_all %s: ignoring perm=%#o, using %#o",
                path,
                perm,
                DEFAULT_DIRECTORY_MODE,
            )
        self._backend.makedirs(path, DEFAULT_DIRECTORY_MODE)

    # -------------------------------------------------------------------------
    # Renaming and removal
    # -------------------------------------------------------------------------

    def rename(self, old: str, new: str) -> None:
        """Rename ``old`` to ``new``, creating the parents of ``new``.

        An existing non-directory ``new`` is replaced.

        Raises:
            FileNotFoundError: If old doesn't exist.
        """
        self._log.debug("rename %s -> %s", old, new)
        self._create_dir(new)

        self._backend.rename(old, new)

    def remove(self, path: str) -> None:
        """Remove a file or an empty directory.

        Raises:
            FileNotFoundError: If path doesn't exist.
        """
        self._log.debug("remove %s", path)
        self._backend.remove(path)

    def remove_all(self, path: str) -> None:
        """Remove ``path`` and everything under it.

        A missing path is not an error.
        """
        self._log.debug("remove_all %s", path)
        if not path:
            return
        self._backend.remove_all(posixpath.normpath(path))

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------

    def stat(self, path: str) -> FileInfo:
        """Metadata for ``path``, following symlinks."""
        self._log.debug("stat %s", path)
        return self._backend.stat(path)

    def lstat(self, path: str) -> FileInfo:
        """Metadata for ``path`` without following a final symlink.

        Falls back to ``stat()`` when the backend can't lstat; use
        ``lstat_detailed()`` to tell the two cases apart.
        """
        return self.lstat_detailed(path).info

    def lstat_detailed(self, path: str) -> LinkStat:
        """Like ``lstat()``, also reporting whether links were distinguished."""
        self._log.debug("lstat %s", path)
        if self.supports(Feature.LSTAT):
            info, link_aware = self._backend.lstat_if_possible(path)
            return LinkStat(info, link_aware)
        return LinkStat(self._backend.stat(posixpath.normpath(path)), False)

    # -------------------------------------------------------------------------
    # Symbolic links
    # -------------------------------------------------------------------------

    def symlink(self, target: str, link: str) -> None:
        """Create ``link`` pointing to ``target``.

        ``target`` need not exist. Parent directories of ``link`` are
        created as needed.

        Raises:
            UnsupportedOperationError: If the backend has no symlinks.
        """
        self._log.debug("symlink %s -> %s", link, target)
        self._create_dir(link)

        if not self.supports(Feature.SYMLINK):
            raise UnsupportedOperationError("symlink", target, link)
        self._backend.symlink_if_possible(target, link)

    def readlink(self, link: str) -> str:
        """Return the target of ``link``.

        Raises:
            UnsupportedOperationError: If the backend can't read links.
        """
        self._log.debug("readlink %s", link)
        if not self.supports(Feature.READLINK):
            raise UnsupportedOperationError("readlink", link)
        return self._backend.readlink_if_possible(link)

    # -------------------------------------------------------------------------
    # Paths and scoping
    # -------------------------------------------------------------------------

    def join(self, *elem: str) -> str:
        """Join path elements and clean the result.

        Empty elements are ignored and redundant separators collapsed; a
        leading separator is kept. Returns "" if every element is empty.
        """
        self._log.debug("join %s", elem)
        parts = [e for e in elem if e]
        if not parts:
            return ""
        return posixpath.normpath("/".join(parts)).replace("//", "/")

    def chroot(self, path: str) -> "Adapter":
        """Return an adapter confined to ``path``.

        The new adapter's backend is a ``BasePathBackend`` over this one's,
        and its root is this root joined with ``path``.

        Raises:
            FileNotFoundError: If path doesn't exist.
            NotADirectoryError: If path is not a directory.
        """
        self._log.debug("chroot %s", path)
        return Adapter(
            BasePathBackend(self._backend, path),
            self.join(self._root, path),
            self._log,
        )

    def root(self) -> str:
        """Return the root path of the filesystem."""
        self._log.debug("root")
        return self._root

    def capabilities(self) -> Capability:
        self._log.debug("capabilities")
        return Capability.DEFAULT
