"""Base filesystem interfaces and dataclasses.

Defines the backend contract the adapter delegates to (``Backend`` plus the
optional ``Lstater``, ``Symlinker`` and ``LinkReader`` capabilities), the
contract the adapter itself exposes (``Filesystem``), and the metadata
record shared by both sides.
"""

from __future__ import annotations

import enum
import os
import stat as stat_mod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Protocol, runtime_checkable

# Permission bits applied to directories created by the adapter.
DEFAULT_DIRECTORY_MODE = 0o755

# Permission bits passed to the backend by create().
DEFAULT_CREATE_MODE = 0o666


class Capability(enum.IntFlag):
    """Operation classes a filesystem supports."""

    WRITE = 1
    READ = 2
    READ_AND_WRITE = 4
    SEEK = 8
    TRUNCATE = 16
    LOCK = 32

    DEFAULT = WRITE | READ | READ_AND_WRITE | SEEK | TRUNCATE | LOCK
    ALL = DEFAULT


class Feature(enum.Enum):
    """Optional backend operations probed at call time."""

    LSTAT = "lstat"
    SYMLINK = "symlink"
    READLINK = "readlink"


@dataclass
class FileInfo:
    """Metadata for a single file, directory or symbolic link.

    Attributes:
        name: Base name of the entry.
        size: Size in bytes (0 for directories).
        mode: Full ``st_mode`` value, including the file type bits.
        mod_time: Last modification time (UTC).
    """

    name: str
    size: int
    mode: int
    mod_time: datetime

    @classmethod
    def from_stat(cls, name: str, st: os.stat_result) -> "FileInfo":
        """Build a FileInfo from an ``os.stat_result``."""
        return cls(
            name=name,
            size=st.st_size,
            mode=st.st_mode,
            mod_time=datetime.fromtimestamp(st.st_mtime, tz=timezone.utc),
        )

    @property
    def is_dir(self) -> bool:
        return stat_mod.S_ISDIR(self.mode)

    @property
    def is_file(self) -> bool:
        return stat_mod.S_ISREG(self.mode)

    @property
    def is_symlink(self) -> bool:
        return stat_mod.S_ISLNK(self.mode)

    @property
    def perm(self) -> int:
        """Permission bits without the file type."""
        return stat_mod.S_IMODE(self.mode)

    # os.stat_result-compatible properties

    @property
    def st_mode(self) -> int:
        return self.mode

    @property
    def st_size(self) -> int:
        return self.size

    @property
    def st_mtime(self) -> float:
        return self.mod_time.timestamp()


@dataclass
class LinkStat:
    """Result of a link-aware stat.

    Attributes:
        info: Metadata for the path.
        link_aware: False when the backend could not tell a symlink from its
            target, in which case ``info`` describes the target.
    """

    info: FileInfo
    link_aware: bool


@runtime_checkable
class Backend(Protocol):
    """Primitives every backend must provide.

    Backends raise the built-in ``OSError`` subclasses
    (``FileNotFoundError``, ``FileExistsError``, ``NotADirectoryError``,
    ``PermissionError``...) and the adapter passes them through.
    """

    def open_file(self, path: str, flags: int, perm: int) -> Any:
        """Open ``path`` with ``os.O_*`` flags; the handle has a ``name``."""
        ...

    def stat(self, path: str) -> FileInfo:
        """Metadata for ``path``, following symlinks."""
        ...

    def makedirs(self, path: str, perm: int) -> None:
        """Create ``path`` and missing parents; no-op if it is a directory."""
        ...

    def rename(self, old: str, new: str) -> None:
        """Rename ``old`` to ``new``, replacing a non-directory ``new``."""
        ...

    def remove(self, path: str) -> None:
        """Remove a file or an empty directory."""
        ...

    def remove_all(self, path: str) -> None:
        """Remove ``path`` recursively; a missing path is not an error."""
        ...

    def read_dir(self, path: str) -> list[FileInfo]:
        """Entries of a directory sorted by name."""
        ...

    def temp_file(self, dir: str, prefix: str) -> Any:
        """Create and open a uniquely named file in ``dir``."""
        ...


@runtime_checkable
class Lstater(Protocol):
    """Backends that can stat a symlink without following it."""

    def lstat_if_possible(self, path: str) -> tuple[FileInfo, bool]:
        """Return metadata and whether lstat was actually used."""
        ...


@runtime_checkable
class Symlinker(Protocol):
    """Backends that can create symbolic links."""

    def symlink_if_possible(self, target: str, link: str) -> None: ...


@runtime_checkable
class LinkReader(Protocol):
    """Backends that can read symbolic link targets."""

    def readlink_if_possible(self, link: str) -> str: ...


_FEATURE_PROTOCOLS: dict[Feature, type] = {
    Feature.LSTAT: Lstater,
    Feature.SYMLINK: Symlinker,
    Feature.READLINK: LinkReader,
}


def has_feature(backend: Any, feature: Feature) -> bool:
    """Check whether ``backend`` implements an optional feature.

    A backend providing the method may still narrow its answer with a
    ``supports(feature)`` method, as wrapping backends do when the backend
    they wrap lacks the feature.
    """
    if not isinstance(backend, _FEATURE_PROTOCOLS[feature]):
        return False
    supports = getattr(backend, "supports", None)
    return supports is None or bool(supports(feature))


@runtime_checkable
class Filesystem(Protocol):
    """Contract exposed to callers by the adapter."""

    def create(self, path: str) -> Any: ...

    def open(self, path: str) -> Any: ...

    def open_file(self, path: str, flags: int, perm: int) -> Any: ...

    def read_dir(self, path: str) -> list[FileInfo]: ...

    def rename(self, old: str, new: str) -> None: ...

    def mkdir_all(self, path: str, perm: int = DEFAULT_DIRECTORY_MODE) -> None: ...

    def stat(self, path: str) -> FileInfo: ...

    def lstat(self, path: str) -> FileInfo: ...

    def remove(self, path: str) -> None: ...

    def remove_all(self, path: str) -> None: ...

    def temp_file(self, dir: str, prefix: str) -> Any: ...

    def join(self, *elem: str) -> str: ...

    def symlink(self, target: str, link: str) -> None: ...

    def readlink(self, link: str) -> str: ...

    def chroot(self, path: str) -> "Filesystem": ...

    def root(self) -> str: ...

    def capabilities(self) -> Capability: ...
