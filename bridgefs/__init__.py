"""bridgefs: A filesystem contract adapted onto pluggable storage backends."""

from .adapter import Adapter
from .base import (
    DEFAULT_CREATE_MODE,
    DEFAULT_DIRECTORY_MODE,
    Backend,
    Capability,
    Feature,
    FileInfo,
    Filesystem,
    LinkStat,
)
from .basepath import BasePathBackend
from .config import FSConfig, MemoryFSConfig, OSFSConfig, connect_fs, open_fs
from .errors import UnlockError, UnsupportedOperationError
from .file import File
from .memory import MemoryBackend
from .osfs import OSBackend

__all__ = [
    "Adapter",
    "Backend",
    "BasePathBackend",
    "Capability",
    "connect_fs",
    "DEFAULT_CREATE_MODE",
    "DEFAULT_DIRECTORY_MODE",
    "Feature",
    "File",
    "FileInfo",
    "Filesystem",
    "FSConfig",
    "LinkStat",
    "MemoryBackend",
    "MemoryFSConfig",
    "open_fs",
    "OSBackend",
    "OSFSConfig",
    "UnlockError",
    "UnsupportedOperationError",
]
