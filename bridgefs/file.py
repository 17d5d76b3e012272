"""File handle wrapper returned by the adapter."""

from __future__ import annotations

import threading
from typing import Any, Iterator

from .errors import UnlockError


class File:
    """Backend file handle with a root-relative name and an advisory lock.

    I/O calls are forwarded to the wrapped handle. The lock is a plain
    mutex owned by this wrapper: it serializes callers sharing this object
    and nothing else. Two opens of the same path get independent locks.

    Attributes:
        name: Path of the file relative to the adapter's root.
        raw: The wrapped backend handle.
    """

    def __init__(self, handle: Any, name: str):
        self._handle = handle
        self._name = name
        self._mutex = threading.Lock()

    @property
    def name(self) -> str:
        return self._name

    @property
    def raw(self) -> Any:
        return self._handle

    # -------------------------------------------------------------------------
    # Locking
    # -------------------------------------------------------------------------

    def lock(self) -> None:
        """Acquire the handle's lock, blocking until it is free.

        The lock is not re-entrant: locking twice from the same thread
        deadlocks.
        """
        self._mutex.acquire()

    def unlock(self) -> None:
        """Release the handle's lock.

        Raises:
            UnlockError: If the lock is not held.
        """
        try:
            self._mutex.release()
        except RuntimeError as e:
            raise UnlockError(f"unlock of unlocked file: {self._name}") from e

    def locked(self) -> bool:
        """Return True if the lock is currently held."""
        return self._mutex.locked()

    # -------------------------------------------------------------------------
    # I/O forwarding
    # -------------------------------------------------------------------------

    def read(self, size: int = -1) -> bytes:
        return self._handle.read(size)

    def readline(self, size: int = -1) -> bytes:
        return self._handle.readline(size)

    def readlines(self) -> list[bytes]:
        return self._handle.readlines()

    def write(self, data: bytes) -> int:
        return self._handle.write(data)

    def writelines(self, lines: list[bytes]) -> None:
        self._handle.writelines(lines)

    def seek(self, offset: int, whence: int = 0) -> int:
        return self._handle.seek(offset, whence)

    def tell(self) -> int:
        return self._handle.tell()

    def truncate(self, size: int | None = None) -> int:
        return self._handle.truncate(size)

    def flush(self) -> None:
        self._handle.flush()

    def close(self) -> None:
        self._handle.close()

    @property
    def closed(self) -> bool:
        return self._handle.closed

    def readable(self) -> bool:
        return self._handle.readable()

    def writable(self) -> bool:
        return self._handle.writable()

    def seekable(self) -> bool:
        return self._handle.seekable()

    def __getattr__(self, attr: str) -> Any:
        # Anything not wrapped above (fileno, readinto, mode...) goes straight
        # to the backend handle.
        if attr == "_handle":
            raise AttributeError(attr)
        return getattr(self._handle, attr)

    def __iter__(self) -> Iterator[bytes]:
        return iter(self._handle)

    def __enter__(self) -> "File":
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"File(name={self._name!r}, handle={self._handle!r})"
