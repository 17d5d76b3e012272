"""Errors raised by the adapter itself.

Everything else is a built-in ``OSError`` raised by the backend and passed
through unchanged.
"""

from __future__ import annotations

import errno


class UnsupportedOperationError(OSError):
    """The backend does not implement an optional operation.

    Attributes:
        op: Name of the operation ("symlink", "readlink"...).
        filename: First path involved.
        filename2: Second path involved, if any.
    """

    def __init__(self, op: str, path: str, path2: str | None = None):
        super().__init__(
            errno.ENOTSUP, f"{op} not supported by backend", path, None, path2
        )
        self.op = op


class UnlockError(RuntimeError):
    """A file handle was unlocked without being locked."""
