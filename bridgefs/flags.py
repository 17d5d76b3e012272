"""Helpers for ``os.O_*`` open flags."""

import os

# O_RDONLY=0, O_WRONLY=1, O_RDWR=2
_ACCESS_MASK = os.O_RDONLY | os.O_WRONLY | os.O_RDWR


def readable(flags: int) -> bool:
    return (flags & _ACCESS_MASK) in (os.O_RDONLY, os.O_RDWR)


def writable(flags: int) -> bool:
    return (flags & _ACCESS_MASK) in (os.O_WRONLY, os.O_RDWR)


def flags_to_mode(flags: int) -> str:
    """Convert os.open() flags to a binary Python open() mode string.

    Creation and truncation are carried out by the flags themselves, so only
    the access and append bits matter here.
    """
    if flags & os.O_APPEND and writable(flags):
        return "a+b" if readable(flags) else "ab"
    if (flags & _ACCESS_MASK) == os.O_RDWR:
        return "r+b"
    if (flags & _ACCESS_MASK) == os.O_WRONLY:
        return "wb"
    return "rb"
