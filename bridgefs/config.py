"""Configuration for filesystem access.

Provides configuration dataclasses, the connect_fs factory that validates
them, and open_fs which builds the backend and adapter they describe.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Literal

from .adapter import Adapter
from .base import Backend
from .basepath import BasePathBackend
from .memory import MemoryBackend
from .osfs import OSBackend


@dataclass
class MemoryFSConfig:
    """Configuration for an in-memory filesystem.

    Attributes:
        type: Always "memory".
    """

    type: Literal["memory"] = "memory"


@dataclass
class OSFSConfig:
    """Configuration for the host filesystem.

    Attributes:
        type: Always "os".
        root: Absolute path to the root directory. Handle names are
            reported relative to it.
        restrict: Confine all paths to ``root`` (default: True). When False,
            callers pass host paths and only handle names are shortened.
    """

    type: Literal["os"] = "os"
    root: str = ""
    restrict: bool = True


# Type alias for all filesystem configs
FSConfig = MemoryFSConfig | OSFSConfig


def connect_fs(
    type: Literal["memory", "os"] = "memory",
    **kwargs,
) -> FSConfig:
    """Configure filesystem access.

    Args:
        type: Backend type.
            - "memory": In-memory backend, discarded with the adapter.
            - "os": Host filesystem under a root directory.
                    Requires 'root' argument.
        **kwargs: Additional configuration for the backend type.
            For type="os":
                - root (str): Required. Absolute path to root directory.
                - restrict (bool): Optional. Confine paths to root
                  (default: True).

    Returns:
        FSConfig for open_fs().

    Raises:
        ValueError: On an unknown type, unexpected arguments, or a missing
            or relative root.

    Examples:
        >>> connect_fs(type="memory")
        MemoryFSConfig(type='memory')

        >>> connect_fs(type="os", root="/srv/data")
        OSFSConfig(type='os', root='/srv/data', restrict=True)
    """
    if type == "memory":
        if kwargs:
            raise ValueError(
                f"Unexpected arguments for memory fs: {list(kwargs.keys())}"
            )
        return MemoryFSConfig()

    elif type == "os":
        root = kwargs.pop("root", "")
        restrict = kwargs.pop("restrict", True)

        if kwargs:
            raise ValueError(f"Unexpected arguments for os fs: {list(kwargs.keys())}")

        if not root:
            raise ValueError("OS filesystem requires 'root' parameter")
        if not os.path.isabs(root):
            raise ValueError(f"Root must be absolute path: {root}")

        return OSFSConfig(root=root, restrict=restrict)

    else:
        raise ValueError(f"Unsupported filesystem type: {type}. Use 'memory' or 'os'.")


def open_fs(config: FSConfig, logger: logging.Logger | None = None) -> Adapter:
    """Build the adapter described by ``config``.

    Args:
        config: Result of connect_fs().
        logger: Logger passed on to the adapter.

    Raises:
        FileNotFoundError: If a restricted root doesn't exist.
        NotADirectoryError: If a restricted root is not a directory.
    """
    backend: Backend
    if isinstance(config, MemoryFSConfig):
        return Adapter(MemoryBackend(), logger=logger)

    if config.restrict:
        backend = BasePathBackend(OSBackend(), config.root)
    else:
        backend = OSBackend()
    return Adapter(backend, config.root, logger=logger)
