"""
Path safety utilities for bootfiles.

Descriptor paths are absolute paths on the target system. When provisioning
from an initramfs the target system is mounted below a destination root, so
every descriptor path has to be re-rooted without letting it escape.
"""
from __future__ import annotations

import posixpath


def join_root(root: str, path: str) -> str:
    """
    Join an absolute descriptor path onto a destination root.

    This function enforces the following rules:
    - The path must be absolute (descriptors never use relative paths)
    - No backslashes (non-POSIX paths)
    - '..' components are resolved lexically and cannot climb above root

    Args:
        root: Destination root directory (absolute)
        path: Absolute descriptor path

    Returns:
        Normalized path below root

    Raises:
        ValueError: If path violates safety rules

    Examples:
        >>> join_root("/sysroot", "/etc/hostname")
        '/sysroot/etc/hostname'

        >>> join_root("/", "/etc/../etc/hostname")
        '/etc/hostname'

        >>> join_root("/sysroot", "etc/hostname")
        ValueError: unsafe path: etc/hostname
    """
    if not path or not path.startswith("/") or "\\" in path:
        raise ValueError(f"unsafe path: {path}")

    # normpath on an absolute path clamps leading '..' at '/'
    rel = posixpath.normpath(path).lstrip("/")
    if not rel or rel == ".":
        raise ValueError(f"unsafe path: {path}")

    return posixpath.join(posixpath.normpath(root), rel)
