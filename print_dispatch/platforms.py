"""
Host platform helpers.

Platform names follow `sys.platform` ("win32", "darwin", "linux", ...), which
are also the keys used in the print configuration.
"""

import sys


def current_platform() -> str:
    if sys.platform.startswith("linux"):
        return "linux"
    return sys.platform


def is_windows(platform: str) -> bool:
    return platform == "win32"


def is_posix(platform: str) -> bool:
    return platform in ("linux", "darwin") or platform.startswith("freebsd")
