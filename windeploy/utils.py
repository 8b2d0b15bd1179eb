"""windeploy - Utility functions"""

import ctypes
import os
import platform
from pathlib import Path


def is_privileged() -> bool:
    """Check whether the current process runs as Administrator (Windows) or root."""
    if platform.system() == "Windows":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0


def expand_path(path: str) -> Path:
    """Expand ~ and environment variables in a path."""
    return Path(os.path.expandvars(path)).expanduser()


def safe_filename(value: str) -> str:
    """Make a host name or operation safe to use as a path component."""
    cleaned = "".join(c if c.isalnum() or c in "-_." else "_" for c in value)
    return cleaned or "unknown"
