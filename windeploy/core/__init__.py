"""windeploy configuration loading."""

from .config_loader import build_config, find_config_file, load_config

__all__ = [
    "build_config",
    "find_config_file",
    "load_config",
]
