"""windeploy CLI commands."""

from . import check, config, deploy

__all__ = ["check", "config", "deploy"]
