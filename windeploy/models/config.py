"""
Deployment Configuration Models

Immutable configuration and request values threaded through every stage.
"""

from dataclasses import dataclass, field, replace
from pathlib import PureWindowsPath
from typing import Any, Dict, Optional

from windeploy.constants import (
    DEFAULT_ADD_TO_PATH,
    DEFAULT_INSTALL_DIRECTORY,
    DEFAULT_INSTALLER_FILENAME,
    DEFAULT_LOG_DIR,
    DEFAULT_PING_TIMEOUT,
    DEFAULT_REGISTER_AS_DEFAULT,
    DEFAULT_SOURCE_PATH,
    DEFAULT_STAGING_DIRECTORY,
    DEFAULT_TRANSFER_METHOD,
    DEFAULT_VERIFY_ARTIFACT,
    ON_MISSING_WARN,
    PING_COUNT,
)
from windeploy.models.ssh import SSHConfig


@dataclass(frozen=True)
class InstallerOptions:
    """Key/value flags handed to the installer."""

    add_to_path: bool = DEFAULT_ADD_TO_PATH
    register_as_default: bool = DEFAULT_REGISTER_AS_DEFAULT

    def as_flags(self) -> Dict[str, int]:
        """Installer flag name to 0/1 value, in command-line order."""
        return {
            "AddToPath": int(self.add_to_path),
            "RegisterPython": int(self.register_as_default),
        }


@dataclass(frozen=True)
class ProbeConfig:
    """Connectivity probe settings."""

    resolve_names: bool = True
    ping_count: int = PING_COUNT
    ping_timeout: int = DEFAULT_PING_TIMEOUT


@dataclass(frozen=True)
class VerifyConfig:
    """Post-install verification settings."""

    artifact: str = DEFAULT_VERIFY_ARTIFACT
    on_missing: str = ON_MISSING_WARN


@dataclass(frozen=True)
class DeploymentConfig:
    """Complete, validated deployment configuration."""

    source_path: str = DEFAULT_SOURCE_PATH
    installer_filename: str = DEFAULT_INSTALLER_FILENAME
    staging_directory: str = DEFAULT_STAGING_DIRECTORY
    install_directory: str = DEFAULT_INSTALL_DIRECTORY
    installer: InstallerOptions = field(default_factory=InstallerOptions)
    remoting: SSHConfig = field(default_factory=SSHConfig)
    transfer_method: str = DEFAULT_TRANSFER_METHOD
    probe: ProbeConfig = field(default_factory=ProbeConfig)
    execution_timeout: Optional[int] = None
    verify: VerifyConfig = field(default_factory=VerifyConfig)
    require_privileged: bool = False
    log_dir: str = DEFAULT_LOG_DIR

    def with_overrides(self, **changes: Any) -> "DeploymentConfig":
        """Return a copy with the given non-None top-level fields replaced."""
        changes = {k: v for k, v in changes.items() if v is not None}
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for display and serialization."""
        return {
            "source": self.source_path,
            "installer": self.installer_filename,
            "staging_dir": self.staging_directory,
            "install_dir": self.install_directory,
            "installer_options": {
                "add_to_path": self.installer.add_to_path,
                "register_default": self.installer.register_as_default,
            },
            "remoting": self.remoting.to_dict(),
            "transfer": self.transfer_method,
            "probe": {
                "resolve_names": self.probe.resolve_names,
                "ping_timeout": self.probe.ping_timeout,
            },
            "execution_timeout": self.execution_timeout,
            "verify": {
                "artifact": self.verify.artifact,
                "on_missing": self.verify.on_missing,
            },
            "require_privileged": self.require_privileged,
            "log_dir": self.log_dir,
        }


@dataclass(frozen=True)
class DeploymentRequest:
    """One install attempt against one target."""

    target_host: str
    source_path: str
    installer_filename: str
    staging_directory: str
    install_directory: str
    installer_options: InstallerOptions = field(default_factory=InstallerOptions)

    @classmethod
    def from_config(cls, target_host: Optional[str], config: DeploymentConfig) -> "DeploymentRequest":
        return cls(
            target_host=(target_host or "").strip(),
            source_path=config.source_path,
            installer_filename=config.installer_filename,
            staging_directory=config.staging_directory,
            install_directory=config.install_directory,
            installer_options=config.installer,
        )

    @property
    def staged_installer_path(self) -> str:
        """Installer location on the target once staged."""
        return str(PureWindowsPath(self.staging_directory) / self.installer_filename)
