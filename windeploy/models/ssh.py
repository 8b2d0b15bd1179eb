"""
SSH Configuration Models

Dataclass models for the remote command channel.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from windeploy.constants import DEFAULT_CONNECT_TIMEOUT, DEFAULT_SSH_PORT


@dataclass(frozen=True)
class SSHConfig:
    """SSH configuration for connecting to Windows targets."""

    user: Optional[str] = None
    key_path: Optional[str] = None
    port: int = DEFAULT_SSH_PORT
    connect_timeout: int = DEFAULT_CONNECT_TIMEOUT

    @property
    def key_path_expanded(self) -> Optional[Path]:
        """Get expanded key path (resolves ~)."""
        if self.key_path:
            return Path(self.key_path).expanduser()
        return None

    def to_dict(self) -> dict:
        return {
            "user": self.user,
            "key_path": self.key_path,
            "port": self.port,
            "connect_timeout": self.connect_timeout,
        }

    def __repr__(self) -> str:
        return f"SSHConfig(user={self.user}, key={self.key_path}, port={self.port})"


@dataclass
class SSHConnection:
    """SSH connection details for a specific host."""

    host: str
    config: SSHConfig
    control_path: Optional[str] = None

    @property
    def connection_string(self) -> str:
        """Get SSH connection string (user@host or host)."""
        if self.config.user:
            return f"{self.config.user}@{self.host}"
        return self.host

    def options(self) -> List[str]:
        """Options shared by ssh and sftp invocations."""
        opts = []
        key = self.config.key_path_expanded
        if key is not None:
            opts.extend(["-i", str(key)])
        opts.extend(
            [
                "-o",
                "BatchMode=yes",
                "-o",
                "StrictHostKeyChecking=accept-new",
                "-o",
                "LogLevel=QUIET",
                "-o",
                f"ConnectTimeout={self.config.connect_timeout}",
            ]
        )
        if self.control_path:
            opts.extend(["-o", f"ControlPath={self.control_path}"])
        return opts

    @property
    def ssh_command_prefix(self) -> List[str]:
        """Get SSH command prefix for subprocess."""
        return ["ssh", "-p", str(self.config.port)] + self.options() + [
            self.connection_string
        ]

    @property
    def sftp_command_prefix(self) -> List[str]:
        """Get sftp batch-mode command prefix (reads the batch from stdin)."""
        return ["sftp", "-P", str(self.config.port), "-b", "-"] + self.options() + [
            self.connection_string
        ]

    def build_command(self, remote_command: str) -> List[str]:
        """Build full SSH command with remote command."""
        return self.ssh_command_prefix + [remote_command]

    def __repr__(self) -> str:
        return f"SSHConnection(host={self.host}, user={self.config.user})"
