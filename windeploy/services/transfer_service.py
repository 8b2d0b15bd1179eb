"""
File Transfer Service

Moves files onto a target's filesystem over a path that is independent of
the remote command channel, so staging never needs credentials forwarded
from inside a remote session.
"""

import platform
import shutil
import subprocess
from abc import ABC, abstractmethod
from pathlib import Path, PureWindowsPath
from typing import List

from windeploy.constants import TRANSFER_SFTP, TRANSFER_SHARE
from windeploy.exceptions import ConfigurationError, TransferError
from windeploy.models.ssh import SSHConfig, SSHConnection


def to_admin_share(host: str, path: str) -> str:
    """
    Map a local path on the target to its administrative share.

    Example:
        to_admin_share("web01", r"C:\\Temp\\Py") == r"\\\\web01\\C$\\Temp\\Py"
    """
    win_path = PureWindowsPath(path)
    if not win_path.drive or not win_path.drive.endswith(":"):
        raise TransferError(f"Target path must start with a drive letter: {path}")
    drive = win_path.drive[0].upper()
    rest = "\\".join(win_path.parts[1:])
    unc = f"\\\\{host}\\{drive}$"
    return f"{unc}\\{rest}" if rest else unc


def to_sftp_path(path: str) -> str:
    """Render a Windows path the way Windows OpenSSH's sftp-server expects it."""
    win_path = PureWindowsPath(path)
    if not win_path.drive:
        raise TransferError(f"Target path must start with a drive letter: {path}")
    return "/" + win_path.as_posix()


def _quote(path: str) -> str:
    return '"' + path.replace('"', '\\"') + '"'


class FileTransport(ABC):
    """Filesystem access to a target, separate from remote command execution."""

    @abstractmethod
    def ensure_directory(self, host: str, path: str) -> None:
        """Create path on host if it does not exist. Raises TransferError."""

    @abstractmethod
    def copy(self, source: Path, host: str, destination: str) -> None:
        """Copy source onto host at destination, overwriting. Raises TransferError."""

    @abstractmethod
    def exists(self, host: str, path: str) -> bool:
        """Check whether path exists on host."""


class AdminShareTransport(FileTransport):
    """Stages files through the target's hidden drive share (\\\\host\\C$)."""

    def __init__(self):
        # Off Windows a UNC string is just a relative local path
        if platform.system() != "Windows":
            raise ConfigurationError(
                "The share transfer method needs a Windows controller",
                "Use --transfer sftp (or transfer: sftp in windeploy.yml)",
            )

    def ensure_directory(self, host: str, path: str) -> None:
        target = Path(to_admin_share(host, path))
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise TransferError(f"Could not create directory {path} on {host}", str(e))

    def copy(self, source: Path, host: str, destination: str) -> None:
        target = to_admin_share(host, destination)
        try:
            shutil.copy2(source, target)
        except OSError as e:
            raise TransferError(f"Could not copy {source.name} to {host}", str(e))

    def exists(self, host: str, path: str) -> bool:
        try:
            return Path(to_admin_share(host, path)).exists()
        except OSError:
            return False


class SFTPTransport(FileTransport):
    """Stages files through the OpenSSH sftp subsystem in batch mode."""

    def __init__(self, config: SSHConfig, timeout: int = 600):
        self.config = config
        self.timeout = timeout

    def _run_batch(self, host: str, commands: List[str]) -> subprocess.CompletedProcess:
        connection = SSHConnection(host=host, config=self.config)
        batch = "\n".join(commands) + "\n"
        try:
            return subprocess.run(
                connection.sftp_command_prefix,
                input=batch,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise TransferError(f"sftp timed out after {self.timeout}s", f"Host: {host}")
        except OSError as e:
            raise TransferError("sftp could not be started", str(e))

    def ensure_directory(self, host: str, path: str) -> None:
        # "-" prefix lets sftp continue past components that already exist
        parts = PureWindowsPath(path).parts
        commands = []
        current = PureWindowsPath(parts[0])
        for part in parts[1:]:
            current = current / part
            commands.append(f"-mkdir {_quote(to_sftp_path(str(current)))}")
        commands.append(f"cd {_quote(to_sftp_path(path))}")

        result = self._run_batch(host, commands)
        if result.returncode != 0:
            raise TransferError(
                f"Could not create directory {path} on {host}",
                result.stderr.strip() or None,
            )

    def copy(self, source: Path, host: str, destination: str) -> None:
        result = self._run_batch(
            host, [f"put {_quote(str(source))} {_quote(to_sftp_path(destination))}"]
        )
        if result.returncode != 0:
            raise TransferError(
                f"Could not copy {source.name} to {host}", result.stderr.strip() or None
            )

    def exists(self, host: str, path: str) -> bool:
        try:
            result = self._run_batch(host, [f"ls {_quote(to_sftp_path(path))}"])
        except TransferError:
            return False
        return result.returncode == 0


def create_transport(method: str, config: SSHConfig) -> FileTransport:
    """Build the transport for a configured transfer method."""
    if method == TRANSFER_SHARE:
        return AdminShareTransport()
    if method == TRANSFER_SFTP:
        return SFTPTransport(config)
    raise ConfigurationError(f"Unknown transfer method: {method}")
