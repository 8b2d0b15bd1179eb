"""SSH service for executing commands and typed PowerShell calls on Windows hosts."""

import base64
import json
import shutil
import subprocess
import tempfile
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, Optional

from windeploy.constants import SSH_SESSION_FAILURE_CODE
from windeploy.exceptions import RemoteInvocationError, RemoteSessionError
from windeploy.models.results import SSHResult
from windeploy.models.ssh import SSHConfig, SSHConnection

REQUEST_PLACEHOLDER = "__REQUEST__"

# Decodes the request into $Request; the caller's script follows.
_REQUEST_PRELUDE = (
    "$ErrorActionPreference = 'Stop'\n"
    "$ProgressPreference = 'SilentlyContinue'\n"
    "$Request = [System.Text.Encoding]::UTF8.GetString("
    f"[System.Convert]::FromBase64String('{REQUEST_PLACEHOLDER}')) | ConvertFrom-Json\n"
)


def encode_powershell(script: str) -> str:
    """Encode a script for powershell.exe -EncodedCommand (base64 of UTF-16LE)."""
    return base64.b64encode(script.encode("utf-16-le")).decode("ascii")


def encode_request(request: Dict[str, Any]) -> str:
    """Serialize a request as base64 JSON for the remote prelude."""
    payload = json.dumps(request, separators=(",", ":"))
    return base64.b64encode(payload.encode("utf-8")).decode("ascii")


def build_remote_script(script: str, request: Dict[str, Any]) -> str:
    """Prefix a PowerShell script with the decoded request."""
    return _REQUEST_PRELUDE.replace(REQUEST_PLACEHOLDER, encode_request(request)) + script


def parse_response(host: str, stdout: str) -> Dict[str, Any]:
    """Read the JSON object printed on the last non-empty output line."""
    lines = [line.strip() for line in stdout.splitlines() if line.strip()]
    if not lines:
        raise RemoteInvocationError(host, "Remote call returned no response")
    try:
        response = json.loads(lines[-1])
    except ValueError:
        raise RemoteInvocationError(
            host, "Remote call returned an unreadable response", lines[-1]
        )
    if not isinstance(response, dict):
        raise RemoteInvocationError(
            host, "Remote call returned an unexpected response", lines[-1]
        )
    return response


class RemoteSession:
    """
    Multiplexed SSH connection to one host.

    Opened with an OpenSSH ControlMaster; every command issued through
    the session reuses the master connection until it is closed.
    """

    def __init__(self, connection: SSHConnection, socket_dir: Path):
        self.connection = connection
        self.socket_dir = socket_dir
        self.is_open = False

    @property
    def host(self) -> str:
        return self.connection.host

    def open(self) -> None:
        """
        Start the master connection.

        Raises:
            RemoteSessionError: If the connection cannot be established
        """
        cmd = self.connection.ssh_command_prefix[:1] + [
            "-M",
            "-N",
            "-f",
            "-o",
            "ControlPersist=yes",
        ] + self.connection.ssh_command_prefix[1:]
        timeout = self.connection.config.connect_timeout + 5
        error_log = self.socket_dir / "master.err"

        # The backgrounded master keeps its std handles; pipes would block run()
        try:
            with open(error_log, "w") as stderr:
                result = subprocess.run(
                    cmd,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=stderr,
                    timeout=timeout,
                )
        except subprocess.TimeoutExpired:
            raise RemoteSessionError(self.host, f"timed out after {timeout}s")
        except OSError as e:
            raise RemoteSessionError(self.host, str(e))

        if result.returncode != 0:
            detail = error_log.read_text().strip() if error_log.exists() else ""
            raise RemoteSessionError(self.host, detail or None)
        self.is_open = True

    def close(self) -> None:
        """Stop the master connection and remove its socket directory."""
        try:
            if self.is_open:
                subprocess.run(
                    self.connection.ssh_command_prefix[:1]
                    + ["-O", "exit"]
                    + self.connection.ssh_command_prefix[1:],
                    capture_output=True,
                    check=False,
                    timeout=10,
                )
        except (OSError, subprocess.TimeoutExpired):
            # Master exits on its own once the socket directory is gone
            pass
        finally:
            self.is_open = False
            shutil.rmtree(self.socket_dir, ignore_errors=True)

    def __repr__(self) -> str:
        return f"RemoteSession(host={self.host}, open={self.is_open})"


class SSHService:
    """Service for SSH operations against Windows OpenSSH targets."""

    def __init__(self, config: SSHConfig):
        """
        Initialize SSH service.

        Args:
            config: SSH configuration
        """
        self.config = config

    def connection(self, host: str, session: Optional[RemoteSession] = None) -> SSHConnection:
        """Connection details for host, bound to session if one is given."""
        if session is not None:
            return session.connection
        return SSHConnection(host=host, config=self.config)

    def execute_command(
        self,
        host: str,
        command: str,
        timeout: Optional[int] = 30,
        session: Optional[RemoteSession] = None,
    ) -> SSHResult:
        """
        Execute command on remote host via SSH.

        Args:
            host: Host IP or hostname
            command: Command to execute
            timeout: Command timeout in seconds (None blocks until exit)
            session: Open session to run the command through

        Returns:
            SSHResult with execution details
        """
        ssh_cmd = self.connection(host, session).build_command(command)

        start_time = time.time()

        try:
            result = subprocess.run(
                ssh_cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
            )
        except subprocess.TimeoutExpired:
            raise TimeoutError(
                f"SSH command timed out after {timeout}s\nContext: Host: {host}"
            )
        except OSError as e:
            raise RemoteSessionError(host, f"ssh could not be started: {e}")

        return SSHResult(
            returncode=result.returncode,
            stdout=result.stdout,
            stderr=result.stderr,
            host=host,
            command=command,
            duration_seconds=time.time() - start_time,
        )

    def run_powershell(
        self,
        host: str,
        script: str,
        timeout: Optional[int] = 30,
        session: Optional[RemoteSession] = None,
    ) -> SSHResult:
        """Run a PowerShell script on the target without a profile or prompts."""
        command = (
            "powershell.exe -NoProfile -NonInteractive -ExecutionPolicy Bypass "
            f"-EncodedCommand {encode_powershell(script)}"
        )
        return self.execute_command(host, command, timeout=timeout, session=session)

    def invoke(
        self,
        host: str,
        script: str,
        request: Dict[str, Any],
        timeout: Optional[int] = 30,
        session: Optional[RemoteSession] = None,
    ) -> Dict[str, Any]:
        """
        Send a typed request to a remote PowerShell script and read its response.

        The script sees the request as $Request and must print a single
        compact JSON object as its last line of output.

        Args:
            host: Host IP or hostname
            script: PowerShell script body
            request: JSON-serializable request
            timeout: Call timeout in seconds (None blocks until exit)
            session: Open session to run the call through

        Returns:
            Decoded response object

        Raises:
            RemoteSessionError: If the SSH connection itself failed
            RemoteInvocationError: If the script failed or its output is unreadable
            TimeoutError: If the call exceeded timeout
        """
        result = self.run_powershell(
            host, build_remote_script(script, request), timeout=timeout, session=session
        )

        if result.returncode == SSH_SESSION_FAILURE_CODE:
            raise RemoteSessionError(host, result.stderr.strip() or None)
        if result.is_failure:
            raise RemoteInvocationError(
                host,
                f"Remote call failed with exit code {result.returncode}",
                result.output or None,
            )

        return parse_response(host, result.stdout)

    @contextmanager
    def session(self, host: str) -> Iterator[RemoteSession]:
        """
        Open a remote session for the duration of the block.

        The session is released on every exit path, including exceptions.

        Raises:
            RemoteSessionError: If the session cannot be established
        """
        socket_dir = Path(tempfile.mkdtemp(prefix="windeploy-"))
        connection = SSHConnection(
            host=host, config=self.config, control_path=str(socket_dir / "control")
        )
        remote_session = RemoteSession(connection, socket_dir)
        try:
            remote_session.open()
            yield remote_session
        finally:
            remote_session.close()
