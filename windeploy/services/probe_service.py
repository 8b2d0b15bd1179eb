"""Connectivity probe: name resolution, echo reachability, remoting handshake."""

import platform
import socket
import subprocess
from typing import List

from windeploy.constants import SSH_BANNER_PREFIX
from windeploy.models.config import ProbeConfig
from windeploy.models.results import ConnectivityReport, FailureStage
from windeploy.models.ssh import SSHConfig


def build_ping_command(host: str, count: int, timeout: int) -> List[str]:
    """Build the system ping invocation for count probes with a per-probe timeout."""
    system = platform.system()
    if system == "Windows":
        return ["ping", "-n", str(count), "-w", str(timeout * 1000), host]
    if system == "Darwin":
        # macOS -W is in milliseconds
        return ["ping", "-c", str(count), "-W", str(timeout * 1000), host]
    return ["ping", "-c", str(count), "-W", str(timeout), host]


class ConnectivityProber:
    """
    Checks that a target can be deployed to, before anything is changed on it.

    Steps run in order and each one gates the next. A failure is
    authoritative for the attempt; nothing is retried here.
    """

    def __init__(self, probe_config: ProbeConfig, ssh_config: SSHConfig):
        self.probe_config = probe_config
        self.ssh_config = ssh_config

    def probe(self, host: str) -> ConnectivityReport:
        """
        Probe host.

        Args:
            host: Target hostname or address

        Returns:
            ConnectivityReport with the first failing stage, if any
        """
        report = ConnectivityReport(host=host)

        if self.probe_config.resolve_names:
            try:
                report.addresses = self.resolve(host)
            except OSError as e:
                report.failure_stage = FailureStage.DNS
                report.detail = str(e)
                return report
            if not report.addresses:
                report.failure_stage = FailureStage.DNS
                report.detail = "no addresses returned"
                return report
        report.resolved = True

        reachable, detail = self.ping(host)
        if not reachable:
            report.failure_stage = FailureStage.PING
            report.detail = detail
            return report
        report.reachable = True

        available, detail = self.check_remoting(host)
        if not available:
            report.failure_stage = FailureStage.REMOTING
            report.detail = detail
            return report
        report.remoting_available = True

        return report

    def resolve(self, host: str) -> List[str]:
        """Resolve host to its distinct addresses. Raises OSError on failure."""
        infos = socket.getaddrinfo(host, None)
        addresses = []
        for info in infos:
            address = info[4][0]
            if address not in addresses:
                addresses.append(address)
        return addresses

    def ping(self, host: str) -> tuple[bool, str]:
        """Send the configured echo probes. No response is a plain failure."""
        count = self.probe_config.ping_count
        timeout = self.probe_config.ping_timeout
        cmd = build_ping_command(host, count, timeout)

        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=count * timeout + 5,
            )
        except subprocess.TimeoutExpired:
            return False, f"ping did not finish within {count * timeout + 5}s"
        except OSError as e:
            return False, f"ping could not be run: {e}"

        if result.returncode != 0:
            return False, f"no echo reply to {count} probes"
        return True, ""

    def check_remoting(self, host: str) -> tuple[bool, str]:
        """Connect to the remoting port and expect an SSH identification banner."""
        port = self.ssh_config.port
        timeout = self.ssh_config.connect_timeout

        try:
            with socket.create_connection((host, port), timeout=timeout) as sock:
                banner = sock.recv(256)
        except OSError as e:
            return False, f"port {port}: {e}"

        if not banner.startswith(SSH_BANNER_PREFIX):
            return False, f"port {port} did not answer with an SSH banner"
        return True, ""
