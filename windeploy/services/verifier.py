"""Post-install check for the artifact a good installation leaves behind."""

from typing import Optional

from windeploy.models.config import VerifyConfig
from windeploy.services.ssh_service import RemoteSession, SSHService

VERIFY_SCRIPT = """
$artifact = Join-Path -Path $Request.install_directory -ChildPath $Request.artifact
@{ present = [bool](Test-Path -LiteralPath $artifact -PathType Leaf) } | ConvertTo-Json -Compress
"""


class InstallVerifier:
    """Detects a silent failure: exit code 0 but nothing usable installed."""

    def __init__(self, ssh_service: SSHService, verify_config: VerifyConfig, timeout: int = 60):
        self.ssh = ssh_service
        self.verify_config = verify_config
        self.timeout = timeout

    @property
    def artifact(self) -> str:
        return self.verify_config.artifact

    def verify(
        self, host: str, install_directory: str, session: Optional[RemoteSession] = None
    ) -> bool:
        """
        Check that the well-known artifact exists under install_directory.

        Existence only; version and integrity are not inspected.

        Raises:
            SSHError: If the remote check could not be run
            TimeoutError: If the remote check did not answer in time
        """
        response = self.ssh.invoke(
            host,
            VERIFY_SCRIPT,
            {"install_directory": install_directory, "artifact": self.artifact},
            timeout=self.timeout,
            session=session,
        )
        return bool(response.get("present"))
