"""Remote executor: runs the staged installer on the target and classifies the result."""

from typing import List, Optional

from windeploy.constants import INSTALLER_EXIT_MASK, INSTALLER_EXIT_USER_CANCELLED
from windeploy.exceptions import RemoteSessionError, SSHError
from windeploy.models.config import InstallerOptions
from windeploy.models.messages import Severity
from windeploy.models.results import ExecutionOutcome, ExecutionStatus
from windeploy.services.ssh_service import RemoteSession, SSHService
from windeploy.services.verifier import InstallVerifier

INSTALL_SCRIPT = """
if (-not (Test-Path -LiteralPath $Request.installer_path -PathType Leaf)) {
    @{ installer_present = $false; exit_code = $null } | ConvertTo-Json -Compress
    exit 0
}
$process = Start-Process -FilePath $Request.installer_path -ArgumentList $Request.arguments -Wait -PassThru
@{ installer_present = $true; exit_code = $process.ExitCode } | ConvertTo-Json -Compress
"""

CLEANUP_SCRIPT = """
if (Test-Path -LiteralPath $Request.path) {
    Remove-Item -LiteralPath $Request.path -Force
}
@{ removed = -not (Test-Path -LiteralPath $Request.path) } | ConvertTo-Json -Compress
"""


def build_installer_arguments(options: InstallerOptions, install_directory: str) -> List[str]:
    """
    Build the installer's command-line tokens.

    The installer reads everything after /D= verbatim as the install path,
    so /D= has to be the last token and the path must not be quoted.
    """
    arguments = ["/S"]
    for name, value in options.as_flags().items():
        arguments.append(f"/{name}={value}")
    path = install_directory.strip().strip('"')
    arguments.append(f"/D={path}")
    return arguments


def format_installer_arguments(options: InstallerOptions, install_directory: str) -> str:
    return " ".join(build_installer_arguments(options, install_directory))


def classify_exit_code(exit_code: int) -> ExecutionStatus:
    """Map the installer's raw exit status to an execution status."""
    if exit_code == 0:
        return ExecutionStatus.SUCCESS
    if exit_code == INSTALLER_EXIT_USER_CANCELLED:
        return ExecutionStatus.USER_CANCELLED
    return ExecutionStatus.INSTALLER_ABORTED


class RemoteExecutor:
    """
    Runs the installer inside one remote session.

    Sequence: open session, launch and wait, classify, verify on success,
    clean up the staged installer. The session is closed on every path.
    """

    def __init__(
        self,
        ssh_service: SSHService,
        verifier: InstallVerifier,
        execution_timeout: Optional[int] = None,
        cleanup_timeout: int = 60,
    ):
        self.ssh = ssh_service
        self.verifier = verifier
        self.execution_timeout = execution_timeout
        self.cleanup_timeout = cleanup_timeout

    def execute(
        self,
        host: str,
        installer_path: str,
        install_directory: str,
        options: InstallerOptions,
    ) -> ExecutionOutcome:
        """
        Run installer_path on host and report the classified outcome.

        Never raises; every failure is folded into the returned outcome.
        """
        arguments = format_installer_arguments(options, install_directory)

        try:
            with self.ssh.session(host) as session:
                return self._run(session, installer_path, install_directory, arguments)
        except RemoteSessionError as e:
            outcome = ExecutionOutcome(status=ExecutionStatus.SESSION_FAILED)
            outcome.add(Severity.ERROR, e.format_message())
            return outcome
        except Exception as e:
            outcome = ExecutionOutcome(status=ExecutionStatus.UNEXPECTED)
            outcome.add(
                Severity.ERROR,
                f"Unexpected error during remote execution: {type(e).__name__}: {e}",
            )
            return outcome

    def _run(
        self,
        session: RemoteSession,
        installer_path: str,
        install_directory: str,
        arguments: str,
    ) -> ExecutionOutcome:
        host = session.host
        outcome = ExecutionOutcome(status=ExecutionStatus.UNEXPECTED)
        outcome.add(Severity.INFO, f"Running installer: {installer_path} {arguments}")

        try:
            response = self.ssh.invoke(
                host,
                INSTALL_SCRIPT,
                {"installer_path": installer_path, "arguments": arguments},
                timeout=self.execution_timeout,
                session=session,
            )
        except TimeoutError:
            outcome.status = ExecutionStatus.TIMED_OUT
            outcome.add(
                Severity.ERROR,
                f"Installer did not finish within {self.execution_timeout}s; "
                "it may still be running on the target",
            )
            self._cleanup(session, installer_path, outcome)
            return outcome
        except RemoteSessionError as e:
            # Connection is gone; cleanup would fail the same way
            outcome.status = ExecutionStatus.SESSION_FAILED
            outcome.add(Severity.ERROR, e.format_message())
            return outcome
        except Exception as e:
            outcome.add(
                Severity.ERROR,
                f"Unexpected error during remote execution: {type(e).__name__}: {e}",
            )
            self._cleanup(session, installer_path, outcome)
            return outcome

        if not response.get("installer_present"):
            outcome.status = ExecutionStatus.INSTALLER_MISSING
            outcome.add(Severity.ERROR, f"Installer not found on target: {installer_path}")
            return outcome

        try:
            raw_exit_code = int(response.get("exit_code"))
        except (TypeError, ValueError):
            outcome.add(
                Severity.ERROR,
                f"Installer exit status could not be read: {response.get('exit_code')!r}",
            )
            self._cleanup(session, installer_path, outcome)
            return outcome

        outcome.raw_exit_code = raw_exit_code
        outcome.status = classify_exit_code(raw_exit_code)

        if outcome.status is ExecutionStatus.SUCCESS:
            outcome.add(Severity.INFO, "Installer completed successfully (exit code 0)")
            self._verify(session, install_directory, outcome)
        elif outcome.status is ExecutionStatus.USER_CANCELLED:
            outcome.add(
                Severity.ERROR,
                f"Installation was cancelled by the user (exit code {raw_exit_code})",
            )
        else:
            outcome.add(
                Severity.ERROR,
                f"Installer aborted with exit code {raw_exit_code} "
                f"(0x{raw_exit_code & INSTALLER_EXIT_MASK:08X}; "
                "check disk space, permissions and the install path)",
            )

        self._cleanup(session, installer_path, outcome)
        return outcome

    def _verify(self, session: RemoteSession, install_directory: str, outcome: ExecutionOutcome) -> None:
        try:
            present = self.verifier.verify(session.host, install_directory, session=session)
        except (SSHError, TimeoutError) as e:
            outcome.add(Severity.WARNING, f"Could not verify installation: {e}")
            return

        outcome.post_install_artifact_present = present
        if present:
            outcome.add(
                Severity.INFO,
                f"Verified {self.verifier.artifact} in {install_directory}",
            )
        else:
            outcome.add(
                Severity.WARNING,
                f"Installer reported success but {self.verifier.artifact} "
                f"was not found in {install_directory}",
            )

    def _cleanup(self, session: RemoteSession, installer_path: str, outcome: ExecutionOutcome) -> None:
        """Best-effort removal of the staged installer; failures only warn."""
        try:
            response = self.ssh.invoke(
                session.host,
                CLEANUP_SCRIPT,
                {"path": installer_path},
                timeout=self.cleanup_timeout,
                session=session,
            )
        except (SSHError, TimeoutError) as e:
            outcome.add(Severity.WARNING, f"Could not remove staged installer {installer_path}: {e}")
            return

        if response.get("removed"):
            outcome.cleaned_up = True
            outcome.add(Severity.INFO, f"Removed staged installer {installer_path}")
        else:
            outcome.add(Severity.WARNING, f"Staged installer {installer_path} is still present")
