"""
Deployment Orchestrator

Linear state machine over one install attempt:

    Start -> Preconditions -> Probe -> Stage -> Execute (-> Verify -> Cleanup)
          -> Aggregate -> Terminal

Every stage is gated on the previous one. The orchestrator owns the
mapping from stage failures to final status codes and the message stream.
Nothing is retried; callers re-run the whole pipeline if they want to.
"""

from typing import Callable, Optional

from windeploy.constants import (
    EXIT_ARTIFACT_NOT_FOUND,
    EXIT_DNS_FAILED,
    EXIT_INSTALLER_BASE,
    EXIT_INSTALLER_TIMEOUT,
    EXIT_NO_TARGET,
    EXIT_NOT_PRIVILEGED,
    EXIT_REMOTING_UNAVAILABLE,
    EXIT_SESSION_FAILED,
    EXIT_STAGING_DIR_FAILED,
    EXIT_SUCCESS,
    EXIT_TRANSFER_FAILED,
    EXIT_TRANSFER_UNVERIFIED,
    EXIT_UNEXPECTED,
    EXIT_UNREACHABLE,
    EXIT_VERIFICATION_FAILED,
    INSTALLER_EXIT_MASK,
    ON_MISSING_FAIL,
)
from windeploy.models.config import DeploymentConfig, DeploymentRequest
from windeploy.models.messages import MessageListener, MessageLog
from windeploy.models.results import (
    ConnectivityReport,
    DeploymentResult,
    ExecutionOutcome,
    ExecutionStatus,
    FailureStage,
    TransferResult,
    TransferStage,
)
from windeploy.services.executor import RemoteExecutor
from windeploy.services.probe_service import ConnectivityProber
from windeploy.services.ssh_service import SSHService
from windeploy.services.stager import ArtifactStager
from windeploy.services.transfer_service import create_transport
from windeploy.services.verifier import InstallVerifier
from windeploy.utils import is_privileged

PROBE_CODES = {
    FailureStage.DNS: EXIT_DNS_FAILED,
    FailureStage.PING: EXIT_UNREACHABLE,
    FailureStage.REMOTING: EXIT_REMOTING_UNAVAILABLE,
}

TRANSFER_CODES = {
    TransferStage.SOURCE_MISSING: EXIT_ARTIFACT_NOT_FOUND,
    TransferStage.DIRECTORY: EXIT_STAGING_DIR_FAILED,
    TransferStage.COPY: EXIT_TRANSFER_FAILED,
    TransferStage.VERIFY: EXIT_TRANSFER_UNVERIFIED,
}

EXECUTION_CODES = {
    ExecutionStatus.INSTALLER_MISSING: EXIT_ARTIFACT_NOT_FOUND,
    ExecutionStatus.SESSION_FAILED: EXIT_SESSION_FAILED,
    ExecutionStatus.TIMED_OUT: EXIT_INSTALLER_TIMEOUT,
    ExecutionStatus.UNEXPECTED: EXIT_UNEXPECTED,
}

StepCallback = Callable[[str], None]


class _StageFailed(Exception):
    """Internal short-circuit carrying the final status code."""

    def __init__(self, code: int):
        self.code = code
        super().__init__(code)


class DeploymentOrchestrator:
    """
    Runs one deployment attempt against one target.

    Components are built from the config unless injected, which keeps
    attempts independent of each other: no state is shared between runs.
    The stager is only built when a run reaches staging, so check()
    works whatever transfer method is configured.
    """

    def __init__(
        self,
        config: DeploymentConfig,
        prober: Optional[ConnectivityProber] = None,
        stager: Optional[ArtifactStager] = None,
        executor: Optional[RemoteExecutor] = None,
        privilege_check: Callable[[], bool] = is_privileged,
    ):
        self.config = config
        ssh_service = SSHService(config.remoting)
        self.prober = prober or ConnectivityProber(config.probe, config.remoting)
        self._stager = stager
        self.executor = executor or RemoteExecutor(
            ssh_service,
            InstallVerifier(ssh_service, config.verify),
            execution_timeout=config.execution_timeout,
        )
        self.privilege_check = privilege_check

    @property
    def stager(self) -> ArtifactStager:
        """Stager for the configured transport, built on first use."""
        if self._stager is None:
            self._stager = ArtifactStager(
                create_transport(self.config.transfer_method, self.config.remoting)
            )
        return self._stager

    def run(
        self,
        request: DeploymentRequest,
        listener: Optional[MessageListener] = None,
        on_step: Optional[StepCallback] = None,
    ) -> DeploymentResult:
        """
        Deploy according to request.

        Args:
            request: What to install where
            listener: Receives every message as soon as it is produced
            on_step: Receives the name of each stage as it starts

        Returns:
            DeploymentResult; never raises for stage failures
        """
        log = MessageLog(listener)
        step = on_step or (lambda name: None)

        try:
            step("Pre-flight checks")
            self._check_preconditions(request, log)

            step("Connectivity")
            self._check_connectivity(request, log)

            step("Staging installer")
            transfer = self.stager.stage(
                request.source_path,
                request.target_host,
                request.staging_directory,
                request.installer_filename,
            )
            self._check_transfer(request, transfer, log)

            step("Running installer")
            outcome = self.executor.execute(
                request.target_host,
                request.staged_installer_path,
                request.install_directory,
                request.installer_options,
            )
            code = self._aggregate(outcome, log)
        except _StageFailed as failed:
            code = failed.code
        except Exception as e:
            log.error(f"Unexpected failure: {type(e).__name__}: {e}")
            code = EXIT_UNEXPECTED

        if code == EXIT_SUCCESS:
            log.info(f"Deployment to {request.target_host} completed")
        return DeploymentResult(request.target_host, code, log.messages)

    def check(
        self,
        request: DeploymentRequest,
        listener: Optional[MessageListener] = None,
        on_step: Optional[StepCallback] = None,
    ) -> DeploymentResult:
        """Run only the pre-flight and connectivity stages; nothing is changed on the target."""
        log = MessageLog(listener)
        step = on_step or (lambda name: None)

        try:
            step("Pre-flight checks")
            self._check_preconditions(request, log)
            step("Connectivity")
            self._check_connectivity(request, log)
            code = EXIT_SUCCESS
        except _StageFailed as failed:
            code = failed.code
        except Exception as e:
            log.error(f"Unexpected failure: {type(e).__name__}: {e}")
            code = EXIT_UNEXPECTED

        return DeploymentResult(request.target_host, code, log.messages)

    def _check_preconditions(self, request: DeploymentRequest, log: MessageLog) -> None:
        if not request.target_host:
            log.error("No target host supplied")
            raise _StageFailed(EXIT_NO_TARGET)

        if self.config.require_privileged and not self.privilege_check():
            log.error("This deployment must be run with administrator privileges")
            raise _StageFailed(EXIT_NOT_PRIVILEGED)

        log.info(f"Target: {request.target_host}")

    def _check_connectivity(self, request: DeploymentRequest, log: MessageLog) -> None:
        report: ConnectivityReport = self.prober.probe(request.target_host)

        if report.failure_stage is FailureStage.DNS:
            log.error(f"Could not resolve {report.host}: {report.detail}")
        elif report.failure_stage is FailureStage.PING:
            log.error(f"{report.host} is not reachable: {report.detail}")
        elif report.failure_stage is FailureStage.REMOTING:
            log.error(f"Remote execution is not available on {report.host}: {report.detail}")

        if not report.is_success:
            raise _StageFailed(PROBE_CODES[report.failure_stage])

        if report.addresses:
            log.info(f"Resolved {report.host} to {', '.join(report.addresses)}")
        log.info(f"{report.host} is reachable")
        log.info(f"Remote execution is available on {report.host}")

    def _check_transfer(self, request: DeploymentRequest, transfer: TransferResult, log: MessageLog) -> None:
        host = request.target_host

        if transfer.failure_stage is TransferStage.SOURCE_MISSING:
            log.error(f"Installer not found at source: {transfer.detail}")
        elif transfer.failure_stage is TransferStage.DIRECTORY:
            log.error(
                f"Could not create staging directory {request.staging_directory} on {host}: {transfer.detail}"
            )
        elif transfer.failure_stage is TransferStage.COPY:
            log.error(f"Could not copy installer to {host}: {transfer.detail}")
        elif transfer.failure_stage is TransferStage.VERIFY:
            log.error(f"Installer not found on {host} after copy: {transfer.detail}")

        if transfer.failure_stage is not TransferStage.NONE:
            raise _StageFailed(TRANSFER_CODES[transfer.failure_stage])
        if not transfer.destination_verified:
            log.error(f"Installer not found on {host} after copy")
            raise _StageFailed(EXIT_TRANSFER_UNVERIFIED)

        log.info(f"Staged installer at {transfer.destination_path}")

    def _aggregate(self, outcome: ExecutionOutcome, log: MessageLog) -> int:
        log.extend(outcome.messages)

        if outcome.installer_failed:
            return EXIT_INSTALLER_BASE + (outcome.raw_exit_code & INSTALLER_EXIT_MASK)
        if not outcome.is_success:
            return EXECUTION_CODES[outcome.status]

        if (
            not outcome.post_install_artifact_present
            and self.config.verify.on_missing == ON_MISSING_FAIL
        ):
            log.error("Post-install verification failed")
            return EXIT_VERIFICATION_FAILED
        return EXIT_SUCCESS
