"""Tests for windeploy.services.orchestrator: DeploymentOrchestrator."""

from __future__ import annotations

from dataclasses import replace
from unittest.mock import MagicMock, patch

import pytest

from tests.conftest import make_ssh_service, scripts_invoked
from windeploy.exceptions import RemoteInvocationError
from windeploy.models.config import VerifyConfig
from windeploy.models.messages import Severity
from windeploy.models.results import (
    ConnectivityReport,
    ExecutionOutcome,
    ExecutionStatus,
    FailureStage,
    TransferResult,
    TransferStage,
)
from windeploy.services.executor import RemoteExecutor
from windeploy.services.orchestrator import DeploymentOrchestrator
from windeploy.services.stager import ArtifactStager
from windeploy.services.verifier import InstallVerifier


def probe_report(host="web01", failure_stage=FailureStage.NONE, detail=None):
    ok = failure_stage is FailureStage.NONE
    return ConnectivityReport(
        host=host,
        resolved=failure_stage is not FailureStage.DNS,
        reachable=ok or failure_stage is FailureStage.REMOTING,
        remoting_available=ok,
        failure_stage=failure_stage,
        addresses=["10.0.0.5"] if failure_stage is not FailureStage.DNS else [],
        detail=detail,
    )


def staged(failure_stage=TransferStage.NONE, detail=None):
    return TransferResult(
        source_exists=failure_stage is not TransferStage.SOURCE_MISSING,
        destination_directory_ready=failure_stage in (TransferStage.NONE, TransferStage.COPY, TransferStage.VERIFY),
        copy_succeeded=failure_stage in (TransferStage.NONE, TransferStage.VERIFY),
        destination_verified=failure_stage is TransferStage.NONE,
        failure_stage=failure_stage,
        destination_path=r"C:\Temp\MinicondaInstall\Miniconda3-py312_24.5.0-0-Windows-x86_64.exe",
        detail=detail,
    )


def outcome(status=ExecutionStatus.SUCCESS, raw_exit_code=0, artifact=True):
    return ExecutionOutcome(
        status=status,
        raw_exit_code=raw_exit_code,
        post_install_artifact_present=artifact,
        cleaned_up=True,
    )


def build(config, report=None, transfer=None, execution=None, privileged=True):
    prober = MagicMock()
    prober.probe.return_value = report or probe_report()
    stager = MagicMock()
    stager.stage.return_value = transfer or staged()
    executor = MagicMock()
    executor.execute.return_value = execution or outcome()
    orchestrator = DeploymentOrchestrator(
        config,
        prober=prober,
        stager=stager,
        executor=executor,
        privilege_check=lambda: privileged,
    )
    return orchestrator, prober, stager, executor


def texts(result, severity):
    return [m.text for m in result.messages_at(severity)]


class TestPreconditions:
    def test_empty_host_is_no_target(self, config, request_for):
        orchestrator, prober, stager, executor = build(config)

        result = orchestrator.run(request_for("   "))

        assert result.final_status_code == 2
        assert texts(result, Severity.ERROR) == ["No target host supplied"]
        prober.probe.assert_not_called()
        stager.stage.assert_not_called()

    def test_unprivileged_caller_when_required(self, config, request_for):
        orchestrator, prober, _, _ = build(
            replace(config, require_privileged=True), privileged=False
        )

        result = orchestrator.run(request_for())

        assert result.final_status_code == 1
        prober.probe.assert_not_called()

    def test_privilege_not_checked_by_default(self, config, request_for):
        orchestrator, _, _, _ = build(config, privileged=False)

        assert orchestrator.run(request_for()).final_status_code == 0


class TestConnectivityCodes:
    @pytest.mark.parametrize(
        "stage, code",
        [
            (FailureStage.DNS, 11),
            (FailureStage.PING, 10),
            (FailureStage.REMOTING, 12),
        ],
    )
    def test_probe_failure_codes(self, config, request_for, stage, code):
        orchestrator, _, stager, executor = build(
            config, report=probe_report(failure_stage=stage, detail="nope")
        )

        result = orchestrator.run(request_for())

        assert result.final_status_code == code
        assert len(texts(result, Severity.ERROR)) == 1
        stager.stage.assert_not_called()
        executor.execute.assert_not_called()

    def test_unresolvable_target_makes_no_changes(self, config, request_for):
        transport = MagicMock()
        prober = MagicMock()
        prober.probe.return_value = probe_report("nosuchhost", FailureStage.DNS, "unknown")
        ssh = make_ssh_service()
        orchestrator = DeploymentOrchestrator(
            config,
            prober=prober,
            stager=ArtifactStager(transport),
            executor=RemoteExecutor(ssh, InstallVerifier(ssh, config.verify)),
        )

        result = orchestrator.run(request_for("nosuchhost"))

        assert result.final_status_code == 11
        assert transport.method_calls == []
        ssh.session.assert_not_called()
        ssh.invoke.assert_not_called()


class TestTransferCodes:
    @pytest.mark.parametrize(
        "stage, code",
        [
            (TransferStage.SOURCE_MISSING, 21),
            (TransferStage.DIRECTORY, 20),
            (TransferStage.COPY, 22),
            (TransferStage.VERIFY, 23),
        ],
    )
    def test_transfer_failure_codes(self, config, request_for, stage, code):
        orchestrator, _, _, executor = build(config, transfer=staged(stage, "detail"))

        result = orchestrator.run(request_for())

        assert result.final_status_code == code
        executor.execute.assert_not_called()

    def test_missing_source_with_real_stager(self, config, request_for):
        transport = MagicMock()
        ssh = make_ssh_service()
        config = replace(config, installer_filename="Miniconda3-missing-Windows-x86_64.exe")
        prober = MagicMock()
        prober.probe.return_value = probe_report()
        orchestrator = DeploymentOrchestrator(
            config,
            prober=prober,
            stager=ArtifactStager(transport),
            executor=RemoteExecutor(ssh, InstallVerifier(ssh, config.verify)),
        )

        result = orchestrator.run(request_for())

        assert result.final_status_code == 21
        transport.ensure_directory.assert_not_called()
        ssh.session.assert_not_called()


class TestExecutionCodes:
    def test_success(self, config, request_for):
        orchestrator, _, stager, executor = build(config)

        result = orchestrator.run(request_for())

        assert result.final_status_code == 0
        assert result.is_success
        assert texts(result, Severity.ERROR) == []
        stager.stage.assert_called_once_with(
            config.source_path, "web01", r"C:\Temp\MinicondaInstall", "Miniconda3-py312_24.5.0-0-Windows-x86_64.exe"
        )
        executor.execute.assert_called_once_with(
            "web01",
            r"C:\Temp\MinicondaInstall\Miniconda3-py312_24.5.0-0-Windows-x86_64.exe",
            r"C:\Miniconda3",
            config.installer,
        )

    def test_installer_exit_code_is_offset(self, config, request_for):
        orchestrator, _, _, _ = build(
            config, execution=outcome(ExecutionStatus.INSTALLER_ABORTED, 2, artifact=False)
        )

        result = orchestrator.run(request_for())

        assert result.final_status_code == 102
        assert result.description == "installer failed with exit code 2"

    def test_user_cancelled_is_101(self, config, request_for):
        orchestrator, _, _, _ = build(
            config, execution=outcome(ExecutionStatus.USER_CANCELLED, 1, artifact=False)
        )

        assert orchestrator.run(request_for()).final_status_code == 101

    @pytest.mark.parametrize(
        "status, code",
        [
            (ExecutionStatus.SESSION_FAILED, 13),
            (ExecutionStatus.TIMED_OUT, 98),
            (ExecutionStatus.UNEXPECTED, 99),
            (ExecutionStatus.INSTALLER_MISSING, 21),
        ],
    )
    def test_execution_status_codes(self, config, request_for, status, code):
        orchestrator, _, _, _ = build(config, execution=outcome(status, None, artifact=False))

        assert orchestrator.run(request_for()).final_status_code == code

    def test_negative_exit_code_is_offset_as_unsigned(self, config, request_for):
        orchestrator, _, _, _ = build(
            config, execution=outcome(ExecutionStatus.INSTALLER_ABORTED, -1073741819, artifact=False)
        )

        result = orchestrator.run(request_for())

        assert result.final_status_code == 100 + 0xC0000005
        assert result.final_status_code > 0
        assert result.description == "installer failed with exit code 3221225477"

    def test_missing_artifact_fails_when_strict(self, config, request_for):
        strict = replace(config, verify=VerifyConfig(on_missing="fail"))
        orchestrator, _, _, _ = build(strict, execution=outcome(artifact=False))

        result = orchestrator.run(request_for())

        assert result.final_status_code == 30

    def test_escaped_exception_is_unexpected(self, config, request_for):
        orchestrator, prober, _, _ = build(config)
        prober.probe.side_effect = RuntimeError("boom")

        result = orchestrator.run(request_for())

        assert result.final_status_code == 99
        assert any("RuntimeError: boom" in t for t in texts(result, Severity.ERROR))


class TestMessageStream:
    def test_listener_sees_messages_in_order(self, config, request_for):
        execution = outcome()
        execution.add(Severity.INFO, "Installer completed successfully (exit code 0)")
        orchestrator, _, _, _ = build(config, execution=execution)
        seen = []
        steps = []

        result = orchestrator.run(request_for(), listener=seen.append, on_step=steps.append)

        assert tuple(seen) == result.messages
        assert steps == ["Pre-flight checks", "Connectivity", "Staging installer", "Running installer"]
        assert result.messages[-1].text == "Deployment to web01 completed"

    def test_runs_are_independent(self, config, request_for):
        orchestrator, prober, _, _ = build(config)

        first = orchestrator.run(request_for())
        prober.probe.return_value = probe_report(failure_stage=FailureStage.PING, detail="x")
        second = orchestrator.run(request_for())

        assert first.final_status_code == 0
        assert second.final_status_code == 10
        assert not any("completed" in m.text for m in second.messages)


class TestCheck:
    def test_check_stops_after_connectivity(self, config, request_for):
        orchestrator, _, stager, executor = build(config)

        result = orchestrator.check(request_for())

        assert result.final_status_code == 0
        stager.stage.assert_not_called()
        executor.execute.assert_not_called()

    def test_check_reports_probe_failure(self, config, request_for):
        orchestrator, _, _, _ = build(
            config, report=probe_report(failure_stage=FailureStage.REMOTING, detail="refused")
        )

        assert orchestrator.check(request_for()).final_status_code == 12

    def test_check_does_not_build_a_transport(self, config, request_for):
        prober = MagicMock()
        prober.probe.return_value = probe_report()
        orchestrator = DeploymentOrchestrator(config, prober=prober, privilege_check=lambda: True)

        with patch("windeploy.services.orchestrator.create_transport") as mock_create:
            result = orchestrator.check(request_for())

        assert result.final_status_code == 0
        mock_create.assert_not_called()


def through_executor(config, ssh):
    """Orchestrator with a real RemoteExecutor over an SSHService double."""
    prober = MagicMock()
    prober.probe.return_value = probe_report()
    stager = MagicMock()
    stager.stage.return_value = staged()
    return DeploymentOrchestrator(
        config,
        prober=prober,
        stager=stager,
        executor=RemoteExecutor(ssh, InstallVerifier(ssh, config.verify)),
        privilege_check=lambda: True,
    )


class TestEndToEndExecution:
    def test_installer_exit_two(self, config, request_for):
        ssh = make_ssh_service(install_response={"installer_present": True, "exit_code": 2})

        result = through_executor(config, ssh).run(request_for())

        assert result.final_status_code == 102
        assert any("aborted" in e for e in texts(result, Severity.ERROR))
        assert scripts_invoked(ssh) == ["install", "cleanup"]

    def test_missing_artifact_warns_by_default(self, config, request_for):
        ssh = make_ssh_service(
            install_response={"installer_present": True, "exit_code": 0}, verify_present=False
        )

        result = through_executor(config, ssh).run(request_for())

        assert result.final_status_code == 0
        assert texts(result, Severity.ERROR) == []
        assert any("python.exe was not found" in w for w in texts(result, Severity.WARNING))

    def test_missing_artifact_fails_when_strict(self, config, request_for):
        strict = replace(config, verify=VerifyConfig(on_missing="fail"))
        ssh = make_ssh_service(
            install_response={"installer_present": True, "exit_code": 0}, verify_present=False
        )

        result = through_executor(strict, ssh).run(request_for())

        assert result.final_status_code == 30
        assert "Post-install verification failed" in texts(result, Severity.ERROR)

    def test_cleanup_failure_after_success_warns(self, config, request_for):
        ssh = make_ssh_service(
            install_response={"installer_present": True, "exit_code": 0},
            cleanup_error=RemoteInvocationError("web01", "Remote call failed with exit code 1"),
        )

        result = through_executor(config, ssh).run(request_for())

        assert result.final_status_code == 0
        assert texts(result, Severity.ERROR) == []
        assert any(
            "Could not remove staged installer" in w for w in texts(result, Severity.WARNING)
        )
