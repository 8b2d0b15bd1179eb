"""Tests for windeploy.services.executor: RemoteExecutor and argument building."""

from __future__ import annotations

import pytest

from tests.conftest import make_ssh_service, scripts_invoked
from windeploy.exceptions import RemoteInvocationError, RemoteSessionError
from windeploy.models.config import InstallerOptions
from windeploy.models.messages import Severity
from windeploy.models.results import ExecutionStatus
from windeploy.services.executor import (
    RemoteExecutor,
    build_installer_arguments,
    classify_exit_code,
    format_installer_arguments,
)
from windeploy.services.verifier import InstallVerifier

INSTALLER_PATH = r"C:\Temp\MinicondaInstall\Miniconda3-py312_24.5.0-0-Windows-x86_64.exe"
INSTALL_DIR = r"C:\Miniconda3"
OPTIONS = InstallerOptions(add_to_path=True, register_as_default=False)


def run_executor(ssh, verify_config, execution_timeout=None):
    executor = RemoteExecutor(
        ssh, InstallVerifier(ssh, verify_config), execution_timeout=execution_timeout
    )
    return executor.execute("web01", INSTALLER_PATH, INSTALL_DIR, OPTIONS)


def texts(outcome, severity):
    return [m.text for m in outcome.messages if m.severity is severity]


class TestInstallerArguments:
    def test_exact_argument_string(self):
        assert (
            format_installer_arguments(OPTIONS, r"C:\X")
            == r"/S /AddToPath=1 /RegisterPython=0 /D=C:\X"
        )

    def test_install_directory_is_last_and_unquoted(self):
        arguments = build_installer_arguments(
            InstallerOptions(add_to_path=False, register_as_default=True),
            r'"C:\Program Files\Miniconda3"',
        )
        assert arguments == [
            "/S",
            "/AddToPath=0",
            "/RegisterPython=1",
            r"/D=C:\Program Files\Miniconda3",
        ]

    @pytest.mark.parametrize(
        "code, status",
        [
            (0, ExecutionStatus.SUCCESS),
            (1, ExecutionStatus.USER_CANCELLED),
            (2, ExecutionStatus.INSTALLER_ABORTED),
            (1603, ExecutionStatus.INSTALLER_ABORTED),
        ],
    )
    def test_classify_exit_code(self, code, status):
        assert classify_exit_code(code) is status


class TestExecuteSuccess:
    def test_success_with_artifact(self, verify_config):
        ssh = make_ssh_service(install_response={"installer_present": True, "exit_code": 0})

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.SUCCESS
        assert outcome.raw_exit_code == 0
        assert outcome.post_install_artifact_present is True
        assert outcome.cleaned_up is True
        assert scripts_invoked(ssh) == ["install", "verify", "cleanup"]
        assert texts(outcome, Severity.WARNING) == []
        assert "Installer completed successfully (exit code 0)" in texts(outcome, Severity.INFO)

    def test_request_carries_path_and_arguments(self, verify_config):
        ssh = make_ssh_service(install_response={"installer_present": True, "exit_code": 0})

        run_executor(ssh, verify_config, execution_timeout=900)

        install_call = ssh.invoke.call_args_list[0]
        assert install_call.args[2] == {
            "installer_path": INSTALLER_PATH,
            "arguments": r"/S /AddToPath=1 /RegisterPython=0 /D=C:\Miniconda3",
        }
        assert install_call.kwargs["timeout"] == 900

    def test_success_but_artifact_missing_warns(self, verify_config):
        ssh = make_ssh_service(
            install_response={"installer_present": True, "exit_code": 0}, verify_present=False
        )

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.SUCCESS
        assert outcome.post_install_artifact_present is False
        warnings = texts(outcome, Severity.WARNING)
        assert any("python.exe was not found" in w for w in warnings)

    def test_verification_error_only_warns(self, verify_config):
        ssh = make_ssh_service(
            install_response={"installer_present": True, "exit_code": 0},
            verify_error=RemoteInvocationError("web01", "Remote call failed with exit code 1"),
        )

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.SUCCESS
        assert any("Could not verify installation" in w for w in texts(outcome, Severity.WARNING))
        assert outcome.cleaned_up is True


class TestExecuteInstallerFailures:
    def test_nonzero_exit_is_aborted(self, verify_config):
        ssh = make_ssh_service(install_response={"installer_present": True, "exit_code": 2})

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.INSTALLER_ABORTED
        assert outcome.raw_exit_code == 2
        assert outcome.installer_failed
        errors = texts(outcome, Severity.ERROR)
        assert any("aborted" in e and "2" in e for e in errors)
        assert scripts_invoked(ssh) == ["install", "cleanup"]

    def test_negative_exit_code_keeps_raw_value(self, verify_config):
        # STATUS_ACCESS_VIOLATION as PowerShell's signed Int32
        ssh = make_ssh_service(install_response={"installer_present": True, "exit_code": -1073741819})

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.INSTALLER_ABORTED
        assert outcome.raw_exit_code == -1073741819
        errors = texts(outcome, Severity.ERROR)
        assert any("-1073741819" in e and "0xC0000005" in e for e in errors)

    def test_exit_one_is_user_cancelled(self, verify_config):
        ssh = make_ssh_service(install_response={"installer_present": True, "exit_code": 1})

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.USER_CANCELLED
        assert any("cancelled by the user" in e for e in texts(outcome, Severity.ERROR))

    def test_missing_installer_skips_cleanup(self, verify_config):
        ssh = make_ssh_service(install_response={"installer_present": False, "exit_code": None})

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.INSTALLER_MISSING
        assert outcome.raw_exit_code is None
        assert scripts_invoked(ssh) == ["install"]

    def test_unreadable_exit_code_is_unexpected(self, verify_config):
        ssh = make_ssh_service(install_response={"installer_present": True, "exit_code": "x"})

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.UNEXPECTED
        assert scripts_invoked(ssh) == ["install", "cleanup"]


class TestExecuteErrors:
    def test_cleanup_failure_only_warns(self, verify_config):
        ssh = make_ssh_service(
            install_response={"installer_present": True, "exit_code": 0},
            cleanup_error=RemoteInvocationError("web01", "Remote call failed with exit code 1"),
        )

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.SUCCESS
        assert outcome.cleaned_up is False
        assert any("Could not remove staged installer" in w for w in texts(outcome, Severity.WARNING))

    def test_cleanup_leaves_file_warns(self, verify_config):
        ssh = make_ssh_service(
            install_response={"installer_present": True, "exit_code": 0},
            cleanup_response={"removed": False},
        )

        outcome = run_executor(ssh, verify_config)

        assert outcome.cleaned_up is False
        assert any("still present" in w for w in texts(outcome, Severity.WARNING))

    def test_session_cannot_be_opened(self, verify_config):
        ssh = make_ssh_service(session_error=RemoteSessionError("web01", "Permission denied"))

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.SESSION_FAILED
        assert any("web01" in e for e in texts(outcome, Severity.ERROR))
        ssh.invoke.assert_not_called()

    def test_session_lost_during_install(self, verify_config):
        ssh = make_ssh_service(install_error=RemoteSessionError("web01", "Connection reset"))

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.SESSION_FAILED
        assert scripts_invoked(ssh) == ["install"]

    def test_timeout_still_cleans_up(self, verify_config):
        ssh = make_ssh_service(install_error=TimeoutError("timed out"))

        outcome = run_executor(ssh, verify_config, execution_timeout=5)

        assert outcome.status is ExecutionStatus.TIMED_OUT
        assert any("5s" in e for e in texts(outcome, Severity.ERROR))
        assert scripts_invoked(ssh) == ["install", "cleanup"]

    def test_unexpected_exception_is_folded_into_outcome(self, verify_config):
        ssh = make_ssh_service(install_error=ValueError("bad things"))

        outcome = run_executor(ssh, verify_config)

        assert outcome.status is ExecutionStatus.UNEXPECTED
        assert any("ValueError: bad things" in e for e in texts(outcome, Severity.ERROR))
