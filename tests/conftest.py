"""Shared test fixtures for windeploy tests."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from windeploy.models.config import (
    DeploymentConfig,
    DeploymentRequest,
    InstallerOptions,
    VerifyConfig,
)
from windeploy.models.ssh import SSHConfig
from windeploy.services.executor import CLEANUP_SCRIPT, INSTALL_SCRIPT
from windeploy.services.verifier import VERIFY_SCRIPT


@pytest.fixture
def source_dir(tmp_path):
    """Source share holding a fake installer."""
    source = tmp_path / "share"
    source.mkdir()
    (source / "Miniconda3-py312_24.5.0-0-Windows-x86_64.exe").write_bytes(b"MZ fake installer")
    return source


@pytest.fixture
def config(source_dir, tmp_path) -> DeploymentConfig:
    """Config pointing at the fake source share."""
    return DeploymentConfig(
        source_path=str(source_dir),
        installer_filename="Miniconda3-py312_24.5.0-0-Windows-x86_64.exe",
        staging_directory=r"C:\Temp\MinicondaInstall",
        install_directory=r"C:\Miniconda3",
        installer=InstallerOptions(add_to_path=True, register_as_default=False),
        remoting=SSHConfig(user="deploy"),
        log_dir=str(tmp_path / "logs"),
    )


@pytest.fixture
def request_for(config):
    """Build a DeploymentRequest for a host from the test config."""

    def _build(host: str = "web01") -> DeploymentRequest:
        return DeploymentRequest.from_config(host, config)

    return _build


def make_ssh_service(
    install_response=None,
    install_error=None,
    verify_present=True,
    verify_error=None,
    cleanup_response=None,
    cleanup_error=None,
    session_error=None,
):
    """
    SSHService double that answers the install, verify and cleanup calls.

    Every invoke() call is recorded on the mock as usual.
    """
    ssh = MagicMock()
    session = MagicMock()
    session.host = "web01"

    if session_error is not None:
        ssh.session.side_effect = session_error
    else:
        ssh.session.return_value.__enter__.return_value = session
        ssh.session.return_value.__exit__.return_value = False

    def invoke(host, script, request, timeout=None, session=None):
        if script == INSTALL_SCRIPT:
            if install_error is not None:
                raise install_error
            return install_response
        if script == VERIFY_SCRIPT:
            if verify_error is not None:
                raise verify_error
            return {"present": verify_present}
        if script == CLEANUP_SCRIPT:
            if cleanup_error is not None:
                raise cleanup_error
            return cleanup_response or {"removed": True}
        raise AssertionError(f"unexpected script: {script!r}")

    ssh.invoke.side_effect = invoke
    return ssh


def scripts_invoked(ssh) -> list:
    """Names of the remote scripts an SSHService double was asked to run."""
    names = {INSTALL_SCRIPT: "install", VERIFY_SCRIPT: "verify", CLEANUP_SCRIPT: "cleanup"}
    return [names[c.args[1]] for c in ssh.invoke.call_args_list]


@pytest.fixture
def verify_config() -> VerifyConfig:
    return VerifyConfig()
