"""
windeploy Services Layer

Deployment stages and the remote channels they run over.
"""

from .ssh_service import SSHService, RemoteSession
from .transfer_service import (
    FileTransport,
    AdminShareTransport,
    SFTPTransport,
    create_transport,
)
from .probe_service import ConnectivityProber
from .stager import ArtifactStager
from .verifier import InstallVerifier
from .executor import RemoteExecutor
from .orchestrator import DeploymentOrchestrator

__all__ = [
    "SSHService",
    "RemoteSession",
    "FileTransport",
    "AdminShareTransport",
    "SFTPTransport",
    "create_transport",
    "ConnectivityProber",
    "ArtifactStager",
    "InstallVerifier",
    "RemoteExecutor",
    "DeploymentOrchestrator",
]
