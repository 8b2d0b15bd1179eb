"""
windeploy Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .messages import (
    Severity,
    Message,
    MessageLog,
)
from .results import (
    SSHResult,
    FailureStage,
    ConnectivityReport,
    TransferStage,
    TransferResult,
    ExecutionStatus,
    ExecutionOutcome,
    DeploymentResult,
)
from .config import (
    InstallerOptions,
    ProbeConfig,
    VerifyConfig,
    DeploymentConfig,
    DeploymentRequest,
)
from .ssh import (
    SSHConfig,
    SSHConnection,
)

__all__ = [
    # Messages
    "Severity",
    "Message",
    "MessageLog",
    # Results
    "SSHResult",
    "FailureStage",
    "ConnectivityReport",
    "TransferStage",
    "TransferResult",
    "ExecutionStatus",
    "ExecutionOutcome",
    "DeploymentResult",
    # Config
    "InstallerOptions",
    "ProbeConfig",
    "VerifyConfig",
    "DeploymentConfig",
    "DeploymentRequest",
    # SSH
    "SSHConfig",
    "SSHConnection",
]
