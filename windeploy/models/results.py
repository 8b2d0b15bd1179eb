"""
Result Models

Dataclass models for stage reports, command outputs and the final result.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from windeploy.constants import describe_status
from windeploy.models.messages import Message, Severity


@dataclass
class SSHResult:
    """Result of an SSH command execution."""

    returncode: int
    stdout: str = ""
    stderr: str = ""
    host: str = ""
    command: str = ""
    duration_seconds: float = 0.0

    @property
    def is_success(self) -> bool:
        """Check if SSH command succeeded."""
        return self.returncode == 0

    @property
    def is_failure(self) -> bool:
        """Check if SSH command failed."""
        return self.returncode != 0

    @property
    def output(self) -> str:
        """Get combined output (stdout + stderr)."""
        return f"{self.stdout}\n{self.stderr}".strip()

    def __repr__(self) -> str:
        return f"SSHResult(host={self.host}, returncode={self.returncode}, duration={self.duration_seconds:.2f}s)"


class FailureStage(Enum):
    """Connectivity probe step that failed."""

    NONE = "none"
    DNS = "dns"
    PING = "ping"
    REMOTING = "remoting"


@dataclass
class ConnectivityReport:
    """Outcome of probing one target."""

    host: str
    resolved: bool = False
    reachable: bool = False
    remoting_available: bool = False
    failure_stage: FailureStage = FailureStage.NONE
    addresses: List[str] = field(default_factory=list)
    detail: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.failure_stage is FailureStage.NONE

    def __repr__(self) -> str:
        return f"ConnectivityReport(host={self.host}, failure_stage={self.failure_stage.value})"


class TransferStage(Enum):
    """Staging step that failed."""

    NONE = "none"
    SOURCE_MISSING = "source_missing"
    DIRECTORY = "directory"
    COPY = "copy"
    VERIFY = "verify"


@dataclass
class TransferResult:
    """Outcome of staging the installer onto a target."""

    source_exists: bool = False
    destination_directory_ready: bool = False
    copy_succeeded: bool = False
    destination_verified: bool = False
    failure_stage: TransferStage = TransferStage.NONE
    destination_path: Optional[str] = None
    detail: Optional[str] = None

    @property
    def is_success(self) -> bool:
        return self.failure_stage is TransferStage.NONE and self.destination_verified

    def __repr__(self) -> str:
        return f"TransferResult(failure_stage={self.failure_stage.value}, verified={self.destination_verified})"


class ExecutionStatus(Enum):
    """Classification of a remote installer run."""

    SUCCESS = "success"
    USER_CANCELLED = "user_cancelled"
    INSTALLER_ABORTED = "installer_aborted"
    INSTALLER_MISSING = "installer_missing"
    SESSION_FAILED = "session_failed"
    TIMED_OUT = "timed_out"
    UNEXPECTED = "unexpected"


@dataclass
class ExecutionOutcome:
    """Outcome of running the installer on a target."""

    status: ExecutionStatus
    raw_exit_code: Optional[int] = None
    post_install_artifact_present: bool = False
    cleaned_up: bool = False
    messages: List[Message] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status is ExecutionStatus.SUCCESS

    @property
    def installer_failed(self) -> bool:
        """Installer ran and reported a nonzero exit status."""
        return self.status in (
            ExecutionStatus.USER_CANCELLED,
            ExecutionStatus.INSTALLER_ABORTED,
        )

    def add(self, severity: Severity, text: str) -> None:
        self.messages.append(Message(severity, text))

    def __repr__(self) -> str:
        return f"ExecutionOutcome(status={self.status.value}, raw_exit_code={self.raw_exit_code})"


@dataclass(frozen=True)
class DeploymentResult:
    """Terminal result of one deployment attempt."""

    target_host: str
    final_status_code: int
    messages: Tuple[Message, ...] = ()

    @property
    def is_success(self) -> bool:
        return self.final_status_code == 0

    @property
    def description(self) -> str:
        return describe_status(self.final_status_code)

    def messages_at(self, severity: Severity) -> List[Message]:
        return [m for m in self.messages if m.severity is severity]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON output."""
        return {
            "target": self.target_host,
            "status_code": self.final_status_code,
            "status": self.description,
            "messages": [m.to_dict() for m in self.messages],
        }

    def __repr__(self) -> str:
        return f"DeploymentResult(target={self.target_host}, code={self.final_status_code})"
