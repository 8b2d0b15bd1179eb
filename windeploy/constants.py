"""
windeploy Constants

Centralized constants for magic values, defaults, and status codes.
"""

# Default Artifact Configuration
DEFAULT_SOURCE_PATH = r"\\fileserver\software\anaconda"
DEFAULT_INSTALLER_FILENAME = "Anaconda3-2024.06-1-Windows-x86_64.exe"
DEFAULT_STAGING_DIRECTORY = r"C:\Temp\AnacondaInstall"
DEFAULT_INSTALL_DIRECTORY = r"C:\ProgramData\Anaconda3"
DEFAULT_ADD_TO_PATH = True
DEFAULT_REGISTER_AS_DEFAULT = True

# Default Remoting Configuration
DEFAULT_SSH_PORT = 22
DEFAULT_CONNECT_TIMEOUT = 10
SSH_BANNER_PREFIX = b"SSH-"
SSH_SESSION_FAILURE_CODE = 255

# Probe Configuration
PING_COUNT = 2
DEFAULT_PING_TIMEOUT = 2

# Transfer Methods
TRANSFER_SHARE = "share"
TRANSFER_SFTP = "sftp"
TRANSFER_METHODS = [TRANSFER_SHARE, TRANSFER_SFTP]
DEFAULT_TRANSFER_METHOD = TRANSFER_SHARE

# Verification
DEFAULT_VERIFY_ARTIFACT = "python.exe"
ON_MISSING_WARN = "warn"
ON_MISSING_FAIL = "fail"
MISSING_ARTIFACT_POLICIES = [ON_MISSING_WARN, ON_MISSING_FAIL]

# Installer exit codes
INSTALLER_EXIT_USER_CANCELLED = 1
# Process exit codes are DWORDs; PowerShell reports them as signed Int32
INSTALLER_EXIT_MASK = 0xFFFFFFFF

# Config file lookup
CONFIG_FILENAME = "windeploy.yml"
CONFIG_ENV_VAR = "WINDEPLOY_CONFIG"
DEFAULT_LOG_DIR = "~/.windeploy/logs"

# Log Configuration
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"

# Final Status Codes
EXIT_SUCCESS = 0
EXIT_NOT_PRIVILEGED = 1
EXIT_NO_TARGET = 2
EXIT_INVALID_CONFIG = 3
EXIT_UNREACHABLE = 10
EXIT_DNS_FAILED = 11
EXIT_REMOTING_UNAVAILABLE = 12
EXIT_SESSION_FAILED = 13
EXIT_STAGING_DIR_FAILED = 20
EXIT_ARTIFACT_NOT_FOUND = 21
EXIT_TRANSFER_FAILED = 22
EXIT_TRANSFER_UNVERIFIED = 23
EXIT_VERIFICATION_FAILED = 30
EXIT_INSTALLER_TIMEOUT = 98
EXIT_UNEXPECTED = 99
EXIT_INSTALLER_BASE = 100
EXIT_INTERRUPTED = 130

STATUS_DESCRIPTIONS = {
    EXIT_SUCCESS: "success",
    EXIT_NOT_PRIVILEGED: "caller not privileged",
    EXIT_NO_TARGET: "no target identifier supplied",
    EXIT_INVALID_CONFIG: "invalid configuration",
    EXIT_UNREACHABLE: "target unreachable",
    EXIT_DNS_FAILED: "name resolution failed",
    EXIT_REMOTING_UNAVAILABLE: "remote execution channel unavailable",
    EXIT_SESSION_FAILED: "remote session establishment failed",
    EXIT_STAGING_DIR_FAILED: "staging directory creation failed",
    EXIT_ARTIFACT_NOT_FOUND: "installer artifact not found",
    EXIT_TRANSFER_FAILED: "artifact transfer failed",
    EXIT_TRANSFER_UNVERIFIED: "transfer verification failed",
    EXIT_VERIFICATION_FAILED: "post-install artifact missing",
    EXIT_INSTALLER_TIMEOUT: "installer timed out",
    EXIT_UNEXPECTED: "unexpected failure",
}


def describe_status(code: int) -> str:
    """Human readable meaning of a final status code."""
    if code > EXIT_INSTALLER_BASE:
        return f"installer failed with exit code {code - EXIT_INSTALLER_BASE}"
    return STATUS_DESCRIPTIONS.get(code, "unknown status")
