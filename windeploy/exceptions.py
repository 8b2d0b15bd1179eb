"""
windeploy Exception Hierarchy

Clean exception hierarchy for consistent error handling across the deployer.
"""

from typing import Optional


class WinDeployError(Exception):
    """Base exception for all windeploy errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(WinDeployError):
    """Raised when configuration is invalid or missing."""

    pass


class TransferError(WinDeployError):
    """Raised when staging files onto the target fails."""

    pass


class SSHError(WinDeployError):
    """Raised when SSH operations fail."""

    pass


class RemoteSessionError(SSHError):
    """Raised when a remote session cannot be established."""

    def __init__(self, host: str, detail: Optional[str] = None):
        self.host = host
        message = f"Could not establish remote session with '{host}'"
        super().__init__(message, detail)


class RemoteInvocationError(SSHError):
    """Raised when a remote call fails or returns an unreadable response."""

    def __init__(self, host: str, message: str, output: Optional[str] = None):
        self.host = host
        self.output = output
        super().__init__(message, f"Host: {host}" + (f", Output: {output}" if output else ""))
