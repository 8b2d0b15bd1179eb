"""
Logging system for windeploy
Provides real-time logging to files with clean console output
"""

from datetime import datetime
from pathlib import Path
from typing import Optional, TextIO

from rich.console import Console
from rich.markup import escape

from windeploy.constants import LOG_DATE_FORMAT, LOG_TIME_FORMAT
from windeploy.models.messages import Message, Severity
from windeploy.utils import expand_path, safe_filename

console = Console()

LEVELS = {
    Severity.INFO: "INFO",
    Severity.WARNING: "WARNING",
    Severity.ERROR: "ERROR",
}


class DeployLogger:
    """
    Manages logging for deployment operations
    - Writes every message to a log file in real-time
    - Shows clean leveled output in console
    - Captures errors with context
    """

    def __init__(
        self,
        host: str,
        operation: str,
        log_dir: str,
        verbose: bool = False,
        console: Console = console,
    ):
        """
        Initialize logger

        Args:
            host: Target host the operation runs against
            operation: Operation name (e.g., 'deploy', 'check')
            log_dir: Root directory for log files
            verbose: If True, also show debug output in console
            console: Rich console to render to
        """
        self.host = host
        self.operation = operation
        self.verbose = verbose
        self.console = console
        self.log_file: Optional[TextIO] = None
        self.log_path: Optional[Path] = None
        self.current_step = ""
        self.has_errors = False

        # Structure: logs/{host}/{date}/{time}_{operation}.log
        now = datetime.now()
        host_logs_dir = (
            expand_path(log_dir) / safe_filename(host) / now.strftime(LOG_DATE_FORMAT)
        )
        host_logs_dir.mkdir(parents=True, exist_ok=True)

        self.log_path = host_logs_dir / f"{now.strftime(LOG_TIME_FORMAT)}_{safe_filename(operation)}.log"

        # Line buffered so the file is readable while a long install runs
        self.log_file = open(self.log_path, "w", buffering=1)

        self._write_log_header()

    def _write_log_header(self):
        """Write log file header"""
        header = f"""
{"=" * 80}
windeploy Deployment Log
{"=" * 80}
Target: {self.host}
Operation: {self.operation}
Started: {datetime.now().isoformat()}
{"=" * 80}

"""
        self.log_file.write(header)
        self.log_file.flush()

    def log(self, message: str, level: str = "INFO"):
        """
        Log a message to file and optionally console

        Args:
            message: Message to log
            level: Log level (INFO, WARNING, ERROR, DEBUG)
        """
        timestamp = datetime.now().strftime("%H:%M:%S")

        if self.log_file:
            self.log_file.write(f"[{timestamp}] [{level}] {message}\n")
            self.log_file.flush()

        if self.verbose and level == "DEBUG":
            self.console.print(f"[dim]{escape(message)}[/dim]")

    def emit(self, message: Message):
        """
        Record a deployment message and render it by severity

        Args:
            message: Leveled message from the orchestrator
        """
        self.log(message.text, LEVELS[message.severity])
        text = escape(message.text)

        if message.severity is Severity.ERROR:
            self.has_errors = True
            self.console.print(f"  [bold red]✗ {text}[/bold red]")
        elif message.severity is Severity.WARNING:
            self.console.print(f"  [yellow]⚠[/yellow] [dim]{text}[/dim]")
        else:
            self.console.print(f"  [dim]✓ {text}[/dim]")

    def log_error(self, error: str, context: Optional[str] = None):
        """
        Log an error with context

        Args:
            error: Error message
            context: Additional context (e.g., command that failed)
        """
        self.has_errors = True

        # Clear markers for grepping
        error_block = f"""
{"!" * 80}
ERROR OCCURRED
{"!" * 80}
{error}
"""
        if context:
            error_block += f"\nContext: {context}\n"

        error_block += f"{'!' * 80}\n\n"

        if self.log_file:
            self.log_file.write(error_block)
            self.log_file.flush()

        self.console.print(f"[bold red]✗ {escape(error)}[/bold red]")
        if context:
            self.console.print(f"  [color(208)]{escape(context)}[/color(208)]")

    def step(self, step_name: str):
        """
        Start a new step

        Args:
            step_name: Name of the step
        """
        # Spacing between steps, not before the first one
        if self.current_step:
            self.console.print()

        self.current_step = step_name
        self.log(f"Step: {step_name}", "INFO")
        self.console.print(f"[color(214)]▶[/color(214)] [white]{step_name}[/white]")

    def close(self, status_code: Optional[int] = None):
        """Close log file"""
        if self.log_file:
            failed = self.has_errors if status_code is None else status_code != 0
            footer = f"""
{"=" * 80}
Completed: {datetime.now().isoformat()}
Status: {"FAILED" if failed else "SUCCESS"}{"" if status_code is None else f" (exit code {status_code})"}
{"=" * 80}
"""
            self.log_file.write(footer)
            self.log_file.close()
            self.log_file = None

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, _exc_tb):
        """Context manager exit"""
        if exc_type is not None and exc_type != SystemExit:
            # SystemExit is the normal way out of a command
            self.log_error(
                str(exc_val) if exc_val else "Operation failed",
                context=f"{exc_type.__name__}",
            )
        self.close()
        return False  # Don't suppress exceptions
