"""
Base Command Class

Abstract base for all windeploy CLI commands.
Provides common functionality and structure.
"""

import json
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from rich.console import Console
from rich.markup import escape

from windeploy.constants import EXIT_INTERRUPTED, EXIT_INVALID_CONFIG, EXIT_UNEXPECTED
from windeploy.exceptions import ConfigurationError
from windeploy.logger import DeployLogger
from windeploy.ui_components import show_header


class BaseCommand(ABC):
    """
    Abstract base command class.

    Provides:
    - Logger initialization
    - Header display
    - Error handling
    - JSON output support
    """

    def __init__(self, verbose: bool = False, json_output: bool = False):
        self.verbose = verbose
        self.json_output = json_output
        self.console = Console()
        self.logger: Optional[DeployLogger] = None

    def init_logger(
        self, host: str, command_name: str, log_dir: str
    ) -> Optional[DeployLogger]:
        """
        Initialize command logger (skip in JSON mode).

        Args:
            host: Target host (use "unknown" when none was given)
            command_name: Command name
            log_dir: Root directory for log files

        Returns:
            DeployLogger instance or None if JSON mode
        """
        if self.json_output:
            return None
        self.logger = DeployLogger(
            host, command_name, log_dir, verbose=self.verbose, console=self.console
        )
        return self.logger

    def output_json(self, data: Dict[str, Any], exit_code: int = 0) -> None:
        """
        Output data as JSON and exit.

        Args:
            data: Data to output as JSON
            exit_code: Exit code (0 for success, non-zero for error)
        """
        print(json.dumps(data, indent=2))
        if exit_code != 0:
            raise SystemExit(exit_code)

    def show_header(
        self,
        title: str,
        subtitle: Optional[str] = None,
        target: Optional[str] = None,
        details: Optional[dict] = None,
    ) -> None:
        """Show command header (skip in JSON mode)."""
        if not self.json_output:
            show_header(
                title=title,
                subtitle=subtitle,
                target=target,
                details=details,
                console=self.console,
            )

    def print_error(self, message: str) -> None:
        """Print error message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[red]✗ {escape(message)}[/red]")

    def print_dim(self, message: str) -> None:
        """Print dim message (skip in JSON mode)."""
        if not self.json_output:
            self.console.print(f"[dim]{message}[/dim]")

    def exit_with_error(self, message: str, code: int = EXIT_UNEXPECTED) -> None:
        """
        Print error and exit.

        Args:
            message: Error message
            code: Exit code
        """
        if self.json_output:
            self.output_json({"error": message, "status_code": code}, exit_code=code)
        self.print_error(message)
        raise SystemExit(code)

    @abstractmethod
    def execute(self, **kwargs) -> None:
        """
        Execute command logic.

        Must be implemented by subclasses.
        """
        pass

    def run(self, **kwargs) -> None:
        """
        Run command with error handling.

        Args:
            **kwargs: Command arguments
        """
        try:
            self.execute(**kwargs)
        except KeyboardInterrupt:
            self.console.print("\n[yellow]⚠️  Operation cancelled by user[/yellow]")
            if self.logger:
                self.logger.log_error("Operation cancelled by user")
                self.logger.close(EXIT_INTERRUPTED)
                self.console.print(
                    f"\n[dim]Logs saved to:[/dim] {self.logger.log_path}\n"
                )
            raise SystemExit(EXIT_INTERRUPTED)
        except SystemExit:
            raise
        except ConfigurationError as e:
            self.exit_with_error(f"Invalid configuration: {e}", EXIT_INVALID_CONFIG)
        except Exception as e:
            error_type = type(e).__name__
            if self.logger:
                self.logger.log_error(f"{error_type}: {e}")
                self.logger.close(EXIT_UNEXPECTED)
                self.console.print(
                    f"[dim]Logs saved to:[/dim] {self.logger.log_path}\n"
                )
            self.exit_with_error(f"{error_type}: {e}", EXIT_UNEXPECTED)
