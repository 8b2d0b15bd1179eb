"""
Deploy Command

Stage and silently run an NSIS Anaconda/Miniconda installer on a Windows target.
"""

from typing import Optional

import rich_click as click

from windeploy.base import BaseCommand
from windeploy.commands.options import (
    collect_overrides,
    deployment_options,
    install_options,
    resolve_config,
)
from windeploy.models.config import DeploymentConfig, DeploymentRequest
from windeploy.models.messages import Severity
from windeploy.models.results import DeploymentResult
from windeploy.services.executor import format_installer_arguments
from windeploy.services.orchestrator import DeploymentOrchestrator
from windeploy.services.stager import ArtifactStager
from windeploy.services.transfer_service import create_transport
from windeploy.ui_components import show_result


class DeployCommand(BaseCommand):
    """
    Deploy the installer to one target.

    Features:
    - Pre-flight connectivity checks
    - Staging over a separate file path
    - Silent install with verification and cleanup
    - Automatic logging
    """

    operation = "deploy"
    title = "Deploy Installer"

    def __init__(
        self,
        host: Optional[str],
        overrides: dict,
        verbose: bool = False,
        json_output: bool = False,
    ):
        """
        Initialize deploy command.

        Args:
            host: Target host name or address
            overrides: Config values given on the command line
            verbose: Whether to show verbose output
            json_output: Whether to output in JSON format
        """
        super().__init__(verbose=verbose, json_output=json_output)
        self.host = host
        self.overrides = overrides

    def build_orchestrator(self, config: DeploymentConfig) -> DeploymentOrchestrator:
        """An unusable transfer method fails here, before any target is contacted."""
        stager = ArtifactStager(create_transport(config.transfer_method, config.remoting))
        return DeploymentOrchestrator(config, stager=stager)

    def run_pipeline(self, orchestrator: DeploymentOrchestrator, request: DeploymentRequest) -> DeploymentResult:
        listener = self.logger.emit if self.logger else None
        on_step = self.logger.step if self.logger else None
        return orchestrator.run(request, listener=listener, on_step=on_step)

    def describe(self, request: DeploymentRequest) -> dict:
        return {
            "Installer": request.installer_filename,
            "Install dir": request.install_directory,
            "Arguments": format_installer_arguments(
                request.installer_options, request.install_directory
            ),
        }

    def execute(self) -> None:
        """Execute deploy command."""
        config = resolve_config(**self.overrides)
        request = DeploymentRequest.from_config(self.host, config)
        orchestrator = self.build_orchestrator(config)

        self.show_header(
            title=self.title,
            target=request.target_host or None,
            details=self.describe(request),
        )

        logger = self.init_logger(request.target_host or "unknown", self.operation, config.log_dir)
        if logger:
            logger.log(f"Configuration: {config.to_dict()}", "DEBUG")

        result = self.run_pipeline(orchestrator, request)

        if logger:
            logger.close(result.final_status_code)

        if self.json_output:
            self.output_json(result.to_dict(), exit_code=result.final_status_code)
            return

        self._print_summary(result)
        if not result.is_success:
            raise SystemExit(result.final_status_code)

    def _print_summary(self, result: DeploymentResult) -> None:
        warnings = result.messages_at(Severity.WARNING)
        show_result(result.final_status_code, result.description.capitalize(), self.console)
        if warnings and result.is_success:
            self.print_dim(f"{len(warnings)} warning(s) need attention")
        if self.logger:
            self.console.print(f"\n[dim]Logs saved to:[/dim] {self.logger.log_path}\n")


@click.command()
@click.argument("host", required=False)
@install_options
@deployment_options
@collect_overrides
def deploy(host, verbose, json_output, overrides):
    """
    Install Anaconda or Miniconda on a Windows host

    Checks that HOST resolves, answers ping and accepts SSH, copies the
    installer into the staging directory, runs it silently, verifies
    python.exe exists and removes the staged installer.

    The process exits with the deployment status code (0 on success).

    \b
    Examples:
      windeploy deploy web01
      windeploy deploy web01 --install-dir 'C:\\Miniconda3' --installer Miniconda3-latest-Windows-x86_64.exe --no-add-to-path
      windeploy deploy 10.0.0.5 -t sftp -u deploy --timeout 900
    """
    cmd = DeployCommand(host, overrides, verbose=verbose, json_output=json_output)
    cmd.run()
