"""
Check Command

Run the pre-flight and connectivity checks without touching the target.
"""

import rich_click as click

from windeploy.commands.deploy import DeployCommand
from windeploy.commands.options import collect_overrides, deployment_options
from windeploy.models.config import DeploymentConfig, DeploymentRequest
from windeploy.models.results import DeploymentResult
from windeploy.services.orchestrator import DeploymentOrchestrator


class CheckCommand(DeployCommand):
    """Connectivity check: name resolution, ping, SSH banner."""

    operation = "check"
    title = "Connectivity Check"

    def build_orchestrator(self, config: DeploymentConfig) -> DeploymentOrchestrator:
        return DeploymentOrchestrator(config)

    def run_pipeline(self, orchestrator: DeploymentOrchestrator, request: DeploymentRequest) -> DeploymentResult:
        listener = self.logger.emit if self.logger else None
        on_step = self.logger.step if self.logger else None
        return orchestrator.check(request, listener=listener, on_step=on_step)

    def describe(self, request: DeploymentRequest) -> dict:
        return {}


@click.command()
@click.argument("host", required=False)
@deployment_options
@collect_overrides
def check(host, verbose, json_output, overrides):
    """
    Check that a Windows host is ready for deployment

    Resolves HOST, sends two echo probes and waits for the SSH banner on
    the remoting port. Nothing is created or copied on the target.

    \b
    Examples:
      windeploy check web01
      windeploy check 10.0.0.5 --no-resolve -p 2222
    """
    cmd = CheckCommand(host, overrides, verbose=verbose, json_output=json_output)
    cmd.run()
