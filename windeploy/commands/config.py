"""windeploy - Config command"""

import rich_click as click
import yaml

from windeploy.base import BaseCommand
from windeploy.commands.options import config_option
from windeploy.core.config_loader import find_config_file, load_config


class ConfigShowCommand(BaseCommand):
    """Print the effective configuration after defaults are applied."""

    def __init__(self, config_path=None, json_output: bool = False):
        super().__init__(json_output=json_output)
        self.config_path = config_path

    def execute(self) -> None:
        """Execute config command."""
        source = find_config_file(self.config_path)
        config = load_config(self.config_path)

        if self.json_output:
            self.output_json(config.to_dict())
            return

        self.show_header(
            title="Configuration",
            subtitle=str(source) if source else "No config file found, using defaults",
        )
        print(yaml.safe_dump(config.to_dict(), default_flow_style=False, sort_keys=False))


@click.command(name="config")
@config_option
@click.option("--json", "json_output", is_flag=True, help="Output in JSON format")
def config_show(config_path, json_output):
    """
    Show the effective configuration

    \b
    Examples:
      windeploy config
      windeploy config -c deploy/windeploy.yml --json
    """
    cmd = ConfigShowCommand(config_path, json_output=json_output)
    cmd.run()
