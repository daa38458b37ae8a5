"""
tribunalsettle/cli/__init__.py

TribunalSettle CLI: root Click command group.

Registered in pyproject.toml as:

    [project.scripts]
    tribunalsettle = "tribunalsettle.cli:cli"
"""

import click

from tribunalsettle.cli.activity import activity_command
from tribunalsettle.cli.decode import decode_command
from tribunalsettle.cli.rewards import min_bond_command, rewards_command


@click.group()
@click.version_option(package_name="tribunalsettle")
def cli() -> None:
    """
    TribunalSettle: settlement and activity reconciliation CLI.

    \b
    Commands:
      rewards   What a user is owed for one resolved round.
      min-bond  Minimum challenger bond for a reputation.
      activity  Rebuild a user's history from exported transactions.
      decode    Decode one event payload or account blob.
    """
    pass


cli.add_command(rewards_command)
cli.add_command(min_bond_command)
cli.add_command(activity_command)
cli.add_command(decode_command)
