"""
VaultSync CLI.

The main Click group lives here; command groups register themselves
from their own modules.

Entry point: vaultsync.cli:main
"""

from __future__ import annotations

import click

from .. import VAULTSYNC_HOME, __version__


@click.group()
@click.version_option(version=__version__, prog_name="vaultsync")
@click.option(
    "--home",
    default=VAULTSYNC_HOME,
    type=click.Path(),
    show_default=True,
    help="Directory holding config.yaml and logs.",
)
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to the console.")
@click.pass_context
def main(ctx: click.Context, home: str, verbose: bool):
    """VaultSync: pull, commit and push a note vault, one step at a time."""
    from ._common import setup_logging

    ctx.ensure_object(dict)
    ctx.obj["home"] = home
    setup_logging(verbose)


from .sync_cmd import register_sync_commands
from .config_cmd import register_config_commands

register_sync_commands(main)
register_config_commands(main)
