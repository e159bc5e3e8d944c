"""Config commands: init, show, set."""

from __future__ import annotations

import sys
from pathlib import Path

import click
import yaml

from ..config import config_path, load_settings, save_settings, update_setting
from ..errors import ConfigError
from ..models import SyncSettings
from ._common import console, home_path


def register_config_commands(main: click.Group) -> None:
    """Register the config command group."""

    @main.group()
    def config():
        """Inspect and edit config.yaml."""

    @config.command("init")
    @click.option("--vault", type=click.Path(file_okay=False), default=".", show_default=True)
    @click.option("--force", is_flag=True, help="Overwrite an existing config.")
    @click.pass_context
    def config_init(ctx, vault: str, force: bool):
        """Write a default config for VAULT."""
        path = config_path(home_path(ctx))
        if path.exists() and not force:
            console.print(f"[yellow]Config already exists:[/] {path}")
            sys.exit(1)
        save_settings(SyncSettings(vault_path=Path(vault).expanduser().resolve()), path)
        console.print(f"  [green]Wrote[/] {path}")

    @config.command("show")
    @click.pass_context
    def config_show(ctx):
        """Print the effective settings."""
        settings = load_settings(config_path(home_path(ctx)))
        console.print(
            yaml.dump(settings.model_dump(mode="json"), default_flow_style=False),
            highlight=False,
        )

    @config.command("set")
    @click.argument("key")
    @click.argument("value")
    @click.pass_context
    def config_set(ctx, key: str, value: str):
        """Set KEY (dotted for nested, e.g. standalone.author_name) to VALUE."""
        path = config_path(home_path(ctx))
        try:
            settings = update_setting(load_settings(path), key, value)
        except ConfigError as exc:
            console.print(f"[bold red]{exc}[/]")
            sys.exit(1)
        save_settings(settings, path)
        console.print(f"  [green]{key}[/] = {value}")
