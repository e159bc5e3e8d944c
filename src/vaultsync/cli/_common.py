"""Shared helpers for the command modules: console, settings, coordinator."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import click
from rich.console import Console

from ..config import config_path, load_settings
from ..coordinator import SyncCoordinator
from ..display import ConsoleNotifier
from ..files import LocalVaultFiles
from ..models import SyncSettings
from ..scheduler import AsyncioScheduler

console = Console()
logger = logging.getLogger("vaultsync.cli")

LOG_FORMAT = "%(asctime)s [%(name)s] %(levelname)s: %(message)s"

_console_handler: Optional[logging.Handler] = None


def setup_logging(verbose: bool) -> None:
    """Send warnings (or everything, with --verbose) to stderr."""
    global _console_handler
    root = logging.getLogger()
    if _console_handler is None:
        _console_handler = logging.StreamHandler()
        _console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(_console_handler)
    _console_handler.setLevel(logging.DEBUG if verbose else logging.WARNING)
    root.setLevel(logging.DEBUG if verbose else logging.INFO)


def add_file_logging(home: Path) -> Path:
    """Append INFO-and-above records to <home>/logs/vaultsync.log."""
    log_dir = home / "logs"
    log_dir.mkdir(parents=True, exist_ok=True)
    log_file = log_dir / "vaultsync.log"
    handler = logging.FileHandler(log_file)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(handler)
    return log_file


def home_path(ctx: click.Context) -> Path:
    return Path(ctx.obj["home"]).expanduser()


def load(ctx: click.Context, vault: Optional[str] = None) -> SyncSettings:
    """Load settings, letting ``--vault`` override the configured path."""
    settings = load_settings(config_path(home_path(ctx)))
    if vault:
        settings = settings.model_copy(update={"vault_path": Path(vault)})
    return settings


def build_coordinator(settings: SyncSettings, open_reports: bool = False) -> SyncCoordinator:
    """Wire a coordinator for command-line use.

    Args:
        settings: Active settings.
        open_reports: Launch the conflict report in the default app.
    """
    opener = (lambda path: click.launch(str(path))) if open_reports else None
    return SyncCoordinator(
        settings,
        files=LocalVaultFiles(settings.vault, opener=opener),
        scheduler=AsyncioScheduler(),
        notifier=ConsoleNotifier(console),
    )
