"""Sync commands: pull, push, changes, status, watch."""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Optional

import click
from rich.panel import Panel

from ..errors import BackendError
from ..models import Readiness, SyncSettings
from ._common import add_file_logging, build_coordinator, console, home_path, load, logger

vault_option = click.option(
    "--vault",
    type=click.Path(file_okay=False),
    default=None,
    help="Vault directory (overrides vault_path from config).",
)
open_option = click.option(
    "--open-reports",
    is_flag=True,
    help="Open the conflict report in the default application.",
)


def one_shot(settings: SyncSettings) -> SyncSettings:
    """Settings for a single command: no timers, no startup pull."""
    return settings.model_copy(
        update={"pull_on_start": False, "auto_backup_interval": 0, "auto_pull_interval": 0}
    )


def _interval(minutes: int) -> str:
    return f"every {minutes} min" if minutes else "[dim]off[/]"


def _run_once(coordinator, trigger) -> int:
    """Initialize, queue one workflow, wait for it. Returns an exit code."""

    async def go() -> int:
        if await coordinator.initialize() != Readiness.VALID:
            return 1
        trigger(coordinator)
        await coordinator.wait_idle()
        return 0

    return asyncio.run(go())


def register_sync_commands(main: click.Group) -> None:
    """Register pull, push, changes, status and watch."""

    @main.command("pull")
    @vault_option
    @click.pass_context
    def pull(ctx, vault: Optional[str]):
        """Pull from the remote repository."""
        coordinator = build_coordinator(one_shot(load(ctx, vault)))
        sys.exit(_run_once(coordinator, lambda c: c.request_pull()))

    @main.command("push")
    @vault_option
    @open_option
    @click.option("--message", "-m", default=None, help="Commit message (default: template).")
    @click.pass_context
    def push(ctx, vault: Optional[str], open_reports: bool, message: Optional[str]):
        """Commit *all* changes and push to the remote repository."""
        coordinator = build_coordinator(one_shot(load(ctx, vault)), open_reports=open_reports)
        sys.exit(_run_once(coordinator, lambda c: c.request_backup(message)))

    @main.command("changes")
    @vault_option
    @click.pass_context
    def changes(ctx, vault: Optional[str]):
        """List files with uncommitted changes."""
        coordinator = build_coordinator(one_shot(load(ctx, vault)))

        async def go():
            if await coordinator.initialize() != Readiness.VALID:
                return None
            try:
                return await coordinator.list_changed_files()
            except BackendError as exc:
                coordinator.display_error(str(exc))
                return None

        changed = asyncio.run(go())
        if changed is None:
            sys.exit(1)
        if not changed:
            console.print("  [dim]No changed files[/]")
            return
        console.print(f"\n  [bold]{len(changed)}[/] changed file(s):")
        for path in changed:
            console.print(f"    {path}", highlight=False)
        console.print()

    @main.command("status")
    @vault_option
    @click.pass_context
    def status(ctx, vault: Optional[str]):
        """Show settings and repository readiness."""
        settings = load(ctx, vault)
        coordinator = build_coordinator(one_shot(settings))
        asyncio.run(coordinator.initialize())

        backend = coordinator.backend.name if coordinator.backend else "none"
        console.print()
        console.print(
            Panel(
                f"Vault: [cyan]{settings.vault}[/]\n"
                f"Backend: [cyan]{backend}[/]\n"
                f"Status: {coordinator.status.render()}\n"
                f"Auto backup: {_interval(settings.auto_backup_interval)}\n"
                f"Auto pull: {_interval(settings.auto_pull_interval)}\n"
                f"Push: {'[yellow]disabled[/]' if settings.disable_push else 'enabled'}\n"
                f"Pull before push: {'yes' if settings.pull_before_push else 'no'}",
                title="VaultSync",
                border_style="cyan",
            )
        )
        console.print()

    @main.command("watch")
    @vault_option
    @open_option
    @click.pass_context
    def watch(ctx, vault: Optional[str], open_reports: bool):
        """Run automatic backups and pulls until interrupted.

        Uses auto_backup_interval, auto_pull_interval and pull_on_start
        from the config. Ctrl+C waits for the running step to finish.
        """
        settings = load(ctx, vault)
        log_file = add_file_logging(home_path(ctx))
        coordinator = build_coordinator(settings, open_reports=open_reports)

        async def go() -> int:
            stop = asyncio.Event()
            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, stop.set)
                except NotImplementedError:
                    pass

            if await coordinator.initialize() != Readiness.VALID:
                return 1
            console.print(f"\n  [green]Watching[/] [cyan]{settings.vault}[/]")
            console.print(f"  Backup: {_interval(settings.auto_backup_interval)} | "
                          f"Pull: {_interval(settings.auto_pull_interval)}")
            console.print(f"  Log: {log_file}")
            console.print("  [dim]Ctrl+C to stop[/]\n")
            await stop.wait()
            logger.info("Stopping watch")
            await coordinator.shutdown()
            return 0

        try:
            code = asyncio.run(go())
        except KeyboardInterrupt:
            code = 0
            console.print("\n  [dim]Stopped.[/]")
        sys.exit(code)
