"""devicesync CLI - inspect and drive the offline sync queue.

Provides commands to show device/queue status, list and add sync tasks,
prune old tasks, and run the scheduler against an HTTP device.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import threading
from pathlib import Path
from typing import Any, NoReturn

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table

from devicesync import __version__
from devicesync.config import CONFIG_PATH, DeviceSyncConfig, load_config
from devicesync.device.http import HttpDeviceLink
from devicesync.device.link import Credentials
from devicesync.device.network import get_local_ip
from devicesync.errors import (
    ConfigurationError,
    DeviceError,
    DeviceSyncError,
    ErrorCode,
    PersistenceError,
)
from devicesync.observability.events import EventChannel, LogLine
from devicesync.observability.logging import configure_logging
from devicesync.service import DeviceSyncService
from devicesync.sync.models import PassResult, SyncStatus
from devicesync.sync.queue import SyncTaskQueue
from devicesync.sync.store import JsonFileQueueStore

console = Console()
logger = logging.getLogger(__name__)

STATUS_STYLES = {
    SyncStatus.PENDING: "yellow",
    SyncStatus.COMPLETED: "green",
    SyncStatus.FAILED: "red",
}


def setup_logging(config: DeviceSyncConfig, verbose: bool = False) -> None:
    """Configure logging from config, with DEBUG when verbose."""
    level = logging.DEBUG if verbose else config.logging.level
    configure_logging(level, structured=config.logging.structured)


def _open_queue(config: DeviceSyncConfig) -> SyncTaskQueue:
    store = JsonFileQueueStore(Path(config.sync.queue_path).expanduser())
    return SyncTaskQueue(store, retention_days=config.sync.retention_days)


def _parse_payload(raw: str | None) -> dict[str, Any] | None:
    if raw is None:
        return None
    value = json.loads(raw)
    if not isinstance(value, dict):
        raise ValueError("payload must be a JSON object")
    return value


def cmd_status(args: argparse.Namespace) -> int:
    """Show queue statistics.

    Args:
        args: Parsed arguments.

    Returns:
        Exit code.
    """
    config: DeviceSyncConfig = args.config_obj
    with _open_queue(config) as queue:
        stats = queue.get_stats()

    table = Table(title="Sync Queue")
    table.add_column("Status")
    table.add_column("Tasks", justify="right")
    for status in SyncStatus:
        style = STATUS_STYLES[status]
        table.add_row(f"[{style}]{status.value}[/{style}]", str(stats["by_status"][status.value]))
    table.add_row("[bold]total[/bold]", str(stats["total"]))

    console.print(table)
    console.print(f"[dim]Queue file: {config.sync.queue_path}[/dim]")
    if stats["oldest_pending"]:
        console.print(f"[dim]Oldest pending since {stats['oldest_pending']}[/dim]")
    retention = f"{stats['retention_days']} days" if stats["retention_days"] else "forever"
    console.print(f"[dim]Retention: {retention}[/dim]")
    return 0


def cmd_tasks(args: argparse.Namespace) -> int:
    """List sync tasks in queue order."""
    config: DeviceSyncConfig = args.config_obj
    status = SyncStatus(args.status) if args.status else None

    with _open_queue(config) as queue:
        tasks = [t for t in queue.snapshot() if status is None or t.status == status]

    if not tasks:
        console.print("[yellow]No sync tasks.[/yellow]")
        return 0

    table = Table(title=f"Sync Tasks ({len(tasks)})")
    table.add_column("ID", style="dim")
    table.add_column("Created")
    table.add_column("Status")
    table.add_column("Payload")
    for task in tasks[-args.limit :]:
        style = STATUS_STYLES[task.status]
        payload = escape(json.dumps(task.payload)) if task.payload else "[dim]heartbeat[/dim]"
        table.add_row(
            task.id[:12],
            task.created_at.astimezone().strftime("%Y-%m-%d %H:%M:%S"),
            f"[{style}]{task.status.value}[/{style}]",
            payload,
        )
    console.print(table)
    return 0


def cmd_enqueue(args: argparse.Namespace) -> int:
    """Add a task to the queue for the next pass."""
    config: DeviceSyncConfig = args.config_obj
    try:
        payload = _parse_payload(args.payload)
    except ValueError as e:
        console.print(f"[red]Invalid payload: {e}[/red]")
        return 2

    with _open_queue(config) as queue:
        try:
            task = queue.enqueue(payload)
        except PersistenceError as e:
            console.print(f"[red]Could not save task: {e}[/red]")
            return 1

    console.print(f"[green]Queued task {task.id}[/green]")
    return 0


def cmd_prune(args: argparse.Namespace) -> int:
    """Apply the retention policy now."""
    config: DeviceSyncConfig = args.config_obj
    with _open_queue(config) as queue:
        removed = queue.prune()
    console.print(f"Pruned {removed} task(s)")
    return 0


def cmd_local_ip(args: argparse.Namespace) -> int:
    """Print the local outbound IP address."""
    ip = get_local_ip()
    if ip is None:
        console.print("[yellow]No network route available.[/yellow]")
        return 1
    console.print(ip)
    return 0


def _print_line(line: LogLine) -> None:
    console.print(f"[dim]{line.timestamp.strftime('%H:%M:%S')}:[/dim] {line.message}")


def _print_pass(result: PassResult) -> None:
    if result.offline:
        return
    console.print(
        f"[dim]{result.source.value} pass: {result.completed} synced, "
        f"{result.failed} failed in {result.duration_seconds:.1f}s[/dim]"
    )


def cmd_run(args: argparse.Namespace) -> int:
    """Connect to the device and keep syncing until interrupted."""
    config: DeviceSyncConfig = args.config_obj
    if args.base_url:
        config.device.base_url = args.base_url
    if args.interval:
        config.sync.interval_minutes = args.interval

    events = EventChannel(config.events.history_size)
    events.subscribe(_print_line)
    link = HttpDeviceLink(
        base_url=config.device.base_url,
        sync_path=config.device.sync_path,
        timeout_seconds=config.device.timeout_seconds,
        verify_tls=config.device.verify_tls,
        log_sink=events.emit,
    )
    service = DeviceSyncService.from_config(config, link, events=events)
    service.scheduler.register_on_pass(_print_pass)

    stop = threading.Event()
    try:
        try:
            service.connect(Credentials(address=args.address, token=args.token or ""))
        except DeviceError as e:
            console.print(f"[red]Connection failed: {e}[/red]")
            return 1

        if args.sync_now:
            service.request_manual_sync()

        console.print(
            Panel(
                f"Syncing every {config.sync.interval_minutes} min. Press Ctrl+C to disconnect.",
                title="devicesync",
            )
        )
        while not stop.wait(1.0):
            pass
    except KeyboardInterrupt:
        console.print("\n[dim]Disconnecting...[/dim]")
        service.disconnect()
    finally:
        service.close()
        link.close()

    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser with all subcommands.

    Returns:
        Configured ArgumentParser.
    """
    parser = argparse.ArgumentParser(
        prog="devicesync",
        description="devicesync - offline sync queue for a single remote device",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  devicesync status                         Show queue counts
  devicesync tasks --status pending         List pending tasks
  devicesync enqueue --payload '{"a": 1}'   Queue a task
  devicesync run devices/1 --token SECRET   Connect and sync until Ctrl+C
        """,
    )

    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument("--version", action="store_true", help="Show version and exit")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help=f"Config file (default: {CONFIG_PATH})",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    status_parser = subparsers.add_parser("status", help="Show queue statistics")
    status_parser.set_defaults(func=cmd_status)

    tasks_parser = subparsers.add_parser("tasks", help="List sync tasks")
    tasks_parser.add_argument(
        "--status",
        choices=[s.value for s in SyncStatus],
        help="Only show tasks with this status",
    )
    tasks_parser.add_argument(
        "-l",
        "--limit",
        type=int,
        default=50,
        help="Maximum number of tasks (most recent, default: 50)",
    )
    tasks_parser.set_defaults(func=cmd_tasks)

    enqueue_parser = subparsers.add_parser("enqueue", help="Queue a sync task")
    enqueue_parser.add_argument("--payload", help="JSON object to deliver (omit for heartbeat)")
    enqueue_parser.set_defaults(func=cmd_enqueue)

    prune_parser = subparsers.add_parser("prune", help="Remove expired completed/failed tasks")
    prune_parser.set_defaults(func=cmd_prune)

    ip_parser = subparsers.add_parser("local-ip", help="Show this machine's local IP")
    ip_parser.set_defaults(func=cmd_local_ip)

    run_parser = subparsers.add_parser("run", help="Connect and keep syncing")
    run_parser.add_argument("address", help="Device address (path segment under base URL)")
    run_parser.add_argument("--token", help="Bearer token")
    run_parser.add_argument("--base-url", help="Override device.base_url")
    run_parser.add_argument(
        "--interval", type=int, help="Override sync.interval_minutes", metavar="MINUTES"
    )
    run_parser.add_argument(
        "--sync-now", action="store_true", help="Run a manual sync right after connecting"
    )
    run_parser.set_defaults(func=cmd_run)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments and dispatch.

    Returns:
        Exit code.
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.version:
        console.print(f"devicesync v{__version__}")
        return 0

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.config is not None and not args.config.exists():
            raise ConfigurationError(
                f"Config file not found: {args.config}",
                config_path=str(args.config),
                code=ErrorCode.CFG_MISSING,
            )
        args.config_obj = load_config(args.config)
        setup_logging(args.config_obj, verbose=args.verbose)
        return args.func(args)
    except DeviceSyncError as e:
        console.print(f"[red]Error: {e}[/red]")
        logger.debug("Command failed", exc_info=True)
        return 1


def run() -> NoReturn:
    """Entry point that handles interrupts and exit codes."""
    try:
        exit_code = main()
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        exit_code = 130
    except Exception as e:
        console.print(f"[red]Unexpected error: {e}[/red]")
        logger.exception("Unexpected error")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    run()
