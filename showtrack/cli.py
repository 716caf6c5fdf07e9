"""
Command line front end for a persisted show database.

    showtrack --state ~/.showtrack import shows.json
    showtrack list --platform hulu --day Wednesday
    showtrack stats
    showtrack week --search abbott
    showtrack export backup.json
    showtrack clear
"""

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from rich.console import Console
from rich.table import Table

from showtrack.config import (
    DAY_ORDER,
    DEFAULT_STATE_DIR,
    NETWORKS,
    PLATFORMS,
    TRACKER_MAX_HISTORY,
    TRACKER_PERSISTENCE_KEY,
    configure_logging,
)
from showtrack.errors import PersistenceError
from showtrack.persistence import FileBlobBackend, JsonPersistenceAdapter
from showtrack.shows import default_filters, filter_shows, group_by_air_day, normalize_show
from showtrack.store import StoreConfig
from showtrack.tracker import ShowTracker


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="showtrack", description="Track episodic show schedules"
    )
    parser.add_argument(
        "--state",
        default=DEFAULT_STATE_DIR,
        help=f"Directory holding the persisted state (default: {DEFAULT_STATE_DIR})",
    )
    parser.add_argument(
        "--key",
        default=TRACKER_PERSISTENCE_KEY,
        help="Name of the persisted state blob",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Log store activity")

    commands = parser.add_subparsers(dest="command", required=True)

    import_cmd = commands.add_parser("import", help="Replace the database with a JSON file")
    import_cmd.add_argument("file", type=Path)
    import_cmd.add_argument(
        "--merge", action="store_true", help="Keep existing shows, overwrite matching ids"
    )

    export_cmd = commands.add_parser("export", help="Write the database to a JSON file")
    export_cmd.add_argument("file", type=Path)

    list_cmd = commands.add_parser("list", help="List shows matching filters")
    week_cmd = commands.add_parser("week", help="Shows grouped by air day")
    for sub in (list_cmd, week_cmd):
        sub.add_argument("--platform", action="append", choices=PLATFORMS, default=[])
        sub.add_argument("--network", action="append", choices=NETWORKS, default=[])
        sub.add_argument("--day", action="append", choices=DAY_ORDER, default=[])
        sub.add_argument("--search", default="")
        status = sub.add_mutually_exclusive_group()
        status.add_argument("--returning", dest="returning", action="store_true", default=None)
        status.add_argument("--ended", dest="returning", action="store_false", default=None)

    commands.add_parser("stats", help="Totals by platform and network")
    commands.add_parser("clear", help="Delete the persisted state")

    return parser


def open_tracker(state_dir: str, key: str) -> ShowTracker:
    adapter = JsonPersistenceAdapter(FileBlobBackend(state_dir), key=key)
    config = StoreConfig(persistence_key=key, max_history_size=TRACKER_MAX_HISTORY)
    return ShowTracker(config=config, persistence=adapter, load_persisted=True)


def read_import_file(path: Path) -> Dict[str, Any]:
    """
    Parse and validate an import file.

    Raises:
        ValueError: With a message naming the first bad record
    """
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise ValueError("import file must contain a JSON object of id -> show")

    shows = {}
    for show_id, record in data.items():
        try:
            shows[str(show_id)] = normalize_show(record)
        except ValueError as e:
            raise ValueError(f"show {show_id}: {e}")
    return shows


def _filters_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    # Read-only: command line filters are not written back to the state
    return {
        **default_filters(),
        "platforms": args.platform,
        "networks": args.network,
        "air_days": args.day,
        "search_term": args.search,
        "returning": args.returning,
    }


def _show_table(title: str, rows: List[Dict[str, Any]]) -> Table:
    table = Table(title=title)
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Title", style="cyan")
    table.add_column("Platform", style="magenta")
    table.add_column("Network")
    table.add_column("Season", justify="right")
    table.add_column("Episodes", justify="right")
    table.add_column("Air day")
    table.add_column("Returning", style="green")

    for row in rows:
        table.add_row(
            str(row["id"]),
            row.get("title", ""),
            row.get("platform", ""),
            row.get("network", ""),
            "" if row.get("season") is None else str(row["season"]),
            "" if row.get("episodes") is None else str(row["episodes"]),
            row.get("air_day", ""),
            "yes" if row.get("returning") else "no",
        )
    return table


def _cmd_list(tracker: ShowTracker, args: argparse.Namespace, console: Console) -> None:
    shows = filter_shows(tracker.get_all_shows(), _filters_from_args(args))
    rows = sorted(
        (dict(show, id=show_id) for show_id, show in shows.items()),
        key=lambda row: row.get("title", "").lower(),
    )
    console.print(_show_table(f"Shows ({len(rows)})", rows))


def _cmd_week(tracker: ShowTracker, args: argparse.Namespace, console: Console) -> None:
    week = group_by_air_day(filter_shows(tracker.get_all_shows(), _filters_from_args(args)))
    for day, shows in week.items():
        if shows:
            console.print(_show_table(day, shows))


def _cmd_stats(tracker: ShowTracker, console: Console) -> None:
    stats = tracker.get_stats()

    table = Table(title="Show statistics")
    table.add_column("Group", style="cyan")
    table.add_column("Shows", justify="right", style="green")
    table.add_row("Total", str(stats["total"]))
    table.add_row("Returning", str(stats["returning"]))
    table.add_row("Not returning", str(stats["non_returning"]))
    for platform, count in stats["by_platform"].items():
        table.add_row(f"Platform: {platform}", str(count))
    for network, count in stats["by_network"].items():
        table.add_row(f"Network: {network}", str(count))
    console.print(table)


def main(argv: Optional[List[str]] = None) -> int:
    """Entry point; returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(logging.INFO if args.verbose else None)
    console = Console()

    if args.command == "clear":
        try:
            JsonPersistenceAdapter(FileBlobBackend(args.state), key=args.key).clear()
        except PersistenceError as e:
            console.print(f"[red]✗[/red] {e}")
            return 1
        console.print("[green]✓[/green] Persisted state cleared")
        return 0

    tracker = open_tracker(args.state, args.key)

    if args.command == "import":
        try:
            shows = read_import_file(args.file)
        except (OSError, ValueError) as e:
            console.print(f"[red]✗[/red] Cannot import {args.file}: {e}")
            return 1
        if args.merge:
            shows = {**tracker.get_all_shows(), **shows}
        tracker.replace_all_shows(shows, f"import {args.file.name}")
        console.print(f"[green]✓[/green] Imported {len(shows)} shows")
    elif args.command == "export":
        try:
            args.file.write_text(
                json.dumps(tracker.get_all_shows(), indent=2, ensure_ascii=False),
                encoding="utf-8",
            )
        except OSError as e:
            console.print(f"[red]✗[/red] Cannot export to {args.file}: {e}")
            return 1
        console.print(f"[green]✓[/green] Exported {len(tracker.get_all_shows())} shows")
    elif args.command == "list":
        _cmd_list(tracker, args, console)
    elif args.command == "week":
        _cmd_week(tracker, args, console)
    elif args.command == "stats":
        _cmd_stats(tracker, console)

    return 0
