from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
import shlex
import sys

from .config import Settings
from .dispatch import LaunchDispatcher
from .exceptions import DispatchError, RepositoryError
from .models import Mode, SortKey, ViewState
from .monitor import ProcessMonitor
from .repository import InstanceRepository
from .utils import format_duration, format_last_played
from .view import InstanceBrowser, project

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _configure_logging(args: argparse.Namespace, settings: Settings) -> None:
    level = {0: logging.WARNING, 1: logging.INFO}.get(args.verbose, logging.DEBUG)
    if settings.log_file is not None:
        settings.log_file.parent.mkdir(parents=True, exist_ok=True)
        logging.basicConfig(filename=str(settings.log_file), level=level, format=LOG_FORMAT)
    elif args.command in (None, "ui"):
        # curses owns the terminal; without a log file there is nowhere to write.
        logging.basicConfig(handlers=[logging.NullHandler()], level=level)
    else:
        logging.basicConfig(stream=sys.stderr, level=level, format=LOG_FORMAT)


def _resolve_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if args.root:
        settings.instances_dir = Path(args.root).expanduser()
    if args.launch_command:
        settings.launch_command = shlex.split(args.launch_command)
    if args.open_command:
        settings.open_command = shlex.split(args.open_command)
    if args.quit_after_launch:
        settings.quit_after_launch = True
    if args.log_file:
        settings.log_file = Path(args.log_file).expanduser()
    return settings


def _cmd_ui(repository: InstanceRepository, settings: Settings) -> int:
    from .tui import run

    browser = InstanceBrowser(
        repository=repository,
        monitor=ProcessMonitor(),
        dispatcher=LaunchDispatcher(settings.launch_command, settings.open_command),
        quit_after_launch=settings.quit_after_launch,
    )
    state = ViewState()
    browser.sync(state)
    run(browser, state)
    return 0


def _cmd_list(args: argparse.Namespace, repository: InstanceRepository) -> int:
    state = ViewState(
        mode=Mode.SEARCH if args.filter else Mode.BROWSE,
        sort_key=SortKey(args.sort),
        filter_text=args.filter or "",
    )
    records = project(repository.records, state)
    if args.json:
        print(json.dumps([record.to_dict() for record in records], indent=2))
        return 0
    running = ProcessMonitor().running_ids(records)
    for record in records:
        fields = [
            record.id,
            record.display_name,
            record.game_version or "?",
            record.mod_loader.value,
            f"{record.mod_count} mods",
            format_duration(record.total_playtime),
            format_last_played(record.last_played),
        ]
        if record.id in running:
            fields.append("running")
        print("\t".join(fields))
    return 0


def _cmd_launch(args: argparse.Namespace, repository: InstanceRepository, settings: Settings) -> int:
    record = repository.get(args.instance)
    if record is None:
        print(f"Error: unknown instance '{args.instance}'.", file=sys.stderr)
        return 1
    dispatcher = LaunchDispatcher(settings.launch_command, settings.open_command)
    try:
        dispatcher.launch(record)
    except DispatchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    print(f"Launching {record.display_name}...")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mctui",
        description="Browse and launch PrismLauncher Minecraft instances from the terminal.",
    )
    parser.add_argument(
        "--root",
        default=None,
        help="Instances directory (default: MCTUI_INSTANCES_DIR or the PrismLauncher location).",
    )
    parser.add_argument(
        "--launch-command",
        default=None,
        help="Command that launches an instance; the instance id is appended.",
    )
    parser.add_argument(
        "--open-command",
        default=None,
        help="Command that opens a folder; the path is appended.",
    )
    parser.add_argument(
        "--quit-after-launch",
        action="store_true",
        help="Exit the dashboard once a launch has been dispatched.",
    )
    parser.add_argument("--log-file", default=None, help="Write logs to this file.")
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeat for debug output).",
    )
    sub = parser.add_subparsers(dest="command")

    sub.add_parser("ui", help="Open the interactive dashboard (default).")

    list_cmd = sub.add_parser("list", help="Print instances and exit.")
    list_cmd.add_argument(
        "--sort",
        choices=[key.value for key in SortKey],
        default=SortKey.NAME.value,
        help="Sort order (default: name).",
    )
    list_cmd.add_argument("--filter", default=None, help="Case-insensitive name filter.")
    list_cmd.add_argument("--json", action="store_true", help="Print JSON instead of a table.")

    launch = sub.add_parser("launch", help="Launch one instance by id.")
    launch.add_argument("instance", help="Instance id (its directory name).")

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = _resolve_settings(args)
    _configure_logging(args, settings)

    try:
        repository = InstanceRepository.load(settings.instances_dir)
    except RepositoryError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.command in (None, "ui"):
        return _cmd_ui(repository, settings)
    if args.command == "list":
        return _cmd_list(args, repository)
    if args.command == "launch":
        return _cmd_launch(args, repository, settings)
    parser.print_help()
    return 2


if __name__ == "__main__":
    sys.exit(main())
