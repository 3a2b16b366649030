"""Ladderboard CLI entry points.
This module exposes commands for registry, import, generation and profile operations.
It maps argparse commands onto SDK calls.
"""

from __future__ import annotations

import argparse
from dataclasses import replace
from datetime import date
import json
from pathlib import Path
import sys
from typing import Any, Sequence

from cli.job_commands import (
    add_cancel_command,
    add_reset_command,
    add_status_command,
    add_work_command,
    run_cancel_command,
    run_reset_command,
    run_status_command,
    run_work_command,
)
from cli.registry_command import add_registry_command, run_registry_command
from core.config import LadderboardConfig
from core.constants import PROFILE_JOB_KIND
from core.errors import LadderboardError
from core.timestamps import format_date
from core.types import GenerationOptions, ImportStartRequest
from store.ladder_sdk import LadderboardClient
from store.record_payload import profile_to_payload


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level CLI parser.

    Returns:
        Configured argument parser.
    """
    parser = argparse.ArgumentParser(prog="ladderboard", description="Ladderboard CLI")
    parser.add_argument("--data-root", help="Override LADDERBOARD_DATA_ROOT for this command")
    subparsers = parser.add_subparsers(dest="command", required=True)
    add_registry_command(subparsers)
    _add_import_command(subparsers)
    _add_generate_command(subparsers)
    add_status_command(subparsers)
    add_cancel_command(subparsers)
    add_reset_command(subparsers)
    add_work_command(subparsers)
    _add_profile_command(subparsers)
    subparsers.add_parser("stats", help="Show profile totals by ladder and status")
    _add_clock_command(subparsers)
    subparsers.add_parser("clear-events", help="Delete every stored event")
    subparsers.add_parser("clear-profiles", help="Delete every stored profile")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    """Run the Ladderboard CLI.

    Args:
        argv: Optional argument vector.

    Returns:
        Process exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        client = _build_client(args.data_root)
        return _dispatch(parser, client, args)
    except LadderboardError as error:
        print(f"error={error}", file=sys.stderr)
        return 1


def _dispatch(
    parser: argparse.ArgumentParser,
    client: LadderboardClient,
    args: argparse.Namespace,
) -> int:
    if args.command == "registry":
        return run_registry_command(client, args)
    if args.command == "import":
        return _run_import_command(client, args)
    if args.command == "generate":
        return _run_generate_command(client, args)
    if args.command == "status":
        return run_status_command(client, args)
    if args.command == "cancel":
        return run_cancel_command(client, args)
    if args.command == "reset":
        return run_reset_command(client, args)
    if args.command == "work":
        return run_work_command(client, args)
    if args.command == "profile":
        return _run_profile_command(client, args)
    if args.command == "stats":
        return _run_stats_command(client)
    if args.command == "clock":
        return _run_clock_command(client, args)
    if args.command == "clear-events":
        print(f"events_deleted={client.delete_all_events()}")
        return 0
    if args.command == "clear-profiles":
        print(f"profiles_deleted={client.delete_all_profiles()}")
        return 0
    parser.error(f"Unsupported command: {args.command}")
    return 2


def _build_client(data_root: str | None) -> LadderboardClient:
    """Build SDK client with optional data-root override.

    Args:
        data_root: Optional override path.

    Returns:
        Configured SDK client.
    """
    config = LadderboardConfig.from_env()
    if data_root:
        config = replace(config, data_root=Path(data_root).expanduser().resolve())
    return LadderboardClient(config)


def _run_import_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    """Handle import command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    request = ImportStartRequest(
        source_path=args.source,
        auto_register_event_types=not args.no_auto_register,
    )
    status = client.start_import(request)
    print(f"total_lines={status.total}")
    if args.wait:
        client.run_until_idle()
        status = client.job_status(status.job_kind)
        print(f"status={status.status}")
        print(f"imported={status.details.get('imported', 0)}")
        print(f"duplicates={status.details.get('duplicates', 0)}")
        print(f"rejected={status.details.get('rejected', 0)}")
    return 0


def _run_generate_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    """Handle generate command.

    Args:
        client: SDK client.
        args: Parsed CLI args.

    Returns:
        Exit code.
    """
    options = GenerationOptions(
        min_registered_date=args.min_registered_date,
        since_reference_start=args.since_reference_start,
    )
    summary = client.start_generation(options)
    print(f"total_contributors={summary.total_contributors}")
    print(f"existing_profiles={summary.existing_profiles}")
    print(f"profiles_needing_update={summary.profiles_needing_update}")
    if summary.min_registered_date is not None:
        print(f"min_registered_date={format_date(summary.min_registered_date)}")
    if args.wait:
        client.run_until_idle()
        status = client.job_status(PROFILE_JOB_KIND)
        print(f"status={status.status}")
        print(f"processed={status.processed}")
    return 0


def _run_profile_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    if args.recompute:
        client.compute_profile(args.contributor_id)
    profile = client.get_profile(args.contributor_id)
    if profile is None:
        print(f"No profile for contributor '{args.contributor_id}'.", file=sys.stderr)
        return 1
    print(json.dumps(profile_to_payload(profile), indent=2))
    return 0


def _run_stats_command(client: LadderboardClient) -> int:
    stats = client.get_profile_stats()
    print(f"total_profiles={stats.total_profiles}")
    print(f"profiles_needing_update={stats.profiles_needing_update}")
    for ladder_id, total in stats.by_ladder.items():
        print(f"ladder.{ladder_id}={total}")
    for status, total in stats.by_status.items():
        print(f"status.{status}={total}")
    return 0


def _run_clock_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    if args.refresh:
        client.refresh_reference_clock()
    start_date, end_date = client.reference_dates()
    print(f"start_date={format_date(start_date) if start_date else '-'}")
    print(f"end_date={format_date(end_date) if end_date else '-'}")
    return 0


def _add_import_command(subparsers: Any) -> None:
    """Register import subcommand."""
    parser = subparsers.add_parser("import", help="Start a resumable CSV event import")
    parser.add_argument("source", help="CSV file with event rows")
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Run import ticks in this process until the job finishes",
    )
    parser.add_argument(
        "--no-auto-register",
        action="store_true",
        help="Do not add unseen event types to the registry",
    )


def _add_generate_command(subparsers: Any) -> None:
    """Register generate subcommand."""
    parser = subparsers.add_parser("generate", help="Start profile generation")
    parser.add_argument(
        "--wait",
        action="store_true",
        help="Run generation ticks in this process until the job finishes",
    )
    date_filter = parser.add_mutually_exclusive_group()
    date_filter.add_argument(
        "--min-registered-date",
        type=date.fromisoformat,
        help="Only contributors registered on or after YYYY-MM-DD",
    )
    date_filter.add_argument(
        "--since-reference-start",
        action="store_true",
        help="Only contributors registered on or after the reference start date",
    )


def _add_profile_command(subparsers: Any) -> None:
    """Register profile subcommand."""
    parser = subparsers.add_parser("profile", help="Print one contributor profile as JSON")
    parser.add_argument("contributor_id", help="Contributor id")
    parser.add_argument(
        "--recompute",
        action="store_true",
        help="Recompute the profile before printing",
    )


def _add_clock_command(subparsers: Any) -> None:
    """Register clock subcommand."""
    parser = subparsers.add_parser("clock", help="Show reference start and end dates")
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Recompute reference dates from stored events first",
    )
