"""Batch job command wiring for Ladderboard CLI."""

from __future__ import annotations

import argparse
from typing import Any

from core.constants import SUPPORTED_JOB_KINDS
from core.timestamps import format_optional_timestamp
from core.types import JobStatusView
from store.ladder_sdk import LadderboardClient


def add_status_command(subparsers: Any) -> None:
    """Register status subcommand."""
    parser = subparsers.add_parser("status", help="Show batch job progress")
    _add_job_kind_argument(parser)


def add_cancel_command(subparsers: Any) -> None:
    """Register cancel subcommand."""
    parser = subparsers.add_parser("cancel", help="Cancel a processing batch job")
    _add_job_kind_argument(parser)


def add_reset_command(subparsers: Any) -> None:
    """Register reset subcommand."""
    parser = subparsers.add_parser("reset", help="Delete a batch job record and pending tick")
    _add_job_kind_argument(parser)


def add_work_command(subparsers: Any) -> None:
    """Register work subcommand."""
    parser = subparsers.add_parser("work", help="Run scheduled batch ticks")
    parser.add_argument(
        "--until-idle",
        action="store_true",
        help="Keep running until no tick is pending instead of one pass",
    )


def run_status_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    _print_status(client.job_status(args.job_kind))
    return 0


def run_cancel_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    _print_status(client.cancel_job(args.job_kind))
    return 0


def run_reset_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    client.reset_job(args.job_kind)
    print(f"reset={args.job_kind}")
    return 0


def run_work_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    """Run due ticks once, or until every job is idle."""
    if args.until_idle:
        print(f"ticks_run={client.run_until_idle()}")
        return 0
    for job_kind, outcome in client.run_due_ticks().items():
        print(f"{job_kind}={outcome}")
    return 0


def _add_job_kind_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("job_kind", choices=SUPPORTED_JOB_KINDS, help="Batch job kind")


def _print_status(status: JobStatusView) -> None:
    print(f"job_kind={status.job_kind}")
    print(f"status={status.status}")
    print(f"processed={status.processed}")
    print(f"total={status.total}")
    print(f"remaining={status.remaining}")
    print(f"percent_complete={status.percent_complete}")
    print(f"updated_at={format_optional_timestamp(status.updated_at) or '-'}")
    print(f"next_tick_due_at={format_optional_timestamp(status.next_tick_due_at) or '-'}")
