"""Registry command wiring for Ladderboard CLI."""

from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Any

from store.ladder_sdk import LadderboardClient


def add_registry_command(subparsers: Any) -> None:
    """Register registry subcommand with load/export actions."""
    parser = subparsers.add_parser("registry", help="Manage event-type and ladder registries")
    actions = parser.add_subparsers(dest="registry_action", required=True)
    load_parser = actions.add_parser("load", help="Load registries from a YAML or JSON file")
    load_parser.add_argument("registry_file", help="Registry document path")
    export_parser = actions.add_parser("export", help="Print registries as JSON")
    export_parser.add_argument("--output", help="Optional file to write instead of stdout")


def run_registry_command(client: LadderboardClient, args: argparse.Namespace) -> int:
    """Execute registry load or export."""
    if args.registry_action == "load":
        document = client.load_registry(args.registry_file)
        if document.event_types is not None:
            print(f"event_types={len(document.event_types.titles)}")
        if document.ladders is not None:
            print(f"ladders={','.join(document.ladders.ladder_ids()) or '-'}")
        return 0
    rendered = json.dumps(client.export_registry(), indent=2)
    if args.output:
        output_path = Path(args.output).expanduser()
        output_path.write_text(rendered + "\n", encoding="utf-8")
        print(f"registry_path={output_path}")
        return 0
    print(rendered)
    return 0
