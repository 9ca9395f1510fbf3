# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Fill Map CLI: inspect snapshots and the site registry.

Usage:
    fillmap classify SNAPSHOT.json [--json]
    fillmap identify SNAPSHOT.json
    fillmap resolve SNAPSHOT.json [--db-path PATH]
    fillmap sites [--db-path PATH]
    fillmap rename SITE_ID NAME [--db-path PATH]

Global flags: ``--json-logs``, ``--log-level LEVEL``.  Settings not given
on the command line come from ``FILLMAP_*`` environment variables.
"""

from __future__ import annotations

import argparse
import asyncio
import dataclasses
import json
import sys
from datetime import datetime
from pathlib import Path

from .config import Settings
from .engine import AutofillEngine, analyze_snapshot
from .errors import FillMapError, SnapshotError
from .logging_config import configure
from .site_registry import ExactMatch, NewSite, SimilarSites, SiteResolution
from .tree import AssistSnapshot


def _require_cli_deps() -> None:
    """Check that CLI optional dependencies are installed."""
    try:
        from tabulate import tabulate  # noqa: F401
    except ImportError as e:
        print(
            f"Missing CLI dependency: {e.name}\nInstall with: pip install fillmap[cli]",
            file=sys.stderr,
        )
        sys.exit(1)


def _load_snapshot(path_str: str) -> AssistSnapshot:
    path = Path(path_str)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Cannot read {path}: {e.strerror or e}") from e
    return AssistSnapshot.from_json(raw)


def _settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    if getattr(args, "db_path", ""):
        settings = dataclasses.replace(settings, db_path=args.db_path)
    return settings


def _format_ts(ts: float) -> str:
    return datetime.fromtimestamp(ts).strftime("%Y-%m-%d %H:%M:%S")


def _resolution_payload(resolution: SiteResolution) -> dict:
    match resolution:
        case ExactMatch(site=site):
            return {"result": "exact_match", "sites": [dataclasses.asdict(site)]}
        case NewSite(site=site):
            return {"result": "new_site", "sites": [dataclasses.asdict(site)]}
        case SimilarSites(sites=sites):
            return {"result": "similar_sites", "sites": [dataclasses.asdict(s) for s in sites]}
    raise TypeError(f"Unknown resolution: {resolution!r}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_classify(args: argparse.Namespace) -> None:
    """Print the autofillable fields of a snapshot, after per-site corrections."""
    analysis = analyze_snapshot(_load_snapshot(args.snapshot))
    rows = [
        {"field_handle": str(f.field_handle), "role": f.role, "observed_text": f.observed_text}
        for f in analysis.fields
    ]
    if args.json:
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return

    _require_cli_deps()
    from tabulate import tabulate

    if not rows:
        print("No autofillable fields.")
        return
    print(tabulate(rows, headers="keys", tablefmt="simple"))


def cmd_identify(args: argparse.Namespace) -> None:
    page_info = analyze_snapshot(_load_snapshot(args.snapshot)).page_info
    print(json.dumps(dataclasses.asdict(page_info), ensure_ascii=False, indent=2))


async def _resolve(settings: Settings, snapshot: AssistSnapshot) -> dict:
    async with await AutofillEngine.open(settings) as engine:
        page_info = engine.analyze(snapshot).page_info
        resolution = await engine.registry.resolve(page_info)
    return {"page_info": dataclasses.asdict(page_info), **_resolution_payload(resolution)}


def cmd_resolve(args: argparse.Namespace) -> None:
    """Resolve a snapshot's page against the registry (creates a site when new)."""
    snapshot = _load_snapshot(args.snapshot)
    payload = asyncio.run(_resolve(_settings(args), snapshot))
    print(json.dumps(payload, ensure_ascii=False, indent=2))


async def _list_sites(settings: Settings) -> list:
    async with await AutofillEngine.open(settings) as engine:
        return await engine.registry.list_sites()


def cmd_sites(args: argparse.Namespace) -> None:
    _require_cli_deps()
    from tabulate import tabulate

    sites = asyncio.run(_list_sites(_settings(args)))
    if not sites:
        print("No sites registered.")
        return
    rows = [
        [s.id, s.name, s.page_id, s.domain or "", "yes" if s.is_user_named else "", _format_ts(s.last_used)]
        for s in sites
    ]
    print(tabulate(rows, headers=["ID", "Name", "Page ID", "Domain", "User-named", "Last used"], tablefmt="simple"))


async def _rename(settings: Settings, site_id: int, name: str):
    async with await AutofillEngine.open(settings) as engine:
        return await engine.registry.rename(site_id, name)


def cmd_rename(args: argparse.Namespace) -> None:
    name = args.name.strip()
    if not name:
        print("Error: NAME must not be empty.", file=sys.stderr)
        sys.exit(1)
    site = asyncio.run(_rename(_settings(args), args.site_id, name))
    print(f"Renamed site {site.id} to {site.name!r}")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Fill Map CLI",
        prog="fillmap",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines on stderr")
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Log level (default: FILLMAP_LOG_LEVEL or INFO)",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p_classify = subparsers.add_parser("classify", help="List autofillable fields and their roles")
    p_classify.add_argument("snapshot", metavar="SNAPSHOT", help="Snapshot JSON file")
    p_classify.add_argument("--json", action="store_true", help="Output JSON instead of a table")

    p_identify = subparsers.add_parser("identify", help="Print the page identity as JSON")
    p_identify.add_argument("snapshot", metavar="SNAPSHOT", help="Snapshot JSON file")

    db_help = "Path to SQLite database (default: FILLMAP_DB_PATH or ~/.fillmap/fillmap.db)"

    p_resolve = subparsers.add_parser("resolve", help="Resolve the page against the site registry")
    p_resolve.add_argument("snapshot", metavar="SNAPSHOT", help="Snapshot JSON file")
    p_resolve.add_argument("--db-path", default="", help=db_help)

    p_sites = subparsers.add_parser("sites", help="List registered sites")
    p_sites.add_argument("--db-path", default="", help=db_help)

    p_rename = subparsers.add_parser("rename", help="Rename a registered site")
    p_rename.add_argument("site_id", type=int, metavar="SITE_ID")
    p_rename.add_argument("name", metavar="NAME")
    p_rename.add_argument("--db-path", default="", help=db_help)

    return parser


COMMANDS = {
    "classify": cmd_classify,
    "identify": cmd_identify,
    "resolve": cmd_resolve,
    "sites": cmd_sites,
    "rename": cmd_rename,
}


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    args = build_parser().parse_args(argv)

    env = Settings.from_env()
    configure(json_output=args.json_logs or env.log_json, level=args.log_level or env.log_level)

    try:
        COMMANDS[args.command](args)
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)
    except FillMapError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
