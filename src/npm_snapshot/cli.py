"""Command line entrypoint for capturing and inspecting dependency snapshots."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from .config import ConfigError, load_settings
from .core import SnapshotCaptureService
from .errors import SnapshotError
from .models import SnapshotFilter, TriggerSource
from .report import build_report
from .repository import DEFAULT_KEEP_PER_PROJECT
from .summary import render_summary

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_NOT_FOUND = 2


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


def _emit_report(report: dict[str, Any], output_format: str) -> None:
    if output_format == "markdown":
        sys.stdout.write(render_summary(report))
    else:
        _emit(report)


def _cmd_capture(service: SnapshotCaptureService, args: argparse.Namespace) -> int:
    try:
        snapshot = service.capture_snapshot(args.path, TriggerSource(args.trigger))
        context = service.build_security_context(snapshot.id) if args.security else None
    except SnapshotError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    dependencies = service.repository.get_dependencies(snapshot.id)
    _emit_report(build_report(snapshot, dependencies, context), args.format)
    return EXIT_OK


def _cmd_list(service: SnapshotCaptureService, args: argparse.Namespace) -> int:
    project = str(Path(args.project).expanduser().resolve()) if args.project else None
    snapshots = service.repository.list_snapshots(
        SnapshotFilter(project_path=project, limit=args.limit)
    )
    _emit([snapshot.to_dict() for snapshot in snapshots])
    return EXIT_OK


def _cmd_show(service: SnapshotCaptureService, args: argparse.Namespace) -> int:
    found = service.repository.get_snapshot_with_dependencies(args.snapshot_id)
    if found is None:
        print(f"ERROR: Snapshot {args.snapshot_id} not found", file=sys.stderr)
        return EXIT_NOT_FOUND
    _emit_report(build_report(found.snapshot, found.dependencies), args.format)
    return EXIT_OK


def _cmd_delete(service: SnapshotCaptureService, args: argparse.Namespace) -> int:
    try:
        service.storage.delete_snapshot(args.snapshot_id)
        deleted = service.repository.delete_snapshot(args.snapshot_id)
    except SnapshotError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    if not deleted:
        print(f"ERROR: Snapshot {args.snapshot_id} not found", file=sys.stderr)
        return EXIT_NOT_FOUND
    _emit({"deleted": args.snapshot_id})
    return EXIT_OK


def _cmd_prune(service: SnapshotCaptureService, args: argparse.Namespace) -> int:
    try:
        removed = service.repository.prune_snapshots(args.keep)
        for snapshot_id in removed:
            service.storage.delete_snapshot(snapshot_id)
    except SnapshotError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILURE
    _emit({"removed": removed})
    return EXIT_OK


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="npm-snapshot", description=__doc__)
    parser.add_argument("--config", type=Path, default=None, help="Path to a settings JSON file")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
    sub = parser.add_subparsers(dest="command", required=True)

    capture = sub.add_parser("capture", help="Capture a snapshot of a project's lockfile")
    capture.add_argument("path", type=Path, nargs="?", default=Path("."))
    capture.add_argument(
        "--trigger",
        choices=[source.value for source in TriggerSource],
        default=TriggerSource.MANUAL.value,
    )
    capture.add_argument("--security", action="store_true", help="Run node_modules and typosquatting scans")
    capture.add_argument("--format", choices=["json", "markdown"], default="json")
    capture.set_defaults(handler=_cmd_capture)

    listing = sub.add_parser("list", help="List captured snapshots, newest first")
    listing.add_argument("--project", type=Path, default=None)
    listing.add_argument("--limit", type=int, default=None)
    listing.set_defaults(handler=_cmd_list)

    show = sub.add_parser("show", help="Show a snapshot and its dependencies")
    show.add_argument("snapshot_id")
    show.add_argument("--format", choices=["json", "markdown"], default="json")
    show.set_defaults(handler=_cmd_show)

    delete = sub.add_parser("delete", help="Delete a snapshot and its stored artifacts")
    delete.add_argument("snapshot_id")
    delete.set_defaults(handler=_cmd_delete)

    prune = sub.add_parser("prune", help="Keep only the newest snapshots per project")
    prune.add_argument("--keep", type=int, default=DEFAULT_KEEP_PER_PROJECT)
    prune.set_defaults(handler=_cmd_prune)

    return parser.parse_args(argv)


def _configure_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    _configure_logging(args.verbose)

    try:
        settings = load_settings(args.config)
        service = SnapshotCaptureService.from_settings(settings)
    except (ConfigError, SnapshotError) as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_FAILURE

    return args.handler(service, args)


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
