"""CLI entrypoints for featuremap commands."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import yaml

from .errors import BatchValidationError, FeaturemapError
from .features.proposals import parse_proposals
from .logging import configure_logging
from .models import STATUSES
from .orchestrator import Orchestrator


def _add_verbose_option(
    parser: argparse.ArgumentParser, *, suppress_default: bool = False
) -> None:
    kwargs: dict[str, object] = {
        "action": "store_true",
        "help": "Increase log verbosity for troubleshooting.",
    }
    if suppress_default:
        kwargs["default"] = argparse.SUPPRESS
    else:
        kwargs["default"] = False
    parser.add_argument(
        "-v",
        "--verbose",
        **kwargs,
    )


def _add_path_option(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--path",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="featuremap",
        description="Map a codebase into stable clusters and curated features.",
    )
    _add_verbose_option(parser)
    subparsers = parser.add_subparsers(dest="command", required=True)

    scan_parser = subparsers.add_parser(
        "scan",
        help="Analyze the project and persist clusters and graph.yaml.",
    )
    _add_verbose_option(scan_parser, suppress_default=True)
    scan_parser.add_argument(
        "path",
        nargs="?",
        default=".",
        help="Path to the project root (defaults to current directory).",
    )

    save_parser = subparsers.add_parser(
        "save-features",
        help="Merge a YAML/JSON batch of feature proposals into .featuremap/features.",
    )
    _add_verbose_option(save_parser, suppress_default=True)
    _add_path_option(save_parser)
    save_parser.add_argument("file", help="Proposal file; use '-' to read from stdin.")
    save_parser.add_argument(
        "--mode",
        choices=("merge", "replace"),
        default=None,
        help="merge (default) keeps omitted features; replace marks them ignored.",
    )
    save_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Validate and compute the summary without writing files.",
    )
    save_parser.add_argument(
        "--source",
        choices=("ai", "manual"),
        default="ai",
        help="Identity recorded as the proposer of this batch.",
    )

    update_parser = subparsers.add_parser(
        "update-feature",
        help="Edit one feature's name, description or status.",
    )
    _add_verbose_option(update_parser, suppress_default=True)
    _add_path_option(update_parser)
    update_parser.add_argument("id", help="Feature id.")
    update_parser.add_argument("--name")
    update_parser.add_argument("--description")
    update_parser.add_argument("--status", choices=STATUSES)
    update_parser.add_argument(
        "--lock",
        action="store_true",
        help="Lock the edited fields against future automated merges.",
    )

    serve_parser = subparsers.add_parser(
        "serve",
        help="Run the HTTP service (requires the 'service' extra).",
    )
    _add_verbose_option(serve_parser, suppress_default=True)
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    return parser


def main(argv: list[str] | None = None) -> None:
    """CLI entrypoint for featuremap commands."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    configure_logging(verbose=bool(args.verbose))

    orchestrator = Orchestrator()

    if args.command == "scan":
        try:
            summary = orchestrator.run_scan(args.path)
        except (FileNotFoundError, NotADirectoryError) as exc:
            parser.exit(1, f"{exc}\n")
        except FeaturemapError as exc:
            parser.exit(1, f"featuremap scan failed: {exc}\n")
        _print_json(summary.to_dict())
    elif args.command == "save-features":
        try:
            payload = _read_payload(args.file)
            proposals = parse_proposals(payload)
        except BatchValidationError as exc:
            parser.exit(1, _format_errors("featuremap save-features rejected the batch", exc.errors))
        except (OSError, yaml.YAMLError) as exc:
            parser.exit(1, f"Unable to read proposals: {exc}\n")
        mode = args.mode or (payload.get("mode") if isinstance(payload, dict) else None) or "merge"
        dry_run = bool(args.dry_run) or (isinstance(payload, dict) and payload.get("dryRun") is True)
        try:
            result = orchestrator.save_features(
                args.path, proposals, mode=mode, dry_run=dry_run, proposer=args.source
            )
        except FeaturemapError as exc:
            parser.exit(1, f"featuremap save-features failed: {exc}\n")
        _print_json(result.to_dict())
        if not result.ok:
            parser.exit(1, _format_errors("featuremap save-features rejected the batch", result.errors))
    elif args.command == "update-feature":
        if args.name is None and args.description is None and args.status is None:
            parser.exit(1, "Nothing to update: pass --name, --description or --status.\n")
        try:
            update = orchestrator.update_feature(
                args.path,
                args.id,
                name=args.name,
                description=args.description,
                status=args.status,
                lock=bool(args.lock),
            )
        except FeaturemapError as exc:
            parser.exit(1, f"{exc}\n")
        _print_json(update.to_dict())
    elif args.command == "serve":
        from .service import run_service

        run_service(host=args.host, port=args.port)
    else:  # pragma: no cover - argparse enforces choices
        parser.exit(1, "Unknown command\n")


def _read_payload(source: str) -> Any:
    if source == "-":
        text = sys.stdin.read()
    else:
        text = Path(source).read_text(encoding="utf-8")
    return yaml.safe_load(text)


def _format_errors(title: str, errors: list[str]) -> str:
    lines = [f"{title}:"]
    lines.extend(f"- {error}" for error in errors)
    return "\n".join(lines) + "\n"


def _print_json(payload: Any) -> None:
    print(json.dumps(payload, indent=2))


if __name__ == "__main__":
    main(sys.argv[1:])
