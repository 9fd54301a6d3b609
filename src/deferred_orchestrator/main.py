"""CLI entrypoint running the bundled demos on a configured runtime."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from pydantic import ValidationError

from deferred_orchestrator import __version__
from deferred_orchestrator.core.config import OrchestratorConfig
from deferred_orchestrator.core.runtime import Runtime
from deferred_orchestrator.demos import READ_STYLES, run_compute, run_multitask, run_read_files

logger = logging.getLogger(__name__)


def _parse_styles(value: str | None) -> list[str]:
    if value is None:
        return list(READ_STYLES)
    parts = [p.strip() for p in value.split(",")]
    styles = [p for p in parts if p]
    unknown = [s for s in styles if s not in READ_STYLES]
    if unknown:
        raise argparse.ArgumentTypeError(
            f"Unknown style(s): {', '.join(unknown)} (choose from {', '.join(READ_STYLES)})"
        )
    return styles


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="deferred-orchestrator",
        description="Callback, Deferred and await styles of asynchronous sequencing",
    )
    parser.add_argument(
        "--version", action="version", version=f"deferred-orchestrator {__version__}"
    )
    parser.add_argument(
        "--virtual-time",
        action="store_true",
        help="Fire timers instantly in deadline order instead of sleeping",
    )
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=None,
        help="Directory resource names are resolved against",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    read_files = subparsers.add_parser(
        "read-files", help="Read two files in order, in every style side by side"
    )
    read_files.add_argument("--first", default="file.txt", help="Resource read first")
    read_files.add_argument("--second", default="file2.txt", help="Resource read second")
    read_files.add_argument(
        "--styles",
        type=_parse_styles,
        default=None,
        help=f"Comma-separated styles to run (default: {','.join(READ_STYLES)})",
    )

    multitask = subparsers.add_parser(
        "multitask", help="Launch fire-and-forget timers and report as each finishes"
    )
    multitask.add_argument(
        "--durations",
        type=float,
        nargs="+",
        default=[10.0, 1.0, 5.0],
        help="Timer durations in seconds, in launch order",
    )

    compute = subparsers.add_parser(
        "compute", help="Wrap a slow fibonacci computation in a Deferred"
    )
    compute.add_argument("-n", type=int, default=25, help="Fibonacci index")

    return parser


def _apply_overrides(config: OrchestratorConfig, args: argparse.Namespace) -> OrchestratorConfig:
    updates: dict[str, object] = {}
    if args.virtual_time:
        updates["loop"] = config.loop.model_copy(update={"virtual_time": True})
    if args.base_dir is not None:
        updates["resources"] = config.resources.model_copy(update={"base_dir": args.base_dir})
    return config.model_copy(update=updates) if updates else config


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        config = OrchestratorConfig()
    except ValidationError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 2

    config = _apply_overrides(config, args)

    try:
        with Runtime(config) as runtime:
            if args.command == "read-files":
                styles = args.styles if args.styles is not None else list(READ_STYLES)
                ok = run_read_files(runtime, args.first, args.second, styles=styles)
                return 0 if ok else 1
            elif args.command == "multitask":
                run_multitask(runtime, args.durations)
                return 0
            else:
                return 0 if run_compute(runtime, args.n) else 1
    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
