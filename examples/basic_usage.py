#!/usr/bin/env python3
"""Programmatic example: read two files first in order, then concurrently.

* load settings from the environment / `.env`
* build a runtime rooted at this directory
* read `file.txt` then `file2.txt` as a Deferred chain
* read both at once and aggregate with `wait_all`
"""

from __future__ import annotations

import argparse
from pathlib import Path
from typing import Sequence

from deferred_orchestrator import OrchestratorConfig, Runtime, launch, sequence, wait_all
from deferred_orchestrator.errors import DeferredError


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Read two files with Deferreds (example).")
    parser.add_argument("--first", default="file.txt", help="Resource read first")
    parser.add_argument("--second", default="file2.txt", help="Resource read second")
    parser.add_argument(
        "--base-dir",
        type=Path,
        default=Path(__file__).resolve().parent,
        help="Directory the resources live in (defaults to this example's directory)",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    config = OrchestratorConfig()
    config = config.model_copy(
        update={"resources": config.resources.model_copy(update={"base_dir": args.base_dir})}
    )

    with Runtime(config) as runtime:
        in_order = sequence(
            runtime.read(args.first),
            lambda first: runtime.read(args.second).then(lambda second: (first, second)),
        )
        try:
            first, second = runtime.run(in_order)
        except DeferredError as exc:
            print(f"Sequential read failed: {exc}")
            return 1
        print(f"In order: {first} {second}")

        together = wait_all(launch([runtime.resource(args.first), runtime.resource(args.second)]))
        try:
            texts = runtime.run(together)
        except DeferredError as exc:
            print(f"Concurrent read failed: {exc}")
            return 1
        print(f"Concurrently: {' '.join(texts)}")

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
