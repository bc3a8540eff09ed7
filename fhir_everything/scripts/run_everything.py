#!/usr/bin/env python3
"""
Run $everything against the file store without starting the server.

Usage:
    python -m fhir_everything.scripts.run_everything Patient p1
    python -m fhir_everything.scripts.run_everything Patient p1 --traversal compartment --persist
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

from ..closure.compartment import load_compartment_search_list
from ..closure.config import (
    DEFAULT_INFORMATION_MODEL,
    EVERYTHING_TRAVERSAL_MODE,
    LOG_FORMAT,
    STORE_DIR,
    SUPPORTED_INFORMATION_MODELS,
    TRAVERSAL_CLOSURE,
    TRAVERSAL_COMPARTMENT,
)
from ..closure.everything_service import EverythingService
from ..closure.logging import initialize_closure_trace_logger
from ..closure.store import FileResourceStore


async def run(args: argparse.Namespace) -> int:
    store = FileResourceStore(args.store)
    search_list = (
        load_compartment_search_list() if args.traversal == TRAVERSAL_COMPARTMENT else None
    )
    service = EverythingService(store, search_list=search_list, traversal=args.traversal)

    result = await service.run_closure(
        args.resource_type, args.resource_id, args.model, persist=args.persist
    )

    output = result.resource() if result.ok else result.outcome()
    print(json.dumps(output, indent=2))
    print(f"Status: {result.status.value}", file=sys.stderr)
    return 0 if result.ok else 1


def main(argv=None):
    parser = argparse.ArgumentParser(description="Run $everything on a stored resource")
    parser.add_argument("resource_type", help="Resource type (e.g., Patient)")
    parser.add_argument("resource_id", help="Resource id")
    parser.add_argument(
        "--model",
        choices=SUPPORTED_INFORMATION_MODELS,
        default=DEFAULT_INFORMATION_MODEL,
        help=f"Information model (default: {DEFAULT_INFORMATION_MODEL})",
    )
    parser.add_argument(
        "--traversal",
        choices=(TRAVERSAL_CLOSURE, TRAVERSAL_COMPARTMENT),
        default=EVERYTHING_TRAVERSAL_MODE,
        help=f"Traversal mode (default: {EVERYTHING_TRAVERSAL_MODE})",
    )
    parser.add_argument("--store", type=Path, default=STORE_DIR, help="Store directory")
    parser.add_argument("--persist", action="store_true", help="Store the resulting Bundle")
    parser.add_argument(
        "--trace",
        action="store_true",
        help="Write closure trace logs to a new session directory",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format=LOG_FORMAT,
        stream=sys.stderr,
    )

    if args.trace:
        session_id = initialize_closure_trace_logger(metadata={
            "service": "cli",
            "traversal": args.traversal,
            "store_dir": args.store,
        })
        print(f"Trace session: {session_id}", file=sys.stderr)

    sys.exit(asyncio.run(run(args)))


if __name__ == "__main__":
    main()
