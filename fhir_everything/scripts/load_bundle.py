#!/usr/bin/env python3
"""
Split FHIR Bundles into the file store used by the $everything server.

Each entry resource is written to <store>/<information model>/<Type>/<id>.json.

Usage:
    python -m fhir_everything.scripts.load_bundle patient_bundle.json
    python -m fhir_everything.scripts.load_bundle bundles/*.json --model Fhir3.0
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Iterator

from ..closure.config import DEFAULT_INFORMATION_MODEL, LOG_FORMAT, STORE_DIR, SUPPORTED_INFORMATION_MODELS
from ..closure.resources import Resource

logger = logging.getLogger(__name__)


def iter_bundle_resources(bundle: Dict[str, Any]) -> Iterator[Dict[str, Any]]:
    """Yield the entry resources of a Bundle (or the document itself)."""
    if bundle.get("resourceType") != "Bundle":
        yield bundle
        return
    for entry in bundle.get("entry", []):
        resource = entry.get("resource")
        if resource:
            yield resource


def write_resource(resource: Resource, store_dir: Path) -> Path:
    """Write one resource into the store layout."""
    path = store_dir / resource.information_model / resource.resource_type / f"{resource.id}.json"
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(dict(resource.data), f, indent=2)
    return path


def load_bundle(bundle_path: Path, store_dir: Path, information_model: str) -> int:
    """Load one Bundle file into the store.

    Returns:
        Number of resources written
    """
    with open(bundle_path, "r", encoding="utf-8") as f:
        bundle = json.load(f)

    written = 0
    for document in iter_bundle_resources(bundle):
        try:
            resource = Resource.from_json(document, information_model)
        except ValueError as e:
            logger.warning(f"Skipping entry in {bundle_path.name}: {e}")
            continue
        write_resource(resource, store_dir)
        written += 1

    logger.info(f"{bundle_path.name}: wrote {written} resources")
    return written


def main(argv=None):
    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)

    parser = argparse.ArgumentParser(description="Load FHIR Bundles into the file store")
    parser.add_argument("bundles", nargs="+", type=Path, help="Bundle JSON files")
    parser.add_argument(
        "--store",
        type=Path,
        default=STORE_DIR,
        help=f"Store directory (default: {STORE_DIR})",
    )
    parser.add_argument(
        "--model",
        choices=SUPPORTED_INFORMATION_MODELS,
        default=DEFAULT_INFORMATION_MODEL,
        help=f"Information model of the bundles (default: {DEFAULT_INFORMATION_MODEL})",
    )
    args = parser.parse_args(argv)

    total = 0
    for bundle_path in args.bundles:
        if not bundle_path.exists():
            print(f"Error: file not found: {bundle_path}")
            sys.exit(1)
        total += load_bundle(bundle_path, args.store, args.model)

    print(f"Loaded {total} resources into {args.store}")


if __name__ == "__main__":
    main()
