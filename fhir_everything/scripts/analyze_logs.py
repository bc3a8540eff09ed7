#!/usr/bin/env python3
"""Command-line tool to analyze $everything log sessions.

Usage:
    # Summary report for a session
    python -m fhir_everything.scripts.analyze_logs logs/sessions/<session-id>

    # Trace for one root resource
    python -m fhir_everything.scripts.analyze_logs logs/sessions/<session-id> -r Patient/p1

    # Find all failures
    python -m fhir_everything.scripts.analyze_logs logs/sessions/<session-id> --failures

    # Analyze latest session
    python -m fhir_everything.scripts.analyze_logs --latest
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Optional

from ..closure.config import LOG_DIR
from ..closure.logging import LogAnalyzer, find_latest_session


def print_json(data: Any, indent: int = 2) -> None:
    """Print data as formatted JSON."""
    print(json.dumps(data, indent=indent, default=str))


def main(argv: Optional[list] = None):
    """Main entry point for the log analyzer CLI."""
    parser = argparse.ArgumentParser(
        description="Analyze $everything log sessions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    parser.add_argument(
        "session_path",
        nargs="?",
        type=str,
        help="Path to session directory (e.g., logs/sessions/2025-06-15_10-30-45)",
    )

    parser.add_argument(
        "--latest",
        action="store_true",
        help="Analyze the most recent session",
    )

    parser.add_argument(
        "-r", "--root",
        type=str,
        help="Show summary for a specific root reference (e.g., Patient/p1)",
    )

    parser.add_argument(
        "--failures",
        action="store_true",
        help="Show all failure events",
    )

    parser.add_argument(
        "--events",
        type=str,
        nargs="+",
        metavar="EVENT_TYPE",
        help="Filter events by type (e.g., REFERENCE_RESOLVED RESOLUTION_FAILED)",
    )

    parser.add_argument(
        "--json",
        action="store_true",
        help="Output results as JSON",
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Show verbose output",
    )

    args = parser.parse_args(argv)

    session_path: Optional[Path] = None

    if args.latest:
        session_path = find_latest_session(LOG_DIR)
        if session_path is None:
            print("Error: No sessions found in", LOG_DIR / "sessions")
            sys.exit(1)
        print(f"Using latest session: {session_path.name}")
    elif args.session_path:
        session_path = Path(args.session_path)
    else:
        parser.print_help()
        sys.exit(1)

    if not session_path.exists():
        print(f"Error: Session directory not found: {session_path}")
        sys.exit(1)

    analyzer = LogAnalyzer(session_path)

    if args.root:
        summary = analyzer.get_root_summary(args.root)
        if summary.status is None and not summary.resolved_references and not summary.failures:
            print(f"No data found for root: {args.root}")
            sys.exit(1)

        if args.json:
            print_json({
                "root_reference": summary.root_reference,
                "status": summary.status,
                "entry_count": summary.entry_count,
                "resolved_references": summary.resolved_references,
                "skipped_references": summary.skipped_references,
                "failures": summary.failures,
                "duration_ms": summary.duration_ms,
            })
        else:
            analyzer.print_root_summary(args.root)

    elif args.failures:
        failures = analyzer.get_failures()
        if args.json:
            print_json(failures)
        else:
            print(f"\nFailures found: {len(failures)}")
            for i, failure in enumerate(failures):
                print(f"\n--- Failure {i+1} ---")
                print(f"Root: {failure.get('root_reference', 'unknown')}")
                print(f"Type: {failure.get('event_type', 'ERROR')}")
                print(f"Reference: {failure.get('reference', '')}")
                print(f"Time: {failure.get('timestamp', '')}")
                print(f"Message: {failure.get('message', 'Unknown')}")

    elif args.events:
        events = analyzer.filter_by_event_type(args.events)
        if args.json:
            print_json(events)
        else:
            print(f"\nEvents matching {args.events}: {len(events)}")
            for event in events:
                root = event.get("root_reference", "")
                timestamp = event.get("timestamp", "")

                prefix = f"[{timestamp}]" if timestamp else ""
                if root:
                    prefix += f" [{root}]"

                print(f"{prefix} {event.get('event_type', '')}: {event.get('message', '')}")

                if args.verbose:
                    for key in ["reference", "depth", "issue_code", "entry_count", "duration_ms"]:
                        if key in event:
                            print(f"    {key}: {event[key]}")

    else:
        if args.json:
            summary = analyzer.generate_summary_report()
            print_json({
                "session_id": summary.session_id,
                "start_time": summary.start_time.isoformat() if summary.start_time else None,
                "end_time": summary.end_time.isoformat() if summary.end_time else None,
                "root_count": summary.root_count,
                "failure_count": len(summary.failures),
                "roots": {
                    reference: {
                        "status": root.status,
                        "entry_count": root.entry_count,
                        "failure_count": len(root.failures),
                    }
                    for reference, root in summary.roots.items()
                },
            })
        else:
            analyzer.print_session_summary()


if __name__ == "__main__":
    main()
