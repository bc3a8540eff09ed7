"""Post-run analysis utilities for closure trace logs.

This module provides tools for analyzing logged sessions after
server runs, including per-root summaries, filtering, and reporting.
"""

import json
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from .handlers import SESSION_METADATA_FILE, SUMMARY_LOG_FILE, TRACE_LOG_FILE, list_sessions

FAILURE_EVENT_TYPES = ("RESOLUTION_FAILED", "MODEL_MISMATCH", "ROOT_NOT_FOUND")


@dataclass
class RootSummary:
    """Summary of the $everything runs for a single root resource."""
    root_reference: str
    resolved_references: List[str] = field(default_factory=list)
    skipped_references: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)
    status: Optional[str] = None
    entry_count: int = 0
    duration_ms: int = 0


@dataclass
class SessionSummary:
    """Summary of an entire logging session."""
    session_id: str
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    root_count: int = 0
    roots: Dict[str, RootSummary] = field(default_factory=dict)
    failures: List[Dict[str, Any]] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


class LogAnalyzer:
    """Analyzer for closure trace sessions."""

    def __init__(self, session_dir: Union[str, Path]):
        """Initialize the analyzer with a session directory.

        Args:
            session_dir: Path to the session directory containing log files
        """
        self.session_dir = Path(session_dir)
        self.session_id = self.session_dir.name

        self.trace_path = self.session_dir / TRACE_LOG_FILE
        self.summary_path = self.session_dir / SUMMARY_LOG_FILE
        self.metadata_path = self.session_dir / SESSION_METADATA_FILE

        self._events: Optional[List[Dict[str, Any]]] = None

    @property
    def metadata(self) -> Dict[str, Any]:
        """Contents of session.json (empty if the file is missing)."""
        if not self.metadata_path.exists():
            return {}
        with open(self.metadata_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _load_jsonl(self, path: Path) -> List[Dict[str, Any]]:
        """Load events from a JSONL file, skipping malformed lines."""
        events = []
        if path.exists():
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if line:
                        try:
                            events.append(json.loads(line))
                        except json.JSONDecodeError:
                            continue
        return events

    @property
    def events(self) -> List[Dict[str, Any]]:
        """Get all trace events (cached)."""
        if self._events is None:
            self._events = self._load_jsonl(self.trace_path)
        return self._events

    def get_roots(self) -> Set[str]:
        """Get the root references seen in the session."""
        return {e["root_reference"] for e in self.events if "root_reference" in e}

    def filter_by_root(self, root_reference: str) -> List[Dict[str, Any]]:
        """Events for one root reference, in timestamp order."""
        events = [e for e in self.events if e.get("root_reference") == root_reference]
        events.sort(key=lambda e: e.get("timestamp", ""))
        return events

    def filter_by_event_type(self, event_types: List[str]) -> List[Dict[str, Any]]:
        events = [e for e in self.events if e.get("event_type") in event_types]
        events.sort(key=lambda e: e.get("timestamp", ""))
        return events

    def get_failures(self) -> List[Dict[str, Any]]:
        """Get all failure/error events."""
        return [
            event for event in self.events
            if event.get("event_type") in FAILURE_EVENT_TYPES
            or "error" in event
            or event.get("level") == "ERROR"
        ]

    def get_root_summary(self, root_reference: str) -> RootSummary:
        """Generate a summary for one root reference."""
        summary = RootSummary(root_reference=root_reference)

        for event in self.filter_by_root(root_reference):
            event_type = event.get("event_type", "")

            if event_type == "REFERENCE_RESOLVED":
                summary.resolved_references.append(event.get("reference", ""))
            elif event_type == "REFERENCE_SKIPPED":
                summary.skipped_references.append(event.get("reference", ""))
            elif event_type in FAILURE_EVENT_TYPES:
                summary.failures.append(event.get("message", event_type))
            elif event_type == "CLOSURE_COMPLETE":
                summary.status = event.get("status")
                summary.entry_count = event.get("entry_count", 0)
            elif event_type == "CLOSURE_END":
                summary.duration_ms += event.get("duration_ms", 0)

        return summary

    def generate_summary_report(self) -> SessionSummary:
        """Generate a summary report for the entire session."""
        summary = SessionSummary(session_id=self.session_id, metadata=self.metadata)

        roots = self.get_roots()
        summary.root_count = len(roots)
        for root_reference in sorted(roots):
            summary.roots[root_reference] = self.get_root_summary(root_reference)

        summary.failures = self.get_failures()

        timestamps = sorted(e["timestamp"] for e in self.events if e.get("timestamp"))
        if timestamps:
            try:
                summary.start_time = datetime.fromisoformat(timestamps[0].replace("Z", "+00:00"))
                summary.end_time = datetime.fromisoformat(timestamps[-1].replace("Z", "+00:00"))
            except ValueError:
                pass

        return summary

    def print_root_summary(self, root_reference: str) -> None:
        summary = self.get_root_summary(root_reference)

        print(f"\n{'='*60}")
        print(f"Root: {summary.root_reference}")
        print(f"{'='*60}")
        print(f"Status: {summary.status or 'unknown'}")
        print(f"Entries: {summary.entry_count}")

        if summary.resolved_references:
            print("\nResolved references:")
            for reference in summary.resolved_references:
                print(f"  - {reference}")

        if summary.failures:
            print("\nFailures:")
            for failure in summary.failures:
                print(f"  - {failure}")

        print()

    def print_session_summary(self) -> None:
        summary = self.generate_summary_report()

        print(f"\n{'='*60}")
        print(f"Session Summary: {summary.session_id}")
        print(f"{'='*60}")

        if summary.start_time:
            print(f"Start: {summary.start_time.isoformat()}")
        if summary.end_time:
            print(f"End: {summary.end_time.isoformat()}")

        for key in ("service", "traversal", "store_dir"):
            if key in summary.metadata:
                print(f"{key.replace('_', ' ').capitalize()}: {summary.metadata[key]}")

        print(f"Roots processed: {summary.root_count}")
        print(f"Failures: {len(summary.failures)}")

        print("\nRoot summaries:")
        for root_reference, root_summary in summary.roots.items():
            print(
                f"  {root_reference}: {root_summary.status or 'unknown'}, "
                f"{root_summary.entry_count} entries"
            )

        if summary.failures:
            print("\nFailures encountered:")
            for failure in summary.failures[:5]:
                root = failure.get("root_reference", "unknown")
                event_type = failure.get("event_type", "ERROR")
                print(f"  [{root}] {event_type}: {failure.get('message', '')}")
            if len(summary.failures) > 5:
                print(f"  ... and {len(summary.failures) - 5} more")

        print()


def find_latest_session(log_dir: Path) -> Optional[Path]:
    """Find the most recent session directory.

    Args:
        log_dir: Base log directory containing sessions/

    Returns:
        Path to the latest session directory, or None
    """
    sessions = list_sessions(log_dir)
    return sessions[-1] if sessions else None
