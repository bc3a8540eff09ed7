"""Specialized logger for $everything closure events.

This module provides a structured logger for tracing reference
resolution: which references were followed or skipped, which resource
each resolved to, and which failure ended a run.
"""

import logging
from typing import Any, Dict, Optional

from .formatters import HumanReadableFormatter, JSONLogFormatter
from .handlers import ClosureTraceHandler, SessionManager, SummaryHandler
from .trace_context import TraceContextFilter


class ClosureTraceLogger:
    """Specialized logger for closure tracing.

    Provides methods for logging specific traversal events with
    structured data that can be analyzed after runs.
    """

    def __init__(
        self,
        name: str = "fhir_everything.closure_trace",
        enable_summary: bool = True,
    ):
        """Initialize the closure trace logger.

        Args:
            name: Logger name
            enable_summary: Whether to also log to summary file
        """
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG)
        self.logger.addFilter(TraceContextFilter())

        self._session_initialized = False
        self._enable_summary = enable_summary

        self.summary_logger: Optional[logging.Logger] = None
        if enable_summary:
            self.summary_logger = logging.getLogger(f"{name}.summary")
            self.summary_logger.setLevel(logging.INFO)
            self.summary_logger.addFilter(TraceContextFilter())
            # Child of self.logger; would otherwise repeat events in the JSON trace
            self.summary_logger.propagate = False

    def initialize_session(
        self,
        session_id: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Attach session file handlers.

        Args:
            session_id: Optional specific session ID
            metadata: Extra fields for the session.json file

        Returns:
            The session ID
        """
        session_manager = SessionManager.get_instance()
        if self._session_initialized:
            return session_manager.session_id

        session_id = session_manager.initialize(session_id, metadata=metadata)

        json_handler = ClosureTraceHandler()
        json_handler.setFormatter(JSONLogFormatter())
        json_handler.setLevel(logging.DEBUG)
        self.logger.addHandler(json_handler)

        if self._enable_summary and self.summary_logger:
            summary_handler = SummaryHandler()
            summary_handler.setFormatter(HumanReadableFormatter())
            summary_handler.setLevel(logging.INFO)
            self.summary_logger.addHandler(summary_handler)

        self._session_initialized = True
        return session_id

    def _log(
        self,
        level: int,
        message: str,
        event_type: str,
        **kwargs: Any
    ) -> None:
        extra = {"event_type": event_type, **kwargs}
        self.logger.log(level, message, extra=extra)

        # Also log to summary at INFO level
        if self.summary_logger and level >= logging.INFO:
            self.summary_logger.log(level, message, extra=extra)

    def log_reference_skipped(self, reference: str, reason: str, depth: int) -> None:
        """Log a reference that was not resolved (contained or already visited)."""
        self._log(
            logging.DEBUG,
            f"Skipped {reference}: {reason}",
            event_type="REFERENCE_SKIPPED",
            reference=reference,
            depth=depth,
            status=reason,
        )

    def log_reference_resolved(
        self,
        reference: str,
        resource_type: str,
        resource_id: str,
        depth: int,
        entry_count: int,
    ) -> None:
        """Log a reference that resolved and was added to the bundle."""
        self._log(
            logging.DEBUG,
            f"Resolved {reference} -> {resource_type}/{resource_id}",
            event_type="REFERENCE_RESOLVED",
            reference=reference,
            resource_type=resource_type,
            resource_id=resource_id,
            depth=depth,
            entry_count=entry_count,
        )

    def log_resolution_failed(self, reference: str, issue_code: str, depth: int) -> None:
        """Log the failure that aborted a closure."""
        self._log(
            logging.WARNING,
            f"Failed to resolve {reference} ({issue_code})",
            event_type="RESOLUTION_FAILED",
            reference=reference,
            issue_code=issue_code,
            depth=depth,
        )

    def log_model_mismatch(self, reference: str, expected: str, found: str, depth: int) -> None:
        """Log a resolved resource from a different information model."""
        self._log(
            logging.WARNING,
            f"{reference} is in information model {found}, expected {expected}",
            event_type="MODEL_MISMATCH",
            reference=reference,
            expected=expected,
            found=found,
            depth=depth,
        )

    def log_root_not_found(self, root_reference: str) -> None:
        self._log(
            logging.INFO,
            f"$everything called on non-existing {root_reference}",
            event_type="ROOT_NOT_FOUND",
            root_reference=root_reference,
        )

    def log_reverse_search(
        self,
        resource_type: str,
        search_param: str,
        match_count: int,
    ) -> None:
        """Log one reverse lookup of the compartment traversal."""
        self._log(
            logging.INFO if match_count else logging.DEBUG,
            f"Found {match_count} {resource_type} resources via {search_param}",
            event_type="REVERSE_SEARCH",
            resource_type=resource_type,
            search_param=search_param,
            match_count=match_count,
        )

    def log_bundle_persisted(self, bundle_id: str, entry_count: int) -> None:
        self._log(
            logging.INFO,
            f"Persisted Bundle/{bundle_id}",
            event_type="BUNDLE_PERSISTED",
            resource_id=bundle_id,
            entry_count=entry_count,
        )

    def log_closure_complete(self, status: str, entry_count: int) -> None:
        """Log the final status of a run."""
        self._log(
            logging.INFO,
            f"$everything finished: {status}",
            event_type="CLOSURE_COMPLETE",
            status=status,
            entry_count=entry_count,
        )


# Global logger instance
_closure_trace_logger: Optional[ClosureTraceLogger] = None


def get_closure_trace_logger() -> ClosureTraceLogger:
    """Get the global closure trace logger instance."""
    global _closure_trace_logger
    if _closure_trace_logger is None:
        _closure_trace_logger = ClosureTraceLogger()
    return _closure_trace_logger


def initialize_closure_trace_logger(
    session_id: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> str:
    """Initialize the global closure trace logger with session handlers.

    Returns:
        The session ID
    """
    return get_closure_trace_logger().initialize_session(session_id, metadata)
