"""Logging package for $everything closure tracing.

Components:
- formatters: JSON and human-readable log formatters
- handlers: Session-based file handlers
- trace_context: Context managers for closure/resolution tracing
- closure_trace_logger: Specialized logger for traversal events
- log_analyzer: Post-run analysis utilities
"""

from .formatters import (
    JSONLogFormatter,
    HumanReadableFormatter,
)
from .handlers import (
    SessionManager,
    SessionFileHandler,
    ClosureTraceHandler,
    SummaryHandler,
    create_session_id,
    get_sessions_dir,
    list_sessions,
    prune_sessions,
)
from .trace_context import (
    TraceContextFilter,
    closure_trace_context,
    resolution_trace_context,
    get_current_context,
    trace_scope,
)
from .log_analyzer import (
    LogAnalyzer,
    RootSummary,
    SessionSummary,
    find_latest_session,
)
from .closure_trace_logger import (
    ClosureTraceLogger,
    get_closure_trace_logger,
    initialize_closure_trace_logger,
)

__all__ = [
    # Formatters
    "JSONLogFormatter",
    "HumanReadableFormatter",
    # Handlers
    "SessionManager",
    "SessionFileHandler",
    "ClosureTraceHandler",
    "SummaryHandler",
    "create_session_id",
    "get_sessions_dir",
    "list_sessions",
    "prune_sessions",
    # Trace context
    "TraceContextFilter",
    "closure_trace_context",
    "resolution_trace_context",
    "get_current_context",
    "trace_scope",
    # Analysis
    "LogAnalyzer",
    "RootSummary",
    "SessionSummary",
    "find_latest_session",
    # Specialized loggers
    "ClosureTraceLogger",
    "get_closure_trace_logger",
    "initialize_closure_trace_logger",
]
