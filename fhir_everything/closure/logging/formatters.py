"""JSON and human-readable log formatters for closure tracing."""

import json
import logging
from datetime import datetime, timezone

# Record attributes copied into JSON log lines when present
TRACE_FIELDS = (
    "event_type", "session_id", "root_reference", "information_model",
    "reference", "resource_type", "resource_id", "depth", "entry_count",
    "failure", "issue_code", "expected", "found", "status", "search_param",
    "match_count", "duration_ms", "error",
)


def _utc_timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class JSONLogFormatter(logging.Formatter):
    """Formatter that outputs structured JSON log lines (JSONL format).

    Each log record is formatted as a single JSON object on one line,
    suitable for machine parsing and analysis tools.
    """

    def __init__(self, include_extra: bool = True):
        """Initialize the JSON formatter.

        Args:
            include_extra: Whether to include extra fields from log records
        """
        super().__init__()
        self.include_extra = include_extra

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": _utc_timestamp(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        if self.include_extra:
            for field in TRACE_FIELDS:
                value = getattr(record, field, None)
                if value is not None:
                    log_data[field] = value

        return json.dumps(log_data, default=str, ensure_ascii=False)


class HumanReadableFormatter(logging.Formatter):
    """One line per closure event, indented by traversal depth.

    A run reads as a tree::

        [12:00:01.120] [Patient/p1] 🔗 REFERENCE_RESOLVED: ...
        [12:00:01.121] [Patient/p1]   🔗 REFERENCE_RESOLVED: ...
    """

    EVENT_SYMBOLS = {
        "CLOSURE_START": "🔄",
        "REFERENCE_RESOLVED": "🔗",
        "REFERENCE_SKIPPED": "⏭️",
        "RESOLUTION_FAILED": "❌",
        "MODEL_MISMATCH": "⚠️",
        "ROOT_NOT_FOUND": "❓",
        "REVERSE_SEARCH": "🔍",
        "BUNDLE_PERSISTED": "💾",
        "CLOSURE_COMPLETE": "✅",
    }

    INDENT = "  "

    def __init__(self, use_symbols: bool = True):
        super().__init__()
        self.use_symbols = use_symbols

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S.%f")[:-3]
        line = f"[{stamp}]"

        root_reference = getattr(record, "root_reference", None)
        if root_reference:
            line += f" [{root_reference}]"

        depth = getattr(record, "depth", None)
        if isinstance(depth, int) and depth > 1:
            line += self.INDENT * (depth - 1)

        event_type = getattr(record, "event_type", None)
        if event_type:
            symbol = self.EVENT_SYMBOLS.get(event_type) if self.use_symbols else None
            line += f" {symbol} {event_type}" if symbol else f" {event_type}"

        line += f": {record.getMessage()}"

        details = [
            f"{label}={getattr(record, attr)}"
            for attr, label in (("depth", "depth"), ("entry_count", "entries"), ("duration_ms", "duration"))
            if getattr(record, attr, None) is not None
        ]
        if details:
            line += f" ({', '.join(details)})"
        return line
