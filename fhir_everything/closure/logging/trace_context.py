"""Trace context for closure logging.

Fields such as the root reference of the current $everything run, or the
reference being resolved, are kept in a context variable so every log
record emitted inside a scope carries them. Each asyncio task sees its own
stack, so concurrent requests never mix their fields.
"""

import logging
import time
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Generator, Optional, Tuple

_trace_stack: ContextVar[Tuple[Dict[str, Any], ...]] = ContextVar("trace_stack", default=())


def get_current_context() -> Dict[str, Any]:
    """Fields of all open scopes, inner scopes overriding outer ones."""
    merged: Dict[str, Any] = {}
    for frame in _trace_stack.get():
        merged.update(frame)
    return merged


@contextmanager
def trace_scope(**fields: Any) -> Generator[Dict[str, Any], None, None]:
    """Scope whose fields are attached to records logged inside it.

    The yielded dict is the live frame: keys added to it show up on later
    records in the same scope.
    """
    frame = dict(fields)
    token = _trace_stack.set(_trace_stack.get() + (frame,))
    try:
        yield frame
    finally:
        _trace_stack.reset(token)


class TraceContextFilter(logging.Filter):
    """Copies the current trace fields onto each record.

    Fields passed explicitly through ``extra`` win over context fields.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in get_current_context().items():
            if not hasattr(record, key):
                setattr(record, key, value)
        return True


@contextmanager
def closure_trace_context(
    root_reference: str,
    information_model: str,
    logger: Optional[logging.Logger] = None,
) -> Generator[Dict[str, Any], None, None]:
    """Scope of one $everything run.

    Args:
        root_reference: Reference of the resource the operation runs on
        information_model: Requested information model
        logger: When given, CLOSURE_START and CLOSURE_END (with
            duration_ms) are logged to it

    Yields:
        The scope's field dict

    Example:
        with closure_trace_context("Patient/p1", "Fhir4.0", logger):
            logger.info("Resolving")
    """
    started = time.perf_counter()
    with trace_scope(root_reference=root_reference, information_model=information_model) as frame:
        if logger:
            logger.info(
                f"Starting $everything on {root_reference}",
                extra={"event_type": "CLOSURE_START"},
            )
        try:
            yield frame
        finally:
            frame["duration_ms"] = int((time.perf_counter() - started) * 1000)
            if logger:
                logger.info(
                    f"Finished $everything on {root_reference}",
                    extra={"event_type": "CLOSURE_END", "duration_ms": frame["duration_ms"]},
                )


@contextmanager
def resolution_trace_context(reference: str, depth: int) -> Generator[Dict[str, Any], None, None]:
    """Scope of a single reference lookup at ``depth`` hops from the root."""
    with trace_scope(reference=reference, depth=depth) as frame:
        yield frame
