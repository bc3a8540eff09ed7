"""Session directories and file handlers for closure trace logs.

Every server process (or offline batch) writes into its own directory::

    <LOG_DIR>/sessions/<session id>/
        session.json          who wrote the session and how it was configured
        closure_trace.jsonl   one JSON event per line
        summary.log           human-readable INFO events
"""

import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import LOG_DIR

SESSION_METADATA_FILE = "session.json"
TRACE_LOG_FILE = "closure_trace.jsonl"
SUMMARY_LOG_FILE = "summary.log"

logger = logging.getLogger(__name__)


def get_sessions_dir(log_dir: Path = LOG_DIR) -> Path:
    """Get the sessions directory path, creating it if needed."""
    sessions_dir = log_dir / "sessions"
    sessions_dir.mkdir(parents=True, exist_ok=True)
    return sessions_dir


def create_session_id() -> str:
    """Create a session ID from the current time.

    Returns:
        Session ID in format YYYY-MM-DD_HH-MM-SS
    """
    return datetime.now().strftime("%Y-%m-%d_%H-%M-%S")


def list_sessions(log_dir: Path = LOG_DIR) -> List[Path]:
    """Session directories, oldest first."""
    sessions_dir = log_dir / "sessions"
    if not sessions_dir.exists():
        return []
    return sorted((p for p in sessions_dir.iterdir() if p.is_dir()), key=lambda p: p.name)


def prune_sessions(log_dir: Path = LOG_DIR, keep: int = 20) -> List[Path]:
    """Delete all but the newest ``keep`` session directories.

    Returns:
        The removed directories
    """
    sessions = list_sessions(log_dir)
    removed = sessions[:-keep] if keep > 0 else sessions
    for session_dir in removed:
        shutil.rmtree(session_dir)
        logger.info(f"Removed old log session {session_dir.name}")
    return removed


class SessionManager:
    """Process-wide owner of the current log session.

    The first ``initialize`` call picks the session directory; later calls
    return the same session so every handler writes side by side.
    """

    _instance: Optional["SessionManager"] = None

    def __init__(self):
        self._session_id: Optional[str] = None
        self._session_dir: Optional[Path] = None

    @classmethod
    def get_instance(cls) -> "SessionManager":
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Forget the current session (for testing)."""
        cls._instance = None

    @property
    def initialized(self) -> bool:
        return self._session_dir is not None

    def initialize(
        self,
        session_id: Optional[str] = None,
        log_dir: Path = LOG_DIR,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Create the session directory and its session.json.

        A second process starting within the same second gets a suffixed
        directory instead of sharing one.

        Args:
            session_id: Session ID (generated from the clock if None)
            log_dir: Base log directory
            metadata: Extra fields recorded in session.json

        Returns:
            The session ID
        """
        if self.initialized:
            return self._session_id

        sessions_dir = get_sessions_dir(log_dir)
        base_id = session_id or create_session_id()
        candidate, suffix = base_id, 1
        while (sessions_dir / candidate).exists() and session_id is None:
            suffix += 1
            candidate = f"{base_id}_{suffix}"

        self._session_id = candidate
        self._session_dir = sessions_dir / candidate
        self._session_dir.mkdir(parents=True, exist_ok=True)
        self._write_metadata(metadata or {})
        return self._session_id

    def _write_metadata(self, metadata: Dict[str, Any]) -> None:
        data = {
            "session_id": self._session_id,
            "started_at": datetime.now().isoformat(),
            "pid": os.getpid(),
            **metadata,
        }
        with open(self._session_dir / SESSION_METADATA_FILE, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def session_dir(self) -> Optional[Path]:
        return self._session_dir

    def get_log_path(self, log_name: str) -> Path:
        """Path of a log file inside the current session.

        Raises:
            RuntimeError: If no session has been initialized
        """
        if not self.initialized:
            raise RuntimeError("Session not initialized. Call initialize() first.")
        return self._session_dir / log_name


class SessionFileHandler(logging.FileHandler):
    """File handler writing into the current session directory.

    The file is opened on the first emitted record, so sessions without
    events of a kind do not get empty log files.
    """

    def __init__(self, log_name: str, encoding: str = "utf-8"):
        self.log_name = log_name
        session_manager = SessionManager.get_instance()
        session_manager.initialize()
        super().__init__(
            filename=str(session_manager.get_log_path(log_name)),
            mode="a",
            encoding=encoding,
            delay=True,
        )


class ClosureTraceHandler(SessionFileHandler):
    """JSON lines trace of every closure event."""

    def __init__(self):
        super().__init__(TRACE_LOG_FILE)


class SummaryHandler(SessionFileHandler):
    """Human-readable log of INFO and higher closure events."""

    def __init__(self):
        super().__init__(SUMMARY_LOG_FILE)
