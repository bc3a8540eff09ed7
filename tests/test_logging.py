"""Tests for closure trace logging and log analysis."""

import json
import logging

import pytest

from fhir_everything.closure.everything_service import EverythingService
from fhir_everything.closure.logging import (
    ClosureTraceLogger,
    HumanReadableFormatter,
    JSONLogFormatter,
    LogAnalyzer,
    SessionManager,
    closure_trace_context,
    find_latest_session,
    get_current_context,
    list_sessions,
    prune_sessions,
    resolution_trace_context,
)

from conftest import CountingStore, make_resource, ref


def _record(message="hello", **extra):
    record = logging.LogRecord("test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestFormatters:
    """Tests for JSON and human-readable formatters."""

    def test_json_formatter_fields(self):
        line = JSONLogFormatter().format(
            _record(event_type="REFERENCE_RESOLVED", reference="Practitioner/dr1", depth=2)
        )
        data = json.loads(line)

        assert data["message"] == "hello"
        assert data["level"] == "INFO"
        assert data["event_type"] == "REFERENCE_RESOLVED"
        assert data["reference"] == "Practitioner/dr1"
        assert data["depth"] == 2
        assert data["timestamp"].endswith("Z")

    def test_json_formatter_without_extra(self):
        data = json.loads(JSONLogFormatter(include_extra=False).format(_record(depth=1)))

        assert "depth" not in data

    def test_human_readable(self):
        line = HumanReadableFormatter(use_symbols=False).format(
            _record(event_type="CLOSURE_COMPLETE", root_reference="Patient/p1", entry_count=3)
        )

        assert "[Patient/p1]" in line
        assert "CLOSURE_COMPLETE: hello" in line
        assert "entries=3" in line

    def test_human_readable_indents_by_depth(self):
        formatter = HumanReadableFormatter(use_symbols=False)

        shallow = formatter.format(_record(event_type="REFERENCE_RESOLVED", root_reference="Patient/p1", depth=1))
        deep = formatter.format(_record(event_type="REFERENCE_RESOLVED", root_reference="Patient/p1", depth=3))

        assert "[Patient/p1] REFERENCE_RESOLVED" in shallow
        assert "[Patient/p1]" + " " * 5 + "REFERENCE_RESOLVED" in deep


class TestTraceContext:
    """Tests for trace context managers."""

    def test_package_exports_resolve(self):
        """Test that every exported name exists and the scope helpers are context managers only."""
        from fhir_everything.closure import logging as closure_logging

        for name in closure_logging.__all__:
            assert getattr(closure_logging, name) is not None
        assert "push_context" not in closure_logging.__all__
        assert "format_trace_event" not in closure_logging.__all__

    def test_nested_contexts(self):
        with closure_trace_context("Patient/p1", "Fhir4.0"):
            with resolution_trace_context("Organization/o1", depth=1):
                context = get_current_context()
                assert context["root_reference"] == "Patient/p1"
                assert context["reference"] == "Organization/o1"
            assert "reference" not in get_current_context()

        assert get_current_context() == {}

    def test_context_popped_on_error(self):
        with pytest.raises(RuntimeError):
            with closure_trace_context("Patient/p1", "Fhir4.0"):
                raise RuntimeError("boom")

        assert get_current_context() == {}

    def test_duration_recorded(self):
        with closure_trace_context("Patient/p1", "Fhir4.0") as context:
            pass

        assert context["duration_ms"] >= 0

    def test_durations_only_on_emitted_records(self):
        """Test that run duration is logged on CLOSURE_END and lookups carry none."""
        records = []
        handler = logging.Handler()
        handler.emit = records.append
        logger = logging.getLogger("tests.trace_context_durations")
        logger.addHandler(handler)
        logger.setLevel(logging.INFO)
        try:
            with closure_trace_context("Patient/p1", "Fhir4.0", logger):
                with resolution_trace_context("Organization/o1", depth=1) as lookup:
                    pass
        finally:
            logger.removeHandler(handler)

        assert [r.event_type for r in records] == ["CLOSURE_START", "CLOSURE_END"]
        assert records[-1].duration_ms >= 0
        assert "duration_ms" not in lookup


class TestClosureTraceSession:
    """Tests for session files and LogAnalyzer."""

    @pytest.fixture
    def session_dir(self, tmp_path):
        SessionManager.reset()
        SessionManager.get_instance().initialize("test-session", log_dir=tmp_path)
        yield tmp_path / "sessions" / "test-session"
        SessionManager.reset()

    @pytest.mark.asyncio
    async def test_session_trace_analyzed(self, session_dir, schemas, r4):
        """Test that a traced run can be summarised from its session files."""
        trace_logger = ClosureTraceLogger(name="tests.session_trace")
        trace_logger.initialize_session()
        store = CountingStore([
            make_resource("Patient", "p1", managingOrganization=ref("Organization/org1")),
            make_resource("Organization", "org1"),
            make_resource("Patient", "p2", managingOrganization=ref("Organization/gone")),
        ])
        service = EverythingService(store, schemas, trace_logger=trace_logger)

        await service.run_closure("Patient", "p1", r4)
        await service.run_closure("Patient", "p2", r4)
        for handler in trace_logger.logger.handlers + trace_logger.summary_logger.handlers:
            handler.flush()

        analyzer = LogAnalyzer(session_dir)

        assert analyzer.get_roots() == {"Patient/p1", "Patient/p2"}

        p1 = analyzer.get_root_summary("Patient/p1")
        assert p1.status == "success"
        assert p1.entry_count == 2
        assert p1.resolved_references == ["Organization/org1"]

        p2 = analyzer.get_root_summary("Patient/p2")
        assert p2.status == "unresolved_reference"
        assert len(p2.failures) == 1

        failures = analyzer.get_failures()
        assert [f["event_type"] for f in failures] == ["RESOLUTION_FAILED"]

        report = analyzer.generate_summary_report()
        assert report.root_count == 2
        assert report.start_time is not None
        assert (session_dir / "summary.log").read_text()

        for handler in trace_logger.logger.handlers + trace_logger.summary_logger.handlers:
            handler.close()

    def test_session_metadata(self, tmp_path):
        SessionManager.reset()
        try:
            session_id = SessionManager.get_instance().initialize(
                log_dir=tmp_path, metadata={"traversal": "closure"}
            )
            analyzer = LogAnalyzer(tmp_path / "sessions" / session_id)

            assert analyzer.metadata["traversal"] == "closure"
            assert analyzer.generate_summary_report().metadata["session_id"] == session_id
        finally:
            SessionManager.reset()

    def test_same_second_sessions_do_not_collide(self, tmp_path):
        """Test that a second session started in the same second gets its own directory."""
        SessionManager.reset()
        first = SessionManager.get_instance().initialize(log_dir=tmp_path)
        SessionManager.reset()
        second = SessionManager.get_instance().initialize(log_dir=tmp_path)
        SessionManager.reset()

        assert first != second
        assert len(list_sessions(tmp_path)) == 2

    def test_prune_sessions(self, tmp_path):
        for name in ("2024-01-01_00-00-00", "2024-02-01_00-00-00", "2024-03-01_00-00-00"):
            (tmp_path / "sessions" / name).mkdir(parents=True)

        removed = prune_sessions(tmp_path, keep=1)

        assert [p.name for p in removed] == ["2024-01-01_00-00-00", "2024-02-01_00-00-00"]
        assert [p.name for p in list_sessions(tmp_path)] == ["2024-03-01_00-00-00"]

    def test_find_latest_session(self, tmp_path):
        (tmp_path / "sessions" / "2024-01-01_00-00-00").mkdir(parents=True)
        (tmp_path / "sessions" / "2024-06-01_00-00-00").mkdir(parents=True)

        assert find_latest_session(tmp_path).name == "2024-06-01_00-00-00"
        assert find_latest_session(tmp_path / "empty") is None
