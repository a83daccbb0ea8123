"""Tests for the category-style logger wrapper."""

from refbridge.utils import LogLevel, LogLine, RefBridgeLogger


class RecordingLogger:
    """Stands in for a structlog bound logger and records every call."""

    def __init__(self, context=None, records=None):
        self.context = dict(context or {})
        self.records = records if records is not None else []

    def bind(self, **kwargs):
        return RecordingLogger({**self.context, **kwargs}, self.records)

    def _record(self, level, message, /, **kwargs):
        self.records.append((level, message, {**self.context, **kwargs}))

    def error(self, message, **kwargs):
        self._record("error", message, **kwargs)

    def warning(self, message, **kwargs):
        self._record("warning", message, **kwargs)

    def info(self, message, **kwargs):
        self._record("info", message, **kwargs)

    def debug(self, message, **kwargs):
        self._record("debug", message, **kwargs)


class TestLogLine:
    """Tests for LogLine."""

    def test_category_splits_into_area_and_action(self):
        line = LogLine("frames:inject", "Injected", LogLevel.INFO, {"frame_id": "F1"})

        assert line.to_dict() == {"area": "frames", "action": "inject", "level": "INFO", "frame_id": "F1"}

    def test_category_without_action(self):
        assert LogLine("browser", "Closed").to_dict() == {"area": "browser", "level": "INFO"}


class TestRefBridgeLogger:
    """Tests for RefBridgeLogger."""

    def test_messages_above_verbosity_are_dropped(self):
        """Should only emit levels at or below the configured verbosity."""
        base = RecordingLogger()
        logger = RefBridgeLogger(base, verbose=0)

        logger.debug("bridge:snapshot", "Snapshot generated")
        logger.info("browser:navigate", "Navigated")
        logger.error("frames:inject", "Injection failed")

        assert [record[0] for record in base.records] == ["error"]

    def test_warn_maps_to_warning(self):
        base = RecordingLogger()
        RefBridgeLogger(base, verbose=1).warn("frames:inject", "Child frame skipped", reason="timeout")

        assert base.records == [
            ("warning", "Child frame skipped", {"area": "frames", "action": "inject", "level": "WARN", "reason": "timeout"})
        ]

    def test_child_binds_role_and_frame(self):
        """Should bind the component, role and frame of a child and carry them on every record."""
        base = RecordingLogger()
        logger = RefBridgeLogger(base, verbose=3)

        child = logger.child(component="bridge", role="admin", frame_id="F1")
        child.debug("bridge:snapshot", "Snapshot generated", element_count=4)

        assert child.scope == {"component": "bridge", "role": "admin", "frame_id": "F1"}
        assert child.verbose == 3
        level, message, context = base.records[0]
        assert (level, message) == ("debug", "Snapshot generated")
        assert context["role"] == "admin"
        assert context["frame_id"] == "F1"
        assert context["element_count"] == 4

    def test_child_skips_unset_scope_and_merges_with_parent(self):
        logger = RefBridgeLogger(RecordingLogger(), verbose=2)

        cdp = logger.child(component="cdp", role="viewer")
        nested = cdp.child(frame_id=None, session="page")

        assert cdp.scope == {"component": "cdp", "role": "viewer"}
        assert nested.scope == {"component": "cdp", "role": "viewer", "session": "page"}
        assert "frame_id" not in nested.logger.context
        assert logger.scope == {}
