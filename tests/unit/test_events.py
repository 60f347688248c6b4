"""Tests for observability events."""

import logging

import pytest

from weft.telemetry import events


class TestEvents:
    """Tests for attach / detach / emit."""

    def test_handler_receives_matching_events(self):
        received = []
        events.attach("collector", ["weft.test.one"], lambda *args: received.append(args))
        try:
            events.emit("weft.test.one", {"count": 1}, {"source": "test"})
            events.emit("weft.test.other", {"count": 2})
        finally:
            events.detach("collector")
        assert received == [("weft.test.one", {"count": 1}, {"source": "test"})]

    def test_emit_without_handlers(self):
        events.emit("weft.test.nobody", {"count": 1})

    def test_duplicate_handler_id(self):
        events.attach("dup", ["weft.test.one"], lambda *args: None)
        try:
            with pytest.raises(ValueError):
                events.attach("dup", ["weft.test.one"], lambda *args: None)
        finally:
            events.detach("dup")

    def test_detach_unknown(self):
        assert events.detach("never-attached") is False

    def test_list_handlers(self):
        events.attach("lister", ["weft.test.listed"], lambda *args: None)
        try:
            assert "lister" in events.list_handlers("weft.test.listed")
            assert "lister" not in events.list_handlers("weft.test.other")
        finally:
            events.detach("lister")

    def test_failing_handler_is_detached(self, caplog):
        def broken(name, measurements, metadata):
            raise RuntimeError("handler bug")

        events.attach("broken", ["weft.test.fail"], broken)
        with caplog.at_level(logging.ERROR):
            events.emit("weft.test.fail", {})
        assert "broken" not in events.list_handlers()
        assert "Event handler broken failed" in caplog.text
        # Emitting again is harmless
        events.emit("weft.test.fail", {})
