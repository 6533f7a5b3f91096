"""Tests for JSONL event loading and filtering."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

import pytest

from sightglass.events import filter_session, filter_since, group_by_session, parse_events, parse_since, read_events
from sightglass.models import RawEvent


class TestParseEvents:
    """Tests for lenient JSON Lines parsing."""

    def test_parses_each_line(self) -> None:
        lines = [
            json.dumps({"id": "1", "session_id": "a", "action": "bash", "raw": "npm install zod"}),
            json.dumps({"id": "2", "session_id": "a", "action": "search", "raw": "zod"}),
        ]
        events = parse_events(lines)
        assert [e.id for e in events] == ["1", "2"]
        assert events[0].raw == "npm install zod"

    def test_skips_blank_and_malformed_lines(self, caplog: pytest.LogCaptureFixture) -> None:
        lines = ["", "{broken", json.dumps(["not", "an", "object"]), json.dumps({"id": "ok"})]
        with caplog.at_level(logging.WARNING, logger="sightglass.events"):
            events = parse_events(lines)
        assert [e.id for e in events] == ["ok"]
        assert "line 2" in caplog.text
        assert "line 3" in caplog.text


class TestReadEvents:
    """Tests for reading event files."""

    def test_reads_file(self, events_file: Path, sample_session: list) -> None:
        assert read_events(events_file) == sample_session

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            read_events(tmp_path / "missing.jsonl")


class TestFilters:
    """Tests for session grouping and time filtering."""

    def test_group_by_session_keeps_order(self, make_event) -> None:
        events = [
            make_event("bash", "a1", seconds=0, session_id="a"),
            make_event("bash", "b1", seconds=1, session_id="b"),
            make_event("bash", "a2", seconds=2, session_id="a"),
        ]
        grouped = group_by_session(events)
        assert list(grouped) == ["a", "b"]
        assert [e.raw for e in grouped["a"]] == ["a1", "a2"]

    def test_filter_session(self, make_event) -> None:
        events = [make_event("bash", "x", session_id="a"), make_event("bash", "y", session_id="b")]
        assert [e.raw for e in filter_session(events, "b")] == ["y"]
        assert filter_session(events, None) == events

    def test_filter_since(self) -> None:
        old = RawEvent(timestamp="2026-02-28T23:59:59+00:00", raw="old")
        new = RawEvent(timestamp="2026-03-01T00:00:00Z", raw="new")
        odd = RawEvent(timestamp="sometime", raw="odd")
        since = datetime(2026, 3, 1, tzinfo=timezone.utc)
        assert [e.raw for e in filter_since([old, new, odd], since)] == ["new", "odd"]

    def test_filter_since_naive_cutoff_is_utc(self) -> None:
        event = RawEvent(timestamp="2026-03-01T10:00:00+00:00")
        assert filter_since([event], datetime(2026, 3, 1, 11, 0)) == []

    def test_filter_since_none_keeps_all(self, sample_session: list) -> None:
        assert filter_since(sample_session, None) == sample_session


class TestParseSince:
    """Tests for --since parsing."""

    NOW = datetime(2026, 3, 5, 15, 30, tzinfo=timezone.utc)

    def test_today_and_yesterday(self) -> None:
        assert parse_since("today", self.NOW) == datetime(2026, 3, 5, tzinfo=timezone.utc)
        assert parse_since("Yesterday", self.NOW) == datetime(2026, 3, 4, tzinfo=timezone.utc)

    def test_iso_date(self) -> None:
        assert parse_since("2026-03-01", self.NOW) == datetime(2026, 3, 1, tzinfo=timezone.utc)

    def test_invalid(self) -> None:
        assert parse_since("last week", self.NOW) is None
        assert parse_since("", self.NOW) is None
        assert parse_since(None) is None
