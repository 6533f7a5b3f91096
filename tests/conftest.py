"""Pytest configuration and shared fixtures for Sightglass tests."""

import json
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest

from sightglass.config import SightglassConfig
from sightglass.models import RawEvent

BASE_TIME = datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
def isolated_home(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point ~ at a temp directory so no test reads a real ~/.sightglass."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("SIGHTGLASS_LOG_LEVEL", raising=False)
    return home


@pytest.fixture
def tmp_sightglass_home(tmp_path: Path) -> Path:
    """A temporary Sightglass home directory."""
    home = tmp_path / ".sightglass"
    home.mkdir()
    return home


@pytest.fixture
def sample_config(tmp_sightglass_home: Path) -> SightglassConfig:
    """SightglassConfig pointing at the tmp home directory."""
    return SightglassConfig(sightglass_home=tmp_sightglass_home)


@pytest.fixture
def make_event():
    """Factory for RawEvents timestamped `seconds` after a fixed base time."""

    def _factory(
        action: str,
        raw: str,
        seconds: float = 0,
        session_id: str = "session-001",
        result: str | None = None,
        exit_code: int | None = None,
    ) -> RawEvent:
        return RawEvent(
            id=f"{session_id}-{seconds}-{action}",
            session_id=session_id,
            timestamp=(BASE_TIME + timedelta(seconds=seconds)).isoformat(),
            agent="claude-code",
            action=action,
            raw=raw,
            result=result,
            exit_code=exit_code,
        )

    return _factory


@pytest.fixture
def sample_session(make_event) -> list:
    """A realistic session: a failing import, a search, two installs, then a custom cache module."""
    return [
        make_event("user_message", "Add request body checks to the API", seconds=0),
        make_event(
            "bash",
            "node server.js",
            seconds=10,
            result="Error: Cannot find module 'zod'",
            exit_code=1,
        ),
        make_event("search", "zod schema for request body", seconds=20, result="zod documentation"),
        make_event("bash", "npm install zod", seconds=30, exit_code=0),
        make_event("bash", "npm install jsonwebtoken", seconds=40, exit_code=0),
        make_event(
            "file_write",
            "src/utils/memo.ts",
            seconds=50,
            result="const cache = new Map(); // ttl entries, memoize results",
        ),
    ]


@pytest.fixture
def events_file(tmp_path: Path, sample_session: list) -> Path:
    """The sample session written as a JSONL event file."""
    path = tmp_path / "events.jsonl"
    path.write_text("\n".join(json.dumps(e.to_dict()) for e in sample_session) + "\n", encoding="utf-8")
    return path
