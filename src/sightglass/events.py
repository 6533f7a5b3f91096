"""Normalized event stream loading.

Collectors emit one JSON object per line (JSON Lines), each a RawEvent in
dict form. Reading is lenient: malformed lines are skipped and logged so a
single corrupt record never prevents analysis of the rest of the log.
"""

import json
import logging
from collections.abc import Iterable
from datetime import datetime, timedelta, timezone
from pathlib import Path

from sightglass.models import RawEvent, parse_timestamp

logger = logging.getLogger(__name__)


def parse_events(lines: Iterable[str]) -> list[RawEvent]:
    """Parse JSON Lines into RawEvents, skipping blank or malformed lines."""
    events = []
    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            data = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Skipping malformed event on line {number}: {e}")
            continue
        if not isinstance(data, dict):
            logger.warning(f"Skipping non-object event on line {number}")
            continue
        events.append(RawEvent.from_dict(data))
    return events


def read_events(path: str | Path) -> list[RawEvent]:
    """Read a JSONL event file.

    Raises:
        OSError: If the file cannot be opened.
    """
    with open(path, encoding="utf-8", errors="replace") as f:
        return parse_events(f)


def group_by_session(events: Iterable[RawEvent]) -> dict[str, list[RawEvent]]:
    """Partition events by session_id, keeping arrival order within each session."""
    sessions: dict[str, list[RawEvent]] = {}
    for event in events:
        sessions.setdefault(event.session_id, []).append(event)
    return sessions


def filter_since(events: Iterable[RawEvent], since: datetime | None) -> list[RawEvent]:
    """Keep events at or after `since`. Events with unparsable timestamps are kept."""
    events = list(events)
    if since is None:
        return events
    if since.tzinfo is None:
        since = since.replace(tzinfo=timezone.utc)
    kept = []
    for event in events:
        ts = parse_timestamp(event.timestamp)
        if ts is None or ts >= since:
            kept.append(event)
    return kept


def filter_session(events: Iterable[RawEvent], session_id: str | None) -> list[RawEvent]:
    if not session_id:
        return list(events)
    return [event for event in events if event.session_id == session_id]


def parse_since(text: str | None, now: datetime | None = None) -> datetime | None:
    """Parse 'today', 'yesterday', or an ISO date/datetime. Returns None if invalid."""
    if not text:
        return None
    now = now or datetime.now().astimezone()
    value = text.strip().lower()
    midnight = now.replace(hour=0, minute=0, second=0, microsecond=0)
    if value == "today":
        return midnight
    if value == "yesterday":
        return midnight - timedelta(days=1)
    return parse_timestamp(text.strip())
