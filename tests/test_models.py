"""Tests for the Sightglass data model and timestamp helpers."""

import dataclasses

import pytest

from sightglass.models import (
    BuildVsBuyEntry,
    ClassifiedEvent,
    DecisionChain,
    DiscoveryType,
    PackageManager,
    RawEvent,
    RiskLevel,
    RiskStats,
    normalize_timestamp,
    parse_timestamp,
    timestamp_ms,
)


class TestEnums:
    """Tests for the closed enumerations."""

    def test_six_discovery_types(self) -> None:
        assert {t.value for t in DiscoveryType} == {
            "TRAINING_RECALL",
            "CONTEXT_INHERITANCE",
            "REACTIVE_SEARCH",
            "PROACTIVE_SEARCH",
            "USER_DIRECTED",
            "UNKNOWN",
        }

    def test_package_manager_values(self) -> None:
        assert PackageManager.NPM.value == "npm"
        assert PackageManager.PIP.value == "pip"
        assert PackageManager.GO.value == "go"

    def test_risk_levels(self) -> None:
        assert [level.value for level in RiskLevel] == ["LOW", "MEDIUM", "HIGH"]


class TestRawEvent:
    """Tests for RawEvent construction and serialization."""

    def test_defaults(self) -> None:
        event = RawEvent()
        assert event.id
        assert event.action == "bash"
        assert event.result is None
        assert event.exit_code is None

    def test_is_frozen(self) -> None:
        event = RawEvent(raw="npm install zod")
        with pytest.raises(dataclasses.FrozenInstanceError):
            event.raw = "npm install yup"  # type: ignore[misc]

    def test_key_is_session_and_timestamp(self) -> None:
        event = RawEvent(session_id="s1", timestamp="2026-03-01T12:00:00+00:00")
        assert event.key == ("s1", "2026-03-01T12:00:00+00:00")

    def test_round_trip(self) -> None:
        event = RawEvent(
            id="e1",
            session_id="s1",
            timestamp="2026-03-01T12:00:00+00:00",
            agent="codex",
            action="bash",
            raw="pip install httpx",
            result="Successfully installed httpx",
            exit_code=0,
            cwd="/work",
        )
        assert RawEvent.from_dict(event.to_dict()) == event

    def test_from_dict_accepts_camel_case(self) -> None:
        event = RawEvent.from_dict({"id": "e1", "sessionId": "abc", "exitCode": "2", "action": "bash", "raw": "ls"})
        assert event.session_id == "abc"
        assert event.exit_code == 2

    def test_from_dict_tolerates_garbage(self) -> None:
        event = RawEvent.from_dict({"exit_code": "not-a-number", "result": {"nested": True}})
        assert event.exit_code is None
        assert event.result is None
        assert event.raw == ""

    def test_from_dict_converts_epoch_millis(self) -> None:
        event = RawEvent.from_dict({"timestamp": 1_700_000_000_000})
        assert event.timestamp == "2023-11-14T22:13:20+00:00"


class TestClassifiedEvent:
    """Tests for the classifier's output record."""

    def test_is_a_raw_event(self) -> None:
        event = ClassifiedEvent(session_id="s1", raw="npm install zod", is_install=True, package_name="zod")
        assert isinstance(event, RawEvent)
        assert event.raw_event == RawEvent(
            id=event.id, session_id="s1", timestamp=event.timestamp, raw="npm install zod"
        )

    def test_defaults_are_non_install(self) -> None:
        event = ClassifiedEvent()
        assert event.is_install is False
        assert event.classification == DiscoveryType.UNKNOWN
        assert event.confidence == 0
        assert event.alternatives == ()

    def test_to_dict_serializes_enums(self) -> None:
        event = ClassifiedEvent(
            is_install=True,
            package_name="zustand",
            package_manager=PackageManager.PNPM,
            category="State Management",
            classification=DiscoveryType.PROACTIVE_SEARCH,
            confidence=75,
            alternatives=("redux", "jotai"),
        )
        data = event.to_dict()
        assert data["package_manager"] == "pnpm"
        assert data["classification"] == "PROACTIVE_SEARCH"
        assert data["alternatives"] == ["redux", "jotai"]
        assert data["raw"] == ""


class TestDerivedRecords:
    """Tests for chain and aggregate helpers."""

    def test_chain_length_counts_install(self) -> None:
        install = ClassifiedEvent(is_install=True, package_name="zod")
        chain = DecisionChain(install_event=install, events=(RawEvent(), RawEvent()))
        assert chain.length == 3
        assert chain.to_dict()["length"] == 3

    def test_build_vs_buy_total(self) -> None:
        entry = BuildVsBuyEntry(category="Caching", install_count=2, custom_build_count=1, custom_build_pct=33.33)
        assert entry.total == 3

    def test_risk_stats_levels_start_at_zero(self) -> None:
        assert RiskStats().by_level == {"LOW": 0, "MEDIUM": 0, "HIGH": 0}


class TestTimestamps:
    """Tests for timestamp parsing helpers."""

    def test_parse_zulu_suffix(self) -> None:
        parsed = parse_timestamp("2026-03-01T12:00:00Z")
        assert parsed is not None
        assert parsed.utcoffset().total_seconds() == 0

    def test_naive_is_treated_as_utc(self) -> None:
        assert timestamp_ms("1970-01-01T00:00:01") == 1000

    def test_unparsable_returns_none(self) -> None:
        assert parse_timestamp("yesterday-ish") is None
        assert parse_timestamp("") is None
        assert timestamp_ms("nope") is None

    def test_normalize_passes_strings_through(self) -> None:
        assert normalize_timestamp("2026-03-01T12:00:00Z") == "2026-03-01T12:00:00Z"
        assert normalize_timestamp(None) == ""
