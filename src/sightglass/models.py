"""Core data models for the Sightglass analysis pipeline.

Defines the normalized RawEvent consumed from agent logs, the per-event
ClassifiedEvent produced by the pattern classifier, and the derived records
(DecisionChain, RiskAssessment, CustomBuildEvent) plus their aggregates.
Everything else in Sightglass depends on these types.
"""

import enum
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone


class DiscoveryType(enum.Enum):
    """How an agent arrived at a dependency choice.

    Exactly one value is assigned per install event.
    """

    TRAINING_RECALL = "TRAINING_RECALL"
    CONTEXT_INHERITANCE = "CONTEXT_INHERITANCE"
    REACTIVE_SEARCH = "REACTIVE_SEARCH"
    PROACTIVE_SEARCH = "PROACTIVE_SEARCH"
    USER_DIRECTED = "USER_DIRECTED"
    UNKNOWN = "UNKNOWN"


class PackageManager(enum.Enum):
    """Package managers whose install commands are recognized."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    BUN = "bun"
    PIP = "pip"
    CARGO = "cargo"
    GO = "go"
    GEM = "gem"


class RiskLevel(enum.Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# WHAT: Action names produced by the collectors.
# WHY: Collectors normalize every agent's tool vocabulary onto these.
ACTION_BASH = "bash"
ACTION_FILE_WRITE = "file_write"
ACTION_READ = "read"
ACTION_SEARCH = "search"
ACTION_WEB_FETCH = "web_fetch"
ACTION_USER_MESSAGE = "user_message"

KNOWN_AGENTS = ("claude-code", "codex", "cursor")


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def normalize_timestamp(value) -> str:
    """Coerce an ISO string or epoch milliseconds into an ISO-8601 string.

    Unrecognized values are returned as strings unchanged; callers treat
    unparsable timestamps as unknown rather than failing.
    """
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc).isoformat()
        except (OverflowError, OSError, ValueError):
            return str(value)
    if value is None:
        return ""
    return str(value)


def parse_timestamp(value: str) -> datetime | None:
    """Parse an ISO-8601 timestamp into an aware datetime, or None."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, TypeError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timestamp_ms(value: str) -> int | None:
    """Return epoch milliseconds for an ISO timestamp, or None if unparsable."""
    parsed = parse_timestamp(value)
    if parsed is None:
        return None
    return int(parsed.timestamp() * 1000)


@dataclass(frozen=True)
class RawEvent:
    """A single normalized agent action.

    Owned by the collector; the pipeline only reads it. `raw` holds the
    command for bash events and the file path for file events; `result`
    holds command output or file content.
    """

    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    session_id: str = ""
    timestamp: str = field(default_factory=_now_iso)
    agent: str = "claude-code"
    action: str = ACTION_BASH
    raw: str = ""
    result: str | None = None
    exit_code: int | None = None
    cwd: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """(session_id, timestamp) key that derived records trace back to."""
        return (self.session_id, self.timestamp)

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "session_id": self.session_id,
            "timestamp": self.timestamp,
            "agent": self.agent,
            "action": self.action,
            "raw": self.raw,
            "result": self.result,
            "exit_code": self.exit_code,
            "cwd": self.cwd,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "RawEvent":
        """Deserialize from a dictionary, accepting camelCase collector keys."""
        exit_code = data.get("exit_code", data.get("exitCode"))
        try:
            exit_code = int(exit_code) if exit_code is not None else None
        except (TypeError, ValueError):
            exit_code = None
        result = data.get("result")
        return cls(
            id=str(data.get("id") or uuid.uuid4()),
            session_id=str(data.get("session_id", data.get("sessionId", "")) or ""),
            timestamp=normalize_timestamp(data.get("timestamp")),
            agent=str(data.get("agent") or "claude-code"),
            action=str(data.get("action") or ""),
            raw=str(data.get("raw") or ""),
            result=result if isinstance(result, str) else None,
            exit_code=exit_code,
            cwd=data.get("cwd"),
        )


@dataclass(frozen=True)
class ClassifiedEvent(RawEvent):
    """A RawEvent annotated by the pattern classifier.

    Non-install events are carried through with is_install=False so that
    downstream stages can rebuild each session from the classifier output.
    """

    is_install: bool = False
    package_name: str | None = None
    package_manager: PackageManager | None = None
    category: str | None = None
    classification: DiscoveryType = DiscoveryType.UNKNOWN
    confidence: int = 0
    abandoned: bool = False
    alternatives: tuple[str, ...] = ()

    @property
    def raw_event(self) -> RawEvent:
        """The originating RawEvent without classification fields."""
        return RawEvent(
            id=self.id,
            session_id=self.session_id,
            timestamp=self.timestamp,
            agent=self.agent,
            action=self.action,
            raw=self.raw,
            result=self.result,
            exit_code=self.exit_code,
            cwd=self.cwd,
        )

    def to_dict(self) -> dict:
        data = super().to_dict()
        data.update(
            {
                "is_install": self.is_install,
                "package_name": self.package_name,
                "package_manager": self.package_manager.value if self.package_manager else None,
                "category": self.category,
                "classification": self.classification.value,
                "confidence": self.confidence,
                "abandoned": self.abandoned,
                "alternatives": list(self.alternatives),
            }
        )
        return data


@dataclass(frozen=True)
class DecisionChain:
    """The predecessor actions that causally led to one install.

    `events` excludes the install itself and is in chronological order.
    """

    install_event: ClassifiedEvent
    events: tuple[RawEvent, ...] = ()
    chain_type: str = "direct"
    duration_ms: int = 0

    @property
    def length(self) -> int:
        """Number of actions in the chain, counting the install."""
        return len(self.events) + 1

    def to_dict(self) -> dict:
        return {
            "install_event": self.install_event.to_dict(),
            "events": [e.to_dict() for e in self.events],
            "chain_type": self.chain_type,
            "duration_ms": self.duration_ms,
            "length": self.length,
        }


@dataclass
class ChainStats:
    total_chains: int = 0
    mean_length: float = 0.0
    median_length: float = 0.0
    chain_types: dict[str, int] = field(default_factory=dict)
    median_duration_ms: float = 0.0

    def to_dict(self) -> dict:
        return {
            "total_chains": self.total_chains,
            "mean_length": self.mean_length,
            "median_length": self.median_length,
            "chain_types": dict(self.chain_types),
            "median_duration_ms": self.median_duration_ms,
        }


@dataclass(frozen=True)
class RiskAssessment:
    event: ClassifiedEvent
    score: int
    level: RiskLevel
    factors: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {
            "session_id": self.event.session_id,
            "timestamp": self.event.timestamp,
            "package_name": self.event.package_name,
            "category": self.event.category,
            "classification": self.event.classification.value,
            "score": self.score,
            "level": self.level.value,
            "factors": list(self.factors),
        }


@dataclass
class CategoryRisk:
    category: str
    mean_score: float
    count: int

    def to_dict(self) -> dict:
        return {"category": self.category, "mean_score": self.mean_score, "count": self.count}


@dataclass
class RiskStats:
    total: int = 0
    by_level: dict[str, int] = field(default_factory=lambda: {level.value: 0 for level in RiskLevel})
    mean_score: float = 0.0
    highest_risk_categories: list[CategoryRisk] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "total": self.total,
            "by_level": dict(self.by_level),
            "mean_score": self.mean_score,
            "highest_risk_categories": [c.to_dict() for c in self.highest_risk_categories],
        }


@dataclass
class CustomBuildEvent:
    """A file_write that looks like a hand-rolled version of a package category."""

    event: RawEvent
    category: str
    matched_keywords: list[str] = field(default_factory=list)
    confidence: int = 0

    def to_dict(self) -> dict:
        return {
            "session_id": self.event.session_id,
            "timestamp": self.event.timestamp,
            "path": self.event.raw,
            "category": self.category,
            "matched_keywords": list(self.matched_keywords),
            "confidence": self.confidence,
        }


@dataclass
class BuildVsBuyEntry:
    category: str
    install_count: int
    custom_build_count: int
    custom_build_pct: float

    @property
    def total(self) -> int:
        return self.install_count + self.custom_build_count

    def to_dict(self) -> dict:
        return {
            "category": self.category,
            "install_count": self.install_count,
            "custom_build_count": self.custom_build_count,
            "custom_build_pct": self.custom_build_pct,
        }
