"""Decision chain reconstruction.

For every install event, walks backward through its session and collects
the contiguous run of actions that plausibly led to it (searches, reads,
failures, user prompts, related install attempts). The run ends at an
unrelated install, an unrelated action, the session start, a silence longer
than the configured gap, or the traversal bound.
"""

import logging
from collections import Counter
from collections.abc import Callable, Iterable

import numpy as np

from sightglass.classifier import is_failure_event, is_search_event, same_package
from sightglass.config import SightglassConfig
from sightglass.models import (
    ACTION_READ,
    ACTION_USER_MESSAGE,
    ChainStats,
    ClassifiedEvent,
    DecisionChain,
    timestamp_ms,
)

logger = logging.getLogger(__name__)

KIND_SEARCH = "search"
KIND_FAILURE = "failure"
KIND_READ = "read"
KIND_USER = "user"
KIND_INSTALL = "install"


def _error_then_search(kinds: list[str]) -> bool:
    if KIND_FAILURE not in kinds:
        return False
    return KIND_SEARCH in kinds[kinds.index(KIND_FAILURE) + 1:]


# WHAT: Chain labels, first matching predicate wins.
CHAIN_TYPE_RULES: list[tuple[str, Callable[[list[str]], bool]]] = [
    ("direct", lambda kinds: not kinds),
    ("error_recovery", _error_then_search),
    ("comparison", lambda kinds: kinds.count(KIND_SEARCH) >= 2 or KIND_INSTALL in kinds),
    ("user_prompted", lambda kinds: KIND_USER in kinds),
    ("search", lambda kinds: KIND_SEARCH in kinds),
    ("context", lambda kinds: all(k == KIND_READ for k in kinds)),
    ("failure", lambda kinds: all(k == KIND_FAILURE for k in kinds)),
]


def label_chain(kinds: list[str]) -> str:
    """Describe a chain by the dominant kinds of its predecessor events."""
    for label, predicate in CHAIN_TYPE_RULES:
        if predicate(kinds):
            return label
    return "mixed"


def _related_install(candidate: ClassifiedEvent, install: ClassifiedEvent) -> bool:
    if same_package(candidate.package_name, install.package_name):
        return True
    return install.category is not None and candidate.category == install.category


def event_kind(candidate: ClassifiedEvent, install: ClassifiedEvent) -> str | None:
    """Causal role of a predecessor event, or None if it breaks the chain."""
    if candidate.is_install:
        if not _related_install(candidate, install):
            return None
        return KIND_FAILURE if is_failure_event(candidate) else KIND_INSTALL
    if is_search_event(candidate):
        return KIND_SEARCH
    if is_failure_event(candidate):
        return KIND_FAILURE
    if candidate.action == ACTION_READ:
        return KIND_READ
    if candidate.action == ACTION_USER_MESSAGE:
        return KIND_USER
    return None


class ChainBuilder:
    """Build decision chains from classifier output."""

    def __init__(self, config: SightglassConfig | None = None):
        config = config or SightglassConfig()
        self._max_gap_ms = config.max_chain_gap_ms
        self._max_events = config.max_chain_events

    def build_chains(self, classified: Iterable[ClassifiedEvent]) -> list[DecisionChain]:
        """One chain per install event, grouped session by session in arrival order."""
        sessions: dict[str, list[ClassifiedEvent]] = {}
        for event in classified:
            sessions.setdefault(event.session_id, []).append(event)

        chains = []
        for events in sessions.values():
            for index, event in enumerate(events):
                if event.is_install:
                    chains.append(self._build_chain(events, index))
        logger.debug(f"Built {len(chains)} decision chains across {len(sessions)} sessions")
        return chains

    def _build_chain(self, session: list[ClassifiedEvent], index: int) -> DecisionChain:
        install = session[index]
        collected: list[tuple[ClassifiedEvent, str]] = []
        later_ms = timestamp_ms(install.timestamp)

        for j in range(index - 1, -1, -1):
            if len(collected) >= self._max_events:
                break
            candidate = session[j]
            candidate_ms = timestamp_ms(candidate.timestamp)
            if candidate_ms is not None and later_ms is not None and later_ms - candidate_ms > self._max_gap_ms:
                break
            kind = event_kind(candidate, install)
            if kind is None:
                break
            collected.append((candidate, kind))
            if candidate_ms is not None:
                later_ms = candidate_ms

        collected.reverse()
        events = tuple(event for event, _ in collected)
        return DecisionChain(
            install_event=install,
            events=events,
            chain_type=label_chain([kind for _, kind in collected]),
            duration_ms=_duration_ms(events, install),
        )


def _duration_ms(events: tuple, install: ClassifiedEvent) -> int:
    if not events:
        return 0
    start = timestamp_ms(events[0].timestamp)
    end = timestamp_ms(install.timestamp)
    if start is None or end is None:
        return 0
    return max(0, end - start)


def get_chain_stats(chains: list[DecisionChain]) -> ChainStats:
    """Aggregate chain length, chain type distribution and median lead time."""
    if not chains:
        return ChainStats()

    lengths = np.array([chain.length for chain in chains], dtype=float)
    durations = [chain.duration_ms for chain in chains if chain.events]
    counts = Counter(chain.chain_type for chain in chains)

    return ChainStats(
        total_chains=len(chains),
        mean_length=round(float(np.mean(lengths)), 2),
        median_length=float(np.median(lengths)),
        chain_types=dict(sorted(counts.items(), key=lambda item: (-item[1], item[0]))),
        median_duration_ms=float(np.median(durations)) if durations else 0.0,
    )


def build_chains(
    classified: Iterable[ClassifiedEvent],
    config: SightglassConfig | None = None,
) -> list[DecisionChain]:
    """Build decision chains with the given (or default) configuration."""
    return ChainBuilder(config).build_chains(classified)
