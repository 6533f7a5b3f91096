"""End-to-end analysis of a collected event stream.

Runs classification, chain reconstruction, risk scoring and build-vs-buy
detection over the same events and bundles the results into an
AnalysisReport that reporters and sync clients consume.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from sightglass.build_vs_buy import BuildVsBuyDetector
from sightglass.categories import DEFAULT_CATEGORIZER, Categorizer
from sightglass.chains import ChainBuilder, get_chain_stats
from sightglass.classifier import PatternClassifier
from sightglass.config import SightglassConfig
from sightglass.models import (
    BuildVsBuyEntry,
    ChainStats,
    ClassifiedEvent,
    CustomBuildEvent,
    DecisionChain,
    DiscoveryType,
    RawEvent,
    RiskAssessment,
    RiskStats,
)
from sightglass.risk import RiskScorer

logger = logging.getLogger(__name__)


@dataclass
class AnalysisReport:
    """Everything derived from one batch of events."""

    total_events: int = 0
    install_events: list[ClassifiedEvent] = field(default_factory=list)
    classification_distribution: dict[str, int] = field(
        default_factory=lambda: {t.value: 0 for t in DiscoveryType}
    )
    alternatives_never_considered: int = 0
    chains: list[DecisionChain] = field(default_factory=list)
    chain_stats: ChainStats = field(default_factory=ChainStats)
    risk_assessments: list[RiskAssessment] = field(default_factory=list)
    risk_stats: RiskStats = field(default_factory=RiskStats)
    custom_builds: list[CustomBuildEvent] = field(default_factory=list)
    build_vs_buy: list[BuildVsBuyEntry] = field(default_factory=list)

    def to_dict(self, include_chains: bool = True) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        data = {
            "total_events": self.total_events,
            "install_count": len(self.install_events),
            "install_events": [e.to_dict() for e in self.install_events],
            "classification_distribution": dict(self.classification_distribution),
            "alternatives_never_considered": self.alternatives_never_considered,
            "chain_stats": self.chain_stats.to_dict(),
            "risk_assessments": [a.to_dict() for a in self.risk_assessments],
            "risk_stats": self.risk_stats.to_dict(),
            "custom_builds": [b.to_dict() for b in self.custom_builds],
            "build_vs_buy": [entry.to_dict() for entry in self.build_vs_buy],
        }
        if include_chains:
            data["chains"] = [c.to_dict() for c in self.chains]
        return data


def count_alternatives_never_considered(install_events: Iterable[ClassifiedEvent]) -> int:
    """Installs recalled from training with no alternative ever on the table."""
    return sum(
        1
        for e in install_events
        if not e.abandoned and not e.alternatives and e.classification == DiscoveryType.TRAINING_RECALL
    )


def analyze(
    events: Iterable[RawEvent],
    config: SightglassConfig | None = None,
    categorizer: Categorizer | None = None,
) -> AnalysisReport:
    """Run every pipeline stage over a batch of events.

    Args:
        events: Normalized events, in arrival order per session.
        config: Pipeline settings. Defaults to SightglassConfig().
        categorizer: Taxonomy lookup shared by all stages.

    Returns:
        AnalysisReport; an empty input produces an empty report.
    """
    config = config or SightglassConfig()
    categorizer = categorizer or DEFAULT_CATEGORIZER
    events = list(events)

    classified = PatternClassifier(categorizer).classify_events(events)
    install_events = [e for e in classified if e.is_install]

    distribution = {t.value: 0 for t in DiscoveryType}
    for event in install_events:
        distribution[event.classification.value] += 1

    chains = ChainBuilder(config).build_chains(classified)

    scorer = RiskScorer(config=config)
    assessments = scorer.score_risks(classified)

    detector = BuildVsBuyDetector(categorizer)
    custom_builds = detector.detect(events)

    logger.info(
        f"Analyzed {len(events)} events: {len(install_events)} installs, "
        f"{len(custom_builds)} custom builds"
    )
    return AnalysisReport(
        total_events=len(events),
        install_events=install_events,
        classification_distribution=distribution,
        alternatives_never_considered=count_alternatives_never_considered(install_events),
        chains=chains,
        chain_stats=get_chain_stats(chains),
        risk_assessments=assessments,
        risk_stats=scorer.get_risk_stats(assessments),
        custom_builds=custom_builds,
        build_vs_buy=detector.summarize(custom_builds, install_events),
    )
