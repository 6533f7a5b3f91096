"""Risk scoring for install decisions.

The score is a fixed-weight sum of four signals, clamped to 0-100:

- discovery weight: unverified choices (TRAINING_RECALL, UNKNOWN) weigh most
- category sensitivity: authentication and payments outrank styling or tests
- abandonment penalty: the package was removed or replaced later
- no-alternatives penalty: nothing else was compared

Each fired signal is recorded in RiskAssessment.factors.
"""

import logging
from collections.abc import Iterable, Mapping

import numpy as np

from sightglass.config import SightglassConfig
from sightglass.models import (
    CategoryRisk,
    ClassifiedEvent,
    DiscoveryType,
    RiskAssessment,
    RiskLevel,
    RiskStats,
)

logger = logging.getLogger(__name__)

DISCOVERY_WEIGHTS: dict[DiscoveryType, int] = {
    DiscoveryType.TRAINING_RECALL: 40,
    DiscoveryType.UNKNOWN: 40,
    DiscoveryType.CONTEXT_INHERITANCE: 20,
    DiscoveryType.REACTIVE_SEARCH: 20,
    DiscoveryType.PROACTIVE_SEARCH: 5,
    DiscoveryType.USER_DIRECTED: 5,
}

# WHAT: Per-category sensitivity weights.
# WHY: A careless auth or payments dependency has a far larger blast radius
# than a careless CSS utility.
CATEGORY_SENSITIVITY: dict[str, int] = {
    "Authentication": 30,
    "Payments": 30,
    "ORM/Database": 20,
    "File Upload": 20,
    "Validation": 15,
    "API Framework": 15,
    "Email": 15,
    "Real-time": 15,
    "Job Queue": 15,
    "HTTP Client": 10,
    "Caching": 10,
    "Observability": 10,
    "Feature Flags": 10,
    "CI/CD": 10,
    "Deployment": 10,
    "State Management": 5,
    "UI Components": 5,
    "Package Manager": 5,
    "CSS/Styling": 0,
    "Testing": 0,
}
UNCATEGORIZED_SENSITIVITY = 10

ABANDONMENT_PENALTY = 15
NO_ALTERNATIVES_PENALTY = 15

SENSITIVE_THRESHOLD = 20
UNVERIFIED_THRESHOLD = 40

MEDIUM_THRESHOLD = 34
HIGH_THRESHOLD = 67


def risk_level(score: int) -> RiskLevel:
    """Map a 0-100 score onto LOW (<34), MEDIUM (<67) or HIGH."""
    if score >= HIGH_THRESHOLD:
        return RiskLevel.HIGH
    if score >= MEDIUM_THRESHOLD:
        return RiskLevel.MEDIUM
    return RiskLevel.LOW


class RiskScorer:
    """Score install events with injectable weight tables."""

    def __init__(
        self,
        discovery_weights: Mapping[DiscoveryType, int] | None = None,
        category_sensitivity: Mapping[str, int] | None = None,
        config: SightglassConfig | None = None,
    ):
        self._discovery_weights = dict(DISCOVERY_WEIGHTS if discovery_weights is None else discovery_weights)
        self._category_sensitivity = dict(
            CATEGORY_SENSITIVITY if category_sensitivity is None else category_sensitivity
        )
        self._top_categories = (config or SightglassConfig()).top_risk_categories

    def assess(self, event: ClassifiedEvent) -> RiskAssessment:
        """Score a single install event."""
        factors = []

        discovery = self._discovery_weights.get(event.classification, UNVERIFIED_THRESHOLD)
        if discovery >= UNVERIFIED_THRESHOLD:
            factors.append("unverified_discovery")

        if event.category is None:
            sensitivity = UNCATEGORIZED_SENSITIVITY
            factors.append("uncategorized")
        else:
            sensitivity = self._category_sensitivity.get(event.category, UNCATEGORIZED_SENSITIVITY)
            if sensitivity >= SENSITIVE_THRESHOLD:
                factors.append("sensitive_category")

        score = discovery + sensitivity
        if event.abandoned:
            score += ABANDONMENT_PENALTY
            factors.append("abandoned")
        if not event.alternatives:
            score += NO_ALTERNATIVES_PENALTY
            factors.append("no_alternatives")

        score = max(0, min(100, score))
        return RiskAssessment(event=event, score=score, level=risk_level(score), factors=tuple(factors))

    def score_risks(self, classified: Iterable[ClassifiedEvent]) -> list[RiskAssessment]:
        """Assess every install event; non-install events are skipped."""
        assessments = [self.assess(event) for event in classified if event.is_install]
        logger.debug(f"Scored {len(assessments)} install events")
        return assessments

    def get_risk_stats(self, assessments: list[RiskAssessment]) -> RiskStats:
        """Counts per level, mean score, and the categories with the highest mean score."""
        stats = RiskStats(total=len(assessments))
        if not assessments:
            return stats

        for assessment in assessments:
            stats.by_level[assessment.level.value] += 1
        stats.mean_score = round(float(np.mean([a.score for a in assessments])), 2)

        by_category: dict[str, list[int]] = {}
        for assessment in assessments:
            if assessment.event.category:
                by_category.setdefault(assessment.event.category, []).append(assessment.score)

        ranked = [
            CategoryRisk(category=category, mean_score=round(float(np.mean(scores)), 2), count=len(scores))
            for category, scores in by_category.items()
        ]
        ranked.sort(key=lambda c: (-c.mean_score, c.category))
        stats.highest_risk_categories = ranked[: self._top_categories]
        return stats


def score_risks(classified: Iterable[ClassifiedEvent]) -> list[RiskAssessment]:
    """Score install events with the default weights."""
    return RiskScorer().score_risks(classified)


def get_risk_stats(assessments: list[RiskAssessment], config: SightglassConfig | None = None) -> RiskStats:
    """Aggregate risk assessments with the default weights."""
    return RiskScorer(config=config).get_risk_stats(assessments)
