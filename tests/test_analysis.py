"""End-to-end tests for the analysis pipeline."""

import json

from sightglass.analysis import AnalysisReport, analyze, count_alternatives_never_considered
from sightglass.categories import Categorizer
from sightglass.config import SightglassConfig
from sightglass.models import ClassifiedEvent, DiscoveryType, RiskLevel


class TestAnalyzeSampleSession:
    """The shared sample session run through every stage."""

    def test_installs_classified(self, sample_session: list) -> None:
        report = analyze(sample_session)
        assert report.total_events == 6
        zod, jwt = report.install_events
        assert (zod.package_name, zod.classification, zod.confidence) == ("zod", DiscoveryType.REACTIVE_SEARCH, 85)
        assert zod.category == "Validation"
        assert (jwt.package_name, jwt.classification, jwt.confidence) == (
            "jsonwebtoken",
            DiscoveryType.TRAINING_RECALL,
            70,
        )
        assert jwt.category == "Authentication"

    def test_distribution(self, sample_session: list) -> None:
        distribution = analyze(sample_session).classification_distribution
        assert distribution["REACTIVE_SEARCH"] == 1
        assert distribution["TRAINING_RECALL"] == 1
        assert sum(distribution.values()) == 2
        assert set(distribution) == {t.value for t in DiscoveryType}

    def test_alternatives_never_considered(self, sample_session: list) -> None:
        assert analyze(sample_session).alternatives_never_considered == 1

    def test_chains(self, sample_session: list) -> None:
        report = analyze(sample_session)
        zod_chain, jwt_chain = report.chains
        assert zod_chain.chain_type == "error_recovery"
        assert len(zod_chain.events) == 3
        assert zod_chain.duration_ms == 30_000
        assert jwt_chain.chain_type == "direct"
        assert report.chain_stats.total_chains == 2
        assert report.chain_stats.mean_length == 2.5
        assert report.chain_stats.median_duration_ms == 30_000.0

    def test_risk(self, sample_session: list) -> None:
        report = analyze(sample_session)
        scores = [(a.event.package_name, a.score, a.level) for a in report.risk_assessments]
        assert scores == [("zod", 50, RiskLevel.MEDIUM), ("jsonwebtoken", 85, RiskLevel.HIGH)]
        assert report.risk_stats.mean_score == 67.5
        assert report.risk_stats.by_level == {"LOW": 0, "MEDIUM": 1, "HIGH": 1}

    def test_build_vs_buy(self, sample_session: list) -> None:
        report = analyze(sample_session)
        (build,) = report.custom_builds
        assert build.category == "Caching"
        assert build.confidence == 70
        summary = [(e.category, e.install_count, e.custom_build_count, e.custom_build_pct) for e in report.build_vs_buy]
        assert summary == [
            ("Authentication", 1, 0, 0.0),
            ("Caching", 0, 1, 100.0),
            ("Validation", 1, 0, 0.0),
        ]

    def test_report_is_json_serializable(self, sample_session: list) -> None:
        data = analyze(sample_session).to_dict()
        encoded = json.loads(json.dumps(data))
        assert encoded["install_count"] == 2
        assert len(encoded["chains"]) == 2
        assert "chains" not in analyze(sample_session).to_dict(include_chains=False)

    def test_config_is_applied(self, sample_session: list) -> None:
        report = analyze(sample_session, SightglassConfig(max_chain_events=1, top_risk_categories=1))
        assert len(report.chains[0].events) == 1
        assert [c.category for c in report.risk_stats.highest_risk_categories] == ["Authentication"]

    def test_custom_categorizer(self, sample_session: list) -> None:
        report = analyze(sample_session, categorizer=Categorizer({"Schemas": ["zod"]}))
        zod, jwt = report.install_events
        assert zod.category == "Schemas"
        assert jwt.category is None


class TestAnalyzeEdgeCases:
    """Empty input and the never-considered counter."""

    def test_empty_input(self) -> None:
        report = analyze([])
        assert isinstance(report, AnalysisReport)
        assert report.total_events == 0
        assert report.install_events == []
        assert report.chain_stats.total_chains == 0
        assert report.risk_stats.total == 0
        assert report.build_vs_buy == []

    def test_count_alternatives_never_considered(self) -> None:
        events = [
            ClassifiedEvent(is_install=True, classification=DiscoveryType.TRAINING_RECALL),
            ClassifiedEvent(is_install=True, classification=DiscoveryType.TRAINING_RECALL, abandoned=True),
            ClassifiedEvent(is_install=True, classification=DiscoveryType.TRAINING_RECALL, alternatives=("yup",)),
            ClassifiedEvent(is_install=True, classification=DiscoveryType.REACTIVE_SEARCH),
        ]
        assert count_alternatives_never_considered(events) == 1
