"""Sightglass: supply-chain intelligence for AI coding agents.

Analyzes normalized agent action logs to explain how each dependency was
chosen, how risky the choice was, and where the agent hand-rolled code
instead of installing a package.

Public API:
    - RawEvent, ClassifiedEvent, DiscoveryType, PackageManager: Core event model
    - DecisionChain, RiskAssessment, RiskLevel, CustomBuildEvent: Derived records
    - ChainStats, RiskStats, BuildVsBuyEntry: Aggregates
    - SightglassConfig, load_config, save_config: Configuration
    - TOOL_CATEGORIES, Categorizer, categorize_package: Category taxonomy
    - match_install_command, extract_package_names: Install command matching
    - PatternClassifier, classify_session, classify_events: Discovery classification
    - ChainBuilder, build_chains, get_chain_stats: Decision chains
    - RiskScorer, score_risks, get_risk_stats: Risk scoring
    - BuildVsBuyDetector, detect_custom_implementation, get_build_vs_buy_summary: Build vs buy
    - read_events, parse_events, group_by_session: Event stream loading
    - AnalysisReport, analyze: Full pipeline
"""

__version__ = "0.1.0"

from sightglass.analysis import AnalysisReport, analyze
from sightglass.build_vs_buy import BuildVsBuyDetector, detect_custom_implementation, get_build_vs_buy_summary
from sightglass.categories import TOOL_CATEGORIES, Categorizer, categorize_package
from sightglass.chains import ChainBuilder, build_chains, get_chain_stats
from sightglass.classifier import PatternClassifier, classify_events, classify_session
from sightglass.config import SightglassConfig, load_config, save_config
from sightglass.events import group_by_session, parse_events, read_events
from sightglass.installs import extract_package_names, match_install_command
from sightglass.models import (
    BuildVsBuyEntry,
    ChainStats,
    ClassifiedEvent,
    CustomBuildEvent,
    DecisionChain,
    DiscoveryType,
    PackageManager,
    RawEvent,
    RiskAssessment,
    RiskLevel,
    RiskStats,
)
from sightglass.risk import RiskScorer, get_risk_stats, score_risks

__all__ = [
    "AnalysisReport",
    "BuildVsBuyDetector",
    "BuildVsBuyEntry",
    "Categorizer",
    "ChainBuilder",
    "ChainStats",
    "ClassifiedEvent",
    "CustomBuildEvent",
    "DecisionChain",
    "DiscoveryType",
    "PackageManager",
    "PatternClassifier",
    "RawEvent",
    "RiskAssessment",
    "RiskLevel",
    "RiskScorer",
    "RiskStats",
    "SightglassConfig",
    "TOOL_CATEGORIES",
    "analyze",
    "build_chains",
    "categorize_package",
    "classify_events",
    "classify_session",
    "detect_custom_implementation",
    "extract_package_names",
    "get_build_vs_buy_summary",
    "get_chain_stats",
    "get_risk_stats",
    "group_by_session",
    "load_config",
    "match_install_command",
    "parse_events",
    "read_events",
    "save_config",
    "score_risks",
]
