"""CLI commands for Sightglass: analyze, categorize, config.

Used by __main__.py. Analyze runs the full pipeline over a JSONL event
file and prints a terminal summary or JSON. Categorize resolves package
names against the taxonomy. Config prints the effective configuration.
"""

import json
import sys

from sightglass.analysis import AnalysisReport, analyze
from sightglass.categories import categorize_package
from sightglass.config import get_config_path, load_config
from sightglass.events import filter_session, filter_since, parse_since, read_events

FORMATS = ("terminal", "json")


def format_terminal_report(report: AnalysisReport, show_chains: bool = False) -> str:
    """Render a plain-text summary of an analysis report."""
    lines = [
        "Sightglass analysis",
        f"  events: {report.total_events}",
        f"  installs: {len(report.install_events)}",
        "",
        "Discovery types:",
    ]
    for name, count in report.classification_distribution.items():
        if count:
            lines.append(f"  {name:<20} {count}")
    lines.append(f"  alternatives never considered: {report.alternatives_never_considered}")

    stats = report.risk_stats
    lines += [
        "",
        "Risk:",
        f"  HIGH {stats.by_level['HIGH']}  MEDIUM {stats.by_level['MEDIUM']}  LOW {stats.by_level['LOW']}",
        f"  mean score: {stats.mean_score}",
    ]
    for category in stats.highest_risk_categories:
        lines.append(f"  {category.category:<20} {category.mean_score} ({category.count})")

    for assessment in sorted(report.risk_assessments, key=lambda a: -a.score):
        event = assessment.event
        mark = "x" if event.abandoned else "+"
        lines.append(
            f"  [{mark}] {event.package_name} [{event.classification.value}] {event.confidence}% "
            f"risk {assessment.score} {assessment.level.value}"
        )

    chain_stats = report.chain_stats
    lines += [
        "",
        "Decision chains:",
        f"  total: {chain_stats.total_chains}  mean length: {chain_stats.mean_length}  "
        f"median lead time: {chain_stats.median_duration_ms / 1000:.1f}s",
    ]
    for chain_type, count in chain_stats.chain_types.items():
        lines.append(f"  {chain_type:<20} {count}")

    if show_chains:
        for chain in report.chains:
            lines.append(f"  - {chain.install_event.package_name} ({chain.chain_type}, {chain.duration_ms}ms)")
            for event in chain.events:
                lines.append(f"      {event.timestamp} {event.action}: {event.raw[:80]}")

    if report.build_vs_buy:
        lines += ["", "Build vs buy:"]
        for entry in report.build_vs_buy:
            lines.append(
                f"  {entry.category:<20} installs {entry.install_count}  "
                f"custom {entry.custom_build_count}  ({entry.custom_build_pct}% custom)"
            )

    return "\n".join(lines)


def cmd_analyze(
    path: str,
    fmt: str = "terminal",
    show_chains: bool = False,
    session: str | None = None,
    since: str | None = None,
) -> int:
    """Analyze a JSONL event file and print the report.

    Returns 0 on success, 1 on bad arguments or unreadable input.
    """
    if fmt not in FORMATS:
        print(f"Sightglass analyze: unknown format '{fmt}' (expected {' or '.join(FORMATS)}).", file=sys.stderr)
        return 1
    cutoff = parse_since(since)
    if since and cutoff is None:
        print(f"Sightglass analyze: cannot parse --since '{since}'.", file=sys.stderr)
        return 1

    try:
        config = load_config()
        events = filter_since(filter_session(read_events(path), session), cutoff)
        if not events:
            print("No events found.", file=sys.stderr)
            return 0
        report = analyze(events, config)
    except Exception as e:
        print(f"Sightglass analyze error: {e}", file=sys.stderr)
        return 1

    if fmt == "json":
        print(json.dumps(report.to_dict(include_chains=show_chains), indent=2))
    else:
        print(format_terminal_report(report, show_chains=show_chains))
    return 0


def cmd_categorize(names: list[str]) -> int:
    """Print the category for each package name. Returns 1 if no names given."""
    if not names:
        print("Sightglass categorize: no package names given.", file=sys.stderr)
        return 1
    for name in names:
        print(f"{name}: {categorize_package(name) or 'uncategorized'}")
    return 0


def cmd_config() -> int:
    """Print the effective configuration and where it is read from."""
    try:
        config = load_config()
        print(f"config_path: {get_config_path(config)}")
        print(json.dumps(config.to_dict(), indent=2))
        return 0
    except Exception as e:
        print(f"Sightglass config error: {e}", file=sys.stderr)
        return 1
