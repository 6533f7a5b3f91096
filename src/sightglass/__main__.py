"""CLI entry point for Sightglass.

Usage:
    sightglass analyze <events.jsonl>                  # terminal summary
    sightglass analyze <events.jsonl> --format json    # full JSON report
    sightglass analyze <events.jsonl> --chains         # include decision chains
    sightglass analyze <events.jsonl> --session <id>   # one session only
    sightglass analyze <events.jsonl> --since today    # today|yesterday|ISO date
    sightglass categorize <package> [<package> ...]
    sightglass config

    python -m sightglass analyze events.jsonl   # same
"""

import logging
import sys

from sightglass.cli import cmd_analyze, cmd_categorize, cmd_config
from sightglass.config import load_config

USAGE = (
    "Usage: sightglass <analyze <events.jsonl> [--format terminal|json] [--chains] [--session ID] [--since DATE]"
    "|categorize <name>...|config>\n"
)


def _option(args: list[str], name: str) -> str | None:
    """Value following `name` in args, or None if absent or dangling."""
    if name not in args:
        return None
    position = args.index(name)
    return args[position + 1] if position + 1 < len(args) else None


def _positional(args: list[str], valued: tuple[str, ...]) -> list[str]:
    """Arguments that are neither flags nor the value of a valued flag."""
    result = []
    skip = False
    for arg in args:
        if skip:
            skip = False
            continue
        if arg in valued:
            skip = True
            continue
        if arg.startswith("--"):
            continue
        result.append(arg)
    return result


def main() -> None:
    """Parse command from argv, dispatch to handler, exit with return code."""
    if len(sys.argv) < 2:
        sys.stderr.write(USAGE)
        sys.exit(1)

    arg = sys.argv[1].strip().lower()
    if arg in ("-h", "--help"):
        sys.stderr.write(USAGE)
        sys.exit(0)

    config = load_config()
    logging.basicConfig(level=config.log_level, stream=sys.stderr, format="%(levelname)s %(name)s: %(message)s")

    rest = sys.argv[2:]
    if arg == "analyze":
        valued = ("--format", "--session", "--since")
        paths = _positional(rest, valued)
        if len(paths) != 1:
            sys.stderr.write(USAGE)
            sys.exit(1)
        sys.exit(
            cmd_analyze(
                paths[0],
                fmt=_option(rest, "--format") or "terminal",
                show_chains="--chains" in rest,
                session=_option(rest, "--session"),
                since=_option(rest, "--since"),
            )
        )
    if arg == "categorize":
        sys.exit(cmd_categorize(rest))
    if arg == "config":
        sys.exit(cmd_config())

    sys.stderr.write(f"Unknown command: {arg}. {USAGE}")
    sys.exit(1)


if __name__ == "__main__":
    main()
