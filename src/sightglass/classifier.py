"""Discovery-type classification of install events.

For each session, detects package installs in bash events and decides how
the agent arrived at the package:

- USER_DIRECTED: the user named the package earlier in the session
- PROACTIVE_SEARCH: search results showed same-category alternatives
- REACTIVE_SEARCH: a failure was followed by a search, then the install
- CONTEXT_INHERITANCE: the package was already in a file the agent read
- TRAINING_RECALL: no observable search or context at all
- UNKNOWN: none of the rules fired

Rules live in DISCOVERY_RULES and are evaluated in list order, first match
wins. Sessions are processed independently and in arrival order; no rule
ever looks at another session's events.
"""

import functools
import logging
import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass, fields
from pathlib import PurePosixPath

from sightglass.categories import DEFAULT_CATEGORIZER, Categorizer, strip_scope
from sightglass.installs import InstallMatch, is_lookup_command, match_install_command, match_uninstall_command
from sightglass.models import (
    ACTION_BASH,
    ACTION_READ,
    ACTION_SEARCH,
    ACTION_USER_MESSAGE,
    ACTION_WEB_FETCH,
    ClassifiedEvent,
    DiscoveryType,
    RawEvent,
)

logger = logging.getLogger(__name__)

SEARCH_ACTIONS = frozenset({ACTION_SEARCH, ACTION_WEB_FETCH})

# WHAT: Output fragments that mark a bash command as failed despite exit code 0.
# WHY: Several collectors drop exit codes; the output text is the only signal left.
ERROR_TEXT_RE = re.compile(
    r"(?i)(?:\berror\b|npm err!|\bexception\b|traceback \(most recent call last\)|\bfailed\b"
    r"|cannot find module|no module named|command not found)"
)

# Phrasings that turn a mention of a package into an instruction to use it.
_DIRECTIVE_RE = re.compile(r"(?i)\b(?:use|using|install|add|switch\s+to|go\s+with|try|prefer|pick|choose)\b")
_DIRECTIVE_REACH = 40

MANIFEST_FILES = frozenset(
    {
        "package.json", "package-lock.json", "yarn.lock", "pnpm-lock.yaml", "bun.lockb",
        "requirements.txt", "pyproject.toml", "pipfile", "pipfile.lock", "poetry.lock", "setup.py", "setup.cfg",
        "cargo.toml", "cargo.lock", "go.mod", "go.sum", "gemfile", "gemfile.lock",
    }
)

UNKNOWN_CONFIDENCE = 20


@functools.lru_cache(maxsize=1024)
def _name_pattern(name: str) -> re.Pattern:
    # Package names contain '-', '.', '/' and '@', so \b is not a usable boundary.
    return re.compile(r"(?<![\w@/.-])" + re.escape(name) + r"(?![\w/-]|\.\w)", re.IGNORECASE)


def find_mention(text: str | None, name: str) -> int:
    """Position of the first whole-name mention of a package in text, or -1."""
    if not text or not name:
        return -1
    match = _name_pattern(name).search(text)
    return match.start() if match else -1


def is_manifest_path(path: str) -> bool:
    base = PurePosixPath(path.replace("\\", "/")).name.lower()
    return base in MANIFEST_FILES or (base.startswith("requirements") and base.endswith(".txt"))


def same_package(a: str | None, b: str | None) -> bool:
    if not a or not b:
        return False
    a, b = a.lower(), b.lower()
    return a == b or strip_scope(a) == strip_scope(b)


def _text_of(event: RawEvent) -> str:
    return event.raw if not event.result else f"{event.raw}\n{event.result}"


def is_search_event(event: RawEvent) -> bool:
    """Search tools, web fetches, and registry lookups run from bash."""
    if event.action in SEARCH_ACTIONS:
        return True
    return event.action == ACTION_BASH and is_lookup_command(event.raw)


def is_failure_event(event: RawEvent) -> bool:
    """Non-zero exit code, or error text in the output of a bash command."""
    if event.exit_code is not None and event.exit_code != 0:
        return True
    return event.action == ACTION_BASH and bool(event.result) and ERROR_TEXT_RE.search(event.result) is not None


@dataclass(frozen=True)
class _Step:
    """Per-event facts computed once per session, addressed by index."""

    event: RawEvent
    install: InstallMatch | None
    category: str | None
    removed: tuple[str, ...]
    is_search: bool
    is_failure: bool
    is_read: bool
    is_user: bool


@dataclass
class InstallContext:
    """Everything a discovery rule may inspect for one install."""

    steps: list[_Step]
    index: int
    window_start: int
    package_name: str
    category: str | None
    search_candidates: list[str]

    @property
    def window(self) -> range:
        return range(self.window_start, self.index)

    @property
    def prefix(self) -> range:
        return range(0, self.index)


def _rule_user_directed(ctx: InstallContext) -> int | None:
    best = None
    for j in ctx.prefix:
        step = ctx.steps[j]
        if not step.is_user:
            continue
        text = step.event.raw or step.event.result or ""
        pos = find_mention(text, ctx.package_name)
        if pos < 0:
            continue
        lead = text[max(0, pos - _DIRECTIVE_REACH):pos]
        confidence = 95 if _DIRECTIVE_RE.search(lead) else 85
        best = max(best or 0, confidence)
    return best


def _rule_proactive_search(ctx: InstallContext) -> int | None:
    if not ctx.search_candidates:
        return None
    return min(95, 70 + 5 * (len(ctx.search_candidates) - 1))


def _rule_reactive_search(ctx: InstallContext) -> int | None:
    failure_seen = False
    confidence = None
    for j in ctx.window:
        step = ctx.steps[j]
        if step.is_failure and not step.is_search:
            failure_seen = True
        elif step.is_search and failure_seen:
            hit = find_mention(_text_of(step.event), ctx.package_name) >= 0
            confidence = max(confidence or 0, 85 if hit else 80)
    return confidence


def _rule_context_inheritance(ctx: InstallContext) -> int | None:
    last_search = -1
    for j in ctx.prefix:
        if ctx.steps[j].is_search:
            last_search = j
    confidence = None
    for j in range(last_search + 1, ctx.index):
        step = ctx.steps[j]
        if not step.is_read or find_mention(_text_of(step.event), ctx.package_name) < 0:
            continue
        confidence = max(confidence or 0, 75 if is_manifest_path(step.event.raw) else 60)
    return confidence


def _rule_training_recall(ctx: InstallContext) -> int | None:
    if any(ctx.steps[j].is_search for j in ctx.window):
        return None
    return 60 if any(ctx.steps[j].is_read for j in ctx.window) else 70


# WHAT: Discovery rules in strict priority order; the first rule returning a
# confidence decides the classification.
# WHY: A user directive outranks any inferred evidence, comparison outranks a
# single reactive lookup, and recall is only concluded when nothing else fired.
DISCOVERY_RULES: list[tuple[DiscoveryType, Callable[[InstallContext], int | None]]] = [
    (DiscoveryType.USER_DIRECTED, _rule_user_directed),
    (DiscoveryType.PROACTIVE_SEARCH, _rule_proactive_search),
    (DiscoveryType.REACTIVE_SEARCH, _rule_reactive_search),
    (DiscoveryType.CONTEXT_INHERITANCE, _rule_context_inheritance),
    (DiscoveryType.TRAINING_RECALL, _rule_training_recall),
]


def to_classified(event: RawEvent, **annotations) -> ClassifiedEvent:
    """Copy a RawEvent's fields into a ClassifiedEvent with extra annotations."""
    base = {f.name: getattr(event, f.name) for f in fields(RawEvent)}
    return ClassifiedEvent(**base, **annotations)


class PatternClassifier:
    """Classify install events session by session."""

    def __init__(
        self,
        categorizer: Categorizer | None = None,
        rules: list[tuple[DiscoveryType, Callable[[InstallContext], int | None]]] | None = None,
    ):
        self._categorizer = categorizer or DEFAULT_CATEGORIZER
        self._rules = list(rules) if rules is not None else list(DISCOVERY_RULES)

    @property
    def categorizer(self) -> Categorizer:
        return self._categorizer

    def classify(self, session_events: Iterable[RawEvent]) -> list[ClassifiedEvent]:
        """Classify one session's events, given in arrival order.

        Returns one ClassifiedEvent per input event, in the same order.
        """
        steps = [self._step(event) for event in session_events]
        results = []
        for index, step in enumerate(steps):
            if step.install is None:
                results.append(to_classified(step.event))
                continue
            results.append(self._classify_install(steps, index))
        return results

    def classify_events(self, events: Iterable[RawEvent]) -> list[ClassifiedEvent]:
        """Classify a mixed stream, keeping each session isolated.

        Sessions keep their arrival order and the output preserves input order.
        """
        events = list(events)
        sessions: dict[str, list[int]] = {}
        for position, event in enumerate(events):
            sessions.setdefault(event.session_id, []).append(position)

        output: list[ClassifiedEvent | None] = [None] * len(events)
        for positions in sessions.values():
            classified = self.classify(events[p] for p in positions)
            for position, item in zip(positions, classified):
                output[position] = item
        return [item for item in output if item is not None]

    def _step(self, event: RawEvent) -> _Step:
        is_bash = event.action == ACTION_BASH
        install = match_install_command(event.raw) if is_bash else None
        return _Step(
            event=event,
            install=install,
            category=self._categorizer.categorize(install.package_name) if install else None,
            removed=tuple(match_uninstall_command(event.raw)) if is_bash else (),
            is_search=is_search_event(event),
            is_failure=is_failure_event(event),
            is_read=event.action == ACTION_READ,
            is_user=event.action == ACTION_USER_MESSAGE,
        )

    def _classify_install(self, steps: list[_Step], index: int) -> ClassifiedEvent:
        step = steps[index]
        install = step.install
        ctx = InstallContext(
            steps=steps,
            index=index,
            window_start=_window_start(steps, index),
            package_name=install.package_name,
            category=step.category,
            search_candidates=[],
        )
        ctx.search_candidates = self._search_candidates(ctx)

        classification, confidence = DiscoveryType.UNKNOWN, UNKNOWN_CONFIDENCE
        for discovery_type, rule in self._rules:
            result = rule(ctx)
            if result is not None:
                classification, confidence = discovery_type, max(0, min(100, int(result)))
                break

        abandoned = _is_abandoned(steps, index)
        alternatives = self._alternatives(ctx)
        logger.debug(
            f"{install.package_name} in session {step.event.session_id}: "
            f"{classification.value} ({confidence}%), abandoned={abandoned}, alternatives={alternatives}"
        )
        return to_classified(
            step.event,
            is_install=True,
            package_name=install.package_name,
            package_manager=install.package_manager,
            category=step.category,
            classification=classification,
            confidence=confidence,
            abandoned=abandoned,
            alternatives=tuple(alternatives),
        )

    def _search_candidates(self, ctx: InstallContext) -> list[str]:
        """Same-category packages seen in window search results, first appearance first."""
        if ctx.category is None:
            return []
        candidates: list[str] = []
        for j in ctx.window:
            step = ctx.steps[j]
            if step.is_search:
                _extend_unique(candidates, self._mentions_in(step.event, ctx.category), ctx.package_name)
        return candidates

    def _mentions_in(self, event: RawEvent, category: str) -> list[str]:
        text = _text_of(event)
        hits = []
        for pkg in self._categorizer.packages(category):
            pos = find_mention(text, pkg)
            if pos >= 0:
                hits.append((pos, pkg))
        return [pkg for _, pkg in sorted(hits)]

    def _alternatives(self, ctx: InstallContext) -> list[str]:
        """Search candidates plus earlier competing installs, in order of appearance."""
        if ctx.category is None:
            return []
        alternatives: list[str] = []
        for j in ctx.prefix:
            step = ctx.steps[j]
            if j >= ctx.window_start and step.is_search:
                _extend_unique(alternatives, self._mentions_in(step.event, ctx.category), ctx.package_name)
            if step.install is not None and step.category == ctx.category:
                _extend_unique(alternatives, [step.install.package_name], ctx.package_name)
        return alternatives


def _extend_unique(target: list[str], names: Iterable[str], chosen: str) -> None:
    for name in names:
        if same_package(name, chosen) or any(same_package(name, existing) for existing in target):
            continue
        target.append(name)


def _window_start(steps: list[_Step], index: int) -> int:
    """Index just after the most recent successful install before `index`."""
    for j in range(index - 1, -1, -1):
        if steps[j].install is not None and not steps[j].is_failure:
            return j + 1
    return 0


def _is_abandoned(steps: list[_Step], index: int) -> bool:
    chosen = steps[index]
    name = chosen.install.package_name
    for later in steps[index + 1:]:
        # A failed uninstall or replacement leaves the package in place.
        if later.is_failure:
            continue
        if any(same_package(name, removed) for removed in later.removed):
            return True
        if (
            later.install is not None
            and chosen.category is not None
            and later.category == chosen.category
            and not same_package(later.install.package_name, name)
        ):
            return True
    return False


_DEFAULT_CLASSIFIER = PatternClassifier()


def classify_session(session_events: Iterable[RawEvent]) -> list[ClassifiedEvent]:
    """Classify a single session with the built-in taxonomy."""
    return _DEFAULT_CLASSIFIER.classify(session_events)


def classify_events(events: Iterable[RawEvent]) -> list[ClassifiedEvent]:
    """Classify a multi-session event stream with the built-in taxonomy."""
    return _DEFAULT_CLASSIFIER.classify_events(events)
