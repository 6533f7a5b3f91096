"""Build-vs-buy detection.

Flags file_write events that look like a hand-rolled implementation of
something normally installed as a package (an auth module, an in-memory
cache, a mailer), and summarizes custom builds against installs per category.

Detection is suppressed for any category already covered by an install in
the same event set, so writing `lib/cache.ts` after `npm install redis` is
treated as glue code rather than a replacement.
"""

import logging
import math
import re
from collections.abc import Iterable, Mapping, Sequence

from sightglass.categories import DEFAULT_CATEGORIZER, Categorizer
from sightglass.installs import extract_package_names
from sightglass.models import (
    ACTION_BASH,
    ACTION_FILE_WRITE,
    BuildVsBuyEntry,
    ClassifiedEvent,
    CustomBuildEvent,
    RawEvent,
)

logger = logging.getLogger(__name__)

# WHAT: Domain keywords searched (case-insensitively) in written file content.
DOMAIN_KEYWORDS: dict[str, tuple[str, ...]] = {
    "Authentication": (
        "jwt", "jsonwebtoken", "bcrypt", "hash-password", "hashPassword", "verifyToken", "signToken",
        "auth-middleware", "authMiddleware", "login", "session-token",
    ),
    "Caching": ("cache", "ttl", "lru", "memoize", "invalidate-cache", "cacheKey", "cache-control", "redis-client"),
    "Validation": (
        "validate", "schema", "sanitize", "parse-input", "validateInput", "validateBody", "field-validation",
    ),
    "Feature Flags": ("feature-flag", "featureFlag", "isEnabled", "toggle", "feature-toggle", "flagEnabled"),
    "Job Queue": ("job-queue", "jobQueue", "enqueue", "dequeue", "worker", "processJob", "schedule-job"),
    "Real-time": ("websocket", "ws-server", "socket", "onMessage", "broadcast", "pubsub", "subscribe"),
    "Email": ("send-email", "sendEmail", "smtp", "mailer", "email-template", "transporter"),
    "File Upload": ("upload", "multipart", "file-upload", "handleUpload", "parseFile"),
    "HTTP Client": ("http-client", "httpClient", "fetchWrapper", "apiClient", "request-wrapper"),
    "Observability": (
        "logger", "log-level", "logLevel", "structured-log", "tracing", "metrics", "instrumenting",
    ),
}

_SRC = r"\.(?:ts|js|py)$"

# WHAT: File path patterns that strongly suggest a custom implementation.
# WHY: A file named auth.ts or lib/cache is rarely anything else.
DOMAIN_FILE_PATTERNS: dict[str, tuple[str, ...]] = {
    "Authentication": (r"auth" + _SRC, r"middleware/auth", r"lib/auth", r"utils/auth", r"helpers/auth"),
    "Caching": (r"cache" + _SRC, r"lib/cache", r"utils/cache"),
    "Validation": (r"validator" + _SRC, r"validation" + _SRC, r"lib/validate"),
    "Feature Flags": (r"feature-flag", r"featureFlag", r"flags" + _SRC),
    "Job Queue": (r"queue" + _SRC, r"worker" + _SRC, r"lib/queue"),
    "Real-time": (r"websocket", r"socket" + _SRC, r"ws-server"),
    "Email": (r"mailer" + _SRC, r"email" + _SRC, r"lib/mail"),
    "File Upload": (r"upload" + _SRC, r"lib/upload", r"middleware/upload"),
    "Observability": (r"logger" + _SRC, r"lib/logger", r"utils/logger"),
}

PATH_MATCH_CONFIDENCE = 60
KEYWORD_BASE_CONFIDENCE = 40
KEYWORD_STEP_CONFIDENCE = 10
MAX_CONFIDENCE = 95
MIN_KEYWORD_MATCHES = 2


def _percent(part: int, total: int) -> float:
    """part/total as a percentage with two decimals, halves rounded up (1/32 -> 3.13)."""
    return math.floor(part * 10000 / total + 0.5) / 100


class BuildVsBuyDetector:
    """Detect custom implementations with injectable keyword and path tables."""

    def __init__(
        self,
        categorizer: Categorizer | None = None,
        domain_keywords: Mapping[str, Sequence[str]] | None = None,
        file_patterns: Mapping[str, Sequence[str]] | None = None,
    ):
        self._categorizer = categorizer or DEFAULT_CATEGORIZER
        if domain_keywords is None:
            domain_keywords = DOMAIN_KEYWORDS
        if file_patterns is None:
            file_patterns = DOMAIN_FILE_PATTERNS
        self._keywords = {category: tuple(keywords) for category, keywords in domain_keywords.items()}
        self._patterns = {
            category: tuple(re.compile(p) for p in patterns) for category, patterns in file_patterns.items()
        }

    def installed_categories(self, events: Iterable[RawEvent]) -> set[str]:
        """Categories satisfied by any install command among the events."""
        categories = set()
        for event in events:
            if event.action != ACTION_BASH:
                continue
            for pkg in extract_package_names(event.raw):
                category = self._categorizer.categorize(pkg)
                if category:
                    categories.add(category)
        return categories

    def detect(self, events: Iterable[RawEvent]) -> list[CustomBuildEvent]:
        """Scan file_write events for custom implementations of uncovered categories."""
        events = list(events)
        suppressed = self.installed_categories(events)

        results = []
        for event in events:
            if event.action != ACTION_FILE_WRITE:
                continue
            detections = self._detect_one(event, suppressed)
            results.extend(detections)
        logger.debug(f"Detected {len(results)} custom builds; suppressed categories: {sorted(suppressed)}")
        return results

    def _detect_one(self, event: RawEvent, suppressed: set[str]) -> list[CustomBuildEvent]:
        path = event.raw or ""
        content = (event.result or "").lower()
        detections: dict[str, CustomBuildEvent] = {}

        for category, patterns in self._patterns.items():
            if category in suppressed:
                continue
            if any(pattern.search(path) for pattern in patterns):
                detections[category] = CustomBuildEvent(
                    event=event,
                    category=category,
                    matched_keywords=[path],
                    confidence=PATH_MATCH_CONFIDENCE,
                )

        for category, keywords in self._keywords.items():
            if category in suppressed:
                continue
            matched = [kw for kw in keywords if kw.lower() in content]
            if len(matched) < MIN_KEYWORD_MATCHES:
                continue
            existing = detections.get(category)
            if existing is not None:
                existing.matched_keywords.extend(matched)
                existing.confidence = min(MAX_CONFIDENCE, existing.confidence + KEYWORD_STEP_CONFIDENCE * len(matched))
            else:
                detections[category] = CustomBuildEvent(
                    event=event,
                    category=category,
                    matched_keywords=matched,
                    confidence=min(MAX_CONFIDENCE, KEYWORD_BASE_CONFIDENCE + KEYWORD_STEP_CONFIDENCE * len(matched)),
                )

        return list(detections.values())

    def summarize(
        self,
        custom_builds: Iterable[CustomBuildEvent],
        install_events: Iterable[ClassifiedEvent],
    ) -> list[BuildVsBuyEntry]:
        """Per-category install vs. custom build counts, largest categories first.

        Categories with neither installs nor custom builds are omitted.
        """
        custom_counts: dict[str, int] = {}
        for build in custom_builds:
            custom_counts[build.category] = custom_counts.get(build.category, 0) + 1

        install_counts: dict[str, int] = {}
        for event in install_events:
            if not event.is_install:
                continue
            category = event.category or self._categorizer.categorize(event.package_name)
            if category:
                install_counts[category] = install_counts.get(category, 0) + 1

        summary = []
        for category in self._categorizer.categories():
            installs = install_counts.get(category, 0)
            customs = custom_counts.get(category, 0)
            total = installs + customs
            if total == 0:
                continue
            summary.append(
                BuildVsBuyEntry(
                    category=category,
                    install_count=installs,
                    custom_build_count=customs,
                    custom_build_pct=_percent(customs, total),
                )
            )

        summary.sort(key=lambda entry: entry.total, reverse=True)
        return summary


def detect_custom_implementation(events: Iterable[RawEvent]) -> list[CustomBuildEvent]:
    """Detect custom builds with the built-in keyword and path tables."""
    return BuildVsBuyDetector().detect(events)


def get_build_vs_buy_summary(
    custom_builds: Iterable[CustomBuildEvent],
    install_events: Iterable[ClassifiedEvent],
) -> list[BuildVsBuyEntry]:
    """Summarize custom builds against installs with the built-in taxonomy."""
    return BuildVsBuyDetector().summarize(custom_builds, install_events)
