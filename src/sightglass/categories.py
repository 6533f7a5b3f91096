"""Tool category taxonomy and package categorization.

Maps packages to high-level functional categories for aggregate analysis.
The taxonomy is plain configuration data: a Categorizer is built from it
and handed to every stage that needs lookups, so tests can substitute
their own table.
"""

from collections.abc import Mapping, Sequence

# WHAT: Category -> member package names, in priority order.
# WHY: Iteration order is significant; fuzzy matching returns the first
# category (in this order) whose package overlaps the queried name.
TOOL_CATEGORIES: dict[str, tuple[str, ...]] = {
    "CI/CD": ("github-actions", "gitlab-ci", "circleci", "jenkins", "travis-ci", "drone", "buildkite", "woodpecker"),
    "Authentication": (
        "passport", "jsonwebtoken", "bcrypt", "bcryptjs", "jose", "next-auth", "clerk", "auth0",
        "firebase-auth", "supabase-auth", "lucia", "arctic", "oslo", "better-auth", "devise", "authlib",
    ),
    "State Management": (
        "zustand", "redux", "mobx", "jotai", "recoil", "valtio", "xstate", "pinia", "nanostores",
        "effector", "redux-toolkit", "@reduxjs/toolkit",
    ),
    "ORM/Database": (
        "prisma", "drizzle", "drizzle-orm", "sequelize", "typeorm", "mongoose", "knex", "kysely",
        "sqlalchemy", "gorm", "diesel", "sea-orm", "mikro-orm", "objection", "bookshelf", "activerecord",
    ),
    "UI Components": (
        "shadcn-ui", "@shadcn/ui", "material-ui", "@mui/material", "chakra-ui", "@chakra-ui/react",
        "ant-design", "antd", "radix-ui", "@radix-ui/react-dialog", "headless-ui", "@headlessui/react",
        "daisyui", "mantine", "@mantine/core",
    ),
    "CSS/Styling": (
        "tailwindcss", "styled-components", "@emotion/react", "emotion", "sass", "css-modules",
        "vanilla-extract", "linaria", "stitches", "unocss", "windicss",
    ),
    "Testing": (
        "jest", "vitest", "mocha", "pytest", "playwright", "@playwright/test", "cypress",
        "testing-library", "@testing-library/react", "supertest", "rspec", "nock", "msw",
    ),
    "HTTP Client": (
        "axios", "node-fetch", "undici", "got", "ky", "requests", "httpx", "reqwest", "superagent", "ofetch",
    ),
    "Payments": (
        "stripe", "@stripe/stripe-js", "paypal", "square", "braintree", "lemonsqueezy",
        "@lemonsqueezy/lemonsqueezy.js",
    ),
    "Deployment": (
        "vercel", "railway", "netlify", "fly-io", "render", "cloudflare-pages", "wrangler", "docker", "dockerfile",
    ),
    "Observability": (
        "sentry", "@sentry/node", "datadog", "dd-trace", "pino", "winston", "opentelemetry",
        "@opentelemetry/sdk-node", "newrelic", "bunyan", "morgan", "loglevel",
    ),
    "Caching": ("redis", "ioredis", "memcached", "keyv", "node-cache", "lru-cache", "cacheable", "catbox"),
    "Validation": (
        "zod", "yup", "joi", "class-validator", "ajv", "valibot", "typebox", "@sinclair/typebox",
        "superstruct", "io-ts",
    ),
    "API Framework": (
        "express", "fastapi", "hono", "koa", "fastify", "nestjs", "@nestjs/core", "django", "flask",
        "gin", "echo", "fiber", "actix-web", "axum", "chi", "rails", "sinatra",
    ),
    "Real-time": (
        "socket.io", "ws", "pusher", "ably", "livekit", "phoenix-channels", "sockjs", "engine.io", "partykit",
    ),
    "File Upload": ("multer", "formidable", "busboy", "uploadthing", "filepond", "tus", "uppy"),
    "Email": ("nodemailer", "resend", "@sendgrid/mail", "sendgrid", "ses", "postmark", "mailgun", "react-email"),
    "Job Queue": (
        "bullmq", "bull", "celery", "bee-queue", "agenda", "pg-boss", "temporal", "sidekiq", "graphile-worker",
    ),
    "Feature Flags": (
        "launchdarkly", "unleash", "flagsmith", "growthbook", "@growthbook/growthbook", "flipt", "posthog",
    ),
    "Package Manager": ("npm", "yarn", "pnpm", "bun"),
}


def strip_scope(name: str) -> str:
    """Turn '@scope/pkg' into 'pkg'; other names are returned unchanged."""
    if name.startswith("@") and "/" in name:
        return name.split("/", 1)[1]
    return name


class Categorizer:
    """Resolve package names to taxonomy categories.

    Lookup order, first hit wins:
    1. Exact case-insensitive match.
    2. Scope-stripped exact match for '@scope/pkg' names.
    3. Fuzzy: first package (taxonomy order) where either name contains the other.

    The fuzzy step is best-effort and collides on short names (e.g. 'ws');
    ambiguity resolves to the first taxonomy-order match.
    """

    def __init__(self, taxonomy: Mapping[str, Sequence[str]] | None = None):
        self._taxonomy: dict[str, tuple[str, ...]] = {
            category: tuple(packages)
            for category, packages in (TOOL_CATEGORIES if taxonomy is None else taxonomy).items()
        }
        self._index: dict[str, str] = {}
        for category, packages in self._taxonomy.items():
            for pkg in packages:
                self._index.setdefault(pkg.lower(), category)

    def categorize(self, name: str | None) -> str | None:
        """Return the category for a package name, or None if uncategorized."""
        if not name or not name.strip():
            return None
        lowered = name.strip().lower()

        direct = self._index.get(lowered)
        if direct:
            return direct

        if lowered.startswith("@"):
            scopeless = self._index.get(strip_scope(lowered))
            if scopeless:
                return scopeless

        for pkg, category in self._index.items():
            if pkg in lowered or lowered in pkg:
                return category

        return None

    def categories(self) -> list[str]:
        """All category names in taxonomy order."""
        return list(self._taxonomy)

    def packages(self, category: str) -> tuple[str, ...]:
        """Member packages of a category (empty for unknown categories)."""
        return self._taxonomy.get(category, ())


DEFAULT_CATEGORIZER = Categorizer()


def categorize_package(name: str | None) -> str | None:
    """Categorize using the built-in taxonomy."""
    return DEFAULT_CATEGORIZER.categorize(name)
