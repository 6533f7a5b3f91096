"""Package-manager command matching.

Recognizes install, uninstall and registry-lookup commands inside bash
events. In a compound command (`pip install x && npm install y`) the
install that appears first in the command line is reported; when two
patterns match at the same position, the earlier pattern in the list wins.
"""

import re
from dataclasses import dataclass

from sightglass.models import PackageManager

# WHAT: Ordered install patterns, one capture group holding the argument string.
# WHY: Order is the tie-break when two managers match at the same position
# of a command line.
INSTALL_PATTERNS: list[tuple[PackageManager, re.Pattern]] = [
    (PackageManager.NPM, re.compile(r"\bnpm\s+(?:install|i|add)\b(.*)")),
    (PackageManager.YARN, re.compile(r"\byarn\s+(?:global\s+)?add\b(.*)")),
    (PackageManager.PNPM, re.compile(r"\bpnpm\s+(?:add|install|i)\b(.*)")),
    (PackageManager.BUN, re.compile(r"\bbun\s+(?:add|install|i)\b(.*)")),
    (PackageManager.PIP, re.compile(r"\bpip3?\s+install\b(.*)")),
    (PackageManager.CARGO, re.compile(r"\bcargo\s+(?:add|install)\b(.*)")),
    (PackageManager.GO, re.compile(r"\bgo\s+(?:get|install)\b(.*)")),
    (PackageManager.GEM, re.compile(r"\bgem\s+install\b(.*)")),
    (PackageManager.GEM, re.compile(r"\bbundle\s+add\b(.*)")),
]

UNINSTALL_PATTERNS: list[tuple[PackageManager, re.Pattern]] = [
    (PackageManager.NPM, re.compile(r"\bnpm\s+(?:uninstall|remove|rm|un|r)\b(.*)")),
    (PackageManager.YARN, re.compile(r"\byarn\s+(?:global\s+)?remove\b(.*)")),
    (PackageManager.PNPM, re.compile(r"\bpnpm\s+(?:remove|rm|uninstall|un)\b(.*)")),
    (PackageManager.BUN, re.compile(r"\bbun\s+(?:remove|rm)\b(.*)")),
    (PackageManager.PIP, re.compile(r"\bpip3?\s+uninstall\b(.*)")),
    (PackageManager.CARGO, re.compile(r"\bcargo\s+(?:remove|rm|uninstall)\b(.*)")),
    (PackageManager.GEM, re.compile(r"\bgem\s+uninstall\b(.*)")),
    (PackageManager.GEM, re.compile(r"\bbundle\s+remove\b(.*)")),
]

# Registry lookups count as search activity even though they run in bash.
LOOKUP_PATTERNS: list[re.Pattern] = [
    re.compile(r"\bnpm\s+(?:search|s|view|v|info|show)\b"),
    re.compile(r"\byarn\s+(?:info|why)\b"),
    re.compile(r"\bpnpm\s+(?:view|info|search)\b"),
    re.compile(r"\bpip3?\s+(?:search|show|index\s+versions)\b"),
    re.compile(r"\bcargo\s+(?:search|info)\b"),
    re.compile(r"\bgem\s+(?:search|info)\b"),
    re.compile(r"\bgo\s+list\s+-m\b"),
    re.compile(r"\b(?:curl|wget)\b.*\b(?:registry\.npmjs\.org|pypi\.org|crates\.io|rubygems\.org|pkg\.go\.dev)"),
]

# Flags whose following token is a value, not a package.
_VALUE_FLAGS = {
    "-r", "--requirement", "-c", "--constraint", "-e", "--editable", "-i", "--index-url",
    "--extra-index-url", "-t", "--target", "--prefix", "--registry", "--cwd", "--filter",
    "-F", "--features", "--version", "--git", "--path",
}
# `-v` is verbose for npm, pip and cargo but a version for gem.
_MANAGER_VALUE_FLAGS = {PackageManager.GEM: frozenset({"-v"})}

_COMMAND_SEPARATOR_RE = re.compile(r"&&|\|\||;|\||\n")
_PIP_SPEC_RE = re.compile(r"[\[<>=!~;@\s]")
_JS_MANAGERS = {PackageManager.NPM, PackageManager.YARN, PackageManager.PNPM, PackageManager.BUN}


@dataclass(frozen=True)
class InstallMatch:
    """Result of matching one command against the install patterns."""

    package_name: str
    package_manager: PackageManager
    packages: tuple[str, ...] = ()


def normalize_package_name(token: str, manager: PackageManager) -> str:
    """Strip version/extras suffixes from a package argument, keeping any npm scope.

    Examples: 'react@18.2.0' -> 'react', '@types/node@^20' -> '@types/node',
    'fastapi[all]==0.110' -> 'fastapi', 'github.com/gin-gonic/gin@v1.9.1' ->
    'github.com/gin-gonic/gin'.
    """
    token = token.strip().strip("'\"")
    if manager in _JS_MANAGERS:
        at = token.find("@", 1)
        return token[:at] if at > 0 else token
    if manager == PackageManager.PIP:
        return _PIP_SPEC_RE.split(token, maxsplit=1)[0]
    if manager == PackageManager.GEM:
        return token.split(":", 1)[0]
    return token.split("@", 1)[0]


def _is_local_target(token: str) -> bool:
    return token in (".", "..") or token.startswith(("./", "../", "/", "~")) or "://" in token


def _split_arguments(arg_string: str, manager: PackageManager) -> list[str]:
    """Return normalized package names from the argument part of a command."""
    arg_string = _COMMAND_SEPARATOR_RE.split(arg_string, maxsplit=1)[0]
    value_flags = _VALUE_FLAGS | _MANAGER_VALUE_FLAGS.get(manager, frozenset())
    names = []
    skip_next = False
    for token in arg_string.split():
        if skip_next:
            skip_next = False
            continue
        if token.startswith("-"):
            if token in value_flags:
                skip_next = True
            continue
        if _is_local_target(token):
            continue
        name = normalize_package_name(token, manager)
        if name:
            names.append(name)
    return names


def _match(command: str, patterns: list[tuple[PackageManager, re.Pattern]]):
    """Earliest match in the command that names a package; pattern order breaks ties."""
    best = None
    for manager, pattern in patterns:
        for match in pattern.finditer(command):
            names = _split_arguments(match.group(1), manager)
            if names:
                if best is None or match.start() < best[0]:
                    best = (match.start(), manager, names)
                break
    return best[1:] if best else None


def match_install_command(command: str | None) -> InstallMatch | None:
    """Match a shell command against the install patterns.

    Returns None for non-install commands and for bare installs that only
    restore a manifest (`npm install`, `pip install -r requirements.txt`).
    """
    if not command:
        return None
    found = _match(command, INSTALL_PATTERNS)
    if found is None:
        return None
    manager, names = found
    return InstallMatch(package_name=names[0], package_manager=manager, packages=tuple(names))


def match_uninstall_command(command: str | None) -> list[str]:
    """Return the package names removed by an uninstall command (empty if none)."""
    if not command:
        return []
    found = _match(command, UNINSTALL_PATTERNS)
    return found[1] if found else []


def extract_package_names(command: str | None) -> list[str]:
    """All package names installed by a command, in argument order."""
    match = match_install_command(command)
    return list(match.packages) if match else []


def is_lookup_command(command: str | None) -> bool:
    """True if a shell command queries a package registry."""
    if not command:
        return False
    return any(pattern.search(command) for pattern in LOOKUP_PATTERNS)
