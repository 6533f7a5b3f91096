"""Configuration management for Sightglass.

Handles loading, saving, and resolving the Sightglass data directory.
All configuration has sensible defaults; Sightglass works out of the box
without any config file. User overrides are stored in ~/.sightglass/config.json.
"""

import json
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _default_sightglass_home() -> Path:
    """Return the default Sightglass home directory (~/.sightglass)."""
    return Path.home() / ".sightglass"


def _validate_log_level(value) -> str:
    level = str(value or "").strip().upper()
    return level if level in _LOG_LEVELS else "WARNING"


def _positive_int(value, default: int) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return default
    return number if number > 0 else default


@dataclass
class SightglassConfig:
    """Tunable parameters for the analysis pipeline."""

    sightglass_home: Path = field(default_factory=_default_sightglass_home)

    # WHAT: Largest silence between consecutive events still treated as one chain.
    # WHY: Five minutes of inactivity means the agent moved on to something else.
    max_chain_gap_ms: int = 300_000

    # Upper bound on backward traversal per install.
    max_chain_events: int = 50

    # Number of categories reported in RiskStats.highest_risk_categories.
    top_risk_categories: int = 5

    log_level: str = "WARNING"

    def to_dict(self) -> dict:
        """Serialize to a JSON-compatible dictionary."""
        data = asdict(self)
        data["sightglass_home"] = str(self.sightglass_home)
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "SightglassConfig":
        """Deserialize from a dictionary, with defaults for missing or invalid keys."""
        defaults = cls()
        home = data.get("sightglass_home")
        return cls(
            sightglass_home=Path(home).expanduser() if home else defaults.sightglass_home,
            max_chain_gap_ms=_positive_int(data.get("max_chain_gap_ms"), defaults.max_chain_gap_ms),
            max_chain_events=_positive_int(data.get("max_chain_events"), defaults.max_chain_events),
            top_risk_categories=_positive_int(data.get("top_risk_categories"), defaults.top_risk_categories),
            log_level=_validate_log_level(data.get("log_level", defaults.log_level)),
        )


def get_config_path(config: SightglassConfig | None = None) -> Path:
    """Return the path to the global config file."""
    home = config.sightglass_home if config else _default_sightglass_home()
    return home / "config.json"


def load_config(sightglass_home: Path | None = None) -> SightglassConfig:
    """Load configuration from ~/.sightglass/config.json.

    Returns default config if the file doesn't exist or is invalid.
    SIGHTGLASS_LOG_LEVEL, when set, overrides the stored log level.

    Args:
        sightglass_home: Override the home directory.
                         Useful for testing with tmp directories.
    """
    home = sightglass_home if sightglass_home is not None else _default_sightglass_home()
    config_path = home / "config.json"

    config = SightglassConfig()
    if config_path.exists():
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                config = SightglassConfig.from_dict(data)
        except (json.JSONDecodeError, OSError, UnicodeDecodeError):
            # WHAT: Fall back to defaults on a corrupted or unreadable file.
            # WHY: Analysis must never fail to start due to bad config.
            config = SightglassConfig()

    if sightglass_home is not None:
        config.sightglass_home = sightglass_home

    env_level = os.environ.get("SIGHTGLASS_LOG_LEVEL")
    if env_level:
        config.log_level = _validate_log_level(env_level)
    return config


def save_config(config: SightglassConfig) -> None:
    """Save configuration to <sightglass_home>/config.json.

    Creates the directory if needed. Uses atomic write
    (temp file + rename) for crash safety.
    """
    config.sightglass_home.mkdir(parents=True, exist_ok=True)
    config_path = get_config_path(config)
    tmp_path = config_path.with_suffix(".json.tmp")

    try:
        tmp_path.write_text(json.dumps(config.to_dict(), indent=2), encoding="utf-8")
        tmp_path.replace(config_path)
    except OSError:
        if tmp_path.exists():
            tmp_path.unlink()
        raise
