"""
Configuration management for the entry index.

The configuration is stored as a TOML file in the diarygraph home
directory. It specifies the private tag vocabulary, the timezone used to
place entries on the calendar, how partial updates are re-derived, and
the plausible timestamp range for visit departures.
"""

import os
import tomllib
from dataclasses import dataclass, field
from datetime import tzinfo
from pathlib import Path
from zoneinfo import ZoneInfoNotFoundError

import tomli_w

from .derivers import DEFAULT_PRIVATE_TAGS
from .types import resolve_timezone
from .visits import MAX_PLAUSIBLE_TS, MIN_PLAUSIBLE_TS


CONFIG_FILENAME = "diarygraph.toml"
CONFIG_VERSION = 1

# How the upsert coordinator feeds derivers:
# partial - only the fields in the update (replacing semantics)
# merged  - the merged entry (additive semantics)
DERIVE_PARTIAL = "partial"
DERIVE_MERGED = "merged"
DERIVATION_MODES = (DERIVE_PARTIAL, DERIVE_MERGED)


def get_home_directory() -> Path:
    """Home directory for config and logs: DIARYGRAPH_HOME or ~/.diarygraph."""
    home = os.environ.get("DIARYGRAPH_HOME")
    if home:
        return Path(home).expanduser()
    return Path.home() / ".diarygraph"


@dataclass
class IndexConfig:
    """Complete index configuration."""
    path: Path = field(default_factory=get_home_directory)
    version: int = CONFIG_VERSION
    private_tags: list[str] = field(default_factory=lambda: sorted(DEFAULT_PRIVATE_TAGS))
    timezone: str = "UTC"
    derive_from: str = DERIVE_PARTIAL
    min_timestamp: int = MIN_PLAUSIBLE_TS
    max_timestamp: int = MAX_PLAUSIBLE_TS

    def __post_init__(self):
        if self.derive_from not in DERIVATION_MODES:
            raise ValueError(
                f"derive_from must be one of {', '.join(DERIVATION_MODES)}: {self.derive_from!r}"
            )
        if self.min_timestamp > self.max_timestamp:
            raise ValueError("min_timestamp must not exceed max_timestamp")

    @property
    def config_path(self) -> Path:
        """Path to the TOML config file."""
        return self.path / CONFIG_FILENAME

    def exists(self) -> bool:
        """Check if config file exists."""
        return self.config_path.exists()

    @property
    def tzinfo(self) -> tzinfo:
        return resolve_timezone(self.timezone)


def load_config(home: Path) -> IndexConfig:
    """
    Load configuration from a home directory.

    Raises:
        FileNotFoundError: If config doesn't exist
        ValueError: If config is invalid
    """
    config_path = home / CONFIG_FILENAME

    if not config_path.exists():
        raise FileNotFoundError(f"Config not found: {config_path}")

    with open(config_path, "rb") as f:
        data = tomllib.load(f)

    index = data.get("index", {})
    version = index.get("version", 1)
    if version > CONFIG_VERSION:
        raise ValueError(f"Config version {version} is newer than supported ({CONFIG_VERSION})")

    plausibility = data.get("plausibility", {})
    config = IndexConfig(
        path=home,
        version=version,
        private_tags=list(index.get("private_tags", sorted(DEFAULT_PRIVATE_TAGS))),
        timezone=index.get("timezone", "UTC"),
        derive_from=index.get("derive_from", DERIVE_PARTIAL),
        min_timestamp=int(plausibility.get("min_timestamp", MIN_PLAUSIBLE_TS)),
        max_timestamp=int(plausibility.get("max_timestamp", MAX_PLAUSIBLE_TS)),
    )
    try:
        config.tzinfo
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ValueError(f"Unknown timezone in config: {config.timezone!r}") from e
    return config


def save_config(config: IndexConfig) -> None:
    """
    Save configuration to the home directory.

    Creates the directory if it doesn't exist.
    """
    config.path.mkdir(parents=True, exist_ok=True)

    data = {
        "index": {
            "version": config.version,
            "private_tags": list(config.private_tags),
            "timezone": config.timezone,
            "derive_from": config.derive_from,
        },
        "plausibility": {
            "min_timestamp": config.min_timestamp,
            "max_timestamp": config.max_timestamp,
        },
    }

    with open(config.config_path, "wb") as f:
        tomli_w.dump(data, f)


def load_or_create_config(home: Path) -> IndexConfig:
    """
    Load existing config or create a new one with defaults.

    This is the main entry point for config management.
    """
    config_path = home / CONFIG_FILENAME

    if config_path.exists():
        return load_config(home)
    else:
        config = IndexConfig(path=home)
        save_config(config)
        return config
