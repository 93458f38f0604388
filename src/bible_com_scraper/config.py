"""Scraper configuration and supported Bible versions."""

import json
import logging
import re
from dataclasses import dataclass, asdict, fields, replace
from pathlib import Path
from typing import Optional

from .errors import ConfigError

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

BASE_URL = "https://www.bible.com"

# Version abbreviation -> Bible.com version id
BIBLE_VERSION_IDS = {
    # Indonesian
    "TB": 306,  # Alkitab Terjemahan Baru
    "TSI": 320,  # Terjemahan Sederhana Indonesia
    "FAYH": 2727,  # Firman Allah Yang Hidup
    "BIMK": 27,  # Bahasa Indonesia Masa Kini
    "AMD": 199,  # Alkitab Mudah Dibaca
    "PBTB2": 2863,  # Perjanjian Baru Terjemahan Baru 2
    # English
    "KJV": 1,
    "NKJV": 114,
    "MSG": 97,
    "NET": 107,
    "NIV": 111,
    "NLT": 116,
    "AMP": 1588,
    "NASB1995": 100,
    "GNT": 68,
    "ESV": 59,
    "AFV": 4253,
    "CSB": 1713,
    # German
    "HFA": 73,  # Hoffnung Fur Alle
    # Chinese
    "RCUV": 139,
    "RCUVSS": 140,
    "CUNP-神": 46,
    "CUNPSS-神": 48,
    "CUNP-上帝": 414,
    "CUNPSS-上帝": 57,
    # French
    "PDV2017": 133,  # Parole de Vie 2017
    # Dutch
    "HTB": 75,  # Het Boek
    # Japanese
    "聖書新共同訳": 1819,  # Seisho Shinkyoudoyaku
}


# =============================================================================
# Configuration
# =============================================================================

@dataclass(frozen=True)
class ScraperConfig:
    """Runtime settings. Timeouts and delays are in milliseconds."""

    max_concurrent_tabs: int = 4
    page_timeout: int = 30000
    navigation_timeout: int = 10000
    retry_attempts: int = 3
    delay_between_operations: int = 300
    headless: bool = False
    output_directory: str = "./output"
    enable_metrics: bool = True
    pouchdb: bool = False

    def validate(self) -> "ScraperConfig":
        if not 1 <= self.max_concurrent_tabs <= 100:
            raise ConfigError("max_concurrent_tabs must be between 1 and 100")
        if self.page_timeout < 1000:
            raise ConfigError("page_timeout must be at least 1000ms")
        if not 1 <= self.retry_attempts <= 10:
            raise ConfigError("retry_attempts must be between 1 and 10")
        return self

    def merged(self, **overrides) -> "ScraperConfig":
        """Copy with the non-None ``overrides`` applied, validated."""
        known = {f.name for f in fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigError(f"unknown configuration keys: {', '.join(sorted(unknown))}")
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values).validate()

    def to_dict(self) -> dict:
        return asdict(self)


DEFAULT_CONFIG = ScraperConfig()


def _snake_case(key: str) -> str:
    return re.sub(r"(?<!^)(?=[A-Z])", "_", key).lower()


def load_config(path: Optional[str]) -> dict:
    """
    Read configuration overrides from a JSON file.

    Keys may be snake_case or the camelCase of the JSON config files
    (``maxConcurrentTabs``). ``outputFormat`` is accepted and ignored.
    An unreadable file logs a warning and yields no overrides.
    """
    if not path:
        return {}

    try:
        with open(Path(path), "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning("Failed to load configuration file %s: %s", path, e)
        return {}

    if not isinstance(raw, dict):
        logger.warning("Configuration file %s is not a JSON object", path)
        return {}

    known = {f.name for f in fields(ScraperConfig)}
    overrides = {}
    for key, value in raw.items():
        name = _snake_case(key)
        if name in known:
            overrides[name] = value
        elif name != "output_format":
            logger.warning("Ignoring unknown configuration key %r", key)
    return overrides


def validate_version(version: Optional[str]) -> int:
    """Return the Bible.com id for ``version`` or raise ConfigError."""
    if not version or not isinstance(version, str):
        raise ConfigError("Bible version must be a non-empty string")
    if version not in BIBLE_VERSION_IDS:
        available = ", ".join(BIBLE_VERSION_IDS)
        raise ConfigError(f"Unknown Bible version: {version}. Available versions: {available}")
    return BIBLE_VERSION_IDS[version]


def ascii_abbreviation(abbreviation: Optional[str]) -> str:
    """Abbreviation safe for PouchDB ``_id``s (no spaces or CJK characters)."""
    if not abbreviation:
        return ""
    return (
        abbreviation.strip()
        .replace(" ", "")
        .replace("神", "SHEN")
        .replace("上帝", "SHANGDI")
        .replace("聖書新共同訳", "SeishoShinkyoudoyaku")
        .replace("新共同訳", "SeishoShinkyoudoyaku")
        .upper()
    )
