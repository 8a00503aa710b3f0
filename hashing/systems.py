"""Platform definitions and fuzzy platform-name resolution.

Frontends name systems inconsistently ("SNES", "Super Famicom",
"Nintendo - Super Nintendo Entertainment System"). RetroAchievements needs a
single canonical platform and its numeric console ID, so every incoming name
is resolved against the alias table in ``platforms.json``.

Matching runs in four phases and stops at the first hit. Within a phase the
table order decides, so more specific platforms ("game boy advance") are
listed before the ones their names contain ("game boy").
"""

import json
import logging
import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Iterator, Optional

from rapidfuzz.distance import Levenshtein

from .algorithms import HeaderSignature

logger = logging.getLogger(__name__)

UNKNOWN_CATALOG_ID = -1

# Hash methods a platform may declare in platforms.json
HASH_METHODS = {
    "whole_file",
    "external_tool",
    "gamecube_disc",
    "filename_only",
    "byte_swap",
    "header_skip",
    "line_ending_normalized",
}

# Similarity matching is only attempted for short names
SIMILARITY_MAX_LENGTH = 30
SIMILARITY_THRESHOLD = 0.80

SEPARATOR_PATTERN = re.compile(r"[-/&.+ ]")


@dataclass(frozen=True)
class PlatformDefinition:
    """A RetroAchievements platform and the names it goes by."""

    key: str
    catalog_id: int
    aliases: tuple[str, ...]
    hash_method: Optional[str] = None
    header: Optional[HeaderSignature] = None

    @property
    def is_supported(self) -> bool:
        """True if the platform has a defined hashing procedure."""
        return self.hash_method is not None


@dataclass(frozen=True)
class PlatformMatch:
    """A resolved platform and the matching phase that found it."""

    platform: PlatformDefinition
    phase: str  # "exact", "contains", "stripped" or "similarity"


def normalize_name(name: str) -> str:
    """Trim and lower-case a platform name."""
    return name.strip().lower()


def strip_separators(name: str) -> str:
    """Remove separator characters and spaces, e.g. 'pc-engine cd' -> 'pcenginecd'."""
    return SEPARATOR_PATTERN.sub("", name).lower()


def similarity(a: str, b: str) -> float:
    """Levenshtein similarity: 1 - distance / length of the longer string."""
    if not a and not b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


def _parse_header(data: dict | None) -> HeaderSignature | None:
    if not data:
        return None
    magic = data.get("magic")
    return HeaderSignature(
        skip=int(data["skip"]),
        magic=bytes.fromhex(magic) if magic else None,
        size_modulus=data.get("size_modulus"),
    )


def load_platforms(config_path: Path | None = None) -> list[PlatformDefinition]:
    """Load platform definitions from the JSON table.

    Args:
        config_path: Alternate table to read (defaults to platforms.json
            next to this module)

    Returns:
        Platform definitions in table order

    Raises:
        ValueError: If an entry names an unknown hash method
    """
    if config_path is None:
        config_path = Path(__file__).parent / "platforms.json"
    with open(config_path, encoding="utf-8") as f:
        data = json.load(f)

    platforms = []
    for entry in data.get("platforms", []):
        hash_method = entry.get("hash_method")
        if hash_method is not None and hash_method not in HASH_METHODS:
            raise ValueError(
                f"Unknown hash method '{hash_method}' for platform '{entry['key']}'"
            )
        platforms.append(
            PlatformDefinition(
                key=normalize_name(entry["key"]),
                catalog_id=int(entry["catalog_id"]),
                aliases=tuple(normalize_name(a) for a in entry["aliases"]),
                hash_method=hash_method,
                header=_parse_header(entry.get("header")),
            )
        )
    return platforms


class PlatformRegistry:
    """Read-only lookup table of platforms, built once and shared."""

    def __init__(self, platforms: list[PlatformDefinition]):
        self._platforms = tuple(platforms)
        self._by_key = {p.key: p for p in self._platforms}

    def __iter__(self) -> Iterator[PlatformDefinition]:
        return iter(self._platforms)

    def __len__(self) -> int:
        return len(self._platforms)

    def get(self, key: str) -> PlatformDefinition | None:
        """Look up a platform by canonical key."""
        return self._by_key.get(normalize_name(key))

    def catalog_id(self, key: str) -> int:
        """Return the catalog ID for a canonical key, or UNKNOWN_CATALOG_ID."""
        platform = self.get(key)
        return platform.catalog_id if platform else UNKNOWN_CATALOG_ID

    def is_official_name(self, name: str) -> bool:
        return normalize_name(name) in self._by_key

    def supported_names(self) -> list[str]:
        return sorted(self._by_key)

    def exact_alias_match(self, name: str) -> str | None:
        """Return the canonical key whose aliases include ``name`` exactly."""
        if not name or not name.strip():
            return None
        match = self._match_exact(normalize_name(name))
        return match.platform.key if match else None

    def best_match(self, name: str) -> PlatformMatch | None:
        """Find the platform a free-form name refers to.

        Args:
            name: Platform name as given by a frontend or user

        Returns:
            PlatformMatch for the first phase that hits, or None
        """
        if not name or not name.strip():
            return None

        normalized = normalize_name(name)
        return (
            self._match_exact(normalized)
            or self._match_contains(normalized)
            or self._match_stripped(normalized)
            or self._match_similar(normalized)
        )

    def canonical_name(self, name: str) -> str:
        """Return the canonical key for ``name``, or the normalized input if unmatched."""
        match = self.best_match(name)
        if match:
            return match.platform.key
        if not name or not name.strip():
            return name
        logger.warning(
            "No platform match for '%s'. Consider adding it as an alias.", name
        )
        return normalize_name(name)

    def resolve(self, name: str) -> tuple[str, int]:
        """Resolve a platform name to (canonical_key, catalog_id).

        Unmatched names come back normalized with UNKNOWN_CATALOG_ID.
        """
        key = self.canonical_name(name)
        return key, (self.catalog_id(key) if key else UNKNOWN_CATALOG_ID)

    def _match_exact(self, normalized: str) -> PlatformMatch | None:
        for platform in self._platforms:
            if normalized in platform.aliases:
                return PlatformMatch(platform, "exact")
        return None

    def _match_contains(self, normalized: str) -> PlatformMatch | None:
        for platform in self._platforms:
            for alias in platform.aliases:
                if alias in normalized or normalized in alias:
                    return PlatformMatch(platform, "contains")
        return None

    def _match_stripped(self, normalized: str) -> PlatformMatch | None:
        stripped = strip_separators(normalized)
        if not stripped:
            return None
        for platform in self._platforms:
            for alias in platform.aliases:
                clean_alias = strip_separators(alias)
                if clean_alias in stripped or stripped in clean_alias:
                    return PlatformMatch(platform, "stripped")
        return None

    def _match_similar(self, normalized: str) -> PlatformMatch | None:
        stripped = strip_separators(normalized)
        if not stripped or len(stripped) > SIMILARITY_MAX_LENGTH:
            return None
        for platform in self._platforms:
            for alias in platform.aliases:
                clean_alias = strip_separators(alias)
                if len(clean_alias) > SIMILARITY_MAX_LENGTH:
                    continue
                if similarity(stripped, clean_alias) >= SIMILARITY_THRESHOLD:
                    return PlatformMatch(platform, "similarity")
        return None


@lru_cache(maxsize=1)
def get_platform_registry() -> PlatformRegistry:
    """Return the process-wide platform registry."""
    registry = PlatformRegistry(load_platforms())
    logger.debug("Loaded %d platform definitions", len(registry))
    return registry
