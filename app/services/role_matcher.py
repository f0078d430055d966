from __future__ import annotations

from typing import Iterable

from app.core.config.discovery import DiscoveryConfig, get_discovery_config
from app.schemas.catalog import SimulationEntry


def canonical_phrase(title: str, *, config: DiscoveryConfig | None = None) -> str:
    cfg = config or get_discovery_config()
    lowered = (title or "").strip().lower()
    return cfg.aliases.get(lowered, lowered)


def _ordered(catalog: Iterable[SimulationEntry]) -> list[SimulationEntry]:
    # Stable sort keeps the source order for equal titles.
    return sorted(catalog, key=lambda entry: entry.title)


def match_role(
    title: str,
    catalog: Iterable[SimulationEntry],
    *,
    config: DiscoveryConfig | None = None,
) -> SimulationEntry | None:
    """Resolve a recommended role title to a catalog entry.

    Checks run in priority order and the first hit wins: exact title,
    substring of a title, then the configured keyword rules (rule order
    first, catalog order second). Returns None when nothing matches.
    """
    cfg = config or get_discovery_config()
    phrase = canonical_phrase(title, config=cfg)
    if not phrase:
        return None

    entries = _ordered(catalog)
    titles = [entry.title.lower() for entry in entries]

    for entry, lowered in zip(entries, titles):
        if lowered == phrase:
            return entry

    for entry, lowered in zip(entries, titles):
        if phrase in lowered:
            return entry

    for query_keyword, title_keyword in cfg.keyword_rules:
        if query_keyword not in phrase:
            continue
        for entry, lowered in zip(entries, titles):
            if title_keyword in lowered:
                return entry

    return None
