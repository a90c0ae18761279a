"""Evidence normalization and source credibility scoring."""

from __future__ import annotations

from typing import Any
from urllib.parse import urlparse

from claim_tribunal.contracts import Stance

# Named high-trust outlets with fixed credibility
_TRUSTED_DOMAINS: dict[str, float] = {
    "reuters.com": 0.85,
    "apnews.com": 0.85,
    "bbc.com": 0.85,
    "nytimes.com": 0.85,
    "abcnews.go.com": 0.80,
    "pbs.org": 0.80,
}

_INSTITUTIONAL_TLDS = (".gov", ".edu")

INSTITUTIONAL_CREDIBILITY = 0.9
WIKIPEDIA_CREDIBILITY = 0.7
DEFAULT_CREDIBILITY = 0.5

SNIPPET_MAX_LENGTH = 400


def resolve_source_domain(url: str) -> str | None:
    """Hostname with a leading ``www.`` stripped, or None if unparseable."""
    try:
        hostname = urlparse(url).hostname
    except (ValueError, AttributeError):
        return None

    if not hostname:
        return None

    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def _trusted_boost(domain: str) -> float | None:
    # Walk parent domains so edition.bbc.com matches bbc.com
    parts = domain.split(".")
    for i in range(len(parts) - 1):
        boost = _TRUSTED_DOMAINS.get(".".join(parts[i:]))
        if boost is not None:
            return boost
    return None


def resolve_credibility(source_domain: str | None, explicit: float | None = None) -> float:
    """Credibility in [0, 1].

    Precedence: explicit score, named trusted domain, .gov/.edu,
    wikipedia.org, default. Domain rules are skipped without a domain.
    """
    if explicit is not None:
        return min(1.0, max(0.0, float(explicit)))

    if source_domain:
        boost = _trusted_boost(source_domain)
        if boost is not None:
            return boost
        if source_domain.endswith(_INSTITUTIONAL_TLDS):
            return INSTITUTIONAL_CREDIBILITY
        if "wikipedia.org" in source_domain:
            return WIKIPEDIA_CREDIBILITY

    return DEFAULT_CREDIBILITY


def normalize_exhibit(
    raw: dict[str, Any],
    *,
    snippet_max_length: int = SNIPPET_MAX_LENGTH,
) -> dict[str, Any]:
    """Resolve domain, credibility, stance and snippet bounds for one item.

    Returns a new dict; ``id`` and ``side`` pass through untouched and are
    the caller's responsibility. Normalizing an already-normalized record
    returns an equal record.
    """
    item = dict(raw)

    source_domain = item.get("source_domain") or resolve_source_domain(item.get("url", ""))
    item["source_domain"] = source_domain
    item["credibility"] = resolve_credibility(source_domain, item.get("credibility"))
    item["stance"] = item.get("stance") or Stance.NEUTRAL.value
    item["snippet"] = (item.get("snippet") or "")[:snippet_max_length]
    item.setdefault("title", "")
    item.setdefault("summary", "")

    return item
