# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""Lookup tables shared by the filter engine and the URL codec."""

from __future__ import annotations

import re
from typing import Optional

CONTRACT_LADDER = (1, 6, 12, 24, 36)

RATE_TYPES = ("fixed", "variable", "indexed")
SORT_KEYS = ("price", "rating", "contract", "provider", "green")
SORT_ORDERS = ("asc", "desc")

RATE_TYPE_CODES = {
    "fixed": "f",
    "variable": "v",
    "indexed": "i",
}
RATE_TYPE_BY_CODE = {code: name for name, code in RATE_TYPE_CODES.items()}

PROVIDER_SLUGS = {
    "TXU Energy": "txu",
    "Reliant Energy": "reliant",
    "Direct Energy": "direct",
    "Green Mountain Energy": "green-mountain",
    "4Change Energy": "4change",
    "Ambit Energy": "ambit",
    "Champion Energy": "champion",
    "Cirro Energy": "cirro",
    "Express Energy": "express",
    "Frontier Utilities": "frontier",
}
PROVIDER_BY_SLUG = {slug: name for name, slug in PROVIDER_SLUGS.items()}

FEATURE_CODES = {
    "no deposit": "nd",
    "autopay discount": "ap",
    "renewable energy": "re",
    "fixed rate": "fr",
    "no contract": "nc",
    "free nights": "fn",
    "free weekends": "fw",
}
FEATURE_BY_CODE = {
    "nd": "No deposit",
    "ap": "AutoPay discount",
    "re": "Renewable energy",
    "fr": "Fixed rate",
    "nc": "No contract",
    "fn": "Free nights",
    "fw": "Free weekends",
}

_NON_SLUG = re.compile(r"[^a-z0-9]+")
_WORD_START = re.compile(r"\b\w")


def slugify(value: str) -> str:
    """Lowercase, collapse every non-alphanumeric run into a single dash."""
    return _NON_SLUG.sub("-", value.lower()).strip("-")


def _title_from_slug(slug: str) -> str:
    return _WORD_START.sub(lambda match: match.group(0).upper(), slug.replace("-", " "))


def provider_slug(name: str) -> str:
    return PROVIDER_SLUGS.get(name) or slugify(name)


def provider_from_slug(slug: str) -> str:
    slug = slug.strip().lower()
    if not slug:
        return ""
    return PROVIDER_BY_SLUG.get(slug) or _title_from_slug(slug)


def feature_code(feature: str) -> str:
    lowered = feature.strip().lower()
    return FEATURE_CODES.get(lowered) or re.sub(r"\s+", "-", lowered)


def feature_from_code(code: str) -> str:
    code = code.strip().lower()
    if not code:
        return ""
    return FEATURE_BY_CODE.get(code) or _title_from_slug(code)


def ladder_neighbours(length: int) -> tuple[int, ...]:
    """Return ``length`` together with its neighbours on the contract ladder."""
    if length not in CONTRACT_LADDER:
        return (length,)
    index = CONTRACT_LADDER.index(length)
    return CONTRACT_LADDER[max(index - 1, 0):index + 2]


def normalize_rate_type(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    lowered = value.strip().lower()
    if lowered in RATE_TYPES:
        return lowered
    return RATE_TYPE_BY_CODE.get(lowered)


__all__ = [
    "CONTRACT_LADDER",
    "RATE_TYPES",
    "SORT_KEYS",
    "SORT_ORDERS",
    "RATE_TYPE_CODES",
    "RATE_TYPE_BY_CODE",
    "PROVIDER_SLUGS",
    "FEATURE_CODES",
    "slugify",
    "provider_slug",
    "provider_from_slug",
    "feature_code",
    "feature_from_code",
    "ladder_neighbours",
    "normalize_rate_type",
]
