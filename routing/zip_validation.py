# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""
ZIP code classification and routing to city plan pages.

Each lookup walks ``format -> state -> coverage`` and stops at the first
failing check, so every ZIP ends in exactly one outcome: resolved with a
routing target, or rejected with one of the error codes below.
"""

from __future__ import annotations

import asyncio
import logging
import re
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from catalog.plans import PlanDataError, PlanDataLoader, city_file_slug
from catalog.tdsp import region_name, tdsp_display_name
from catalog.zip_table import ZipMappingEntry, ZipMappingTable
from filtering.url_state import PLAN_PATH_PREFIX

logger = logging.getLogger(__name__)

INVALID_ZIP_FORMAT = "INVALID_ZIP_FORMAT"
NOT_TEXAS = "NOT_TEXAS"
COOPERATIVE = "COOPERATIVE"
NOT_FOUND = "NOT_FOUND"
NOT_DEREGULATED = "NOT_DEREGULATED"

ERROR_MESSAGES = {
    INVALID_ZIP_FORMAT: "ZIP code must be 5 digits",
    NOT_TEXAS: "ZIP code is not in Texas",
    COOPERATIVE: "This area is served by an electric cooperative",
    NOT_FOUND: "ZIP code not found in deregulated areas",
    NOT_DEREGULATED: "This area is not in the deregulated electricity market",
}

TEXAS_ZIP_RANGE = (75000, 79999)

PLAN_COUNT_TIERS: Tuple[Tuple[int, Tuple[str, ...]], ...] = (
    (120, ("houston", "dallas", "austin", "san antonio")),
    (80, ("fort worth", "el paso", "arlington", "corpus christi")),
    (42, ("tyler", "lubbock", "waco", "college station")),
)
DEFAULT_PLAN_COUNT = 25

_ZIP_FORMAT = re.compile(r"^\d{5}$")


def estimate_plan_count(city: str) -> int:
    """Size-tier estimate used when a city's plan file cannot be read."""
    name = city_file_slug(city).replace("-", " ")
    for count, cities in PLAN_COUNT_TIERS:
        if name in cities:
            return count
    return DEFAULT_PLAN_COUNT


def routing_url(city_slug: str) -> str:
    return f"{PLAN_PATH_PREFIX}/{city_slug}/"


@dataclass(frozen=True)
class ZipLookupResult:
    zip_code: str
    error_code: Optional[str] = None
    city_name: Optional[str] = None
    city_slug: Optional[str] = None
    county: Optional[str] = None
    tdsp_name: Optional[str] = None
    tdsp_duns: Optional[str] = None
    tdsp_territory: Optional[str] = None
    redirect_url: Optional[str] = None
    confidence: Optional[int] = None
    plan_count: Optional[int] = None
    suggestions: Tuple[str, ...] = ()
    cooperative: Optional[Dict[str, str]] = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def resolved(self) -> bool:
        return self.error_code is None

    @property
    def message(self) -> Optional[str]:
        return ERROR_MESSAGES.get(self.error_code) if self.error_code else None

    @property
    def is_texas(self) -> bool:
        return self.error_code not in (INVALID_ZIP_FORMAT, NOT_TEXAS)

    def to_json_dict(self) -> Dict[str, Any]:
        if not self.resolved:
            error: Dict[str, Any] = {
                "code": self.error_code,
                "message": self.message,
            }
            if self.suggestions:
                error["suggestions"] = list(self.suggestions)
            if self.cooperative:
                error["cooperative"] = dict(self.cooperative)
            return {
                "success": False,
                "zip_code": self.zip_code,
                "is_texas": self.is_texas,
                "error": error,
                "processed_at": self.processed_at.isoformat(),
            }
        return {
            "success": True,
            "zip_code": self.zip_code,
            "city_name": self.city_name,
            "city_slug": self.city_slug,
            "county": self.county,
            "redirect_url": self.redirect_url,
            "tdsp": {
                "name": self.tdsp_name,
                "duns": self.tdsp_duns,
                "territory": self.tdsp_territory,
            },
            "plan_count": self.plan_count,
            "confidence": self.confidence,
            "processed_at": self.processed_at.isoformat(),
        }


class ZipValidationService:
    def __init__(self, zip_table: ZipMappingTable, plan_loader: Optional[PlanDataLoader] = None):
        self.zip_table = zip_table
        self.plan_loader = plan_loader

    def classify(self, zip_code: Any) -> ZipLookupResult:
        """Run the ZIP through every check without touching plan data."""
        zip_code = str(zip_code or "").strip()

        if not _ZIP_FORMAT.match(zip_code) or zip_code == "00000":
            return ZipLookupResult(zip_code, error_code=INVALID_ZIP_FORMAT)

        low, high = TEXAS_ZIP_RANGE
        if not low <= int(zip_code) <= high:
            return ZipLookupResult(zip_code, error_code=NOT_TEXAS)

        coop = self.zip_table.cooperative(zip_code)
        if coop is not None:
            return ZipLookupResult(
                zip_code,
                error_code=COOPERATIVE,
                suggestions=(f"Contact {coop.name} at {coop.phone}",),
                cooperative={"name": coop.name, "phone": coop.phone, "website": coop.website},
            )

        mapping = self.zip_table.get(zip_code)
        if mapping is None:
            return ZipLookupResult(
                zip_code,
                error_code=NOT_FOUND,
                suggestions=("Check if this area is served by a municipal utility or electric cooperative",),
            )
        if not mapping.is_deregulated:
            return ZipLookupResult(zip_code, error_code=NOT_DEREGULATED)

        return self._resolved(mapping)

    @staticmethod
    def _resolved(mapping: ZipMappingEntry) -> ZipLookupResult:
        return ZipLookupResult(
            mapping.zip_code,
            city_name=mapping.city_name,
            city_slug=mapping.city_slug,
            county=mapping.county_name,
            tdsp_name=tdsp_display_name(mapping.tdsp_territory),
            tdsp_duns=mapping.tdsp_duns,
            tdsp_territory=mapping.tdsp_territory,
            redirect_url=routing_url(mapping.city_slug),
            confidence=mapping.confidence,
        )

    async def plan_count(self, city_slug: str) -> int:
        """
        Number of plans on file for ``city_slug``.

        ZIP mappings key cities as ``tyler-tx`` while plan files are named
        ``tyler.json``; the loader strips the suffix. Any failure here falls
        back to :func:`estimate_plan_count`.
        """
        if self.plan_loader is None:
            return estimate_plan_count(city_slug)
        try:
            return await self.plan_loader.count_plans(city_slug)
        except PlanDataError as exc:
            logger.warning(
                "No plan data for %s (file %s.json): %s; using estimate",
                city_slug, city_file_slug(city_slug), exc,
            )
            return estimate_plan_count(city_slug)

    async def resolve(self, zip_code: Any) -> ZipLookupResult:
        result = self.classify(zip_code)
        if not result.resolved:
            logger.debug("ZIP %s rejected: %s", result.zip_code, result.error_code)
            return result
        return replace(result, plan_count=await self.plan_count(result.city_slug))

    async def deregulated_areas(self) -> Dict[str, Any]:
        groups: Dict[str, List[ZipMappingEntry]] = {}
        for entry in self.zip_table.entries():
            if entry.is_deregulated:
                groups.setdefault(entry.city_slug, []).append(entry)

        slugs = list(groups)
        counts = await asyncio.gather(*(self.plan_count(slug) for slug in slugs))

        cities = []
        for slug, plan_count in zip(slugs, counts):
            primary = groups[slug][0]
            cities.append({
                "name": primary.city_name,
                "slug": slug,
                "region": region_name(primary.market_zone),
                "zip_code_count": len(groups[slug]),
                "plan_count": plan_count,
                "tdsp_territory": tdsp_display_name(primary.tdsp_territory),
                "market_status": "active",
                "priority": primary.priority,
            })
        cities.sort(key=lambda city: (-city["priority"], city["name"]))

        return {
            "total_cities": len(cities),
            "total_zip_codes": len(self.zip_table),
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "cities": cities,
        }


__all__ = [
    "COOPERATIVE",
    "INVALID_ZIP_FORMAT",
    "NOT_DEREGULATED",
    "NOT_FOUND",
    "NOT_TEXAS",
    "ZipLookupResult",
    "ZipValidationService",
    "estimate_plan_count",
    "routing_url",
]
