# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""Per-city plan files: one JSON document per city under the data directory."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from aiofile import async_open

from filtering.codes import normalize_rate_type
from filtering.models import InvalidPlanRecord, PlanRecord

logger = logging.getLogger(__name__)

DEFAULT_DATA_DIR = "data/plans"
CITY_SLUG_SUFFIX = "-tx"


class PlanDataError(RuntimeError):
    """Raised when a city's plan file exists but cannot be read or decoded."""


class CityDataMissing(PlanDataError):
    """Raised when there is no plan file for the requested city."""


def city_file_slug(city_slug: str) -> str:
    """
    Map a routing slug (``tyler-tx``) to the plan file name stem (``tyler``).

    ZIP mappings and page URLs carry the state suffix, plan files do not.
    """
    slug = (city_slug or "").strip().lower()
    if slug.endswith(CITY_SLUG_SUFFIX):
        slug = slug[: -len(CITY_SLUG_SUFFIX)]
    return slug


def _number(value: Any, default: float = 0.0) -> float:
    if value in (None, ""):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def _section(raw: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name)
    return value if isinstance(value, dict) else {}


def _feature_tags(features: Dict[str, Any]) -> Tuple[str, ...]:
    tags = [str(tag) for tag in features.get("tags") or [] if tag]
    deposit = features.get("deposit")
    if isinstance(deposit, dict) and deposit.get("required") is False and "No deposit" not in tags:
        tags.append("No deposit")
    if features.get("freeNights") and "Free nights" not in tags:
        tags.append("Free nights")
    if features.get("freeWeekends") and "Free weekends" not in tags:
        tags.append("Free weekends")
    return tuple(tags)


def plan_from_raw(raw: Dict[str, Any]) -> PlanRecord:
    """Convert one plan entry of a city file into a :class:`PlanRecord`."""
    provider = raw.get("provider")
    if isinstance(provider, dict):
        provider_name = provider.get("name") or ""
        provider_rating = _number(provider.get("rating"), 3.0)
    else:
        provider_name = str(provider or "")
        provider_rating = _number(raw.get("providerRating"), 3.0)

    pricing = _section(raw, "pricing")
    contract = _section(raw, "contract")
    features = _section(raw, "features")
    cancellation = _section(features, "cancellation")

    rate_type = normalize_rate_type(contract.get("type") or raw.get("rateType")) or "fixed"
    length = contract.get("length", raw.get("term"))
    try:
        contract_length = int(length) if length is not None else 12
    except (TypeError, ValueError) as exc:
        raise InvalidPlanRecord(f"plan {raw.get('id')}: contract length {length!r} is not an integer") from exc

    promotions = raw.get("promotions") or []
    if isinstance(promotions, str):
        promotions = [promotions]

    return PlanRecord(
        id=str(raw["id"]),
        plan_name=str(raw.get("name") or raw.get("planName") or raw["id"]),
        provider_name=provider_name,
        provider_rating=provider_rating,
        base_rate=_number(pricing.get("ratePerKwh", raw.get("rate"))),
        rate_type=rate_type,
        contract_length=contract_length,
        monthly_fee=_number(pricing.get("monthlyFee")),
        green_energy_percentage=_number(features.get("greenEnergy")),
        early_termination_fee=_number(contract.get("earlyTerminationFee", cancellation.get("fee"))),
        features=frozenset(_feature_tags(features)),
        promotional_offers=tuple(str(offer) for offer in promotions if offer),
    )


def _plan_entries(document: Any) -> List[Dict[str, Any]]:
    if isinstance(document, list):
        return document
    if not isinstance(document, dict):
        return []
    unfiltered = _section(_section(document, "filters"), "no-filters")
    entries = unfiltered.get("plans") or document.get("plans") or []
    return entries if isinstance(entries, list) else []


def plans_from_document(document: Any, source: str = "") -> Tuple[PlanRecord, ...]:
    plans: List[PlanRecord] = []
    for entry in _plan_entries(document):
        if not isinstance(entry, dict):
            continue
        try:
            plans.append(plan_from_raw(entry))
        except (InvalidPlanRecord, KeyError) as exc:
            logger.warning("Skipping plan record in %s: %s", source or "document", exc)
    return tuple(plans)


class PlanDataLoader:
    def __init__(self, data_dir: Optional[str] = None):
        self.data_dir = Path(data_dir or os.getenv("TXPLANS_DATA_DIR") or DEFAULT_DATA_DIR)

    def path_for(self, city: str) -> Path:
        return self.data_dir / f"{city_file_slug(city)}.json"

    def available_cities(self) -> List[str]:
        if not self.data_dir.is_dir():
            return []
        return sorted(path.stem for path in self.data_dir.glob("*.json"))

    async def _read_document(self, city: str) -> Any:
        path = self.path_for(city)
        if not city_file_slug(city) or not path.is_file():
            raise CityDataMissing(f"No plan data for city '{city}'")
        try:
            async with async_open(str(path), "r", encoding="utf-8") as afp:
                content = await afp.read()
            return json.loads(content)
        except (OSError, ValueError) as exc:
            raise PlanDataError(f"Cannot read plan data from {path}: {exc}") from exc

    async def load_plans_for_city(self, city: str) -> Tuple[PlanRecord, ...]:
        path = self.path_for(city)
        document = await self._read_document(city)
        plans = plans_from_document(document, source=str(path))
        logger.debug("Loaded %s plans for %s from %s", len(plans), city, path)
        return plans

    async def count_plans(self, city: str) -> int:
        return len(await self.load_plans_for_city(city))


__all__ = [
    "CITY_SLUG_SUFFIX",
    "CityDataMissing",
    "PlanDataError",
    "PlanDataLoader",
    "city_file_slug",
    "plan_from_raw",
    "plans_from_document",
]
