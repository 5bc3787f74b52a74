# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""
Static ZIP reference tables.

``zip_mappings.csv`` maps a ZIP code to its city page and TDSP territory;
``cooperatives.csv`` lists ZIP codes served by an electric cooperative, which
are outside the retail market. Both are read once at startup.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Optional

from aiocsv import AsyncDictReader
from aiofile import async_open

logger = logging.getLogger(__name__)

STATIC_DIR = Path(__file__).absolute().parent / "static"
ZIP_MAPPINGS_CSV = STATIC_DIR / "zip_mappings.csv"
COOPERATIVES_CSV = STATIC_DIR / "cooperatives.csv"


@dataclass(frozen=True)
class ZipMappingEntry:
    zip_code: str
    city_name: str
    city_slug: str
    county_name: str
    tdsp_territory: str
    tdsp_duns: str
    is_deregulated: bool
    market_zone: str = ""
    priority: float = 1.0
    confidence: int = 100


@dataclass(frozen=True)
class CooperativeArea:
    zip_code: str
    name: str
    phone: str
    website: str = ""


def _as_bool(value: Optional[str]) -> bool:
    return str(value or "").strip().lower() in ("1", "true", "yes", "y")


def _as_float(value: Optional[str], default: float) -> float:
    try:
        return float(value) if value not in (None, "") else default
    except ValueError:
        return default


def _as_int(value: Optional[str], default: int) -> int:
    try:
        return int(float(value)) if value not in (None, "") else default
    except ValueError:
        return default


def mapping_from_row(row: Dict[str, str]) -> ZipMappingEntry:
    return ZipMappingEntry(
        zip_code=row["zip_code"].strip().zfill(5),
        city_name=row.get("city_name", "").strip(),
        city_slug=row.get("city_slug", "").strip().lower(),
        county_name=row.get("county_name", "").strip(),
        tdsp_territory=row.get("tdsp_territory", "").strip(),
        tdsp_duns=row.get("tdsp_duns", "").strip(),
        is_deregulated=_as_bool(row.get("is_deregulated")),
        market_zone=row.get("market_zone", "").strip(),
        priority=_as_float(row.get("priority"), 1.0),
        confidence=_as_int(row.get("confidence"), 100),
    )


def cooperative_from_row(row: Dict[str, str]) -> CooperativeArea:
    return CooperativeArea(
        zip_code=row["zip_code"].strip().zfill(5),
        name=row.get("name", "").strip(),
        phone=row.get("phone", "").strip(),
        website=row.get("website", "").strip(),
    )


class ZipMappingTable:
    """Read-only lookup over ZIP mappings and cooperative areas."""

    def __init__(
        self,
        mappings: Iterable[ZipMappingEntry] = (),
        cooperatives: Iterable[CooperativeArea] = (),
    ):
        self._mappings: Dict[str, ZipMappingEntry] = {}
        for entry in mappings:
            if entry.zip_code in self._mappings:
                logger.warning("Duplicate ZIP mapping for %s, keeping the first one", entry.zip_code)
                continue
            self._mappings[entry.zip_code] = entry
        self._cooperatives: Dict[str, CooperativeArea] = {coop.zip_code: coop for coop in cooperatives}

    def __len__(self) -> int:
        return len(self._mappings)

    def get(self, zip_code: str) -> Optional[ZipMappingEntry]:
        return self._mappings.get(zip_code)

    def cooperative(self, zip_code: str) -> Optional[CooperativeArea]:
        return self._cooperatives.get(zip_code)

    def entries(self) -> List[ZipMappingEntry]:
        return list(self._mappings.values())

    def city_slugs(self) -> List[str]:
        return sorted({entry.city_slug for entry in self._mappings.values() if entry.is_deregulated})

    @classmethod
    async def load(
        cls,
        mappings_path: Optional[Path] = None,
        cooperatives_path: Optional[Path] = None,
    ) -> "ZipMappingTable":
        mappings_path = Path(mappings_path or ZIP_MAPPINGS_CSV)
        cooperatives_path = Path(cooperatives_path or COOPERATIVES_CSV)

        mappings: List[ZipMappingEntry] = []
        async with async_open(str(mappings_path), "r", encoding="utf-8-sig") as afp:
            async for row in AsyncDictReader(afp, delimiter=","):
                if not row.get("zip_code"):
                    continue
                mappings.append(mapping_from_row(row))

        cooperatives: List[CooperativeArea] = []
        if cooperatives_path.is_file():
            async with async_open(str(cooperatives_path), "r", encoding="utf-8-sig") as afp:
                async for row in AsyncDictReader(afp, delimiter=","):
                    if not row.get("zip_code"):
                        continue
                    cooperatives.append(cooperative_from_row(row))

        table = cls(mappings, cooperatives)
        logger.info(
            "Loaded %s ZIP mappings and %s cooperative ZIP codes", len(table), len(cooperatives)
        )
        return table


__all__ = [
    "COOPERATIVES_CSV",
    "CooperativeArea",
    "ZIP_MAPPINGS_CSV",
    "ZipMappingEntry",
    "ZipMappingTable",
    "cooperative_from_row",
    "mapping_from_row",
]
