# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""City to TDSP (poles-and-wires utility) metadata for the cities we serve."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from catalog.plans import city_file_slug

ONCOR_DUNS = "1039940674000"
CENTERPOINT_DUNS = "957877905"
AEP_CENTRAL_DUNS = "007924772"
AEP_NORTH_DUNS = "007923311"
TNMP_DUNS = "007929441"
LPL_DUNS = "0582138934100"


@dataclass(frozen=True)
class TdspCity:
    city_slug: str
    tdsp_duns: str
    tdsp_name: str
    zone: str
    tier: int
    priority: float


TDSP_CITIES: Dict[str, TdspCity] = {
    city.city_slug: city
    for city in (
        TdspCity("houston-tx", CENTERPOINT_DUNS, "CenterPoint Energy Houston Electric", "Coast", 1, 1.0),
        TdspCity("dallas-tx", ONCOR_DUNS, "Oncor Electric Delivery", "North", 1, 1.0),
        TdspCity("fort-worth-tx", ONCOR_DUNS, "Oncor Electric Delivery", "North", 1, 0.9),
        TdspCity("arlington-tx", ONCOR_DUNS, "Oncor Electric Delivery", "North", 2, 0.8),
        TdspCity("tyler-tx", ONCOR_DUNS, "Oncor Electric Delivery", "North", 2, 0.7),
        TdspCity("waco-tx", ONCOR_DUNS, "Oncor Electric Delivery", "North", 2, 0.7),
        TdspCity("bellaire-tx", CENTERPOINT_DUNS, "CenterPoint Energy Houston Electric", "Coast", 3, 0.6),
        TdspCity("corpus-christi-tx", AEP_CENTRAL_DUNS, "AEP Texas Central", "South", 2, 0.8),
        TdspCity("laredo-tx", AEP_CENTRAL_DUNS, "AEP Texas Central", "South", 3, 0.6),
        TdspCity("abilene-tx", AEP_NORTH_DUNS, "AEP Texas North", "West", 3, 0.6),
        TdspCity("college-station-tx", TNMP_DUNS, "Texas-New Mexico Power", "Central", 3, 0.6),
        TdspCity("lubbock-tx", LPL_DUNS, "Lubbock Power & Light", "West", 3, 0.6),
    )
}

REGION_NAMES = {
    "North": "East Texas",
    "Central": "Central Texas",
    "Coast": "Coast",
    "South": "South Texas",
    "West": "West Texas",
}

_SHORT_TDSP_NAMES = (
    ("Oncor", "Oncor"),
    ("AEP Texas Central", "AEP Texas Central"),
    ("AEP Texas North", "AEP Texas North"),
    ("AEP Texas South", "AEP Texas South"),
)


def tdsp_display_name(territory: str) -> str:
    """Short label shown to users, e.g. ``Oncor Electric Delivery`` -> ``Oncor``."""
    for marker, label in _SHORT_TDSP_NAMES:
        if marker in territory:
            return label
    return territory


def region_name(market_zone: str) -> str:
    return REGION_NAMES.get(market_zone, "Texas")


def tdsp_city(city: str) -> Optional[TdspCity]:
    """Accepts either ``tyler`` or ``tyler-tx``."""
    return TDSP_CITIES.get(f"{city_file_slug(city)}-tx")


__all__ = [
    "REGION_NAMES",
    "TDSP_CITIES",
    "TdspCity",
    "region_name",
    "tdsp_city",
    "tdsp_display_name",
]
