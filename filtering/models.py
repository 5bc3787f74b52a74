# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""Value types passed between the catalog, the filter engine and the API."""

from __future__ import annotations

from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Iterable, Optional, Tuple

from filtering.codes import CONTRACT_LADDER, RATE_TYPES, SORT_KEYS, SORT_ORDERS

DEFAULT_CITY = "houston"
DEFAULT_STATE = "texas"


class InvalidPlanRecord(ValueError):
    """Raised when a plan record breaks one of its invariants."""


@dataclass(frozen=True)
class PlanRecord:
    id: str
    plan_name: str
    provider_name: str
    provider_rating: float
    base_rate: float
    rate_type: str
    contract_length: int
    monthly_fee: float = 0.0
    green_energy_percentage: float = 0.0
    early_termination_fee: float = 0.0
    features: FrozenSet[str] = frozenset()
    promotional_offers: Tuple[str, ...] = ()

    def __post_init__(self) -> None:
        if self.base_rate < 0:
            raise InvalidPlanRecord(f"plan {self.id}: base rate must not be negative")
        if not 0 <= self.green_energy_percentage <= 100:
            raise InvalidPlanRecord(f"plan {self.id}: green energy must be within 0..100")
        if self.contract_length not in CONTRACT_LADDER:
            raise InvalidPlanRecord(
                f"plan {self.id}: contract length {self.contract_length} is not one of {CONTRACT_LADDER}"
            )
        if self.rate_type not in RATE_TYPES:
            raise InvalidPlanRecord(f"plan {self.id}: unknown rate type {self.rate_type!r}")

    @property
    def has_promotion(self) -> bool:
        return bool(self.promotional_offers)

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "plan_name": self.plan_name,
            "provider_name": self.provider_name,
            "provider_rating": self.provider_rating,
            "base_rate": self.base_rate,
            "rate_type": self.rate_type,
            "contract_length": self.contract_length,
            "monthly_fee": self.monthly_fee,
            "green_energy_percentage": self.green_energy_percentage,
            "early_termination_fee": self.early_termination_fee,
            "features": sorted(self.features),
            "promotional_offers": list(self.promotional_offers),
        }


def _frozen(values: Optional[Iterable[Any]]) -> FrozenSet[Any]:
    if values is None:
        return frozenset()
    if isinstance(values, (str, bytes)):
        return frozenset([values])
    return frozenset(values)


@dataclass(frozen=True)
class FilterState:
    city: str = DEFAULT_CITY
    state: str = DEFAULT_STATE
    contract_lengths: FrozenSet[int] = frozenset()
    rate_types: FrozenSet[str] = frozenset()
    min_rate: Optional[float] = None
    max_rate: Optional[float] = None
    max_monthly_fee: Optional[float] = None
    min_green_energy: Optional[int] = None
    selected_providers: FrozenSet[str] = frozenset()
    min_provider_rating: Optional[float] = None
    required_features: FrozenSet[str] = frozenset()
    include_promotions: bool = False
    exclude_early_termination_fee: bool = False
    sort_by: str = "price"
    sort_order: str = "asc"

    def __post_init__(self) -> None:
        # Accept lists/tuples from callers; store hashable sets.
        for name in ("contract_lengths", "rate_types", "selected_providers", "required_features"):
            object.__setattr__(self, name, _frozen(getattr(self, name)))
        if self.sort_by not in SORT_KEYS:
            object.__setattr__(self, "sort_by", "price")
        if self.sort_order not in SORT_ORDERS:
            object.__setattr__(self, "sort_order", "asc")

    def evolve(self, **changes: Any) -> "FilterState":
        return replace(self, **changes)

    def to_json_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for item in fields(self):
            value = getattr(self, item.name)
            if isinstance(value, frozenset):
                value = sorted(value)
            data[item.name] = value
        return data


@dataclass(frozen=True)
class FilterResult:
    plans: Tuple[PlanRecord, ...]
    total_count: int
    filtered_count: int
    filter_counts: Dict[str, int] = field(default_factory=dict)
    response_time_ms: float = 0.0

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "plans": [plan.to_json_dict() for plan in self.plans],
            "total_count": self.total_count,
            "filtered_count": self.filtered_count,
            "filter_counts": dict(self.filter_counts),
            "response_time": round(self.response_time_ms, 3),
        }


@dataclass(frozen=True)
class Suggestion:
    filter_category: str
    suggestion: str
    expected_results: int
    priority: str
    action: str

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "filter_category": self.filter_category,
            "suggestion": self.suggestion,
            "expected_results": self.expected_results,
            "priority": self.priority,
            "action": self.action,
        }


@dataclass(frozen=True)
class CombinationReport:
    warnings: Tuple[str, ...] = ()
    suggestions: Tuple[str, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.warnings

    def to_json_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "warnings": list(self.warnings),
            "suggestions": list(self.suggestions),
        }


__all__ = [
    "DEFAULT_CITY",
    "DEFAULT_STATE",
    "InvalidPlanRecord",
    "PlanRecord",
    "FilterState",
    "FilterResult",
    "Suggestion",
    "CombinationReport",
]
