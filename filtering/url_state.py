# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""
Compact query-string codec for :class:`FilterState`.

Fields at their default value are left out of the query string and come back
as defaults on parse. Values that cannot be decoded are dropped per field;
parsing never raises.
"""

from __future__ import annotations

import math
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import parse_qsl, urlencode

from filtering.codes import (
    CONTRACT_LADDER,
    RATE_TYPE_BY_CODE,
    RATE_TYPE_CODES,
    RATE_TYPES,
    SORT_KEYS,
    SORT_ORDERS,
    feature_code,
    feature_from_code,
    provider_from_slug,
    provider_slug,
)
from filtering.models import DEFAULT_CITY, DEFAULT_STATE, CombinationReport, FilterState

PLAN_PATH_PREFIX = "/electricity-plans"

PARAM_NAMES = {
    "city": "city",
    "state": "state",
    "contract_lengths": "contract",
    "rate_types": "type",
    "min_rate": "min",
    "max_rate": "max",
    "max_monthly_fee": "fee",
    "min_green_energy": "green",
    "selected_providers": "providers",
    "min_provider_rating": "rating",
    "required_features": "features",
    "include_promotions": "promo",
    "exclude_early_termination_fee": "no-etf",
    "sort_by": "sort",
    "sort_order": "order",
}

QueryInput = Union[str, bytes, Mapping[str, Any], None]


def _format_decimal(value: float) -> str:
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def _to_float(raw: Optional[str]) -> Optional[float]:
    if raw in (None, ""):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(value) or math.isinf(value):
        return None
    return value


def _to_int(raw: Optional[str]) -> Optional[int]:
    if raw in (None, ""):
        return None
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return None


def _split(raw: Optional[str]) -> List[str]:
    if not raw:
        return []
    return [token.strip() for token in raw.split(",") if token.strip()]


def _first_values(query: QueryInput) -> Dict[str, str]:
    """Collapse any supported query input into ``{name: first value}``."""
    if query is None:
        return {}
    if isinstance(query, bytes):
        query = query.decode("utf-8", errors="replace")
    if isinstance(query, str):
        values: Dict[str, str] = {}
        for key, value in parse_qsl(query.lstrip("?"), keep_blank_values=True):
            values.setdefault(key, value)
        return values

    values = {}
    for key in query.keys():
        raw = query.get(key)
        if isinstance(raw, (list, tuple)):
            raw = raw[0] if raw else None
        if raw is not None:
            values[key] = str(raw)
    return values


def _city_path_slug(state: FilterState) -> str:
    suffix = "tx" if state.state == DEFAULT_STATE else state.state
    city = state.city
    if city.endswith(f"-{suffix}"):
        return city
    return f"{city}-{suffix}"


class URLStateManager:
    def __init__(self, default_city: str = DEFAULT_CITY):
        self.default_city = default_city

    def serialize(self, state: FilterState) -> str:
        params: List[tuple] = [("city", state.city)]
        if state.state != DEFAULT_STATE:
            params.append(("state", state.state))

        if state.contract_lengths:
            params.append(("contract", ",".join(str(length) for length in sorted(state.contract_lengths))))
        if state.rate_types:
            ordered = [rate for rate in RATE_TYPES if rate in state.rate_types]
            params.append(("type", ",".join(RATE_TYPE_CODES[rate] for rate in ordered)))
        if state.min_rate is not None:
            params.append(("min", f"{state.min_rate:.1f}"))
        if state.max_rate is not None:
            params.append(("max", f"{state.max_rate:.1f}"))
        if state.max_monthly_fee is not None:
            params.append(("fee", _format_decimal(state.max_monthly_fee)))
        if state.min_green_energy is not None:
            params.append(("green", str(int(state.min_green_energy))))
        if state.selected_providers:
            slugs = sorted(provider_slug(name) for name in state.selected_providers)
            params.append(("providers", ",".join(slugs)))
        if state.min_provider_rating is not None:
            params.append(("rating", _format_decimal(state.min_provider_rating)))
        if state.required_features:
            codes = sorted(feature_code(feature) for feature in state.required_features)
            params.append(("features", ",".join(codes)))
        if state.include_promotions:
            params.append(("promo", "1"))
        if state.exclude_early_termination_fee:
            params.append(("no-etf", "1"))
        if state.sort_by != "price":
            params.append(("sort", state.sort_by))
        if state.sort_order != "asc":
            params.append(("order", state.sort_order))

        return urlencode(params, safe=",")

    def parse(self, query: QueryInput, default_city: Optional[str] = None) -> FilterState:
        values = _first_values(query)
        fields: Dict[str, Any] = {
            "city": values.get("city") or default_city or self.default_city,
            "state": values.get("state") or DEFAULT_STATE,
        }

        lengths = {_to_int(token) for token in _split(values.get("contract"))}
        fields["contract_lengths"] = frozenset(length for length in lengths if length in CONTRACT_LADDER)

        rate_types = set()
        for token in _split(values.get("type")):
            token = token.lower()
            rate_type = RATE_TYPE_BY_CODE.get(token, token)
            if rate_type in RATE_TYPES:
                rate_types.add(rate_type)
        fields["rate_types"] = frozenset(rate_types)

        min_rate = _to_float(values.get("min"))
        if min_rate is not None and min_rate >= 0:
            fields["min_rate"] = min_rate
        max_rate = _to_float(values.get("max"))
        if max_rate is not None and max_rate > 0:
            fields["max_rate"] = max_rate

        fee = _to_float(values.get("fee"))
        if fee is not None and fee >= 0:
            fields["max_monthly_fee"] = fee

        green = _to_int(values.get("green"))
        if green is not None and 0 <= green <= 100:
            fields["min_green_energy"] = green

        providers = {provider_from_slug(slug) for slug in _split(values.get("providers"))}
        fields["selected_providers"] = frozenset(name for name in providers if name)

        rating = _to_float(values.get("rating"))
        if rating is not None and 1 <= rating <= 5:
            fields["min_provider_rating"] = rating

        features = {feature_from_code(code) for code in _split(values.get("features"))}
        fields["required_features"] = frozenset(feature for feature in features if feature)

        fields["include_promotions"] = values.get("promo") == "1"
        fields["exclude_early_termination_fee"] = values.get("no-etf") == "1"

        if values.get("sort") in SORT_KEYS:
            fields["sort_by"] = values["sort"]
        if values.get("order") in SORT_ORDERS:
            fields["sort_order"] = values["order"]

        return FilterState(**fields)

    def build_seo_path(self, state: FilterState) -> str:
        path = f"{PLAN_PATH_PREFIX}/{_city_path_slug(state)}/"
        if len(state.contract_lengths) == 1:
            path += f"{next(iter(state.contract_lengths))}-month/"
        if len(state.rate_types) == 1:
            path += f"{next(iter(state.rate_types))}-rate/"
        if state.min_green_energy is not None and state.min_green_energy >= 50:
            path += "green-energy/"
        return path

    def create_shareable_url(self, state: FilterState, base_url: str = "") -> str:
        path = self.build_seo_path(state)
        query = self.serialize(state)
        return f"{base_url}{path}?{query}" if query else f"{base_url}{path}"

    def create_minimal_url(self, state: FilterState, base_url: str = "") -> str:
        """City-only path when nothing beyond the location is set."""
        if state == FilterState(city=state.city, state=state.state):
            return f"{base_url}{PLAN_PATH_PREFIX}/{_city_path_slug(state)}/"
        return self.create_shareable_url(state, base_url)

    def detect_filter_changes(self, old: FilterState, new: FilterState) -> Dict[str, List[str]]:
        changed, added, removed = [], [], []
        for name in PARAM_NAMES:
            before, after = getattr(old, name), getattr(new, name)
            if before == after:
                continue
            changed.append(name)
            if before in (None, False) or before == frozenset():
                added.append(name)
            elif after in (None, False) or after == frozenset():
                removed.append(name)
        return {"changed": changed, "added": added, "removed": removed}

    def validate_combination(self, state: FilterState) -> CombinationReport:
        warnings: List[str] = []
        suggestions: List[str] = []

        if state.min_rate is not None and state.max_rate is not None and state.min_rate > state.max_rate:
            warnings.append("Minimum rate cannot be higher than maximum rate")
            suggestions.append("Adjust your price range settings")

        if (
            len(state.contract_lengths) == 1
            and len(state.rate_types) == 1
            and len(state.selected_providers) == 1
            and len(state.required_features) > 2
        ):
            warnings.append("Your filters may be too restrictive")
            suggestions.append("Consider removing some filters to see more options")

        if (
            state.min_green_energy is not None
            and state.min_green_energy >= 75
            and state.max_rate is not None
            and state.max_rate < 10
        ):
            warnings.append("High green energy percentage may not be available at very low rates")
            suggestions.append("Consider increasing your maximum rate for more green energy options")

        return CombinationReport(tuple(warnings), tuple(suggestions))


__all__ = ["PARAM_NAMES", "PLAN_PATH_PREFIX", "URLStateManager"]
