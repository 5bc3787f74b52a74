# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""Request argument and JSON body parsing shared by the endpoints."""

from __future__ import annotations

from typing import Any, Dict, List, Optional

from sanic.exceptions import InvalidUsage

from filtering.codes import CONTRACT_LADDER, SORT_KEYS, SORT_ORDERS, normalize_rate_type
from filtering.models import DEFAULT_STATE, FilterState


def parse_bool(value: Any, param_name: str) -> Optional[bool]:
    if value in (None, "", "null"):
        return None
    if isinstance(value, bool):
        return value
    lowered = str(value).strip().lower()
    if lowered in {"true", "1", "yes", "y"}:
        return True
    if lowered in {"false", "0", "no", "n"}:
        return False
    raise InvalidUsage(f"Parameter '{param_name}' must be boolean-like")


def parse_float(value: Any, param_name: str) -> Optional[float]:
    if value in (None, "", "null"):
        return None
    if isinstance(value, bool):
        raise InvalidUsage(f"Parameter '{param_name}' must be numeric")
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidUsage(f"Parameter '{param_name}' must be numeric") from exc


def parse_int(value: Any, param_name: str, default: Optional[int] = None) -> Optional[int]:
    if value in (None, "", "null"):
        return default
    if isinstance(value, bool):
        raise InvalidUsage(f"Parameter '{param_name}' must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise InvalidUsage(f"Parameter '{param_name}' must be an integer") from exc


def parse_limit(args, default: int, maximum: int) -> int:
    limit = parse_int(args.get("limit"), "limit", default)
    if not 1 <= limit <= maximum:
        raise InvalidUsage(f"Parameter 'limit' must be between 1 and {maximum}")
    return limit


def parse_offset(args) -> int:
    offset = parse_int(args.get("offset"), "offset", 0)
    if offset < 0:
        raise InvalidUsage("Parameter 'offset' must not be negative")
    return offset


def get_list_param(args, name: str) -> List[str]:
    values = []
    getlist = getattr(args, "getlist", None)
    if callable(getlist):
        raw_values = getlist(name)
    else:
        raw = args.get(name)
        if raw is None:
            raw_values = []
        elif isinstance(raw, (list, tuple)):
            raw_values = list(raw)
        else:
            raw_values = [raw]
    for raw_value in raw_values:
        if raw_value is None:
            continue
        if isinstance(raw_value, (list, tuple)):
            tokens = raw_value
        else:
            tokens = str(raw_value).split(",")
        for token in tokens:
            cleaned = str(token).strip()
            if cleaned:
                values.append(cleaned)
    return values


def filter_state_from_body(payload: Any, default_city: str) -> FilterState:
    """
    Build a :class:`FilterState` from a JSON request body.

    Unlike the query-string codec, which quietly drops values it cannot read,
    a JSON body is an explicit API call, so a malformed field is a 400.
    The filters may sit at the top level or under a ``filters`` key.
    """
    if not isinstance(payload, dict):
        raise InvalidUsage("Request body must be a JSON object")
    filters = payload.get("filters", payload)
    if not isinstance(filters, dict):
        raise InvalidUsage("'filters' must be a JSON object")

    fields: Dict[str, Any] = {
        "city": str(filters.get("city") or default_city).strip().lower(),
        "state": str(filters.get("state") or DEFAULT_STATE).strip().lower(),
    }

    lengths = set()
    for value in get_list_param(filters, "contract_lengths"):
        length = parse_int(value, "contract_lengths")
        if length not in CONTRACT_LADDER:
            raise InvalidUsage(f"Contract length must be one of {', '.join(map(str, CONTRACT_LADDER))}")
        lengths.add(length)
    fields["contract_lengths"] = frozenset(lengths)

    rate_types = set()
    for value in get_list_param(filters, "rate_types"):
        rate_type = normalize_rate_type(value)
        if rate_type is None:
            raise InvalidUsage(f"Unknown rate type '{value}'")
        rate_types.add(rate_type)
    fields["rate_types"] = frozenset(rate_types)

    for name in ("min_rate", "max_rate", "max_monthly_fee"):
        value = parse_float(filters.get(name), name)
        if value is not None and value < 0:
            raise InvalidUsage(f"Parameter '{name}' must not be negative")
        fields[name] = value

    green = parse_int(filters.get("min_green_energy"), "min_green_energy")
    if green is not None and not 0 <= green <= 100:
        raise InvalidUsage("Parameter 'min_green_energy' must be between 0 and 100")
    fields["min_green_energy"] = green

    rating = parse_float(filters.get("min_provider_rating"), "min_provider_rating")
    if rating is not None and not 1 <= rating <= 5:
        raise InvalidUsage("Parameter 'min_provider_rating' must be between 1 and 5")
    fields["min_provider_rating"] = rating

    fields["selected_providers"] = frozenset(get_list_param(filters, "selected_providers"))
    fields["required_features"] = frozenset(get_list_param(filters, "required_features"))
    fields["include_promotions"] = bool(parse_bool(filters.get("include_promotions"), "include_promotions"))
    fields["exclude_early_termination_fee"] = bool(
        parse_bool(filters.get("exclude_early_termination_fee"), "exclude_early_termination_fee")
    )

    sort_by = filters.get("sort_by") or "price"
    if sort_by not in SORT_KEYS:
        raise InvalidUsage(f"Parameter 'sort_by' must be one of {', '.join(SORT_KEYS)}")
    sort_order = filters.get("sort_order") or "asc"
    if sort_order not in SORT_ORDERS:
        raise InvalidUsage("Parameter 'sort_order' must be 'asc' or 'desc'")
    fields["sort_by"] = sort_by
    fields["sort_order"] = sort_order

    return FilterState(**fields)
