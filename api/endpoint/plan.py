# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from sanic import Blueprint, response
from sanic.exceptions import ServerError

from api.cache import ResponseCache
from api.params import filter_state_from_body, parse_limit, parse_offset
from api.rate_limit import rate_limited
from api.services import PlanServices, get_services
from catalog.plans import CityDataMissing, PlanDataError, city_file_slug
from catalog.tdsp import tdsp_city, tdsp_display_name
from filtering.engine import FilterEngine, performance_grade
from filtering.models import FilterState, PlanRecord

logger = logging.getLogger(__name__)

blueprint = Blueprint("plan", url_prefix="/plan", version=1)

LIST_DEFAULT_LIMIT = 50
LIST_MAX_LIMIT = 100
SUGGESTIONS_DEFAULT_LIMIT = 5
SUGGESTIONS_MAX_LIMIT = 10


class _CityNotServed(Exception):
    def __init__(self, city: str, available: List[str]):
        super().__init__(city)
        self.city = city
        self.available = available


def _city_label(city: str) -> str:
    return city_file_slug(city).replace("-", " ").title()


def _city_info(city: str) -> Optional[Dict[str, Any]]:
    info = tdsp_city(city)
    if info is None:
        return None
    return {
        "slug": info.city_slug,
        "name": _city_label(city),
        "tdsp_duns": info.tdsp_duns,
        "tdsp_name": tdsp_display_name(info.tdsp_name),
        "zone": info.zone,
        "tier": info.tier,
    }


def _state_key(state: FilterState) -> str:
    """Lossless cache identity; the query-string form rounds rates and folds names."""
    return json.dumps(state.to_json_dict(), sort_keys=True)


def _city_not_found(exc: _CityNotServed):
    return response.json(
        {
            "success": False,
            "error": "City not found",
            "message": f"No electricity plan data for '{exc.city}'",
            "available_cities": exc.available,
        },
        status=404,
    )


async def _load_city_plans(services: PlanServices, city: str) -> Tuple[PlanRecord, ...]:
    try:
        return await services.plan_loader.load_plans_for_city(city)
    except CityDataMissing as exc:
        raise _CityNotServed(city, services.plan_loader.available_cities()) from exc
    except PlanDataError as exc:
        logger.error("Failed to load plans for %s: %s", city, exc)
        raise ServerError("Unable to load plan data") from exc


def _no_plans_payload(state: FilterState, limit: int, offset: int) -> Dict[str, Any]:
    return {
        "success": True,
        "city": state.city,
        "plans": [],
        "total_count": 0,
        "filtered_count": 0,
        "filter_counts": {},
        "pagination": {"limit": limit, "offset": offset, "has_more": False},
        "message": f"No electricity plans are currently available for {_city_label(state.city)}",
    }


async def _filter_payload(services: PlanServices, state: FilterState, limit: int, offset: int) -> Dict[str, Any]:
    plans = await _load_city_plans(services, state.city)
    if not plans:
        return _no_plans_payload(state, limit, offset)

    engine = FilterEngine(plans)
    result = engine.apply(state)
    page = result.plans[offset:offset + limit]

    payload = {
        "success": True,
        "city": state.city,
        "plans": [plan.to_json_dict() for plan in page],
        "total_count": result.total_count,
        "filtered_count": result.filtered_count,
        "filter_counts": dict(result.filter_counts),
        "response_time": round(result.response_time_ms, 3),
        "pagination": {
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < result.filtered_count,
        },
        "filters": state.to_json_dict(),
        "query": services.url_state.serialize(state),
        "performance": {"grade": performance_grade(result.response_time_ms)},
    }

    city_info = _city_info(state.city)
    if city_info:
        payload["city_info"] = city_info

    report = services.url_state.validate_combination(state)
    if not report.is_valid:
        payload["warnings"] = list(report.warnings)

    if result.filtered_count == 0:
        payload["suggestions"] = [item.to_json_dict() for item in engine.generate_suggestions(state)]
        payload["nearby_plans"] = [plan.to_json_dict() for plan in engine.find_nearby_plans(state)]
        payload["message"] = "No plans match all of the selected filters"

    return payload


async def _cached_filter_response(services: PlanServices, state: FilterState, limit: int, offset: int):
    key = ResponseCache.make_key("list", _state_key(state), limit, offset)
    cached = services.list_cache.get(key)
    if cached is not None:
        return response.json(cached, headers={"X-Cache": "HIT"})

    try:
        payload = await _filter_payload(services, state, limit, offset)
    except _CityNotServed as exc:
        return _city_not_found(exc)

    services.list_cache.set(key, payload)
    return response.json(payload, headers={"X-Cache": "MISS"})


@blueprint.get("/list", name="list_plans")
@rate_limited
async def list_plans(request):
    services = get_services(request)
    limit = parse_limit(request.args, LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT)
    offset = parse_offset(request.args)
    state = services.url_state.parse(request.args, default_city=request.app.config.get("DEFAULT_CITY"))
    return await _cached_filter_response(services, state, limit, offset)


@blueprint.post("/filter", name="filter_plans")
@rate_limited
async def filter_plans(request):
    services = get_services(request)
    payload = request.json
    state = filter_state_from_body(payload, services.default_city)
    limit = parse_limit(payload, LIST_DEFAULT_LIMIT, LIST_MAX_LIMIT)
    offset = parse_offset(payload)
    return await _cached_filter_response(services, state, limit, offset)


@blueprint.get("/suggestions", name="plan_suggestions")
@rate_limited
async def plan_suggestions(request):
    services = get_services(request)
    limit = parse_limit(request.args, SUGGESTIONS_DEFAULT_LIMIT, SUGGESTIONS_MAX_LIMIT)
    state = services.url_state.parse(request.args, default_city=request.app.config.get("DEFAULT_CITY"))

    key = ResponseCache.make_key("suggestions", _state_key(state), limit)
    cached = services.suggestion_cache.get(key)
    if cached is not None:
        return response.json(cached, headers={"X-Cache": "HIT"})

    try:
        plans = await _load_city_plans(services, state.city)
    except _CityNotServed as exc:
        return _city_not_found(exc)

    engine = FilterEngine(plans)
    filtered_count = len(engine.select(state))
    payload = {
        "success": True,
        "city": state.city,
        "total_count": len(plans),
        "filtered_count": filtered_count,
        "suggestions": [item.to_json_dict() for item in engine.generate_suggestions(state)[:limit]],
        "nearby_plans": [plan.to_json_dict() for plan in engine.find_nearby_plans(state, limit)],
    }
    if not plans:
        payload["message"] = f"No electricity plans are currently available for {_city_label(state.city)}"

    services.suggestion_cache.set(key, payload)
    return response.json(payload, headers={"X-Cache": "MISS"})


@blueprint.get("/url", name="plan_url")
async def plan_url(request):
    services = get_services(request)
    url_state = services.url_state
    state = url_state.parse(request.args, default_city=request.app.config.get("DEFAULT_CITY"))
    base_url = str(request.app.config.get("BASE_URL") or "").rstrip("/")

    data = {
        "query": url_state.serialize(state),
        "seo_path": url_state.build_seo_path(state),
        "shareable_url": url_state.create_shareable_url(state, base_url),
        "minimal_url": url_state.create_minimal_url(state, base_url),
        "filters": state.to_json_dict(),
        "validation": url_state.validate_combination(state).to_json_dict(),
    }

    previous = request.args.get("previous")
    if previous is not None:
        data["changes"] = url_state.detect_filter_changes(url_state.parse(previous, state.city), state)

    return response.json(data)
