# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

import json

import pytest
from sanic.exceptions import InvalidUsage, ServerError

from api.endpoint.plan import filter_plans, list_plans, plan_suggestions, plan_url
from factories import make_request, make_services


def _payload(response):
    return json.loads(response.body)


def _ids(payload, key="plans"):
    return [plan["id"] for plan in payload[key]]


@pytest.mark.asyncio
async def test_list_plans_default_filters(services):
    response = await list_plans(make_request(services, args={"city": "tyler"}))
    payload = _payload(response)
    assert response.status == 200
    assert payload["success"] is True
    assert _ids(payload) == ["t1", "t2", "t3"]
    assert payload["total_count"] == 3
    assert payload["filtered_count"] == 3
    assert payload["response_time"] >= 0
    assert payload["filter_counts"]["fixed-rate"] == 2
    assert payload["query"] == "city=tyler"
    assert payload["city_info"]["tdsp_name"] == "Oncor"
    assert payload["pagination"] == {"limit": 50, "offset": 0, "has_more": False}
    assert "suggestions" not in payload
    assert response.headers["X-Cache"] == "MISS"
    assert response.headers["X-RateLimit-Limit"] == "60"
    assert response.headers["X-RateLimit-Remaining"] == "59"


@pytest.mark.asyncio
async def test_list_plans_uses_cache(services):
    await list_plans(make_request(services, args={"city": "tyler", "type": "f"}))
    response = await list_plans(make_request(services, args={"type": "f", "city": "tyler"}))
    assert response.headers["X-Cache"] == "HIT"
    assert _ids(_payload(response)) == ["t1", "t2"]
    assert len(services.list_cache) == 1


@pytest.mark.asyncio
async def test_list_plans_cache_distinguishes_unrounded_rates(services):
    first = await list_plans(make_request(services, args={"city": "tyler", "min": "10"}))
    assert _ids(_payload(first)) == ["t1", "t2", "t3"]

    second = await list_plans(make_request(services, args={"city": "tyler", "min": "10.04"}))
    assert second.headers["X-Cache"] == "MISS"
    assert _ids(_payload(second)) == ["t2", "t3"]
    assert _payload(second)["filters"]["min_rate"] == 10.04


@pytest.mark.asyncio
async def test_filter_plans_cache_distinguishes_feature_spelling(services):
    first = await filter_plans(make_request(services, json_body={"city": "tyler", "required_features": ["No deposit"]}))
    assert _ids(_payload(first)) == ["t3"]

    second = await filter_plans(make_request(services, json_body={"city": "tyler", "required_features": ["no deposit"]}))
    assert second.headers["X-Cache"] == "MISS"
    assert _ids(_payload(second)) == []
    assert _payload(second)["filters"]["required_features"] == ["no deposit"]


@pytest.mark.asyncio
async def test_rate_limited_route_without_services():
    with pytest.raises(RuntimeError):
        await list_plans(make_request(None, args={"city": "tyler"}))


@pytest.mark.asyncio
async def test_list_plans_accepts_suffixed_city(services):
    payload = _payload(await list_plans(make_request(services, args={"city": "tyler-tx"})))
    assert payload["filtered_count"] == 3


@pytest.mark.asyncio
async def test_list_plans_pagination(services):
    response = await list_plans(make_request(services, args={"city": "tyler", "limit": "1", "offset": "1"}))
    payload = _payload(response)
    assert _ids(payload) == ["t2"]
    assert payload["filtered_count"] == 3
    assert payload["pagination"] == {"limit": 1, "offset": 1, "has_more": True}


@pytest.mark.asyncio
@pytest.mark.parametrize("args", [
    {"limit": "0"},
    {"limit": "101"},
    {"limit": "ten"},
    {"offset": "-1"},
])
async def test_list_plans_rejects_bad_pagination(services, args):
    with pytest.raises(InvalidUsage):
        await list_plans(make_request(services, args={"city": "tyler", **args}))


@pytest.mark.asyncio
async def test_list_plans_unknown_city(services):
    response = await list_plans(make_request(services, args={"city": "el-paso"}))
    payload = _payload(response)
    assert response.status == 404
    assert payload["available_cities"] == ["abilene", "tyler"]


@pytest.mark.asyncio
async def test_list_plans_city_without_plans(services):
    response = await list_plans(make_request(services, args={"city": "abilene"}))
    payload = _payload(response)
    assert response.status == 200
    assert payload["plans"] == []
    assert payload["message"] == "No electricity plans are currently available for Abilene"


@pytest.mark.asyncio
async def test_list_plans_corrupt_data_is_a_server_error(services, plan_dir):
    (plan_dir / "waco.json").write_text("{")
    with pytest.raises(ServerError):
        await list_plans(make_request(services, args={"city": "waco"}))


@pytest.mark.asyncio
async def test_list_plans_empty_result_offers_suggestions(services):
    payload = _payload(await list_plans(make_request(services, args={"city": "tyler", "min": "20.0"})))
    assert payload["filtered_count"] == 0
    assert payload["plans"] == []
    assert payload["message"] == "No plans match all of the selected filters"
    assert [item["filter_category"] for item in payload["suggestions"]] == ["min_rate"]
    assert payload["suggestions"][0]["expected_results"] == 3
    assert _ids(payload, "nearby_plans") == ["t3"]


@pytest.mark.asyncio
async def test_list_plans_reports_inconsistent_price_range(services):
    payload = _payload(await list_plans(make_request(services, args={"city": "tyler", "min": "15", "max": "10"})))
    assert payload["warnings"] == ["Minimum rate cannot be higher than maximum rate"]


@pytest.mark.asyncio
async def test_list_plans_rate_limited(plan_dir):
    services = make_services(plan_dir, rate_limit_per_minute=2)
    for _ in range(2):
        response = await list_plans(make_request(services, args={"city": "tyler"}))
        assert response.status == 200

    response = await list_plans(make_request(services, args={"city": "tyler"}))
    payload = _payload(response)
    assert response.status == 429
    assert payload["success"] is False
    assert int(response.headers["Retry-After"]) >= 1
    assert response.headers["X-RateLimit-Remaining"] == "0"

    other = make_request(services, args={"city": "tyler"}, headers={"x-forwarded-for": "203.0.113.9, 10.0.0.1"})
    assert (await list_plans(other)).status == 200


@pytest.mark.asyncio
async def test_filter_plans_from_json_body(services):
    body = {"filters": {"city": "tyler", "rate_types": ["fixed"], "sort_by": "price", "sort_order": "desc"}, "limit": 10}
    payload = _payload(await filter_plans(make_request(services, json_body=body)))
    assert _ids(payload) == ["t2", "t1"]
    assert payload["pagination"]["limit"] == 10


@pytest.mark.asyncio
async def test_filter_plans_top_level_fields(services):
    body = {"city": "tyler", "min_green_energy": 50, "include_promotions": True}
    payload = _payload(await filter_plans(make_request(services, json_body=body)))
    assert _ids(payload) == ["t2"]


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    None,
    ["tyler"],
    {"filters": "tyler"},
    {"filters": {"city": "tyler", "contract_lengths": [18]}},
    {"filters": {"city": "tyler", "rate_types": ["tiered"]}},
    {"filters": {"city": "tyler", "max_rate": "cheap"}},
    {"filters": {"city": "tyler", "min_rate": -1}},
    {"filters": {"city": "tyler", "min_green_energy": 120}},
    {"filters": {"city": "tyler", "min_provider_rating": 7}},
    {"filters": {"city": "tyler", "sort_by": "cheapest"}},
    {"filters": {"city": "tyler", "include_promotions": "maybe"}},
])
async def test_filter_plans_rejects_malformed_bodies(services, body):
    with pytest.raises(InvalidUsage):
        await filter_plans(make_request(services, json_body=body))


@pytest.mark.asyncio
async def test_plan_suggestions(services):
    response = await plan_suggestions(make_request(services, args={"city": "tyler", "contract": "36"}))
    payload = _payload(response)
    assert payload["filtered_count"] == 0
    assert payload["suggestions"][0]["filter_category"] == "contract_lengths"
    assert payload["suggestions"][0]["expected_results"] == 3
    assert _ids(payload, "nearby_plans") == ["t2"]
    assert response.headers["X-Cache"] == "MISS"

    again = await plan_suggestions(make_request(services, args={"city": "tyler", "contract": "36"}))
    assert again.headers["X-Cache"] == "HIT"


@pytest.mark.asyncio
async def test_plan_suggestions_cache_distinguishes_unrounded_rates(services):
    await plan_suggestions(make_request(services, args={"city": "tyler", "max": "9"}))
    response = await plan_suggestions(make_request(services, args={"city": "tyler", "max": "9.04"}))
    assert response.headers["X-Cache"] == "MISS"
    assert len(services.suggestion_cache) == 2


@pytest.mark.asyncio
async def test_plan_suggestions_limit_bounds(services):
    with pytest.raises(InvalidUsage):
        await plan_suggestions(make_request(services, args={"city": "tyler", "limit": "11"}))


@pytest.mark.asyncio
async def test_plan_suggestions_unknown_city(services):
    response = await plan_suggestions(make_request(services, args={"city": "el-paso"}))
    assert response.status == 404


@pytest.mark.asyncio
async def test_plan_url(services):
    request = make_request(
        services,
        args={"city": "houston", "type": "f", "previous": "city=houston"},
        config={"BASE_URL": "https://example.com/"},
    )
    payload = _payload(await plan_url(request))
    assert payload["query"] == "city=houston&type=f"
    assert payload["seo_path"] == "/electricity-plans/houston-tx/fixed-rate/"
    assert payload["shareable_url"] == "https://example.com/electricity-plans/houston-tx/fixed-rate/?city=houston&type=f"
    assert payload["validation"] == {"is_valid": True, "warnings": [], "suggestions": []}
    assert payload["changes"] == {"changed": ["rate_types"], "added": ["rate_types"], "removed": []}
    assert payload["filters"]["rate_types"] == ["fixed"]


@pytest.mark.asyncio
async def test_plan_url_defaults_to_configured_city(services):
    request = make_request(services, config={"DEFAULT_CITY": "dallas"})
    payload = _payload(await plan_url(request))
    assert payload["minimal_url"] == "/electricity-plans/dallas-tx/"
    assert "changes" not in payload
