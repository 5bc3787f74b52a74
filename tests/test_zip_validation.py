# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

import pytest

from catalog.plans import PlanDataLoader
from catalog.zip_table import ZipMappingTable
from factories import raw_plan_payload, write_city, zip_table
from routing.zip_validation import (COOPERATIVE, INVALID_ZIP_FORMAT,
                                    NOT_DEREGULATED, NOT_FOUND, NOT_TEXAS,
                                    ZipValidationService, estimate_plan_count)


class ExplodingTable(ZipMappingTable):
    def get(self, zip_code):
        raise AssertionError("mapping table must not be consulted")

    def cooperative(self, zip_code):
        raise AssertionError("cooperative table must not be consulted")


def test_tyler_zip_resolves():
    result = ZipValidationService(zip_table()).classify("75701")
    assert result.resolved
    assert result.city_slug == "tyler-tx"
    assert result.tdsp_name == "Oncor"
    assert result.tdsp_duns == "1039940674000"
    assert result.redirect_url == "/electricity-plans/tyler-tx/"
    assert result.confidence == 95


@pytest.mark.parametrize("zip_code", ["00000", "1234", "123456", "7570a", "", None, " 7570"])
def test_bad_format_never_reaches_the_tables(zip_code):
    result = ZipValidationService(ExplodingTable()).classify(zip_code)
    assert result.error_code == INVALID_ZIP_FORMAT
    assert not result.is_texas


@pytest.mark.parametrize("zip_code", ["10001", "74999", "80000", "90210"])
def test_outside_texas(zip_code):
    result = ZipValidationService(ExplodingTable()).classify(zip_code)
    assert result.error_code == NOT_TEXAS


def test_cooperative_zip_carries_contact_info():
    result = ZipValidationService(zip_table()).classify("75932")
    assert result.error_code == COOPERATIVE
    assert result.cooperative["phone"] == "(903) 683-2416"
    assert result.suggestions == ("Contact Cherokee County Electric Cooperative at (903) 683-2416",)
    payload = result.to_json_dict()
    assert payload["success"] is False
    assert payload["error"]["cooperative"]["website"] == "https://ccec.coop"


def test_unknown_and_regulated_zips():
    service = ZipValidationService(zip_table())
    assert service.classify("79999").error_code == NOT_FOUND
    assert service.classify("78701").error_code == NOT_DEREGULATED


def test_every_zip_gets_exactly_one_outcome():
    service = ZipValidationService(zip_table())
    for zip_code in ("00000", "10001", "75932", "79999", "78701", "75701", "abc"):
        result = service.classify(zip_code)
        assert result.resolved != bool(result.error_code)


@pytest.mark.parametrize("city, expected", [
    ("houston-tx", 120),
    ("san-antonio-tx", 120),
    ("corpus-christi-tx", 80),
    ("tyler", 42),
    ("college-station-tx", 42),
    ("nacogdoches-tx", 25),
])
def test_estimate_plan_count(city, expected):
    assert estimate_plan_count(city) == expected


@pytest.mark.asyncio
async def test_resolve_counts_plans_from_the_unsuffixed_file(tmp_path):
    write_city(tmp_path, "tyler", [raw_plan_payload(id="1"), raw_plan_payload(id="2")])
    service = ZipValidationService(zip_table(), PlanDataLoader(str(tmp_path)))
    result = await service.resolve("75701")
    assert result.plan_count == 2
    assert result.to_json_dict()["plan_count"] == 2


@pytest.mark.asyncio
async def test_resolve_falls_back_to_estimate_when_data_is_missing(tmp_path):
    service = ZipValidationService(zip_table(), PlanDataLoader(str(tmp_path)))
    assert (await service.resolve("75701")).plan_count == 42


@pytest.mark.asyncio
async def test_resolve_falls_back_to_estimate_when_data_is_corrupt(tmp_path):
    (tmp_path / "tyler.json").write_text("{not json")
    service = ZipValidationService(zip_table(), PlanDataLoader(str(tmp_path)))
    assert (await service.resolve("75701")).plan_count == 42


@pytest.mark.asyncio
async def test_resolve_leaves_rejections_alone(tmp_path):
    service = ZipValidationService(zip_table(), PlanDataLoader(str(tmp_path)))
    result = await service.resolve("75932")
    assert result.error_code == COOPERATIVE
    assert result.plan_count is None


@pytest.mark.asyncio
async def test_deregulated_areas(tmp_path):
    write_city(tmp_path, "houston", [raw_plan_payload(id="h1")])
    service = ZipValidationService(zip_table(), PlanDataLoader(str(tmp_path)))
    coverage = await service.deregulated_areas()
    assert coverage["total_cities"] == 3
    assert coverage["total_zip_codes"] == 4
    slugs = [city["slug"] for city in coverage["cities"]]
    assert slugs == ["houston-tx", "tyler-tx", "waco-tx"]
    houston = coverage["cities"][0]
    assert houston["plan_count"] == 1
    assert houston["region"] == "Coast"
    assert coverage["cities"][1]["region"] == "East Texas"
    assert coverage["cities"][1]["plan_count"] == 42


@pytest.mark.asyncio
async def test_shipped_zip_table_loads():
    table = await ZipMappingTable.load()
    service = ZipValidationService(table)
    result = service.classify("75701")
    assert result.city_slug == "tyler-tx"
    assert result.tdsp_name == "Oncor"
    assert service.classify("75932").error_code == COOPERATIVE
    assert service.classify("78701").error_code == NOT_DEREGULATED
    assert "tyler-tx" in table.city_slugs()
