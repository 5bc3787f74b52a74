# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

import json
from pathlib import Path

import pytest

from catalog.plans import (CityDataMissing, PlanDataError, PlanDataLoader,
                           city_file_slug, plan_from_raw, plans_from_document)
from catalog.tdsp import region_name, tdsp_city, tdsp_display_name
from factories import raw_plan_payload, write_city

REPO_DATA_DIR = Path(__file__).absolute().parent.parent / "data" / "plans"


@pytest.mark.parametrize("slug, expected", [
    ("tyler-tx", "tyler"),
    ("tyler", "tyler"),
    ("Fort-Worth-TX", "fort-worth"),
    ("", ""),
])
def test_city_file_slug(slug, expected):
    assert city_file_slug(slug) == expected


def test_plan_from_raw_maps_nested_sections():
    plan = plan_from_raw(raw_plan_payload(
        features={"greenEnergy": 40, "tags": ["AutoPay discount"], "deposit": {"required": False}},
        promotions=["$25 credit"],
    ))
    assert plan.id == "raw-1"
    assert plan.plan_name == "Raw Saver 12"
    assert plan.provider_name == "Reliant Energy"
    assert plan.provider_rating == 3.8
    assert plan.base_rate == 12.5
    assert plan.monthly_fee == 4.95
    assert plan.contract_length == 12
    assert plan.early_termination_fee == 150
    assert plan.green_energy_percentage == 40
    assert plan.features == frozenset({"AutoPay discount", "No deposit"})
    assert plan.has_promotion


def test_plan_from_raw_accepts_rate_type_codes_and_flat_provider():
    plan = plan_from_raw(raw_plan_payload(
        provider="Express Energy",
        contract={"type": "v", "length": 1},
    ))
    assert plan.provider_name == "Express Energy"
    assert plan.rate_type == "variable"
    assert plan.contract_length == 1
    assert plan.early_termination_fee == 0


def test_invalid_records_are_skipped(caplog):
    document = {"plans": [
        raw_plan_payload(id="ok"),
        raw_plan_payload(id="bad-term", contract={"type": "fixed", "length": 18}),
        raw_plan_payload(id="bad-green", features={"greenEnergy": 140}),
        {"name": "no id"},
        "not a plan",
    ]}
    plans = plans_from_document(document, source="test")
    assert [plan.id for plan in plans] == ["ok"]
    assert "Skipping plan record" in caplog.text


def test_unfiltered_section_is_preferred():
    document = {
        "filters": {"no-filters": {"plans": [raw_plan_payload(id="inner")]}},
        "plans": [raw_plan_payload(id="outer")],
    }
    assert [plan.id for plan in plans_from_document(document)] == ["inner"]


@pytest.mark.asyncio
async def test_loader_reads_suffixed_and_plain_slugs(tmp_path):
    write_city(tmp_path, "waco", [raw_plan_payload(id="w1"), raw_plan_payload(id="w2")])
    loader = PlanDataLoader(str(tmp_path))
    assert [plan.id for plan in await loader.load_plans_for_city("waco-tx")] == ["w1", "w2"]
    assert await loader.count_plans("waco") == 2
    assert loader.available_cities() == ["waco"]


@pytest.mark.asyncio
async def test_loader_missing_city(tmp_path):
    loader = PlanDataLoader(str(tmp_path))
    with pytest.raises(CityDataMissing):
        await loader.load_plans_for_city("el-paso")


@pytest.mark.asyncio
async def test_loader_corrupt_file(tmp_path):
    (tmp_path / "waco.json").write_text(json.dumps({"plans": []})[:-3])
    loader = PlanDataLoader(str(tmp_path))
    with pytest.raises(PlanDataError):
        await loader.load_plans_for_city("waco")


def test_loader_reads_data_dir_from_environment(monkeypatch, tmp_path):
    monkeypatch.setenv("TXPLANS_DATA_DIR", str(tmp_path))
    assert PlanDataLoader().data_dir == tmp_path


@pytest.mark.asyncio
async def test_shipped_plan_files_load():
    loader = PlanDataLoader(str(REPO_DATA_DIR))
    assert {"houston", "tyler"} <= set(loader.available_cities())
    assert len(await loader.load_plans_for_city("tyler-tx")) == 7
    assert len(await loader.load_plans_for_city("houston")) == 5
    assert await loader.count_plans("abilene") == 0


def test_tdsp_metadata():
    assert tdsp_display_name("Oncor Electric Delivery") == "Oncor"
    assert tdsp_display_name("AEP Texas Central Company") == "AEP Texas Central"
    assert tdsp_display_name("CenterPoint Energy Houston Electric") == "CenterPoint Energy Houston Electric"
    assert region_name("North") == "East Texas"
    assert region_name("Panhandle") == "Texas"
    assert tdsp_city("tyler").tdsp_duns == "1039940674000"
    assert tdsp_city("houston-tx").tdsp_duns == "957877905"
    assert tdsp_city("el-paso") is None
