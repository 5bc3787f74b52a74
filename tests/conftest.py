# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

import os
from pathlib import Path

import pytest

from factories import make_services, raw_plan_payload, write_city

REPO_ROOT = Path(__file__).absolute().parent.parent

TEST_ENV_DEFAULTS = {
    "TXPLANS_LOG_CFG": str(REPO_ROOT / "logging.yaml"),
    "TXPLANS_DATA_DIR": str(REPO_ROOT / "data" / "plans"),
    "TXPLANS_RELEASE": "test",
    "TXPLANS_ENVIRONMENT": "test",
    "TXPLANS_DEFAULT_CITY": "houston",
}

for key, value in TEST_ENV_DEFAULTS.items():
    os.environ.setdefault(key, value)


@pytest.fixture
def plan_dir(tmp_path):
    write_city(tmp_path, "tyler", [
        raw_plan_payload(id="t1", name="Cheap Fixed 12", provider={"name": "TXU Energy", "rating": 4.2},
                         pricing={"ratePerKwh": 10.0, "monthlyFee": 0}),
        raw_plan_payload(id="t2", name="Green 24",
                         provider={"name": "Green Mountain Energy", "rating": 4.0},
                         pricing={"ratePerKwh": 14.0, "monthlyFee": 0},
                         contract={"type": "fixed", "length": 24, "earlyTerminationFee": 0},
                         features={"greenEnergy": 100, "tags": ["Renewable energy"]},
                         promotions=["$50 bill credit"]),
        raw_plan_payload(id="t3", name="Flex Monthly",
                         provider={"name": "Direct Energy", "rating": 3.4},
                         pricing={"ratePerKwh": 16.0, "monthlyFee": 0},
                         contract={"type": "variable", "length": 1, "earlyTerminationFee": 0},
                         features={"greenEnergy": 0, "tags": ["No deposit"]}),
    ])
    write_city(tmp_path, "abilene", [])
    return tmp_path


@pytest.fixture
def services(plan_dir):
    return make_services(plan_dir)
