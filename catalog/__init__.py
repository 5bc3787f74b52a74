# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from catalog.plans import (CityDataMissing, PlanDataError, PlanDataLoader,
                           city_file_slug)
from catalog.tdsp import TdspCity, tdsp_city, tdsp_display_name
from catalog.zip_table import CooperativeArea, ZipMappingEntry, ZipMappingTable

__all__ = [
    "CityDataMissing",
    "CooperativeArea",
    "PlanDataError",
    "PlanDataLoader",
    "TdspCity",
    "ZipMappingEntry",
    "ZipMappingTable",
    "city_file_slug",
    "tdsp_city",
    "tdsp_display_name",
]
