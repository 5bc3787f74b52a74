# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""Per-application collaborators shared by the request handlers."""

from __future__ import annotations

import logging
from typing import Any, Mapping, Optional

from api.cache import DEFAULT_MAX_ENTRIES, ResponseCache
from api.rate_limit import DEFAULT_LIMIT_PER_MINUTE, RateLimiter
from catalog.plans import PlanDataLoader
from catalog.zip_table import ZipMappingTable
from filtering.models import DEFAULT_CITY
from filtering.url_state import URLStateManager
from routing.zip_validation import ZipValidationService

logger = logging.getLogger(__name__)

LIST_CACHE_TTL = 300
SUGGESTION_CACHE_TTL = 900


def _config_number(config: Mapping[str, Any], key: str, default: float) -> float:
    value = config.get(key)
    if value in (None, ""):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric %s=%r, using %s", key, value, default)
        return default


class PlanServices:
    def __init__(
        self,
        plan_loader: Optional[PlanDataLoader] = None,
        zip_table: Optional[ZipMappingTable] = None,
        default_city: str = DEFAULT_CITY,
        cache_ttl: float = LIST_CACHE_TTL,
        suggestion_cache_ttl: float = SUGGESTION_CACHE_TTL,
        cache_max_entries: int = DEFAULT_MAX_ENTRIES,
        rate_limit_per_minute: int = DEFAULT_LIMIT_PER_MINUTE,
    ):
        self.plan_loader = plan_loader or PlanDataLoader()
        self.zip_table = zip_table if zip_table is not None else ZipMappingTable()
        self.zip_service = ZipValidationService(self.zip_table, self.plan_loader)
        self.default_city = default_city
        self.url_state = URLStateManager(default_city)
        self.list_cache = ResponseCache(cache_ttl, cache_max_entries)
        self.suggestion_cache = ResponseCache(suggestion_cache_ttl, cache_max_entries)
        self.rate_limiter = RateLimiter(rate_limit_per_minute)

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "PlanServices":
        return cls(
            plan_loader=PlanDataLoader(config.get("DATA_DIR")),
            default_city=config.get("DEFAULT_CITY") or DEFAULT_CITY,
            cache_ttl=_config_number(config, "CACHE_TTL", LIST_CACHE_TTL),
            suggestion_cache_ttl=_config_number(config, "SUGGESTION_CACHE_TTL", SUGGESTION_CACHE_TTL),
            cache_max_entries=int(_config_number(config, "CACHE_MAX_ENTRIES", DEFAULT_MAX_ENTRIES)),
            rate_limit_per_minute=int(
                _config_number(config, "RATE_LIMIT_PER_MINUTE", DEFAULT_LIMIT_PER_MINUTE)
            ),
        )

    async def load_tables(self) -> None:
        self.zip_table = await ZipMappingTable.load()
        self.zip_service = ZipValidationService(self.zip_table, self.plan_loader)

    def init_app(self, app) -> None:
        @app.listener("before_server_start")
        async def _on_start(app_, __):
            await self.load_tables()
            app_.ctx.services = self
            logger.info(
                "Serving plans from %s for %s cities", self.plan_loader.data_dir,
                len(self.plan_loader.available_cities()),
            )


def get_services(request) -> PlanServices:
    services = getattr(request.app.ctx, "services", None)
    if services is None:
        raise RuntimeError("Plan services not available on application context")
    return services
