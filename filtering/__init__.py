# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

from filtering.engine import (FilterEngine, apply_filters, find_nearby_plans,
                              generate_filter_counts, generate_suggestions)
from filtering.models import (CombinationReport, FilterResult, FilterState,
                              InvalidPlanRecord, PlanRecord, Suggestion)
from filtering.url_state import URLStateManager

__all__ = [
    "FilterEngine",
    "apply_filters",
    "find_nearby_plans",
    "generate_filter_counts",
    "generate_suggestions",
    "CombinationReport",
    "FilterResult",
    "FilterState",
    "InvalidPlanRecord",
    "PlanRecord",
    "Suggestion",
    "URLStateManager",
]
