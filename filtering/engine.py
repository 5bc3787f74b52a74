# Licensed under the HealthPorta Non-Commercial License (see LICENSE).

"""In-memory plan filtering, sorting, facet counting and relaxation hints."""

from __future__ import annotations

import logging
import time
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from filtering.codes import CONTRACT_LADDER, RATE_TYPES, ladder_neighbours, slugify
from filtering.models import FilterResult, FilterState, PlanRecord, Suggestion

logger = logging.getLogger(__name__)

FILTER_TIME_TARGET_MS = 300.0
EXCELLENT_TIME_MS = 100.0
NEARBY_DEFAULT_MAX_RATE = 20.0

PRIORITY_RANK = {"high": 3, "medium": 2, "low": 1}

Plans = Tuple[PlanRecord, ...]


def _contract_filter(plans: Plans, state: FilterState) -> Plans:
    if not state.contract_lengths:
        return plans
    return tuple(plan for plan in plans if plan.contract_length in state.contract_lengths)


def _rate_type_filter(plans: Plans, state: FilterState) -> Plans:
    if not state.rate_types:
        return plans
    return tuple(plan for plan in plans if plan.rate_type in state.rate_types)


def _price_filter(plans: Plans, state: FilterState) -> Plans:
    min_rate, max_rate = state.min_rate, state.max_rate
    if min_rate is None and max_rate is None:
        return plans
    return tuple(
        plan for plan in plans
        if (min_rate is None or plan.base_rate >= min_rate)
        and (max_rate is None or plan.base_rate <= max_rate)
    )


def _monthly_fee_filter(plans: Plans, state: FilterState) -> Plans:
    if state.max_monthly_fee is None:
        return plans
    return tuple(plan for plan in plans if plan.monthly_fee <= state.max_monthly_fee)


def _green_filter(plans: Plans, state: FilterState) -> Plans:
    if state.min_green_energy is None:
        return plans
    return tuple(plan for plan in plans if plan.green_energy_percentage >= state.min_green_energy)


def _provider_filter(plans: Plans, state: FilterState) -> Plans:
    if not state.selected_providers:
        return plans
    return tuple(plan for plan in plans if plan.provider_name in state.selected_providers)


def _rating_filter(plans: Plans, state: FilterState) -> Plans:
    if state.min_provider_rating is None:
        return plans
    return tuple(plan for plan in plans if plan.provider_rating >= state.min_provider_rating)


def _features_filter(plans: Plans, state: FilterState) -> Plans:
    if not state.required_features:
        return plans
    required = state.required_features
    return tuple(plan for plan in plans if required <= plan.features)


def _promotions_filter(plans: Plans, state: FilterState) -> Plans:
    if not state.include_promotions:
        return plans
    return tuple(plan for plan in plans if plan.has_promotion)


def _etf_filter(plans: Plans, state: FilterState) -> Plans:
    if not state.exclude_early_termination_fee:
        return plans
    return tuple(plan for plan in plans if plan.early_termination_fee == 0)


FILTER_STAGES: Tuple[Callable[[Plans, FilterState], Plans], ...] = (
    _contract_filter,
    _rate_type_filter,
    _price_filter,
    _monthly_fee_filter,
    _green_filter,
    _provider_filter,
    _rating_filter,
    _features_filter,
    _promotions_filter,
    _etf_filter,
)

SORT_KEYS: Dict[str, Callable[[PlanRecord], object]] = {
    "price": lambda plan: plan.base_rate,
    "rating": lambda plan: plan.provider_rating,
    "contract": lambda plan: plan.contract_length,
    "provider": lambda plan: plan.provider_name.casefold(),
    "green": lambda plan: plan.green_energy_percentage,
}


def sort_plans(plans: Iterable[PlanRecord], sort_by: str = "price", sort_order: str = "asc") -> Plans:
    # Tie-break first (name, id ascending); the stable primary pass keeps that order for equal keys.
    ordered = sorted(plans, key=lambda plan: (plan.plan_name, plan.id))
    key = SORT_KEYS.get(sort_by, SORT_KEYS["price"])
    return tuple(sorted(ordered, key=key, reverse=sort_order == "desc"))


def generate_filter_counts(plans: Sequence[PlanRecord]) -> Dict[str, int]:
    """Facet badge counts over ``plans``; ladder and rate-type keys are always present."""
    counts: Dict[str, int] = {f"{length}-month": 0 for length in CONTRACT_LADDER}
    counts.update({f"{rate_type}-rate": 0 for rate_type in RATE_TYPES})
    providers: Dict[str, int] = {}
    green = high_green = no_deposit = no_etf = promotions = 0

    for plan in plans:
        counts[f"{plan.contract_length}-month"] += 1
        counts[f"{plan.rate_type}-rate"] += 1
        provider_key = slugify(plan.provider_name)
        providers[provider_key] = providers.get(provider_key, 0) + 1
        if plan.green_energy_percentage > 0:
            green += 1
        if plan.green_energy_percentage >= 50:
            high_green += 1
        if any("no deposit" in feature.lower() for feature in plan.features):
            no_deposit += 1
        if plan.early_termination_fee == 0:
            no_etf += 1
        if plan.has_promotion:
            promotions += 1

    counts.update(providers)
    counts["green-energy"] = green
    counts["high-green-energy"] = high_green
    counts["no-deposit"] = no_deposit
    counts["no-etf"] = no_etf
    counts["promotions"] = promotions
    return counts


def performance_grade(elapsed_ms: float) -> str:
    if elapsed_ms < EXCELLENT_TIME_MS:
        return "excellent"
    if elapsed_ms < FILTER_TIME_TARGET_MS:
        return "good"
    return "poor"


class FilterEngine:
    """Filters one city's plan list. Holds no state beyond the plans it was built with."""

    def __init__(self, plans: Iterable[PlanRecord] = ()):
        self._plans: Plans = tuple(plans)

    @property
    def plans(self) -> Plans:
        return self._plans

    def select(self, state: FilterState) -> Plans:
        """Run every filter stage and the sort, without counts or timing."""
        results = self._plans
        for stage in FILTER_STAGES:
            results = stage(results, state)
        return sort_plans(results, state.sort_by, state.sort_order)

    def apply(self, state: FilterState) -> FilterResult:
        started = time.perf_counter()
        results = self.select(state)
        filter_counts = generate_filter_counts(self._plans)
        elapsed_ms = (time.perf_counter() - started) * 1000

        if elapsed_ms > FILTER_TIME_TARGET_MS:
            logger.warning(
                "Filtering %s plans for %s took %.1fms (target %.0fms)",
                len(self._plans), state.city, elapsed_ms, FILTER_TIME_TARGET_MS,
            )

        return FilterResult(
            plans=results,
            total_count=len(self._plans),
            filtered_count=len(results),
            filter_counts=filter_counts,
            response_time_ms=elapsed_ms,
        )

    def _probe(self, state: FilterState) -> int:
        return len(self.select(state))

    def generate_suggestions(self, state: FilterState) -> List[Suggestion]:
        suggestions: List[Suggestion] = []

        def _offer(relaxed: FilterState, category: str, text: str, priority: str, action: str):
            count = self._probe(relaxed)
            if count > 0:
                suggestions.append(Suggestion(category, text, count, priority, action))

        if state.contract_lengths:
            _offer(
                state.evolve(contract_lengths=frozenset()),
                "contract_lengths",
                "Include additional contract lengths",
                "high",
                "add",
            )

        if state.max_rate is not None:
            relaxed_max = state.max_rate + 2
            _offer(
                state.evolve(max_rate=relaxed_max),
                "max_rate",
                f"Increase maximum rate to {relaxed_max:.1f}¢/kWh",
                "high",
                "increase",
            )

        if state.min_rate is not None:
            _offer(
                state.evolve(min_rate=None),
                "min_rate",
                "Remove the minimum rate",
                "high",
                "decrease",
            )

        if state.min_green_energy is not None and state.min_green_energy > 25:
            _offer(
                state.evolve(min_green_energy=25),
                "min_green_energy",
                "Lower green energy requirement to 25%",
                "medium",
                "decrease",
            )

        if len(state.selected_providers) == 1:
            _offer(
                state.evolve(selected_providers=frozenset()),
                "selected_providers",
                "Include plans from all providers",
                "medium",
                "remove",
            )

        if len(state.rate_types) == 1:
            _offer(
                state.evolve(rate_types=frozenset(RATE_TYPES)),
                "rate_types",
                "Include all rate types (fixed, variable, indexed)",
                "low",
                "add",
            )

        if state.required_features:
            _offer(
                state.evolve(required_features=frozenset()),
                "required_features",
                "Drop the required plan features",
                "low",
                "remove",
            )

        # sorted() is stable, so equal tiers/counts keep the probe order above.
        return sorted(
            suggestions,
            key=lambda item: (-PRIORITY_RANK[item.priority], -item.expected_results),
        )

    def find_nearby_plans(self, state: FilterState, max_results: int = 5) -> List[PlanRecord]:
        changes = {}
        if state.max_rate is not None:
            changes["max_rate"] = state.max_rate * 1.2
        if state.min_rate is not None:
            changes["min_rate"] = state.min_rate * 0.8
        if state.min_green_energy is not None:
            changes["min_green_energy"] = max(0, state.min_green_energy - 25)
        if state.contract_lengths:
            widened = set()
            for length in state.contract_lengths:
                widened.update(ladder_neighbours(length))
            changes["contract_lengths"] = frozenset(widened)

        candidates = self.select(state.evolve(**changes))
        anchor = state.max_rate if state.max_rate is not None else NEARBY_DEFAULT_MAX_RATE
        ranked = sorted(candidates, key=lambda plan: abs(plan.base_rate - anchor))
        return ranked[:max(max_results, 0)]


def apply_filters(plans: Iterable[PlanRecord], state: FilterState) -> FilterResult:
    return FilterEngine(plans).apply(state)


def generate_suggestions(plans: Iterable[PlanRecord], state: FilterState) -> List[Suggestion]:
    return FilterEngine(plans).generate_suggestions(state)


def find_nearby_plans(
    plans: Iterable[PlanRecord], state: FilterState, max_results: Optional[int] = 5
) -> List[PlanRecord]:
    return FilterEngine(plans).find_nearby_plans(state, 5 if max_results is None else max_results)


__all__ = [
    "FILTER_TIME_TARGET_MS",
    "FilterEngine",
    "apply_filters",
    "generate_suggestions",
    "find_nearby_plans",
    "generate_filter_counts",
    "performance_grade",
    "sort_plans",
]
