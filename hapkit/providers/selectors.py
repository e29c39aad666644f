"""
Example Blueprint Selectors.

Reference implementations of BlueprintSelector for LocalHapProvider.
The provider has no opinion on selection; integrators may use these
as-is or write their own.

Candidates always arrive sorted by version, newest first, so
candidates[0] is the latest version.

INVARIANT: Every selector returns one of the candidate objects.
INVARIANT: Every selector raises ValueError on an empty candidate list.
"""

import random
import time
from collections.abc import Callable, Mapping, MutableMapping

from hapkit.models.metrics import BlueprintMetrics
from hapkit.models.protocol import InquiryBlueprint, InquiryRequest
from hapkit.providers.base import BlueprintSelector

# Minimum uses before a blueprint's metrics are trusted
BALANCED_MIN_USES = 5
PROVEN_MIN_USES = 10

# complexity_signal ranges over 1-5
HIGH_COMPLEXITY = 4
LOW_COMPLEXITY = 2
DEFAULT_COMPLEXITY = 3


def _require_candidates(name: str, candidates: list[InquiryBlueprint]) -> None:
    if not candidates:
        raise ValueError(f"{name}: No candidates provided")


def simple_latest_version_selector(
    candidates: list[InquiryBlueprint],
    request: InquiryRequest,
    metrics: Mapping[str, BlueprintMetrics],
) -> InquiryBlueprint:
    """Always pick the latest version."""
    _require_candidates("simple_latest_version_selector", candidates)
    return candidates[0]


def best_performance_selector(
    candidates: list[InquiryBlueprint],
    request: InquiryRequest,
    metrics: Mapping[str, BlueprintMetrics],
) -> InquiryBlueprint:
    """
    Pick the highest resolution rate; latest version if nothing has metrics.

    Ties go to the newer version.
    """
    _require_candidates("best_performance_selector", candidates)

    best = candidates[0]
    best_rate = -1.0
    for candidate in candidates:
        metric = metrics.get(candidate.id)
        if metric is not None and metric.resolution_rate > best_rate:
            best = candidate
            best_rate = metric.resolution_rate
    return best


def balanced_selector(
    candidates: list[InquiryBlueprint],
    request: InquiryRequest,
    metrics: Mapping[str, BlueprintMetrics],
) -> InquiryBlueprint:
    """
    Best resolution rate among blueprints with enough uses.

    Blueprints with fewer than BALANCED_MIN_USES uses are ignored; if none
    qualify, the latest version is used.
    """
    _require_candidates("balanced_selector", candidates)

    with_data = [
        c
        for c in candidates
        if (m := metrics.get(c.id)) is not None and m.total_uses >= BALANCED_MIN_USES
    ]
    if not with_data:
        return candidates[0]

    best = with_data[0]
    best_rate = metrics[best.id].resolution_rate
    for candidate in with_data[1:]:
        rate = metrics[candidate.id].resolution_rate
        if rate > best_rate:
            best = candidate
            best_rate = rate
    return best


def context_aware_selector(
    candidates: list[InquiryBlueprint],
    request: InquiryRequest,
    metrics: Mapping[str, BlueprintMetrics],
) -> InquiryBlueprint:
    """
    Choose by the request's complexity signal.

    High complexity prefers the newest proven blueprint (PROVEN_MIN_USES),
    low complexity takes the latest version, anything else is balanced.
    """
    _require_candidates("context_aware_selector", candidates)

    complexity = request.complexity_signal or DEFAULT_COMPLEXITY

    if complexity >= HIGH_COMPLEXITY:
        for candidate in candidates:
            metric = metrics.get(candidate.id)
            if metric is not None and metric.total_uses >= PROVEN_MIN_USES:
                return candidate
        return candidates[0]

    if complexity <= LOW_COMPLEXITY:
        return candidates[0]

    return balanced_selector(candidates, request, metrics)


def create_random_selector(rng: random.Random | None = None) -> BlueprintSelector:
    """
    Build a uniform random selector. For A/B tests; not for production UX.

    Args:
        rng: Random source; a fresh random.Random() when omitted
    """
    source = rng or random.Random()

    def select(
        candidates: list[InquiryBlueprint],
        request: InquiryRequest,
        metrics: Mapping[str, BlueprintMetrics],
    ) -> InquiryBlueprint:
        _require_candidates("random_selector", candidates)
        return source.choice(candidates)

    return select


random_selector = create_random_selector()


def create_epsilon_greedy_selector(
    epsilon: float, rng: random.Random | None = None
) -> BlueprintSelector:
    """
    Explore with probability epsilon, otherwise exploit the best performer.

    Args:
        epsilon: Exploration probability in [0, 1]
        rng: Random source shared by the coin flip and the random pick

    Raises:
        ValueError: If epsilon is outside [0, 1]
    """
    if not 0 <= epsilon <= 1:
        raise ValueError("epsilon must be between 0 and 1")

    source = rng or random.Random()
    explore = create_random_selector(source)

    def select(
        candidates: list[InquiryBlueprint],
        request: InquiryRequest,
        metrics: Mapping[str, BlueprintMetrics],
    ) -> InquiryBlueprint:
        _require_candidates("epsilon_greedy_selector", candidates)
        if source.random() < epsilon:
            return explore(candidates, request, metrics)
        return best_performance_selector(candidates, request, metrics)

    return select


def create_lru_selector(
    usage_tracker: MutableMapping[str, float],
    clock: Callable[[], float] = time.time,
) -> BlueprintSelector:
    """
    Pick the least recently used candidate and stamp it with clock().

    Never-used candidates count as timestamp 0; ties go to the newer version.

    Args:
        usage_tracker: Caller-owned map of blueprint id to last-used time
        clock: Time source for the stamp
    """

    def select(
        candidates: list[InquiryBlueprint],
        request: InquiryRequest,
        metrics: Mapping[str, BlueprintMetrics],
    ) -> InquiryBlueprint:
        _require_candidates("lru_selector", candidates)

        chosen = candidates[0]
        oldest = usage_tracker.get(chosen.id, 0)
        for candidate in candidates[1:]:
            last_used = usage_tracker.get(candidate.id, 0)
            if last_used < oldest:
                chosen = candidate
                oldest = last_used

        usage_tracker[chosen.id] = clock()
        return chosen

    return select
