"""Repair priority scoring and queue ordering.

The score is a weighted sum of four normalized signals, scaled to roughly
0-100 under the default weights:

    urgency      urgency / urgency_scale
    wait time    age_hours / wait_time_scale_hours   (uncapped)
    value        min(historical_value, cap) / cap
    complexity   technical_complexity / complexity_scale

Higher complexity raises the score so that hard jobs are triaged early.
Wait time is deliberately uncapped: a ticket that keeps waiting keeps
climbing, which keeps low-urgency work from starving. Keyword rules add a
flat bonus on top.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Sequence

from ..domain.models import (
    DEFAULT_PRIORITY_CONFIG,
    PriorityConfig,
    RepairOrder,
    ScoredRepair,
)

SCORE_SCALE = 100.0


def _ratio(value: float | None, scale: float) -> float:
    if not value or scale <= 0:
        return 0.0
    return value / scale


def _age_hours(created_at: datetime, now: datetime) -> float:
    return max(0.0, (now - created_at).total_seconds() / 3600.0)


def _rule_bonus(repair: RepairOrder, config: PriorityConfig) -> float:
    if not config.rules:
        return 0.0
    haystack = f"{repair.device_model or ''} {repair.issue_description or ''}".lower()
    return sum(
        rule.boost
        for rule in config.rules
        if rule.keyword and rule.keyword.lower() in haystack
    )


def calculate_priority_score(
    repair: RepairOrder,
    config: PriorityConfig = DEFAULT_PRIORITY_CONFIG,
    now: datetime | None = None,
) -> float:
    """Return the urgency score of ``repair``. Higher means sooner."""
    now = now or datetime.now(timezone.utc)
    value = repair.historical_value or 0.0
    capped_value = min(value, config.historical_value_cap) if value > 0 else 0.0

    weighted = (
        config.urgency_weight * _ratio(repair.urgency, config.urgency_scale)
        + config.wait_time_weight
        * _ratio(_age_hours(repair.created_at, now), config.wait_time_scale_hours)
        + config.historical_value_weight
        * _ratio(capped_value, config.historical_value_cap)
        + config.technical_complexity_weight
        * _ratio(repair.technical_complexity, config.complexity_scale)
    )
    return weighted * SCORE_SCALE + _rule_bonus(repair, config)


def sort_repairs_by_priority(
    repairs: Sequence[RepairOrder],
    config: PriorityConfig = DEFAULT_PRIORITY_CONFIG,
    now: datetime | None = None,
) -> List[RepairOrder]:
    """Return a new list ordered by descending score.

    Equal scores go oldest first; equal score and age keep input order.
    """
    return [scored.repair for scored in rank_repairs(repairs, config, now)]


def rank_repairs(
    repairs: Sequence[RepairOrder],
    config: PriorityConfig = DEFAULT_PRIORITY_CONFIG,
    now: datetime | None = None,
) -> List[ScoredRepair]:
    """Score every repair once and return the ranked queue."""
    now = now or datetime.now(timezone.utc)
    scored = [
        (calculate_priority_score(repair, config, now), repair) for repair in repairs
    ]
    # sorted() is stable, so ties on both keys keep input order.
    ordered = sorted(scored, key=lambda item: (-item[0], item[1].created_at))
    return [
        ScoredRepair(id=repair.id, score=score, rank=position, repair=repair)
        for position, (score, repair) in enumerate(ordered, start=1)
    ]
