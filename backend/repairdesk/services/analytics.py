"""Predictive analytics over historical repairs.

All functions are pure: they read the repairs they are given and return new
values. Empty input always yields an empty result.
"""

from __future__ import annotations

import logging
from collections import Counter, defaultdict
from datetime import datetime
from itertools import combinations
from typing import Dict, List, Sequence, Tuple

import numpy as np

from ..domain.models import (
    DiagnosisRecommendation,
    DurationEstimate,
    RepairOrder,
    SymptomCorrelation,
)
from .stages import is_finished
from .text import classify_tokens, jaccard, tokenize

logger = logging.getLogger(__name__)

UNKNOWN_DEVICE = "unknown"
OTHER_ISSUE = "other"


def device_type(device_model: str | None) -> str:
    """First word of the model, e.g. ``"iPhone 13"`` -> ``"iphone"``."""
    words = (device_model or "").strip().lower().split()
    return words[0] if words else UNKNOWN_DEVICE


def issue_category(issue_description: str | None) -> str:
    return classify_tokens(tokenize(issue_description)) or OTHER_ISSUE


def group_key(repair: RepairOrder) -> str:
    return f"{device_type(repair.device_model)}:{issue_category(repair.issue_description)}"


def _completed_at(repair: RepairOrder) -> datetime | None:
    if repair.completed_at is not None:
        return repair.completed_at
    if is_finished(repair.stage):
        return repair.updated_at
    return None


def _duration_hours(repair: RepairOrder) -> float | None:
    finished = _completed_at(repair)
    if finished is None or finished < repair.created_at:
        return None
    return (finished - repair.created_at).total_seconds() / 3600.0


def estimate_durations(repairs: Sequence[RepairOrder]) -> Dict[str, DurationEstimate]:
    """Duration statistics per ``device_type:issue_category`` group.

    Only repairs with a known completion time take part. A group with one
    sample reports that sample for every statistic.
    """
    samples: Dict[str, List[float]] = defaultdict(list)
    for repair in repairs:
        hours = _duration_hours(repair)
        if hours is not None:
            samples[group_key(repair)].append(hours)

    estimates: Dict[str, DurationEstimate] = {}
    for key in sorted(samples):
        values = np.asarray(samples[key], dtype=float)
        device, _, category = key.partition(":")
        estimates[key] = DurationEstimate(
            key=key,
            device_type=device,
            issue_category=category,
            sample_size=int(values.size),
            mean_hours=round(float(np.mean(values)), 2),
            median_hours=round(float(np.median(values)), 2),
            p90_hours=round(float(np.percentile(values, 90)), 2),
            min_hours=round(float(np.min(values)), 2),
            max_hours=round(float(np.max(values)), 2),
        )
    logger.debug("Estimated durations for %d groups", len(estimates))
    return estimates


def predict_duration(
    repair: RepairOrder, estimates: Dict[str, DurationEstimate]
) -> float | None:
    """Expected hours for an open repair, or ``None`` without history.

    Falls back from the exact group to the sample-weighted mean of every
    group sharing the issue category.
    """
    exact = estimates.get(group_key(repair))
    if exact is not None:
        return exact.mean_hours

    category = issue_category(repair.issue_description)
    related = [e for e in estimates.values() if e.issue_category == category]
    total = sum(e.sample_size for e in related)
    if not total:
        return None
    return round(sum(e.mean_hours * e.sample_size for e in related) / total, 2)


def correlate_symptoms(
    repairs: Sequence[RepairOrder],
    min_co_occurrences: int = 1,
    limit: int | None = None,
) -> List[SymptomCorrelation]:
    """Rank keyword pairs by how often they appear together.

    Strength is the Jaccard index of the two keywords' document sets:
    ``together / (count_a + count_b - together)``.
    """
    counts: Counter = Counter()
    pairs: Counter = Counter()
    for repair in repairs:
        keywords = sorted(tokenize(repair.issue_description))
        counts.update(keywords)
        pairs.update(combinations(keywords, 2))

    correlations = []
    for (first, second), together in pairs.items():
        if together < min_co_occurrences:
            continue
        union = counts[first] + counts[second] - together
        correlations.append(
            SymptomCorrelation(
                first=first,
                second=second,
                co_occurrences=together,
                strength=round(together / union, 4),
            )
        )
    correlations.sort(key=lambda c: (-c.strength, -c.co_occurrences, c.first, c.second))
    return correlations[:limit] if limit is not None else correlations


def recommend_diagnosis(
    repairs: Sequence[RepairOrder], issue_text: str | None, limit: int = 5
) -> List[DiagnosisRecommendation]:
    """Suggest diagnoses recorded on the most similar past repairs."""
    query = tokenize(issue_text)
    if not query:
        return []

    votes: Dict[str, List[Tuple[float, RepairOrder]]] = defaultdict(list)
    for repair in repairs:
        outcome = (repair.diagnosis or repair.solution or "").strip()
        if not outcome:
            continue
        similarity = jaccard(query, tokenize(repair.issue_description))
        if similarity > 0:
            votes[outcome].append((similarity, repair))

    ranked = []
    for outcome, matches in votes.items():
        solutions = Counter(r.solution for _, r in matches if r.solution)
        best_solution = (
            sorted(solutions.items(), key=lambda item: (-item[1], item[0]))[0][0]
            if solutions
            else None
        )
        ranked.append(
            (
                sum(similarity for similarity, _ in matches),
                DiagnosisRecommendation(
                    diagnosis=outcome,
                    solution=best_solution,
                    confidence=round(max(similarity for similarity, _ in matches), 4),
                    support=len(matches),
                    repair_ids=tuple(r.id for _, r in matches),
                ),
            )
        )
    ranked.sort(key=lambda item: (-item[0], -item[1].support, item[1].diagnosis))
    return [recommendation for _, recommendation in ranked[:limit]]
