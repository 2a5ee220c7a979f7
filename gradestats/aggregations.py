"""Aggregation stages: flatten, group, weighted reduction, classification and bucketing."""

from __future__ import annotations

import logging
import math
from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, NamedTuple, Optional, Sequence, Tuple

from . import schemas
from .errors import ComputationError
from .utils import format_float

logger = logging.getLogger(__name__)

WEIGHT_TOLERANCE = 1e-9
OTHER_BUCKET_KEY = "other"


class FlatScore(NamedTuple):
    learner_id: int
    class_id: int
    type: object
    score: Optional[float]


@dataclass
class TypedScores:
    quiz: List[float] = field(default_factory=list)
    exam: List[float] = field(default_factory=list)
    homework: List[float] = field(default_factory=list)

    def add(self, score_type: schemas.ScoreType, value: float) -> None:
        getattr(self, score_type.value).append(value)


def mean_or_zero(values: Sequence[float]) -> float:
    """Arithmetic mean of ``values``; an empty sequence averages to ``0.0``.

    A learner with no homework in a class still gets a class average; the
    homework term simply contributes zero.
    """
    if not values:
        return 0.0
    return sum(float(v) for v in values) / len(values)


def check_weights(weights: schemas.ScoreWeights) -> None:
    if not math.isclose(weights.total(), 1.0, abs_tol=WEIGHT_TOLERANCE):
        raise ComputationError(f"Score weights must sum to 1.0, got {weights.total():.6f}")


def check_boundaries(boundaries: Sequence[float]) -> None:
    if len(boundaries) < 2:
        raise ComputationError("At least two bucket boundaries are required")
    for lower, upper in zip(boundaries[:-1], boundaries[1:]):
        if not lower < upper:
            raise ComputationError(f"Bucket boundaries must be strictly ascending: {list(boundaries)}")


# ----------------------------------------------------------------------
# Score aggregation
# ----------------------------------------------------------------------


def flatten_scores(records: Iterable[schemas.ScoreRecord]) -> List[FlatScore]:
    flat: List[FlatScore] = []
    for record in records:
        for entry in record.scores:
            flat.append(FlatScore(record.learner_id, record.class_id, entry.type, entry.score))
    return flat


def group_by_learner_class(flat: Iterable[FlatScore]) -> Dict[Tuple[int, int], TypedScores]:
    groups: Dict[Tuple[int, int], TypedScores] = {}
    ignored: Counter[str] = Counter()
    for item in flat:
        typed = groups.setdefault((item.learner_id, item.class_id), TypedScores())
        score_type = schemas.ScoreType.parse(item.type)
        if score_type is None:
            ignored[repr(item.type)] += 1
            continue
        if item.score is None:
            continue
        typed.add(score_type, item.score)
    if ignored:
        logger.debug("Ignored scores with unrecognised types: %s", dict(ignored))
    return groups


def weighted_average(typed: TypedScores, weights: schemas.ScoreWeights) -> float:
    return (
        mean_or_zero(typed.exam) * weights.exam
        + mean_or_zero(typed.quiz) * weights.quiz
        + mean_or_zero(typed.homework) * weights.homework
    )


def compute_class_averages(
    records: Iterable[schemas.ScoreRecord],
    weights: Optional[schemas.ScoreWeights] = None,
) -> List[schemas.ClassAverage]:
    weights = weights or schemas.ScoreWeights()
    groups = group_by_learner_class(flatten_scores(records))
    return [
        schemas.ClassAverage(
            learner_id=learner_id,
            class_id=class_id,
            weighted_avg=weighted_average(typed, weights),
        )
        for (learner_id, class_id), typed in groups.items()
    ]


def compute_learner_summaries(
    class_averages: Iterable[schemas.ClassAverage],
    threshold: float,
) -> List[schemas.LearnerSummary]:
    per_learner: Dict[int, List[float]] = {}
    for entry in class_averages:
        per_learner.setdefault(entry.learner_id, []).append(entry.weighted_avg)

    summaries: List[schemas.LearnerSummary] = []
    for learner_id, averages in per_learner.items():
        overall = mean_or_zero(averages)
        summaries.append(
            schemas.LearnerSummary(
                learner_id=learner_id,
                avg_per_class=averages,
                overall_avg=overall,
                above_threshold=overall > threshold,
            )
        )
    return summaries


# ----------------------------------------------------------------------
# Threshold classification
# ----------------------------------------------------------------------


def classify_threshold(values: Iterable[float], threshold: float) -> schemas.ThresholdSummary:
    total = 0
    above = 0
    for value in values:
        total += 1
        if value > threshold:
            above += 1
    percentage = (above / total) * 100 if total else 0.0
    return schemas.ThresholdSummary(above_count=above, total_count=total, percentage=percentage)


# ----------------------------------------------------------------------
# Distribution bucketing
# ----------------------------------------------------------------------


def _bucket_index(value: float, boundaries: Sequence[float]) -> Optional[int]:
    if math.isnan(value) or value < boundaries[0] or value >= boundaries[-1]:
        return None
    for idx in range(len(boundaries) - 1):
        if boundaries[idx] <= value < boundaries[idx + 1]:
            return idx
    return None


def bucket_distribution(
    pairs: Iterable[Tuple[int, float]],
    boundaries: Sequence[float],
    *,
    member_limit: Optional[int] = None,
    keep_empty: bool = False,
) -> List[schemas.Bucket]:
    """Histogram ``(entity_id, value)`` pairs over half-open boundary ranges.

    Values below the first boundary or at/above the last one are collected in
    a trailing ``"other"`` bucket. The last boundary is exclusive, so a perfect
    100 against ``[0, ..., 100]`` lands in ``"other"``. Empty buckets are left
    out unless ``keep_empty`` is set.
    """
    check_boundaries(boundaries)
    buckets = [
        schemas.Bucket(key=format_float(lower), lower_bound=lower, upper_bound=upper)
        for lower, upper in zip(boundaries[:-1], boundaries[1:])
    ]
    other = schemas.Bucket(key=OTHER_BUCKET_KEY)

    for entity_id, value in pairs:
        idx = _bucket_index(float(value), boundaries)
        target = other if idx is None else buckets[idx]
        target.count += 1
        if member_limit is None or len(target.members) < member_limit:
            target.members.append(entity_id)

    ordered = buckets + [other]
    if keep_empty:
        return ordered
    return [bucket for bucket in ordered if bucket.count]


__all__ = [
    "FlatScore",
    "TypedScores",
    "mean_or_zero",
    "check_weights",
    "check_boundaries",
    "flatten_scores",
    "group_by_learner_class",
    "weighted_average",
    "compute_class_averages",
    "compute_learner_summaries",
    "classify_threshold",
    "bucket_distribution",
]
