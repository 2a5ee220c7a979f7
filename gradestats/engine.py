"""Result assembly for global and class-scoped statistics requests."""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from . import aggregations, schemas
from .data_source import ScoreSource, filter_by_class
from .errors import NotFound
from .settings import StatsSettings, validate_settings

logger = logging.getLogger(__name__)


def _present_percentage(value: float, decimals: Optional[int]) -> float:
    if decimals is None:
        return value
    return round(value, decimals)


def assemble_global_stats(
    records: Sequence[schemas.ScoreRecord],
    settings: Optional[StatsSettings] = None,
) -> schemas.StatsResult:
    """Roll every learner up across classes and summarise the overall averages."""
    settings = settings or StatsSettings()
    mode = settings.global_mode

    class_averages = aggregations.compute_class_averages(records, settings.weights)
    learners = aggregations.compute_learner_summaries(class_averages, mode.threshold)
    classified = aggregations.classify_threshold((s.overall_avg for s in learners), mode.threshold)
    distribution = aggregations.bucket_distribution(
        ((s.learner_id, s.overall_avg) for s in learners),
        mode.boundaries,
        member_limit=mode.member_limit,
        keep_empty=mode.keep_empty_buckets,
    )
    sample: List[schemas.LearnerSummary] = learners
    if mode.sample_size is not None:
        sample = learners[: mode.sample_size]

    return schemas.StatsResult(
        mode="global",
        threshold=mode.threshold,
        total_entities=classified.total_count,
        entities_above_threshold=classified.above_count,
        percentage_above_threshold=_present_percentage(classified.percentage, mode.percentage_decimals),
        distribution=distribution,
        sample_learners=sample,
    )


def assemble_class_stats(
    records: Sequence[schemas.ScoreRecord],
    class_id: int,
    settings: Optional[StatsSettings] = None,
) -> schemas.StatsResult:
    """Summarise the weighted averages of every learner in one class.

    Raises ``NotFound`` when no record belongs to ``class_id``.
    """
    settings = settings or StatsSettings()
    mode = settings.class_mode

    scoped = filter_by_class(records, class_id)
    if not scoped:
        raise NotFound(class_id)

    class_averages = aggregations.compute_class_averages(scoped, settings.weights)
    classified = aggregations.classify_threshold((c.weighted_avg for c in class_averages), mode.threshold)
    distribution = aggregations.bucket_distribution(
        ((c.learner_id, c.weighted_avg) for c in class_averages),
        mode.boundaries,
        member_limit=mode.member_limit,
        keep_empty=mode.keep_empty_buckets,
    )
    learner_scores = class_averages
    if mode.sample_size is not None:
        learner_scores = class_averages[: mode.sample_size]

    return schemas.StatsResult(
        mode="class",
        class_id=class_id,
        threshold=mode.threshold,
        total_entities=classified.total_count,
        entities_above_threshold=classified.above_count,
        percentage_above_threshold=_present_percentage(classified.percentage, mode.percentage_decimals),
        distribution=distribution,
        learner_scores=learner_scores,
    )


class StatsEngine:
    """Runs statistics requests against a score source.

    Each request awaits a single fetch and computes over its own snapshot, so
    concurrent requests never share mutable state.
    """

    def __init__(self, source: ScoreSource, settings: Optional[StatsSettings] = None) -> None:
        self.source = source
        self.settings = validate_settings(settings or StatsSettings())

    async def compute_global_stats(self) -> schemas.StatsResult:
        records = await self.source.fetch_score_records()
        result = assemble_global_stats(records, self.settings)
        logger.info(
            "Global stats: %d learners, %d above %s",
            result.total_entities,
            result.entities_above_threshold,
            result.threshold,
        )
        return result

    async def compute_class_stats(self, class_id: int) -> schemas.StatsResult:
        records = await self.source.fetch_score_records(class_id=class_id)
        result = assemble_class_stats(records, class_id, self.settings)
        logger.info(
            "Class %d stats: %d learners, %d above %s",
            class_id,
            result.total_entities,
            result.entities_above_threshold,
            result.threshold,
        )
        return result


__all__ = ["StatsEngine", "assemble_global_stats", "assemble_class_stats"]
