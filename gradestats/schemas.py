"""Pydantic schemas shared across the statistics engine."""

from __future__ import annotations

from enum import Enum
from typing import Any, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class ScoreType(str, Enum):
    QUIZ = "quiz"
    EXAM = "exam"
    HOMEWORK = "homework"

    @classmethod
    def parse(cls, value: object) -> Optional["ScoreType"]:
        """Return the matching member, or ``None`` for unrecognised types."""
        try:
            return cls(value)
        except (ValueError, TypeError):
            return None


class ScoreEntry(BaseModel):
    # Stored entries may carry any type value; only ScoreType members are averaged.
    type: Any = None
    # Missing or non-numeric scores become None and are skipped the way $avg skips them.
    score: Optional[float] = None

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("score", mode="before")
    @classmethod
    def _numeric_or_none(cls, value: object) -> Optional[float]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return None
        return float(value)


class ScoreRecord(BaseModel):
    learner_id: int
    class_id: int
    scores: List[ScoreEntry] = Field(default_factory=list)

    # Stored documents carry extra keys such as Mongo's ``_id``.
    model_config = ConfigDict(frozen=True, extra="ignore")


class ClassAverage(BaseModel):
    learner_id: int
    class_id: int
    weighted_avg: float

    model_config = ConfigDict(frozen=True)


class LearnerSummary(BaseModel):
    learner_id: int
    avg_per_class: List[float] = Field(default_factory=list)
    overall_avg: float = 0.0
    above_threshold: bool = False

    model_config = ConfigDict(frozen=True)


class Bucket(BaseModel):
    key: str
    lower_bound: Optional[float] = None
    upper_bound: Optional[float] = None
    count: int = 0
    members: List[int] = Field(default_factory=list)


class ThresholdSummary(BaseModel):
    above_count: int = 0
    total_count: int = 0
    percentage: float = 0.0


class StatsResult(BaseModel):
    mode: Literal["global", "class"]
    class_id: Optional[int] = None
    threshold: float
    total_entities: int = 0
    entities_above_threshold: int = 0
    percentage_above_threshold: float = 0.0
    distribution: List[Bucket] = Field(default_factory=list)
    sample_learners: List[LearnerSummary] = Field(default_factory=list)
    learner_scores: List[ClassAverage] = Field(default_factory=list)


class ScoreWeights(BaseModel):
    exam: float = 0.5
    quiz: float = 0.3
    homework: float = 0.2

    model_config = ConfigDict(frozen=True)

    def total(self) -> float:
        return self.exam + self.quiz + self.homework


class ModeSettings(BaseModel):
    threshold: float
    boundaries: List[float]
    sample_size: Optional[int] = Field(default=None, ge=0)
    member_limit: Optional[int] = Field(default=None, ge=0)
    percentage_decimals: Optional[int] = Field(default=None, ge=0)
    keep_empty_buckets: bool = False


def default_global_mode() -> ModeSettings:
    return ModeSettings(threshold=50.0, boundaries=[0, 20, 40, 60, 80, 100], sample_size=100)


def default_class_mode() -> ModeSettings:
    return ModeSettings(threshold=70.0, boundaries=[0, 60, 70, 80, 90, 100], percentage_decimals=2)
