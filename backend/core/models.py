import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from backend.core.errors import ConfigurationError


class ScoreType(str, Enum):
    EXAM = "exam"
    QUIZ = "quiz"
    HOMEWORK = "homework"


@dataclass(frozen=True)
class ScoreEntry:
    type: ScoreType
    score: float


@dataclass(frozen=True)
class LearnerRecord:
    """One learner's enrollment in one class."""
    learner_id: int
    class_id: int
    scores: Tuple[ScoreEntry, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class WeightConfig:
    exam: float = 0.5
    quiz: float = 0.3
    homework: float = 0.2

    def __post_init__(self):
        for name in ("exam", "quiz", "homework"):
            w = getattr(self, name)
            if not isinstance(w, (int, float)) or not math.isfinite(w) or w < 0:
                raise ConfigurationError(f"weight {name}={w!r} must be a finite number >= 0")
        total = self.exam + self.quiz + self.homework
        if not math.isclose(total, 1.0, abs_tol=1e-9):
            raise ConfigurationError(f"weights must sum to 1.0, got {total}")

    def for_type(self, score_type: ScoreType) -> float:
        return getattr(self, score_type.value)


DEFAULT_WEIGHTS = WeightConfig()


@dataclass(frozen=True)
class ClassAverageResult:
    class_id: int
    avg: float  # NaN when a weighted component had no scores


@dataclass(frozen=True)
class StatisticsResult:
    total_learners: int
    above_threshold_count: int
    above_threshold_percentage: float
    threshold: float = 70.0
    class_id: Optional[int] = None


@dataclass(frozen=True)
class NoData:
    """
    Returned instead of a result when there was nothing to compute over.
    Falsy, so callers can write `if not result:` to render a not-found answer
    without confusing it with a legitimate 0% result.
    """
    reason: str
    total_learners: int = 0
    above_threshold_percentage: Optional[float] = None

    def __bool__(self) -> bool:
        return False
