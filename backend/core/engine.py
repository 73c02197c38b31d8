import logging
from typing import List, Optional, Sequence, Union

from backend.core.errors import validate_threshold
from backend.core.models import (
    DEFAULT_WEIGHTS,
    ClassAverageResult,
    LearnerRecord,
    NoData,
    StatisticsResult,
    WeightConfig,
)
from backend.core.repositories import RecordSource
from backend.core.weighting import group_scores_by_class, mean, weighted_sum

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 70.0


def compute_class_averages(
    learner_id: int,
    records: Sequence[LearnerRecord],
    weights: WeightConfig = DEFAULT_WEIGHTS,
) -> Union[List[ClassAverageResult], NoData]:
    """
    Weighted average per class for one learner.

    `records` are expected to be already filtered to `learner_id`; whatever is
    passed in gets aggregated. A class missing one of the score types ends up
    with a NaN average.
    """
    if not records:
        return NoData(reason=f"no records for learner {learner_id}")

    groups = group_scores_by_class(records)
    return [
        ClassAverageResult(class_id=class_id, avg=weighted_sum(buckets, weights))
        for class_id, buckets in groups.items()
    ]


def compute_statistics(
    records: Sequence[LearnerRecord],
    threshold: float = DEFAULT_THRESHOLD,
    class_filter: Optional[int] = None,
) -> Union[StatisticsResult, NoData]:
    """
    Count the records whose flat score mean is strictly above `threshold`.

    Every record is its own unit: a learner enrolled in two classes counts twice.
    The mean is taken over all scores regardless of type (no type weighting).
    """
    if class_filter is not None:
        records = [r for r in records if r.class_id == class_filter]

    total = len(records)
    if total == 0:
        if class_filter is not None:
            return NoData(reason=f"no records for class {class_filter}")
        return NoData(reason="no records")

    above = 0
    for rec in records:
        # NaN (record without scores) never compares greater
        if mean([e.score for e in rec.scores]) > threshold:
            above += 1

    return StatisticsResult(
        total_learners=total,
        above_threshold_count=above,
        above_threshold_percentage=above / total * 100,
        threshold=threshold,
        class_id=class_filter,
    )


class GradesEngine:
    def __init__(
        self,
        repo: RecordSource,
        weights: WeightConfig = DEFAULT_WEIGHTS,
        threshold: float = DEFAULT_THRESHOLD,
    ):
        self.repo = repo
        self.weights = weights
        self.threshold = validate_threshold(threshold)

    def _threshold(self, override: Optional[float]) -> float:
        if override is None:
            return self.threshold
        return validate_threshold(override)

    def learner_class_averages(self, learner_id: int) -> Union[List[ClassAverageResult], NoData]:
        records = self.repo.find_by_learner(learner_id)
        result = compute_class_averages(learner_id, records, self.weights)
        logger.debug("learner %s: %d records -> %s", learner_id, len(records), result)
        return result

    def statistics(self, threshold: Optional[float] = None) -> Union[StatisticsResult, NoData]:
        thr = self._threshold(threshold)
        result = compute_statistics(self.repo.find_all(), thr)
        logger.debug("statistics (threshold=%s): %s", thr, result)
        return result

    def class_statistics(self, class_id: int, threshold: Optional[float] = None) -> Union[StatisticsResult, NoData]:
        thr = self._threshold(threshold)
        result = compute_statistics(self.repo.find_by_class(class_id), thr, class_id)
        logger.debug("class %s statistics (threshold=%s): %s", class_id, thr, result)
        return result
