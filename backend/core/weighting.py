from typing import Dict, Iterable, List, Sequence

from backend.core.models import LearnerRecord, ScoreType, WeightConfig

ScoreBuckets = Dict[ScoreType, List[float]]


def mean(values: Sequence[float]) -> float:
    # no scores -> unknown, never zero
    if not values:
        return float("nan")
    return sum(values) / len(values)


def group_scores_by_class(records: Iterable[LearnerRecord]) -> Dict[int, ScoreBuckets]:
    """
    Flatten every record's scores and bucket them per class and per score type.
    Classes keep the order in which they were first seen; every class gets all
    three buckets, empty ones included.
    """
    groups: Dict[int, ScoreBuckets] = {}
    for rec in records:
        buckets = groups.get(rec.class_id)
        if buckets is None:
            buckets = {t: [] for t in ScoreType}
            groups[rec.class_id] = buckets
        for entry in rec.scores:
            buckets[entry.type].append(float(entry.score))
    return groups


def weighted_sum(buckets: ScoreBuckets, weights: WeightConfig) -> float:
    total = 0.0
    for score_type in ScoreType:
        total += mean(buckets.get(score_type, [])) * weights.for_type(score_type)
    return total
