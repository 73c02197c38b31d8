import logging
import math
from typing import Any, Dict, List, Protocol, Sequence

from backend.core.errors import RecordFormatError
from backend.core.models import LearnerRecord, ScoreEntry, ScoreType

logger = logging.getLogger(__name__)


class RecordSource(Protocol):
    def find_by_learner(self, learner_id: int) -> Sequence[LearnerRecord]:
        ...

    def find_by_class(self, class_id: int) -> Sequence[LearnerRecord]:
        ...

    def find_all(self) -> Sequence[LearnerRecord]:
        ...


def _parse_score(raw: Any) -> ScoreEntry:
    try:
        score_type = ScoreType(raw["type"])
    except (KeyError, TypeError):
        raise RecordFormatError(f"score entry without a type: {raw!r}") from None
    except ValueError:
        raise RecordFormatError(f"unknown score type {raw['type']!r}") from None
    score = raw.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        raise RecordFormatError(f"score must be a number, got {score!r}")
    if not math.isfinite(score):
        raise RecordFormatError(f"score must be finite, got {score!r}")
    return ScoreEntry(type=score_type, score=float(score))


def _parse_id(name: str, value: Any) -> int:
    # whole floats such as 101.0 are accepted, anything lossy is not
    if isinstance(value, bool):
        raise RecordFormatError(f"{name} must be an integer, got {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise RecordFormatError(f"{name} must be an integer, got {value!r}")


def parse_record(doc: Dict[str, Any]) -> LearnerRecord:
    """Build a LearnerRecord from a grades document. `student_id` is read as `learner_id`."""
    if not isinstance(doc, dict):
        raise RecordFormatError(f"expected an object, got {type(doc).__name__}")
    learner_id = doc.get("learner_id", doc.get("student_id"))
    class_id = doc.get("class_id")
    if learner_id is None or class_id is None:
        raise RecordFormatError("document needs both learner_id and class_id")
    raw_scores = doc.get("scores", [])
    if not isinstance(raw_scores, list):
        raise RecordFormatError(f"scores must be a list, got {type(raw_scores).__name__}")
    scores = tuple(_parse_score(s) for s in raw_scores)
    return LearnerRecord(
        learner_id=_parse_id("learner_id", learner_id),
        class_id=_parse_id("class_id", class_id),
        scores=scores,
    )


class JsonRecordSource:
    def __init__(self, grades_json: Any):
        self.records: List[LearnerRecord] = []
        for i, doc in enumerate(grades_json):
            try:
                self.records.append(parse_record(doc))
            except RecordFormatError as e:
                raise RecordFormatError(f"grades document #{i}: {e}") from e
        logger.info("loaded %d grade records", len(self.records))

    def find_by_learner(self, learner_id: int) -> List[LearnerRecord]:
        return [r for r in self.records if r.learner_id == learner_id]

    def find_by_class(self, class_id: int) -> List[LearnerRecord]:
        return [r for r in self.records if r.class_id == class_id]

    def find_all(self) -> List[LearnerRecord]:
        return list(self.records)
