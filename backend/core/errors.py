import math
from typing import Any


class GradesError(Exception):
    """Base class for errors raised by the grades engine."""


class ConfigurationError(GradesError):
    """Bad weights, a non-finite threshold or an unusable setting."""


class RecordFormatError(GradesError):
    """A raw grades document could not be turned into a LearnerRecord."""


def validate_threshold(value: Any) -> float:
    try:
        thr = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"threshold must be a number, got {value!r}") from None
    if not math.isfinite(thr):
        raise ConfigurationError(f"threshold must be finite, got {value!r}")
    return thr
