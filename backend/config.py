import logging
import os
from functools import lru_cache

from dotenv import load_dotenv, find_dotenv

from backend.core.errors import ConfigurationError, validate_threshold
from backend.core.models import WeightConfig

_env_path = find_dotenv(".env") or ".env"
load_dotenv(_env_path)

PROJECT_ROOT = os.path.dirname(os.path.dirname(__file__))


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from None


class Settings:
    """Central configuration (env driven)."""

    def __init__(self) -> None:
        self.data_dir: str = os.getenv("GRADES_DATA_DIR") or os.path.join(PROJECT_ROOT, "data", "grades")
        # WeightConfig raises ConfigurationError when the weights don't add up to 1.0
        self.weights: WeightConfig = WeightConfig(
            exam=_float_env("GRADES_WEIGHT_EXAM", 0.5),
            quiz=_float_env("GRADES_WEIGHT_QUIZ", 0.3),
            homework=_float_env("GRADES_WEIGHT_HOMEWORK", 0.2),
        )
        self.threshold: float = validate_threshold(_float_env("GRADES_STATS_THRESHOLD", 70.0))
        self.log_level: str = os.getenv("GRADES_LOG_LEVEL", "INFO").upper()
        self.port: int = _int_env("PORT", 5050)

    @property
    def numeric_log_level(self) -> int:
        level = logging.getLevelName(self.log_level)
        return level if isinstance(level, int) else logging.INFO


@lru_cache()
def get_settings() -> Settings:
    return Settings()
