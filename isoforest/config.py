"""
Defaults shared by the forest builder, the scorer and the command line driver.
"""

from __future__ import annotations

import os

import numpy as np

from .exceptions import InvalidInputError

DEFAULT_NUM_TREES = 100
DEFAULT_SAMPLING_SIZE = 256

# Euler-Mascheroni constant used by the harmonic number approximation
EULER_GAMMA = 0.5772156649

# Upper bound (exclusive) for the per-tree seeds
MAX_SEED = int(np.iinfo(np.int32).max)


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise InvalidInputError(name, f"expected an integer, got {raw!r}") from exc


class Settings:
    """
    Environment-backed defaults for the command line driver.

    Fields:
      - LOG_LEVEL: logging level name (ISOFOREST_LOG_LEVEL)
      - NUM_TREES: ensemble size (ISOFOREST_NUM_TREES)
      - SAMPLING_SIZE: rows drawn per tree (ISOFOREST_SAMPLING_SIZE)
      - N_JOBS: joblib workers used to build and score (ISOFOREST_N_JOBS)
    """

    def __init__(self) -> None:
        self.LOG_LEVEL: str = os.getenv("ISOFOREST_LOG_LEVEL", "WARNING").upper()
        if self.LOG_LEVEL not in LOG_LEVELS:
            raise InvalidInputError(
                "ISOFOREST_LOG_LEVEL",
                f"expected one of {', '.join(LOG_LEVELS)}, got {self.LOG_LEVEL!r}",
            )
        self.NUM_TREES: int = _env_int("ISOFOREST_NUM_TREES", DEFAULT_NUM_TREES)
        self.SAMPLING_SIZE: int = _env_int("ISOFOREST_SAMPLING_SIZE", DEFAULT_SAMPLING_SIZE)
        self.N_JOBS: int = _env_int("ISOFOREST_N_JOBS", 1)


def get_settings() -> Settings:
    return Settings()
