"""
Turning anomaly scores into ANOMALY / NORMAL labels.
"""

from __future__ import annotations

import enum
import math
from collections.abc import Iterable, Sequence
from typing import Any

import numpy as np
import numpy.typing as npt

from .exceptions import InvalidInputError


class AnomalyClassification(enum.Enum):
    ANOMALY = "ANOMALY"
    NORMAL = "NORMAL"

    def __str__(self) -> str:
        return self.value


def _check_threshold(threshold: float) -> float:
    try:
        value = float(threshold)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError("threshold", f"expected a number, got {threshold!r}") from exc
    if not math.isfinite(value):
        raise InvalidInputError("threshold", f"must be finite, got {value}")
    return value


def classify(
    scores: Iterable[float] | npt.NDArray[np.floating[Any]],
    threshold: float,
) -> list[AnomalyClassification]:
    """
    Args:
        scores: Anomaly scores, one per sample.
        threshold: Scores greater than or equal to this value are anomalies.
    Returns:
        One label per score, in the same order.
    """
    threshold = _check_threshold(threshold)
    return [
        AnomalyClassification.ANOMALY if score >= threshold else AnomalyClassification.NORMAL
        for score in np.asarray(scores, dtype=np.float64).ravel()
    ]


def labels_to_int(labels: Sequence[AnomalyClassification]) -> npt.NDArray[np.int_]:
    """Binary labels (0=normal, 1=anomaly)."""
    return np.array(
        [1 if label is AnomalyClassification.ANOMALY else 0 for label in labels],
        dtype=int,
    )


def threshold_for_contamination(
    scores: npt.ArrayLike,
    contamination: float,
) -> float:
    """
    Score threshold that flags the top `contamination` fraction of the scores.
    Args:
        scores: Anomaly scores of a reference set, usually the training data.
        contamination: Expected proportion of anomalies (between 0 and 1).
    Returns:
        The (1 - contamination) quantile of the scores.
    """
    try:
        contamination = float(contamination)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(
            "contamination", f"expected a number, got {contamination!r}"
        ) from exc
    if not 0.0 < contamination < 1.0:
        raise InvalidInputError(
            "contamination", f"must be between 0 and 1 (exclusive), got {contamination}"
        )
    scores_arr = np.asarray(scores, dtype=np.float64)
    if scores_arr.size == 0:
        raise InvalidInputError("scores", "at least one score is required")
    return float(np.quantile(scores_arr, 1.0 - contamination))
