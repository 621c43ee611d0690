"""
Average path length correction c(n) and the mapping from expected path
lengths to anomaly scores.
"""

from __future__ import annotations

from typing import Any, overload

import numpy as np
import numpy.typing as npt

from .config import EULER_GAMMA
from .exceptions import InvalidInputError


def harmonic_number(x: npt.ArrayLike) -> Any:
    """H(x) ~= ln(x) + gamma."""
    return np.log(x) + EULER_GAMMA


@overload
def average_path_length(n: int | float) -> float: ...


@overload
def average_path_length(n: npt.NDArray[Any]) -> npt.NDArray[np.float64]: ...


def average_path_length(n: Any) -> Any:
    """
    Expected path length of an unsuccessful search in a binary search tree
    built from n points:

        c(n) = 2 * H(n - 1) - 2 * (n - 1) / n   for n >= 2
        c(n) = 0                                for n in {0, 1}

    It estimates the depth still needed to isolate the points left in a leaf,
    and normalizes expected path lengths into scores.

    Args:
        n: Sample size, scalar or array of sizes.
    Returns:
        c(n) with the same shape as n (a float for scalar input).
    """
    n_arr = np.asarray(n, dtype=np.float64)
    safe = np.maximum(n_arr, 2.0)
    values = 2.0 * (harmonic_number(safe - 1.0) - (safe - 1.0) / safe)
    result = np.where(n_arr >= 2.0, values, 0.0)

    if result.ndim == 0:
        return float(result)
    return result


def normalizing_path_length(reference_size: int) -> float:
    """
    Args:
        reference_size: Sample size the scores are normalized against (>= 2).
    Returns:
        c(reference_size), always > 0.
    """
    if isinstance(reference_size, bool) or not isinstance(reference_size, (int, np.integer)):
        raise InvalidInputError(
            "reference_size", f"expected an integer, got {type(reference_size).__name__}"
        )
    if reference_size < 2:
        raise InvalidInputError(
            "reference_size", f"must be >= 2, got {reference_size}"
        )
    return average_path_length(int(reference_size))


def anomaly_scores(
    mean_path_lengths: npt.ArrayLike,
    reference_size: int,
) -> npt.NDArray[np.float64]:
    """
    Based on the formula: 2^(-E[h(x)] / c(reference_size)).
    Scores close to 1 are anomalies, scores around 0.5 are normal points and
    scores well below 0.5 sit deep inside dense regions.

    Args:
        mean_path_lengths: Expected path length of each sample.
        reference_size: Sample size used for normalization.
    Returns:
        Anomaly scores in (0, 1].
    """
    expected_path_length = normalizing_path_length(reference_size)
    depths = np.asarray(mean_path_lengths, dtype=np.float64)
    return 2.0 ** (-depths / expected_path_length)
