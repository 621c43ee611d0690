"""
This module contains the Dataset class, the read-only numeric matrix that
the forest builder samples from, and the helpers that load one from
tabular sources.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path
from typing import Any, Union

import numpy as np
import numpy.typing as npt
import pandas as pd
from sklearn.utils.validation import check_array

from .exceptions import InvalidInputError

MatrixLike = Union["Dataset", npt.ArrayLike]


def _validated_matrix(X: Any, parameter: str) -> npt.NDArray[np.float64]:
    """
    Args:
        X: Anything numpy can turn into a 2-D numeric array.
        parameter: Name reported in the error when validation fails.
    Returns:
        A fresh float64 array of shape (n_samples, n_features).
    """
    try:
        return check_array(
            X,
            dtype=np.float64,
            copy=True,
            ensure_min_samples=1,
            ensure_min_features=1,
        )
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(parameter, str(exc)) from exc


class Dataset:
    """
    Immutable numeric matrix with optional column names.

    Rows are observations and columns are features. The matrix is copied on
    construction and flagged read-only, so samples and partitions taken from
    it are always new arrays.

    Attributes:
        rows: Read-only array of shape (n_samples, n_features).
        feature_names: Column names, or None.
        feature_index: Mapping from column name to column index.
    """

    def __init__(
        self,
        rows: npt.ArrayLike,
        feature_names: Sequence[str] | None = None,
    ) -> None:
        matrix = _validated_matrix(rows, "data")
        matrix.flags.writeable = False
        self._rows = matrix

        self._feature_names: tuple[str, ...] | None = None
        self._feature_index: dict[str, int] = {}
        if feature_names is not None:
            names = tuple(str(name) for name in feature_names)
            if len(names) != matrix.shape[1]:
                raise InvalidInputError(
                    "feature_names",
                    f"expected {matrix.shape[1]} names, got {len(names)}",
                )
            if len(set(names)) != len(names):
                raise InvalidInputError("feature_names", "names must be unique")
            self._feature_names = names
            self._feature_index = {name: idx for idx, name in enumerate(names)}

    @classmethod
    def from_frame(cls, frame: pd.DataFrame) -> Dataset:
        """Build a dataset from a DataFrame, keeping its column names."""
        return cls(frame.to_numpy(), feature_names=[str(c) for c in frame.columns])

    @classmethod
    def from_csv(
        cls,
        path: str | Path,
        index_col: int | str | None = None,
    ) -> Dataset:
        """
        Read a CSV file with a header row of feature names.
        Args:
            path: Location of the CSV file.
            index_col: Column holding row identifiers, dropped from the features.
        Returns:
            Dataset with one column per remaining CSV column.
        """
        try:
            frame = pd.read_csv(path, index_col=index_col)
        except (
            OSError,
            IndexError,
            ValueError,
            pd.errors.ParserError,
            pd.errors.EmptyDataError,
        ) as exc:
            raise InvalidInputError("data", f"cannot read {path}: {exc}") from exc
        return cls.from_frame(frame)

    @property
    def rows(self) -> npt.NDArray[np.float64]:
        return self._rows

    @property
    def feature_names(self) -> tuple[str, ...] | None:
        return self._feature_names

    @property
    def feature_index(self) -> Mapping[str, int]:
        return dict(self._feature_index)

    @property
    def n_samples(self) -> int:
        return int(self._rows.shape[0])

    @property
    def n_features(self) -> int:
        return int(self._rows.shape[1])

    @property
    def shape(self) -> tuple[int, int]:
        return self.n_samples, self.n_features

    def __len__(self) -> int:
        return self.n_samples

    def __repr__(self) -> str:
        return f"Dataset(n_samples={self.n_samples}, n_features={self.n_features})"

    def column(self, key: int | str) -> npt.NDArray[np.float64]:
        """
        Args:
            key: Column index or feature name.
        Returns:
            Read-only view of the column, shape (n_samples,).
        """
        if isinstance(key, str):
            if key not in self._feature_index:
                raise KeyError(key)
            key = self._feature_index[key]
        return self._rows[:, key]

    def take(self, indices: Iterable[int] | npt.NDArray[np.integer[Any]]) -> Dataset:
        """Return a new dataset holding the selected rows, in the given order."""
        if not isinstance(indices, np.ndarray):
            indices = list(indices)
        idx = np.asarray(indices, dtype=np.intp)
        return Dataset(self._rows[idx], feature_names=self._feature_names)


def as_matrix(
    X: MatrixLike,
    n_features: int | None = None,
    parameter: str = "X",
) -> npt.NDArray[np.float64]:
    """
    Convert a Dataset, array or nested list into a validated 2-D float matrix.
    Args:
        X: Samples to convert.
        n_features: Expected number of columns, checked when given.
        parameter: Name reported in the error when validation fails.
    Returns:
        Array of shape (n_samples, n_features).
    """
    matrix = X.rows if isinstance(X, Dataset) else _validated_matrix(X, parameter)

    if n_features is not None and matrix.shape[1] != n_features:
        raise InvalidInputError(
            parameter,
            f"expected {n_features} features, got {matrix.shape[1]}",
        )
    return matrix
