"""
This module contains the forest builder and the IsolationForest class that
implements an ensemble of isolation trees for robust anomaly detection.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Sequence
from typing import Any

import numpy as np
import numpy.typing as npt
from joblib import Parallel, delayed

from .classifier import AnomalyClassification, classify, labels_to_int
from .config import DEFAULT_NUM_TREES, DEFAULT_SAMPLING_SIZE, MAX_SEED
from .dataset import Dataset, MatrixLike, as_matrix
from .exceptions import InvalidInputError
from .scoring import normalizing_path_length
from .tree import IsolationTree

logger = logging.getLogger(__name__)


def _fit_single_tree(
    seed: int,
    Xs: npt.NDArray[np.floating[Any]],
    sampling_size: int,
    max_depth: int,
) -> IsolationTree:
    """
    Worker function to fit an isolation tree with a given seed.
    This function is designed to be called in parallel using joblib.
    Each worker receives an integer seed to ensure reproducibility.

    Args:
        seed: Random seed for this tree (integer).
        Xs: Training data of shape (n_samples, n_features).
        sampling_size: Number of rows to draw, without replacement.
        max_depth: Maximum depth of the tree.
    Returns:
        Fitted IsolationTree instance.
    """
    rng = np.random.default_rng(seed)

    n_rows = min(sampling_size, Xs.shape[0])
    subsample_indices = rng.choice(Xs.shape[0], size=n_rows, replace=False)

    return IsolationTree.build(Xs[subsample_indices], max_depth, rng)


def _score_single_tree(
    tree: IsolationTree,
    Xs: npt.NDArray[np.floating[Any]],
) -> npt.NDArray[np.floating[Any]]:
    """
    Worker function to score samples on a single tree.
    Args:
        tree: Fitted IsolationTree instance.
        Xs: Data samples of shape (n_samples, n_features).
    Returns:
        Path lengths for each sample of shape (n_samples,).
    """
    return tree.get_path_lengths(Xs)


def _check_count(value: Any, parameter: str, minimum: int = 1) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise InvalidInputError(parameter, f"expected an integer, got {type(value).__name__}")
    if value < minimum:
        raise InvalidInputError(parameter, f"must be >= {minimum}, got {value}")
    return int(value)


def _check_n_jobs(n_jobs: Any) -> int:
    if isinstance(n_jobs, bool) or not isinstance(n_jobs, (int, np.integer)):
        raise InvalidInputError("n_jobs", f"expected an integer, got {type(n_jobs).__name__}")
    if n_jobs == 0:
        raise InvalidInputError("n_jobs", "must be non-zero (use -1 for all processors)")
    return int(n_jobs)


def max_depth_for(sampling_size: int) -> int:
    """
    Depth at which random partitioning is expected to isolate every point of
    a sample: ceil(log2(sampling_size)). For 256 this gives 8.
    """
    return int(math.ceil(math.log2(sampling_size)))


class IsolationForest:
    """
    Ensemble of Isolation Trees for anomaly detection.

    Each tree is built on a random subsample of the data, and scores are
    made by averaging path lengths across all trees. Instances are created by
    build_forest() and never change afterwards.

    Attributes:
        trees: Tuple of fitted IsolationTree instances.
        max_depth: Depth limit shared by all trees.
        subsample_size: Configured sampling size, the default reference size.
        n_features: Number of features the forest was built on.
        feature_names: Column names of the training dataset, if any.
        n_jobs: Number of parallel jobs used for scoring. -1 means all processors.
    """

    def __init__(
        self,
        trees: Sequence[IsolationTree],
        max_depth: int,
        subsample_size: int,
        n_features: int,
        feature_names: Sequence[str] | None = None,
        n_jobs: int = 1,
    ) -> None:
        self._trees = tuple(trees)
        self._max_depth = max_depth
        self._subsample_size = subsample_size
        self._n_features = n_features
        self._feature_names = tuple(feature_names) if feature_names is not None else None
        self.n_jobs = n_jobs

    @property
    def trees(self) -> tuple[IsolationTree, ...]:
        return self._trees

    @property
    def ensemble_size(self) -> int:
        return len(self._trees)

    @property
    def max_depth(self) -> int:
        return self._max_depth

    @property
    def subsample_size(self) -> int:
        return self._subsample_size

    @property
    def n_features(self) -> int:
        return self._n_features

    @property
    def feature_names(self) -> tuple[str, ...] | None:
        return self._feature_names

    def __len__(self) -> int:
        return len(self._trees)

    def __repr__(self) -> str:
        return (
            f"IsolationForest(ensemble_size={self.ensemble_size}, "
            f"subsample_size={self.subsample_size}, max_depth={self.max_depth})"
        )

    def path_lengths(self, Xs: MatrixLike) -> npt.NDArray[np.floating[Any]]:
        """
        Args:
            Xs: Data samples of shape (n_samples, n_features).
        Returns:
            Path length of every sample in every tree, shape (n_samples, n_trees).
        """
        Xs = as_matrix(Xs, self.n_features)

        if self.n_jobs == 1:
            # Sequential execution
            depth_matrix = np.zeros((Xs.shape[0], len(self.trees)))
            for tree_idx, tree in enumerate(self.trees):
                depth_matrix[:, tree_idx] = tree.get_path_lengths(Xs)
        else:
            # Parallel execution using joblib
            depth_results = Parallel(n_jobs=self.n_jobs, backend="loky")(
                delayed(_score_single_tree)(tree, Xs) for tree in self.trees
            )
            depth_matrix = np.column_stack(list(depth_results))

        return depth_matrix

    def expected_path_lengths(self, Xs: MatrixLike) -> npt.NDArray[np.floating[Any]]:
        """Mean path length of each sample across all trees, shape (n_samples,)."""
        return np.mean(self.path_lengths(Xs), axis=1)

    def scores(
        self,
        Xs: MatrixLike,
        reference_size: int | None = None,
    ) -> npt.NDArray[np.floating[Any]]:
        """
        Anomaly scores are in (0, 1] where higher scores indicate anomalies.
        Args:
            Xs: Data samples of shape (n_samples, n_features).
            reference_size: Sample size c(n) is evaluated at. Defaults to the
                forest's subsample_size.
        Returns:
            Anomaly scores for each sample of shape (n_samples,).
        """
        if reference_size is None:
            reference_size = self.subsample_size
        # validated before any tree is walked
        expected_path_length = normalizing_path_length(reference_size)

        mean_depths = self.expected_path_lengths(Xs)
        scores_arr = 2.0 ** (-mean_depths / expected_path_length)

        logger.debug(
            "Scored %d samples against %d trees (reference_size=%d)",
            scores_arr.shape[0], self.ensemble_size, reference_size,
        )
        return scores_arr

    def anomaly_score(
        self,
        instance: npt.ArrayLike,
        reference_size: int | None = None,
    ) -> float:
        """
        Args:
            instance: Single data sample of shape (n_features,).
            reference_size: Sample size c(n) is evaluated at. Defaults to the
                forest's subsample_size.
        Returns:
            Anomaly score of the instance.
        """
        row = as_matrix(np.reshape(np.asarray(instance), (1, -1)), self.n_features, "instance")
        return float(self.scores(row, reference_size)[0])

    def classify_data(
        self,
        Xs: MatrixLike,
        threshold: float,
        reference_size: int | None = None,
    ) -> list[AnomalyClassification]:
        """
        Args:
            Xs: Data samples of shape (n_samples, n_features).
            threshold: Scores greater than or equal to this value are anomalies.
            reference_size: Sample size c(n) is evaluated at.
        Returns:
            One label per sample, aligned with the rows of Xs.
        """
        return classify(self.scores(Xs, reference_size), threshold)

    def predict(
        self,
        Xs: MatrixLike,
        threshold: float,
        reference_size: int | None = None,
    ) -> npt.NDArray[np.int_]:
        """
        Predict anomaly labels for samples.
        Args:
            Xs: Data samples of shape (n_samples, n_features).
            threshold: Scores greater than or equal to this value are anomalies.
            reference_size: Sample size c(n) is evaluated at.
        Returns:
            Binary labels (0=normal, 1=anomaly) of shape (n_samples,).
        """
        return labels_to_int(self.classify_data(Xs, threshold, reference_size))


def build_forest(
    data: MatrixLike,
    num_trees: int = DEFAULT_NUM_TREES,
    sampling_size: int = DEFAULT_SAMPLING_SIZE,
    *,
    random_state: int | np.random.Generator | None = None,
    n_jobs: int = 1,
) -> IsolationForest:
    """
    Creates multiple isolation trees, each built on a random subsample of the
    data drawn without replacement.

    Args:
        data: Training data of shape (n_samples, n_features).
        num_trees: Number of isolation trees to create in the ensemble.
        sampling_size: Number of rows drawn for each tree. If >= n_samples,
            every tree sees all rows. Also fixes the depth limit
            ceil(log2(sampling_size)).
        random_state: Seed or generator for reproducibility. If None, results
            will vary between runs. The same seed produces identical forests in
            both sequential (n_jobs=1) and parallel modes.
        n_jobs: Number of parallel jobs to run for tree building.
            - If 1 (default): sequential execution (no parallelization)
            - If -1: use all available processors
            - If > 1: use specified number of processors
    Returns:
        The built IsolationForest.
    """
    num_trees = _check_count(num_trees, "num_trees")
    sampling_size = _check_count(sampling_size, "sampling_size")
    n_jobs = _check_n_jobs(n_jobs)

    if isinstance(data, Dataset):
        Xs = data.rows
        feature_names = data.feature_names
    else:
        Xs = as_matrix(data, parameter="data")
        feature_names = None

    max_depth = max_depth_for(sampling_size)

    rng = np.random.default_rng(random_state)
    seeds = rng.integers(MAX_SEED, size=num_trees)

    logger.info(
        "Building %d isolation trees from %d samples x %d features "
        "(sampling_size=%d, max_depth=%d, n_jobs=%d)",
        num_trees, Xs.shape[0], Xs.shape[1], sampling_size, max_depth, n_jobs,
    )

    # Build trees in parallel or sequentially
    if n_jobs == 1:
        # Sequential execution
        trees = []
        for tree_idx, seed in enumerate(seeds):
            tree = _fit_single_tree(int(seed), Xs, sampling_size, max_depth)
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug(
                    "Tree %d/%d built: %d leaves, height %d",
                    tree_idx + 1, num_trees, len(tree.leaf_sizes()), tree.height(),
                )
            trees.append(tree)
    else:
        # Parallel execution using joblib
        trees_list = Parallel(n_jobs=n_jobs, backend="loky")(
            delayed(_fit_single_tree)(int(seed), Xs, sampling_size, max_depth)
            for seed in seeds
        )
        trees = list(trees_list)  # type: ignore[arg-type]

    return IsolationForest(
        trees=trees,
        max_depth=max_depth,
        subsample_size=sampling_size,
        n_features=int(Xs.shape[1]),
        feature_names=feature_names,
        n_jobs=n_jobs,
    )
