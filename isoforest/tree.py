"""
This module contains the isolation tree nodes, the recursive tree builder
and the IsolationTree class that scores samples by their isolation depth.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

import matplotlib.pyplot as plt
import numpy as np
import numpy.typing as npt

from .exceptions import InvalidInputError
from .scoring import average_path_length


@dataclass(frozen=True)
class SplitNode:
    """
    Internal node of an isolation tree.
    Attributes:
        idx_feature: Index of the feature used for splitting.
        split_threshold: Samples with x[idx_feature] <= split_threshold go left.
        left: Subtree holding the samples at or below the threshold.
        right: Subtree holding the samples above the threshold.
    """
    idx_feature: int
    split_threshold: float
    left: IsolationTreeNode
    right: IsolationTreeNode


@dataclass(frozen=True)
class LeafNode:
    """
    Terminal node of an isolation tree.
    Attributes:
        size: Number of sample rows that reached this node while building.
    """
    size: int


IsolationTreeNode = Union[SplitNode, LeafNode]


def build_isolation_tree(
    Xs: npt.NDArray[np.floating[Any]],
    current_depth: int,
    max_depth: int,
    rng: np.random.Generator,
) -> IsolationTreeNode:
    """
    Recursively partition the feature space using random splits.

    A random feature is chosen, then a random threshold between the minimum
    and maximum of that feature over the current samples. Recursion stops at
    max_depth or once at most one sample is left.

    Args:
        Xs: Samples reaching this node, shape (n_samples, n_features).
        current_depth: Depth of the node being built (root is 0).
        max_depth: Maximum depth to build the tree.
        rng: Random generator driving feature and threshold selection.
    Returns:
        Root of the subtree built from Xs.
    """
    n_samples = Xs.shape[0]
    if current_depth >= max_depth or n_samples <= 1:
        return LeafNode(size=int(n_samples))

    idx_feature = int(rng.integers(Xs.shape[1]))
    column = Xs[:, idx_feature]

    # A constant column gives threshold == constant and an empty right child
    split_threshold = float(rng.uniform(column.min(), column.max()))

    mask_lower = column <= split_threshold

    return SplitNode(
        idx_feature=idx_feature,
        split_threshold=split_threshold,
        left=build_isolation_tree(Xs[mask_lower], current_depth + 1, max_depth, rng),
        right=build_isolation_tree(Xs[~mask_lower], current_depth + 1, max_depth, rng),
    )


def get_path_lengths_batch(
    node: IsolationTreeNode,
    Xs: npt.NDArray[np.floating[Any]],
) -> npt.NDArray[np.floating[Any]]:
    """
    Args:
        node: Subtree to route the samples through.
        Xs: Data samples of shape (n_samples, n_features).
    Returns:
        Path lengths for each sample of shape (n_samples,), leaf correction included.
    """
    n_samples = Xs.shape[0]

    if isinstance(node, LeafNode):
        return np.full(n_samples, average_path_length(node.size), dtype=np.float64)

    path_lengths = np.zeros(n_samples, dtype=np.float64)
    mask_lower = Xs[:, node.idx_feature] <= node.split_threshold

    if np.any(mask_lower):
        path_lengths[mask_lower] = 1 + get_path_lengths_batch(node.left, Xs[mask_lower])

    if np.any(~mask_lower):
        path_lengths[~mask_lower] = 1 + get_path_lengths_batch(node.right, Xs[~mask_lower])

    return path_lengths


class IsolationTree:
    """
    Single isolation tree built from one subsample.
    Attributes:
        root: Root node of the tree.
        max_depth: Depth limit used while building.
        n_samples: Number of rows the tree was built from.
        feature_limits: [min, max] of each feature over the sample, padded.
        PADDING: Padding added to feature limits for plotting.
    """

    PADDING = 1.0

    def __init__(
        self,
        root: IsolationTreeNode,
        max_depth: int,
        n_samples: int,
        feature_limits: list[list[float]],
    ) -> None:
        self.root = root
        self.max_depth = max_depth
        self.n_samples = n_samples
        self.feature_limits = feature_limits

    @classmethod
    def build(
        cls,
        Xs: npt.NDArray[np.floating[Any]],
        max_depth: int,
        rng: np.random.Generator,
    ) -> IsolationTree:
        """
        Args:
            Xs: Subsample to build from, shape (n_samples, n_features), non-empty.
            max_depth: Maximum depth to build the tree.
            rng: Random generator driving the splits.
        Returns:
            The built IsolationTree.
        """
        assert Xs.ndim == 2 and Xs.shape[0] > 0

        mins = np.min(Xs, axis=0) - cls.PADDING
        maxs = np.max(Xs, axis=0) + cls.PADDING
        feature_limits = [[float(mins[i]), float(maxs[i])] for i in range(len(mins))]

        root = build_isolation_tree(Xs, 0, max_depth, rng)
        return cls(
            root=root,
            max_depth=max_depth,
            n_samples=int(Xs.shape[0]),
            feature_limits=feature_limits,
        )

    def get_path_lengths(self, Xs: npt.NDArray[np.floating[Any]]) -> npt.NDArray[np.floating[Any]]:
        """
        Args:
            Xs: Data samples of shape (n_samples, n_features).
        Returns:
            Path lengths for each sample of shape (n_samples,).
        """
        return get_path_lengths_batch(self.root, Xs)

    def get_path_length(self, X: npt.NDArray[np.floating[Any]]) -> float:
        """
        Args:
            X: Single data sample of shape (n_features,).
        Returns:
            Number of edges to the leaf reached by X plus c(leaf size).
        """
        node = self.root
        depth = 0
        while isinstance(node, SplitNode):
            node = node.left if X[node.idx_feature] <= node.split_threshold else node.right
            depth += 1
        return depth + average_path_length(node.size)

    def leaf_depths(self) -> list[tuple[int, int]]:
        """Return (depth, size) for every leaf, left to right."""
        leaves = []
        stack: list[tuple[IsolationTreeNode, int]] = [(self.root, 0)]
        while stack:
            node, depth = stack.pop()
            if isinstance(node, LeafNode):
                leaves.append((depth, node.size))
            else:
                stack.append((node.right, depth + 1))
                stack.append((node.left, depth + 1))
        return leaves

    def leaf_sizes(self) -> list[int]:
        return [size for _, size in self.leaf_depths()]

    def height(self) -> int:
        return max(depth for depth, _ in self.leaf_depths())

    def plot_partition_space_2D(
        self,
        Xs: npt.NDArray[np.floating[Any]] | None = None,
        ax: Any = None,
        show: bool = True,
    ) -> Any:
        """
        Visualize the 2D space partitioning created by this tree.
        Only works for 2D data.
        Args:
            Xs: Optional samples scattered under the split lines.
            ax: Matplotlib axes to draw on; the current axes when None.
            show: Whether to call plt.show() once drawn.
        Returns:
            The axes drawn on.
        """
        if len(self.feature_limits) != 2:
            raise InvalidInputError(
                "feature_limits",
                f"partition plots need 2 features, tree has {len(self.feature_limits)}",
            )
        if ax is None:
            ax = plt.gca()

        (x_min, x_max), (y_min, y_max) = self.feature_limits

        ax.set_title("Space Partition Isolation Tree")
        ax.set_xlabel("X")
        ax.set_ylabel("Y")

        ax.plot([x_min, x_max], [y_min, y_min], c="gray")
        ax.plot([x_min, x_max], [y_max, y_max], c="gray")
        ax.plot([x_min, x_min], [y_min, y_max], c="gray")
        ax.plot([x_max, x_max], [y_min, y_max], c="gray")

        _plot_partition_lines(ax, self.root, [list(lim) for lim in self.feature_limits])

        if Xs is not None:
            ax.scatter(Xs[:, 0], Xs[:, 1], c="lightgray", s=5)

        if show:
            plt.show()
        return ax


def _plot_partition_lines(ax: Any, node: IsolationTreeNode, limits: list[list[float]]) -> None:
    """
    Plots vertical/horizontal lines for each split, clipped to the region of the node.
    """
    if isinstance(node, LeafNode):
        return

    threshold = node.split_threshold
    if node.idx_feature == 0:
        ax.plot([threshold, threshold], limits[1], c="gray")
    else:
        ax.plot(limits[0], [threshold, threshold], c="gray")

    limits_lower = [list(lim) for lim in limits]
    limits_lower[node.idx_feature][1] = threshold

    limits_upper = [list(lim) for lim in limits]
    limits_upper[node.idx_feature][0] = threshold

    _plot_partition_lines(ax, node.left, limits_lower)
    _plot_partition_lines(ax, node.right, limits_upper)
