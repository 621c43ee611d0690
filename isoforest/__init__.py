"""Isolation Forest implementation for anomaly detection.

This package provides the standard Isolation Forest algorithm using random
partitioning of the feature space:
- dataset: read-only numeric matrix with optional column names
- tree: isolation tree nodes and the recursive tree builder
- forest: forest builder and ensemble scoring
- classifier: score thresholds and ANOMALY / NORMAL labels
"""

from .classifier import (
    AnomalyClassification,
    classify,
    labels_to_int,
    threshold_for_contamination,
)
from .config import DEFAULT_NUM_TREES, DEFAULT_SAMPLING_SIZE
from .dataset import Dataset, as_matrix
from .exceptions import InvalidInputError, IsolationForestError
from .forest import IsolationForest, build_forest, max_depth_for
from .scoring import anomaly_scores, average_path_length, harmonic_number
from .tree import (
    IsolationTree,
    IsolationTreeNode,
    LeafNode,
    SplitNode,
    build_isolation_tree,
)

__version__ = "0.1.0"

__all__ = [
    "AnomalyClassification",
    "DEFAULT_NUM_TREES",
    "DEFAULT_SAMPLING_SIZE",
    "Dataset",
    "InvalidInputError",
    "IsolationForest",
    "IsolationForestError",
    "IsolationTree",
    "IsolationTreeNode",
    "LeafNode",
    "SplitNode",
    "anomaly_scores",
    "as_matrix",
    "average_path_length",
    "build_forest",
    "build_isolation_tree",
    "classify",
    "harmonic_number",
    "labels_to_int",
    "max_depth_for",
    "threshold_for_contamination",
]
