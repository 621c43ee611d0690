import matplotlib

matplotlib.use("Agg")

import numpy as np
import pytest


@pytest.fixture
def gaussian_2d():
    rng = np.random.default_rng(7)
    return rng.normal(0.0, 1.0, size=(300, 2))


@pytest.fixture
def cluster_with_outliers():
    """500 points of a tight 2-D cluster followed by 10 points far outside it."""
    rng = np.random.default_rng(2024)
    cluster = rng.normal(0.0, 0.5, size=(500, 2))

    angles = np.linspace(0.0, 2.0 * np.pi, 10, endpoint=False)
    outliers = 10.0 * np.column_stack([np.cos(angles), np.sin(angles)])
    return np.vstack([cluster, outliers])
