import numpy as np
import pytest

from isoforest import (
    AnomalyClassification,
    Dataset,
    InvalidInputError,
    IsolationTree,
    build_forest,
    max_depth_for,
    threshold_for_contamination,
)


def test_forest_has_requested_number_of_trees(gaussian_2d):
    forest = build_forest(gaussian_2d, num_trees=25, sampling_size=64, random_state=0)

    assert forest.ensemble_size == 25
    assert len(forest.trees) == 25
    for tree in forest.trees:
        assert sum(tree.leaf_sizes()) == 64
        assert tree.height() <= forest.max_depth


def test_sampling_size_larger_than_data_uses_every_row():
    Xs = np.random.default_rng(1).normal(size=(40, 3))
    forest = build_forest(Xs, num_trees=5, sampling_size=256, random_state=1)

    assert forest.subsample_size == 256
    assert forest.max_depth == 8
    for tree in forest.trees:
        assert tree.n_samples == 40
        assert sum(tree.leaf_sizes()) == 40


@pytest.mark.parametrize(
    "sampling_size, expected",
    [(1, 0), (2, 1), (3, 2), (128, 7), (256, 8), (257, 9)],
)
def test_max_depth_from_sampling_size(sampling_size, expected):
    assert max_depth_for(sampling_size) == expected


def test_same_seed_gives_identical_scores(gaussian_2d):
    forest_a = build_forest(gaussian_2d, num_trees=20, sampling_size=64, random_state=123)
    forest_b = build_forest(gaussian_2d, num_trees=20, sampling_size=64, random_state=123)

    np.testing.assert_array_equal(forest_a.scores(gaussian_2d), forest_b.scores(gaussian_2d))
    for tree_a, tree_b in zip(forest_a.trees, forest_b.trees):
        assert tree_a.root == tree_b.root


def test_generator_can_be_injected(gaussian_2d):
    forest_a = build_forest(gaussian_2d, 10, 32, random_state=np.random.default_rng(5))
    forest_b = build_forest(gaussian_2d, 10, 32, random_state=np.random.default_rng(5))

    assert [t.root for t in forest_a.trees] == [t.root for t in forest_b.trees]


def test_scores_are_in_unit_interval(gaussian_2d):
    forest = build_forest(gaussian_2d, num_trees=30, sampling_size=64, random_state=2)
    queries = np.vstack([gaussian_2d, [[50.0, -50.0], [0.0, 0.0], [1e6, 1e6]]])

    scores = forest.scores(queries)

    assert scores.shape == (queries.shape[0],)
    assert np.all(scores > 0.0)
    assert np.all(scores <= 1.0)


def test_far_instances_score_higher_than_typical_ones(gaussian_2d):
    for seed in range(5):
        forest = build_forest(gaussian_2d, num_trees=50, sampling_size=128, random_state=seed)

        outlier_depth = forest.expected_path_lengths([[8.0, 8.0]])[0]
        typical_depth = forest.expected_path_lengths([[0.0, 0.0]])[0]

        assert outlier_depth < typical_depth
        assert forest.anomaly_score([8.0, 8.0]) > forest.anomaly_score([0.0, 0.0])


def test_cluster_with_outliers_scenario(cluster_with_outliers):
    forest = build_forest(cluster_with_outliers, num_trees=50, sampling_size=128, random_state=42)
    scores = forest.scores(cluster_with_outliers)

    threshold = threshold_for_contamination(scores, 0.02)
    labels = forest.predict(cluster_with_outliers, threshold)

    assert labels[500:].sum() >= 8
    assert labels[:500].sum() <= 25


def test_constant_feature_gives_finite_scores():
    rng = np.random.default_rng(17)
    Xs = np.column_stack([rng.normal(size=200), np.full(200, -2.5), rng.normal(size=200)])

    forest = build_forest(Xs, num_trees=30, sampling_size=64, random_state=17)
    scores = forest.scores(Xs)

    assert np.all(np.isfinite(scores))
    assert np.all((scores > 0.0) & (scores <= 1.0))


def test_anomaly_score_matches_batch_scores(gaussian_2d):
    forest = build_forest(gaussian_2d, num_trees=15, sampling_size=64, random_state=9)
    batch = forest.scores(gaussian_2d[:10])

    for X, expected in zip(gaussian_2d[:10], batch):
        assert forest.anomaly_score(X) == pytest.approx(expected)


def test_reference_size_changes_normalization(gaussian_2d):
    forest = build_forest(gaussian_2d, num_trees=15, sampling_size=64, random_state=9)

    default_scores = forest.scores(gaussian_2d)
    np.testing.assert_allclose(default_scores, forest.scores(gaussian_2d, reference_size=64))

    # a larger reference size gives a larger c(n) and therefore larger scores
    assert np.all(
        forest.scores(gaussian_2d, reference_size=512) > forest.scores(gaussian_2d, reference_size=16)
    )


def test_reference_size_must_be_at_least_two(gaussian_2d):
    forest = build_forest(gaussian_2d, num_trees=3, sampling_size=1, random_state=0)

    with pytest.raises(InvalidInputError) as excinfo:
        forest.scores(gaussian_2d)
    assert excinfo.value.parameter == "reference_size"

    scores = forest.scores(gaussian_2d, reference_size=256)
    assert np.all(np.isfinite(scores))


def test_dataset_input_keeps_feature_names(gaussian_2d):
    dataset = Dataset(gaussian_2d, feature_names=["x", "y"])
    forest = build_forest(dataset, num_trees=5, sampling_size=32, random_state=3)

    assert forest.feature_names == ("x", "y")
    assert forest.n_features == 2
    np.testing.assert_array_equal(forest.scores(dataset), forest.scores(gaussian_2d))


def test_classify_data_aligns_with_rows(gaussian_2d):
    forest = build_forest(gaussian_2d, num_trees=20, sampling_size=64, random_state=4)
    queries = np.array([[0.0, 0.0], [40.0, 40.0]])

    scores = forest.scores(queries)
    assert scores[1] > scores[0]

    threshold = float(scores.mean())
    labels = forest.classify_data(queries, threshold)

    assert labels == [AnomalyClassification.NORMAL, AnomalyClassification.ANOMALY]
    np.testing.assert_array_equal(forest.predict(queries, threshold), [0, 1])


@pytest.mark.parametrize(
    "kwargs, parameter",
    [
        ({"num_trees": 0}, "num_trees"),
        ({"num_trees": -4}, "num_trees"),
        ({"num_trees": 2.5}, "num_trees"),
        ({"sampling_size": 0}, "sampling_size"),
        ({"sampling_size": True}, "sampling_size"),
        ({"n_jobs": 0}, "n_jobs"),
    ],
)
def test_invalid_configuration_is_rejected(gaussian_2d, kwargs, parameter):
    with pytest.raises(InvalidInputError) as excinfo:
        build_forest(gaussian_2d, **kwargs)
    assert excinfo.value.parameter == parameter
    assert parameter in str(excinfo.value)


@pytest.mark.parametrize(
    "data",
    [
        [],
        np.empty((0, 3)),
        np.empty((5, 0)),
        [[1.0, np.nan], [2.0, 3.0]],
        [["a", "b"], ["c", "d"]],
    ],
)
def test_invalid_data_is_rejected(data):
    with pytest.raises(InvalidInputError) as excinfo:
        build_forest(data, num_trees=3, sampling_size=8)
    assert excinfo.value.parameter == "data"


def test_feature_count_mismatch_is_rejected(gaussian_2d):
    forest = build_forest(gaussian_2d, num_trees=3, sampling_size=16, random_state=0)

    with pytest.raises(InvalidInputError) as excinfo:
        forest.anomaly_score([1.0, 2.0, 3.0])
    assert excinfo.value.parameter == "instance"

    with pytest.raises(InvalidInputError):
        forest.scores(np.zeros((4, 3)))


def test_each_tree_sample_has_distinct_rows(monkeypatch):
    Xs = np.arange(100, dtype=float).reshape(50, 2)
    samples = []
    build = IsolationTree.build

    def recording_build(sample, max_depth, rng):
        samples.append(sample.copy())
        return build(sample, max_depth, rng)

    monkeypatch.setattr(IsolationTree, "build", recording_build)
    build_forest(Xs, num_trees=10, sampling_size=50, random_state=6)

    assert len(samples) == 10
    for sample in samples:
        assert sample.shape == (50, 2)
        assert len(np.unique(sample, axis=0)) == 50
