import numpy as np
import pytest

from blissmixer.services.forest import ExtendedIsolationForest, average_path_length, rank


def test_average_path_length():
    assert average_path_length(0) == 0.0
    assert average_path_length(1) == 0.0
    assert average_path_length(2) == 1.0
    assert average_path_length(256) == pytest.approx(10.2447, abs=1e-3)


def _cluster(n=64, seed=1):
    return np.random.default_rng(seed).normal(0.0, 1.0, size=(n, 20))


def test_outliers_score_higher_than_inliers():
    seeds = _cluster()
    forest = ExtendedIsolationForest(trees=200, sample_size=64, extension_level=10, rng=np.random.default_rng(7)).fit(seeds)
    inlier = np.zeros((1, 20))
    outlier = np.full((1, 20), 12.0)
    scores = forest.score(np.vstack([inlier, outlier]), workers=3)
    assert 0.0 < scores[0] < scores[1] <= 1.0


def test_scores_are_deterministic_for_a_fixed_seed():
    seeds = _cluster()
    points = _cluster(10, seed=3)
    first = ExtendedIsolationForest(trees=50, rng=np.random.default_rng(5)).fit(seeds).score(points, workers=1)
    second = ExtendedIsolationForest(trees=50, rng=np.random.default_rng(5)).fit(seeds).score(points, workers=1)
    parallel = ExtendedIsolationForest(trees=50, rng=np.random.default_rng(5)).fit(seeds).score(points, workers=4)
    assert np.array_equal(first, second)
    assert parallel == pytest.approx(first)


def test_rank_orders_pool_ascending():
    seeds = list(_cluster(16))
    pool = [(1, np.full(20, 15.0)), (2, np.zeros(20)), (3, np.full(20, -9.0))]
    ranked = rank(pool, seeds, trees=200, workers=2, rng=np.random.default_rng(11))
    assert [track_id for track_id, _ in ranked][0] == 2
    assert sorted(track_id for track_id, _ in ranked) == [1, 2, 3]
    scores = [score for _, score in ranked]
    assert scores == sorted(scores)


def test_rank_with_empty_pool():
    assert rank([], [np.zeros(20)], trees=5) == []


def test_rank_requires_seeds():
    with pytest.raises(ValueError):
        rank([(1, np.zeros(20))], [], trees=5)


def test_invalid_extension_level():
    with pytest.raises(ValueError):
        ExtendedIsolationForest(extension_level=20)
