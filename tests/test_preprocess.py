import numpy as np
import pytest

from statml.core.errors import InvalidConfigError
from statml.datasets.preprocess import (
    STD_FLOOR,
    apply_standardization,
    bootstrap_sample,
    check_scaling,
    points_to_arrays,
    standardize,
    train_val_split,
)
from statml.datasets.toy import GeneratorConfig, LabeledPoint, generate_dataset
from statml.rng.mulberry import SeededRandom


def test_standardize_zero_mean_unit_std():
    ds = generate_dataset(GeneratorConfig(n=250, noise=1.3, seed=21))
    res = standardize(ds.points)
    X = points_to_arrays(res.standardized).X
    assert np.allclose(X.mean(axis=0), 0.0, atol=1e-12)
    assert np.allclose(X.std(axis=0), 1.0, atol=1e-12)
    assert [p.label for p in res.standardized] == [p.label for p in ds.points]


def test_standardize_uses_population_std():
    pts = [LabeledPoint(0.0, 1.0, 0), LabeledPoint(2.0, 3.0, 1)]
    res = standardize(pts)
    assert np.allclose(res.mean_x, [1.0, 2.0])
    assert np.allclose(res.std_x, [1.0, 1.0])  # divide by n, not n-1


def test_constant_feature_floors_std():
    pts = [LabeledPoint(3.0, float(i), i % 2) for i in range(10)]
    res = standardize(pts)
    assert res.std_x[0] == 1.0
    assert all(p.x == 0.0 for p in res.standardized)


def test_standardize_empty_is_identity():
    res = standardize([])
    assert res.standardized == ()
    assert res.mean_x.tolist() == [0.0, 0.0] and res.std_x.tolist() == [1.0, 1.0]


def test_apply_standardization_uses_given_params():
    pts = [LabeledPoint(4.0, -2.0, 1)]
    (p,) = apply_standardization(pts, np.array([2.0, 0.0]), np.array([2.0, 4.0]))
    assert (p.x, p.y, p.label) == (1.0, -0.5, 1)


def test_split_exact_and_ordered():
    ds = generate_dataset(GeneratorConfig(n=100, seed=2))
    train, val = train_val_split(ds.points, 0.8)
    assert len(train) == 80 and len(val) == 20
    assert train + val == ds.points


def test_split_floors_train_size():
    pts = [LabeledPoint(float(i), 0.0, 0) for i in range(7)]
    train, val = train_val_split(pts, 0.8)
    assert len(train) == 5 and len(val) == 2


def test_bootstrap_sample_draws_from_input():
    pts = [LabeledPoint(float(i), 0.0, i % 2) for i in range(30)]
    sample = bootstrap_sample(pts, SeededRandom(1))
    assert len(sample) == 30
    assert set(sample) <= set(pts)
    assert len(set(sample)) < 30  # with replacement: duplicates are near certain


@pytest.mark.parametrize(
    "mean, std",
    [([0.0, 0.0], [0.0, 1.0]), ([0.0, 0.0], [-1.0, 1.0]), ([0.0, 0.0], [1.0, np.nan]), ([np.inf, 0.0], [1.0, 1.0])],
)
def test_check_scaling_rejects_degenerate_params(mean, std):
    with pytest.raises(InvalidConfigError):
        check_scaling(mean, std)
    with pytest.raises(InvalidConfigError):
        apply_standardization([LabeledPoint(1.0, 1.0, 0)], mean, std)


def test_check_scaling_accepts_floored_std():
    mean, std = check_scaling([0.5, -0.5], [1.0, STD_FLOOR])
    assert mean.dtype == np.float64 and std.tolist() == [1.0, STD_FLOOR]


def test_points_to_arrays_shapes():
    data = points_to_arrays([])
    assert data.X.shape == (0, 2) and data.y.shape == (0,) and data.n == 0
    with pytest.raises(AttributeError):
        data.X = None  # frozen
