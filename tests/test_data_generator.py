import math

import pytest

from statml.core.errors import InvalidConfigError
from statml.datasets.toy import GeneratorConfig, compute_bounds, generate_dataset


def test_generate_is_deterministic():
    cfg = GeneratorConfig(distribution="blobs", n=200, balance=0.4, noise=0.7, seed=11)
    a, b = generate_dataset(cfg), generate_dataset(cfg)
    assert a.points == b.points
    assert a.bounds == b.bounds


def test_different_seeds_differ():
    a = generate_dataset(GeneratorConfig(seed=1))
    b = generate_dataset(GeneratorConfig(seed=2))
    assert a.points != b.points


def test_class_balance_uses_floor():
    ds = generate_dataset(GeneratorConfig(n=100, balance=0.3, noise=0.5, seed=0))
    assert len(ds) == 100
    assert ds.class_counts() == (70, 30)
    # fractional n * balance rounds class 1 down
    ds = generate_dataset(GeneratorConfig(n=7, balance=0.5, seed=0))
    assert ds.class_counts() == (4, 3)


def test_shuffle_mixes_labels():
    ds = generate_dataset(GeneratorConfig(n=200, balance=0.5, seed=3))
    first_half = [p.label for p in ds.points[:100]]
    assert 0 < sum(first_half) < 100


def test_blobs_centered_by_class():
    ds = generate_dataset(GeneratorConfig(n=400, noise=0.3, seed=5))
    for label, center in ((0, -1.0), (1, 1.0)):
        xs = [p.x for p in ds.points if p.label == label]
        ys = [p.y for p in ds.points if p.label == label]
        assert abs(sum(xs) / len(xs) - center) < 0.1
        assert abs(sum(ys) / len(ys) - center) < 0.1


def test_moons_shapes():
    ds = generate_dataset(GeneratorConfig(distribution="moons", n=400, noise=0.05, seed=8))
    upper = [p for p in ds.points if p.label == 0]
    lower = [p for p in ds.points if p.label == 1]
    # upper moon sits above y=0 on average, lower moon below y=0.5
    assert sum(p.y for p in upper) / len(upper) > 0.4
    assert sum(p.y for p in lower) / len(lower) < 0.1


def test_moons_deterministic_per_seed():
    cfg = GeneratorConfig(distribution="moons", n=150, noise=0.2, seed=13)
    assert generate_dataset(cfg).points == generate_dataset(cfg).points
    other = GeneratorConfig(distribution="moons", n=150, noise=0.2, seed=14)
    assert generate_dataset(cfg).points != generate_dataset(other).points


def test_bounds_have_ten_percent_margin():
    ds = generate_dataset(GeneratorConfig(n=50, seed=4))
    xs = [p.x for p in ds.points]
    span = max(xs) - min(xs)
    assert ds.bounds.x_min == pytest.approx(min(xs) - 0.1 * span)
    assert ds.bounds.x_max == pytest.approx(max(xs) + 0.1 * span)
    assert all(ds.bounds.y_min <= p.y <= ds.bounds.y_max for p in ds.points)


def test_empty_bounds_are_nan():
    b = compute_bounds([])
    assert all(math.isnan(v) for v in (b.x_min, b.x_max, b.y_min, b.y_max))


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n": 0},
        {"n": -5},
        {"balance": 0.0},
        {"balance": 1.0},
        {"noise": 0.0},
        {"distribution": "spiral"},
    ],
)
def test_invalid_config_rejected(kwargs):
    with pytest.raises(InvalidConfigError):
        GeneratorConfig(**kwargs)
