import numpy as np

from statml.classic.linear.logreg_numpy import ModelConfig
from statml.datasets.toy import GeneratorConfig, generate_dataset
from statml.uncertainty.engine import fit_points


def test_logreg_easy_data():
    ds = generate_dataset(GeneratorConfig(distribution="blobs", n=200, noise=0.1, seed=7))
    model = fit_points(ds.points, ModelConfig(lam=0.01, learning_rate=0.05, epochs=100))
    assert model.losses[-1] < model.losses[0]
    assert model.train_accuracy > 0.9


def test_default_scenario_converges():
    ds = generate_dataset(GeneratorConfig(distribution="blobs", n=300, balance=0.5, noise=0.9, seed=42))
    model = fit_points(ds.points, ModelConfig(lam=0.01, learning_rate=0.05, epochs=100))
    assert model.train_accuracy > 0.80
    assert model.val_accuracy > 0.80


def test_bias_not_regularized():
    ds = generate_dataset(GeneratorConfig(n=300, balance=0.5, noise=0.9, seed=42))
    free = fit_points(ds.points, ModelConfig(lam=0.0, learning_rate=0.05, epochs=100))
    shrunk = fit_points(ds.points, ModelConfig(lam=10.0, learning_rate=0.05, epochs=100))
    d_bias = abs(free.weights[0] - shrunk.weights[0])
    d_feat = np.linalg.norm(free.weights[1:] - shrunk.weights[1:])
    assert d_feat > 5 * d_bias
    assert np.linalg.norm(shrunk.weights[1:]) < np.linalg.norm(free.weights[1:])


def test_moons_are_mostly_linearly_separable():
    ds = generate_dataset(GeneratorConfig(distribution="moons", n=300, noise=0.2, seed=1))
    model = fit_points(ds.points, ModelConfig(lam=0.001, learning_rate=0.5, epochs=300))
    assert model.train_accuracy >= 0.8
