from __future__ import annotations

import logging
import numbers
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from statml.classic.linear.logreg_numpy import (
    ModelConfig,
    ModelState,
    ProgressFn,
    accuracy,
    train_logistic_regression,
)
from statml.core.cancel import CancelToken
from statml.core.errors import InvalidConfigError
from statml.core.timers import Timer
from statml.datasets.preprocess import (
    bootstrap_indices,
    bootstrap_sample,
    check_scaling,
    points_to_arrays,
    standardize,
    train_val_split,
)
from statml.datasets.toy import LabeledPoint
from statml.rng.mulberry import SeededRandom
from statml.uncertainty.stats import percentile_interval

log = logging.getLogger("statml.uncertainty")

RunProgressFn = Callable[[int, int], None]  # (completed, total)

BOOTSTRAP_PROGRESS_EVERY = 50


@dataclass(frozen=True)
class BootstrapResult:
    accuracies: Tuple[float, ...]  # sorted ascending
    confidence_interval: Tuple[float, float]  # (2.5th, 97.5th) percentile

    def to_dict(self) -> Dict[str, Any]:
        return {
            "accuracies": list(self.accuracies),
            "confidence_interval": list(self.confidence_interval),
        }


def _check_count(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral) or value <= 0:
        raise InvalidConfigError(f"{name} must be a positive integer, got {value!r}")
    return int(value)


def fit_points(
    points: Sequence[LabeledPoint],
    config: ModelConfig,
    rng: Optional[SeededRandom] = None,
    on_progress: Optional[ProgressFn] = None,
    cancel_token: Optional[CancelToken] = None,
    ratio: float = 0.8,
) -> ModelState:
    """
    The single-model pipeline: standardize, split, train, then attach the
    scaling the weights were fitted under.
    """
    if len(points) == 0:
        raise InvalidConfigError("no data: cannot fit a model on an empty point set")
    scaled = standardize(points)
    train, val = train_val_split(scaled.standardized, ratio)
    state = train_logistic_regression(
        points_to_arrays(train),
        points_to_arrays(val),
        config,
        on_progress=on_progress,
        rng=rng,
        cancel_token=cancel_token,
    )
    return state.with_scaling(scaled.mean_x, scaled.std_x)


def run_repeat_training(
    points: Sequence[LabeledPoint],
    config: ModelConfig,
    num_runs: int,
    seed: int,
    on_progress: Optional[RunProgressFn] = None,
    cancel_token: Optional[CancelToken] = None,
    ratio: float = 0.8,
) -> List[ModelState]:
    """
    Train `num_runs` models, each on a bootstrap resample of `points`.

    Each run draws n indices with replacement from one stream seeded with
    `seed`, then runs the full single-model pipeline on the resample. With
    `config.deterministic_init` the same stream also draws the initial
    weights, so the whole batch is reproducible from `seed`.
    """
    num_runs = _check_count("num_runs", num_runs)
    if len(points) == 0:
        raise InvalidConfigError("no data: cannot resample an empty point set")

    pts = tuple(points)
    rng = SeededRandom(seed)
    timer = Timer()
    results: List[ModelState] = []
    log.info("repeat training: %d runs on %d points (seed=%d)", num_runs, len(pts), seed)

    for i in range(num_runs):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        state = fit_points(
            bootstrap_sample(pts, rng),
            config,
            rng=rng if config.deterministic_init else None,
            cancel_token=cancel_token,
            ratio=ratio,
        )
        results.append(state)
        if on_progress is not None:
            on_progress(i + 1, num_runs)

    log.info("repeat training done in %s", timer)
    return results


def run_bootstrap(
    points: Sequence[LabeledPoint],
    weights,
    mean_x,
    std_x,
    num_samples: int,
    seed: int,
    on_progress: Optional[RunProgressFn] = None,
    cancel_token: Optional[CancelToken] = None,
    progress_every: int = BOOTSTRAP_PROGRESS_EVERY,
) -> BootstrapResult:
    """
    Bootstrap distribution of a fixed model's accuracy.

    Every resample is standardized with the fitted model's `mean_x`/`std_x`
    (never its own statistics) and scored against the fixed `weights`.
    Accuracies come back sorted; the interval is
    [acc[floor(0.025 * m)], acc[floor(0.975 * m)]].
    Progress fires at samples 0, 50, 100, ... with completed = i + 1.
    """
    num_samples = _check_count("num_samples", num_samples)
    if len(points) == 0:
        raise InvalidConfigError("no data: cannot resample an empty point set")
    w = np.asarray(weights, dtype=np.float64)
    if w.shape != (3,):
        raise InvalidConfigError(f"weights must be [bias, w1, w2], got shape {w.shape}")
    mean_x, std_x = check_scaling(mean_x, std_x)

    data = points_to_arrays(points)
    X_std = (data.X - mean_x) / std_x
    rng = SeededRandom(seed)
    timer = Timer()
    accs: List[float] = []
    log.info("bootstrap: %d samples on %d points (seed=%d)", num_samples, data.n, seed)

    for i in range(num_samples):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        idx = bootstrap_indices(data.n, rng)
        accs.append(accuracy(w, X_std[idx], data.y[idx]))
        if on_progress is not None and i % progress_every == 0:
            on_progress(i + 1, num_samples)

    accs.sort()
    ci = percentile_interval(accs)
    log.info("bootstrap done in %s | ci=[%.3f, %.3f]", timer, ci[0], ci[1])
    return BootstrapResult(accuracies=tuple(accs), confidence_interval=ci)
