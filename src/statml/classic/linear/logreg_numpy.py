from __future__ import annotations

import logging
import math
import numbers
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Callable, Dict, Optional, Tuple

import numpy as np

from statml.core.cancel import CancelToken
from statml.core.errors import InvalidConfigError
from statml.datasets.preprocess import TrainingData, check_scaling
from statml.rng.mulberry import SeededRandom

log = logging.getLogger("statml.train")

ProgressFn = Callable[[int, float, float, float], None]  # (epoch, loss, train_acc, val_acc)

LOGIT_CLIP = 500.0
PROB_EPS = 1e-15
INIT_SCALE = 0.05
CHECKPOINT_EVERY = 10


def sigmoid(z):
    """
    Branch-stable logistic: 1/(1+e^-z) for z > 0, e^z/(1+e^z) for z <= 0.
    Accepts a scalar (returns float) or an array (returns array).
    """
    arr = np.asarray(z, dtype=np.float64)
    flat = np.atleast_1d(arr)
    out = np.empty_like(flat)
    pos = flat > 0
    neg = ~pos
    out[pos] = 1.0 / (1.0 + np.exp(-flat[pos]))
    ez = np.exp(flat[neg])
    out[neg] = ez / (1.0 + ez)
    if arr.ndim == 0:
        return float(out[0])
    return out.reshape(arr.shape)


def _logits(weights: np.ndarray, X: np.ndarray) -> np.ndarray:
    return weights[0] + X @ weights[1:]


def _as_weights(weights) -> np.ndarray:
    w = np.asarray(weights, dtype=np.float64)
    if w.shape != (3,):
        raise InvalidConfigError(f"weights must be [bias, w1, w2], got shape {w.shape}")
    return w


@dataclass(frozen=True)
class ModelConfig:
    lam: float = 0.01  # L2 strength on w1, w2 (bias unpenalized)
    learning_rate: float = 0.05
    epochs: int = 100
    deterministic_init: bool = True
    init_seed: int = 0

    def __post_init__(self) -> None:
        if not (self.lam >= 0.0) or not math.isfinite(self.lam):
            raise InvalidConfigError(f"lam must be a finite float >= 0, got {self.lam!r}")
        if not (self.learning_rate > 0.0) or not math.isfinite(self.learning_rate):
            raise InvalidConfigError(
                f"learning_rate must be a finite float > 0, got {self.learning_rate!r}"
            )
        if (
            isinstance(self.epochs, bool)
            or not isinstance(self.epochs, numbers.Integral)
            or self.epochs <= 0
        ):
            raise InvalidConfigError(f"epochs must be a positive integer, got {self.epochs!r}")


@dataclass(frozen=True)
class ModelState:
    weights: np.ndarray  # [bias, w1, w2]
    train_accuracy: float
    val_accuracy: float
    losses: Tuple[float, ...] = field(default_factory=tuple)
    mean_x: Optional[np.ndarray] = None
    std_x: Optional[np.ndarray] = None

    def with_scaling(self, mean_x: np.ndarray, std_x: np.ndarray) -> "ModelState":
        """Attach the standardization the model was trained under."""
        return replace(self, mean_x=_readonly(mean_x), std_x=_readonly(std_x))

    def predict_proba(self, x, y):
        if self.mean_x is None or self.std_x is None:
            raise InvalidConfigError("model has no scaling attached; call with_scaling first")
        return predict_proba(x, y, self.weights, self.mean_x, self.std_x)

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        for k in ("weights", "mean_x", "std_x"):
            d[k] = None if d[k] is None else [float(v) for v in d[k]]
        d["losses"] = [float(v) for v in self.losses]
        return d


def _readonly(a) -> np.ndarray:
    a = np.array(a, dtype=np.float64)
    a.setflags(write=False)
    return a


def accuracy(weights, X: np.ndarray, y: np.ndarray) -> float:
    """Fraction of samples where sigmoid(logit) >= 0.5 matches the label. NaN for no data."""
    w = _as_weights(weights)
    X = np.asarray(X, dtype=np.float64).reshape(-1, 2)
    y = np.asarray(y, dtype=np.float64)
    if X.shape[0] == 0:
        return float("nan")
    y_hat = (sigmoid(_logits(w, X)) >= 0.5).astype(np.float64)
    return float((y_hat == y).mean())


def loss(weights, X: np.ndarray, y: np.ndarray, lam: float) -> float:
    """
    Mean binary cross-entropy + lam * (w1^2 + w2^2).
    Logits are clipped to [-500, 500] and probabilities to [1e-15, 1 - 1e-15]
    before the log.
    """
    w = _as_weights(weights)
    X = np.asarray(X, dtype=np.float64).reshape(-1, 2)
    y = np.asarray(y, dtype=np.float64)
    l2 = lam * float(w[1] * w[1] + w[2] * w[2])
    if X.shape[0] == 0:
        return float("nan")
    z = np.clip(_logits(w, X), -LOGIT_CLIP, LOGIT_CLIP)
    p = np.clip(sigmoid(z), PROB_EPS, 1.0 - PROB_EPS)
    nll = np.where(y == 1, -np.log(p), -np.log(1.0 - p))
    return float(nll.mean()) + l2


def predict_proba(x, y, weights, mean_x, std_x):
    """
    Probability of class 1 for raw coordinates, standardized with the supplied
    (training-time) params rather than statistics of the new points.
    """
    w = _as_weights(weights)
    mean_x, std_x = check_scaling(mean_x, std_x)
    x_std = (np.asarray(x, dtype=np.float64) - mean_x[0]) / std_x[0]
    y_std = (np.asarray(y, dtype=np.float64) - mean_x[1]) / std_x[1]
    return sigmoid(w[0] + w[1] * x_std + w[2] * y_std)


def _init_rng(config: ModelConfig, rng: Optional[SeededRandom]) -> SeededRandom:
    if rng is not None:
        return rng
    if config.deterministic_init:
        return SeededRandom(config.init_seed)
    # fresh entropy per run
    return SeededRandom(int(np.random.default_rng().integers(0, 2**32)))


def train_logistic_regression(
    train: TrainingData,
    val: TrainingData,
    config: ModelConfig,
    on_progress: Optional[ProgressFn] = None,
    rng: Optional[SeededRandom] = None,
    cancel_token: Optional[CancelToken] = None,
) -> ModelState:
    """
    Full-batch gradient descent on L2-regularized logistic loss.

    Weights are [bias, w1, w2]; bias starts at 0, w1 and w2 uniform in
    [-0.05, 0.05]. Runs exactly `config.epochs` epochs. At epochs 0, 10, 20, ...
    and the final epoch the training loss is recorded and `on_progress` is
    called with (epoch, loss, train_acc, val_acc). The returned state carries
    no scaling; the caller attaches it with `ModelState.with_scaling`.
    """
    if train.n == 0:
        raise InvalidConfigError("cannot train on an empty training set")

    X, y = train.X, train.y
    n = train.n
    lam, lr, epochs = config.lam, config.learning_rate, int(config.epochs)

    init = _init_rng(config, rng)
    w = np.array(
        [0.0, init.uniform(-INIT_SCALE, INIT_SCALE), init.uniform(-INIT_SCALE, INIT_SCALE)],
        dtype=np.float64,
    )
    grad = np.zeros(3, dtype=np.float64)  # reused every epoch
    losses = []

    for epoch in range(epochs):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()

        err = sigmoid(_logits(w, X)) - y  # (n,)
        grad[0] = err.sum() / n
        grad[1:] = (X.T @ err) / n + 2.0 * lam * w[1:]
        w -= lr * grad

        if epoch % CHECKPOINT_EVERY == 0 or epoch == epochs - 1:
            cur_loss = loss(w, X, y, lam)
            train_acc = accuracy(w, X, y)
            val_acc = accuracy(w, val.X, val.y)
            losses.append(cur_loss)
            log.debug(
                "epoch %d | loss=%.4f | train_acc=%.3f | val_acc=%.3f",
                epoch, cur_loss, train_acc, val_acc,
            )
            if on_progress is not None:
                on_progress(epoch, cur_loss, train_acc, val_acc)

    return ModelState(
        weights=_readonly(w),
        train_accuracy=accuracy(w, X, y),
        val_accuracy=accuracy(w, val.X, val.y),
        losses=tuple(losses),
    )
