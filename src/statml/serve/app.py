#!/usr/bin/env python
from __future__ import annotations

import os
from typing import List, Literal, Optional

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, Field

from statml.classic.linear.logreg_numpy import ModelConfig, predict_proba
from statml.core.errors import InvalidConfigError
from statml.core.logs import get_logger
from statml.datasets.presets import PRESETS
from statml.datasets.toy import GeneratorConfig, LabeledPoint, generate_dataset
from statml.rng.mulberry import SeededRandom
from statml.uncertainty.engine import fit_points, run_bootstrap, run_repeat_training
from statml.uncertainty.stats import accuracy_histogram, summarize_accuracies, weight_spread

# =====================================================================
# CONFIGURATION
# =====================================================================

LOG_LEVEL = os.getenv("STATML_LOG_LEVEL", "INFO")
MAX_POINTS = int(os.getenv("STATML_MAX_POINTS", "20000"))
MAX_RUNS = int(os.getenv("STATML_MAX_RUNS", "200"))
MAX_SAMPLES = int(os.getenv("STATML_MAX_SAMPLES", "5000"))

log = get_logger("statml.serve", level=LOG_LEVEL)

app = FastAPI(title="StatML Lab Server", version="0.1.0")

_default_cors = [
    "http://localhost:5173",
    "http://127.0.0.1:5173",
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_cors_env = os.getenv("CORS_ORIGINS")
_cors_list = [o.strip() for o in _cors_env.split(",") if o.strip()] if _cors_env else _default_cors
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

# =====================================================================
# SCHEMAS
# =====================================================================


class PointIn(BaseModel):
    x: float
    y: float
    label: Literal[0, 1]


class GeneratorIn(BaseModel):
    distribution: Literal["blobs", "moons"] = "blobs"
    n: int = Field(300, gt=0)
    balance: float = Field(0.5, gt=0.0, lt=1.0)
    noise: float = Field(0.9, gt=0.0)
    seed: int = 42


class ModelIn(BaseModel):
    lam: float = Field(0.01, ge=0.0)
    learning_rate: float = Field(0.05, gt=0.0)
    epochs: int = Field(100, gt=0)
    deterministic_init: bool = True


class TrainIn(BaseModel):
    points: List[PointIn] = Field(..., min_length=1)
    model: ModelIn = Field(default_factory=ModelIn)
    seed: int = 42


class RepeatIn(TrainIn):
    num_runs: int = Field(10, gt=0)


class BootstrapIn(BaseModel):
    points: List[PointIn] = Field(..., min_length=1)
    weights: List[float] = Field(..., min_length=3, max_length=3)
    mean_x: List[float] = Field(..., min_length=2, max_length=2)
    std_x: List[float] = Field(..., min_length=2, max_length=2)
    num_samples: int = Field(300, gt=0)
    seed: int = 42


class PredictIn(BaseModel):
    xs: List[float] = Field(..., min_length=1)
    ys: List[float] = Field(..., min_length=1)
    weights: List[float] = Field(..., min_length=3, max_length=3)
    mean_x: List[float] = Field(..., min_length=2, max_length=2)
    std_x: List[float] = Field(..., min_length=2, max_length=2)


# =====================================================================
# HELPERS
# =====================================================================


def _points(items: List[PointIn]) -> tuple:
    if len(items) > MAX_POINTS:
        raise HTTPException(413, detail=f"at most {MAX_POINTS} points per request")
    return tuple(LabeledPoint(p.x, p.y, p.label) for p in items)


def _model_config(m: ModelIn) -> ModelConfig:
    return ModelConfig(
        lam=m.lam,
        learning_rate=m.learning_rate,
        epochs=m.epochs,
        deterministic_init=m.deterministic_init,
    )


def _invalid(exc: InvalidConfigError) -> HTTPException:
    log.info("rejected request: %s", exc)
    return HTTPException(422, detail=str(exc))


# =====================================================================
# ROUTES
# =====================================================================
# Handlers are plain `def`: FastAPI runs them in its threadpool, so CPU-bound
# training never blocks the event loop.


@app.get("/health")
def health():
    return {"status": "ok"}


@app.get("/presets")
def presets():
    return [{"name": p.name, "description": p.description, "data": p.data, "model": p.model} for p in PRESETS]


@app.post("/datasets")
def datasets(req: GeneratorIn):
    try:
        ds = generate_dataset(GeneratorConfig(**req.model_dump()))
    except InvalidConfigError as exc:
        raise _invalid(exc) from exc
    return ds.to_dict()


@app.post("/train")
def train(req: TrainIn):
    try:
        cfg = _model_config(req.model)
        rng = SeededRandom(req.seed) if cfg.deterministic_init else None
        state = fit_points(_points(req.points), cfg, rng=rng)
    except InvalidConfigError as exc:
        raise _invalid(exc) from exc
    return state.to_dict()


@app.post("/repeat-training")
def repeat_training(req: RepeatIn):
    if req.num_runs > MAX_RUNS:
        raise HTTPException(413, detail=f"num_runs is capped at {MAX_RUNS}")
    try:
        states = run_repeat_training(_points(req.points), _model_config(req.model), req.num_runs, req.seed)
    except InvalidConfigError as exc:
        raise _invalid(exc) from exc
    spread = weight_spread(states)
    return {
        "runs": [s.to_dict() for s in states],
        "weight_mean": spread.mean.tolist(),
        "weight_std": spread.std.tolist(),
    }


@app.post("/bootstrap")
def bootstrap(req: BootstrapIn):
    if req.num_samples > MAX_SAMPLES:
        raise HTTPException(413, detail=f"num_samples is capped at {MAX_SAMPLES}")
    try:
        res = run_bootstrap(
            _points(req.points), req.weights, req.mean_x, req.std_x, req.num_samples, req.seed
        )
    except InvalidConfigError as exc:
        raise _invalid(exc) from exc
    summary = summarize_accuracies(res.accuracies)
    hist = accuracy_histogram(res.accuracies)
    out = res.to_dict()
    out.update(
        {
            "mean": summary.mean,
            "std": summary.std,
            "histogram": {"counts": list(hist.counts), "lo": hist.lo, "hi": hist.hi},
        }
    )
    return out


@app.post("/predict")
def predict(req: PredictIn):
    if len(req.xs) != len(req.ys):
        raise HTTPException(422, detail="xs and ys must have the same length")
    try:
        probs = predict_proba(req.xs, req.ys, req.weights, req.mean_x, req.std_x)
    except InvalidConfigError as exc:
        raise _invalid(exc) from exc
    return {"probabilities": [float(p) for p in probs]}


def main(host: Optional[str] = None, port: Optional[int] = None) -> None:
    import uvicorn

    uvicorn.run(
        app,
        host=host or os.getenv("HOST", "127.0.0.1"),
        port=port or int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    main()
