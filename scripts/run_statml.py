#!/usr/bin/env python
from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Dict, Optional

import typer

from statml.config import ExperimentConfig, load_experiment_config
from statml.core import ensure_dir, get_logger, save_json, timed, write_manifest
from statml.datasets.presets import PRESETS
from statml.datasets.toy import generate_dataset
from statml.rng.mulberry import SeededRandom, derive_seed
from statml.uncertainty.engine import fit_points, run_bootstrap, run_repeat_training
from statml.uncertainty.stats import accuracy_histogram, summarize_accuracies, weight_spread

app = typer.Typer(add_completion=False)

VERSION = "0.1.0"


def _load(config: Optional[Path], preset: Optional[str], seed: Optional[int]) -> ExperimentConfig:
    cfg = load_experiment_config(config, preset=preset)
    if seed is not None:
        cfg = replace(cfg, data=replace(cfg.data, seed=seed))
    get_logger(level=cfg.log_level, log_file=cfg.log_file)
    return cfg


def _seeds(cfg: ExperimentConfig, **streams: int) -> Dict[str, Optional[int]]:
    """Seed of every stream a run draws from; init is None when it used fresh entropy."""
    seeds: Dict[str, Optional[int]] = {
        "data": cfg.data.seed,
        "init": cfg.data.seed if cfg.model.deterministic_init else None,
    }
    seeds.update(streams)
    return seeds


def _fit(cfg: ExperimentConfig, points):
    rng = SeededRandom(cfg.data.seed) if cfg.model.deterministic_init else None

    def progress(epoch, loss, train_acc, val_acc):
        typer.echo(f"epoch {epoch:4d} | loss={loss:.4f} | train={train_acc:.3f} | val={val_acc:.3f}")

    return fit_points(points, cfg.model, rng=rng, on_progress=progress, ratio=cfg.split_ratio)


@app.command()
def presets():
    """List the built-in presets."""
    for p in PRESETS:
        typer.echo(f"{p.name:22s} {p.description}")
        typer.echo(f"{'':22s} data={p.data} model={p.model}")


@app.command()
def generate(
    config: Optional[Path] = None,
    preset: Optional[str] = None,
    seed: Optional[int] = None,
    out_dir: Optional[Path] = None,
):
    """Generate a dataset and write it to dataset.json."""
    cfg = _load(config, preset, seed)
    out = ensure_dir(out_dir or cfg.out_dir)
    ds = generate_dataset(cfg.data)
    save_json(out / "dataset.json", ds.to_dict())
    n0, n1 = ds.class_counts()
    typer.echo(f"{len(ds)} points ({n0} class 0 / {n1} class 1) -> {out / 'dataset.json'}")



@app.command()
def train(
    config: Optional[Path] = None,
    preset: Optional[str] = None,
    seed: Optional[int] = None,
    out_dir: Optional[Path] = None,
):
    """Generate, standardize, split and train one model."""
    cfg = _load(config, preset, seed)
    out = ensure_dir(out_dir or cfg.out_dir)
    timings: Dict[str, float] = {}
    ds = generate_dataset(cfg.data)
    with timed("train", timings):
        state = _fit(cfg, ds.points)
    save_json(out / "config.json", cfg)
    save_json(out / "model.json", state.to_dict())
    write_manifest(
        out,
        command="statml/train",
        version=VERSION,
        seeds=_seeds(cfg),
        deterministic_init=cfg.model.deterministic_init,
        split_ratio=cfg.split_ratio,
        outputs={"config": str(out / "config.json"), "model": str(out / "model.json")},
        timings=timings,
        config_path=str(config) if config else None,
    )
    typer.echo(f"Train acc: {state.train_accuracy:.3f} | Val acc: {state.val_accuracy:.3f}")
    typer.echo(f"Weights [b, w1, w2]: {state.weights}")


@app.command()
def uncertainty(
    config: Optional[Path] = None,
    preset: Optional[str] = None,
    seed: Optional[int] = None,
    runs: Optional[int] = None,
    samples: Optional[int] = None,
    out_dir: Optional[Path] = None,
):
    """Train once, then run repeat-training and bootstrap accuracy on independent streams."""
    cfg = _load(config, preset, seed)
    out = ensure_dir(out_dir or cfg.out_dir)
    if runs is not None:
        cfg = replace(cfg, uncertainty=replace(cfg.uncertainty, repeat_runs=runs))
    if samples is not None:
        cfg = replace(cfg, uncertainty=replace(cfg.uncertainty, bootstrap_samples=samples))
    num_runs = cfg.uncertainty.repeat_runs
    num_samples = cfg.uncertainty.bootstrap_samples
    repeat_seed = derive_seed(cfg.data.seed, 1)
    bootstrap_seed = derive_seed(cfg.data.seed, 2)
    timings: Dict[str, float] = {}

    ds = generate_dataset(cfg.data)
    with timed("train", timings):
        state = _fit(cfg, ds.points)

    def run_progress(label):
        return lambda done, total: typer.echo(f"[{label}] {done}/{total}")

    with timed("repeat training", timings):
        runs_out = run_repeat_training(
            ds.points,
            cfg.model,
            num_runs,
            repeat_seed,
            on_progress=run_progress("repeat"),
            ratio=cfg.split_ratio,
        )
    with timed("bootstrap", timings):
        boot = run_bootstrap(
            ds.points,
            state.weights,
            state.mean_x,
            state.std_x,
            num_samples,
            bootstrap_seed,
            on_progress=run_progress("bootstrap"),
        )

    summary = summarize_accuracies(boot.accuracies)
    hist = accuracy_histogram(boot.accuracies)
    spread = weight_spread(runs_out)
    save_json(out / "config.json", cfg)
    save_json(out / "model.json", state.to_dict())
    save_json(out / "repeat_runs.json", [s.to_dict() for s in runs_out])
    save_json(
        out / "bootstrap.json",
        {
            **boot.to_dict(),
            "mean": summary.mean,
            "std": summary.std,
            "histogram": {"counts": list(hist.counts), "lo": hist.lo, "hi": hist.hi},
        },
    )
    write_manifest(
        out,
        command="statml/uncertainty",
        version=VERSION,
        seeds=_seeds(cfg, repeat=repeat_seed, bootstrap=bootstrap_seed),
        deterministic_init=cfg.model.deterministic_init,
        split_ratio=cfg.split_ratio,
        outputs={
            "config": str(out / "config.json"),
            "model": str(out / "model.json"),
            "repeat_runs": str(out / "repeat_runs.json"),
            "bootstrap": str(out / "bootstrap.json"),
        },
        timings=timings,
        config_path=str(config) if config else None,
    )
    lo, hi = summary.confidence_interval
    typer.echo(f"Val acc: {state.val_accuracy:.3f}")
    typer.echo(f"Bootstrap acc: {summary.mean:.3f} ± {summary.std:.3f} | 95% CI [{lo:.3f}, {hi:.3f}]")
    typer.echo(f"Weight spread over {num_runs} runs: mean={spread.mean} std={spread.std}")


if __name__ == "__main__":
    app()
