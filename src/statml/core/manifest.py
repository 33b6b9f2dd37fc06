from __future__ import annotations

import platform
import subprocess
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

import numpy as np

from .io import ensure_dir, save_json

"""
src/statml/core/manifest.py

manifest.json written next to every CLI run. It records what is needed to
replay the run: the seed of every random stream it drew from, how initial
weights were chosen, the split ratio, and which files came out.
"""

MANIFEST_NAME = "manifest.json"


@dataclass
class RunManifest:
    command: str  # "statml/train", "statml/uncertainty"
    version: str
    created_at: str  # ISO8601, UTC
    config_path: Optional[str]  # YAML the run was loaded from, if any
    seeds: Dict[str, Optional[int]]  # stream -> seed; None means fresh entropy
    deterministic_init: bool
    split_ratio: float
    outputs: Dict[str, str]
    timings: Dict[str, float] = field(default_factory=dict)  # seconds per phase
    env: Dict[str, str] = field(default_factory=dict)
    source: Dict[str, str] = field(default_factory=dict)


def _source_revision() -> Dict[str, str]:
    try:
        rev = subprocess.check_output(
            ["git", "describe", "--always", "--dirty"], stderr=subprocess.DEVNULL
        )
    except (OSError, subprocess.CalledProcessError):
        return {}
    return {"git": rev.decode().strip()}


def _runtime() -> Dict[str, str]:
    return {
        "python": platform.python_version(),
        "numpy": np.__version__,
        "platform": platform.platform(),
    }


def write_manifest(
    out_dir: Path | str,
    command: str,
    version: str,
    seeds: Dict[str, Optional[int]],
    deterministic_init: bool,
    split_ratio: float,
    outputs: Dict[str, str],
    timings: Optional[Dict[str, float]] = None,
    config_path: Optional[str] = None,
) -> RunManifest:
    man = RunManifest(
        command=command,
        version=version,
        created_at=datetime.now(timezone.utc).isoformat(),
        config_path=config_path,
        seeds=dict(seeds),
        deterministic_init=deterministic_init,
        split_ratio=split_ratio,
        outputs=dict(outputs),
        timings=dict(timings or {}),
        env=_runtime(),
        source=_source_revision(),
    )
    save_json(ensure_dir(out_dir) / MANIFEST_NAME, asdict(man))
    return man
