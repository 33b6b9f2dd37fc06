from __future__ import annotations

import itertools
import logging
import queue
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, ClassVar, Dict, List, Optional, Tuple, Union

import numpy as np

from statml.classic.linear.logreg_numpy import ModelConfig
from statml.core.cancel import CancelToken
from statml.core.errors import JobCancelled
from statml.datasets.toy import LabeledPoint
from statml.rng.mulberry import SeededRandom
from statml.uncertainty.engine import fit_points, run_bootstrap, run_repeat_training

"""
src/statml/uncertainty/jobs.py

Off-thread execution of the three long-running computations:
- TrainJob / RepeatTrainingJob / BootstrapJob: closed set of job messages
- execute_job: exhaustive dispatch of a job to the engine
- JobRunner: thread pool + ordered event queue with latest-wins per job kind
"""

log = logging.getLogger("statml.jobs")


class JobKind(str, Enum):
    TRAIN = "train"
    REPEAT = "repeat"
    BOOTSTRAP = "bootstrap"


class JobState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    ERRORED = "errored"


# ---------------------------
# Job messages
# ---------------------------


@dataclass(frozen=True)
class TrainJob:
    points: Tuple[LabeledPoint, ...]
    model_config: ModelConfig
    seed: int
    kind: ClassVar[JobKind] = JobKind.TRAIN


@dataclass(frozen=True)
class RepeatTrainingJob:
    points: Tuple[LabeledPoint, ...]
    model_config: ModelConfig
    num_runs: int
    seed: int
    kind: ClassVar[JobKind] = JobKind.REPEAT


@dataclass(frozen=True)
class BootstrapJob:
    points: Tuple[LabeledPoint, ...]
    weights: np.ndarray
    mean_x: np.ndarray
    std_x: np.ndarray
    num_samples: int
    seed: int
    kind: ClassVar[JobKind] = JobKind.BOOTSTRAP


Job = Union[TrainJob, RepeatTrainingJob, BootstrapJob]
_JOB_TYPES = (TrainJob, RepeatTrainingJob, BootstrapJob)


# ---------------------------
# Events
# ---------------------------


@dataclass(frozen=True)
class TrainingProgress:
    job_id: int
    kind: JobKind
    epoch: int
    loss: float
    train_accuracy: float
    val_accuracy: float


@dataclass(frozen=True)
class RunProgress:
    job_id: int
    kind: JobKind
    completed: int
    total: int


@dataclass(frozen=True)
class JobCompleted:
    job_id: int
    kind: JobKind
    result: Any  # ModelState | List[ModelState] | BootstrapResult


@dataclass(frozen=True)
class JobErrored:
    job_id: int
    kind: JobKind
    error: str


JobEvent = Union[TrainingProgress, RunProgress, JobCompleted, JobErrored]
Emit = Callable[[JobEvent], None]


def execute_job(
    job: Job,
    emit: Optional[Emit] = None,
    cancel_token: Optional[CancelToken] = None,
    job_id: int = 0,
):
    """
    Run one job synchronously and return its result. Progress goes through
    `emit` in the order it is produced. Raises JobCancelled when the token fires.
    """
    if isinstance(job, TrainJob):
        on_epoch = None
        if emit is not None:
            def on_epoch(epoch, loss, train_acc, val_acc):
                emit(TrainingProgress(job_id, job.kind, epoch, loss, train_acc, val_acc))

        rng = SeededRandom(job.seed) if job.model_config.deterministic_init else None
        return fit_points(
            job.points, job.model_config, rng=rng, on_progress=on_epoch, cancel_token=cancel_token
        )

    on_run = None
    if emit is not None:
        def on_run(completed, total):
            emit(RunProgress(job_id, job.kind, completed, total))

    if isinstance(job, RepeatTrainingJob):
        return run_repeat_training(
            job.points,
            job.model_config,
            job.num_runs,
            job.seed,
            on_progress=on_run,
            cancel_token=cancel_token,
        )
    if isinstance(job, BootstrapJob):
        return run_bootstrap(
            job.points,
            job.weights,
            job.mean_x,
            job.std_x,
            job.num_samples,
            job.seed,
            on_progress=on_run,
            cancel_token=cancel_token,
        )
    raise TypeError(f"unsupported job type: {type(job).__name__}")


# ---------------------------
# Handles + runner
# ---------------------------


class JobHandle:
    """Owned reference to one submitted job: its state, token and outcome."""

    def __init__(self, job_id: int, job: Job) -> None:
        self.job_id = job_id
        self.job = job
        self.kind: JobKind = job.kind
        self.token = CancelToken()
        self.result: Any = None
        self.error: Optional[BaseException] = None
        self._state = JobState.IDLE
        self._done = threading.Event()

    @property
    def state(self) -> JobState:
        return self._state

    @property
    def done(self) -> bool:
        return self._done.is_set()

    def cancel(self) -> None:
        self.token.cancel()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._done.wait(timeout)

    def _start(self) -> None:
        self._state = JobState.RUNNING

    def _finish(self, state: JobState, result: Any = None, error: Optional[BaseException] = None):
        self.result = result
        self.error = error
        self._state = state
        self._done.set()

    def __repr__(self) -> str:
        return f"JobHandle(id={self.job_id}, kind={self.kind.value}, state={self._state.value})"


class JobRunner:
    """
    Runs jobs on worker threads and marshals their events back through one
    FIFO queue.

    At most one job per kind is current: submitting a job cancels the
    in-flight job of the same kind. Events from cancelled or superseded jobs
    are dropped both when produced and when polled, so a stale result is
    never delivered and no progress event follows its job's completion.
    """

    def __init__(self, max_workers: int = 3) -> None:
        self._executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="statml-job")
        self._events: "queue.Queue[JobEvent]" = queue.Queue()
        self._lock = threading.Lock()
        self._latest: Dict[JobKind, JobHandle] = {}
        self._ids = itertools.count(1)

    # --------------- submission ---------------

    def submit(self, job: Job) -> JobHandle:
        if not isinstance(job, _JOB_TYPES):
            raise TypeError(f"unsupported job type: {type(job).__name__}")
        with self._lock:
            handle = JobHandle(next(self._ids), job)
            prev = self._latest.get(handle.kind)
            if prev is not None and not prev.done:
                prev.cancel()
                log.info("job %d (%s) superseded by job %d", prev.job_id, prev.kind.value, handle.job_id)
            self._latest[handle.kind] = handle
        log.info("job %d (%s) submitted", handle.job_id, handle.kind.value)
        self._executor.submit(self._run, handle)
        return handle

    def cancel(self, kind: Optional[JobKind] = None) -> None:
        with self._lock:
            handles = list(self._latest.values()) if kind is None else [self._latest.get(kind)]
        for h in handles:
            if h is not None and not h.done:
                h.cancel()
                log.info("job %d (%s) cancel requested", h.job_id, h.kind.value)

    def active(self, kind: JobKind) -> Optional[JobHandle]:
        with self._lock:
            h = self._latest.get(kind)
        return h if h is not None and not h.done and not h.token.cancelled else None

    # --------------- delivery ---------------

    def _is_live(self, handle: JobHandle) -> bool:
        return self._latest.get(handle.kind) is handle and not handle.token.cancelled

    def _deliverable(self, event: JobEvent) -> bool:
        with self._lock:
            h = self._latest.get(event.kind)
            return h is not None and h.job_id == event.job_id and not h.token.cancelled

    def _emit(self, handle: JobHandle, event: JobEvent) -> None:
        with self._lock:
            if self._is_live(handle):
                self._events.put(event)

    def poll(self, timeout: Optional[float] = None) -> Optional[JobEvent]:
        """
        Next deliverable event, waiting up to `timeout` seconds
        (None blocks, 0 does not wait). Returns None when nothing arrives.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            try:
                if remaining == 0.0:
                    event = self._events.get_nowait()
                else:
                    event = self._events.get(timeout=remaining)
            except queue.Empty:
                return None
            if self._deliverable(event):
                return event

    def drain(self) -> List[JobEvent]:
        out: List[JobEvent] = []
        while True:
            event = self.poll(timeout=0)
            if event is None:
                return out
            out.append(event)

    # --------------- execution ---------------

    def _run(self, handle: JobHandle) -> None:
        if handle.token.cancelled:
            handle._finish(JobState.CANCELLED)
            return
        handle._start()
        try:
            result = execute_job(
                handle.job,
                emit=lambda ev: self._emit(handle, ev),
                cancel_token=handle.token,
                job_id=handle.job_id,
            )
        except JobCancelled:
            log.info("job %d (%s) cancelled", handle.job_id, handle.kind.value)
            handle._finish(JobState.CANCELLED)
            return
        except Exception as exc:
            log.exception("job %d (%s) failed", handle.job_id, handle.kind.value)
            self._emit(handle, JobErrored(handle.job_id, handle.kind, str(exc) or type(exc).__name__))
            handle._finish(JobState.ERRORED, error=exc)
            return

        with self._lock:
            live = self._is_live(handle)
            if live:
                self._events.put(JobCompleted(handle.job_id, handle.kind, result))
        if live:
            log.info("job %d (%s) completed", handle.job_id, handle.kind.value)
            handle._finish(JobState.COMPLETED, result=result)
        else:
            log.info("job %d (%s) result discarded", handle.job_id, handle.kind.value)
            handle._finish(JobState.CANCELLED)

    def shutdown(self, cancel: bool = True) -> None:
        if cancel:
            self.cancel()
        self._executor.shutdown(wait=True)

    def __enter__(self) -> "JobRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
