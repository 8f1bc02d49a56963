import enum
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

from .errors import InvalidConfig, InvalidState
from .evolutionary import EngineState, EvolutionEngine, GenerationSnapshot, _is_int


logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100_000
DEFAULT_ASSUME_CONVERGENCE = 25_000


class EventKind(enum.Enum):
    STARTED = "started"
    ITERATION = "iteration"
    NEW_CHAMPION = "new_champion"
    FINISHED = "finished"


@dataclass(frozen=True)
class SimulationEvent:
    kind: EventKind
    snapshot: GenerationSnapshot


@dataclass(frozen=True)
class RunSummary:
    snapshot: GenerationSnapshot
    reason: str  # stopped / max_iterations / converged
    iterations: int
    elapsed: float


EventCallback = Callable[[SimulationEvent], None]


def _check_limits(max_iterations: Optional[int], assume_convergence: Optional[int], report_every: int) -> None:
    for name, value in (("max_iterations", max_iterations), ("assume_convergence", assume_convergence)):
        if value is not None and (not _is_int(value) or value < 1):
            raise InvalidConfig(f"{name} must be a positive int or None, got {value!r}")
    if max_iterations is not None and assume_convergence is not None and max_iterations <= assume_convergence:
        raise InvalidConfig(
            f"max_iterations ({max_iterations}) must exceed assume_convergence ({assume_convergence})"
        )
    if not _is_int(report_every) or report_every < 1:
        raise InvalidConfig(f"report_every must be a positive int, got {report_every!r}")


def run_simulation(
    engine: EvolutionEngine,
    stop: Optional[threading.Event] = None,
    max_iterations: Optional[int] = DEFAULT_MAX_ITERATIONS,
    assume_convergence: Optional[int] = DEFAULT_ASSUME_CONVERGENCE,
    callback: Optional[EventCallback] = None,
    report_every: int = 1,
) -> RunSummary:
    """
    Step ``engine`` until ``stop`` is set, ``max_iterations`` generations have run,
    or the champion has not improved for ``assume_convergence`` generations.

    ``callback`` sees STARTED, a NEW_CHAMPION for every strict improvement, an
    ITERATION every ``report_every`` generations and a final FINISHED. The engine
    is left PAUSED, so another call picks up where this one stopped.
    """
    _check_limits(max_iterations, assume_convergence, report_every)
    if engine.state is EngineState.READY:
        engine.start()
    elif engine.state is EngineState.PAUSED:
        engine.resume()
    else:
        raise InvalidState(f"cannot run an engine in state {engine.state.value}")

    def emit(kind: EventKind, snapshot: GenerationSnapshot) -> None:
        if callback is not None:
            callback(SimulationEvent(kind, snapshot))

    t0 = time.perf_counter()
    snapshot = engine.snapshot
    champion = snapshot.best_length
    since_champion = 0
    iterations = 0
    reason = "stopped"
    emit(EventKind.STARTED, snapshot)
    try:
        while True:
            if stop is not None and stop.is_set():
                reason = "stopped"
                break
            snapshot = engine.step()
            iterations += 1
            since_champion += 1
            if snapshot.best_length < champion:
                champion = snapshot.best_length
                since_champion = 0
                emit(EventKind.NEW_CHAMPION, snapshot)
            if iterations % report_every == 0:
                emit(EventKind.ITERATION, snapshot)
            if max_iterations is not None and iterations >= max_iterations:
                reason = "max_iterations"
                break
            if assume_convergence is not None and since_champion >= assume_convergence:
                reason = "converged"
                break
    finally:
        if engine.state is EngineState.RUNNING:
            engine.pause()
    elapsed = time.perf_counter() - t0
    emit(EventKind.FINISHED, snapshot)
    logger.info(
        "run finished (%s) after %d generations in %.2fs: best=%.3f",
        reason,
        iterations,
        elapsed,
        snapshot.best_length,
    )
    return RunSummary(snapshot=snapshot, reason=reason, iterations=iterations, elapsed=elapsed)
