import threading

import pytest

from tsp_sim.errors import InvalidConfig, InvalidState
from tsp_sim.evolutionary import EngineState, EvolutionConfig, EvolutionEngine
from tsp_sim.runner import EventKind, run_simulation

from .conftest import SQUARE


@pytest.fixture
def engine(cities20):
    return EvolutionEngine(cities20, EvolutionConfig(population_size=20, mutation_rate=0.05, random_seed=11))


def test_stops_at_max_iterations_and_resumes(engine):
    summary = run_simulation(engine, max_iterations=10, assume_convergence=None)
    assert summary.reason == "max_iterations"
    assert summary.iterations == 10
    assert summary.snapshot.generation == 10
    assert engine.state is EngineState.PAUSED

    again = run_simulation(engine, max_iterations=5, assume_convergence=None)
    assert again.snapshot.generation == 15
    assert again.snapshot.best_length <= summary.snapshot.best_length


def test_stops_when_converged():
    engine = EvolutionEngine(SQUARE, EvolutionConfig(population_size=20, random_seed=42))
    summary = run_simulation(engine, max_iterations=1000, assume_convergence=5)
    assert summary.reason == "converged"
    assert summary.iterations < 1000


def test_stop_flag_set_before_start(engine):
    stop = threading.Event()
    stop.set()
    events = []
    summary = run_simulation(engine, stop=stop, callback=events.append)
    assert summary.reason == "stopped"
    assert summary.iterations == 0
    assert [e.kind for e in events] == [EventKind.STARTED, EventKind.FINISHED]


def test_stop_from_callback(engine):
    stop = threading.Event()
    seen = []

    def on_event(event):
        if event.kind is EventKind.ITERATION:
            seen.append(event.snapshot.generation)
            if len(seen) == 3:
                stop.set()

    summary = run_simulation(engine, stop=stop, callback=on_event, report_every=2)
    assert summary.reason == "stopped"
    assert seen == [2, 4, 6]
    assert summary.iterations == 6


def test_event_stream(engine):
    events = []
    run_simulation(engine, max_iterations=40, assume_convergence=None, callback=events.append)
    kinds = [e.kind for e in events]
    assert kinds[0] is EventKind.STARTED
    assert kinds[-1] is EventKind.FINISHED
    assert kinds.count(EventKind.ITERATION) == 40
    champions = [e.snapshot.best_length for e in events if e.kind is EventKind.NEW_CHAMPION]
    assert champions
    assert all(b < a for a, b in zip(champions, champions[1:]))
    assert champions[-1] == events[-1].snapshot.best_length


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_iterations": 10, "assume_convergence": 10},
        {"max_iterations": 5, "assume_convergence": 10},
        {"max_iterations": 0, "assume_convergence": None},
        {"max_iterations": None, "assume_convergence": -3},
        {"report_every": 0},
        {"report_every": True},
        {"max_iterations": True, "assume_convergence": None},
        {"max_iterations": None, "assume_convergence": True},
    ],
)
def test_invalid_limits(engine, kwargs):
    with pytest.raises(InvalidConfig):
        run_simulation(engine, **kwargs)
    assert engine.state is EngineState.READY


def test_needs_initialized_idle_engine(engine):
    with pytest.raises(InvalidState):
        run_simulation(EvolutionEngine(), max_iterations=3, assume_convergence=None)
    engine.start()
    with pytest.raises(InvalidState):
        run_simulation(engine, max_iterations=3, assume_convergence=None)
