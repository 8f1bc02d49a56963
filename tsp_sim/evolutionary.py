import dataclasses
import enum
import logging
import random
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence, Tuple, Union

import torch

from .errors import InvalidConfig, InvalidState
from .geometry import CityLike, Geometry
from .genetics import Population, RankedView, Tour
from .genetics.operators import recombine, select_elites, swap_mutation, tournament_select


logger = logging.getLogger(__name__)

MIN_POPULATION = 4


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_real(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class EvolutionConfig:
    population_size: int = 100
    mutation_rate: float = 0.01
    crossover_rate: float = 0.9
    elitism_count: int = 2
    tournament_size: int = 3
    # None draws a seed from OS entropy; the run is then only repeatable via engine.seed.
    random_seed: Optional[int] = None
    # torch device used to measure offspring in batch, e.g. "cpu" or "cuda:0".
    device: Optional[str] = None

    def validate(self) -> None:
        if not _is_int(self.population_size) or self.population_size < MIN_POPULATION:
            raise InvalidConfig(f"population_size must be an int >= {MIN_POPULATION}, got {self.population_size!r}")
        for name in ("mutation_rate", "crossover_rate"):
            value = getattr(self, name)
            if not _is_real(value) or not 0.0 <= value <= 1.0:
                raise InvalidConfig(f"{name} must be a number in [0, 1], got {value!r}")
        if not _is_int(self.elitism_count) or not 0 <= self.elitism_count < self.population_size:
            raise InvalidConfig(
                f"elitism_count must be an int in [0, {self.population_size}), got {self.elitism_count!r}"
            )
        if not _is_int(self.tournament_size) or not 2 <= self.tournament_size <= self.population_size:
            raise InvalidConfig(
                f"tournament_size must be an int in [2, {self.population_size}], got {self.tournament_size!r}"
            )
        if self.random_seed is not None and not _is_int(self.random_seed):
            raise InvalidConfig(f"random_seed must be an int or None, got {self.random_seed!r}")
        if self.device is not None:
            try:
                torch.device(self.device)
            except (RuntimeError, TypeError) as exc:
                raise InvalidConfig(f"device {self.device!r} is not a torch device: {exc}") from None


class EngineState(enum.Enum):
    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass(frozen=True)
class GenerationSnapshot:
    """State published at the end of a generation. Nothing in it changes afterwards."""

    generation: int
    best_length: float
    best_tour_order: Tuple[int, ...]
    population_best_length: float
    population_mean_length: float
    best: Tour = field(repr=False, compare=False)
    tours: Tuple[Tour, ...] = field(repr=False, compare=False)

    def ranked_view(self) -> RankedView:
        return RankedView(self.tours)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generation": self.generation,
            "best_length": self.best_length,
            "best_tour_order": list(self.best_tour_order),
            "population_best_length": self.population_best_length,
        }


class EvolutionEngine:
    """
    Generational GA over tours of a fixed city set.

    The caller drives it: every ``step()`` is one generation, and the engine owns
    no timer or thread. Reads go through the last published snapshot.
    """

    def __init__(
        self,
        cities: Optional[Union[Geometry, Sequence[CityLike]]] = None,
        config: Optional[EvolutionConfig] = None,
    ):
        self._lock = threading.Lock()
        self._state_lock = threading.Lock()
        self.state = EngineState.UNINITIALIZED
        self.config: Optional[EvolutionConfig] = None
        self.geometry: Optional[Geometry] = None
        self.population: Optional[Population] = None
        self.rng: Optional[random.Random] = None
        self.seed: Optional[int] = None
        self.generation = 0
        self._best: Optional[Tour] = None
        self._snapshot: Optional[GenerationSnapshot] = None
        if cities is not None:
            self.initialize(cities, config)

    @contextmanager
    def _exclusive(self, what: str):
        if not self._lock.acquire(blocking=False):
            raise InvalidState(f"{what}() called while another step/reset is in progress")
        try:
            yield
        finally:
            self._lock.release()

    def _install(self, cities: Union[Geometry, Sequence[CityLike]], config: EvolutionConfig) -> None:
        config = dataclasses.replace(config)
        config.validate()
        geometry = cities if isinstance(cities, Geometry) else Geometry(cities)
        if config.device is not None and geometry.table is None:
            raise InvalidConfig(
                f"device {config.device!r} needs a precomputed distance table; build the geometry with precompute=True"
            )
        seed = config.random_seed
        if seed is None:
            seed = random.SystemRandom().randrange(2 ** 32)
        rng = random.Random(seed)
        population = Population.random(config.population_size, geometry, rng, config.device)

        # Nothing above touched the engine; commit.
        self.config = config
        self.geometry = geometry
        self.seed = seed
        self.rng = rng
        self.population = population
        self.generation = 0
        self._best = population.best().clone()
        with self._state_lock:
            self.state = EngineState.READY
        self._publish()
        logger.info(
            "session ready: cities=%d population=%d elitism=%d tournament=%d seed=%d best=%.3f",
            len(geometry),
            config.population_size,
            config.elitism_count,
            config.tournament_size,
            seed,
            self._best.fitness,
        )

    def _publish(self) -> GenerationSnapshot:
        stats = self.population.stats()
        snapshot = GenerationSnapshot(
            generation=self.generation,
            best_length=self._best.fitness,
            best_tour_order=self._best.order,
            population_best_length=stats.best,
            population_mean_length=stats.mean,
            best=self._best.clone(),
            tours=tuple(t.clone() for t in self.population.tours),
        )
        self._snapshot = snapshot
        return snapshot

    def initialize(
        self,
        cities: Union[Geometry, Sequence[CityLike]],
        config: Optional[EvolutionConfig] = None,
    ) -> GenerationSnapshot:
        with self._exclusive("initialize"):
            self._install(cities, config or EvolutionConfig())
        return self._snapshot

    def reset(
        self,
        cities: Optional[Union[Geometry, Sequence[CityLike]]] = None,
        config: Optional[EvolutionConfig] = None,
    ) -> GenerationSnapshot:
        with self._exclusive("reset"):
            if cities is None and self.geometry is None:
                raise InvalidState("reset() needs cities before the engine has been initialized")
            self._install(
                cities if cities is not None else self.geometry,
                config or self.config or EvolutionConfig(),
            )
        return self._snapshot

    def step(self) -> GenerationSnapshot:
        with self._exclusive("step"):
            if self.state is EngineState.UNINITIALIZED:
                raise InvalidState("step() called before initialize()")
            cfg = self.config
            rng = self.rng
            current = self.population

            offspring = select_elites(current, cfg.elitism_count)
            while len(offspring) < cfg.population_size:
                parent_a = tournament_select(current, rng, cfg.tournament_size)
                parent_b = tournament_select(current, rng, cfg.tournament_size)
                child = recombine(parent_a, parent_b, rng, cfg.crossover_rate)
                offspring.append(swap_mutation(child, rng, cfg.mutation_rate))

            current.replace_with(offspring)
            self.generation += 1
            challenger = current.best()
            if challenger.fitness < self._best.fitness:
                self._best = challenger.clone()
                logger.debug("generation %d: new best %.3f", self.generation, self._best.fitness)
            return self._publish()

    def _transition(self, allowed: Tuple[EngineState, ...], target: EngineState, what: str) -> None:
        with self._state_lock:
            if self.state not in allowed:
                raise InvalidState(f"cannot {what} an engine in state {self.state.value}")
            self.state = target

    def start(self) -> None:
        self._transition((EngineState.READY,), EngineState.RUNNING, "start")

    def pause(self) -> None:
        self._transition((EngineState.RUNNING,), EngineState.PAUSED, "pause")

    def resume(self) -> None:
        self._transition((EngineState.PAUSED,), EngineState.RUNNING, "resume")

    @property
    def snapshot(self) -> Optional[GenerationSnapshot]:
        return self._snapshot

    def best_tour(self) -> Optional[Tour]:
        snapshot = self._snapshot
        if snapshot is None:
            return None
        # Rebuilt from the immutable fields; snapshot.best is reachable by readers.
        tour = Tour(snapshot.best_tour_order)
        tour.remember_length(snapshot.best_length)
        return tour

    def current_generation(self) -> int:
        snapshot = self._snapshot
        return 0 if snapshot is None else snapshot.generation

    def ranked_view(self) -> RankedView:
        snapshot = self._snapshot
        if snapshot is None:
            raise InvalidState("no population before initialize()")
        return snapshot.ranked_view()
