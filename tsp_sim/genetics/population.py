import random
from collections.abc import Sequence as SequenceABC
from typing import Iterator, List, Optional, Sequence, Tuple

from ..errors import SizeMismatch
from ..evaluation import LengthStats, aggregate_lengths, measure_tours
from ..geometry import Geometry
from .tour import Tour


class RankedView(SequenceABC):
    """
    Tours ordered by ascending length, without touching the source tuple.

    The ranking is computed on first access and kept; ties keep their original order.
    """

    def __init__(self, tours: Tuple[Tour, ...]):
        self._tours = tours
        self._ranking: Optional[List[int]] = None

    def _ranked(self) -> List[int]:
        if self._ranking is None:
            self._ranking = sorted(range(len(self._tours)), key=lambda i: self._tours[i].fitness)
        return self._ranking

    def __len__(self) -> int:
        return len(self._tours)

    def __getitem__(self, idx):
        ranking = self._ranked()
        if isinstance(idx, slice):
            return [self._tours[i] for i in ranking[idx]]
        return self._tours[ranking[idx]]

    def __iter__(self) -> Iterator[Tour]:
        for i in self._ranked():
            yield self._tours[i]


class Population:
    def __init__(self, tours: Sequence[Tour], geometry: Geometry, device: Optional[str] = None):
        self.geometry = geometry
        self.device = device
        self._tours: Tuple[Tour, ...] = tuple(tours)
        measure_tours(geometry, self._tours, device)

    @classmethod
    def random(
        cls, size: int, geometry: Geometry, rng: random.Random, device: Optional[str] = None
    ) -> "Population":
        return cls([Tour.random(len(geometry), rng) for _ in range(size)], geometry, device)

    @property
    def size(self) -> int:
        return len(self._tours)

    @property
    def tours(self) -> Tuple[Tour, ...]:
        return self._tours

    def __len__(self) -> int:
        return len(self._tours)

    def __iter__(self) -> Iterator[Tour]:
        return iter(self._tours)

    def __getitem__(self, idx: int) -> Tour:
        return self._tours[idx]

    def best(self) -> Tour:
        # min() keeps the first of equal candidates.
        return min(self._tours, key=lambda t: t.fitness)

    def worst(self) -> Tour:
        return max(self._tours, key=lambda t: t.fitness)

    def mean_length(self) -> float:
        return sum(t.fitness for t in self._tours) / len(self._tours)

    def stats(self) -> LengthStats:
        return aggregate_lengths([t.fitness for t in self._tours])

    def ranked_view(self) -> RankedView:
        return RankedView(self._tours)

    def replace_with(self, new_tours: Sequence[Tour]) -> None:
        incoming = tuple(new_tours)
        if len(incoming) != self.size:
            raise SizeMismatch(f"population holds {self.size} tours, replacement has {len(incoming)}")
        measure_tours(self.geometry, incoming, self.device)
        self._tours = incoming
