import operator
import random
from collections import Counter
from typing import Iterator, List, Optional, Sequence, Tuple

from ..errors import InvalidPermutation
from ..geometry import Geometry


def check_permutation(order: Sequence[int]) -> List[int]:
    """Return ``order`` as a list of ints, or raise if it is not a permutation of its index range."""
    try:
        items = [operator.index(v) for v in order]
    except TypeError:
        raise InvalidPermutation(f"tour entries must be integers: {list(order)!r}") from None
    n = len(items)
    if sorted(items) != list(range(n)):
        counts = Counter(items)
        duplicates = sorted(v for v, c in counts.items() if c > 1)
        out_of_range = sorted(v for v in counts if not 0 <= v < n)
        missing = [v for v in range(n) if v not in counts]
        raise InvalidPermutation(
            f"not a permutation of [0, {n}): duplicates={duplicates} "
            f"missing={missing} out_of_range={out_of_range}"
        )
    return items


class Tour:
    """
    A cyclic visiting order: a permutation of city indices with its cached length.

    The length is computed on first request and dropped whenever the order changes.
    """

    __slots__ = ("_order", "_length")

    def __init__(self, order: Sequence[int]):
        self._order: List[int] = check_permutation(order)
        self._length: Optional[float] = None

    @staticmethod
    def random(n: int, rng: random.Random) -> "Tour":
        order = list(range(n))
        rng.shuffle(order)
        return Tour(order)

    @property
    def order(self) -> Tuple[int, ...]:
        return tuple(self._order)

    def __len__(self) -> int:
        return len(self._order)

    def __iter__(self) -> Iterator[int]:
        return iter(self._order)

    def __getitem__(self, idx):
        return self._order[idx]

    def __repr__(self) -> str:
        length = "unmeasured" if self._length is None else f"{self._length:.3f}"
        return f"Tour(n={len(self._order)}, length={length})"

    @property
    def is_measured(self) -> bool:
        return self._length is not None

    @property
    def fitness(self) -> float:
        if self._length is None:
            raise RuntimeError("tour has not been measured; call length(geometry) first")
        return self._length

    def length(self, geometry: Geometry) -> float:
        if self._length is None:
            if len(self._order) != len(geometry):
                raise InvalidPermutation(
                    f"tour visits {len(self._order)} cities but the geometry has {len(geometry)}"
                )
            self._length = geometry.tour_length(self._order)
        return self._length

    def remember_length(self, value: float) -> None:
        # Used by batch evaluation, which measures many tours at once.
        self._length = float(value)

    def swap(self, i: int, j: int) -> None:
        self._order[i], self._order[j] = self._order[j], self._order[i]
        self._length = None

    def clone(self) -> "Tour":
        twin = Tour.__new__(Tour)
        twin._order = self._order[:]
        twin._length = self._length
        return twin
