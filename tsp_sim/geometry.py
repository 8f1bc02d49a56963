import math
import random
from dataclasses import dataclass
from typing import Callable, Hashable, List, Optional, Sequence, Tuple, Union

import networkx as nx
import numpy as np

from .errors import InvalidGeometry


MIN_CITIES = 3


@dataclass(frozen=True)
class City:
    index: int
    x: float
    y: float
    name: Optional[str] = None

    def distance(self, other: "City") -> float:
        return math.hypot(self.x - other.x, self.y - other.y)


DistanceFn = Callable[[City, City], float]
CityLike = Union[City, Tuple[float, float], Sequence[float]]


def euclidean(a: City, b: City) -> float:
    return a.distance(b)


def _as_cities(cities: Sequence[CityLike]) -> List[City]:
    out: List[City] = []
    for idx, item in enumerate(cities):
        if isinstance(item, City):
            x, y, name = item.x, item.y, item.name
        else:
            try:
                x, y = item
            except (TypeError, ValueError):
                raise InvalidGeometry(f"city {idx} is not an (x, y) pair: {item!r}") from None
            name = None
        try:
            x, y = float(x), float(y)
        except (TypeError, ValueError):
            raise InvalidGeometry(f"city {idx} has non-numeric coordinates: {item!r}") from None
        if not (math.isfinite(x) and math.isfinite(y)):
            raise InvalidGeometry(f"city {idx} has non-finite coordinates ({x}, {y})")
        # Indices are always positional so a tour can index the table directly.
        out.append(City(index=idx, x=x, y=y, name=name))
    distinct = {(c.x, c.y) for c in out}
    if len(distinct) < MIN_CITIES:
        raise InvalidGeometry(
            f"a tour needs at least {MIN_CITIES} distinct cities, got {len(distinct)}"
        )
    return out


def _checked_distance(distance_fn: DistanceFn, a: City, b: City) -> float:
    forward = float(distance_fn(a, b))
    backward = float(distance_fn(b, a))
    for d in (forward, backward):
        if not math.isfinite(d) or d < 0:
            raise InvalidGeometry(f"distance({a.index}, {b.index}) = {d} is not a finite non-negative value")
    if not math.isclose(forward, backward, rel_tol=1e-9, abs_tol=1e-12):
        raise InvalidGeometry(
            f"distance is asymmetric: ({a.index}, {b.index}) = {forward}, ({b.index}, {a.index}) = {backward}"
        )
    return forward


def build_distance_table(cities: Sequence[City], distance_fn: Optional[DistanceFn] = None) -> np.ndarray:
    """
    Precompute the symmetric N x N distance matrix.

    The Euclidean case is vectorized. A custom ``distance_fn`` is checked in both
    directions for every pair and must be finite, non-negative and symmetric.
    """
    n = len(cities)
    if distance_fn is None:
        coords = np.array([(c.x, c.y) for c in cities], dtype=np.float64)
        diff = coords[:, None, :] - coords[None, :, :]
        table = np.hypot(diff[..., 0], diff[..., 1])
    else:
        table = np.zeros((n, n), dtype=np.float64)
        for i in range(n):
            for j in range(i + 1, n):
                d = _checked_distance(distance_fn, cities[i], cities[j])
                table[i, j] = d
                table[j, i] = d
    np.fill_diagonal(table, 0.0)
    table.setflags(write=False)
    return table


class Geometry:
    """
    City coordinates plus the distance function a tour is measured with.

    Distances are Euclidean unless ``distance_fn`` is given. With ``precompute``
    the full table is built once and ``distance`` is a lookup.
    """

    def __init__(
        self,
        cities: Sequence[CityLike],
        distance_fn: Optional[DistanceFn] = None,
        precompute: bool = True,
    ):
        self.cities: Tuple[City, ...] = tuple(_as_cities(cities))
        self.distance_fn = distance_fn
        self.table: Optional[np.ndarray] = None
        if precompute:
            self.table = build_distance_table(self.cities, distance_fn)

    def __len__(self) -> int:
        return len(self.cities)

    def __repr__(self) -> str:
        kind = "euclidean" if self.distance_fn is None else "custom"
        return f"Geometry(n={len(self)}, metric={kind}, precomputed={self.table is not None})"

    @property
    def size(self) -> int:
        return len(self.cities)

    def coordinates(self) -> np.ndarray:
        return np.array([(c.x, c.y) for c in self.cities], dtype=np.float64)

    def distance(self, i: int, j: int) -> float:
        if self.table is not None:
            return float(self.table[i, j])
        if i == j:
            return 0.0
        a, b = (i, j) if i < j else (j, i)
        if self.distance_fn is None:
            return euclidean(self.cities[a], self.cities[b])
        return _checked_distance(self.distance_fn, self.cities[a], self.cities[b])

    def tour_length(self, order: Sequence[int]) -> float:
        if self.table is not None:
            idx = np.asarray(order, dtype=np.intp)
            return float(self.table[idx, np.roll(idx, -1)].sum())
        dist = 0.0
        n = len(order)
        for i in range(n):
            dist += self.distance(order[i], order[(i + 1) % n])
        return dist

    @classmethod
    def random(cls, n: int, rng: random.Random, scale: float = 100.0, **kwargs) -> "Geometry":
        points = [(rng.uniform(0.0, scale), rng.uniform(0.0, scale)) for _ in range(n)]
        return cls(points, **kwargs)

    @classmethod
    def from_graph(cls, graph: nx.Graph, weight: str = "weight", pos: str = "pos", **kwargs) -> "Geometry":
        """
        Build a geometry from a weighted complete graph.

        Node attribute ``pos`` holds the coordinates; edge weights become the
        distance function.
        """
        labels: List[Hashable] = list(graph.nodes())
        cities = []
        for idx, label in enumerate(labels):
            xy = graph.nodes[label].get(pos)
            if xy is None:
                raise InvalidGeometry(f"node {label!r} has no '{pos}' attribute")
            cities.append(City(index=idx, x=xy[0], y=xy[1], name=str(label)))

        def edge_weight(a: City, b: City) -> float:
            try:
                return graph[labels[a.index]][labels[b.index]][weight]
            except KeyError:
                raise InvalidGeometry(
                    f"graph has no '{weight}' edge between {labels[a.index]!r} and {labels[b.index]!r}"
                ) from None

        return cls(cities, distance_fn=edge_weight, **kwargs)

    def to_graph(self) -> nx.Graph:
        graph = nx.Graph()
        for c in self.cities:
            graph.add_node(c.index, pos=(c.x, c.y), name=c.name)
        n = len(self.cities)
        for i in range(n):
            for j in range(i + 1, n):
                graph.add_edge(i, j, weight=self.distance(i, j))
        return graph
