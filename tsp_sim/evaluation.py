import weakref
from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

import torch

from .errors import InvalidPermutation
from .geometry import Geometry

if TYPE_CHECKING:
    from .genetics.tour import Tour


@dataclass(frozen=True)
class LengthStats:
    best: float
    mean: float
    worst: float


_TENSOR_CACHE: "weakref.WeakKeyDictionary[Geometry, Dict[str, torch.Tensor]]" = weakref.WeakKeyDictionary()


def distance_tensor(geometry: Geometry, device: str) -> torch.Tensor:
    """The geometry's distance table as a float64 tensor on ``device``, built once per device."""
    if geometry.table is None:
        raise ValueError("batch evaluation needs a precomputed distance table")
    per_device = _TENSOR_CACHE.setdefault(geometry, {})
    key = str(torch.device(device))
    if key not in per_device:
        per_device[key] = torch.from_numpy(geometry.table.copy()).to(device=key, dtype=torch.float64)
    return per_device[key]


def _tour_lengths_torch(dist: torch.Tensor, orders: Sequence[Sequence[int]]) -> List[float]:
    idx = torch.tensor(orders, device=dist.device, dtype=torch.long)
    a = idx
    b = idx.roll(-1, dims=1)
    return dist[a, b].sum(dim=1).tolist()


def measure_tours(geometry: Geometry, tours: Sequence["Tour"], device: Optional[str] = None) -> List[float]:
    """
    Make sure every tour has a cached length and return the lengths in order.

    Already measured tours are trusted. With ``device`` set, the unmeasured ones
    are evaluated in a single torch gather instead of one numpy call each.
    """
    pending = [t for t in tours if not t.is_measured]
    if pending and device is not None and geometry.table is not None:
        n = len(geometry)
        for t in pending:
            if len(t) != n:
                raise InvalidPermutation(f"tour visits {len(t)} cities but the geometry has {n}")
        lengths = _tour_lengths_torch(distance_tensor(geometry, device), [t.order for t in pending])
        for t, value in zip(pending, lengths):
            t.remember_length(value)
    else:
        for t in pending:
            t.length(geometry)
    return [t.fitness for t in tours]


def aggregate_lengths(lengths: Sequence[float]) -> LengthStats:
    if not lengths:
        inf = float("inf")
        return LengthStats(best=inf, mean=inf, worst=inf)
    return LengthStats(best=min(lengths), mean=sum(lengths) / len(lengths), worst=max(lengths))
