"""
Genetic operators on tours.

Each operator receives its random generator explicitly and never edits its inputs:
anything that changes a tour works on a clone.
"""

import random
from typing import List

from .population import Population
from .tour import Tour


def tournament_select(population: Population, rng: random.Random, k: int = 3) -> Tour:
    """Best of ``k`` distinct members drawn uniformly; the earliest drawn wins ties."""
    contenders = rng.sample(range(len(population)), k)
    winner = contenders[0]
    for idx in contenders[1:]:
        if population[idx].fitness < population[winner].fitness:
            winner = idx
    return population[winner]


def order_crossover(parent_a: Tour, parent_b: Tour, p1: int, p2: int) -> Tour:
    """
    Ordered crossover (OX) with explicit cut points ``0 <= p1 < p2 <= n``.

    The child keeps ``parent_a[p1:p2]`` in place; every other position is filled
    left to right with the remaining cities in the order they appear in ``parent_b``.
    """
    n = len(parent_a)
    if len(parent_b) != n:
        raise ValueError(f"parents differ in length: {n} != {len(parent_b)}")
    if not 0 <= p1 < p2 <= n:
        raise ValueError(f"cut points must satisfy 0 <= p1 < p2 <= {n}, got ({p1}, {p2})")
    segment = parent_a[p1:p2]
    placed = set(segment)
    filler = [city for city in parent_b if city not in placed]
    child = filler[:p1] + segment + filler[p1:]
    return Tour(child)


def crossover(parent_a: Tour, parent_b: Tour, rng: random.Random) -> Tour:
    p1, p2 = sorted(rng.sample(range(len(parent_a) + 1), 2))
    return order_crossover(parent_a, parent_b, p1, p2)


def recombine(parent_a: Tour, parent_b: Tour, rng: random.Random, crossover_rate: float) -> Tour:
    if rng.random() < crossover_rate:
        return crossover(parent_a, parent_b, rng)
    return rng.choice((parent_a, parent_b)).clone()


def swap_mutation(tour: Tour, rng: random.Random, mutation_rate: float) -> Tour:
    """Per position, with probability ``mutation_rate``, swap with one other uniformly chosen position."""
    mutant = tour.clone()
    n = len(mutant)
    for i in range(n):
        if rng.random() < mutation_rate:
            j = rng.randrange(n - 1)
            if j >= i:
                j += 1
            mutant.swap(i, j)
    return mutant


def select_elites(population: Population, count: int) -> List[Tour]:
    if count <= 0:
        return []
    return [t.clone() for t in population.ranked_view()[:count]]
