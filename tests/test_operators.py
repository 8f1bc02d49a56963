import itertools
import random

import pytest

from tsp_sim.genetics import (
    Population,
    Tour,
    check_permutation,
    crossover,
    order_crossover,
    recombine,
    select_elites,
    swap_mutation,
    tournament_select,
)


def _cut_pairs(n):
    return [(p1, p2) for p1 in range(n + 1) for p2 in range(p1 + 1, n + 1)]


def test_order_crossover_example():
    a = Tour([0, 1, 2, 3, 4, 5, 6, 7])
    b = Tour([7, 6, 5, 4, 3, 2, 1, 0])
    child = order_crossover(a, b, 2, 5)
    assert child.order == (7, 6, 2, 3, 4, 5, 1, 0)


def test_order_crossover_full_segment_copies_parent_a():
    a = Tour([3, 1, 0, 2])
    b = Tour([0, 1, 2, 3])
    assert order_crossover(a, b, 0, 4).order == a.order


@pytest.mark.parametrize("n", [3, 4])
def test_order_crossover_exhaustive(n):
    perms = [Tour(p) for p in itertools.permutations(range(n))]
    for a in perms:
        for b in perms:
            for p1, p2 in _cut_pairs(n):
                child = order_crossover(a, b, p1, p2)
                check_permutation(child.order)
                assert child.order[p1:p2] == a.order[p1:p2]


@pytest.mark.parametrize("n", [5, 6, 7])
def test_order_crossover_all_cuts(n):
    rng = random.Random(n)
    for _ in range(20):
        a = Tour.random(n, rng)
        b = Tour.random(n, rng)
        for p1, p2 in _cut_pairs(n):
            child = order_crossover(a, b, p1, p2)
            check_permutation(child.order)
            rest = list(child.order[:p1] + child.order[p2:])
            assert rest == [c for c in b.order if c in set(rest)]


def test_crossover_random_large():
    rng = random.Random(11)
    for _ in range(50):
        a = Tour.random(300, rng)
        b = Tour.random(300, rng)
        a_before, b_before = a.order, b.order
        child = crossover(a, b, rng)
        assert sorted(child.order) == list(range(300))
        assert a.order == a_before and b.order == b_before


@pytest.mark.parametrize("cuts", [(2, 2), (3, 1), (-1, 2), (0, 5)])
def test_order_crossover_rejects_bad_cuts(cuts):
    a = Tour([0, 1, 2, 3])
    with pytest.raises(ValueError):
        order_crossover(a, a.clone(), *cuts)


def test_crossover_is_reproducible():
    a = Tour.random(40, random.Random(1))
    b = Tour.random(40, random.Random(2))
    first = crossover(a, b, random.Random(99))
    second = crossover(a, b, random.Random(99))
    assert first.order == second.order


def test_swap_preserves_permutation_for_all_positions():
    n = 6
    base = Tour([4, 2, 0, 5, 1, 3])
    for i in range(n):
        for j in range(n):
            mutant = base.clone()
            mutant.swap(i, j)
            check_permutation(mutant.order)
            assert mutant.order[i] == base.order[j]
            assert mutant.order[j] == base.order[i]
    assert base.order == (4, 2, 0, 5, 1, 3)


def test_swap_mutation_works_on_a_clone(cities20):
    rng = random.Random(5)
    tour = Tour.random(20, rng)
    tour.length(cities20)
    original = tour.order
    for rate in (0.0, 0.1, 0.5, 1.0):
        mutant = swap_mutation(tour, rng, rate)
        assert mutant is not tour
        assert sorted(mutant.order) == list(range(20))
        assert tour.order == original
        assert tour.is_measured


def test_swap_mutation_rate_zero_is_identity(cities20):
    tour = Tour.random(20, random.Random(8))
    tour.length(cities20)
    mutant = swap_mutation(tour, random.Random(0), 0.0)
    assert mutant.order == tour.order
    assert mutant.fitness == tour.fitness


def test_swap_mutation_full_rate_changes_tour():
    tour = Tour(list(range(30)))
    mutant = swap_mutation(tour, random.Random(4), 1.0)
    assert mutant.order != tour.order
    assert not mutant.is_measured


def _ranked_population(square):
    tours = [Tour([0, 2, 1, 3]), Tour([1, 3, 2, 0]), Tour([0, 1, 2, 3]), Tour([3, 2, 1, 0])]
    return Population(tours, square)


def test_tournament_with_whole_population_returns_best(square):
    pop = _ranked_population(square)
    for seed in range(10):
        winner = tournament_select(pop, random.Random(seed), k=4)
        assert winner is pop[2] or winner is pop[3]
        assert winner.fitness == 40.0


def test_tournament_tie_goes_to_earliest_drawn(square):
    pop = _ranked_population(square)
    for seed in range(10):
        drawn = random.Random(seed).sample(range(4), 4)
        first_short = next(i for i in drawn if pop[i].fitness == 40.0)
        assert tournament_select(pop, random.Random(seed), k=4) is pop[first_short]


def test_tournament_picks_member_of_population(cities20):
    pop = Population.random(25, cities20, random.Random(1))
    rng = random.Random(2)
    members = set(map(id, pop))
    for _ in range(100):
        assert id(tournament_select(pop, rng, k=3)) in members


def test_tournament_biases_toward_short_tours(cities20):
    pop = Population.random(40, cities20, random.Random(1))
    rng = random.Random(3)
    picks = [tournament_select(pop, rng, k=5).fitness for _ in range(400)]
    assert sum(picks) / len(picks) < pop.mean_length()


def test_recombine_without_crossover_clones_a_parent():
    a = Tour([0, 1, 2, 3, 4])
    b = Tour([4, 3, 2, 1, 0])
    rng = random.Random(6)
    for _ in range(20):
        child = recombine(a, b, rng, crossover_rate=0.0)
        assert child is not a and child is not b
        assert child.order in (a.order, b.order)


def test_recombine_with_crossover_yields_permutation():
    rng = random.Random(7)
    a = Tour.random(12, rng)
    b = Tour.random(12, rng)
    for _ in range(50):
        child = recombine(a, b, rng, crossover_rate=1.0)
        assert sorted(child.order) == list(range(12))


def test_select_elites(square):
    pop = _ranked_population(square)
    elites = select_elites(pop, 2)
    assert [e.order for e in elites] == [pop[2].order, pop[3].order]
    assert all(e is not pop[2] and e is not pop[3] for e in elites)
    assert all(e.is_measured for e in elites)
    assert select_elites(pop, 0) == []
