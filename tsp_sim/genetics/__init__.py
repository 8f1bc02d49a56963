from .tour import Tour, check_permutation
from .population import Population, RankedView
from .operators import (
    crossover,
    order_crossover,
    recombine,
    select_elites,
    swap_mutation,
    tournament_select,
)

__all__ = [
    "Tour",
    "check_permutation",
    "Population",
    "RankedView",
    "crossover",
    "order_crossover",
    "recombine",
    "select_elites",
    "swap_mutation",
    "tournament_select",
]
