import random

import pytest

from tsp_sim.geometry import Geometry


SQUARE = [(0.0, 0.0), (0.0, 10.0), (10.0, 10.0), (10.0, 0.0)]


@pytest.fixture
def square():
    return Geometry(SQUARE)


@pytest.fixture
def cities20():
    return Geometry.random(20, random.Random(2024), scale=100.0)


@pytest.fixture
def rng():
    return random.Random(42)
