class TSPSimError(Exception):
    """Base class for every error raised by tsp_sim."""


class InvalidGeometry(TSPSimError, ValueError):
    """Too few, non-finite or otherwise degenerate cities."""


class InvalidConfig(TSPSimError, ValueError):
    """A configuration value is outside its accepted range."""


class InvalidPermutation(TSPSimError, ValueError):
    """A tour is not a permutation of its index range."""


class SizeMismatch(TSPSimError, ValueError):
    """A population replacement does not match the population size."""


class InvalidState(TSPSimError, RuntimeError):
    """The engine cannot perform the operation in its current state."""
