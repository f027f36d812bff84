"""
Random source handling and uniform index sampling.

All randomness flows through an explicit numpy Generator so that a seed
reproduces a fabrication or resample exactly. The global numpy state is
never touched.
"""

from typing import Optional

import numpy as np

from .errors import InvalidSizeError, SampleSizeError


def make_rng(
    seed: Optional[int] = None,
    rng: Optional[np.random.Generator] = None
) -> np.random.Generator:
    """
    Resolve the random source for a call.

    Args:
        seed: Seed for a fresh generator
        rng: Existing generator (wins over seed)

    Returns:
        numpy Generator
    """
    if rng is not None and seed is not None:
        raise ValueError("Pass either seed or rng, not both")

    if rng is not None:
        if not isinstance(rng, np.random.Generator):
            raise TypeError(f"rng must be a numpy.random.Generator, got {type(rng).__name__}")
        return rng

    return np.random.default_rng(seed)


def sample_indices(
    population: int,
    size: int,
    rng: np.random.Generator,
    replace: bool = True
) -> np.ndarray:
    """
    Draw size positions uniformly from range(population).

    Args:
        population: Number of items available
        size: Number of items to draw
        rng: Random source
        replace: Sample with replacement (bootstrap) or without

    Returns:
        Integer array of drawn positions, in draw order
    """
    if int(size) != size or size < 0:
        raise InvalidSizeError(f"Sample size must be a non-negative integer, got {size!r}")
    size = int(size)

    if size == 0:
        return np.empty(0, dtype=np.intp)

    if population == 0:
        raise SampleSizeError(f"Cannot draw {size} items from an empty population")

    if not replace and size > population:
        raise SampleSizeError(
            f"Cannot draw {size} items without replacement from {population}"
        )

    return rng.choice(population, size=size, replace=replace)
