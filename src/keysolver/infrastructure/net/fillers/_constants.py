"""
Constant and Gaussian fillers.

Provided fillers
----------------
- ``constant``:
    Every element set to ``value`` (default 0). Typical for biases.
- ``gaussian``:
    Independent draws from ``N(mean, std^2)`` (defaults 0 and 0.01).
"""

from typing import Tuple

import numpy as np

from ._base import Filler


@Filler.register_filler("constant")
def constant(shape: Tuple[int, ...], rng: np.random.Generator, value: float = 0.0) -> np.ndarray:
    return np.full(shape, float(value), dtype=np.float64)


@Filler.register_filler("gaussian")
def gaussian(
    shape: Tuple[int, ...],
    rng: np.random.Generator,
    mean: float = 0.0,
    std: float = 0.01,
) -> np.ndarray:
    if std < 0:
        raise ValueError(f"gaussian filler std must be >= 0, got {std}")
    return rng.normal(loc=float(mean), scale=float(std), size=shape)
