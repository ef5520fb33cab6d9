"""
Xavier/Glorot fillers.

Implemented variants
--------------------
- ``xavier``:
    Uniform ``U(-sqrt(3 / fan_in), +sqrt(3 / fan_in))``; the variance depends
    on fan-in only.
- ``xavier_normal``:
    Normal with ``std = sqrt(2 / (fan_in + fan_out))``.

Notes
-----
- Fan-in and fan-out are computed from the parameter shape via
  ``fan_in_and_fan_out``.
"""

import math
from typing import Tuple

import numpy as np

from ._base import Filler, fan_in_and_fan_out


@Filler.register_filler("xavier")
def xavier(shape: Tuple[int, ...], rng: np.random.Generator) -> np.ndarray:
    """
    Uniform Xavier fill scaled by fan-in.

    Parameters
    ----------
    shape:
        Parameter shape.
    rng:
        Random generator to draw from.

    Returns
    -------
    np.ndarray
        Values drawn from ``U(-sqrt(3/fan_in), +sqrt(3/fan_in))``.
    """
    fan_in, _ = fan_in_and_fan_out(shape)
    bound = math.sqrt(3.0 / float(max(1, fan_in)))
    return rng.uniform(-bound, bound, size=shape)


@Filler.register_filler("xavier_normal")
def xavier_normal(shape: Tuple[int, ...], rng: np.random.Generator) -> np.ndarray:
    fan_in, fan_out = fan_in_and_fan_out(shape)
    std = math.sqrt(2.0 / float(max(1, fan_in) + max(1, fan_out)))
    return rng.normal(0.0, std, size=shape)
