"""
CPU numeric backend backed by NumPy.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ...domain.device._device import Device
from ._array_backend import ArrayModuleBackend


class NumpyBackend(ArrayModuleBackend):
    """
    `INumericBackend` implementation on host memory.

    Buffers are C-contiguous ``np.ndarray`` objects. Host transfers always
    copy, so callers never alias backend-owned storage by accident.
    """

    _NAME = "numpy"

    def __init__(self, dtype: Any = np.float32) -> None:
        super().__init__(np, Device("cpu"), dtype=dtype)

    def from_host(self, arr: Any) -> np.ndarray:
        return np.array(arr, dtype=self._dtype, copy=True, order="C")

    def to_host(self, x: Any) -> np.ndarray:
        return np.array(x, copy=True, order="C")
