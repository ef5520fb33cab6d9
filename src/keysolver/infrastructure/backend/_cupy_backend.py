"""
GPU numeric backend backed by CuPy.

CuPy is an optional dependency (``pip install keysolver[cuda]``). It is
imported lazily the first time a GPU backend is constructed, so CPU-only
installations never touch it.

Key behaviors
-------------
- Cached import: `load_cupy()` is decorated with `lru_cache` so the module
  (and the CUDA runtime behind it) is initialized at most once per process.
- Explicit failure: a missing or broken CuPy installation surfaces as
  `DeviceNotSupportedError`, not as a bare ``ImportError`` deep inside a
  training run.
- Device pinning: every backend instance remembers its CUDA ordinal and
  activates it around allocations and transfers.
- Host reads synchronize: `to_host` waits for the device before copying, so
  a host read never observes a partially applied kernel.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Any

import numpy as np

from ...domain._errors import DeviceNotSupportedError
from ...domain.device._device import Device
from ._array_backend import ArrayModuleBackend


@lru_cache(maxsize=1)
def load_cupy() -> Any:
    """
    Import and cache the ``cupy`` module.

    Returns
    -------
    module
        The imported ``cupy`` package.

    Raises
    ------
    DeviceNotSupportedError
        If CuPy is not installed or cannot initialize.
    """
    try:
        import cupy
    except ImportError as e:
        raise DeviceNotSupportedError(
            op="load_cupy",
            device="cuda",
            reason=f"CuPy is not available ({e}). Install keysolver[cuda].",
        ) from e
    return cupy


class CupyBackend(ArrayModuleBackend):
    """
    `INumericBackend` implementation on a single CUDA device.

    Parameters
    ----------
    device : Device
        A CUDA device descriptor (``cuda:<index>``).
    dtype : numpy dtype-like, optional
        Floating dtype of every buffer. Defaults to float32.

    Raises
    ------
    DeviceNotSupportedError
        If ``device`` is not a CUDA device or CuPy is unavailable.
    """

    _NAME = "cupy"

    def __init__(self, device: Device, dtype: Any = np.float32) -> None:
        if not device.is_cuda():
            raise DeviceNotSupportedError(
                op="CupyBackend", device=str(device), reason="expected a CUDA device"
            )
        cp = load_cupy()
        super().__init__(cp, device, dtype=dtype)
        self._cuda_device = cp.cuda.Device(device.index)

    def zeros(self, shape):
        with self._cuda_device:
            return super().zeros(shape)

    def zeros_like(self, x):
        with self._cuda_device:
            return super().zeros_like(x)

    def from_host(self, arr: Any) -> Any:
        host = np.ascontiguousarray(arr, dtype=self._dtype)
        with self._cuda_device:
            return self._xp.array(host, dtype=self._dtype, copy=True)

    def to_host(self, x: Any) -> np.ndarray:
        self.synchronize()
        return np.ascontiguousarray(self._xp.asnumpy(x))

    def synchronize(self) -> None:
        self._cuda_device.synchronize()
