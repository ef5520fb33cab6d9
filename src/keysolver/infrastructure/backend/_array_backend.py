"""
Shared elementwise kernels for NumPy-compatible array modules.

NumPy and CuPy expose the same ufunc surface (``add``, ``multiply``,
``divide``, ``power``, ``sign``, ``copyto`` with ``out=``), so the kernel set
required by `INumericBackend` is written once here against an array module
``xp``. Concrete backends only decide which module to use and how buffers
move between host and device.

Design notes
------------
- Kernels write in place into their last argument and never allocate a new
  output buffer, except for the temporary needed by ``axpy``/``axpby``.
- All buffers use a single floating dtype chosen at construction
  (float32 by default, matching the rest of the framework).
- ``axpby`` computes ``alpha * x`` before scaling ``y`` so that the kernel
  stays correct when ``x`` and ``y`` alias.
"""

from __future__ import annotations

from typing import Any, Sequence

import numpy as np

from ...domain.device._device import Device


class ArrayModuleBackend:
    """
    Elementwise kernel implementation over a NumPy-compatible array module.

    Parameters
    ----------
    xp : module
        Array module (``numpy`` or ``cupy``).
    device : Device
        Device the buffers live on.
    dtype : numpy dtype-like, optional
        Floating dtype of every buffer. Defaults to float32.
    """

    _NAME = "array"

    def __init__(self, xp: Any, device: Device, dtype: Any = np.float32) -> None:
        self._xp = xp
        self._device = device
        self._dtype = np.dtype(dtype)
        if self._dtype.kind != "f":
            raise ValueError(f"Backend dtype must be floating, got {self._dtype}")

    def __repr__(self) -> str:
        return f"{type(self).__name__}(device={self._device!s}, dtype={self._dtype})"

    @property
    def name(self) -> str:
        return self._NAME

    @property
    def device(self) -> Device:
        return self._device

    @property
    def dtype(self) -> np.dtype:
        return self._dtype

    @property
    def array_module(self) -> Any:
        return self._xp

    # ---- allocation / transfer ----
    def zeros(self, shape: Sequence[int]) -> Any:
        return self._xp.zeros(tuple(int(s) for s in shape), dtype=self._dtype)

    def zeros_like(self, x: Any) -> Any:
        return self._xp.zeros(x.shape, dtype=self._dtype)

    def from_host(self, arr: Any) -> Any:
        raise NotImplementedError

    def to_host(self, x: Any) -> np.ndarray:
        raise NotImplementedError

    def synchronize(self) -> None:
        return None

    # ---- kernels ----
    def axpy(self, alpha: float, x: Any, y: Any) -> None:
        y += alpha * x

    def axpby(self, alpha: float, x: Any, beta: float, y: Any) -> None:
        ax = alpha * x
        self._xp.multiply(y, beta, out=y)
        y += ax

    def scale(self, alpha: float, x: Any, out: Any) -> None:
        self._xp.multiply(x, alpha, out=out)

    def add(self, a: Any, b: Any, out: Any) -> None:
        self._xp.add(a, b, out=out)

    def mul(self, a: Any, b: Any, out: Any) -> None:
        self._xp.multiply(a, b, out=out)

    def div(self, a: Any, b: Any, out: Any) -> None:
        self._xp.divide(a, b, out=out)

    def powx(self, a: Any, exponent: float, out: Any) -> None:
        self._xp.power(a, exponent, out=out)

    def sign(self, x: Any, out: Any) -> None:
        self._xp.sign(x, out=out)

    def add_scalar(self, alpha: float, y: Any) -> None:
        y += alpha

    def set(self, alpha: float, y: Any) -> None:
        y.fill(alpha)

    def copy(self, x: Any, y: Any) -> None:
        self._xp.copyto(y, x)
