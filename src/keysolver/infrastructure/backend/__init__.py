"""
Numeric backends and device dispatch.

`get_backend(device)` is the single point where a device descriptor is turned
into a concrete `INumericBackend`. The update rules, optimizer state, and
reference networks all allocate and compute through the backend they were
given; none of them branch on the device themselves.
"""

from __future__ import annotations

from typing import Any

import numpy as np

from ...domain._errors import DeviceNotSupportedError
from ...domain.device._device import Device, DeviceType
from ._array_backend import ArrayModuleBackend
from ._cupy_backend import CupyBackend, load_cupy
from ._numpy_backend import NumpyBackend


def get_backend(device: Device | str, dtype: Any = np.float32) -> ArrayModuleBackend:
    """
    Construct the numeric backend for ``device``.

    Raises
    ------
    DeviceNotSupportedError
        If the device type has no backend, or CUDA is requested but CuPy is
        not installed.
    """
    dev = device if isinstance(device, Device) else Device(str(device))
    match dev.type:
        case DeviceType.CPU:
            return NumpyBackend(dtype=dtype)
        case DeviceType.CUDA:
            return CupyBackend(dev, dtype=dtype)
        case _:
            raise DeviceNotSupportedError(op="get_backend", device=str(dev))


__all__ = [
    ArrayModuleBackend.__name__,
    CupyBackend.__name__,
    NumpyBackend.__name__,
    get_backend.__name__,
    load_cupy.__name__,
]
