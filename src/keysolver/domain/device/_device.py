"""
Device abstraction utilities.

This module defines lightweight abstractions for representing computation
devices (CPU and CUDA GPUs) in a framework-agnostic way. It provides:

- `DeviceType`: an enumeration of supported device categories
- `Device`: a concrete device descriptor that validates and normalizes
  user-facing device strings such as "cpu" or "cuda:0"
- `device_from_solver_mode`: translation of the solver's execution mode
  ("CPU" / "GPU") and device id into a `Device`

The design intentionally avoids backend-specific dependencies and is suitable
for use across domain and infrastructure layers.
"""

from enum import Enum
import re

from .._errors import SolverConfigError


class DeviceType(Enum):
    """
    Enumeration of supported device categories.

    Attributes
    ----------
    CPU : DeviceType
        Central Processing Unit.
    CUDA : DeviceType
        NVIDIA CUDA-enabled Graphics Processing Unit.
    """

    CPU = "cpu"
    CUDA = "cuda"


class Device:
    """
    Concrete computation device descriptor.

    This class encapsulates a normalized representation of a computation device,
    including its type (CPU or CUDA) and, for CUDA devices, a device index
    (e.g., cuda:0).

    Parameters
    ----------
    device : str
        Device identifier string. Must be either:
        - "cpu"
        - "cuda:<index>", where <index> is a non-negative integer

    Raises
    ------
    ValueError
        If the provided device string does not match the supported formats.

    Notes
    -----
    - `__slots__` is used to prevent dynamic attribute creation.
    - This class does not allocate or manage any backend resources.
    """

    __slots__ = ("type", "index")

    _CUDA_PATTERN = re.compile(r"^cuda:(\d+)$")

    def __init__(self, device: str):
        if device == "cpu":
            self.type = DeviceType.CPU
            self.index = None
        else:
            m = self._CUDA_PATTERN.match(device)
            if not m:
                raise ValueError(
                    f"Invalid device '{device}'. Expected 'cpu' or 'cuda:<index>'"
                )
            self.type = DeviceType.CUDA
            self.index = int(m.group(1))

    def __str__(self) -> str:
        return "cpu" if self.type is DeviceType.CPU else f"cuda:{self.index}"

    def __repr__(self) -> str:
        return f"Device('{self}')"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Device):
            return NotImplemented
        return (self.type, self.index) == (other.type, other.index)

    def __hash__(self) -> int:
        return hash((self.type, self.index))

    def is_cpu(self) -> bool:
        """Return True if the device type is CPU."""
        return self.type is DeviceType.CPU

    def is_cuda(self) -> bool:
        """Return True if the device type is CUDA."""
        return self.type is DeviceType.CUDA


def device_from_solver_mode(solver_mode: str, device_id: int = 0) -> Device:
    """
    Translate a solver execution mode into a `Device`.

    Parameters
    ----------
    solver_mode : str
        Execution mode, case-insensitive: "CPU" or "GPU".
    device_id : int, optional
        GPU ordinal used when ``solver_mode`` is "GPU". Ignored for CPU.

    Returns
    -------
    Device
        `Device("cpu")` or `Device("cuda:<device_id>")`.

    Raises
    ------
    SolverConfigError
        If the mode is neither CPU nor GPU, or the device id is negative.
    """
    mode = str(solver_mode).upper()
    if mode == "CPU":
        return Device("cpu")
    if mode == "GPU":
        if int(device_id) < 0:
            raise SolverConfigError(
                f"device_id must be >= 0, got {device_id}", field="device_id"
            )
        return Device(f"cuda:{int(device_id)}")
    raise SolverConfigError(
        f"Unknown solver mode: {solver_mode!r}. Expected 'CPU' or 'GPU'.",
        field="solver_mode",
    )
