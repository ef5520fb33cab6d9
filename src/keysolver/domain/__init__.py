"""
Backend-agnostic contracts and vocabulary for keysolver.

Nothing in this package depends on NumPy, CuPy, or any infrastructure module.
"""

from ._errors import DeviceNotSupportedError, SolverConfigError, SolverStateError
from ._backend import INumericBackend
from ._net import INet, IParameter, NetOutput
from ._net_state import NetState, Phase, RunContext
from ._solver import LrPolicy, RegularizationType, SolverStatus, UpdateRuleKind
from .device import Device, DeviceType, device_from_solver_mode

__all__ = [
    DeviceNotSupportedError.__name__,
    SolverConfigError.__name__,
    SolverStateError.__name__,
    INumericBackend.__name__,
    INet.__name__,
    IParameter.__name__,
    NetOutput.__name__,
    NetState.__name__,
    Phase.__name__,
    RunContext.__name__,
    LrPolicy.__name__,
    RegularizationType.__name__,
    SolverStatus.__name__,
    UpdateRuleKind.__name__,
    Device.__name__,
    DeviceType.__name__,
    device_from_solver_mode.__name__,
]
