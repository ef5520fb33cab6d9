"""
keysolver: a NumPy-first iterative solver for trainable networks.

Typical use::

    from keysolver import NetParameter, Solver, SolverConfig

    cfg = SolverConfig(
        net_param=NetParameter(type="LinearRegression", config={"input_dim": 3}),
        base_lr=0.1,
        max_iter=100,
        solver_type="NESTEROV",
        momentum=0.9,
    )
    Solver(cfg).solve()
"""

from .domain import (
    Device,
    DeviceNotSupportedError,
    LrPolicy,
    NetState,
    Phase,
    RegularizationType,
    RunContext,
    SolverConfigError,
    SolverStateError,
    SolverStatus,
    UpdateRuleKind,
)
from .infrastructure.backend import get_backend
from .infrastructure.net import LinearRegressionNet, NetParameter, register_net
from .infrastructure.solver import (
    EvaluationResult,
    Solver,
    SolverConfig,
    TrainingHistory,
    load_solver_config,
)

__version__ = "1.0.0a0"

__all__ = [
    Device.__name__,
    DeviceNotSupportedError.__name__,
    LrPolicy.__name__,
    NetState.__name__,
    Phase.__name__,
    RegularizationType.__name__,
    RunContext.__name__,
    SolverConfigError.__name__,
    SolverStateError.__name__,
    SolverStatus.__name__,
    UpdateRuleKind.__name__,
    get_backend.__name__,
    LinearRegressionNet.__name__,
    NetParameter.__name__,
    register_net.__name__,
    EvaluationResult.__name__,
    Solver.__name__,
    SolverConfig.__name__,
    TrainingHistory.__name__,
    load_solver_config.__name__,
]
