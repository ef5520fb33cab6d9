from ._config import SolverConfig, load_solver_config
from ._history import EvaluationResult, OutputScore, TrainingHistory
from ._loss_window import SmoothedLoss
from ._lr_policy import learning_rate
from ._optimizer_state import OptimizerState, OptimizerStateEntry
from ._snapshot import (
    read_solver_state,
    restore_snapshot,
    snapshot_filename,
    write_snapshot,
)
from ._solver import Solver
from ._update_rules import UpdateRule

__all__ = [
    SolverConfig.__name__,
    load_solver_config.__name__,
    EvaluationResult.__name__,
    OutputScore.__name__,
    TrainingHistory.__name__,
    SmoothedLoss.__name__,
    learning_rate.__name__,
    OptimizerState.__name__,
    OptimizerStateEntry.__name__,
    read_solver_state.__name__,
    restore_snapshot.__name__,
    snapshot_filename.__name__,
    write_snapshot.__name__,
    Solver.__name__,
    UpdateRule.__name__,
]
