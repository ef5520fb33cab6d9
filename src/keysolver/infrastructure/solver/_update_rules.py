"""
Update rules: turn parameter gradients into update steps.

`UpdateRule.apply` runs once per iteration after the backward pass. For each
parameter, in network order, it

1. derives ``local_rate = rate / update_interval * lr_mult`` and
   ``local_decay = weight_decay * update_interval * decay_mult``,
2. applies regularization to ``diff`` in place when ``local_decay != 0``
   (L2: ``diff += local_decay * data``; L1: ``diff += local_decay * sign(data)``),
3. runs the variant transform, leaving the step to subtract in ``diff``.

The network then applies ``data -= diff``.

Variants
--------
With ``g = diff`` and history ``h`` (``h2`` = AdaDelta update history)::

    SGD       h = local_rate * g + momentum * h;   diff = h
    NESTEROV  u = h_prev;  h = local_rate * g + momentum * h
              diff = (1 + momentum) * h - momentum * u
    ADAGRAD   h += g**2;   diff = local_rate * g / (sqrt(h) + delta)
    RMSPROP   h = (1 - rms_decay) * g**2 + rms_decay * h
              diff = local_rate * g / (sqrt(h) + delta)
    ADADELTA  h  = (1 - momentum) * g**2 + momentum * h
              s  = g * sqrt((h2 + delta) / (h + delta))
              h2 = (1 - momentum) * s**2 + momentum * h2
              diff = local_rate * s

Every variant is written once against `INumericBackend`; the same code runs
on NumPy and CuPy buffers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from typing_extensions import Self

from ...domain._backend import INumericBackend
from ...domain._errors import SolverConfigError
from ...domain._net import IParameter
from ...domain._solver import RegularizationType, UpdateRuleKind
from ._optimizer_state import OptimizerState, OptimizerStateEntry


@dataclass
class UpdateRule:
    """
    Update-rule variant plus its coefficients.

    Parameters
    ----------
    kind : UpdateRuleKind or str
        Variant to run.
    momentum : float, optional
        Momentum (SGD, Nesterov) or decay of both running averages (AdaDelta).
    delta : float, optional
        Numerical-stability constant (AdaGrad, RMSProp, AdaDelta). Must be > 0.
    rms_decay : float, optional
        RMSProp running-average decay. Must be in ``[0, 1]``.
    weight_decay : float, optional
        Regularization strength. Must be >= 0.
    regularization_type : RegularizationType or str, optional
        ``L2`` (default) or ``L1``.
    update_interval : int, optional
        Micro-batches accumulated per update. Must be >= 1.

    Raises
    ------
    SolverConfigError
        If a name is unknown or a coefficient is out of range.
    """

    kind: UpdateRuleKind = UpdateRuleKind.SGD
    momentum: float = 0.0
    delta: float = 1e-8
    rms_decay: float = 0.99
    weight_decay: float = 0.0
    regularization_type: RegularizationType = RegularizationType.L2
    update_interval: int = 1

    def __post_init__(self) -> None:
        self.kind = UpdateRuleKind.parse(self.kind)
        self.regularization_type = RegularizationType.parse(self.regularization_type)
        self.momentum = float(self.momentum)
        self.delta = float(self.delta)
        self.rms_decay = float(self.rms_decay)
        self.weight_decay = float(self.weight_decay)
        self.update_interval = int(self.update_interval)

        if self.delta <= 0.0:
            raise SolverConfigError(f"delta must be > 0, got {self.delta}", field="delta")
        if not 0.0 <= self.rms_decay <= 1.0:
            raise SolverConfigError(
                f"rms_decay must be in [0, 1], got {self.rms_decay}", field="rms_decay"
            )
        if self.weight_decay < 0.0:
            raise SolverConfigError(
                f"weight_decay must be >= 0, got {self.weight_decay}", field="weight_decay"
            )
        if self.update_interval < 1:
            raise SolverConfigError(
                f"update_interval must be >= 1, got {self.update_interval}",
                field="update_interval",
            )

    @classmethod
    def from_config(cls, cfg: Any) -> Self:
        return cls(
            kind=cfg.solver_type,
            momentum=cfg.momentum,
            delta=cfg.delta,
            rms_decay=cfg.rms_decay,
            weight_decay=cfg.weight_decay,
            regularization_type=cfg.regularization_type,
            update_interval=cfg.update_interval,
        )

    def apply(
        self,
        backend: INumericBackend,
        params: Sequence[IParameter],
        state: OptimizerState,
        rate: float,
    ) -> None:
        """
        Transform every parameter's gradient into its update step.

        Parameters
        ----------
        backend : INumericBackend
            Backend owning the parameter and state buffers.
        params : Sequence[IParameter]
            Train-net parameters, in the order ``state`` was allocated for.
        state : OptimizerState
            Auxiliary buffers; mutated in place.
        rate : float
            Learning rate for this iteration (before per-parameter scaling).
        """
        if len(params) != len(state):
            raise SolverConfigError(
                f"Optimizer state has {len(state)} entries for {len(params)} parameters"
            )
        rate = float(rate) / self.update_interval
        weight_decay = self.weight_decay * self.update_interval
        for p, entry in zip(params, state):
            local_rate = rate * p.lr_mult
            local_decay = weight_decay * p.decay_mult
            if local_decay:
                self._regularize(backend, p, entry, local_decay)
            self._transform(backend, p, entry, local_rate)

    def _regularize(
        self,
        backend: INumericBackend,
        p: IParameter,
        entry: OptimizerStateEntry,
        local_decay: float,
    ) -> None:
        match self.regularization_type:
            case RegularizationType.L2:
                backend.axpy(local_decay, p.data, p.diff)
            case RegularizationType.L1:
                backend.sign(p.data, entry.temp)
                backend.axpy(local_decay, entry.temp, p.diff)
            case _:
                raise SolverConfigError(
                    f"Unknown regularization type: {self.regularization_type}",
                    field="regularization_type",
                )

    def _transform(
        self,
        backend: INumericBackend,
        p: IParameter,
        entry: OptimizerStateEntry,
        local_rate: float,
    ) -> None:
        b = backend
        h = entry.history[0]
        match self.kind:
            case UpdateRuleKind.SGD:
                b.axpby(local_rate, p.diff, self.momentum, h)
                b.copy(h, p.diff)
            case UpdateRuleKind.NESTEROV:
                # keep the previous history to step back from
                b.copy(h, entry.update)
                b.axpby(local_rate, p.diff, self.momentum, h)
                b.axpby(1.0 + self.momentum, h, -self.momentum, entry.update)
                b.copy(entry.update, p.diff)
            case UpdateRuleKind.ADAGRAD:
                b.powx(p.diff, 2.0, entry.update)
                b.add(entry.update, h, h)
                b.powx(h, 0.5, entry.update)
                b.add_scalar(self.delta, entry.update)
                b.div(p.diff, entry.update, entry.update)
                b.scale(local_rate, entry.update, p.diff)
            case UpdateRuleKind.RMSPROP:
                b.powx(p.diff, 2.0, entry.update)
                b.axpby(1.0 - self.rms_decay, entry.update, self.rms_decay, h)
                b.powx(h, 0.5, entry.update)
                b.add_scalar(self.delta, entry.update)
                b.div(p.diff, entry.update, entry.update)
                b.scale(local_rate, entry.update, p.diff)
            case UpdateRuleKind.ADADELTA:
                h_update = entry.history[1]
                b.powx(p.diff, 2.0, entry.update)
                b.axpby(1.0 - self.momentum, entry.update, self.momentum, h)
                b.set(self.delta, entry.temp)
                b.add(entry.temp, h_update, entry.update)
                b.add(entry.temp, h, entry.temp)
                b.div(entry.update, entry.temp, entry.update)
                b.powx(entry.update, 0.5, entry.update)
                b.mul(p.diff, entry.update, p.diff)
                b.powx(p.diff, 2.0, entry.update)
                b.axpby(1.0 - self.momentum, entry.update, self.momentum, h_update)
                # learning-rate scale goes through temp, then back into diff
                b.scale(local_rate, p.diff, entry.temp)
                b.copy(entry.temp, p.diff)
            case _:
                raise SolverConfigError(f"Unknown solver type: {self.kind}", field="solver_type")
