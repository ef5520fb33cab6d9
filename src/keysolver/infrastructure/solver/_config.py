"""
Solver configuration.

`SolverConfig` is a plain dataclass holding every hyperparameter the solver
reads. It is validated once, on construction: enumerated fields are parsed
into their enum types and every precondition that can be checked without
building a network raises `SolverConfigError` immediately, before any
training work is done.

Net sources
-----------
Exactly one train-net source must be set:

- ``net`` / ``net_param``: a *generic* net used for training and, with a
  TEST state, for any evaluation instances not covered by explicit test nets.
- ``train_net`` / ``train_net_param``: a training-only net.

Paths (``net``, ``train_net``, ``test_net``) point to JSON `NetParameter`
files; ``*_param`` fields hold `NetParameter` objects directly.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, List, Mapping, Optional, Union

from typing_extensions import Self

from ...domain._errors import SolverConfigError
from ...domain._net_state import NetState
from ...domain._solver import LrPolicy, RegularizationType, UpdateRuleKind
from ...domain.device._device import Device, device_from_solver_mode
from ..net._registry import NetParameter


@dataclass
class SolverConfig:
    """
    Hyperparameters and wiring for a `Solver`.

    Attributes
    ----------
    net, net_param : str / NetParameter, optional
        Generic net source (train net and default test nets).
    train_net, train_net_param : str / NetParameter, optional
        Training-only net source.
    test_net, test_net_param : list
        Explicit evaluation nets. Parameter objects are instantiated first,
        then files.
    train_state : NetState, optional
        Highest-precedence state override for the train net.
    test_state : list[NetState]
        One override per evaluation instance, when given.
    test_iter : list[int]
        Forward passes per evaluation, one entry per evaluation instance.
    test_interval : int
        Evaluate every ``test_interval`` iterations (0 disables).
    test_compute_loss : bool
        Also average and report the loss during evaluation.
    test_initialization : bool
        Evaluate at iteration 0 before any update.
    base_lr, lr_policy, gamma, power, stepsize
        Learning-rate schedule (see `learning_rate`).
    display : int
        Log progress every ``display`` iterations (0 disables).
    average_loss : int
        Window size of the displayed smoothed loss. Must be >= 1.
    max_iter : int
        Number of iterations to run.
    momentum, rms_decay, delta
        Update-rule coefficients.
    weight_decay, regularization_type
        Gradient regularization.
    snapshot, snapshot_prefix, snapshot_diff, snapshot_after_train
        Snapshot schedule and artifact naming.
    solver_mode, device_id
        ``"CPU"`` or ``"GPU"`` and the CUDA ordinal.
    random_seed : int
        Seed for every network built by the solver; negative leaves seeding
        to fresh entropy.
    solver_type : UpdateRuleKind
        Update rule.
    update_interval : int
        Micro-batches accumulated per update. Must be >= 1.
    debug_info : bool
        Ask the train net for per-parameter diagnostics on display
        iterations.
    """

    net: Optional[str] = None
    net_param: Optional[NetParameter] = None
    train_net: Optional[str] = None
    train_net_param: Optional[NetParameter] = None
    test_net: List[str] = field(default_factory=list)
    test_net_param: List[NetParameter] = field(default_factory=list)
    train_state: Optional[NetState] = None
    test_state: List[NetState] = field(default_factory=list)
    test_iter: List[int] = field(default_factory=list)
    test_interval: int = 0
    test_compute_loss: bool = False
    test_initialization: bool = True
    base_lr: float = 0.01
    display: int = 0
    average_loss: int = 1
    max_iter: int = 0
    lr_policy: LrPolicy = LrPolicy.FIXED
    gamma: float = 0.0
    power: float = 0.0
    stepsize: int = 0
    momentum: float = 0.0
    rms_decay: float = 0.99
    delta: float = 1e-8
    weight_decay: float = 0.0
    regularization_type: RegularizationType = RegularizationType.L2
    snapshot: int = 0
    snapshot_prefix: str = ""
    snapshot_diff: bool = False
    snapshot_after_train: bool = True
    solver_mode: str = "CPU"
    device_id: int = 0
    random_seed: int = -1
    solver_type: UpdateRuleKind = UpdateRuleKind.SGD
    update_interval: int = 1
    debug_info: bool = False

    def __post_init__(self) -> None:
        self.lr_policy = LrPolicy.parse(self.lr_policy)
        self.regularization_type = RegularizationType.parse(self.regularization_type)
        self.solver_type = UpdateRuleKind.parse(self.solver_type)
        self.test_net = [str(p) for p in self.test_net]
        self.test_net_param = list(self.test_net_param)
        self.test_state = list(self.test_state)
        self.test_iter = [int(n) for n in self.test_iter]
        self._validate()

    # ---- validation ----
    def _validate(self) -> None:
        sources = [
            self.net is not None,
            self.net_param is not None,
            self.train_net is not None,
            self.train_net_param is not None,
        ]
        if sum(sources) != 1:
            raise SolverConfigError(
                "Ambiguous or missing train net specification: exactly one of "
                "net, net_param, train_net, train_net_param must be set",
                field="train_net",
            )

        num_explicit = self.num_explicit_test_nets
        if self.has_generic_net:
            if len(self.test_iter) < num_explicit:
                raise SolverConfigError(
                    f"test_iter must be specified for each test network: "
                    f"got {len(self.test_iter)} entries for {num_explicit} test nets",
                    field="test_iter",
                )
        elif len(self.test_iter) != num_explicit:
            raise SolverConfigError(
                f"test_iter must be specified for each test network: "
                f"got {len(self.test_iter)} entries for {num_explicit} test nets",
                field="test_iter",
            )
        if self.test_state and len(self.test_state) != self.num_test_nets:
            raise SolverConfigError(
                f"test_state must be unspecified or specified once per test net: "
                f"got {len(self.test_state)} for {self.num_test_nets} test nets",
                field="test_state",
            )
        if self.num_test_nets and self.test_interval <= 0:
            raise SolverConfigError(
                f"test_interval must be > 0 when test nets exist, got {self.test_interval}",
                field="test_interval",
            )
        if any(n < 1 for n in self.test_iter):
            raise SolverConfigError("test_iter entries must be >= 1", field="test_iter")

        if self.average_loss < 1:
            raise SolverConfigError(
                f"average_loss must be >= 1, got {self.average_loss}", field="average_loss"
            )
        if self.update_interval < 1:
            raise SolverConfigError(
                f"update_interval must be >= 1, got {self.update_interval}",
                field="update_interval",
            )
        if self.max_iter < 0:
            raise SolverConfigError(
                f"max_iter must be >= 0, got {self.max_iter}", field="max_iter"
            )
        for name in ("display", "snapshot", "test_interval"):
            if getattr(self, name) < 0:
                raise SolverConfigError(f"{name} must be >= 0", field=name)
        if self.lr_policy is LrPolicy.STEP and self.stepsize <= 0:
            raise SolverConfigError(
                f"stepsize must be > 0 for the step policy, got {self.stepsize}",
                field="stepsize",
            )
        if self.delta <= 0.0:
            raise SolverConfigError(f"delta must be > 0, got {self.delta}", field="delta")
        device_from_solver_mode(self.solver_mode, self.device_id)

    # ---- derived wiring ----
    @property
    def has_generic_net(self) -> bool:
        return self.net is not None or self.net_param is not None

    @property
    def num_explicit_test_nets(self) -> int:
        return len(self.test_net_param) + len(self.test_net)

    @property
    def num_test_nets(self) -> int:
        """Total evaluation instances, including generic-net instances."""
        if self.has_generic_net:
            return max(len(self.test_iter), self.num_explicit_test_nets)
        return self.num_explicit_test_nets

    @property
    def device(self) -> Device:
        return device_from_solver_mode(self.solver_mode, self.device_id)

    # ---- JSON ----
    @classmethod
    def from_dict(
        cls, d: Mapping[str, Any], *, base_dir: Union[str, os.PathLike, None] = None
    ) -> Self:
        """
        Build a config from a JSON-style mapping.

        Net file paths are resolved against ``base_dir`` when relative.

        Raises
        ------
        SolverConfigError
            On unknown keys or invalid values.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(d) - known)
        if unknown:
            raise SolverConfigError(f"Unknown solver config keys: {unknown}")

        def _path(p: Any) -> str:
            p = Path(str(p))
            if base_dir is not None and not p.is_absolute():
                p = Path(base_dir) / p
            return str(p)

        kw = dict(d)
        for key in ("net", "train_net"):
            if kw.get(key) is not None:
                kw[key] = _path(kw[key])
        kw["test_net"] = [_path(p) for p in kw.get("test_net", []) or []]
        for key in ("net_param", "train_net_param"):
            if kw.get(key) is not None:
                kw[key] = NetParameter.from_dict(kw[key])
        kw["test_net_param"] = [
            NetParameter.from_dict(p) for p in kw.get("test_net_param", []) or []
        ]
        try:
            if kw.get("train_state") is not None:
                kw["train_state"] = NetState.from_dict(kw["train_state"])
            kw["test_state"] = [
                NetState.from_dict(s) or NetState() for s in kw.get("test_state", []) or []
            ]
        except ValueError as e:
            raise SolverConfigError(f"Invalid net state: {e}") from e
        return cls(**kw)


def load_solver_config(path: Union[str, os.PathLike]) -> SolverConfig:
    """
    Read a `SolverConfig` from a JSON file.

    Relative net paths inside the file are resolved against the file's
    directory.
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SolverConfigError(f"Cannot read solver config {str(path)!r}: {e}") from e
    if not isinstance(doc, dict):
        raise SolverConfigError(f"Solver config {str(path)!r} must hold a JSON object")
    return SolverConfig.from_dict(doc, base_dir=path.parent)
