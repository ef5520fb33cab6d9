"""
Iterative solver driving a trainable network.

`Solver` owns one training run end to end:

- builds the train net and every evaluation net from a `SolverConfig`,
- runs forward/backward passes (optionally accumulating gradients over
  several micro-batches),
- turns gradients into update steps with the configured `UpdateRule` and a
  learning-rate schedule,
- periodically evaluates the test nets, logs progress, and writes
  snapshots that a later run can resume from.

State machine
-------------
``UNINITIALIZED -> READY -> RUNNING -> (TESTING | SNAPSHOTTING) -> COMPLETED``

`test` and `snapshot` may also be called directly on a READY or COMPLETED
solver; they return to the state they were entered from. `solve` may be
called again after completion and starts a new run from iteration 0 (or from
the resume file).

Run mode
--------
Phase and accumulation are passed to every network call as an explicit
`RunContext`; the solver keeps no process-wide mode flags.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional, Tuple, Union

from ...domain._backend import INumericBackend
from ...domain._errors import SolverConfigError, SolverStateError
from ...domain._net import INet
from ...domain._net_state import NetState, Phase, RunContext
from ...domain._solver import SolverStatus
from ..backend import get_backend
from ..net._registry import NetParameter, load_net_parameter, net_from_param
from ._config import SolverConfig
from ._history import EvaluationResult, OutputScore, TrainingHistory
from ._loss_window import SmoothedLoss
from ._lr_policy import learning_rate
from ._optimizer_state import OptimizerState
from ._snapshot import restore_snapshot, write_snapshot
from ._update_rules import UpdateRule

logger = logging.getLogger(__name__)

PathLike = Union[str, os.PathLike]


class Solver:
    """
    Training-loop driver.

    Parameters
    ----------
    config : SolverConfig, optional
        When given, the solver is initialized immediately.

    Attributes
    ----------
    history : TrainingHistory
        Displayed-iteration metrics and evaluation results of the last run.
    """

    def __init__(self, config: Optional[SolverConfig] = None) -> None:
        self._status = SolverStatus.UNINITIALIZED
        self._config: Optional[SolverConfig] = None
        self._backend: Optional[INumericBackend] = None
        self._net: Optional[INet] = None
        self._test_nets: List[INet] = []
        self._rule: Optional[UpdateRule] = None
        self._state: Optional[OptimizerState] = None
        self._iter = 0
        self.history = TrainingHistory()
        if config is not None:
            self.initialize(config)

    def __repr__(self) -> str:
        net = self._net.name if self._net is not None else None
        return f"Solver(status={self._status.value}, iter={self._iter}, net={net!r})"

    # ---- read-only views ----
    @property
    def status(self) -> SolverStatus:
        return self._status

    @property
    def iter(self) -> int:
        return self._iter

    @property
    def config(self) -> Optional[SolverConfig]:
        return self._config

    @property
    def backend(self) -> Optional[INumericBackend]:
        return self._backend

    @property
    def net(self) -> Optional[INet]:
        return self._net

    @property
    def test_nets(self) -> List[INet]:
        return list(self._test_nets)

    @property
    def optimizer_state(self) -> Optional[OptimizerState]:
        return self._state

    # ---- initialization ----
    def initialize(self, config: SolverConfig) -> None:
        """
        Build the backend, the train net, and every evaluation net.

        Raises
        ------
        SolverConfigError
            If the configuration is invalid or names an unknown net type.
        DeviceNotSupportedError
            If GPU mode is requested and no GPU backend is available.
        """
        if not isinstance(config, SolverConfig):
            raise SolverConfigError(
                f"Expected a SolverConfig, got {type(config).__name__}"
            )
        logger.info(f"Initializing solver from parameters: {config}")
        self._config = config
        self._backend = get_backend(config.device)
        logger.info(f"Using {self._backend.name} backend on {self._backend.device}")
        self._rule = UpdateRule.from_config(config)

        self._init_train_net(config)
        self._init_test_nets(config)
        self._state = None
        self._iter = 0
        self.history = TrainingHistory()
        self._status = SolverStatus.READY
        logger.info("Solver scaffolding done.")

    def _seed_for(self, offset: int) -> Optional[int]:
        seed = self._config.random_seed
        return seed + offset if seed >= 0 else None

    def _init_train_net(self, config: SolverConfig) -> None:
        if config.train_net_param is not None:
            source, param = "train_net_param", config.train_net_param
        elif config.train_net is not None:
            source, param = f"train_net file: {config.train_net}", load_net_parameter(config.train_net)
        elif config.net_param is not None:
            source, param = "net_param", config.net_param
        else:
            source, param = f"net file: {config.net}", load_net_parameter(config.net)
        logger.info(f"Creating training net specified in {source}.")

        state = NetState(phase=Phase.TRAIN).merged_with(param.state).merged_with(config.train_state)
        self._net = net_from_param(param, self._backend, state=state, seed=self._seed_for(0))

    def _init_test_nets(self, config: SolverConfig) -> None:
        sources: List[Tuple[str, NetParameter]] = []
        for param in config.test_net_param:
            sources.append(("test_net_param", param))
        for path in config.test_net:
            sources.append((f"test_net file: {path}", load_net_parameter(path)))

        remaining = config.num_test_nets - len(sources)
        if remaining > 0:
            if config.net_param is not None:
                generic = ("net_param", config.net_param)
            else:
                generic = (f"net file: {config.net}", load_net_parameter(config.net))
            sources.extend([generic] * remaining)

        self._test_nets = []
        for i, (source, param) in enumerate(sources):
            state = NetState(phase=Phase.TEST).merged_with(param.state)
            if config.test_state:
                state = state.merged_with(config.test_state[i])
            logger.info(f"Creating test net (#{i}) specified by {source}")
            self._test_nets.append(
                net_from_param(param, self._backend, state=state, seed=self._seed_for(1 + i))
            )

    def _require_initialized(self, op: str) -> None:
        if self._status is SolverStatus.UNINITIALIZED:
            raise SolverStateError(f"Solver.{op}() called before initialize()")

    # ---- training ----
    def pre_solve(self) -> None:
        """(Re)allocate zeroed optimizer state mirroring the train net's parameters."""
        self._require_initialized("pre_solve")
        self._state = OptimizerState(
            self._backend, self._config.solver_type, self._net.parameters()
        )

    def solve(self, resume_file: Optional[PathLike] = None) -> TrainingHistory:
        """
        Run the training loop until ``max_iter``.

        Parameters
        ----------
        resume_file : path-like, optional
            Solver-state artifact to resume from.

        Returns
        -------
        TrainingHistory
            The run's recorded metrics (also available as `history`).
        """
        self._require_initialized("solve")
        cfg = self._config
        logger.info(f"Solving {self._net.name}")
        self.pre_solve()

        if resume_file is not None:
            logger.info(f"Restoring previous solver status from {resume_file}")
            self.restore(resume_file)
        else:
            self._iter = 0
        self.history = TrainingHistory()
        self._status = SolverStatus.RUNNING
        start_iter = self._iter
        window = SmoothedLoss(cfg.average_loss, start_iter=start_iter)
        ctx = RunContext(phase=Phase.TRAIN, accumulate=cfg.update_interval > 1)

        while self._iter < cfg.max_iter:
            if cfg.snapshot and self._iter > start_iter and self._iter % cfg.snapshot == 0:
                self.snapshot()

            if (
                cfg.test_interval
                and self._iter % cfg.test_interval == 0
                and (self._iter > 0 or cfg.test_initialization)
            ):
                self.test_all()

            display = bool(cfg.display) and self._iter % cfg.display == 0
            loss = self._forward_backward(ctx.with_debug_info(display and cfg.debug_info))
            smoothed = window.update(self._iter, loss)
            if display:
                self._display_train_outputs(smoothed)

            self.compute_update_value(display=display)
            self._net.apply_update()
            self._iter += 1

        if cfg.snapshot_after_train:
            self.snapshot()
        if cfg.display and self._iter % cfg.display == 0:
            loss, _ = self._net.forward_only(RunContext(phase=Phase.TRAIN))
            logger.info(f"Iteration {self._iter}, loss = {loss:g}")
        if cfg.test_interval and self._iter % cfg.test_interval == 0:
            self.test_all()
        logger.info("Optimization Done.")
        self._status = SolverStatus.COMPLETED
        return self.history

    def _forward_backward(self, ctx: RunContext) -> float:
        n = self._config.update_interval
        if not ctx.accumulate:
            return self._net.forward_backward(ctx)
        loss = 0.0
        for _ in range(n - 1):
            loss += self._net.forward_backward(ctx)
            self._net.accumulate_gradients()
        loss += self._net.forward_backward(ctx)
        self._net.finalize_accumulated_gradients()
        return loss / n

    def _display_train_outputs(self, smoothed_loss: float) -> None:
        logger.info(f"Iteration {self._iter}, loss = {smoothed_loss:g}")
        logs = {"smoothed_loss": smoothed_loss, "lr": self.learning_rate()}
        score_index = 0
        for out in self._net.output_blobs():
            for k, value in enumerate(out.values):
                weighted = ""
                if out.loss_weight:
                    weighted = f" (* {out.loss_weight:g} = {out.loss_weight * value:g} loss)"
                logger.info(
                    f"    Train net output #{score_index}: {out.name} = {value:g}{weighted}"
                )
                score_index += 1
                key = out.name if len(out.values) == 1 else f"{out.name}[{k}]"
                logs[key] = value
        self.history.append_iteration(self._iter, logs)

    def learning_rate(self) -> float:
        """Learning rate of the current iteration."""
        cfg = self._config
        return learning_rate(
            cfg.lr_policy,
            self._iter,
            base_lr=cfg.base_lr,
            gamma=cfg.gamma,
            power=cfg.power,
            stepsize=cfg.stepsize,
        )

    def compute_update_value(self, display: bool = False) -> None:
        """
        Transform the train net's gradients into update steps in place.

        The net's ``diff`` buffers hold the steps afterwards; the caller
        applies them with ``net.apply_update()``.
        """
        if self._state is None:
            self.pre_solve()
        rate = self.learning_rate()
        if display:
            logger.info(f"Iteration {self._iter}, lr = {rate:g}")
        self._rule.apply(self._backend, self._net.parameters(), self._state, rate)

    # ---- evaluation ----
    def test_all(self) -> List[EvaluationResult]:
        return [self.test(i) for i in range(len(self._test_nets))]

    def test(self, test_net_id: int = 0) -> EvaluationResult:
        """
        Evaluate one test net on the current train-net parameters.

        Parameter values are copied into the test net by name, then
        ``test_iter[test_net_id]`` forward-only passes run in TEST phase.
        Every output element and (with ``test_compute_loss``) the loss are
        averaged over the passes.

        Raises
        ------
        IndexError
            If ``test_net_id`` does not name a test net.
        """
        self._require_initialized("test")
        if not 0 <= test_net_id < len(self._test_nets):
            raise IndexError(
                f"test_net_id {test_net_id} out of range for {len(self._test_nets)} test nets"
            )
        previous = self._status
        self._status = SolverStatus.TESTING
        try:
            result = self._run_test(test_net_id)
        finally:
            self._status = previous
        self.history.append_evaluation(result)
        return result

    def _run_test(self, test_net_id: int) -> EvaluationResult:
        cfg = self._config
        logger.info(f"Iteration {self._iter}, Testing net (#{test_net_id})")
        test_net = self._test_nets[test_net_id]
        test_net.copy_trained_from(self._net)
        ctx = RunContext(phase=Phase.TEST)
        num_passes = cfg.test_iter[test_net_id]

        sums: List[float] = []
        score_output: List[int] = []
        names: List[str] = []
        weights: List[float] = []
        loss = 0.0
        for i in range(num_passes):
            iter_loss, outputs = test_net.forward_only(ctx)
            if cfg.test_compute_loss:
                loss += iter_loss
            if i == 0:
                for j, out in enumerate(outputs):
                    names.append(out.name)
                    weights.append(out.loss_weight)
                    for value in out.values:
                        sums.append(float(value))
                        score_output.append(j)
            else:
                idx = 0
                for out in outputs:
                    for value in out.values:
                        sums[idx] += float(value)
                        idx += 1

        mean_loss = None
        if cfg.test_compute_loss:
            mean_loss = loss / num_passes
            logger.info(f"Test loss: {mean_loss:g}")

        scores = []
        for i, total in enumerate(sums):
            j = score_output[i]
            mean_score = total / num_passes
            weighted = ""
            if weights[j]:
                weighted = f" (* {weights[j]:g} = {weights[j] * mean_score:g} loss)"
            logger.info(f"    Test net output #{i}: {names[j]} = {mean_score:g}{weighted}")
            scores.append(
                OutputScore(index=i, name=names[j], value=mean_score, loss_weight=weights[j])
            )
        return EvaluationResult(
            test_net_id=test_net_id,
            iteration=self._iter,
            scores=tuple(scores),
            loss=mean_loss,
        )

    # ---- persistence ----
    def snapshot(self) -> Tuple[Path, Path]:
        """
        Write the parameter and solver-state artifacts for the current iteration.

        Returns
        -------
        tuple[Path, Path]
            ``(model_path, solverstate_path)``.
        """
        self._require_initialized("snapshot")
        if self._state is None:
            self.pre_solve()
        previous = self._status
        self._status = SolverStatus.SNAPSHOTTING
        try:
            return write_snapshot(
                self._net,
                self._state,
                prefix=self._config.snapshot_prefix,
                iteration=self._iter,
                include_gradients=self._config.snapshot_diff,
            )
        finally:
            self._status = previous

    def restore(self, state_file: PathLike) -> int:
        """
        Load a solver-state artifact (and the parameters it references).

        Nothing is modified unless every check passes.

        Returns
        -------
        int
            The restored iteration counter.

        Raises
        ------
        SolverStateError
            On a history count or shape mismatch, an unresolvable or
            malformed artifact, or a parameter shape mismatch.
        """
        self._require_initialized("restore")
        if self._state is None:
            self.pre_solve()
        self._iter = restore_snapshot(self._net, self._state, state_file)
        logger.info(f"Restored solver state at iteration {self._iter}")
        return self._iter
