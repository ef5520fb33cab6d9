"""
Training history utilities.

This module defines lightweight data structures that record what the solver
reports while it runs: the smoothed loss, learning rate, and train-net
outputs of every displayed iteration, and the result of every evaluation
round. It lets callers inspect a run without parsing log output.

Design goals
------------
- Minimal surface area: plain floats only, no backend buffers
- Deterministic ordering and explicit iteration indexing
- Human-readable and debugger-friendly representation
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional, Tuple, Union

Number = Union[int, float]


@dataclass(frozen=True)
class OutputScore:
    """
    One averaged evaluation output element.

    Attributes
    ----------
    index : int
        Position of the element among every output element of the net.
    name : str
        Name of the output that produced the element.
    value : float
        Mean over the evaluation passes.
    loss_weight : float
        Loss weight of the producing output (0 for reported-only outputs).
    """

    index: int
    name: str
    value: float
    loss_weight: float = 0.0

    @property
    def weighted_loss(self) -> float:
        return self.loss_weight * self.value


@dataclass(frozen=True)
class EvaluationResult:
    """
    Outcome of one evaluation round of one test net.

    Attributes
    ----------
    test_net_id : int
        Index of the evaluated test net.
    iteration : int
        Train iteration at which the round ran.
    scores : tuple[OutputScore, ...]
        Averaged output elements in output order.
    loss : float or None
        Averaged loss when loss computation was requested.
    """

    test_net_id: int
    iteration: int
    scores: Tuple[OutputScore, ...] = ()
    loss: Optional[float] = None

    def metrics(self) -> Dict[str, float]:
        """
        Map output names to averaged values.

        Outputs with several elements are keyed ``name[k]``.
        """
        counts: Dict[str, int] = {}
        for s in self.scores:
            counts[s.name] = counts.get(s.name, 0) + 1
        out: Dict[str, float] = {}
        seen: Dict[str, int] = {}
        for s in self.scores:
            if counts[s.name] == 1:
                out[s.name] = s.value
            else:
                k = seen.get(s.name, 0)
                out[f"{s.name}[{k}]"] = s.value
                seen[s.name] = k + 1
        return out


@dataclass
class TrainingHistory:
    """
    Container for per-iteration training metrics and evaluation results.

    Attributes
    ----------
    history : Dict[str, List[float]]
        Mapping from metric name to values of every displayed iteration,
        ordered by iteration.
    iteration : List[int]
        Iteration indices corresponding to entries in `history`.
    evaluations : List[EvaluationResult]
        Every evaluation round, in the order it ran.

    Notes
    -----
    - Metrics first reported at a later iteration only hold values from that
      point on; align them with `iteration` by their own length.
    """

    history: Dict[str, List[float]] = field(default_factory=dict)
    iteration: List[int] = field(default_factory=list)
    evaluations: List[EvaluationResult] = field(default_factory=list)

    def append_iteration(self, iteration: int, logs: Mapping[str, Number]) -> None:
        """Record the metrics of a displayed iteration."""
        self.iteration.append(int(iteration))
        for k, v in logs.items():
            self.history.setdefault(k, []).append(float(v))

    def append_evaluation(self, result: EvaluationResult) -> None:
        self.evaluations.append(result)

    def evaluations_for(self, test_net_id: int) -> List[EvaluationResult]:
        return [r for r in self.evaluations if r.test_net_id == int(test_net_id)]

    def evaluated_iterations(self, test_net_id: int = 0) -> List[int]:
        return [r.iteration for r in self.evaluations_for(test_net_id)]

    def last(self) -> Dict[str, float]:
        """
        Return metrics from the most recent displayed iteration.

        Metrics with no recorded values are omitted.
        """
        out: Dict[str, float] = {}
        for k, vs in self.history.items():
            if vs:
                out[k] = float(vs[-1])
        return out
