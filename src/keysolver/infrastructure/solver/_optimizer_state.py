"""
Per-parameter auxiliary buffers of an update rule.

For every train-net parameter the solver keeps one `OptimizerStateEntry`:

- ``history``: 1 buffer, or 2 for AdaDelta (slot 0 = running gradient
  magnitude, slot 1 = running update magnitude). Persisted in snapshots.
- ``update``: scratch buffer for intermediate values.
- ``temp``: scratch buffer (regularization sign, AdaDelta bookkeeping).

Every buffer is zero-filled and has the parameter's shape. The flat history
list used for persistence is slot-major: all slot-0 buffers in parameter
order, then all slot-1 buffers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Sequence

import numpy as np

from ...domain._backend import INumericBackend
from ...domain._errors import SolverStateError
from ...domain._net import IParameter
from ...domain._solver import UpdateRuleKind


@dataclass
class OptimizerStateEntry:
    """Auxiliary buffers of one parameter."""

    history: List[Any]
    update: Any
    temp: Any


class OptimizerState:
    """
    Auxiliary buffers for every parameter of a network.

    Parameters
    ----------
    backend : INumericBackend
        Backend the buffers are allocated on.
    kind : UpdateRuleKind
        Update rule; decides the number of history slots.
    params : Sequence[IParameter]
        Parameters to mirror, in network order.
    """

    def __init__(
        self, backend: INumericBackend, kind: UpdateRuleKind, params: Sequence[IParameter]
    ) -> None:
        self._backend = backend
        self._kind = UpdateRuleKind.parse(kind)
        self._shapes = [tuple(int(s) for s in p.shape) for p in params]
        self._entries = [
            OptimizerStateEntry(
                history=[backend.zeros(shape) for _ in range(self._kind.history_slots)],
                update=backend.zeros(shape),
                temp=backend.zeros(shape),
            )
            for shape in self._shapes
        ]

    def __len__(self) -> int:
        return len(self._entries)

    def __getitem__(self, index: int) -> OptimizerStateEntry:
        return self._entries[index]

    def __iter__(self):
        return iter(self._entries)

    @property
    def kind(self) -> UpdateRuleKind:
        return self._kind

    @property
    def shapes(self) -> List[tuple]:
        return list(self._shapes)

    def histories(self) -> List[Any]:
        """Flat, slot-major list of every history buffer."""
        return [
            entry.history[slot]
            for slot in range(self._kind.history_slots)
            for entry in self._entries
        ]

    def history_shapes(self) -> List[tuple]:
        return [shape for _ in range(self._kind.history_slots) for shape in self._shapes]

    def histories_to_host(self) -> List[np.ndarray]:
        return [self._backend.to_host(h) for h in self.histories()]

    def load_histories(self, arrays: Sequence[Any]) -> None:
        """
        Overwrite every history buffer from host arrays in slot-major order.

        The count and every shape are validated before the first buffer is
        written, so a rejected load leaves the state untouched.

        Raises
        ------
        SolverStateError
            If the number of arrays or any shape does not match.
        """
        expected = self.history_shapes()
        if len(arrays) != len(expected):
            raise SolverStateError(
                f"Incorrect length of history blobs: got {len(arrays)}, "
                f"expected {len(expected)}"
            )
        for i, (arr, shape) in enumerate(zip(arrays, expected)):
            if tuple(np.shape(arr)) != shape:
                raise SolverStateError(
                    f"History blob #{i} has shape {tuple(np.shape(arr))}, expected {shape}"
                )
        for arr, buf in zip(arrays, self.histories()):
            self._backend.copy(self._backend.from_host(arr), buf)
