"""
Base class for solver-driven networks.

`Net` implements every part of the `INet` contract that does not depend on
what the network computes: parameter bookkeeping, gradient accumulation,
applying update steps, value copies between networks, serialization, and
debug diagnostics. Subclasses implement a single hook, `_forward`, which runs
one batch and (when asked) writes fresh gradients into every parameter's
``diff``.

Gradient accumulation
---------------------
When the solver accumulates gradients over several micro-batches it calls
`accumulate_gradients()` after each backward pass except the last, and
`finalize_accumulated_gradients()` after the last one. The network keeps one
accumulator buffer per parameter; finalizing adds the accumulator into
``diff`` (so ``diff`` holds the sum over all micro-batches) and resets it.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ...domain._backend import INumericBackend
from ...domain._errors import SolverStateError
from ...domain._net import INet, NetOutput
from ...domain._net_state import NetState, RunContext
from ._parameter import Parameter
from ._serialization import extract_parameter_payload, load_parameter_payload_

logger = logging.getLogger(__name__)


class Net(ABC):
    """
    Abstract base class for trainable networks.

    Parameters
    ----------
    name : str
        Network name.
    backend : INumericBackend
        Backend owning every parameter buffer.
    state : NetState, optional
        Run-mode state the network was constructed with.
    """

    def __init__(
        self, name: str, backend: INumericBackend, state: Optional[NetState] = None
    ) -> None:
        self._name = str(name)
        self._backend = backend
        self._state = state if state is not None else NetState()
        self._params: List[Parameter] = []
        self._accum: Optional[List[Any]] = None
        self._outputs: List[NetOutput] = []

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(name={self._name!r}, "
            f"params={len(self._params)}, device={self._backend.device!s})"
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def state(self) -> NetState:
        return self._state

    @property
    def backend(self) -> INumericBackend:
        return self._backend

    def parameters(self) -> List[Parameter]:
        return list(self._params)

    def _add_parameter(
        self,
        name: str,
        values: np.ndarray,
        *,
        lr_mult: float = 1.0,
        decay_mult: float = 1.0,
    ) -> Parameter:
        if any(p.name == name for p in self._params):
            raise ValueError(f"Duplicate parameter name {name!r} in net {self._name!r}")
        data = self._backend.from_host(values)
        p = Parameter(
            name,
            data,
            self._backend.zeros_like(data),
            lr_mult=lr_mult,
            decay_mult=decay_mult,
        )
        self._params.append(p)
        return p

    @abstractmethod
    def _forward(self, ctx: RunContext, backward: bool) -> Tuple[float, List[NetOutput]]:
        """
        Run one batch.

        Returns the weighted scalar loss and the declared outputs. With
        ``backward=True`` every parameter's ``diff`` is overwritten with the
        gradient of that loss.
        """
        raise NotImplementedError

    # ---- forward passes ----
    def forward_backward(self, ctx: RunContext) -> float:
        loss, outputs = self._forward(ctx, backward=True)
        self._outputs = list(outputs)
        if ctx.debug_info:
            self._log_parameter_magnitudes()
        return float(loss)

    def forward_only(self, ctx: RunContext) -> Tuple[float, List[NetOutput]]:
        loss, outputs = self._forward(ctx, backward=False)
        self._outputs = list(outputs)
        return float(loss), list(outputs)

    def output_blobs(self) -> List[NetOutput]:
        return list(self._outputs)

    # ---- gradients / updates ----
    def accumulate_gradients(self) -> None:
        if self._accum is None:
            self._accum = [self._backend.zeros_like(p.diff) for p in self._params]
        for acc, p in zip(self._accum, self._params):
            self._backend.add(acc, p.diff, acc)

    def finalize_accumulated_gradients(self) -> None:
        if self._accum is None:
            return
        for acc, p in zip(self._accum, self._params):
            self._backend.add(p.diff, acc, p.diff)
            self._backend.set(0.0, acc)

    def apply_update(self) -> None:
        for p in self._params:
            self._backend.axpy(-1.0, p.diff, p.data)

    # ---- value transfer ----
    def copy_trained_from(self, other: INet) -> None:
        """
        Copy parameter values from ``other`` by name.

        Parameters missing on either side are skipped. Both networks must
        live on the same backend; storage is never shared.

        Raises
        ------
        SolverStateError
            If a same-named parameter has a different shape.
        """
        source = {p.name: p for p in other.parameters()}
        pairs = []
        for p in self._params:
            src = source.get(p.name)
            if src is None:
                continue
            if tuple(src.shape) != p.shape:
                raise SolverStateError(
                    f"Cannot copy {p.name!r} from net {other.name!r}: "
                    f"shape {tuple(src.shape)} != {p.shape}"
                )
            pairs.append((src, p))
        for src, p in pairs:
            self._backend.copy(src.data, p.data)

    def serialize_parameters(self, include_gradients: bool = False) -> Dict[str, Any]:
        return {
            "name": self._name,
            "params": extract_parameter_payload(
                self._params, self._backend, include_gradients=include_gradients
            ),
        }

    def deserialize_parameters(self, payload: Dict[str, Any]) -> None:
        try:
            params = payload["params"]
        except (KeyError, TypeError) as e:
            raise SolverStateError("Parameter payload has no 'params' mapping") from e
        n = load_parameter_payload_(self._params, self._backend, params)
        logger.info(f"Loaded {n} of {len(self._params)} parameters into net {self._name!r}")

    # ---- diagnostics ----
    def _log_parameter_magnitudes(self) -> None:
        xp = self._backend.array_module
        for i, p in enumerate(self._params):
            data_mag = float(xp.abs(p.data).mean()) if p.data.size else 0.0
            diff_mag = float(xp.abs(p.diff).mean()) if p.diff.size else 0.0
            logger.info(
                f"    [Backward] Net {self._name}, param #{i} ({p.name}) "
                f"data: {data_mag:.6g}; diff: {diff_mag:.6g}"
            )
