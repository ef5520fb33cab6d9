"""
Domain-level trainable network contracts for keysolver.

This module defines the narrow interface through which the solver consumes a
trainable network. The solver never looks inside a network: it drives
forward/backward passes, reads the parameter list, asks the network to apply
the transformed gradients, and moves parameter values in and out through
value copies and serialization payloads.

Contracts
---------
- `IParameter`: one learnable array, its gradient, and its per-parameter
  learning-rate / weight-decay multipliers.
- `NetOutput`: one declared output of a network after a forward pass.
- `INet`: the trainable network itself.

Notes
-----
- Domain contracts are backend-agnostic; parameter buffers are opaque
  handles owned by whichever numeric backend the network was built on.
- Run mode (phase, accumulation, debug output) is passed in explicitly with
  a `RunContext` rather than read from global state.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol, Tuple, runtime_checkable

from ._net_state import NetState, RunContext


@runtime_checkable
class IParameter(Protocol):
    """
    Learnable array paired with an equally shaped gradient buffer.

    Parameters are identified by a stable ``name`` (unique within a network)
    and by their index in `INet.parameters()`.
    """

    @property
    def name(self) -> str: ...

    @property
    def shape(self) -> Tuple[int, ...]: ...

    @property
    def data(self) -> Any:
        """Backend buffer holding the parameter values."""
        ...

    @property
    def diff(self) -> Any:
        """Backend buffer holding the gradient (and, after an update rule ran, the step)."""
        ...

    @property
    def lr_mult(self) -> float: ...

    @property
    def decay_mult(self) -> float: ...


@dataclass(frozen=True)
class NetOutput:
    """
    One declared output of a network after a forward pass.

    Attributes
    ----------
    name : str
        Output name.
    values : tuple[float, ...]
        Flattened output values (a scalar loss has exactly one value).
    loss_weight : float
        Weight with which this output contributes to the objective; zero for
        outputs that are only reported (e.g., accuracy).
    """

    name: str
    values: Tuple[float, ...]
    loss_weight: float = 0.0


@runtime_checkable
class INet(Protocol):
    """
    Trainable network interface contract.

    Required behavior
    -----------------
    - `forward_backward(ctx)` runs one forward and backward pass over the
      next batch and returns the scalar loss. Gradients in every
      parameter's ``diff`` are overwritten.
    - `accumulate_gradients()` stashes the current gradients so the next
      backward pass does not lose them; `finalize_accumulated_gradients()`
      folds the stash back into ``diff`` (sum over all micro-batches).
    - `forward_only(ctx)` runs a forward pass and returns the loss together
      with the declared outputs. It never touches gradients.
    - `apply_update()` subtracts each parameter's ``diff`` from its ``data``.
    - `copy_trained_from(other)` copies parameter *values* from ``other``
      by name; the two networks never share storage.
    """

    @property
    def name(self) -> str: ...

    @property
    def state(self) -> NetState: ...

    def parameters(self) -> List[IParameter]: ...

    def forward_backward(self, ctx: RunContext) -> float: ...

    def forward_only(self, ctx: RunContext) -> Tuple[float, List[NetOutput]]: ...

    def accumulate_gradients(self) -> None: ...

    def finalize_accumulated_gradients(self) -> None: ...

    def apply_update(self) -> None: ...

    def output_blobs(self) -> List[NetOutput]: ...

    def copy_trained_from(self, other: "INet") -> None: ...

    def serialize_parameters(self, include_gradients: bool = False) -> Dict[str, Any]: ...

    def deserialize_parameters(self, payload: Dict[str, Any]) -> None: ...
