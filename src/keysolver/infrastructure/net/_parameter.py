"""
Learnable parameter container.

A `Parameter` pairs a value buffer (``data``) with an equally shaped gradient
buffer (``diff``). Both buffers are owned by the numeric backend the network
was built on; the parameter itself is only bookkeeping.
"""

from __future__ import annotations

from typing import Any, Tuple


class Parameter:
    """
    Concrete `IParameter` implementation.

    Parameters
    ----------
    name : str
        Stable name, unique within the owning network.
    data : backend array
        Parameter values.
    diff : backend array
        Gradient buffer with the same shape as ``data``.
    lr_mult : float, optional
        Per-parameter learning-rate multiplier. Defaults to 1.0.
    decay_mult : float, optional
        Per-parameter weight-decay multiplier. Defaults to 1.0.

    Raises
    ------
    ValueError
        If ``data`` and ``diff`` have different shapes, or a multiplier is
        negative.
    """

    __slots__ = ("_name", "_data", "_diff", "_lr_mult", "_decay_mult")

    def __init__(
        self,
        name: str,
        data: Any,
        diff: Any,
        *,
        lr_mult: float = 1.0,
        decay_mult: float = 1.0,
    ) -> None:
        if tuple(data.shape) != tuple(diff.shape):
            raise ValueError(
                f"Parameter {name!r}: data shape {tuple(data.shape)} != "
                f"diff shape {tuple(diff.shape)}"
            )
        if lr_mult < 0 or decay_mult < 0:
            raise ValueError(
                f"Parameter {name!r}: multipliers must be >= 0, "
                f"got lr_mult={lr_mult}, decay_mult={decay_mult}"
            )
        self._name = str(name)
        self._data = data
        self._diff = diff
        self._lr_mult = float(lr_mult)
        self._decay_mult = float(decay_mult)

    def __repr__(self) -> str:
        return (
            f"Parameter(name={self._name!r}, shape={self.shape}, "
            f"lr_mult={self._lr_mult}, decay_mult={self._decay_mult})"
        )

    @property
    def name(self) -> str:
        return self._name

    @property
    def shape(self) -> Tuple[int, ...]:
        return tuple(int(s) for s in self._data.shape)

    @property
    def data(self) -> Any:
        return self._data

    @property
    def diff(self) -> Any:
        return self._diff

    @property
    def lr_mult(self) -> float:
        return self._lr_mult

    @property
    def decay_mult(self) -> float:
        return self._decay_mult
