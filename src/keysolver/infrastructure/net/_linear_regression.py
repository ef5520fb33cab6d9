"""
Reference network: a fully connected layer trained with Euclidean loss.

`LinearRegressionNet` is the smallest network that exercises the whole
solver contract: two parameters with independent learning-rate and decay
multipliers, a scalar loss output with weight 1, and a reported-only metric
output with weight 0.

Forward pass, for a batch ``x`` of shape ``(N, input_dim)``::

    pred = x @ weight.T + bias
    loss = sum((pred - y) ** 2) / (2 * N)
    mae  = mean(|pred - y|)

Backward pass::

    d_pred      = (pred - y) / N
    weight.diff = d_pred.T @ x
    bias.diff   = sum(d_pred, axis=0)

Data comes either from explicit ``x`` / ``y`` arrays in the config or from a
synthetic linear problem generated with ``data_seed``. The data generator is
independent from the parameter-initialization RNG, so train and test nets
built with different seeds still see the same problem.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence, Tuple

import numpy as np
from typing_extensions import Self

from ...domain._backend import INumericBackend
from ...domain._net import NetOutput
from ...domain._net_state import NetState, RunContext
from ._batch_source import BatchSource
from ._net import Net
from ._registry import register_net
from .fillers import Filler


def make_linear_problem(
    num_samples: int,
    input_dim: int,
    output_dim: int,
    *,
    noise: float = 0.0,
    seed: int = 0,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Generate ``(x, y)`` for ``y = x @ w.T + b + noise * eps``.

    ``w`` and ``b`` are drawn from a standard normal with the same generator,
    so the problem is fully determined by ``seed``.
    """
    rng = np.random.default_rng(seed)
    x = rng.normal(size=(num_samples, input_dim))
    w = rng.normal(size=(output_dim, input_dim))
    b = rng.normal(size=(output_dim,))
    y = x @ w.T + b
    if noise:
        y = y + float(noise) * rng.normal(size=y.shape)
    return x, y


@register_net("LinearRegression")
class LinearRegressionNet(Net):
    """
    Fully connected layer + Euclidean loss over an in-memory batch source.

    Parameters
    ----------
    name : str
        Network name.
    backend : INumericBackend
        Backend for parameters and per-batch computation.
    input_dim : int
        Number of input features.
    output_dim : int, optional
        Number of regression targets. Defaults to 1.
    batch_size : int, optional
        Rows per forward pass. Defaults to 16.
    x, y : array-like, optional
        Explicit dataset. When omitted a synthetic problem is generated.
    num_samples, noise, data_seed : optional
        Synthetic problem size, target noise and generator seed.
    shuffle : bool, optional
        Reshuffle the dataset at every epoch boundary.
    weight_filler, bias_filler : mapping, optional
        Filler specs (``{"type": ..., **options}``). Default to
        ``gaussian(std=0.01)`` and ``constant(0)``.
    weight_lr_mult, bias_lr_mult, weight_decay_mult, bias_decay_mult : float
        Per-parameter multipliers. All default to 1.0.
    state : NetState, optional
        Run-mode state.
    rng : np.random.Generator, optional
        Generator for parameter fillers and shuffling.
    """

    def __init__(
        self,
        name: str,
        backend: INumericBackend,
        *,
        input_dim: int,
        output_dim: int = 1,
        batch_size: int = 16,
        x: Optional[Sequence[Any]] = None,
        y: Optional[Sequence[Any]] = None,
        num_samples: int = 64,
        noise: float = 0.0,
        data_seed: int = 0,
        shuffle: bool = False,
        weight_filler: Optional[Mapping[str, Any]] = None,
        bias_filler: Optional[Mapping[str, Any]] = None,
        weight_lr_mult: float = 1.0,
        bias_lr_mult: float = 1.0,
        weight_decay_mult: float = 1.0,
        bias_decay_mult: float = 1.0,
        state: Optional[NetState] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        super().__init__(name, backend, state)
        input_dim = int(input_dim)
        output_dim = int(output_dim)
        if input_dim <= 0 or output_dim <= 0:
            raise ValueError(
                f"input_dim and output_dim must be > 0, got {input_dim}, {output_dim}"
            )
        self._input_dim = input_dim
        self._output_dim = output_dim
        rng = rng if rng is not None else np.random.default_rng()

        if (x is None) != (y is None):
            raise ValueError("x and y must be given together")
        if x is None:
            x, y = make_linear_problem(
                int(num_samples), input_dim, output_dim, noise=noise, seed=int(data_seed)
            )
        x = np.asarray(x, dtype=np.float64).reshape(-1, input_dim)
        y = np.asarray(y, dtype=np.float64).reshape(-1, output_dim)
        self._source = BatchSource(x, y, batch_size=batch_size, shuffle=shuffle, rng=rng)

        w_fill = Filler.from_spec(weight_filler or {"type": "gaussian", "std": 0.01})
        b_fill = Filler.from_spec(bias_filler or {"type": "constant", "value": 0.0})
        self._weight = self._add_parameter(
            "fc.weight",
            w_fill((output_dim, input_dim), rng),
            lr_mult=weight_lr_mult,
            decay_mult=weight_decay_mult,
        )
        self._bias = self._add_parameter(
            "fc.bias",
            b_fill((output_dim,), rng),
            lr_mult=bias_lr_mult,
            decay_mult=bias_decay_mult,
        )

    @classmethod
    def from_config(
        cls,
        cfg: Mapping[str, Any],
        *,
        name: str,
        backend: INumericBackend,
        state: Optional[NetState] = None,
        rng: Optional[np.random.Generator] = None,
    ) -> Self:
        return cls(name, backend, state=state, rng=rng, **dict(cfg))

    @property
    def batch_size(self) -> int:
        return self._source.batch_size

    def _forward(self, ctx: RunContext, backward: bool) -> Tuple[float, List[NetOutput]]:
        xb, yb = self._source.next_batch()
        x = self._backend.from_host(xb)
        y = self._backend.from_host(yb)
        xp = self._backend.array_module
        n = int(xb.shape[0])

        err = x @ self._weight.data.T + self._bias.data - y
        loss = float((err * err).sum()) / (2.0 * n)
        mae = float(xp.abs(err).mean())

        if backward:
            d_pred = err / n
            self._weight.diff[...] = d_pred.T @ x
            self._bias.diff[...] = d_pred.sum(axis=0)

        outputs = [
            NetOutput(name="loss", values=(loss,), loss_weight=1.0),
            NetOutput(name="mae", values=(mae,), loss_weight=0.0),
        ]
        return loss, outputs
