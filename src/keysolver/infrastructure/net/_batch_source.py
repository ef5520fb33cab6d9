"""
In-memory mini-batch source.

Solver-driven networks pull one batch per forward pass for as long as the
solver keeps iterating, so the source cycles through its data indefinitely
instead of stopping at the end of an epoch. Every batch has exactly
``batch_size`` rows; an epoch boundary inside a batch wraps around to the
start of the (optionally reshuffled) index order.
"""

from __future__ import annotations

from typing import Any, Optional, Tuple

import numpy as np


class BatchSource:
    """
    Endless ``(x, y)`` mini-batch iterator over host arrays.

    Parameters
    ----------
    x : array-like
        Inputs, first axis is the sample axis.
    y : array-like
        Targets, same number of samples as ``x``.
    batch_size : int
        Rows per batch. Must be positive.
    shuffle : bool, optional
        If True, indices are reshuffled at every epoch boundary using ``rng``.
    rng : np.random.Generator, optional
        Generator used for shuffling.

    Raises
    ------
    ValueError
        If ``x`` and ``y`` have different lengths, the dataset is empty, or
        ``batch_size`` is not positive.
    """

    def __init__(
        self,
        x: Any,
        y: Any,
        *,
        batch_size: int,
        shuffle: bool = False,
        rng: Optional[np.random.Generator] = None,
    ) -> None:
        x = np.asarray(x)
        y = np.asarray(y)
        n = len(x)
        if len(y) != n:
            raise ValueError(
                f"x and y must have same length, got len(x)={n}, len(y)={len(y)}"
            )
        if n == 0:
            raise ValueError("BatchSource requires at least one sample")
        if int(batch_size) <= 0:
            raise ValueError(f"batch_size must be > 0, got {batch_size}")

        self._x = x
        self._y = y
        self._batch_size = int(batch_size)
        self._shuffle = bool(shuffle)
        self._rng = rng if rng is not None else np.random.default_rng()
        self._order = self._new_order()
        self._cursor = 0

    def __len__(self) -> int:
        return len(self._x)

    @property
    def batch_size(self) -> int:
        return self._batch_size

    def _new_order(self) -> np.ndarray:
        idxs = np.arange(len(self._x))
        if self._shuffle:
            self._rng.shuffle(idxs)
        return idxs

    def next_batch(self) -> Tuple[np.ndarray, np.ndarray]:
        """Return the next ``(x_batch, y_batch)`` pair."""
        picked = []
        remaining = self._batch_size
        while remaining > 0:
            take = min(remaining, len(self._order) - self._cursor)
            picked.append(self._order[self._cursor : self._cursor + take])
            self._cursor += take
            remaining -= take
            if self._cursor == len(self._order):
                self._order = self._new_order()
                self._cursor = 0
        batch_ids = np.concatenate(picked)
        return self._x[batch_ids], self._y[batch_ids]
