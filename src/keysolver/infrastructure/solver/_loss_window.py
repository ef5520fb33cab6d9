from __future__ import annotations

from typing import List


class SmoothedLoss:
    """
    Running mean of the most recent ``capacity`` iteration losses.

    While the window fills, the value is the plain mean of every loss seen.
    Once full, each new loss replaces the slot ``(iteration - start_iter) %
    capacity`` and the mean is updated incrementally. The window is a display
    aid only; it is never persisted, so a resumed run starts with an empty
    window.

    Parameters
    ----------
    capacity : int
        Window size. Must be >= 1.
    start_iter : int, optional
        Iteration the run started (or resumed) from.
    """

    def __init__(self, capacity: int, start_iter: int = 0) -> None:
        if int(capacity) < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        self._capacity = int(capacity)
        self._start_iter = int(start_iter)
        self._losses: List[float] = []
        self._value = 0.0

    @property
    def value(self) -> float:
        return self._value

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._losses)

    def update(self, iteration: int, loss: float) -> float:
        """Record the loss of ``iteration`` and return the smoothed value."""
        loss = float(loss)
        if len(self._losses) < self._capacity:
            self._losses.append(loss)
            size = len(self._losses)
            self._value = (self._value * (size - 1) + loss) / size
        else:
            idx = (int(iteration) - self._start_iter) % self._capacity
            self._value += (loss - self._losses[idx]) / self._capacity
            self._losses[idx] = loss
        return self._value
