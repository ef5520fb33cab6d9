"""
Domain-level numeric backend contract for keysolver.

This module defines `INumericBackend`, the minimal set of elementwise kernels
the update rules are written against. Update-rule math is expressed once in
terms of these primitives; concrete backends (NumPy on CPU, CuPy on GPU)
provide matching semantics on their own memory.

Buffers are opaque handles owned by a backend. Callers must not mix buffers
from different backends and must not read a buffer on the host except through
`to_host`, which is responsible for any device synchronization.

Kernel naming
-------------
All in-place kernels write into the last positional argument (``y`` or
``out``), which may alias one of the inputs:

- ``axpy(alpha, x, y)``          : ``y <- alpha * x + y``
- ``axpby(alpha, x, beta, y)``   : ``y <- alpha * x + beta * y``
- ``scale(alpha, x, out)``       : ``out <- alpha * x``
- ``add(a, b, out)``             : ``out <- a + b``
- ``mul(a, b, out)``             : ``out <- a * b``
- ``div(a, b, out)``             : ``out <- a / b``
- ``powx(a, exponent, out)``     : ``out <- a ** exponent``
- ``sign(x, out)``               : ``out <- sign(x)`` with ``sign(0) == 0``
- ``add_scalar(alpha, y)``       : ``y <- y + alpha``
- ``set(alpha, y)``              : ``y <- alpha``
- ``copy(x, y)``                 : ``y <- x``

Notes
-----
Domain contracts are backend-agnostic and must not depend on NumPy or
infrastructure implementations.
"""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable


@runtime_checkable
class INumericBackend(Protocol):
    """
    Elementwise numeric kernel interface over opaque buffers.
    """

    @property
    def name(self) -> str:
        """Short backend identifier (e.g., "numpy", "cupy")."""
        ...

    @property
    def device(self) -> Any:
        """The `Device` this backend allocates on."""
        ...

    @property
    def array_module(self) -> Any:
        """
        The array module backing this backend's buffers.

        Exposed for collaborators (e.g., reference networks) that need
        operations beyond the kernel set, such as matrix products. Update
        rules never use it.
        """
        ...

    # ---- allocation / transfer ----
    def zeros(self, shape: Sequence[int]) -> Any: ...

    def zeros_like(self, x: Any) -> Any: ...

    def from_host(self, arr: Any) -> Any: ...

    def to_host(self, x: Any) -> Any: ...

    def synchronize(self) -> None: ...

    # ---- kernels ----
    def axpy(self, alpha: float, x: Any, y: Any) -> None: ...

    def axpby(self, alpha: float, x: Any, beta: float, y: Any) -> None: ...

    def scale(self, alpha: float, x: Any, out: Any) -> None: ...

    def add(self, a: Any, b: Any, out: Any) -> None: ...

    def mul(self, a: Any, b: Any, out: Any) -> None: ...

    def div(self, a: Any, b: Any, out: Any) -> None: ...

    def powx(self, a: Any, exponent: float, out: Any) -> None: ...

    def sign(self, x: Any, out: Any) -> None: ...

    def add_scalar(self, alpha: float, y: Any) -> None: ...

    def set(self, alpha: float, y: Any) -> None: ...

    def copy(self, x: Any, y: Any) -> None: ...
