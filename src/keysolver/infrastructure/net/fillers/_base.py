"""
Parameter filler registry and dispatch utilities.

Fillers produce the initial host values of a parameter. Networks build them
from a small JSON-friendly spec such as ``{"type": "gaussian", "std": 0.01}``
and upload the result through their numeric backend.

Design
------
- Fillers are registered by string name via a decorator-based registry.
- Each filler is a callable ``(shape, rng, **options) -> np.ndarray`` that
  draws from the supplied ``np.random.Generator``, never from global RNG
  state, so a seeded network is reproducible.
- The dispatcher resolves a filler by name at construction time and invokes
  it via `__call__`.

Usage example
-------------
Registering a filler:

    @Filler.register_filler("uniform")
    def uniform(shape, rng, low=-1.0, high=1.0): ...

Applying a filler:

    fill = Filler.from_spec({"type": "uniform", "low": -0.1, "high": 0.1})
    values = fill((4, 3), rng)
"""

from __future__ import annotations

from typing import Any, Callable, ClassVar, Dict, Mapping, Optional, Sequence, TypeVar

import numpy as np

FillerFn = Callable[..., np.ndarray]
T = TypeVar("T", bound=FillerFn)


def fan_in_and_fan_out(shape: Sequence[int]) -> tuple[int, int]:
    """
    Compute fan-in / fan-out for a parameter shape.

    A weight of shape ``(out, in, *rest)`` has ``fan_in = in * prod(rest)``
    and ``fan_out = out * prod(rest)``. 1-D parameters use their length for
    both.
    """
    shape = tuple(int(s) for s in shape)
    if len(shape) == 0:
        return 1, 1
    if len(shape) == 1:
        return shape[0], shape[0]
    receptive = int(np.prod(shape[2:])) if len(shape) > 2 else 1
    return shape[1] * receptive, shape[0] * receptive


class Filler:
    """
    Registry-backed filler dispatcher.

    Parameters
    ----------
    filler_name : str
        Registered filler name.
    **options : Any
        Keyword options forwarded to the filler (e.g. ``std``, ``value``).

    Raises
    ------
    ValueError
        If ``filler_name`` is not registered.
    """

    FILLERS: ClassVar[Dict[str, FillerFn]] = {}

    def __init__(self, filler_name: str, **options: Any) -> None:
        try:
            self._filler: FillerFn = self.FILLERS[filler_name]
        except KeyError as e:
            available = ", ".join(sorted(self.FILLERS)) or "<none>"
            raise ValueError(
                f"Unsupported filler name: {filler_name!r}. Available: {available}"
            ) from e
        self._name = filler_name
        self._options = dict(options)

    def __repr__(self) -> str:
        return f"Filler({self._name!r}, **{self._options!r})"

    @classmethod
    def from_spec(cls, spec: Optional[Mapping[str, Any]], default: str = "constant") -> "Filler":
        """
        Build a filler from a ``{"type": name, **options}`` mapping.

        ``None`` selects ``default`` with no options.
        """
        if spec is None:
            return cls(default)
        options = dict(spec)
        name = str(options.pop("type", default))
        return cls(name, **options)

    @classmethod
    def register_filler(cls, name: str, *, overwrite: bool = False) -> Callable[[T], T]:
        """
        Decorator to register a filler under `name`.

        Parameters
        ----------
        name:
            Registry key used to retrieve the filler later.
        overwrite:
            If False (default), raises if `name` is already registered.
        """
        if not isinstance(name, str) or not name:
            raise ValueError("Filler name must be a non-empty string")

        def decorator(func: T) -> T:
            if not overwrite and name in cls.FILLERS:
                raise ValueError(f"Filler already registered: {name!r}")
            cls.FILLERS[name] = func
            return func

        return decorator

    @classmethod
    def available(cls) -> tuple[str, ...]:
        """Return registered filler names (sorted)."""
        return tuple(sorted(cls.FILLERS))

    def __call__(self, shape: Sequence[int], rng: np.random.Generator) -> np.ndarray:
        out = self._filler(tuple(int(s) for s in shape), rng, **self._options)
        return np.asarray(out)
