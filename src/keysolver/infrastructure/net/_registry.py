"""
Network parameter descriptors and the network class registry.

A `NetParameter` names a registered network class (``type``) together with
its constructor configuration and its own `NetState`. The solver never
imports concrete network classes; it resolves them through `net_from_param`,
so new networks become usable by decorating them with `register_net`.

JSON form
---------
    {
      "type": "LinearRegression",
      "name": "toy",
      "config": {"input_dim": 3, "batch_size": 8},
      "state": {"phase": "TRAIN", "level": 0, "stages": ["fast"]}
    }
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Mapping, Optional, Type, Union

import numpy as np
from typing_extensions import Self

from ...domain._backend import INumericBackend
from ...domain._errors import SolverConfigError
from ...domain._net import INet
from ...domain._net_state import NetState

_NET_REGISTRY: dict[str, Type[Any]] = {}


def register_net(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a network class for `net_from_param`.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _NET_REGISTRY[key] = cls
        return cls

    return deco


def registered_nets() -> tuple[str, ...]:
    return tuple(sorted(_NET_REGISTRY))


@dataclass(frozen=True)
class NetParameter:
    """
    Declarative description of a network instance.

    Attributes
    ----------
    type : str
        Registry key of the network class.
    name : str
        Network name; defaults to ``type`` when empty.
    config : dict
        Keyword configuration passed to the network class.
    state : NetState
        The network's own run-mode state, merged between the solver default
        and the solver-level override.
    """

    type: str
    name: str = ""
    config: Dict[str, Any] = field(default_factory=dict)
    state: NetState = field(default_factory=NetState)

    @property
    def display_name(self) -> str:
        return self.name or self.type

    @classmethod
    def from_dict(cls, d: Mapping[str, Any]) -> Self:
        if "type" not in d:
            raise SolverConfigError("Net parameter is missing 'type'", field="type")
        return cls(
            type=str(d["type"]),
            name=str(d.get("name", "") or ""),
            config=dict(d.get("config", {}) or {}),
            state=NetState.from_dict(d.get("state")) or NetState(),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "name": self.name,
            "config": dict(self.config),
            "state": self.state.to_dict(),
        }


def load_net_parameter(path: Union[str, os.PathLike]) -> NetParameter:
    """
    Read a `NetParameter` from a JSON file.

    Raises
    ------
    SolverConfigError
        If the file cannot be read or is not a valid net description.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            doc = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise SolverConfigError(f"Cannot read net parameter file {str(path)!r}: {e}") from e
    if not isinstance(doc, dict):
        raise SolverConfigError(f"Net parameter file {str(path)!r} must hold a JSON object")
    return NetParameter.from_dict(doc)


def net_from_param(
    param: NetParameter,
    backend: INumericBackend,
    *,
    state: Optional[NetState] = None,
    seed: Optional[int] = None,
) -> INet:
    """
    Instantiate the network described by ``param``.

    Parameters
    ----------
    param : NetParameter
        Network description.
    backend : INumericBackend
        Backend every parameter buffer is allocated on.
    state : NetState, optional
        Fully merged state for the instance. Defaults to ``param.state``.
    seed : int, optional
        Seed for the instance's random generator (parameter fillers,
        shuffling). ``None`` draws fresh entropy.

    Raises
    ------
    SolverConfigError
        If ``param.type`` is not registered or the class rejects its
        configuration.
    """
    if param.type not in _NET_REGISTRY:
        available = ", ".join(registered_nets()) or "<none>"
        raise SolverConfigError(
            f"Unknown net type {param.type!r}. Register it via @register_net. "
            f"Available: {available}",
            field="type",
        )
    cls = _NET_REGISTRY[param.type]
    rng = np.random.default_rng(seed)
    try:
        return cls.from_config(
            param.config,
            name=param.display_name,
            backend=backend,
            state=state if state is not None else param.state,
            rng=rng,
        )
    except (TypeError, ValueError) as e:
        if isinstance(e, SolverConfigError):
            raise
        raise SolverConfigError(
            f"Invalid config for net {param.display_name!r} ({param.type}): {e}"
        ) from e
