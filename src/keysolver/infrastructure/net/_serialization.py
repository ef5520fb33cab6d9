from __future__ import annotations

import logging
from typing import Any, Dict, Sequence

from ...domain._backend import INumericBackend
from ...domain._errors import SolverStateError
from ...domain._net import IParameter
from ..encoding._b64 import ndarray_to_payload, payload_to_ndarray

logger = logging.getLogger(__name__)


def extract_parameter_payload(
    params: Sequence[IParameter], backend: INumericBackend, *, include_gradients: bool = False
) -> Dict[str, Dict[str, Any]]:
    """
    Extract parameters into JSON payloads keyed by parameter name.

    Each entry holds ``{"data": payload}`` and, with ``include_gradients``,
    ``{"diff": payload}``. Device buffers are copied to the host through
    ``backend.to_host`` first, so CPU and GPU parameters serialize the same
    way.
    """
    out: dict[str, dict[str, Any]] = {}
    for p in params:
        entry = {"data": ndarray_to_payload(backend.to_host(p.data))}
        if include_gradients:
            entry["diff"] = ndarray_to_payload(backend.to_host(p.diff))
        out[str(p.name)] = entry
    return out


def load_parameter_payload_(
    params: Sequence[IParameter], backend: INumericBackend, payloads: Dict[str, Dict[str, Any]]
) -> int:
    """
    In-place load of parameter values from JSON payloads, matched by name.

    Source entries without a matching parameter are ignored (logged), and
    parameters without a source entry keep their values. Every shape is
    checked before the first parameter is written.

    Returns
    -------
    int
        Number of parameters loaded.

    Raises
    ------
    SolverStateError
        If an entry is malformed or a shape does not match.
    """
    by_name = {p.name: p for p in params}
    staged = []
    for key, entry in payloads.items():
        p = by_name.get(key)
        if p is None:
            logger.info(f"Ignoring source parameter {key!r}: no parameter with that name")
            continue
        try:
            arr = payload_to_ndarray(entry["data"])
        except (KeyError, TypeError, ValueError) as e:
            raise SolverStateError(f"Malformed payload for parameter {key!r}: {e}") from e
        if tuple(arr.shape) != tuple(p.shape):
            raise SolverStateError(
                f"Shape mismatch for {key!r}: net {tuple(p.shape)} vs artifact {arr.shape}"
            )
        staged.append((p, arr))

    for p, arr in staged:
        backend.copy(backend.from_host(arr), p.data)
    return len(staged)
