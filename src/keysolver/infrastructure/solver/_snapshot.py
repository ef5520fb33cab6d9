"""
Snapshot and restore of a training run.

A snapshot is a pair of JSON artifacts written at the same iteration:

- ``<prefix>_iter_<N>.ksmodel``: the train net's parameters
  (``{"format": "keysolver.json.params.v1", "name": ..., "params": {...}}``),
  optionally with gradients.
- ``<prefix>_iter_<N>.ksmodel.solverstate``: the iteration counter, the path
  of the parameter artifact, and every optimizer history buffer in
  slot-major order
  (``{"format": "keysolver.json.solverstate.v1", "iter": N, "learned_net":
  ..., "solver_type": ..., "history": [payload, ...]}``).

Arrays are stored as base64 raw bytes with their dtype and shape, so a
round trip is bit exact. Both files are written atomically.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List, Optional, Tuple, Union

import numpy as np

from ...domain._errors import SolverStateError
from ..encoding._b64 import ndarray_to_payload, payload_to_ndarray
from ..io._atomic_write import read_json, write_json_atomic
from ._optimizer_state import OptimizerState

logger = logging.getLogger(__name__)

PARAMS_FORMAT = "keysolver.json.params.v1"
SOLVER_STATE_FORMAT = "keysolver.json.solverstate.v1"
MODEL_SUFFIX = ".ksmodel"
SOLVER_STATE_SUFFIX = ".solverstate"

PathLike = Union[str, os.PathLike]


def snapshot_filename(prefix: str, iteration: int) -> str:
    """Parameter artifact name for ``iteration``; the state file appends ``.solverstate``."""
    return f"{prefix}_iter_{int(iteration)}{MODEL_SUFFIX}"


@dataclass(frozen=True)
class SolverStateDocument:
    """Decoded solver-state artifact."""

    iteration: int
    learned_net: Optional[str]
    solver_type: Optional[str]
    history: Tuple[np.ndarray, ...]


def write_snapshot(
    net: Any,
    state: OptimizerState,
    *,
    prefix: str,
    iteration: int,
    include_gradients: bool = False,
) -> Tuple[Path, Path]:
    """
    Write the parameter and solver-state artifacts for ``iteration``.

    Returns
    -------
    tuple[Path, Path]
        ``(model_path, state_path)``.
    """
    model_path = Path(snapshot_filename(prefix, iteration))
    doc = {"format": PARAMS_FORMAT}
    doc.update(net.serialize_parameters(include_gradients=include_gradients))
    logger.info(f"Snapshotting to {model_path}")
    write_json_atomic(doc, model_path)

    state_path = Path(str(model_path) + SOLVER_STATE_SUFFIX)
    state_doc = {
        "format": SOLVER_STATE_FORMAT,
        "iter": int(iteration),
        "learned_net": str(model_path),
        "solver_type": state.kind.value,
        "history": [ndarray_to_payload(h) for h in state.histories_to_host()],
    }
    logger.info(f"Snapshotting solver state to {state_path}")
    write_json_atomic(state_doc, state_path)
    return model_path, state_path


def _read_document(path: PathLike, expected_format: str) -> dict:
    try:
        doc = read_json(path)
    except (OSError, ValueError) as e:
        raise SolverStateError(f"Cannot read snapshot artifact {str(path)!r}: {e}") from e
    if not isinstance(doc, dict) or doc.get("format") != expected_format:
        found = doc.get("format") if isinstance(doc, dict) else type(doc).__name__
        raise SolverStateError(
            f"Unsupported artifact format in {str(path)!r}: {found!r} "
            f"(expected {expected_format!r})"
        )
    return doc


def read_solver_state(path: PathLike) -> SolverStateDocument:
    """
    Read and decode a solver-state artifact.

    Raises
    ------
    SolverStateError
        If the file is unreadable, has an unknown format, or holds malformed
        history payloads.
    """
    doc = _read_document(path, SOLVER_STATE_FORMAT)
    try:
        history = tuple(payload_to_ndarray(p) for p in doc.get("history", []))
        iteration = int(doc["iter"])
    except (KeyError, TypeError, ValueError) as e:
        raise SolverStateError(f"Malformed solver state {str(path)!r}: {e}") from e
    learned = doc.get("learned_net")
    return SolverStateDocument(
        iteration=iteration,
        learned_net=str(learned) if learned else None,
        solver_type=doc.get("solver_type"),
        history=history,
    )


def read_parameters(path: PathLike) -> dict:
    """Read a parameter artifact (format-checked)."""
    return _read_document(path, PARAMS_FORMAT)


def resolve_learned_net(learned_net: str, state_path: PathLike) -> Path:
    """
    Locate the parameter artifact referenced by a solver-state file.

    The stored path is tried as is, then relative to the state file's
    directory, then by file name inside that directory (snapshot directories
    that were moved or copied as a whole).

    Raises
    ------
    SolverStateError
        If none of the candidates exists.
    """
    stored = Path(learned_net)
    state_dir = Path(state_path).parent
    candidates: List[Path] = [stored]
    if not stored.is_absolute():
        candidates.append(state_dir / stored)
    candidates.append(state_dir / stored.name)
    for c in candidates:
        if c.is_file():
            return c
    raise SolverStateError(
        f"Cannot resolve learned net {learned_net!r} referenced by {str(state_path)!r}"
    )


def restore_snapshot(net: Any, state: OptimizerState, state_path: PathLike) -> int:
    """
    Load a snapshot into ``net`` and ``state`` and return its iteration.

    Every check (artifact formats, history count, history shapes, parameter
    shapes) runs before the first buffer is written.

    Raises
    ------
    SolverStateError
        On any mismatch between the artifacts and the current run.
    """
    doc = read_solver_state(state_path)
    if doc.solver_type is not None and doc.solver_type != state.kind.value:
        logger.warning(
            f"Restoring {doc.solver_type} history into a {state.kind.value} solver"
        )

    expected = state.history_shapes()
    if len(doc.history) != len(expected):
        raise SolverStateError(
            f"Incorrect length of history blobs: snapshot has {len(doc.history)}, "
            f"solver expects {len(expected)}"
        )
    for i, (arr, shape) in enumerate(zip(doc.history, expected)):
        if tuple(arr.shape) != shape:
            raise SolverStateError(
                f"History blob #{i} has shape {tuple(arr.shape)}, expected {shape}"
            )

    if doc.learned_net:
        model_path = resolve_learned_net(doc.learned_net, state_path)
        params = read_parameters(model_path)
        # validates every shape before writing
        net.deserialize_parameters(params)

    state.load_histories(doc.history)
    return doc.iteration
