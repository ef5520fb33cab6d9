"""
Network run-mode metadata.

This module defines the small value types that describe *how* a network is
being run, as opposed to what it computes:

- `Phase`: training or evaluation.
- `NetState`: the run-mode metadata a network is constructed with (phase,
  level, stages). States are layered: the solver default is merged with the
  network's own state, then with the solver-level override.
- `RunContext`: the per-call execution context handed to every forward pass.
  It replaces process-wide mode flags: evaluation and accumulation are
  explicit arguments, so an evaluation pass can never leak its phase into a
  concurrent or subsequent training pass.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class Phase(Enum):
    """Network execution phase."""

    TRAIN = "TRAIN"
    TEST = "TEST"

    @classmethod
    def parse(cls, value: "Phase | str") -> "Phase":
        """
        Coerce a phase name (case-insensitive) or `Phase` into a `Phase`.

        Raises
        ------
        ValueError
            If the name is not a known phase.
        """
        if isinstance(value, Phase):
            return value
        try:
            return cls(str(value).upper())
        except ValueError as e:
            raise ValueError(
                f"Unknown phase: {value!r}. Expected 'TRAIN' or 'TEST'."
            ) from e


@dataclass(frozen=True)
class NetState:
    """
    Run-mode metadata for a network.

    Unset scalar fields are ``None`` so that merging can tell "not specified"
    apart from an explicit value.

    Attributes
    ----------
    phase : Phase or None
        Execution phase.
    level : int or None
        Free-form integer level networks may use to select layers.
    stages : tuple[str, ...]
        Named stages; merging appends rather than replaces.
    """

    phase: Optional[Phase] = None
    level: Optional[int] = None
    stages: Tuple[str, ...] = field(default_factory=tuple)

    def merged_with(self, other: Optional["NetState"]) -> "NetState":
        """
        Return a new state with ``other`` merged on top of this one.

        Set scalar fields in ``other`` take precedence; stages are
        concatenated (this state's stages first).

        Parameters
        ----------
        other : NetState or None
            Higher-precedence state. ``None`` returns ``self`` unchanged.

        Returns
        -------
        NetState
            The merged state.
        """
        if other is None:
            return self
        return NetState(
            phase=other.phase if other.phase is not None else self.phase,
            level=other.level if other.level is not None else self.level,
            stages=tuple(self.stages) + tuple(other.stages),
        )

    @classmethod
    def from_dict(cls, d: Optional[Mapping[str, Any]]) -> Optional["NetState"]:
        """Build a state from a JSON-style mapping (``None`` passes through)."""
        if d is None:
            return None
        phase = d.get("phase")
        level = d.get("level")
        return cls(
            phase=Phase.parse(phase) if phase is not None else None,
            level=int(level) if level is not None else None,
            stages=tuple(str(s) for s in d.get("stages", ()) or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        if self.phase is not None:
            out["phase"] = self.phase.value
        if self.level is not None:
            out["level"] = self.level
        if self.stages:
            out["stages"] = list(self.stages)
        return out


@dataclass(frozen=True)
class RunContext:
    """
    Explicit execution context for a single network call.

    Attributes
    ----------
    phase : Phase
        TRAIN for solver steps, TEST for evaluation passes.
    accumulate : bool
        True when the solver accumulates gradients across several
        micro-batches before applying one update.
    debug_info : bool
        When True, networks may log per-parameter diagnostics.
    """

    phase: Phase = Phase.TRAIN
    accumulate: bool = False
    debug_info: bool = False

    def with_debug_info(self, debug_info: bool) -> "RunContext":
        return replace(self, debug_info=bool(debug_info))
