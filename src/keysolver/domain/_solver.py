"""
Domain-level solver vocabulary.

This module defines the closed enumerations the solver is configured with:

- `UpdateRuleKind`: the fixed set of update-rule variants, each carrying its
  auxiliary-buffer requirement (how many history slots per parameter).
- `LrPolicy`: named learning-rate schedules.
- `RegularizationType`: gradient regularization kinds.
- `SolverStatus`: states of the solver's iteration state machine.

Every enumeration parses user-facing strings with a dedicated `parse`
classmethod that raises `SolverConfigError` on unknown names, so invalid
configuration is rejected at initialization time.
"""

from __future__ import annotations

from enum import Enum

from ._errors import SolverConfigError


def _parse_enum(cls, value, field: str, what: str):
    if isinstance(value, cls):
        return value
    key = str(value).strip()
    for member in cls:
        if key.upper() == member.value.upper():
            return member
    expected = ", ".join(m.value for m in cls)
    raise SolverConfigError(
        f"Unknown {what}: {value!r}. Expected one of: {expected}", field=field
    )


class UpdateRuleKind(Enum):
    """
    Update-rule variants.

    Attributes
    ----------
    history_slots : int
        Number of per-parameter history buffers the variant requires.
        AdaDelta tracks both gradient and update magnitudes (2 slots);
        every other variant needs one.
    """

    SGD = "SGD"
    NESTEROV = "NESTEROV"
    ADAGRAD = "ADAGRAD"
    ADADELTA = "ADADELTA"
    RMSPROP = "RMSPROP"

    @property
    def history_slots(self) -> int:
        return 2 if self is UpdateRuleKind.ADADELTA else 1

    @classmethod
    def parse(cls, value: "UpdateRuleKind | str") -> "UpdateRuleKind":
        return _parse_enum(cls, value, "solver_type", "solver type")


class LrPolicy(Enum):
    """Learning-rate schedule names."""

    FIXED = "fixed"
    STEP = "step"
    EXP = "exp"
    INV = "inv"

    @classmethod
    def parse(cls, value: "LrPolicy | str") -> "LrPolicy":
        return _parse_enum(cls, value, "lr_policy", "learning rate policy")


class RegularizationType(Enum):
    """Gradient regularization kinds."""

    L1 = "L1"
    L2 = "L2"

    @classmethod
    def parse(cls, value: "RegularizationType | str") -> "RegularizationType":
        return _parse_enum(
            cls, value, "regularization_type", "regularization type"
        )


class SolverStatus(Enum):
    """
    Solver state machine.

    ``UNINITIALIZED -> READY -> RUNNING -> (TESTING | SNAPSHOTTING) -> COMPLETED``

    TESTING and SNAPSHOTTING are entered from RUNNING (or READY, for
    standalone calls) and return to the state they were entered from.
    """

    UNINITIALIZED = "uninitialized"
    READY = "ready"
    RUNNING = "running"
    TESTING = "testing"
    SNAPSHOTTING = "snapshotting"
    COMPLETED = "completed"
