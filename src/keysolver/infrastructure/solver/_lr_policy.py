"""
Learning-rate schedules.

The currently implemented policies are:

- ``fixed``: always ``base_lr``.
- ``step``:  ``base_lr * gamma ** floor(iter / stepsize)``.
- ``exp``:   ``base_lr * gamma ** iter``.
- ``inv``:   ``base_lr * (1 + gamma * iter) ** (-power)``.
"""

from __future__ import annotations

from ...domain._errors import SolverConfigError
from ...domain._solver import LrPolicy


def learning_rate(
    policy: LrPolicy | str,
    iteration: int,
    *,
    base_lr: float,
    gamma: float = 0.0,
    power: float = 0.0,
    stepsize: int = 0,
) -> float:
    """
    Return the learning rate at ``iteration``.

    Parameters
    ----------
    policy : LrPolicy or str
        Schedule name.
    iteration : int
        Current iteration (0-based).
    base_lr, gamma, power, stepsize
        Schedule coefficients.

    Raises
    ------
    SolverConfigError
        If the policy is unknown, or ``step`` is used with a non-positive
        ``stepsize``.
    """
    policy = LrPolicy.parse(policy)
    it = int(iteration)
    match policy:
        case LrPolicy.FIXED:
            return float(base_lr)
        case LrPolicy.STEP:
            if stepsize <= 0:
                raise SolverConfigError(
                    f"stepsize must be > 0 for the step policy, got {stepsize}",
                    field="stepsize",
                )
            return float(base_lr) * float(gamma) ** (it // int(stepsize))
        case LrPolicy.EXP:
            return float(base_lr) * float(gamma) ** it
        case LrPolicy.INV:
            return float(base_lr) * (1.0 + float(gamma) * it) ** (-float(power))
        case _:
            raise SolverConfigError(f"Unknown learning rate policy: {policy}", field="lr_policy")
