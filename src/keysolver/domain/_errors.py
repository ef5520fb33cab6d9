"""
Solver-, state- and device-related exceptions for keysolver.

This module defines the custom errors used to signal invalid solver
configuration, inconsistent optimizer state, and unsupported device usage.
Every precondition violation in the solver core surfaces as one of these
exceptions; nothing in the core retries or recovers from them.

Taxonomy
--------
- `SolverConfigError`: the solver configuration is invalid (missing or
  ambiguous network source, mismatched test-iteration counts, unknown
  learning-rate policy, regularization kind, update rule or solver mode).
  Raised during initialization, before any training work is done.
- `SolverStateError`: persisted or runtime state is inconsistent with the
  current solver (history-count mismatch on restore, unresolvable parameter
  artifact, unknown artifact format).
- `DeviceNotSupportedError`: an operation was requested on a device backend
  that is not available in this environment (e.g., GPU without CuPy).
"""


class SolverConfigError(ValueError):
    """
    Raised when a solver configuration violates a precondition.

    Subclasses `ValueError` so callers validating plain hyperparameters
    (e.g., ``base_lr``) can catch both through a single handler.

    Attributes
    ----------
    field : str or None
        Name of the configuration field that triggered the error, when a
        single field is responsible.
    """

    def __init__(self, message: str, *, field: str | None = None) -> None:
        """
        Initialize the SolverConfigError.

        Parameters
        ----------
        message : str
            Human-readable diagnostic identifying the violated precondition.
        field : str or None, optional
            Name of the offending configuration field.
        """
        super().__init__(message)
        self.field = field


class SolverStateError(RuntimeError):
    """
    Raised when optimizer or snapshot state is inconsistent.

    Restore operations validate the persisted state against the live solver
    before mutating anything, so when this error is raised the solver's
    optimizer state is left untouched.
    """


class DeviceNotSupportedError(RuntimeError):
    """
    Raised when a numeric operation is requested on a device backend
    that is not available.

    Attributes
    ----------
    op : str
        The name of the operation that was attempted (e.g., "backend").
    device : str
        String representation of the device on which the operation
        was attempted.
    """

    def __init__(self, op: str, device: str, reason: str | None = None) -> None:
        """
        Initialize the DeviceNotSupportedError.

        Parameters
        ----------
        op : str
            The operation name that is not supported on the given device.
        device : str
            The device identifier (e.g., "cuda:0").
        reason : str or None, optional
            Additional detail, such as the missing dependency.
        """
        msg = f"{op} is not implemented for device '{device}'."
        if reason:
            msg = f"{msg} {reason}"
        super().__init__(msg)
        self.op = op
        self.device = device
