"""Exceptions raised while assembling a contingency table."""

from __future__ import annotations

from typing import Any


class CTableError(Exception):
    """Base class for table assembly errors."""


class ConfigurationError(CTableError):
    """Invalid variable specification or dataset column reference."""


class ContractViolationError(CTableError):
    """
    A summary function does not satisfy its contract.

    Raised at registration time for values that cannot be called with the
    contract's arguments, and at call time for results of the wrong shape.
    """

    def __init__(self, contract: str, label: str, message: str, **context: Any):
        self.contract = contract
        self.label = label
        self.context = context
        where = ", ".join(f"{k}={v!r}" for k, v in context.items())
        text = f"{contract} function '{label}': {message}"
        if where:
            text = f"{text} ({where})"
        super().__init__(text)


class EstimationError(CTableError):
    """A built-in model could not be fitted for a variable/outcome pair."""

    def __init__(self, variable: str, outcome: str, reason: str):
        self.variable = variable
        self.outcome = outcome
        self.reason = reason
        super().__init__(
            f"Estimation failed for variable '{variable}' (outcome '{outcome}'): {reason}"
        )
