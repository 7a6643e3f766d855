"""
Summary Function Contracts

Three interfaces, one per call shape:

- CrosstabFunction: one string per (independent level x outcome level) cell
- ColumnFunction: one string per outcome level, ignoring independents
- RowFunction: one string per level of a whole independent variable

Plain callables are accepted by wrapping them at registration time, after
their signature has been checked against the contract.
"""

from __future__ import annotations

import inspect
import numbers
from abc import ABC, abstractmethod
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import numpy as np
import pandas as pd

from config import CONFIG
from ctable.errors import ContractViolationError

CROSSTAB = "crosstab"
COLUMN = "column"
ROW = "row"


@dataclass(frozen=True)
class Stratum:
    """A variable fixed to one level. `None` in its place means unstratified."""

    name: str
    level: str


class CrosstabFunction(ABC):
    """Summary computed per independent level x outcome level cell."""

    label: str = "crosstab"

    @abstractmethod
    def __call__(
        self,
        data: pd.DataFrame,
        outcome: Stratum | None,
        independent: Stratum | None,
        dataset: pd.DataFrame,
    ) -> str:
        """
        Parameters:
            data: rows at the current independent level.
            outcome: outcome stratum, or None when unstratified.
            independent: independent stratum, or None when unstratified.
            dataset: the full, read-only dataset.
        """


class ColumnFunction(ABC):
    """Summary computed per outcome level over the full dataset."""

    label: str = "column"

    @abstractmethod
    def __call__(self, data: pd.DataFrame, outcome: Stratum | None) -> str:
        ...


class RowFunction(ABC):
    """Summary computed per independent variable, one entry per level."""

    label: str = "row"

    @abstractmethod
    def __call__(
        self, data: pd.DataFrame, variable: str, independents: Sequence[str]
    ) -> Sequence[str]:
        ...


def _callable_name(func: Any) -> str:
    return getattr(func, "label", None) or getattr(func, "__name__", None) or type(func).__name__


def _check_signature(
    func: Callable, contract: str, label: str, n_args: int, keywords: Sequence[str] = ()
) -> inspect.Signature | None:
    try:
        sig = inspect.signature(func)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are accepted and checked on call.
        return None
    try:
        sig.bind(*([None] * n_args), **{k: None for k in keywords if k in sig.parameters})
    except TypeError as e:
        raise ContractViolationError(
            contract, label, f"cannot be called with {n_args} positional arguments: {e}"
        ) from e
    return sig


class CallableCrosstab(CrosstabFunction):
    """Adapts a plain callable `(data, outcome, independent[, dataset=])` to CrosstabFunction."""

    def __init__(self, func: Callable, label: str):
        self.func = func
        self.label = label
        sig = _check_signature(func, CROSSTAB, label, 3, keywords=("dataset",))
        self._takes_dataset = sig is not None and (
            "dataset" in sig.parameters
            or any(p.kind is inspect.Parameter.VAR_KEYWORD for p in sig.parameters.values())
        )

    def __call__(self, data, outcome, independent, dataset):
        if self._takes_dataset:
            return self.func(data, outcome, independent, dataset=dataset)
        return self.func(data, outcome, independent)


class CallableColumn(ColumnFunction):
    """Adapts a plain callable `(data, outcome)` to ColumnFunction."""

    def __init__(self, func: Callable, label: str):
        _check_signature(func, COLUMN, label, 2)
        self.func = func
        self.label = label

    def __call__(self, data, outcome):
        return self.func(data, outcome)


class CallableRow(RowFunction):
    """Adapts a plain callable `(data, variable, independents)` to RowFunction."""

    def __init__(self, func: Callable, label: str):
        _check_signature(func, ROW, label, 3)
        self.func = func
        self.label = label

    def __call__(self, data, variable, independents):
        return self.func(data, variable, independents)


def register_crosstab(funcs: Sequence[Any] | None) -> tuple[CrosstabFunction, ...]:
    """Validate crosstab functions in declaration order."""
    if funcs is None:
        return ()
    if isinstance(funcs, (str, bytes, Mapping)) or callable(funcs):
        raise ContractViolationError(CROSSTAB, "<list>", "crosstab functions must be given as a sequence")

    registered = []
    for func in funcs:
        label = _callable_name(func)
        if isinstance(func, CrosstabFunction):
            registered.append(func)
        elif isinstance(func, (ColumnFunction, RowFunction)) or not callable(func):
            raise ContractViolationError(CROSSTAB, label, f"{type(func).__name__} is not a crosstab function")
        else:
            registered.append(CallableCrosstab(func, label))
    return tuple(registered)


def _labelled_items(funcs: Any, contract: str) -> list[tuple[str, Any]]:
    if funcs is None:
        return []
    if isinstance(funcs, Mapping):
        return [(str(label), func) for label, func in funcs.items()]
    items = []
    for entry in funcs:
        if not (isinstance(entry, tuple) and len(entry) == 2):
            raise ContractViolationError(
                contract, "<mapping>", f"expected a label -> function mapping, got entry {entry!r}"
            )
        items.append((str(entry[0]), entry[1]))
    return items


def register_column(funcs: Any) -> tuple[tuple[str, ColumnFunction], ...]:
    """Validate an ordered label -> column function mapping."""
    registered = []
    for label, func in _labelled_items(funcs, COLUMN):
        if isinstance(func, ColumnFunction):
            registered.append((label, func))
        elif isinstance(func, (CrosstabFunction, RowFunction)) or not callable(func):
            raise ContractViolationError(COLUMN, label, f"{type(func).__name__} is not a column function")
        else:
            registered.append((label, CallableColumn(func, label)))
    return tuple(registered)


def register_row(funcs: Any) -> tuple[tuple[str, RowFunction], ...]:
    """Validate an ordered label -> row function mapping."""
    registered = []
    for label, func in _labelled_items(funcs, ROW):
        if isinstance(func, RowFunction):
            registered.append((label, func))
        elif isinstance(func, (CrosstabFunction, ColumnFunction)) or not callable(func):
            raise ContractViolationError(ROW, label, f"{type(func).__name__} is not a row function")
        else:
            registered.append((label, CallableRow(func, label)))
    return tuple(registered)


def _is_scalar_number(value: Any) -> bool:
    return isinstance(value, (numbers.Number, np.number)) and not isinstance(value, bool)


def check_scalar_result(value: Any, contract: str, label: str, **context: Any) -> str:
    """
    Validate a crosstab/column function result.

    Strings pass through. Numeric scalars are converted with `str` unless
    `validation.strict_mode` is set. Anything else is a contract violation.
    """
    if isinstance(value, str):
        return value
    if _is_scalar_number(value) and not CONFIG.get("validation.strict_mode", False):
        return str(value)
    raise ContractViolationError(
        contract, label, f"expected a single string, got {type(value).__name__}", **context
    )


def check_row_result(value: Any, label: str, variable: str, n_levels: int) -> tuple[str, ...]:
    """
    Validate a row function result: a sequence with one scalar per level.

    The result is never truncated or padded.
    """
    if isinstance(value, (str, bytes)) or not isinstance(value, (Sequence, np.ndarray, pd.Series)):
        raise ContractViolationError(
            ROW, label, f"expected a sequence of strings, got {type(value).__name__}", variable=variable
        )

    entries = list(value)
    if len(entries) != n_levels:
        raise ContractViolationError(
            ROW,
            label,
            f"returned {len(entries)} entries for {n_levels} levels",
            variable=variable,
        )

    return tuple(
        check_scalar_result(entry, ROW, label, variable=variable, position=i)
        for i, entry in enumerate(entries)
    )
