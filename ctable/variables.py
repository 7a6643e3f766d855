"""
Variable Registry

Normalizes independent/outcome specifications into `VariableSpec` tuples and
resolves each variable's levels from the dataset's declared category order.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

import pandas as pd

from ctable.errors import ConfigurationError
from logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class VariableSpec:
    """A display label bound to a dataset column."""

    label: str
    column: str


@dataclass(frozen=True)
class ResolvedVariable:
    """A VariableSpec with the column's levels in declared order."""

    label: str
    column: str
    levels: tuple[str, ...]

    @property
    def n_levels(self) -> int:
        return len(self.levels)


def _spec_from_entry(entry: Any, role: str, position: int) -> VariableSpec:
    match entry:
        case VariableSpec():
            return entry
        case Mapping() if len(entry) == 1:
            ((label, column),) = entry.items()
            return VariableSpec(str(label), str(column))
        case (label, column):
            return VariableSpec(str(label), str(column))
        case _:
            raise ConfigurationError(
                f"Malformed {role} specification at position {position}: {entry!r}"
            )


def normalize_specs(raw: Any, role: str) -> tuple[VariableSpec, ...]:
    """
    Normalize a variable specification list.

    Accepts VariableSpec objects, (label, column) pairs, single-entry
    {label: column} mappings, or one ordered {label: column} mapping.
    Column names must be unique within the list.
    """
    if raw is None:
        return ()

    if isinstance(raw, Mapping):
        entries: Iterable[Any] = [(label, column) for label, column in raw.items()]
    elif isinstance(raw, (str, bytes)) or not isinstance(raw, Iterable):
        raise ConfigurationError(f"{role} specification must be a sequence, got {type(raw).__name__}")
    else:
        entries = raw

    specs = tuple(_spec_from_entry(entry, role, i) for i, entry in enumerate(entries))

    seen: set[str] = set()
    duplicates: list[str] = []
    for spec in specs:
        if spec.column in seen and spec.column not in duplicates:
            duplicates.append(spec.column)
        seen.add(spec.column)
    if duplicates:
        raise ConfigurationError(f"Duplicate {role} columns: {', '.join(duplicates)}")

    return specs


def resolve_variables(
    specs: Sequence[VariableSpec], data: pd.DataFrame, role: str
) -> tuple[ResolvedVariable, ...]:
    """
    Validate specs against the dataset and resolve their levels.

    Every referenced column must exist and carry a pandas categorical dtype.
    Levels follow the dtype's declared category order, unused categories
    included.

    Raises:
        ConfigurationError: listing all missing and all non-categorical columns.
    """
    missing = [s.column for s in specs if s.column not in data.columns]
    non_categorical = [
        s.column
        for s in specs
        if s.column in data.columns and not isinstance(data[s.column].dtype, pd.CategoricalDtype)
    ]

    problems = []
    if missing:
        problems.append(f"missing {role} columns: {', '.join(missing)}")
    if non_categorical:
        problems.append(f"non-categorical {role} columns: {', '.join(non_categorical)}")
    if problems:
        raise ConfigurationError("; ".join(problems))

    resolved = tuple(
        ResolvedVariable(
            label=s.label,
            column=s.column,
            levels=tuple(str(c) for c in data[s.column].cat.categories),
        )
        for s in specs
    )

    for var in resolved:
        if var.n_levels == 0:
            raise ConfigurationError(f"{role} column '{var.column}' declares no levels")
        if len(set(var.levels)) != var.n_levels:
            raise ConfigurationError(
                f"{role} column '{var.column}' has levels that collide when shown as text"
            )
        logger.debug(f"Resolved {role} '{var.column}' with levels {list(var.levels)}")

    return resolved


def level_mask(data: pd.DataFrame, column: str, level: str) -> pd.Series:
    """Boolean mask of rows whose categorical value displays as `level`; NaN matches nothing."""
    series = data[column]
    if not isinstance(series.dtype, pd.CategoricalDtype):
        return series.astype(str).eq(level) & series.notna()
    labels = [str(c) for c in series.cat.categories]
    if level not in labels:
        return pd.Series(False, index=series.index)
    return series.cat.codes == labels.index(level)


def as_categorical(
    data: pd.DataFrame, column: str, levels: Sequence[Any] | None = None
) -> pd.DataFrame:
    """
    Return a copy of `data` with `column` converted to a categorical.

    Levels default to the sorted distinct non-missing values. Values outside
    `levels` become missing.
    """
    if column not in data.columns:
        raise ConfigurationError(f"missing column: {column}")

    out = data.copy()
    if levels is None:
        levels = sorted(out[column].dropna().unique().tolist(), key=lambda v: (str(type(v)), v))
    out[column] = pd.Categorical(out[column], categories=list(levels), ordered=False)
    return out
