"""
Column/Row Aggregator

Column functions run once per crosstab column over the full dataset and
produce one extra row each. Row functions run once per independent
variable and produce one extra column each, aligned level-for-level with
the body rows.
"""

from __future__ import annotations

from collections.abc import Sequence

import pandas as pd

from ctable.cell_evaluator import ColumnKey
from ctable.contracts import COLUMN, ColumnFunction, RowFunction, check_row_result, check_scalar_result
from ctable.variables import ResolvedVariable
from logger import get_logger

logger = get_logger(__name__)


def aggregate_columns(
    col_funcs: Sequence[tuple[str, ColumnFunction]],
    columns: Sequence[ColumnKey],
    data: pd.DataFrame,
) -> tuple[tuple[str, ...], ...]:
    """One row of strings per column function, aligned with `columns`."""
    rows = []
    for label, func in col_funcs:
        row = []
        for key in columns:
            outcome = key.stratum
            row.append(
                check_scalar_result(
                    func(data, outcome),
                    COLUMN,
                    label,
                    outcome=outcome.name if outcome else None,
                    outcome_level=outcome.level if outcome else None,
                )
            )
        rows.append(tuple(row))
    return tuple(rows)


def aggregate_rows(
    row_funcs: Sequence[tuple[str, RowFunction]],
    independents: Sequence[ResolvedVariable],
    data: pd.DataFrame,
) -> tuple[tuple[str, ...], ...]:
    """
    One column of strings per row function, concatenated over independents.

    Each call must return exactly one entry per level of its variable; the
    result is checked before it is placed.
    """
    names = [var.column for var in independents]
    columns = []
    for label, func in row_funcs:
        entries: list[str] = []
        for var in independents:
            with logger.track_time(f"row function '{label}' on '{var.column}'"):
                result = func(data, var.column, list(names))
            entries.extend(check_row_result(result, label, var.column, var.n_levels))
        columns.append(tuple(entries))
    return tuple(columns)
