"""
Cell Evaluator

Computes the cross-tabulated block: for every independent level and every
crosstab column (outcome level, marginal, or overall), every crosstab
function is invoked in declaration order and the outputs are joined into
one cell.

Evaluation order is independent variable, level, outcome variable, outcome
level, function. Rows may be evaluated on a thread pool; results are always
reassembled in that order.
"""

from __future__ import annotations

from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Literal

import pandas as pd

from config import CONFIG
from ctable.contracts import CROSSTAB, CrosstabFunction, Stratum, check_scalar_result
from ctable.variables import ResolvedVariable, level_mask
from logger import get_logger

logger = get_logger(__name__)

ColumnKind = Literal["outcome", "marginal", "overall"]


@dataclass(frozen=True)
class ColumnKey:
    """One crosstab column: an outcome level, the marginal total, or the unstratified overall column."""

    kind: ColumnKind
    outcome: ResolvedVariable | None = None
    level: str | None = None

    @property
    def stratum(self) -> Stratum | None:
        if self.kind != "outcome":
            return None
        return Stratum(self.outcome.column, self.level)


@dataclass(frozen=True)
class RowKey:
    variable: ResolvedVariable
    level: str

    @property
    def stratum(self) -> Stratum:
        return Stratum(self.variable.column, self.level)


@dataclass(frozen=True)
class CrosstabBlock:
    row_keys: tuple[RowKey, ...]
    column_keys: tuple[ColumnKey, ...]
    cells: tuple[tuple[str, ...], ...]


def crosstab_columns(
    outcomes: Sequence[ResolvedVariable], marginal: bool, has_crosstab: bool
) -> tuple[ColumnKey, ...]:
    """
    Column keys of the cross-tabulated block, in layout order.

    With outcomes: one column per outcome level, then the marginal column when
    enabled. Without outcomes: a single unstratified column when there is
    anything to evaluate in it, otherwise none.
    """
    if outcomes:
        keys = [ColumnKey("outcome", var, lvl) for var in outcomes for lvl in var.levels]
        if marginal:
            keys.append(ColumnKey("marginal"))
        return tuple(keys)
    if has_crosstab:
        return (ColumnKey("overall"),)
    return ()


def row_keys(independents: Sequence[ResolvedVariable]) -> tuple[RowKey, ...]:
    return tuple(RowKey(var, lvl) for var in independents for lvl in var.levels)


def _evaluate_row(
    key: RowKey,
    columns: Sequence[ColumnKey],
    funcs: Sequence[CrosstabFunction],
    data: pd.DataFrame,
    separator: str,
) -> tuple[str, ...]:
    subset = data[level_mask(data, key.variable.column, key.level)]
    independent = key.stratum
    cells = []
    for column in columns:
        outcome = column.stratum
        outputs = []
        for func in funcs:
            value = func(subset, outcome, independent, data)
            outputs.append(
                check_scalar_result(
                    value,
                    CROSSTAB,
                    func.label,
                    variable=key.variable.column,
                    level=key.level,
                    outcome=outcome.name if outcome else None,
                    outcome_level=outcome.level if outcome else None,
                )
            )
        cells.append(separator.join(outputs))
    return tuple(cells)


def evaluate_cells(
    independents: Sequence[ResolvedVariable],
    columns: Sequence[ColumnKey],
    funcs: Sequence[CrosstabFunction],
    data: pd.DataFrame,
    max_workers: int | None = None,
) -> CrosstabBlock:
    """
    Evaluate every crosstab cell.

    Each crosstab function receives the independent-level subset, the
    outcome stratum (None for marginal/overall columns), the independent
    stratum, and the full dataset. The first error raised by any cell
    propagates; no partial block is returned.
    """
    rows = row_keys(independents)
    separator = CONFIG.get("table.cell_separator", "\n")
    workers = max_workers or CONFIG.get("performance.num_threads", 1)

    if not columns:
        return CrosstabBlock(rows, (), tuple(() for _ in rows))

    logger.debug(
        f"Evaluating {len(rows)} x {len(columns)} cells with {len(funcs)} function(s), workers={workers}"
    )

    if workers > 1 and len(rows) > 1:
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [
                executor.submit(_evaluate_row, key, columns, funcs, data, separator) for key in rows
            ]
            try:
                cells = tuple(f.result() for f in futures)
            except BaseException:
                for f in futures:
                    f.cancel()
                raise
    else:
        cells = tuple(_evaluate_row(key, columns, funcs, data, separator) for key in rows)

    return CrosstabBlock(rows, tuple(columns), cells)
