"""
📊 Contingency Table Builder

Entry point of the assembly engine. Validates variable specifications and
summary functions up front, then runs the pipeline:

    Variable Registry -> Cell Evaluator -> Column/Row Aggregator -> Matrix Composer

The dataset is never modified. Any error aborts the build; no partial
table is returned.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import pandas as pd

from config import CONFIG
from ctable.aggregator import aggregate_columns, aggregate_rows
from ctable.cell_evaluator import crosstab_columns, evaluate_cells
from ctable.contracts import register_column, register_crosstab, register_row
from ctable.errors import ConfigurationError
from ctable.matrix_composer import TableMatrix, compose_matrix
from ctable.variables import normalize_specs, resolve_variables
from logger import get_logger

logger = get_logger(__name__)


def build_table(
    independents: Any,
    outcomes: Any = (),
    crosstab_funcs: Sequence[Any] | None = (),
    col_funcs: Mapping[str, Any] | Sequence[tuple[str, Any]] | None = None,
    row_funcs: Mapping[str, Any] | Sequence[tuple[str, Any]] | None = None,
    data: pd.DataFrame | None = None,
    marginal: bool = True,
) -> TableMatrix:
    """
    Build a contingency table matrix.

    Parameters:
        independents: ordered variable specs defining row groups (at least one).
        outcomes: ordered variable specs defining column groups (may be empty).
        crosstab_funcs: crosstab functions, evaluated per cell in order.
        col_funcs: ordered label -> column function mapping; one extra row each.
        row_funcs: ordered label -> row function mapping; one extra column each.
        data: the dataset; referenced variable columns must be categorical.
        marginal: add a trailing unstratified column when outcomes are given.

    Returns:
        TableMatrix: grid of strings with header spans and row spans.

    Raises:
        ConfigurationError: invalid specs or dataset, before any computation.
        ContractViolationError: a summary function is malformed or returns a bad shape.
        EstimationError: a built-in model could not be fitted.
    """
    try:
        if not isinstance(data, pd.DataFrame):
            raise ConfigurationError(
                f"data must be a pandas DataFrame, got {type(data).__name__}"
            )

        independent_specs = normalize_specs(independents, "independent")
        if not independent_specs:
            raise ConfigurationError("at least one independent variable is required")
        outcome_specs = normalize_specs(outcomes, "outcome")

        ind = resolve_variables(independent_specs, data, "independent")
        out = resolve_variables(outcome_specs, data, "outcome")

        crosstab = register_crosstab(crosstab_funcs)
        columns = register_column(col_funcs)
        rows = register_row(row_funcs)

        logger.log_data_summary("dataset", data.shape, {str(c): str(t) for c, t in data.dtypes.items()})
        logger.log_operation(
            "build_table",
            "started",
            independents=[v.column for v in ind],
            outcomes=[v.column for v in out],
            crosstab=len(crosstab),
            column=len(columns),
            row=len(rows),
        )

        with logger.track_time("build_table"):
            keys = crosstab_columns(out, marginal, bool(crosstab) or bool(columns))
            block = evaluate_cells(
                ind, keys, crosstab, data, max_workers=CONFIG.get("performance.num_threads", 1)
            )
            column_rows = aggregate_columns(columns, keys, data)
            row_columns = aggregate_rows(rows, ind, data)
            matrix = compose_matrix(
                ind,
                out,
                block,
                [label for label, _ in columns],
                column_rows,
                [label for label, _ in rows],
                row_columns,
            )

    except Exception as e:
        logger.log_operation("build_table", "failed", error=type(e).__name__, detail=e)
        raise

    logger.log_operation("build_table", "completed", shape=matrix.shape)
    return matrix
