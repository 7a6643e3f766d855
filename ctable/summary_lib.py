"""
Built-in descriptive summary functions.

Frequency counts (with optional column/row/overall proportions) and
continuous mean/median extraction. Each class implements both the crosstab
and the column contract.
"""

from __future__ import annotations

from typing import Literal

import numpy as np
import pandas as pd

from ctable.contracts import ColumnFunction, CrosstabFunction, Stratum
from ctable.errors import ConfigurationError
from ctable.formatting import format_count, format_number, missing_marker
from ctable.variables import level_mask

ProportionType = Literal["column", "row", "overall"]


def _restrict(data: pd.DataFrame, stratum: Stratum | None) -> pd.DataFrame:
    if stratum is None:
        return data
    return data[level_mask(data, stratum.name, stratum.level)]


class Frequency(CrosstabFunction, ColumnFunction):
    """
    Count of rows, optionally followed by a parenthesized percentage.

    Denominators:
        column: rows of the full dataset at the outcome level (all rows when unstratified)
        row: rows at the current independent level
        overall: all rows of the dataset
    """

    def __init__(self, proportion: ProportionType | None = None, digits: int | None = None):
        if proportion not in (None, "column", "row", "overall"):
            raise ValueError(f"proportion must be 'column', 'row', 'overall' or None, got {proportion!r}")
        self.proportion = proportion
        self.digits = digits
        self.label = "n (%)" if proportion else "n"

    def __call__(self, data, outcome, independent=None, dataset=None):
        # Column contract: `data` is already the full dataset.
        full = data if dataset is None else dataset
        count = len(_restrict(data, outcome))

        if self.proportion is None:
            return format_count(count)
        if self.proportion == "column":
            denominator = len(_restrict(full, outcome))
        elif self.proportion == "row":
            denominator = len(data)
        else:
            denominator = len(full)
        return format_count(count, denominator, self.digits)

    def __repr__(self) -> str:
        return f"Frequency(proportion={self.proportion!r})"


class _ContinuousSummary(CrosstabFunction, ColumnFunction):
    """Shared column extraction for numeric summaries."""

    def __init__(self, column: str, digits: int | None = None):
        self.column = column
        self.digits = digits

    def _values(self, data: pd.DataFrame, outcome: Stratum | None) -> pd.Series:
        if self.column not in data.columns:
            raise ConfigurationError(f"missing numeric column: {self.column}")
        series = data[self.column]
        if not pd.api.types.is_numeric_dtype(series) or pd.api.types.is_bool_dtype(series):
            raise ConfigurationError(f"column '{self.column}' is not numeric")
        return _restrict(data, outcome)[self.column].dropna().astype(float)

    def summarize(self, values: pd.Series) -> str:
        raise NotImplementedError

    def __call__(self, data, outcome, independent=None, dataset=None):
        values = self._values(data, outcome)
        if len(values) == 0:
            return missing_marker()
        return self.summarize(values)


class Mean(_ContinuousSummary):
    """Mean of a numeric column, optionally with its standard deviation."""

    def __init__(self, column: str, digits: int | None = None, show_sd: bool = False):
        super().__init__(column, digits)
        self.show_sd = show_sd
        self.label = f"mean {column}"

    def summarize(self, values):
        text = format_number(values.mean(), self.digits)
        if self.show_sd:
            sd = values.std() if len(values) > 1 else np.nan
            text += f" ({format_number(sd, self.digits)})"
        return text


class Median(_ContinuousSummary):
    """Median of a numeric column, optionally with the interquartile range."""

    def __init__(self, column: str, digits: int | None = None, show_iqr: bool = False):
        super().__init__(column, digits)
        self.show_iqr = show_iqr
        self.label = f"median {column}"

    def summarize(self, values):
        text = format_number(values.median(), self.digits)
        if self.show_iqr:
            q1, q3 = np.percentile(values, [25, 75])
            text += f" [{format_number(q1, self.digits)}, {format_number(q3, self.digits)}]"
        return text
