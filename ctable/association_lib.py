"""
Association tests between an independent variable and a categorical outcome.
"""

from __future__ import annotations

import warnings

import pandas as pd
from scipy import stats

from ctable.contracts import RowFunction
from ctable.errors import ConfigurationError, EstimationError
from ctable.formatting import format_p_value
from logger import get_logger

logger = get_logger(__name__)


class ChiSquareTest(RowFunction):
    """
    P-value of the association between each independent variable and `outcome`.

    Uses Pearson's chi-square test; for 2x2 tables with an expected count
    below 5, Fisher's exact test when `exact_small` is set. The p-value is
    shown on the variable's first row and the remaining rows are blank.
    """

    def __init__(self, outcome: str, exact_small: bool = True):
        self.outcome = outcome
        self.exact_small = exact_small
        self.label = f"p ({outcome})"

    def test(self, data: pd.DataFrame, variable: str) -> tuple[float, str]:
        if self.outcome not in data.columns:
            raise ConfigurationError(f"missing outcome column: {self.outcome}")
        complete = data[[variable, self.outcome]].dropna()
        tab = pd.crosstab(complete[variable], complete[self.outcome])
        # Drop unused categories so empty rows/columns do not break the test.
        tab = tab.loc[tab.sum(axis=1) > 0, tab.sum(axis=0) > 0]

        if tab.shape[0] < 2 or tab.shape[1] < 2:
            raise EstimationError(variable, self.outcome, "fewer than two observed levels")

        with warnings.catch_warnings():
            warnings.simplefilter("ignore")
            _chi2, p_chi2, _dof, expected = stats.chi2_contingency(tab)

        if self.exact_small and tab.shape == (2, 2) and expected.min() < 5:
            _odds, p_exact = stats.fisher_exact(tab.to_numpy())
            return p_exact, "Fisher's Exact"
        return p_chi2, "Chi-square"

    def __call__(self, data, variable, independents):
        n_levels = len(data[variable].cat.categories)
        if variable == self.outcome:
            return [""] * n_levels

        p, test_name = self.test(data, variable)
        logger.debug(f"{test_name} for '{variable}' vs '{self.outcome}': p={p:.4g}")
        return [format_p_value(p)] + [""] * (n_levels - 1)
