"""
Regression coefficient row functions.

Fits one model per independent variable (optionally adjusted for the other
independents) and reports one coefficient per level against a reference
level:

- OddsRatio: binary outcome, statsmodels Logit, exponentiated
- HazardRatio: time-to-event outcome, lifelines CoxPHFitter, exponentiated
- LinearCoefficient: continuous outcome, statsmodels OLS
"""

from __future__ import annotations

import warnings
from abc import abstractmethod
from collections.abc import Sequence
from typing import Any, Literal

import numpy as np
import pandas as pd
import statsmodels.api as sm
from lifelines import CoxPHFitter
from lifelines.exceptions import ConvergenceError
from statsmodels.tools.sm_exceptions import (
    ConvergenceWarning,
    PerfectSeparationError,
    PerfectSeparationWarning,
)

from config import CONFIG
from ctable.contracts import RowFunction
from ctable.errors import ConfigurationError, EstimationError
from ctable.formatting import format_estimate, format_reference
from logger import get_logger

# Suppress DeprecationWarning from lifelines (datetime.utcnow)
warnings.filterwarnings("ignore", category=DeprecationWarning, module="lifelines")

logger = get_logger(__name__)

ReferenceRule = Literal["first", "frequent"]


def select_reference(levels: Sequence[str], counts: pd.Series, rule: ReferenceRule) -> str:
    """
    Pick the reference level among observed `levels` (declared order).

    first: the first declared level.
    frequent: the most frequent level; ties go to the earliest declared.
    """
    if rule == "first":
        return levels[0]
    if rule == "frequent":
        # max() keeps the first maximal element, i.e. declaration order breaks ties.
        return max(levels, key=lambda lvl: counts[lvl])
    raise ValueError(f"reference must be 'first' or 'frequent', got {rule!r}")


def event_indicator(series: pd.Series, event: Any) -> pd.Series:
    """1.0 where `series` equals `event`, else 0.0; categoricals compare by level text."""
    if isinstance(series.dtype, pd.CategoricalDtype):
        return (series.astype(str) == str(event)).astype(float)
    return (series == event).astype(float)


class RegressionRowFunction(RowFunction):
    """
    Shared dummy coding, reference selection and formatting for regression row functions.

    Subclasses declare the model's outcome columns and implement `fit`, which
    returns coefficient estimates and a two-column confidence interval frame
    on the linear-predictor scale.
    """

    exponentiate = True
    reference_value = 1
    model_name = "Regression"

    def __init__(
        self,
        adjust: bool = False,
        ci: bool = True,
        reference: ReferenceRule | None = None,
        digits: int | None = None,
        conf_level: float | None = None,
    ):
        self.adjust = adjust
        self.ci = ci
        self.reference = reference or CONFIG.get("analysis.reference_level", "first")
        if self.reference not in ("first", "frequent"):
            raise ValueError(f"reference must be 'first' or 'frequent', got {self.reference!r}")
        self.digits = digits
        self.conf_level = conf_level or CONFIG.get("analysis.conf_level", 0.95)

    @property
    @abstractmethod
    def outcome_columns(self) -> tuple[str, ...]:
        ...

    @property
    def outcome_name(self) -> str:
        return "/".join(self.outcome_columns)

    @abstractmethod
    def fit(
        self, frame: pd.DataFrame, design: pd.DataFrame, variable: str
    ) -> tuple[pd.Series, pd.DataFrame]:
        """Fit the model for `variable` on complete-case `frame` with dummy-coded `design`."""

    def _dummies(
        self, frame: pd.DataFrame, column: str, required: bool
    ) -> tuple[pd.DataFrame, dict[str, str], str | None]:
        """
        Dummy-code one categorical covariate against its reference level.

        Returns the dummy columns, a map of level -> dummy column name, and
        the reference level. Covariates with fewer than two observed levels
        carry no information: an error for the target variable, dropped for
        adjusters.
        """
        series = frame[column]
        categories = [str(c) for c in series.cat.categories]
        codes = series.cat.codes
        counts = pd.Series(np.bincount(codes[codes >= 0], minlength=len(categories)), index=categories)
        observed = [lvl for lvl in categories if counts[lvl] > 0]

        if len(observed) < 2:
            if required:
                raise EstimationError(column, self.outcome_name, "fewer than two observed levels")
            logger.debug(f"Adjustment covariate '{column}' dropped: fewer than two observed levels")
            return pd.DataFrame(index=frame.index), {}, None

        ref = select_reference(observed, counts, self.reference)
        dummies = {}
        names = {}
        for lvl in observed:
            if lvl == ref:
                continue
            name = f"{column}__{categories.index(lvl)}"
            dummies[name] = (codes == categories.index(lvl)).astype(float)
            names[lvl] = name
        return pd.DataFrame(dummies, index=frame.index), names, ref

    def __call__(self, data, variable, independents):
        missing = [c for c in self.outcome_columns if c not in data.columns]
        if missing:
            raise ConfigurationError(f"missing {self.model_name} outcome columns: {', '.join(missing)}")
        categories = [str(c) for c in data[variable].cat.categories]
        if variable in self.outcome_columns:
            return [""] * len(categories)

        adjusters = []
        if self.adjust:
            adjusters = [
                c for c in independents if c != variable and c not in self.outcome_columns
            ]
        frame = data[[variable, *adjusters, *self.outcome_columns]].dropna()

        design, names, ref = self._dummies(frame, variable, required=True)
        for column in adjusters:
            extra, _, _ = self._dummies(frame, column, required=False)
            design = pd.concat([design, extra], axis=1)

        if np.linalg.matrix_rank(sm.add_constant(design, has_constant="add").to_numpy()) < design.shape[1] + 1:
            raise EstimationError(variable, self.outcome_name, "singular design matrix")

        logger.log_analysis(self.model_name, self.outcome_name, design.shape[1], len(frame))
        params, conf = self.fit(frame, design, variable)

        targets = list(names.values())
        estimates = params[targets].to_numpy(dtype=float)
        if not np.all(np.isfinite(estimates)):
            raise EstimationError(variable, self.outcome_name, "non-finite coefficient estimates")

        transform = np.exp if self.exponentiate else (lambda x: x)
        result = []
        for lvl in categories:
            if lvl == ref:
                result.append(format_reference(self.reference_value))
            elif lvl not in names:
                result.append("")
            else:
                name = names[lvl]
                est = transform(params[name])
                if self.ci:
                    lo, hi = transform(conf.loc[name].iloc[0]), transform(conf.loc[name].iloc[1])
                    result.append(format_estimate(est, lo, hi, self.digits))
                else:
                    result.append(format_estimate(est, digits=self.digits))
        return result


class OddsRatio(RegressionRowFunction):
    """Odds ratios of `outcome == event` from a logistic regression."""

    model_name = "Logistic Regression"

    def __init__(self, outcome: str, event: Any, **kwargs):
        super().__init__(**kwargs)
        self.outcome = outcome
        self.event = event
        self.label = f"OR ({outcome})"

    @property
    def outcome_columns(self):
        return (self.outcome,)

    def fit(self, frame, design, variable):
        y = event_indicator(frame[self.outcome], self.event)
        if y.nunique() < 2:
            raise EstimationError(variable, self.outcome, "outcome has a single class")

        X = sm.add_constant(design, has_constant="add")
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("error", PerfectSeparationWarning)
                warnings.simplefilter("ignore", ConvergenceWarning)
                result = sm.Logit(y, X).fit(disp=0, maxiter=CONFIG.get("analysis.logit_max_iter", 100))
        except (PerfectSeparationError, PerfectSeparationWarning) as e:
            raise EstimationError(variable, self.outcome, f"perfect separation: {e}") from e
        except (np.linalg.LinAlgError, ValueError) as e:
            raise EstimationError(variable, self.outcome, f"model fitting failed: {e}") from e

        if not result.mle_retvals.get("converged", True):
            raise EstimationError(variable, self.outcome, "logistic regression did not converge")

        return result.params, result.conf_int(alpha=1 - self.conf_level)


class HazardRatio(RegressionRowFunction):
    """
    Hazard ratios from a Cox proportional hazards model.

    `event` is a numeric/boolean indicator column, or a categorical column
    whose `event_value` level marks an event.
    """

    model_name = "Cox Regression"

    def __init__(self, time: str, event: str, event_value: Any = None, **kwargs):
        super().__init__(**kwargs)
        self.time = time
        self.event = event
        self.event_value = event_value
        self.label = f"HR ({time}, {event})"

    @property
    def outcome_columns(self):
        return (self.time, self.event)

    def fit(self, frame, design, variable):
        if not pd.api.types.is_numeric_dtype(frame[self.time]):
            raise ConfigurationError(f"time column '{self.time}' is not numeric")

        events = frame[self.event]
        if self.event_value is not None:
            events = event_indicator(events, self.event_value)
        elif isinstance(events.dtype, pd.CategoricalDtype):
            raise ConfigurationError(
                f"event column '{self.event}' is categorical: pass event_value to mark events"
            )

        df = design.copy()
        df["_duration"] = frame[self.time].astype(float)
        df["_event"] = events.astype(float)

        cph = CoxPHFitter(
            penalizer=CONFIG.get("analysis.cox_penalizer", 0.0), alpha=1 - self.conf_level
        )
        try:
            with warnings.catch_warnings():
                warnings.simplefilter("ignore")
                cph.fit(df, duration_col="_duration", event_col="_event")
        except (ConvergenceError, np.linalg.LinAlgError, ValueError) as e:
            raise EstimationError(variable, self.outcome_name, f"Cox model fitting failed: {e}") from e

        return cph.params_, cph.confidence_intervals_


class LinearCoefficient(RegressionRowFunction):
    """Differences in mean `outcome` against the reference level (OLS)."""

    exponentiate = False
    reference_value = 0
    model_name = "Linear Regression"

    def __init__(self, outcome: str, **kwargs):
        super().__init__(**kwargs)
        self.outcome = outcome
        self.label = f"Beta ({outcome})"

    @property
    def outcome_columns(self):
        return (self.outcome,)

    def fit(self, frame, design, variable):
        if not pd.api.types.is_numeric_dtype(frame[self.outcome]):
            raise ConfigurationError(f"outcome column '{self.outcome}' is not numeric")

        X = sm.add_constant(design, has_constant="add")
        try:
            result = sm.OLS(frame[self.outcome].astype(float), X).fit()
        except (np.linalg.LinAlgError, ValueError) as e:
            raise EstimationError(variable, self.outcome, f"model fitting failed: {e}") from e
        return result.params, result.conf_int(alpha=1 - self.conf_level)
