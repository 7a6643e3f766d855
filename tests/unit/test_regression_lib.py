"""
Unit tests for regression row functions (ctable/regression_lib.py).

Single binary predictors make the logistic MLE equal to the 2x2 odds
ratio, so expected values can be written down by hand.
"""

import re

import pandas as pd
import pytest

from ctable.errors import ConfigurationError, EstimationError
from ctable.regression_lib import (
    HazardRatio,
    LinearCoefficient,
    OddsRatio,
    event_indicator,
    select_reference,
)

pytestmark = pytest.mark.unit

ESTIMATE_WITH_CI = re.compile(r"^\d+\.\d{2} \(\d+\.\d{2}-\d+\.\d{2}\)$")


@pytest.fixture
def or_df():
    """
    M: 24 treated / 16 untreated (odds 1.5)
    F: 15 treated / 45 untreated (odds 1/3)
    """
    sex = ["M"] * 40 + ["F"] * 60
    treated = ["Yes"] * 24 + ["No"] * 16 + ["Yes"] * 15 + ["No"] * 45
    return pd.DataFrame({
        "sex": pd.Categorical(sex, categories=["M", "F", "X"]),
        "treated": pd.Categorical(treated, categories=["Yes", "No"]),
        "score": [50.0] * 40 + [60.0] * 60,
    })


class TestReferenceSelection:

    def test_first(self):
        counts = pd.Series({"a": 1, "b": 5})
        assert select_reference(["a", "b"], counts, "first") == "a"

    def test_frequent_with_tie_uses_declared_order(self):
        counts = pd.Series({"a": 3, "b": 7, "c": 7})
        assert select_reference(["a", "b", "c"], counts, "frequent") == "b"

    def test_unknown_rule(self):
        with pytest.raises(ValueError):
            select_reference(["a"], pd.Series({"a": 1}), "median")


def test_event_indicator():
    cat = pd.Series(pd.Categorical(["Yes", "No", None], categories=["Yes", "No"]))
    assert event_indicator(cat, "Yes").tolist() == [1.0, 0.0, 0.0]
    assert event_indicator(pd.Series([0, 1, 1]), 1).tolist() == [0.0, 1.0, 1.0]


class TestOddsRatio:

    def test_matches_two_by_two(self, or_df):
        result = OddsRatio("treated", "Yes", ci=False)(or_df, "sex", ["sex"])
        # (1/3) / 1.5 = 0.222; unused level X stays blank
        assert result == ["1 (ref)", "0.22", ""]

    def test_most_frequent_reference(self, or_df):
        result = OddsRatio("treated", "Yes", ci=False, reference="frequent")(or_df, "sex", ["sex"])
        assert result == ["4.50", "1 (ref)", ""]

    def test_confidence_interval_brackets_estimate(self, or_df):
        result = OddsRatio("treated", "Yes")(or_df, "sex", ["sex"])
        assert ESTIMATE_WITH_CI.match(result[1])
        est, lo, hi = map(float, re.findall(r"\d+\.\d+", result[1]))
        assert lo < est < hi

    def test_adjusted_model(self, clinical_df):
        result = OddsRatio("treated", "Yes", adjust=True)(
            clinical_df, "stage", ["sex", "stage", "smoker"]
        )
        assert result[0] == "1 (ref)"
        assert all(ESTIMATE_WITH_CI.match(r) for r in result[1:])

    def test_outcome_variable_is_baseline_only(self, or_df):
        assert OddsRatio("treated", "Yes")(or_df, "treated", ["sex", "treated"]) == ["", ""]

    def test_single_observed_level_raises(self, or_df):
        males = or_df.iloc[:40]
        with pytest.raises(EstimationError) as exc_info:
            OddsRatio("treated", "Yes")(males, "sex", ["sex"])
        assert exc_info.value.variable == "sex"
        assert exc_info.value.outcome == "treated"

    def test_single_outcome_class_raises(self, or_df):
        with pytest.raises(EstimationError, match="single class"):
            OddsRatio("treated", "Maybe")(or_df, "sex", ["sex"])

    def test_missing_outcome_column(self, or_df):
        with pytest.raises(ConfigurationError, match="nope"):
            OddsRatio("nope", "Yes")(or_df, "sex", ["sex"])

    def test_invalid_reference_rule(self):
        with pytest.raises(ValueError):
            OddsRatio("treated", "Yes", reference="last")


class TestLinearCoefficient:

    def test_mean_difference(self, or_df):
        result = LinearCoefficient("score", ci=False)(or_df, "sex", ["sex"])
        assert result == ["0 (ref)", "10.00", ""]

    def test_non_numeric_outcome(self, or_df):
        with pytest.raises(ConfigurationError):
            LinearCoefficient("treated")(or_df, "sex", ["sex"])


class TestHazardRatio:

    def test_hazard_ratios(self, clinical_df):
        result = HazardRatio("time", "status")(clinical_df, "stage", ["stage"])
        assert result[0] == "1 (ref)"
        assert len(result) == 3
        assert all(ESTIMATE_WITH_CI.match(r) for r in result[1:])

    def test_adjusted(self, clinical_df):
        result = HazardRatio("time", "status", adjust=True, ci=False)(
            clinical_df, "sex", ["sex", "stage"]
        )
        assert result[0] == "1 (ref)"
        assert float(result[1]) > 0

    def test_categorical_event_needs_event_value(self, clinical_df):
        with pytest.raises(ConfigurationError, match="event_value"):
            HazardRatio("time", "treated")(clinical_df, "sex", ["sex"])

    def test_categorical_event_with_event_value(self, clinical_df):
        result = HazardRatio("time", "treated", event_value="Yes")(clinical_df, "sex", ["sex"])
        assert result[0] == "1 (ref)"

    def test_event_column_is_baseline_only(self, clinical_df):
        df = clinical_df.assign(status=pd.Categorical(clinical_df["status"].astype(str)))
        assert HazardRatio("time", "status", event_value="1")(df, "status", ["status"]) == ["", ""]

    def test_missing_time_or_event_column(self, clinical_df):
        with pytest.raises(ConfigurationError, match="duration"):
            HazardRatio("duration", "status")(clinical_df, "sex", ["sex"])
        with pytest.raises(ConfigurationError, match="died"):
            HazardRatio("time", "died")(clinical_df, "sex", ["sex"])
