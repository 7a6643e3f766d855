"""
🧪 Pytest Configuration for the contingency table tests

Shared fixtures:
- categorical datasets with declared level order
- temporary CONFIG overrides that are restored after each test
"""

import numpy as np
import pandas as pd
import pytest

from config import CONFIG


# ============================================================================
# 📦 Datasets
# ============================================================================

@pytest.fixture
def clinical_df():
    """Seeded cohort with categorical covariates, a binary outcome and survival columns."""
    rng = np.random.default_rng(101)
    n = 200

    df = pd.DataFrame({
        "sex": pd.Categorical(rng.choice(["M", "F"], n), categories=["M", "F"]),
        "stage": pd.Categorical(rng.choice(["I", "II", "III"], n), categories=["I", "II", "III"]),
        "treated": pd.Categorical(rng.choice(["Yes", "No"], n), categories=["Yes", "No"]),
        "smoker": pd.Categorical(rng.choice(["Never", "Current"], n), categories=["Never", "Current"]),
        "age": rng.normal(60, 10, n),
        "time": rng.exponential(12, n) + 0.1,
        "status": rng.integers(0, 2, n),
    })
    return df


@pytest.fixture
def sex_treated_df():
    """100 rows: sex in {M, F} crossed with treated in {Yes, No}."""
    sex = ["M"] * 60 + ["F"] * 40
    treated = ["Yes"] * 35 + ["No"] * 25 + ["Yes"] * 15 + ["No"] * 25
    return pd.DataFrame({
        "sex": pd.Categorical(sex, categories=["M", "F"]),
        "treated": pd.Categorical(treated, categories=["Yes", "No"]),
    })


@pytest.fixture
def tiny_df():
    """Five rows small enough to check every statistic by hand."""
    return pd.DataFrame({
        "sex": pd.Categorical(["M", "M", "M", "F", "F"], categories=["M", "F"]),
        "treated": pd.Categorical(["Yes", "No", "Yes", "Yes", "No"], categories=["Yes", "No"]),
        "age": [50.0, 60.0, 70.0, 40.0, 80.0],
    })


# ============================================================================
# ⚙️ Config overrides
# ============================================================================

@pytest.fixture
def config_override():
    """Set CONFIG keys for one test; originals are restored afterwards."""
    originals = {}

    def _set(key, value):
        if key not in originals:
            originals[key] = CONFIG.get(key)
        CONFIG.update(key, value)

    yield _set

    for key, value in originals.items():
        CONFIG.update(key, value)


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
