"""
Contingency table assembly engine.

Contains:
- variables: independent/outcome specification registry
- contracts: crosstab, column and row summary function interfaces
- summary_lib / association_lib / regression_lib: built-in summary functions
- cell_evaluator, aggregator, matrix_composer: the assembly pipeline
- table_builder: the `build_table` entry point
"""

from ctable.association_lib import ChiSquareTest
from ctable.contracts import ColumnFunction, CrosstabFunction, RowFunction, Stratum
from ctable.errors import (
    ConfigurationError,
    ContractViolationError,
    CTableError,
    EstimationError,
)
from ctable.matrix_composer import HeaderSpan, RowSpan, TableMatrix
from ctable.regression_lib import HazardRatio, LinearCoefficient, OddsRatio
from ctable.summary_lib import Frequency, Mean, Median
from ctable.table_builder import build_table
from ctable.variables import VariableSpec, as_categorical

__all__ = [
    "CTableError",
    "ChiSquareTest",
    "ColumnFunction",
    "ConfigurationError",
    "ContractViolationError",
    "CrosstabFunction",
    "EstimationError",
    "Frequency",
    "HazardRatio",
    "HeaderSpan",
    "LinearCoefficient",
    "Mean",
    "Median",
    "OddsRatio",
    "RowFunction",
    "RowSpan",
    "Stratum",
    "TableMatrix",
    "VariableSpec",
    "as_categorical",
    "build_table",
]
