"""
Unit tests for the matrix composer (ctable/matrix_composer.py).
"""

import pytest

from ctable.cell_evaluator import crosstab_columns, evaluate_cells
from ctable.contracts import register_crosstab
from ctable.matrix_composer import HeaderSpan, RowSpan, compose_matrix
from ctable.variables import VariableSpec, resolve_variables

pytestmark = pytest.mark.unit


def _label(data, outcome, independent):
    return f"{independent.level}{outcome.level if outcome else 'T'}"


@pytest.fixture
def parts(clinical_df):
    ind = resolve_variables(
        [VariableSpec("Sex", "sex"), VariableSpec("Stage", "stage")], clinical_df, "independent"
    )
    out = resolve_variables([VariableSpec("Treated", "treated")], clinical_df, "outcome")
    keys = crosstab_columns(out, marginal=True, has_crosstab=True)
    block = evaluate_cells(ind, keys, register_crosstab([_label]), clinical_df, 1)
    return ind, out, block


def test_layout_with_outcomes(parts):
    ind, out, block = parts
    row_col = ("r1", "r2", "r3", "r4", "r5")
    matrix = compose_matrix(ind, out, block, ["N"], [("n1", "n2", "n3")], ["OR"], [row_col])

    assert matrix.shape == (2 + 1 + 5, 1 + 2 + 1 + 1)
    assert matrix.n_header_rows == 2
    assert matrix.n_summary_rows == 1
    assert matrix.cells[0] == ("", "Treated", "", "Total", "OR")
    assert matrix.cells[1] == ("", "Yes", "No", "", "")
    assert matrix.summary_rows == (("N", "n1", "n2", "n3", ""),)
    assert matrix.body[0] == ("M", "MYes", "MNo", "MT", "r1")
    assert matrix.body[4] == ("III", "IIIYes", "IIINo", "IIIT", "r5")

    assert matrix.header_spans[0] == (
        HeaderSpan(0, 1, ""),
        HeaderSpan(1, 2, "Treated"),
        HeaderSpan(3, 1, "Total"),
        HeaderSpan(4, 1, "OR"),
    )
    assert [s.text for s in matrix.header_spans[1]] == ["", "Yes", "No", "", ""]
    assert matrix.row_spans == (RowSpan(3, 2, "Sex"), RowSpan(5, 3, "Stage"))


def test_header_spans_tile_every_column(parts):
    ind, out, block = parts
    matrix = compose_matrix(ind, out, block, [], [], [], [])
    for spans in matrix.header_spans:
        covered = [c for s in spans for c in range(s.start_col, s.start_col + s.width)]
        assert covered == list(range(matrix.n_cols))


def test_single_header_row_without_outcomes(clinical_df, config_override):
    config_override("table.stub_label", "Characteristic")
    ind = resolve_variables([VariableSpec("Sex", "sex")], clinical_df, "independent")
    keys = crosstab_columns((), marginal=True, has_crosstab=True)
    block = evaluate_cells(ind, keys, register_crosstab([_label]), clinical_df, 1)
    matrix = compose_matrix(ind, (), block, [], [], [], [])

    assert matrix.n_header_rows == 1
    assert matrix.cells == (("Characteristic", "Overall"), ("M", "MT"), ("F", "FT"))
    assert matrix.row_spans == (RowSpan(1, 2, "Sex"),)


def test_to_frame(parts):
    ind, out, block = parts
    frame = compose_matrix(ind, out, block, [], [], [], []).to_frame()
    assert frame.shape == (5, 3)
    assert list(frame.columns) == [("Treated", "Yes"), ("Treated", "No"), ("Total", "")]
    assert frame.loc[("Stage", "II"), ("Treated", "No")] == "IINo"
