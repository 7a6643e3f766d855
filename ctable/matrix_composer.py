"""
Matrix Composer

Merges the crosstab block, column-function rows and row-function columns
into one rectangular grid of strings, with header spans and row spans kept
alongside the grid rather than inside it.

Layout:
    header band      outcome labels / levels, marginal, row-function labels
    column band      one row per column function
    body             one row per independent level
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

import pandas as pd

from config import CONFIG
from ctable.cell_evaluator import CrosstabBlock
from ctable.variables import ResolvedVariable


@dataclass(frozen=True)
class HeaderSpan:
    """Header text covering `width` columns starting at `start_col`."""

    start_col: int
    width: int
    text: str


@dataclass(frozen=True)
class RowSpan:
    """Group label covering `span` grid rows starting at `start_row`."""

    start_row: int
    span: int
    text: str


@dataclass(frozen=True)
class TableMatrix:
    cells: tuple[tuple[str, ...], ...]
    header_spans: tuple[tuple[HeaderSpan, ...], ...]
    row_spans: tuple[RowSpan, ...]
    n_header_rows: int
    n_summary_rows: int

    @property
    def n_rows(self) -> int:
        return len(self.cells)

    @property
    def n_cols(self) -> int:
        return len(self.cells[0]) if self.cells else 0

    @property
    def shape(self) -> tuple[int, int]:
        return self.n_rows, self.n_cols

    @property
    def header(self) -> tuple[tuple[str, ...], ...]:
        return self.cells[: self.n_header_rows]

    @property
    def summary_rows(self) -> tuple[tuple[str, ...], ...]:
        """Column-function rows between the header band and the body."""
        start = self.n_header_rows
        return self.cells[start : start + self.n_summary_rows]

    @property
    def body(self) -> tuple[tuple[str, ...], ...]:
        return self.cells[self.n_header_rows + self.n_summary_rows :]

    def column_labels(self) -> list[tuple[str, str]]:
        """(group, sub-header) for every column after the label column."""
        labels = []
        for col in range(1, self.n_cols):
            group = next(
                (s.text for s in self.header_spans[0] if s.start_col <= col < s.start_col + s.width), ""
            )
            sub = self.cells[1][col] if self.n_header_rows > 1 else ""
            labels.append((group, sub))
        return labels

    def to_frame(self) -> pd.DataFrame:
        """
        The body band as a DataFrame.

        Rows are indexed by (variable label, level); columns by
        (group, sub-header) taken from the header band.
        """
        body_start = self.n_header_rows + self.n_summary_rows
        index = []
        for span in self.row_spans:
            for row in range(span.start_row, span.start_row + span.span):
                index.append((span.text, self.cells[row][0]))
        frame = pd.DataFrame(
            [list(row[1:]) for row in self.cells[body_start:]],
            index=pd.MultiIndex.from_tuples(index, names=["variable", "level"]),
            columns=pd.MultiIndex.from_tuples(self.column_labels(), names=["group", "column"])
            if self.n_cols > 1
            else None,
        )
        return frame


def _header_band(
    outcomes: Sequence[ResolvedVariable],
    block: CrosstabBlock,
    row_labels: Sequence[str],
) -> tuple[list[list[str]], list[tuple[HeaderSpan, ...]]]:
    stub = CONFIG.get("table.stub_label", "")
    marginal_label = CONFIG.get("table.marginal_label", "Total")
    overall_label = CONFIG.get("table.overall_label", "Overall")

    top: list[str] = [stub]
    top_spans = [HeaderSpan(0, 1, stub)]
    sub: list[str] = [""]
    sub_spans = [HeaderSpan(0, 1, "")]

    col = 1
    for var in outcomes:
        top_spans.append(HeaderSpan(col, var.n_levels, var.label))
        top.extend([var.label] + [""] * (var.n_levels - 1))
        for lvl in var.levels:
            sub.append(lvl)
            sub_spans.append(HeaderSpan(col, 1, lvl))
            col += 1

    for key in block.column_keys:
        if key.kind == "outcome":
            continue
        text = marginal_label if key.kind == "marginal" else overall_label
        top.append(text)
        top_spans.append(HeaderSpan(col, 1, text))
        sub.append("")
        sub_spans.append(HeaderSpan(col, 1, ""))
        col += 1

    for label in row_labels:
        top.append(label)
        top_spans.append(HeaderSpan(col, 1, label))
        sub.append("")
        sub_spans.append(HeaderSpan(col, 1, ""))
        col += 1

    if outcomes:
        return [top, sub], [tuple(top_spans), tuple(sub_spans)]
    return [top], [tuple(top_spans)]


def compose_matrix(
    independents: Sequence[ResolvedVariable],
    outcomes: Sequence[ResolvedVariable],
    block: CrosstabBlock,
    column_labels: Sequence[str],
    column_rows: Sequence[Sequence[str]],
    row_labels: Sequence[str],
    row_columns: Sequence[Sequence[str]],
) -> TableMatrix:
    """
    Assemble the final grid. Upstream order is kept as given.

    Column-function rows carry their label in the label column and blanks in
    the row-function columns. Body rows carry the level in the label column;
    each independent variable label is recorded as a RowSpan over its levels.
    """
    header_rows, header_spans = _header_band(outcomes, block, row_labels)
    n_row_funcs = len(row_labels)

    summary = [
        [label, *values, *([""] * n_row_funcs)]
        for label, values in zip(column_labels, column_rows, strict=True)
    ]

    body = []
    for i, (key, cells) in enumerate(zip(block.row_keys, block.cells, strict=True)):
        body.append([key.level, *cells, *(column[i] for column in row_columns)])

    body_start = len(header_rows) + len(summary)
    row_spans = []
    offset = body_start
    for var in independents:
        row_spans.append(RowSpan(offset, var.n_levels, var.label))
        offset += var.n_levels

    grid = tuple(tuple(row) for row in (*header_rows, *summary, *body))
    width = len(grid[0])
    ragged = [i for i, row in enumerate(grid) if len(row) != width]
    if ragged:
        raise RuntimeError(f"Composed grid is not rectangular at rows {ragged}")

    return TableMatrix(
        cells=grid,
        header_spans=tuple(header_spans),
        row_spans=tuple(row_spans),
        n_header_rows=len(header_rows),
        n_summary_rows=len(summary),
    )
