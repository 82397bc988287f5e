"""Side-by-side coefficient table: OLS next to every swept quantile."""

from __future__ import annotations

import math
from typing import Sequence, Tuple

import pandas as pd

from qrsweep._exceptions import InvalidParameter, RenderFailure
from qrsweep._normalize import CoefficientRow, model_label
from qrsweep.report._grid import build_grid

#: p-value cut-offs for one, two and three stars.
SIGNIFICANCE_LEVELS: Tuple[float, float, float] = (0.1, 0.05, 0.01)

TABLE_FORMATS = ("text", "html", "csv")


def significance_stars(
    p_value: float,
    thresholds: Sequence[float] = SIGNIFICANCE_LEVELS,
) -> str:
    """Return ``"*"`` for every threshold *p_value* falls below.

    With the default thresholds: ``p < 0.1`` → ``"*"``, ``p < 0.05`` →
    ``"**"``, ``p < 0.01`` → ``"***"``.  A NaN p-value gets no stars.
    """
    if p_value is None or math.isnan(p_value):
        return ""
    return "*" * sum(1 for level in thresholds if p_value < level)


def format_cell(row: CoefficientRow, digits: int = 3, stars: bool = True) -> str:
    marker = significance_stars(row.p_value) if stars else ""
    return f"{row.estimate:.{digits}f}{marker} ({row.std_error:.{digits}f})"


def comparison_table(
    ols_rows: Sequence[CoefficientRow],
    quantile_rows: Sequence[CoefficientRow],
    quantiles: Sequence[float],
    digits: int = 3,
    stars: bool = True,
    allow_partial: bool = False,
) -> pd.DataFrame:
    """Build the OLS-vs-quantiles comparison table.

    Parameters
    ----------
    ols_rows : sequence of CoefficientRow
    quantile_rows : sequence of CoefficientRow
        Merged rows of every quantile fit.
    quantiles : sequence of float
        The sweep; one column per entry, in this order.
    digits : int, default=3
    stars : bool, default=True
        Append significance markers to the estimates.
    allow_partial : bool, default=False
        Leave the column of a quantile without rows empty instead of
        raising.

    Returns
    -------
    pandas.DataFrame
        Index ``term`` (one row per term, OLS order); columns ``"OLS"``
        then ``"Q<tau>"`` per quantile.  Cells read
        ``"estimate<stars> (std_error)"``.

    Raises
    ------
    RenderFailure
        If the rows do not form a complete term × model grid.
    """
    if digits < 0:
        raise RenderFailure(f"digits must be >= 0, got {digits}", artifact="table")
    grid = build_grid(
        ols_rows, quantile_rows, quantiles,
        allow_partial=allow_partial, artifact="table",
    )
    columns = {"OLS": [format_cell(grid.ols[t], digits, stars) for t in grid.terms]}
    for tau in (float(q) for q in quantiles):
        columns[model_label(tau)] = [
            format_cell(grid.cell(t, tau), digits, stars)
            if grid.cell(t, tau) is not None else ""
            for t in grid.terms
        ]
    return pd.DataFrame(columns, index=pd.Index(grid.terms, name="term"))


def render_table(table: pd.DataFrame, fmt: str = "text") -> str:
    """Render a :func:`comparison_table` as text, HTML or CSV.

    Text output ends with a legend of the significance markers and a note
    that standard errors are in parentheses.
    """
    if fmt not in TABLE_FORMATS:
        raise InvalidParameter(
            f"fmt must be one of {TABLE_FORMATS}, got {fmt!r}", parameter="fmt"
        )
    if fmt == "html":
        return table.to_html()
    if fmt == "csv":
        return table.to_csv()
    one, two, three = SIGNIFICANCE_LEVELS
    legend = (
        f"Standard errors in parentheses.  "
        f"* p<{one:g}, ** p<{two:g}, *** p<{three:g}"
    )
    return f"{table.to_string()}\n\n{legend}\n"
