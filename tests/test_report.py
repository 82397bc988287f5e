"""Tests for the comparison table and the coefficient plot."""

import numpy as np
import pytest
from matplotlib.figure import Figure

from qrsweep._exceptions import InvalidParameter, RenderFailure
from qrsweep._normalize import CoefficientRow, merge, normalize
from qrsweep.report import (
    build_grid,
    coefficient_plot,
    comparison_table,
    format_cell,
    render_table,
    significance_stars,
)
from qrsweep.report._plot import OLS_LABEL, QUANTILE_LABEL

TERMS = ["Intercept", "suppins", "totchr", "age", "female", "white"]


@pytest.fixture
def rows(result_factory, sweep_quantiles):
    ols = normalize(result_factory(TERMS))
    quantile_rows = merge(
        normalize(result_factory(TERMS, quantile=q, params=np.arange(1.0, 7.0) * q))
        for q in sweep_quantiles
    )
    return ols, quantile_rows


def _quantile_series(ax):
    """Data line of the error-bar series in one panel."""
    (container,) = [c for c in ax.containers if c.get_label() == QUANTILE_LABEL]
    return container.lines[0]


def _drop(rows, tau=None, term=None):
    return [
        r for r in rows
        if not ((tau is None or r.quantile == tau) and (term is None or r.term == term))
    ]


class TestStars:

    @pytest.mark.parametrize("p, expected", [
        (0.5, ""),
        (0.1, ""),
        (0.09, "*"),
        (0.05, "*"),
        (0.049, "**"),
        (0.01, "**"),
        (0.001, "***"),
        (float("nan"), ""),
    ])
    def test_thresholds(self, p, expected):
        assert significance_stars(p) == expected

    def test_custom_thresholds(self):
        assert significance_stars(0.02, thresholds=(0.05,)) == "*"

    def test_format_cell(self):
        row = CoefficientRow("a", 1.23456, 0.1, 12.3, 0.001, 1.0, 1.4)
        assert format_cell(row) == "1.235*** (0.100)"
        assert format_cell(row, digits=1, stars=False) == "1.2 (0.1)"


class TestComparisonTable:

    def test_shape_and_labels(self, rows, sweep_quantiles):
        table = comparison_table(*rows, sweep_quantiles)
        assert table.shape == (6, 6)
        assert list(table.index) == TERMS
        assert table.index.name == "term"
        assert list(table.columns) == ["OLS", "Q0.1", "Q0.25", "Q0.5", "Q0.75", "Q0.9"]

    def test_cell_contents(self, rows, sweep_quantiles):
        table = comparison_table(*rows, sweep_quantiles)
        # totchr is the third term: params 3.0 * tau, se 0.5, p 0.03
        assert table.loc["totchr", "Q0.5"] == "1.500** (0.500)"
        assert table.loc["Intercept", "OLS"] == "1.000** (0.500)"

    def test_column_order_follows_sweep(self, result_factory):
        ols = normalize(result_factory(["a"]))
        qrows = merge(normalize(result_factory(["a"], quantile=q)) for q in (0.9, 0.1))
        table = comparison_table(ols, qrows, [0.9, 0.1])
        assert list(table.columns) == ["OLS", "Q0.9", "Q0.1"]

    def test_missing_quantile_raises(self, rows, sweep_quantiles):
        ols, qrows = rows
        with pytest.raises(RenderFailure, match="no rows") as info:
            comparison_table(ols, _drop(qrows, tau=0.5), sweep_quantiles)
        assert info.value.artifact == "table"
        assert info.value.code == "RENDER_FAILURE"

    def test_missing_quantile_allowed(self, rows, sweep_quantiles):
        ols, qrows = rows
        table = comparison_table(
            ols, _drop(qrows, tau=0.5), sweep_quantiles, allow_partial=True,
        )
        assert table.shape == (6, 6)
        assert (table["Q0.5"] == "").all()
        assert (table["Q0.25"] != "").all()

    def test_missing_term_raises(self, rows, sweep_quantiles):
        ols, qrows = rows
        with pytest.raises(RenderFailure, match="expected 6"):
            comparison_table(ols, _drop(qrows, tau=0.25, term="age"), sweep_quantiles,
                             allow_partial=True)

    def test_duplicate_row_raises(self, rows, sweep_quantiles):
        ols, qrows = rows
        with pytest.raises(RenderFailure, match="more than once"):
            comparison_table(ols, qrows + qrows[:1], sweep_quantiles)

    def test_unknown_tag_raises(self, rows, sweep_quantiles):
        ols, qrows = rows
        stray = CoefficientRow("age", 1.0, 0.1, 10.0, 0.0, 0.8, 1.2, quantile=0.6)
        with pytest.raises(RenderFailure, match="not in the sweep"):
            comparison_table(ols, qrows + [stray], sweep_quantiles)

    def test_untagged_quantile_row_raises(self, rows, sweep_quantiles):
        ols, qrows = rows
        with pytest.raises(RenderFailure):
            comparison_table(ols, qrows + ols[:1], sweep_quantiles)

    def test_unknown_term_raises(self, rows, sweep_quantiles):
        ols, qrows = rows
        with pytest.raises(RenderFailure, match="not a term"):
            comparison_table(ols[:-1], qrows, sweep_quantiles)

    def test_empty_ols_raises(self, rows, sweep_quantiles):
        with pytest.raises(RenderFailure, match="no OLS rows"):
            comparison_table([], rows[1], sweep_quantiles)

    def test_negative_digits(self, rows, sweep_quantiles):
        with pytest.raises(RenderFailure):
            comparison_table(*rows, sweep_quantiles, digits=-1)


class TestRenderTable:

    def test_text_has_legend(self, rows, sweep_quantiles):
        text = render_table(comparison_table(*rows, sweep_quantiles))
        assert "Q0.75" in text
        assert "totchr" in text
        assert "* p<0.1, ** p<0.05, *** p<0.01" in text
        assert "Standard errors in parentheses" in text

    def test_html(self, rows, sweep_quantiles):
        html = render_table(comparison_table(*rows, sweep_quantiles), fmt="html")
        assert html.startswith("<table")

    def test_csv(self, rows, sweep_quantiles):
        csv = render_table(comparison_table(*rows, sweep_quantiles), fmt="csv")
        assert csv.splitlines()[0] == "term,OLS,Q0.1,Q0.25,Q0.5,Q0.75,Q0.9"

    def test_bad_format(self, rows, sweep_quantiles):
        with pytest.raises(InvalidParameter):
            render_table(comparison_table(*rows, sweep_quantiles), fmt="latex")


class TestBuildGrid:

    def test_missing_listed_when_partial(self, rows, sweep_quantiles):
        ols, qrows = rows
        grid = build_grid(ols, _drop(qrows, tau=0.9), sweep_quantiles, allow_partial=True)
        assert grid.missing == (0.9,)
        assert grid.quantiles == (0.1, 0.25, 0.5, 0.75)
        assert grid.cell("age", 0.9) is None
        assert grid.cell("age", 0.1).estimate == pytest.approx(0.4)

    def test_duplicate_ols_term(self, rows, sweep_quantiles):
        ols, qrows = rows
        with pytest.raises(RenderFailure, match="twice"):
            build_grid(ols + ols[:1], qrows, sweep_quantiles)

    def test_invalid_sweep(self, rows):
        with pytest.raises(RenderFailure):
            build_grid(*rows, [0.5, 0.5])


class TestCoefficientPlot:

    def test_one_panel_per_term(self, rows, sweep_quantiles):
        fig = coefficient_plot(*rows, sweep_quantiles)
        assert isinstance(fig, Figure)
        assert len(fig.axes) == 6
        assert [ax.get_title() for ax in fig.axes] == TERMS

    def test_series_points(self, rows, sweep_quantiles):
        fig = coefficient_plot(*rows, sweep_quantiles)
        for k, ax in enumerate(fig.axes):
            line = _quantile_series(ax)
            np.testing.assert_allclose(line.get_xdata(), sweep_quantiles)
            np.testing.assert_allclose(
                line.get_ydata(), (k + 1.0) * np.asarray(sweep_quantiles)
            )

    def test_ols_reference_line(self, rows, sweep_quantiles):
        fig = coefficient_plot(*rows, sweep_quantiles)
        for k, ax in enumerate(fig.axes):
            (line,) = [l for l in ax.get_lines() if l.get_label() == OLS_LABEL]
            np.testing.assert_allclose(line.get_ydata(), [k + 1.0, k + 1.0])

    def test_unused_axes_removed(self, result_factory):
        terms = ["a", "b", "c", "d"]
        ols = normalize(result_factory(terms))
        qrows = merge(normalize(result_factory(terms, quantile=q)) for q in (0.25, 0.75))
        fig = coefficient_plot(ols, qrows, [0.25, 0.75], ncols=3)
        assert len(fig.axes) == 4

    def test_partial_plot(self, rows, sweep_quantiles):
        ols, qrows = rows
        fig = coefficient_plot(
            ols, _drop(qrows, tau=0.25), sweep_quantiles, allow_partial=True,
        )
        line = _quantile_series(fig.axes[0])
        np.testing.assert_allclose(line.get_xdata(), [0.1, 0.5, 0.75, 0.9])

    def test_partial_plot_raises_by_default(self, rows, sweep_quantiles):
        ols, qrows = rows
        with pytest.raises(RenderFailure) as info:
            coefficient_plot(ols, _drop(qrows, tau=0.25), sweep_quantiles)
        assert info.value.artifact == "plot"

    def test_bad_ncols(self, rows, sweep_quantiles):
        with pytest.raises(RenderFailure):
            coefficient_plot(*rows, sweep_quantiles, ncols=0)

    def test_title(self, rows, sweep_quantiles):
        fig = coefficient_plot(*rows, sweep_quantiles, title="ltotexp")
        assert fig._suptitle.get_text() == "ltotexp"
