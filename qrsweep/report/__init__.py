"""Reporting: comparison table and coefficient plot."""

from qrsweep.report._grid import CoefficientGrid, build_grid
from qrsweep.report._plot import coefficient_plot
from qrsweep.report._table import (
    SIGNIFICANCE_LEVELS,
    comparison_table,
    format_cell,
    render_table,
    significance_stars,
)

__all__ = [
    "SIGNIFICANCE_LEVELS",
    "CoefficientGrid",
    "build_grid",
    "coefficient_plot",
    "comparison_table",
    "format_cell",
    "render_table",
    "significance_stars",
]
