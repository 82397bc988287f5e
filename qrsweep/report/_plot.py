"""Faceted coefficient plot: one panel per term, estimate against quantile.

Each panel shows the quantile-regression estimates with their confidence
intervals as error bars, the OLS estimate as a dashed horizontal line and
the OLS confidence interval as a shaded band.

The figure is built with the object-oriented :class:`matplotlib.figure.Figure`
API and never touches ``pyplot`` state, so it can be created from worker
threads and under any backend.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np
from matplotlib.figure import Figure

from qrsweep._exceptions import RenderFailure
from qrsweep._normalize import CoefficientRow
from qrsweep.report._grid import build_grid

QUANTILE_LABEL = "quantile"
OLS_LABEL = "OLS"


def coefficient_plot(
    ols_rows: Sequence[CoefficientRow],
    quantile_rows: Sequence[CoefficientRow],
    quantiles: Sequence[float],
    ncols: int = 3,
    figsize: Optional[Tuple[float, float]] = None,
    allow_partial: bool = False,
    title: Optional[str] = None,
) -> Figure:
    """Plot every term's estimate across the sweep against its OLS value.

    Parameters
    ----------
    ols_rows : sequence of CoefficientRow
    quantile_rows : sequence of CoefficientRow
    quantiles : sequence of float
    ncols : int, default=3
        Panels per row.
    figsize : (float, float), optional
        Defaults to 4 × 3 inches per panel.
    allow_partial : bool, default=False
        Skip quantiles without rows instead of raising.
    title : str, optional
        Figure title.

    Returns
    -------
    matplotlib.figure.Figure
        ``fig.axes`` holds one panel per term, in OLS term order.  In each
        panel the error-bar series is labelled ``"quantile"`` and the
        reference line ``"OLS"``.

    Raises
    ------
    RenderFailure
        If the rows do not form a complete term × quantile grid.
    """
    if ncols < 1:
        raise RenderFailure(f"ncols must be >= 1, got {ncols}", artifact="plot")
    grid = build_grid(
        ols_rows, quantile_rows, quantiles,
        allow_partial=allow_partial, artifact="plot",
    )

    n_terms = len(grid.terms)
    ncols = min(ncols, n_terms)
    nrows = math.ceil(n_terms / ncols)
    if figsize is None:
        figsize = (4.0 * ncols, 3.0 * nrows)

    fig = Figure(figsize=figsize, layout="constrained")
    axes = fig.subplots(nrows, ncols, squeeze=False)
    taus = np.asarray(grid.quantiles, dtype=np.float64)

    for k, term in enumerate(grid.terms):
        ax = axes[k // ncols][k % ncols]
        rows = [grid.cell(term, tau) for tau in grid.quantiles]
        est = np.array([r.estimate for r in rows], dtype=np.float64)
        low = np.array([r.conf_low for r in rows], dtype=np.float64)
        high = np.array([r.conf_high for r in rows], dtype=np.float64)

        ols = grid.ols[term]
        ax.axhspan(ols.conf_low, ols.conf_high, color="tab:red", alpha=0.12, lw=0)
        ax.axhline(ols.estimate, color="tab:red", ls="--", lw=1.2, label=OLS_LABEL)
        ax.errorbar(
            taus, est,
            yerr=np.vstack([est - low, high - est]),
            fmt="o-", color="tab:blue", ecolor="tab:blue",
            capsize=3, ms=4, lw=1.2, label=QUANTILE_LABEL,
        )

        ax.set_title(term)
        ax.set_xlim(0.0, 1.0)
        ax.set_xlabel("Quantile")
        if k % ncols == 0:
            ax.set_ylabel("Estimate")
        ax.grid(True, alpha=0.3)

    for k in range(n_terms, nrows * ncols):
        fig.delaxes(axes[k // ncols][k % ncols])

    if n_terms:
        fig.axes[0].legend(loc="best", fontsize="small")
    if title:
        fig.suptitle(title)
    return fig
