"""End-to-end run: load → fit → normalize → report.

.. code-block:: python

    from qrsweep import run_sweep
    report = run_sweep()             # MEPS example, default settings
    print(report.render_table())
    report.save("output")

Fatal errors abort the run: :class:`DataUnavailable` (fetch/parse),
:class:`InvalidParameter` (raised before any model is fitted), and
:class:`FitFailure` for the OLS fit or for a partial sweep when
``allow_partial`` is off.  Rendering happens on demand through the
returned :class:`SweepReport`, so a :class:`RenderFailure` leaves the
fitted models and rows intact on the report.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple, Union

import pandas as pd
from loguru import logger
from matplotlib.figure import Figure

from qrsweep._config import SweepConfig
from qrsweep._normalize import (
    CoefficientRow,
    check_confidence_level,
    merge,
    normalize,
    normalize_sweep,
    to_frame,
)
from qrsweep.datasets import load_meps
from qrsweep.fitting._fitter import (
    SweepResult,
    check_execution_options,
    fit_ols,
    fit_quantile,
)
from qrsweep.fitting._sample import ModelSpec, check_variables, prepare_sample, validate_quantiles
from qrsweep.fitting.backends import BaseBackend, FittedModelResult, resolve_backend
from qrsweep.report import coefficient_plot, comparison_table, render_table

#: File names written by :meth:`SweepReport.save`.
ROWS_FILE = "coefficients.csv"
PLOT_FILE = "coefficient_plot.png"
TABLE_FILES = {"text": "comparison.txt", "html": "comparison.html", "csv": "comparison.csv"}


@dataclass
class SweepReport:
    """Fitted models, normalized rows and renderers of one sweep run."""

    spec: ModelSpec
    quantiles: Tuple[float, ...]
    sample_size: int
    ols: FittedModelResult
    sweep: SweepResult
    ols_rows: List[CoefficientRow]
    quantile_rows: List[CoefficientRow]
    config: SweepConfig = field(default_factory=SweepConfig)

    @property
    def rows(self) -> List[CoefficientRow]:
        """OLS rows followed by every quantile row."""
        return merge([self.ols_rows, self.quantile_rows])

    @property
    def failures(self) -> Dict[float, Exception]:
        return self.sweep.failures

    def to_frame(self) -> pd.DataFrame:
        return to_frame(self.rows)

    def table(self) -> pd.DataFrame:
        opts = self.config.report
        return comparison_table(
            self.ols_rows,
            self.quantile_rows,
            self.quantiles,
            digits=opts.digits,
            stars=opts.stars,
            allow_partial=self.config.allow_partial,
        )

    def render_table(self, fmt: Optional[str] = None) -> str:
        return render_table(self.table(), fmt=fmt or self.config.report.table_format)

    def figure(self) -> Figure:
        return coefficient_plot(
            self.ols_rows,
            self.quantile_rows,
            self.quantiles,
            ncols=self.config.report.ncols,
            allow_partial=self.config.allow_partial,
            title=f"{self.spec.formula}  (n = {self.sample_size})",
        )

    def save(self, output_dir: Union[str, Path, None] = None) -> Dict[str, Path]:
        """Write the tidy rows, the rendered table and the plot.

        Returns the written paths keyed by ``"rows"``, ``"table"`` and
        ``"plot"``.  The rows file is written first, so it survives a
        :class:`RenderFailure` in the later steps.
        """
        out = Path(output_dir or self.config.report.output_dir)
        out.mkdir(parents=True, exist_ok=True)
        fmt = self.config.report.table_format

        paths = {"rows": out / ROWS_FILE}
        self.to_frame().to_csv(paths["rows"], index=False)

        paths["table"] = out / TABLE_FILES.get(fmt, "comparison.txt")
        paths["table"].write_text(self.render_table(fmt))

        paths["plot"] = out / PLOT_FILE
        self.figure().savefig(paths["plot"], dpi=150)

        logger.info(f"Wrote {', '.join(str(p) for p in paths.values())}")
        return paths


def run_sweep(
    config: Optional[SweepConfig] = None,
    frame: Optional[pd.DataFrame] = None,
    backend: Union[str, BaseBackend, None] = None,
) -> SweepReport:
    """Run the whole pipeline once.

    Parameters
    ----------
    config : SweepConfig, optional
        Defaults to :class:`SweepConfig()`.
    frame : pandas.DataFrame, optional
        Observations to use instead of downloading ``config.data.url``.
    backend : str or BaseBackend, optional
        Overrides ``config.model.backend`` / ``backend_options``.

    Returns
    -------
    SweepReport

    Raises
    ------
    InvalidParameter
        Bad quantile, variable or option; raised before any fit.
    DataUnavailable
        The dataset could not be fetched or parsed.
    FitFailure
        The OLS fit failed, or some quantile failed and
        ``config.allow_partial`` is off (``exc.failures`` lists them).
    """
    config = config or SweepConfig()
    spec = config.model.to_spec()
    quantiles = validate_quantiles(config.model.quantiles)
    level = config.report.confidence_level
    check_confidence_level(level)
    check_execution_options(config.n_jobs, config.timeout, len(quantiles))
    if backend is None:
        estimator = resolve_backend(config.model.backend, config.model.backend_options)
    else:
        estimator = resolve_backend(backend)

    if frame is None:
        data = config.data
        frame = load_meps(
            url=data.url,
            data_home=data.data_home,
            timeout=data.timeout,
            max_attempts=data.max_attempts,
            backoff=data.backoff,
            refresh=data.refresh,
        ).frame
    check_variables(frame, spec)

    sample = prepare_sample(frame, spec)
    logger.info(
        f"Estimation sample: {sample.nobs} observations "
        f"({sample.n_dropped} dropped for missing values)"
    )

    ols = fit_ols(sample, spec, backend=estimator)
    sweep = fit_quantile(
        sample, spec, quantiles,
        backend=estimator, n_jobs=config.n_jobs, timeout=config.timeout,
    )
    if not config.allow_partial:
        sweep.raise_for_failures()

    ols_rows = normalize(ols, confidence_level=level)
    quantile_rows = merge(normalize_sweep(sweep, confidence_level=level))
    logger.info(
        f"Normalized {len(ols_rows)} OLS rows and {len(quantile_rows)} quantile "
        f"rows ({len(sweep.completed)}/{len(quantiles)} quantiles)"
    )
    return SweepReport(
        spec=spec,
        quantiles=quantiles,
        sample_size=sample.nobs,
        ols=ols,
        sweep=sweep,
        ols_rows=ols_rows,
        quantile_rows=quantile_rows,
        config=config,
    )
