"""qrsweep: compare OLS with quantile regressions across a sweep of τ.

Fits one conditional-mean (OLS) model and one independent quantile
regression per requested quantile, projects every fit into uniform
coefficient rows, and reports them as a side-by-side table and a faceted
coefficient plot.

Quick start::

    from qrsweep import ModelSpec, fit_ols, fit_quantile, normalize, merge
    from qrsweep.datasets import load_meps

    frame = load_meps().frame
    spec = ModelSpec("ltotexp", ["suppins", "totchr", "age", "female", "white"])
    ols = fit_ols(frame, spec)
    sweep = fit_quantile(frame, spec, [0.1, 0.25, 0.5, 0.75, 0.9])
    rows = merge(normalize(fit.result) for fit in sweep if fit.ok)

or run everything with defaults::

    from qrsweep import run_sweep
    run_sweep().save("output")
"""

__version__ = "0.1.0"

from qrsweep._config import SweepConfig, load_config
from qrsweep._exceptions import (
    DataUnavailable,
    FitFailure,
    FitTimeout,
    InvalidParameter,
    QRSweepError,
    RenderFailure,
)
from qrsweep._normalize import CoefficientRow, merge, normalize, normalize_sweep, to_frame
from qrsweep._pipeline import SweepReport, run_sweep
from qrsweep.datasets import load_meps, make_meps_like
from qrsweep.fitting import (
    BaseBackend,
    FittedModelResult,
    ModelSpec,
    QuantileFit,
    Sample,
    SweepResult,
    fit_ols,
    fit_quantile,
    get_backend,
    list_backends,
    prepare_sample,
    register_backend,
)
from qrsweep.report import coefficient_plot, comparison_table, render_table

__all__ = [
    "BaseBackend",
    "CoefficientRow",
    "DataUnavailable",
    "FitFailure",
    "FitTimeout",
    "FittedModelResult",
    "InvalidParameter",
    "ModelSpec",
    "QRSweepError",
    "QuantileFit",
    "RenderFailure",
    "Sample",
    "SweepConfig",
    "SweepReport",
    "SweepResult",
    "coefficient_plot",
    "comparison_table",
    "fit_ols",
    "fit_quantile",
    "get_backend",
    "list_backends",
    "load_config",
    "load_meps",
    "make_meps_like",
    "merge",
    "normalize",
    "normalize_sweep",
    "prepare_sample",
    "register_backend",
    "render_table",
    "run_sweep",
    "to_frame",
]
