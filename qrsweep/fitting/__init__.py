"""Model fitting subpackage.

Contains the :class:`ModelSpec` / :class:`Sample` data model, the OLS and
quantile-sweep fitters, and the estimator backend registry.
"""

from qrsweep.fitting._fitter import QuantileFit, SweepResult, fit_ols, fit_quantile
from qrsweep.fitting._sample import (
    INTERCEPT,
    ModelSpec,
    Sample,
    check_variables,
    prepare_sample,
    validate_quantiles,
)
from qrsweep.fitting.backends import (
    BaseBackend,
    FittedModelResult,
    get_backend,
    list_backends,
    register_backend,
)

__all__ = [
    "INTERCEPT",
    "ModelSpec",
    "Sample",
    "QuantileFit",
    "SweepResult",
    "BaseBackend",
    "FittedModelResult",
    "fit_ols",
    "fit_quantile",
    "check_variables",
    "prepare_sample",
    "validate_quantiles",
    "get_backend",
    "list_backends",
    "register_backend",
]
