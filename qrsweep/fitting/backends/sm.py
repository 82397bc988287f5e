"""statsmodels backend: ``OLS`` and ``QuantReg``.

``QuantReg`` estimates by iteratively reweighted least squares and
reports Hendricks-Koenker sandwich (``vcov="robust"``) or IID standard
errors with a kernel sparsity estimate.  A fit that stops because it hit
``max_iter``, or because the iterations cycled, is treated as
non-converged and raised as
:class:`~qrsweep._exceptions.FitFailure`, so the sweep can record it for
that quantile alone.
"""

from __future__ import annotations

from typing import Any, Optional

import numpy as np
import statsmodels.api as sm

from qrsweep._exceptions import FitFailure, InvalidParameter
from qrsweep.fitting._sample import Sample
from qrsweep.fitting.backends.base import BaseBackend, FittedModelResult

_VCOV = ("robust", "iid")
_KERNELS = ("epa", "cos", "gau", "par", "biw")
_BANDWIDTHS = ("hsheather", "bofinger", "chamberlain")


class StatsmodelsBackend(BaseBackend):
    """Fit OLS and quantile regressions with statsmodels.

    Parameters
    ----------
    vcov : {"robust", "iid"}, default="robust"
        Covariance estimator for quantile fits.
    kernel : str, default="epa"
        Kernel for the sparsity estimate: ``"epa"``, ``"cos"``, ``"gau"``,
        ``"par"`` or ``"biw"``.
    bandwidth : str, default="hsheather"
        Bandwidth rule: ``"hsheather"``, ``"bofinger"`` or ``"chamberlain"``.
    max_iter : int, default=1000
        IRLS iteration limit.  Reaching it counts as non-convergence.
    p_tol : float, default=1e-6
        Convergence tolerance on the change in coefficients.
    ols_cov_type : str, default="nonrobust"
        ``cov_type`` forwarded to ``OLS.fit`` (e.g. ``"HC1"``).
    """

    name = "statsmodels"

    def __init__(
        self,
        vcov: str = "robust",
        kernel: str = "epa",
        bandwidth: str = "hsheather",
        max_iter: int = 1000,
        p_tol: float = 1e-6,
        ols_cov_type: str = "nonrobust",
    ) -> None:
        if vcov not in _VCOV:
            raise InvalidParameter(
                f"vcov must be one of {_VCOV}, got {vcov!r}", parameter="vcov"
            )
        if kernel not in _KERNELS:
            raise InvalidParameter(
                f"kernel must be one of {_KERNELS}, got {kernel!r}",
                parameter="kernel",
            )
        if bandwidth not in _BANDWIDTHS:
            raise InvalidParameter(
                f"bandwidth must be one of {_BANDWIDTHS}, got {bandwidth!r}",
                parameter="bandwidth",
            )
        if int(max_iter) < 1:
            raise InvalidParameter(
                f"max_iter must be >= 1, got {max_iter}", parameter="max_iter"
            )
        self.vcov = vcov
        self.kernel = kernel
        self.bandwidth = bandwidth
        self.max_iter = int(max_iter)
        self.p_tol = float(p_tol)
        self.ols_cov_type = ols_cov_type

    def __repr__(self) -> str:
        return (
            f"StatsmodelsBackend(vcov={self.vcov!r}, kernel={self.kernel!r}, "
            f"bandwidth={self.bandwidth!r}, max_iter={self.max_iter})"
        )

    def _fit_ols_impl(self, sample: Sample) -> FittedModelResult:
        res = sm.OLS(sample.y, sample.X).fit(cov_type=self.ols_cov_type)
        return _to_result(
            res,
            method="ols",
            quantile=None,
            info={
                "rsquared": float(res.rsquared),
                "rsquared_adj": float(res.rsquared_adj),
                "cov_type": self.ols_cov_type,
            },
        )

    def _fit_quantile_impl(self, sample: Sample, tau: float) -> FittedModelResult:
        res = sm.QuantReg(sample.y, sample.X).fit(
            q=tau,
            vcov=self.vcov,
            kernel=self.kernel,
            bandwidth=self.bandwidth,
            max_iter=self.max_iter,
            p_tol=self.p_tol,
        )
        iterations = self._check_convergence(res, tau)
        return _to_result(
            res,
            method="quantreg",
            quantile=tau,
            info={
                "iterations": iterations,
                "bandwidth": float(res.bandwidth),
                "sparsity": float(res.sparsity),
                "prsquared": float(res.prsquared),
                "vcov": self.vcov,
                "kernel": self.kernel,
            },
        )

    def _check_convergence(self, res, tau: float) -> int:
        """Return the IRLS iteration count, or raise if the fit did not converge.

        ``QuantReg.fit`` stops on the tolerance, on ``max_iter``, or on a
        detected cycle of coefficient vectors.  The last two only warn, so
        they are told apart here from ``res.iterations`` and the final step
        size in ``res.history``.
        """
        iterations = int(res.iterations)
        if iterations >= self.max_iter:
            raise FitFailure(
                f"tau={tau:g}: no convergence after {iterations} iterations "
                f"(p_tol={self.p_tol:g}).",
                quantile=tau,
            )
        path = res.history["params"]
        if len(path) >= 2:
            step = float(np.max(np.abs(np.asarray(path[-1]) - np.asarray(path[-2]))))
            if step > self.p_tol:
                raise FitFailure(
                    f"tau={tau:g}: no convergence, IRLS cycled after "
                    f"{iterations} iterations (last step {step:.3g} > "
                    f"p_tol={self.p_tol:g}).",
                    quantile=tau,
                )
        return iterations


def _to_result(
    res,
    method: str,
    quantile: Optional[float],
    info: dict[str, Any],
) -> FittedModelResult:
    """Copy the per-term arrays out of a statsmodels results wrapper."""
    return FittedModelResult(
        terms=tuple(res.model.exog_names),
        params=np.asarray(res.params, dtype=np.float64),
        std_errors=np.asarray(res.bse, dtype=np.float64),
        statistics=np.asarray(res.tvalues, dtype=np.float64),
        p_values=np.asarray(res.pvalues, dtype=np.float64),
        df_resid=float(res.df_resid),
        nobs=int(res.nobs),
        use_t=bool(res.use_t),
        method=method,
        quantile=quantile,
        info=info,
    )
