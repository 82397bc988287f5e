"""Abstract base class and result dataclass for estimator backends.

A backend adapts one third-party statistics library to the two calls the
fitter needs: an OLS fit and a single-quantile regression fit, both on a
prepared :class:`~qrsweep.fitting._sample.Sample`.  This follows the
**Strategy** pattern: the fitter delegates to an interchangeable backend
selected at runtime.

The base class owns everything that does not depend on the library:

* identifiability checks run before the estimator is called
  (``nobs > n_terms`` and a full-rank design);
* translating estimator exceptions into :class:`FitFailure`;
* rejecting results with non-finite estimates or standard errors.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

import numpy as np

from qrsweep._exceptions import FitFailure
from qrsweep._typing import FloatArray
from qrsweep.fitting._sample import Sample


@dataclass(frozen=True, eq=False)
class FittedModelResult:
    """Standardised, immutable output of every backend fit.

    Parameters
    ----------
    terms : tuple of str
        Coefficient names in the order the estimator reports them.
    params : FloatArray
        Point estimates, shape ``(p,)``.
    std_errors : FloatArray
        Standard errors, shape ``(p,)``.
    statistics : FloatArray
        Test statistics (estimate / standard error), shape ``(p,)``.
    p_values : FloatArray
        Two-sided p-values, shape ``(p,)``.
    df_resid : float
        Residual degrees of freedom used by the reference distribution.
    nobs : int
        Effective number of observations.
    use_t : bool
        ``True`` if inference uses Student's t with ``df_resid`` degrees of
        freedom, ``False`` for the normal distribution.
    method : str
        ``"ols"`` or ``"quantreg"``.
    quantile : float or None
        The τ this model was fitted at; ``None`` for OLS.
    info : dict
        Backend-specific diagnostics (iterations, bandwidth, R², …).
    """

    terms: Tuple[str, ...]
    params: FloatArray
    std_errors: FloatArray
    statistics: FloatArray
    p_values: FloatArray
    df_resid: float
    nobs: int
    use_t: bool = True
    method: str = "ols"
    quantile: Optional[float] = None
    info: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "terms", tuple(self.terms))
        p = len(self.terms)
        for name in ("params", "std_errors", "statistics", "p_values"):
            arr = np.array(getattr(self, name), dtype=np.float64).ravel()
            if arr.shape != (p,):
                raise ValueError(
                    f"{name} has {arr.shape[0]} entries, expected {p} "
                    f"(one per term)."
                )
            arr.setflags(write=False)
            object.__setattr__(self, name, arr)

    @property
    def n_terms(self) -> int:
        return len(self.terms)

    @property
    def is_quantile(self) -> bool:
        return self.quantile is not None

    def __repr__(self) -> str:
        label = "OLS" if self.quantile is None else f"tau={self.quantile:g}"
        return (
            f"FittedModelResult({label}, method={self.method!r}, "
            f"nobs={self.nobs}, terms={list(self.terms)})"
        )


class BaseBackend(ABC):
    """Abstract base class that every estimator backend must implement.

    Subclasses **must** override :meth:`_fit_ols_impl` and
    :meth:`_fit_quantile_impl`.  They **may** override
    :meth:`validate_sample` to add library-specific checks and extend
    :attr:`estimator_errors` with the exceptions their library raises for
    numerical trouble.
    """

    #: Registry name, set by concrete subclasses.
    name: str = ""

    #: Exceptions from the underlying library treated as a failed fit.
    estimator_errors: Tuple[type, ...] = (
        np.linalg.LinAlgError,
        ValueError,
        FloatingPointError,
        ZeroDivisionError,
    )

    # ------------------------------------------------------------------
    # Public interface
    # ------------------------------------------------------------------

    def fit_ols(self, sample: Sample) -> FittedModelResult:
        """Fit the conditional-mean (OLS) model.

        Raises
        ------
        FitFailure
            If the sample is degenerate or the estimator fails.
        """
        self._check_identified(sample, None)
        try:
            result = self._fit_ols_impl(sample)
        except FitFailure:
            raise
        except self.estimator_errors as exc:
            raise FitFailure(f"OLS fit failed: {exc}") from exc
        self._check_finite(result, None)
        return result

    def fit_quantile(self, sample: Sample, tau: float) -> FittedModelResult:
        """Fit one quantile regression at *tau*.

        Raises
        ------
        FitFailure
            If the sample is degenerate, the estimator does not converge
            or raises.  The failure carries ``quantile=tau``.
        """
        tau = float(tau)
        self._check_identified(sample, tau)
        try:
            result = self._fit_quantile_impl(sample, tau)
        except FitFailure:
            raise
        except self.estimator_errors as exc:
            raise FitFailure(
                f"quantile regression at tau={tau:g} failed: {exc}",
                quantile=tau,
            ) from exc
        self._check_finite(result, tau)
        return result

    # ------------------------------------------------------------------
    # Hooks for subclasses
    # ------------------------------------------------------------------

    @abstractmethod
    def _fit_ols_impl(self, sample: Sample) -> FittedModelResult:
        """Fit OLS on a sample that passed the generic checks."""

    @abstractmethod
    def _fit_quantile_impl(self, sample: Sample, tau: float) -> FittedModelResult:
        """Fit one quantile regression on a checked sample."""

    def validate_sample(  # noqa: B027
        self,
        sample: Sample,
        tau: Optional[float],
    ) -> None:
        """Backend-specific validation, called after the generic checks.

        The default implementation does nothing.
        """

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _check_identified(self, sample: Sample, tau: Optional[float]) -> None:
        n, p = sample.X.shape
        what = "OLS" if tau is None else f"tau={tau:g}"
        if n <= p:
            raise FitFailure(
                f"{what}: {n} observations cannot identify {p} terms "
                "(need more observations than terms).",
                quantile=tau,
            )
        rank = int(np.linalg.matrix_rank(sample.X.to_numpy(dtype=np.float64)))
        if rank < p:
            raise FitFailure(
                f"{what}: design matrix has rank {rank} < {p} terms "
                "(collinear or constant regressors).",
                quantile=tau,
            )
        self.validate_sample(sample, tau)

    @staticmethod
    def _check_finite(result: FittedModelResult, tau: Optional[float]) -> None:
        bad = ~(np.isfinite(result.params) & np.isfinite(result.std_errors))
        if np.any(bad):
            terms = [t for t, b in zip(result.terms, bad) if b]
            what = "OLS" if tau is None else f"tau={tau:g}"
            raise FitFailure(
                f"{what}: non-finite estimate or standard error for {terms}.",
                quantile=tau,
            )
