"""Fit an OLS reference model and a sweep of quantile regressions.

.. code-block:: python

    from qrsweep import ModelSpec, fit_ols, fit_quantile
    spec = ModelSpec("ltotexp", ["suppins", "totchr", "age", "female", "white"])
    ols = fit_ols(frame, spec)
    sweep = fit_quantile(frame, spec, [0.1, 0.25, 0.5, 0.75, 0.9])

Every quantile is a separate estimator call on the same prepared
:class:`~qrsweep.fitting._sample.Sample`; nothing is shared between fits
except that read-only sample.  This is what allows ``n_jobs > 1`` to run
them on worker threads.

A fit that fails (degenerate design, no convergence, estimator error) is
stored in the sweep as a :class:`QuantileFit` carrying the
:class:`FitFailure`; the remaining quantiles still run.  Callers decide
whether a partial sweep is acceptable, e.g. via
:meth:`SweepResult.raise_for_failures`.
"""

from __future__ import annotations

import numbers
import os
import time
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple, Union

import pandas as pd
from loguru import logger

from qrsweep._exceptions import FitFailure, FitTimeout, InvalidParameter
from qrsweep._typing import QuantileSweep
from qrsweep.fitting._sample import ModelSpec, Sample, coerce_sample, validate_quantiles
from qrsweep.fitting.backends import BaseBackend, FittedModelResult, resolve_backend

BackendLike = Union[str, BaseBackend]


@dataclass(frozen=True)
class QuantileFit:
    """Outcome of fitting one quantile of a sweep.

    Exactly one of ``result`` and ``error`` is set.
    """

    quantile: float
    result: Optional[FittedModelResult] = None
    error: Optional[FitFailure] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def timed_out(self) -> bool:
        return isinstance(self.error, FitTimeout)


class SweepResult(Sequence):
    """Per-quantile outcomes of a sweep, in sweep order.

    ``sweep[i]`` is the :class:`QuantileFit` for ``sweep.quantiles[i]``.
    """

    def __init__(self, fits: Sequence[QuantileFit], nobs: int = 0) -> None:
        self._fits: Tuple[QuantileFit, ...] = tuple(fits)
        self.nobs = nobs

    def __getitem__(self, index):
        return self._fits[index]

    def __len__(self) -> int:
        return len(self._fits)

    def __iter__(self) -> Iterator[QuantileFit]:
        return iter(self._fits)

    def __repr__(self) -> str:
        return (
            f"SweepResult(quantiles={list(self.quantiles)}, "
            f"failed={list(self.failed)})"
        )

    @property
    def quantiles(self) -> Tuple[float, ...]:
        return tuple(f.quantile for f in self._fits)

    @property
    def results(self) -> List[FittedModelResult]:
        """Successful fits, in sweep order."""
        return [f.result for f in self._fits if f.ok]

    @property
    def completed(self) -> Tuple[float, ...]:
        return tuple(f.quantile for f in self._fits if f.ok)

    @property
    def failed(self) -> Tuple[float, ...]:
        return tuple(f.quantile for f in self._fits if not f.ok)

    @property
    def failures(self) -> Dict[float, FitFailure]:
        return {f.quantile: f.error for f in self._fits if not f.ok}

    @property
    def is_complete(self) -> bool:
        return all(f.ok for f in self._fits)

    def raise_for_failures(self) -> None:
        """Raise one :class:`FitFailure` summarising every failed quantile.

        Does nothing when all quantiles were fitted.
        """
        failures = self.failures
        if not failures:
            return
        detail = "; ".join(f"tau={q:g}: {err}" for q, err in failures.items())
        raise FitFailure(
            f"{len(failures)} of {len(self)} quantile fits failed ({detail})",
            failures=failures,
        )


def fit_ols(
    dataset: Union[pd.DataFrame, Sample],
    spec: ModelSpec,
    backend: BackendLike = "statsmodels",
    **backend_options,
) -> FittedModelResult:
    """Fit the conditional-mean model for *spec*.

    Parameters
    ----------
    dataset : pandas.DataFrame or Sample
        Raw observations, or a sample already prepared for *spec*.
    spec : ModelSpec
    backend : str or BaseBackend, default="statsmodels"
    **backend_options
        Forwarded to the backend constructor when *backend* is a name.

    Returns
    -------
    FittedModelResult

    Raises
    ------
    InvalidParameter
        If *dataset* lacks a variable of *spec*.
    FitFailure
        If the estimator cannot fit the model.
    """
    estimator = resolve_backend(backend, backend_options)
    sample = coerce_sample(dataset, spec)
    logger.info(f"Fitting OLS {spec.formula} on {sample.nobs} observations")
    return estimator.fit_ols(sample)


def fit_quantile(
    dataset: Union[pd.DataFrame, Sample],
    spec: ModelSpec,
    quantiles: QuantileSweep,
    backend: BackendLike = "statsmodels",
    n_jobs: Optional[int] = None,
    timeout: Optional[float] = None,
    **backend_options,
) -> SweepResult:
    """Fit one quantile regression per entry of *quantiles*.

    Parameters
    ----------
    dataset : pandas.DataFrame or Sample
        Raw observations, or a sample already prepared for *spec*.
    spec : ModelSpec
    quantiles : sequence of float
        The sweep.  Each value must lie strictly in (0, 1).
    backend : str or BaseBackend, default="statsmodels"
    n_jobs : int or None
        ``None`` or ``1`` fits serially; ``k > 1`` uses up to ``k`` worker
        threads; ``-1`` uses one thread per CPU.
    timeout : float or None
        Seconds allowed for the whole sweep.  Quantiles not finished by
        then are reported as :class:`FitTimeout`; finished ones are kept.
        A running fit cannot be interrupted: serially the deadline is
        checked only between fits, so one slow fit can overrun it; with
        worker threads the sweep returns at the deadline while the slow
        fit finishes in the background and is discarded.
    **backend_options
        Forwarded to the backend constructor when *backend* is a name.

    Returns
    -------
    SweepResult
        ``len(result) == len(quantiles)`` and ``result[i].quantile ==
        quantiles[i]``.

    Raises
    ------
    InvalidParameter
        For an invalid quantile, ``n_jobs`` or ``timeout``, or a variable
        missing from *dataset*.  Raised before any fit runs.
    """
    taus = validate_quantiles(quantiles)
    workers = check_execution_options(n_jobs, timeout, len(taus))
    estimator = resolve_backend(backend, backend_options)
    sample = coerce_sample(dataset, spec)

    logger.info(
        f"Fitting {len(taus)} quantile regression(s) of {spec.formula} on "
        f"{sample.nobs} observations (workers={workers})"
    )
    deadline = None if timeout is None else time.monotonic() + timeout
    if workers <= 1:
        fits = _fit_serial(estimator, sample, taus, deadline)
    else:
        fits = _fit_parallel(estimator, sample, taus, workers, deadline)

    sweep = SweepResult(fits, nobs=sample.nobs)
    for fit in sweep:
        if not fit.ok:
            logger.warning(f"Quantile {fit.quantile:g} not fitted: {fit.error}")
    return sweep


# ──────────────────────────────────────────────────────────────────────
# Execution strategies
# ──────────────────────────────────────────────────────────────────────

def _fit_one(estimator: BaseBackend, sample: Sample, tau: float) -> QuantileFit:
    try:
        result = estimator.fit_quantile(sample, tau)
    except FitFailure as exc:
        if exc.quantile is None:
            exc.quantile = tau
        return QuantileFit(quantile=tau, error=exc)
    except Exception as exc:
        logger.exception(f"tau={tau:g}: unexpected {type(exc).__name__} from the estimator")
        failure = FitFailure(
            f"tau={tau:g}: estimator raised {type(exc).__name__}: {exc}",
            quantile=tau,
        )
        failure.__cause__ = exc
        return QuantileFit(quantile=tau, error=failure)
    logger.debug(f"tau={tau:g} fitted ({result.info.get('iterations', '?')} iterations)")
    return QuantileFit(quantile=tau, result=result)


def _timed_out(tau: float, timeout_note: str) -> QuantileFit:
    return QuantileFit(
        quantile=tau,
        error=FitTimeout(f"tau={tau:g} {timeout_note}", quantile=tau),
    )


def _fit_serial(
    estimator: BaseBackend,
    sample: Sample,
    taus: Tuple[float, ...],
    deadline: Optional[float],
) -> List[QuantileFit]:
    fits: List[QuantileFit] = []
    for tau in taus:
        if deadline is not None and time.monotonic() >= deadline:
            fits.append(_timed_out(tau, "not started before the sweep deadline"))
            continue
        fits.append(_fit_one(estimator, sample, tau))
    return fits


def _fit_parallel(
    estimator: BaseBackend,
    sample: Sample,
    taus: Tuple[float, ...],
    workers: int,
    deadline: Optional[float],
) -> List[QuantileFit]:
    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="qrsweep")
    try:
        futures = [executor.submit(_fit_one, estimator, sample, tau) for tau in taus]
        remaining = None if deadline is None else max(deadline - time.monotonic(), 0.0)
        done, _ = wait(futures, timeout=remaining)
        fits: List[QuantileFit] = []
        for tau, future in zip(taus, futures):
            if future in done:
                fits.append(future.result())
            else:
                future.cancel()
                fits.append(_timed_out(tau, "unfinished at the sweep deadline"))
        return fits
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def check_execution_options(
    n_jobs: Optional[int],
    timeout: Optional[float],
    n_tasks: int,
) -> int:
    """Validate *n_jobs* and *timeout*; return the number of workers to use."""
    if timeout is not None and not timeout > 0:
        raise InvalidParameter(
            f"timeout must be positive seconds, got {timeout!r}",
            parameter="timeout",
        )
    if n_jobs is None:
        return 1
    valid = isinstance(n_jobs, numbers.Integral) and not isinstance(n_jobs, bool)
    if not valid or n_jobs == 0 or n_jobs < -1:
        raise InvalidParameter(
            f"n_jobs must be None, -1 or a positive int, got {n_jobs!r}",
            parameter="n_jobs",
        )
    n_jobs = int(n_jobs)
    if n_jobs == -1:
        n_jobs = os.cpu_count() or 1
    return max(1, min(n_jobs, n_tasks))
