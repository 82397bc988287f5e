r"""Project fitted models into uniform coefficient rows.

Each :class:`~qrsweep.fitting.backends.base.FittedModelResult` becomes
one :class:`CoefficientRow` per term, in the order the estimator reported
the terms.  Standard errors, statistics and p-values are copied as-is;
only the confidence bounds are derived, from the estimator's own standard
errors and reference distribution:

.. math::

    \hat\beta_j \pm c_{1-\alpha/2}\, \widehat{se}_j

with :math:`c` the Student-t quantile on ``df_resid`` degrees of freedom
when the estimator uses t, and the normal quantile otherwise.  This is the
interval statsmodels' own ``conf_int`` reports.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Iterable, List, Optional, Sequence

import numpy as np
import pandas as pd
from scipy.stats import norm, t as student_t

from qrsweep._exceptions import InvalidParameter
from qrsweep.fitting._fitter import SweepResult
from qrsweep.fitting.backends.base import FittedModelResult

ROW_FIELDS = (
    "term",
    "estimate",
    "std_error",
    "statistic",
    "p_value",
    "conf_low",
    "conf_high",
    "quantile",
)


@dataclass(frozen=True)
class CoefficientRow:
    """One coefficient of one fitted model.

    Attributes
    ----------
    term : str
    estimate, std_error, statistic, p_value : float
    conf_low, conf_high : float
        Confidence bounds at the level passed to :func:`normalize`.
    quantile : float or None
        The τ of the originating fit; ``None`` for OLS rows.
    """

    term: str
    estimate: float
    std_error: float
    statistic: float
    p_value: float
    conf_low: float
    conf_high: float
    quantile: Optional[float] = None

    @property
    def model(self) -> str:
        """Column label of the originating model: ``"OLS"`` or ``"Q0.25"``."""
        return model_label(self.quantile)

    def to_dict(self) -> dict:
        return asdict(self)


def model_label(quantile: Optional[float]) -> str:
    return "OLS" if quantile is None else f"Q{quantile:g}"


def critical_value(result: FittedModelResult, confidence_level: float) -> float:
    """Two-sided critical value of *result*'s reference distribution."""
    upper = 1.0 - (1.0 - confidence_level) / 2.0
    if result.use_t and result.df_resid > 0:
        return float(student_t.ppf(upper, result.df_resid))
    return float(norm.ppf(upper))


def normalize(
    result: FittedModelResult,
    confidence_level: float = 0.95,
    quantile_tag: Optional[float] = None,
) -> List[CoefficientRow]:
    """Convert one fitted model into coefficient rows.

    Parameters
    ----------
    result : FittedModelResult
    confidence_level : float, default=0.95
        Coverage of the confidence interval, strictly in (0, 1).
    quantile_tag : float or None
        Tag stored on every row.  ``None`` uses ``result.quantile`` (which
        is itself ``None`` for OLS).

    Returns
    -------
    list of CoefficientRow
        One row per term, in estimator order.

    Raises
    ------
    InvalidParameter
        If *confidence_level* is outside (0, 1).
    """
    check_confidence_level(confidence_level)
    tag = result.quantile if quantile_tag is None else float(quantile_tag)
    crit = critical_value(result, confidence_level)
    half_width = crit * result.std_errors
    low = result.params - half_width
    high = result.params + half_width

    return [
        CoefficientRow(
            term=term,
            estimate=float(result.params[j]),
            std_error=float(result.std_errors[j]),
            statistic=float(result.statistics[j]),
            p_value=float(result.p_values[j]),
            conf_low=float(low[j]),
            conf_high=float(high[j]),
            quantile=tag,
        )
        for j, term in enumerate(result.terms)
    ]


def normalize_sweep(
    sweep: SweepResult,
    confidence_level: float = 0.95,
) -> List[List[CoefficientRow]]:
    """Normalize every successful fit of *sweep*, one group per quantile.

    Failed quantiles contribute no group; they remain visible on
    ``sweep.failures``.
    """
    check_confidence_level(confidence_level)
    return [
        normalize(fit.result, confidence_level, quantile_tag=fit.quantile)
        for fit in sweep
        if fit.ok
    ]


def merge(groups: Iterable[Sequence[CoefficientRow]]) -> List[CoefficientRow]:
    """Concatenate row groups into one flat list.

    Group order and the row order inside each group are preserved, so
    ``len(merge(groups)) == sum(len(g) for g in groups)``.
    """
    merged: List[CoefficientRow] = []
    for group in groups:
        merged.extend(group)
    return merged


def to_frame(rows: Sequence[CoefficientRow]) -> pd.DataFrame:
    """Tidy ``DataFrame`` with one column per :class:`CoefficientRow` field."""
    frame = pd.DataFrame([row.to_dict() for row in rows], columns=list(ROW_FIELDS))
    frame["quantile"] = frame["quantile"].astype(np.float64)
    return frame


def check_confidence_level(confidence_level: float) -> None:
    """Raise :class:`InvalidParameter` unless 0 < *confidence_level* < 1."""
    level = float(confidence_level)
    if not math.isfinite(level) or not (0.0 < level < 1.0):
        raise InvalidParameter(
            f"confidence_level must lie strictly between 0 and 1, got "
            f"{confidence_level!r}",
            parameter="confidence_level",
        )
