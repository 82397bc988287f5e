"""Model specification and the shared estimation sample.

Every model in a sweep (the OLS reference and one quantile regression
per τ) must be estimated on exactly the same observations, otherwise the
coefficient comparison is meaningless.  :func:`prepare_sample` therefore
performs the single row-filtering pass; the fitters only ever see the
resulting :class:`Sample`.
"""

from __future__ import annotations

import math
import numbers
from dataclasses import dataclass
from typing import Iterable, Tuple

import numpy as np
import pandas as pd
from loguru import logger

from qrsweep._exceptions import InvalidParameter

INTERCEPT = "Intercept"


@dataclass(frozen=True)
class ModelSpec:
    """A fixed regression formula: one response, an ordered set of regressors.

    Parameters
    ----------
    dependent : str
        Name of the response column.
    independents : sequence of str
        Names of the regressor columns, in the order their coefficients
        should be reported.
    intercept : bool, default=True
        Whether to prepend an ``"Intercept"`` term to the design matrix.
    """

    dependent: str
    independents: Tuple[str, ...]
    intercept: bool = True

    def __post_init__(self) -> None:
        object.__setattr__(self, "independents", tuple(self.independents))
        if not isinstance(self.dependent, str) or not self.dependent:
            raise InvalidParameter(
                "dependent variable name must be a non-empty string",
                parameter="dependent",
            )
        if not self.independents and not self.intercept:
            raise InvalidParameter(
                "model has no terms: give at least one independent variable "
                "or keep the intercept",
                parameter="independents",
            )
        seen = set()
        for name in self.independents:
            if name in seen:
                raise InvalidParameter(
                    f"independent variable {name!r} listed twice",
                    parameter="independents",
                )
            seen.add(name)
        if self.dependent in seen:
            raise InvalidParameter(
                f"{self.dependent!r} is both the dependent and an "
                "independent variable",
                parameter="independents",
            )
        if self.intercept and INTERCEPT in seen:
            raise InvalidParameter(
                f"{INTERCEPT!r} is reserved for the intercept term",
                parameter="independents",
            )

    @property
    def variables(self) -> Tuple[str, ...]:
        """Every column the model reads, response first."""
        return (self.dependent,) + self.independents

    @property
    def terms(self) -> Tuple[str, ...]:
        """Coefficient names in reporting order."""
        if self.intercept:
            return (INTERCEPT,) + self.independents
        return self.independents

    @property
    def formula(self) -> str:
        rhs = " + ".join(self.independents) if self.independents else "1"
        if not self.intercept:
            rhs += " - 1"
        return f"{self.dependent} ~ {rhs}"

    def __str__(self) -> str:
        return self.formula


@dataclass(frozen=True, eq=False)
class Sample:
    """The complete-case estimation sample for one :class:`ModelSpec`.

    Attributes
    ----------
    spec : ModelSpec
    y : pandas.Series
        Response, float64.
    X : pandas.DataFrame
        Design matrix with one column per term of ``spec`` (intercept
        included), float64.
    n_dropped : int
        Rows removed because a referenced variable was missing.
    """

    spec: ModelSpec
    y: pd.Series
    X: pd.DataFrame
    n_dropped: int = 0

    @property
    def nobs(self) -> int:
        return int(self.X.shape[0])

    @property
    def terms(self) -> Tuple[str, ...]:
        return tuple(self.X.columns)


def validate_quantiles(quantiles: Iterable[float]) -> Tuple[float, ...]:
    """Check a quantile sweep and return it as a tuple of floats.

    Every entry must be a finite real number strictly inside ``(0, 1)``
    and appear only once.  An empty sweep is valid.

    Raises
    ------
    InvalidParameter
        For a scalar instead of a sequence, a non-numeric entry, a value
        outside the open unit interval, or a repeated value.
    """
    if isinstance(quantiles, (numbers.Real, str, bytes)):
        raise InvalidParameter(
            f"quantiles must be a sequence of floats, got {quantiles!r}",
            parameter="quantiles",
        )
    if isinstance(quantiles, np.ndarray):
        values = quantiles.ravel().tolist()
    else:
        values = list(quantiles)
    taus = []
    for q in values:
        if isinstance(q, bool) or not isinstance(q, numbers.Real):
            raise InvalidParameter(
                f"quantile {q!r} is not a real number", parameter="quantiles"
            )
        q = float(q)
        if not math.isfinite(q) or not (0.0 < q < 1.0):
            raise InvalidParameter(
                f"quantile must lie strictly between 0 and 1, got {q}",
                parameter="quantiles",
            )
        if q in taus:
            raise InvalidParameter(
                f"quantile {q} appears more than once in the sweep",
                parameter="quantiles",
            )
        taus.append(q)
    return tuple(taus)


def check_variables(frame: pd.DataFrame, spec: ModelSpec) -> None:
    """Raise :class:`InvalidParameter` if *frame* lacks a variable of *spec*."""
    missing = [name for name in spec.variables if name not in frame.columns]
    if missing:
        raise InvalidParameter(
            f"dataset has no column(s) {missing} required by {spec.formula!r}",
            parameter="spec",
        )


def prepare_sample(frame: pd.DataFrame, spec: ModelSpec) -> Sample:
    """Build the shared complete-case sample for *spec*.

    Rows with a missing value in any variable of *spec* are dropped once,
    here, so every model fitted from the returned :class:`Sample` sees the
    same observations.

    Parameters
    ----------
    frame : pandas.DataFrame
        Raw observations.  Not modified.
    spec : ModelSpec

    Returns
    -------
    Sample

    Raises
    ------
    InvalidParameter
        If a variable is absent or not numeric.
    """
    if not isinstance(frame, pd.DataFrame):
        raise InvalidParameter(
            f"dataset must be a pandas DataFrame, got {type(frame).__name__}",
            parameter="dataset",
        )
    check_variables(frame, spec)

    columns = list(spec.variables)
    try:
        subset = frame[columns].apply(pd.to_numeric, errors="raise")
    except (TypeError, ValueError) as exc:
        raise InvalidParameter(
            f"non-numeric data in {columns}: {exc}", parameter="dataset"
        ) from exc

    subset = subset.astype(np.float64)
    complete = subset.dropna(how="any")
    n_dropped = int(len(subset) - len(complete))
    if n_dropped:
        logger.info(
            f"Dropped {n_dropped} of {len(subset)} rows with missing values "
            f"in {columns}"
        )

    y = complete[spec.dependent].reset_index(drop=True)
    X = complete[list(spec.independents)].reset_index(drop=True)
    if spec.intercept:
        X.insert(0, INTERCEPT, 1.0)

    return Sample(
        spec=spec,
        y=y,
        X=X,
        n_dropped=n_dropped,
    )


def coerce_sample(dataset, spec: ModelSpec) -> Sample:
    """Return a :class:`Sample` for *spec* from a frame or a prepared sample."""
    if isinstance(dataset, Sample):
        if dataset.spec != spec:
            raise InvalidParameter(
                f"sample was prepared for {dataset.spec.formula!r}, "
                f"not {spec.formula!r}",
                parameter="dataset",
            )
        return dataset
    return prepare_sample(dataset, spec)
