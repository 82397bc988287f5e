"""Shared fixtures: the synthetic MEPS sample and a scripted backend."""

import matplotlib

matplotlib.use("Agg")

import time

import numpy as np
import pandas as pd
import pytest

from qrsweep._exceptions import FitFailure
from qrsweep.datasets import FEATURE_NAMES, TARGET_NAME, make_meps_like
from qrsweep.fitting import ModelSpec, prepare_sample
from qrsweep.fitting.backends.base import BaseBackend, FittedModelResult

SWEEP = [0.1, 0.25, 0.5, 0.75, 0.9]


@pytest.fixture(scope="session")
def meps_frame():
    """3064 rows, 109 with missing ltotexp: 2955 complete cases."""
    return make_meps_like(random_state=0).frame


@pytest.fixture
def spec():
    return ModelSpec(TARGET_NAME, FEATURE_NAMES)


@pytest.fixture(scope="session")
def meps_sample(meps_frame):
    return prepare_sample(meps_frame, ModelSpec(TARGET_NAME, FEATURE_NAMES))


@pytest.fixture
def small_frame():
    rng = np.random.RandomState(42)
    n = 200
    x1 = rng.randn(n)
    x2 = rng.randn(n)
    y = 5.0 + 2.0 * x1 - 1.0 * x2 + rng.randn(n) * 0.5
    return pd.DataFrame({"y": y, "x1": x1, "x2": x2})


def make_result(terms, quantile=None, params=None, std_errors=None, nobs=100):
    """A FittedModelResult with simple, valid numbers."""
    p = len(terms)
    params = np.arange(1.0, p + 1.0) if params is None else np.asarray(params, float)
    se = np.full(p, 0.5) if std_errors is None else np.asarray(std_errors, float)
    return FittedModelResult(
        terms=tuple(terms),
        params=params,
        std_errors=se,
        statistics=params / se,
        p_values=np.full(p, 0.03),
        df_resid=float(nobs - p),
        nobs=nobs,
        method="ols" if quantile is None else "quantreg",
        quantile=quantile,
    )


class ScriptedBackend(BaseBackend):
    """Returns canned results; fails on the quantiles listed in ``fail``.

    Quantiles in ``crash`` raise a plain ``RuntimeError`` instead, as a
    library bug would.

    Records every τ it was asked to fit in ``calls``.
    """

    name = "scripted"

    def __init__(self, fail=(), delay=None, crash=()):
        self.fail = set(fail)
        self.crash = set(crash)
        self.delay = delay or {}
        self.calls = []

    def _fit_ols_impl(self, sample):
        return make_result(sample.terms, nobs=sample.nobs)

    def _fit_quantile_impl(self, sample, tau):
        self.calls.append(tau)
        if tau in self.delay:
            time.sleep(self.delay[tau])
        if tau in self.fail:
            raise FitFailure(f"tau={tau:g}: scripted non-convergence", quantile=tau)
        if tau in self.crash:
            raise RuntimeError("estimator crashed")
        params = np.arange(1.0, len(sample.terms) + 1.0) * tau
        return make_result(sample.terms, quantile=tau, params=params, nobs=sample.nobs)


@pytest.fixture
def scripted():
    return ScriptedBackend()


@pytest.fixture
def backend_cls():
    return ScriptedBackend


@pytest.fixture
def result_factory():
    return make_result


@pytest.fixture
def sweep_quantiles():
    return list(SWEEP)
