"""Synthetic stand-in for the MEPS expenditure data.

Same columns and missing-data pattern as :func:`~qrsweep.datasets.load_meps`
(``ltotexp`` is NaN where ``totexp`` is zero) but generated locally, so
examples and tests run without network access.  Log expenditure has
heteroskedastic noise growing with ``totchr``, which makes the quantile
coefficients on ``totchr`` fan out across τ the way the real data does.
"""

from __future__ import annotations

import numpy as np
import pandas as pd
from sklearn.utils import Bunch, check_random_state

from qrsweep._exceptions import InvalidParameter
from qrsweep.datasets._meps import FEATURE_NAMES, TARGET_NAME

# Approximate OLS coefficients on the real data
_COEF = {
    "Intercept": 6.70,
    "suppins": 0.26,
    "totchr": 0.45,
    "age": 0.01,
    "female": -0.08,
    "white": 0.32,
}


def make_meps_like(
    n_samples: int = 3064,
    n_missing: int = 109,
    random_state=None,
) -> Bunch:
    """Generate a MEPS-shaped dataset.

    Parameters
    ----------
    n_samples : int, default=3064
        Number of individuals.
    n_missing : int, default=109
        Individuals with zero expenditure, hence missing ``ltotexp``.
        The complete-case sample has ``n_samples - n_missing`` rows
        (2955 with the defaults).
    random_state : int, RandomState instance or None

    Returns
    -------
    sklearn.utils.Bunch
        Same keys as :func:`~qrsweep.datasets.load_meps`.
    """
    if n_samples < 1 or not (0 <= n_missing <= n_samples):
        raise InvalidParameter(
            f"need n_samples >= 1 and 0 <= n_missing <= n_samples, got "
            f"n_samples={n_samples}, n_missing={n_missing}",
            parameter="n_missing",
        )
    rng = check_random_state(random_state)

    suppins = rng.binomial(1, 0.58, n_samples).astype(np.float64)
    totchr = np.minimum(rng.poisson(1.75, n_samples), 7).astype(np.float64)
    age = rng.randint(65, 91, n_samples).astype(np.float64)
    female = rng.binomial(1, 0.58, n_samples).astype(np.float64)
    white = rng.binomial(1, 0.97, n_samples).astype(np.float64)

    mean = (
        _COEF["Intercept"]
        + _COEF["suppins"] * suppins
        + _COEF["totchr"] * totchr
        + _COEF["age"] * age
        + _COEF["female"] * female
        + _COEF["white"] * white
    )
    scale = 1.0 + 0.1 * totchr
    ltotexp = mean + scale * rng.standard_normal(n_samples)
    totexp = np.exp(ltotexp)

    zero = rng.choice(n_samples, size=n_missing, replace=False)
    totexp[zero] = 0.0
    ltotexp[zero] = np.nan

    frame = pd.DataFrame(
        {
            "totexp": totexp,
            TARGET_NAME: ltotexp,
            "suppins": suppins,
            "totchr": totchr,
            "age": age,
            "female": female,
            "white": white,
        }
    )
    return Bunch(
        frame=frame,
        data=frame[FEATURE_NAMES],
        target=frame[TARGET_NAME],
        feature_names=list(FEATURE_NAMES),
        target_name=TARGET_NAME,
        DESCR=(
            f"Synthetic MEPS-like expenditure data: {n_samples} rows, "
            f"{n_missing} with zero expenditure (missing {TARGET_NAME})."
        ),
    )
