"""Dataset loaders for examples and testing."""

from qrsweep.datasets._meps import (
    FEATURE_NAMES,
    MEPS_URL,
    TARGET_NAME,
    fetch_meps,
    load_meps,
    read_dta,
)
from qrsweep.datasets._synthetic import make_meps_like

__all__ = [
    "FEATURE_NAMES",
    "MEPS_URL",
    "TARGET_NAME",
    "fetch_meps",
    "load_meps",
    "make_meps_like",
    "read_dta",
]
