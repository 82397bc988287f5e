"""Type aliases and common types for the qrsweep package."""

from __future__ import annotations

from typing import Sequence, Union

import numpy as np
import numpy.typing as npt

# Strict numpy array type returned from estimator adapters
FloatArray = npt.NDArray[np.float64]

# Anything accepted as a quantile sweep
QuantileSweep = Union[Sequence[float], np.ndarray]
