"""
Exception types for qrsweep.

Every exception carries a machine-readable code so callers can
tell a fatal failure (bad input, unreachable data) from one that only
affects a single quantile or the reporting stage.
"""

from __future__ import annotations

from typing import Mapping, Optional


class QRSweepError(Exception):
    """Base exception for all qrsweep errors."""

    def __init__(self, message: str, code: str = "QRSWEEP_ERROR"):
        self.code = code
        super().__init__(message)


class DataUnavailable(QRSweepError):
    """Raised when the source dataset cannot be fetched or parsed."""

    def __init__(self, message: str, source: str = "", attempts: int = 0):
        self.source = source
        self.attempts = attempts
        super().__init__(message, code="DATA_UNAVAILABLE")


class InvalidParameter(QRSweepError, ValueError):
    """Raised for a bad quantile, variable name or option, before fitting."""

    def __init__(self, message: str, parameter: str = ""):
        self.parameter = parameter
        super().__init__(message, code="INVALID_PARAMETER")


class FitFailure(QRSweepError):
    """Raised when the estimator cannot produce a usable fit.

    For a single quantile ``quantile`` is set.  When raised for a whole
    sweep (see :meth:`SweepResult.raise_for_failures`) ``failures`` maps
    every failed quantile to its own ``FitFailure``.
    """

    def __init__(
        self,
        message: str,
        quantile: Optional[float] = None,
        failures: Optional[Mapping[float, "FitFailure"]] = None,
        code: str = "FIT_FAILURE",
    ):
        self.quantile = quantile
        self.failures = dict(failures or {})
        super().__init__(message, code=code)


class FitTimeout(FitFailure):
    """A quantile fit that had not finished when the sweep deadline passed."""

    def __init__(self, message: str, quantile: Optional[float] = None):
        super().__init__(message, quantile=quantile, code="FIT_TIMEOUT")


class RenderFailure(QRSweepError):
    """Raised when the table or plot cannot be built from the given rows."""

    def __init__(self, message: str, artifact: str = ""):
        self.artifact = artifact
        super().__init__(message, code="RENDER_FAILURE")
