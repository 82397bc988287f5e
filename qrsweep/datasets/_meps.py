"""MEPS medical-expenditure extract (Cameron & Trivedi, *Microeconometrics
Using Stata*, chapter 3).

3064 Medicare-eligible individuals aged 65 and over from the 2003 Medical
Expenditure Panel Survey.  The canonical quantile-regression example
models log total medical expenditure (``ltotexp``, missing when
expenditure is zero) on supplementary insurance (``suppins``), number of
chronic conditions (``totchr``), ``age``, ``female`` and ``white``; the
complete-case sample has 2955 observations.

The Stata file is downloaded once and cached under the scikit-learn data
home (``~/scikit_learn_data/qrsweep`` unless ``data_home`` or
``SCIKIT_LEARN_DATA`` says otherwise).
"""

from __future__ import annotations

import io
import os
import struct
import time
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

import pandas as pd
import requests
from loguru import logger
from sklearn.datasets import get_data_home
from sklearn.utils import Bunch

from qrsweep._exceptions import DataUnavailable, InvalidParameter

MEPS_URL = "http://cameron.econ.ucdavis.edu/musbook/mus03data.dta"

TARGET_NAME = "ltotexp"
FEATURE_NAMES = ["suppins", "totchr", "age", "female", "white"]

DESCR = (
    "MEPS 2003 medical expenditure extract (Cameron & Trivedi, 2010).  "
    "3064 individuals aged 65+, one row each.  ltotexp is log total "
    "medical expenditure and is missing for the 109 individuals with zero "
    "expenditure; regressors are supplementary private insurance "
    "(suppins), number of chronic conditions (totchr), age, female and "
    "white.  The complete-case sample has 2955 observations."
)

# HTTP statuses worth retrying; any other 4xx is permanent
_TRANSIENT_STATUS = {408, 425, 429, 500, 502, 503, 504}


def fetch_meps(
    url: str = MEPS_URL,
    data_home: Optional[str] = None,
    timeout: float = 30.0,
    max_attempts: int = 3,
    backoff: float = 1.0,
    refresh: bool = False,
    session: Optional[requests.Session] = None,
) -> Path:
    """Download the MEPS Stata file into the cache and return its path.

    Parameters
    ----------
    url : str
        Location of the ``.dta`` file.
    data_home : str, optional
        Cache root; see :func:`sklearn.datasets.get_data_home`.
    timeout : float, default=30.0
        Per-request timeout in seconds.
    max_attempts : int, default=3
        Total attempts for transient failures (connection errors,
        timeouts, HTTP 408/425/429/5xx).
    backoff : float, default=1.0
        Sleep ``backoff * 2**(attempt - 1)`` seconds between attempts.
    refresh : bool, default=False
        Ignore an existing cached copy.
    session : requests.Session, optional
        Session used for the request (a new one by default).

    Returns
    -------
    pathlib.Path

    Raises
    ------
    DataUnavailable
        When every attempt failed or the server answered with a
        non-retryable error.
    """
    if int(max_attempts) < 1:
        raise InvalidParameter(
            f"max_attempts must be >= 1, got {max_attempts}",
            parameter="max_attempts",
        )
    cache_dir = Path(get_data_home(data_home)) / "qrsweep"
    cache_dir.mkdir(parents=True, exist_ok=True)
    filename = os.path.basename(urlparse(url).path) or "meps.dta"
    path = cache_dir / filename

    if path.exists() and not refresh:
        logger.info(f"Using cached dataset {path}")
        return path

    content = _download(url, timeout, int(max_attempts), backoff, session)
    tmp = path.with_suffix(path.suffix + ".part")
    tmp.write_bytes(content)
    tmp.replace(path)
    logger.info(f"Saved {len(content)} bytes to {path}")
    return path


def load_meps(
    url: str = MEPS_URL,
    data_home: Optional[str] = None,
    timeout: float = 30.0,
    max_attempts: int = 3,
    backoff: float = 1.0,
    refresh: bool = False,
    session: Optional[requests.Session] = None,
) -> Bunch:
    """Load the MEPS expenditure dataset.

    Arguments are those of :func:`fetch_meps`.

    Returns
    -------
    sklearn.utils.Bunch
        Dictionary-like with keys:

        - ``frame`` : DataFrame, every column of the Stata file
        - ``data`` : DataFrame, the :data:`FEATURE_NAMES` columns
        - ``target`` : Series, ``ltotexp`` (NaN where expenditure is zero)
        - ``feature_names`` : list of str
        - ``target_name`` : str
        - ``DESCR`` : str

    Raises
    ------
    DataUnavailable
        If the file cannot be fetched, read, or lacks the expected columns.
    """
    path = fetch_meps(
        url=url,
        data_home=data_home,
        timeout=timeout,
        max_attempts=max_attempts,
        backoff=backoff,
        refresh=refresh,
        session=session,
    )
    frame = read_dta(path.read_bytes(), source=str(path))
    missing = [c for c in [TARGET_NAME] + FEATURE_NAMES if c not in frame.columns]
    if missing:
        raise DataUnavailable(
            f"{path} has no column(s) {missing}; delete the cached file or "
            "pass refresh=True",
            source=str(path),
        )
    return Bunch(
        frame=frame,
        data=frame[FEATURE_NAMES],
        target=frame[TARGET_NAME],
        feature_names=list(FEATURE_NAMES),
        target_name=TARGET_NAME,
        DESCR=DESCR,
    )


def read_dta(content: bytes, source: str = "") -> pd.DataFrame:
    """Parse Stata ``.dta`` bytes into a numeric ``DataFrame``.

    Value labels are not applied, so coded variables stay numeric; Stata
    missing values become NaN.
    """
    try:
        frame = pd.read_stata(io.BytesIO(content), convert_categoricals=False)
    except (ValueError, OSError, KeyError, IndexError, EOFError, struct.error) as exc:
        raise DataUnavailable(
            f"could not parse Stata data from {source or 'download'}: {exc}",
            source=source,
        ) from exc
    logger.info(f"Read {frame.shape[0]} rows x {frame.shape[1]} columns")
    return frame


def _download(
    url: str,
    timeout: float,
    max_attempts: int,
    backoff: float,
    session: Optional[requests.Session],
) -> bytes:
    client = session or requests.Session()
    last_error: Optional[Exception] = None
    for attempt in range(1, max_attempts + 1):
        try:
            logger.info(f"Downloading {url} (attempt {attempt}/{max_attempts})")
            resp = client.get(url, timeout=timeout)
            if resp.status_code >= 400 and resp.status_code not in _TRANSIENT_STATUS:
                raise DataUnavailable(
                    f"{url} answered HTTP {resp.status_code}",
                    source=url,
                    attempts=attempt,
                )
            resp.raise_for_status()
            return resp.content
        except requests.RequestException as exc:
            last_error = exc
            logger.warning(f"Download of {url} failed (attempt {attempt}): {exc}")
        if attempt < max_attempts and backoff > 0:
            time.sleep(backoff * 2 ** (attempt - 1))
    raise DataUnavailable(
        f"dataset unavailable: {url} failed after {max_attempts} attempt(s): "
        f"{last_error}",
        source=url,
        attempts=max_attempts,
    ) from last_error
