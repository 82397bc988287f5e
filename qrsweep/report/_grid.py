"""Consistency checks shared by the table and plot renderers.

Both renderers need the same thing: the OLS row of every term, and for
every (term, quantile) pair exactly one quantile row.  :func:`build_grid`
checks the rows against that shape and raises
:class:`~qrsweep._exceptions.RenderFailure` on any mismatch.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from loguru import logger

from qrsweep._exceptions import InvalidParameter, RenderFailure
from qrsweep._normalize import CoefficientRow
from qrsweep.fitting._sample import validate_quantiles


@dataclass(frozen=True)
class CoefficientGrid:
    terms: Tuple[str, ...]
    quantiles: Tuple[float, ...]
    missing: Tuple[float, ...]
    ols: Dict[str, CoefficientRow]
    cells: Dict[Tuple[str, float], CoefficientRow]

    def cell(self, term: str, quantile: float) -> Optional[CoefficientRow]:
        return self.cells.get((term, quantile))


def build_grid(
    ols_rows: Sequence[CoefficientRow],
    quantile_rows: Sequence[CoefficientRow],
    quantiles: Sequence[float],
    allow_partial: bool = False,
    artifact: str = "",
) -> CoefficientGrid:
    """Index rows by term and quantile, checking the layout is complete.

    Parameters
    ----------
    ols_rows : sequence of CoefficientRow
        Rows of the OLS fit (``quantile is None``); fixes the term order.
    quantile_rows : sequence of CoefficientRow
        Merged rows of the sweep.
    quantiles : sequence of float
        The sweep as requested.
    allow_partial : bool, default=False
        If ``True`` a quantile with no rows at all (a failed fit) is
        listed in ``missing`` instead of raising.
    artifact : str
        Name used in error messages (``"table"`` or ``"plot"``).

    Raises
    ------
    RenderFailure
        If the OLS rows are empty or repeat a term, a quantile row has an
        unknown term or tag, a (term, quantile) pair repeats, or a quantile
        lacks some terms.
    """
    try:
        taus = validate_quantiles(quantiles)
    except InvalidParameter as exc:
        raise RenderFailure(str(exc), artifact=artifact) from exc

    if not ols_rows:
        raise RenderFailure("no OLS rows to report", artifact=artifact)
    ols: Dict[str, CoefficientRow] = {}
    for row in ols_rows:
        if row.quantile is not None:
            raise RenderFailure(
                f"OLS rows contain a row tagged with quantile {row.quantile:g}",
                artifact=artifact,
            )
        if row.term in ols:
            raise RenderFailure(
                f"term {row.term!r} appears twice in the OLS rows",
                artifact=artifact,
            )
        ols[row.term] = row
    terms = tuple(ols)

    cells: Dict[Tuple[str, float], CoefficientRow] = {}
    for row in quantile_rows:
        if row.quantile is None or row.quantile not in taus:
            raise RenderFailure(
                f"row for {row.term!r} has quantile tag {row.quantile!r}, "
                f"which is not in the sweep {list(taus)}",
                artifact=artifact,
            )
        if row.term not in ols:
            raise RenderFailure(
                f"term {row.term!r} at tau={row.quantile:g} is not a term of "
                "the OLS model",
                artifact=artifact,
            )
        key = (row.term, row.quantile)
        if key in cells:
            raise RenderFailure(
                f"term {row.term!r} appears more than once at "
                f"tau={row.quantile:g}",
                artifact=artifact,
            )
        cells[key] = row

    present, missing = [], []
    for tau in taus:
        n_rows = sum(1 for term in terms if (term, tau) in cells)
        if n_rows == 0:
            missing.append(tau)
        elif n_rows != len(terms):
            raise RenderFailure(
                f"tau={tau:g} has {n_rows} rows, expected {len(terms)} "
                f"(one per term)",
                artifact=artifact,
            )
        else:
            present.append(tau)

    if missing:
        if not allow_partial:
            raise RenderFailure(
                f"no rows for quantile(s) {missing}; pass allow_partial=True "
                "to render the remaining quantiles",
                artifact=artifact,
            )
        logger.warning(f"Rendering {artifact or 'report'} without quantile(s) {missing}")

    return CoefficientGrid(
        terms=terms,
        quantiles=tuple(present),
        missing=tuple(missing),
        ols=ols,
        cells=cells,
    )
