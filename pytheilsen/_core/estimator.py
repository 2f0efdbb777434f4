"""
Theil-Sen solver.

Delegates the pairwise computation to a backend and adds the
backend-independent statistics.
"""

import numpy as np

from .fit_stats import r_squared as _r_squared
from .._backends.base import ColumnDiagnostic, TheilSenResult


def fit_theil_sen(
    X: np.ndarray,
    y: np.ndarray,
    r_squared: bool = False,
    backend=None,
) -> TheilSenResult:
    """
    Fit Theil-Sen lines via backend.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Validated predictors (NaN = missing)
    y : ndarray, shape (n,)
        Validated response (NaN = missing)
    r_squared : bool
        Also compute the unadjusted R² of each robust line
    backend : Backend, optional
        Computational backend (CPU when omitted)

    Returns
    -------
    result : TheilSenResult
    """
    if backend is None:
        from .._backends import get_backend
        backend = get_backend('cpu')

    result = backend.fit_theil_sen(X, y)

    if r_squared:
        r2 = _r_squared(X, y, result.coef)
        result.r_squared = r2
        degenerate = {d.column for d in result.diagnostics}
        for p in np.flatnonzero(np.isnan(r2)):
            if p in degenerate:
                continue
            result.diagnostics.append(ColumnDiagnostic(
                column=int(p),
                kind='undefined_r_squared',
                message=(
                    f"R² of predictor column {p} is undefined: "
                    f"the response has no variance."
                ),
            ))

    return result
