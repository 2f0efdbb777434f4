"""
Ordinary least-squares baseline.

Per-column simple regressions solved by QR, with the same missing-value
rules as the Theil-Sen fit, so the two estimators can be compared on
identical rows.
"""

import numpy as np
from scipy.linalg import qr, solve_triangular

from .pairwise import complete_rows
from .._utils import check_inputs


def _ols_column(x: np.ndarray, y: np.ndarray):
    """Intercept and slope of y on x via QR with column pivoting."""
    keep = complete_rows(x, y)
    n = int(np.count_nonzero(keep))
    if n < 2:
        return np.nan, np.nan

    X_work = np.column_stack([np.ones(n), x[keep]])
    y_work = y[keep]

    Q, R, P = qr(X_work, mode='economic', pivoting=True)

    eps = np.finfo(np.float64).eps
    tol = max(n, 2) * eps * np.linalg.norm(X_work, 'fro')
    R_diag = np.abs(np.diag(R))
    rank = np.sum(R_diag >= tol * R_diag[0]) if R_diag[0] > 0 else 0
    if rank < 2:
        # constant x: slope not identifiable
        return np.nan, np.nan

    coef = np.empty(2, dtype=np.float64)
    coef[P] = solve_triangular(R, Q.T @ y_work, lower=False)
    return coef[0], coef[1]


def least_squares(X, y) -> np.ndarray:
    """
    Least-squares intercept and slope for each predictor column.

    Parameters
    ----------
    X : array-like, shape (n, p)
    y : array-like, shape (n,)

    Returns
    -------
    ndarray, shape (2, p)
        Row 0 intercepts, row 1 slopes
    """
    X, y = check_inputs(X, y)
    coef = np.full((2, X.shape[1]), np.nan)
    for p in range(X.shape[1]):
        coef[:, p] = _ols_column(X[:, p], y)
    return coef
