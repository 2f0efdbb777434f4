"""
Theil-Sen via the full (n, p, n) slope tensor.

Builds every ordered pair, including self-pairs and both orientations,
by broadcasting, relabels non-finite slopes as missing and reduces with
NaN-skipping medians. O(n² p) memory; only meant for checking the
production backends on small inputs.
"""

import warnings

import numpy as np


def theil_sen_full(X: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Reference Theil-Sen coefficients.

    Parameters
    ----------
    X : ndarray, shape (n, p)
    y : ndarray, shape (n,)

    Returns
    -------
    ndarray, shape (2, p)
        Intercepts (row 0) and slopes (row 1)
    """
    X = np.asarray(X, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    n, p = X.shape

    with np.errstate(divide='ignore', invalid='ignore', over='ignore'):
        # C[i, p, j] = (y_i - y_j) / (X_ip - X_jp)
        C = (y[:, None, None] - y[None, None, :]) / (
            X[:, :, None] - X.T[None, :, :]
        )
    C[~np.isfinite(C)] = np.nan

    # stack the j layers under the i rows: (n * n, p)
    stacked = C.transpose(0, 2, 1).reshape(n * n, p)

    with warnings.catch_warnings():
        # all-NaN columns are expected for degenerate predictors
        warnings.simplefilter('ignore', RuntimeWarning)
        b1 = np.nanmedian(stacked, axis=0)
        b0 = np.nanmedian(y[:, None] - b1[None, :] * X, axis=0)

    return np.vstack([b0, b1])
