"""
Pairwise slopes and median reductions.

Backend-agnostic NumPy building blocks for one predictor column.
"""

import numpy as np
from typing import Tuple


def complete_rows(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """Boolean mask of rows where both x and y are present."""
    return ~(np.isnan(x) | np.isnan(y))


def pairwise_slopes(x: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    All usable pairwise slopes for one predictor column.

    Slopes are generated for i < j only. Each unordered pair contributes
    the same value in either order, so the median matches the one taken
    over all ordered pairs.

    Parameters
    ----------
    x : ndarray, shape (n,)
        Predictor values (NaN = missing)
    y : ndarray, shape (n,)
        Response values (NaN = missing)

    Returns
    -------
    ndarray, shape (k,)
        Slopes (y_i - y_j) / (x_i - x_j), excluding pairs with a missing
        value, pairs sharing the same x and non-finite slopes (overflow
        from a tiny x gap, or infinite inputs). May be empty.
    """
    keep = complete_rows(x, y)
    xs = x[keep]
    ys = y[keep]

    i, j = np.triu_indices(len(xs), k=1)
    with np.errstate(over='ignore', invalid='ignore'):
        dx = xs[i] - xs[j]
        distinct = dx != 0.0
        slopes = (ys[i][distinct] - ys[j][distinct]) / dx[distinct]
    return slopes[np.isfinite(slopes)]


def median_or_nan(values: np.ndarray) -> float:
    """Order-statistic median; NaN for an empty set."""
    if values.size == 0:
        return np.nan
    return float(np.median(values))


def intercept_median(x: np.ndarray, y: np.ndarray, slope: float) -> float:
    """Median of y - slope * x over complete rows."""
    if np.isnan(slope):
        return np.nan
    keep = complete_rows(x, y)
    with np.errstate(invalid='ignore'):
        offsets = y[keep] - slope * x[keep]
    # infinite x or y
    return median_or_nan(offsets[np.isfinite(offsets)])


def fit_column(x: np.ndarray, y: np.ndarray) -> Tuple[float, float, int, int]:
    """
    Theil-Sen fit of a single column.

    Returns
    -------
    (intercept, slope, n_pairs, n_obs)
    """
    slopes = pairwise_slopes(x, y)
    b1 = median_or_nan(slopes)
    b0 = intercept_median(x, y, b1)
    n_obs = int(np.count_nonzero(complete_rows(x, y)))
    return b0, b1, int(slopes.size), n_obs
