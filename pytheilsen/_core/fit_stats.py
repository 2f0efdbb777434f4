"""
Goodness-of-fit and interval statistics for Theil-Sen fits.
"""

import numpy as np
from scipy import stats
from typing import Tuple

from .pairwise import complete_rows, pairwise_slopes


def r_squared(X: np.ndarray, y: np.ndarray, coef: np.ndarray) -> np.ndarray:
    """
    Unadjusted R² of each column's robust line.

    SS_total uses every row with a response; SS_resid uses the rows
    complete for that column. The result is NaN where the column is
    degenerate or the response has no variance. It may be negative.

    Parameters
    ----------
    X : ndarray, shape (n, p)
    y : ndarray, shape (n,)
    coef : ndarray, shape (2, p)
        Intercepts (row 0) and slopes (row 1)

    Returns
    -------
    ndarray, shape (p,)
    """
    y_obs = y[~np.isnan(y)]
    tss = np.sum((y_obs - np.mean(y_obs)) ** 2) if y_obs.size else 0.0

    out = np.full(X.shape[1], np.nan)
    if tss == 0:
        return out

    for p in range(X.shape[1]):
        b0, b1 = coef[0, p], coef[1, p]
        if np.isnan(b1):
            continue
        keep = complete_rows(X[:, p], y)
        with np.errstate(invalid='ignore'):
            resid = y[keep] - (b0 + b1 * X[keep, p])
        rss = np.sum(resid[np.isfinite(resid)] ** 2)
        out[p] = 1.0 - rss / tss

    return out


def kendall_s_variance(x: np.ndarray) -> float:
    """Variance of Kendall's S under no trend, corrected for tied x."""
    n = x.size
    _, t = np.unique(x, return_counts=True)
    ties = np.sum(t * (t - 1) * (2 * t + 5))
    return (n * (n - 1) * (2 * n + 5) - ties) / 18.0


def slope_confidence_interval(
    x: np.ndarray,
    y: np.ndarray,
    alpha: float = 0.05,
) -> Tuple[float, float]:
    """
    Sen's nonparametric confidence interval for the slope.

    Gilbert (1987), "Statistical Methods for Environmental Pollution
    Monitoring", section 6.5. Order statistics at the non-integer ranks
    M1 and M2 + 1 are linearly interpolated.

    Parameters
    ----------
    x, y : ndarray, shape (n,)
        One predictor column and the response (NaN = missing)
    alpha : float
        Two-sided significance level

    Returns
    -------
    (lower, upper)
        NaN, NaN when the column has no usable pair
    """
    if not 0.0 < alpha < 1.0:
        raise ValueError(f"alpha must lie in (0, 1), got {alpha}")

    slopes = np.sort(pairwise_slopes(x, y))
    n_slopes = slopes.size
    if n_slopes == 0:
        return np.nan, np.nan

    x_obs = x[complete_rows(x, y)]
    z = stats.norm.ppf(1 - alpha / 2)
    c_alpha = z * np.sqrt(kendall_s_variance(x_obs))

    m1 = (n_slopes - c_alpha) / 2
    m2 = (n_slopes + c_alpha) / 2

    # 1-indexed ranks M1 and M2 + 1 -> 0-indexed positions
    positions = np.array([m1 - 1, m2])
    ranks = np.arange(n_slopes)
    lower, upper = np.interp(positions, ranks, slopes)
    return float(lower), float(upper)
