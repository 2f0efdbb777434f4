"""
Synthetic data for demonstrations and tests.
"""

import numpy as np
from typing import Optional
from dataclasses import dataclass


@dataclass
class OutlierLine:
    """A noisy straight line with a subset of rows replaced by outliers."""
    x: np.ndarray
    y: np.ndarray
    outlier_idx: np.ndarray
    intercept: float
    slope: float

    @property
    def inlier_idx(self) -> np.ndarray:
        return np.setdiff1d(np.arange(self.x.size), self.outlier_idx)


def simulate_outlier_line(
    n_total: int = 20,
    outlier_fraction: float = 0.2,
    intercept: float = -2.0,
    slope: float = 10.0,
    sd_x: float = 0.1,
    sd_y: float = 2.0,
    seed: Optional[int] = None,
) -> OutlierLine:
    """
    Simulate a line on [0, 1] with Gaussian noise and positive outliers.

    Both coordinates get Gaussian noise. A random subset of
    round(outlier_fraction * n_total) rows is then moved to an unlikely
    high response, (|y| + 3 sd_y + |N(0, 20 sd_y)|) * x, so the outliers
    grow with x and pull a least-squares slope upwards.

    Parameters
    ----------
    n_total : int
        Number of observations
    outlier_fraction : float
        Share of observations turned into outliers, in [0, 1]
    intercept, slope : float
        True line
    sd_x, sd_y : float
        Standard deviation of the ordinary noise in x and y
    seed : int, optional
        Seed for numpy.random.default_rng

    Returns
    -------
    OutlierLine
    """
    if not 0.0 <= outlier_fraction <= 1.0:
        raise ValueError(f"outlier_fraction must lie in [0, 1], got {outlier_fraction}")

    rng = np.random.default_rng(seed)
    n_outliers = int(round(outlier_fraction * n_total))

    x = np.linspace(0, 1, n_total)
    y = intercept + slope * x

    x = x + rng.standard_normal(n_total) * sd_x
    y = y + rng.standard_normal(n_total) * sd_y

    outlier_idx = np.sort(rng.choice(n_total, size=n_outliers, replace=False))
    sd_outlier = 20 * sd_y
    y_out = np.abs(y[outlier_idx]) + 3 * sd_y
    y_out = y_out + np.abs(rng.standard_normal(n_outliers) * sd_outlier)
    y[outlier_idx] = y_out * x[outlier_idx]

    return OutlierLine(
        x=x,
        y=y,
        outlier_idx=outlier_idx,
        intercept=intercept,
        slope=slope,
    )
