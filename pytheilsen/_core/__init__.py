"""
Core algorithms (backend-agnostic).
"""

from .pairwise import pairwise_slopes, fit_column
from .fit_stats import r_squared, slope_confidence_interval
from .least_squares import least_squares
from .estimator import fit_theil_sen

__all__ = [
    "pairwise_slopes",
    "fit_column",
    "r_squared",
    "slope_confidence_interval",
    "least_squares",
    "fit_theil_sen",
]
