"""
CPU backend using NumPy.

This is the reference implementation; other backends are checked against it.
"""

import numpy as np

from .base import CPUBackend, TheilSenResult, degenerate_diagnostics
from .._core.pairwise import fit_column


class CPUBackendFP64(CPUBackend):
    """
    CPU backend using NumPy.

    Streams one predictor column at a time, so peak memory is the
    n(n-1)/2 slope buffer of a single column whatever the number of
    predictors. Always uses FP64 precision.
    """

    def __init__(self):
        self.name = "cpu_fp64"
        self.precision = "fp64"

    def fit_theil_sen(self, X: np.ndarray, y: np.ndarray) -> TheilSenResult:
        """Fit each column independently with exact pair enumeration."""
        p = X.shape[1]

        coef = np.full((2, p), np.nan, dtype=np.float64)
        n_pairs = np.zeros(p, dtype=np.int64)
        n_obs = np.zeros(p, dtype=np.int64)

        for col in range(p):
            b0, b1, k, m = fit_column(X[:, col], y)
            coef[0, col] = b0
            coef[1, col] = b1
            n_pairs[col] = k
            n_obs[col] = m

        return TheilSenResult(
            coef=coef,
            n_pairs=n_pairs,
            n_obs=n_obs,
            backend=self.name,
            diagnostics=degenerate_diagnostics(n_pairs),
        )

    def get_device_info(self) -> dict:
        """Get backend information."""
        return {
            'backend': 'cpu',
            'precision': 'fp64',
            'library': f'NumPy {np.__version__}',
        }
