"""
Abstract base classes for backends.

Defines the interface all backends must implement.
"""

from abc import ABC, abstractmethod
import numpy as np
from typing import List, Optional
from dataclasses import dataclass, field


@dataclass(frozen=True)
class ColumnDiagnostic:
    """Non-fatal condition found while fitting one predictor column."""
    column: int
    kind: str       # 'degenerate' or 'undefined_r_squared'
    message: str


@dataclass
class TheilSenResult:
    """Complete Theil-Sen regression results."""
    coef: np.ndarray          # (2, p): intercepts, slopes
    n_pairs: np.ndarray       # surviving pairwise slopes per column
    n_obs: np.ndarray         # complete rows per column
    backend: str
    r_squared: Optional[np.ndarray] = None
    diagnostics: List[ColumnDiagnostic] = field(default_factory=list)

    @property
    def intercept(self) -> np.ndarray:
        return self.coef[0]

    @property
    def slope(self) -> np.ndarray:
        return self.coef[1]


def degenerate_diagnostics(n_pairs: np.ndarray) -> List[ColumnDiagnostic]:
    """One diagnostic per column left without a usable pairwise slope."""
    return [
        ColumnDiagnostic(
            column=int(p),
            kind='degenerate',
            message=(
                f"Predictor column {p} has no pair of complete observations "
                f"with distinct x values (e.g. all x identical); "
                f"slope and intercept are NaN."
            ),
        )
        for p in np.flatnonzero(n_pairs == 0)
    ]


class BackendBase(ABC):
    """Abstract base class for all backends."""

    @abstractmethod
    def fit_theil_sen(self, X: np.ndarray, y: np.ndarray) -> TheilSenResult:
        """
        Fit one Theil-Sen line per predictor column.

        Backends implement ALL computation internally using their
        native types, only converting at entry/exit.

        Parameters
        ----------
        X : ndarray, shape (n, p)
            Validated float64 predictors (NaN = missing)
        y : ndarray, shape (n,)
            Validated float64 response (NaN = missing)

        Returns
        -------
        TheilSenResult
            Coefficients and per-column counts (all numpy arrays)
        """
        pass

    @abstractmethod
    def get_device_info(self) -> dict:
        """Get backend information."""
        pass


class CPUBackend(BackendBase):
    """CPU backend base class (always FP64)."""
    pass


class GPUBackendFP32(BackendBase):
    """GPU backend base class for FP32."""
    pass


class GPUBackendFP64(BackendBase):
    """GPU backend base class for FP64."""
    pass
