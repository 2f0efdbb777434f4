"""
pytheilsen: Theil-Sen robust regression with optional GPU acceleration.

Licensed under GPL-3.0
"""

__version__ = "1.0.0"

# Import main user-facing API
from .theilsen import estimate, theilsen, TheilSen
from ._backends.base import TheilSenResult, ColumnDiagnostic
from ._utils import ShapeError, DegenerateInputWarning
from ._core.least_squares import least_squares
from .datasets import simulate_outlier_line

# Import backend utilities (for advanced users)
from ._backends import get_backend, list_available_backends

__all__ = [
    'estimate',
    'theilsen',
    'TheilSen',
    'TheilSenResult',
    'ColumnDiagnostic',
    'ShapeError',
    'DegenerateInputWarning',
    'least_squares',
    'simulate_outlier_line',
    'get_backend',
    'list_available_backends',
]
