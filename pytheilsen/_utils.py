"""
Utility functions.

Input validation and the error/warning types shared by every backend.
"""

import numpy as np


class ShapeError(ValueError):
    """Raised when X and y cannot form a set of paired observations."""


class DegenerateInputWarning(UserWarning):
    """A predictor column produced no usable pairwise slope."""


def _check_numeric(a, name):
    """Reject arrays that do not hold real numbers."""
    if a.dtype == bool or not (
        np.issubdtype(a.dtype, np.integer) or np.issubdtype(a.dtype, np.floating)
    ):
        raise TypeError(
            f"{name} must contain real numeric values, got dtype '{a.dtype}'"
        )


def check_array(X, name='X', dtype=np.float64):
    """
    Validate predictor input.

    A 1-D input is taken as a single predictor column. NaN marks a
    missing value and is allowed.
    """
    X = np.asarray(X)
    _check_numeric(X, name)
    X = X.astype(dtype, copy=False)
    if X.ndim == 1:
        X = X[:, np.newaxis]
    if X.ndim != 2:
        raise ShapeError(f"{name} must be 1- or 2-dimensional, got {X.ndim} dimensions")
    if X.shape[1] == 0:
        raise ShapeError(f"{name} must have at least one predictor column")
    return X


def check_vector(y, name='y', dtype=np.float64):
    """Validate response input. An (n, 1) column is flattened."""
    y = np.asarray(y)
    _check_numeric(y, name)
    y = y.astype(dtype, copy=False)
    if y.ndim == 2 and y.shape[1] == 1:
        y = y[:, 0]
    if y.ndim != 1:
        raise ShapeError(f"{name} must be a vector of responses, got shape {y.shape}")
    return y


def check_inputs(X, y):
    """Validate X and y together; returns float64 arrays ready for fitting."""
    X = check_array(X, 'X')
    y = check_vector(y, 'y')
    if X.shape[0] != y.shape[0]:
        raise ShapeError(
            f"The number of rows (observations) of X and y must match: "
            f"{X.shape[0]} != {y.shape[0]}"
        )
    if y.shape[0] < 2:
        raise ShapeError(
            f"At least 2 observations are needed to form a pair, got {y.shape[0]}"
        )
    return X, y
