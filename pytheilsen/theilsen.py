"""
Theil-Sen regression with R-style interface and output.

This is the user-facing API.
"""

import warnings

import numpy as np
import pandas as pd
from typing import Optional, Union, List

from ._backends import get_backend
from ._backends.base import BackendBase, TheilSenResult
from ._core.estimator import fit_theil_sen
from ._core.fit_stats import slope_confidence_interval
from ._utils import check_inputs, DegenerateInputWarning


def estimate(
    X,
    y,
    r_squared: bool = False,
    backend: Union[str, BackendBase] = 'cpu',
    use_fp64: Optional[bool] = None,
    max_pair_bytes: Optional[int] = None,
) -> TheilSenResult:
    """
    Theil-Sen intercept and slope for each predictor column.

    Every column of X is an independent simple regression on y, not a
    joint multiple regression. NaN in X or y marks a missing value.

    Parameters
    ----------
    X : array-like, shape (n, p) or (n,)
        Predictor columns, n >= 2
    y : array-like, shape (n,)
        Response
    r_squared : bool
        Also compute the unadjusted R² of each robust line
    backend : str or backend instance
        'cpu' (default, exact), 'auto', 'gpu', 'pytorch', 'mps'
    use_fp64 : bool, optional
        Precision preference for GPU backends
    max_pair_bytes : int, optional
        Memory budget for the GPU pair tensor

    Returns
    -------
    TheilSenResult
        coef has shape (2, p): intercepts in row 0, slopes in row 1.
        Columns without a usable pair hold NaN and are listed in
        result.diagnostics; no warning is raised here.

    Raises
    ------
    TypeError
        Non-numeric X or y
    ShapeError
        Mismatched row counts, fewer than 2 observations, bad dimensions

    Examples
    --------
    >>> result = estimate([[0], [1], [2], [3]], [0, 2, 4, 6])
    >>> result.coef
    array([[0.],
           [2.]])
    """
    X, y = check_inputs(X, y)
    if isinstance(backend, str):
        backend = get_backend(backend, use_fp64=use_fp64,
                              max_pair_bytes=max_pair_bytes)
    return fit_theil_sen(X, y, r_squared=r_squared, backend=backend)


class TheilSen:
    """
    Fit Theil-Sen robust regression lines (one per predictor).

    Slopes are medians of all pairwise slopes, intercepts medians of
    y - slope * x. Insensitive to a bounded fraction of outliers.

    Examples
    --------
    >>> import pandas as pd
    >>> from pytheilsen import theilsen
    >>>
    >>> data = pd.read_csv('river_levels.csv')
    >>>
    >>> model = theilsen(y='level', X=['year', 'rainfall'], data=data)
    >>> model.summary()
    >>>
    >>> model.coef          # Intercept / Slope per predictor
    >>> model.r_squared     # Unadjusted R² of each robust line
    >>> model.conf_int()    # Sen confidence interval for the slopes
    >>> model.predict(new_data)
    """

    def __init__(
        self,
        y: Union[str, np.ndarray],
        X: Union[List[str], np.ndarray],
        data: Optional[pd.DataFrame] = None,
        backend: str = 'auto',
        use_fp64: Optional[bool] = None,
        max_pair_bytes: Optional[int] = None,
        warn: bool = True,
    ):
        """
        Fit Theil-Sen regression lines.

        Parameters
        ----------
        y : str or array
            Response variable
            - If string: column name in data
            - If array: numeric values
        X : list of str or array
            Predictor variables, each fitted separately
            - If list of strings: column names in data
            - If array or DataFrame: numeric matrix (n × p)
        data : DataFrame, optional
            Dataset containing y and X variables
        backend : str
            Computational backend: 'auto', 'cpu', 'gpu', 'pytorch', 'mps'
        use_fp64 : bool, optional
            Force double precision on GPU backends
        max_pair_bytes : int, optional
            Memory budget for the GPU pair tensor
        warn : bool
            Re-emit diagnostics as DegenerateInputWarning
        """
        if isinstance(y, str):
            if data is None:
                raise ValueError("Must provide data when y is a string")
            y_values = data[y].values
            self.y_name = y
        else:
            y_values = y
            self.y_name = getattr(y, 'name', None) or 'y'

        if isinstance(X, list) and X and all(isinstance(x, str) for x in X):
            if data is None:
                raise ValueError("Must provide data when X is list of strings")
            X_values = data[X].values
            X_names = list(X)
        elif isinstance(X, pd.DataFrame):
            X_values = X.values
            X_names = [str(c) for c in X.columns]
        elif isinstance(X, pd.Series) and X.name is not None:
            X_values = X.values
            X_names = [str(X.name)]
        else:
            X_values = X
            X_names = None

        self.X_values, self.y_values = check_inputs(X_values, y_values)
        if X_names is None:
            X_names = [f'x{i}' for i in range(self.X_values.shape[1])]
        self.X_names = X_names

        self.n_obs = len(self.y_values)

        self.backend = get_backend(backend, use_fp64=use_fp64,
                                   max_pair_bytes=max_pair_bytes)
        self._result = fit_theil_sen(
            self.X_values,
            self.y_values,
            r_squared=True,
            backend=self.backend,
        )

        if warn:
            for diagnostic in self._result.diagnostics:
                warnings.warn(diagnostic.message, DegenerateInputWarning, stacklevel=2)

    @property
    def result(self) -> TheilSenResult:
        """Raw backend result."""
        return self._result

    @property
    def coefficients(self) -> np.ndarray:
        """Coefficients as a (2, p) array."""
        return self._result.coef

    @property
    def coef(self) -> pd.DataFrame:
        """Named coefficients (rows 'Intercept' and 'Slope')."""
        return pd.DataFrame(self._result.coef, index=['Intercept', 'Slope'],
                            columns=self.X_names)

    @property
    def intercept(self) -> pd.Series:
        return pd.Series(self._result.coef[0], index=self.X_names, name='Intercept')

    @property
    def slope(self) -> pd.Series:
        return pd.Series(self._result.coef[1], index=self.X_names, name='Slope')

    @property
    def r_squared(self) -> pd.Series:
        """Unadjusted R² of each robust line (may be negative)."""
        return pd.Series(self._result.r_squared, index=self.X_names, name='R²')

    @property
    def diagnostics(self):
        return list(self._result.diagnostics)

    def conf_int(self, alpha: float = 0.05) -> pd.DataFrame:
        """
        Sen confidence intervals for the slopes.

        Parameters
        ----------
        alpha : float
            Significance level (default: 0.05 for 95% CI)

        Returns
        -------
        DataFrame
            Confidence intervals with columns 'lower' and 'upper'
        """
        bounds = [
            slope_confidence_interval(self.X_values[:, p], self.y_values, alpha)
            for p in range(self.X_values.shape[1])
        ]
        return pd.DataFrame(bounds, columns=['lower', 'upper'], index=self.X_names)

    def predict(self, newdata: Union[pd.DataFrame, np.ndarray]) -> np.ndarray:
        """
        Predict the response from each predictor's line.

        Parameters
        ----------
        newdata : DataFrame or array
            New predictor values
            - If DataFrame: must have columns matching self.X_names
            - If array: must have the same number of columns as X

        Returns
        -------
        array, shape (m, p)
            Column p holds intercept[p] + slope[p] * newdata[:, p]
        """
        if isinstance(newdata, pd.DataFrame):
            X_new = newdata[self.X_names].values.astype(np.float64)
        else:
            X_new = np.asarray(newdata, dtype=np.float64)
        if X_new.ndim == 1:
            X_new = X_new[:, np.newaxis]
        if X_new.shape[1] != len(self.X_names):
            raise ValueError(
                f"newdata has {X_new.shape[1]} columns, model has {len(self.X_names)}"
            )

        b0, b1 = self._result.coef
        return b0[np.newaxis, :] + b1[np.newaxis, :] * X_new

    def residuals(self) -> np.ndarray:
        """Residuals y - fitted for each predictor's line, shape (n, p)."""
        return self.y_values[:, np.newaxis] - self.predict(self.X_values)

    def summary(self):
        """Print a summary of the fitted lines."""
        result = self._result
        ci = self.conf_int()

        print()
        print("=" * 80)
        print("THEIL-SEN REGRESSION RESULTS")
        print("=" * 80)
        print()

        print(f"Dependent variable: {self.y_name}")
        print(f"Number of observations: {self.n_obs}")
        print("Each predictor is fitted as a separate simple regression.")
        print()

        print("Coefficients:")
        print("-" * 80)
        print(f"{'Variable':<16} {'Intercept':>11} {'Slope':>11} {'95% CI (slope)':>24} "
              f"{'R²':>8} {'Pairs':>7}")
        print("-" * 80)

        for p, name in enumerate(self.X_names):
            b0, b1 = result.coef[:, p]
            lower, upper = ci.iloc[p]
            ci_str = f"[{lower:.4f}, {upper:.4f}]" if not np.isnan(lower) else 'NA'
            r2 = result.r_squared[p]
            r2_str = f"{r2:.4f}" if not np.isnan(r2) else 'NA'
            print(f"{name:<16} {b0:>11.4f} {b1:>11.4f} {ci_str:>24} "
                  f"{r2_str:>8} {result.n_pairs[p]:>7}")

        print("-" * 80)

        if result.diagnostics:
            print()
            print("Diagnostics:")
            for diagnostic in result.diagnostics:
                print(f"  [{diagnostic.kind}] {diagnostic.message}")

        print()
        print(f"Backend: {self.backend.name}")
        print("=" * 80)
        print()

    def __repr__(self):
        return f"TheilSen(n={self.n_obs}, p={len(self.X_names)}, backend={self.backend.name})"


def theilsen(y, X, data=None, **kwargs):
    """
    Fit Theil-Sen regression lines (convenience function).

    Parameters
    ----------
    y : str or array
        Response variable
    X : list of str or array
        Predictor variables
    data : DataFrame, optional
        Dataset
    **kwargs
        Additional arguments passed to TheilSen

    Returns
    -------
    TheilSen
        Fitted model object

    Examples
    --------
    >>> model = theilsen(y='level', X=['year'], data=gauges)
    >>> model.slope
    >>> model.conf_int(alpha=0.1)
    """
    return TheilSen(y=y, X=X, data=data, **kwargs)
