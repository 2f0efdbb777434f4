"""
Test the R-style TheilSen model interface.
"""

import warnings

import pytest
import numpy as np
import pandas as pd

from pytheilsen import TheilSen, theilsen, DegenerateInputWarning


@pytest.fixture
def river():
    """Two predictors, one of them with a missing value."""
    np.random.seed(11)
    n = 25
    data = pd.DataFrame({
        'year': np.arange(2000, 2000 + n, dtype=float),
        'rainfall': np.random.uniform(300, 900, n),
    })
    data['level'] = 120 + 0.8 * (data['year'] - 2000) + np.random.randn(n)
    data.loc[4, 'rainfall'] = np.nan
    data.loc[[7, 19], 'level'] += 40  # outliers
    return data


class TestModelFromDataFrame:

    def test_named_coefficients(self, river):
        model = theilsen(y='level', X=['year', 'rainfall'], data=river, backend='cpu')

        assert list(model.coef.columns) == ['year', 'rainfall']
        assert list(model.coef.index) == ['Intercept', 'Slope']
        assert model.y_name == 'level'
        np.testing.assert_allclose(model.slope['year'], 0.8, atol=0.25)
        np.testing.assert_allclose(model.coef.values, model.coefficients)

    def test_dataframe_as_X(self, river):
        model = TheilSen(y=river['level'], X=river[['year']], backend='cpu')

        assert model.X_names == ['year']
        assert model.y_name == 'level'

    def test_series_as_X(self, river):
        model = TheilSen(y=river['level'], X=river['year'], backend='cpu')

        assert model.X_names == ['year']
        assert list(model.coef.columns) == ['year']
        np.testing.assert_allclose(model.slope['year'], 0.8, atol=0.25)

    def test_string_y_requires_data(self):
        with pytest.raises(ValueError, match="Must provide data"):
            TheilSen(y='level', X=np.zeros((3, 1)))

    def test_string_X_requires_data(self):
        with pytest.raises(ValueError, match="Must provide data"):
            TheilSen(y=np.zeros(3), X=['year'])

    def test_r_squared_series(self, river):
        model = theilsen(y='level', X=['year', 'rainfall'], data=river, backend='cpu')

        r2 = model.r_squared
        assert isinstance(r2, pd.Series)
        assert r2['year'] > r2['rainfall']


class TestModelArrays:

    def test_default_names(self):
        X = np.column_stack([np.arange(6.0), np.arange(6.0) ** 2])
        model = TheilSen(y=np.arange(6.0), X=X, backend='cpu')

        assert model.X_names == ['x0', 'x1']
        assert model.y_name == 'y'
        assert repr(model) == "TheilSen(n=6, p=2, backend=cpu_fp64)"

    def test_predict_and_residuals(self):
        x = np.array([0.0, 1.0, 2.0, 3.0])
        model = TheilSen(y=[1.0, 3.0, 5.0, 7.0], X=x, backend='cpu')

        np.testing.assert_allclose(model.predict([10.0, -1.0]), [[21.0], [-1.0]])
        np.testing.assert_allclose(model.residuals(), np.zeros((4, 1)), atol=1e-12)

    def test_predict_dataframe(self):
        data = pd.DataFrame({'a': [0.0, 1.0, 2.0], 'b': [1.0, 2.0, 4.0], 'y': [1.0, 2.0, 3.0]})
        model = theilsen(y='y', X=['a', 'b'], data=data, backend='cpu')

        pred = model.predict(pd.DataFrame({'b': [0.0], 'a': [3.0]}))
        assert pred.shape == (1, 2)
        np.testing.assert_allclose(pred[0, 0], 4.0)

    def test_predict_wrong_width(self):
        model = TheilSen(y=[1.0, 2.0, 3.0], X=[[0.0, 1.0], [1.0, 0.0], [2.0, 5.0]], backend='cpu')
        with pytest.raises(ValueError, match="columns"):
            model.predict(np.zeros((2, 3)))


class TestEstimateOptions:

    def test_max_pair_bytes_reaches_backend(self, monkeypatch):
        import importlib
        theilsen_module = importlib.import_module("pytheilsen.theilsen")
        from pytheilsen._backends import get_backend

        calls = []

        def recording_get_backend(backend, **kwargs):
            calls.append((backend, kwargs))
            return get_backend('cpu')

        monkeypatch.setattr(theilsen_module, 'get_backend', recording_get_backend)

        result = theilsen_module.estimate([0, 1, 2], [1, 3, 5], backend='gpu',
                                          max_pair_bytes=4096)

        assert calls == [('gpu', {'use_fp64': None, 'max_pair_bytes': 4096})]
        np.testing.assert_allclose(result.coef[:, 0], [1.0, 2.0])


class TestModelDiagnostics:

    def test_degenerate_column_warns(self):
        X = np.column_stack([np.arange(5.0), np.ones(5)])

        with pytest.warns(DegenerateInputWarning, match="column 1"):
            model = TheilSen(y=np.arange(5.0), X=X, backend='cpu')

        assert [d.kind for d in model.diagnostics] == ['degenerate']
        assert np.isnan(model.slope['x1'])
        assert model.slope['x0'] == 1.0

    def test_warn_disabled(self):
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            model = TheilSen(y=np.arange(5.0), X=np.ones(5), backend='cpu', warn=False)

        assert len(model.diagnostics) == 1

    def test_summary(self, capsys):
        X = np.column_stack([np.arange(5.0), np.ones(5)])
        model = TheilSen(y=np.arange(5.0), X=X, backend='cpu', warn=False)

        model.summary()
        out = capsys.readouterr().out

        assert 'THEIL-SEN REGRESSION RESULTS' in out
        assert 'Diagnostics:' in out
        assert 'cpu_fp64' in out


class TestConfidenceInterval:

    def test_contains_slope(self, river):
        model = theilsen(y='level', X=['year', 'rainfall'], data=river, backend='cpu')
        ci = model.conf_int()

        assert list(ci.columns) == ['lower', 'upper']
        assert np.all(ci['lower'] <= model.slope)
        assert np.all(model.slope <= ci['upper'])

    def test_narrows_with_alpha(self, river):
        model = theilsen(y='level', X=['year'], data=river, backend='cpu')

        wide = model.conf_int(alpha=0.01).iloc[0]
        narrow = model.conf_int(alpha=0.2).iloc[0]

        assert narrow['upper'] - narrow['lower'] <= wide['upper'] - wide['lower']
        assert wide['lower'] <= narrow['lower']

    def test_degenerate_column_is_nan(self):
        model = TheilSen(y=np.arange(5.0), X=np.ones(5), backend='cpu', warn=False)
        ci = model.conf_int()
        assert ci.isna().all().all()
