"""
Test backend implementations with auto-detection.

Tests appropriate backends based on available hardware:
- CPU: Always tested
- PyTorch on the CPU device: Tested if torch is installed
- PyTorch CUDA / MPS: see test_gpu_backends.py
"""

import pytest
import numpy as np
from pytheilsen._backends import (
    get_backend,
    list_available_backends,
    print_backend_info,
)
from pytheilsen._backends.precision_detector import (
    PrecisionSupport,
    GPUCapabilities,
    detect_gpu_capabilities,
    recommend_precision,
    validate_fp64_request,
    _classify_nvidia_gpu,
)
from pytheilsen._backends.pair_budget import (
    check_pair_budget,
    format_plan_message,
    pair_count,
    resolve_budget,
    DEFAULT_BUDGET_BYTES,
)


# Detect hardware once at module level
GPU_CAPS = detect_gpu_capabilities()


def make_data(seed=42, n=40, p=3):
    np.random.seed(seed)
    X = np.random.randn(n, p)
    y = 1.0 + X @ np.linspace(-1, 2, p) + 0.2 * np.random.randn(n)
    X[n // 8, 0] = np.nan
    y[n // 4] = np.nan
    X[:, p - 1] = np.round(X[:, p - 1])  # ties
    return X, y


class TestBackendDetection:
    """Test hardware detection and backend availability."""

    def test_detect_gpu_capabilities(self):
        """Test GPU detection returns valid capabilities."""
        caps = detect_gpu_capabilities()
        assert caps.gpu_name is not None
        assert caps.gpu_type in ['cuda', 'mps', 'none']
        assert caps.has_gpu == (caps.gpu_type != 'none')

    def test_list_backends(self):
        """Test backend listing."""
        backends = list_available_backends()
        assert isinstance(backends, list)
        assert 'cpu' in backends  # CPU always available

        if GPU_CAPS.gpu_type == 'cuda':
            assert 'pytorch' in backends
        if GPU_CAPS.gpu_type == 'mps':
            assert 'mps' in backends

    def test_print_backend_info(self, capsys):
        """Test diagnostic printing."""
        print_backend_info()
        captured = capsys.readouterr()
        assert 'Backend Status' in captured.out
        assert 'CPU' in captured.out

    def test_unknown_backend(self):
        with pytest.raises(ValueError, match="Unknown backend"):
            get_backend('tpu')

    @pytest.mark.skipif(GPU_CAPS.has_gpu, reason="GPU present")
    def test_gpu_request_without_gpu(self):
        with pytest.raises(ValueError, match="No GPU detected"):
            get_backend('gpu')

    @pytest.mark.skipif(GPU_CAPS.has_gpu, reason="GPU present")
    def test_auto_falls_back_to_cpu(self):
        assert get_backend('auto').name == 'cpu_fp64'


class TestPrecisionDetector:
    """FP64 classification and precision recommendation."""

    @pytest.mark.parametrize("name, support, ratio", [
        ("NVIDIA A100-SXM4-40GB", PrecisionSupport.FULL_FP64, 1 / 2),
        ("Tesla V100-PCIE-16GB", PrecisionSupport.FULL_FP64, 1 / 2),
        ("NVIDIA GeForce RTX 4090", PrecisionSupport.GIMPED_FP64, 1 / 64),
        ("NVIDIA GeForce GTX 1080 Ti", PrecisionSupport.GIMPED_FP64, 1 / 32),
    ])
    def test_classify_known_gpus(self, name, support, ratio):
        assert _classify_nvidia_gpu(name) == (support, ratio)

    def test_classify_unknown_gpu_warns(self):
        with pytest.warns(UserWarning, match="Unknown NVIDIA GPU"):
            support, _ = _classify_nvidia_gpu("Mystery Accelerator 9000")
        assert support == PrecisionSupport.GIMPED_FP64

    def _caps(self, support, ratio=1.0, recommended=False):
        return GPUCapabilities(
            has_gpu=True,
            gpu_name="test gpu",
            gpu_type="cuda",
            fp64_support=support,
            fp64_throughput_ratio=ratio,
            recommended_fp64=recommended,
        )

    def test_fp64_on_mps_rejected(self):
        with pytest.raises(RuntimeError, match="not supported"):
            validate_fp64_request(self._caps(PrecisionSupport.NO_FP64), True)

    def test_fp64_on_gimped_warns(self):
        caps = self._caps(PrecisionSupport.GIMPED_FP64, ratio=1 / 64)
        with pytest.warns(UserWarning, match="gimped FP64"):
            assert recommend_precision(caps, True) is True

    def test_auto_precision_follows_hardware(self):
        caps = self._caps(PrecisionSupport.FULL_FP64, ratio=0.5, recommended=True)
        assert recommend_precision(caps, None) is True
        assert recommend_precision(caps, False) is False


class TestPairBudget:
    """Column blocking of the pair tensor."""

    def test_pair_count(self):
        assert pair_count(2) == 1
        assert pair_count(10) == 45

    def test_single_block_when_budget_is_large(self):
        X = np.random.randn(10, 4)
        plan = check_pair_budget(X, itemsize=8, budget_bytes=DEFAULT_BUDGET_BYTES)

        assert plan['suitable']
        assert plan['columns_per_block'] == 4
        assert plan['n_blocks'] == 1
        assert plan['warnings'] == []

    def test_split_into_blocks(self):
        X = np.random.randn(10, 3)
        # triu indices (2 x 8 bytes) + exactly one FP64 column
        budget = 16 * 45 + 45 * (3 * 8 + 9) + 100
        plan = check_pair_budget(X, itemsize=8, budget_bytes=budget)

        assert plan['suitable']
        assert plan['columns_per_block'] == 1
        assert plan['n_blocks'] == 3
        assert any('3 blocks' in w for w in plan['warnings'])

    def test_unsuitable(self):
        plan = check_pair_budget(np.random.randn(100, 1), itemsize=4, budget_bytes=1000)

        assert not plan['suitable']
        assert "does not fit" in format_plan_message(plan)

    def test_fp32_collision_warning(self):
        X = np.array([[1.0], [1.0 + 1e-12], [2.0], [3.0]])

        plan = check_pair_budget(X, itemsize=4, budget_bytes=DEFAULT_BUDGET_BYTES)
        assert any('FP32' in w for w in plan['warnings'])

        plan64 = check_pair_budget(X, itemsize=8, budget_bytes=DEFAULT_BUDGET_BYTES)
        assert plan64['warnings'] == []

    def test_resolve_budget(self):
        assert resolve_budget(None) == DEFAULT_BUDGET_BYTES
        assert resolve_budget(8 * 2**30) == 4 * 2**30
        assert resolve_budget(8 * 2**30, max_pair_bytes=1234) == 1234


class TestCPUBackend:
    """Test CPU backend (always available)."""

    def test_cpu_backend_creation(self):
        """Test CPU backend initializes correctly."""
        backend = get_backend('cpu')
        assert backend is not None
        assert backend.name == 'cpu_fp64'
        assert backend.precision == 'fp64'

    def test_cpu_device_info(self):
        """Test CPU backend device info."""
        info = get_backend('cpu').get_device_info()
        assert info['backend'] == 'cpu'
        assert info['precision'] == 'fp64'

    def test_cpu_simple_regression(self):
        """Test result structure and numerical sanity on CPU."""
        X, y = make_data()
        result = get_backend('cpu').fit_theil_sen(X, y)

        assert result.coef.shape == (2, 3)
        assert result.backend == 'cpu_fp64'
        np.testing.assert_array_equal(result.n_obs, [38, 39, 39])
        assert result.n_pairs[0] == 38 * 37 // 2
        assert np.all(np.isfinite(result.coef))


class TestPyTorchOnCPU:
    """PyTorch backends on the CPU device (no GPU needed)."""

    def setup_method(self):
        self.torch = pytest.importorskip("torch")

    def test_fp64_matches_numpy(self):
        from pytheilsen._backends.gpu_fp64_backend import PyTorchBackendFP64

        X, y = make_data()
        cpu_result = get_backend('cpu').fit_theil_sen(X, y)
        torch_result = PyTorchBackendFP64(device='cpu').fit_theil_sen(X, y)

        assert torch_result.backend == 'pytorch_fp64'
        np.testing.assert_allclose(torch_result.coef, cpu_result.coef, rtol=1e-12, atol=1e-12)
        np.testing.assert_array_equal(torch_result.n_pairs, cpu_result.n_pairs)
        np.testing.assert_array_equal(torch_result.n_obs, cpu_result.n_obs)

    def test_fp32_close_to_numpy(self):
        from pytheilsen._backends.gpu_fp32_backend import PyTorchBackendFP32

        X, y = make_data()
        cpu_result = get_backend('cpu').fit_theil_sen(X, y)
        torch_result = PyTorchBackendFP32(device='cpu').fit_theil_sen(X, y)

        np.testing.assert_allclose(torch_result.coef, cpu_result.coef, rtol=1e-4, atol=1e-4)

    def test_degenerate_column(self):
        from pytheilsen._backends.gpu_fp64_backend import PyTorchBackendFP64

        X = np.column_stack([np.arange(6.0), np.ones(6)])
        y = np.arange(6.0) * 2 + 1

        result = PyTorchBackendFP64(device='cpu').fit_theil_sen(X, y)

        np.testing.assert_allclose(result.coef[:, 0], [1.0, 2.0])
        assert np.all(np.isnan(result.coef[:, 1]))
        assert [d.column for d in result.diagnostics] == [1]

    def test_non_finite_slopes_dropped(self):
        """Infinite x and overflowing slopes are excluded like on CPU."""
        from pytheilsen._backends.gpu_fp64_backend import PyTorchBackendFP64

        X = np.array([[np.inf, 0.0], [np.inf, 5e-324], [1.0, 1.0], [2.0, 2.0], [3.0, 3.0]])
        y = np.array([1.0, 2.0, 2.0, 4.0, 6.0])

        cpu_result = get_backend('cpu').fit_theil_sen(X, y)
        torch_result = PyTorchBackendFP64(device='cpu').fit_theil_sen(X, y)

        assert np.all(np.isfinite(torch_result.coef))
        np.testing.assert_allclose(torch_result.coef, cpu_result.coef)
        np.testing.assert_array_equal(torch_result.n_pairs, cpu_result.n_pairs)
        np.testing.assert_array_equal(torch_result.n_pairs, [9, 9])

    def test_column_blocks_match_single_block(self):
        from pytheilsen._backends.gpu_fp64_backend import PyTorchBackendFP64

        X, y = make_data(n=10)
        budget = 16 * 45 + 45 * (3 * 8 + 9) + 100

        whole = PyTorchBackendFP64(device='cpu').fit_theil_sen(X, y)
        with pytest.warns(UserWarning, match="blocks"):
            blocked = PyTorchBackendFP64(device='cpu', max_pair_bytes=budget).fit_theil_sen(X, y)

        np.testing.assert_array_equal(blocked.coef, whole.coef)

    def test_budget_too_small(self):
        from pytheilsen._backends.gpu_fp64_backend import PyTorchBackendFP64

        X, y = make_data(n=50)
        with pytest.raises(MemoryError, match="does not fit"):
            PyTorchBackendFP64(device='cpu', max_pair_bytes=1024).fit_theil_sen(X, y)

    def test_fp64_rejects_mps(self):
        from pytheilsen._backends.gpu_fp64_backend import PyTorchBackendFP64

        with pytest.raises(RuntimeError, match="FP64 not supported"):
            PyTorchBackendFP64(device='mps')
