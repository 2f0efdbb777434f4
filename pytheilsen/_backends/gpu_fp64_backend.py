"""
GPU backend using PyTorch with FP64 precision.

For data center GPUs: A100, H100, V100.
"""

import numpy as np
import warnings
from typing import Optional

from .gpu_fp32_backend import fit_pair_tensor, import_torch, plan_pair_blocks
from .precision_detector import detect_gpu_capabilities, validate_fp64_request
from .base import GPUBackendFP64, TheilSenResult, degenerate_diagnostics


class PyTorchBackendFP64(GPUBackendFP64):
    """
    PyTorch GPU backend with FP64 precision.

    Same pair-tensor algorithm as FP32 but in float64, so medians match
    the CPU backend exactly. Only recommended for data center GPUs with
    full FP64 support.
    """

    def __init__(self, device: Optional[str] = None,
                 max_pair_bytes: Optional[int] = None):
        """Initialize PyTorch FP64 backend."""
        self.name = "pytorch_fp64"
        self.precision = "fp64"
        self.max_pair_bytes = max_pair_bytes
        self.torch = import_torch()

        if device == 'mps':
            raise RuntimeError(
                "FP64 not supported on Apple MPS. "
                "Use FP32 backend or CPU."
            )

        if device is None:
            if self.torch.cuda.is_available():
                device = 'cuda'
            else:
                warnings.warn("No CUDA GPU available, running the FP64 pair tensor on CPU")
                device = 'cpu'

        self.device = self.torch.device(device)

        # warns when the card throttles FP64
        if self.device.type == 'cuda':
            validate_fp64_request(detect_gpu_capabilities(), True)

    def fit_theil_sen(self, X: np.ndarray, y: np.ndarray) -> TheilSenResult:
        """
        Fit Theil-Sen lines on the device with FP64 precision.

        Same algorithm as FP32 but uses double precision.
        """
        plan = plan_pair_blocks(self, X, itemsize=8)

        coef, n_pairs, n_obs = fit_pair_tensor(
            self.torch, X, y, self.device, self.torch.float64,
            plan['columns_per_block']
        )

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
            'backend': 'gpu',
            'precision': 'fp64',
            'device': str(self.device),
            'library': f'PyTorch {self.torch.__version__}',
        }
