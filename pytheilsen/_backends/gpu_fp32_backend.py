"""
GPU backend using PyTorch with FP32 precision.

NVIDIA CUDA GPUs and Apple MPS.
"""

import numpy as np
import warnings
from typing import Optional, Any

from .base import GPUBackendFP32, TheilSenResult, degenerate_diagnostics
from .pair_budget import check_pair_budget, format_plan_message, resolve_budget


def import_torch():
    """Import torch or explain how to get it."""
    try:
        import torch
    except ImportError:
        raise ImportError(
            "PyTorch required for GPU backend. "
            "Install: pip install torch"
        )
    return torch


def masked_median(torch, values, valid):
    """
    Median along dim 0 of the entries flagged in `valid`.

    Invalid entries are pushed to the end of the sort with +inf, then the
    two middle order statistics of the k valid ones are averaged (they
    coincide for odd k). Columns with k == 0 give NaN.
    """
    sentinel = torch.full_like(values, float('inf'))
    ordered, _ = torch.sort(torch.where(valid, values, sentinel), dim=0)

    k = valid.sum(dim=0)
    lo = torch.div(torch.clamp(k - 1, min=0), 2, rounding_mode='floor')
    hi = torch.div(k, 2, rounding_mode='floor').clamp(max=values.shape[0] - 1)

    med = (ordered.gather(0, lo.unsqueeze(0)) + ordered.gather(0, hi.unsqueeze(0))) / 2
    med = med.squeeze(0)
    return torch.where(k > 0, med, torch.full_like(med, float('nan'))), k


def fit_pair_tensor(torch, X, y, device, dtype, columns_per_block):
    """
    Theil-Sen fit of every column on a torch device.

    Builds the (pairs x columns) slope block for `columns_per_block`
    columns at a time. Numpy in, numpy out.
    """
    n, p = X.shape

    y_dev = torch.from_numpy(y).to(dtype=dtype).to(device)
    i, j = torch.triu_indices(n, n, offset=1, device=device)
    dy = (y_dev[i] - y_dev[j]).unsqueeze(1)
    y_ok = ~torch.isnan(y_dev)

    coef = np.full((2, p), np.nan, dtype=np.float64)
    n_pairs = np.zeros(p, dtype=np.int64)
    n_obs = np.zeros(p, dtype=np.int64)

    for start in range(0, p, columns_per_block):
        stop = min(start + columns_per_block, p)
        x_block = np.ascontiguousarray(X[:, start:stop])
        x_dev = torch.from_numpy(x_block).to(dtype=dtype).to(device)

        # Pairs with a missing value on either side give NaN in dx or dy
        dx = x_dev[i] - x_dev[j]
        valid = (dx != 0) & ~torch.isnan(dx) & ~torch.isnan(dy)
        dx_safe = torch.where(valid, dx, torch.ones_like(dx))
        slopes = dy / dx_safe
        # overflow from a subnormal dx, or inf inputs
        valid = valid & torch.isfinite(slopes)
        b1, k = masked_median(torch, slopes, valid)
        del dx, dx_safe, slopes, valid

        rows = y_ok.unsqueeze(1) & ~torch.isnan(x_dev)
        offsets = y_dev.unsqueeze(1) - b1.unsqueeze(0) * x_dev
        b0, _ = masked_median(torch, offsets, rows & torch.isfinite(offsets))

        coef[0, start:stop] = b0.cpu().double().numpy()
        coef[1, start:stop] = b1.cpu().double().numpy()
        n_pairs[start:stop] = k.cpu().numpy()
        n_obs[start:stop] = rows.sum(dim=0).cpu().numpy()

    return coef, n_pairs, n_obs


def plan_pair_blocks(backend, X: np.ndarray, itemsize: int) -> dict:
    """Check the pair tensor of `backend` against its memory budget."""
    memory = None
    if backend.device.type != 'cpu':
        from .precision_detector import detect_gpu_capabilities
        memory = detect_gpu_capabilities().memory_bytes

    budget = resolve_budget(memory, backend.max_pair_bytes)
    plan = check_pair_budget(X, itemsize, budget)

    if not plan['suitable']:
        raise MemoryError(format_plan_message(plan))

    if plan['warnings']:
        warnings.warn(
            f"\n{backend.name}: {format_plan_message(plan)}",
            UserWarning,
            stacklevel=3
        )
    return plan


class PyTorchBackendFP32(GPUBackendFP32):
    """
    PyTorch GPU backend with FP32 precision.

    Keeps all computation on the device using torch tensors.
    Only converts at entry (numpy → torch) and exit (torch → numpy).

    Requirements:
    - NVIDIA GPU with CUDA support, or Apple Silicon with MPS
    - PyTorch built for that device
    """

    def __init__(self, device: Optional[str] = None,
                 max_pair_bytes: Optional[int] = None):
        """Initialize PyTorch FP32 backend."""
        self.name = "pytorch_fp32"
        self.precision = "fp32"
        self.max_pair_bytes = max_pair_bytes

        self.torch = import_torch()
        self.device = self._select_device(device)

    def _select_device(self, requested: Optional[str]) -> Any:
        """Select CUDA or MPS device. Fails if neither is available."""
        torch = self.torch

        if requested:
            return torch.device(requested)

        if torch.cuda.is_available():
            return torch.device('cuda')

        if hasattr(torch.backends, 'mps') and torch.backends.mps.is_available():
            return torch.device('mps')

        raise RuntimeError(
            "PyTorch GPU backend requires a CUDA or MPS device.\n"
            "Options:\n"
            "  1. Use get_backend('cpu') for CPU (FP64)\n"
            "  2. Install CUDA- or MPS-enabled PyTorch"
        )

    def fit_theil_sen(self, X: np.ndarray, y: np.ndarray) -> TheilSenResult:
        """
        Fit Theil-Sen lines on the device.

        ALL computation happens on the device with torch tensors.
        Only convert at boundaries (entry/exit).
        """
        plan = plan_pair_blocks(self, X, itemsize=4)

        coef, n_pairs, n_obs = fit_pair_tensor(
            self.torch, X, y, self.device, self.torch.float32,
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
            'precision': 'fp32',
            'device': str(self.device),
            'library': f'PyTorch {self.torch.__version__}',
        }
