"""
Backend selection and management.

Provides unified interface for CPU (NumPy), NVIDIA GPU and Apple Silicon
GPU (PyTorch CUDA / MPS).
"""

from typing import Optional
import warnings

from .base import BackendBase, TheilSenResult, ColumnDiagnostic
from .precision_detector import (
    detect_gpu_capabilities,
    recommend_precision,
    GPUCapabilities
)
from .pair_budget import check_pair_budget

# Try importing CPU backend (always available)
try:
    from .cpu_fp64_backend import CPUBackendFP64
    CPU_AVAILABLE = True
except ImportError:
    CPU_AVAILABLE = False
    warnings.warn("CPU backend unavailable - installation error!")

# PyTorch backends need torch itself, not just the modules
try:
    import torch  # noqa: F401
    from .gpu_fp32_backend import PyTorchBackendFP32
    from .gpu_fp64_backend import PyTorchBackendFP64
    PYTORCH_AVAILABLE = True
except ImportError:
    PYTORCH_AVAILABLE = False


def _mps_available() -> bool:
    if not PYTORCH_AVAILABLE:
        return False
    return hasattr(torch.backends, 'mps') and torch.backends.mps.is_available()


def get_backend(backend: str = 'auto', use_fp64: Optional[bool] = None,
                max_pair_bytes: Optional[int] = None) -> BackendBase:
    """
    Get computational backend.

    Parameters
    ----------
    backend : str
        Backend selection:
        - 'auto': Auto-select based on hardware
        - 'cpu': CPU with NumPy (FP64, streams one column at a time)
        - 'gpu': Any available GPU (PyTorch CUDA or MPS)
        - 'pytorch': Force PyTorch CUDA (NVIDIA only)
        - 'mps': Force MPS (Apple Silicon only, FP32)

    use_fp64 : bool or None
        Precision preference:
        - None: Auto-detect
        - True: Force FP64 (CPU or professional NVIDIA GPU)
        - False: Allow FP32 (consumer GPU or MPS)

    max_pair_bytes : int or None
        Memory budget for the pairwise slope tensor of GPU backends.
        Defaults to half of the detected device memory.

    Returns
    -------
    BackendBase
        Backend instance

    Examples
    --------
    >>> # Exact medians, any machine
    >>> backend = get_backend('cpu')

    >>> # Use any GPU
    >>> backend = get_backend('gpu')
    """

    if backend == 'auto':
        caps = detect_gpu_capabilities()
        use_fp64_final = recommend_precision(caps, use_fp64)

        if use_fp64_final:
            if caps.has_gpu and caps.recommended_fp64 and PYTORCH_AVAILABLE:
                return PyTorchBackendFP64(max_pair_bytes=max_pair_bytes)
            if not CPU_AVAILABLE:
                raise RuntimeError("CPU backend unavailable!")
            return CPUBackendFP64()

        # FP32 allowed - use GPU if available
        if caps.has_gpu and PYTORCH_AVAILABLE:
            return PyTorchBackendFP32(device=caps.gpu_type,
                                      max_pair_bytes=max_pair_bytes)

        if not CPU_AVAILABLE:
            raise RuntimeError("No backends available!")
        return CPUBackendFP64()

    elif backend == 'cpu':
        if not CPU_AVAILABLE:
            raise RuntimeError("CPU backend unavailable!")
        return CPUBackendFP64()

    elif backend == 'gpu':
        caps = detect_gpu_capabilities()

        if not caps.has_gpu:
            raise ValueError(
                "No GPU detected.\n"
                "Options:\n"
                "  - Use backend='cpu'\n"
                "  - Install PyTorch with CUDA for NVIDIA\n"
                "  - Install PyTorch with MPS for Apple Silicon"
            )

        if caps.gpu_type == 'cuda':
            return get_backend('pytorch', use_fp64=use_fp64,
                               max_pair_bytes=max_pair_bytes)
        elif caps.gpu_type == 'mps':
            return get_backend('mps', use_fp64=use_fp64,
                               max_pair_bytes=max_pair_bytes)
        else:
            raise RuntimeError(f"Unsupported GPU type: {caps.gpu_type}")

    elif backend == 'pytorch':
        if not PYTORCH_AVAILABLE:
            raise RuntimeError(
                "PyTorch backend unavailable.\n"
                "Install: pip install torch"
            )
        caps = detect_gpu_capabilities()
        if caps.gpu_type != 'cuda':
            raise RuntimeError(
                "PyTorch backend requires an NVIDIA CUDA GPU.\n"
                "Use backend='cpu' or backend='mps'."
            )

        if recommend_precision(caps, use_fp64):
            return PyTorchBackendFP64(device='cuda', max_pair_bytes=max_pair_bytes)
        return PyTorchBackendFP32(device='cuda', max_pair_bytes=max_pair_bytes)

    elif backend == 'mps':
        if not _mps_available():
            raise RuntimeError(
                "MPS backend unavailable.\n"
                "Install PyTorch with MPS support"
            )
        if use_fp64:
            raise RuntimeError(
                "FP64 not supported on Apple MPS. "
                "Use use_fp64=False or backend='cpu'."
            )
        return PyTorchBackendFP32(device='mps', max_pair_bytes=max_pair_bytes)

    else:
        raise ValueError(
            f"Unknown backend: '{backend}'\n"
            f"Valid options: 'auto', 'cpu', 'gpu', 'pytorch', 'mps'"
        )


def list_available_backends() -> list:
    """List names of available backends."""
    backends = []
    if CPU_AVAILABLE:
        backends.append('cpu')
    if PYTORCH_AVAILABLE and torch.cuda.is_available():
        backends.append('pytorch')
    if _mps_available():
        backends.append('mps')
    return backends


def print_backend_info():
    """Print detailed backend information (diagnostic)."""
    caps = detect_gpu_capabilities()

    print("pytheilsen Backend Status")
    print("=" * 50)
    print(f"\nAvailable Backends:")
    print(f"  CPU (FP64):            {'✓' if CPU_AVAILABLE else '✗'} - streamed pairs, exact medians")
    print(f"  PyTorch (FP32/FP64):   {'✓' if PYTORCH_AVAILABLE else '✗'} - pair tensor on device")
    print(f"  MPS (FP32):            {'✓' if _mps_available() else '✗'} - pair tensor on Apple GPU")

    print(f"\nHardware Detection:")
    if caps.has_gpu:
        print(f"  GPU Type: {caps.gpu_type}")
        print(f"  GPU Name: {caps.gpu_name}")
        print(f"  FP64 Support: {caps.fp64_support.value}")
    else:
        print(f"  No GPU detected")

    print(f"\nRecommended Backend:")
    try:
        backend = get_backend('auto')
        print(f"  {backend.name}")
    except (RuntimeError, ImportError) as e:
        print(f"  Error: {e}")


# Export main interface
__all__ = [
    'get_backend',
    'list_available_backends',
    'print_backend_info',
    'BackendBase',
    'TheilSenResult',
    'ColumnDiagnostic',
    'GPUCapabilities',
    'detect_gpu_capabilities',
    'check_pair_budget',
    'CPU_AVAILABLE',
    'PYTORCH_AVAILABLE',
]


if __name__ == "__main__":
    print_backend_info()
