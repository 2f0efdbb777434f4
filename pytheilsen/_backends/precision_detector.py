"""
Hardware capability detection for pytheilsen.

Finds the available GPU, how well it handles FP64, and how much memory
the pairwise slope tensor may occupy on it.
"""

import warnings
from dataclasses import dataclass
from typing import Optional, Tuple
from enum import Enum


class PrecisionSupport(Enum):
    """FP64 support level for hardware."""
    NO_GPU = "no_gpu"           # No GPU available
    NO_FP64 = "no_fp64"          # GPU exists but no FP64 (Apple MPS)
    GIMPED_FP64 = "gimped_fp64"  # FP64 exists but slow (consumer NVIDIA)
    FULL_FP64 = "full_fp64"      # Full-speed FP64 (A100, H100)


# Substring of the CUDA device name -> (support, FP64/FP32 throughput)
_NVIDIA_FP64_TABLE = (
    (('A100', 'A800', 'H100', 'H800', 'H200', 'V100', 'P100'),
     PrecisionSupport.FULL_FP64, 1 / 2),
    (('RTX 50', 'RTX 40', 'RTX 30', 'RTX A'),
     PrecisionSupport.GIMPED_FP64, 1 / 64),
    (('RTX 20', 'GTX', 'TITAN'),
     PrecisionSupport.GIMPED_FP64, 1 / 32),
)


@dataclass
class GPUCapabilities:
    """
    GPU capability information.

    Attributes
    ----------
    has_gpu : bool
        Whether any GPU is available
    gpu_name : str
        Human-readable GPU name
    gpu_type : str
        Device family: 'cuda', 'mps', or 'none'
    fp64_support : PrecisionSupport
        Level of FP64 support
    fp64_throughput_ratio : float
        Ratio of FP64 to FP32 throughput
    recommended_fp64 : bool
        Whether FP64 is recommended
    memory_bytes : int or None
        Device memory usable for the pair tensor (None if unknown)
    """
    has_gpu: bool
    gpu_name: str
    gpu_type: str
    fp64_support: PrecisionSupport
    fp64_throughput_ratio: float
    recommended_fp64: bool
    memory_bytes: Optional[int] = None


def detect_gpu_capabilities() -> GPUCapabilities:
    """
    Detect GPU hardware, FP64 capabilities and memory.

    Returns
    -------
    GPUCapabilities
        Detected hardware capabilities
    """
    for detect in (_detect_cuda_capabilities, _detect_mps_capabilities):
        caps = detect()
        if caps is not None:
            return caps

    return GPUCapabilities(
        has_gpu=False,
        gpu_name="CPU only",
        gpu_type="none",
        fp64_support=PrecisionSupport.NO_GPU,
        fp64_throughput_ratio=1.0,
        recommended_fp64=True  # CPU always supports FP64
    )


def _detect_cuda_capabilities() -> Optional[GPUCapabilities]:
    """Detect NVIDIA CUDA GPU capabilities."""
    try:
        import torch
    except ImportError:
        return None

    if not torch.cuda.is_available():
        return None

    gpu_name = torch.cuda.get_device_name(0)
    support, ratio = _classify_nvidia_gpu(gpu_name)

    return GPUCapabilities(
        has_gpu=True,
        gpu_name=gpu_name,
        gpu_type="cuda",
        fp64_support=support,
        fp64_throughput_ratio=ratio,
        recommended_fp64=support == PrecisionSupport.FULL_FP64,
        memory_bytes=int(torch.cuda.get_device_properties(0).total_memory),
    )


def _detect_mps_capabilities() -> Optional[GPUCapabilities]:
    """Detect Apple MPS GPU capabilities."""
    try:
        import torch
    except ImportError:
        return None

    if not (hasattr(torch.backends, 'mps') and torch.backends.mps.is_available()):
        return None

    # Older PyTorch releases do not report the MPS memory limit
    recommended_max = getattr(getattr(torch, 'mps', None), 'recommended_max_memory', None)
    memory = int(recommended_max()) if recommended_max is not None else None

    return GPUCapabilities(
        has_gpu=True,
        gpu_name="Apple MPS GPU",
        gpu_type="mps",
        fp64_support=PrecisionSupport.NO_FP64,
        fp64_throughput_ratio=0.0,
        recommended_fp64=False,
        memory_bytes=memory,
    )


def _classify_nvidia_gpu(gpu_name: str) -> Tuple[PrecisionSupport, float]:
    """
    Classify NVIDIA GPU FP64 capabilities.

    Parameters
    ----------
    gpu_name : str
        GPU name from torch.cuda.get_device_name()

    Returns
    -------
    (support_level, throughput_ratio)
    """
    gpu_upper = gpu_name.upper()
    for models, support, ratio in _NVIDIA_FP64_TABLE:
        if any(model in gpu_upper for model in models):
            return support, ratio

    warnings.warn(
        f"Unknown NVIDIA GPU '{gpu_name}'. Assuming gimped FP64."
    )
    return PrecisionSupport.GIMPED_FP64, 1 / 32


def validate_fp64_request(capabilities: GPUCapabilities, use_fp64: bool) -> None:
    """
    Validate user's FP64 request against hardware.

    Raises
    ------
    RuntimeError
        If FP64 requested on Apple MPS (no support)

    Warns
    -----
    UserWarning
        If FP64 requested on gimped hardware
    """
    if not use_fp64:
        return

    if capabilities.fp64_support == PrecisionSupport.NO_FP64:
        raise RuntimeError(
            f"FP64 requested but not supported on {capabilities.gpu_name}. "
            f"Use FP32 (use_fp64=False) or the CPU backend."
        )

    if capabilities.fp64_support == PrecisionSupport.GIMPED_FP64:
        warnings.warn(
            f"FP64 requested on {capabilities.gpu_name} with gimped FP64 "
            f"(ratio: {capabilities.fp64_throughput_ratio:.3f}). "
            f"Sorting the pairwise slopes will be "
            f"~{int(1 / capabilities.fp64_throughput_ratio)}x slower than in FP32.",
            UserWarning
        )


def recommend_precision(capabilities: GPUCapabilities,
                        user_preference: Optional[bool]) -> bool:
    """
    Recommend FP64 vs FP32 based on hardware.

    Returns
    -------
    bool
        True for FP64, False for FP32
    """
    if user_preference is not None:
        validate_fp64_request(capabilities, user_preference)
        return user_preference

    return capabilities.recommended_fp64


def print_capabilities() -> None:
    """Print detected GPU capabilities (for debugging)."""
    caps = detect_gpu_capabilities()

    print("GPU Capability Detection")
    print("=" * 50)
    print(f"GPU Available: {caps.has_gpu}")
    print(f"GPU Name: {caps.gpu_name}")
    print(f"GPU Type: {caps.gpu_type}")
    print(f"FP64 Support: {caps.fp64_support.value}")
    print(f"FP64/FP32 Ratio: {caps.fp64_throughput_ratio:.4f}")
    print(f"Recommended FP64: {caps.recommended_fp64}")
    if caps.memory_bytes is not None:
        print(f"Device Memory: {caps.memory_bytes / 2**30:.1f} GiB")


if __name__ == "__main__":
    print_capabilities()
