"""
Pair-tensor memory planning for tensor backends.

The tensor backends materialise every pairwise slope for a block of
predictor columns at once. This module decides how many columns fit in a
block and flags inputs that single precision would distort.
"""

import numpy as np
from typing import Optional, Dict, List


# Used when the device does not report its memory (CPU tensors, old MPS)
DEFAULT_BUDGET_BYTES = 2 * 2**30

# Share of reported device memory the pair tensor may take
DEVICE_MEMORY_FRACTION = 0.5


def pair_count(n_obs: int) -> int:
    """Number of unordered pairs i < j."""
    return n_obs * (n_obs - 1) // 2


def bytes_per_column(n_obs: int, itemsize: int) -> int:
    """
    Working memory of one column's pair block.

    Differences, slopes and sorted slopes in the working dtype, int64
    sort indices and a boolean validity mask.
    """
    return pair_count(n_obs) * (3 * itemsize + 8 + 1)


def resolve_budget(memory_bytes: Optional[int],
                   max_pair_bytes: Optional[int] = None) -> int:
    """Memory budget for the pair tensor in bytes."""
    if max_pair_bytes is not None:
        return int(max_pair_bytes)
    if memory_bytes is None:
        return DEFAULT_BUDGET_BYTES
    return int(memory_bytes * DEVICE_MEMORY_FRACTION)


def check_pair_budget(
    X: np.ndarray,
    itemsize: int,
    budget_bytes: int,
) -> Dict:
    """
    Plan the column blocking of the pair tensor.

    Parameters
    ----------
    X : ndarray, shape (n, p)
        Predictors (NaN = missing)
    itemsize : int
        Bytes per value of the working dtype (4 for FP32, 8 for FP64)
    budget_bytes : int
        Memory the pair tensor may occupy

    Returns
    -------
    dict with keys:
        - suitable: bool - Does even a single column fit?
        - reason: str - Explanation if not suitable
        - pair_count: int
        - bytes_per_column: int
        - columns_per_block: int
        - n_blocks: int
        - warnings: list[str]
    """
    n, p = X.shape
    n_pairs = pair_count(n)
    # triu index pairs (2 x int64) are shared by every block
    fixed = 2 * 8 * n_pairs
    per_column = bytes_per_column(n, itemsize)

    plan = {
        'pair_count': n_pairs,
        'bytes_per_column': per_column,
        'budget_bytes': budget_bytes,
        'warnings': [],
    }

    if fixed + per_column > budget_bytes:
        plan.update(
            suitable=False,
            reason=(
                f"{n} observations give {n_pairs:,} pairs per column, needing "
                f"{(fixed + per_column) / 2**20:,.1f} MiB; the budget is "
                f"{budget_bytes / 2**20:,.1f} MiB."
            ),
            columns_per_block=0,
            n_blocks=0,
        )
        return plan

    columns_per_block = int(min(p, (budget_bytes - fixed) // per_column))
    n_blocks = -(-p // columns_per_block)

    warning_messages: List[str] = []

    if itemsize < 8:
        collided = _fp32_collisions(X)
        if collided:
            warning_messages.append(
                f"Distinct x values coincide after rounding to FP32 in "
                f"column(s) {collided}; those pairs are dropped as degenerate. "
                f"Use use_fp64=True or backend='cpu' for exact pairs."
            )

    if n_blocks > 1:
        warning_messages.append(
            f"Pair tensor split into {n_blocks} blocks of "
            f"{columns_per_block} column(s)."
        )

    plan.update(
        suitable=True,
        columns_per_block=columns_per_block,
        n_blocks=n_blocks,
        warnings=warning_messages,
    )
    return plan


def _fp32_collisions(X: np.ndarray) -> List[int]:
    """Columns whose distinct values are not all distinct in float32."""
    collided = []
    for col in range(X.shape[1]):
        x = X[:, col]
        x = x[~np.isnan(x)]
        if np.unique(x).size != np.unique(x.astype(np.float32)).size:
            collided.append(col)
    return collided


def format_plan_message(plan: Dict) -> str:
    """
    Format a pair-tensor plan as a user-facing message.

    Parameters
    ----------
    plan : dict
        Output from check_pair_budget()

    Returns
    -------
    str
        Formatted message for user
    """
    if not plan['suitable']:
        return (
            f"The pairwise slope tensor does not fit on this device.\n\n"
            f"{plan['reason']}\n\n"
            f"Options:\n"
            f"  1. Use backend='cpu', which streams one column at a time\n"
            f"  2. Raise max_pair_bytes if the device has more free memory\n"
            f"  3. Fit a subsample of the observations"
        )

    msg = (
        f"Pair tensor: {plan['pair_count']:,} pairs per column, "
        f"{plan['columns_per_block']} column(s) per block, "
        f"{plan['n_blocks']} block(s).\n"
    )
    if plan['warnings']:
        msg += "\nWarnings:\n"
        for warning in plan['warnings']:
            msg += f"  - {warning}\n"
    return msg
