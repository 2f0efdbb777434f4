"""
Reference implementation (NumPy broadcasting).

Direct tensor formulation of the estimator, used to verify that the
production backends reduce the same multiset of slopes.
"""

from .full_pairwise import theil_sen_full

__all__ = [
    "theil_sen_full",
]
