"""
Linear algebra kernels for PyIRLS.

All functions follow these conventions:
    - CPU functions use NumPy/SciPy (LAPACK under the hood)
    - Each decomposition returns a structured result dataclass
    - Errors are raised immediately with clear messages

Submodules:
    cholesky: Cholesky factorization, SPD solve and inverse
"""

from pyirls.core.compute.linalg.cholesky import (
    CholeskyResult,
    cholesky_cpu,
    cholesky_solve_cpu,
    cholesky_inverse_cpu,
)

__all__ = [
    "CholeskyResult",
    "cholesky_cpu",
    "cholesky_solve_cpu",
    "cholesky_inverse_cpu",
]
