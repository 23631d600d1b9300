"""
Cholesky decomposition for symmetric positive definite systems.

Used by the IRLS backend to solve the weighted (possibly penalized) normal
equations (X'WX + λI) β = X'Wz once per iteration. The factorization is
LAPACK's potrf via SciPy.
"""

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import NDArray
from scipy import linalg

from pyirls.core.exceptions import (
    NumericalError,
    NotPositiveDefiniteError,
    SingularMatrixError,
)

# Relative tolerance on sqrt(pivot / A_ii), matching R's qr(tol = 1e-07)
RANK_TOL = 1e-7


@dataclass(frozen=True)
class CholeskyResult:
    """
    Result of Cholesky decomposition.

    Attributes:
        L: Lower triangular factor with A = L L'
        rank: Numerical rank from the column-relative pivots L_ii² / A_ii
        condition_estimate: (max L_ii / min L_ii)², a cheap lower bound on cond(A)
    """
    L: NDArray[np.floating[Any]]
    rank: int
    condition_estimate: float


def cholesky_cpu(
    A: NDArray[np.floating[Any]],
    matrix_name: str = 'A',
) -> CholeskyResult:
    """
    Cholesky decomposition using LAPACK (via SciPy).

    Numerical rank is read off the pivots. L_ii² is the part of column i's
    diagonal A_ii that the earlier columns leave unexplained, so the ratio
    L_ii² / A_ii lies in (0, 1] and does not change when a column of X is
    rescaled. A ratio no larger than RANK_TOL² (or p * eps, whichever is
    larger) counts as a zero pivot. RANK_TOL = 1e-7 is the relative tolerance
    R's qr() applies to the diagonal of R, squared because L_ii² plays the
    role of R_ii².

    Args:
        A: Symmetric matrix to factor (p x p)
        matrix_name: Name used in error messages

    Returns:
        CholeskyResult with the lower factor, rank and condition estimate

    Raises:
        NumericalError: If A contains NaN or Inf
        NotPositiveDefiniteError: If LAPACK reports A is not positive definite
    """
    if not np.all(np.isfinite(A)):
        raise NumericalError(
            f"{matrix_name} contains non-finite entries; "
            f"the working weights or response overflowed."
        )

    try:
        L = linalg.cholesky(A, lower=True, check_finite=False)
    except linalg.LinAlgError as e:
        raise NotPositiveDefiniteError(
            f"{matrix_name} is not positive definite: {e}",
            matrix_name=matrix_name,
        ) from e

    p = A.shape[0]
    pivots = np.diag(L) ** 2
    # A_ii > 0 whenever potrf succeeds
    unexplained = pivots / np.diag(A)
    tol = max(RANK_TOL ** 2, p * np.finfo(A.dtype).eps)
    rank = int(np.sum(unexplained > tol))

    min_pivot = float(np.min(pivots)) if p > 0 else 0.0
    if min_pivot > 0:
        condition_estimate = float(np.max(pivots) / min_pivot)
    else:
        condition_estimate = float('inf')

    return CholeskyResult(L=L, rank=rank, condition_estimate=condition_estimate)


def cholesky_solve_cpu(
    A: NDArray[np.floating[Any]],
    b: NDArray[np.floating[Any]],
    check_rank: bool,
    matrix_name: str = 'A',
) -> tuple[NDArray[np.floating[Any]], CholeskyResult]:
    """
    Solve the SPD system A x = b via Cholesky decomposition (CPU).

    Args:
        A: Symmetric positive definite matrix (p x p)
        b: Right-hand side (p,)
        check_rank: If True, raise SingularMatrixError on numerically
            rank-deficient A
        matrix_name: Name used in error messages

    Returns:
        Tuple of (solution x, CholeskyResult)

    Raises:
        NumericalError: If A or b contain NaN or Inf
        NotPositiveDefiniteError: If A is not positive definite
        SingularMatrixError: If A is rank-deficient and check_rank=True
    """
    if not np.all(np.isfinite(b)):
        raise NumericalError(
            f"Right-hand side for {matrix_name} contains non-finite entries."
        )

    chol = cholesky_cpu(A, matrix_name=matrix_name)
    p = A.shape[0]

    if check_rank and chol.rank < p:
        raise SingularMatrixError(
            f"{matrix_name} is numerically singular: rank={chol.rank}, expected={p}. "
            f"Some column of the design matrix is (nearly) a linear "
            f"combination of the others.",
            matrix_name=matrix_name,
            condition_number=chol.condition_estimate,
            rank=chol.rank,
            expected_rank=p,
        )

    x = linalg.cho_solve((chol.L, True), b, check_finite=False)
    return x, chol


def cholesky_inverse_cpu(chol: CholeskyResult) -> NDArray[np.floating[Any]]:
    """Compute A⁻¹ from an existing factor A = L L'."""
    p = chol.L.shape[0]
    return linalg.cho_solve((chol.L, True), np.eye(p), check_finite=False)
