"""
Core infrastructure for PyIRLS.

Pieces the GLM code builds on: the Result envelope, the exception tree,
boundary validators, and the timing and Cholesky kernels under compute/.
"""

from pyirls.core.result import Result
from pyirls.core.exceptions import (
    PyIRLSError,
    ValidationError,
    DimensionError,
    NumericalError,
    SingularMatrixError,
    NotPositiveDefiniteError,
    ConvergenceError,
    StepHalvingError,
)

__all__ = [
    # Result
    "Result",
    # Exceptions
    "PyIRLSError",
    "ValidationError",
    "DimensionError",
    "NumericalError",
    "SingularMatrixError",
    "NotPositiveDefiniteError",
    "ConvergenceError",
    "StepHalvingError",
]
