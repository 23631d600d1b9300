"""
Shared compute infrastructure for PyIRLS.

This module provides timing utilities and linear algebra kernels that
backends build on.

IMPORTANT: This is NOT where fitting backends live. Those go in
glm/backends/. This module contains shared NUMERIC infrastructure.

Submodules:
    timing: Execution timing utilities
    linalg: Linear algebra kernels (Cholesky)
"""

from pyirls.core.compute.timing import Timer

__all__ = [
    "Timer",
]
