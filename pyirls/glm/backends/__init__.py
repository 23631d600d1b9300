"""
GLM backends.

Available backends:
    CPUIRLSBackend: CPU implementation of IRLS with Cholesky inner solve
"""

from pyirls.glm.backends.cpu_irls import CPUIRLSBackend

__all__ = [
    "CPUIRLSBackend",
]
