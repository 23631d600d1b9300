"""
IRLS fit configuration.

All numeric controls of the fitting loop live in one frozen object that is
passed explicitly to the backend. Nothing here is read from module state at
fit time, so two fits with equal configs behave identically.
"""

from dataclasses import dataclass

import numpy as np

from pyirls.core.exceptions import ValidationError
from pyirls.core.validation import integer_at_least


@dataclass(frozen=True)
class IRLSConfig:
    """Convergence and termination controls for IRLS.

    Attributes:
        tol: Relative objective change below which the fit has converged,
            measured as |ℓ_new - ℓ_old| / (|ℓ_old| + 0.1).
        max_iter: Maximum number of outer IRLS iterations.
        max_halvings: Maximum number of step halvings per iteration.
        strict: If True, exhausting max_iter raises ConvergenceError instead
            of returning a solution flagged ``converged=False``.

    Defaults follow R's glm.control (epsilon = 1e-8) with a larger iteration
    budget, since step-halving can slow progress on near-separable data.
    """
    tol: float = 1e-8
    max_iter: int = 50
    max_halvings: int = 25
    strict: bool = False

    def __post_init__(self):
        if not (np.isfinite(self.tol) and self.tol > 0):
            raise ValidationError(f"tol must be a finite positive number, got {self.tol}")
        integer_at_least(self.max_iter, 'max_iter', 1)
        integer_at_least(self.max_halvings, 'max_halvings', 0)
