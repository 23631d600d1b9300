"""
Penalized log-likelihood and deviance of a Design at given coefficients.

The objective drives step-halving in IRLS, so only differences between
coefficient vectors matter. Family log-likelihoods therefore omit terms that
are constant in β (normalizing constants, log binomial coefficients, log y!).
"""

from typing import Any
import numpy as np
from numpy.typing import NDArray

from pyirls.glm.design import Design


def l2_penalty_term(design: Design, coefficients: NDArray) -> float:
    """-½ λ Σ β², or exactly 0.0 when the design is unpenalized."""
    if design.l2_penalty == 0.0:
        return 0.0
    return -0.5 * design.l2_penalty * float(np.sum(coefficients ** 2))


def log_likelihood(design: Design, coefficients: NDArray[np.floating[Any]]) -> float:
    """Regularized log-likelihood objective.

    ℓ(β) = family.log_likelihood(y, Xβ + offset) - ½ λ ‖β‖²
    """
    eta = design.linear_predictor(coefficients)
    return design.family.log_likelihood(design.y, eta) + l2_penalty_term(design, coefficients)


def deviance(design: Design, coefficients: NDArray[np.floating[Any]]) -> float:
    """Unpenalized family deviance at the given coefficients."""
    eta = design.linear_predictor(coefficients)
    mu = design.family.link.linkinv(eta)
    return design.family.deviance(design.y, mu)
