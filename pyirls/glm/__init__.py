"""
Generalized linear models.

This module fits exponential-family regression models by IRLS with an L2
penalty, a linear offset and bounded step-halving.

Public API:
    fit(X, y, family=..., ...) -> GLMSolution

The fit() function is the only entry point. It handles:
    - Input validation
    - Design construction
    - Backend selection
    - Result wrapping

Example:
    >>> from pyirls.glm import fit
    >>> result = fit(X, y, family='poisson', offset=np.log(exposure))
    >>> print(result.coefficients)
    >>> print(result.standard_errors)
"""

from pyirls.glm.config import IRLSConfig
from pyirls.glm.design import Design
from pyirls.glm.families import (
    Family,
    Gaussian,
    Bernoulli,
    Binomial,
    Poisson,
    Link,
    IdentityLink,
    LogitLink,
    ProbitLink,
    LogLink,
    resolve_family,
)
from pyirls.glm.solution import GLMSolution, GLMParams
from pyirls.glm.solvers import fit

__all__ = [
    "fit",
    "Design",
    "GLMSolution",
    "GLMParams",
    "IRLSConfig",
    # Families
    "Family",
    "Gaussian",
    "Bernoulli",
    "Binomial",
    "Poisson",
    "resolve_family",
    # Links
    "Link",
    "IdentityLink",
    "LogitLink",
    "ProbitLink",
    "LogLink",
]
