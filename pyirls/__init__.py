"""
PyIRLS: Generalized linear models fitted by guarded IRLS.

Fits exponential-family regression models (Gaussian, Bernoulli, fixed-trial
Binomial, Poisson) through iteratively reweighted least squares with an L2
penalty, linear offsets and a bounded step-halving line search that keeps
near-separable data from looping forever.

Submodules:
    glm: Families, links, Design, fit() and solutions
    core: Exceptions, validation, result envelope, numeric kernels
"""

__version__ = "0.1.0"

from pyirls import glm

__all__ = [
    "__version__",
    "glm",
]
