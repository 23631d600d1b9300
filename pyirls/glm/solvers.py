"""
Solver dispatch for GLMs.

This module provides the fit() function (public API) and backend selection.
"""

from dataclasses import replace
from typing import Literal
import warnings

from numpy.typing import ArrayLike

from pyirls.glm.config import IRLSConfig
from pyirls.glm.design import Design
from pyirls.glm.families import Family, Link
from pyirls.glm.solution import GLMSolution
from pyirls.glm.backends.cpu_irls import CPUIRLSBackend


# Type alias for backend selection
BackendChoice = Literal['auto', 'cpu', 'cpu_irls']


def fit(
    X_or_design: ArrayLike | Design,
    y: ArrayLike | None = None,
    *,
    family: str | Family = 'gaussian',
    link: str | Link | None = None,
    n_trials: int | None = None,
    offset: ArrayLike | None = None,
    l2_penalty: float = 0.0,
    intercept: bool = False,
    start: ArrayLike | None = None,
    config: IRLSConfig | None = None,
    tol: float | None = None,
    max_iter: int | None = None,
    max_halvings: int | None = None,
    strict: bool | None = None,
    backend: BackendChoice = 'auto',
) -> GLMSolution:
    """
    Fit a generalized linear model.

    Maximizes the penalized log-likelihood
        ℓ(β) = log L(y | g⁻¹(Xβ + offset)) - ½ λ ‖β‖²
    by IRLS with step-halving.

    Args:
        X_or_design: Design matrix (n x p) or a prebuilt Design. When a
            Design is passed, y and every model argument (family, link,
            n_trials, offset, l2_penalty, intercept) must be left at their
            defaults.
        y: Response vector (n,) in the family's native domain.
        family: 'gaussian', 'bernoulli' (alias 'logistic'), 'binomial'
            or 'poisson', or a Family instance.
        link: Link name or instance; defaults to the canonical link.
        n_trials: Trial count, required for family='binomial'.
        offset: Known additive contribution to the linear predictor (n,).
        l2_penalty: Ridge penalty strength λ >= 0.
        intercept: Prepend a column of ones to X.
        start: Warm-start coefficients (p,); zeros by default.
        config: IRLSConfig; tol / max_iter / max_halvings / strict override
            its fields when given.
        backend: 'auto', 'cpu' or 'cpu_irls'.

    Returns:
        GLMSolution with coefficients, diagnostics and prediction.

    Raises:
        ValidationError: If inputs or configuration are invalid
        DimensionError: If X, y, offset or start have inconsistent dimensions
        NumericalError: If the weighted normal equations are singular
        StepHalvingError: If step-halving cannot improve the objective
        ConvergenceError: If strict and the iteration budget is exhausted

    Warns:
        RuntimeWarning: If IRLS did not converge (non-strict mode)

    Example:
        >>> import numpy as np
        >>> from pyirls.glm import fit
        >>>
        >>> x = np.random.randn(200)
        >>> y = np.random.rand(200) < 1 / (1 + np.exp(-x))
        >>>
        >>> result = fit(x, y, family='bernoulli', intercept=True)
        >>> print(result.coefficients, result.converged)
    """
    # === Construct Design ===
    # This is the boundary - validate here, trust everywhere else
    if isinstance(X_or_design, Design):
        if y is not None:
            raise ValueError("y must not be given together with a Design")
        if (link is not None or n_trials is not None or offset is not None
                or l2_penalty != 0.0 or intercept or family != 'gaussian'):
            raise ValueError(
                "family, link, n_trials, offset, l2_penalty and intercept are "
                "fixed by the Design and cannot be passed to fit()"
            )
        design = X_or_design
    else:
        if y is None:
            raise ValueError("y required when X is an array")
        design = Design.from_arrays(
            X_or_design, y,
            family=family,
            link=link,
            n_trials=n_trials,
            offset=offset,
            l2_penalty=l2_penalty,
            intercept=intercept,
        )

    # === Resolve Configuration ===
    config = _resolve_config(
        config, tol=tol, max_iter=max_iter, max_halvings=max_halvings, strict=strict
    )

    # === Select Backend ===
    backend_impl = _get_backend(backend)

    # === Solve ===
    result = backend_impl.solve(design, config, start=start)

    for message in result.warnings:
        warnings.warn(message, RuntimeWarning, stacklevel=2)

    # === Wrap and Return ===
    return GLMSolution(_result=result, _design=design)


def _resolve_config(
    config: IRLSConfig | None,
    **overrides: float | int | bool | None,
) -> IRLSConfig:
    """Merge explicit keyword overrides into a (default) IRLSConfig."""
    base = config if config is not None else IRLSConfig()
    changes = {k: v for k, v in overrides.items() if v is not None}
    if not changes:
        return base
    return replace(base, **changes)


def _get_backend(choice: BackendChoice):
    """
    Select and instantiate the appropriate backend.

    Raises:
        ValueError: If unknown backend specified
    """
    if choice in ('auto', 'cpu', 'cpu_irls'):
        return CPUIRLSBackend()
    raise ValueError(f"Unknown backend: {choice!r}")
