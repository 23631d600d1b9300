"""
CPU backend for Generalized Linear Models via IRLS.

Implements Iteratively Reweighted Least Squares (Fisher scoring; Newton's
method for canonical links) with an L2 penalty, a Cholesky inner solve and
a bounded step-halving line search.

Algorithm:
    Initialize: β = 0 (or a warm start), ℓ = objective(β)
    For iteration 1..max_iter:
        η = Xβ + offset,  μ = g⁻¹(η)
        w = (dμ/dη)² / V(μ)                   # = V(μ) for canonical links
        z = η - offset + (y - μ) / (dμ/dη)    # working response
        Solve (X'WX + λI) β* = X'Wz           via Cholesky
        Step-halving: β_t = β + 2⁻ᵏ(β* - β), k = 0..max_halvings,
                      first β_t with ℓ(β_t) > ℓ(β) is accepted
        Check: |ℓ_new - ℓ_old| / (|ℓ_old| + 0.1) < tol

The right-hand side is assembled as X'(w·(η - offset) + (y - μ)·w/(dμ/dη))
so that vanishing weights never appear in a denominator.

Every loop is bounded: at most max_iter outer iterations and max_halvings
halvings per iteration. Near-separable data, where a full step overshoots
and the objective would otherwise oscillate, terminates either converged,
flagged as not converged, or with StepHalvingError.
"""

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyirls.core.result import Result
from pyirls.core.compute.timing import Timer
from pyirls.core.compute.linalg.cholesky import cholesky_cpu, cholesky_solve_cpu
from pyirls.core.exceptions import (
    ConvergenceError,
    NotPositiveDefiniteError,
    NumericalError,
    StepHalvingError,
)
from pyirls.core.validation import as_vector
from pyirls.glm.config import IRLSConfig
from pyirls.glm.design import Design
from pyirls.glm.families import Binomial, Family, Poisson
from pyirls.glm.likelihood import log_likelihood
from pyirls.glm.solution import GLMParams


def working_weights(
    family: Family,
    eta: NDArray,
    mu: NDArray,
    use_canonical: bool = True,
) -> NDArray:
    """IRLS working weights w = (dμ/dη)² / V(μ).

    When the family declares its link canonical, dμ/dη = V(μ) and the
    weight reduces to V(μ); ``use_canonical=False`` forces the general
    formula. Observations with V(μ) = 0 get weight 0.
    """
    if use_canonical and family.is_canonical:
        return family.variance(mu)
    mu_eta = family.link.mu_eta(eta)
    var = family.variance(mu)
    return np.divide(mu_eta ** 2, var, out=np.zeros_like(var), where=var > 0)


def _weighted_residual(
    family: Family, eta: NDArray, mu: NDArray, y: NDArray
) -> NDArray:
    """w · (y - μ) / (dμ/dη), which is y - μ for canonical links."""
    if family.is_canonical:
        return y - mu
    mu_eta = family.link.mu_eta(eta)
    var = family.variance(mu)
    return np.divide((y - mu) * mu_eta, var, out=np.zeros_like(var), where=var > 0)


def _normal_equations(design: Design, beta: NDArray) -> tuple[NDArray, NDArray]:
    """X'WX + λI and X'W(z - offset), both evaluated at β."""
    X, family = design.X, design.family
    eta_fixed = X @ beta
    eta = eta_fixed + design.offset if design.has_offset else eta_fixed
    mu = family.link.linkinv(eta)

    w = working_weights(family, eta, mu)
    resid = _weighted_residual(family, eta, mu, design.y)

    A = X.T @ (w[:, np.newaxis] * X)
    if design.l2_penalty > 0:
        A[np.diag_indices_from(A)] += design.l2_penalty
    b = X.T @ (w * eta_fixed + resid)
    return A, b


def _boundary_warning(family: Family, mu: NDArray) -> str | None:
    """R's glm.fit notice for fitted means on the edge of the support."""
    eps = 10 * np.finfo(np.float64).eps
    if isinstance(family, Binomial):
        prob = mu / family.n_trials
        if np.any((prob < eps) | (prob > 1 - eps)):
            return "fitted probabilities numerically 0 or 1 occurred"
    elif isinstance(family, Poisson):
        if np.any(mu < eps):
            return "fitted rates numerically 0 occurred"
    return None


def _relative_change(new: float, old: float) -> float:
    """R's glm.fit convergence measure, applied to the objective."""
    return abs(new - old) / (abs(old) + 0.1)


@dataclass(frozen=True)
class _LineSearch:
    """Outcome of one step-halving line search."""
    coefficients: NDArray[np.floating[Any]]
    objective: float
    full_step_objective: float
    halvings: int
    improved: bool


class CPUIRLSBackend:
    """CPU backend using IRLS with a Cholesky inner solve.

    - Convergence criterion: |ℓ - ℓ_old| / (|ℓ_old| + 0.1) < tol
    - Singular or non-PD normal equations are fatal (NumericalError)
    - Step-halving exhaustion is fatal (StepHalvingError) unless the
      full IRLS step already changes the objective by less than tol, in
      which case the current coefficients are stationary and accepted
    - A zero change in the objective counts as no improvement
    """

    @property
    def name(self) -> str:
        return 'cpu_irls'

    def solve(
        self,
        design: Design,
        config: IRLSConfig | None = None,
        start: ArrayLike | None = None,
    ) -> Result[GLMParams]:
        """Run IRLS to fit the GLM.

        Args:
            design: Validated Design (response, X, offset, penalty, family)
            config: Tolerance and iteration limits (defaults to IRLSConfig())
            start: Optional warm-start coefficients (p,)

        Returns:
            Result[GLMParams] with coefficients, diagnostics and history.

        Raises:
            DimensionError: If ``start`` has the wrong length
            ValidationError: If ``start`` is not finite
            NumericalError: If the normal equations are singular, not positive
                definite or non-finite, or the starting objective is not finite
            StepHalvingError: If no halved step improves the objective
            ConvergenceError: If ``config.strict`` and max_iter is exhausted
        """
        config = config if config is not None else IRLSConfig()

        timer = Timer()
        timer.start()

        y = design.y
        p = design.p
        family = design.family
        link = family.link
        l2 = design.l2_penalty

        warnings_list: list[str] = []

        # ------------------------------------------------------------------
        # Initialize β and the objective
        # ------------------------------------------------------------------
        with timer.section('initialize'):
            beta = self._initial_coefficients(p, start)
            objective = log_likelihood(design, beta)

        if not np.isfinite(objective):
            raise NumericalError(
                f"Objective is not finite at the starting coefficients "
                f"(objective={objective}); choose a different warm start."
            )

        objective_history = [objective]
        halvings_used: list[int] = []

        converged = False
        change = float('nan')
        chol = None
        n_iter = 0

        # ------------------------------------------------------------------
        # IRLS loop
        # ------------------------------------------------------------------
        for iteration in range(1, config.max_iter + 1):
            n_iter = iteration

            with timer.section('normal_equations'):
                A, b = _normal_equations(design, beta)

            with timer.section('cholesky'):
                candidate, chol = cholesky_solve_cpu(
                    A, b, check_rank=True, matrix_name="X'WX + λI"
                )

            with timer.section('step_halving'):
                step = self._step_halving(
                    design, beta, candidate, objective, config.max_halvings
                )

            if not step.improved:
                full_change = _relative_change(step.full_step_objective, objective)
                if full_change < config.tol:
                    # Already stationary to working precision
                    change = full_change
                    converged = True
                    break
                raise StepHalvingError(
                    f"Step-halving failed to improve the objective at iteration "
                    f"{iteration} after {step.halvings} halvings "
                    f"(objective={objective:.10g}, full step={step.full_step_objective:.10g}).",
                    iterations=iteration,
                    halvings=step.halvings,
                    objective=step.objective,
                    previous_objective=objective,
                )

            change = _relative_change(step.objective, objective)
            beta = step.coefficients
            objective = step.objective
            objective_history.append(objective)
            halvings_used.append(step.halvings)

            if change < config.tol:
                converged = True
                break

        if not converged:
            message = (
                f"IRLS did not converge in {config.max_iter} iterations "
                f"(objective={objective:.6f}, relative change={change:.3e})"
            )
            if config.strict:
                raise ConvergenceError(
                    message,
                    iterations=n_iter,
                    final_change=change,
                    reason='max_iterations',
                    threshold=config.tol,
                )
            warnings_list.append(message)

        # ------------------------------------------------------------------
        # Final quantities at the accepted coefficients
        # ------------------------------------------------------------------
        with timer.section('finalize'):
            eta = design.linear_predictor(beta)
            mu = link.linkinv(eta)
            dev = family.deviance(y, mu)

            boundary = _boundary_warning(family, mu)
            if boundary is not None:
                warnings_list.append(boundary)

            # Covariance is taken at β̂, not at the last solved system
            A, _ = _normal_equations(design, beta)
            try:
                chol = cholesky_cpu(A, matrix_name="X'WX + λI")
            except NotPositiveDefiniteError:
                warnings_list.append(
                    "X'WX + λI is not positive definite at the final "
                    "coefficients; standard errors use the last iteration's factor"
                )

        timer.stop()

        params = GLMParams(
            coefficients=beta,
            linear_predictor=eta,
            fitted_values=mu,
            log_likelihood=objective,
            deviance=dev,
            n_iter=n_iter,
            converged=converged,
            objective_history=tuple(objective_history),
            halvings=tuple(halvings_used),
            family_name=family.name,
            link_name=link.name,
            l2_penalty=l2,
            rank=chol.rank,
        )

        return Result(
            params=params,
            info={
                'method': 'irls_cholesky',
                'tol': config.tol,
                'max_iter': config.max_iter,
                'max_halvings': config.max_halvings,
                'canonical': family.is_canonical,
                'final_change': change,
                'cholesky': chol,
            },
            timing=timer.result(),
            backend_name=self.name,
            warnings=tuple(warnings_list),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _initial_coefficients(p: int, start: ArrayLike | None) -> NDArray:
        """Zero vector, or a validated copy of the warm start."""
        if start is None:
            return np.zeros(p, dtype=np.float64)
        return as_vector(start, 'start', length=p)

    @staticmethod
    def _step_halving(
        design: Design,
        beta: NDArray,
        candidate: NDArray,
        objective: float,
        max_halvings: int,
    ) -> _LineSearch:
        """Move from β toward the candidate until the objective increases.

        Tries fractions 1, 1/2, 1/4, ... of the step, at most max_halvings
        halvings. A NaN or equal objective is not an increase.
        """
        direction = candidate - beta
        trial = candidate
        trial_objective = log_likelihood(design, trial)
        full_step_objective = trial_objective

        halvings = 0
        while not trial_objective > objective and halvings < max_halvings:
            halvings += 1
            trial = beta + direction * 0.5 ** halvings
            trial_objective = log_likelihood(design, trial)

        return _LineSearch(
            coefficients=trial,
            objective=trial_objective,
            full_step_objective=full_step_objective,
            halvings=halvings,
            improved=bool(trial_objective > objective),
        )
