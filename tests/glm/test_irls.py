"""
IRLS backend tests.

Exercise CPUIRLSBackend directly on Designs: agreement with closed forms,
score equations at the optimum, monotone objective history, step-halving,
warm starts, strict mode and numerical failures.
"""

import numpy as np
import pytest

from pyirls.core.exceptions import (
    ConvergenceError,
    DimensionError,
    NumericalError,
    StepHalvingError,
    ValidationError,
)
from pyirls.glm import Design, IRLSConfig
from pyirls.glm.backends import CPUIRLSBackend
from pyirls.glm.backends.cpu_irls import _boundary_warning
from pyirls.glm.families import Bernoulli, Binomial, Gaussian, Poisson
from pyirls.glm.likelihood import deviance, log_likelihood


def _solve(design, **kwargs):
    start = kwargs.pop('start', None)
    config = IRLSConfig(**kwargs) if kwargs else None
    return CPUIRLSBackend().solve(design, config, start=start)


# =====================================================================
# Gaussian: closed forms
# =====================================================================

class TestGaussianClosedForm:

    def test_matches_least_squares(self, gaussian_data):
        X, y, _ = gaussian_data
        result = _solve(Design.from_arrays(X, y))
        expected = np.linalg.lstsq(X, y, rcond=None)[0]
        np.testing.assert_allclose(result.params.coefficients, expected, rtol=1e-10)
        assert result.params.converged
        assert result.params.n_iter <= 2

    def test_matches_ridge(self, gaussian_data):
        X, y, _ = gaussian_data
        lam = 5.0
        result = _solve(Design.from_arrays(X, y, l2_penalty=lam))
        expected = np.linalg.solve(X.T @ X + lam * np.eye(3), X.T @ y)
        np.testing.assert_allclose(result.params.coefficients, expected, rtol=1e-10)

    def test_offset_equals_shifted_response(self, gaussian_data, rng):
        X, y, _ = gaussian_data
        offset = rng.standard_normal(len(y))
        with_offset = _solve(Design.from_arrays(X, y, offset=offset))
        shifted = _solve(Design.from_arrays(X, y - offset))
        np.testing.assert_allclose(
            with_offset.params.coefficients, shifted.params.coefficients, rtol=1e-10
        )
        np.testing.assert_allclose(
            with_offset.params.linear_predictor,
            X @ with_offset.params.coefficients + offset,
        )


# =====================================================================
# Score equations at the optimum
# =====================================================================

class TestScoreEquations:

    def test_logistic(self, logistic_data):
        X, y, _ = logistic_data
        result = _solve(Design.from_arrays(X, y, family='bernoulli'))
        mu = result.params.fitted_values
        np.testing.assert_allclose(X.T @ (y - mu), 0.0, atol=1e-4)
        assert result.params.converged

    def test_penalized_logistic(self, logistic_data):
        X, y, _ = logistic_data
        lam = 3.0
        result = _solve(Design.from_arrays(X, y, family='bernoulli', l2_penalty=lam))
        beta = result.params.coefficients
        mu = result.params.fitted_values
        np.testing.assert_allclose(X.T @ (y - mu) - lam * beta, 0.0, atol=1e-4)

    def test_probit(self, logistic_data):
        X, y, _ = logistic_data
        design = Design.from_arrays(X, y, family='bernoulli', link='probit')
        # Fisher scoring converges linearly here; tighten tol for the score check
        result = _solve(design, tol=1e-13)
        eta = result.params.linear_predictor
        mu = result.params.fitted_values
        phi = np.exp(-0.5 * eta ** 2) / np.sqrt(2 * np.pi)
        score = X.T @ ((y - mu) * phi / (mu * (1 - mu)))
        np.testing.assert_allclose(score, 0.0, atol=1e-4)
        assert result.info['canonical'] is False
        assert result.params.link_name == 'probit'

    def test_poisson_with_offset(self, poisson_data):
        X, y, offset, beta_true = poisson_data
        result = _solve(Design.from_arrays(X, y, family='poisson', offset=offset))
        mu = result.params.fitted_values
        np.testing.assert_allclose(X.T @ (y - mu), 0.0, atol=1e-3)
        np.testing.assert_allclose(result.params.coefficients, beta_true, atol=0.2)


# =====================================================================
# Recovery and shrinkage
# =====================================================================

class TestRecovery:

    def test_binomial_grouped_exact(self):
        """Groups averaging 6/12 and 8/12 successes give β = [0, 1] exactly."""
        x = np.array([[0.0], [0.0], [np.log(2.0)], [np.log(2.0)], [np.log(2.0)]])
        y = np.array([5, 7, 9, 6, 9])
        design = Design.from_arrays(x, y, family='binomial', n_trials=12, intercept=True)
        result = _solve(design)
        np.testing.assert_allclose(result.params.coefficients, [0.0, 1.0], atol=1e-6)
        assert result.params.family_name == 'binomial'

    def test_shrinkage_with_increasing_penalty(self, logistic_data):
        X, y, _ = logistic_data
        norms = []
        for lam in [0.0, 1.0, 10.0, 100.0, 1000.0]:
            design = Design.from_arrays(X, y, family='bernoulli', l2_penalty=lam)
            norms.append(np.linalg.norm(_solve(design).params.coefficients))
        assert np.all(np.diff(norms) < 0)


# =====================================================================
# Objective history and bounded work
# =====================================================================

class TestHistory:

    @pytest.mark.parametrize("family,link", [
        ('bernoulli', None), ('bernoulli', 'probit'),
    ])
    def test_objective_strictly_increasing(self, logistic_data, family, link):
        X, y, _ = logistic_data
        result = _solve(Design.from_arrays(X, y, family=family, link=link))
        history = np.array(result.params.objective_history)
        assert np.all(np.diff(history) > 0)
        assert len(history) == len(result.params.halvings) + 1
        assert history[-1] == pytest.approx(result.params.log_likelihood)

    def test_objective_matches_evaluator(self, logistic_data):
        X, y, _ = logistic_data
        design = Design.from_arrays(X, y, family='bernoulli', l2_penalty=0.5)
        result = _solve(design)
        beta = result.params.coefficients
        assert result.params.log_likelihood == pytest.approx(log_likelihood(design, beta))
        assert result.params.deviance == pytest.approx(deviance(design, beta))

    def test_separable_data_terminates(self):
        x = np.linspace(-2, 2, 40)
        y = x > 0
        design = Design.from_arrays(x, y, family='bernoulli')
        result = _solve(design)
        history = np.array(result.params.objective_history)
        assert result.params.n_iter <= 50
        assert all(h <= 25 for h in result.params.halvings)
        assert np.all(np.diff(history) > 0)
        assert result.params.coefficients[0] > 0

    def test_halvings_bounded(self, poisson_data):
        X, y, offset, _ = poisson_data
        result = _solve(
            Design.from_arrays(X, y, family='poisson', offset=offset), max_halvings=3
        )
        assert all(h <= 3 for h in result.params.halvings)

    def test_overshooting_step_is_halved(self):
        """A full Newton step from zero overflows exp(η); halving recovers."""
        y = np.array([900.0, 1000.0, 1100.0])
        design = Design.from_arrays(np.ones((3, 1)), y, family='poisson')
        result = _solve(design)
        assert result.params.halvings[0] > 0
        assert result.params.converged
        assert result.params.coefficients[0] == pytest.approx(np.log(1000.0), rel=1e-6)


# =====================================================================
# Termination and failures
# =====================================================================

class TestTermination:

    def test_non_convergence_flagged(self, logistic_data):
        X, y, _ = logistic_data
        result = _solve(Design.from_arrays(X, y, family='bernoulli'), max_iter=1)
        assert not result.params.converged
        assert result.params.n_iter == 1
        assert result.has_warning("did not converge")

    def test_strict_raises(self, logistic_data):
        X, y, _ = logistic_data
        design = Design.from_arrays(X, y, family='bernoulli')
        with pytest.raises(ConvergenceError) as exc_info:
            _solve(design, max_iter=1, strict=True)
        assert exc_info.value.iterations == 1
        assert exc_info.value.reason == 'max_iterations'
        assert exc_info.value.threshold == 1e-8

    def test_step_halving_exhausted(self):
        y = np.array([900.0, 1000.0, 1100.0])
        design = Design.from_arrays(np.ones((3, 1)), y, family='poisson')
        with pytest.raises(StepHalvingError) as exc_info:
            _solve(design, max_halvings=0)
        assert exc_info.value.iterations == 1
        assert exc_info.value.halvings == 0
        assert exc_info.value.previous_objective == pytest.approx(-3.0)

    def test_singular_design(self, collinear_data):
        X, y = collinear_data
        with pytest.raises(NumericalError):
            _solve(Design.from_arrays(X, y))

    def test_penalty_resolves_collinearity(self, collinear_data):
        X, y = collinear_data
        result = _solve(Design.from_arrays(X, y, l2_penalty=1.0))
        assert result.params.converged
        assert result.params.rank == 3

    def test_non_finite_start_objective(self):
        design = Design.from_arrays(np.ones((2, 1)), [1.0, 2.0], family='poisson')
        with pytest.raises(NumericalError, match="not finite"):
            _solve(design, start=[1000.0])


# =====================================================================
# Warm starts
# =====================================================================

class TestWarmStart:

    def test_start_at_optimum(self, logistic_data):
        X, y, _ = logistic_data
        design = Design.from_arrays(X, y, family='bernoulli')
        cold = _solve(design)
        warm = _solve(design, start=cold.params.coefficients)
        assert warm.params.n_iter <= 2
        assert warm.params.converged
        np.testing.assert_allclose(
            warm.params.coefficients, cold.params.coefficients, atol=1e-6
        )

    def test_start_not_mutated(self, logistic_data):
        X, y, _ = logistic_data
        start = np.array([0.1, 0.2, 0.3])
        _solve(Design.from_arrays(X, y, family='bernoulli'), start=start)
        np.testing.assert_array_equal(start, [0.1, 0.2, 0.3])

    def test_start_wrong_length(self, logistic_data):
        X, y, _ = logistic_data
        with pytest.raises(DimensionError, match="expected length 3"):
            _solve(Design.from_arrays(X, y, family='bernoulli'), start=[0.0, 0.0])

    def test_start_non_finite(self, logistic_data):
        X, y, _ = logistic_data
        with pytest.raises(ValidationError, match="start"):
            _solve(Design.from_arrays(X, y, family='bernoulli'), start=[0.0, np.nan, 0.0])


# =====================================================================
# Metadata
# =====================================================================

class TestMetadata:

    def test_info_and_timing(self, logistic_data):
        X, y, _ = logistic_data
        result = _solve(Design.from_arrays(X, y, family='bernoulli'))
        assert result.backend_name == 'cpu_irls'
        assert result.info['method'] == 'irls_cholesky'
        assert result.info['canonical'] is True
        assert result.info['max_halvings'] == 25
        for section in ('total_seconds', 'initialize', 'normal_equations',
                        'cholesky', 'step_halving', 'finalize'):
            assert section in result.timing
        assert result.warnings == ()

    def test_final_factor_at_returned_coefficients(self, logistic_data):
        X, y, _ = logistic_data
        result = _solve(Design.from_arrays(X, y, family='bernoulli', l2_penalty=0.3))
        mu = result.params.fitted_values
        A = X.T @ ((mu * (1 - mu))[:, None] * X) + 0.3 * np.eye(3)
        L = result.info['cholesky'].L
        np.testing.assert_allclose(L @ L.T, A, rtol=1e-10)


class TestBoundaryWarning:

    def test_bernoulli_edges(self):
        assert "numerically 0 or 1" in _boundary_warning(Bernoulli(), np.array([0.5, 1.0]))
        assert "numerically 0 or 1" in _boundary_warning(Bernoulli(), np.array([0.0, 0.5]))
        assert _boundary_warning(Bernoulli(), np.array([1e-10, 1 - 1e-10])) is None

    def test_binomial_scaled_by_trials(self):
        assert _boundary_warning(Binomial(12), np.array([6.0, 12.0])) is not None
        assert _boundary_warning(Binomial(12), np.array([0.5, 11.5])) is None

    def test_poisson_zero_rate(self):
        assert "rates numerically 0" in _boundary_warning(Poisson(), np.array([1e-300, 2.0]))
        assert _boundary_warning(Poisson(), np.array([1e-3, 2.0])) is None

    def test_gaussian_never_flags(self):
        assert _boundary_warning(Gaussian(), np.array([0.0, -1e300])) is None
