"""
Fixtures shared by the core and glm test packages.
"""

import pytest
import numpy as np


@pytest.fixture
def rng():
    """Fixed-seed generator; every fixture below draws from it."""
    return np.random.default_rng(42)


@pytest.fixture
def gaussian_data(rng):
    """Linear model with an intercept and small noise."""
    n = 200
    X = np.column_stack([np.ones(n), rng.standard_normal((n, 2))])
    beta_true = np.array([1.0, -2.0, 0.5])
    y = X @ beta_true + rng.standard_normal(n) * 0.1
    return X, y, beta_true


@pytest.fixture
def logistic_data(rng):
    """Bernoulli responses drawn from a logistic model with an intercept."""
    n = 500
    X = np.column_stack([np.ones(n), rng.standard_normal((n, 2))])
    beta_true = np.array([-0.5, 1.0, -0.75])
    p = 1.0 / (1.0 + np.exp(-(X @ beta_true)))
    y = rng.random(n) < p
    return X, y, beta_true


@pytest.fixture
def poisson_data(rng):
    """Counts drawn from a log-linear model with an exposure offset."""
    n = 300
    X = np.column_stack([np.ones(n), rng.standard_normal(n)])
    beta_true = np.array([0.3, 0.6])
    exposure = rng.uniform(0.5, 2.0, n)
    y = rng.poisson(exposure * np.exp(X @ beta_true)).astype(float)
    return X, y, np.log(exposure), beta_true


@pytest.fixture
def collinear_data(rng):
    """Third column is the sum of the first two, so X'WX is singular."""
    n = 100
    x1 = rng.standard_normal(n)
    x2 = rng.standard_normal(n)
    x3 = x1 + x2
    X = np.column_stack([x1, x2, x3])
    y = rng.standard_normal(n)
    return X, y

