"""
Exponential families and their links.

A Link maps between the mean and the linear predictor: g(μ) = η, its inverse
μ = g⁻¹(η), and the slope dμ/dη that enters the IRLS weights.

A Family owns everything that depends on the response distribution. It maps
raw responses (booleans, counts, floats) to floats, and it gives V(μ), the
deviance and a log-likelihood written directly in η. Terms of the
log-likelihood that do not involve the coefficients are left out.

Canonical-ness is declared, never inferred: a link lists the families whose
natural parameter it equals in ``canonical_for``. For those pairs dμ/dη equals
V(μ) and the IRLS weights collapse to the variance function.

References:
    McCullagh, P., & Nelder, J. A. (1989). Generalized Linear Models (2nd ed.)
    R Core Team. stats::family, stats::make.link
"""

from __future__ import annotations

from abc import ABC, abstractmethod
import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy import special

from pyirls.core.exceptions import ValidationError
from pyirls.core.validation import as_float_array, integer_at_least, require_finite


# --- links ---------------------------------------------------------

class Link(ABC):
    """Abstract link function g(μ) mapping mean to linear predictor."""

    # Families for which this link is the canonical link
    canonical_for: frozenset[str] = frozenset()

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def link(self, mu: NDArray) -> NDArray:
        """g(μ) → η."""
        ...

    @abstractmethod
    def linkinv(self, eta: NDArray) -> NDArray:
        """g⁻¹(η) → μ."""
        ...

    @abstractmethod
    def mu_eta(self, eta: NDArray) -> NDArray:
        """dμ/dη = (g⁻¹)'(η)."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"


class IdentityLink(Link):
    """Identity link: g(μ) = μ. Canonical for Gaussian family."""

    canonical_for = frozenset({'gaussian'})

    @property
    def name(self) -> str:
        return 'identity'

    def link(self, mu: NDArray) -> NDArray:
        return np.array(mu, dtype=np.float64, copy=True)

    def linkinv(self, eta: NDArray) -> NDArray:
        return np.array(eta, dtype=np.float64, copy=True)

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.ones_like(eta, dtype=np.float64)


class LogitLink(Link):
    """Logit link on a mean bounded by ``n_trials``.

    g(μ) = log(μ / (N - μ)),  g⁻¹(η) = N / (1 + exp(-η))

    With N = 1 this is the usual logit of a probability. Canonical for the
    Bernoulli and fixed-trial Binomial families.
    """

    canonical_for = frozenset({'bernoulli', 'binomial'})

    def __init__(self, n_trials: int = 1):
        self.n_trials = n_trials

    @property
    def name(self) -> str:
        return 'logit'

    def link(self, mu: NDArray) -> NDArray:
        n = float(self.n_trials)
        p = np.clip(np.asarray(mu, dtype=np.float64) / n, 1e-10, 1 - 1e-10)
        return special.logit(p)

    def linkinv(self, eta: NDArray) -> NDArray:
        # expit never overflows, no clipping of eta needed
        return self.n_trials * special.expit(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        p = special.expit(eta)
        return self.n_trials * p * (1.0 - p)

    def __repr__(self) -> str:
        if self.n_trials == 1:
            return "LogitLink()"
        return f"LogitLink(n_trials={self.n_trials})"


class ProbitLink(Link):
    """Probit link: g(μ) = Φ⁻¹(μ). Non-canonical alternative for Bernoulli."""

    @property
    def name(self) -> str:
        return 'probit'

    def link(self, mu: NDArray) -> NDArray:
        mu = np.clip(mu, 1e-10, 1 - 1e-10)
        return special.ndtri(mu)

    def linkinv(self, eta: NDArray) -> NDArray:
        return special.ndtr(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        return np.exp(-0.5 * np.square(eta)) / np.sqrt(2.0 * np.pi)


class LogLink(Link):
    """Log link: g(μ) = log(μ). Canonical for Poisson family."""

    canonical_for = frozenset({'poisson'})

    @property
    def name(self) -> str:
        return 'log'

    def link(self, mu: NDArray) -> NDArray:
        return np.log(np.maximum(mu, 1e-10))

    def linkinv(self, eta: NDArray) -> NDArray:
        # Clip to prevent overflow
        eta = np.clip(eta, -500, 500)
        return np.exp(eta)

    def mu_eta(self, eta: NDArray) -> NDArray:
        eta = np.clip(eta, -500, 500)
        return np.exp(eta)


# --- link registry -------------------------------------------------

_LINK_CLASSES: dict[str, type[Link]] = {
    'identity': IdentityLink,
    'logit': LogitLink,
    'probit': ProbitLink,
    'log': LogLink,
}


# --- families --------------------------------------------------------

class Family(ABC):
    """
    GLM family specification.

    Defines the response domain, the mean-variance relationship and the
    log-likelihood of the response distribution, together with a link
    function. The default link of every family is its canonical link.
    """

    # Link classes this family accepts; the first is the default.
    _supported_links: tuple[type[Link], ...] = ()

    def __init__(self, link: str | Link | None = None):
        self._link = self._resolve_link(link)

    @property
    @abstractmethod
    def name(self) -> str:
        ...

    @abstractmethod
    def _default_link(self) -> Link:
        ...

    def _make_link(self, cls: type[Link]) -> Link:
        """Instantiate a link class named by string."""
        return cls()

    def _resolve_link(self, link: str | Link | None) -> Link:
        """Resolve a link argument to a Link instance supported by this family."""
        if link is None:
            return self._default_link()
        if isinstance(link, str):
            cls = _LINK_CLASSES.get(link.lower())
            if cls is None:
                valid = ', '.join(sorted(_LINK_CLASSES.keys()))
                raise ValueError(f"Unknown link: {link!r}. Valid links: {valid}")
            resolved = self._make_link(cls)
        elif isinstance(link, Link):
            resolved = link
        else:
            raise TypeError(f"link must be str or Link, got {type(link).__name__}")

        if not isinstance(resolved, self._supported_links):
            supported = ', '.join(c().name for c in self._supported_links)
            raise ValueError(
                f"Link {resolved.name!r} is not supported by the {self.name} "
                f"family. Supported links: {supported}"
            )
        return resolved

    @property
    def link(self) -> Link:
        return self._link

    @property
    def is_canonical(self) -> bool:
        """Whether the active link is declared canonical for this family."""
        return self.name in self._link.canonical_for

    @abstractmethod
    def to_response(self, values: ArrayLike) -> NDArray:
        """Convert observations from the family's domain to float responses.

        Raises:
            ValidationError: If any value lies outside the family's domain.
        """
        ...

    @abstractmethod
    def variance(self, mu: NDArray) -> NDArray:
        """Variance function V(μ)."""
        ...

    def natural_parameter(self, eta: NDArray) -> NDArray:
        """Natural parameter θ as a function of the linear predictor.

        θ = η for the canonical link; otherwise θ = g_c(g⁻¹(η)) where g_c is
        the family's canonical (default) link.
        """
        if self.is_canonical:
            return eta
        return self._default_link().link(self._link.linkinv(eta))

    @abstractmethod
    def log_likelihood(self, y: NDArray, eta: NDArray) -> float:
        """Log-likelihood as a function of the linear predictor.

        Terms that do not depend on the coefficients are dropped; only
        differences between candidate coefficient vectors are meaningful.
        """
        ...

    @abstractmethod
    def deviance(self, y: NDArray, mu: NDArray) -> float:
        """Total deviance: 2 * Σ d(y_i, μ_i)."""
        ...

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(link={self._link.name!r})"


def _check_integer_valued(y: NDArray, name: str) -> None:
    """Verify every response value is a whole number."""
    if not np.all(y == np.round(y)):
        raise ValidationError(f"{name} response must contain whole numbers")


class Gaussian(Family):
    """Gaussian (Normal) family. Canonical link: identity.

    V(μ) = 1
    log L = -½ Σ (y_i - η_i)²  (dispersion and normalizing constant dropped)
    """

    _supported_links = (IdentityLink,)

    @property
    def name(self) -> str:
        return 'gaussian'

    def _default_link(self) -> Link:
        return IdentityLink()

    def to_response(self, values: ArrayLike) -> NDArray:
        y = as_float_array(values, 'y')
        require_finite(y, 'y')
        return y

    def variance(self, mu: NDArray) -> NDArray:
        return np.ones_like(mu, dtype=np.float64)

    def log_likelihood(self, y: NDArray, eta: NDArray) -> float:
        mu = self._link.linkinv(eta)
        return -0.5 * float(np.sum((y - mu) ** 2))

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        return float(np.sum((y - mu) ** 2))


class Binomial(Family):
    """Binomial family with a fixed number of trials. Only link: logit.

    The response is a success count in [0, N] and the mean is N·p.

    V(μ) = μ(N - μ)/N
    log L = Σ [y_i θ_i - N log(1 + exp(θ_i))]   (log C(N, y_i) dropped)

    Non-canonical links are not offered: with the trial count built into
    the mean, the working-weight derivative for other links is awkward to
    express and the canonical form covers the intended use.
    """

    _supported_links: tuple[type[Link], ...] = (LogitLink,)

    def __init__(self, n_trials: int, link: str | Link | None = None):
        self._n_trials = integer_at_least(n_trials, 'n_trials', 1)
        super().__init__(link)
        if isinstance(self._link, LogitLink) and self._link.n_trials != self._n_trials:
            raise ValueError(
                f"LogitLink(n_trials={self._link.n_trials}) does not match "
                f"family n_trials={self._n_trials}"
            )

    @property
    def name(self) -> str:
        return 'binomial'

    @property
    def n_trials(self) -> int:
        return self._n_trials

    def _default_link(self) -> Link:
        return LogitLink(self._n_trials)

    def _make_link(self, cls: type[Link]) -> Link:
        if cls is LogitLink:
            return LogitLink(self._n_trials)
        return cls()

    def to_response(self, values: ArrayLike) -> NDArray:
        y = as_float_array(values, 'y')
        require_finite(y, 'y')
        _check_integer_valued(y, self.name)
        if np.any(y < 0) or np.any(y > self._n_trials):
            raise ValidationError(
                f"binomial response must lie in [0, {self._n_trials}], "
                f"got range [{y.min()}, {y.max()}]"
            )
        return y

    def variance(self, mu: NDArray) -> NDArray:
        n = float(self._n_trials)
        return mu * (n - mu) / n

    def log_likelihood(self, y: NDArray, eta: NDArray) -> float:
        theta = self.natural_parameter(eta)
        # log(1 + e^θ) as log(e^0 + e^θ) so large |θ| cannot overflow
        return float(
            np.sum(y * theta) - self._n_trials * np.sum(np.logaddexp(0.0, theta))
        )

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        n = float(self._n_trials)
        mu = np.clip(mu, 1e-10 * n, n * (1 - 1e-10))
        # xlogy gives 0*log(0) = 0 at the boundaries of the support
        with np.errstate(divide='ignore', invalid='ignore'):
            term1 = special.xlogy(y, y / mu)
            term2 = special.xlogy(n - y, (n - y) / (n - mu))
        return 2.0 * float(np.sum(term1 + term2))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(n_trials={self._n_trials}, link={self._link.name!r})"


class Bernoulli(Binomial):
    """Bernoulli family (logistic regression). Default link: logit.

    The native response domain is boolean; 0/1 numbers are also accepted.
    The probit link is supported as a non-canonical alternative.

    V(μ) = μ(1-μ)
    """

    _supported_links = (LogitLink, ProbitLink)

    def __init__(self, link: str | Link | None = None):
        super().__init__(n_trials=1, link=link)

    @property
    def name(self) -> str:
        return 'bernoulli'

    def to_response(self, values: ArrayLike) -> NDArray:
        y = as_float_array(values, 'y')
        require_finite(y, 'y')
        if not np.all((y == 0) | (y == 1)):
            raise ValidationError(
                "bernoulli response must be boolean or 0/1, "
                f"got values {np.unique(y)[:5].tolist()}"
            )
        return y

    def log_likelihood(self, y: NDArray, eta: NDArray) -> float:
        if self.is_canonical:
            return super().log_likelihood(y, eta)
        # Σ y log Φ(η) + (1 - y) log Φ(-η), with log Φ evaluated directly
        # so the tails do not round to log(0)
        return float(np.sum(y * special.log_ndtr(eta) + (1.0 - y) * special.log_ndtr(-eta)))

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(link={self._link.name!r})"


class Poisson(Family):
    """Poisson family. Canonical link: log.

    V(μ) = μ
    log L = Σ [y_i η_i - exp(η_i)]   (log y_i! dropped)
    """

    _supported_links = (LogLink,)

    @property
    def name(self) -> str:
        return 'poisson'

    def _default_link(self) -> Link:
        return LogLink()

    def to_response(self, values: ArrayLike) -> NDArray:
        y = as_float_array(values, 'y')
        require_finite(y, 'y')
        _check_integer_valued(y, self.name)
        if np.any(y < 0):
            raise ValidationError("poisson response must be non-negative counts")
        return y

    def variance(self, mu: NDArray) -> NDArray:
        return mu

    def log_likelihood(self, y: NDArray, eta: NDArray) -> float:
        # exp may overflow to inf for a wild trial step; the resulting -inf
        # objective is rejected by step-halving
        with np.errstate(over='ignore'):
            return float(np.sum(y * eta - np.exp(eta)))

    def deviance(self, y: NDArray, mu: NDArray) -> float:
        mu = np.maximum(mu, 1e-10)
        with np.errstate(divide='ignore', invalid='ignore'):
            term = special.xlogy(y, y / mu)
        return 2.0 * float(np.sum(term - (y - mu)))


# --- family registry -----------------------------------------------

_FAMILY_CLASSES: dict[str, type[Family]] = {
    'gaussian': Gaussian,
    'normal': Gaussian,
    'bernoulli': Bernoulli,
    'logistic': Bernoulli,
    'binomial': Binomial,
    'poisson': Poisson,
}


def resolve_family(
    family: str | Family,
    link: str | Link | None = None,
    n_trials: int | None = None,
) -> Family:
    """Resolve a family argument to a Family instance.

    Args:
        family: Either a string name ('gaussian', 'bernoulli', 'binomial',
                'poisson'; aliases 'normal' and 'logistic') or a Family
                instance (passed through).
        link: Optional link name or instance; defaults to the canonical link.
        n_trials: Number of trials, required for 'binomial' and rejected
                  for every other family.

    Returns:
        Family instance.

    Raises:
        ValueError: If string name is not recognized, the link is not
            supported, or n_trials is missing / unexpected.
        TypeError: If argument is neither string nor Family.
    """
    if isinstance(family, Family):
        if link is not None or n_trials is not None:
            raise ValueError(
                "link and n_trials must be set on the Family instance itself"
            )
        return family
    if isinstance(family, str):
        cls = _FAMILY_CLASSES.get(family.lower())
        if cls is None:
            valid = ', '.join(
                sorted(k for k in _FAMILY_CLASSES.keys()
                       if k not in ('normal', 'logistic'))
            )
            raise ValueError(
                f"Unknown family: {family!r}. Valid families: {valid}"
            )
        if cls is Binomial:
            if n_trials is None:
                raise ValueError("family 'binomial' requires n_trials")
            return Binomial(n_trials, link=link)
        if n_trials is not None:
            raise ValueError(
                f"n_trials only applies to the binomial family, not {family!r}"
            )
        return cls(link=link)
    raise TypeError(f"family must be str or Family, got {type(family).__name__}")
