"""
GLM solution types.

Contains the parameter payload produced by the IRLS backend and the
user-facing solution wrapper.
"""

from dataclasses import dataclass
from typing import Any, TYPE_CHECKING
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyirls.core.compute.linalg.cholesky import cholesky_inverse_cpu
from pyirls.core.result import Result
from pyirls.core.validation import as_float_array, as_matrix, as_vector
from pyirls.core.exceptions import DimensionError

if TYPE_CHECKING:
    from pyirls.glm.design import Design


@dataclass(frozen=True)
class GLMParams:
    """
    Parameter payload for a GLM fit.

    This is the immutable data computed by backends.

    Attributes:
        coefficients: Maximum (penalized) likelihood estimate (p,)
        linear_predictor: η = Xβ + offset at the estimate (n,)
        fitted_values: μ = g⁻¹(η) (n,)
        log_likelihood: Penalized objective at the estimate (constants omitted)
        deviance: Unpenalized family deviance at the estimate
        n_iter: Outer IRLS iterations consumed
        converged: Whether the relative objective change met the tolerance
        objective_history: Objective at the start and after each accepted step
        halvings: Step halvings used by each accepted step
        family_name: Name of the response family
        link_name: Name of the link function
        l2_penalty: Ridge penalty strength used
        rank: Numerical rank of the final weighted normal equations
    """
    coefficients: NDArray[np.floating[Any]]
    linear_predictor: NDArray[np.floating[Any]]
    fitted_values: NDArray[np.floating[Any]]
    log_likelihood: float
    deviance: float
    n_iter: int
    converged: bool
    objective_history: tuple[float, ...]
    halvings: tuple[int, ...]
    family_name: str
    link_name: str
    l2_penalty: float
    rank: int


@dataclass
class GLMSolution:
    """
    User-facing GLM results.

    Wraps the backend Result and provides read-only accessors, standard
    errors and prediction.
    """
    _result: Result[GLMParams]
    _design: 'Design'

    # Cached computations
    _standard_errors: NDArray[np.floating[Any]] | None = None

    @property
    def coefficients(self) -> NDArray[np.floating[Any]]:
        return self._result.params.coefficients

    @property
    def linear_predictor(self) -> NDArray[np.floating[Any]]:
        return self._result.params.linear_predictor

    @property
    def fitted_values(self) -> NDArray[np.floating[Any]]:
        return self._result.params.fitted_values

    @property
    def log_likelihood(self) -> float:
        return self._result.params.log_likelihood

    @property
    def deviance(self) -> float:
        return self._result.params.deviance

    @property
    def n_iter(self) -> int:
        return self._result.params.n_iter

    @property
    def converged(self) -> bool:
        return self._result.params.converged

    @property
    def objective_history(self) -> tuple[float, ...]:
        return self._result.params.objective_history

    @property
    def halvings(self) -> tuple[int, ...]:
        return self._result.params.halvings

    @property
    def family_name(self) -> str:
        return self._result.params.family_name

    @property
    def link_name(self) -> str:
        return self._result.params.link_name

    @property
    def l2_penalty(self) -> float:
        return self._result.params.l2_penalty

    @property
    def rank(self) -> int:
        return self._result.params.rank

    @property
    def design(self) -> 'Design':
        return self._design

    @property
    def standard_errors(self) -> NDArray[np.floating[Any]]:
        """
        Standard errors of coefficients.

        Computed as sqrt(diag((X'WX + λI)⁻¹)) from the Cholesky factor of
        the weighted normal equations re-evaluated at the final coefficients.
        Dispersion is taken as 1 for Bernoulli, Binomial and Poisson; for
        Gaussian it is estimated as deviance / (n - p).
        """
        if self._standard_errors is not None:
            return self._standard_errors

        p = len(self.coefficients)
        chol = self._result.info.get('cholesky')
        if chol is None:
            self._standard_errors = np.full(p, np.nan, dtype=np.float64)
            return self._standard_errors

        cov = cholesky_inverse_cpu(chol)
        if self.family_name == 'gaussian':
            df = self._design.n - p
            dispersion = self.deviance / df if df > 0 else float('nan')
        else:
            dispersion = 1.0
        self._standard_errors = np.sqrt(dispersion * np.diag(cov))
        return self._standard_errors

    def predict(
        self,
        X: ArrayLike,
        offset: ArrayLike | None = None,
        *,
        linear: bool = False,
    ) -> NDArray[np.floating[Any]]:
        """
        Predict for new observations.

        Args:
            X: New design rows (m x k) laid out like the fitted X. When the
               model was built with ``intercept=True`` the column of ones is
               prepended here too.
            offset: Optional linear offset (m,) for the new rows.
            linear: Return η instead of μ = g⁻¹(η).

        Returns:
            Predicted means (or linear predictors), shape (m,)

        Raises:
            DimensionError: If X or offset do not match the fitted model
        """
        X_arr = as_float_array(X, 'X')
        n_user_cols = self._design.p - int(self._design.intercept)
        if X_arr.ndim == 1:
            # one column of many rows, or one row of many columns
            X_arr = X_arr.reshape(-1, 1) if n_user_cols == 1 else X_arr.reshape(1, -1)
        X_arr = as_matrix(X_arr, 'X')
        if self._design.intercept:
            X_arr = np.column_stack([np.ones(X_arr.shape[0]), X_arr])
        if X_arr.shape[1] != self._design.p:
            raise DimensionError(
                f"X: expected {self._design.p} columns, got {X_arr.shape[1]}"
            )

        eta = X_arr @ self.coefficients
        if offset is not None:
            eta = eta + as_vector(offset, 'offset', length=X_arr.shape[0])

        if linear:
            return eta
        return self._design.family.link.linkinv(eta)

    @property
    def info(self) -> dict[str, Any]:
        return self._result.info

    @property
    def timing(self) -> dict[str, float] | None:
        return self._result.timing

    @property
    def backend_name(self) -> str:
        return self._result.backend_name

    @property
    def warnings(self) -> tuple[str, ...]:
        return self._result.warnings

    def __repr__(self) -> str:
        return (
            f"GLMSolution(family={self.family_name!r}, link={self.link_name!r}, "
            f"n={self._design.n}, p={self._design.p}, "
            f"n_iter={self.n_iter}, converged={self.converged})"
        )
