"""
GLM Design.

Design is the validated, immutable description of one model to fit: the
response (already mapped from the family's domain to floats), the design
matrix, an optional linear offset, the L2 penalty strength and the family
with its link. Validation happens once, here; the solver trusts a Design.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyirls.core.exceptions import DimensionError, ValidationError
from pyirls.core.validation import (
    as_matrix,
    as_vector,
    non_negative_float,
    require_matching_rows,
)
from pyirls.glm.families import Family, Link, resolve_family


@dataclass(frozen=True)
class Design:
    """
    GLM design specification.

    Immutable after construction. Arrays are never modified by the solver,
    so one Design may be shared by concurrent read-only consumers.

    Construction:
        Design.from_arrays(X, y, family='bernoulli')
        Design.from_arrays(X, counts, family='binomial', n_trials=12)
        Design.from_arrays(X, y, family='poisson', offset=np.log(exposure))
        Design.from_arrays(x, y, family='bernoulli', intercept=True, l2_penalty=1e-3)
    """
    _X: NDArray[np.floating[Any]]
    _y: NDArray[np.floating[Any]]
    _n: int
    _p: int
    _family: Family
    _offset: NDArray[np.floating[Any]] | None = None
    _l2_penalty: float = 0.0
    _intercept: bool = False

    @classmethod
    def from_arrays(
        cls,
        X: ArrayLike,
        y: ArrayLike,
        *,
        family: str | Family = 'gaussian',
        link: str | Link | None = None,
        n_trials: int | None = None,
        offset: ArrayLike | None = None,
        l2_penalty: float = 0.0,
        intercept: bool = False,
    ) -> Design:
        """
        Build Design directly from arrays.

        Args:
            X: Design matrix (n x p). A 1-D array is treated as one column.
            y: Response in the family's native domain (booleans for
               Bernoulli, counts for Binomial/Poisson, floats for Gaussian).
            family: Family name or instance.
            link: Link name or instance (defaults to the canonical link).
            n_trials: Trial count for the binomial family.
            offset: Optional known contribution to the linear predictor (n,).
            l2_penalty: Ridge penalty strength λ >= 0.
            intercept: Prepend a column of ones to X.

        Returns:
            Design ready for fitting

        Raises:
            ValidationError: On non-numeric, non-finite or out-of-domain data,
                or a negative / non-finite penalty
            DimensionError: On inconsistent shapes
        """
        fam = resolve_family(family, link=link, n_trials=n_trials)

        X_arr = as_matrix(X, 'X')
        if X_arr.shape[0] < 1:
            raise ValidationError("X: requires at least one observation")
        if intercept:
            X_arr = np.column_stack([np.ones(X_arr.shape[0]), X_arr])
        n, p = X_arr.shape
        if p < 1:
            raise DimensionError("X: requires at least one column")

        y_raw = np.asarray(y)
        if y_raw.ndim == 2 and y_raw.shape[1] == 1:
            y_raw = y_raw[:, 0]
        y_arr = fam.to_response(y_raw)
        if y_arr.ndim != 1:
            raise DimensionError(f"y: must be 1-D, got shape {y_arr.shape}")

        if offset is None:
            offset_arr = None
            require_matching_rows(X=X_arr, y=y_arr)
        else:
            offset_arr = as_vector(offset, 'offset')
            require_matching_rows(X=X_arr, y=y_arr, offset=offset_arr)

        l2 = non_negative_float(l2_penalty, 'l2_penalty')

        return cls(
            _X=X_arr,
            _y=y_arr,
            _n=n,
            _p=p,
            _family=fam,
            _offset=offset_arr,
            _l2_penalty=l2,
            _intercept=bool(intercept),
        )

    # === Properties ===

    @property
    def X(self) -> NDArray[np.floating[Any]]:
        """Design matrix (n x p)."""
        return self._X

    @property
    def y(self) -> NDArray[np.floating[Any]]:
        """Response vector (n,) as floats."""
        return self._y

    @property
    def n(self) -> int:
        """Number of observations."""
        return self._n

    @property
    def p(self) -> int:
        """Number of coefficients."""
        return self._p

    @property
    def family(self) -> Family:
        return self._family

    @property
    def offset(self) -> NDArray[np.floating[Any]] | None:
        """Linear offset (n,), or None when the model has none."""
        return self._offset

    @property
    def has_offset(self) -> bool:
        return self._offset is not None

    @property
    def l2_penalty(self) -> float:
        return self._l2_penalty

    @property
    def intercept(self) -> bool:
        """Whether a column of ones was prepended to the user's X."""
        return self._intercept

    def linear_predictor(self, coefficients: NDArray) -> NDArray[np.floating[Any]]:
        """η = Xβ, plus the offset when one is set."""
        eta = self._X @ coefficients
        if self._offset is not None:
            eta = eta + self._offset
        return eta
