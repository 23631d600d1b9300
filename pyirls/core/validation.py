"""
Boundary validators for PyIRLS.

Every array or scalar a caller hands to the library passes through one of
these converters exactly once, in Design.from_arrays or at the top of a
public method. They raise on the first problem, name the offending argument
and report the value they saw. Nothing here clips, drops or imputes.

Arrays come back as float64; booleans are accepted and become 0.0 / 1.0.
"""

from typing import Any
import numpy as np
from numpy.typing import ArrayLike, NDArray

from pyirls.core.exceptions import ValidationError, DimensionError


def as_float_array(values: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    """
    Convert numeric (or boolean) input to a float64 ndarray of any shape.

    Raises:
        ValidationError: If the input is ragged, mixed, or non-numeric
    """
    try:
        arr = np.asarray(values)
    except (ValueError, TypeError) as e:
        raise ValidationError(f"{name}: not convertible to an array ({e})") from e

    if arr.dtype == object:
        raise ValidationError(
            f"{name}: holds mixed or non-numeric entries (object dtype)"
        )
    if arr.dtype != np.bool_ and not np.issubdtype(arr.dtype, np.number):
        raise ValidationError(f"{name}: dtype {arr.dtype} is not numeric")

    return arr.astype(np.float64)


def require_finite(arr: NDArray[np.floating[Any]], name: str) -> None:
    """Raise ValidationError when arr holds NaN or ±Inf."""
    bad = ~np.isfinite(arr)
    if bad.any():
        n_nan = int(np.isnan(arr).sum())
        raise ValidationError(
            f"{name}: {int(bad.sum())} non-finite value(s) "
            f"({n_nan} NaN, {int(bad.sum()) - n_nan} Inf)"
        )


def as_vector(
    values: ArrayLike,
    name: str,
    *,
    length: int | None = None,
) -> NDArray[np.floating[Any]]:
    """
    Convert to a finite 1-D float vector.

    Args:
        values: Array-like input
        name: Argument name for error messages
        length: Required length, if any

    Raises:
        ValidationError: On non-numeric or non-finite entries
        DimensionError: If not 1-D or of the wrong length
    """
    vec = as_float_array(values, name)
    if vec.ndim != 1:
        raise DimensionError(f"{name}: must be 1-D, got shape {vec.shape}")
    require_finite(vec, name)
    if length is not None and vec.shape[0] != length:
        raise DimensionError(f"{name}: expected length {length}, got {vec.shape[0]}")
    return vec


def as_matrix(values: ArrayLike, name: str) -> NDArray[np.floating[Any]]:
    """
    Convert to a finite 2-D float matrix; a 1-D input becomes one column.

    Raises:
        ValidationError: On non-numeric or non-finite entries
        DimensionError: If the input has more than two dimensions
    """
    mat = as_float_array(values, name)
    if mat.ndim == 1:
        mat = mat[:, np.newaxis]
    if mat.ndim != 2:
        raise DimensionError(f"{name}: must be 1-D or 2-D, got shape {mat.shape}")
    require_finite(mat, name)
    return mat


def require_matching_rows(**arrays: NDArray[np.floating[Any]]) -> None:
    """
    Check that every keyword array has the same number of rows.

    Example:
        require_matching_rows(X=X, y=y, offset=offset)

    Raises:
        DimensionError: Listing every length when they disagree
    """
    rows = {label: arr.shape[0] for label, arr in arrays.items()}
    if len(set(rows.values())) > 1:
        listing = ", ".join(f"{label}={n}" for label, n in rows.items())
        raise DimensionError(f"Row counts differ: {listing}")


def non_negative_float(value: Any, name: str) -> float:
    """Coerce a scalar to a finite float >= 0, or raise ValidationError."""
    try:
        result = float(value)
    except (TypeError, ValueError) as e:
        raise ValidationError(f"{name}: expected a real number, got {value!r}") from e

    if not np.isfinite(result) or result < 0:
        raise ValidationError(f"{name}: must be finite and >= 0, got {result}")
    return result


def integer_at_least(value: Any, name: str, minimum: int) -> int:
    """
    Accept a Python or NumPy integer no smaller than ``minimum``.

    Booleans are rejected even though bool subclasses int.
    """
    if isinstance(value, bool) or not isinstance(value, (int, np.integer)):
        raise ValidationError(
            f"{name}: must be an integer, got {type(value).__name__}"
        )
    if value < minimum:
        raise ValidationError(f"{name}: must be >= {minimum}, got {value}")
    return int(value)
