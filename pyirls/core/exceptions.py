"""
PyIRLS exceptions.

Everything the library raises on purpose derives from PyIRLSError. A fit can
fail in four distinct ways, and each has its own branch:

    ValidationError / DimensionError   bad inputs or configuration
    NumericalError and subclasses      normal equations cannot be solved
    ConvergenceError                   max_iter exhausted, strict mode only
    StepHalvingError                   no halved step raised the objective

Exceptions keep the numbers that triggered them as attributes, and their
messages state what was found next to what was expected.
"""


class PyIRLSError(Exception):
    """Root of the PyIRLS exception tree."""
    pass


class ValidationError(PyIRLSError):
    """An input or configuration value was rejected before fitting."""
    pass


class DimensionError(ValidationError):
    """
    Shapes disagree.

    X, y, offset, warm start and prediction inputs must agree on their
    number of rows or coefficients.
    """
    pass


class NumericalError(PyIRLSError):
    """A linear-algebra step produced no usable answer."""
    pass


class SingularMatrixError(NumericalError):
    """
    The weighted normal equations are numerically rank-deficient.

    Usually caused by collinear columns of X with no L2 penalty to
    regularize them.

    Attributes:
        matrix_name: Label of the matrix in the failing solve
        condition_number: Rough condition estimate from the factor's diagonal
        rank: Numerical rank found
        expected_rank: Number of coefficients
    """

    def __init__(
        self,
        message: str,
        matrix_name: str | None = None,
        condition_number: float | None = None,
        rank: int | None = None,
        expected_rank: int | None = None
    ):
        super().__init__(message)
        self.matrix_name = matrix_name
        self.condition_number = condition_number
        self.rank = rank
        self.expected_rank = expected_rank


class NotPositiveDefiniteError(NumericalError):
    """
    Cholesky factorization broke down.

    Attributes:
        matrix_name: Label of the matrix that was being factored
    """

    def __init__(self, message: str, matrix_name: str | None = None):
        super().__init__(message)
        self.matrix_name = matrix_name


class ConvergenceError(PyIRLSError):
    """
    IRLS used up max_iter without meeting the tolerance.

    Only raised when the fit runs with ``strict=True``; otherwise the solution
    comes back with ``converged=False`` and a warning.

    Attributes:
        iterations: Iterations performed
        final_change: Last relative objective change
        reason: Short tag, e.g. 'max_iterations'
        threshold: Tolerance that was not reached
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        final_change: float | None = None,
        reason: str | None = None,
        threshold: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.final_change = final_change
        self.reason = reason
        self.threshold = threshold


class StepHalvingError(PyIRLSError):
    """
    Step-halving could not improve the objective.

    Raised when every halved step toward the IRLS candidate fails to increase
    the penalized log-likelihood and the fit is not already stationary.
    Not a ConvergenceError: running out of halvings within one iteration
    is a different failure from running out of iterations.

    Attributes:
        iterations: Outer iteration at which the line search failed
        halvings: Number of halvings attempted
        objective: Objective at the last (smallest) trial step
        previous_objective: Objective at the last accepted coefficients
    """

    def __init__(
        self,
        message: str,
        iterations: int,
        halvings: int,
        objective: float | None = None,
        previous_objective: float | None = None
    ):
        super().__init__(message)
        self.iterations = iterations
        self.halvings = halvings
        self.objective = objective
        self.previous_objective = previous_objective
