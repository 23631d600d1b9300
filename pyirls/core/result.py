"""
Result envelope shared by all backends.

A backend returns its parameter payload wrapped together with free-form
metadata, per-phase timings and any non-fatal warnings. The envelope is
frozen; callers read from it and never write back.
"""

from dataclasses import dataclass, field
from typing import TypeVar, Generic, Any

P = TypeVar('P')


@dataclass(frozen=True)
class Result(Generic[P]):
    """
    Immutable result envelope for a fit.

    Attributes:
        params: Payload of type P, e.g. GLMParams
        info: Method name, tolerances and solver diagnostics
        timing: Seconds per phase plus 'total_seconds'; None when not timed
        backend_name: Name of the backend that ran the fit
        warnings: Messages for conditions that did not stop the fit

    Examples:
        >>> Result(
        ...     params=GLMParams(...),
        ...     info={'method': 'irls_cholesky', 'tol': 1e-8},
        ...     timing={'total_seconds': 0.01, 'irls': 0.009},
        ...     backend_name='cpu_irls'
        ... )
    """
    params: P
    info: dict[str, Any]
    timing: dict[str, float] | None
    backend_name: str
    warnings: tuple[str, ...] = field(default_factory=tuple)

    def has_warning(self, substring: str) -> bool:
        """True if some warning message contains ``substring``."""
        return any(substring in w for w in self.warnings)
