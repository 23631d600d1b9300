"""
Wall-clock timing for the phases of a fit.

A backend wraps each phase of an iteration in ``Timer.section``; repeated
entries under one name add up, so the final dict reports the time spent in
each phase over the whole fit next to the overall elapsed time.
"""

import time
from collections import defaultdict
from contextlib import contextmanager
from typing import Iterator


class Timer:
    """
    Overall stopwatch plus per-phase accumulators.

    Example:
        timer = Timer()
        timer.start()
        for _ in range(n_iter):
            with timer.section('cholesky'):
                ...
        timer.stop()
        timer.result()   # {'total_seconds': ..., 'cholesky': ...}
    """

    def __init__(self):
        self._phases: defaultdict[str, float] = defaultdict(float)
        self._started_at: float | None = None
        self._elapsed: float | None = None

    def start(self) -> None:
        self._started_at = time.perf_counter()
        self._elapsed = None

    def stop(self) -> None:
        if self._started_at is None:
            raise RuntimeError("Timer was never started")
        self._elapsed = time.perf_counter() - self._started_at

    @contextmanager
    def section(self, name: str) -> Iterator[None]:
        """Add the time spent inside the block to phase ``name``."""
        entered = time.perf_counter()
        try:
            yield
        finally:
            self._phases[name] += time.perf_counter() - entered

    def result(self) -> dict[str, float]:
        """
        Elapsed seconds: 'total_seconds' first, then one key per phase.

        Raises:
            RuntimeError: If the timer is still running
        """
        if self._elapsed is None:
            raise RuntimeError("Timer is still running; call stop() first")
        return {'total_seconds': self._elapsed, **self._phases}
