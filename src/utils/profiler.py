"""Lightweight wall-clock profiling for the frame loop.

Provides:
    - timer(): Context manager for one-off timing with optional sink
    - TimerAccumulator: running mean of repeated measurements

Used to measure:
    - Full render_frame() calls (renderer.frame_timer)
    - Video decode + sampling in the CLI harness

A frame budget at 60 Hz is ~16.7 ms; the accumulator's fps() makes it easy to
see whether a grid/scale combination keeps up.
"""

import logging
import time
from contextlib import contextmanager
from typing import Callable, Optional

logger = logging.getLogger(__name__)


@contextmanager
def timer(name: str, sink: Optional[Callable[[str, float], None]] = None):
    """Context manager for wall-clock timing.

    Parameters
    ----------
    name : str
        Timer name (for logging/display)
    sink : Optional[Callable[[str, float], None]]
        Optional callback(name, elapsed_seconds).
        If None, logs at DEBUG level.

    Examples
    --------
    >>> with timer("render"):
    ...     result = renderer.render_frame(ctx)
    """
    start = time.perf_counter()
    try:
        yield
    finally:
        elapsed = time.perf_counter() - start
        if sink is not None:
            sink(name, elapsed)
        else:
            logger.debug(f"{name}: {elapsed:.3f} s")


class TimerAccumulator:
    """Accumulate multiple timing measurements for averaging.

    Attributes
    ----------
    name : str
        Timer name
    total_time : float
        Accumulated time in seconds
    count : int
        Number of measurements
    last : float
        Most recent measurement in seconds

    Examples
    --------
    >>> frame_timer = TimerAccumulator("frame")
    >>> for _ in range(100):
    ...     with frame_timer.measure():
    ...         renderer.render_frame(ctx)
    >>> print(f"{frame_timer.fps():.1f} fps")
    """

    def __init__(self, name: str):
        self.name = name
        self.total_time = 0.0
        self.count = 0
        self.last = 0.0

    @contextmanager
    def measure(self):
        """Context manager to measure and accumulate time."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed = time.perf_counter() - start
            self.total_time += elapsed
            self.count += 1
            self.last = elapsed

    def mean(self) -> float:
        """Mean time per measurement in seconds, or 0.0 if none."""
        return self.total_time / self.count if self.count > 0 else 0.0

    def fps(self) -> float:
        """Measurements per second implied by the mean, or 0.0 if none."""
        m = self.mean()
        return 1.0 / m if m > 0 else 0.0

    def reset(self) -> None:
        """Reset accumulated data."""
        self.total_time = 0.0
        self.count = 0
        self.last = 0.0

    def __repr__(self) -> str:
        return f"TimerAccumulator({self.name}, mean={self.mean():.4f}s, count={self.count})"
