"""Frame timing - per-frame delta time and solve timing"""

import time
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Optional


@dataclass
class FrameData:
    """Container for frame timing information."""
    frame_number: int
    timestamp: float  # Seconds since start
    delta: float  # Seconds since previous tick, drives the animation player


class FrameTimer:
    """Measures and tracks processing times (e.g. one IK solve)."""

    def __init__(self, window_size: int = 60):
        self._window_size = window_size
        self._frame_times: Deque[float] = deque(maxlen=window_size)
        self._start_time: Optional[float] = None
        self._last_frame_time: Optional[float] = None

    def start(self) -> None:
        """Start timing."""
        self._start_time = time.perf_counter()

    def stop(self) -> float:
        """Stop timing and return elapsed time."""
        if self._start_time is None:
            return 0.0

        elapsed = time.perf_counter() - self._start_time
        self._frame_times.append(elapsed)
        self._last_frame_time = elapsed
        self._start_time = None
        return elapsed

    @property
    def last_frame_time(self) -> float:
        return self._last_frame_time or 0.0

    @property
    def average_frame_time(self) -> float:
        """Average processing time over window."""
        if not self._frame_times:
            return 0.0
        return sum(self._frame_times) / len(self._frame_times)

    @property
    def max_frame_time(self) -> float:
        return max(self._frame_times) if self._frame_times else 0.0

    @property
    def sample_count(self) -> int:
        return len(self._frame_times)

    def reset(self) -> None:
        """Reset all timing data."""
        self._frame_times.clear()
        self._start_time = None
        self._last_frame_time = None


@dataclass
class FrameClock:
    """
    Produces per-frame delta times.

    With ``fixed_delta`` set the clock is simulated (headless runs, tests):
    every tick advances by exactly that amount. Otherwise it measures
    wall-clock time between ticks like a render loop would.
    """
    fixed_delta: Optional[float] = None
    _frame_count: int = field(default=0, init=False)
    _start_time: float = field(default=0.0, init=False)
    _last_tick: float = field(default=0.0, init=False)
    _elapsed: float = field(default=0.0, init=False)

    def start(self) -> None:
        """Start the frame clock."""
        self._start_time = time.perf_counter()
        self._last_tick = self._start_time
        self._frame_count = 0
        self._elapsed = 0.0

    def tick(self) -> FrameData:
        """
        Advance to next frame and return frame data.

        Returns:
            FrameData with the delta since the previous tick
        """
        if self.fixed_delta is not None:
            delta = self.fixed_delta
        else:
            now = time.perf_counter()
            delta = now - self._last_tick
            self._last_tick = now

        self._elapsed += delta
        frame_data = FrameData(
            frame_number=self._frame_count,
            timestamp=self._elapsed,
            delta=delta
        )
        self._frame_count += 1
        return frame_data

    @property
    def frame_count(self) -> int:
        return self._frame_count

    @property
    def elapsed_time(self) -> float:
        return self._elapsed
