"""
Data models for the pH titration monitor.
Holds the parsed samples, the three measurement series and the latest-sample cache.
"""

import logging
import math
import numbers
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, List, Optional, Sequence, Tuple

from config import DATE_FORMAT, DERIVATIVE_SCALE, TIME_FORMAT

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


@dataclass(frozen=True)
class Sample:
    """One instrument measurement."""
    ph: float            # pH value, 1..14
    temperature: float   # Temperature reported by the probe


@dataclass(frozen=True)
class Reading:
    """A sample captured into a series."""
    sample: Sample
    captured_at: datetime
    sequence_number: int             # 1-based, per series
    volume: Optional[float] = None   # Cumulative volume (experiment only)

    @property
    def ph(self) -> float:
        return self.sample.ph

    @property
    def temperature(self) -> float:
        return self.sample.temperature

    @property
    def date(self) -> str:
        return self.captured_at.strftime(DATE_FORMAT)

    @property
    def time(self) -> str:
        return self.captured_at.strftime(TIME_FORMAT)

    def as_row(self) -> dict:
        """Export record keyed by the CSV field names."""
        return {
            "date": self.date,
            "time": self.time,
            "read": self.sequence_number,
            "volume": self.volume,
            "pH": self.ph,
            "temperature": self.temperature,
        }


@dataclass(frozen=True)
class DerivativePoint:
    """Slope of pH against volume between two consecutive experiment readings."""
    average_volume: float
    derivative_value: float

    def as_row(self) -> dict:
        return {
            "averageVolume": self.average_volume,
            "derivative": self.derivative_value,
        }


def is_volume_increment(value) -> bool:
    """True for a whole, non-negative volume (bools excluded)."""
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return False
    return math.isfinite(value) and value >= 0 and int(value) == value


class LatestSampleCache:
    """Single-slot holder for the most recent valid sample."""

    def __init__(self):
        self._sample: Optional[Sample] = None

    def set(self, sample: Sample):
        self._sample = sample

    def get(self) -> Optional[Sample]:
        return self._sample

    def clear(self):
        self._sample = None


class RealTimeSeries:
    """Readings sampled periodically from the cache."""

    def __init__(self, cache: LatestSampleCache, clock: Clock = datetime.now):
        self.cache = cache
        self.clock = clock
        self._readings: List[Reading] = []
        self._count = 0

    def sample_now(self) -> Optional[Reading]:
        """
        Append the cached sample as a new reading.

        Returns:
            The new Reading, or None if no sample has been parsed yet
        """
        sample = self.cache.get()
        if sample is None:
            return None

        self._count += 1
        reading = Reading(sample, self.clock(), self._count)
        self._readings.append(reading)
        return reading

    def visible_window(self, max_points: int) -> List[Tuple[int, float]]:
        """
        Get the most recent readings as chart points.

        Args:
            max_points: Maximum number of points to return

        Returns:
            List of (sequence_number, pH) pairs, oldest first
        """
        if isinstance(max_points, bool) or not isinstance(max_points, int) or max_points <= 0:
            raise ValueError(f"max_points must be a positive integer, got {max_points!r}")
        return [(r.sequence_number, r.ph) for r in self._readings[-max_points:]]

    def readings(self) -> List[Reading]:
        return list(self._readings)

    def clear(self):
        """Drop all readings and restart numbering at 1."""
        self._readings.clear()
        self._count = 0

    def __len__(self) -> int:
        return len(self._readings)


class ExperimentSeries:
    """Operator-triggered readings indexed by cumulative reagent volume."""

    def __init__(self, cache: LatestSampleCache, clock: Clock = datetime.now):
        self.cache = cache
        self.clock = clock
        self._readings: List[Reading] = []
        self._count = 0
        self._total_volume = 0.0

    @property
    def total_volume(self) -> float:
        return self._total_volume

    def record(self, delta_volume: int) -> Optional[Reading]:
        """
        Capture the cached sample after adding reagent.

        Args:
            delta_volume: Volume added since the previous capture (integer >= 0)

        Returns:
            The new Reading, or None if no sample has been parsed yet
        """
        if not is_volume_increment(delta_volume):
            raise ValueError(f"delta_volume must be a non-negative integer, got {delta_volume!r}")

        sample = self.cache.get()
        if sample is None:
            return None

        if delta_volume == 0 and self._readings:
            logger.warning("Zero volume step at reading %d, derivative undefined",
                           self._count + 1)
        self._count += 1
        self._total_volume += delta_volume
        reading = Reading(sample, self.clock(), self._count, self._total_volume)
        self._readings.append(reading)
        return reading

    def readings(self) -> List[Reading]:
        return list(self._readings)

    def reset(self):
        """Start a new titration: drop readings, numbering and accumulated volume."""
        self._readings.clear()
        self._count = 0
        self._total_volume = 0.0

    def __len__(self) -> int:
        return len(self._readings)


def compute_derivative(readings: Sequence[Reading],
                       scale: float = DERIVATIVE_SCALE) -> List[DerivativePoint]:
    """
    First-difference d(pH)/d(volume) between consecutive experiment readings.

    A zero volume step yields a NaN derivative value for that point.
    """
    points = []
    for prev, cur in zip(readings, readings[1:]):
        average_volume = (prev.volume + cur.volume) / 2
        step = cur.volume - prev.volume
        if step == 0:
            value = math.nan
        else:
            value = scale * (cur.ph - prev.ph) / step
        points.append(DerivativePoint(average_volume, value))
    return points


class DerivativeSeries:
    """Derivative points rebuilt from the experiment series after every capture."""

    def __init__(self, scale: float = DERIVATIVE_SCALE):
        self.scale = scale
        self._points: List[DerivativePoint] = []

    def recompute(self, readings: Sequence[Reading]) -> List[DerivativePoint]:
        # Fewer than two readings keeps the previous result
        if len(readings) >= 2:
            self._points = compute_derivative(readings, self.scale)
        return list(self._points)

    def points(self) -> List[DerivativePoint]:
        return list(self._points)

    def clear(self):
        self._points = []

    def __len__(self) -> int:
        return len(self._points)
