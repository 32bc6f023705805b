"""
Session state for the pH titration monitor.
Owns the parser pipeline and the three series, and notifies presentation listeners.
"""

import logging
import threading
from datetime import datetime
from typing import Callable, List, Optional, Tuple, Union

from config import (DEFAULT_MAX_POINTS, DEFAULT_VOLUME_INCREMENT, DERIVATIVE_SCALE,
                    REJECTED_LINES_WARNING)
from data_models import (Clock, DerivativePoint, DerivativeSeries, ExperimentSeries,
                         LatestSampleCache, Reading, RealTimeSeries, Sample,
                         is_volume_increment)
from data_parser import LineFramer, SampleParser

logger = logging.getLogger(__name__)

WindowCallback = Callable[[List[Tuple[int, float]]], None]
ReadingsCallback = Callable[[List[Reading]], None]
DerivativeCallback = Callable[[List[DerivativePoint]], None]


class TitrationSession:
    """
    Shared state between the acquisition tasks and the operator.

    Every public method takes the session lock, so the cache and the series
    are never mutated by two threads at once. Listeners are called with the
    lock held and must not block.
    """

    def __init__(self, clock: Clock = datetime.now,
                 max_points: int = DEFAULT_MAX_POINTS,
                 volume_increment: int = DEFAULT_VOLUME_INCREMENT,
                 derivative_scale: float = DERIVATIVE_SCALE):
        self.lock = threading.RLock()

        self.framer = LineFramer()
        self.parser = SampleParser()
        self.cache = LatestSampleCache()
        self.realtime = RealTimeSeries(self.cache, clock)
        self.experiment = ExperimentSeries(self.cache, clock)
        self.derivative = DerivativeSeries(derivative_scale)

        self.max_points = max_points
        self.volume_increment = volume_increment
        self._rejected_run = 0

        self._realtime_listeners: List[WindowCallback] = []
        self._experiment_listeners: List[ReadingsCallback] = []
        self._derivative_listeners: List[DerivativeCallback] = []

    def subscribe(self, on_realtime_update: Optional[WindowCallback] = None,
                  on_experiment_update: Optional[ReadingsCallback] = None,
                  on_derivative_update: Optional[DerivativeCallback] = None):
        """Register presentation callbacks; each receives the full current snapshot."""
        with self.lock:
            if on_realtime_update:
                self._realtime_listeners.append(on_realtime_update)
            if on_experiment_update:
                self._experiment_listeners.append(on_experiment_update)
            if on_derivative_update:
                self._derivative_listeners.append(on_derivative_update)

    # Acquisition

    def ingest_chunk(self, chunk: Union[bytes, str]) -> List[Sample]:
        """
        Feed transport data through the framer and parser into the cache.

        Returns:
            Samples parsed from this chunk, in arrival order
        """
        parsed = []
        with self.lock:
            for line in self.framer.feed(chunk):
                sample = self.parser.parse(line)
                if sample is None:
                    self._note_rejected(line)
                    continue
                self._rejected_run = 0
                self.cache.set(sample)
                parsed.append(sample)
        return parsed

    def _note_rejected(self, line: str):
        self._rejected_run += 1
        if self._rejected_run == REJECTED_LINES_WARNING:
            logger.warning("%d consecutive lines rejected (last: %r), check instrument settings",
                           self._rejected_run, line)

    def sample_now(self) -> Optional[Reading]:
        """Append the latest sample to the real-time series and publish the window."""
        with self.lock:
            reading = self.realtime.sample_now()
            if reading is not None:
                self._publish_realtime()
            return reading

    def record_experiment_point(self, delta_volume: Optional[int] = None) -> Optional[Reading]:
        """
        Capture an experiment reading after adding reagent.

        Args:
            delta_volume: Added volume; defaults to the configured increment

        Returns:
            The new Reading, or None if no sample is available yet
        """
        with self.lock:
            if delta_volume is None:
                delta_volume = self.volume_increment
            reading = self.experiment.record(delta_volume)
            if reading is None:
                logger.info("No valid sample yet, experiment point skipped")
                return None
            self.derivative.recompute(self.experiment.readings())
            self._publish_experiment()
            return reading

    # Operator settings

    def set_max_points(self, max_points: int):
        with self.lock:
            self.realtime.visible_window(max_points)  # validates
            self.max_points = max_points
            self._publish_realtime()

    def set_volume_increment(self, volume_increment: int):
        if not is_volume_increment(volume_increment):
            raise ValueError(f"Volume increment must be a non-negative integer, got {volume_increment!r}")
        with self.lock:
            self.volume_increment = volume_increment

    def clear_realtime(self):
        with self.lock:
            self.realtime.clear()
            self._publish_realtime()

    def reset_experiment(self):
        """Start a new titration, discarding experiment and derivative data."""
        with self.lock:
            self.experiment.reset()
            self.derivative.clear()
            self._publish_experiment()
        logger.info("Experiment series reset")

    def end_connection(self):
        """Forget connection-scoped state: partial line and cached sample."""
        with self.lock:
            self.framer.reset()
            self.cache.clear()
            self._rejected_run = 0

    # Snapshots

    def latest_sample(self) -> Optional[Sample]:
        with self.lock:
            return self.cache.get()

    def visible_window(self) -> List[Tuple[int, float]]:
        with self.lock:
            return self.realtime.visible_window(self.max_points)

    def realtime_readings(self) -> List[Reading]:
        with self.lock:
            return self.realtime.readings()

    def experiment_readings(self) -> List[Reading]:
        with self.lock:
            return self.experiment.readings()

    def derivative_points(self) -> List[DerivativePoint]:
        with self.lock:
            return self.derivative.points()

    def _publish_realtime(self):
        window = self.realtime.visible_window(self.max_points)
        for callback in self._realtime_listeners:
            callback(list(window))

    def _publish_experiment(self):
        readings = self.experiment.readings()
        points = self.derivative.points()
        for callback in self._experiment_listeners:
            callback(list(readings))
        for callback in self._derivative_listeners:
            callback(list(points))
