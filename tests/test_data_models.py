import math
from datetime import datetime

import pytest

from data_models import (DerivativePoint, DerivativeSeries, ExperimentSeries,
                         LatestSampleCache, Reading, RealTimeSeries, Sample,
                         compute_derivative)


def _reading(volume, ph, seq=1):
    return Reading(Sample(ph, 25.0), datetime(2026, 10, 18, 9, 30), seq, volume)


def test_cache_last_write_wins():
    cache = LatestSampleCache()
    assert cache.get() is None
    cache.set(Sample(6.0, 25.0))
    cache.set(Sample(7.0, 26.0))
    assert cache.get() == Sample(7.0, 26.0)
    cache.clear()
    assert cache.get() is None


def test_realtime_sequence_numbers_have_no_gaps(clock):
    cache = LatestSampleCache()
    series = RealTimeSeries(cache, clock)

    # Empty cache calls do not advance the counter
    assert series.sample_now() is None
    assert series.sample_now() is None

    cache.set(Sample(6.1, 25.0))
    series.sample_now()
    series.sample_now()
    cache.set(Sample(6.2, 25.1))
    reading = series.sample_now()

    assert [r.sequence_number for r in series.readings()] == [1, 2, 3]
    assert reading.ph == 6.2
    assert reading.volume is None
    assert reading.date == "2026-10-18"
    assert reading.time == "09:30:02"


def test_realtime_visible_window(clock):
    cache = LatestSampleCache()
    series = RealTimeSeries(cache, clock)
    assert series.visible_window(5) == []

    for ph in (6.0, 6.5, 7.0, 7.5):
        cache.set(Sample(ph, 25.0))
        series.sample_now()

    assert series.visible_window(2) == [(3, 7.0), (4, 7.5)]
    assert series.visible_window(10) == [(1, 6.0), (2, 6.5), (3, 7.0), (4, 7.5)]


@pytest.mark.parametrize("bad", [0, -1, 2.5, True])
def test_realtime_visible_window_rejects_bad_size(clock, bad):
    series = RealTimeSeries(LatestSampleCache(), clock)
    with pytest.raises(ValueError):
        series.visible_window(bad)


def test_realtime_clear_restarts_numbering(clock):
    cache = LatestSampleCache()
    cache.set(Sample(6.0, 25.0))
    series = RealTimeSeries(cache, clock)
    series.sample_now()
    series.clear()
    assert len(series) == 0
    assert series.sample_now().sequence_number == 1


def test_experiment_volume_is_cumulative(clock):
    cache = LatestSampleCache()
    series = ExperimentSeries(cache, clock)
    cache.set(Sample(4.0, 25.0))
    first = series.record(5)
    cache.set(Sample(7.0, 25.0))
    second = series.record(10)

    assert [r.volume for r in series.readings()] == [5, 15]
    assert (first.sequence_number, second.sequence_number) == (1, 2)
    assert series.total_volume == 15


def test_experiment_empty_cache_is_noop(clock):
    series = ExperimentSeries(LatestSampleCache(), clock)
    assert series.record(5) is None
    assert len(series) == 0
    assert series.total_volume == 0


def test_experiment_zero_increment_keeps_volume(clock):
    cache = LatestSampleCache()
    cache.set(Sample(4.0, 25.0))
    series = ExperimentSeries(cache, clock)
    series.record(3)
    series.record(0)
    volumes = [r.volume for r in series.readings()]
    assert volumes == [3, 3]


@pytest.mark.parametrize("bad", [-1, 1.5, True, float("inf"), float("nan"), "5"])
def test_experiment_rejects_invalid_increment(clock, bad):
    cache = LatestSampleCache()
    cache.set(Sample(4.0, 25.0))
    series = ExperimentSeries(cache, clock)
    with pytest.raises(ValueError):
        series.record(bad)
    assert len(series) == 0
    assert series.total_volume == 0


def test_experiment_reset(clock):
    cache = LatestSampleCache()
    cache.set(Sample(4.0, 25.0))
    series = ExperimentSeries(cache, clock)
    series.record(5)
    series.reset()
    reading = series.record(2)
    assert (reading.sequence_number, reading.volume) == (1, 2)


def test_derivative_of_two_points():
    points = compute_derivative([_reading(5, 4.0), _reading(15, 7.0)])
    assert len(points) == 1
    assert points[0].average_volume == 10.0
    assert points[0].derivative_value == pytest.approx(0.3)


def test_derivative_length_and_scale():
    readings = [_reading(v, ph) for v, ph in [(1, 3.0), (2, 3.5), (4, 4.5), (5, 8.0)]]
    assert compute_derivative(readings[:1]) == []
    points = compute_derivative(readings, scale=10.0)
    assert len(points) == len(readings) - 1
    assert [p.derivative_value for p in points] == pytest.approx([5.0, 5.0, 35.0])


def test_derivative_zero_volume_step_is_nan():
    points = compute_derivative([_reading(5, 4.0), _reading(5, 4.2, seq=2)])
    assert points[0].average_volume == 5.0
    assert math.isnan(points[0].derivative_value)


def test_zero_volume_step_warned_once_at_capture(clock, caplog):
    cache = LatestSampleCache()
    cache.set(Sample(4.0, 25.0))
    series = ExperimentSeries(cache, clock)
    derivative = DerivativeSeries()

    # A zero first increment has no previous point to collide with
    series.record(0)
    series.record(5)
    series.record(0)
    for _ in range(3):
        series.record(2)
        derivative.recompute(series.readings())

    assert caplog.text.count("Zero volume step") == 1
    assert sum(math.isnan(p.derivative_value) for p in derivative.points()) == 1


def test_derivative_series_keeps_previous_result_below_two_points():
    series = DerivativeSeries()
    assert series.recompute([_reading(5, 4.0)]) == []

    series.recompute([_reading(5, 4.0), _reading(15, 7.0)])
    assert len(series) == 1
    # A shorter snapshot leaves the stored points alone
    assert series.recompute([_reading(5, 4.0)]) == series.points()
    series.clear()
    assert series.points() == []


def test_rows_use_export_field_names():
    reading = _reading(15, 7.0, seq=2)
    assert reading.as_row() == {
        "date": "2026-10-18", "time": "09:30:00", "read": 2,
        "volume": 15, "pH": 7.0, "temperature": 25.0,
    }
    assert DerivativePoint(10.0, 0.3).as_row() == {"averageVolume": 10.0, "derivative": 0.3}
