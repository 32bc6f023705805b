import logging

import pytest

from config import REJECTED_LINES_WARNING
from data_models import Sample


def test_chunked_stream_end_to_end(session):
    parsed = []
    for chunk in [b"6.1", b",25.0\r7.", b"0,26", b".0\r"]:
        parsed.extend(session.ingest_chunk(chunk))

    assert parsed == [Sample(6.1, 25.0), Sample(7.0, 26.0)]
    assert session.latest_sample() == Sample(7.0, 26.0)


def test_bad_lines_do_not_touch_cache(session):
    session.ingest_chunk(b"6.1,25.0\r")
    assert session.ingest_chunk(b"garbage\r\r15,25\r") == []
    assert session.latest_sample() == Sample(6.1, 25.0)


def test_persistent_rejections_are_logged_once(session, caplog):
    with caplog.at_level(logging.WARNING):
        session.ingest_chunk(b"noise\r" * (REJECTED_LINES_WARNING * 2))
    assert caplog.text.count("consecutive lines rejected") == 1


def test_sample_now_publishes_window(session):
    windows = []
    session.subscribe(on_realtime_update=windows.append)

    assert session.sample_now() is None
    assert windows == []

    session.ingest_chunk("6.5,25.0\r")
    for _ in range(4):
        session.sample_now()

    # max_points=3 in the fixture
    assert windows[-1] == [(2, 6.5), (3, 6.5), (4, 6.5)]
    assert len(windows) == 4
    assert len(session.realtime_readings()) == 4


def test_set_max_points_republishes(session):
    windows = []
    session.subscribe(on_realtime_update=windows.append)
    session.ingest_chunk("6.5,25.0\r")
    session.sample_now()
    session.sample_now()

    session.set_max_points(1)
    assert windows[-1] == [(2, 6.5)]
    with pytest.raises(ValueError):
        session.set_max_points(0)
    assert session.max_points == 1


def test_experiment_capture_updates_derivative(session):
    experiments, derivatives = [], []
    session.subscribe(on_experiment_update=experiments.append,
                      on_derivative_update=derivatives.append)

    assert session.record_experiment_point() is None
    assert experiments == []

    session.ingest_chunk("4.0,25.0\r")
    session.record_experiment_point()          # default increment of 5
    session.ingest_chunk("7.0,25.0\r")
    session.record_experiment_point(10)

    assert [r.volume for r in experiments[-1]] == [5, 15]
    assert derivatives[0] == []
    (point,) = derivatives[-1]
    assert point.average_volume == 10.0
    assert point.derivative_value == pytest.approx(0.3)


def test_derivative_length_tracks_experiment(session):
    session.ingest_chunk("4.0,25.0\r")
    for n in range(1, 6):
        session.record_experiment_point(2)
        assert len(session.derivative_points()) == max(n - 1, 0)


def test_set_volume_increment_validates(session):
    session.set_volume_increment(7)
    assert session.volume_increment == 7
    for bad in (-2, float("inf"), float("-inf"), float("nan")):
        with pytest.raises(ValueError):
            session.set_volume_increment(bad)
    assert session.volume_increment == 7


def test_reset_experiment_clears_derivative(session):
    experiments = []
    session.subscribe(on_experiment_update=experiments.append)
    session.ingest_chunk("4.0,25.0\r")
    session.record_experiment_point(1)
    session.record_experiment_point(1)

    session.reset_experiment()

    assert experiments[-1] == []
    assert session.experiment_readings() == []
    assert session.derivative_points() == []
    assert session.record_experiment_point(3).volume == 3


def test_end_connection_forgets_partial_line_and_sample(session):
    session.ingest_chunk("6.1,25.0\r7.0,2")
    session.end_connection()

    assert session.latest_sample() is None
    assert session.sample_now() is None
    assert session.ingest_chunk("6.0\r") == []
