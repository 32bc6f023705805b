import itertools
import threading
from datetime import datetime, timedelta

import pytest

from errors import InstrumentConnectionError
from session import TitrationSession


class FakeTransport:
    """Transport returning scripted chunks, then b"" forever."""

    def __init__(self, chunks=(), end_of_stream=False, fail_read=False):
        self.chunks = list(chunks)
        self.end_of_stream = end_of_stream
        self.fail_read = fail_read
        self.closed = False
        self.reads_after_close = 0
        self.reads = 0
        self.lock = threading.Lock()

    def push(self, *chunks):
        with self.lock:
            self.chunks.extend(chunks)

    def read_chunk(self):
        with self.lock:
            if self.closed:
                self.reads_after_close += 1
                return None
            self.reads += 1
            if self.fail_read:
                raise InstrumentConnectionError("device unplugged")
            if self.chunks:
                return self.chunks.pop(0)
            return None if self.end_of_stream else b""

    def close(self):
        self.closed = True


class UnpluggedSerial:
    """pyserial port whose device vanished: polling it raises OSError."""

    port = "COM7"

    def __init__(self):
        self.is_open = True

    @property
    def in_waiting(self):
        raise OSError(5, "Input/output error")

    def read(self, size):
        raise OSError(5, "Input/output error")

    def close(self):
        self.is_open = False


class FakeOpener:
    """Stands in for open_connection, handing out prepared transports."""

    def __init__(self, *transports, fail=False):
        self.transports = list(transports)
        self.fail = fail
        self.calls = []

    def __call__(self, port, profile):
        self.calls.append((port, profile))
        if self.fail:
            raise InstrumentConnectionError(f"Failed to connect to {port}")
        return self.transports.pop(0)


def make_clock(start=datetime(2026, 10, 18, 9, 30, 0)):
    ticks = itertools.count()
    return lambda: start + timedelta(seconds=next(ticks))


@pytest.fixture
def clock():
    return make_clock()


@pytest.fixture
def session(clock):
    return TitrationSession(clock=clock, max_points=3, volume_increment=5)
