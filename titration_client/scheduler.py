"""
Acquisition scheduling for the pH titration monitor.
Runs the ingest and refresh tasks and manages the connection lifecycle.
"""

import enum
import logging
import threading
import time
from typing import Callable, List, Optional

from config import (DEFAULT_REFRESH_MS, INGEST_PERIOD_MS, STALL_WARNING_S,
                    TASK_JOIN_TIMEOUT_S, InstrumentProfile)
from errors import InstrumentConnectionError
from serial_handler import Transport, open_connection
from session import TitrationSession

logger = logging.getLogger(__name__)


class ConnectionState(enum.Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED = "connected"


class PeriodicTask:
    """Runs an action every period on a daemon thread.

    The next run is only scheduled once the previous one has returned, so
    runs never overlap. The task ends when cancelled or when the action
    returns False.
    """

    def __init__(self, name: str, period_s: float, action: Callable[[], Optional[bool]]):
        self.name = name
        self.period_s = period_s
        self.action = action
        self.stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self):
        self._thread.start()

    def _run(self):
        while not self.stop_event.wait(self.period_s):
            if self.action() is False:
                break

    def cancel(self, timeout: float = TASK_JOIN_TIMEOUT_S):
        """Stop the task and wait for a running action to finish."""
        self.stop_event.set()
        if self._thread is threading.current_thread() or not self._thread.is_alive():
            return
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Task %s did not stop within %.1f s", self.name, timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()


class SamplingScheduler:
    """Connects to the instrument and drives the ingest and refresh tasks."""

    def __init__(self, session: TitrationSession,
                 opener: Callable[[str, InstrumentProfile], Transport] = open_connection,
                 ingest_period_ms: int = INGEST_PERIOD_MS,
                 refresh_period_ms: int = DEFAULT_REFRESH_MS,
                 stall_warning_s: float = STALL_WARNING_S):
        self.session = session
        self.opener = opener
        self.ingest_period_ms = ingest_period_ms
        self.refresh_period_ms = refresh_period_ms
        self.stall_warning_s = stall_warning_s

        self._state = ConnectionState.DISCONNECTED
        self._state_lock = threading.RLock()
        self._transport: Optional[Transport] = None
        self._ingest_task: Optional[PeriodicTask] = None
        self._refresh_task: Optional[PeriodicTask] = None

        self._last_data_at = 0.0
        self._stalled = False

        self._state_listeners: List[Callable[[ConnectionState], None]] = []
        self._error_listeners: List[Callable[[Exception], None]] = []

    @property
    def state(self) -> ConnectionState:
        return self._state

    def is_connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    def add_state_listener(self, callback: Callable[[ConnectionState], None]):
        self._state_listeners.append(callback)

    def add_error_listener(self, callback: Callable[[Exception], None]):
        self._error_listeners.append(callback)

    def _set_state(self, state: ConnectionState):
        self._state = state
        for callback in self._state_listeners:
            callback(state)

    def _report_error(self, error: Exception):
        for callback in self._error_listeners:
            callback(error)

    # Connection lifecycle

    def connect(self, port: str, profile: InstrumentProfile):
        """
        Open the instrument and start sampling.

        Args:
            port: Serial port name
            profile: Instrument line settings

        Raises:
            InstrumentConnectionError: If the transport cannot be opened; the
                scheduler is back in DISCONNECTED and no series is touched
        """
        with self._state_lock:
            if self._state is not ConnectionState.DISCONNECTED:
                logger.warning("Connect ignored, scheduler is %s", self._state.value)
                return

            self._set_state(ConnectionState.CONNECTING)
            logger.info("Connecting to %s (%s)...", port, profile.name)
            try:
                self._transport = self.opener(port, profile)
            except InstrumentConnectionError as e:
                logger.error("Failed to connect: %s", e)
                self._set_state(ConnectionState.DISCONNECTED)
                raise

            self._last_data_at = time.monotonic()
            self._stalled = False
            self._ingest_task = PeriodicTask("ingest", self.ingest_period_ms / 1000.0,
                                             self.ingest_once)
            self._ingest_task.start()
            self._start_refresh_task()
            self._set_state(ConnectionState.CONNECTED)
            logger.info("Connected to %s", port)

    def disconnect(self):
        """Stop both tasks, then release the transport. Safe to call repeatedly."""
        with self._state_lock:
            self._disconnect_locked()

    def _disconnect_locked(self):
        if self._state is ConnectionState.DISCONNECTED:
            return

        logger.info("Disconnecting...")
        # Tasks must be stopped before the transport is closed
        if self._refresh_task:
            self._refresh_task.cancel()
            self._refresh_task = None
        if self._ingest_task:
            self._ingest_task.cancel()
            self._ingest_task = None

        transport, self._transport = self._transport, None
        try:
            if transport is not None:
                transport.close()
        finally:
            self.session.end_connection()
            self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Disconnected")

    def _drop_connection(self):
        # Called from the ingest thread. The lock holder may be joining this
        # thread, so a busy lock hands the disconnect to a helper thread.
        if not self._state_lock.acquire(blocking=False):
            threading.Thread(target=self.disconnect, name="disconnect", daemon=True).start()
            return
        try:
            self._disconnect_locked()
        finally:
            self._state_lock.release()

    # Periodic work

    def set_refresh_period(self, period_ms: int):
        """Change the real-time sampling period, restarting the refresh task if connected."""
        if period_ms <= 0:
            raise ValueError(f"Refresh period must be positive, got {period_ms!r}")
        with self._state_lock:
            self.refresh_period_ms = period_ms
            if self._state is ConnectionState.CONNECTED:
                if self._refresh_task:
                    self._refresh_task.cancel()
                self._start_refresh_task()
        logger.info("Refresh period set to %d ms", period_ms)

    def _start_refresh_task(self):
        self._refresh_task = PeriodicTask("refresh", self.refresh_period_ms / 1000.0,
                                          self.refresh_once)
        self._refresh_task.start()
        # Sample right away so the view does not wait for the first tick
        self.refresh_once()

    def refresh_once(self):
        self.session.sample_now()

    def ingest_once(self) -> bool:
        """
        Read one chunk from the transport and feed it to the session.

        Returns:
            False once the connection is gone and the task should stop
        """
        transport = self._transport
        if transport is None:
            return False

        try:
            chunk = transport.read_chunk()
        except InstrumentConnectionError as e:
            logger.error("Failed to read data: %s", e)
            self._report_error(e)
            self._drop_connection()
            return False
        except Exception as e:
            logger.exception("Unexpected error reading from instrument")
            self._report_error(e)
            self._drop_connection()
            return False

        if chunk is None:
            logger.warning("Instrument stream ended")
            self._drop_connection()
            return False

        if chunk:
            self._last_data_at = time.monotonic()
            if self._stalled:
                logger.info("Instrument data resumed")
                self._stalled = False
            try:
                self.session.ingest_chunk(chunk)
            except Exception as e:
                logger.exception("Failed to process instrument data")
                self._report_error(e)
                self._drop_connection()
                return False
        elif not self._stalled and time.monotonic() - self._last_data_at >= self.stall_warning_s:
            logger.warning("No data from instrument for %.0f s", self.stall_warning_s)
            self._stalled = True
        return True
