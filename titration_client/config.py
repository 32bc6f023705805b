# Configuration constants for the pH titration monitor

from dataclasses import dataclass


@dataclass(frozen=True)
class InstrumentProfile:
    """Serial line settings for one supported pH meter."""
    name: str
    baud_rate: int
    data_bits: int = 8
    stop_bits: int = 1
    parity: str = "none"


# Supported instruments (shown in the equipment selector)
INSTRUMENT_PROFILES = [
    InstrumentProfile("Lucadema - LUCA210 - Escala pH", 9600),
    InstrumentProfile("pH Meter 2", 19200),
]

# Sampling and refresh settings
INGEST_PERIOD_MS = 500      # How often the transport is polled for new bytes
DEFAULT_REFRESH_MS = 1000   # Real-time sampling period
REFRESH_PERIOD_OPTIONS_MS = (500, 1000, 2000, 5000, 10000)
UI_REFRESH_MS = 100         # GUI redraw interval in milliseconds
STALL_WARNING_S = 10.0      # Warn when the instrument sends nothing for this long
TASK_JOIN_TIMEOUT_S = 2.0   # Max wait for a periodic task to finish on cancel

# Line protocol
LINE_DELIMITER = "\r"
FIELD_SEPARATOR = ","
PH_MIN = 1.0
PH_MAX = 14.0
REJECTED_LINES_WARNING = 20  # Consecutive bad lines before warning about wiring

# Serial communication settings
SERIAL_TIMEOUT = 0.2        # Serial read timeout in seconds
SIMULATED_PORT = "SIMULATOR"

# Series settings
DEFAULT_MAX_POINTS = 50     # Visible window of the real-time chart
DEFAULT_VOLUME_INCREMENT = 1
DERIVATIVE_SCALE = 1.0      # Multiplier applied to d(pH)/d(volume)
DATE_FORMAT = "%Y-%m-%d"
TIME_FORMAT = "%H:%M:%S"

# GUI dimensions and formatting
TABLE_HEIGHT = 12           # Height of the data tables in rows
MAX_TABLE_ROWS = 500        # Rows kept in the real-time table
PLOT_FIGURE_SIZE = (5, 3)   # Plot figure size (width, height)
PLOT_DPI = 100              # Plot resolution
EXPERIMENT_SHORTCUT = "<Control-e>"

# Export settings
REALTIME_CSV_FIELDS = ["date", "time", "read", "pH", "temperature"]
EXPERIMENT_CSV_FIELDS = ["date", "time", "volume", "pH", "temperature"]
DERIVATIVE_CSV_FIELDS = ["averageVolume", "derivative"]
REALTIME_CSV_FILENAME = "real-time_data.csv"
EXPERIMENT_CSV_FILENAME = "experiment_data.csv"
DERIVATIVE_CSV_FILENAME = "derivative_data.csv"
EXCEL_SHEET_NAME = "Data"

# Logging
LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

# Port refresh interval
PORT_REFRESH_INTERVAL_MS = 2000  # How often to refresh COM port list
