"""
Serial communication handler for the pH titration monitor.
Opens the instrument port and reads raw byte chunks from it.
"""

import logging
from typing import Optional, Protocol

import serial
import serial.tools.list_ports

from config import SERIAL_TIMEOUT, SIMULATED_PORT, InstrumentProfile
from errors import InstrumentConnectionError
from instrument_simulator import SimulatedInstrument

logger = logging.getLogger(__name__)

PARITY_MAP = {
    "none": serial.PARITY_NONE,
    "even": serial.PARITY_EVEN,
    "odd": serial.PARITY_ODD,
    "mark": serial.PARITY_MARK,
    "space": serial.PARITY_SPACE,
}


class Transport(Protocol):
    """Byte source feeding the acquisition pipeline."""

    def read_chunk(self) -> Optional[bytes]:
        """Return available bytes, b"" if none arrived in time, None at end of stream."""
        ...

    def close(self) -> None: ...


class SerialTransport:
    """Transport over an open pyserial port."""

    def __init__(self, ser: serial.Serial):
        self.ser = ser

    def read_chunk(self) -> Optional[bytes]:
        """
        Read whatever the instrument has sent.

        Blocks for at most the port timeout when nothing is waiting.

        Returns:
            Received bytes (possibly empty), or None if the port was closed
        """
        if not self.ser.is_open:
            return None
        try:
            return self.ser.read(self.ser.in_waiting or 1)
        except (serial.SerialException, OSError) as e:
            raise InstrumentConnectionError(f"Failed to read from {self.ser.port}: {e}") from e

    def close(self):
        if not self.ser.is_open:
            return
        try:
            self.ser.close()
        except (serial.SerialException, OSError) as e:
            logger.warning("Error closing %s: %s", self.ser.port, e)


def open_connection(port: str, profile: InstrumentProfile,
                    timeout: float = SERIAL_TIMEOUT) -> Transport:
    """
    Open the instrument with the profile's line settings.

    Args:
        port: Serial port name, or SIMULATED_PORT for the built-in simulator
        profile: Baud rate, data bits, stop bits and parity to use
        timeout: Read timeout in seconds

    Returns:
        An open Transport

    Raises:
        InstrumentConnectionError: If the port cannot be opened
    """
    if port == SIMULATED_PORT:
        logger.info("Opening simulated instrument")
        return SimulatedInstrument()

    parity = PARITY_MAP.get(profile.parity.lower())
    if parity is None:
        raise InstrumentConnectionError(f"Unsupported parity {profile.parity!r}")

    try:
        ser = serial.Serial(
            port=port,
            baudrate=profile.baud_rate,
            bytesize=profile.data_bits,
            stopbits=profile.stop_bits,
            parity=parity,
            timeout=timeout,
        )
        ser.reset_input_buffer()
    except (serial.SerialException, ValueError) as e:
        raise InstrumentConnectionError(f"Failed to connect to {port}: {e}") from e

    logger.info("Opened %s at %d baud (%s)", port, profile.baud_rate, profile.name)
    return SerialTransport(ser)


def get_available_ports() -> list[str]:
    """Get list of available COM ports, followed by the simulator entry."""
    ports = [port.device for port in serial.tools.list_ports.comports()]
    ports.append(SIMULATED_PORT)
    return ports
