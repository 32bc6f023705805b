"""
Data parsing utilities for pH meter output.
Splits the serial byte stream into lines and converts lines into samples.
"""

import codecs
import logging
import math
from typing import Iterator, Optional, Union

from config import FIELD_SEPARATOR, LINE_DELIMITER, PH_MAX, PH_MIN
from data_models import Sample

logger = logging.getLogger(__name__)


class LineFramer:
    """Buffers incoming chunks and yields complete carriage-return terminated lines."""

    def __init__(self, delimiter: str = LINE_DELIMITER):
        self.delimiter = delimiter
        self._buffer = ""
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="ignore")

    @property
    def pending(self) -> str:
        """Text received after the last delimiter."""
        return self._buffer

    def feed(self, chunk: Union[bytes, str]) -> Iterator[str]:
        """
        Add a chunk to the buffer.

        Args:
            chunk: Raw bytes or already decoded text from the transport

        Returns:
            Lazy iterator over the complete lines now available
        """
        if isinstance(chunk, (bytes, bytearray)):
            chunk = self._decoder.decode(bytes(chunk))
        self._buffer += chunk
        return self._lines()

    def _lines(self) -> Iterator[str]:
        while True:
            index = self._buffer.find(self.delimiter)
            if index < 0:
                return
            end = index + len(self.delimiter)
            line = self._buffer[:end].strip()
            self._buffer = self._buffer[end:]
            yield line

    def reset(self):
        """Discard any partial line and decoder state."""
        self._buffer = ""
        self._decoder.reset()


class SampleParser:
    """Parses 'pH,temperature' lines from the instrument."""

    def __init__(self):
        self.accepted = 0
        self.rejected = 0

    def parse(self, line: str) -> Optional[Sample]:
        """
        Parse a line of data from the pH meter.

        Args:
            line: One trimmed line, e.g. "6.154,25.0"

        Returns:
            Sample, or None if the line is malformed or out of range
        """
        sample = self._parse_fields(line)
        if sample is None:
            self.rejected += 1
            logger.debug("Rejected line %r", line)
        else:
            self.accepted += 1
        return sample

    def _parse_fields(self, line: str) -> Optional[Sample]:
        parts = line.split(FIELD_SEPARATOR)
        if len(parts) != 2:
            return None

        ph = self._to_finite_float(parts[0])
        if ph is None or ph < PH_MIN or ph > PH_MAX:
            return None

        temperature = self._to_finite_float(parts[1])
        if temperature is None:
            return None

        return Sample(ph, temperature)

    @staticmethod
    def _to_finite_float(text: str) -> Optional[float]:
        try:
            value = float(text)
        except ValueError:
            return None
        return value if math.isfinite(value) else None
