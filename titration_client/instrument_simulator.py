"""
instrument_simulator.py

Transport that emits serial records like a pH meter during a titration.
Records are cut into random-sized chunks the way a serial port delivers them,
which makes it useful to validate the parser and GUI without hardware.

"""
import math
import random
from typing import Optional


class SimulatedInstrument:
    """Fake pH meter producing 'pH,temperature\\r' records."""

    def __init__(self, seed: Optional[int] = None, records_per_read: int = 2,
                 noise_rate: float = 0.02, max_records: Optional[int] = None):
        """
        Args:
            seed: Seed for reproducible output
            records_per_read: Records generated ahead of each read
            noise_rate: Probability of emitting a garbled record
            max_records: End the stream after this many records (None = endless)
        """
        self.rng = random.Random(seed)
        self.records_per_read = records_per_read
        self.noise_rate = noise_rate
        self.max_records = max_records
        self.records_sent = 0
        self.closed = False
        self._pending = b""

    def ph_at(self, index: int) -> float:
        # Strong acid titrated with strong base: steep rise around record 60
        return 3.0 + 8.0 / (1.0 + math.exp(-(index - 60) / 6.0))

    def _next_record(self) -> bytes:
        index = self.records_sent
        self.records_sent += 1
        if self.rng.random() < self.noise_rate:
            return b"ERR\r"
        ph = self.ph_at(index) + self.rng.gauss(0, 0.01)
        temperature = 25.0 + self.rng.gauss(0, 0.2)
        return f"{ph:.3f},{temperature:.1f}\r".encode()

    def _exhausted(self) -> bool:
        return self.max_records is not None and self.records_sent >= self.max_records

    def read_chunk(self) -> Optional[bytes]:
        if self.closed:
            return None
        for _ in range(self.records_per_read):
            if self._exhausted():
                break
            self._pending += self._next_record()
        if not self._pending:
            return None

        cut = self.rng.randint(1, len(self._pending))
        chunk, self._pending = self._pending[:cut], self._pending[cut:]
        return chunk

    def close(self):
        self.closed = True
