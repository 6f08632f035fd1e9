"""Snowflake-style ID generator for order, transaction and transfer IDs.

IDs are decimal strings that increase monotonically within one process, so
ordering by ID agrees with ordering by creation time for rows written here.
"""

import threading
import time


class SnowflakeIdGenerator:
    """Layout (64 bits): 41-bit ms timestamp | 10-bit machine_id | 12-bit sequence."""

    _EPOCH_MS = 1_700_000_000_000
    _MACHINE_BITS = 10
    _SEQUENCE_BITS = 12
    _MAX_SEQUENCE = (1 << _SEQUENCE_BITS) - 1

    def __init__(self, machine_id: int = 0) -> None:
        if not (0 <= machine_id < (1 << self._MACHINE_BITS)):
            raise ValueError(f"machine_id must be 0-{(1 << self._MACHINE_BITS) - 1}")
        self._machine_id = machine_id
        self._sequence = 0
        self._last_ms = -1
        self._lock = threading.Lock()

    def next_id(self) -> str:
        with self._lock:
            now_ms = self._clock_ms()
            if now_ms < self._last_ms:
                # Clock stepped backwards: keep issuing from the last seen tick.
                now_ms = self._last_ms
            if now_ms == self._last_ms:
                self._sequence = (self._sequence + 1) & self._MAX_SEQUENCE
                if self._sequence == 0:
                    now_ms = self._spin_until_after(now_ms)
            else:
                self._sequence = 0

            self._last_ms = now_ms
            value = (
                ((now_ms - self._EPOCH_MS) << (self._MACHINE_BITS + self._SEQUENCE_BITS))
                | (self._machine_id << self._SEQUENCE_BITS)
                | self._sequence
            )
            return str(value)

    def _clock_ms(self) -> int:
        return int(time.time() * 1000)

    def _spin_until_after(self, last_ms: int) -> int:
        now_ms = self._clock_ms()
        while now_ms <= last_ms:
            now_ms = self._clock_ms()
        return now_ms


_default_generator = SnowflakeIdGenerator()


def generate_id() -> str:
    return _default_generator.next_id()
