"""Line-oriented parsing of the sensor's "timestamp,ir,red,temperature" stream."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

log = logging.getLogger(__name__)

_INT_RE = re.compile(r"[+-]?[0-9]+")
_INT64_MIN = -(2**63)
_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class SensorSample:
    """One reading: timestamp in ms and three sensor values."""

    timestamp: int
    ir: float
    red: float
    temperature: float


def _to_int(text: str) -> int:
    text = text.strip()
    if not _INT_RE.fullmatch(text):
        raise ValueError(f"invalid timestamp: {text!r}")
    value = int(text)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"timestamp out of range: {text!r}")
    return value


def _to_float(text: str) -> float:
    text = text.strip()
    if not text or "_" in text:
        raise ValueError(f"invalid number: {text!r}")
    return float(text)


def parse_line(line: str | bytes) -> SensorSample:
    """Parse one line; raises ValueError on a wrong field count or a bad number."""
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    parts = line.strip().split(",")
    if len(parts) != 4:
        raise ValueError(f"expected 4 parameters, got {len(parts)}")
    timestamp, ir, red, temperature = parts
    return SensorSample(_to_int(timestamp), _to_float(ir), _to_float(red), _to_float(temperature))


class LineReceiver:
    """Buffers incoming bytes and yields samples for each complete line."""

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending(self) -> bytes:
        """Bytes of an incomplete line still waiting for its newline."""
        return bytes(self._buffer)

    def feed(self, data: bytes | str) -> list[SensorSample]:
        """Add data and return samples from every complete, valid line."""
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer.extend(data)
        samples: list[SensorSample] = []
        while (end := self._buffer.find(b"\n")) != -1:
            raw = bytes(self._buffer[: end + 1])
            del self._buffer[: end + 1]
            try:
                samples.append(parse_line(raw))
            except ValueError as exc:
                log.debug("Skipping line %r: %s", raw, exc)
        return samples