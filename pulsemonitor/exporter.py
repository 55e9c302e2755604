"""Export of recorded series to text and binary files."""

from __future__ import annotations

import logging
import struct
from datetime import datetime
from pathlib import Path
from typing import Iterable, Sequence

from pulsemonitor.processor import DataProcessor, MinuteBPMRecord, Point

log = logging.getLogger(__name__)

TEXT_DIR = "Result"
BINARY_DIR = "Result_Binar"
MINUTE_HEADER = "Minute\tAvg BPM\tMin BPM\tMax BPM\n"

# Big-endian hour, minute, second, millisecond as 32-bit ints and the value as a double.
_BINARY_RECORD = struct.Struct(">iiiid")

_SERIES = (
    ("IR", "ir_data"),
    ("Red", "red_data"),
    ("BPM", "bpm_data"),
    ("AvgBPM", "avg_bpm_data"),
    ("Temp", "temp_data"),
    ("Spo2", "spo2_data"),
    ("Spo2Peaks", "spo2_peak_data"),
)


def _format_number(value: float) -> str:
    return format(value, "g")


def _local_time(time_start: int, seconds: float) -> datetime:
    absolute_ms = time_start + int(seconds * 1000)
    whole, millis = divmod(absolute_ms, 1000)
    return datetime.fromtimestamp(whole).replace(microsecond=millis * 1000)


def write_series_text(points: Iterable[Point], time_start: int, path: str | Path) -> Path:
    """Write "hh:mm:ss<TAB>value" lines, restoring local time from the start timestamp."""
    path = Path(path)
    with path.open("w", encoding="utf-8", newline="\n") as out:
        for seconds, value in points:
            stamp = _local_time(time_start, seconds).strftime("%H:%M:%S")
            out.write(f"{stamp}\t{_format_number(value)}\n")
    log.debug("Saved TXT: %s", path)
    return path


def write_series_binary(points: Iterable[Point], time_start: int, path: str | Path) -> Path:
    """Write (hour, minute, second, msec, value) records in big-endian byte order."""
    path = Path(path)
    with path.open("wb") as out:
        for seconds, value in points:
            moment = _local_time(time_start, seconds)
            out.write(
                _BINARY_RECORD.pack(
                    moment.hour,
                    moment.minute,
                    moment.second,
                    moment.microsecond // 1000,
                    float(value),
                )
            )
    log.debug("Saved BIN: %s", path)
    return path


def write_minute_records(records: Sequence[MinuteBPMRecord], path: str | Path) -> Path:
    """Write the per-minute BPM table with a header line."""
    path = Path(path)
    with path.open("w", encoding="utf-8", newline="\n") as out:
        out.write(MINUTE_HEADER)
        for record in records:
            out.write(
                f"{record.minute_timestamp.strftime('%H:%M')}\t"
                f"{_format_number(record.average_bpm)}\t"
                f"{_format_number(record.min_bpm)}\t"
                f"{_format_number(record.max_bpm)}\n"
            )
    log.debug("Saved BPM 1min TXT: %s", path)
    return path


def _require(processor: DataProcessor | None) -> DataProcessor:
    if processor is None:
        raise ValueError("no data processor to export")
    return processor


def export_text(
    processor: DataProcessor, base_filename: str, root: str | Path = "."
) -> list[Path]:
    """Write every series and the minute table as text under ``root``/Result."""
    processor = _require(processor)
    directory = Path(root) / TEXT_DIR
    directory.mkdir(parents=True, exist_ok=True)
    written = [
        write_series_text(
            getattr(processor, attr),
            processor.time_start,
            directory / f"{base_filename}_{suffix}.txt",
        )
        for suffix, attr in _SERIES
    ]
    written.append(
        write_minute_records(
            processor.minute_calculator.records,
            directory / f"{base_filename}_BPM1min.txt",
        )
    )
    log.debug("Text export complete, base filename %s", base_filename)
    return written


def export_binary(
    processor: DataProcessor, base_filename: str, root: str | Path = "."
) -> list[Path]:
    """Write every series in binary form under ``root``/Result_Binar."""
    processor = _require(processor)
    directory = Path(root) / BINARY_DIR
    directory.mkdir(parents=True, exist_ok=True)
    written = [
        write_series_binary(
            getattr(processor, attr),
            processor.time_start,
            directory / f"{base_filename}_{suffix}.bin",
        )
        for suffix, attr in _SERIES
    ]
    log.debug("Binary export complete, base filename %s", base_filename)
    return written