import struct
from datetime import datetime

import pytest

from pulsemonitor.exporter import (
    export_binary,
    export_text,
    write_minute_records,
    write_series_binary,
    write_series_text,
)
from pulsemonitor.processor import DataProcessor, MinuteBPMRecord


def _start_ms(hour=10, minute=0, second=0):
    return int(datetime(2024, 3, 5, hour, minute, second).timestamp()) * 1000


def _processor_with_samples(count=12):
    processor = DataProcessor()
    start = _start_ms()
    for index in range(count):
        processor.process_values(start + index * 100, 100000.0 + index, 25000.0 + index, 36.5)
    return processor


def test_text_series_lines(tmp_path):
    path = write_series_text([(0.0, 100000.0), (1.5, 36.5)], _start_ms(), tmp_path / "a.txt")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines == ["10:00:00\t100000", "10:00:01\t36.5"]


def test_text_series_uses_six_significant_digits(tmp_path):
    path = write_series_text([(0.0, 1 / 3)], _start_ms(), tmp_path / "b.txt")
    assert path.read_text(encoding="utf-8") == "10:00:00\t0.333333\n"


def test_text_series_empty(tmp_path):
    path = write_series_text([], _start_ms(), tmp_path / "c.txt")
    assert path.read_text(encoding="utf-8") == ""


def test_binary_series_records(tmp_path):
    path = write_series_binary(
        [(0.25, 97.0), (61.0, 98.5)], _start_ms(10, 0, 0), tmp_path / "a.bin"
    )
    data = path.read_bytes()
    assert len(data) == 48
    first = struct.unpack(">iiiid", data[:24])
    second = struct.unpack(">iiiid", data[24:])
    assert first == (10, 0, 0, 250, 97.0)
    assert second == (10, 1, 1, 0, 98.5)


def test_minute_records_table(tmp_path):
    records = [
        MinuteBPMRecord(datetime(2024, 3, 5, 10, 5), 72.5, 70.0, 75.0),
        MinuteBPMRecord(datetime(2024, 3, 5, 10, 6), 80.0, 78.0, 82.0),
    ]
    path = write_minute_records(records, tmp_path / "m.txt")
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[0] == "Minute\tAvg BPM\tMin BPM\tMax BPM"
    assert lines[1:] == ["10:05\t72.5\t70\t75", "10:06\t80\t78\t82"]


def test_minute_records_empty_has_header_only(tmp_path):
    path = write_minute_records([], tmp_path / "m.txt")
    assert path.read_text(encoding="utf-8") == "Minute\tAvg BPM\tMin BPM\tMax BPM\n"


def test_export_text_writes_all_files(tmp_path):
    processor = _processor_with_samples()
    written = export_text(processor, "run", tmp_path)
    names = [p.name for p in written]
    assert names == [
        "run_IR.txt",
        "run_Red.txt",
        "run_BPM.txt",
        "run_AvgBPM.txt",
        "run_Temp.txt",
        "run_Spo2.txt",
        "run_Spo2Peaks.txt",
        "run_BPM1min.txt",
    ]
    assert all(p.parent == tmp_path / "Result" for p in written)
    ir_lines = (tmp_path / "Result" / "run_IR.txt").read_text(encoding="utf-8").splitlines()
    assert len(ir_lines) == len(processor.ir_data)
    assert ir_lines[0] == "10:00:00\t100000"


def test_export_binary_writes_all_files(tmp_path):
    processor = _processor_with_samples()
    written = export_binary(processor, "run", tmp_path)
    assert [p.name for p in written] == [
        "run_IR.bin",
        "run_Red.bin",
        "run_BPM.bin",
        "run_AvgBPM.bin",
        "run_Temp.bin",
        "run_Spo2.bin",
        "run_Spo2Peaks.bin",
    ]
    temp = (tmp_path / "Result_Binar" / "run_Temp.bin").read_bytes()
    assert len(temp) == 24 * len(processor.temp_data)
    assert struct.unpack(">iiiid", temp[24:48])[3:] == (100, 36.5)


def test_export_without_processor_raises(tmp_path):
    with pytest.raises(ValueError):
        export_text(None, "run", tmp_path)
    with pytest.raises(ValueError):
        export_binary(None, "run", tmp_path)