import math
from datetime import datetime

import pytest

from pulsemonitor.processor import (
    DataProcessor,
    MinuteAverageCalculator,
    PeakState,
    mean,
    median,
    spo2_from_ratio,
)


def _feed(proc, period_ms, duration_ms, start=1000, step=50):
    for t in range(start, start + duration_ms, step):
        phase = 2 * math.pi * (t - start) / period_ms
        proc.process_values(
            t, 100000 + 1000 * math.sin(phase), 25000 + 300 * math.sin(phase), 36.6
        )


def test_mean_and_median_of_empty_are_zero():
    assert mean([]) == 0.0
    assert median([]) == 0.0


def test_mean_of_constant_values():
    assert mean([7.5, 7.5, 7.5]) == 7.5


def test_median_odd_and_even():
    assert median([3, 1, 2]) == 2
    assert median([4, 1, 3, 2]) == mean([2, 3])


def test_spo2_from_ratio_clamped():
    assert spo2_from_ratio(0.0) == 100
    assert spo2_from_ratio(10.0) == 80
    results = [spo2_from_ratio(r / 10) for r in range(0, 20)]
    assert all(80 <= v <= 100 for v in results)
    assert results == sorted(results, reverse=True)


def test_minute_average_records_statistics():
    calc = MinuteAverageCalculator()
    now = datetime(2024, 1, 1, 12, 30, 45)
    ts = int(now.timestamp())
    for bpm in (60.0, 62.0, 64.0):
        calc.add_bpm_value(bpm, ts - 10)
    record = calc.update_average(now)
    assert record.average_bpm == mean([60.0, 62.0, 64.0])
    assert record.min_bpm == 60.0
    assert record.max_bpm == 64.0
    assert record.minute_timestamp == datetime(2024, 1, 1, 12, 30)
    assert calc.records == [record]
    assert calc.last_average_bpm == record.average_bpm
    assert calc.label_text() == f"Avg BPM (1 min): {record.average_bpm:.2f}"


def test_minute_average_rejects_outliers():
    calc = MinuteAverageCalculator()
    now = datetime(2024, 1, 1, 8, 0, 5)
    ts = int(now.timestamp())
    for bpm in (60.0, 60.0, 60.0, 200.0):
        calc.add_bpm_value(bpm, ts)
    record = calc.update_average(now)
    assert record.max_bpm == 60.0
    assert record.min_bpm == 60.0


def test_minute_average_wider_upper_bound_above_120():
    calc = MinuteAverageCalculator()
    now = datetime(2024, 1, 1, 8, 0, 5)
    ts = int(now.timestamp())
    for bpm in (130.0, 130.0, 165.0):
        calc.add_bpm_value(bpm, ts)
    record = calc.update_average(now)
    assert record.max_bpm == 165.0


def test_minute_average_drops_old_values():
    calc = MinuteAverageCalculator()
    now = datetime(2024, 1, 1, 8, 0, 5)
    ts = int(now.timestamp())
    calc.add_bpm_value(90.0, ts - 61)
    assert calc.update_average(now) is None
    assert calc.label_text() == "Avg BPM (1 min): --"
    assert calc.records == []
    assert calc.bpm_values == []


def test_minute_average_keeps_only_recent():
    calc = MinuteAverageCalculator()
    now = datetime(2024, 1, 1, 8, 0, 5)
    ts = int(now.timestamp())
    calc.add_bpm_value(90.0, ts - 61)
    calc.add_bpm_value(70.0, ts - 5)
    record = calc.update_average(now)
    assert calc.bpm_values == [70.0]
    assert record.average_bpm == 70.0


def test_label_before_any_update():
    assert MinuteAverageCalculator().label_text() == "Avg BPM (1 min): --"


def test_detect_peak_improved_sequence():
    proc = DataProcessor()
    results = [proc.detect_peak_improved(v, i) for i, v in enumerate([10.0, 20.0, 30.0, 29.0])]
    assert results == [False, False, False, True]
    assert proc.peak_state is PeakState.WAITING


def test_detect_peak_improved_ignores_small_drop():
    proc = DataProcessor()
    results = [proc.detect_peak_improved(v, i) for i, v in enumerate([10.0, 30.0, 29.99])]
    assert results == [False, False, False]
    assert proc.peak_state is PeakState.RISING


def test_detect_spo2_without_baseline():
    assert DataProcessor().detect_spo2(100000.0, 25000.0) == 0.0


def test_elapsed_time_and_start():
    proc = DataProcessor()
    proc.process_values(1000, 1.0, 1.0, 36.0)
    proc.process_values(3500, 1.0, 1.0, 36.0)
    assert proc.time_start == 1000
    assert proc.elapsed_time() == 2.5


def test_x_range_initial_and_scrolling():
    proc = DataProcessor()
    assert proc.x_range() == (0.0, 20.0)
    _feed(proc, 1000, 25000)
    t = proc.elapsed_time()
    assert t >= 20.0
    assert proc.x_range() == (t - 20.0, t)


def test_raw_series_recorded():
    proc = DataProcessor()
    _feed(proc, 1000, 2000)
    assert len(proc.ir_data) == len(proc.red_data) == len(proc.temp_data)
    assert all(y == 36.6 for _, y in proc.temp_data)
    xs = [x for x, _ in proc.ir_data]
    assert xs == sorted(xs)
    assert xs[0] == 0.0


def test_heart_rate_from_regular_peaks():
    proc = DataProcessor()
    _feed(proc, 1000, 5000)
    peaks = proc.peak_points
    assert len(peaks) >= 3
    assert all(p in proc.ir_data for p in peaks)
    diffs = [b[0] - a[0] for a, b in zip(peaks, peaks[1:])]
    assert diffs == pytest.approx([1.0] * len(diffs))
    assert len(proc.bpm_data) == len(peaks) - 1
    assert all(bpm == 60.0 for _, bpm in proc.bpm_data)
    assert [y for _, y in proc.avg_bpm_data] == [y for _, y in proc.bpm_data]
    assert proc.minute_calculator.bpm_values == [y for _, y in proc.bpm_data]


def test_peak_spo2_values_in_range():
    proc = DataProcessor()
    _feed(proc, 1000, 5000)
    assert len(proc.spo2_peak_data) == len(proc.peak_points) - 1
    assert all(80 <= y <= 100 for _, y in proc.spo2_peak_data)
    assert all(80 <= y <= 100 for _, y in proc.spo2_data)
    ir_xs = {x for x, _ in proc.ir_data}
    assert all(x in ir_xs for x, _ in proc.spo2_data)


def test_refractory_period_and_rate_limits():
    proc = DataProcessor()
    _feed(proc, 250, 5000)
    peaks = proc.peak_points
    assert len(peaks) >= 2
    diffs = [b[0] - a[0] for a, b in zip(peaks, peaks[1:])]
    assert all(d > 0.3 for d in diffs)
    assert proc.bpm_data == []


def test_minute_update_after_processing():
    proc = DataProcessor()
    _feed(proc, 1000, 5000)
    record = proc.minute_calculator.update_average()
    assert record.average_bpm == proc.bpm_data[0][1]
    assert record.minute_timestamp.second == 0