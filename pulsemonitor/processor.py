"""Signal processing for pulse-oximeter samples: peaks, heart rate and SpO2."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable

log = logging.getLogger(__name__)

Point = tuple[float, float]

SPO2_WINDOW_MS = 4000
PEAK_WINDOW_SIZE = 5
REFRACTORY_MS = 300
MIN_BEAT_INTERVAL_MS = 500
MAX_BEAT_INTERVAL_MS = 1333
BPM_SMOOTHING = 3
VISIBLE_SECONDS = 20.0
MINUTE_WINDOW_S = 60
LABEL_PREFIX = "Avg BPM (1 min): "


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, or 0.0 for no values."""
    values = list(values)
    return sum(values) / len(values) if values else 0.0


def median(values: Iterable[float]) -> float:
    """Median, or 0.0 for no values."""
    ordered = sorted(values)
    n = len(ordered)
    if n == 0:
        return 0.0
    if n % 2 == 0:
        return (ordered[n // 2 - 1] + ordered[n // 2]) / 2.0
    return ordered[n // 2]


def spo2_from_ratio(ratio: float) -> int:
    """Empirical SpO2 percentage from the red/IR ratio of ratios, clamped to 80..100."""
    return min(100, max(80, int(110 - 25.0 * ratio)))


def _ratio_of_ratios(red_ac: float, red_dc: float, ir_ac: float, ir_dc: float) -> float:
    return (red_ac / red_dc) / (ir_ac / ir_dc)


@dataclass(frozen=True)
class MinuteBPMRecord:
    """Heart-rate statistics for one minute (local time, seconds zeroed)."""

    minute_timestamp: datetime
    average_bpm: float
    min_bpm: float
    max_bpm: float


class MinuteAverageCalculator:
    """Collects BPM values and summarises the last minute, rejecting outliers."""

    def __init__(self) -> None:
        self._samples: deque[tuple[int, float]] = deque()
        self.last_average_bpm = 0.0
        self.records: list[MinuteBPMRecord] = []
        self._label_value: float | None = None

    @property
    def bpm_values(self) -> list[float]:
        """BPM values currently held, oldest first."""
        return [bpm for _, bpm in self._samples]

    def add_bpm_value(self, bpm: float, timestamp: int | None = None) -> None:
        """Add a BPM value observed at ``timestamp`` (seconds since the epoch)."""
        ts = int(time.time()) if timestamp is None else int(timestamp)
        self._samples.append((ts, bpm))
        log.debug("Added BPM: %s Total: %d", bpm, len(self._samples))

    def update_average(self, now: datetime | None = None) -> MinuteBPMRecord | None:
        """Drop values older than a minute and record the statistics of the rest.

        Returns the new record, or None when nothing usable remains.
        """
        now = datetime.now() if now is None else now
        current = int(now.timestamp())
        while self._samples and current - self._samples[0][0] > MINUTE_WINDOW_S:
            self._samples.popleft()

        values = self.bpm_values
        if not values:
            self._label_value = None
            return None

        centre = median(values)
        lower = centre * 0.8
        upper = centre * 1.3 if centre > 120 else centre * 1.2
        filtered = [v for v in values if lower <= v <= upper]
        if not filtered:
            self._label_value = None
            return None

        average = mean(filtered)
        record = MinuteBPMRecord(
            minute_timestamp=now.replace(second=0, microsecond=0),
            average_bpm=average,
            min_bpm=min(filtered),
            max_bpm=max(filtered),
        )
        self.last_average_bpm = average
        self.records.append(record)
        self._label_value = average
        log.debug(
            "Minute stats: average=%s min=%s max=%s",
            average, record.min_bpm, record.max_bpm,
        )
        return record

    def label_text(self) -> str:
        """Text for the one-minute average display."""
        if self._label_value is None:
            return LABEL_PREFIX + "--"
        return f"{LABEL_PREFIX}{self._label_value:.2f}"


class PeakState(Enum):
    WAITING = "waiting"
    RISING = "rising"


class DataProcessor:
    """Turns raw IR/red/temperature samples into plotted series and vital signs.

    Timestamps are milliseconds; series x values are seconds since the first sample.
    """

    def __init__(self) -> None:
        self.time_start = 0
        self.last_received_timestamp = 0
        self.last_peak_time = 0

        self.ir_data: list[Point] = []
        self.red_data: list[Point] = []
        self.temp_data: list[Point] = []
        self.bpm_data: list[Point] = []
        self.avg_bpm_data: list[Point] = []
        self.spo2_data: list[Point] = []
        self.spo2_peak_data: list[Point] = []
        self.peak_points: list[Point] = []

        self.minute_calculator = MinuteAverageCalculator()

        self._ir_buffer: deque[tuple[int, float]] = deque()
        self._red_buffer: deque[tuple[int, float]] = deque()
        self._bpm_values: deque[float] = deque(maxlen=BPM_SMOOTHING)
        self._interval_ir: list[float] = []
        self._interval_red: list[float] = []
        self._peak_window: deque[tuple[float, int]] = deque(maxlen=PEAK_WINDOW_SIZE)
        self._current_time_sec = 0.0

        self.peak_state = PeakState.WAITING
        self.drop_threshold = 0.001
        self._previous_value = 0.0
        self._candidate_peak = 0.0
        self._candidate_time = 0

    def elapsed_time(self) -> float:
        """Seconds between the first and the latest sample."""
        return (self.last_received_timestamp - self.time_start) / 1000.0

    def x_range(self) -> tuple[float, float]:
        """Visible time window: the first 20 s, then the latest 20 s."""
        t = self._current_time_sec
        if t >= VISIBLE_SECONDS:
            return (t - VISIBLE_SECONDS, t)
        return (0.0, VISIBLE_SECONDS)

    def _acdc_spo2(self, ir_value: float, red_value: float) -> int | None:
        """SpO2 from a sample against the current DC baselines, or None if undefined."""
        ir_dc = mean(v for _, v in self._ir_buffer)
        red_dc = mean(v for _, v in self._red_buffer)
        ir_ac = ir_value - ir_dc
        red_ac = red_value - red_dc
        if ir_dc != 0 and red_dc != 0 and ir_ac > 0 and red_ac > 0:
            return spo2_from_ratio(_ratio_of_ratios(red_ac, red_dc, ir_ac, ir_dc))
        return None

    def detect_spo2(self, ir_value: float, red_value: float) -> float:
        """SpO2 estimate of one sample against the buffered baselines; 0.0 when undefined."""
        spo2 = self._acdc_spo2(ir_value, red_value)
        return 0.0 if spo2 is None else float(spo2)

    def detect_peak_improved(self, ir_value: float, timestamp: int) -> bool:
        """Threshold-drop peak detector; True when a rising run falls by the drop threshold."""
        detected = False
        if self.peak_state is PeakState.WAITING:
            if ir_value > self._previous_value:
                self.peak_state = PeakState.RISING
                self._candidate_peak = ir_value
                self._candidate_time = timestamp
        elif ir_value > self._candidate_peak:
            self._candidate_peak = ir_value
            self._candidate_time = timestamp
        elif ir_value < self._candidate_peak * (1 - self.drop_threshold):
            detected = True
            self.peak_state = PeakState.WAITING
        self._previous_value = ir_value
        return detected

    def process_values(
        self, timestamp: int, ir_value: float, red_value: float, temp_value: float
    ) -> None:
        """Process one sensor sample."""
        if self.time_start == 0:
            self.time_start = timestamp
        current = (timestamp - self.time_start) / 1000.0
        self.last_received_timestamp = timestamp
        self._current_time_sec = current
        log.debug(
            "Processing IR=%s Red=%s Temp=%s t=%s", ir_value, red_value, temp_value, current
        )

        self._update_acdc_spo2(timestamp, current, ir_value, red_value)

        self.ir_data.append((current, ir_value))
        self.red_data.append((current, red_value))
        self.temp_data.append((current, temp_value))

        self._peak_window.append((ir_value, timestamp))
        self._interval_ir.append(ir_value)
        self._interval_red.append(red_value)
        self._check_peak(ir_value, red_value)

    def _update_acdc_spo2(
        self, timestamp: int, current: float, ir_value: float, red_value: float
    ) -> None:
        for buffer, value in ((self._ir_buffer, ir_value), (self._red_buffer, red_value)):
            buffer.append((timestamp, value))
            while buffer and timestamp - buffer[0][0] > SPO2_WINDOW_MS:
                buffer.popleft()

        spo2 = self._acdc_spo2(ir_value, red_value)
        if spo2 is not None:
            log.debug("Calculated SpO2=%d", spo2)
            self.spo2_data.append((current, float(spo2)))

    def _check_peak(self, ir_value: float, red_value: float) -> None:
        if len(self._peak_window) != PEAK_WINDOW_SIZE:
            return
        mid = PEAK_WINDOW_SIZE // 2
        centre_value, centre_time = self._peak_window[mid]
        is_peak = all(
            centre_value > value
            for index, (value, _) in enumerate(self._peak_window)
            if index != mid
        )
        if not is_peak:
            return
        if self.last_peak_time == 0 or centre_time - self.last_peak_time > REFRACTORY_MS:
            self._register_peak(centre_value, centre_time, ir_value, red_value)

    def _register_peak(
        self, peak_value: float, peak_time: int, ir_value: float, red_value: float
    ) -> None:
        peak_sec = (peak_time - self.time_start) / 1000.0
        self.peak_points.append((peak_sec, peak_value))

        if self.last_peak_time != 0:
            delta_ms = int(peak_time - self.last_peak_time)
            log.debug("Peak interval (ms): %d", delta_ms)
            if MIN_BEAT_INTERVAL_MS < delta_ms < MAX_BEAT_INTERVAL_MS:
                bpm = 60000.0 / delta_ms
                self._bpm_values.append(bpm)
                average = mean(self._bpm_values)
                self.bpm_data.append((peak_sec, bpm))
                self.avg_bpm_data.append((peak_sec, average))
                self.minute_calculator.add_bpm_value(bpm)

            if self._interval_ir and self._interval_red:
                ir_max, ir_min = max(self._interval_ir), min(self._interval_ir)
                red_max, red_min = max(self._interval_red), min(self._interval_red)
                ir_ac, red_ac = ir_max - ir_min, red_max - red_min
                ir_dc, red_dc = (ir_max + ir_min) / 2.0, (red_max + red_min) / 2.0
                if ir_ac > 0 and red_ac > 0 and ir_dc > 0 and red_dc > 0:
                    spo2 = spo2_from_ratio(_ratio_of_ratios(red_ac, red_dc, ir_ac, ir_dc))
                    self.spo2_peak_data.append((peak_sec, float(spo2)))

        self._interval_ir = [ir_value]
        self._interval_red = [red_value]
        self.last_peak_time = peak_time