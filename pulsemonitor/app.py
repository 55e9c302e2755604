"""Command-line monitor: connects to the sensor, processes samples and exports results."""

from __future__ import annotations

import argparse
import logging
import socket
import threading
import time
from collections import deque
from datetime import datetime
from pathlib import Path
from typing import Callable

from pulsemonitor.exporter import export_binary, export_text
from pulsemonitor.processor import DataProcessor, MinuteBPMRecord
from pulsemonitor.receiver import LineReceiver, SensorSample
from pulsemonitor.settings import Settings

log = logging.getLogger(__name__)

DEFAULT_HOST = "192.168.31.222"
DEFAULT_PORT = 80
CONNECT_TIMEOUT_S = 5.0
RECONNECT_DELAY_S = 5.0
ERROR_RETRY_DELAY_S = 3.0
DATA_CHECK_INTERVAL_S = 10.0
DATA_TIMEOUT_S = 10
MINUTE_INTERVAL_S = 60.0

AXIS_WINDOW = 10
IR_HALF_WIDTH = 500.0
RED_HALF_WIDTH = 200.0
IR_INITIAL_RANGE = (95000.0, 110000.0)
RED_INITIAL_RANGE = (20000.0, 30000.0)


class AutoRange:
    """Centres an axis range on the mean of the last ``size`` values."""

    def __init__(self, size: int, half_width: float) -> None:
        if size < 1:
            raise ValueError("window size must be at least 1")
        self.size = size
        self.half_width = half_width
        self._values: deque[float] = deque(maxlen=size)

    def push(self, value: float) -> tuple[float, float] | None:
        """Add a value; return the new range once the window is full, else None."""
        self._values.append(value)
        if len(self._values) < self.size:
            return None
        centre = sum(self._values) / len(self._values)
        return (centre - self.half_width, centre + self.half_width)


class MonitorClient:
    """Reads the sensor stream over TCP and feeds it to a DataProcessor.

    Reconnects when the connection drops, fails, or no data arrives for a while,
    and refreshes the one-minute BPM average every minute.
    """

    def __init__(
        self, host: str, port: int = DEFAULT_PORT, processor: DataProcessor | None = None
    ) -> None:
        self.host = host
        self.port = port
        self.processor = processor if processor is not None else DataProcessor()
        self.receiver = LineReceiver()
        self.ir_autorange = AutoRange(AXIS_WINDOW, IR_HALF_WIDTH)
        self.red_autorange = AutoRange(AXIS_WINDOW, RED_HALF_WIDTH)
        self.ir_axis_range = IR_INITIAL_RANGE
        self.red_axis_range = RED_INITIAL_RANGE
        self.last_data_time = datetime.now()
        self.connect_timeout = CONNECT_TIMEOUT_S
        self.poll_interval = 0.5
        self.on_minute: Callable[[str], None] | None = None
        self._stop = threading.Event()
        self._next_minute = 0.0
        self._next_check = 0.0

    def handle_sample(self, sample: SensorSample, now: datetime | None = None) -> None:
        """Process one sample and adjust the IR and red axis ranges."""
        self.last_data_time = datetime.now() if now is None else now
        self.processor.process_values(
            sample.timestamp, sample.ir, sample.red, sample.temperature
        )
        ir_range = self.ir_autorange.push(sample.ir)
        if ir_range is not None:
            self.ir_axis_range = ir_range
        red_range = self.red_autorange.push(sample.red)
        if red_range is not None:
            self.red_axis_range = red_range

    def is_stale(self, now: datetime | None = None) -> bool:
        """True when more than ten whole seconds have passed since the last sample."""
        now = datetime.now() if now is None else now
        return int((now - self.last_data_time).total_seconds()) > DATA_TIMEOUT_S

    def update_minute_average(self) -> MinuteBPMRecord | None:
        """Refresh the one-minute average and report its label."""
        calculator = self.processor.minute_calculator
        record = calculator.update_average()
        text = calculator.label_text()
        log.info(text)
        if self.on_minute is not None:
            self.on_minute(text)
        return record

    def stop(self) -> None:
        """Ask a running :meth:`run` to return."""
        self._stop.set()

    def run(self) -> None:
        """Connect and process data until :meth:`stop` is called."""
        clock = time.monotonic()
        self._next_minute = clock + MINUTE_INTERVAL_S
        self._next_check = clock + DATA_CHECK_INTERVAL_S
        while not self._stop.is_set():
            log.info("Attempting to connect to %s on port %d", self.host, self.port)
            try:
                conn = socket.create_connection(
                    (self.host, self.port), timeout=self.connect_timeout
                )
            except OSError as exc:
                log.info("Not connected (%s). Will retry in %ss", exc, RECONNECT_DELAY_S)
                self._pause(RECONNECT_DELAY_S)
                continue
            log.info("Successfully connected to %s", self.host)
            self.receiver = LineReceiver()
            with conn:
                delay = self._serve(conn)
            if delay:
                self._pause(delay)

    def _serve(self, conn: socket.socket) -> float:
        conn.settimeout(self.poll_interval)
        while not self._stop.is_set():
            try:
                data: bytes | None = conn.recv(4096)
            except TimeoutError:
                data = None
            except OSError as exc:
                log.warning("Socket error: %s", exc)
                return ERROR_RETRY_DELAY_S
            if data == b"":
                log.info("Socket disconnected. Reconnect in %s seconds", RECONNECT_DELAY_S)
                return RECONNECT_DELAY_S
            if data:
                for sample in self.receiver.feed(data):
                    self.handle_sample(sample)
            if self._tick():
                log.info("No data for more than %d seconds. Reconnecting", DATA_TIMEOUT_S)
                return 0.0
        return 0.0

    def _tick(self) -> bool:
        clock = time.monotonic()
        if clock >= self._next_minute:
            self._next_minute = clock + MINUTE_INTERVAL_S
            self.update_minute_average()
        if clock >= self._next_check:
            self._next_check = clock + DATA_CHECK_INTERVAL_S
            return self.is_stale()
        return False

    def _pause(self, seconds: float) -> None:
        deadline = time.monotonic() + seconds
        while not self._stop.is_set():
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                return
            self._stop.wait(min(remaining, self.poll_interval))
            self._tick()


def main(argv: list[str] | None = None) -> int:
    """Run the monitor from the command line."""
    parser = argparse.ArgumentParser(
        prog="pulsemonitor", description="Monitor a pulse-oximeter sensor over TCP."
    )
    parser.add_argument("--host", help="sensor IP address (saved for later runs)")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    parser.add_argument("--settings", type=Path, help="settings file to use")
    parser.add_argument("--duration", type=float, help="stop after this many seconds")
    parser.add_argument("--export", choices=("text", "binary", "both"))
    parser.add_argument("--output-dir", type=Path, default=Path("."))
    args = parser.parse_args(argv)

    settings = Settings(args.settings)
    if args.host:
        settings.save_ip_address(args.host)
        host = args.host
    else:
        host = settings.load_ip_address(DEFAULT_HOST) or DEFAULT_HOST

    client = MonitorClient(host, args.port)
    client.on_minute = print
    timer = None
    if args.duration is not None:
        timer = threading.Timer(args.duration, client.stop)
        timer.daemon = True
        timer.start()
    try:
        client.run()
    except KeyboardInterrupt:
        client.stop()
    finally:
        if timer is not None:
            timer.cancel()

    if args.export:
        base = datetime.now().strftime("%Y%m%d_%H%M%S")
        written: list[Path] = []
        if args.export in ("text", "both"):
            written += export_text(client.processor, base, args.output_dir)
        if args.export in ("binary", "both"):
            written += export_binary(client.processor, base, args.output_dir)
        for path in written:
            print(path)
    return 0