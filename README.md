# pulsemonitor

A client for a networked pulse-oximeter sensor. It connects to the sensor
over TCP, reads one sample per line, and:

- records the infrared, red and temperature signals,
- detects heart beats with a five-sample sliding window (the centre sample
  must be strictly greater than the other four) and a 300 ms refractory
  period,
- turns beat intervals strictly between 500 ms and 1333 ms into BPM, plus a
  running average over the last three beats,
- estimates SpO2 two ways: against a 4-second AC/DC baseline window, and
  from the peak-to-peak swing between beats; both use
  `110 - 25 * R`, clamped to 80–100 %,
- keeps per-minute BPM statistics (average, minimum, maximum) over the last
  60 seconds after dropping values outside 0.8–1.2 times the median
  (0.8–1.3 when the median is above 120),
- exports everything to text or binary files.

## Wire format

Each line the sensor sends looks like this:

```
<timestamp_ms>,<ir>,<red>,<temperature>
```

for example `123456,102345.0,25120.0,36.6`. `pulsemonitor.receiver.parse_line`
accepts a `str` or `bytes` line and returns a `SensorSample` with the fields
`timestamp`, `ir`, `red` and `temperature`. It raises `ValueError` when the
line does not have exactly four fields, the timestamp is not a 64-bit
integer, or a value is not a number.

`LineReceiver.feed(data)` buffers incoming bytes (or text) and returns the
samples of every complete line; invalid lines are skipped, and an unfinished
line stays in `pending` until its newline arrives.

## Installation

```
pip install .
```

## Running

```
pulsemonitor
```

This connects to the sensor on port 80, using the saved address or
`192.168.31.222` when none is saved. The client reconnects when the
connection drops (after 5 s), on a socket error (after 3 s), or when no data
has arrived for more than ten seconds. Every minute it refreshes the
one-minute BPM average and prints a line such as `Avg BPM (1 min): 72.00`.

Options:

- `--host ADDRESS` – sensor address; it is also saved for later runs
- `--port N` – TCP port (default 80)
- `--settings FILE` – settings file to use instead of the default one
- `--duration SECONDS` – stop after this many seconds
- `--export {text,binary,both}` – export the recorded data on exit and print
  the paths written
- `--output-dir DIR` – directory under which the export folders are created
  (default: the current directory)

Ctrl+C stops the monitor; the export, if requested, still runs.

## Using the library

```python
from pulsemonitor.processor import DataProcessor
from pulsemonitor.receiver import LineReceiver
from pulsemonitor.exporter import export_text, export_binary

processor = DataProcessor()
receiver = LineReceiver()

for sample in receiver.feed(b"1000,100000,25000,36.5\n"):
    processor.process_values(sample.timestamp, sample.ir, sample.red, sample.temperature)

export_text(processor, "session")    # writes ./Result/session_*.txt
export_binary(processor, "session")  # writes ./Result_Binar/session_*.bin
```

`DataProcessor` keeps its results as lists of `(seconds, value)` points, with
time counted from the first sample: `ir_data`, `red_data`, `temp_data`,
`bpm_data`, `avg_bpm_data`, `spo2_data`, `spo2_peak_data` and `peak_points`.
`elapsed_time()` gives the seconds between the first and latest sample and
`x_range()` the visible 20-second window. `minute_calculator` is the
`MinuteAverageCalculator`; call its `update_average()` to append a
`MinuteBPMRecord` to `records`, and `label_text()` for the display line.

`MonitorClient(host, port)` from `pulsemonitor.app` runs the connection loop
with `run()` until `stop()` is called.

### Export formats

`export_text(processor, base_filename, root=".")` creates `root/Result` and
writes one `hh:mm:ss<TAB>value` line per point (local time; values in `%g`
form) to `<base>_IR.txt`, `_Red.txt`, `_BPM.txt`, `_AvgBPM.txt`,
`_Temp.txt`, `_Spo2.txt` and `_Spo2Peaks.txt`. It also writes
`_BPM1min.txt`, a table with the header
`Minute<TAB>Avg BPM<TAB>Min BPM<TAB>Max BPM` and one `hh:mm` row per minute.

`export_binary(processor, base_filename, root=".")` creates
`root/Result_Binar` and writes matching `.bin` files. Each record is four
big-endian 32-bit integers (hour, minute, second, millisecond) followed by a
big-endian 64-bit float value.

Both return the list of paths written and raise `ValueError` when given no
processor. The single-file writers `write_series_text`,
`write_series_binary` and `write_minute_records` are also available.

### Settings

`Settings` stores the sensor's IP address under `ipAddress` in an INI file.
By default the file is `$XDG_CONFIG_HOME/pulsemonitor/settings.ini`, or
`~/.config/pulsemonitor/settings.ini`, as returned by
`default_settings_path()`.

## What it does not do

There is no graphical display: the signals, beats and SpO2 values are kept
as data points for export or for your own plotting, and the one-minute
average is printed to the console.

## Tests

```
pip install .[test]
pytest
```