# pktanalyzer

Building blocks for measuring packet-processing performance: counters and
latency histograms, human-readable and JSON reports, multi-run median
aggregation with a persistent-regression rule, a background `ping` traffic
generator and command-line option parsing.

## Modules

- **`pktanalyzer.logger`** – `LogLevel` (`DEBUG` … `CRITICAL`) and `Logger`,
  which writes `[timestamp] [LEVEL] message` lines to a log file (appended)
  or to a console stream, with ANSI colours only when not writing to a file.
  `Logger.hexdump` writes a labelled dump (only at `DEBUG` level);
  `format_hexdump` returns the dump text. `Logger` is a context manager that
  closes its file on exit. A process-wide logger is managed with
  `init_logger`, `get_logger` (creates an `INFO` console logger on first use)
  and `cleanup_logger`.
- **`pktanalyzer.buffer`** – `CircularBuffer`, a fixed-capacity FIFO of bytes.
  `write` raises `BufferOverflow` when the data does not fit, `read` raises
  `BufferUnderflow` when more bytes are asked for than are stored; empty
  writes, non-positive read lengths and a non-positive capacity raise
  `ValueError`. `len(buf)` is the number of stored bytes; `reset()` empties it.
- **`pktanalyzer.metrics`** – `Metrics`, thread-safe counters for captured and
  processed packets and bytes, parse errors, checksum failures, queue and
  capture drops, EtherType (`EtherType`) and L4 protocol (`Protocol`)
  breakdowns (ICMP and ICMPv6 share one counter), a queue-depth high-water
  mark and a 32-bucket exponential latency histogram (`latency_bucket`).
  `Metrics.snapshot()` returns a frozen `MetricsSnapshot` with elapsed times
  filled in; `percentile_ns` / `MetricsSnapshot.percentile_ns` estimate a
  latency percentile (given as a fraction, 0.0–1.0) as a bucket midpoint.
  `get_metrics()` returns a shared instance; `now_ns()` is the monotonic clock.
- **`pktanalyzer.report`** – `format_latency`, `format_human` (two-line
  summary), `format_live_stats` (one line), `print_human` and
  `print_live_stats` (to standard output), `MetricsMetadata` and
  `make_metadata` (fills in the OS name and defaults), `snapshot_to_dict` and
  `write_json` for the full JSON report.
- **`pktanalyzer.stats`** – `RunResult`, `run_result_from_snapshot`,
  `median`, `median_int`, `run_json_path`, `min_regressed_runs`,
  `analyze_runs` returning a `RegressionSummary`, `format_summary_table`, and
  `ExitCode` (0 success, 1 error, 2 regression, 3 insufficient sample,
  4 configuration mismatch).
- **`pktanalyzer.traffic`** – `TrafficGenerator`, which runs `ping` in the
  background at a chosen rate.
- **`pktanalyzer.options`** – `parse_args`, `Options`, `UsageError` and
  `usage` for the analyzer's command-line options.

## Circular buffer

```python
from pktanalyzer.buffer import CircularBuffer, BufferOverflow

buf = CircularBuffer(8)
buf.write(b"abcdef")
assert buf.read(4) == b"abcd"
assert len(buf) == 2

try:
    buf.write(b"0123456789")
except BufferOverflow:
    pass
```

## Recording metrics

```python
from pktanalyzer.metrics import Metrics, Protocol, EtherType

metrics = Metrics()
metrics.start()

metrics.inc_captured(1514)
metrics.record_ethertype(EtherType.IPV4)
metrics.record_protocol(Protocol.TCP)
metrics.inc_processed(1514)
metrics.observe_latency(3_200)          # nanoseconds
metrics.update_queue_depth_max(17)

metrics.stop_capture()
snap = metrics.snapshot()
print(snap.percentile_ns(0.95))
```

## Reports

```python
from pktanalyzer.report import make_metadata, format_human, write_json

metadata = make_metadata(
    interface="eth0",
    filter="icmp",
    threads=4,
    bpf_buffer_size=0,
    duration_sec=20,
    warmup_sec=2,
    traffic_mode="icmp",
    traffic_target="192.0.2.1",
    traffic_rate=50,
    git_sha="unknown",
)

print(format_human(metrics.snapshot()), end="")
report = write_json(metrics, metadata, "metrics.json")
```

The JSON report holds `timestamp`, `elapsed_sec`, `capture_elapsed_sec` and
the `packets`, `bytes`, `errors`, `ethertype`, `protocols`, `queue`,
`latency_ns`, `latency_histogram` and `metadata` sections. Rates in reports
use the capture time only; `MB/s` and `rate_mbps` are mebibytes per second.
`write_json` returns the report dictionary and raises `OSError` if the file
cannot be written.

## Regression checks across runs

```python
from pktanalyzer.stats import run_result_from_snapshot, analyze_runs, format_summary_table

runs = [run_result_from_snapshot(metrics.snapshot())]
summary = analyze_runs(runs, baseline_pps=1200.0, baseline_mbps=9.5, threshold=0.10)
print(format_summary_table(summary), end="")
```

`RunResult.mbps` is megabits per second, and the capture time is clamped to
at least one millisecond. A metric counts as regressed in a run when it falls
more than `threshold` below the baseline; the summary reports a regression
only when at least `min_regressed_runs(len(runs))` runs agree (the ceiling of
60 %). `analyze_runs` raises `ValueError` for an empty list of runs.
`run_json_path("m.json", 2)` gives `"m_run2.json"`.

## Background traffic

```python
from pktanalyzer.traffic import TrafficGenerator

with TrafficGenerator("icmp", "192.0.2.1", 50) as gen:
    print(gen.command())
    ...  # measure while ping runs
```

The rate becomes a `ping -i` interval of at least 2 ms (so at most 500
packets per second); a rate below 1 raises `ValueError`. A mode of `None`
generates nothing; any mode other than `"icmp"` raises `ValueError` on
`start()`. Stopping sends SIGINT, then SIGTERM, then SIGKILL if the process
is still running.

## Command-line options

```python
from pktanalyzer.options import parse_args, usage

opts = parse_args(["-i", "eth1", "--runs", "3", "--icmp"])
print(opts.measure_sec_effective(), opts.total_duration_sec())
print(usage("analyzer"))
```

Long options may be abbreviated when unambiguous; unknown options and missing
arguments raise `UsageError`. `-h`/`--help` sets `show_help` and ends parsing.

## What the package does not do

It does not capture packets: there is no raw-socket or interface access, no
packet parsing and no worker pool, and no command is installed to run an
analyzer. Baseline JSON files are not loaded and metadata compatibility is
not checked; `analyze_runs` takes the baseline figures as numbers.

## Running the tests

Install the `test` extra and run `pytest` from the project directory.