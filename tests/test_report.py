import json

import pytest

from pktanalyzer.metrics import HISTOGRAM_BUCKETS, Metrics, MetricsSnapshot
from pktanalyzer.report import (
    MetricsMetadata,
    format_human,
    format_latency,
    format_live_stats,
    make_metadata,
    print_human,
    print_live_stats,
    snapshot_to_dict,
    write_json,
)


def _metadata(**overrides):
    args = dict(
        interface="eth0",
        filter="icmp",
        threads=4,
        bpf_buffer_size=131072,
        duration_sec=20,
        warmup_sec=2,
        traffic_mode="icmp",
        traffic_target="192.0.2.1",
        traffic_rate=50,
        git_sha="abc1234",
    )
    args.update(overrides)
    return make_metadata(**args)


@pytest.mark.parametrize("ns", [0, 1, 500, 999])
def test_format_latency_nanoseconds(ns):
    assert format_latency(ns) == f"{ns}ns"


@pytest.mark.parametrize("ns", [1000, 25_000, 999_000])
def test_format_latency_microseconds(ns):
    assert format_latency(ns).endswith("µs")


@pytest.mark.parametrize("ns", [1_000_000, 2_500_000, 999_000_000])
def test_format_latency_milliseconds(ns):
    assert format_latency(ns).endswith("ms")


def test_format_latency_milliseconds_value():
    assert format_latency(2_500_000) == "2.50ms"


@pytest.mark.parametrize("ns", [1_000_000_000, 5_000_000_000])
def test_format_latency_seconds(ns):
    text = format_latency(ns)
    assert text.endswith("s")
    assert not text.endswith("ms") and not text.endswith("µs") and not text.endswith("ns")


def test_make_metadata_fields():
    meta = _metadata()
    assert meta.interface == "eth0"
    assert meta.filter == "icmp"
    assert meta.threads == 4
    assert meta.bpf_buffer_size == 131072
    assert meta.traffic_target == "192.0.2.1"
    assert meta.git_sha == "abc1234"
    assert meta.valid is True
    assert meta.os


def test_make_metadata_defaults():
    meta = _metadata(filter=None, traffic_mode=None, traffic_target=None, git_sha=None)
    assert meta.filter == "none"
    assert meta.traffic_mode == "none"
    assert meta.traffic_target == ""
    assert meta.git_sha == "unknown"


def test_make_metadata_truncates_long_strings():
    meta = _metadata(interface="x" * 200)
    assert meta.interface == "x" * 63


def test_format_human_contents():
    snap = MetricsSnapshot(
        pkts_processed=100,
        capture_drops=4,
        ether_ipv4=7,
        ether_ipv6=3,
        proto_tcp=9,
        proto_icmp=2,
        capture_elapsed_sec=10.0,
        elapsed_sec=12.0,
    )
    text = format_human(snap)
    lines = text.splitlines()
    assert len(lines) == 2
    assert lines[0].startswith("[METRICS] ")
    assert "pkts: 100" in lines[0]
    assert "drops: 4" in lines[0]
    assert lines[1].startswith("[PROTO] ")
    assert "IPv4=7" in lines[1]
    assert "IPv6=3" in lines[1]
    assert "TCP=9" in lines[1]
    assert "ICMP=2" in lines[1]


def test_format_human_zero_elapsed_rates():
    snap = MetricsSnapshot(pkts_processed=50, bytes_processed=5000)
    line = format_human(snap).splitlines()[0]
    assert "(0/s)" in line
    assert "0.00 MB/s" in line
    assert "latency p50/p95/p99/max: 0ns/0ns/0ns/0ns" in line


def test_format_live_stats():
    snap = MetricsSnapshot(pkts_captured=42, queue_drops=6, capture_elapsed_sec=0.0)
    text = format_live_stats(snap)
    assert text.startswith("[METRICS] t=0.0 ")
    assert "pkts=42" in text
    assert "pps=0" in text
    assert "drops=6" in text
    assert text.endswith("\n")


def test_print_human_matches_format(capsys):
    metrics = Metrics()
    metrics.inc_processed(100)
    metrics.record_protocol(6)
    print_human(metrics)
    out = capsys.readouterr().out
    assert out == format_human(metrics.snapshot())


def test_print_live_stats_matches_format(capsys):
    metrics = Metrics()
    metrics.inc_captured(64)
    print_live_stats(metrics)
    out = capsys.readouterr().out
    assert out == format_live_stats(metrics.snapshot())


def test_snapshot_to_dict_structure():
    histogram = tuple([3, 1] + [0] * (HISTOGRAM_BUCKETS - 2))
    snap = MetricsSnapshot(
        pkts_captured=10,
        pkts_processed=8,
        bytes_captured=1000,
        bytes_processed=800,
        parse_errors=1,
        queue_depth_max=5,
        latency_count=4,
        latency_sum_ns=4000,
        latency_max_ns=1500,
        latency_histogram=histogram,
        snapshot_time_ns=3_000_000_000,
    )
    meta = _metadata()
    report = snapshot_to_dict(snap, meta)
    assert report["packets"]["captured"] == 10
    assert report["packets"]["processed"] == 8
    assert report["bytes"]["processed"] == 800
    assert report["errors"]["parse_errors"] == 1
    assert report["queue"]["depth_max"] == 5
    assert report["latency_ns"]["avg"] == snap.latency_sum_ns // snap.latency_count
    assert report["latency_ns"]["p50"] == snap.percentile_ns(0.50)
    assert report["latency_ns"]["p95"] == snap.percentile_ns(0.95)
    assert report["latency_ns"]["p99"] == snap.percentile_ns(0.99)
    assert report["latency_histogram"] == list(histogram)
    assert float(report["timestamp"]) == pytest.approx(3.0)
    assert report["metadata"]["interface"] == meta.interface
    assert report["metadata"]["traffic_rate"] == meta.traffic_rate
    assert list(report["metadata"]) == [
        "interface", "filter", "threads", "bpf_buffer_size", "duration_sec",
        "warmup_sec", "traffic_mode", "traffic_target", "traffic_rate", "os", "git_sha",
    ]


def test_snapshot_to_dict_empty_latency_and_no_metadata():
    report = snapshot_to_dict(MetricsSnapshot())
    assert report["latency_ns"]["avg"] == 0
    assert report["latency_ns"]["p99"] == 0
    assert report["packets"]["rate_pps"] == 0
    assert report["metadata"]["interface"] == MetricsMetadata().interface
    assert len(report["latency_histogram"]) == HISTOGRAM_BUCKETS


def test_write_json_round_trip(tmp_path):
    metrics = Metrics()
    metrics.start()
    metrics.inc_captured(60)
    metrics.inc_processed(60)
    metrics.observe_latency(2500)
    metrics.record_ethertype(0x0800)
    metrics.stop_capture()
    path = tmp_path / "metrics.json"
    meta = _metadata()
    returned = write_json(metrics, meta, str(path))
    loaded = json.loads(path.read_text(encoding="utf-8"))
    assert loaded == returned
    assert loaded["packets"]["processed"] == 1
    assert loaded["bytes"]["captured"] == 60
    assert loaded["ethertype"]["ipv4"] == 1
    assert loaded["latency_ns"]["count"] == 1
    assert loaded["latency_ns"]["max"] == 2500
    assert loaded["metadata"]["git_sha"] == "abc1234"


def test_write_json_unwritable_path(tmp_path):
    bad = tmp_path / "missing" / "out.json"
    with pytest.raises(OSError):
        write_json(Metrics(), None, str(bad))