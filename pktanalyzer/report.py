"""Human-readable and JSON reporting of metrics snapshots."""

from __future__ import annotations

import json
import platform
import sys
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pktanalyzer.metrics import Metrics, MetricsSnapshot, get_metrics

META_STRING_LEN = 64
_BYTES_PER_MB = 1024 * 1024


@dataclass(frozen=True)
class MetricsMetadata:
    """Run configuration stored with results so baselines compare like with like."""

    interface: str = ""
    filter: str = ""
    os: str = ""
    git_sha: str = ""
    traffic_mode: str = ""
    traffic_target: str = ""
    threads: int = 0
    bpf_buffer_size: int = 0
    duration_sec: int = 0
    warmup_sec: int = 0
    traffic_rate: int = 0
    valid: bool = False


def _clip(text: str) -> str:
    return text[: META_STRING_LEN - 1]


def _system_name() -> str:
    try:
        name = platform.system()
    except OSError:
        name = ""
    return name or "unknown"


def make_metadata(
    interface: Optional[str],
    filter: Optional[str],
    threads: int,
    bpf_buffer_size: int,
    duration_sec: int,
    warmup_sec: int,
    traffic_mode: Optional[str],
    traffic_target: Optional[str],
    traffic_rate: int,
    git_sha: Optional[str] = None,
) -> MetricsMetadata:
    """Build metadata for the current run, filling in the OS name and defaults."""
    return MetricsMetadata(
        interface=_clip(interface) if interface is not None else "",
        filter=_clip(filter) if filter is not None else "none",
        os=_clip(_system_name()),
        git_sha=_clip(git_sha) if git_sha else "unknown",
        traffic_mode=_clip(traffic_mode) if traffic_mode is not None else "none",
        traffic_target=_clip(traffic_target) if traffic_target is not None else "",
        threads=threads,
        bpf_buffer_size=bpf_buffer_size,
        duration_sec=duration_sec,
        warmup_sec=warmup_sec,
        traffic_rate=traffic_rate,
        valid=True,
    )


def format_latency(ns: int) -> str:
    """Format a nanosecond latency with a unit suited to its size."""
    if ns < 1000:
        return f"{ns}ns"
    if ns < 1_000_000:
        return f"{ns / 1000.0:.1f}µs"
    if ns < 1_000_000_000:
        return f"{ns / 1_000_000.0:.2f}ms"
    return f"{ns / 1_000_000_000.0:.2f}s"


def _rates(packets: int, nbytes: int, elapsed: float) -> tuple:
    if elapsed > 0:
        return packets / elapsed, (nbytes / elapsed) / _BYTES_PER_MB
    return 0.0, 0.0


def format_human(snapshot: MetricsSnapshot) -> str:
    """Two-line summary: throughput, drops and latency percentiles, then protocols."""
    pps, mbps = _rates(
        snapshot.pkts_processed, snapshot.bytes_processed, snapshot.capture_elapsed_sec
    )
    drops = snapshot.queue_drops + snapshot.capture_drops
    p50, p95, p99 = (snapshot.percentile_ns(p) for p in (0.50, 0.95, 0.99))
    latencies = "/".join(
        format_latency(value) for value in (p50, p95, p99, snapshot.latency_max_ns)
    )
    return (
        f"[METRICS] {snapshot.elapsed_sec:.1f}s | pkts: {snapshot.pkts_processed} "
        f"({pps:.0f}/s) | {mbps:.2f} MB/s | drops: {drops} | "
        f"latency p50/p95/p99/max: {latencies}\n"
        f"[PROTO] L3: IPv4={snapshot.ether_ipv4} IPv6={snapshot.ether_ipv6} "
        f"ARP={snapshot.ether_arp} other={snapshot.ether_other} | "
        f"L4: TCP={snapshot.proto_tcp} UDP={snapshot.proto_udp} "
        f"ICMP={snapshot.proto_icmp} other={snapshot.proto_other}\n"
    )


def format_live_stats(snapshot: MetricsSnapshot) -> str:
    """Compact one-line capture statistics."""
    pps, mbps = _rates(
        snapshot.pkts_captured, snapshot.bytes_captured, snapshot.capture_elapsed_sec
    )
    drops = snapshot.queue_drops + snapshot.capture_drops
    return (
        f"[METRICS] t={snapshot.elapsed_sec:.1f} pkts={snapshot.pkts_captured} "
        f"pps={pps:.0f} MB/s={mbps:.2f} drops={drops}\n"
    )


def print_human(metrics: Optional[Metrics] = None) -> None:
    """Print the human-readable summary of the given (or global) metrics."""
    metrics = metrics if metrics is not None else get_metrics()
    sys.stdout.write(format_human(metrics.snapshot()))
    sys.stdout.flush()


def print_live_stats(metrics: Optional[Metrics] = None) -> None:
    """Print the live stats line of the given (or global) metrics."""
    metrics = metrics if metrics is not None else get_metrics()
    sys.stdout.write(format_live_stats(metrics.snapshot()))
    sys.stdout.flush()


def snapshot_to_dict(
    snapshot: MetricsSnapshot, metadata: Optional[MetricsMetadata] = None
) -> Dict[str, Any]:
    """The full JSON report of a snapshot as a dictionary."""
    meta = metadata if metadata is not None else MetricsMetadata()
    pps, mbps = _rates(
        snapshot.pkts_processed, snapshot.bytes_processed, snapshot.capture_elapsed_sec
    )
    avg = (
        snapshot.latency_sum_ns // snapshot.latency_count
        if snapshot.latency_count > 0
        else 0
    )
    return {
        "timestamp": f"{snapshot.snapshot_time_ns / 1e9:.3f}",
        "elapsed_sec": round(snapshot.elapsed_sec, 3),
        "capture_elapsed_sec": round(snapshot.capture_elapsed_sec, 3),
        "packets": {
            "captured": snapshot.pkts_captured,
            "processed": snapshot.pkts_processed,
            "rate_pps": round(pps, 2),
        },
        "bytes": {
            "captured": snapshot.bytes_captured,
            "processed": snapshot.bytes_processed,
            "rate_mbps": round(mbps, 4),
        },
        "errors": {
            "parse_errors": snapshot.parse_errors,
            "checksum_failures": snapshot.checksum_failures,
            "queue_drops": snapshot.queue_drops,
            "capture_drops": snapshot.capture_drops,
        },
        "ethertype": {
            "ipv4": snapshot.ether_ipv4,
            "ipv6": snapshot.ether_ipv6,
            "arp": snapshot.ether_arp,
            "other": snapshot.ether_other,
        },
        "protocols": {
            "tcp": snapshot.proto_tcp,
            "udp": snapshot.proto_udp,
            "icmp": snapshot.proto_icmp,
            "other": snapshot.proto_other,
        },
        "queue": {"depth_max": snapshot.queue_depth_max},
        "latency_ns": {
            "count": snapshot.latency_count,
            "sum": snapshot.latency_sum_ns,
            "avg": avg,
            "max": snapshot.latency_max_ns,
            "p50": snapshot.percentile_ns(0.50),
            "p95": snapshot.percentile_ns(0.95),
            "p99": snapshot.percentile_ns(0.99),
        },
        "latency_histogram": list(snapshot.latency_histogram),
        "metadata": {
            "interface": meta.interface,
            "filter": meta.filter,
            "threads": meta.threads,
            "bpf_buffer_size": meta.bpf_buffer_size,
            "duration_sec": meta.duration_sec,
            "warmup_sec": meta.warmup_sec,
            "traffic_mode": meta.traffic_mode,
            "traffic_target": meta.traffic_target,
            "traffic_rate": meta.traffic_rate,
            "os": meta.os,
            "git_sha": meta.git_sha,
        },
    }


def write_json(
    metrics: Optional[Metrics], metadata: Optional[MetricsMetadata], path: str
) -> Dict[str, Any]:
    """Snapshot the metrics and write the JSON report to path; returns the report.

    Raises OSError if the file cannot be written.
    """
    metrics = metrics if metrics is not None else get_metrics()
    report = snapshot_to_dict(metrics.snapshot(), metadata)
    with open(path, "w", encoding="utf-8") as fp:
        json.dump(report, fp, indent=2, ensure_ascii=False)
        fp.write("\n")
    return report