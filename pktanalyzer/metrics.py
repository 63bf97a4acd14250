"""Thread-safe packet, protocol and latency counters with point-in-time snapshots."""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Optional, Tuple

HISTOGRAM_BUCKETS = 32


class EtherType(IntEnum):
    """EtherType values counted separately; anything else counts as other."""

    IPV4 = 0x0800
    IPV6 = 0x86DD
    ARP = 0x0806


class Protocol(IntEnum):
    """IP protocol numbers counted separately; anything else counts as other."""

    ICMP = 1
    TCP = 6
    UDP = 17
    ICMPV6 = 58


def now_ns() -> int:
    """Current monotonic time in nanoseconds."""
    return time.monotonic_ns()


def latency_bucket(latency_ns: int) -> int:
    """Histogram bucket for a latency: floor(log2(microseconds)), capped at the last bucket.

    Bucket 0 covers [0, 2µs), bucket i covers [2^i µs, 2^(i+1) µs).
    """
    latency_us = latency_ns // 1000
    if latency_us <= 0:
        return 0
    return min(latency_us.bit_length() - 1, HISTOGRAM_BUCKETS - 1)


@dataclass(frozen=True)
class MetricsSnapshot:
    """A consistent copy of all counters taken at one moment."""

    pkts_captured: int = 0
    pkts_processed: int = 0
    bytes_captured: int = 0
    bytes_processed: int = 0

    parse_errors: int = 0
    checksum_failures: int = 0
    queue_drops: int = 0
    capture_drops: int = 0

    ether_ipv4: int = 0
    ether_ipv6: int = 0
    ether_arp: int = 0
    ether_other: int = 0

    proto_tcp: int = 0
    proto_udp: int = 0
    proto_icmp: int = 0
    proto_other: int = 0

    queue_depth_max: int = 0

    latency_count: int = 0
    latency_sum_ns: int = 0
    latency_max_ns: int = 0
    latency_histogram: Tuple[int, ...] = field(
        default_factory=lambda: (0,) * HISTOGRAM_BUCKETS
    )

    start_time_ns: int = 0
    snapshot_time_ns: int = 0
    capture_end_time_ns: int = 0
    elapsed_sec: float = 0.0
    capture_elapsed_sec: float = 0.0

    def percentile_ns(self, percentile: float) -> int:
        """Approximate latency at the given fraction (0.0-1.0) of observations."""
        return percentile_ns(self, percentile)


def percentile_ns(snapshot: Optional[MetricsSnapshot], percentile: float) -> int:
    """Approximate a latency percentile from the histogram, as a bucket midpoint in ns."""
    if snapshot is None or snapshot.latency_count == 0:
        return 0
    target_count = int(snapshot.latency_count * percentile)
    cumulative = 0
    for index, count in enumerate(snapshot.latency_histogram):
        cumulative += count
        if cumulative >= target_count:
            if index == 0:
                return 500
            low_us = 1 << (index - 1)
            high_us = 1 << index
            return ((low_us + high_us) // 2) * 1000
    return snapshot.latency_max_ns


_COUNTERS = (
    "pkts_captured",
    "pkts_processed",
    "bytes_captured",
    "bytes_processed",
    "parse_errors",
    "checksum_failures",
    "queue_drops",
    "capture_drops",
    "ether_ipv4",
    "ether_ipv6",
    "ether_arp",
    "ether_other",
    "proto_tcp",
    "proto_udp",
    "proto_icmp",
    "proto_other",
    "queue_depth_max",
    "latency_count",
    "latency_sum_ns",
    "latency_max_ns",
)


class Metrics:
    """Counters safe to update from several threads at once."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counts: dict = {}
        self._histogram: list = []
        self._start_time_ns = 0
        self._capture_end_time_ns = 0
        self.reset()

    def reset(self) -> None:
        """Set every counter and timestamp back to zero."""
        with self._lock:
            self._counts = dict.fromkeys(_COUNTERS, 0)
            self._histogram = [0] * HISTOGRAM_BUCKETS
            self._start_time_ns = 0
            self._capture_end_time_ns = 0

    def start(self) -> None:
        """Mark the start of collection."""
        self._start_time_ns = now_ns()

    def stop_capture(self) -> None:
        """Mark the end of the capture loop."""
        self._capture_end_time_ns = now_ns()

    def is_active(self) -> bool:
        """True once start() has been called since the last reset."""
        return self._start_time_ns > 0

    def _add(self, name: str, amount: int = 1) -> None:
        with self._lock:
            self._counts[name] += amount

    def observe_latency(self, latency_ns: int) -> None:
        """Record one latency observation in count, sum, max and histogram."""
        bucket = latency_bucket(latency_ns)
        with self._lock:
            counts = self._counts
            counts["latency_count"] += 1
            counts["latency_sum_ns"] += latency_ns
            if latency_ns > counts["latency_max_ns"]:
                counts["latency_max_ns"] = latency_ns
            self._histogram[bucket] += 1

    def record_protocol(self, protocol: int) -> None:
        """Count a packet by IP protocol; ICMP and ICMPv6 share one counter."""
        if protocol == Protocol.TCP:
            self._add("proto_tcp")
        elif protocol == Protocol.UDP:
            self._add("proto_udp")
        elif protocol in (Protocol.ICMP, Protocol.ICMPV6):
            self._add("proto_icmp")
        else:
            self._add("proto_other")

    def record_ethertype(self, ethertype: int) -> None:
        """Count a packet by EtherType."""
        if ethertype == EtherType.IPV4:
            self._add("ether_ipv4")
        elif ethertype == EtherType.IPV6:
            self._add("ether_ipv6")
        elif ethertype == EtherType.ARP:
            self._add("ether_arp")
        else:
            self._add("ether_other")

    def inc_captured(self, nbytes: int) -> None:
        with self._lock:
            self._counts["pkts_captured"] += 1
            self._counts["bytes_captured"] += nbytes

    def inc_processed(self, nbytes: int) -> None:
        with self._lock:
            self._counts["pkts_processed"] += 1
            self._counts["bytes_processed"] += nbytes

    def inc_parse_errors(self) -> None:
        self._add("parse_errors")

    def inc_checksum_failures(self) -> None:
        self._add("checksum_failures")

    def inc_queue_drops(self) -> None:
        self._add("queue_drops")

    def inc_capture_drops(self) -> None:
        self._add("capture_drops")

    def update_queue_depth_max(self, current_depth: int) -> None:
        """Raise the queue depth high-water mark if current_depth exceeds it."""
        with self._lock:
            if current_depth > self._counts["queue_depth_max"]:
                self._counts["queue_depth_max"] = current_depth

    def snapshot(self) -> MetricsSnapshot:
        """Take a consistent copy of all counters with elapsed times filled in."""
        snapshot_time = now_ns()
        with self._lock:
            counts = dict(self._counts)
            histogram = tuple(self._histogram)
            start = self._start_time_ns
            capture_end = self._capture_end_time_ns
        if start > 0:
            elapsed = (snapshot_time - start) / 1e9
        else:
            elapsed = 0.0
        if start > 0 and capture_end > 0:
            capture_elapsed = (capture_end - start) / 1e9
        elif start > 0:
            capture_elapsed = elapsed
        else:
            capture_elapsed = 0.0
        return MetricsSnapshot(
            latency_histogram=histogram,
            start_time_ns=start,
            snapshot_time_ns=snapshot_time,
            capture_end_time_ns=capture_end,
            elapsed_sec=elapsed,
            capture_elapsed_sec=capture_elapsed,
            **counts,
        )


_global_metrics = Metrics()


def get_metrics() -> Metrics:
    """Return the process-wide metrics instance."""
    return _global_metrics