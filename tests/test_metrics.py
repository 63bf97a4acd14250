import threading

import pytest

from pktanalyzer.metrics import (
    HISTOGRAM_BUCKETS,
    EtherType,
    Metrics,
    MetricsSnapshot,
    Protocol,
    get_metrics,
    latency_bucket,
    now_ns,
    percentile_ns,
)


def test_enum_members_are_classified_as_wire_constants():
    metrics = Metrics()
    metrics.record_ethertype(EtherType.IPV4)
    metrics.record_ethertype(0x86DD)
    metrics.record_ethertype(EtherType.ARP)
    metrics.record_ethertype(0x0806)
    metrics.record_protocol(Protocol.TCP)
    metrics.record_protocol(17)
    metrics.record_protocol(Protocol.ICMP)
    metrics.record_protocol(58)
    snap = metrics.snapshot()
    assert snap.ether_ipv4 == 1
    assert snap.ether_ipv6 == 1
    assert snap.ether_arp == 2
    assert snap.ether_other == 0
    assert snap.proto_tcp == 1
    assert snap.proto_udp == 1
    assert snap.proto_icmp == 2
    assert snap.proto_other == 0


def test_now_ns_is_monotonic():
    first = now_ns()
    second = now_ns()
    assert second >= first > 0


@pytest.mark.parametrize("ns", [0, 1, 999, 1999])
def test_latency_bucket_sub_two_microseconds_is_zero(ns):
    assert latency_bucket(ns) == 0


def test_latency_bucket_caps_at_last_bucket():
    assert latency_bucket(10**30) == HISTOGRAM_BUCKETS - 1


def test_latency_bucket_is_monotonic_and_doubles():
    values = [latency_bucket(n) for n in range(0, 200_000, 500)]
    assert values == sorted(values)
    for exponent in range(1, 20):
        us = 1 << exponent
        assert latency_bucket(us * 1000) == latency_bucket(2 * us * 1000) - 1


def test_percentile_empty_is_zero():
    assert percentile_ns(MetricsSnapshot(), 0.5) == 0
    assert percentile_ns(None, 0.5) == 0
    assert MetricsSnapshot().percentile_ns(0.99) == 0


def test_percentile_in_first_bucket_is_500():
    metrics = Metrics()
    for _ in range(10):
        metrics.observe_latency(100)
    assert metrics.snapshot().percentile_ns(0.95) == 500


def test_percentiles_are_ordered():
    metrics = Metrics()
    for value in range(0, 5_000_000, 7_919):
        metrics.observe_latency(value)
    snap = metrics.snapshot()
    p50 = snap.percentile_ns(0.50)
    p95 = snap.percentile_ns(0.95)
    p99 = snap.percentile_ns(0.99)
    assert p50 <= p95 <= p99


def test_percentile_matches_module_function():
    metrics = Metrics()
    for value in (500, 3_000, 70_000, 900_000):
        metrics.observe_latency(value)
    snap = metrics.snapshot()
    assert snap.percentile_ns(0.75) == percentile_ns(snap, 0.75)


def test_observe_latency_tracks_count_sum_max():
    metrics = Metrics()
    values = [1_500, 250_000, 42, 8_000_000]
    for value in values:
        metrics.observe_latency(value)
    snap = metrics.snapshot()
    assert snap.latency_count == len(values)
    assert snap.latency_sum_ns == sum(values)
    assert snap.latency_max_ns == max(values)
    assert sum(snap.latency_histogram) == len(values)
    assert len(snap.latency_histogram) == HISTOGRAM_BUCKETS
    for value in values:
        assert snap.latency_histogram[latency_bucket(value)] >= 1


def test_record_protocol_classification():
    metrics = Metrics()
    for proto in (6, 6, 17, 1, 58, 2, 255):
        metrics.record_protocol(proto)
    snap = metrics.snapshot()
    assert snap.proto_tcp == 2
    assert snap.proto_udp == 1
    assert snap.proto_icmp == 2
    assert snap.proto_other == 2


def test_record_ethertype_classification():
    metrics = Metrics()
    for ethertype in (0x0800, 0x86DD, 0x0806, 0x0806, 0x9000):
        metrics.record_ethertype(ethertype)
    snap = metrics.snapshot()
    assert snap.ether_ipv4 == 1
    assert snap.ether_ipv6 == 1
    assert snap.ether_arp == 2
    assert snap.ether_other == 1


def test_packet_and_error_counters():
    metrics = Metrics()
    metrics.inc_captured(60)
    metrics.inc_captured(1500)
    metrics.inc_processed(60)
    metrics.inc_parse_errors()
    metrics.inc_checksum_failures()
    metrics.inc_queue_drops()
    metrics.inc_queue_drops()
    metrics.inc_capture_drops()
    snap = metrics.snapshot()
    assert snap.pkts_captured == 2
    assert snap.bytes_captured == 1560
    assert snap.pkts_processed == 1
    assert snap.bytes_processed == 60
    assert snap.parse_errors == 1
    assert snap.checksum_failures == 1
    assert snap.queue_drops == 2
    assert snap.capture_drops == 1


def test_queue_depth_max_keeps_high_water_mark():
    metrics = Metrics()
    for depth in (3, 10, 7, 2):
        metrics.update_queue_depth_max(depth)
    assert metrics.snapshot().queue_depth_max == 10


def test_reset_clears_everything():
    metrics = Metrics()
    metrics.start()
    metrics.inc_captured(100)
    metrics.observe_latency(5_000)
    metrics.update_queue_depth_max(4)
    metrics.reset()
    snap = metrics.snapshot()
    assert snap == MetricsSnapshot(snapshot_time_ns=snap.snapshot_time_ns)
    assert metrics.is_active() is False


def test_inactive_snapshot_has_zero_elapsed():
    snap = Metrics().snapshot()
    assert snap.elapsed_sec == 0.0
    assert snap.capture_elapsed_sec == 0.0
    assert snap.start_time_ns == 0


def test_active_snapshot_elapsed_times():
    metrics = Metrics()
    metrics.start()
    assert metrics.is_active() is True
    running = metrics.snapshot()
    assert running.capture_elapsed_sec == running.elapsed_sec >= 0.0
    metrics.stop_capture()
    done = metrics.snapshot()
    assert done.capture_end_time_ns >= done.start_time_ns
    assert 0.0 <= done.capture_elapsed_sec <= done.elapsed_sec


def test_concurrent_updates_are_not_lost():
    metrics = Metrics()
    per_thread = 2_000
    workers = 8

    def work():
        for _ in range(per_thread):
            metrics.inc_processed(10)
            metrics.observe_latency(1_000)

    threads = [threading.Thread(target=work) for _ in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    snap = metrics.snapshot()
    assert snap.pkts_processed == per_thread * workers
    assert snap.bytes_processed == per_thread * workers * 10
    assert snap.latency_count == per_thread * workers


def test_get_metrics_is_singleton():
    assert get_metrics() is get_metrics()
    before = get_metrics().snapshot().parse_errors
    get_metrics().inc_parse_errors()
    assert get_metrics().snapshot().parse_errors == before + 1