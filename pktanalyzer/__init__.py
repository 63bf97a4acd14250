"""Packet-processing metrics, latency histograms, reports and multi-run regression analysis."""

__version__ = "0.1.0"

__all__ = ["buffer", "logger", "metrics", "options", "report", "stats", "traffic"]