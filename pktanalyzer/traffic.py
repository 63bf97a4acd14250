"""Background traffic generation by running ping during a measurement."""

from __future__ import annotations

import signal
import subprocess
import sys
from typing import List, Optional

from pktanalyzer.logger import get_logger

DEFAULT_TARGET = "8.8.8.8"
MIN_INTERVAL_SEC = 0.002
_SIGINT_GRACE_SEC = 0.2
_SIGTERM_GRACE_SEC = 0.1


class TrafficGenerator:
    """Runs a ping process at a given rate until stopped.

    A mode of None means no traffic is generated; "icmp" runs ping.
    """

    def __init__(
        self,
        mode: Optional[str] = None,
        target: Optional[str] = None,
        rate: int = 50,
        platform: Optional[str] = None,
    ) -> None:
        if rate < 1:
            raise ValueError(f"Traffic rate must be at least 1 pps, got {rate}")
        self.mode = mode
        self.target = target if target else DEFAULT_TARGET
        self.rate = rate
        self.platform = platform if platform is not None else sys.platform
        self._process: Optional[subprocess.Popen] = None

    @property
    def pid(self) -> Optional[int]:
        """PID of the running generator, or None."""
        return self._process.pid if self._process is not None else None

    @property
    def running(self) -> bool:
        return self._process is not None

    def interval(self) -> float:
        """Seconds between pings, never below ping's 2 ms minimum."""
        return max(1.0 / self.rate, MIN_INTERVAL_SEC)

    def command(self) -> List[str]:
        """The ping command line for this platform."""
        interval = f"{self.interval():.3f}"
        if self.platform == "darwin":
            return ["ping", "-i", interval, self.target]
        return ["ping", "-i", interval, "-n", self.target]

    def start(self) -> None:
        """Start the generator; does nothing without a mode or if already running."""
        if self.mode is None or self._process is not None:
            return
        if self.mode != "icmp":
            raise ValueError(f"Unknown traffic mode: {self.mode}")
        logger = get_logger()
        command = self.command()
        logger.info(f"Traffic command: {' '.join(command)}")
        self._process = subprocess.Popen(
            command,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )
        logger.info(
            f"Started ICMP traffic generator (pid={self._process.pid}, target={self.target}, "
            f"rate={self.rate} pps, interval={self.interval():.3f}s)"
        )

    def stop(self) -> None:
        """Stop the generator: SIGINT, then SIGTERM, then SIGKILL if it lingers."""
        process = self._process
        if process is None:
            return
        logger = get_logger()
        logger.info(f"Stopping traffic generator (pid={process.pid})...")
        try:
            process.send_signal(signal.SIGINT)
            process.wait(timeout=_SIGINT_GRACE_SEC)
        except subprocess.TimeoutExpired:
            process.terminate()
            try:
                process.wait(timeout=_SIGTERM_GRACE_SEC)
            except subprocess.TimeoutExpired:
                process.kill()
                process.wait()
        self._process = None
        logger.info("Traffic generator stopped")

    def __enter__(self) -> "TrafficGenerator":
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()