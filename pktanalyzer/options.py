"""Command-line options of the analyzer and their usage text."""

from __future__ import annotations

import re
import sys
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from pktanalyzer.logger import LogLevel
from pktanalyzer.stats import REGRESSION_THRESHOLD_DEFAULT

_INTERFACE_MAX_LEN = 255
_TRAFFIC_RATE_MIN = 1
_TRAFFIC_RATE_MAX = 500
_UINT32_MASK = 0xFFFFFFFF

_INT_PREFIX = re.compile(r"\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(
    r"\s*([+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|inf(?:inity)?|nan))",
    re.IGNORECASE,
)

# Short option letter -> (takes an argument, option key)
_SHORT_OPTIONS: Dict[str, Tuple[bool, str]] = {
    "i": (True, "interface"),
    "d": (True, "duration"),
    "n": (True, "count"),
    "t": (True, "threads"),
    "h": (False, "help"),
    "D": (False, "debug"),
    "I": (False, "icmp"),
}

# Long option name -> (takes an argument, option key)
_LONG_OPTIONS: Dict[str, Tuple[bool, str]] = {
    "icmp": (False, "icmp"),
    "warmup-sec": (True, "warmup-sec"),
    "measure-sec": (True, "measure-sec"),
    "runs": (True, "runs"),
    "stats-interval": (True, "stats-interval"),
    "min-packets": (True, "min-packets"),
    "traffic": (True, "traffic"),
    "traffic-rate": (True, "traffic-rate"),
    "traffic-target": (True, "traffic-target"),
    "debug": (False, "debug"),
    "metrics-interval-ms": (True, "metrics-interval-ms"),
    "metrics-json": (True, "metrics-json"),
    "baseline": (True, "baseline"),
    "fail-on-regression": (False, "fail-on-regression"),
    "regression-threshold": (True, "regression-threshold"),
    "help": (False, "help"),
}


class UsageError(Exception):
    """Raised for an unknown option or an option missing its argument."""


def _default_interface(platform: str) -> str:
    return "en0" if platform == "darwin" else "eth0"


def _atoi(text: str) -> int:
    """Leading integer of text, or 0 if it has none."""
    match = _INT_PREFIX.match(text)
    return int(match.group(1)) if match else 0


def _strtod(text: str) -> float:
    """Leading floating-point number of text, or 0.0 if it has none."""
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else 0.0


@dataclass
class Options:
    """Settings of one analyzer invocation."""

    interface: str = "eth0"
    duration_sec: int = 20
    warmup_sec: int = 2
    measure_sec: int = 0
    num_runs: int = 5
    max_packets: int = 0
    num_threads: int = 4
    filter_icmp: bool = False
    stats_interval_sec: int = 1
    log_level: LogLevel = LogLevel.INFO
    metrics_interval_ms: int = 0
    metrics_json_path: Optional[str] = None
    min_packets: int = 200
    traffic_mode: Optional[str] = None
    traffic_rate: int = 50
    traffic_target: Optional[str] = None
    baseline_path: Optional[str] = None
    fail_on_regression: bool = False
    regression_threshold: float = REGRESSION_THRESHOLD_DEFAULT
    show_help: bool = False

    def measure_sec_effective(self) -> int:
        """The measurement period: measure_sec if set, otherwise duration_sec."""
        return self.measure_sec if self.measure_sec > 0 else self.duration_sec

    def total_duration_sec(self) -> int:
        """Warmup plus measurement, in seconds; 0 or less means unlimited."""
        return self.warmup_sec + self.measure_sec_effective()

    def _apply(self, key: str, value: Optional[str]) -> None:
        match key:
            case "interface":
                self.interface = value[:_INTERFACE_MAX_LEN]
            case "duration":
                self.duration_sec = _atoi(value)
            case "count":
                self.max_packets = _atoi(value) & _UINT32_MASK
            case "threads":
                self.num_threads = _atoi(value)
            case "icmp":
                self.filter_icmp = True
            case "warmup-sec":
                self.warmup_sec = _atoi(value)
            case "measure-sec":
                self.measure_sec = _atoi(value)
            case "runs":
                self.num_runs = max(1, _atoi(value))
            case "stats-interval":
                self.stats_interval_sec = _atoi(value)
            case "min-packets":
                self.min_packets = _atoi(value) & _UINT32_MASK
            case "traffic":
                self.traffic_mode = value
            case "traffic-rate":
                self.traffic_rate = min(
                    max(_atoi(value), _TRAFFIC_RATE_MIN), _TRAFFIC_RATE_MAX
                )
            case "traffic-target":
                self.traffic_target = value
            case "debug":
                self.log_level = LogLevel.DEBUG
            case "metrics-interval-ms":
                self.metrics_interval_ms = _atoi(value)
            case "metrics-json":
                self.metrics_json_path = value
            case "baseline":
                self.baseline_path = value
            case "fail-on-regression":
                self.fail_on_regression = True
            case "regression-threshold":
                self.regression_threshold = _strtod(value)
            case "help":
                self.show_help = True


def _match_long(name: str) -> Tuple[bool, str]:
    if name in _LONG_OPTIONS:
        return _LONG_OPTIONS[name]
    candidates = [option for option in _LONG_OPTIONS if option.startswith(name)]
    if not candidates:
        raise UsageError(f"unrecognized option '--{name}'")
    if len(candidates) > 1:
        raise UsageError(f"option '--{name}' is ambiguous")
    return _LONG_OPTIONS[candidates[0]]


def parse_args(
    argv: Optional[Sequence[str]] = None, platform: Optional[str] = None
) -> Options:
    """Parse command-line arguments (without the program name) into Options.

    Parsing stops at -h/--help, which sets show_help. Arguments that are not
    options are ignored. Raises UsageError for invalid options.
    """
    args: List[str] = list(sys.argv[1:] if argv is None else argv)
    platform = platform if platform is not None else sys.platform
    options = Options(interface=_default_interface(platform))

    position = 0
    while position < len(args):
        arg = args[position]
        position += 1
        if arg == "--":
            break
        if arg.startswith("--"):
            name, has_value, inline = arg[2:].partition("=")
            takes_arg, key = _match_long(name)
            if takes_arg:
                if has_value:
                    value = inline
                elif position < len(args):
                    value = args[position]
                    position += 1
                else:
                    raise UsageError(f"option '--{name}' requires an argument")
            else:
                if has_value:
                    raise UsageError(f"option '--{name}' doesn't allow an argument")
                value = None
            options._apply(key, value)
            if options.show_help:
                return options
        elif arg.startswith("-") and len(arg) > 1:
            letters = arg[1:]
            index = 0
            while index < len(letters):
                letter = letters[index]
                index += 1
                if letter not in _SHORT_OPTIONS:
                    raise UsageError(f"invalid option -- '{letter}'")
                takes_arg, key = _SHORT_OPTIONS[letter]
                value = None
                if takes_arg:
                    if index < len(letters):
                        value = letters[index:]
                    elif position < len(args):
                        value = args[position]
                        position += 1
                    else:
                        raise UsageError(f"option requires an argument -- '{letter}'")
                    index = len(letters)
                options._apply(key, value)
                if options.show_help:
                    return options
    return options


def usage(program_name: str, platform: Optional[str] = None) -> str:
    """The help text for the given program name."""
    platform = platform if platform is not None else sys.platform
    iface = _default_interface(platform)
    return "\n".join(
        [
            f"Usage: {program_name} [OPTIONS]",
            "Options:",
            f"  -i INTERFACE         Network interface to monitor (default: {iface})",
            "  -d SECONDS           Capture duration in seconds (default: 20, 0=unlimited)",
            "  --warmup-sec SEC     Warmup period before measuring (default: 2, 0=off)",
            "  --measure-sec SEC    Measurement period after warmup (default: duration)",
            "  --runs N             Number of measurement runs (default: 5)",
            "  -n COUNT             Number of packets to capture (default: unlimited)",
            "  -t THREADS           Number of processing threads (default: 4)",
            "  --icmp               Filter to capture ICMP/ICMPv6 packets only",
            "  --stats-interval SEC Print live metrics every SEC seconds (default: 1, 0=off)",
            "  --debug              Enable debug logging",
            "  --metrics-interval-ms N  Print metrics every N milliseconds",
            "  --metrics-json FILE  Write final JSON metrics to FILE on exit",
            "  --min-packets N      Minimum packets for valid run (default: 200)",
            "",
            "Traffic Generation:",
            "  --traffic MODE       Generate background traffic during warmup+measurement",
            "                       Modes: icmp (runs ping)",
            "  --traffic-rate N     Traffic rate in packets/sec (default: 50, max: 500)",
            "  --traffic-target IP  Target IP for traffic generation (default: 8.8.8.8)",
            "",
            "Regression Detection:",
            "  --baseline FILE      Load baseline metrics from JSON file",
            "  --fail-on-regression Exit with code 2 if regression detected",
            "  --regression-threshold F  Threshold for regression (default: 0.10 = 10%)",
            "",
            "Exit Codes:",
            "  0  Success",
            "  2  Performance regression detected (with --fail-on-regression)",
            "  3  Insufficient sample (packets < --min-packets)",
            "  4  Baseline config mismatch (with --fail-on-regression)",
            "",
            "  -h, --help           Print this help message",
            "",
            "Examples:",
            "  # Capture packets for 30 seconds:",
            f"  sudo {program_name} -i {iface} -d 30",
            "",
            "  # Create baseline:",
            f"  sudo {program_name} -i {iface} -d 60 --metrics-json baseline.json",
            "",
            "  # Run with regression check:",
            f"  sudo {program_name} -i {iface} -d 60 --baseline baseline.json "
            "--fail-on-regression",
            "",
        ]
    )