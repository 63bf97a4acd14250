[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pktanalyzer"
version = "0.1.0"
description = "Packet-processing metrics, latency histograms, JSON reports and multi-run regression analysis"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "packets",
    "network",
    "metrics",
    "latency",
    "histogram",
    "regression",
    "benchmark",
    "performance",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: System :: Benchmark",
    "Topic :: Software Development :: Testing",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pktanalyzer"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
