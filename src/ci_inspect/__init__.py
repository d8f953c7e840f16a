"""Inspect Jenkins CI results for pull requests, commits and benchmarks."""

__version__ = "0.1.0"
