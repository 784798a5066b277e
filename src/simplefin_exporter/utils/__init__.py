"""
Utility functions for the SimpleFin exporter.
"""

from simplefin_exporter.utils.duration import format_duration, parse_duration

__all__ = [
    "parse_duration",
    "format_duration",
]
