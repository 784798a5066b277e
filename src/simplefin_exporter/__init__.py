"""
SimpleFin bridge exporter.

Publishes SimpleFin account balances as Prometheus metrics.
"""

__version__ = "0.1.0"
