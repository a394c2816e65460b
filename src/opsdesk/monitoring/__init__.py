"""
Monitoring helpers for opsdesk.
"""

from .metrics import InMemoryMetricsCollector, MetricsSnapshot

__all__ = [
    "InMemoryMetricsCollector",
    "MetricsSnapshot",
]
