"""
In-memory metrics collector for opsdesk.

This module keeps lightweight runtime counters without external dependencies.
"""

from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Dict


@dataclass(frozen=True)
class MetricsSnapshot:
    """Immutable view of current operation counters."""

    mutations: Dict[str, Dict[str, int]] = field(default_factory=dict)
    delete_failures: Dict[str, Dict[str, int]] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        """Return the snapshot as a plain dictionary."""
        return {
            "mutations": {k: dict(v) for k, v in self.mutations.items()},
            "delete_failures": {k: dict(v) for k, v in self.delete_failures.items()},
        }


class InMemoryMetricsCollector:
    """
    Simple in-memory metrics collector.

    Counts successful mutations per resource and action, and batch delete
    failures per resource and error code.
    """

    def __init__(self) -> None:
        self._lock = Lock()
        self._mutations: Dict[str, Dict[str, int]] = {}
        self._delete_failures: Dict[str, Dict[str, int]] = {}

    def record_mutation(self, resource: str, action: str) -> None:
        """Record a successful create/update/delete."""
        with self._lock:
            counters = self._mutations.setdefault(resource, {})
            counters[action] = counters.get(action, 0) + 1

    def record_delete_failure(self, resource: str, error_code: str) -> None:
        """Record one identifier a batch delete could not remove."""
        with self._lock:
            counters = self._delete_failures.setdefault(resource, {})
            counters[error_code] = counters.get(error_code, 0) + 1

    def snapshot(self) -> MetricsSnapshot:
        with self._lock:
            return MetricsSnapshot(
                mutations={k: dict(v) for k, v in self._mutations.items()},
                delete_failures={k: dict(v) for k, v in self._delete_failures.items()},
            )

    def reset(self) -> None:
        with self._lock:
            self._mutations.clear()
            self._delete_failures.clear()
