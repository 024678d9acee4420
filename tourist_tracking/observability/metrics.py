"""In-process metrics for partition provisioning, writes, history reads and erasure."""

import threading
from typing import Any

# Label order in exported keys: name:tier=vip,category=PartitionIOError
_LABEL_ORDER = ("tier", "category")


def _series_key(name: str, labels: dict[str, str | None]) -> str | None:
    parts = [f"{k}={labels[k]}" for k in _LABEL_ORDER if labels.get(k) is not None]
    if not parts:
        return None
    return f"{name}:{','.join(parts)}"


class MetricsCollector:
    """
    Counters and latency histograms, optionally split by tourist tier or failure category.

    Unlabelled counters land in "counters"; labelled series are grouped per metric
    name under "counters_by_labels". One collector is shared by every component of
    a process and is safe to update from executor threads.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, float] = {}
        self._labelled: dict[str, dict[str, float]] = {}
        self._histograms: dict[str, list[float]] = {}

    def increment(
        self,
        name: str,
        value: float = 1.0,
        *,
        tier: str | None = None,
        category: str | None = None,
    ) -> None:
        key = _series_key(name, {"tier": tier, "category": category})
        with self._lock:
            if key is None:
                self._counters[name] = self._counters.get(name, 0) + value
                return
            series = self._labelled.setdefault(name, {})
            series[key] = series.get(key, 0) + value

    def observe_latency(
        self,
        name: str,
        latency_ms: float,
        *,
        tier: str | None = None,
    ) -> None:
        key = _series_key(name, {"tier": tier}) or name
        with self._lock:
            self._histograms.setdefault(key, []).append(latency_ms)

    def counter(self, name: str) -> float:
        """Total for a counter across all its label series."""
        with self._lock:
            return self._counters.get(name, 0) + sum(self._labelled.get(name, {}).values())

    def export_metrics(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "counters_by_labels": {k: dict(v) for k, v in self._labelled.items()},
                "histograms": {
                    k: {
                        "count": len(v),
                        "sum": sum(v),
                        "max": max(v),
                        "values": list(v),
                    }
                    for k, v in self._histograms.items()
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._labelled.clear()
            self._histograms.clear()
