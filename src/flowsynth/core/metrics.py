"""
Run Metrics

Timing for the generate and evaluate calls of one orchestration run.
"""

import time
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CallTiming:
    """One timed call to an agent."""
    phase: str
    duration_ms: float
    ok: bool
    recorded_at: float = field(default_factory=time.time)
    details: Dict[str, Any] = field(default_factory=dict)


class MetricsCollector:
    """
    Per-run call timings, grouped by phase.

    The Orchestrator creates one per run and puts it in the run state, so
    concurrent runs never share a collector.
    """

    def __init__(self, name: str = "orchestration"):
        self.name = name
        self.calls: Dict[str, List[CallTiming]] = defaultdict(list)
        self._started: Optional[float] = None
        self._stopped: Optional[float] = None

    def start(self) -> None:
        self._started = time.perf_counter()

    def stop(self) -> None:
        self._stopped = time.perf_counter()

    def record(
        self,
        phase: str,
        duration_ms: float,
        status: str,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Record one call.

        Args:
            phase: "generate" or "evaluate"
            duration_ms: Wall time of the call
            status: "success" or "error"
            details: Iteration number and, on failure, the error text
        """
        self.calls[phase].append(
            CallTiming(phase, duration_ms, status == "success", details=dict(details or {}))
        )

    @property
    def total_duration_ms(self) -> float:
        if self._started is None or self._stopped is None:
            return 0.0
        return (self._stopped - self._started) * 1000

    def get_summary(self) -> Dict[str, Any]:
        """
        Returns:
            ``{phase: {count, errors, avg_ms, min_ms, max_ms, success_rate}}``
            plus ``total_duration_ms`` for the whole run
        """
        summary: Dict[str, Any] = {}
        for phase, timings in self.calls.items():
            durations = [t.duration_ms for t in timings]
            ok = sum(1 for t in timings if t.ok)
            summary[phase] = {
                "count": len(timings),
                "errors": len(timings) - ok,
                "avg_ms": sum(durations) / len(durations),
                "min_ms": min(durations),
                "max_ms": max(durations),
                "success_rate": ok / len(timings),
            }
        summary["total_duration_ms"] = self.total_duration_ms
        return summary
