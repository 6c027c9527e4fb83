from typing import Any, Dict

from ..segments import EnrichmentKind


class KindStats:
    """Counters for one enrichment kind."""

    def __init__(self):
        self.reset()

    def reset(self):
        self.dispatched = 0
        self.succeeded = 0
        self.failed = 0
        self.timed_out = 0
        self.dropped = 0
        self.skipped = 0
        self.average_latency = 0.0

    def record_completion(self, latency: float):
        self.succeeded += 1
        # Running average over successful calls
        self.average_latency = (self.average_latency * (self.succeeded - 1) + latency) / self.succeeded

    @property
    def in_flight(self) -> int:
        return self.dispatched - self.succeeded - self.failed - self.timed_out - self.dropped

    def to_dict(self) -> Dict[str, Any]:
        return {
            "dispatched": self.dispatched,
            "succeeded": self.succeeded,
            "failed": self.failed,
            "timed_out": self.timed_out,
            "dropped": self.dropped,
            "skipped": self.skipped,
            "in_flight": self.in_flight,
            "average_latency": self.average_latency,
        }


class DispatchStats:
    """Statistics tracking for enrichment dispatch, one bucket per kind."""

    def __init__(self):
        self.kinds = {kind: KindStats() for kind in EnrichmentKind}

    def __getitem__(self, kind: EnrichmentKind) -> KindStats:
        return self.kinds[kind]

    def reset(self):
        for stats in self.kinds.values():
            stats.reset()

    def to_dict(self) -> Dict[str, Any]:
        return {kind.value: stats.to_dict() for kind, stats in self.kinds.items()}
