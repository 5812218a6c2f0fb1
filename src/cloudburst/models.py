import enum
from dataclasses import dataclass, field
from typing import Optional, Any
from collections.abc import Callable


class DispatchState(enum.Enum):
    IDLE = "idle"
    PACING = "pacing"
    DRAINING = "draining"
    DONE = "done"


@dataclass(frozen=True)
class Job:
    url: str
    body: Optional[str] = None
    index: int = 0


@dataclass(frozen=True)
class RequestOutcome:
    url: str
    status: Optional[int]
    elapsed: float
    body: bytes = b""
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status is None


@dataclass
class StatisticSnapshot:
    count: int
    sum: float
    min: float | None
    max: float | None
    mean: float | None
    bucket_counts: dict[str, int]
    values: list[float] = field(default_factory=list)

    def percentile(self, p: float) -> float | None:
        if not self.values:
            return None
        sl = sorted(self.values)
        n = len(sl)
        return sl[max(0, min(n - 1, int(p * (n - 1))))]

    def share(self, matched: int) -> float | None:
        """Percentage of samples represented by `matched`, None when empty."""
        if not self.count:
            return None
        return matched * 100.0 / self.count


# Latency predicate: seconds -> matched?
LatencyPredicate = Callable[[float], bool]

# Metrics callback: callable accepting the summary dict of a finished run
MetricsCallback = Callable[[dict[str, Any]], None]
