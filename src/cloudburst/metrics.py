import math
import logging
import threading
from collections import defaultdict

from .errors import EmptyStatisticError
from .models import LatencyPredicate, RequestOutcome, StatisticSnapshot

logger = logging.getLogger(__name__)

DEFAULT_BUCKETS: list[tuple[str, LatencyPredicate]] = [
    ("< 1000ms", lambda v: v < 1.0),
    (" < 100ms", lambda v: v < 0.1),
    ("  < 50ms", lambda v: v < 0.05),
]


class RunningStatistic:
    """
    Running count/sum/min/max over latency samples, plus named predicate counts.

    `add_value` is safe to call from many threads. Predicates must be
    registered before the first sample arrives.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._lock = threading.Lock()
        self._predicates: dict[str, LatencyPredicate] = {}
        self.clear()

    def clear(self) -> None:
        self.count = 0
        self.sum = 0.0
        self.min: float | None = None
        self.max: float | None = None
        self.values: list[float] = []
        self.bucket_counts: dict[str, int] = {name: 0 for name in self._predicates}

    def add_predicate(self, name: str, predicate: LatencyPredicate) -> None:
        self._predicates[name] = predicate
        self.bucket_counts[name] = 0

    def add_value(self, value: float) -> None:
        matched = [name for name, pred in self._predicates.items() if pred(value)]
        with self._lock:
            self.values.append(value)
            self.min = value if self.min is None else min(self.min, value)
            self.max = value if self.max is None else max(self.max, value)
            self.sum += value
            self.count += 1
            for name in matched:
                self.bucket_counts[name] += 1

    def mean(self) -> float:
        if not self.count:
            raise EmptyStatisticError(f"mean of empty statistic '{self.name}'")
        return self.sum / self.count

    def snapshot(self) -> StatisticSnapshot:
        """Copy of the current state. Only complete once all writers have joined."""
        return StatisticSnapshot(
            count=self.count,
            sum=self.sum,
            min=self.min,
            max=self.max,
            mean=self.sum / self.count if self.count else None,
            bucket_counts=dict(self.bucket_counts),
            values=list(self.values),
        )


class StatisticsAggregator:
    """Routes outcomes into the `total` and `success` streams."""

    def __init__(self, success_code: int = 200, buckets=DEFAULT_BUCKETS) -> None:
        self.success_code = success_code
        self.total = RunningStatistic("total")
        self.success = RunningStatistic("success")
        self.status_counts: dict[int | None, int] = defaultdict(int)
        self._lock = threading.Lock()
        for name, pred in buckets:
            self.add_predicate(name, pred)

    def add_predicate(self, name: str, predicate: LatencyPredicate) -> None:
        self.total.add_predicate(name, predicate)
        self.success.add_predicate(name, predicate)

    def add_value(self, outcome: RequestOutcome) -> bool:
        """Record one outcome. Returns True if it counted as a success."""
        # total first, so total.count >= success.count holds for any reader
        self.total.add_value(outcome.elapsed)
        ok = outcome.status == self.success_code
        if ok:
            self.success.add_value(outcome.elapsed)
        with self._lock:
            self.status_counts[outcome.status] += 1
        return ok

    def snapshot(self) -> tuple[StatisticSnapshot, StatisticSnapshot]:
        return self.total.snapshot(), self.success.snapshot()


def summarize(aggregator: StatisticsAggregator) -> dict:
    """Flat summary of a finished run, for logging and metrics callbacks."""
    total, success = aggregator.snapshot()
    errors = total.count - success.count
    logger.debug(
        f"Summarizing: total={total.count}, success={success.count}, errors={errors}"
    )

    std = None
    if total.count:
        sum_sq = sum(x * x for x in total.values)
        std = math.sqrt(max(0.0, (sum_sq / total.count) - (total.mean * total.mean)))

    return {
        "total": total.count,
        "success": success.count,
        "errors": errors,
        "mean": total.mean,
        "std": std,
        "p50": total.percentile(0.50),
        "p90": total.percentile(0.90),
        "p95": total.percentile(0.95),
        "p99": total.percentile(0.99),
        "min": total.min,
        "max": total.max,
        "success_mean": success.mean,
        "error_rate": errors / total.count if total.count else 0.0,
        "status_counts": dict(aggregator.status_counts),
    }
