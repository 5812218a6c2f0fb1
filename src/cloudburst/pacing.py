import random
import logging
from collections import deque
from typing import Optional


logger = logging.getLogger(__name__)

DEFAULT_GRANULARITY = 100000


def random_sum(
    total_ms: int,
    count: int,
    floor_ms: int = 0,
    granularity: int = DEFAULT_GRANULARITY,
    rng: Optional[random.Random] = None,
) -> list[int]:
    """
    Split `total_ms` into `count` randomly sized integer delays.

    Every delay is at least `floor_ms`. When the floor alone already fills the
    window the result is `count` copies of `total_ms // count`. Otherwise each
    delay is the floor plus a share of the remaining time proportional to a
    uniform draw in [0, granularity]. Shares are truncated independently, so
    the sum lands in (total_ms - count, total_ms].
    """
    if count <= 0:
        return []
    if floor_ms * count >= total_ms:
        return [total_ms // count] * count

    rng = rng or random.Random()
    draws = [rng.randint(0, granularity) for _ in range(count)]
    drawn = sum(draws)
    spare = total_ms - floor_ms * count
    if drawn == 0:
        # every draw hit zero; fall back to equal shares
        draws = [1] * count
        drawn = count
    return [int(d / drawn * spare + floor_ms) for d in draws]


class PacingPlan:
    """Inter-submission delays for one chunk. Consumed once, front to back."""

    def __init__(self, delays_ms: list[int]) -> None:
        self._delays = deque(delays_ms)
        self.size = len(delays_ms)

    @classmethod
    def shape(
        cls,
        window_ms: int,
        chunk_size: int,
        min_distance_ms: int = 0,
        rng: Optional[random.Random] = None,
    ) -> "PacingPlan":
        delays = random_sum(window_ms, chunk_size, min_distance_ms, rng=rng)
        logger.debug(
            f"New pacing plan: {chunk_size} slots over {window_ms}ms "
            f"(floor={min_distance_ms}ms, planned={sum(delays)}ms)"
        )
        return cls(delays)

    @property
    def exhausted(self) -> bool:
        return not self._delays

    def next_delay(self) -> int:
        return self._delays.popleft()

    def __len__(self) -> int:
        return len(self._delays)
