__all__ = ["RequestDispatcher", "RunConfig", "StatisticsAggregator", "random_sum", "render_latency_histogram"]


from .config import RunConfig
from .core import RequestDispatcher
from .metrics import StatisticsAggregator
from .pacing import random_sum
from .rendering import render_latency_histogram
