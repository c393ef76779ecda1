from .logging import configure_logging, get_logger
from .metrics import InMemoryMetrics, MetricPoint, Timer
from .retry import RetryError, retry

__all__ = [
    "configure_logging",
    "get_logger",
    "InMemoryMetrics",
    "MetricPoint",
    "Timer",
    "RetryError",
    "retry",
]
