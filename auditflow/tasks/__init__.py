"""Background work: worker pool and per-key call deduplication."""

from .queue import TaskQueue
from .singleflight import SingleFlight

__all__ = ["TaskQueue", "SingleFlight"]
