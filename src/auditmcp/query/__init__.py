"""Query domain — filtered reads and windowed statistics."""

from auditmcp.query.engine import QueryEngine
from auditmcp.query.stats import StatsAggregator
from auditmcp.query.stats import window_bounds

__all__ = ["QueryEngine", "StatsAggregator", "window_bounds"]
