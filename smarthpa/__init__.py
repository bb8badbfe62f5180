"""Time-window scheduling of horizontal pod autoscaler replica limits, with an in-memory store and cron engine."""

__version__ = "0.0.1"