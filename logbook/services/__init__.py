"""
Logbook services.

Flight lifecycle transitions, stats aggregation, read views and the
background task queue that carries post-commit side effects.
"""

from logbook.services.lifecycle import FlightLifecycleManager, lifecycle
from logbook.services.stats import StatsAggregator, stats_aggregator
from logbook.services.tasks import TaskQueue, task_queue

__all__ = [
    'FlightLifecycleManager',
    'lifecycle',
    'StatsAggregator',
    'stats_aggregator',
    'TaskQueue',
    'task_queue',
]
