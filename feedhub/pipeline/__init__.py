"""Ingestion scheduling and subscription flows."""

from .scheduler import FeedUpdateResult, IngestionScheduler, PassResult, SchedulerStatus
from .subscriptions import SubscriptionService

__all__ = [
    "FeedUpdateResult",
    "IngestionScheduler",
    "PassResult",
    "SchedulerStatus",
    "SubscriptionService",
]
