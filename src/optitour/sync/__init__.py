"""Sync module for backend access and offline queue replay."""

from optitour.sync.actions import FieldActions
from optitour.sync.client import ApiClient
from optitour.sync.policy import RetryPolicy
from optitour.sync.replay import QueueReplayer, ReplayReport
from optitour.sync.worker import SyncWorker

__all__ = [
    "ApiClient",
    "FieldActions",
    "QueueReplayer",
    "ReplayReport",
    "RetryPolicy",
    "SyncWorker",
]
