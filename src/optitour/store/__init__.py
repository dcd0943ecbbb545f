"""Persisted client state stores."""

from optitour.store.auth import AuthStore, read_auth_token
from optitour.store.base import PersistedStore
from optitour.store.notifications import AppNotification, NotificationStore, NotificationType
from optitour.store.offline import DeadLetterQueue, OfflineQueue, QueueItem, QueueItemType

__all__ = [
    "AppNotification",
    "AuthStore",
    "DeadLetterQueue",
    "NotificationStore",
    "NotificationType",
    "OfflineQueue",
    "PersistedStore",
    "QueueItem",
    "QueueItemType",
    "read_auth_token",
]
