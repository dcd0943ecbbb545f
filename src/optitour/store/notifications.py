"""Persisted in-app notification list with read state."""

from dataclasses import dataclass, replace
from enum import Enum
from typing import Any

from optitour.store.base import PersistedStore, make_id, now_ms

NOTIFICATIONS_KEY = "optitour-notifications"
MAX_NOTIFICATIONS = 50


class NotificationType(str, Enum):
    """Kinds of notification pushed to a driver."""

    TOURNEE_ASSIGNED = "tournee_assigned"
    POINT_MODIFIED = "point_modified"
    MESSAGE = "message"
    INFO = "info"


@dataclass(frozen=True)
class AppNotification:
    """A notification shown in the client inbox."""

    id: str
    type: NotificationType
    title: str
    body: str
    read: bool = False
    created_at: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "title": self.title,
            "body": self.body,
            "read": self.read,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AppNotification":
        return cls(
            id=str(data["id"]),
            type=NotificationType(data["type"]),
            title=str(data.get("title", "")),
            body=str(data.get("body", "")),
            read=bool(data.get("read", False)),
            created_at=int(data.get("createdAt", 0)),
        )


class NotificationStore(PersistedStore):
    """Newest-first notification list capped at MAX_NOTIFICATIONS entries."""

    storage_key = NOTIFICATIONS_KEY

    def _load_state(self, state: dict[str, Any]) -> None:
        self._notifications: list[AppNotification] = [
            AppNotification.from_dict(raw) for raw in state.get("notifications", [])
        ]

    def _dump_state(self) -> dict[str, Any]:
        return {"notifications": [n.to_dict() for n in self._notifications]}

    @property
    def notifications(self) -> list[AppNotification]:
        return list(self._notifications)

    def add_notification(
        self,
        notification_type: NotificationType | str,
        title: str,
        body: str,
    ) -> AppNotification:
        """Prepend an unread notification, dropping the oldest past the cap."""
        notification = AppNotification(
            id=make_id("notif"),
            type=NotificationType(notification_type),
            title=title,
            body=body,
            read=False,
            created_at=now_ms(),
        )
        self._notifications = [notification, *self._notifications][:MAX_NOTIFICATIONS]
        self._commit()
        return notification

    def mark_as_read(self, notification_id: str) -> None:
        self._notifications = [
            replace(n, read=True) if n.id == notification_id else n
            for n in self._notifications
        ]
        self._commit()

    def mark_all_as_read(self) -> None:
        self._notifications = [replace(n, read=True) for n in self._notifications]
        self._commit()

    def clear_all(self) -> None:
        self._notifications = []
        self._commit()

    def unread_count(self) -> int:
        return sum(1 for n in self._notifications if not n.read)
