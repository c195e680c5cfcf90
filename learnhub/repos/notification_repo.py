from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from learnhub.models.notification import Notification


class NotificationRepo(Protocol):
    def add(self, notification: Notification) -> None: ...
    def list_by_user(self, user_id: str) -> list[Notification]: ...
    def mark_read(self, notification_id: str, user_id: str) -> Notification | None: ...


class InMemoryNotificationRepo:
    def __init__(self) -> None:
        self._store: dict[str, Notification] = {}

    def add(self, notification: Notification) -> None:
        self._store[notification.id] = notification

    def list_by_user(self, user_id: str) -> list[Notification]:
        """Newest first."""
        mine = [n for n in self._store.values() if n.user_id == user_id]
        return sorted(mine, key=lambda n: n.created_at, reverse=True)

    def mark_read(self, notification_id: str, user_id: str) -> Notification | None:
        existing = self._store.get(notification_id)
        if existing is None or existing.user_id != user_id:
            return None
        updated = replace(existing, is_read=True)
        self._store[notification_id] = updated
        return updated
