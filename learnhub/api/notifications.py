"""The caller's in-app notifications."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter
from pydantic import BaseModel

from learnhub.api.dependencies import UserDep, notification_repo
from learnhub.core.errors import NotificationNotFoundError
from learnhub.models.notification import Notification

router = APIRouter(prefix="/v1/notifications", tags=["notifications"])


class NotificationOut(BaseModel):
    id: str
    message: str
    is_read: bool
    created_at: datetime

    @classmethod
    def from_domain(cls, n: Notification) -> NotificationOut:
        return cls(id=n.id, message=n.message, is_read=n.is_read, created_at=n.created_at)


@router.get("", response_model=list[NotificationOut])
def list_notifications(principal: UserDep) -> list[NotificationOut]:
    return [
        NotificationOut.from_domain(n)
        for n in notification_repo.list_by_user(principal.user_id)
    ]


@router.patch("/{notification_id}/read", response_model=NotificationOut)
def mark_read(notification_id: str, principal: UserDep) -> NotificationOut:
    # Someone else's notification is indistinguishable from a missing one.
    updated = notification_repo.mark_read(notification_id, principal.user_id)
    if updated is None:
        raise NotificationNotFoundError()
    return NotificationOut.from_domain(updated)
