from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Notification:
    id: str
    user_id: str
    message: str
    created_at: datetime
    is_read: bool = False

    @staticmethod
    def new(*, user_id: str, message: str, created_at: datetime) -> Notification:
        return Notification(
            id=str(uuid4()), user_id=user_id, message=message, created_at=created_at
        )
