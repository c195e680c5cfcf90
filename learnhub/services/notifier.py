"""Fire-and-forget notification and email sinks.

Both sinks share one contract with the lifecycle services: a failure is
logged and counted, never raised.  A certificate revocation must not be
rolled back because the mail queue was unreachable.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import UTC, datetime

from learnhub.core.metrics import SINK_FAILURES
from learnhub.models.notification import Notification
from learnhub.repos.notification_repo import NotificationRepo
from learnhub.repos.user_repo import UserRepo
from learnhub.services.task_queue import EMAIL_QUEUE, TaskQueue

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


class Notifier:
    def __init__(
        self,
        *,
        notifications: NotificationRepo,
        users: UserRepo,
        queue: TaskQueue,
        sender: str,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._notifications = notifications
        self._users = users
        self._queue = queue
        self._sender = sender
        self._clock = clock

    async def notify(self, user_id: str, message: str) -> None:
        try:
            self._notifications.add(
                Notification.new(user_id=user_id, message=message, created_at=self._clock())
            )
        except Exception:
            SINK_FAILURES.labels(sink="notification").inc()
            logger.exception("Notification failed for user=%s", user_id)

    async def send_email(self, to_address: str, subject: str, body: str) -> None:
        try:
            await self._queue.enqueue(
                EMAIL_QUEUE,
                {
                    "from": self._sender,
                    "to": to_address,
                    "subject": subject,
                    "body": body,
                },
            )
        except Exception:
            SINK_FAILURES.labels(sink="email").inc()
            logger.exception("Email enqueue failed to=%s subject=%r", to_address, subject)

    async def email_user(self, user_id: str, subject: str, body: str) -> None:
        """Email a user by id; skipped when the directory has no address."""
        user = self._users.get_by_id(user_id)
        if user is None or not user.email:
            logger.warning("No email address for user=%s, skipping %r", user_id, subject)
            return
        greeting = f"Dear {user.name or 'Student'},\n\n"
        await self.send_email(user.email, subject, greeting + body)
