from __future__ import annotations

import threading
from typing import Protocol

from learnhub.models.user import User


class UserRepo(Protocol):
    def get_by_id(self, user_id: str) -> User | None: ...
    def put(self, user: User) -> User | None: ...
    def list_all(self) -> list[User]: ...


class InMemoryUserRepo:
    """Contact directory keyed by user id.

    Identity lives with the token issuer; this only holds what the
    notifier needs to address a student (email and display name).
    """

    def __init__(self) -> None:
        self._by_id: dict[str, User] = {}
        self._lock = threading.Lock()

    def get_by_id(self, user_id: str) -> User | None:
        return self._by_id.get(user_id)

    def put(self, user: User) -> User | None:
        """Create or replace the entry; returns the entry it replaced."""
        with self._lock:
            previous = self._by_id.get(user.id)
            self._by_id[user.id] = user
            return previous

    def list_all(self) -> list[User]:
        return sorted(self._by_id.values(), key=lambda u: u.id)
