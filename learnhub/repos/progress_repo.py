from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol

from learnhub.models.progress import LessonProgress

ProgressMutator = Callable[[LessonProgress | None], LessonProgress]


class ProgressRepo(Protocol):
    async def get(self, student_id: str, course_id: str) -> LessonProgress | None: ...
    async def list_by_student(self, student_id: str) -> list[LessonProgress]: ...
    async def apply(
        self, student_id: str, course_id: str, mutate: ProgressMutator
    ) -> tuple[LessonProgress | None, LessonProgress]:
        """Atomically fetch-or-create, mutate and store.

        ``mutate`` receives the current record (None when absent) and
        returns the record to store.  Returns ``(before, after)``.
        """
        ...


class InMemoryProgressRepo:
    def __init__(self) -> None:
        self._store: dict[tuple[str, str], LessonProgress] = {}
        self._lock = threading.Lock()

    async def get(self, student_id: str, course_id: str) -> LessonProgress | None:
        return self._store.get((student_id, course_id))

    async def list_by_student(self, student_id: str) -> list[LessonProgress]:
        return [p for p in self._store.values() if p.student_id == student_id]

    async def apply(
        self, student_id: str, course_id: str, mutate: ProgressMutator
    ) -> tuple[LessonProgress | None, LessonProgress]:
        key = (student_id, course_id)
        with self._lock:
            before = self._store.get(key)
            after = mutate(before)
            self._store[key] = after
            return before, after
