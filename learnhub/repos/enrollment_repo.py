from __future__ import annotations

import threading
from collections.abc import Callable
from typing import Protocol

from learnhub.core.errors import AlreadyEnrolledError
from learnhub.models.enrollment import FULL_PROGRESS, Enrollment

EnrollmentMutator = Callable[[Enrollment], Enrollment]


class EnrollmentRepo(Protocol):
    async def get(self, student_id: str, course_id: str) -> Enrollment | None: ...
    async def get_by_id(self, enrollment_id: str) -> Enrollment | None: ...
    async def add(self, enrollment: Enrollment) -> None: ...
    async def delete(self, student_id: str, course_id: str) -> bool: ...
    async def update(
        self, student_id: str, course_id: str, mutate: EnrollmentMutator
    ) -> Enrollment | None: ...
    async def list_by_student(self, student_id: str) -> list[Enrollment]: ...
    async def list_by_course(self, course_id: str) -> list[Enrollment]: ...
    async def list_completed(self) -> list[Enrollment]: ...
    async def list_revoked(self) -> list[Enrollment]: ...
    async def list_reissued(self) -> list[Enrollment]: ...


class InMemoryEnrollmentRepo:
    """Dict-backed repo keyed by (student_id, course_id).

    ``update`` runs the mutator under the lock with no awaits between the
    read and the write, so concurrent callers (coroutines or threads)
    cannot lose each other's updates.  A mutator that raises leaves the
    stored record untouched.
    """

    def __init__(self) -> None:
        self._store: dict[tuple[str, str], Enrollment] = {}
        self._lock = threading.Lock()

    async def get(self, student_id: str, course_id: str) -> Enrollment | None:
        return self._store.get((student_id, course_id))

    async def get_by_id(self, enrollment_id: str) -> Enrollment | None:
        return next((e for e in self._store.values() if e.id == enrollment_id), None)

    async def add(self, enrollment: Enrollment) -> None:
        key = (enrollment.student_id, enrollment.course_id)
        with self._lock:
            if key in self._store:
                raise AlreadyEnrolledError()
            self._store[key] = enrollment

    async def delete(self, student_id: str, course_id: str) -> bool:
        with self._lock:
            return self._store.pop((student_id, course_id), None) is not None

    async def update(
        self, student_id: str, course_id: str, mutate: EnrollmentMutator
    ) -> Enrollment | None:
        key = (student_id, course_id)
        with self._lock:
            current = self._store.get(key)
            if current is None:
                return None
            updated = mutate(current)
            self._store[key] = updated
            return updated

    async def list_by_student(self, student_id: str) -> list[Enrollment]:
        return [e for e in self._store.values() if e.student_id == student_id]

    async def list_by_course(self, course_id: str) -> list[Enrollment]:
        return [e for e in self._store.values() if e.course_id == course_id]

    async def list_completed(self) -> list[Enrollment]:
        return [e for e in self._store.values() if e.progress >= FULL_PROGRESS]

    async def list_revoked(self) -> list[Enrollment]:
        return [e for e in self._store.values() if e.certificate_revoked]

    async def list_reissued(self) -> list[Enrollment]:
        return [
            e
            for e in self._store.values()
            if e.reissue_history and e.certificate_issued and not e.certificate_revoked
        ]
