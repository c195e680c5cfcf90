"""Lesson completion: idempotency, propagation, completion notification."""

from __future__ import annotations

import asyncio
import threading

import pytest
from prometheus_client import REGISTRY

from learnhub.core.errors import (
    CourseNotFoundError,
    ForbiddenError,
    LessonNotFoundError,
    ProgressNotFoundError,
)
from learnhub.repos.progress_repo import InMemoryProgressRepo
from learnhub.services.progress_service import ProgressService
from tests.conftest import ADMIN, STUDENT, TEACHER, Lifecycle

COMPLETION_MESSAGE = 'Congratulations! You\'ve completed the course "Intro to Python".'


def _completions(outcome: str) -> float:
    value = REGISTRY.get_sample_value("lesson_completions_total", {"outcome": outcome})
    return value or 0.0


def _enroll(lc: Lifecycle, course_id: str) -> None:
    asyncio.run(lc.enrollment_service.enroll(STUDENT, course_id))


def test_two_lesson_course_reaches_completion_once(lifecycle: Lifecycle) -> None:
    course = lifecycle.course(lessons=2)
    _enroll(lifecycle, course.id)
    first, second = course.lesson_ids
    svc = lifecycle.progress_service

    p = asyncio.run(svc.complete_lesson(STUDENT, course.id, first))
    assert p.progress_percentage == 50.0
    enrollment = asyncio.run(lifecycle.enrollments.get(STUDENT.user_id, course.id))
    assert enrollment is not None and enrollment.progress == 50.0
    assert COMPLETION_MESSAGE not in lifecycle.messages(STUDENT.user_id)

    p = asyncio.run(svc.complete_lesson(STUDENT, course.id, second))
    assert p.progress_percentage == 100.0
    enrollment = asyncio.run(lifecycle.enrollments.get(STUDENT.user_id, course.id))
    assert enrollment is not None
    assert enrollment.progress == 100.0
    assert enrollment.certificate_state == "eligible"

    # Repeating a lesson after completion must not re-notify.
    asyncio.run(svc.complete_lesson(STUDENT, course.id, second))
    assert lifecycle.messages(STUDENT.user_id).count(COMPLETION_MESSAGE) == 1


def test_repeat_completion_is_idempotent(lifecycle: Lifecycle) -> None:
    course = lifecycle.course(lessons=4)
    lesson = course.lesson_ids[0]
    svc = lifecycle.progress_service

    once = asyncio.run(svc.complete_lesson(STUDENT, course.id, lesson))
    lifecycle.clock.advance()
    twice = asyncio.run(svc.complete_lesson(STUDENT, course.id, lesson))

    assert twice.completed_lessons == once.completed_lessons == (lesson,)
    assert twice.progress_percentage == once.progress_percentage == 25.0


def test_repeat_is_counted_as_repeat(lifecycle: Lifecycle) -> None:
    course = lifecycle.course(lessons=3)
    lesson = course.lesson_ids[0]
    svc = lifecycle.progress_service

    new_before, repeat_before = _completions("new"), _completions("repeat")
    asyncio.run(svc.complete_lesson(STUDENT, course.id, lesson))
    asyncio.run(svc.complete_lesson(STUDENT, course.id, lesson))
    assert _completions("new") - new_before == 1
    assert _completions("repeat") - repeat_before == 1


def test_completion_without_enrollment_never_enrolls(lifecycle: Lifecycle) -> None:
    course = lifecycle.course(lessons=1)
    p = asyncio.run(
        lifecycle.progress_service.complete_lesson(STUDENT, course.id, course.lesson_ids[0])
    )
    assert p.progress_percentage == 100.0
    assert asyncio.run(lifecycle.enrollments.get(STUDENT.user_id, course.id)) is None


def test_unknown_course(lifecycle: Lifecycle) -> None:
    with pytest.raises(CourseNotFoundError):
        asyncio.run(lifecycle.progress_service.complete_lesson(STUDENT, "nope", "l1"))


def test_lesson_from_another_course_is_rejected(lifecycle: Lifecycle) -> None:
    course = lifecycle.course("A", lessons=1)
    other = lifecycle.course("B", lessons=1)
    with pytest.raises(LessonNotFoundError):
        asyncio.run(
            lifecycle.progress_service.complete_lesson(
                STUDENT, course.id, other.lesson_ids[0]
            )
        )
    assert asyncio.run(lifecycle.progress.get(STUDENT.user_id, course.id)) is None


@pytest.mark.parametrize("actor", [TEACHER, ADMIN], ids=["teacher", "admin"])
def test_only_students_complete_lessons(lifecycle: Lifecycle, actor) -> None:
    course = lifecycle.course(lessons=1)
    with pytest.raises(ForbiddenError):
        asyncio.run(
            lifecycle.progress_service.complete_lesson(actor, course.id, course.lesson_ids[0])
        )


def test_concurrent_completion_of_same_lesson_converges(lifecycle: Lifecycle) -> None:
    course = lifecycle.course(lessons=1)
    _enroll(lifecycle, course.id)
    lesson = course.lesson_ids[0]
    svc = lifecycle.progress_service

    async def _race():
        return await asyncio.gather(
            svc.complete_lesson(STUDENT, course.id, lesson),
            svc.complete_lesson(STUDENT, course.id, lesson),
        )

    asyncio.run(_race())

    stored = asyncio.run(lifecycle.progress.get(STUDENT.user_id, course.id))
    assert stored is not None
    assert stored.completed_lessons == (lesson,)
    assert stored.progress_percentage == 100.0
    assert lifecycle.messages(STUDENT.user_id).count(COMPLETION_MESSAGE) == 1


def test_threaded_completion_of_same_lesson_converges(lifecycle: Lifecycle) -> None:
    course = lifecycle.course(lessons=2)
    lesson = course.lesson_ids[0]
    svc = lifecycle.progress_service
    barrier = threading.Barrier(8)

    def _worker() -> None:
        barrier.wait()
        asyncio.run(svc.complete_lesson(STUDENT, course.id, lesson))

    threads = [threading.Thread(target=_worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = asyncio.run(lifecycle.progress.get(STUDENT.user_id, course.id))
    assert stored is not None
    assert stored.completed_lessons == (lesson,)
    assert stored.progress_percentage == 50.0


def test_threaded_completion_of_different_lessons_loses_nothing(
    lifecycle: Lifecycle,
) -> None:
    course = lifecycle.course(lessons=10)
    svc = lifecycle.progress_service
    barrier = threading.Barrier(len(course.lesson_ids))

    def _worker(lesson_id: str) -> None:
        barrier.wait()
        asyncio.run(svc.complete_lesson(STUDENT, course.id, lesson_id))

    threads = [threading.Thread(target=_worker, args=(lid,)) for lid in course.lesson_ids]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    stored = asyncio.run(lifecycle.progress.get(STUDENT.user_id, course.id))
    assert stored is not None
    assert sorted(stored.completed_lessons) == sorted(course.lesson_ids)
    assert stored.progress_percentage == 100.0
    assert lifecycle.messages(STUDENT.user_id).count(
        'Congratulations! You\'ve completed the course "Intro to Python".'
    ) == 1


def test_get_progress_missing(lifecycle: Lifecycle) -> None:
    with pytest.raises(ProgressNotFoundError):
        asyncio.run(lifecycle.progress_service.get_progress(STUDENT, "c1"))


def test_list_progress_returns_only_mine(lifecycle: Lifecycle) -> None:
    a = lifecycle.course("A", lessons=2)
    b = lifecycle.course("B", lessons=2)
    svc = lifecycle.progress_service
    asyncio.run(svc.complete_lesson(STUDENT, a.id, a.lesson_ids[0]))
    asyncio.run(svc.complete_lesson(STUDENT, b.id, b.lesson_ids[1]))

    mine = asyncio.run(svc.list_progress(STUDENT))
    assert {p.course_id for p in mine} == {a.id, b.id}


class _InterleavingProgressRepo(InMemoryProgressRepo):
    """Lands a second lesson completion right after the first write returns."""

    def __init__(self, lesson_id: str, total_lessons: int) -> None:
        super().__init__()
        self._pending = lesson_id
        self._total = total_lessons

    async def apply(self, student_id, course_id, mutate):
        before, after = await super().apply(student_id, course_id, mutate)
        if self._pending is not None:
            lesson_id, self._pending = self._pending, None
            now = after.updated_at
            await super().apply(
                student_id,
                course_id,
                lambda cur: cur.with_lesson(lesson_id, total_lessons=self._total, now=now),
            )
        return before, after


def test_enrollment_projection_catches_up_with_concurrent_completion(
    lifecycle: Lifecycle,
) -> None:
    course = lifecycle.course(lessons=2)
    _enroll(lifecycle, course.id)
    first, second = course.lesson_ids
    progress = _InterleavingProgressRepo(second, total_lessons=2)
    svc = ProgressService(
        courses=lifecycle.courses,
        progress=progress,
        enrollments=lifecycle.enrollments,
        notifier=lifecycle.notifier,
        clock=lifecycle.clock,
    )

    returned = asyncio.run(svc.complete_lesson(STUDENT, course.id, first))

    assert returned.progress_percentage == 50.0
    enrollment = asyncio.run(lifecycle.enrollments.get(STUDENT.user_id, course.id))
    assert enrollment is not None
    assert enrollment.progress == 100.0
