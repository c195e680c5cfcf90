"""Lesson completion tracking and its propagation into enrollments."""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from learnhub.core.errors import (
    CourseNotFoundError,
    ForbiddenError,
    LessonNotFoundError,
    ProgressNotFoundError,
)
from learnhub.core.metrics import LESSON_COMPLETIONS
from learnhub.models.enrollment import FULL_PROGRESS
from learnhub.models.principal import Principal
from learnhub.models.progress import LessonProgress
from learnhub.repos.course_repo import CourseRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo
from learnhub.repos.progress_repo import ProgressRepo
from learnhub.services import policies
from learnhub.services.notifier import Notifier, utcnow

logger = logging.getLogger(__name__)


class ProgressService:
    def __init__(
        self,
        *,
        courses: CourseRepo,
        progress: ProgressRepo,
        enrollments: EnrollmentRepo,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._courses = courses
        self._progress = progress
        self._enrollments = enrollments
        self._notifier = notifier
        self._clock = clock

    async def complete_lesson(
        self, actor: Principal, course_id: str, lesson_id: str
    ) -> LessonProgress:
        """Mark a lesson complete and refresh the enrollment's progress.

        Repeating a lesson is harmless: the set is unchanged and the
        percentage is recomputed.  The completion notification fires only
        on the call that takes the record from below 100 to 100.
        """
        if not policies.is_student(actor):
            logger.warning("Rejected lesson completion by user=%s", actor.user_id)
            raise ForbiddenError("only students can complete lessons")

        course = self._courses.get(course_id)
        if course is None:
            raise CourseNotFoundError()
        if not course.has_lesson(lesson_id):
            raise LessonNotFoundError()

        student_id = actor.user_id
        now = self._clock()

        def mark(current: LessonProgress | None) -> LessonProgress:
            record = current or LessonProgress.new(
                student_id=student_id, course_id=course_id, now=now
            )
            return record.with_lesson(
                lesson_id, total_lessons=course.total_lessons, now=now
            )

        before, after = await self._progress.apply(student_id, course_id, mark)
        percentage = after.progress_percentage
        await self._refresh_enrollment(student_id, course_id, after, now)

        crossed = (
            before is None or before.progress_percentage < FULL_PROGRESS
        ) and percentage >= FULL_PROGRESS
        repeat = before is not None and lesson_id in before.completed_lessons

        if crossed:
            LESSON_COMPLETIONS.labels(outcome="course_completed").inc()
            logger.info(
                "Course completed student=%s course=%s",
                student_id,
                course_id,
                extra={"student_id": student_id, "course_id": course_id},
            )
            await self._notifier.notify(
                student_id,
                f'Congratulations! You\'ve completed the course "{course.title}".',
            )
        else:
            LESSON_COMPLETIONS.labels(outcome="repeat" if repeat else "new").inc()

        logger.debug(
            "Lesson %s complete student=%s course=%s progress=%.1f",
            lesson_id,
            student_id,
            course_id,
            percentage,
        )
        return after

    async def _refresh_enrollment(
        self,
        student_id: str,
        course_id: str,
        record: LessonProgress,
        now: datetime,
    ) -> None:
        """Copy the record's percentage onto the enrollment, if one exists.

        A concurrent completion can land between the two writes and be
        overwritten by this older value, so the record is re-read after
        each write and the refresh repeated until they agree.
        """
        while True:
            percentage = record.progress_percentage
            await self._enrollments.update(
                student_id, course_id, lambda e: e.with_progress(percentage, now=now)
            )
            latest = await self._progress.get(student_id, course_id)
            if latest is None or latest.completed_lessons == record.completed_lessons:
                return
            record = latest

    async def get_progress(self, actor: Principal, course_id: str) -> LessonProgress:
        record = await self._progress.get(actor.user_id, course_id)
        if record is None:
            raise ProgressNotFoundError()
        return record

    async def list_progress(self, actor: Principal) -> list[LessonProgress]:
        return await self._progress.list_by_student(actor.user_id)
