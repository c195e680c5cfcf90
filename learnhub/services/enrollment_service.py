"""Enrollment management: enroll, unenroll, progress override, listings."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from learnhub.core.errors import (
    CourseNotFoundError,
    ForbiddenError,
    InvalidRangeError,
    NotEnrolledError,
)
from learnhub.core.metrics import ENROLLMENT_EVENTS
from learnhub.models.course import Course
from learnhub.models.enrollment import FULL_PROGRESS, CertificateState, Enrollment
from learnhub.models.principal import Principal
from learnhub.repos.course_repo import CourseRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo
from learnhub.repos.payment_repo import PaymentRepo
from learnhub.services import policies
from learnhub.services.notifier import Notifier, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class EnrollmentView:
    """An enrollment annotated for the student's course list."""

    enrollment: Enrollment
    course_title: str
    payment_status: str  # free|paid|unpaid

    @property
    def certificate_state(self) -> CertificateState:
        return self.enrollment.certificate_state


@dataclass(frozen=True, slots=True)
class StudentSummary:
    courses_enrolled: int
    courses_completed: int
    active_enrollments: int
    certificates: int


class EnrollmentService:
    def __init__(
        self,
        *,
        courses: CourseRepo,
        enrollments: EnrollmentRepo,
        payments: PaymentRepo,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._courses = courses
        self._enrollments = enrollments
        self._payments = payments
        self._notifier = notifier
        self._clock = clock

    def _course(self, course_id: str) -> Course:
        course = self._courses.get(course_id)
        if course is None:
            raise CourseNotFoundError()
        return course

    @staticmethod
    def _require_student(actor: Principal, action: str) -> None:
        if not policies.is_student(actor):
            logger.warning(
                "Rejected %s: user=%s role=%s is not a student",
                action,
                actor.user_id,
                actor.role,
            )
            raise ForbiddenError("only students can " + action)

    async def enroll(self, actor: Principal, course_id: str) -> Enrollment:
        self._require_student(actor, "enroll")
        course = self._course(course_id)

        enrollment = Enrollment.new(
            student_id=actor.user_id, course_id=course_id, now=self._clock()
        )
        # add() enforces one enrollment per (student, course) atomically
        await self._enrollments.add(enrollment)
        ENROLLMENT_EVENTS.labels(event="enrolled").inc()
        logger.info(
            "Enrolled student=%s course=%s",
            actor.user_id,
            course_id,
            extra={"student_id": actor.user_id, "course_id": course_id},
        )

        await self._notifier.notify(
            actor.user_id, f"You have enrolled in the course: {course.title}"
        )
        return enrollment

    async def unenroll(self, actor: Principal, course_id: str) -> None:
        """Delete the enrollment.  The lesson progress record is kept."""
        self._require_student(actor, "unenroll")
        removed = await self._enrollments.delete(actor.user_id, course_id)
        if not removed:
            raise NotEnrolledError()
        ENROLLMENT_EVENTS.labels(event="unenrolled").inc()
        logger.info(
            "Unenrolled student=%s course=%s",
            actor.user_id,
            course_id,
            extra={"student_id": actor.user_id, "course_id": course_id},
        )

    async def set_progress(
        self, actor: Principal, student_id: str, course_id: str, value: float
    ) -> Enrollment:
        """Administrative override of the cached progress, with an audit entry.

        The completed-lesson set is not touched, so the two may diverge
        until the student's next lesson completion refreshes the cache.
        """
        if not policies.can_override_progress(actor):
            logger.warning("Rejected progress override by user=%s", actor.user_id)
            raise ForbiddenError()
        if not 0 <= value <= FULL_PROGRESS:
            raise InvalidRangeError()

        now = self._clock()
        updated = await self._enrollments.update(
            student_id,
            course_id,
            lambda e: e.override_progress(value, actor_id=actor.user_id, now=now),
        )
        if updated is None:
            raise NotEnrolledError()

        ENROLLMENT_EVENTS.labels(event="progress_override").inc()
        logger.info(
            "Progress override student=%s course=%s value=%.1f by=%s",
            student_id,
            course_id,
            value,
            actor.user_id,
            extra={"student_id": student_id, "course_id": course_id},
        )
        return updated

    async def is_enrolled(self, actor: Principal, course_id: str) -> bool:
        return await self._enrollments.get(actor.user_id, course_id) is not None

    def _payment_status(self, student_id: str, course: Course | None) -> str:
        if course is None or course.is_free:
            return "free"
        return "paid" if self._payments.has_paid(student_id, course.id) else "unpaid"

    async def list_for_student(self, actor: Principal) -> list[EnrollmentView]:
        self._require_student(actor, "list enrollments")
        views = []
        for enrollment in await self._enrollments.list_by_student(actor.user_id):
            course = self._courses.get(enrollment.course_id)
            views.append(
                EnrollmentView(
                    enrollment=enrollment,
                    course_title=course.title if course else "Unknown Course",
                    payment_status=self._payment_status(actor.user_id, course),
                )
            )
        return views

    async def list_for_course(
        self, actor: Principal, course_id: str
    ) -> list[Enrollment]:
        course = self._course(course_id)
        if not policies.can_manage_course(actor, course):
            logger.warning(
                "Rejected roster view: user=%s course=%s", actor.user_id, course_id
            )
            raise ForbiddenError()
        return await self._enrollments.list_by_course(course_id)

    async def summary(self, actor: Principal) -> StudentSummary:
        self._require_student(actor, "view a summary")
        mine = await self._enrollments.list_by_student(actor.user_id)
        completed = sum(1 for e in mine if e.progress >= FULL_PROGRESS)
        return StudentSummary(
            courses_enrolled=len(mine),
            courses_completed=completed,
            active_enrollments=len(mine) - completed,
            certificates=sum(1 for e in mine if e.certificate_issued),
        )
