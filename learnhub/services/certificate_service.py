"""Certificate issuance, revocation and re-issuance.

Every transition is one atomic update of the enrollment through
``EnrollmentRepo.update``; the state checks live in the Enrollment
transition methods, so a rejected transition never writes.  Notification
and email side effects run after the write and cannot undo it.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from learnhub.core.errors import (
    CourseNotFoundError,
    EnrollmentNotFoundError,
    ForbiddenError,
    LearnHubError,
    NotEnrolledError,
)
from learnhub.core.metrics import CERTIFICATE_TRANSITIONS
from learnhub.models.course import Course
from learnhub.models.enrollment import Enrollment, ReissueRecord
from learnhub.models.principal import Principal
from learnhub.repos.course_repo import CourseRepo
from learnhub.repos.enrollment_repo import EnrollmentMutator, EnrollmentRepo
from learnhub.services import policies
from learnhub.services.notifier import Notifier, utcnow

logger = logging.getLogger(__name__)

_SIGN_OFF = "\n\nBest regards,\nLearnHub Team"


class CertificateService:
    def __init__(
        self,
        *,
        courses: CourseRepo,
        enrollments: EnrollmentRepo,
        notifier: Notifier,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._courses = courses
        self._enrollments = enrollments
        self._notifier = notifier
        self._clock = clock

    def _course_title(self, course_id: str) -> str:
        course = self._courses.get(course_id)
        return course.title if course else "Unknown Course"

    def _require_admin(self, actor: Principal, action: str) -> None:
        if not policies.can_administer_certificates(actor):
            if action in ("revoke", "reissue"):
                CERTIFICATE_TRANSITIONS.labels(transition=action, result="rejected").inc()
            logger.warning(
                "Rejected certificate %s by user=%s role=%s",
                action,
                actor.user_id,
                actor.role,
            )
            raise ForbiddenError()

    async def _transition(
        self,
        transition: str,
        actor: Principal,
        enrollment: Enrollment,
        mutate: EnrollmentMutator,
    ) -> Enrollment:
        try:
            updated = await self._enrollments.update(
                enrollment.student_id, enrollment.course_id, mutate
            )
        except LearnHubError as exc:
            CERTIFICATE_TRANSITIONS.labels(transition=transition, result="rejected").inc()
            logger.warning(
                "Rejected certificate %s enrollment=%s by user=%s: %s",
                transition,
                enrollment.id,
                actor.user_id,
                exc.code,
                extra={"enrollment_id": enrollment.id},
            )
            raise
        if updated is None:
            # Unenrolled between the lookup and the update.
            raise EnrollmentNotFoundError()

        CERTIFICATE_TRANSITIONS.labels(transition=transition, result="ok").inc()
        logger.info(
            "Certificate %s enrollment=%s student=%s course=%s by user=%s",
            transition,
            updated.id,
            updated.student_id,
            updated.course_id,
            actor.user_id,
            extra={
                "enrollment_id": updated.id,
                "student_id": updated.student_id,
                "course_id": updated.course_id,
            },
        )
        return updated

    async def _enrollment_by_id(self, enrollment_id: str) -> Enrollment:
        enrollment = await self._enrollments.get_by_id(enrollment_id)
        if enrollment is None:
            raise EnrollmentNotFoundError()
        return enrollment

    # -- transitions ---------------------------------------------------------

    async def issue(
        self, actor: Principal, student_id: str, course_id: str
    ) -> Enrollment:
        course: Course | None = self._courses.get(course_id)
        if course is None:
            raise CourseNotFoundError()
        if not policies.can_manage_course(actor, course):
            CERTIFICATE_TRANSITIONS.labels(transition="issue", result="rejected").inc()
            logger.warning(
                "Rejected certificate issue by user=%s for course=%s",
                actor.user_id,
                course_id,
            )
            raise ForbiddenError()

        enrollment = await self._enrollments.get(student_id, course_id)
        if enrollment is None:
            raise NotEnrolledError("student is not enrolled in this course")

        now = self._clock()
        updated = await self._transition(
            "issue", actor, enrollment, lambda e: e.issue_certificate(now=now)
        )

        await self._notifier.notify(
            student_id,
            f'Your certificate for the course "{course.title}" is now available.',
        )
        await self._notifier.email_user(
            student_id,
            f'Certificate Issued for "{course.title}"',
            f'Your certificate for the course "{course.title}" is now available'
            f" in your LearnHub account." + _SIGN_OFF,
        )
        return updated

    async def revoke(self, actor: Principal, enrollment_id: str) -> Enrollment:
        """Revoke and reset progress to 0; the student must earn it again."""
        self._require_admin(actor, "revoke")
        enrollment = await self._enrollment_by_id(enrollment_id)

        now = self._clock()
        updated = await self._transition(
            "revoke", actor, enrollment, lambda e: e.revoke_certificate(now=now)
        )

        title = self._course_title(updated.course_id)
        await self._notifier.notify(
            updated.student_id,
            f'Your certificate for the course "{title}" has been revoked.',
        )
        await self._notifier.email_user(
            updated.student_id,
            "Certificate Revoked - LearnHub",
            f'Your certificate for the course "{title}" has been revoked.'
            " Please contact support for details." + _SIGN_OFF,
        )
        return updated

    async def reissue(self, actor: Principal, enrollment_id: str) -> Enrollment:
        """Restore a revoked certificate.  Progress is not required."""
        self._require_admin(actor, "reissue")
        enrollment = await self._enrollment_by_id(enrollment_id)

        now = self._clock()
        updated = await self._transition(
            "reissue",
            actor,
            enrollment,
            lambda e: e.reissue_certificate(admin_id=actor.user_id, now=now),
        )

        title = self._course_title(updated.course_id)
        await self._notifier.notify(
            updated.student_id,
            f'Your certificate for the course "{title}" has been re-issued.',
        )
        await self._notifier.email_user(
            updated.student_id,
            "Certificate Re-Issued - LearnHub",
            f'Your certificate for the course "{title}" has been successfully'
            " re-issued. You can now download it from your dashboard." + _SIGN_OFF,
        )
        return updated

    # -- queries -------------------------------------------------------------

    async def list_issued(self, actor: Principal) -> list[Enrollment]:
        """Enrollments at 100% progress, whatever their certificate flags."""
        self._require_admin(actor, "query")
        return await self._enrollments.list_completed()

    async def list_revoked(self, actor: Principal) -> list[Enrollment]:
        self._require_admin(actor, "query")
        return await self._enrollments.list_revoked()

    async def list_revoked_reissued(self, actor: Principal) -> list[Enrollment]:
        self._require_admin(actor, "query")
        return await self._enrollments.list_reissued()

    async def reissue_history(
        self, actor: Principal, enrollment_id: str
    ) -> tuple[Enrollment, list[ReissueRecord]]:
        self._require_admin(actor, "query")
        enrollment = await self._enrollment_by_id(enrollment_id)
        return enrollment, list(enrollment.reissue_history)

    async def my_certificates(self, actor: Principal) -> list[Enrollment]:
        mine = await self._enrollments.list_by_student(actor.user_id)
        return [e for e in mine if e.certificate_issued]

    def course_title(self, course_id: str) -> str:
        return self._course_title(course_id)
