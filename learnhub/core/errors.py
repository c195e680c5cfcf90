"""Domain error taxonomy.

Services raise these; the API layer renders them through one exception
handler (see learnhub/main.py).  ``kind`` groups errors into the four
families the HTTP layer maps to status codes; ``code`` is the stable,
machine-readable identifier clients switch on.
"""

from __future__ import annotations

from enum import StrEnum


class ErrorKind(StrEnum):
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    INVALID_INPUT = "invalid_input"
    UNAUTHORIZED = "unauthorized"


class LearnHubError(Exception):
    """Base domain error."""

    kind: ErrorKind = ErrorKind.CONFLICT
    code: str = "learnhub_error"
    default_message: str = "request could not be completed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


# --- not_found ---


class CourseNotFoundError(LearnHubError):
    kind = ErrorKind.NOT_FOUND
    code = "course_not_found"
    default_message = "course not found"


class LessonNotFoundError(LearnHubError):
    kind = ErrorKind.NOT_FOUND
    code = "lesson_not_found"
    default_message = "lesson not found in this course"


class NotEnrolledError(LearnHubError):
    kind = ErrorKind.NOT_FOUND
    code = "not_enrolled"
    default_message = "not enrolled in this course"


class EnrollmentNotFoundError(LearnHubError):
    kind = ErrorKind.NOT_FOUND
    code = "enrollment_not_found"
    default_message = "enrollment not found"


class ProgressNotFoundError(LearnHubError):
    kind = ErrorKind.NOT_FOUND
    code = "progress_not_found"
    default_message = "no progress found"


class NotificationNotFoundError(LearnHubError):
    kind = ErrorKind.NOT_FOUND
    code = "notification_not_found"
    default_message = "notification not found"


class UserNotFoundError(LearnHubError):
    kind = ErrorKind.NOT_FOUND
    code = "user_not_found"
    default_message = "user not found in the directory"


# --- conflict ---


class AlreadyEnrolledError(LearnHubError):
    kind = ErrorKind.CONFLICT
    code = "already_enrolled"
    default_message = "already enrolled in this course"


class CourseNotCompletedError(LearnHubError):
    kind = ErrorKind.CONFLICT
    code = "course_not_completed"
    default_message = "course not completed yet"


class InvalidCertificateStateError(LearnHubError):
    kind = ErrorKind.CONFLICT
    code = "invalid_certificate_state"
    default_message = "certificate is not in a state that allows this operation"


# --- invalid_input ---


class InvalidRangeError(LearnHubError):
    kind = ErrorKind.INVALID_INPUT
    code = "invalid_range"
    default_message = "progress must be between 0 and 100"


# --- unauthorized ---


class ForbiddenError(LearnHubError):
    kind = ErrorKind.UNAUTHORIZED
    code = "forbidden"
    default_message = "Insufficient permissions"


HTTP_STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.CONFLICT: 409,
    ErrorKind.INVALID_INPUT: 422,
    ErrorKind.UNAUTHORIZED: 403,
}
