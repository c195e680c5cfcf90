"""Authorization predicates.

Route guards (require_role in learnhub/api/dependencies.py) only check
role membership.  Rules that depend on the record being touched, such
as "this teacher created this course", are explicit predicates evaluated
inside each service operation.
"""

from __future__ import annotations

from learnhub.models.course import Course
from learnhub.models.principal import Principal, Role


def owns_course(principal: Principal, course: Course) -> bool:
    return principal.has_role(Role.TEACHER) and course.created_by == principal.user_id


def can_manage_course(principal: Principal, course: Course) -> bool:
    """Add lessons, view the roster, issue certificates."""
    return principal.is_admin() or owns_course(principal, course)


def can_administer_certificates(principal: Principal) -> bool:
    """Revoke, reissue, audit queries."""
    return principal.is_admin()


def can_override_progress(principal: Principal) -> bool:
    return principal.is_admin()


def is_student(principal: Principal) -> bool:
    return principal.has_role(Role.STUDENT)
