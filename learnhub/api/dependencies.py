from __future__ import annotations

import logging
from typing import Annotated

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.config import SETTINGS
from learnhub.db.engine import get_optional_session
from learnhub.models.principal import Principal, Role
from learnhub.repos.course_repo import InMemoryCourseRepo
from learnhub.repos.enrollment_repo import EnrollmentRepo, InMemoryEnrollmentRepo
from learnhub.repos.notification_repo import InMemoryNotificationRepo
from learnhub.repos.payment_repo import InMemoryPaymentRepo
from learnhub.repos.pg_enrollment_repo import PgEnrollmentRepo
from learnhub.repos.pg_progress_repo import PgProgressRepo
from learnhub.repos.progress_repo import InMemoryProgressRepo, ProgressRepo
from learnhub.repos.user_repo import InMemoryUserRepo
from learnhub.services import token_service
from learnhub.services.certificate_service import CertificateService
from learnhub.services.enrollment_service import EnrollmentService
from learnhub.services.notifier import Notifier
from learnhub.services.progress_service import ProgressService
from learnhub.services.task_queue import task_queue

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/oauth/token")

# ---------------------------------------------------------------------------
# Shared stores
# ---------------------------------------------------------------------------
# Course, user, payment and notification lookups are in-memory directories.
# Enrollment and progress switch to Postgres per request when DATABASE_URL
# is configured.

course_repo = InMemoryCourseRepo()
user_repo = InMemoryUserRepo()
payment_repo = InMemoryPaymentRepo()
notification_repo = InMemoryNotificationRepo()
enrollment_repo = InMemoryEnrollmentRepo()
progress_repo = InMemoryProgressRepo()

notifier = Notifier(
    notifications=notification_repo,
    users=user_repo,
    queue=task_queue,
    sender=SETTINGS.email_sender,
)


# ---------------------------------------------------------------------------
# Authentication and role guards
# ---------------------------------------------------------------------------


def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    """Extract and validate the JWT bearer token. Returns a Principal.

    Used as a FastAPI dependency on any protected endpoint.
    """
    try:
        claims = token_service.decode_access_token(raw_token)
        role = Role(claims["role"])
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except (jwt.InvalidTokenError, ValueError) as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    principal = Principal(user_id=claims["sub"], role=role)
    logger.debug(
        "Token validated for user=%s role=%s",
        principal.user_id,
        principal.role,
    )
    return principal


def require_role(role: Role):
    """Dependency factory: demand a specific role.

    Usage: Depends(require_role(Role.ADMIN))
    Returns the Principal if the role is present, else 403.
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_role(role):
            logger.warning(
                "Access denied: user=%s role=%s required=%s",
                principal.user_id,
                principal.role,
                role,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


def require_any_role(roles: set[Role]):
    """Dependency factory: demand at least one of the given roles.

    Usage: Depends(require_any_role({Role.ADMIN, Role.TEACHER}))
    """

    def _guard(
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        if not principal.has_any_role(roles):
            logger.warning(
                "Access denied: user=%s role=%s required_any=%s",
                principal.user_id,
                principal.role,
                sorted(roles),
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _guard


# ---------------------------------------------------------------------------
# Repositories and services
# ---------------------------------------------------------------------------


def get_enrollment_repo(
    session: Annotated[AsyncSession | None, Depends(get_optional_session)],
) -> EnrollmentRepo:
    if session is None:
        return enrollment_repo
    return PgEnrollmentRepo(session)


def get_progress_repo(
    session: Annotated[AsyncSession | None, Depends(get_optional_session)],
) -> ProgressRepo:
    if session is None:
        return progress_repo
    return PgProgressRepo(session)


def get_enrollment_service(
    enrollments: Annotated[EnrollmentRepo, Depends(get_enrollment_repo)],
) -> EnrollmentService:
    return EnrollmentService(
        courses=course_repo,
        enrollments=enrollments,
        payments=payment_repo,
        notifier=notifier,
    )


def get_progress_service(
    enrollments: Annotated[EnrollmentRepo, Depends(get_enrollment_repo)],
    progress: Annotated[ProgressRepo, Depends(get_progress_repo)],
) -> ProgressService:
    return ProgressService(
        courses=course_repo,
        progress=progress,
        enrollments=enrollments,
        notifier=notifier,
    )


def get_certificate_service(
    enrollments: Annotated[EnrollmentRepo, Depends(get_enrollment_repo)],
) -> CertificateService:
    return CertificateService(
        courses=course_repo,
        enrollments=enrollments,
        notifier=notifier,
    )


StudentDep = Annotated[Principal, Depends(require_role(Role.STUDENT))]
AdminDep = Annotated[Principal, Depends(require_role(Role.ADMIN))]
StaffDep = Annotated[Principal, Depends(require_any_role({Role.TEACHER, Role.ADMIN}))]
UserDep = Annotated[Principal, Depends(require_user)]
