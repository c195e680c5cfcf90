from __future__ import annotations

import sys
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from learnhub.api.dependencies import (
    course_repo,
    enrollment_repo,
    notification_repo,
    payment_repo,
    progress_repo,
    user_repo,
)
from learnhub.main import app
from learnhub.models.course import Course, Lesson
from learnhub.models.principal import Principal, Role
from learnhub.models.user import User
from learnhub.repos.course_repo import InMemoryCourseRepo
from learnhub.repos.enrollment_repo import InMemoryEnrollmentRepo
from learnhub.repos.notification_repo import InMemoryNotificationRepo
from learnhub.repos.payment_repo import InMemoryPaymentRepo
from learnhub.repos.progress_repo import InMemoryProgressRepo
from learnhub.repos.user_repo import InMemoryUserRepo
from learnhub.services import token_service
from learnhub.services.certificate_service import CertificateService
from learnhub.services.enrollment_service import EnrollmentService
from learnhub.services.notifier import Notifier
from learnhub.services.progress_service import ProgressService
from learnhub.services.task_queue import InMemoryTaskQueue, task_queue

# Ensure repo root is on sys.path so `import learnhub` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


@pytest.fixture(autouse=True)
def reset_directories() -> None:
    """Clear the shared course/user/payment/notification stores."""
    course_repo._courses.clear()
    course_repo._lessons.clear()
    user_repo._by_id.clear()
    payment_repo._store.clear()
    notification_repo._store.clear()


@pytest.fixture(autouse=True)
def reset_lifecycle_state() -> None:
    """Clear enrollments and lesson progress between tests."""
    enrollment_repo._store.clear()
    progress_repo._store.clear()


@pytest.fixture(autouse=True)
def reset_task_queue() -> None:
    """Clear task queues between tests."""
    if hasattr(task_queue, "_queues"):
        task_queue._queues.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> TestClient:
    return TestClient(app)


def mint_token(username: str = "test-user", role: Role = Role.STUDENT) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, role=role)


def auth(token: str | None) -> dict[str, str]:
    if token is None:
        return {}
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def student_token() -> str:
    return mint_token(username="student-1", role=Role.STUDENT)


@pytest.fixture
def teacher_token() -> str:
    return mint_token(username="teacher-1", role=Role.TEACHER)


@pytest.fixture
def admin_token() -> str:
    return mint_token(username="admin-1", role=Role.ADMIN)


# ---------------------------------------------------------------------------
# Seed helpers for the shared (API-level) stores
# ---------------------------------------------------------------------------


def seed_course(
    title: str = "Intro to Python",
    *,
    lessons: int = 2,
    created_by: str = "teacher-1",
    price: float = 0.0,
    repo: InMemoryCourseRepo = course_repo,
) -> Course:
    """Create a course with ``lessons`` lessons and return the final Course."""
    course = Course.new(title=title, created_by=created_by, price=price)
    repo.add(course)
    for i in range(lessons):
        updated = repo.add_lesson(
            Lesson.new(course_id=course.id, title=f"Lesson {i + 1}")
        )
        assert updated is not None
        course = updated
    return course


def seed_user(
    user_id: str,
    *,
    email: str | None = None,
    name: str = "",
    role: Role = Role.STUDENT,
    repo: InMemoryUserRepo = user_repo,
) -> User:
    user = User(id=user_id, email=email or f"{user_id}@example.com", name=name, role=role)
    repo.put(user)
    return user


# ---------------------------------------------------------------------------
# Service-level harness: fresh repos, a fake clock, no HTTP
# ---------------------------------------------------------------------------


class FakeClock:
    """Deterministic, manually advanced UTC clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2024, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float = 1.0) -> None:
        self.now += timedelta(seconds=seconds)


@dataclass
class Lifecycle:
    clock: FakeClock = field(default_factory=FakeClock)
    courses: InMemoryCourseRepo = field(default_factory=InMemoryCourseRepo)
    users: InMemoryUserRepo = field(default_factory=InMemoryUserRepo)
    payments: InMemoryPaymentRepo = field(default_factory=InMemoryPaymentRepo)
    notifications: InMemoryNotificationRepo = field(default_factory=InMemoryNotificationRepo)
    enrollments: InMemoryEnrollmentRepo = field(default_factory=InMemoryEnrollmentRepo)
    progress: InMemoryProgressRepo = field(default_factory=InMemoryProgressRepo)
    queue: InMemoryTaskQueue = field(default_factory=InMemoryTaskQueue)

    def __post_init__(self) -> None:
        self.notifier = Notifier(
            notifications=self.notifications,
            users=self.users,
            queue=self.queue,
            sender="no-reply@test.local",
            clock=self.clock,
        )
        self.enrollment_service = EnrollmentService(
            courses=self.courses,
            enrollments=self.enrollments,
            payments=self.payments,
            notifier=self.notifier,
            clock=self.clock,
        )
        self.progress_service = ProgressService(
            courses=self.courses,
            progress=self.progress,
            enrollments=self.enrollments,
            notifier=self.notifier,
            clock=self.clock,
        )
        self.certificate_service = CertificateService(
            courses=self.courses,
            enrollments=self.enrollments,
            notifier=self.notifier,
            clock=self.clock,
        )

    def course(self, title: str = "Intro to Python", lessons: int = 2, **kwargs) -> Course:
        return seed_course(title, lessons=lessons, repo=self.courses, **kwargs)

    def messages(self, user_id: str) -> list[str]:
        return [n.message for n in self.notifications.list_by_user(user_id)]

    def emails(self) -> list[dict]:
        return [t.payload for t in self.queue._queues.get("email_delivery", [])]


@pytest.fixture
def lifecycle() -> Lifecycle:
    return Lifecycle()


STUDENT = Principal(user_id="student-1", role=Role.STUDENT)
OTHER_STUDENT = Principal(user_id="student-2", role=Role.STUDENT)
TEACHER = Principal(user_id="teacher-1", role=Role.TEACHER)
OTHER_TEACHER = Principal(user_id="teacher-2", role=Role.TEACHER)
ADMIN = Principal(user_id="admin-1", role=Role.ADMIN)
