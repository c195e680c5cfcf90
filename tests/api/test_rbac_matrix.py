"""Table-driven role guard tests.

Each row: method, path template, role, expected status.  Bodies are
valid enough to get past validation so the guard decides the outcome;
``{course}`` is replaced with a seeded course owned by teacher-1.
"""

from __future__ import annotations

import jwt
import pytest
from fastapi.testclient import TestClient

from learnhub.models.principal import Role
from learnhub.services import token_service
from tests.conftest import auth, mint_token, seed_course

S, T, A = Role.STUDENT, Role.TEACHER, Role.ADMIN

_RBAC_CASES = [
    # (method, path, role, expected_status)
    ("GET", "/v1/courses", S, 200),
    ("GET", "/v1/courses", None, 401),
    ("POST", "/v1/courses", T, 201),
    ("POST", "/v1/courses", A, 201),
    ("POST", "/v1/courses", S, 403),
    ("POST", "/v1/enrollments/{course}", S, 201),
    ("POST", "/v1/enrollments/{course}", T, 403),
    ("POST", "/v1/enrollments/{course}", A, 403),
    ("POST", "/v1/enrollments/{course}", None, 401),
    ("GET", "/v1/enrollments/me", S, 200),
    ("GET", "/v1/enrollments/me", T, 403),
    ("GET", "/v1/enrollments/course/{course}", T, 200),
    ("GET", "/v1/enrollments/course/{course}", A, 200),
    ("GET", "/v1/enrollments/course/{course}", S, 403),
    ("PUT", "/v1/admin/enrollments/student-1/{course}/progress", S, 403),
    ("PUT", "/v1/admin/enrollments/student-1/{course}/progress", T, 403),
    ("POST", "/v1/progress/complete-lesson", S, 200),
    ("POST", "/v1/progress/complete-lesson", A, 403),
    ("POST", "/v1/certificates/issue", S, 403),
    ("GET", "/v1/certificates/me", S, 200),
    ("GET", "/v1/certificates/me", A, 403),
    ("GET", "/v1/admin/certificates/issued", A, 200),
    ("GET", "/v1/admin/certificates/issued", T, 403),
    ("GET", "/v1/admin/certificates/revoked", S, 403),
    ("GET", "/v1/admin/certificates/revoked-reissued", A, 200),
    ("DELETE", "/v1/admin/certificates/some-id", T, 403),
    ("POST", "/v1/admin/certificates/some-id/reissue", T, 403),
    ("GET", "/v1/notifications", T, 200),
    ("GET", "/v1/notifications", None, 401),
    ("POST", "/v1/payments", A, 201),
    ("POST", "/v1/payments", S, 403),
    ("PUT", "/v1/users/student-1", A, 200),
    ("PUT", "/v1/users/student-1", T, 403),
    ("GET", "/v1/users", S, 403),
    ("GET", "/health", None, 200),
]


def _case_id(case: tuple) -> str:
    method, path, role, expected = case
    return f"{method} {path} [{role or 'anon'}] -> {expected}"


def _body(path: str, course_id: str, lesson_id: str) -> dict:
    if path == "/v1/courses":
        return {"title": "RBAC course"}
    if path.endswith("/progress"):
        return {"progress": 50}
    if path == "/v1/progress/complete-lesson":
        return {"course_id": course_id, "lesson_id": lesson_id}
    if path == "/v1/certificates/issue":
        return {"student_id": "student-1", "course_id": course_id}
    if path == "/v1/payments":
        return {"student_id": "student-1", "course_id": course_id, "amount": 1}
    if path.startswith("/v1/users/"):
        return {"email": "student-1@example.com", "name": "Ada"}
    return {}


@pytest.mark.parametrize(
    "method,path,role,expected",
    _RBAC_CASES,
    ids=[_case_id(c) for c in _RBAC_CASES],
)
def test_rbac(
    client: TestClient,
    method: str,
    path: str,
    role: Role | None,
    expected: int,
) -> None:
    course = seed_course(created_by="teacher-1", lessons=1)
    url = path.format(course=course.id)
    token = mint_token(username=f"{role}-1", role=role) if role else None

    resp = client.request(
        method,
        url,
        json=_body(path, course.id, course.lesson_ids[0]) if method in ("POST", "PUT") else None,
        headers=auth(token),
    )

    assert resp.status_code == expected, (
        f"{method} {url} role={role}: expected {expected}, got {resp.status_code}"
    )


def test_token_with_unknown_role_is_rejected(client: TestClient) -> None:
    token = token_service.create_access_token(sub="x", role=Role.STUDENT)
    claims = jwt.decode(token, options={"verify_signature": False})
    claims["role"] = "superuser"
    forged = jwt.encode(claims, token_service._private_key, algorithm="ES256")

    resp = client.get("/v1/courses", headers=auth(forged))
    assert resp.status_code == 401


def test_garbage_token_is_rejected(client: TestClient) -> None:
    resp = client.get("/v1/courses", headers=auth("not-a-jwt"))
    assert resp.status_code == 401
