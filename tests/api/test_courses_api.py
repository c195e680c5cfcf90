from __future__ import annotations

from fastapi.testclient import TestClient

from learnhub.models.principal import Role
from tests.conftest import auth, mint_token, seed_course


def test_teacher_creates_course_and_adds_lessons(
    client: TestClient, teacher_token: str
) -> None:
    resp = client.post(
        "/v1/courses",
        json={"title": "Rust for Pythonistas", "price": 20},
        headers=auth(teacher_token),
    )
    assert resp.status_code == 201
    course = resp.json()
    assert course["created_by"] == "teacher-1"
    assert course["total_lessons"] == 0

    for title in ("Ownership", "Borrowing"):
        resp = client.post(
            f"/v1/courses/{course['id']}/lessons",
            json={"title": title},
            headers=auth(teacher_token),
        )
        assert resp.status_code == 201

    detail = client.get(f"/v1/courses/{course['id']}", headers=auth(teacher_token)).json()
    assert detail["total_lessons"] == 2

    lessons = client.get(
        f"/v1/courses/{course['id']}/lessons", headers=auth(teacher_token)
    ).json()
    assert [lesson["title"] for lesson in lessons] == ["Ownership", "Borrowing"]


def test_other_teacher_cannot_add_lessons(client: TestClient) -> None:
    course = seed_course(created_by="teacher-1")
    resp = client.post(
        f"/v1/courses/{course.id}/lessons",
        json={"title": "Sneaky"},
        headers=auth(mint_token("teacher-2", Role.TEACHER)),
    )
    assert resp.status_code == 403
    assert resp.json()["code"] == "forbidden"


def test_admin_can_add_lessons_to_any_course(client: TestClient, admin_token: str) -> None:
    course = seed_course(created_by="teacher-1", lessons=0)
    resp = client.post(
        f"/v1/courses/{course.id}/lessons",
        json={"title": "Admin lesson", "content_type": "pdf"},
        headers=auth(admin_token),
    )
    assert resp.status_code == 201
    assert resp.json()["content_type"] == "pdf"


def test_invalid_content_type_is_rejected(client: TestClient, teacher_token: str) -> None:
    course = seed_course()
    resp = client.post(
        f"/v1/courses/{course.id}/lessons",
        json={"title": "x", "content_type": "hologram"},
        headers=auth(teacher_token),
    )
    assert resp.status_code == 422


def test_unknown_course_is_404(client: TestClient, student_token: str) -> None:
    resp = client.get("/v1/courses/nope", headers=auth(student_token))
    assert resp.status_code == 404
    assert resp.json() == {"detail": "course not found", "code": "course_not_found"}


def test_list_courses(client: TestClient, student_token: str) -> None:
    seed_course("A")
    seed_course("B")
    resp = client.get("/v1/courses", headers=auth(student_token))
    assert resp.status_code == 200
    assert sorted(c["title"] for c in resp.json()) == ["A", "B"]
