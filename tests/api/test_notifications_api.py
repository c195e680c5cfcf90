from __future__ import annotations

from fastapi.testclient import TestClient

from learnhub.models.principal import Role
from tests.conftest import auth, mint_token, seed_course


def test_enrollment_creates_notification_and_mark_read(
    client: TestClient, student_token: str
) -> None:
    course = seed_course("Algorithms")
    client.post(f"/v1/enrollments/{course.id}", headers=auth(student_token))

    (note,) = client.get("/v1/notifications", headers=auth(student_token)).json()
    assert note["message"] == "You have enrolled in the course: Algorithms"
    assert note["is_read"] is False

    resp = client.patch(f"/v1/notifications/{note['id']}/read", headers=auth(student_token))
    assert resp.status_code == 200
    assert resp.json()["is_read"] is True


def test_cannot_mark_someone_elses_notification(
    client: TestClient, student_token: str
) -> None:
    course = seed_course()
    client.post(f"/v1/enrollments/{course.id}", headers=auth(student_token))
    (note,) = client.get("/v1/notifications", headers=auth(student_token)).json()

    intruder = mint_token("student-2", Role.STUDENT)
    resp = client.patch(f"/v1/notifications/{note['id']}/read", headers=auth(intruder))
    assert resp.status_code == 404
    assert resp.json()["code"] == "notification_not_found"
    assert client.get("/v1/notifications", headers=auth(intruder)).json() == []
