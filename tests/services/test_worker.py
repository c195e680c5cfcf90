"""Email delivery worker: drains the queue one task at a time."""

from __future__ import annotations

import asyncio
import logging

import pytest
from prometheus_client import REGISTRY

from learnhub.services.task_queue import EMAIL_QUEUE, InMemoryTaskQueue
from learnhub.worker import HANDLERS, process_one
from tests.conftest import ADMIN, STUDENT, Lifecycle, seed_user


def _depth() -> float | None:
    return REGISTRY.get_sample_value("task_queue_depth", {"queue_name": EMAIL_QUEUE})


def test_email_handler_is_registered() -> None:
    assert EMAIL_QUEUE in HANDLERS


def test_process_one_on_empty_queue_returns_false() -> None:
    queue = InMemoryTaskQueue()
    assert asyncio.run(process_one(EMAIL_QUEUE, queue=queue, timeout=0)) is False
    assert _depth() == 0


def test_process_one_delivers_email(caplog: pytest.LogCaptureFixture) -> None:
    queue = InMemoryTaskQueue()
    asyncio.run(
        queue.enqueue(
            EMAIL_QUEUE,
            {
                "from": "no-reply@test.local",
                "to": "student@example.com",
                "subject": "Certificate Revoked - LearnHub",
                "body": "Dear Student,\n\n...",
            },
        )
    )
    asyncio.run(queue.enqueue(EMAIL_QUEUE, {"to": "other@example.com"}))

    with caplog.at_level(logging.INFO, logger="worker"):
        handled = asyncio.run(process_one(EMAIL_QUEUE, queue=queue, timeout=0))

    assert handled is True
    assert "to=student@example.com" in caplog.text
    assert "Certificate Revoked - LearnHub" in caplog.text
    # One task left behind the one just handled.
    assert _depth() == 1


def test_malformed_task_is_logged_and_dropped(caplog: pytest.LogCaptureFixture) -> None:
    queue = InMemoryTaskQueue()
    asyncio.run(queue.enqueue(EMAIL_QUEUE, {"subject": "no recipient"}))

    with caplog.at_level(logging.ERROR, logger="worker"):
        handled = asyncio.run(process_one(EMAIL_QUEUE, queue=queue, timeout=0))

    assert handled is True
    assert "failed" in caplog.text
    assert asyncio.run(queue.queue_length(EMAIL_QUEUE)) == 0


def test_revocation_email_reaches_the_worker(
    lifecycle: Lifecycle, caplog: pytest.LogCaptureFixture
) -> None:
    seed_user(STUDENT.user_id, name="Ada", repo=lifecycle.users)
    course = lifecycle.course("Algorithms", lessons=1)
    asyncio.run(lifecycle.enrollment_service.enroll(STUDENT, course.id))
    asyncio.run(
        lifecycle.progress_service.complete_lesson(
            STUDENT, course.id, course.lesson_ids[0]
        )
    )
    enrollment = asyncio.run(
        lifecycle.certificate_service.issue(ADMIN, STUDENT.user_id, course.id)
    )
    asyncio.run(lifecycle.certificate_service.revoke(ADMIN, enrollment.id))

    with caplog.at_level(logging.INFO, logger="worker"):
        while asyncio.run(process_one(EMAIL_QUEUE, queue=lifecycle.queue, timeout=0)):
            pass

    assert 'subject=\'Certificate Issued for "Algorithms"\'' in caplog.text
    assert "subject='Certificate Revoked - LearnHub'" in caplog.text
    assert lifecycle.emails() == []
