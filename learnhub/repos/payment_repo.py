from __future__ import annotations

from typing import Protocol

from learnhub.models.payment import Payment


class PaymentRepo(Protocol):
    def add(self, payment: Payment) -> None: ...
    def has_paid(self, student_id: str, course_id: str) -> bool: ...


class InMemoryPaymentRepo:
    def __init__(self) -> None:
        self._store: dict[str, Payment] = {}

    def add(self, payment: Payment) -> None:
        self._store[payment.id] = payment

    def has_paid(self, student_id: str, course_id: str) -> bool:
        return any(
            p.student_id == student_id and p.course_id == course_id
            for p in self._store.values()
        )
