"""Payment ledger entries.

Gateway integration lives outside this service; an administrator (or the
gateway's webhook relay) records completed payments here so enrollment
listings can report paid/unpaid.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from learnhub.api.dependencies import AdminDep, course_repo, payment_repo
from learnhub.core.errors import CourseNotFoundError
from learnhub.models.payment import Payment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/payments", tags=["payments"])


class PaymentIn(BaseModel):
    student_id: str
    course_id: str
    amount: float = Field(gt=0)


class PaymentOut(BaseModel):
    id: str
    student_id: str
    course_id: str
    amount: float
    paid_at: datetime


@router.post("", response_model=PaymentOut, status_code=status.HTTP_201_CREATED)
def record_payment(body: PaymentIn, principal: AdminDep) -> PaymentOut:
    if course_repo.get(body.course_id) is None:
        raise CourseNotFoundError()
    payment = Payment.new(
        student_id=body.student_id,
        course_id=body.course_id,
        amount=body.amount,
        paid_at=datetime.now(UTC),
    )
    payment_repo.add(payment)
    logger.info(
        "Payment recorded student=%s course=%s amount=%.2f by=%s",
        body.student_id,
        body.course_id,
        body.amount,
        principal.user_id,
        extra={"student_id": body.student_id, "course_id": body.course_id},
    )
    return PaymentOut(
        id=payment.id,
        student_id=payment.student_id,
        course_id=payment.course_id,
        amount=payment.amount,
        paid_at=payment.paid_at,
    )
