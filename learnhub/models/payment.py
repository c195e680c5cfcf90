from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Payment:
    """Completed payment recorded in the ledger (gateway details live elsewhere)."""

    id: str
    student_id: str
    course_id: str
    amount: float
    paid_at: datetime

    @staticmethod
    def new(
        *, student_id: str, course_id: str, amount: float, paid_at: datetime
    ) -> Payment:
        return Payment(
            id=str(uuid4()),
            student_id=student_id,
            course_id=course_id,
            amount=amount,
            paid_at=paid_at,
        )
