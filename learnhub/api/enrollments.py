"""Enrollment endpoints (student self-service, roster, admin override)."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel

from learnhub.api.dependencies import (
    AdminDep,
    StaffDep,
    StudentDep,
    get_enrollment_service,
)
from learnhub.models.enrollment import Enrollment
from learnhub.services.enrollment_service import EnrollmentService

router = APIRouter(prefix="/v1/enrollments", tags=["enrollments"])
admin_router = APIRouter(prefix="/v1/admin/enrollments", tags=["admin"])

ServiceDep = Annotated[EnrollmentService, Depends(get_enrollment_service)]


class EnrollmentOut(BaseModel):
    id: str
    student_id: str
    course_id: str
    progress: float
    certificate_issued: bool
    certificate_revoked: bool
    certificate_state: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, enrollment: Enrollment) -> EnrollmentOut:
        return cls(
            id=enrollment.id,
            student_id=enrollment.student_id,
            course_id=enrollment.course_id,
            progress=enrollment.progress,
            certificate_issued=enrollment.certificate_issued,
            certificate_revoked=enrollment.certificate_revoked,
            certificate_state=enrollment.certificate_state.value,
            created_at=enrollment.created_at,
            updated_at=enrollment.updated_at,
        )


class MyEnrollmentOut(EnrollmentOut):
    course_title: str
    payment_status: str


class EnrollmentCheckOut(BaseModel):
    course_id: str
    enrolled: bool


class SummaryOut(BaseModel):
    courses_enrolled: int
    courses_completed: int
    active_enrollments: int
    certificates: int


class ProgressOverrideIn(BaseModel):
    progress: float


class ProgressOverrideOut(BaseModel):
    overridden_at: datetime
    actor_id: str
    previous: float
    value: float


class AdminEnrollmentOut(EnrollmentOut):
    progress_overrides: list[ProgressOverrideOut]


@router.post(
    "/{course_id}",
    response_model=EnrollmentOut,
    status_code=status.HTTP_201_CREATED,
)
async def enroll(
    course_id: str, principal: StudentDep, service: ServiceDep
) -> EnrollmentOut:
    return EnrollmentOut.from_domain(await service.enroll(principal, course_id))


@router.delete("/{course_id}", status_code=status.HTTP_204_NO_CONTENT)
async def unenroll(course_id: str, principal: StudentDep, service: ServiceDep) -> None:
    await service.unenroll(principal, course_id)


@router.get("/check/{course_id}", response_model=EnrollmentCheckOut)
async def check_enrollment(
    course_id: str, principal: StudentDep, service: ServiceDep
) -> EnrollmentCheckOut:
    enrolled = await service.is_enrolled(principal, course_id)
    return EnrollmentCheckOut(course_id=course_id, enrolled=enrolled)


@router.get("/me", response_model=list[MyEnrollmentOut])
async def my_enrollments(
    principal: StudentDep, service: ServiceDep
) -> list[MyEnrollmentOut]:
    return [
        MyEnrollmentOut(
            **EnrollmentOut.from_domain(view.enrollment).model_dump(),
            course_title=view.course_title,
            payment_status=view.payment_status,
        )
        for view in await service.list_for_student(principal)
    ]


@router.get("/summary", response_model=SummaryOut)
async def summary(principal: StudentDep, service: ServiceDep) -> SummaryOut:
    counts = await service.summary(principal)
    return SummaryOut(
        courses_enrolled=counts.courses_enrolled,
        courses_completed=counts.courses_completed,
        active_enrollments=counts.active_enrollments,
        certificates=counts.certificates,
    )


@router.get("/course/{course_id}", response_model=list[EnrollmentOut])
async def course_roster(
    course_id: str, principal: StaffDep, service: ServiceDep
) -> list[EnrollmentOut]:
    roster = await service.list_for_course(principal, course_id)
    return [EnrollmentOut.from_domain(e) for e in roster]


@admin_router.put(
    "/{student_id}/{course_id}/progress",
    response_model=AdminEnrollmentOut,
)
async def override_progress(
    student_id: str,
    course_id: str,
    body: ProgressOverrideIn,
    principal: AdminDep,
    service: ServiceDep,
) -> AdminEnrollmentOut:
    updated = await service.set_progress(
        principal, student_id, course_id, body.progress
    )
    return AdminEnrollmentOut(
        **EnrollmentOut.from_domain(updated).model_dump(),
        progress_overrides=[
            ProgressOverrideOut(
                overridden_at=o.overridden_at,
                actor_id=o.actor_id,
                previous=o.previous,
                value=o.value,
            )
            for o in updated.progress_overrides
        ],
    )
