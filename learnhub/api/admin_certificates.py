"""Administrative certificate endpoints: revoke, reissue, audit queries.

Revoke and reissue address the enrollment by id, as listed by the
query endpoints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from learnhub.api.dependencies import AdminDep, get_certificate_service
from learnhub.api.enrollments import EnrollmentOut
from learnhub.models.enrollment import Enrollment, ReissueRecord
from learnhub.services.certificate_service import CertificateService

router = APIRouter(prefix="/v1/admin/certificates", tags=["admin"])

ServiceDep = Annotated[CertificateService, Depends(get_certificate_service)]


class ReissueOut(BaseModel):
    reissued_at: datetime
    admin_id: str

    @classmethod
    def from_domain(cls, record: ReissueRecord) -> ReissueOut:
        return cls(reissued_at=record.reissued_at, admin_id=record.admin_id)


class ReissuedEnrollmentOut(EnrollmentOut):
    last_reissued_at: datetime | None
    last_reissued_by: str | None
    reissue_history: list[ReissueOut]

    @classmethod
    def from_reissued(cls, enrollment: Enrollment) -> ReissuedEnrollmentOut:
        last = enrollment.last_reissue
        return cls(
            **EnrollmentOut.from_domain(enrollment).model_dump(),
            last_reissued_at=last.reissued_at if last else None,
            last_reissued_by=last.admin_id if last else None,
            reissue_history=[ReissueOut.from_domain(r) for r in enrollment.reissue_history],
        )


class HistoryOut(BaseModel):
    enrollment_id: str
    student_id: str
    course_id: str
    reissue_history: list[ReissueOut]


@router.get("/issued", response_model=list[EnrollmentOut])
async def issued_certificates(
    principal: AdminDep, service: ServiceDep
) -> list[EnrollmentOut]:
    return [EnrollmentOut.from_domain(e) for e in await service.list_issued(principal)]


@router.get("/revoked", response_model=list[EnrollmentOut])
async def revoked_certificates(
    principal: AdminDep, service: ServiceDep
) -> list[EnrollmentOut]:
    return [EnrollmentOut.from_domain(e) for e in await service.list_revoked(principal)]


@router.get("/revoked-reissued", response_model=list[ReissuedEnrollmentOut])
async def revoked_reissued_certificates(
    principal: AdminDep, service: ServiceDep
) -> list[ReissuedEnrollmentOut]:
    return [
        ReissuedEnrollmentOut.from_reissued(e)
        for e in await service.list_revoked_reissued(principal)
    ]


@router.delete("/{enrollment_id}", response_model=EnrollmentOut)
async def revoke_certificate(
    enrollment_id: str, principal: AdminDep, service: ServiceDep
) -> EnrollmentOut:
    return EnrollmentOut.from_domain(await service.revoke(principal, enrollment_id))


@router.post("/{enrollment_id}/reissue", response_model=ReissuedEnrollmentOut)
async def reissue_certificate(
    enrollment_id: str, principal: AdminDep, service: ServiceDep
) -> ReissuedEnrollmentOut:
    updated = await service.reissue(principal, enrollment_id)
    return ReissuedEnrollmentOut.from_reissued(updated)


@router.get("/{enrollment_id}/history", response_model=HistoryOut)
async def reissue_history(
    enrollment_id: str, principal: AdminDep, service: ServiceDep
) -> HistoryOut:
    enrollment, history = await service.reissue_history(principal, enrollment_id)
    return HistoryOut(
        enrollment_id=enrollment.id,
        student_id=enrollment.student_id,
        course_id=enrollment.course_id,
        reissue_history=[ReissueOut.from_domain(r) for r in history],
    )
