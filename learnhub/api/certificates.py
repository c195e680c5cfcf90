"""Certificate issuance (teacher/admin) and the student's own certificates."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from learnhub.api.dependencies import StaffDep, StudentDep, get_certificate_service
from learnhub.api.enrollments import EnrollmentOut
from learnhub.services.certificate_service import CertificateService

router = APIRouter(prefix="/v1/certificates", tags=["certificates"])

ServiceDep = Annotated[CertificateService, Depends(get_certificate_service)]


class IssueIn(BaseModel):
    student_id: str
    course_id: str


class CertificateOut(BaseModel):
    enrollment_id: str
    course_id: str
    course_title: str
    certificate_state: str
    updated_at: datetime


@router.post("/issue", response_model=EnrollmentOut)
async def issue_certificate(
    body: IssueIn, principal: StaffDep, service: ServiceDep
) -> EnrollmentOut:
    updated = await service.issue(principal, body.student_id, body.course_id)
    return EnrollmentOut.from_domain(updated)


@router.get("/me", response_model=list[CertificateOut])
async def my_certificates(
    principal: StudentDep, service: ServiceDep
) -> list[CertificateOut]:
    return [
        CertificateOut(
            enrollment_id=e.id,
            course_id=e.course_id,
            course_title=service.course_title(e.course_id),
            certificate_state=e.certificate_state.value,
            updated_at=e.updated_at,
        )
        for e in await service.my_certificates(principal)
    ]
