"""Lesson completion and progress endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from learnhub.api.dependencies import StudentDep, get_progress_service
from learnhub.models.progress import LessonProgress
from learnhub.services.progress_service import ProgressService

router = APIRouter(prefix="/v1/progress", tags=["progress"])

ServiceDep = Annotated[ProgressService, Depends(get_progress_service)]


class CompleteLessonIn(BaseModel):
    course_id: str
    lesson_id: str


class ProgressOut(BaseModel):
    student_id: str
    course_id: str
    completed_lessons: list[str]
    progress_percentage: float
    created_at: datetime | None
    updated_at: datetime | None

    @classmethod
    def from_domain(cls, record: LessonProgress) -> ProgressOut:
        return cls(
            student_id=record.student_id,
            course_id=record.course_id,
            completed_lessons=list(record.completed_lessons),
            progress_percentage=record.progress_percentage,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


@router.post("/complete-lesson", response_model=ProgressOut)
async def complete_lesson(
    body: CompleteLessonIn, principal: StudentDep, service: ServiceDep
) -> ProgressOut:
    record = await service.complete_lesson(principal, body.course_id, body.lesson_id)
    return ProgressOut.from_domain(record)


@router.get("/me", response_model=list[ProgressOut])
async def my_progress(principal: StudentDep, service: ServiceDep) -> list[ProgressOut]:
    return [ProgressOut.from_domain(p) for p in await service.list_progress(principal)]


@router.get("/{course_id}", response_model=ProgressOut)
async def course_progress(
    course_id: str, principal: StudentDep, service: ServiceDep
) -> ProgressOut:
    return ProgressOut.from_domain(await service.get_progress(principal, course_id))
