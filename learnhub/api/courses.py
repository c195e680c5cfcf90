"""Course directory endpoints.

Courses and lessons are read-only inputs to the enrollment lifecycle; the
write endpoints here exist so teachers can publish content and so the
lifecycle has something to enroll in.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from learnhub.api.dependencies import StaffDep, UserDep, course_repo
from learnhub.core.errors import CourseNotFoundError, ForbiddenError
from learnhub.models.course import Course, Lesson
from learnhub.services import policies

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/courses", tags=["courses"])


class CourseIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    description: str = ""
    price: float = Field(default=0.0, ge=0)


class LessonIn(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    content_type: str = Field(default="video", pattern="^(video|pdf|quiz|link)$")


class LessonOut(BaseModel):
    id: str
    course_id: str
    title: str
    content_type: str


class CourseOut(BaseModel):
    id: str
    title: str
    description: str
    price: float
    created_by: str
    total_lessons: int
    lesson_ids: list[str]

    @classmethod
    def from_domain(cls, course: Course) -> CourseOut:
        return cls(
            id=course.id,
            title=course.title,
            description=course.description,
            price=course.price,
            created_by=course.created_by,
            total_lessons=course.total_lessons,
            lesson_ids=list(course.lesson_ids),
        )


@router.get("", response_model=list[CourseOut])
def list_courses(_principal: UserDep) -> list[CourseOut]:
    return [CourseOut.from_domain(c) for c in course_repo.list_all()]


@router.get("/{course_id}", response_model=CourseOut)
def get_course(course_id: str, _principal: UserDep) -> CourseOut:
    course = course_repo.get(course_id)
    if course is None:
        raise CourseNotFoundError()
    return CourseOut.from_domain(course)


@router.get("/{course_id}/lessons", response_model=list[LessonOut])
def list_lessons(course_id: str, _principal: UserDep) -> list[LessonOut]:
    if course_repo.get(course_id) is None:
        raise CourseNotFoundError()
    return [
        LessonOut(
            id=lesson.id,
            course_id=lesson.course_id,
            title=lesson.title,
            content_type=lesson.content_type,
        )
        for lesson in course_repo.list_lessons(course_id)
    ]


@router.post("", response_model=CourseOut, status_code=status.HTTP_201_CREATED)
def create_course(body: CourseIn, principal: StaffDep) -> CourseOut:
    course = Course.new(
        title=body.title,
        created_by=principal.user_id,
        description=body.description,
        price=body.price,
    )
    course_repo.add(course)
    logger.info(
        "Course created id=%s by user=%s",
        course.id,
        principal.user_id,
        extra={"course_id": course.id},
    )
    return CourseOut.from_domain(course)


@router.post(
    "/{course_id}/lessons",
    response_model=LessonOut,
    status_code=status.HTTP_201_CREATED,
)
def add_lesson(course_id: str, body: LessonIn, principal: StaffDep) -> LessonOut:
    course = course_repo.get(course_id)
    if course is None:
        raise CourseNotFoundError()
    if not policies.can_manage_course(principal, course):
        logger.warning(
            "Rejected lesson add: user=%s does not own course=%s",
            principal.user_id,
            course_id,
        )
        raise ForbiddenError()

    lesson = Lesson.new(
        course_id=course_id, title=body.title, content_type=body.content_type
    )
    if course_repo.add_lesson(lesson) is None:
        raise CourseNotFoundError()
    return LessonOut(
        id=lesson.id,
        course_id=lesson.course_id,
        title=lesson.title,
        content_type=lesson.content_type,
    )
