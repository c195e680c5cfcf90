from __future__ import annotations

from dataclasses import replace
from typing import Protocol

from learnhub.models.course import Course, Lesson


class CourseRepo(Protocol):
    def get(self, course_id: str) -> Course | None: ...
    def list_all(self) -> list[Course]: ...
    def add(self, course: Course) -> None: ...
    def add_lesson(self, lesson: Lesson) -> Course | None: ...
    def list_lessons(self, course_id: str) -> list[Lesson]: ...


class InMemoryCourseRepo:
    def __init__(self) -> None:
        self._courses: dict[str, Course] = {}
        self._lessons: dict[str, Lesson] = {}

    def get(self, course_id: str) -> Course | None:
        return self._courses.get(course_id)

    def list_all(self) -> list[Course]:
        return list(self._courses.values())

    def add(self, course: Course) -> None:
        if course.id in self._courses:
            raise ValueError("course already exists")
        self._courses[course.id] = course

    def add_lesson(self, lesson: Lesson) -> Course | None:
        course = self._courses.get(lesson.course_id)
        if course is None:
            return None
        updated = replace(course, lesson_ids=(*course.lesson_ids, lesson.id))
        self._courses[course.id] = updated
        self._lessons[lesson.id] = lesson
        return updated

    def list_lessons(self, course_id: str) -> list[Lesson]:
        course = self._courses.get(course_id)
        if course is None:
            return []
        return [self._lessons[lid] for lid in course.lesson_ids if lid in self._lessons]
