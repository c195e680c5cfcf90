from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4


@dataclass(frozen=True, slots=True)
class Course:
    """Course directory entry, read-only from the lifecycle's perspective."""

    id: str
    title: str
    created_by: str
    description: str = ""
    price: float = 0.0
    lesson_ids: tuple[str, ...] = ()

    @property
    def total_lessons(self) -> int:
        return len(self.lesson_ids)

    @property
    def is_free(self) -> bool:
        return self.price <= 0

    def has_lesson(self, lesson_id: str) -> bool:
        return lesson_id in self.lesson_ids

    @staticmethod
    def new(
        *, title: str, created_by: str, description: str = "", price: float = 0.0
    ) -> Course:
        return Course(
            id=str(uuid4()),
            title=title,
            created_by=created_by,
            description=description,
            price=price,
        )


@dataclass(frozen=True, slots=True)
class Lesson:
    id: str
    course_id: str
    title: str
    content_type: str = "video"  # video|pdf|quiz|link

    @staticmethod
    def new(*, course_id: str, title: str, content_type: str = "video") -> Lesson:
        return Lesson(
            id=str(uuid4()), course_id=course_id, title=title, content_type=content_type
        )
