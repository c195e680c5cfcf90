from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime


def compute_percentage(completed: int, total: int) -> float:
    """100 * completed / total, clamped to [0, 100]; 0 for an empty course."""
    if total <= 0:
        return 0.0
    return max(0.0, min(100.0, completed * 100.0 / total))


@dataclass(frozen=True, slots=True)
class LessonProgress:
    """Which lessons a student has completed in a course.

    The source of truth for completion.  ``Enrollment.progress`` is a
    cached projection of ``progress_percentage`` refreshed on every
    lesson completion.
    """

    student_id: str
    course_id: str
    completed_lessons: tuple[str, ...] = ()
    progress_percentage: float = 0.0
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @staticmethod
    def new(*, student_id: str, course_id: str, now: datetime) -> LessonProgress:
        return LessonProgress(
            student_id=student_id,
            course_id=course_id,
            created_at=now,
            updated_at=now,
        )

    def is_complete(self) -> bool:
        return self.progress_percentage >= 100.0

    def with_lesson(
        self, lesson_id: str, *, total_lessons: int, now: datetime
    ) -> LessonProgress:
        """Add ``lesson_id`` (no-op when already present) and recompute."""
        completed = self.completed_lessons
        if lesson_id not in completed:
            completed = (*completed, lesson_id)
        return replace(
            self,
            completed_lessons=completed,
            progress_percentage=compute_percentage(len(completed), total_lessons),
            updated_at=now,
        )
