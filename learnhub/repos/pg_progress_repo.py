"""PostgreSQL implementation of ProgressRepo."""

from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.db.tables import LessonProgressRow
from learnhub.models.progress import LessonProgress
from learnhub.repos.progress_repo import ProgressMutator


class PgProgressRepo:
    """Satisfies the ProgressRepo Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, student_id: str, course_id: str) -> LessonProgress | None:
        row = await self._session.get(LessonProgressRow, (student_id, course_id))
        return _row_to_progress(row) if row is not None else None

    async def list_by_student(self, student_id: str) -> list[LessonProgress]:
        stmt = select(LessonProgressRow).where(LessonProgressRow.student_id == student_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_progress(r) for r in rows]

    async def apply(
        self, student_id: str, course_id: str, mutate: ProgressMutator
    ) -> tuple[LessonProgress | None, LessonProgress]:
        # Make sure the row exists so there is always something to lock;
        # two first-time writers race on the insert, not on the set.
        ensure = (
            pg_insert(LessonProgressRow)
            .values(
                student_id=student_id,
                course_id=course_id,
                completed_lessons=[],
                progress_percentage=0.0,
            )
            .on_conflict_do_nothing(index_elements=["student_id", "course_id"])
        )
        created = (await self._session.execute(ensure)).rowcount == 1

        stmt = (
            select(LessonProgressRow)
            .where(
                LessonProgressRow.student_id == student_id,
                LessonProgressRow.course_id == course_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one()

        before = None if created else _row_to_progress(row)
        after = mutate(before)

        row.completed_lessons = list(after.completed_lessons)
        row.progress_percentage = after.progress_percentage
        row.created_at = after.created_at
        row.updated_at = after.updated_at
        await self._session.flush()
        return before, after


def _row_to_progress(row: LessonProgressRow) -> LessonProgress:
    return LessonProgress(
        student_id=row.student_id,
        course_id=row.course_id,
        completed_lessons=tuple(row.completed_lessons or ()),
        progress_percentage=row.progress_percentage,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
