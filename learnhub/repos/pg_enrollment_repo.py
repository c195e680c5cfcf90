"""PostgreSQL implementation of EnrollmentRepo."""

from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.core.errors import AlreadyEnrolledError
from learnhub.db.tables import (
    CertificateReissueRow,
    EnrollmentRow,
    ProgressOverrideRow,
)
from learnhub.models.enrollment import (
    FULL_PROGRESS,
    Enrollment,
    ProgressOverride,
    ReissueRecord,
)
from learnhub.repos.enrollment_repo import EnrollmentMutator


class PgEnrollmentRepo:
    """Satisfies the EnrollmentRepo Protocol using PostgreSQL via SQLAlchemy.

    ``update`` locks the row with SELECT ... FOR UPDATE for the rest of
    the request transaction, so concurrent read-modify-writes on the same
    enrollment serialize instead of overwriting each other.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, student_id: str, course_id: str) -> Enrollment | None:
        stmt = select(EnrollmentRow).where(
            EnrollmentRow.student_id == student_id,
            EnrollmentRow.course_id == course_id,
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_enrollment(row) if row is not None else None

    async def get_by_id(self, enrollment_id: str) -> Enrollment | None:
        row = await self._session.get(EnrollmentRow, enrollment_id)
        return _row_to_enrollment(row) if row is not None else None

    async def add(self, enrollment: Enrollment) -> None:
        stmt = (
            pg_insert(EnrollmentRow)
            .values(
                id=enrollment.id,
                student_id=enrollment.student_id,
                course_id=enrollment.course_id,
                progress=enrollment.progress,
                certificate_issued=enrollment.certificate_issued,
                certificate_revoked=enrollment.certificate_revoked,
                created_at=enrollment.created_at,
                updated_at=enrollment.updated_at,
            )
            .on_conflict_do_nothing(constraint="uq_enrollment_student_course")
        )
        result = await self._session.execute(stmt)
        if result.rowcount == 0:
            raise AlreadyEnrolledError()

    async def delete(self, student_id: str, course_id: str) -> bool:
        stmt = delete(EnrollmentRow).where(
            EnrollmentRow.student_id == student_id,
            EnrollmentRow.course_id == course_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def update(
        self, student_id: str, course_id: str, mutate: EnrollmentMutator
    ) -> Enrollment | None:
        stmt = (
            select(EnrollmentRow)
            .where(
                EnrollmentRow.student_id == student_id,
                EnrollmentRow.course_id == course_id,
            )
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        if row is None:
            return None

        updated = mutate(_row_to_enrollment(row))
        _apply_to_row(row, updated)
        await self._session.flush()
        return updated

    async def list_by_student(self, student_id: str) -> list[Enrollment]:
        return await self._list(EnrollmentRow.student_id == student_id)

    async def list_by_course(self, course_id: str) -> list[Enrollment]:
        return await self._list(EnrollmentRow.course_id == course_id)

    async def list_completed(self) -> list[Enrollment]:
        return await self._list(EnrollmentRow.progress >= FULL_PROGRESS)

    async def list_revoked(self) -> list[Enrollment]:
        return await self._list(EnrollmentRow.certificate_revoked.is_(True))

    async def list_reissued(self) -> list[Enrollment]:
        return await self._list(
            EnrollmentRow.certificate_issued.is_(True),
            EnrollmentRow.certificate_revoked.is_(False),
            EnrollmentRow.reissues.any(),
        )

    async def _list(self, *criteria) -> list[Enrollment]:
        stmt = select(EnrollmentRow).where(*criteria).order_by(EnrollmentRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_enrollment(r) for r in rows]


def _apply_to_row(row: EnrollmentRow, enrollment: Enrollment) -> None:
    row.progress = enrollment.progress
    row.certificate_issued = enrollment.certificate_issued
    row.certificate_revoked = enrollment.certificate_revoked
    row.updated_at = enrollment.updated_at

    # Audit trails are append-only: only entries past the stored length are new.
    for seq, record in enumerate(enrollment.reissue_history):
        if seq < len(row.reissues):
            continue
        row.reissues.append(
            CertificateReissueRow(
                enrollment_id=row.id,
                seq=seq,
                reissued_at=record.reissued_at,
                admin_id=record.admin_id,
            )
        )
    for seq, entry in enumerate(enrollment.progress_overrides):
        if seq < len(row.overrides):
            continue
        row.overrides.append(
            ProgressOverrideRow(
                enrollment_id=row.id,
                seq=seq,
                overridden_at=entry.overridden_at,
                actor_id=entry.actor_id,
                previous=entry.previous,
                value=entry.value,
            )
        )


def _row_to_enrollment(row: EnrollmentRow) -> Enrollment:
    return Enrollment(
        id=row.id,
        student_id=row.student_id,
        course_id=row.course_id,
        created_at=row.created_at,
        updated_at=row.updated_at,
        progress=row.progress,
        certificate_issued=row.certificate_issued,
        certificate_revoked=row.certificate_revoked,
        reissue_history=tuple(
            ReissueRecord(reissued_at=r.reissued_at, admin_id=r.admin_id)
            for r in row.reissues
        ),
        progress_overrides=tuple(
            ProgressOverride(
                overridden_at=o.overridden_at,
                actor_id=o.actor_id,
                previous=o.previous,
                value=o.value,
            )
            for o in row.overrides
        ),
    )
