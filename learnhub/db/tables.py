"""SQLAlchemy table definitions.

These map to the frozen dataclass domain models in learnhub/models/.
Only the lifecycle records (enrollments, lesson progress and their audit
trails) are persisted here; course, user and payment lookups belong to
their own directories.  Repos convert between rows and dataclasses.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import ARRAY
from sqlalchemy.orm import Mapped, mapped_column, relationship

from learnhub.db.engine import Base


class EnrollmentRow(Base):
    __tablename__ = "enrollments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    student_id: Mapped[str] = mapped_column(String(64), nullable=False)
    course_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    progress: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    certificate_issued: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    certificate_revoked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )

    reissues: Mapped[list[CertificateReissueRow]] = relationship(
        order_by="CertificateReissueRow.seq",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    overrides: Mapped[list[ProgressOverrideRow]] = relationship(
        order_by="ProgressOverrideRow.seq",
        lazy="selectin",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("student_id", "course_id", name="uq_enrollment_student_course"),
    )


class CertificateReissueRow(Base):
    """Append-only audit log of certificate re-issues."""

    __tablename__ = "certificate_reissues"

    enrollment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("enrollments.id", ondelete="CASCADE"), primary_key=True
    )
    seq: Mapped[int] = mapped_column(Integer, primary_key=True)
    reissued_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    admin_id: Mapped[str] = mapped_column(String(64), nullable=False)


class ProgressOverrideRow(Base):
    """Append-only audit log of direct progress overrides."""

    __tablename__ = "progress_overrides"

    enrollment_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("enrollments.id", ondelete="CASCADE"), primary_key=True
    )
    seq: Mapped[int] = mapped_column(Integer, primary_key=True)
    overridden_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False
    )
    actor_id: Mapped[str] = mapped_column(String(64), nullable=False)
    previous: Mapped[float] = mapped_column(Float, nullable=False)
    value: Mapped[float] = mapped_column(Float, nullable=False)


class LessonProgressRow(Base):
    """Completed-lesson set per (student, course).

    Not deleted on unenroll: progress survives re-enrollment.
    """

    __tablename__ = "lesson_progress"

    student_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    course_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    completed_lessons: Mapped[list[str]] = mapped_column(
        ARRAY(String), nullable=False, default=list
    )
    progress_percentage: Mapped[float] = mapped_column(
        Float, nullable=False, default=0.0
    )
    created_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
