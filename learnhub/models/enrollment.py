"""Enrollment record and the certificate state machine.

The certificate lifecycle is not stored as a state column: it is derived
from the two flags, the cached progress and the reissue history.

    not_eligible --(progress hits 100)--> eligible --issue--> issued
    issued/reissued --revoke--> revoked --reissue--> reissued

Transitions are pure: each returns a new Enrollment or raises, so a
repository can apply them inside one atomic read-modify-write and a
rejected transition leaves the stored record untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from enum import StrEnum
from uuid import uuid4

from learnhub.core.errors import (
    CourseNotCompletedError,
    InvalidCertificateStateError,
    InvalidRangeError,
)

FULL_PROGRESS = 100.0

# Smallest step used to keep reissue timestamps strictly increasing.
_TICK = timedelta(microseconds=1)


class CertificateState(StrEnum):
    NOT_ELIGIBLE = "not_eligible"
    ELIGIBLE = "eligible"
    ISSUED = "issued"
    REVOKED = "revoked"
    REISSUED = "reissued"


@dataclass(frozen=True, slots=True)
class ReissueRecord:
    reissued_at: datetime
    admin_id: str


@dataclass(frozen=True, slots=True)
class ProgressOverride:
    """Audit entry for a direct progress override."""

    overridden_at: datetime
    actor_id: str
    previous: float
    value: float


@dataclass(frozen=True, slots=True)
class Enrollment:
    id: str
    student_id: str
    course_id: str
    created_at: datetime
    updated_at: datetime
    progress: float = 0.0
    certificate_issued: bool = False
    certificate_revoked: bool = False
    reissue_history: tuple[ReissueRecord, ...] = ()
    progress_overrides: tuple[ProgressOverride, ...] = ()

    @staticmethod
    def new(*, student_id: str, course_id: str, now: datetime) -> Enrollment:
        return Enrollment(
            id=str(uuid4()),
            student_id=student_id,
            course_id=course_id,
            created_at=now,
            updated_at=now,
        )

    @property
    def certificate_state(self) -> CertificateState:
        """Derived from the flags, progress and reissue history.

        A revoked certificate whose student has re-earned 100% reports
        ``eligible``: ``issue_certificate`` accepts it again.
        """
        if self.certificate_revoked:
            if self.progress >= FULL_PROGRESS:
                return CertificateState.ELIGIBLE
            return CertificateState.REVOKED
        if self.certificate_issued:
            if self.reissue_history:
                return CertificateState.REISSUED
            return CertificateState.ISSUED
        if self.progress >= FULL_PROGRESS:
            return CertificateState.ELIGIBLE
        return CertificateState.NOT_ELIGIBLE

    @property
    def last_reissue(self) -> ReissueRecord | None:
        return self.reissue_history[-1] if self.reissue_history else None

    # -- progress -----------------------------------------------------------

    def with_progress(self, value: float, *, now: datetime) -> Enrollment:
        """Refresh the cached projection from the Progress record."""
        return replace(self, progress=value, updated_at=now)

    def override_progress(
        self, value: float, *, actor_id: str, now: datetime
    ) -> Enrollment:
        if not 0 <= value <= FULL_PROGRESS:
            raise InvalidRangeError()
        entry = ProgressOverride(
            overridden_at=now, actor_id=actor_id, previous=self.progress, value=value
        )
        return replace(
            self,
            progress=value,
            progress_overrides=(*self.progress_overrides, entry),
            updated_at=now,
        )

    # -- certificate transitions ---------------------------------------------

    def issue_certificate(self, *, now: datetime) -> Enrollment:
        """eligible -> issued.

        A revoked certificate whose student has re-earned 100% may be
        issued again the natural way; otherwise revoked needs a reissue.
        """
        if self.certificate_issued:
            raise InvalidCertificateStateError("certificate already issued")
        if self.progress < FULL_PROGRESS:
            raise CourseNotCompletedError()
        return replace(
            self, certificate_issued=True, certificate_revoked=False, updated_at=now
        )

    def revoke_certificate(self, *, now: datetime) -> Enrollment:
        """issued/reissued -> revoked; progress must be earned again."""
        if not self.certificate_issued:
            raise InvalidCertificateStateError("certificate is not issued")
        return replace(
            self,
            progress=0.0,
            certificate_issued=False,
            certificate_revoked=True,
            updated_at=now,
        )

    def reissue_certificate(self, *, admin_id: str, now: datetime) -> Enrollment:
        """revoked -> reissued, recording who restored it and when."""
        if not self.certificate_revoked:
            raise InvalidCertificateStateError(
                "certificate was not revoked, cannot re-issue"
            )
        last = self.last_reissue
        if last is not None and now <= last.reissued_at:
            now = last.reissued_at + _TICK
        record = ReissueRecord(reissued_at=now, admin_id=admin_id)
        return replace(
            self,
            certificate_issued=True,
            certificate_revoked=False,
            reissue_history=(*self.reissue_history, record),
            updated_at=now,
        )
