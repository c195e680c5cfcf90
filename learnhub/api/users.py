"""Contact directory for notification and email delivery.

Accounts are created by the identity provider that mints the bearer
tokens; this service only keeps the address and display name it needs
to email a student.  An administrator (or the provider's sync job)
writes entries here, the same way payments.py receives ledger entries.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter
from pydantic import BaseModel, Field

from learnhub.api.dependencies import AdminDep, user_repo
from learnhub.core.errors import UserNotFoundError
from learnhub.models.principal import Role
from learnhub.models.user import User

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/users", tags=["users"])


class UserIn(BaseModel):
    email: str = Field(min_length=3, max_length=255, pattern=r"^[^@\s]+@[^@\s]+$")
    name: str = Field(default="", max_length=200)
    role: Role = Role.STUDENT


class UserOut(BaseModel):
    id: str
    email: str
    name: str
    role: Role

    @classmethod
    def from_domain(cls, user: User) -> UserOut:
        return cls(id=user.id, email=user.email, name=user.name, role=user.role)


@router.get("", response_model=list[UserOut])
def list_users(_principal: AdminDep) -> list[UserOut]:
    return [UserOut.from_domain(u) for u in user_repo.list_all()]


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: str, _principal: AdminDep) -> UserOut:
    user = user_repo.get_by_id(user_id)
    if user is None:
        raise UserNotFoundError()
    return UserOut.from_domain(user)


@router.put("/{user_id}", response_model=UserOut)
def put_user(user_id: str, body: UserIn, principal: AdminDep) -> UserOut:
    user = User(
        id=user_id,
        email=body.email.lower(),
        name=body.name.strip(),
        role=body.role,
    )
    previous = user_repo.put(user)
    logger.info(
        "Directory entry %s user=%s by=%s",
        "replaced" if previous else "created",
        user_id,
        principal.user_id,
    )
    return UserOut.from_domain(user)
