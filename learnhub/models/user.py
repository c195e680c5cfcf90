from __future__ import annotations

from dataclasses import dataclass
from uuid import uuid4

from learnhub.models.principal import Role


@dataclass(frozen=True, slots=True)
class User:
    id: str
    email: str
    name: str = ""
    role: Role = Role.STUDENT

    @staticmethod
    def new(*, email: str, name: str = "", role: Role = Role.STUDENT) -> User:
        return User(id=str(uuid4()), email=email.strip().lower(), name=name, role=role)
