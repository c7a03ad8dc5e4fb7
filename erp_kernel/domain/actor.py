"""
Actor -- the authenticated user performing an operation.

Authentication itself lives outside the kernel; callers hand services an
``Actor`` built from their session.  Services consult ``role`` for gated
transitions (bill approval, data reset) and stamp ``user_id`` on every row
they write.
"""

from dataclasses import dataclass
from enum import Enum


class Role(str, Enum):
    ADMIN = "ADMIN"
    ACCOUNTANT = "ACCOUNTANT"
    SALES = "SALES"
    WAREHOUSE = "WAREHOUSE"
    USER = "USER"


@dataclass(frozen=True, slots=True)
class Actor:
    """Who is acting, and with which role."""

    user_id: str
    role: Role = Role.USER

    def __post_init__(self) -> None:
        if not self.user_id:
            raise ValueError("Actor.user_id must be non-empty")

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @classmethod
    def system(cls) -> "Actor":
        return cls(user_id="system", role=Role.ADMIN)
