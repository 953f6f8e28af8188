"""Staff user models."""

import calendar
import hashlib
import secrets
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum


class Role(str, Enum):
    """Caller roles. Staff users hold one of the first three."""

    SUPER_ADMIN = "super-admin"
    ADMIN = "admin"
    COACH = "coach"
    CLIENT = "client"  # Gym member logged in with phone + client id


STAFF_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN, Role.COACH})
ADMIN_ROLES = frozenset({Role.SUPER_ADMIN, Role.ADMIN})

WEEKDAYS = tuple(calendar.day_name)  # Monday .. Sunday


def hash_reset_token(token: str) -> str:
    """Digest stored in place of a raw password-reset token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass
class DaysOffChange:
    """One entry of a coach's days-off audit log."""

    days_off: list[str]
    changed_by: int
    changed_at: datetime

    def to_dict(self) -> dict:
        return {
            "days_off": self.days_off,
            "changed_by": self.changed_by,
            "changed_at": self.changed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DaysOffChange":
        return cls(
            days_off=list(data.get("days_off", [])),
            changed_by=data["changed_by"],
            changed_at=datetime.fromisoformat(data["changed_at"]),
        )


@dataclass
class User:
    """A staff member: super-admin, admin or coach."""

    name: str
    phone: str
    role: Role
    user_id: str = ""  # Generated, e.g. CO89012
    password_hash: str = ""
    salary: float | None = None  # Required for coaches
    days_off: list[str] | None = None
    days_off_history: list[DaysOffChange] = field(default_factory=list)
    password_reset_token: str | None = None  # SHA-256 digest
    password_reset_expires: datetime | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_coach(self) -> bool:
        return self.role == Role.COACH

    def set_days_off(
        self, days_off: list[str], changed_by: int, now: datetime | None = None
    ) -> DaysOffChange:
        """Replace the days off and append the change to the history."""
        change = DaysOffChange(
            days_off=list(days_off),
            changed_by=changed_by,
            changed_at=now or datetime.now(),
        )
        self.days_off = list(days_off)
        self.days_off_history.append(change)
        return change

    def create_password_reset_token(
        self, ttl_seconds: int, now: datetime | None = None
    ) -> str:
        """Issue a reset token.

        Only the digest is kept on the user; the raw token is returned
        so it can be handed to the owner.
        """
        token = secrets.token_hex(32)
        self.password_reset_token = hash_reset_token(token)
        self.password_reset_expires = (now or datetime.now()) + timedelta(
            seconds=ttl_seconds
        )
        return token

    def clear_password_reset(self) -> None:
        self.password_reset_token = None
        self.password_reset_expires = None

    def to_dict(self) -> dict:
        """Public representation (no password or reset token)."""
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "role": self.role.value,
            "user_id": self.user_id,
            "salary": self.salary,
            "days_off": self.days_off,
            "days_off_history": [c.to_dict() for c in self.days_off_history],
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def to_summary(self, *fields: str) -> dict:
        """Reduced view used when a user is embedded in another document."""
        data = self.to_dict()
        return {"id": self.id, **{f: data[f] for f in fields}}

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> "User":
        expires = data.get("password_reset_expires")
        if isinstance(expires, str):
            expires = datetime.fromisoformat(expires)

        return cls(
            id=id,
            name=data["name"],
            phone=data["phone"],
            role=Role(data["role"]),
            user_id=data.get("user_id", ""),
            password_hash=data.get("password_hash", ""),
            salary=data.get("salary"),
            days_off=data.get("days_off"),
            days_off_history=[
                DaysOffChange.from_dict(c) for c in data.get("days_off_history", [])
            ],
            password_reset_token=data.get("password_reset_token"),
            password_reset_expires=expires,
            created_at=created_at,
            updated_at=updated_at,
        )
