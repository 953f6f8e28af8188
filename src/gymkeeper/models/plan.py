"""Subscription plan catalog model."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class PlanType(str, Enum):
    MAIN = "main"  # Gym membership with a duration
    PRIVATE = "private"  # Bundle of coached sessions


@dataclass
class SubscriptionPlan:
    """A catalog entry clients can purchase."""

    name: str
    type: PlanType
    price: float
    duration_days: int | None = None  # Main plans only
    total_sessions: int = 0  # Private plans only
    description: str = ""
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.type.value,
            "price": self.price,
            "duration_days": self.duration_days,
            "total_sessions": self.total_sessions,
            "description": self.description,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    @classmethod
    def from_dict(
        cls,
        data: dict,
        id: int | None = None,
        created_at: datetime | None = None,
        updated_at: datetime | None = None,
    ) -> "SubscriptionPlan":
        return cls(
            id=id,
            name=data["name"],
            type=PlanType(data["type"]),
            price=data["price"],
            duration_days=data.get("duration_days"),
            total_sessions=data.get("total_sessions") or 0,
            description=data.get("description") or "",
            created_at=created_at,
            updated_at=updated_at,
        )
