"""Gym member models."""

from dataclasses import dataclass, field
from datetime import date, datetime


def _to_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


@dataclass
class Subscription:
    """The main membership embedded in a client.

    ``price_at_purchase`` is a snapshot of the plan price taken when the
    plan was assigned; later catalog price changes do not touch it.
    """

    plan: int
    start_date: date
    end_date: date
    price_at_purchase: float | None = None

    def to_dict(self) -> dict:
        return {
            "plan": self.plan,
            "price_at_purchase": self.price_at_purchase,
            "start_date": self.start_date.isoformat(),
            "end_date": self.end_date.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Subscription":
        return cls(
            plan=data["plan"],
            start_date=_to_date(data["start_date"]),
            end_date=_to_date(data["end_date"]),
            price_at_purchase=data.get("price_at_purchase"),
        )


@dataclass
class PrivatePlan:
    """Optional coached-sessions bundle embedded in a client."""

    plan: int | None = None
    coach: int | None = None  # User id of a coach
    total_sessions: int | None = None
    sessions: list[int] = field(default_factory=list)
    price_at_purchase: float | None = None

    def to_dict(self) -> dict:
        return {
            "plan": self.plan,
            "coach": self.coach,
            "total_sessions": self.total_sessions,
            "sessions": list(self.sessions),
            "price_at_purchase": self.price_at_purchase,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "PrivatePlan":
        return cls(
            plan=data.get("plan"),
            coach=data.get("coach"),
            total_sessions=data.get("total_sessions"),
            sessions=list(data.get("sessions") or []),
            price_at_purchase=data.get("price_at_purchase"),
        )


@dataclass
class Client:
    """A gym member."""

    name: str
    phone: str
    national_id: str
    subscription: Subscription
    client_id: str = ""  # Generated, e.g. CL12345
    private_plan: PrivatePlan | None = None
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_coached_by(self, user_id: int) -> bool:
        return self.private_plan is not None and self.private_plan.coach == user_id

    def references_plan(self, plan_id: int) -> bool:
        if self.subscription.plan == plan_id:
            return True
        return self.private_plan is not None and self.private_plan.plan == plan_id

    def remaining_sessions(self, completed_sessions: int) -> int:
        """Sessions left on the private plan.

        Zero without a private plan or a session total. The result is not
        clamped: an over-booked plan reports a negative number.
        """
        if self.private_plan is None or not self.private_plan.total_sessions:
            return 0
        return self.private_plan.total_sessions - completed_sessions

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "national_id": self.national_id,
            "client_id": self.client_id,
            "subscription": self.subscription.to_dict(),
            "private_plan": self.private_plan.to_dict() if self.private_plan else None,
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
    ) -> "Client":
        private_plan = None
        if data.get("private_plan"):
            private_plan = PrivatePlan.from_dict(data["private_plan"])

        return cls(
            id=id,
            name=data["name"],
            phone=data["phone"],
            national_id=data["national_id"],
            client_id=data.get("client_id", ""),
            subscription=Subscription.from_dict(data["subscription"]),
            private_plan=private_plan,
            created_at=created_at,
            updated_at=updated_at,
        )
