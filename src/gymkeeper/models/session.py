"""Training session model and its status lifecycle."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

DEFAULT_STATUS_REASON = "Status updated"


class SessionStatus(str, Enum):
    """Session status. ``pending`` is initial; the other two are terminal."""

    PENDING = "pending"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self != SessionStatus.PENDING


def completion_reason(role: str) -> str:
    """Default reason recorded when a participant completes a session."""
    return f"Marked as completed by {role}"


@dataclass
class StatusChange:
    """One entry of a session's status audit log."""

    status: SessionStatus
    changed_by: int
    changed_at: datetime
    reason: str = DEFAULT_STATUS_REASON

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "changed_by": self.changed_by,
            "changed_at": self.changed_at.isoformat(),
            "reason": self.reason,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "StatusChange":
        return cls(
            status=SessionStatus(data["status"]),
            changed_by=data["changed_by"],
            changed_at=datetime.fromisoformat(data["changed_at"]),
            reason=data.get("reason") or DEFAULT_STATUS_REASON,
        )


@dataclass
class TrainingSession:
    """A scheduled or completed engagement between a coach and a client.

    ``status_change_history`` is append-only: entries are added by
    :meth:`set_status` and never rewritten or removed.
    """

    client: int  # Client id
    coach: int  # User id
    date: datetime
    status: SessionStatus = SessionStatus.PENDING
    notes: str = ""
    status_change_history: list[StatusChange] = field(default_factory=list)
    id: int | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def set_status(
        self,
        new_status: SessionStatus,
        changed_by: int,
        reason: str | None = None,
        now: datetime | None = None,
    ) -> StatusChange:
        """Move to ``new_status`` and record the transition.

        Args:
            new_status: Target status
            changed_by: Id of the acting user or client
            reason: Free-text reason; defaults to "Status updated"
            now: Timestamp override

        Returns:
            The appended history entry
        """
        change = StatusChange(
            status=SessionStatus(new_status),
            changed_by=changed_by,
            changed_at=now or datetime.now(),
            reason=reason or DEFAULT_STATUS_REASON,
        )
        self.status = change.status
        self.status_change_history.append(change)
        return change

    def involves(self, coach_id: int | None = None, client_id: int | None = None) -> bool:
        """Whether the given coach or client takes part in this session."""
        if coach_id is not None and self.coach == coach_id:
            return True
        return client_id is not None and self.client == client_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "client": self.client,
            "coach": self.coach,
            "date": self.date.isoformat(),
            "status": self.status.value,
            "notes": self.notes,
            "status_change_history": [c.to_dict() for c in self.status_change_history],
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
    ) -> "TrainingSession":
        session_date = data["date"]
        if isinstance(session_date, str):
            session_date = datetime.fromisoformat(session_date)

        return cls(
            id=id,
            client=data["client"],
            coach=data["coach"],
            date=session_date,
            status=SessionStatus(data.get("status", "pending")),
            notes=data.get("notes") or "",
            status_change_history=[
                StatusChange.from_dict(c) for c in data.get("status_change_history", [])
            ],
            created_at=created_at,
            updated_at=updated_at,
        )
