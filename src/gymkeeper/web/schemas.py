"""Request bodies accepted by the API."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from ..models.plan import PlanType
from ..models.session import SessionStatus
from ..models.user import STAFF_ROLES, Role

Weekday = Literal[
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"
]


# Auth

class LoginRequest(BaseModel):
    phone: str
    password: str


class ClientLoginRequest(BaseModel):
    phone: str
    client_id: str


class UpdatePasswordRequest(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6)


class AdminResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=6)


class ForgotPasswordRequest(BaseModel):
    phone: str


class ResetPasswordRequest(BaseModel):
    token: str
    new_password: str = Field(..., min_length=6)


# Users

class UserCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=3)
    password: str = Field(..., min_length=6)
    role: Role
    salary: float | None = Field(None, ge=0)
    days_off: list[Weekday] | None = None

    @field_validator("role")
    @classmethod
    def staff_role(cls, role: Role | None) -> Role | None:
        if role is not None and role not in STAFF_ROLES:
            raise ValueError("role must be one of super-admin, admin, coach")
        return role

    @model_validator(mode="after")
    def coach_needs_salary(self):
        if self.role == Role.COACH and self.salary is None:
            raise ValueError("salary is required for coaches")
        return self


class UserUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    phone: str | None = Field(None, min_length=3)
    role: Role | None = None
    salary: float | None = Field(None, ge=0)
    days_off: list[Weekday] | None = None

    @field_validator("role")
    @classmethod
    def staff_role(cls, role: Role | None) -> Role | None:
        if role is not None and role not in STAFF_ROLES:
            raise ValueError("role must be one of super-admin, admin, coach")
        return role


class DaysOffUpdate(BaseModel):
    days_off: list[Weekday]


# Subscription plans

class PlanCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: PlanType
    price: float = Field(..., ge=0)
    duration_days: int | None = Field(None, gt=0)
    total_sessions: int = Field(0, ge=0)
    description: str = ""

    @model_validator(mode="after")
    def main_needs_duration(self):
        if self.type == PlanType.MAIN and self.duration_days is None:
            raise ValueError("duration_days is required for main plans")
        return self


class PlanUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    type: PlanType | None = None
    price: float | None = Field(None, ge=0)
    duration_days: int | None = Field(None, gt=0)
    total_sessions: int | None = Field(None, ge=0)
    description: str | None = None


# Clients

class SubscriptionIn(BaseModel):
    plan: int
    start_date: date
    end_date: date
    price_at_purchase: float | None = None  # Ignored; the server snapshots the price

    @model_validator(mode="after")
    def end_after_start(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class SubscriptionPatch(BaseModel):
    plan: int | None = None
    start_date: date | None = None
    end_date: date | None = None
    price_at_purchase: float | None = None  # Ignored


class PrivatePlanIn(BaseModel):
    plan: int | None = None
    coach: int | None = None
    total_sessions: int | None = Field(None, ge=0)
    price_at_purchase: float | None = None  # Ignored


class ClientCreate(BaseModel):
    name: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=3)
    national_id: str = Field(..., min_length=1)
    subscription: SubscriptionIn
    private_plan: PrivatePlanIn | None = None
    client_id: str | None = None  # Ignored; generated


class ClientUpdate(BaseModel):
    name: str | None = Field(None, min_length=1)
    phone: str | None = Field(None, min_length=3)
    national_id: str | None = Field(None, min_length=1)
    subscription: SubscriptionPatch | None = None
    private_plan: PrivatePlanIn | None = None
    client_id: str | None = None  # Stripped; immutable after creation


# Sessions

class SessionCreate(BaseModel):
    client: int
    coach: int
    date: datetime
    status: SessionStatus = SessionStatus.PENDING
    notes: str = ""


class SessionUpdate(BaseModel):
    client: int | None = None
    coach: int | None = None
    date: datetime | None = None
    status: SessionStatus | None = None
    notes: str | None = None
    reason: str | None = None


class SessionStatusUpdate(BaseModel):
    status: SessionStatus
    reason: str | None = None
