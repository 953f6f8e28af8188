"""Database layer for gymkeeper."""

from .engine import get_db_path, init_db
from .repositories import (
    ClientRepository,
    PlanRepository,
    SessionRepository,
    Store,
    UserRepository,
)

__all__ = [
    "ClientRepository",
    "get_db_path",
    "init_db",
    "PlanRepository",
    "SessionRepository",
    "Store",
    "UserRepository",
]
