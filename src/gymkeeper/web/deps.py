"""Request-scoped dependencies: store handle, settings and the caller."""

from fastapi import Header, Request

from ..config import Settings
from ..db.repositories import Store
from ..errors import Unauthenticated
from ..models.user import Role
from ..security import TokenSigner
from ..services.policy import Caller


def get_store(request: Request) -> Store:
    """Get the store handle from app state."""
    return request.app.state.store


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tokens(request: Request) -> TokenSigner:
    return request.app.state.tokens


async def get_caller(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Caller:
    """Resolve the bearer token into a caller.

    Staff tokens resolve to the user's current role, so a role change
    takes effect without re-login. Client tokens resolve to the client
    record id.
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise Unauthenticated("You are not logged in. Please log in to get access.")

    claims = get_tokens(request).verify(authorization.removeprefix("Bearer ").strip())
    store = get_store(request)

    try:
        role = Role(claims.get("role"))
        subject = int(claims["sub"])
    except (ValueError, KeyError, TypeError):
        raise Unauthenticated("Invalid token. Please log in again.") from None

    if role == Role.CLIENT:
        if await store.clients.get(subject) is None:
            raise Unauthenticated("The client belonging to this token no longer exists.")
        return Caller(id=subject, role=Role.CLIENT)

    user = await store.users.get(subject)
    if user is None:
        raise Unauthenticated("The user belonging to this token no longer exists.")
    return Caller(id=user.id, role=user.role)
