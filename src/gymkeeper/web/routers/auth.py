"""Authentication routes for staff and clients."""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status

from ...config import Settings
from ...db.repositories import Store
from ...errors import NotFound, Unauthenticated, Unauthorized, ValidationFailed
from ...models.user import Role, hash_reset_token
from ...security import TokenSigner, hash_password, verify_password
from ...services.policy import Caller
from ..deps import get_caller, get_settings, get_store, get_tokens
from ..responses import success
from ..schemas import (
    ClientLoginRequest,
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    UpdatePasswordRequest,
    UserCreate,
)
from ..serializers import expand_client
from .users import register_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/login")
async def login(
    body: LoginRequest,
    store: Store = Depends(get_store),
    tokens: TokenSigner = Depends(get_tokens),
):
    """Staff login with phone and password."""
    user = await store.users.get_by_phone(body.phone)
    if user is None or not verify_password(body.password, user.password_hash):
        raise Unauthenticated("Incorrect phone or password")

    logger.info(f"User {user.user_id} logged in")
    return success(token=tokens.issue(user.id, user.role.value), user=user.to_dict())


@router.post("/login-client")
async def login_client(
    body: ClientLoginRequest,
    store: Store = Depends(get_store),
    tokens: TokenSigner = Depends(get_tokens),
):
    """Client login with phone and the generated client id."""
    client = await store.clients.get_by_login(body.phone, body.client_id)
    if client is None:
        raise Unauthenticated("Incorrect phone or client ID")

    logger.info(f"Client {client.client_id} logged in")
    return success(
        token=tokens.issue(client.id, Role.CLIENT.value),
        client=await expand_client(store, client),
    )


@router.get("/me")
async def me(caller: Caller = Depends(get_caller), store: Store = Depends(get_store)):
    """The authenticated staff user or client."""
    if caller.role == Role.CLIENT:
        client = await store.clients.get(caller.id)
        return success(client=await expand_client(store, client))

    user = await store.users.get(caller.id)
    return success(user=user.to_dict())


@router.patch("/update-password")
async def update_password(
    body: UpdatePasswordRequest,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
    tokens: TokenSigner = Depends(get_tokens),
):
    """Change the caller's own password; a fresh token is returned."""
    if not caller.is_staff:
        raise Unauthorized("Clients do not have a password")

    user = await store.users.get(caller.id)
    if not verify_password(body.current_password, user.password_hash):
        raise Unauthenticated("Your current password is wrong")

    user.password_hash = hash_password(body.new_password, settings.bcrypt_rounds)
    await store.users.update(user)

    logger.info(f"User {user.user_id} changed their password")
    return success(token=tokens.issue(user.id, user.role.value), user=user.to_dict())


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(
    body: UserCreate,
    caller: Caller = Depends(get_caller),
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Create a staff account (administrators only)."""
    user = await register_user(store, settings, caller, body)
    return success(user=user.to_dict())


@router.post("/forgot-password")
async def forgot_password(
    body: ForgotPasswordRequest,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """Issue a short-lived password-reset token for a staff phone number.

    Only the token's digest is stored. There is no delivery channel, so the
    raw token goes to the service log; it is returned in the response only
    when ``expose_reset_token`` is enabled.
    """
    user = await store.users.get_by_phone(body.phone)
    if user is None:
        raise NotFound("There is no user with that phone number")

    token = user.create_password_reset_token(settings.reset_ttl)
    await store.users.update(user)

    logger.info(f"Password reset token for {user.user_id}: {token}")
    expires_at = user.password_reset_expires.isoformat()
    if settings.expose_reset_token:
        return success(reset_token=token, expires_at=expires_at)
    return success(message="Reset token issued", expires_at=expires_at)


@router.patch("/reset-password")
async def reset_password(
    body: ResetPasswordRequest,
    store: Store = Depends(get_store),
    settings: Settings = Depends(get_settings),
    tokens: TokenSigner = Depends(get_tokens),
):
    """Set a new password using a reset token."""
    user = await store.users.get_by_reset_token(
        hash_reset_token(body.token), datetime.now()
    )
    if user is None:
        raise ValidationFailed("Token is invalid or has expired")

    user.password_hash = hash_password(body.new_password, settings.bcrypt_rounds)
    user.clear_password_reset()
    await store.users.update(user)

    logger.info(f"Password for {user.user_id} reset with a token")
    return success(token=tokens.issue(user.id, user.role.value), user=user.to_dict())
