"""Request dependencies: session, caller identity and transition executors."""

import secrets
from typing import Annotated

from fastapi import Depends, Header
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import AuthenticationError, AuthorizationError, UnauthorizedTransitionError
from app.core.security import token_subject
from app.database import get_db
from app.models.user import User
from app.services.transition_service import (
    TransitionExecutor,
    build_booking_executor,
    build_sale_executor,
)

bearer_scheme = HTTPBearer()

DbSession = Annotated[AsyncSession, Depends(get_db)]


async def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    db: DbSession,
) -> User:
    """Resolve the bearer token to a stored user."""
    user = await db.get(User, token_subject(credentials.credentials))
    if user is None:
        raise AuthenticationError("User not found")
    return user


async def get_current_active_user(
    current_user: Annotated[User, Depends(get_current_user)],
) -> User:
    if not current_user.is_active:
        raise AuthorizationError("User account is deactivated")
    return current_user


CurrentUser = Annotated[User, Depends(get_current_active_user)]


async def verify_internal_key(
    x_internal_key: Annotated[str | None, Header()] = None,
) -> None:
    """Gate for callers allowed to act as the system actor."""
    if not x_internal_key or not secrets.compare_digest(x_internal_key, settings.internal_api_key):
        raise AuthenticationError("Invalid internal API key")


def get_booking_executor() -> TransitionExecutor:
    return build_booking_executor()


def get_sale_executor() -> TransitionExecutor:
    return build_sale_executor()


BookingExecutor = Annotated[TransitionExecutor, Depends(get_booking_executor)]
SaleExecutor = Annotated[TransitionExecutor, Depends(get_sale_executor)]


def ensure_actor_matches(actor_id: str | None, target_status: str, current_user: User) -> None:
    """A caller may only act as themselves; ``system`` is never accepted here."""
    if actor_id is not None and actor_id != str(current_user.id):
        raise UnauthorizedTransitionError(
            actor_role="outsider",
            target_status=target_status,
            message="actorId does not match the authenticated user",
        )
