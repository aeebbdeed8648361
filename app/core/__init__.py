"""Core utilities and security modules."""

from app.core.exceptions import (
    AppException,
    AuthenticationError,
    AuthorizationError,
    InvalidTransitionError,
    NotFoundError,
    TransactionNotFoundError,
    TransitionConflictError,
    TransitionError,
    UnauthorizedTransitionError,
    ValidationError,
)
from app.core.security import create_access_token, token_subject, verify_token

__all__ = [
    "AppException",
    "AuthenticationError",
    "AuthorizationError",
    "InvalidTransitionError",
    "NotFoundError",
    "TransactionNotFoundError",
    "TransitionConflictError",
    "TransitionError",
    "UnauthorizedTransitionError",
    "ValidationError",
    "create_access_token",
    "token_subject",
    "verify_token",
]
