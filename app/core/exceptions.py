"""Custom application exceptions."""

from typing import Any

from fastapi import HTTPException, status


class AppException(HTTPException):
    """Base application exception."""

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail: str = "An unexpected error occurred",
        headers: dict[str, str] | None = None,
    ) -> None:
        super().__init__(status_code=status_code, detail=detail, headers=headers)


class ValidationError(AppException):
    """Validation error exception."""

    def __init__(self, detail: str = "Validation failed", errors: list[dict[str, Any]] | None = None) -> None:
        self.errors = errors
        super().__init__(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=detail)


class NotFoundError(AppException):
    """Resource not found exception."""

    def __init__(self, resource: str = "Resource", identifier: str | None = None) -> None:
        detail = f"{resource} not found"
        if identifier:
            detail = f"{resource} with ID '{identifier}' not found"
        super().__init__(status_code=status.HTTP_404_NOT_FOUND, detail=detail)


class AuthenticationError(AppException):
    """Authentication failed exception."""

    def __init__(self, detail: str = "Authentication failed") -> None:
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(AppException):
    """Authorization denied exception."""

    def __init__(self, detail: str = "You don't have permission to access this resource") -> None:
        super().__init__(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


class InvalidTransactionStatus(AppException):
    """Operation not allowed for the transaction's current status."""

    def __init__(self, detail: str = "This operation is not allowed for the current transaction status") -> None:
        super().__init__(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


# ============ Transaction lifecycle ============


class TransitionError(AppException):
    """Base for failures of a status transition request.

    Rendered as ``{"success": false, "error": <code>, "message": ...}``
    by the handler registered in ``app.main``.
    """

    error_code: str = "TRANSITION_ERROR"

    def __init__(self, status_code: int, message: str) -> None:
        self.message = message
        super().__init__(status_code=status_code, detail=message)

    def to_payload(self) -> dict[str, Any]:
        return {"success": False, "error": self.error_code, "message": self.message}


class TransactionNotFoundError(TransitionError):
    """The transaction id does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, resource: str, identifier: str) -> None:
        self.resource = resource
        self.identifier = identifier
        super().__init__(
            status.HTTP_404_NOT_FOUND,
            f"{resource} with ID '{identifier}' not found",
        )


class InvalidTransitionError(TransitionError):
    """Target status is not reachable from the current status."""

    error_code = "INVALID_TRANSITION"

    def __init__(
        self,
        current_status: str,
        target_status: str,
        allowed_transitions: list[str],
    ) -> None:
        self.current_status = current_status
        self.target_status = target_status
        self.allowed_transitions = allowed_transitions
        super().__init__(
            status.HTTP_400_BAD_REQUEST,
            f"Cannot transition from {current_status} to {target_status}",
        )

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["allowedTransitions"] = list(self.allowed_transitions)
        return payload


class UnauthorizedTransitionError(TransitionError):
    """The acting party may not perform this transition."""

    error_code = "UNAUTHORIZED_TRANSITION"

    def __init__(self, actor_role: str, target_status: str, message: str | None = None) -> None:
        self.actor_role = actor_role
        self.target_status = target_status
        super().__init__(
            status.HTTP_403_FORBIDDEN,
            message or f"Role '{actor_role}' cannot move this transaction to {target_status}",
        )


class TransitionConflictError(TransitionError):
    """The transaction changed underneath the request."""

    error_code = "CONFLICT"

    def __init__(self, transaction_id: str, expected_status: str) -> None:
        self.transaction_id = transaction_id
        self.expected_status = expected_status
        super().__init__(
            status.HTTP_409_CONFLICT,
            f"Transaction {transaction_id} was modified concurrently (expected status {expected_status})",
        )
