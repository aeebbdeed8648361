"""Transition executor for booking and sale transactions.

A transition is validated against the domain's table, authorized against the
actor's derived role, written with a single conditional UPDATE keyed on the
status that was read, and committed. Notification, audit and analytics work
then runs as post-commit hooks; a failing hook is logged and never fails the
transition.
"""

import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import settings
from app.core.exceptions import (
    TransactionNotFoundError,
    TransitionConflictError,
    UnauthorizedTransitionError,
)
from app.domain.authorization import (
    authorize,
    derive_role,
    describe_allowed_roles,
    notification_recipients,
)
from app.domain.booking_state import (
    BOOKING_NOTIFICATION_MESSAGES,
    BOOKING_NOTIFICATION_TITLE,
    BOOKING_NOTIFICATION_TYPE,
    booking_transition_fields,
)
from app.domain.sale_state import (
    SALE_NOTIFICATION_MESSAGES,
    SALE_NOTIFICATION_TITLE,
    SALE_NOTIFICATION_TYPE,
    sale_transition_fields,
)
from app.domain.transaction import ActorRole, TransactionDomain, TransitionPayload
from app.domain.transitions import assert_transition
from app.services.analytics_service import AnalyticsService, analytics_service
from app.services.audit_service import AuditService, audit_service
from app.services.notification_service import NotificationService, notification_service
from app.services.transaction_repository import (
    TransactionRepository,
    booking_repository,
    sale_repository,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TransitionEvent:
    """A committed status change, handed to post-commit hooks."""

    domain: TransactionDomain
    resource_type: str
    transaction: Any
    transaction_id: UUID
    listing_id: UUID | None
    previous_status: str
    current_status: str
    actor_id: str
    actor_role: ActorRole
    payload: TransitionPayload
    occurred_at: datetime


@dataclass(frozen=True)
class TransitionResult:
    id: UUID
    previous_status: str
    current_status: str
    updated_at: datetime
    transaction: Any


# ==================== POST-COMMIT HOOKS ====================


class PostCommitHook:
    """Side effect run after a transition has been committed."""

    name = "hook"

    async def run(self, db: AsyncSession, event: TransitionEvent) -> None:
        raise NotImplementedError

    async def on_failure(self, event: TransitionEvent, exc: Exception) -> None:
        """Called when ``run`` raised or its work was lost with the final commit.

        Default: nothing beyond the error log.
        """


NOTIFICATION_TEMPLATES = {
    TransactionDomain.BOOKING: (
        BOOKING_NOTIFICATION_TITLE,
        BOOKING_NOTIFICATION_TYPE,
        BOOKING_NOTIFICATION_MESSAGES,
    ),
    TransactionDomain.SALE: (
        SALE_NOTIFICATION_TITLE,
        SALE_NOTIFICATION_TYPE,
        SALE_NOTIFICATION_MESSAGES,
    ),
}


class NotificationHook(PostCommitHook):
    """Tell the counterparty (or both parties) about the new status."""

    name = "notification"

    def __init__(self, service: NotificationService = notification_service) -> None:
        self.service = service

    async def run(self, db: AsyncSession, event: TransitionEvent) -> None:
        title, notification_type, messages = NOTIFICATION_TEMPLATES[event.domain]
        body = messages.get(event.current_status)
        if body is None:
            return

        related = (
            {"booking_id": event.transaction_id}
            if event.domain is TransactionDomain.BOOKING
            else {"sale_transaction_id": event.transaction_id}
        )
        for user_id in notification_recipients(event.domain, event.transaction, event.actor_role):
            await self.service.create_notification(
                db=db,
                user_id=user_id,
                title=title,
                body=body,
                notification_type=notification_type,
                **related,
            )


def enqueue_audit_retry_task(entry: dict[str, Any]) -> None:
    from app.tasks import append_audit_entry

    append_audit_entry.apply_async(
        args=[entry],
        countdown=settings.audit_retry_delay_seconds,
    )


def queue_audit_retry(
    entry: dict[str, Any],
    enqueue: Callable[[dict[str, Any]], None] = enqueue_audit_retry_task,
) -> bool:
    """Hand a failed audit append to the retry queue. Never raises."""
    try:
        enqueue(entry)
    except Exception:
        logger.exception(f"AUDIT_ENTRY_LOST: could not queue audit retry entry={entry}")
        return False
    logger.warning(
        f"Audit entry queued for retry: {entry['resource_type']} {entry['resource_id']} "
        f"action={entry['action']}"
    )
    return True


class AuditHook(PostCommitHook):
    """Append the audit entry; hand it to the retry queue if that fails."""

    name = "audit"

    def __init__(
        self,
        service: AuditService = audit_service,
        enqueue_retry: Callable[[dict[str, Any]], None] = enqueue_audit_retry_task,
    ) -> None:
        self.service = service
        self.enqueue_retry = enqueue_retry

    def entry_for(self, event: TransitionEvent) -> dict[str, Any]:
        return self.service.status_change_entry(
            actor_id=event.actor_id,
            action=f"{event.domain.value}_status_changed",
            resource_type=event.resource_type,
            resource_id=event.transaction_id,
            old_status=event.previous_status,
            new_status=event.current_status,
            reason=event.payload.reason,
            notes=event.payload.notes,
        )

    async def run(self, db: AsyncSession, event: TransitionEvent) -> None:
        await self.service.append(db, self.entry_for(event))

    async def on_failure(self, event: TransitionEvent, exc: Exception) -> None:
        queue_audit_retry(self.entry_for(event), self.enqueue_retry)


class AnalyticsHook(PostCommitHook):
    name = "analytics"

    def __init__(self, service: AnalyticsService = analytics_service) -> None:
        self.service = service

    async def run(self, db: AsyncSession, event: TransitionEvent) -> None:
        related = (
            {"booking_id": event.transaction_id}
            if event.domain is TransactionDomain.BOOKING
            else {"sale_transaction_id": event.transaction_id}
        )
        await self.service.record(
            db,
            event_type=f"{event.domain.value}_status_changed",
            actor_id=event.actor_id,
            listing_id=event.listing_id,
            properties={
                "fromStatus": event.previous_status,
                "toStatus": event.current_status,
                "actorRole": event.actor_role.value,
                "reason": event.payload.reason,
            },
            **related,
        )


def default_hooks() -> list[PostCommitHook]:
    return [NotificationHook(), AuditHook(), AnalyticsHook()]


# ==================== EXECUTOR ====================


class TransitionExecutor:
    """Applies status transitions for one transaction domain."""

    def __init__(
        self,
        repository: TransactionRepository,
        hooks: Sequence[PostCommitHook] | None = None,
        conflict_retries: int | None = None,
        commission_percent: Decimal | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.repository = repository
        self.domain = repository.domain
        self.hooks = list(default_hooks() if hooks is None else hooks)
        self.conflict_retries = (
            settings.transition_conflict_retries if conflict_retries is None else conflict_retries
        )
        self.commission_percent = (
            settings.sale_commission_percent if commission_percent is None else commission_percent
        )
        self.clock = clock or (lambda: datetime.now(UTC))

    def build_fields(
        self,
        transaction: Any,
        to_state: str,
        actor_role: ActorRole,
        payload: TransitionPayload,
        now: datetime,
    ) -> dict[str, Any]:
        """``status`` plus the columns the target state writes."""
        if self.domain is TransactionDomain.BOOKING:
            fields = booking_transition_fields(to_state, actor_role, payload, now)
        else:
            fields = sale_transition_fields(
                transaction, to_state, actor_role, payload, now, self.commission_percent
            )
        return {"status": to_state, **fields}

    async def _load(self, db: AsyncSession, transaction_id: UUID) -> Any:
        transaction = await self.repository.find_by_id(db, transaction_id)
        if transaction is None:
            raise TransactionNotFoundError(self.repository.resource_name, str(transaction_id))
        return transaction

    async def apply_transition(
        self,
        db: AsyncSession,
        transaction_id: UUID,
        to_state: str,
        actor_id: str | UUID,
        payload: TransitionPayload | None = None,
        is_admin: bool = False,
    ) -> TransitionResult:
        """Move a transaction to ``to_state`` on behalf of ``actor_id``.

        Raises:
            TransactionNotFoundError: unknown id
            InvalidTransitionError: edge not in the table (carries allowed targets)
            UnauthorizedTransitionError: derived role may not take the edge
            TransitionConflictError: the row kept changing underneath us
        """
        payload = payload or TransitionPayload()
        to_state = getattr(to_state, "value", to_state)
        actor = str(actor_id)
        attempt = 0

        while True:
            transaction = await self._load(db, transaction_id)
            from_state = transaction.status
            role = derive_role(self.domain, transaction, actor, is_admin=is_admin)

            assert_transition(self.domain, from_state, to_state, role)
            if not authorize(self.domain, to_state, role):
                raise UnauthorizedTransitionError(
                    actor_role=role.value,
                    target_status=to_state,
                    message=(
                        f"Only {describe_allowed_roles(self.domain, to_state)} "
                        f"can make this transition"
                    ),
                )

            now = self.clock()
            fields = self.build_fields(transaction, to_state, role, payload, now)
            updated = await self.repository.update_if_status(
                db, transaction_id, from_state, fields, append_note=payload.notes, now=now
            )
            if updated is not None:
                break

            if attempt >= self.conflict_retries:
                await db.rollback()
                raise TransitionConflictError(str(transaction_id), from_state)
            attempt += 1
            logger.warning(
                f"Conflicting update on {self.repository.resource_type} {transaction_id} "
                f"(read status {from_state}); re-validating, attempt {attempt}"
            )

        await db.commit()

        event = TransitionEvent(
            domain=self.domain,
            resource_type=self.repository.resource_type,
            transaction=updated,
            transaction_id=updated.id,
            listing_id=getattr(updated, "listing_id", None),
            previous_status=from_state,
            current_status=updated.status,
            actor_id=actor,
            actor_role=role,
            payload=payload,
            occurred_at=now,
        )
        result = TransitionResult(
            id=updated.id,
            previous_status=from_state,
            current_status=updated.status,
            updated_at=updated.updated_at,
            transaction=updated,
        )
        await self.run_hooks(db, event)
        return result

    async def run_hooks(self, db: AsyncSession, event: TransitionEvent) -> None:
        """Run every hook in its own savepoint; failures are logged, not raised."""
        context = (
            f"{event.resource_type} {event.transaction_id} "
            f"({event.previous_status} -> {event.current_status})"
        )
        succeeded = []
        for hook in self.hooks:
            exc = await run_side_effect(db, hook.name, context, lambda hook=hook: hook.run(db, event))
            if exc is None:
                succeeded.append(hook)
            else:
                await self._handle_failure(hook, event, exc, context)

        exc = await commit_side_effects(db, context)
        if exc is not None:
            # The savepoints of the hooks that ran were rolled back with the commit
            for hook in succeeded:
                await self._handle_failure(hook, event, exc, context)

    @staticmethod
    async def _handle_failure(
        hook: PostCommitHook, event: TransitionEvent, exc: Exception, context: str
    ) -> None:
        try:
            await hook.on_failure(event, exc)
        except Exception:
            logger.exception(f"Failure handler of hook '{hook.name}' raised for {context}")


async def run_side_effect(
    db: AsyncSession,
    name: str,
    context: str,
    action: Callable[[], Awaitable[Any]],
) -> Exception | None:
    """Run ``action`` inside a savepoint. Returns the error instead of raising it."""
    try:
        async with db.begin_nested():
            await action()
    except Exception as exc:
        logger.exception(f"Post-commit hook '{name}' failed for {context}")
        return exc
    return None


async def commit_side_effects(db: AsyncSession, context: str) -> Exception | None:
    """Commit hook work. Returns the error instead of raising it."""
    try:
        await db.commit()
    except Exception as exc:
        logger.exception(f"Could not commit side effects for {context}")
        try:
            await db.rollback()
        except Exception:
            logger.exception(f"Rollback after failed side-effect commit raised for {context}")
        return exc
    return None


def build_booking_executor(hooks: Sequence[PostCommitHook] | None = None) -> TransitionExecutor:
    return TransitionExecutor(booking_repository, hooks=hooks)


def build_sale_executor(hooks: Sequence[PostCommitHook] | None = None) -> TransitionExecutor:
    return TransitionExecutor(sale_repository, hooks=hooks)
