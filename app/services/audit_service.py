"""Audit trail service."""

from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.models.admin import AuditLog


class AuditService:
    """Service for append-only audit logging."""

    def build_entry(
        self,
        actor_id: str,
        action: str,
        resource_type: str,
        resource_id: UUID | str,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Serializable audit entry, suitable for the retry queue."""
        return {
            "actor_id": str(actor_id),
            "action": action,
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "old_values": old_values,
            "new_values": new_values,
        }

    async def append(self, db: AsyncSession, entry: dict[str, Any]) -> AuditLog:
        """Append an audit entry (immutable once written).

        Args:
            db: Database session
            entry: Entry produced by ``build_entry``

        Returns:
            Created audit log entry
        """
        audit = AuditLog(
            actor_id=entry["actor_id"],
            action=entry["action"],
            resource_type=entry["resource_type"],
            resource_id=UUID(str(entry["resource_id"])),
            old_values=entry.get("old_values"),
            new_values=entry.get("new_values"),
        )
        db.add(audit)
        await db.flush()
        return audit

    def status_change_entry(
        self,
        actor_id: str,
        action: str,
        resource_type: str,
        resource_id: UUID,
        old_status: str,
        new_status: str,
        reason: str | None = None,
        notes: str | None = None,
    ) -> dict[str, Any]:
        """Entry for a status change."""
        new_values: dict[str, Any] = {"status": new_status}
        if reason:
            new_values["reason"] = reason
        if notes:
            new_values["notes"] = notes

        return self.build_entry(
            actor_id=actor_id,
            action=action,
            resource_type=resource_type,
            resource_id=resource_id,
            old_values={"status": old_status},
            new_values=new_values,
        )


audit_service = AuditService()
