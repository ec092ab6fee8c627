import logging
import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.models import AuditLog
from src.core.auth.schemas import Actor

logger = logging.getLogger(__name__)


class AuditAction(StrEnum):
    """Standard audit actions."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    APPROVE = "approve"
    REJECT = "reject"
    PAY = "pay"
    ALLOCATE = "allocate"
    RESET = "reset"


class AuditService:
    """
    Audit sink.

    Entries are added to the caller's session, so they commit or roll back
    together with the change they describe.
    """

    def __init__(self, db: AsyncSession):
        self.db = db

    async def log(
        self,
        actor: Actor,
        action: str | AuditAction,
        resource_type: str,
        resource_id: str,
        old_values: dict[str, Any] | None = None,
        new_values: dict[str, Any] | None = None,
        notes: str | None = None,
    ) -> AuditLog:
        """Create an audit log entry."""
        audit_log = AuditLog(
            code=f"AUD-{uuid.uuid4().hex[:20].upper()}",
            actor_code=actor.actor_code,
            actor_name=actor.actor_name,
            action=str(action),
            resource_type=resource_type,
            resource_id=resource_id,
            old_values=old_values,
            new_values=new_values,
            notes=notes,
        )

        self.db.add(audit_log)
        await self.db.flush()

        logger.info(
            "audit %s %s %s by %s", audit_log.action, resource_type, resource_id, actor.actor_code
        )
        return audit_log


async def list_audit_entries(
    session: AsyncSession,
    *,
    date_from: datetime | None = None,
    date_to: datetime | None = None,
    actor_code: str | None = None,
    resource_type: str | None = None,
    resource_id: str | None = None,
    action: str | None = None,
    page: int = 1,
    limit: int = 50,
) -> tuple[list[AuditLog], int]:
    """
    List audit log entries with optional filters, newest first.
    Returns (entries, total_count).
    """
    q = select(AuditLog).order_by(AuditLog.created_at.desc(), AuditLog.id.desc())
    count_q = select(func.count()).select_from(AuditLog)
    if date_from is not None:
        q = q.where(AuditLog.created_at >= date_from)
        count_q = count_q.where(AuditLog.created_at >= date_from)
    if date_to is not None:
        q = q.where(AuditLog.created_at <= date_to)
        count_q = count_q.where(AuditLog.created_at <= date_to)
    if actor_code is not None:
        q = q.where(AuditLog.actor_code == actor_code)
        count_q = count_q.where(AuditLog.actor_code == actor_code)
    if resource_type is not None:
        q = q.where(AuditLog.resource_type == resource_type)
        count_q = count_q.where(AuditLog.resource_type == resource_type)
    if resource_id is not None:
        q = q.where(AuditLog.resource_id == resource_id)
        count_q = count_q.where(AuditLog.resource_id == resource_id)
    if action is not None:
        q = q.where(AuditLog.action == action)
        count_q = count_q.where(AuditLog.action == action)

    total = (await session.execute(count_q)).scalar_one()

    q = q.offset((page - 1) * limit).limit(limit)
    result = await session.execute(q)
    return list(result.scalars().all()), total
