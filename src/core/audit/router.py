"""Read-only access to the audit trail."""

from datetime import datetime

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.audit.schemas import AuditLogResponse
from src.core.audit.service import list_audit_entries
from src.core.auth import CurrentActor
from src.core.database.session import get_db
from src.shared.schemas.base import ApiResponse, PaginatedResponse

router = APIRouter(prefix="/audit-logs", tags=["Audit"])


@router.get("", response_model=ApiResponse[PaginatedResponse[AuditLogResponse]])
async def list_audit_logs(
    actor: CurrentActor,
    date_from: datetime | None = Query(None),
    date_to: datetime | None = Query(None),
    actor_code: str | None = Query(None),
    resource_type: str | None = Query(None),
    resource_id: str | None = Query(None),
    action: str | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(50, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
):
    """List audit entries (newest first)."""
    entries, total = await list_audit_entries(
        db,
        date_from=date_from,
        date_to=date_to,
        actor_code=actor_code,
        resource_type=resource_type,
        resource_id=resource_id,
        action=action,
        page=page,
        limit=limit,
    )
    return ApiResponse(
        success=True,
        data=PaginatedResponse.create(
            items=[AuditLogResponse.model_validate(e) for e in entries],
            total=total,
            page=page,
            limit=limit,
        ),
    )
