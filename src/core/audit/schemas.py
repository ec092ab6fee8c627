from datetime import datetime
from typing import Any

from src.shared.schemas import BaseSchema


class AuditLogResponse(BaseSchema):
    """Audit log entry."""

    code: str
    actor_code: str
    actor_name: str
    action: str
    resource_type: str
    resource_id: str
    old_values: dict[str, Any] | None
    new_values: dict[str, Any] | None
    notes: str | None
    created_at: datetime
