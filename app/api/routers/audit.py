from typing import Optional

from fastapi import APIRouter, Depends, Query

from app.api.deps import require_permission
from app.models.access import AccessContext
from app.models.audit import AuditEvent
from app.services.container import audit_logger


router = APIRouter(prefix="/audit", tags=["Audit Log"])


@router.get("/events", response_model=list[AuditEvent])
def list_audit_events(
    user_id: Optional[str] = None,
    actor_role: Optional[str] = None,
    event_type: Optional[str] = None,
    module: Optional[str] = None,
    status: Optional[str] = None,
    limit: int = Query(default=100, ge=1, le=1000),
    context: AccessContext = Depends(require_permission("audit-log:view")),
) -> list[AuditEvent]:
    _ = context
    return audit_logger.query(
        user_id=user_id,
        actor_role=actor_role,
        event_type=event_type,
        module=module,
        status=status,
        limit=limit,
    )
