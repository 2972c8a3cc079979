from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class AuditEvent(BaseModel):
    timestamp: datetime
    event_type: str
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None
    module: Optional[str] = None
    status: str = "success"
    details: dict[str, Any] = Field(default_factory=dict)
