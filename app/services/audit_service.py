from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from threading import RLock
from typing import Any, Optional

from app.core.config import settings
from app.models.audit import AuditEvent


logger = logging.getLogger(__name__)


class AuditLogger:
    def __init__(self, log_path: Path | None = None) -> None:
        self.log_path = log_path or settings.audit_log_path
        self.log_path.parent.mkdir(parents=True, exist_ok=True)
        self.lock = RLock()

    def log_event(
        self,
        event_type: str,
        actor_id: Optional[str],
        actor_role: Optional[str],
        module: Optional[str] = None,
        status: str = "success",
        details: dict[str, Any] | None = None,
    ) -> None:
        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type,
            "actor_id": actor_id,
            "actor_role": actor_role,
            "module": module,
            "status": status,
            "details": details or {},
        }
        line = json.dumps(payload, default=str)
        with self.lock:
            with self.log_path.open("a", encoding="utf-8") as f:
                f.write(line + "\n")

    def log_denied(
        self,
        actor_id: Optional[str],
        actor_role: Optional[str],
        module: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        logger.info("Access denied for %s (%s) on %s", actor_id, actor_role, module)
        self.log_event(
            event_type="access_denied",
            actor_id=actor_id,
            actor_role=actor_role,
            module=module,
            status="denied",
            details=details,
        )

    def read_events(self) -> list[dict[str, Any]]:
        if not self.log_path.exists():
            return []

        with self.lock:
            lines = self.log_path.read_text(encoding="utf-8").splitlines()

        events: list[dict[str, Any]] = []
        for raw in lines:
            if not raw.strip():
                continue
            try:
                events.append(json.loads(raw))
            except json.JSONDecodeError:
                logger.warning("Skipping unreadable audit line")
                continue
        return events

    def query(
        self,
        user_id: Optional[str] = None,
        actor_role: Optional[str] = None,
        event_type: Optional[str] = None,
        module: Optional[str] = None,
        status: Optional[str] = None,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Newest-first events matching every filter that is set."""
        filters = {
            "actor_id": user_id,
            "actor_role": actor_role,
            "event_type": event_type,
            "module": module,
            "status": status,
        }
        matched: list[AuditEvent] = []
        for event in reversed(self.read_events()):
            if any(value is not None and event.get(key) != value for key, value in filters.items()):
                continue
            matched.append(AuditEvent.model_validate(event))
            if len(matched) >= limit:
                break
        return matched
