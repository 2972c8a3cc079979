from __future__ import annotations

from typing import Any, Optional

from fastapi import HTTPException

from app.core.rbac import PERMISSION_CATALOG, Role, TeamRole
from app.models.access import (
    OverrideUpsert,
    PermissionOverride,
    Principal,
    TeamMembership,
    TeamMembershipCreate,
)
from app.repositories.data_store import DataStore, utcnow
from app.services.audit_service import AuditLogger


DEMO_TEAMS: list[dict[str, str]] = [
    {"team_id": "t1", "user_id": "u-tl-1", "role": TeamRole.LEAD},
    {"team_id": "t1", "user_id": "u-emp-1", "role": TeamRole.MEMBER},
    {"team_id": "t1", "user_id": "u-emp-2", "role": TeamRole.MEMBER},
    {"team_id": "t2", "user_id": "u-emp-3", "role": TeamRole.MEMBER},
]


class DirectoryService:
    """Team memberships and per-user permission overrides."""

    def __init__(self, store: DataStore, audit_logger: AuditLogger, seed: bool = True) -> None:
        self.store = store
        self.audit_logger = audit_logger
        if seed:
            self._seed_teams()

    def _seed_teams(self) -> None:
        with self.store.lock:
            if self.store.team_memberships:
                return
            for row in DEMO_TEAMS:
                self.store.team_memberships[(row["team_id"], row["user_id"])] = dict(row)

    def _require_user(self, user_id: str) -> dict[str, Any]:
        with self.store.lock:
            user = self.store.users.get(user_id)
        if not user:
            raise HTTPException(status_code=404, detail="User not found")
        return user

    # -- teams ---------------------------------------------------------

    def list_memberships(self, team_id: Optional[str] = None) -> list[TeamMembership]:
        with self.store.lock:
            rows = list(self.store.team_memberships.values())
        if team_id:
            rows = [r for r in rows if r["team_id"] == team_id]
        return [TeamMembership.model_validate(r) for r in rows]

    def add_membership(
        self,
        actor: Principal,
        team_id: str,
        payload: TeamMembershipCreate,
    ) -> TeamMembership:
        self._require_user(payload.user_id)
        row = {"team_id": team_id, "user_id": payload.user_id, "role": payload.role}
        with self.store.lock:
            self.store.team_memberships[(team_id, payload.user_id)] = row

        self.audit_logger.log_event(
            event_type="team_membership_added",
            actor_id=actor.user_id,
            actor_role=actor.role,
            module="teams",
            details={"team_id": team_id, "user_id": payload.user_id, "role": payload.role.value},
        )
        return TeamMembership.model_validate(row)

    def remove_membership(self, actor: Principal, team_id: str, user_id: str) -> None:
        with self.store.lock:
            removed = self.store.team_memberships.pop((team_id, user_id), None)
        if removed is None:
            raise HTTPException(status_code=404, detail="Team membership not found")

        self.audit_logger.log_event(
            event_type="team_membership_removed",
            actor_id=actor.user_id,
            actor_role=actor.role,
            module="teams",
            details={"team_id": team_id, "user_id": user_id},
        )

    # -- overrides -----------------------------------------------------

    def list_overrides(self, user_id: Optional[str] = None) -> list[PermissionOverride]:
        with self.store.lock:
            rows = list(self.store.permission_overrides.values())
        if user_id:
            rows = [r for r in rows if r["user_id"] == user_id]
        return [PermissionOverride.model_validate(r) for r in rows]

    def set_override(self, actor: Principal, payload: OverrideUpsert) -> PermissionOverride:
        if payload.permission not in PERMISSION_CATALOG:
            raise HTTPException(status_code=400, detail="Unknown permission")
        target = self._require_user(payload.user_id)
        # Admin always holds the full catalog.
        if target["role"] == Role.ADMIN and not payload.has_permission:
            raise HTTPException(status_code=400, detail="Admin permissions cannot be revoked")

        row = {
            "user_id": payload.user_id,
            "permission": payload.permission,
            "has_permission": payload.has_permission,
            "updated_at": utcnow(),
        }
        with self.store.lock:
            self.store.permission_overrides[(payload.user_id, payload.permission)] = row

        self.audit_logger.log_event(
            event_type="permission_override_set",
            actor_id=actor.user_id,
            actor_role=actor.role,
            module="permissions",
            details={
                "user_id": payload.user_id,
                "permission": payload.permission,
                "has_permission": payload.has_permission,
            },
        )
        return PermissionOverride.model_validate(row)

    def remove_override(self, actor: Principal, user_id: str, permission: str) -> None:
        with self.store.lock:
            removed = self.store.permission_overrides.pop((user_id, permission), None)
        if removed is None:
            raise HTTPException(status_code=404, detail="Permission override not found")

        self.audit_logger.log_event(
            event_type="permission_override_removed",
            actor_id=actor.user_id,
            actor_role=actor.role,
            module="permissions",
            details={"user_id": user_id, "permission": permission},
        )
