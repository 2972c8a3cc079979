from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.core.rbac import Role, TeamRole


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Principal(BaseModel):
    """The actor a request is evaluated for.

    ``role`` is kept as a plain string so that a stale or corrupted profile
    still produces a Principal; the resolver decides whether it is usable.
    """

    model_config = ConfigDict(frozen=True)

    user_id: Optional[str] = None
    role: Optional[str] = None
    display_name: Optional[str] = None
    email: Optional[str] = None
    team_id: Optional[str] = None


class PermissionOverride(BaseModel):
    model_config = ConfigDict(frozen=True)

    user_id: str
    permission: str
    has_permission: bool
    updated_at: datetime = Field(default_factory=_utcnow)


class TeamMembership(BaseModel):
    model_config = ConfigDict(frozen=True)

    team_id: str
    user_id: str
    role: TeamRole = TeamRole.MEMBER


class AccessContext(BaseModel):
    """Everything the resolver needs for one request, fetched once."""

    principal: Principal
    overrides: list[PermissionOverride] = Field(default_factory=list)
    team_memberships: list[TeamMembership] = Field(default_factory=list)


class PermissionCatalogEntry(BaseModel):
    key: str
    description: str


class EffectivePermissions(BaseModel):
    user_id: Optional[str]
    role: Optional[str]
    permissions: list[str]


class NavEntry(BaseModel):
    href: str
    label: str


class NavigationResponse(BaseModel):
    sections: dict[str, list[NavEntry]]


class RolePermissionsTable(BaseModel):
    roles: dict[Role, list[str]]


class OverrideUpsert(BaseModel):
    user_id: str = Field(min_length=1)
    permission: str = Field(min_length=1)
    has_permission: bool


class TeamMembershipCreate(BaseModel):
    user_id: str = Field(min_length=1)
    role: TeamRole = TeamRole.MEMBER
