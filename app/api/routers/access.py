from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from app.api.deps import get_access_context, require_admin, require_permission
from app.core.exceptions import ConfigurationError
from app.models.access import (
    AccessContext,
    EffectivePermissions,
    NavEntry,
    NavigationResponse,
    OverrideUpsert,
    PermissionCatalogEntry,
    PermissionOverride,
    RolePermissionsTable,
    TeamMembership,
    TeamMembershipCreate,
)
from app.services.container import audit_logger, directory_service, resolver


router = APIRouter(prefix="/access", tags=["Access Control"])


@router.get("/me/permissions", response_model=EffectivePermissions)
def read_my_permissions(context: AccessContext = Depends(get_access_context)) -> EffectivePermissions:
    effective = resolver.effective_permissions(context.principal, context.overrides)
    return EffectivePermissions(
        user_id=context.principal.user_id,
        role=context.principal.role,
        permissions=sorted(effective),
    )


@router.get("/navigation", response_model=NavigationResponse)
def read_navigation(context: AccessContext = Depends(get_access_context)) -> NavigationResponse:
    sections = resolver.navigation(context.principal, context.overrides)
    return NavigationResponse(
        sections={
            section: [NavEntry(href=item.href, label=item.label) for item in items]
            for section, items in sections.items()
        }
    )


@router.get("/catalog", response_model=list[PermissionCatalogEntry])
def read_catalog(
    context: AccessContext = Depends(require_permission("permissions:manage")),
) -> list[PermissionCatalogEntry]:
    _ = context
    return [PermissionCatalogEntry(key=k, description=d) for k, d in resolver.catalog.items()]


@router.get("/roles", response_model=RolePermissionsTable)
def read_role_permissions(
    context: AccessContext = Depends(require_permission("permissions:manage")),
) -> RolePermissionsTable:
    _ = context
    return RolePermissionsTable(
        roles={role: sorted(keys) for role, keys in resolver.role_permissions().items()}
    )


@router.put("/roles", response_model=RolePermissionsTable)
def update_role_permissions(
    payload: RolePermissionsTable,
    context: AccessContext = Depends(require_admin("permissions:manage")),
) -> RolePermissionsTable:
    try:
        resolver.replace_role_permissions(payload.roles)
    except ConfigurationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    audit_logger.log_event(
        event_type="role_permissions_updated",
        actor_id=context.principal.user_id,
        actor_role=context.principal.role,
        module="permissions",
        details={"roles": sorted(role.value for role in payload.roles)},
    )
    return RolePermissionsTable(
        roles={role: sorted(keys) for role, keys in resolver.role_permissions().items()}
    )


@router.get("/overrides", response_model=list[PermissionOverride])
def list_overrides(
    user_id: Optional[str] = None,
    context: AccessContext = Depends(require_permission("permissions:manage")),
) -> list[PermissionOverride]:
    _ = context
    return directory_service.list_overrides(user_id=user_id)


@router.put("/overrides", response_model=PermissionOverride)
def set_override(
    payload: OverrideUpsert,
    context: AccessContext = Depends(require_admin("permissions:manage")),
) -> PermissionOverride:
    return directory_service.set_override(context.principal, payload)


@router.delete("/overrides/{user_id}/{permission}", status_code=status.HTTP_204_NO_CONTENT)
def remove_override(
    user_id: str,
    permission: str,
    context: AccessContext = Depends(require_admin("permissions:manage")),
) -> Response:
    directory_service.remove_override(context.principal, user_id, permission)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/teams", response_model=list[TeamMembership])
def list_team_memberships(
    team_id: Optional[str] = None,
    context: AccessContext = Depends(require_permission("teams:manage")),
) -> list[TeamMembership]:
    _ = context
    return directory_service.list_memberships(team_id=team_id)


@router.post("/teams/{team_id}/members", response_model=TeamMembership)
def add_team_member(
    team_id: str,
    payload: TeamMembershipCreate,
    context: AccessContext = Depends(require_permission("teams:manage")),
) -> TeamMembership:
    return directory_service.add_membership(context.principal, team_id, payload)


@router.delete("/teams/{team_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_team_member(
    team_id: str,
    user_id: str,
    context: AccessContext = Depends(require_permission("teams:manage")),
) -> Response:
    directory_service.remove_membership(context.principal, team_id, user_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
