from collections.abc import Callable
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from pydantic import ValidationError

from app.core.rbac import Role
from app.models.access import AccessContext, Principal
from app.models.auth import TokenData
from app.core.security import decode_access_token
from app.services.container import audit_logger, auth_service, directory_service, resolver


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def get_current_user(token: str = Depends(oauth2_scheme)) -> dict[str, Any]:
    try:
        claims = TokenData.model_validate(decode_access_token(token))
    except (ValueError, ValidationError) as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from exc

    return auth_service.require_user(claims.sub)


def get_principal(user: dict[str, Any] = Depends(get_current_user)) -> Principal:
    # Role and team come from the stored profile, not the token claims.
    return auth_service.principal_for(user)


def get_access_context(principal: Principal = Depends(get_principal)) -> AccessContext:
    return AccessContext(
        principal=principal,
        overrides=directory_service.list_overrides(user_id=principal.user_id),
        team_memberships=directory_service.list_memberships(),
    )


def require_permission(*permissions: str) -> Callable[[AccessContext], AccessContext]:
    """Dependency that lets the request through when any of ``permissions`` is held."""

    def dependency(context: AccessContext = Depends(get_access_context)) -> AccessContext:
        if not resolver.has_permission(context.principal, permissions, context.overrides):
            audit_logger.log_denied(
                context.principal.user_id,
                context.principal.role,
                module=permissions[0].split(":", 1)[0],
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return context

    return dependency


def require_admin(*permissions: str) -> Callable[[AccessContext], AccessContext]:
    """Like ``require_permission``, and the caller must also hold the Admin role."""

    def dependency(context: AccessContext = Depends(require_permission(*permissions))) -> AccessContext:
        if context.principal.role != Role.ADMIN:
            audit_logger.log_denied(
                context.principal.user_id,
                context.principal.role,
                module=permissions[0].split(":", 1)[0],
            )
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden")
        return context

    return dependency
