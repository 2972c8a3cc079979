"""Permission resolution and role-scoped record visibility.

Every decision here is a pure function of its arguments and of the active
role table. Overrides and team memberships are fetched by the caller once per
request and handed in as plain data; nothing in this module performs I/O.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any, Optional, TypeVar

from pydantic import ValidationError

from app.core.exceptions import (
    AccessDeniedError,
    ConfigurationError,
    InvalidPrincipalError,
    InvalidRoleError,
)
from app.core.rbac import (
    NAVIGATION,
    PERMISSION_CATALOG,
    ROLE_PERMISSIONS,
    NavItem,
    Role,
    TeamRole,
    parse_role,
    validate_configuration,
)
from app.models.access import Principal
from app.models.records import ResourceKind


logger = logging.getLogger(__name__)

R = TypeVar("R")

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)
_PRIVILEGED_ROLES = frozenset({Role.ADMIN, Role.SUB_ADMIN})
# Sub-Admin may only act on leave and attendance rows of these owners.
_SUB_ADMIN_MUTABLE_OWNERS = frozenset({Role.EMPLOYEE, Role.TEAM_LEAD})
_SUB_ADMIN_NARROW_RESOURCES = frozenset({ResourceKind.LEAVE, ResourceKind.ATTENDANCE})


def _field(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def _owner_role(value: Any) -> Optional[Role]:
    if value is None:
        return None
    try:
        return parse_role(value)
    except ValueError:
        return None


def _override_time(value: Any) -> datetime:
    """Comparable UTC timestamp for ordering overrides; naive values are taken as UTC."""
    if isinstance(value, str):
        try:
            value = datetime.fromisoformat(value)
        except ValueError:
            return _EPOCH
    if not isinstance(value, datetime):
        return _EPOCH
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    try:
        return value.astimezone(timezone.utc)
    except OverflowError:
        return _EPOCH


def _config_role(value: Any) -> Role:
    try:
        return parse_role(value)
    except ValueError as exc:
        raise ConfigurationError(f"Role table names unknown role {value!r}") from exc


def led_member_ids(user_id: str, team_memberships: Iterable[Any]) -> frozenset[str]:
    """User ids of everyone on a team that ``user_id`` leads, the lead included."""
    memberships = list(team_memberships)
    led_teams = {
        _field(m, "team_id")
        for m in memberships
        if _field(m, "user_id") == user_id and _field(m, "role") == TeamRole.LEAD
    }
    if not led_teams:
        return frozenset()
    return frozenset(_field(m, "user_id") for m in memberships if _field(m, "team_id") in led_teams)


class AccessControlResolver:
    def __init__(
        self,
        role_permissions: Mapping[Any, Iterable[str]] = ROLE_PERMISSIONS,
        catalog: Mapping[str, str] = PERMISSION_CATALOG,
        navigation: Sequence[NavItem] = NAVIGATION,
        seed_overrides: Iterable[Any] = (),
    ) -> None:
        self.catalog: dict[str, str] = dict(catalog)
        self.navigation_items: tuple[NavItem, ...] = tuple(navigation)
        self._role_permissions = validate_configuration(
            self.catalog, role_permissions, seed_overrides, self.navigation_items
        )

    # -- configuration -------------------------------------------------

    def role_permissions(self) -> dict[Role, frozenset[str]]:
        return dict(self._role_permissions)

    def replace_role_permissions(self, role_permissions: Mapping[Any, Iterable[str]]) -> None:
        """Validate and install a new default table.

        Admin always keeps the full catalog. The table is swapped in with a
        single assignment so concurrent readers see either the old or the new
        table, never a mix.
        """
        proposed = {_config_role(role): frozenset(keys) for role, keys in role_permissions.items()}
        merged: dict[Any, Iterable[str]] = dict(self._role_permissions)
        merged.update(proposed)
        merged[Role.ADMIN] = frozenset(self.catalog)
        table = validate_configuration(self.catalog, merged, (), self.navigation_items)
        self._role_permissions = table
        logger.info("Role permission table replaced for %s", sorted(r.value for r in proposed))

    # -- principal -----------------------------------------------------

    @staticmethod
    def resolve_principal(principal: Principal | Mapping[str, Any]) -> tuple[str, Role]:
        """Return ``(user_id, role)`` or raise InvalidPrincipalError."""
        if isinstance(principal, Mapping):
            try:
                principal = Principal.model_validate(principal)
            except ValidationError as exc:
                raise InvalidPrincipalError("Principal could not be parsed") from exc
        if not isinstance(principal, Principal):
            raise InvalidPrincipalError("Principal is of an unsupported type")

        user_id = principal.user_id
        if not user_id or not str(user_id).strip():
            raise InvalidPrincipalError("Principal has no user id")
        try:
            role = parse_role(principal.role)
        except ValueError as exc:
            raise InvalidRoleError(f"Role {principal.role!r} is not recognised") from exc
        return user_id, role

    def _try_resolve(self, principal: Any) -> Optional[tuple[str, Role]]:
        try:
            return self.resolve_principal(principal)
        except InvalidPrincipalError as exc:
            logger.warning("Denying malformed principal: %s", exc)
            return None

    # -- permissions ---------------------------------------------------

    def effective_permissions(
        self,
        principal: Principal | Mapping[str, Any],
        overrides: Iterable[Any] = (),
    ) -> frozenset[str]:
        resolved = self._try_resolve(principal)
        if resolved is None:
            return frozenset()
        user_id, role = resolved

        table = self._role_permissions
        granted = set(table.get(role, frozenset()))

        own = [o for o in overrides if _field(o, "user_id") == user_id]
        # sorted() is stable, so equal timestamps keep their input order.
        for override in sorted(own, key=lambda o: _override_time(_field(o, "updated_at"))):
            key = _field(override, "permission")
            if key not in self.catalog:
                logger.warning("Ignoring override for %s on unknown permission %r", user_id, key)
                continue
            if _field(override, "has_permission"):
                granted.add(key)
            else:
                granted.discard(key)
        return frozenset(granted)

    def has_permission(
        self,
        principal: Principal | Mapping[str, Any],
        permission: str | Iterable[str],
        overrides: Iterable[Any] = (),
    ) -> bool:
        wanted = [permission] if isinstance(permission, str) else list(permission)
        if not wanted:
            return False
        effective = self.effective_permissions(principal, overrides)
        return any(p in effective for p in wanted)

    def authorize(
        self,
        principal: Principal | Mapping[str, Any],
        permission: str | Iterable[str],
        overrides: Iterable[Any] = (),
    ) -> None:
        if not self.has_permission(principal, permission, overrides):
            logger.info("Permission check failed for %s", _field(principal, "user_id"))
            raise AccessDeniedError()

    def navigation(
        self,
        principal: Principal | Mapping[str, Any],
        overrides: Iterable[Any] = (),
    ) -> dict[str, list[NavItem]]:
        effective = self.effective_permissions(principal, overrides)
        sections: dict[str, list[NavItem]] = {}
        for item in self.navigation_items:
            if any(p in effective for p in item.permissions):
                sections.setdefault(item.section, []).append(item)
        return sections

    # -- records -------------------------------------------------------

    @staticmethod
    def _allowed(
        user_id: str,
        role: Role,
        led_ids: frozenset[str],
        record: Any,
        resource: ResourceKind,
        mutate: bool,
    ) -> bool:
        owner_id = _field(record, "owner_id")
        owner_role = _owner_role(_field(record, "owner_role"))

        if role is Role.ADMIN:
            return True
        if role is Role.SUB_ADMIN:
            if resource is ResourceKind.PAYROLL and owner_role is Role.ADMIN:
                return False
            if mutate and resource in _SUB_ADMIN_NARROW_RESOURCES:
                return owner_role in _SUB_ADMIN_MUTABLE_OWNERS
            return True
        if role is Role.HR:
            return owner_role not in _PRIVILEGED_ROLES
        if role is Role.TEAM_LEAD:
            if resource is ResourceKind.PAYROLL:
                return owner_id == user_id
            return owner_id == user_id or owner_id in led_ids
        return owner_id == user_id

    def visible_records(
        self,
        principal: Principal | Mapping[str, Any],
        records: Iterable[R],
        team_memberships: Iterable[Any] = (),
        resource: ResourceKind = ResourceKind.GENERIC,
    ) -> list[R]:
        resolved = self._try_resolve(principal)
        if resolved is None:
            return []
        user_id, role = resolved
        led_ids = led_member_ids(user_id, team_memberships) if role is Role.TEAM_LEAD else frozenset()
        return [
            record
            for record in records
            if self._allowed(user_id, role, led_ids, record, resource, mutate=False)
        ]

    def can_mutate(
        self,
        principal: Principal | Mapping[str, Any],
        record: Any,
        team_memberships: Iterable[Any] = (),
        resource: ResourceKind = ResourceKind.GENERIC,
    ) -> bool:
        resolved = self._try_resolve(principal)
        if resolved is None:
            return False
        user_id, role = resolved
        led_ids = led_member_ids(user_id, team_memberships) if role is Role.TEAM_LEAD else frozenset()
        return self._allowed(user_id, role, led_ids, record, resource, mutate=True)
