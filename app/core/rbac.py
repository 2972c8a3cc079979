from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.core.exceptions import ConfigurationError


class Role(str, Enum):
    ADMIN = "Admin"
    SUB_ADMIN = "Sub-Admin"
    HR = "HR"
    TEAM_LEAD = "Team Lead"
    EMPLOYEE = "Employee"
    BUSINESS_DEVELOPMENT = "Business Development"


class TeamRole(str, Enum):
    LEAD = "lead"
    MEMBER = "member"


PERMISSION_CATALOG: dict[str, str] = {
    "dashboard:view": "View main dashboard",
    "attendance:view:own": "View own attendance",
    "attendance:view:team": "View team attendance",
    "attendance:view:all": "View all attendance",
    "payroll:view:own": "View own payroll",
    "payroll:view:all": "View all payroll (except Admins)",
    "clients:view": "View all clients",
    "tickets:view": "View all support tickets",
    "lead-generation:view": "Access lead generation tools",
    "tasks:view": "View tasks",
    "timesheet:view": "View timesheets",
    "users:manage": "Manage users (create, edit, delete)",
    "permissions:manage": "Manage roles and permissions",
    "audit-log:view": "View audit logs",
    "teams:manage": "Manage teams and projects",
}


ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.ADMIN: frozenset(PERMISSION_CATALOG),
    Role.SUB_ADMIN: frozenset(
        {
            "dashboard:view",
            "attendance:view:all",
            "payroll:view:all",
            "clients:view",
            "tickets:view",
            "lead-generation:view",
            "tasks:view",
            "timesheet:view",
            "users:manage",
            "permissions:manage",
        }
    ),
    Role.HR: frozenset(
        {
            "dashboard:view",
            "attendance:view:all",
            "payroll:view:all",
            "tasks:view",
            "timesheet:view",
            "users:manage",
            "audit-log:view",
            "clients:view",
            "tickets:view",
        }
    ),
    Role.TEAM_LEAD: frozenset(
        {
            "dashboard:view",
            "attendance:view:team",
            "payroll:view:own",
            "clients:view",
            "tickets:view",
            "lead-generation:view",
            "tasks:view",
            "timesheet:view",
        }
    ),
    Role.EMPLOYEE: frozenset(
        {
            "dashboard:view",
            "attendance:view:own",
            "payroll:view:own",
            "tasks:view",
            "timesheet:view",
        }
    ),
    Role.BUSINESS_DEVELOPMENT: frozenset(
        {
            "dashboard:view",
            "clients:view",
            "lead-generation:view",
        }
    ),
}


@dataclass(frozen=True)
class NavItem:
    section: str
    href: str
    label: str
    permissions: tuple[str, ...]


NAVIGATION: tuple[NavItem, ...] = (
    NavItem("main", "/dashboard", "Dashboard", ("dashboard:view",)),
    NavItem(
        "main",
        "/dashboard/attendance",
        "Attendance",
        ("attendance:view:own", "attendance:view:team", "attendance:view:all"),
    ),
    NavItem("main", "/dashboard/payroll", "Payroll", ("payroll:view:own", "payroll:view:all")),
    NavItem("main", "/dashboard/lead-generation", "Lead Generation", ("lead-generation:view",)),
    NavItem("main", "/dashboard/tasks", "Tasks", ("tasks:view",)),
    NavItem("main", "/dashboard/timesheet", "Timesheet", ("timesheet:view",)),
    NavItem("client_hub", "/dashboard/hub/clients", "Clients", ("clients:view",)),
    NavItem("client_hub", "/dashboard/hub/tickets", "Tickets", ("tickets:view",)),
    NavItem("admin", "/dashboard/user-management", "User Management", ("users:manage",)),
    NavItem("admin", "/dashboard/admin/teams-projects", "Team & Project Hub", ("teams:manage",)),
    NavItem("admin", "/dashboard/permissions", "Permissions", ("permissions:manage",)),
    NavItem("admin", "/dashboard/audit-log", "Audit Log", ("audit-log:view",)),
)


def parse_role(value: Any) -> Role:
    """Map a stored role value onto the enumeration, raising ValueError otherwise."""
    if isinstance(value, Role):
        return value
    return Role(value)


def validate_configuration(
    catalog: Mapping[str, str],
    role_permissions: Mapping[Any, Iterable[str]],
    overrides: Iterable[Any] = (),
    navigation: Iterable[NavItem] = NAVIGATION,
) -> dict[Role, frozenset[str]]:
    """Check the static tables and return a normalised copy of the role table.

    Raises ConfigurationError on the first inconsistency found.
    """
    if not catalog:
        raise ConfigurationError("Permission catalog is empty")

    table: dict[Role, frozenset[str]] = {}
    for raw_role, granted in role_permissions.items():
        try:
            role = parse_role(raw_role)
        except ValueError as exc:
            raise ConfigurationError(f"Role table names unknown role {raw_role!r}") from exc
        if isinstance(granted, str):
            raise ConfigurationError(f"Role {role.value!r} must map to a collection of keys")
        keys = frozenset(granted)
        unknown = sorted(keys - set(catalog))
        if unknown:
            raise ConfigurationError(
                f"Role {role.value!r} grants permissions missing from the catalog: {unknown}"
            )
        table[role] = keys

    missing_roles = [role.value for role in Role if role not in table]
    if missing_roles:
        raise ConfigurationError(f"Role table has no entry for {missing_roles}")

    if table[Role.ADMIN] != frozenset(catalog):
        raise ConfigurationError("Admin must be granted the entire permission catalog")

    for item in navigation:
        if not item.permissions:
            raise ConfigurationError(f"Navigation entry {item.href!r} requires no permission")
        for key in item.permissions:
            if key not in catalog:
                raise ConfigurationError(
                    f"Navigation entry {item.href!r} requires unknown permission {key!r}"
                )

    for override in overrides:
        if override.permission not in catalog:
            raise ConfigurationError(
                f"Override for user {override.user_id!r} references unknown permission "
                f"{override.permission!r}"
            )

    return table
