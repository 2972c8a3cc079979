from __future__ import annotations

from datetime import timedelta
from typing import Any

from fastapi import HTTPException, status

from app.core.config import settings
from app.core.rbac import Role
from app.core.security import create_access_token, hash_password, verify_password
from app.models.access import Principal
from app.models.auth import Token, UserPublic
from app.repositories.data_store import DataStore
from app.services.audit_service import AuditLogger


DEMO_USERS: list[dict[str, Any]] = [
    {
        "user_id": "u-admin-1",
        "username": "admin",
        "email": "admin@upteky.example",
        "display_name": "Admin User",
        "role": Role.ADMIN,
        "team_id": None,
        "password": "admin123",
    },
    {
        "user_id": "u-subadmin-1",
        "username": "subadmin",
        "email": "subadmin@upteky.example",
        "display_name": "Sub Admin",
        "role": Role.SUB_ADMIN,
        "team_id": None,
        "password": "subadmin123",
    },
    {
        "user_id": "u-hr-1",
        "username": "hr_alisha",
        "email": "alisha.anand@upteky.example",
        "display_name": "Alisha Anand",
        "role": Role.HR,
        "team_id": None,
        "password": "hr123",
    },
    {
        "user_id": "u-tl-1",
        "username": "lead_rohan",
        "email": "rohan.mehta@upteky.example",
        "display_name": "Rohan Mehta",
        "role": Role.TEAM_LEAD,
        "team_id": "t1",
        "password": "lead123",
    },
    {
        "user_id": "u-emp-1",
        "username": "emp_priya",
        "email": "priya.sharma@upteky.example",
        "display_name": "Priya Sharma",
        "role": Role.EMPLOYEE,
        "team_id": "t1",
        "password": "employee123",
    },
    {
        "user_id": "u-emp-2",
        "username": "emp_arjun",
        "email": "arjun.verma@upteky.example",
        "display_name": "Arjun Verma",
        "role": Role.EMPLOYEE,
        "team_id": "t1",
        "password": "employee456",
    },
    {
        "user_id": "u-emp-3",
        "username": "emp_neha",
        "email": "neha.gupta@upteky.example",
        "display_name": "Neha Gupta",
        "role": Role.EMPLOYEE,
        "team_id": "t2",
        "password": "employee789",
    },
    {
        "user_id": "u-bd-1",
        "username": "bd_karan",
        "email": "karan.singh@upteky.example",
        "display_name": "Karan Singh",
        "role": Role.BUSINESS_DEVELOPMENT,
        "team_id": None,
        "password": "bizdev123",
    },
]


def _role_value(role: Any) -> str | None:
    if isinstance(role, Role):
        return role.value
    return role


class AuthService:
    def __init__(self, store: DataStore, audit_logger: AuditLogger, seed: bool = True) -> None:
        self.store = store
        self.audit_logger = audit_logger
        if seed:
            self._seed_users()

    def _seed_users(self) -> None:
        with self.store.lock:
            if self.store.users:
                return
            for user in DEMO_USERS:
                record = {
                    **user,
                    "hashed_password": hash_password(user["password"]),
                }
                del record["password"]
                self.store.users[record["user_id"]] = record

    def authenticate(self, username: str, password: str) -> dict[str, Any] | None:
        with self.store.lock:
            users = list(self.store.users.values())
        user = next((u for u in users if u["username"] == username), None)
        if not user:
            return None
        if not verify_password(password, user["hashed_password"]):
            return None
        return user

    def issue_token(self, user: dict[str, Any]) -> Token:
        role = _role_value(user["role"])
        token, expires_at = create_access_token(
            subject=user["user_id"],
            email=user["email"],
            role=role,
            expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        )
        self.audit_logger.log_event(
            event_type="auth_login",
            actor_id=user["user_id"],
            actor_role=role,
            module="auth",
            details={"username": user["username"]},
        )
        return Token(access_token=token, expires_at=expires_at)

    def require_user(self, user_id: str) -> dict[str, Any]:
        with self.store.lock:
            user = self.store.users.get(user_id)
        if not user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="User not found",
            )
        return user

    @staticmethod
    def principal_for(user: dict[str, Any]) -> Principal:
        return Principal(
            user_id=user.get("user_id"),
            role=_role_value(user.get("role")),
            display_name=user.get("display_name"),
            email=user.get("email"),
            team_id=user.get("team_id"),
        )

    def as_public(self, user: dict[str, Any]) -> UserPublic:
        return UserPublic(
            user_id=user["user_id"],
            username=user["username"],
            email=user["email"],
            display_name=user["display_name"],
            role=user["role"],
            team_id=user.get("team_id"),
        )

    def list_users(self) -> list[UserPublic]:
        with self.store.lock:
            users = list(self.store.users.values())
        return [self.as_public(u) for u in users]
