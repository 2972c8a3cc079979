from __future__ import annotations

from datetime import datetime, timezone
from threading import RLock
from typing import Any


class DataStore:
    """Simple in-memory record store standing in for the managed document database."""

    def __init__(self) -> None:
        self.lock = RLock()
        self.users: dict[str, dict[str, Any]] = {}
        self.team_memberships: dict[tuple[str, str], dict[str, Any]] = {}
        self.permission_overrides: dict[tuple[str, str], dict[str, Any]] = {}
        self.attendance: dict[str, dict[str, Any]] = {}
        self.leave_requests: dict[str, dict[str, Any]] = {}
        self.payroll: dict[str, dict[str, Any]] = {}
        self.clients: dict[str, dict[str, Any]] = {}
        self.tickets: dict[str, dict[str, Any]] = {}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
