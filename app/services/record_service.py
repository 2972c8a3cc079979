from __future__ import annotations

from datetime import date, time
from typing import Any

from fastapi import HTTPException

from app.core.exceptions import AccessDeniedError
from app.core.rbac import Role
from app.models.access import AccessContext
from app.models.records import (
    AttendanceRecord,
    AttendanceStatus,
    AttendanceUpdate,
    ClientRecord,
    LeaveDecisionRequest,
    LeaveRequestRecord,
    LeaveStatus,
    OwnedRecord,
    PayrollRecord,
    PayrollStatus,
    RecordListing,
    ResourceKind,
    TicketRecord,
    TicketStatus,
)
from app.repositories.data_store import DataStore, utcnow
from app.services.access_control import AccessControlResolver
from app.services.audit_service import AuditLogger


ATTENDANCE_PERMISSIONS = ("attendance:view:own", "attendance:view:team", "attendance:view:all")

# Permissions that open each record list; any one of them is enough.
LIST_PERMISSIONS: dict[ResourceKind, tuple[str, ...]] = {
    ResourceKind.ATTENDANCE: ATTENDANCE_PERMISSIONS,
    ResourceKind.LEAVE: ATTENDANCE_PERMISSIONS,
    ResourceKind.PAYROLL: ("payroll:view:own", "payroll:view:all"),
    ResourceKind.CLIENT: ("clients:view",),
    ResourceKind.TICKET: ("tickets:view",),
}

MODELS: dict[ResourceKind, type[OwnedRecord]] = {
    ResourceKind.ATTENDANCE: AttendanceRecord,
    ResourceKind.LEAVE: LeaveRequestRecord,
    ResourceKind.PAYROLL: PayrollRecord,
    ResourceKind.CLIENT: ClientRecord,
    ResourceKind.TICKET: TicketRecord,
}


def _owner(user_id: str, name: str, role: Role) -> dict[str, Any]:
    return {"owner_id": user_id, "owner_name": name, "owner_role": role}


ADMIN = _owner("u-admin-1", "Admin User", Role.ADMIN)
SUB_ADMIN = _owner("u-subadmin-1", "Sub Admin", Role.SUB_ADMIN)
HR = _owner("u-hr-1", "Alisha Anand", Role.HR)
LEAD = _owner("u-tl-1", "Rohan Mehta", Role.TEAM_LEAD)
PRIYA = _owner("u-emp-1", "Priya Sharma", Role.EMPLOYEE)
ARJUN = _owner("u-emp-2", "Arjun Verma", Role.EMPLOYEE)
NEHA = _owner("u-emp-3", "Neha Gupta", Role.EMPLOYEE)
KARAN = _owner("u-bd-1", "Karan Singh", Role.BUSINESS_DEVELOPMENT)

_DAY = date(2024, 7, 15)

DEMO_RECORDS: dict[ResourceKind, list[dict[str, Any]]] = {
    ResourceKind.ATTENDANCE: [
        {"record_id": f"att-{i}", **owner, "work_date": _DAY, "status": status,
         "check_in": time(9, 5) if status == AttendanceStatus.PRESENT else None,
         "check_out": time(18, 0) if status == AttendanceStatus.PRESENT else None}
        for i, (owner, status) in enumerate(
            [
                (ADMIN, AttendanceStatus.PRESENT),
                (SUB_ADMIN, AttendanceStatus.PRESENT),
                (HR, AttendanceStatus.PRESENT),
                (LEAD, AttendanceStatus.PRESENT),
                (PRIYA, AttendanceStatus.PENDING_APPROVAL),
                (ARJUN, AttendanceStatus.ABSENT),
                (NEHA, AttendanceStatus.PRESENT),
                (KARAN, AttendanceStatus.ON_LEAVE),
            ],
            start=1,
        )
    ],
    ResourceKind.LEAVE: [
        {"record_id": "leave-1", **PRIYA, "leave_type": "Casual", "start_date": date(2024, 8, 1),
         "end_date": date(2024, 8, 2), "reason": "Family function"},
        {"record_id": "leave-2", **LEAD, "leave_type": "Sick", "start_date": date(2024, 8, 5),
         "end_date": date(2024, 8, 5), "reason": "Medical appointment"},
        {"record_id": "leave-3", **HR, "leave_type": "Earned", "start_date": date(2024, 8, 12),
         "end_date": date(2024, 8, 16), "reason": "Vacation"},
        {"record_id": "leave-4", **SUB_ADMIN, "leave_type": "Casual", "start_date": date(2024, 8, 20),
         "end_date": date(2024, 8, 20), "reason": "Personal errand"},
        {"record_id": "leave-5", **NEHA, "leave_type": "Casual", "start_date": date(2024, 7, 1),
         "end_date": date(2024, 7, 1), "reason": "Moving house", "status": LeaveStatus.APPROVED,
         "decided_by": "u-hr-1"},
    ],
    ResourceKind.PAYROLL: [
        {"record_id": f"pay-{i}", **owner, "period": "July 2024", "amount": amount,
         "status": PayrollStatus.PAID}
        for i, (owner, amount) in enumerate(
            [
                (PRIYA, 4500.0),
                (ARJUN, 4200.0),
                (LEAD, 5800.0),
                (ADMIN, 10000.0),
                (SUB_ADMIN, 8000.0),
                (HR, 6200.0),
            ],
            start=1,
        )
    ],
    ResourceKind.CLIENT: [
        {"record_id": "client-1", **KARAN, "name": "Acme Corp", "industry": "Manufacturing"},
        {"record_id": "client-2", **LEAD, "name": "Globex", "industry": "Logistics"},
        {"record_id": "client-3", **ADMIN, "name": "Initech", "industry": "Software"},
    ],
    ResourceKind.TICKET: [
        {"record_id": "ticket-1", **PRIYA, "subject": "VPN access not working",
         "status": TicketStatus.OPEN, "priority": "high"},
        {"record_id": "ticket-2", **LEAD, "subject": "Invoice mismatch for Globex",
         "status": TicketStatus.IN_PROGRESS},
        {"record_id": "ticket-3", **NEHA, "subject": "Laptop replacement",
         "status": TicketStatus.RESOLVED, "priority": "low"},
    ],
}


class RecordService:
    def __init__(
        self,
        store: DataStore,
        resolver: AccessControlResolver,
        audit_logger: AuditLogger,
        seed: bool = True,
    ) -> None:
        self.store = store
        self.resolver = resolver
        self.audit_logger = audit_logger
        if seed:
            self._seed_records()

    def _table(self, kind: ResourceKind) -> dict[str, dict[str, Any]]:
        tables = {
            ResourceKind.ATTENDANCE: self.store.attendance,
            ResourceKind.LEAVE: self.store.leave_requests,
            ResourceKind.PAYROLL: self.store.payroll,
            ResourceKind.CLIENT: self.store.clients,
            ResourceKind.TICKET: self.store.tickets,
        }
        if kind not in tables:
            raise HTTPException(status_code=404, detail="Unknown record type")
        return tables[kind]

    def _seed_records(self) -> None:
        with self.store.lock:
            for kind, rows in DEMO_RECORDS.items():
                table = self._table(kind)
                if table:
                    continue
                for row in rows:
                    table[row["record_id"]] = dict(row)

    def _authorize(self, context: AccessContext, kind: ResourceKind) -> None:
        try:
            self.resolver.authorize(context.principal, LIST_PERMISSIONS[kind], context.overrides)
        except AccessDeniedError:
            self.audit_logger.log_denied(
                context.principal.user_id, context.principal.role, module=kind.value
            )
            raise

    def _can_act(self, context: AccessContext, kind: ResourceKind, row: dict[str, Any]) -> bool:
        if kind is ResourceKind.LEAVE and row["owner_id"] == context.principal.user_id:
            # Nobody decides their own leave request.
            return False
        return self.resolver.can_mutate(
            context.principal, row, context.team_memberships, resource=kind
        )

    def list_records(self, context: AccessContext, kind: ResourceKind) -> RecordListing:
        self._authorize(context, kind)
        model = MODELS[kind]
        with self.store.lock:
            rows = list(self._table(kind).values())

        visible = self.resolver.visible_records(
            context.principal, rows, context.team_memberships, resource=kind
        )
        mutable_ids = [row["record_id"] for row in visible if self._can_act(context, kind, row)]
        return RecordListing(
            kind=kind,
            items=[model.model_validate(row) for row in visible],
            mutable_ids=mutable_ids,
        )

    def _mutable_row(
        self,
        context: AccessContext,
        kind: ResourceKind,
        record_id: str,
    ) -> dict[str, Any]:
        """Return the stored row or raise 404/403; caller must hold the store lock."""
        self._authorize(context, kind)
        row = self._table(kind).get(record_id)
        if not row or not self.resolver.visible_records(
            context.principal, [row], context.team_memberships, resource=kind
        ):
            raise HTTPException(status_code=404, detail="Record not found")
        if not self._can_act(context, kind, row):
            self.audit_logger.log_denied(
                context.principal.user_id,
                context.principal.role,
                module=kind.value,
                details={"record_id": record_id},
            )
            raise HTTPException(status_code=403, detail="Forbidden")
        return row

    def decide_leave(
        self,
        context: AccessContext,
        record_id: str,
        payload: LeaveDecisionRequest,
    ) -> LeaveRequestRecord:
        with self.store.lock:
            row = self._mutable_row(context, ResourceKind.LEAVE, record_id)
            if row.get("status", LeaveStatus.PENDING) != LeaveStatus.PENDING:
                raise HTTPException(status_code=400, detail="Leave request is not pending")

            row["status"] = LeaveStatus.APPROVED if payload.approve else LeaveStatus.REJECTED
            row["rejection_reason"] = None if payload.approve else payload.rejection_reason
            row["decided_by"] = context.principal.user_id
            row["decided_at"] = utcnow()
            updated = LeaveRequestRecord.model_validate(row)

        self.audit_logger.log_event(
            event_type="leave_decision",
            actor_id=context.principal.user_id,
            actor_role=context.principal.role,
            module=ResourceKind.LEAVE.value,
            details={"record_id": record_id, "decision": updated.status.value},
        )
        return updated

    def update_attendance(
        self,
        context: AccessContext,
        record_id: str,
        payload: AttendanceUpdate,
    ) -> AttendanceRecord:
        changes = payload.model_dump(exclude_unset=True)
        with self.store.lock:
            row = self._mutable_row(context, ResourceKind.ATTENDANCE, record_id)
            candidate = {**row, **changes, "updated_at": utcnow()}
            check_in, check_out = candidate.get("check_in"), candidate.get("check_out")
            if check_in and check_out and check_out < check_in:
                raise HTTPException(status_code=400, detail="check_out must be on or after check_in")
            row.update(candidate)
            updated = AttendanceRecord.model_validate(row)

        self.audit_logger.log_event(
            event_type="attendance_edit",
            actor_id=context.principal.user_id,
            actor_role=context.principal.role,
            module=ResourceKind.ATTENDANCE.value,
            details={"record_id": record_id, "fields": sorted(changes)},
        )
        return updated
