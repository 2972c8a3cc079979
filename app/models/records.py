from datetime import date, datetime, time
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, SerializeAsAny, model_validator

from app.core.rbac import Role


class ResourceKind(str, Enum):
    ATTENDANCE = "attendance"
    LEAVE = "leave"
    PAYROLL = "payroll"
    CLIENT = "client"
    TICKET = "ticket"
    GENERIC = "generic"


class AttendanceStatus(str, Enum):
    PRESENT = "Present"
    ABSENT = "Absent"
    PENDING_APPROVAL = "Pending Approval"
    ON_LEAVE = "On Leave"


class LeaveStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PayrollStatus(str, Enum):
    PAID = "Paid"
    PENDING = "Pending"


class TicketStatus(str, Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"
    CLOSED = "closed"


class OwnedRecord(BaseModel):
    record_id: str
    owner_id: str
    owner_role: Optional[Role] = None
    owner_name: Optional[str] = None


class AttendanceRecord(OwnedRecord):
    work_date: date
    status: AttendanceStatus
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    notes: Optional[str] = None
    updated_at: Optional[datetime] = None


class LeaveRequestRecord(OwnedRecord):
    leave_type: str
    start_date: date
    end_date: date
    reason: str
    status: LeaveStatus = LeaveStatus.PENDING
    rejection_reason: Optional[str] = None
    decided_by: Optional[str] = None
    decided_at: Optional[datetime] = None


class PayrollRecord(OwnedRecord):
    period: str
    amount: float
    status: PayrollStatus


class ClientRecord(OwnedRecord):
    name: str
    industry: Optional[str] = None


class TicketRecord(OwnedRecord):
    subject: str
    status: TicketStatus = TicketStatus.OPEN
    priority: str = "medium"


class RecordListing(BaseModel):
    kind: ResourceKind
    items: list[SerializeAsAny[OwnedRecord]]
    mutable_ids: list[str] = Field(default_factory=list)


class LeaveDecisionRequest(BaseModel):
    approve: bool
    rejection_reason: Optional[str] = Field(default=None, max_length=300)

    @model_validator(mode="after")
    def validate_rejection_reason(self) -> "LeaveDecisionRequest":
        if not self.approve and not (self.rejection_reason or "").strip():
            raise ValueError("rejection_reason is required when rejecting a leave request")
        return self


class AttendanceUpdate(BaseModel):
    status: Optional[AttendanceStatus] = None
    check_in: Optional[time] = None
    check_out: Optional[time] = None
    notes: Optional[str] = Field(default=None, max_length=300)

    @model_validator(mode="after")
    def validate_times(self) -> "AttendanceUpdate":
        if self.check_in and self.check_out and self.check_out < self.check_in:
            raise ValueError("check_out must be on or after check_in")
        return self
