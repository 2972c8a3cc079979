from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import get_access_context
from app.models.access import AccessContext
from app.models.records import (
    AttendanceRecord,
    AttendanceUpdate,
    LeaveDecisionRequest,
    LeaveRequestRecord,
    RecordListing,
    ResourceKind,
)
from app.services.container import record_service


router = APIRouter(prefix="/records", tags=["Records"])


@router.get("/{kind}", response_model=RecordListing)
def list_records(
    kind: ResourceKind,
    context: AccessContext = Depends(get_access_context),
) -> RecordListing:
    if kind is ResourceKind.GENERIC:
        raise HTTPException(status_code=404, detail="Unknown record type")
    return record_service.list_records(context, kind)


@router.post("/leave/{record_id}/decision", response_model=LeaveRequestRecord)
def decide_leave_request(
    record_id: str,
    payload: LeaveDecisionRequest,
    context: AccessContext = Depends(get_access_context),
) -> LeaveRequestRecord:
    return record_service.decide_leave(context, record_id, payload)


@router.patch("/attendance/{record_id}", response_model=AttendanceRecord)
def update_attendance_record(
    record_id: str,
    payload: AttendanceUpdate,
    context: AccessContext = Depends(get_access_context),
) -> AttendanceRecord:
    return record_service.update_attendance(context, record_id, payload)
