"""
Attendance Router

Clock events are always stamped by the server. A suspicious event is still a
201: the flag is part of the result, not an error.
"""
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session

from app.core.limiter import ATTENDANCE_WRITE_LIMIT, limiter
from app.database import get_db
from app.models.user import User
from app.routers.auth_deps import ensure_self_or_admin, get_current_user
from app.schemas.attendance import AttendanceCreate, AttendanceEventResponse, NextKindResponse
from app.services.attendance_service import AttendanceLedger, Location

router = APIRouter(prefix="/attendance", tags=["Attendance"])


@router.post("", response_model=AttendanceEventResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(ATTENDANCE_WRITE_LIMIT)
def record_attendance(
    request: Request,
    payload: AttendanceCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    ledger = AttendanceLedger(db)
    return ledger.record_event(
        current_user.id,
        payload.type,
        Location(payload.latitude, payload.longitude, payload.accuracy),
    )


@router.get("", response_model=List[AttendanceEventResponse])
def list_attendance(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    on_date: Optional[date] = Query(default=None, alias="date"),
    limit: int = Query(default=50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Most recent first. Staff see their own events; admins may pass any userId."""
    employee_id = user_id if user_id is not None else current_user.id
    ensure_self_or_admin(current_user, employee_id)
    return AttendanceLedger(db).list_events(employee_id, on_date=on_date, limit=limit)


@router.get("/next-kind", response_model=NextKindResponse)
def next_attendance_kind(
    user_id: Optional[int] = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    employee_id = user_id if user_id is not None else current_user.id
    ensure_self_or_admin(current_user, employee_id)
    return NextKindResponse(
        employee_id=employee_id,
        next_kind=AttendanceLedger(db).next_expected_kind(employee_id),
    )
