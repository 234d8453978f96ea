"""
Admin Router

Payroll summary, payout, issued payslips and runtime settings. Every route
requires an admin or super admin.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_store
from app.models.payslip import Payslip
from app.models.user import User
from app.routers.auth_deps import require_admin
from app.schemas.payroll import EmployeePayableSummaryResponse, PayoutRequest, PayoutResponse
from app.schemas.payslip import PayslipResponse
from app.schemas.settings import SystemSettingsRead, SystemSettingsUpdate
from app.services.audit import AuditService
from app.services.cutoff import resolve_calendar_window, resolve_cutoff_window
from app.services.payout_service import PayoutProcessor
from app.services.payroll_service import PayrollAggregator, SqlLineItemSource, WindowBasis
from app.services.settings_store import SettingsStore, apply_update, to_public

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
)


@router.get("/summary", response_model=List[EmployeePayableSummaryResponse])
def get_payroll_summary(
    month: str = Query(...),
    year: str = Query(...),
    filter_mode: WindowBasis = Query(default=WindowBasis.SUBMISSION, alias="filterMode"),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    """
    Per-employee payable summary for a period.

    ``submission`` (default) uses the 28th-27th cutoff window on filing time,
    the same window payout acts on. ``activity`` groups by the calendar month
    the work happened in and is for reporting only.
    """
    if filter_mode is WindowBasis.SUBMISSION:
        window = resolve_cutoff_window(month, year)
    else:
        window = resolve_calendar_window(month, year)
    summaries = PayrollAggregator().summarize(window, SqlLineItemSource(db), filter_mode)
    return [EmployeePayableSummaryResponse.from_summary(s) for s in summaries]


@router.post("/payout", response_model=PayoutResponse)
def payout(
    payload: PayoutRequest,
    request: Request,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    window = resolve_cutoff_window(payload.month, payload.year)
    updated = PayoutProcessor(db).mark_paid(
        payload.employee_ids,
        window,
        actor=current_user,
        ip_address=request.client.host if request.client else None,
    )
    return {"message": "Payout processed successfully", "updated": updated}


@router.get("/payslips", response_model=List[PayslipResponse])
def list_payslips(
    employee_id: Optional[int] = Query(default=None, alias="employeeId"),
    limit: int = Query(default=100, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin())
):
    """Issued payslip snapshots, newest first."""
    query = db.query(Payslip)
    if employee_id is not None:
        query = query.filter(Payslip.employee_id == employee_id)
    return query.order_by(Payslip.created_at.desc(), Payslip.id.desc()).limit(limit).all()


@router.get("/settings", response_model=SystemSettingsRead)
def get_system_settings(
    store: SettingsStore = Depends(get_store),
    current_user: User = Depends(require_admin())
):
    return to_public(store.load())


@router.put("/settings", response_model=SystemSettingsRead)
def update_system_settings(
    payload: SystemSettingsUpdate,
    request: Request,
    db: Session = Depends(get_db),
    store: SettingsStore = Depends(get_store),
    current_user: User = Depends(require_admin())
):
    saved = store.save(apply_update(store.load(), payload))

    changed = payload.model_dump(exclude_none=True)
    if changed.get("smtp", {}).get("password"):
        changed["smtp"]["password"] = "********"
    AuditService(db).log_action(
        action="UPDATE_SETTINGS",
        entity_type="SystemSettings",
        entity_id=None,
        user_id=current_user.id,
        user_role=current_user.role,
        details=changed,
        ip_address=request.client.host if request.client else None,
    )
    db.commit()
    return to_public(saved)
