from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date, datetime


class LineItemDetail(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    activity_date: date
    submitted_at: datetime
    title: Optional[str] = None
    hours: Optional[float] = None
    amount: float
    status: str


class SummaryDetails(BaseModel):
    overtimes: List[LineItemDetail]
    claims: List[LineItemDetail]


class EmployeePayableSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    employee_id: int
    staff_id: Optional[str] = None
    display_name: str
    email: Optional[str] = None
    overtime_hours: float
    overtime_total: float
    claim_total: float
    total_payable: float
    status: str
    is_unknown_employee: bool
    details: SummaryDetails

    @classmethod
    def from_summary(cls, summary) -> "EmployeePayableSummaryResponse":
        return cls(
            employee_id=summary.employee_id,
            staff_id=summary.staff_id,
            display_name=summary.display_name,
            email=summary.email,
            overtime_hours=summary.overtime_hours,
            overtime_total=summary.overtime_total,
            claim_total=summary.claim_total,
            total_payable=summary.total_payable,
            status=summary.status.value,
            is_unknown_employee=summary.is_unknown_employee,
            details=SummaryDetails(
                overtimes=[LineItemDetail.model_validate(i) for i in summary.overtimes],
                claims=[LineItemDetail.model_validate(i) for i in summary.claims],
            ),
        )


class PayoutRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    employee_ids: List[int] = Field(default_factory=list, alias="employeeIds")
    month: int
    year: int


class PayoutResponse(BaseModel):
    message: str
    updated: int
