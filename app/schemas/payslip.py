from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional
from datetime import date, datetime
import enum


class AdjustmentType(str, enum.Enum):
    EARNING = "earning"
    DEDUCTION = "deduction"


class ManualAdjustment(BaseModel):
    label: str = Field(..., min_length=1, max_length=120)
    amount: float = Field(..., ge=0)
    type: AdjustmentType


class PayslipRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    employee_id: int = Field(..., alias="employeeId")
    month: int
    year: int
    adjustments: List[ManualAdjustment] = Field(default_factory=list)


class PayslipResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    month: int
    year: int
    period_start: date
    period_end: date
    base_salary: float
    overtime_hours: float
    overtime_total: float
    claim_total: float
    adjustments: List[ManualAdjustment]
    gross_pay: float
    net_pay: float
    document_path: str
    is_encrypted: bool
    recipient_email: str
    status: str
    created_at: Optional[datetime] = None
