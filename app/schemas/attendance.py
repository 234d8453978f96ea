from pydantic import BaseModel, ConfigDict, Field
from typing import Optional
from datetime import datetime
from app.models.attendance import AttendanceKind


class AttendanceCreate(BaseModel):
    latitude: float = Field(..., ge=-90, le=90)
    longitude: float = Field(..., ge=-180, le=180)
    accuracy: Optional[float] = Field(default=None, ge=0)
    type: AttendanceKind


class AttendanceEventResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    employee_id: int
    kind: AttendanceKind
    server_timestamp: datetime
    latitude: float
    longitude: float
    accuracy_meters: Optional[float] = None
    is_suspicious: bool
    implied_speed_kmh: Optional[float] = None


class NextKindResponse(BaseModel):
    employee_id: int
    next_kind: AttendanceKind
