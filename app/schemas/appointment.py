from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models.appointment import AppointmentStatus

def as_local_naive(value: datetime) -> datetime:
    # Scheduling is done in server-local wall time
    if value.tzinfo is not None:
        return value.astimezone().replace(tzinfo=None)
    return value

class AppointmentRequest(BaseModel):
    """Body for booking and editing an appointment."""
    scheduled_at: datetime
    treatment_type: str = Field(..., min_length=1, max_length=100)
    notes: Optional[str] = Field(None, max_length=500)

    @field_validator("scheduled_at")
    @classmethod
    def scheduled_at_local(cls, value: datetime) -> datetime:
        return as_local_naive(value)

    @field_validator("treatment_type")
    @classmethod
    def treatment_type_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Treatment type is required")
        return value

class StatusUpdate(BaseModel):
    status: str

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    scheduled_at: datetime
    treatment_type: str
    notes: Optional[str] = None
    status: AppointmentStatus
    created_at: datetime

class AvailabilityResponse(BaseModel):
    date_time: datetime
    is_available: bool
