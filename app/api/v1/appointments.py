from fastapi import APIRouter, Depends, HTTPException, Query, status
from datetime import date, datetime
from typing import List, Optional

from ...api.deps import (
    get_admin_user, get_appointment_service, get_booking_service, get_current_user
)
from ...models.user import User
from ...schemas.appointment import (
    AppointmentRequest, AppointmentResponse, AvailabilityResponse,
    StatusUpdate, as_local_naive
)
from ...services.appointment_service import AppointmentService

router = APIRouter(prefix="/appointments", tags=["Appointments"])

@router.get("", response_model=List[AppointmentResponse])
async def get_my_appointments(
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """List the current user's appointments."""
    return service.get_user_appointments(current_user.id)

@router.get("/all", response_model=List[AppointmentResponse])
async def get_all_appointments(
    _: User = Depends(get_admin_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """List every appointment (admin only)."""
    return service.get_all_appointments()

@router.get("/available", response_model=AvailabilityResponse)
async def check_availability(
    date_time: datetime = Query(..., description="Candidate start time"),
    exclude_id: Optional[int] = Query(None, description="Appointment being rescheduled"),
    _: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Check whether a start time is free."""
    date_time = as_local_naive(date_time)
    return AvailabilityResponse(
        date_time=date_time,
        is_available=service.is_available(date_time, exclude_id)
    )

@router.get("/daily/{day}", response_model=List[AppointmentResponse])
async def get_daily_appointments(
    day: date,
    _: User = Depends(get_admin_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """List appointments on a calendar day (admin only)."""
    return service.get_daily_appointments(day)

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service)
):
    """Get one of the current user's appointments."""
    appointment = service.get_appointment(current_user.id, appointment_id)
    if not appointment:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found"
        )
    return appointment

@router.post("", response_model=AppointmentResponse, status_code=status.HTTP_201_CREATED)
async def create_appointment(
    appointment_data: AppointmentRequest,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_booking_service)
):
    """Book an appointment."""
    return service.create_appointment(
        current_user.id,
        appointment_data.scheduled_at,
        appointment_data.treatment_type,
        appointment_data.notes
    )

@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    appointment_data: AppointmentRequest,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_booking_service)
):
    """Reschedule or edit an appointment."""
    return service.update_appointment(
        current_user.id,
        appointment_id,
        appointment_data.scheduled_at,
        appointment_data.treatment_type,
        appointment_data.notes
    )

@router.delete("/{appointment_id}")
async def cancel_appointment(
    appointment_id: int,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_booking_service)
):
    """Cancel an appointment."""
    if not service.cancel_appointment(current_user.id, appointment_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Appointment not found"
        )
    return {"message": "Appointment cancelled successfully"}

@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_status(
    appointment_id: int,
    status_data: StatusUpdate,
    _: User = Depends(get_admin_user),
    service: AppointmentService = Depends(get_booking_service)
):
    """Change an appointment's status (admin only)."""
    return service.set_status(appointment_id, status_data.status)
