# barbershop/routers/barbers_routes.py

from datetime import date
from typing import List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session

from barbershop.allocator import AppointmentAllocator
from barbershop.db import get_session
from barbershop.deps import get_allocator, get_current_barber
from barbershop.ledger import get_working_hours, replace_working_hours
from barbershop.models import User
from barbershop.schemas import AvailabilityResponse, WorkingHoursEntry, WorkingHoursPublic

router = APIRouter(
    prefix="/barbers",
    tags=["barbers"],
)


@router.put("/me/working-hours", response_model=List[WorkingHoursPublic])
def replace_my_working_hours(
    entries: List[WorkingHoursEntry],
    session: Session = Depends(get_session),
    barber: User = Depends(get_current_barber),
):
    # Full replacement: days left out are closed
    return replace_working_hours(session, barber.id, entries)


@router.get("/me/working-hours", response_model=List[WorkingHoursPublic])
def get_my_working_hours(
    session: Session = Depends(get_session),
    barber: User = Depends(get_current_barber),
):
    return get_working_hours(session, barber.id)


@router.get("/{barber_id}/working-hours", response_model=List[WorkingHoursPublic])
def get_barber_working_hours(
    barber_id: int,
    session: Session = Depends(get_session),
):
    barber = session.get(User, barber_id)
    if barber is None or barber.role != "barber":
        raise HTTPException(status_code=404, detail="Barber not found")
    return get_working_hours(session, barber_id)


@router.get("/{barber_id}/availability", response_model=AvailabilityResponse)
def barber_availability(
    barber_id: int,
    date: date,
    allocator: AppointmentAllocator = Depends(get_allocator),
):
    return {
        "barber_id": barber_id,
        "date": date,
        "available_slots": allocator.open_slots(barber_id, date),
    }
