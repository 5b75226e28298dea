# barbershop/routers/appointments_routes.py

from datetime import datetime, timedelta, date
from typing import Optional, List

from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select

from barbershop.allocator import AppointmentAllocator
from barbershop.auth import get_current_user
from barbershop.db import get_session
from barbershop.deps import get_allocator, get_current_barber, get_current_client
from barbershop.models import Appointment, User
from barbershop.schemas import (
    AppointmentCreate,
    AppointmentPublic,
    AppointmentStatusUpdate,
    ClientAppointmentCreate,
)
from barbershop.status import AppointmentStatus

router = APIRouter(
    tags=["appointments"],
)


def _check_access(appointment: Appointment, user: User):
    # Client who booked OR the barber
    if user.id not in (appointment.client_id, appointment.barber_id):
        raise HTTPException(status_code=403, detail="Forbidden")


@router.post("/appointments", response_model=AppointmentPublic, status_code=201)
def create_appointment(
    appt: AppointmentCreate,
    allocator: AppointmentAllocator = Depends(get_allocator),
    barber: User = Depends(get_current_barber),
):
    # Barber books on behalf of a client (walk-ins, phone calls)
    return allocator.book(
        barber_id=barber.id,
        client_id=appt.client_id,
        service_id=appt.service_id,
        day=appt.date,
        requested_time=appt.time,
        notes=appt.notes,
    )


@router.post("/barbers/{barber_id}/appointments", response_model=AppointmentPublic, status_code=201)
def client_create_appointment(
    barber_id: int,
    appt: ClientAppointmentCreate,
    allocator: AppointmentAllocator = Depends(get_allocator),
    client: User = Depends(get_current_client),
):
    return allocator.book(
        barber_id=barber_id,
        client_id=client.id,
        service_id=appt.service_id,
        day=appt.date,
        requested_time=appt.time,
        notes=appt.notes,
    )


@router.get("/appointments/{appt_id}", response_model=AppointmentPublic)
def get_appointment(
    appt_id: int,
    allocator: AppointmentAllocator = Depends(get_allocator),
    current_user: User = Depends(get_current_user),
):
    target = allocator.get(appt_id)
    _check_access(target, current_user)
    return target


@router.patch("/appointments/{appt_id}/status", response_model=AppointmentPublic)
def update_appointment_status(
    appt_id: int,
    update: AppointmentStatusUpdate,
    allocator: AppointmentAllocator = Depends(get_allocator),
    barber: User = Depends(get_current_barber),
):
    target = allocator.get(appt_id)
    if target.barber_id != barber.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return allocator.update_status(appt_id, update.status)


@router.patch("/appointments/{appt_id}/cancel", response_model=AppointmentPublic)
def cancel_appointment(
    appt_id: int,
    allocator: AppointmentAllocator = Depends(get_allocator),
    current_user: User = Depends(get_current_user),
):
    target = allocator.get(appt_id)
    _check_access(target, current_user)

    # The barber hears about client cancellations; their own need no inbox entry
    by_client = current_user.id == target.client_id
    return allocator.update_status(appt_id, AppointmentStatus.cancelled, notify_barber=by_client)


@router.delete("/appointments/{appt_id}", status_code=204)
def delete_appointment(
    appt_id: int,
    allocator: AppointmentAllocator = Depends(get_allocator),
    barber: User = Depends(get_current_barber),
):
    target = allocator.get(appt_id)
    if target.barber_id != barber.id:
        raise HTTPException(status_code=403, detail="Forbidden")
    allocator.delete(appt_id)


@router.get("/barbers/me/appointments", response_model=List[AppointmentPublic])
def list_barber_appointments(
    status: Optional[AppointmentStatus] = None,
    on_date: Optional[date] = None,
    start: Optional[date] = None,
    end: Optional[date] = None,
    session: Session = Depends(get_session),
    barber: User = Depends(get_current_barber),
):
    stmt = select(Appointment).where(Appointment.barber_id == barber.id)

    if on_date is not None:
        start = end = on_date

    # Date range is inclusive on both ends
    if start is not None:
        stmt = stmt.where(Appointment.date >= datetime.combine(start, datetime.min.time()))
    if end is not None:
        end_dt = datetime.combine(end, datetime.min.time()) + timedelta(days=1)
        stmt = stmt.where(Appointment.date < end_dt)

    if status is not None:
        stmt = stmt.where(Appointment.status == status)

    stmt = stmt.order_by(Appointment.date)

    return session.exec(stmt).all()


@router.get("/clients/me/appointments", response_model=List[AppointmentPublic])
def list_my_appointments(
    status: Optional[AppointmentStatus] = None,
    session: Session = Depends(get_session),
    client: User = Depends(get_current_client),
):
    stmt = select(Appointment).where(Appointment.client_id == client.id)

    if status is not None:
        stmt = stmt.where(Appointment.status == status)

    stmt = stmt.order_by(Appointment.date)

    return session.exec(stmt).all()
