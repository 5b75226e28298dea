"""Tests for booking allocation and status changes."""
import threading
from datetime import date, datetime, time, timedelta

import pytest
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from barbershop.allocator import AppointmentAllocator, SlotLocks
from barbershop.errors import InvalidTransition, NotFound, OutOfWindow, SlotConflict, ValidationError
from barbershop.db import init_db, make_engine
from barbershop.models import Appointment, Notification, Service, User, WorkingHours
from barbershop.status import AppointmentStatus


def test_open_slots_for_empty_monday(allocator, barber, monday, monday_hours):
    assert allocator.open_slots(barber.id, monday) == ["09:00", "09:30", "10:00", "10:30"]


def test_open_slots_for_unknown_barber(allocator, client_user, monday):
    with pytest.raises(NotFound):
        allocator.open_slots(client_user.id, monday)


def test_day_off_has_no_slots(session, allocator, barber, monday):
    session.add(WorkingHours(barber_id=barber.id, day_of_week=1, is_working=False, start_time="09:00", end_time="18:00"))
    session.commit()
    assert allocator.open_slots(barber.id, monday) == []


def test_book_auto_confirms_and_takes_the_slot(allocator, barber, client_user, service, monday, monday_hours):
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "10:00", notes="skin fade")

    assert appointment.id is not None
    assert appointment.status == AppointmentStatus.confirmed
    assert appointment.date == datetime.combine(monday, datetime.min.time()).replace(hour=10)
    assert appointment.notes == "skin fade"
    assert appointment.notification_read is False
    assert allocator.open_slots(barber.id, monday) == ["09:00", "09:30", "10:30"]


def test_book_records_notification_and_publishes_event(
    session, allocator, received, barber, client_user, service, monday, monday_hours
):
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "09:30")

    rows = session.exec(select(Notification).where(Notification.barber_id == barber.id)).all()
    assert len(rows) == 1
    assert rows[0].type == "new_appointment"
    assert rows[0].appointment_id == appointment.id
    assert rows[0].read is False
    assert "Ana Silva" in rows[0].message

    assert len(received) == 1
    event = received[0]
    assert event["type"] == "new_appointment"
    assert event["appointmentId"] == appointment.id
    assert event["clientName"] == "Ana Silva"
    assert event["serviceName"] == service.name
    assert event["clientId"] == client_user.id
    assert event["serviceId"] == service.id
    assert event["time"] == "09:30"
    assert event["date"] == monday.strftime("%d/%m/%Y")


def test_broken_live_channel_does_not_fail_booking(hub, allocator, barber, client_user, service, monday, monday_hours):
    def broken(event):
        raise ConnectionError("barber offline")

    hub.subscribe(broken)
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "09:00")
    assert appointment.status == AppointmentStatus.confirmed


def test_auto_confirm_off_leaves_pending(session, hub, barber, client_user, service, monday, monday_hours):
    allocator = AppointmentAllocator(session, sink=hub, auto_confirm=False, locks=SlotLocks())
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "09:00")
    assert appointment.status == AppointmentStatus.pending

    confirmed = allocator.update_status(appointment.id, AppointmentStatus.confirmed)
    assert confirmed.status == AppointmentStatus.confirmed
    assert confirmed.notification_read is True
    note = session.exec(select(Notification).where(Notification.appointment_id == appointment.id)).one()
    assert note.read is True


def test_second_booking_of_same_slot_conflicts(allocator, barber, client_user, service, monday, monday_hours):
    allocator.book(barber.id, client_user.id, service.id, monday, "09:30")
    with pytest.raises(SlotConflict):
        allocator.book(barber.id, client_user.id, service.id, monday, "09:30")


@pytest.mark.parametrize("requested", ["08:30", "11:00", "09:15", "23:00"])
def test_time_outside_generated_slots_is_out_of_window(allocator, barber, client_user, service, monday, monday_hours, requested):
    with pytest.raises(OutOfWindow):
        allocator.book(barber.id, client_user.id, service.id, monday, requested)


def test_booking_on_a_day_without_hours(allocator, barber, client_user, service, monday, monday_hours):
    tuesday = date.fromordinal(monday.toordinal() + 1)
    with pytest.raises(OutOfWindow):
        allocator.book(barber.id, client_user.id, service.id, tuesday, "09:00")


def test_validation_errors_write_nothing(session, allocator, barber, client_user, service, monday, monday_hours):
    with pytest.raises(ValidationError):
        allocator.book(barber.id, client_user.id, 9999, monday, "09:00")
    with pytest.raises(ValidationError):
        allocator.book(barber.id, 9999, service.id, monday, "09:00")
    with pytest.raises(ValidationError):
        allocator.book(barber.id, client_user.id, service.id, monday, "9am")
    with pytest.raises(NotFound):
        allocator.book(9999, client_user.id, service.id, monday, "09:00")

    assert session.exec(select(Appointment)).all() == []
    assert session.exec(select(Notification)).all() == []


def test_booking_in_the_past_is_rejected(allocator, barber, client_user, service, monday_hours):
    past_monday = date(2001, 1, 1)
    with pytest.raises(ValidationError):
        allocator.book(barber.id, client_user.id, service.id, past_monday, "09:00")


def test_cancelling_frees_the_slot(allocator, barber, client_user, service, monday, monday_hours):
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "10:00")
    assert "10:00" not in allocator.open_slots(barber.id, monday)

    allocator.update_status(appointment.id, AppointmentStatus.cancelled)
    assert "10:00" in allocator.open_slots(barber.id, monday)

    rebooked = allocator.book(barber.id, client_user.id, service.id, monday, "10:00")
    assert rebooked.id != appointment.id


def test_deleting_frees_the_slot(session, allocator, barber, client_user, service, monday, monday_hours):
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "10:30")
    allocator.delete(appointment.id)

    assert "10:30" in allocator.open_slots(barber.id, monday)
    assert session.exec(select(Notification)).one().appointment_id is None
    with pytest.raises(NotFound):
        allocator.get(appointment.id)


def test_pending_to_completed_is_invalid(session, hub, barber, client_user, service, monday, monday_hours):
    allocator = AppointmentAllocator(session, sink=hub, auto_confirm=False, locks=SlotLocks())
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "09:00")

    with pytest.raises(InvalidTransition):
        allocator.update_status(appointment.id, AppointmentStatus.completed)
    session.refresh(appointment)
    assert appointment.status == AppointmentStatus.pending


def test_completed_is_terminal(allocator, barber, client_user, service, monday, monday_hours):
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "09:00")
    allocator.update_status(appointment.id, AppointmentStatus.completed)

    with pytest.raises(InvalidTransition):
        allocator.update_status(appointment.id, AppointmentStatus.cancelled)


def test_client_cancellation_notifies_barber(session, allocator, received, barber, client_user, service, monday, monday_hours):
    appointment = allocator.book(barber.id, client_user.id, service.id, monday, "09:00")
    allocator.update_status(appointment.id, AppointmentStatus.cancelled, notify_barber=True)

    types = [n.type for n in session.exec(select(Notification).order_by(Notification.id)).all()]
    assert types == ["new_appointment", "appointment_cancelled"]
    assert [e["type"] for e in received] == ["new_appointment", "appointment_cancelled"]


def test_concurrent_bookings_for_one_slot(engine, hub, barber, client_user, service, monday, monday_hours):
    locks = SlotLocks()
    barrier = threading.Barrier(2)
    outcomes = []

    def attempt():
        with Session(engine) as session:
            allocator = AppointmentAllocator(session, sink=hub, locks=locks)
            barrier.wait()
            try:
                appointment = allocator.book(barber.id, client_user.id, service.id, monday, "09:30")
                outcomes.append(("ok", appointment.id))
            except SlotConflict:
                outcomes.append(("conflict", None))

    threads = [threading.Thread(target=attempt) for _ in range(2)]
    for t in threads:
        t.start()
    for t in threads:
        t.join(timeout=30)

    assert sorted(kind for kind, _ in outcomes) == ["conflict", "ok"]
    with Session(engine) as session:
        assert len(session.exec(select(Appointment)).all()) == 1


def test_unique_index_catches_a_stale_check(monkeypatch, allocator, barber, client_user, service, monday, monday_hours):
    allocator.book(barber.id, client_user.id, service.id, monday, "09:00")

    # Simulate another process whose ledger read missed the first booking
    monkeypatch.setattr("barbershop.allocator.booked_times", lambda *args: [])
    with pytest.raises(SlotConflict):
        allocator.book(barber.id, client_user.id, service.id, monday, "09:00")


def test_unique_index_ignores_cancelled_rows(session, barber, client_user, service):
    when = datetime(2030, 1, 7, 9, 0)

    def add(status):
        session.add(Appointment(barber_id=barber.id, client_id=client_user.id, service_id=service.id, date=when, status=status))
        session.commit()

    add(AppointmentStatus.cancelled)
    add(AppointmentStatus.cancelled)
    add(AppointmentStatus.confirmed)
    with pytest.raises(IntegrityError):
        add(AppointmentStatus.pending)


def test_barber_cannot_be_booked_as_the_client(session, allocator, barber, service, monday, monday_hours):
    with pytest.raises(ValidationError):
        allocator.book(barber.id, barber.id, service.id, monday, "09:00")
    assert session.exec(select(Appointment)).all() == []


def test_slot_locks_are_released_after_booking(session, hub, barber, client_user, service, monday, monday_hours):
    locks = SlotLocks()
    allocator = AppointmentAllocator(session, sink=hub, locks=locks)

    allocator.book(barber.id, client_user.id, service.id, monday, "09:00")
    with pytest.raises(SlotConflict):
        allocator.book(barber.id, client_user.id, service.id, monday, "09:00")
    with pytest.raises(OutOfWindow):
        allocator.book(barber.id, client_user.id, service.id, monday, "07:00")

    assert len(locks) == 0


def test_slot_locks_drop_entries_when_released():
    locks = SlotLocks()
    day = date(2030, 1, 7)
    with locks.hold(1, day):
        assert len(locks) == 1
        with locks.hold(1, date(2030, 1, 8)):
            assert len(locks) == 2
    assert len(locks) == 0


def test_naive_timestamps_survive_a_fresh_engine(tmp_path, hub, monday):
    url = f"sqlite:///{tmp_path / 'readback.db'}"
    first = make_engine(url)
    init_db(first)
    with Session(first) as session:
        barber = User(email="b@shop.test", password_hash="x", role="barber")
        client = User(email="c@shop.test", password_hash="x", role="client")
        session.add(barber)
        session.add(client)
        session.commit()
        barber_id, client_id = barber.id, client.id

        session.add(WorkingHours(barber_id=barber_id, day_of_week=1, start_time="09:00", end_time="11:00"))
        session.commit()
        service_id = session.exec(select(Service)).first().id
        booked = AppointmentAllocator(session, sink=hub, locks=SlotLocks()).book(
            barber_id, client_id, service_id, monday, "10:00"
        )
        booked_id = booked.id
    first.dispose()

    second = make_engine(url)
    with Session(second) as session:
        appointment = session.get(Appointment, booked_id)
        assert appointment.date == datetime.combine(monday, time(10, 0))
        assert appointment.date.tzinfo is None
        assert appointment.created_at.tzinfo is None
        note = session.exec(select(Notification)).one()
        assert note.created_at.tzinfo is None
        assert AppointmentAllocator(session, sink=hub).open_slots(barber_id, monday) == ["09:00", "09:30", "10:30"]
    second.dispose()


def test_past_times_today_are_not_offered(allocator, barber, monday, monday_hours):
    midmorning = datetime.combine(monday, time(9, 40))
    assert allocator.open_slots(barber.id, monday, now=midmorning) == ["10:00", "10:30"]

    day_before = datetime.combine(monday, time(9, 40)) - timedelta(days=1)
    assert allocator.open_slots(barber.id, monday, now=day_before) == ["09:00", "09:30", "10:00", "10:30"]
