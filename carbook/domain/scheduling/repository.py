"""Time slot repository - Database operations for time slots"""

from datetime import date
from typing import Optional

from sqlalchemy import case, func, null, select
from sqlalchemy.orm import Session

from ...models import TERMINAL_STATUSES, Booking, TimeSlot
from ...shared.timeutils import utcnow


class TimeSlotRepository:
    """Repository for time slot database operations.

    Capacity counters are only ever changed with single conditional UPDATE
    statements; nothing here reads a counter and writes it back. Methods do
    not commit so the caller controls the transaction boundary.
    """

    @staticmethod
    def get_slot(db: Session, slot_id: str) -> Optional[TimeSlot]:
        """Get a time slot by ID"""
        return db.query(TimeSlot).filter(TimeSlot.id == slot_id).first()

    @staticmethod
    def add_slot(db: Session, **slot_data) -> TimeSlot:
        """Stage a new time slot with empty capacity counters"""
        slot = TimeSlot(current_bookings=0, is_available=True, **slot_data)
        db.add(slot)
        return slot

    @staticmethod
    def get_available_slots(db: Session, slot_date: date) -> list[TimeSlot]:
        """Get slots with remaining capacity on a date"""
        return (
            db.query(TimeSlot)
            .filter(
                TimeSlot.date == slot_date,
                TimeSlot.is_available.is_(True),
                TimeSlot.current_bookings < TimeSlot.max_capacity,
            )
            .order_by(TimeSlot.start_time.asc())
            .all()
        )

    @staticmethod
    def get_slots_in_range(db: Session, start_date: date, end_date: date) -> list[TimeSlot]:
        """Get all slots between two dates (inclusive)"""
        return (
            db.query(TimeSlot)
            .filter(TimeSlot.date >= start_date, TimeSlot.date <= end_date)
            .order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc())
            .all()
        )

    @staticmethod
    def get_existing_windows(
        db: Session, start_date: date, end_date: date
    ) -> set[tuple[date, str, str]]:
        """Get (date, start_time, end_time) of slots already stored in a range"""
        rows = (
            db.query(TimeSlot.date, TimeSlot.start_time, TimeSlot.end_time)
            .filter(TimeSlot.date >= start_date, TimeSlot.date <= end_date)
            .all()
        )
        return {(row.date, row.start_time, row.end_time) for row in rows}

    @staticmethod
    def get_slots_by_booking(db: Session, booking_id: str) -> list[TimeSlot]:
        """Get the slot a booking holds, plus any slot it last filled"""
        held_slot_ids = db.query(Booking.time_slot_id).filter(
            Booking.id == booking_id, Booking.time_slot_id.isnot(None)
        )
        return (
            db.query(TimeSlot)
            .filter((TimeSlot.booked_by == booking_id) | (TimeSlot.id.in_(held_slot_ids)))
            .order_by(TimeSlot.date.asc(), TimeSlot.start_time.asc())
            .all()
        )

    # Capacity mutations
    @staticmethod
    def increment_if_capacity(db: Session, slot_id: str, booking_id: str) -> int:
        """
        Take one unit of capacity if the slot still has room.

        Returns the number of rows updated: 1 when the unit was taken,
        0 when the slot was already full at write time.
        """
        return (
            db.query(TimeSlot)
            .filter(TimeSlot.id == slot_id, TimeSlot.current_bookings < TimeSlot.max_capacity)
            .update(
                {
                    TimeSlot.current_bookings: TimeSlot.current_bookings + 1,
                    TimeSlot.booked_by: booking_id,
                    TimeSlot.is_available: case(
                        (TimeSlot.current_bookings + 1 < TimeSlot.max_capacity, True),
                        else_=False,
                    ),
                    TimeSlot.updated_at: utcnow(),
                },
                synchronize_session=False,
            )
        )

    @staticmethod
    def decrement_if_booked(db: Session, slot_id: str, booking_id: Optional[str] = None) -> int:
        """
        Return one unit of capacity that no booking holds.

        The counter never drops below the number of bookings whose
        time_slot_id points at the slot, so a holder must be unclaimed in the
        same transaction before its unit can come back.

        Returns 1 when a unit was returned, 0 when every counted unit is held
        or the slot was already empty.
        """
        values = {
            TimeSlot.current_bookings: TimeSlot.current_bookings - 1,
            TimeSlot.is_available: True,
            TimeSlot.updated_at: utcnow(),
        }
        if booking_id:
            values[TimeSlot.booked_by] = case(
                (TimeSlot.booked_by == booking_id, null()), else_=TimeSlot.booked_by
            )

        holders = (
            select(func.count(Booking.id))
            .where(Booking.time_slot_id == slot_id)
            .scalar_subquery()
        )

        return (
            db.query(TimeSlot)
            .filter(TimeSlot.id == slot_id, TimeSlot.current_bookings > holders)
            .update(values, synchronize_session=False)
        )

    # Booking-side claim on a slot
    @staticmethod
    def claim_slot_for_booking(db: Session, booking_id: str, slot_id: str) -> int:
        """Point an open booking that holds no slot at this slot"""
        return (
            db.query(Booking)
            .filter(
                Booking.id == booking_id,
                Booking.time_slot_id.is_(None),
                Booking.status.notin_(TERMINAL_STATUSES),
            )
            .update(
                {Booking.time_slot_id: slot_id, Booking.updated_at: utcnow()},
                synchronize_session=False,
            )
        )

    @staticmethod
    def unclaim_slot_for_booking(db: Session, booking_id: str, slot_id: str) -> int:
        """Clear a booking's slot reference if it still points at this slot"""
        return (
            db.query(Booking)
            .filter(Booking.id == booking_id, Booking.time_slot_id == slot_id)
            .update(
                {Booking.time_slot_id: None, Booking.updated_at: utcnow()},
                synchronize_session=False,
            )
        )
