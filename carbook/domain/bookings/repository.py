"""Booking repository - Database operations for bookings"""

from typing import Any, Optional

from sqlalchemy.orm import Session

from ...models import Booking


class BookingRepository:
    """Repository for booking database operations"""

    @staticmethod
    def get_booking(db: Session, booking_id: str) -> Optional[Booking]:
        """Get a booking by ID"""
        return db.query(Booking).filter(Booking.id == booking_id).first()

    @staticmethod
    def create_booking(db: Session, **booking_data) -> Booking:
        """Create a new booking in pending status"""
        booking = Booking(status="pending", completion_call_triggered=False, **booking_data)
        db.add(booking)
        db.commit()
        db.refresh(booking)
        return booking

    @staticmethod
    def get_all_bookings(db: Session) -> list[Booking]:
        """Get all bookings, latest scheduled first"""
        return db.query(Booking).order_by(Booking.scheduled_date.desc()).all()

    @staticmethod
    def get_bookings_by_status(db: Session, status: str) -> list[Booking]:
        """Get bookings in a given status, latest scheduled first"""
        return (
            db.query(Booking)
            .filter(Booking.status == status)
            .order_by(Booking.scheduled_date.desc())
            .all()
        )

    @staticmethod
    def get_bookings_by_user(db: Session, user_id: str) -> list[Booking]:
        """Get a customer's bookings, newest first"""
        return (
            db.query(Booking)
            .filter(Booking.user_id == user_id)
            .order_by(Booking.created_at.desc())
            .all()
        )

    @staticmethod
    def compare_and_set(
        db: Session,
        booking_id: str,
        expected_status: str,
        expected_call_triggered: bool,
        expected_time_slot_id: Optional[str],
        updates: dict[Any, Any],
    ) -> int:
        """
        Apply updates only if status, completion flag and held slot still
        hold the values the caller read. Does not commit.

        Returns 1 when the row was updated, 0 when another writer got there first.
        """
        if expected_time_slot_id is None:
            slot_condition = Booking.time_slot_id.is_(None)
        else:
            slot_condition = Booking.time_slot_id == expected_time_slot_id

        return (
            db.query(Booking)
            .filter(
                Booking.id == booking_id,
                Booking.status == expected_status,
                Booking.completion_call_triggered.is_(expected_call_triggered),
                slot_condition,
            )
            .update(updates, synchronize_session=False)
        )
