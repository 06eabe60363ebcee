"""Slot allocator - Atomic reservation and release of time slot capacity"""

import logging
from datetime import date
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...errors import ConflictError, InvalidRangeError, NotFoundError
from ...models import TERMINAL_STATUSES, TimeSlot
from ...shared.transactions import storage_guard
from ...shared.validators import validate_hhmm
from ..bookings.repository import BookingRepository
from .repository import TimeSlotRepository

logger = logging.getLogger(__name__)


class SlotAllocator:
    """Only writer of TimeSlot capacity counters.

    reserve() and release() each run as one transaction made of conditional
    UPDATE statements, so two workers racing for the last unit of a slot are
    serialized by the database: the first commit wins and the other sees a
    zero row count.
    """

    def __init__(self, db: Session):
        self.db = db
        self.repo = TimeSlotRepository()
        self.bookings = BookingRepository()

    def get_slot(self, slot_id: str) -> TimeSlot:
        """Get a specific time slot"""
        with storage_guard(self.db, f"loading time slot {slot_id}"):
            slot = self.repo.get_slot(self.db, slot_id)
        if not slot:
            raise NotFoundError("Time slot not found")
        return slot

    def list_available(self, slot_date: date) -> list[TimeSlot]:
        """Slots on a date that can still take a booking, ordered by start time"""
        with storage_guard(self.db, f"listing available slots for {slot_date}"):
            return self.repo.get_available_slots(self.db, slot_date)

    def list_in_range(self, start_date: date, end_date: date) -> list[TimeSlot]:
        """All slots in [start_date, end_date], ordered by date then start time"""
        with storage_guard(self.db, f"listing slots {start_date}..{end_date}"):
            return self.repo.get_slots_in_range(self.db, start_date, end_date)

    def slots_for_booking(self, booking_id: str) -> list[TimeSlot]:
        with storage_guard(self.db, f"listing slots for booking {booking_id}"):
            return self.repo.get_slots_by_booking(self.db, booking_id)

    def create_slot(
        self, slot_date: date, start_time: str, end_time: str, max_capacity: int = 1
    ) -> TimeSlot:
        """Create a single bookable slot (admin)"""
        try:
            start_time = validate_hhmm(start_time)
            end_time = validate_hhmm(end_time)
        except ValueError as e:
            raise InvalidRangeError(str(e)) from e
        if start_time >= end_time:
            raise InvalidRangeError("startTime must be before endTime")
        if max_capacity < 1:
            raise InvalidRangeError("maxCapacity must be at least 1")

        with storage_guard(self.db, "creating time slot"):
            slot = self.repo.add_slot(
                self.db,
                date=slot_date,
                start_time=start_time,
                end_time=end_time,
                max_capacity=max_capacity,
            )
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise ConflictError(
                    f"A time slot for {slot_date} {start_time}-{end_time} already exists"
                ) from e
            self.db.refresh(slot)

        logger.info(f"✅ Time slot {slot.id} created: {slot_date} {start_time}-{end_time}")
        return slot

    def reserve(self, slot_id: str, booking_id: str) -> bool:
        """
        Take one unit of a slot's capacity for a booking.

        Returns:
            True when the booking holds the slot after the call, False when
            the slot was already full at write time.

        Raises:
            NotFoundError: slot or booking does not exist
            ConflictError: booking is closed or already holds a different slot
            StorageError: database failure
        """
        self.get_slot(slot_id)

        with storage_guard(self.db, f"reserving time slot {slot_id}"):
            claimed = self.repo.claim_slot_for_booking(self.db, booking_id, slot_id)
            if not claimed:
                self.db.rollback()
                return self._explain_unclaimed_booking(slot_id, booking_id)

            taken = self.repo.increment_if_capacity(self.db, slot_id, booking_id)
            if not taken:
                # Slot filled up between listing and reserving
                self.db.rollback()
                logger.info(f"⚠️ Time slot {slot_id} is full, booking {booking_id} lost the race")
                return False

            self.db.commit()

        logger.info(f"✅ Time slot {slot_id} reserved for booking {booking_id}")
        return True

    def _explain_unclaimed_booking(self, slot_id: str, booking_id: str) -> bool:
        booking = self.bookings.get_booking(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        if booking.time_slot_id == slot_id:
            # Retried request: the unit was taken by the earlier attempt
            logger.info(f"Booking {booking_id} already holds time slot {slot_id}")
            return True
        if booking.status in TERMINAL_STATUSES:
            raise ConflictError(f"Booking is {booking.status} and cannot reserve a time slot")
        raise ConflictError(f"Booking already holds time slot {booking.time_slot_id}")

    def release(self, slot_id: str, booking_id: Optional[str] = None) -> None:
        """
        Return one unit of a slot's capacity.

        Idempotent: an empty slot stays at zero, and when booking_id is given
        the unit is only returned while that booking still holds the slot.
        Without booking_id only a unit that no booking holds is returned, so
        a slot never advertises capacity its holders still occupy.
        """
        self.get_slot(slot_id)

        with storage_guard(self.db, f"releasing time slot {slot_id}"):
            if booking_id:
                unclaimed = self.repo.unclaim_slot_for_booking(self.db, booking_id, slot_id)
                if not unclaimed:
                    self.db.rollback()
                    logger.info(
                        f"Booking {booking_id} does not hold time slot {slot_id}, nothing to release"
                    )
                    return

            returned = self.repo.decrement_if_booked(self.db, slot_id, booking_id)
            self.db.commit()

        if returned:
            logger.info(f"✅ Time slot {slot_id} released (booking={booking_id})")
        else:
            logger.info(f"Time slot {slot_id} has no unheld units, release ignored")
