"""Booking service - Booking records and queries"""

import logging

from sqlalchemy.orm import Session

from ...errors import NotFoundError
from ...models import Booking, BookingStatus
from ...shared.transactions import storage_guard
from .repository import BookingRepository
from .schemas import BookingCreate

logger = logging.getLogger(__name__)


class BookingService:
    """Service layer for booking records. Status changes go through BookingStateMachine."""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BookingRepository()

    def create_booking(self, data: BookingCreate) -> Booking:
        """Create a pending booking"""
        logger.info(f"📥 Creating booking for user_id: {data.userId}")
        with storage_guard(self.db, "creating booking"):
            booking = self.repo.create_booking(
                self.db,
                user_id=data.userId,
                vehicle_id=data.vehicleId,
                service_id=data.serviceId,
                scheduled_date=data.scheduledDate,
                estimated_completion=data.estimatedCompletion,
                total_price=data.totalPrice,
                notes=data.notes,
                pickup_address=data.pickupAddress,
                delivery_address=data.deliveryAddress,
                priority=data.priority,
            )
        logger.info(f"✅ Booking {booking.id} created")
        return booking

    def get_booking(self, booking_id: str) -> Booking:
        """Get a specific booking"""
        with storage_guard(self.db, f"loading booking {booking_id}"):
            booking = self.repo.get_booking(self.db, booking_id)
        if not booking:
            raise NotFoundError("Booking not found")
        return booking

    def get_all_bookings(self) -> list[Booking]:
        with storage_guard(self.db, "listing bookings"):
            return self.repo.get_all_bookings(self.db)

    def get_bookings_by_status(self, status: BookingStatus) -> list[Booking]:
        with storage_guard(self.db, f"listing {status.value} bookings"):
            return self.repo.get_bookings_by_status(self.db, status.value)

    def get_bookings_by_user(self, user_id: str) -> list[Booking]:
        with storage_guard(self.db, f"listing bookings for user {user_id}"):
            return self.repo.get_bookings_by_user(self.db, user_id)
