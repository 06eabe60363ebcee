import uuid
from enum import Enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base


def generate_id():
    """Generate a UUID string primary key"""
    return str(uuid.uuid4())


class UserRole(str, Enum):
    CUSTOMER = "customer"
    ADMIN = "admin"
    TECHNICIAN = "technician"


class BookingStatus(str, Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = (BookingStatus.COMPLETED.value, BookingStatus.CANCELLED.value)


class User(Base):
    """Account record owned by the user management service; read here for auth and phone lookup"""

    __tablename__ = "users"

    id = Column(String(36), primary_key=True, default=generate_id)
    email = Column(String(255), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False)
    phone = Column(String(20), nullable=True)  # E.164, e.g. +919876543210
    role = Column(String(20), nullable=False, default=UserRole.CUSTOMER.value)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    bookings = relationship("Booking", back_populates="user")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String(36), primary_key=True, default=generate_id)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    vehicle_id = Column(String(36), nullable=False)
    service_id = Column(String(36), nullable=False)

    # Status workflow: pending → confirmed → in_progress → completed
    # cancelled is reachable from any non-terminal status
    # Only BookingStateMachine writes this column
    status = Column(String(20), default=BookingStatus.PENDING.value, nullable=False, index=True)

    scheduled_date = Column(DateTime, nullable=False)
    estimated_completion = Column(DateTime, nullable=True)
    actual_completion = Column(DateTime, nullable=True)  # Set once, on entering completed

    total_price = Column(Numeric(10, 2), nullable=True)
    notes = Column(Text, nullable=True)  # Customer notes or special requests
    technician_notes = Column(Text, nullable=True)
    pickup_address = Column(Text, nullable=True)
    delivery_address = Column(Text, nullable=True)
    priority = Column(String(10), default="normal", nullable=False)  # low, normal, high, urgent

    # Idempotency guard for the completion voice call; never reset once true
    completion_call_triggered = Column(Boolean, default=False, nullable=False)

    # Slot currently holding one unit of capacity for this booking
    time_slot_id = Column(String(36), ForeignKey("time_slots.id"), nullable=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="bookings")
    time_slot = relationship("TimeSlot")

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'confirmed', 'in_progress', 'completed', 'cancelled')",
            name="check_booking_status",
        ),
    )

    def __repr__(self) -> str:
        return f"<Booking(id={self.id}, status={self.status}, slot={self.time_slot_id})>"


class TimeSlot(Base):
    __tablename__ = "time_slots"

    id = Column(String(36), primary_key=True, default=generate_id)
    date = Column(Date, nullable=False, index=True)
    start_time = Column(String(5), nullable=False)  # HH:MM format
    end_time = Column(String(5), nullable=False)

    # Capacity counters - mutated only by SlotAllocator through conditional updates
    max_capacity = Column(Integer, default=1, nullable=False)
    current_bookings = Column(Integer, default=0, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)  # current_bookings < max_capacity
    booked_by = Column(String(36), nullable=True)  # Booking that last filled the slot, informational

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    __table_args__ = (
        UniqueConstraint("date", "start_time", "end_time", name="uq_time_slot_window"),
        CheckConstraint("max_capacity >= 1", name="check_slot_capacity_positive"),
        CheckConstraint(
            "current_bookings >= 0 AND current_bookings <= max_capacity",
            name="check_slot_bookings_within_capacity",
        ),
        CheckConstraint("start_time < end_time", name="check_slot_window_order"),
    )

    def __repr__(self) -> str:
        return (
            f"<TimeSlot(id={self.id}, date={self.date}, {self.start_time}-{self.end_time}, "
            f"{self.current_bookings}/{self.max_capacity})>"
        )
