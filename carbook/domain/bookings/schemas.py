"""Booking domain schemas - Pydantic models for validation"""

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, field_validator

from ...models import BookingStatus
from ...shared.validators import validate_uuid


class BookingCreate(BaseModel):
    """Schema for creating a new booking"""

    userId: str
    vehicleId: str
    serviceId: str
    scheduledDate: datetime
    estimatedCompletion: Optional[datetime] = None
    totalPrice: Optional[Decimal] = None
    notes: Optional[str] = None
    pickupAddress: Optional[str] = None
    deliveryAddress: Optional[str] = None
    priority: Literal["low", "normal", "high", "urgent"] = "normal"

    @field_validator("userId", "vehicleId", "serviceId")
    @classmethod
    def validate_ids(cls, v):
        if not validate_uuid(v):
            raise ValueError("Must be a valid UUID")
        return v


class BookingStatusUpdate(BaseModel):
    """Schema for a status change"""

    status: BookingStatus
    technicianNotes: Optional[str] = None


class BookingResponse(BaseModel):
    """Schema for booking response"""

    id: str
    userId: str
    vehicleId: str
    serviceId: str
    status: BookingStatus
    scheduledDate: datetime
    estimatedCompletion: Optional[datetime] = None
    actualCompletion: Optional[datetime] = None
    totalPrice: Optional[Decimal] = None
    notes: Optional[str] = None
    technicianNotes: Optional[str] = None
    pickupAddress: Optional[str] = None
    deliveryAddress: Optional[str] = None
    priority: str
    completionCallTriggered: bool
    timeSlotId: Optional[str] = None
    createdAt: Optional[datetime] = None
    updatedAt: Optional[datetime] = None

    @classmethod
    def from_booking(cls, booking) -> "BookingResponse":
        return cls(
            id=booking.id,
            userId=booking.user_id,
            vehicleId=booking.vehicle_id,
            serviceId=booking.service_id,
            status=booking.status,
            scheduledDate=booking.scheduled_date,
            estimatedCompletion=booking.estimated_completion,
            actualCompletion=booking.actual_completion,
            totalPrice=booking.total_price,
            notes=booking.notes,
            technicianNotes=booking.technician_notes,
            pickupAddress=booking.pickup_address,
            deliveryAddress=booking.delivery_address,
            priority=booking.priority,
            completionCallTriggered=booking.completion_call_triggered,
            timeSlotId=booking.time_slot_id,
            createdAt=booking.created_at,
            updatedAt=booking.updated_at,
        )


class CompletionCallOutcome(BaseModel):
    attempted: bool
    delivered: bool
    warning: Optional[str] = None


class BookingStatusResponse(BookingResponse):
    """Booking after a status change, with the completion call outcome"""

    completionCall: Optional[CompletionCallOutcome] = None
    warnings: list[str] = []
