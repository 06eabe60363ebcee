"""Scheduling domain schemas - Pydantic models for validation"""

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...shared.validators import validate_hhmm, validate_uuid


class TimeSlotCreate(BaseModel):
    """Schema for creating a single time slot"""

    date: dt.date
    startTime: str
    endTime: str
    maxCapacity: int = Field(default=1, ge=1)

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return validate_hhmm(v)


class TimeSlotGenerate(BaseModel):
    """Schema for generating slots over a date range"""

    startDate: dt.date
    endDate: dt.date
    startTime: str
    endTime: str
    slotDuration: int  # minutes
    maxCapacity: int = 1

    @field_validator("startTime", "endTime")
    @classmethod
    def validate_time(cls, v):
        return validate_hhmm(v)


class TimeSlotBook(BaseModel):
    """Schema for reserving a time slot against a booking"""

    timeSlotId: str
    bookingId: str

    @field_validator("timeSlotId", "bookingId")
    @classmethod
    def validate_ids(cls, v):
        if not validate_uuid(v):
            raise ValueError("Must be a valid UUID")
        return v


class TimeSlotRelease(BaseModel):
    """Schema for releasing a unit of a time slot"""

    bookingId: Optional[str] = None

    @field_validator("bookingId")
    @classmethod
    def validate_booking_id(cls, v):
        if v is not None and not validate_uuid(v):
            raise ValueError("Must be a valid UUID")
        return v


class TimeSlotResponse(BaseModel):
    """Schema for time slot response"""

    id: str
    date: dt.date
    startTime: str
    endTime: str
    maxCapacity: int
    currentBookings: int
    isAvailable: bool
    bookedBy: Optional[str] = None
    createdAt: Optional[dt.datetime] = None

    @classmethod
    def from_slot(cls, slot) -> "TimeSlotResponse":
        return cls(
            id=slot.id,
            date=slot.date,
            startTime=slot.start_time,
            endTime=slot.end_time,
            maxCapacity=slot.max_capacity,
            currentBookings=slot.current_bookings,
            isAvailable=slot.is_available,
            bookedBy=slot.booked_by,
            createdAt=slot.created_at,
        )


class GenerateResponse(BaseModel):
    message: str
    slots: list[TimeSlotResponse]


class BookSlotResponse(BaseModel):
    success: bool
    message: str
