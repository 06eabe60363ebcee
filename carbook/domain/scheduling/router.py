"""Time slot router - FastAPI endpoints for slot queries and capacity changes"""

import logging
from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_staff
from ...database import get_db
from ...models import Booking, User, UserRole
from .allocator import SlotAllocator
from .generator import SlotGenerator
from .schemas import (
    BookSlotResponse,
    GenerateResponse,
    TimeSlotBook,
    TimeSlotCreate,
    TimeSlotGenerate,
    TimeSlotRelease,
    TimeSlotResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/time-slots", tags=["Time Slots"])


def get_slot_allocator(db: Session = Depends(get_db)) -> SlotAllocator:
    """Dependency injection for SlotAllocator"""
    return SlotAllocator(db)


def get_slot_generator(db: Session = Depends(get_db)) -> SlotGenerator:
    """Dependency injection for SlotGenerator"""
    return SlotGenerator(db)


# ============================================================================
# QUERIES
# ============================================================================


@router.get("/available/{slot_date}", response_model=list[TimeSlotResponse])
async def get_available_slots(
    slot_date: date,
    current_user: User = Depends(get_current_user),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    """Get slots with remaining capacity for a date"""
    return [TimeSlotResponse.from_slot(s) for s in allocator.list_available(slot_date)]


@router.get("/range", response_model=list[TimeSlotResponse])
async def get_slots_in_range(
    start_date: date = Query(..., alias="startDate"),
    end_date: date = Query(..., alias="endDate"),
    current_user: User = Depends(require_admin),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    """Get all time slots for a date range (admin only)"""
    return [TimeSlotResponse.from_slot(s) for s in allocator.list_in_range(start_date, end_date)]


@router.get("/booking/{booking_id}", response_model=list[TimeSlotResponse])
async def get_slots_for_booking(
    booking_id: str,
    current_user: User = Depends(require_staff),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    """Get the slots linked to a booking"""
    return [TimeSlotResponse.from_slot(s) for s in allocator.slots_for_booking(booking_id)]


# ============================================================================
# MUTATIONS
# ============================================================================


@router.post("", response_model=TimeSlotResponse, status_code=status.HTTP_201_CREATED)
async def create_time_slot(
    data: TimeSlotCreate,
    current_user: User = Depends(require_admin),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    """Create a single time slot (admin only)"""
    slot = allocator.create_slot(data.date, data.startTime, data.endTime, data.maxCapacity)
    return TimeSlotResponse.from_slot(slot)


@router.post("/generate", response_model=GenerateResponse)
async def generate_time_slots(
    data: TimeSlotGenerate,
    current_user: User = Depends(require_admin),
    generator: SlotGenerator = Depends(get_slot_generator),
):
    """Generate time slots for a date range (admin only)"""
    logger.info(
        f"📥 Slot generation requested by {current_user.id}: {data.startDate}..{data.endDate} "
        f"{data.startTime}-{data.endTime} every {data.slotDuration}min"
    )
    slots = generator.generate(
        data.startDate,
        data.endDate,
        data.startTime,
        data.endTime,
        data.slotDuration,
        data.maxCapacity,
    )
    return GenerateResponse(
        message=f"Generated {len(slots)} time slots",
        slots=[TimeSlotResponse.from_slot(s) for s in slots],
    )


@router.post("/book", response_model=BookSlotResponse)
async def book_time_slot(
    data: TimeSlotBook,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    """Reserve one unit of a time slot for a booking"""
    if current_user.role == UserRole.CUSTOMER.value:
        booking = db.query(Booking).filter(Booking.id == data.bookingId).first()
        if booking and booking.user_id != current_user.id:
            raise HTTPException(status_code=403, detail="Not authorized")

    if not allocator.reserve(data.timeSlotId, data.bookingId):
        raise HTTPException(status_code=409, detail="Time slot is no longer available")

    return BookSlotResponse(success=True, message="Time slot booked successfully")


@router.post("/{slot_id}/release", response_model=TimeSlotResponse)
async def release_time_slot(
    slot_id: str,
    data: Optional[TimeSlotRelease] = None,
    current_user: User = Depends(require_staff),
    allocator: SlotAllocator = Depends(get_slot_allocator),
):
    """Return one unit of a slot's capacity"""
    allocator.release(slot_id, data.bookingId if data else None)
    return TimeSlotResponse.from_slot(allocator.get_slot(slot_id))
