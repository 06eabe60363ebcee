"""Booking router - FastAPI endpoints for bookings and status changes"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_staff
from ...database import get_db
from ...models import BookingStatus, User, UserRole
from ...services.twilio_service import TwilioVoiceNotifier
from .schemas import (
    BookingCreate,
    BookingResponse,
    BookingStatusResponse,
    BookingStatusUpdate,
    CompletionCallOutcome,
)
from .service import BookingService
from .state_machine import BookingStateMachine, CompletionNotifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/bookings", tags=["Bookings"])


def get_booking_service(db: Session = Depends(get_db)) -> BookingService:
    """Dependency injection for BookingService"""
    return BookingService(db)


def get_completion_notifier(db: Session = Depends(get_db)) -> CompletionNotifier:
    """Dependency injection for the completion call notifier"""
    return TwilioVoiceNotifier(db)


def get_state_machine(
    db: Session = Depends(get_db),
    notifier: CompletionNotifier = Depends(get_completion_notifier),
) -> BookingStateMachine:
    """Dependency injection for BookingStateMachine"""
    return BookingStateMachine(db, notifier)


def _is_staff(user: User) -> bool:
    return user.role in (UserRole.ADMIN.value, UserRole.TECHNICIAN.value)


# ============================================================================
# BOOKINGS
# ============================================================================


@router.post("", response_model=BookingResponse, status_code=status.HTTP_201_CREATED)
async def create_booking(
    data: BookingCreate,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Create a booking. Customers may only book for themselves."""
    if not _is_staff(current_user) and data.userId != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    return BookingResponse.from_booking(service.create_booking(data))


@router.get("", response_model=list[BookingResponse])
async def get_bookings(
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    """Get all bookings (staff only)"""
    return [BookingResponse.from_booking(b) for b in service.get_all_bookings()]


@router.get("/status/{booking_status}", response_model=list[BookingResponse])
async def get_bookings_by_status(
    booking_status: BookingStatus,
    current_user: User = Depends(require_staff),
    service: BookingService = Depends(get_booking_service),
):
    """Get bookings in a given status (staff only)"""
    return [BookingResponse.from_booking(b) for b in service.get_bookings_by_status(booking_status)]


@router.get("/user/{user_id}", response_model=list[BookingResponse])
async def get_user_bookings(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get bookings for a user"""
    if not _is_staff(current_user) and user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    return [BookingResponse.from_booking(b) for b in service.get_bookings_by_user(user_id)]


@router.get("/{booking_id}", response_model=BookingResponse)
async def get_booking(
    booking_id: str,
    current_user: User = Depends(get_current_user),
    service: BookingService = Depends(get_booking_service),
):
    """Get a specific booking"""
    booking = service.get_booking(booking_id)
    if not _is_staff(current_user) and booking.user_id != current_user.id:
        raise HTTPException(status_code=403, detail="Not authorized")
    return BookingResponse.from_booking(booking)


# ============================================================================
# STATUS
# ============================================================================


@router.patch("/{booking_id}/status", response_model=BookingStatusResponse)
async def update_booking_status(
    booking_id: str,
    data: BookingStatusUpdate,
    current_user: User = Depends(require_staff),
    state_machine: BookingStateMachine = Depends(get_state_machine),
):
    """
    Change a booking's status (staff only).

    Moving a booking to completed places the customer's completion call once.
    If the call fails the booking stays completed and the failure is returned
    in warnings.
    """
    logger.info(f"📥 Status change requested by {current_user.id}: booking {booking_id} → {data.status.value}")
    result = await state_machine.update_status(booking_id, data.status, data.technicianNotes)

    response = BookingStatusResponse.from_booking(result.booking)
    if result.notification_attempted:
        response.completionCall = CompletionCallOutcome(
            attempted=True,
            delivered=result.notification_delivered,
            warning=result.warning,
        )
    if result.warning:
        response.warnings = [result.warning]
    return response
