"""
Booking status state machine.

Status graph (strict mode):

    pending → confirmed → in_progress → completed
       └──────────┴────────────┴──────→ cancelled

completed and cancelled are terminal. Repeating the current status is
accepted so retried requests succeed.

Entering completed flips completion_call_triggered in the same UPDATE as the
status write. Only the caller whose UPDATE matched calls the
CompletionNotifier, after commit, so the voice call is placed at most once per
booking no matter how many completion requests race. A failed call is
reported as a warning and never rolls the booking back.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Union

from sqlalchemy.orm import Session

from ...config import BOOKING_STRICT_TRANSITIONS, STATUS_UPDATE_MAX_ATTEMPTS
from ...errors import ConflictError, InvalidTransitionError, NotFoundError
from ...models import Booking, BookingStatus
from ...shared.timeutils import utcnow
from ...shared.transactions import storage_guard
from ..scheduling.repository import TimeSlotRepository
from .repository import BookingRepository

logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.PENDING: frozenset({BookingStatus.CONFIRMED, BookingStatus.CANCELLED}),
    BookingStatus.CONFIRMED: frozenset({BookingStatus.IN_PROGRESS, BookingStatus.CANCELLED}),
    BookingStatus.IN_PROGRESS: frozenset({BookingStatus.COMPLETED, BookingStatus.CANCELLED}),
    BookingStatus.COMPLETED: frozenset(),
    BookingStatus.CANCELLED: frozenset(),
}


class CompletionNotifier(Protocol):
    """Places the automated completion call for a booking"""

    async def notify_completion(self, booking: Booking) -> tuple[bool, Optional[str]]:
        """Return (delivered, error_message)"""
        ...


@dataclass
class StatusUpdateResult:
    booking: Booking
    notification_attempted: bool = False
    notification_delivered: bool = False
    warning: Optional[str] = None


class BookingStateMachine:
    """Validates and applies booking status transitions"""

    def __init__(
        self,
        db: Session,
        notifier: CompletionNotifier,
        strict: bool = BOOKING_STRICT_TRANSITIONS,
        max_attempts: int = STATUS_UPDATE_MAX_ATTEMPTS,
    ):
        self.db = db
        self.notifier = notifier
        self.strict = strict
        self.max_attempts = max(1, max_attempts)
        self.repo = BookingRepository()
        self.slots = TimeSlotRepository()

    @staticmethod
    def allowed_targets(current: BookingStatus) -> list[str]:
        """Statuses reachable from current, excluding the no-op repeat"""
        return sorted(status.value for status in ALLOWED_TRANSITIONS[current])

    def check_transition(self, current: str, requested: Union[str, BookingStatus]) -> BookingStatus:
        """Return the requested status if it is reachable, else raise InvalidTransitionError"""
        current_status = BookingStatus(current)
        try:
            target = BookingStatus(requested)
        except ValueError:
            raise InvalidTransitionError(
                current, str(requested), self.allowed_targets(current_status)
            ) from None

        if target == current_status or not self.strict:
            return target
        if target not in ALLOWED_TRANSITIONS[current_status]:
            raise InvalidTransitionError(current, target.value, self.allowed_targets(current_status))
        return target

    async def update_status(
        self,
        booking_id: str,
        new_status: Union[str, BookingStatus],
        notes: Optional[str] = None,
    ) -> StatusUpdateResult:
        """
        Move a booking to new_status.

        Args:
            booking_id: Booking to update
            new_status: Target status
            notes: Technician notes; overwrite the stored notes when provided

        Returns:
            StatusUpdateResult with the committed booking and the outcome of
            the completion call, if one was placed

        Raises:
            NotFoundError: booking does not exist
            InvalidTransitionError: target not reachable from the current status
            ConflictError: booking kept changing under concurrent writers
            StorageError: database failure
        """
        booking, call_required = self._apply_transition(booking_id, new_status, notes)
        result = StatusUpdateResult(booking=booking)

        if call_required:
            result.notification_attempted = True
            result.notification_delivered, result.warning = await self._notify_completion(booking)

        return result

    def _apply_transition(
        self, booking_id: str, new_status: Union[str, BookingStatus], notes: Optional[str]
    ) -> tuple[Booking, bool]:
        for attempt in range(1, self.max_attempts + 1):
            with storage_guard(self.db, f"updating status of booking {booking_id}"):
                booking = self.repo.get_booking(self.db, booking_id)
                if not booking:
                    raise NotFoundError("Booking not found")

                current = booking.status
                target = self.check_transition(current, new_status)
                now = utcnow()

                updates = {Booking.status: target.value, Booking.updated_at: now}
                if notes is not None:
                    updates[Booking.technician_notes] = notes

                call_required = False
                if target == BookingStatus.COMPLETED:
                    if booking.actual_completion is None:
                        updates[Booking.actual_completion] = now
                    if not booking.completion_call_triggered:
                        updates[Booking.completion_call_triggered] = True
                        call_required = True

                held_slot_id = booking.time_slot_id
                releasing = (
                    target == BookingStatus.CANCELLED
                    and current != BookingStatus.CANCELLED.value
                    and held_slot_id is not None
                )
                if releasing:
                    updates[Booking.time_slot_id] = None

                matched = self.repo.compare_and_set(
                    self.db,
                    booking_id,
                    expected_status=current,
                    expected_call_triggered=bool(booking.completion_call_triggered),
                    expected_time_slot_id=held_slot_id,
                    updates=updates,
                )
                if matched:
                    if releasing:
                        self.slots.decrement_if_booked(self.db, held_slot_id, booking_id)
                    self.db.commit()
                    self.db.refresh(booking)
                    logger.info(
                        f"✅ Booking {booking_id} transitioned: {current} → {target.value}"
                        + (f" (released time slot {held_slot_id})" if releasing else "")
                    )
                    return booking, call_required

                self.db.rollback()

            logger.info(
                f"🔁 Booking {booking_id} changed concurrently, re-reading "
                f"(attempt {attempt}/{self.max_attempts})"
            )

        raise ConflictError("Booking was modified concurrently; retry the request")

    async def _notify_completion(self, booking: Booking) -> tuple[bool, Optional[str]]:
        logger.info(f"📞 Triggering completion voice call for booking {booking.id}")
        try:
            delivered, error = await self.notifier.notify_completion(booking)
        except Exception as e:
            # Status and flag are already committed; the call is best effort
            logger.error(f"❌ Completion call for booking {booking.id} raised: {e}")
            return False, f"Completion call failed: {e}"

        if not delivered:
            logger.warning(
                f"⚠️ Completion call for booking {booking.id} not delivered, "
                f"booking remains completed: {error}"
            )
            return False, error or "Completion call was not delivered"

        return True, None
