"""
Slot generation
Expands a daily template (start/end time, duration, capacity) into time slots
for every day of a date range
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...config import SLOT_GENERATION_MAX_DAYS
from ...errors import ConflictError, InvalidRangeError
from ...models import TimeSlot
from ...shared.transactions import storage_guard
from ...shared.validators import hhmm_to_minutes, minutes_to_hhmm
from .repository import TimeSlotRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SlotWindow:
    """One concrete slot produced by a template"""

    date: date
    start_time: str
    end_time: str


def expand_template(
    start_date: date,
    end_date: date,
    start_time: str,
    end_time: str,
    slot_duration_minutes: int,
    max_capacity: int = 1,
) -> list[SlotWindow]:
    """
    Deterministically expand a template into slot windows.

    Each day gets back-to-back slots of slot_duration_minutes starting at
    start_time. A slot that would end after end_time is dropped, not
    truncated.

    Raises:
        InvalidRangeError: if the dates, times, duration or capacity are malformed
    """
    try:
        day_start = hhmm_to_minutes(start_time)
        day_end = hhmm_to_minutes(end_time)
    except ValueError as e:
        raise InvalidRangeError(str(e)) from e

    if start_date > end_date:
        raise InvalidRangeError("startDate must not be after endDate")
    if day_start >= day_end:
        raise InvalidRangeError("startTime must be before endTime")
    if slot_duration_minutes <= 0:
        raise InvalidRangeError("slotDuration must be a positive number of minutes")
    if max_capacity < 1:
        raise InvalidRangeError("maxCapacity must be at least 1")

    days = (end_date - start_date).days + 1
    if days > SLOT_GENERATION_MAX_DAYS:
        raise InvalidRangeError(
            f"Date range spans {days} days; at most {SLOT_GENERATION_MAX_DAYS} allowed"
        )

    windows = []
    for offset in range(days):
        current_day = start_date + timedelta(days=offset)
        slot_start = day_start
        while slot_start + slot_duration_minutes <= day_end:
            slot_end = slot_start + slot_duration_minutes
            windows.append(
                SlotWindow(current_day, minutes_to_hhmm(slot_start), minutes_to_hhmm(slot_end))
            )
            slot_start = slot_end
    return windows


class SlotGenerator:
    """Persists template expansions; windows that already exist are skipped"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = TimeSlotRepository()

    def generate(
        self,
        start_date: date,
        end_date: date,
        start_time: str,
        end_time: str,
        slot_duration_minutes: int,
        max_capacity: int = 1,
    ) -> list[TimeSlot]:
        """Create the template's slots and return the ones that were new"""
        windows = expand_template(
            start_date, end_date, start_time, end_time, slot_duration_minutes, max_capacity
        )

        with storage_guard(self.db, f"generating slots {start_date}..{end_date}"):
            existing = self.repo.get_existing_windows(self.db, start_date, end_date)
            created = [
                self.repo.add_slot(
                    self.db,
                    date=window.date,
                    start_time=window.start_time,
                    end_time=window.end_time,
                    max_capacity=max_capacity,
                )
                for window in windows
                if (window.date, window.start_time, window.end_time) not in existing
            ]
            try:
                self.db.commit()
            except IntegrityError as e:
                self.db.rollback()
                raise ConflictError(
                    "Overlapping slots were generated concurrently; retry the request"
                ) from e
            for slot in created:
                self.db.refresh(slot)

        skipped = len(windows) - len(created)
        logger.info(
            f"📅 Generated {len(created)} time slots for {start_date}..{end_date} "
            f"({skipped} already existed)"
        )
        return created
