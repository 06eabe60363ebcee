"""Bookings domain - Booking records and the status state machine"""

from .router import router
from .state_machine import BookingStateMachine, CompletionNotifier

__all__ = ["BookingStateMachine", "CompletionNotifier", "router"]
