"""Domain errors raised by the slot allocation and booking status core"""


class BookingCoreError(Exception):
    """Base class for errors surfaced to callers of the core"""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class NotFoundError(BookingCoreError):
    """Referenced slot or booking does not exist"""

    status_code = 404


class InvalidTransitionError(BookingCoreError):
    """Requested status is not reachable from the booking's current status"""

    status_code = 409

    def __init__(self, current: str, requested: str, allowed: list[str]):
        allowed_text = ", ".join(allowed) if allowed else "none (terminal status)"
        super().__init__(
            f"Cannot move booking from '{current}' to '{requested}'. Allowed: {allowed_text}"
        )
        self.current = current
        self.requested = requested
        self.allowed = allowed


class InvalidRangeError(BookingCoreError):
    """Malformed slot creation or generation parameters"""

    status_code = 400


class ConflictError(BookingCoreError):
    """Write rejected because of the current state of another record"""

    status_code = 409


class StorageError(BookingCoreError):
    """Underlying persistence failure"""

    status_code = 503


class NotifierError(BookingCoreError):
    """Completion call failed or was skipped; reported as a warning, never raised to the caller"""

    status_code = 502
