"""
Twilio Voice Service
Places the automated "your vehicle is ready" call when a booking is completed
"""

import logging
from typing import Optional
from xml.sax.saxutils import escape

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from .. import config
from ..errors import NotifierError
from ..models import Booking, User
from ..models_twilio import TwilioCallLog
from ..shared.validators import is_valid_e164

logger = logging.getLogger(__name__)


def build_completion_twiml(
    message: str = config.COMPLETION_CALL_MESSAGE,
    voice: str = config.COMPLETION_CALL_VOICE,
    language: str = config.COMPLETION_CALL_LANGUAGE,
) -> str:
    """Build the TwiML document read out on the completion call"""
    return (
        '<?xml version="1.0" encoding="UTF-8"?>'
        "<Response>"
        f'<Say voice="{escape(voice)}" language="{escape(language)}">{escape(message)}</Say>'
        "</Response>"
    )


class TwilioVoiceNotifier:
    """CompletionNotifier backed by the Twilio Calls API"""

    def __init__(
        self,
        db: Session,
        account_sid: Optional[str] = None,
        auth_token: Optional[str] = None,
        from_number: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.account_sid = account_sid or config.TWILIO_ACCOUNT_SID
        self.auth_token = auth_token or config.TWILIO_AUTH_TOKEN
        self.from_number = from_number or config.TWILIO_PHONE_NUMBER
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return bool(self.account_sid and self.auth_token and self.from_number)

    async def notify_completion(self, booking: Booking) -> tuple[bool, Optional[str]]:
        """
        Call the booking's customer to say the service is complete.

        Returns:
            Tuple of (delivered: bool, error_message: Optional[str])
        """
        user = self.db.query(User).filter(User.id == booking.user_id).first()
        to_phone = user.phone if user else None

        if not to_phone:
            logger.info(f"No phone number available for user {booking.user_id}, skipping voice call")
            return False, "No phone number on file"

        if not is_valid_e164(to_phone):
            logger.error(f"Invalid phone number format for booking {booking.id}")
            return False, "Phone number must be in E.164 format (e.g., +1234567890)"

        if not self.is_configured:
            logger.warning(f"Twilio not configured - skipping voice call for booking {booking.id}")
            return False, "Twilio not configured"

        try:
            call_sid = await self._place_call(to_phone)
        except NotifierError as e:
            self._log_call(booking, to_phone, status="failed", error_message=e.message)
            return False, e.message
        except httpx.HTTPError as e:
            logger.error(f"Twilio API error: {str(e)}")
            self._log_call(booking, to_phone, status="failed", error_message=str(e))
            return False, str(e)

        self._log_call(booking, to_phone, status="initiated", call_sid=call_sid)
        logger.info(
            f"✅ Voice call initiated successfully for booking {booking.id}. Call SID: {call_sid}"
        )
        return True, None

    async def _place_call(self, to_phone: str) -> Optional[str]:
        data = {
            "To": to_phone,
            "From": self.from_number,
            "Twiml": build_completion_twiml(),
        }

        logger.info(f"🚀 Sending call request to Twilio API for {to_phone}")
        async with httpx.AsyncClient(transport=self.transport) as client:
            response = await client.post(
                f"{config.TWILIO_API_BASE_URL}/Accounts/{self.account_sid}/Calls.json",
                auth=(self.account_sid, self.auth_token),
                data=data,
                timeout=config.TWILIO_TIMEOUT_SECONDS,
            )

        logger.info(f"📡 Twilio API response status: {response.status_code}")
        if response.status_code in [200, 201]:
            return response.json().get("sid")

        try:
            error_data = response.json()
        except ValueError:
            error_data = {}
        error_message = error_data.get("message", "Unknown error")
        error_code = error_data.get("code")
        logger.error(f"❌ Twilio API error [{error_code}]: {error_message}")
        raise NotifierError(f"[{error_code}] {error_message}" if error_code else error_message)

    def _log_call(
        self,
        booking: Booking,
        to_phone: str,
        status: str,
        call_sid: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        call_log = TwilioCallLog(
            booking_id=booking.id,
            user_id=booking.user_id,
            to_phone=to_phone,
            call_type="booking_completion",
            twilio_call_sid=call_sid,
            status=status,
            error_message=error_message,
        )
        try:
            self.db.add(call_log)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Failed to record Twilio call log for booking {booking.id}: {e}")
